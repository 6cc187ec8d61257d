# fleet_induction/api/ingestion.py
from fastapi import APIRouter, HTTPException, UploadFile, File
from typing import Any, Dict, List
import logging

from fleet_induction.models.train import Train, TrainUpdate
from fleet_induction.services.data_ingestion import (
    IngestionError,
    apply_train_update,
    ingest_csv,
    ingest_rows,
)

logger = logging.getLogger(__name__)
router = APIRouter()


class TrainUpdateRequest(TrainUpdate):
    trains: List[Train]


@router.post("/csv")
async def upload_train_csv(file: UploadFile = File(...)):
    """Upload a fleet CSV and return validated train records"""
    try:
        content = await file.read()
        trains = ingest_csv(content.decode("utf-8-sig"))
        return {
            "filename": file.filename,
            "count": len(trains),
            "trains": [t.model_dump(by_alias=True) for t in trains],
        }
    except (IngestionError, UnicodeDecodeError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"CSV ingestion failed: {e}")
        raise HTTPException(status_code=500, detail=f"CSV ingestion failed: {str(e)}")


@router.post("/rows")
async def ingest_train_rows(rows: List[Dict[str, Any]]):
    """Validate raw row records (column aliases accepted)"""
    trains = ingest_rows(rows)
    if not trains:
        raise HTTPException(status_code=400, detail="No valid train records found")
    return {"count": len(trains), "trains": [t.model_dump(by_alias=True) for t in trains]}


@router.post("/trains/{train_id}/update")
async def update_train(train_id: str, request: TrainUpdateRequest):
    try:
        trains = apply_train_update(request.trains, train_id, request.updates)
        return {"trains": [t.model_dump(by_alias=True) for t in trains]}
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Train {train_id} not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid update: {e}")
