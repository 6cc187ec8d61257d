# fleet_induction/services/data_ingestion.py
import csv
import io
import logging
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from fleet_induction.models.train import FitnessCertificates, Train
from fleet_induction.services.data_cleaning import DataCleaningService
from fleet_induction.utils.normalization import (
    normalize_to_bool,
    normalize_to_float,
    normalize_to_int,
    set_nested_value,
)

logger = logging.getLogger(__name__)


class IngestionError(ValueError):
    """Raised when an upload yields no usable train records"""


# Canonical field -> accepted column names, in lookup order
FIELD_ALIASES: Dict[str, Sequence[str]] = {
    "id": ("id", "ID"),
    "mileage_total": ("mileage_total", "total_mileage", "mileage"),
    "since_A": ("since_A", "a_inspection", "since_a"),
    "since_B": ("since_B", "b_inspection", "since_b"),
    "state": ("state", "status"),
    "p_fail": ("p_fail", "failure_prob", "prob_fail"),
    "pos": ("pos", "position"),
    "days_since_clean": ("days_since_clean", "cleaning_days", "clean_days"),
    "RS": ("fitness_RS", "RS", "rs"),
    "SIG": ("fitness_SIG", "SIG", "sig"),
    "TEL": ("fitness_TEL", "TEL", "tel"),
    "branding_hours": ("branding_hours", "branding"),
}

FIELD_DEFAULTS: Dict[str, Any] = {
    "mileage_total": 100000,
    "since_A": 1000,
    "since_B": 8000,
    "state": "OK",
    "p_fail": 0.01,
    "days_since_clean": 10,
    "branding_hours": 8,
}


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and value != value:
        return True
    return isinstance(value, str) and not value.strip()


def parse_csv_text(text: str) -> List[Dict[str, Any]]:
    """
    Split CSV text into row dicts keyed by header.

    Blank lines are skipped. Rows whose value count differs from the header
    are dropped rather than padded. Cells stay stripped text; numeric columns
    are typed during cleaning.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return []

    reader = csv.reader(io.StringIO("\n".join(lines)), skipinitialspace=True)
    header = [h.strip().strip('"').strip() for h in next(reader)]
    rows: List[Dict[str, Any]] = []
    dropped = 0
    for values in reader:
        if len(values) != len(header):
            dropped += 1
            continue
        rows.append({key: value.strip() for key, value in zip(header, values)})

    if dropped:
        logger.warning(f"Dropped {dropped} CSV row(s) with a column count different from the header")
    return rows


def resolve_aliases(row: Dict[str, Any], index: int) -> Dict[str, Any]:
    """Map an arbitrary row onto canonical column names; missing columns stay None"""
    canonical: Dict[str, Any] = {}
    for field, aliases in FIELD_ALIASES.items():
        value = None
        for alias in aliases:
            if alias in row and not _is_missing(row[alias]):
                value = row[alias]
                break
        canonical[field] = value
    if canonical["id"] is None:
        canonical["id"] = f"T{index + 1:02d}"
    else:
        canonical["id"] = str(canonical["id"]).strip()
    if canonical["pos"] is None:
        canonical["pos"] = index
    return canonical


def build_train(row: Dict[str, Any]) -> Train:
    """Fill defaults on a canonical row and validate it into a Train"""

    def _value(field: str) -> Any:
        value = row.get(field)
        return FIELD_DEFAULTS.get(field) if _is_missing(value) else value

    state = str(_value("state")).strip().upper()
    return Train(
        id=str(row["id"]),
        mileage_total=normalize_to_float(_value("mileage_total"), FIELD_DEFAULTS["mileage_total"]),
        since_A=normalize_to_float(_value("since_A"), FIELD_DEFAULTS["since_A"]),
        since_B=normalize_to_float(_value("since_B"), FIELD_DEFAULTS["since_B"]),
        state=state,
        p_fail=normalize_to_float(_value("p_fail"), FIELD_DEFAULTS["p_fail"]),
        pos=normalize_to_int(row.get("pos"), 0),
        days_since_clean=normalize_to_int(_value("days_since_clean"), FIELD_DEFAULTS["days_since_clean"]),
        fitness=FitnessCertificates(
            RS=normalize_to_bool(row.get("RS"), True),
            SIG=normalize_to_bool(row.get("SIG"), True),
            TEL=normalize_to_bool(row.get("TEL"), True),
        ),
        branding_hours=normalize_to_float(_value("branding_hours"), FIELD_DEFAULTS["branding_hours"]),
    )


def ingest_rows(rows: Sequence[Dict[str, Any]]) -> List[Train]:
    """Validate raw row records into Train records; invalid rows are logged and skipped."""
    canonical = [resolve_aliases(row, index) for index, row in enumerate(rows)]
    cleaned = DataCleaningService().clean_train_rows(canonical)

    trains: List[Train] = []
    for row in cleaned:
        try:
            trains.append(build_train(row))
        except ValidationError as e:
            logger.warning(f"Skipping invalid train row {row.get('id')}: {e.error_count()} validation error(s)")
    logger.info(f"Ingested {len(trains)} of {len(rows)} train rows")
    return trains


def ingest_csv(text: str) -> List[Train]:
    rows = parse_csv_text(text)
    if not rows:
        raise IngestionError("CSV contains no data rows matching the header")
    trains = ingest_rows(rows)
    if not trains:
        raise IngestionError("No valid train records found in CSV")
    return trains


def _alias_path(path: str) -> str:
    segments = path.split(".")
    field = Train.model_fields.get(segments[0])
    if field is not None and field.alias:
        segments[0] = field.alias
    if segments[0] == "fitness" and len(segments) > 1:
        cert = FitnessCertificates.model_fields.get(segments[1])
        if cert is not None and cert.alias:
            segments[1] = cert.alias
    return ".".join(segments)


def apply_train_update(trains: Sequence[Train], train_id: str, updates: Dict[str, Any]) -> List[Train]:
    """
    Return a new train list with dotted-path updates applied to one train,
    e.g. {"fitness.RS": False, "state": "IOH"}. The edited train is re-validated.
    """
    index: Optional[int] = next((i for i, t in enumerate(trains) if t.id == train_id), None)
    if index is None:
        raise KeyError(f"Train {train_id} not found")

    payload = trains[index].model_dump(by_alias=True, mode="json")
    for path, value in updates.items():
        set_nested_value(payload, _alias_path(path), value)

    updated = list(trains)
    updated[index] = Train.model_validate(payload)
    logger.info(f"Train {train_id} updated: {', '.join(sorted(updates))}")
    return updated
