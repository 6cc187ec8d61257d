from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class TrainState(str, Enum):
    OK = "OK"
    IOH = "IOH"
    POH = "POH"
    HEAVY_REPAIR = "HEAVY_REPAIR"


MAINTENANCE_STATES = (TrainState.IOH, TrainState.POH, TrainState.HEAVY_REPAIR)


class FitnessCertificates(BaseModel):
    """Rolling stock, signalling and telecom clearances"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    rs: bool = Field(default=True, alias="RS", description="Rolling stock certificate valid")
    sig: bool = Field(default=True, alias="SIG", description="Signalling certificate valid")
    tel: bool = Field(default=True, alias="TEL", description="Telecom certificate valid")

    def failing(self) -> List[str]:
        """Names of the certificates that are not valid, in RS, SIG, TEL order"""
        issues = []
        if not self.rs:
            issues.append("RS")
        if not self.sig:
            issues.append("SIG")
        if not self.tel:
            issues.append("TEL")
        return issues

    @property
    def all_valid(self) -> bool:
        return self.rs and self.sig and self.tel


class Train(BaseModel):
    """Snapshot of one vehicle for a single planning cycle"""
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "T01",
                "mileage_total": 245000,
                "since_A": 1200,
                "since_B": 8500,
                "state": "OK",
                "p_fail": 0.02,
                "pos": 1,
                "days_since_clean": 5,
                "fitness": {"RS": True, "SIG": True, "TEL": True},
                "branding_hours": 12,
            }
        },
    )

    id: str
    mileage_total: float = Field(..., ge=0, description="Lifetime odometer reading (km)")
    since_a: float = Field(..., ge=0, alias="since_A", description="Km since last A inspection")
    since_b: float = Field(..., ge=0, alias="since_B", description="Km since last B inspection")
    state: TrainState = TrainState.OK
    p_fail: float = Field(default=0.01, ge=0.0, le=1.0, description="Probability of in-service failure")
    pos: int = Field(default=0, ge=0, description="Stabling position index")
    days_since_clean: int = Field(default=0, ge=0)
    fitness: FitnessCertificates = Field(default_factory=FitnessCertificates)
    branding_hours: float = Field(default=0.0, ge=0)

    @property
    def requires_maintenance(self) -> bool:
        return self.state in MAINTENANCE_STATES


class TrainUpdate(BaseModel):
    """Dotted-path edits applied to a single train, e.g. {"fitness.RS": false}"""
    updates: Dict[str, Any] = Field(default_factory=dict)
