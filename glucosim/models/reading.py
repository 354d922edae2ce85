from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from glucosim.core.constants import STORAGE_MAX_MGDL, STORAGE_MIN_MGDL
from glucosim.models.enums import Trend
from glucosim.models.treatment import ensure_utc


def reading_id(patient_id: str, timestamp: datetime) -> str:
    return f"{patient_id}_{timestamp.isoformat()}"


class GlucoseReading(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    patient_id: str
    timestamp: datetime
    glucose_value: float = Field(..., ge=STORAGE_MIN_MGDL, le=STORAGE_MAX_MGDL, description="mg/dL")
    is_predicted: bool = True
    calculation_timestamp: datetime

    @field_validator("timestamp", "calculation_timestamp")
    def _as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class CurveComponents(BaseModel):
    """Per-step breakdown of what moved the curve (diagnostics only)."""

    step: int
    carb_impact: float = 0.0
    insulin_impact: float = 0.0  # Negative
    long_insulin_impact: float = 0.0  # Negative
    exercise_impact: float = 0.0  # Negative
    endogenous_impact: float = 0.0
    noise: float = 0.0


class CurveSummary(BaseModel):
    min_bg: float
    max_bg: float
    mean_bg: float
    ending_bg: float
    time_in_range_pct: float
    points: int


class CurveResponse(BaseModel):
    series: List[GlucoseReading]
    current_value: float
    trend: Trend
    trend_arrow: str
    summary: Optional[CurveSummary] = None
