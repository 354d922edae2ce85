from datetime import date, datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from glucosim.core.settings import Settings, get_settings
from glucosim.models.profile import PatientProfile
from glucosim.models.reading import CurveResponse
from glucosim.models.treatment import Treatment
from glucosim.services import simulation
from glucosim.services.curve_engine import summarize_curve

router = APIRouter()


class CurveRequest(BaseModel):
    profile: PatientProfile
    treatments: List[Treatment] = Field(default_factory=list)
    now: Optional[datetime] = Field(None, description="Start of the horizon; defaults to the server time")


class NoiseResponse(BaseModel):
    patient_id: str
    week_start: str
    values: List[float]


@router.post("/curve", response_model=CurveResponse, summary="Simulate the next 24 hours")
def simulate_curve(payload: CurveRequest, settings: Settings = Depends(get_settings)) -> CurveResponse:
    series = simulation.compute_curve(payload.profile, payload.treatments, now=payload.now, settings=settings)
    reference = series[0].timestamp
    trend = simulation.trend(series, now=reference)
    return CurveResponse(
        series=series,
        current_value=simulation.current_value(series, now=reference),
        trend=trend,
        trend_arrow=trend.arrow,
        summary=summarize_curve(series, payload.profile),
    )


@router.get("/noise/{patient_id}", response_model=NoiseResponse, summary="Weekly biological noise")
def get_noise(
    patient_id: str,
    week: Optional[date] = Query(None, alias="week_start", description="Any date; snapped to its Sunday"),
    settings: Settings = Depends(get_settings),
) -> NoiseResponse:
    start = simulation.week_start(week or datetime.now(timezone.utc).date())
    return NoiseResponse(
        patient_id=patient_id,
        week_start=start,
        values=simulation.weekly_noise(patient_id, start, settings),
    )
