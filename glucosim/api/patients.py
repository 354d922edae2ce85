import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from glucosim.api.deps import get_store
from glucosim.core.settings import Settings, get_settings
from glucosim.models.profile import PatientProfile
from glucosim.models.reading import CurveResponse, CurveSummary
from glucosim.models.treatment import Treatment
from glucosim.services import simulation
from glucosim.services.curve_engine import summarize_curve
from glucosim.services.store import DataStore, PatientNotFoundError, StoreError

logger = logging.getLogger(__name__)

router = APIRouter()


class TreatmentSaved(BaseModel):
    treatment: Treatment
    points: int
    summary: CurveSummary


@router.get("/{patient_id}", response_model=PatientProfile)
def get_patient(patient_id: str, store: DataStore = Depends(get_store)) -> PatientProfile:
    try:
        return store.get_profile(patient_id)
    except PatientNotFoundError:
        raise HTTPException(status_code=404, detail="patient_not_found")
    except StoreError as exc:
        raise HTTPException(status_code=503, detail=str(exc))


@router.put("/{patient_id}", response_model=PatientProfile)
def put_patient(patient_id: str, profile: PatientProfile, store: DataStore = Depends(get_store)) -> PatientProfile:
    if profile.id != patient_id:
        raise HTTPException(status_code=400, detail="patient_id_mismatch")
    try:
        return store.save_profile(profile)
    except StoreError as exc:
        raise HTTPException(status_code=503, detail=str(exc))


@router.post("/{patient_id}/treatments", response_model=TreatmentSaved, status_code=201)
def add_treatment(
    patient_id: str,
    treatment: Treatment,
    store: DataStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> TreatmentSaved:
    if treatment.patient_id != patient_id:
        raise HTTPException(status_code=400, detail="patient_id_mismatch")
    try:
        store.save_treatment(treatment)
        series = simulation.recalculate_patient(patient_id, store, store, settings=settings)
        profile = store.get_profile(patient_id)
    except PatientNotFoundError:
        raise HTTPException(status_code=404, detail="patient_not_found")
    except StoreError as exc:
        logger.error("Store failure while saving treatment for %s: %s", patient_id, exc)
        raise HTTPException(status_code=503, detail=str(exc))

    return TreatmentSaved(treatment=treatment, points=len(series), summary=summarize_curve(series, profile))


@router.get("/{patient_id}/readings", response_model=CurveResponse)
def get_readings(
    patient_id: str,
    now: Optional[datetime] = Query(None, description="Reference instant for readouts"),
    store: DataStore = Depends(get_store),
) -> CurveResponse:
    try:
        profile = store.get_profile(patient_id)
        series = store.get_readings(patient_id)
    except PatientNotFoundError:
        raise HTTPException(status_code=404, detail="patient_not_found")
    except StoreError as exc:
        raise HTTPException(status_code=503, detail=str(exc))

    reference = now or datetime.now(timezone.utc)
    trend = simulation.trend(series, now=reference)
    return CurveResponse(
        series=series,
        current_value=simulation.current_value(series, now=reference),
        trend=trend,
        trend_arrow=trend.arrow,
        summary=summarize_curve(series, profile) if series else None,
    )
