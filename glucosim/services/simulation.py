"""
Entry points of the glucose simulation engine.

`compute_curve` never raises: any error while loading settings or inside the
calculator is logged and answered with the fallback curve, so callers always
receive a full series.
"""
import logging
import threading
import weakref
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Protocol, Sequence

from glucosim.core.settings import Settings, get_settings
from glucosim.models.enums import Trend
from glucosim.models.profile import PatientProfile
from glucosim.models.reading import GlucoseReading
from glucosim.models.treatment import Treatment, ensure_utc
from glucosim.services import readouts
from glucosim.services.curve_engine import CurveEngine
from glucosim.services.fallback import generate_fallback_curve
from glucosim.services.noise import week_start, weekly_noise as _weekly_noise

logger = logging.getLogger(__name__)


class TreatmentSource(Protocol):
    def get_profile(self, patient_id: str) -> PatientProfile: ...

    def get_treatments(self, patient_id: str, since: Optional[datetime] = None) -> List[Treatment]: ...


class ReadingSink(Protocol):
    def replace_predicted_readings(self, patient_id: str, readings: Sequence[GlucoseReading]) -> None: ...


def weekly_noise(patient_id: str, week: str, settings: Optional[Settings] = None) -> List[float]:
    settings = settings or get_settings()
    cfg = settings.noise
    return _weekly_noise(patient_id, week, cfg.amplitude, cfg.octaves, cfg.persistence)


def _fallback(profile_id: str, now: datetime, calculated_at: datetime, settings: Settings) -> List[GlucoseReading]:
    try:
        noise = weekly_noise(profile_id, week_start(now), settings)
    except Exception:
        logger.exception("Noise generation failed inside fallback, continuing without noise")
        noise = None
    return generate_fallback_curve(
        profile_id,
        now,
        noise=noise,
        config=settings.fallback,
        calculated_at=calculated_at,
        steps=settings.engine.steps,
        step_minutes=settings.engine.step_minutes,
    )


def compute_curve(
    profile: PatientProfile,
    treatments: Sequence[Treatment],
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> List[GlucoseReading]:
    """Predicted 24h series (288 readings, 5 min apart) starting at `now`."""
    calculated_at = datetime.now(timezone.utc)
    now = ensure_utc(now) if now is not None else calculated_at

    try:
        settings = settings or get_settings()
        noise = weekly_noise(profile.id, week_start(now), settings)
        return CurveEngine.calculate_curve(
            profile,
            list(treatments),
            now,
            noise,
            config=settings.engine,
            calculated_at=calculated_at,
        )
    except Exception:
        logger.exception("Simulation error for patient=%s, falling back to synthetic curve", profile.id)

    if settings is not None:
        try:
            return _fallback(profile.id, now, calculated_at, settings)
        except Exception:
            logger.exception("Configured fallback failed for patient=%s, using default settings", profile.id)
    return _fallback(profile.id, now, calculated_at, Settings())


def current_value(series: Sequence[GlucoseReading], now: Optional[datetime] = None) -> float:
    return readouts.current_value(series, now)


def trend(series: Sequence[GlucoseReading], now: Optional[datetime] = None) -> Trend:
    return readouts.trend(series, now)


# One lock per patient; recomputations for the same patient never interleave.
# Entries disappear once no caller references the lock.
_patient_locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
_patient_locks_guard = threading.Lock()


def _lock_for(patient_id: str) -> threading.Lock:
    with _patient_locks_guard:
        lock = _patient_locks.get(patient_id)
        if lock is None:
            lock = threading.Lock()
            _patient_locks[patient_id] = lock
        return lock


def recalculate_patient(
    patient_id: str,
    source: TreatmentSource,
    sink: ReadingSink,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> List[GlucoseReading]:
    """
    Full recomputation for one patient, triggered after a treatment is saved.

    Loads the profile and every treatment that may still be active, computes
    the curve and replaces the previously predicted series in the sink.
    Source and sink failures propagate to the caller.
    """
    settings = settings or get_settings()
    now = ensure_utc(now) if now is not None else datetime.now(timezone.utc)

    with _lock_for(patient_id):
        profile = source.get_profile(patient_id)
        since = now - timedelta(hours=settings.engine.lookback_hours)
        treatments = source.get_treatments(patient_id, since=since)
        logger.info(
            "Recalculating patient=%s with %d treatments since %s", patient_id, len(treatments), since.isoformat()
        )
        series = compute_curve(profile, treatments, now=now, settings=settings)
        sink.replace_predicted_readings(patient_id, series)
    return series


__all__ = [
    "TreatmentSource",
    "ReadingSink",
    "compute_curve",
    "current_value",
    "trend",
    "weekly_noise",
    "week_start",
    "recalculate_patient",
]
