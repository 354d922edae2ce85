import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Iterator, List, Optional, Sequence, Tuple

from glucosim.core import constants
from glucosim.core.settings import EngineConfig
from glucosim.models.enums import TreatmentType
from glucosim.models.profile import PatientProfile
from glucosim.models.reading import CurveComponents, CurveSummary, GlucoseReading, reading_id
from glucosim.models.treatment import Treatment, ensure_utc
from glucosim.services.math import TreatmentEffects

logger = logging.getLogger(__name__)

_COMPONENT_FIELDS = {
    TreatmentType.MEAL: "carb_impact",
    TreatmentType.RAPID_INSULIN: "insulin_impact",
    TreatmentType.CORRECTION: "insulin_impact",
    TreatmentType.LONG_INSULIN: "long_insulin_impact",
    TreatmentType.EXERCISE: "exercise_impact",
}

# Log significant effects every 30 minutes of grid time
_LOG_EVERY_STEPS = 6


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def grid_times(now: datetime, steps: int, step_minutes: int) -> List[datetime]:
    start = ensure_utc(now)
    return [start + timedelta(minutes=i * step_minutes) for i in range(steps)]


class CurveEngine:

    @staticmethod
    def _walk(
        profile: PatientProfile,
        treatments: Sequence[Treatment],
        now: datetime,
        noise: Sequence[float],
        config: EngineConfig,
    ) -> Iterator[Tuple[int, datetime, float, CurveComponents]]:
        """
        Sequential fold over the time grid.
        Yields (step, grid time, emitted value, components) for every grid point.
        """
        if not noise:
            raise ValueError("noise array is empty")

        # Effect models are expressed per 5-minute step
        step_scale = config.step_minutes / constants.STEP_MINUTES
        level = config.baseline_mgdl

        for step, t in enumerate(grid_times(now, config.steps, config.step_minutes)):
            components = CurveComponents(step=step, endogenous_impact=config.endogenous_per_step)
            change = config.endogenous_per_step

            for treatment in treatments:
                elapsed = (t - treatment.timestamp).total_seconds() / 60.0
                if elapsed < 0:
                    continue
                delta = TreatmentEffects.delta_for(treatment, elapsed, profile) * step_scale
                if delta == 0.0:
                    continue
                field = _COMPONENT_FIELDS[treatment.type]
                setattr(components, field, getattr(components, field) + delta)
                change += delta

                if step % _LOG_EVERY_STEPS == 0 and abs(delta) > 0.5:
                    logger.debug(
                        "%s effect at +%dmin: %+.1f mg/dL", treatment.type.value, round(elapsed), delta
                    )

            if not math.isfinite(change):
                raise ArithmeticError(f"Non-finite glucose change at step {step}")
            level = clamp(level + change, config.min_mgdl, config.max_mgdl)

            noise_value = noise[step % len(noise)]
            if not math.isfinite(noise_value):
                raise ArithmeticError(f"Non-finite noise value at step {step}")
            components.noise = noise_value
            emitted = clamp(level + level * noise_value, config.min_mgdl, config.max_mgdl)

            yield step, t, emitted, components

    @staticmethod
    def calculate_curve(
        profile: PatientProfile,
        treatments: Sequence[Treatment],
        now: datetime,
        noise: Sequence[float],
        config: Optional[EngineConfig] = None,
        calculated_at: Optional[datetime] = None,
    ) -> List[GlucoseReading]:
        config = config or EngineConfig()
        calculated_at = ensure_utc(calculated_at or datetime.now(timezone.utc))

        logger.info("Running simulation for %d treatments (patient=%s)", len(treatments), profile.id)
        series = [
            GlucoseReading(
                id=reading_id(profile.id, t),
                patient_id=profile.id,
                timestamp=t,
                glucose_value=round(value, 1),
                is_predicted=True,
                calculation_timestamp=calculated_at,
            )
            for _, t, value, _ in CurveEngine._walk(profile, treatments, now, noise, config)
        ]

        values = [r.glucose_value for r in series]
        logger.info(
            "Generated %d glucose points: min=%.1f max=%.1f mean=%.1f",
            len(values), min(values), max(values), sum(values) / len(values),
        )
        return series

    @staticmethod
    def calculate_components(
        profile: PatientProfile,
        treatments: Sequence[Treatment],
        now: datetime,
        noise: Sequence[float],
        config: Optional[EngineConfig] = None,
    ) -> List[CurveComponents]:
        config = config or EngineConfig()
        return [c for _, _, _, c in CurveEngine._walk(profile, treatments, now, noise, config)]


def summarize_curve(series: Sequence[GlucoseReading], profile: PatientProfile) -> CurveSummary:
    if not series:
        raise ValueError("Cannot summarize an empty series")
    values = [r.glucose_value for r in series]
    in_range = sum(1 for v in values if profile.target_glucose_low <= v <= profile.target_glucose_high)
    return CurveSummary(
        min_bg=round(min(values), 1),
        max_bg=round(max(values), 1),
        mean_bg=round(sum(values) / len(values), 1),
        ending_bg=round(values[-1], 1),
        time_in_range_pct=round(100.0 * in_range / len(values), 1),
        points=len(values),
    )
