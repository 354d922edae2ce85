import logging
import math
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from glucosim.core import constants
from glucosim.core.settings import FallbackConfig
from glucosim.models.reading import GlucoseReading, reading_id
from glucosim.models.treatment import ensure_utc
from glucosim.services.curve_engine import clamp, grid_times

logger = logging.getLogger(__name__)


def generate_fallback_curve(
    patient_id: str,
    now: datetime,
    noise: Optional[Sequence[float]] = None,
    config: Optional[FallbackConfig] = None,
    calculated_at: Optional[datetime] = None,
    steps: int = constants.HORIZON_STEPS,
    step_minutes: int = constants.STEP_MINUTES,
) -> List[GlucoseReading]:
    """
    Safe synthetic curve: baseline plus a 24-hour sine wave, perturbed by the
    weekly noise and clamped to a narrow range. Used when the simulation fails.
    """
    config = config or FallbackConfig()
    calculated_at = ensure_utc(calculated_at or datetime.now(timezone.utc))
    noise = noise or [0.0]

    logger.warning("Using fallback glucose curve for patient=%s", patient_id)
    series: List[GlucoseReading] = []
    for step, t in enumerate(grid_times(now, steps, step_minutes)):
        hours = step * step_minutes / 60.0
        base = constants.BASELINE_MGDL + config.amplitude_mgdl * math.sin(
            hours * 2 * math.pi / constants.FALLBACK_PERIOD_HOURS
        )
        noise_value = noise[step % len(noise)]
        if not math.isfinite(noise_value):
            noise_value = 0.0
        value = clamp(base + base * noise_value, config.min_mgdl, config.max_mgdl)
        series.append(
            GlucoseReading(
                id=reading_id(patient_id, t),
                patient_id=patient_id,
                timestamp=t,
                glucose_value=round(value, 1),
                is_predicted=True,
                calculation_timestamp=calculated_at,
            )
        )
    return series
