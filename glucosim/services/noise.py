import hashlib
import logging
from datetime import date, datetime, timedelta
from functools import lru_cache
from typing import List, Tuple

import numpy as np

from glucosim.core import constants

logger = logging.getLogger(__name__)


def week_start(instant: datetime | date) -> str:
    """ISO date of the Sunday that opens the week containing `instant`."""
    day = instant.date() if isinstance(instant, datetime) else instant
    # Monday=0 ... Sunday=6
    offset = (day.weekday() + 1) % 7
    return (day - timedelta(days=offset)).isoformat()


def _seed_for(patient_id: str, week: str) -> int:
    digest = hashlib.sha256(f"{patient_id}:{week}".encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


def _smooth_layer(white: np.ndarray, octave: int) -> np.ndarray:
    """White noise sampled every 2**octave points, linearly interpolated (wraps around)."""
    width = white.shape[0]
    period = 1 << octave
    idx = np.arange(width)
    i0 = (idx // period) * period
    i1 = (i0 + period) % width
    blend = (idx - i0) / period
    return white[i0] * (1.0 - blend) + white[i1] * blend


def _octave_noise(rng: np.random.Generator, width: int, amplitude: float, octaves: int, persistence: float) -> np.ndarray:
    white = rng.random(width)
    layers = [_smooth_layer(white, octave) for octave in range(octaves)]

    result = np.zeros(width)
    total_amplitude = 0.0
    current = amplitude
    # Coarsest layer first
    for octave in reversed(range(octaves)):
        current *= persistence
        total_amplitude += current
        result += layers[octave] * current
    return result / total_amplitude


@lru_cache(maxsize=64)
def _weekly_noise(
    patient_id: str,
    week: str,
    amplitude: float,
    octaves: int,
    persistence: float,
) -> Tuple[float, ...]:
    if amplitude == 0 or octaves == 0 or persistence == 0:
        logger.debug("Noise parameters are zero, using a flat noise array")
        return tuple([0.0] * constants.NOISE_LENGTH)

    rng = np.random.default_rng(_seed_for(patient_id, week))
    raw = _octave_noise(rng, constants.NOISE_LENGTH, amplitude, octaves, persistence)

    # [0, 1) -> [-0.05, 0.05)
    scaled = raw / 10.0 - 0.05
    scaled = np.where(np.isfinite(scaled), scaled, 0.0)
    centered = scaled - scaled.mean()

    logger.debug(
        "Generated weekly noise for patient=%s week=%s mean=%.6f min=%.4f max=%.4f",
        patient_id, week, float(centered.mean()), float(centered.min()), float(centered.max()),
    )
    return tuple(float(v) for v in centered)


def weekly_noise(
    patient_id: str,
    week: str,
    amplitude: float = constants.NOISE_AMPLITUDE,
    octaves: int = constants.NOISE_OCTAVES,
    persistence: float = constants.NOISE_PERSISTENCE,
) -> List[float]:
    """
    Deterministic multiplicative perturbations for one patient-week.

    Returns 2016 values (7 days of 5-minute steps), each within roughly +/-5%,
    with a mean of ~0. The same (patient_id, week) always yields the same array.
    """
    return list(_weekly_noise(patient_id, week, float(amplitude), int(octaves), float(persistence)))


__all__ = ["week_start", "weekly_noise"]
