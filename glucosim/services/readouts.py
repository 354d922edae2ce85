from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from glucosim.core import constants
from glucosim.models.enums import Trend
from glucosim.models.reading import GlucoseReading
from glucosim.models.treatment import ensure_utc


def _resolve_now(now: Optional[datetime]) -> datetime:
    return ensure_utc(now) if now is not None else datetime.now(timezone.utc)


def current_value(
    series: Sequence[GlucoseReading],
    now: Optional[datetime] = None,
    default: float = constants.BASELINE_MGDL,
) -> float:
    """Value of the first reading within 5 minutes of `now`, else `default`."""
    now = _resolve_now(now)
    window = timedelta(minutes=constants.CURRENT_VALUE_WINDOW_MINUTES)
    for reading in series:
        if abs(reading.timestamp - now) < window:
            return reading.glucose_value
    return default


def classify_rate(rate: float) -> Trend:
    """Map a rate of change (mg/dL per minute) to a trend bucket."""
    if rate > 2:
        return Trend.RAPIDLY_RISING
    if rate > 1:
        return Trend.RISING
    if rate > -1:
        return Trend.STABLE
    if rate > -2:
        return Trend.FALLING
    return Trend.RAPIDLY_FALLING


def trend(series: Sequence[GlucoseReading], now: Optional[datetime] = None) -> Trend:
    now = _resolve_now(now)
    cutoff = now - timedelta(minutes=constants.TREND_WINDOW_MINUTES)
    recent = sorted(
        (r for r in series if cutoff < r.timestamp <= now),
        key=lambda r: r.timestamp,
    )
    if len(recent) < constants.TREND_MIN_POINTS:
        return Trend.STABLE

    # Rate is taken over the full window, not the span actually covered
    rate = (recent[-1].glucose_value - recent[0].glucose_value) / constants.TREND_WINDOW_MINUTES
    return classify_rate(rate)
