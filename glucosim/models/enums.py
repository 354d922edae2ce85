from enum import Enum


class TreatmentType(str, Enum):
    MEAL = "meal"
    RAPID_INSULIN = "rapid_insulin"
    LONG_INSULIN = "long_insulin"
    EXERCISE = "exercise"
    CORRECTION = "correction"


class ExerciseIntensity(str, Enum):
    LIGHT = "light"
    MODERATE = "moderate"
    INTENSE = "intense"


class Trend(str, Enum):
    RAPIDLY_RISING = "rapidly_rising"
    RISING = "rising"
    STABLE = "stable"
    FALLING = "falling"
    RAPIDLY_FALLING = "rapidly_falling"

    @property
    def arrow(self) -> str:
        return _TREND_ARROWS[self]


_TREND_ARROWS = {
    Trend.RAPIDLY_RISING: "↗↗",
    Trend.RISING: "↗",
    Trend.STABLE: "→",
    Trend.FALLING: "↘",
    Trend.RAPIDLY_FALLING: "↘↘",
}
