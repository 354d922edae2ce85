import math

from glucosim.core import constants
from glucosim.models.enums import ExerciseIntensity


class ExerciseModels:
    @staticmethod
    def intensity_multiplier(intensity: ExerciseIntensity | str | None) -> float:
        key = intensity.value if isinstance(intensity, ExerciseIntensity) else (intensity or "moderate")
        return constants.EXERCISE_INTENSITY_TABLE.get(key, 1.0)

    @staticmethod
    def window_minutes(duration_min: float) -> float:
        return duration_min + constants.EXERCISE_TAIL_MINUTES

    @staticmethod
    def step_delta(t_min: float, intensity: ExerciseIntensity | str | None, duration_min: float) -> float:
        """
        Glucose drop (positive number) per step.
        Flat while the activity lasts, then an exponential tail for 3 hours.
        """
        if not duration_min or t_min < 0 or t_min > ExerciseModels.window_minutes(duration_min):
            return 0.0
        multiplier = ExerciseModels.intensity_multiplier(intensity)
        if t_min <= duration_min:
            return multiplier * constants.EXERCISE_ACTIVE_DELTA
        minutes_after = t_min - duration_min
        residual = math.exp(-minutes_after / constants.EXERCISE_DECAY_MINUTES)
        return multiplier * constants.EXERCISE_RESIDUAL_DELTA * residual
