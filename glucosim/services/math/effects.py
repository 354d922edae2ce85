from glucosim.core import constants
from glucosim.models.enums import TreatmentType
from glucosim.models.profile import PatientProfile
from glucosim.models.treatment import Treatment

from .basal import BasalModels
from .curves import CarbCurves, InsulinCurves
from .exercise import ExerciseModels


class TreatmentEffects:
    """
    Maps a treatment to its signed glucose delta for one 5-minute step.
    Meals add glucose; insulin and exercise subtract it.
    """

    @staticmethod
    def window_minutes(treatment: Treatment) -> float:
        if treatment.type == TreatmentType.MEAL:
            return constants.CARB_DURATION_MINUTES
        if treatment.type in (TreatmentType.RAPID_INSULIN, TreatmentType.CORRECTION):
            return constants.RAPID_INSULIN_DURATION_MINUTES
        if treatment.type == TreatmentType.LONG_INSULIN:
            return constants.LONG_INSULIN_DURATION_MINUTES
        return ExerciseModels.window_minutes(treatment.exercise_duration or 0.0)

    @staticmethod
    def is_active(treatment: Treatment, elapsed_min: float) -> bool:
        return 0 <= elapsed_min <= TreatmentEffects.window_minutes(treatment)

    @staticmethod
    def delta_for(treatment: Treatment, elapsed_min: float, profile: PatientProfile) -> float:
        if not TreatmentEffects.is_active(treatment, elapsed_min):
            return 0.0

        isf = profile.insulin_sensitivity_factor
        kind = treatment.type
        if kind == TreatmentType.MEAL:
            return CarbCurves.step_delta(elapsed_min, treatment.carbohydrates, profile.carb_ratio, isf)
        if kind in (TreatmentType.RAPID_INSULIN, TreatmentType.CORRECTION):
            return -InsulinCurves.step_delta(elapsed_min, treatment.insulin_units, isf)
        if kind == TreatmentType.LONG_INSULIN:
            return -BasalModels.step_delta(elapsed_min, treatment.insulin_units, isf)
        if kind == TreatmentType.EXERCISE:
            return -ExerciseModels.step_delta(elapsed_min, treatment.exercise_type, treatment.exercise_duration)
        return 0.0

