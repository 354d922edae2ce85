from .basal import BasalModels
from .curves import CarbCurves, InsulinCurves
from .effects import TreatmentEffects
from .exercise import ExerciseModels

__all__ = ["BasalModels", "CarbCurves", "ExerciseModels", "InsulinCurves", "TreatmentEffects"]
