import math

from glucosim.core import constants


class CarbCurves:
    """
    Bilinear (triangular) carbohydrate absorption.
    Fraction rises 0 -> 1 until the peak, then falls back to 0 at the end of the window.
    """

    @staticmethod
    def bilinear_fraction(
        t_min: float,
        peak_min: float = constants.CARB_PEAK_MINUTES,
        duration_min: float = constants.CARB_DURATION_MINUTES,
    ) -> float:
        if t_min < 0 or t_min > duration_min:
            return 0.0
        if t_min <= peak_min:
            return t_min / peak_min
        return (duration_min - t_min) / (duration_min - peak_min)

    @staticmethod
    def peak_effect(carbs_g: float, carb_ratio: float, isf: float) -> float:
        # Glucose rise the meal would cause if left uncovered
        return (carbs_g / carb_ratio) * isf

    @staticmethod
    def step_delta(t_min: float, carbs_g: float, carb_ratio: float, isf: float) -> float:
        if not carbs_g:
            return 0.0
        fraction = CarbCurves.bilinear_fraction(t_min)
        if fraction == 0.0:
            return 0.0
        return CarbCurves.peak_effect(carbs_g, carb_ratio, isf) * fraction * constants.CARB_STEP_SCALE


class InsulinCurves:
    """
    Rapid acting insulin: bi-phasic kernel exp(-k t) * (1 - exp(-k t)).
    The kernel is maximal (0.25) at t = ln(2) / k, so k is derived from the peak time.
    """

    DECAY_RATE = math.log(2) / constants.RAPID_INSULIN_PEAK_MINUTES  # per minute

    @staticmethod
    def activity(t_min: float, duration_min: float = constants.RAPID_INSULIN_DURATION_MINUTES) -> float:
        if t_min <= 0 or t_min > duration_min:
            return 0.0
        decay = math.exp(-InsulinCurves.DECAY_RATE * t_min)
        return decay * (1.0 - decay)

    @staticmethod
    def step_delta(t_min: float, units: float, isf: float) -> float:
        """Glucose drop (positive number) produced during one step."""
        if not units:
            return 0.0
        return units * isf * InsulinCurves.activity(t_min) * constants.RAPID_INSULIN_STEP_SCALE
