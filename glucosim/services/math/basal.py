from glucosim.core import constants


class BasalModels:
    """
    Long acting insulin injections, modeled as a flat release over 24 hours.
    """

    @staticmethod
    def steps_in_window(duration_min: float = constants.LONG_INSULIN_DURATION_MINUTES) -> float:
        return duration_min / constants.STEP_MINUTES

    @staticmethod
    def step_delta(
        t_min: float,
        units: float,
        isf: float,
        duration_min: float = constants.LONG_INSULIN_DURATION_MINUTES,
    ) -> float:
        """Constant glucose drop (positive number) per step while the depot is active."""
        if not units or t_min < 0 or t_min > duration_min:
            return 0.0
        return (units * isf) / BasalModels.steps_in_window(duration_min)
