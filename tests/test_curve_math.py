import math

import pytest

from glucosim.models.enums import ExerciseIntensity, TreatmentType
from glucosim.models.profile import PatientProfile
from glucosim.models.treatment import Treatment
from glucosim.services.math import BasalModels, CarbCurves, ExerciseModels, InsulinCurves, TreatmentEffects

from .conftest import NOW

GRID = list(range(-30, 1500, 5))


def _profile():
    return PatientProfile(
        id="p1", age=30, weight=70, height=175, insulin_sensitivity_factor=50, carb_ratio=15
    )


def _deltas(treatment):
    profile = _profile()
    return {t: TreatmentEffects.delta_for(treatment, t, profile) for t in GRID}


class TestCarbAbsorption:

    def test_fraction_is_triangular(self):
        assert CarbCurves.bilinear_fraction(-1) == 0.0
        assert CarbCurves.bilinear_fraction(0) == 0.0
        assert CarbCurves.bilinear_fraction(30) == pytest.approx(0.5)
        assert CarbCurves.bilinear_fraction(60) == pytest.approx(1.0)
        assert CarbCurves.bilinear_fraction(150) == pytest.approx(0.5)
        assert CarbCurves.bilinear_fraction(240) == 0.0
        assert CarbCurves.bilinear_fraction(241) == 0.0

    def test_meal_shape(self):
        meal = Treatment(patient_id="p1", timestamp=NOW, type=TreatmentType.MEAL, carbohydrates=60)
        d = _deltas(meal)

        assert all(d[t] == 0.0 for t in GRID if t <= 0)
        rising = [d[t] for t in range(0, 65, 5)]
        assert all(b > a for a, b in zip(rising, rising[1:]))
        falling = [d[t] for t in range(60, 245, 5)]
        assert all(b < a for a, b in zip(falling, falling[1:]))
        assert all(d[t] == 0.0 for t in GRID if t >= 240)

    def test_meal_peak_uses_fixed_step_scale(self):
        # (60 g / 15 g/U) * 50 mg/dL/U = 200 mg/dL peak magnitude, 5% of it per step
        assert CarbCurves.peak_effect(60, 15, 50) == pytest.approx(200.0)
        assert CarbCurves.step_delta(60, 60, 15, 50) == pytest.approx(10.0)

    def test_zero_carbs_contribute_nothing(self):
        assert CarbCurves.step_delta(60, 0, 15, 50) == 0.0


class TestRapidInsulin:

    def test_kernel_peaks_at_55_minutes(self):
        assert InsulinCurves.activity(55) == pytest.approx(0.25)
        assert InsulinCurves.DECAY_RATE == pytest.approx(math.log(2) / 55)

    def test_insulin_shape(self):
        dose = Treatment(patient_id="p1", timestamp=NOW, type=TreatmentType.RAPID_INSULIN, rapid_insulin=4)
        d = _deltas(dose)

        assert d[0] == 0.0
        assert all(d[t] < 0 for t in range(5, 305, 5))
        assert min(d, key=d.get) == 55
        assert d[55] == pytest.approx(-4 * 50 * 0.25 * 0.05)
        assert all(d[t] == 0.0 for t in GRID if t > 300)

    def test_correction_behaves_like_rapid_insulin(self):
        profile = _profile()
        rapid = Treatment(patient_id="p1", timestamp=NOW, type=TreatmentType.RAPID_INSULIN, rapid_insulin=2)
        correction = Treatment(patient_id="p1", timestamp=NOW, type=TreatmentType.CORRECTION, rapid_insulin=2)
        for t in (10, 55, 120, 290):
            assert TreatmentEffects.delta_for(correction, t, profile) == TreatmentEffects.delta_for(rapid, t, profile)


class TestLongInsulin:

    def test_flat_release_over_24h(self):
        dose = Treatment(patient_id="p1", timestamp=NOW, type=TreatmentType.LONG_INSULIN, long_insulin=10)
        d = _deltas(dose)
        expected = -(10 * 50) / 288

        assert all(d[t] == 0.0 for t in GRID if t < 0)
        assert all(d[t] == pytest.approx(expected) for t in range(0, 1445, 5))
        assert all(d[t] == 0.0 for t in GRID if t > 1440)

    def test_window_has_288_steps(self):
        assert BasalModels.steps_in_window() == 288


class TestExercise:

    def test_intensity_table(self):
        assert ExerciseModels.intensity_multiplier("light") == 0.5
        assert ExerciseModels.intensity_multiplier(ExerciseIntensity.MODERATE) == 1.0
        assert ExerciseModels.intensity_multiplier(ExerciseIntensity.INTENSE) == 2.0

    def test_exercise_shape(self):
        session = Treatment(
            patient_id="p1", timestamp=NOW, type=TreatmentType.EXERCISE,
            exercise_type=ExerciseIntensity.MODERATE, exercise_duration=30,
        )
        d = _deltas(session)

        assert all(d[t] == pytest.approx(-0.5) for t in range(0, 35, 5))
        tail = [d[t] for t in range(35, 215, 5)]
        assert all(v < 0 for v in tail)
        assert all(abs(b) < abs(a) for a, b in zip(tail, tail[1:]))
        assert d[35] == pytest.approx(-0.2 * math.exp(-5 / 120))
        assert all(d[t] == 0.0 for t in GRID if t > 210 or t < 0)

    def test_intense_doubles_moderate(self):
        moderate = ExerciseModels.step_delta(10, "moderate", 45)
        intense = ExerciseModels.step_delta(10, "intense", 45)
        assert intense == pytest.approx(2 * moderate)
