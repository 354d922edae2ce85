import threading
from datetime import timedelta

import pytest

from glucosim.models.profile import DEFAULT_PATIENT_ID, PatientProfile
from glucosim.models.treatment import Treatment
from glucosim.services import simulation
from glucosim.services.store import DataStore, PatientNotFoundError, StoreError

from .conftest import NOW


@pytest.fixture
def store(tmp_path):
    return DataStore(data_dir=tmp_path / "store")


def test_default_patient_is_seeded(store):
    profile = store.get_profile(DEFAULT_PATIENT_ID)
    assert profile == PatientProfile.default().model_copy(update={"created_at": profile.created_at})


def test_unknown_patient(store):
    with pytest.raises(PatientNotFoundError):
        store.get_profile("nobody")


def test_profile_round_trip(store):
    profile = PatientProfile(
        id="p2", age=12, weight=40, height=150, insulin_sensitivity_factor=90, carb_ratio=20
    )
    store.save_profile(profile)
    assert store.get_profile("p2") == profile


def test_treatment_for_unknown_patient_is_rejected(store):
    with pytest.raises(PatientNotFoundError):
        store.save_treatment(Treatment(patient_id="nobody", timestamp=NOW, type="meal", carbohydrates=10))


def test_treatments_filtered_by_patient_and_time(store):
    store.save_profile(PatientProfile.default("other"))
    recent = store.save_treatment(
        Treatment(patient_id=DEFAULT_PATIENT_ID, timestamp=NOW - timedelta(hours=2), type="meal", carbohydrates=40)
    )
    store.save_treatment(
        Treatment(patient_id=DEFAULT_PATIENT_ID, timestamp=NOW - timedelta(hours=30), type="long_insulin", long_insulin=12)
    )
    store.save_treatment(Treatment(patient_id="other", timestamp=NOW, type="correction", rapid_insulin=1))

    since = NOW - timedelta(hours=24)
    assert store.get_treatments(DEFAULT_PATIENT_ID, since=since) == [recent]
    assert len(store.get_treatments(DEFAULT_PATIENT_ID)) == 2


def test_exercise_treatment_round_trip(store):
    saved = store.save_treatment(
        Treatment(patient_id=DEFAULT_PATIENT_ID, timestamp=NOW, type="exercise", exercise_type="intense", exercise_duration=20)
    )
    assert store.get_treatments(DEFAULT_PATIENT_ID) == [saved]


def test_replace_discards_previous_prediction(store):
    profile = store.get_profile(DEFAULT_PATIENT_ID)
    store.save_profile(PatientProfile.default("other"))

    first = simulation.compute_curve(profile, [], now=NOW)
    other = simulation.compute_curve(PatientProfile.default("other"), [], now=NOW)
    store.replace_predicted_readings(DEFAULT_PATIENT_ID, first)
    store.replace_predicted_readings("other", other)

    later = NOW + timedelta(hours=1)
    second = simulation.compute_curve(profile, [], now=later)
    store.replace_predicted_readings(DEFAULT_PATIENT_ID, second)

    stored = store.get_readings(DEFAULT_PATIENT_ID)
    assert len(stored) == 288
    assert stored[0].timestamp == later
    assert len(store.get_readings("other")) == 288


def test_recalculate_with_store(store):
    store.save_treatment(
        Treatment(patient_id=DEFAULT_PATIENT_ID, timestamp=NOW - timedelta(minutes=20), type="meal", carbohydrates=50)
    )
    series = simulation.recalculate_patient(DEFAULT_PATIENT_ID, store, store, now=NOW)
    assert [r.glucose_value for r in store.get_readings(DEFAULT_PATIENT_ID)] == [r.glucose_value for r in series]


def test_corrupt_file_surfaces_store_error(store):
    store.get_profile(DEFAULT_PATIENT_ID)
    (store.data_dir / "patients.json").write_text("{broken", encoding="utf-8")
    with pytest.raises(StoreError):
        store.get_profile(DEFAULT_PATIENT_ID)


def _run_together(workers, target):
    barrier = threading.Barrier(workers)
    errors = []

    def run(i):
        barrier.wait()
        try:
            target(i)
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=run, args=(i,)) for i in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return errors


def test_concurrent_treatment_saves_are_all_kept(store):
    store.get_profile(DEFAULT_PATIENT_ID)

    def save(i):
        store.save_treatment(
            Treatment(patient_id=DEFAULT_PATIENT_ID, timestamp=NOW + timedelta(minutes=i), type="meal", carbohydrates=10 + i)
        )

    assert _run_together(20, save) == []
    saved = store.get_treatments(DEFAULT_PATIENT_ID)
    assert len(saved) == 20
    assert sorted(t.carbohydrates for t in saved) == [10.0 + i for i in range(20)]


def test_concurrent_profile_saves_are_all_kept(store):
    def save(i):
        store.save_profile(PatientProfile.default(f"p{i}"))

    assert _run_together(12, save) == []
    for i in range(12):
        assert store.get_profile(f"p{i}").id == f"p{i}"
    assert store.get_profile(DEFAULT_PATIENT_ID).id == DEFAULT_PATIENT_ID


def test_failed_update_leaves_document_untouched(store):
    store.save_treatment(Treatment(patient_id=DEFAULT_PATIENT_ID, timestamp=NOW, type="meal", carbohydrates=30))

    with pytest.raises(RuntimeError):
        with store.update_json("treatments.json", []) as treatments:
            treatments.clear()
            raise RuntimeError("abort")

    assert len(store.get_treatments(DEFAULT_PATIENT_ID)) == 1
