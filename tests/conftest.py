from datetime import datetime, timedelta, timezone

import pytest

from glucosim.core.settings import NoiseConfig, Settings, get_settings
from glucosim.models.profile import PatientProfile
from glucosim.models.reading import GlucoseReading, reading_id

# Wednesday morning; the week starts on Sunday 2024-03-10
NOW = datetime(2024, 3, 13, 8, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setenv("CONFIG_PATH", str(tmp_path / "missing-config.json"))
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def profile() -> PatientProfile:
    return PatientProfile.default()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def quiet_settings() -> Settings:
    """Settings with the biological noise switched off."""
    return Settings(noise=NoiseConfig(amplitude=0))


def make_series(points, patient_id="p1", calculated_at=NOW):
    """Build readings from (minutes offset from NOW, value) pairs."""
    series = []
    for offset, value in points:
        ts = NOW + timedelta(minutes=offset)
        series.append(
            GlucoseReading(
                id=reading_id(patient_id, ts),
                patient_id=patient_id,
                timestamp=ts,
                glucose_value=value,
                is_predicted=True,
                calculation_timestamp=calculated_at,
            )
        )
    return series
