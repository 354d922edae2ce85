from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from contextlib import contextmanager
from copy import deepcopy
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence

from pydantic import ValidationError

from glucosim.models.profile import DEFAULT_PATIENT_ID, PatientProfile
from glucosim.models.reading import GlucoseReading
from glucosim.models.treatment import Treatment, ensure_utc

logger = logging.getLogger(__name__)

PROFILES_FILE = "patients.json"
TREATMENTS_FILE = "treatments.json"
READINGS_FILE = "glucose_readings.json"


class StoreError(Exception):
    pass


class PatientNotFoundError(StoreError):
    def __init__(self, patient_id: str):
        super().__init__(f"Patient not found: {patient_id}")
        self.patient_id = patient_id


class SimpleFileLock:
    def __init__(self, path: Path, timeout: float = 5.0):
        self.lock_path = str(path) + ".lock"
        self.timeout = timeout
        self._fd: int | None = None

    def acquire(self) -> None:
        start = time.time()
        while True:
            try:
                self._fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_RDWR)
                return
            except FileExistsError:
                if time.time() - start > self.timeout:
                    raise StoreError(f"Timeout waiting for lock {self.lock_path}")
                time.sleep(0.05)

    def release(self) -> None:
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None
        try:
            os.unlink(self.lock_path)
        except FileNotFoundError:
            pass

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()


@contextmanager
def _json_lock(path: Path):
    with SimpleFileLock(path):
        yield


def _ensure_parent(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


@dataclass
class DataStore:
    """
    JSON-file persistence for profiles, treatments and predicted readings.
    Implements both the treatment source and the reading sink used by recalculation.
    """

    data_dir: Path

    def _path(self, filename: str) -> Path:
        return _ensure_parent(self.data_dir / filename)

    def _read(self, path: Path, default: Any) -> Any:
        if not path.exists():
            self._write(path, default)
            return deepcopy(default)
        try:
            with path.open("r", encoding="utf-8") as fh:
                return json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Failed to read {path}") from exc

    def read_json(self, filename: str, default: Any) -> Any:
        path = self._path(filename)
        with _json_lock(path):
            return self._read(path, deepcopy(default))

    def write_json(self, filename: str, data: Any) -> None:
        path = self._path(filename)
        with _json_lock(path):
            self._write(path, data)

    @contextmanager
    def update_json(self, filename: str, default: Any) -> Iterator[Any]:
        """
        Read-modify-write under a single file lock.
        The yielded document is written back when the block exits without error.
        """
        path = self._path(filename)
        with _json_lock(path):
            data = self._read(path, deepcopy(default))
            yield data
            self._write(path, data)

    def _write(self, path: Path, data: Any) -> None:
        # Readers never observe a half-written file
        try:
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=path.name, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_name, path)
        except OSError as exc:
            raise StoreError(f"Failed to write {path}") from exc

    # --- Profiles ---

    @staticmethod
    def _seed_default(profiles: dict[str, Any]) -> None:
        if DEFAULT_PATIENT_ID not in profiles:
            profiles[DEFAULT_PATIENT_ID] = PatientProfile.default().model_dump(mode="json")
            logger.info("Seeded default patient %s", DEFAULT_PATIENT_ID)

    def _load_profiles(self) -> dict[str, Any]:
        profiles = self.read_json(PROFILES_FILE, {})
        if DEFAULT_PATIENT_ID not in profiles:
            with self.update_json(PROFILES_FILE, {}) as profiles:
                self._seed_default(profiles)
        return profiles

    def get_profile(self, patient_id: str) -> PatientProfile:
        raw = self._load_profiles().get(patient_id)
        if raw is None:
            raise PatientNotFoundError(patient_id)
        try:
            return PatientProfile.model_validate(raw)
        except ValidationError as exc:
            raise StoreError(f"Stored profile for {patient_id} is invalid") from exc

    def save_profile(self, profile: PatientProfile) -> PatientProfile:
        with self.update_json(PROFILES_FILE, {}) as profiles:
            self._seed_default(profiles)
            profiles[profile.id] = profile.model_dump(mode="json")
        return profile

    # --- Treatments ---

    def save_treatment(self, treatment: Treatment) -> Treatment:
        self.get_profile(treatment.patient_id)
        with self.update_json(TREATMENTS_FILE, []) as treatments:
            treatments.append(treatment.model_dump(mode="json", exclude_none=True))
        logger.info("Saved %s treatment %s for patient=%s", treatment.type.value, treatment.id, treatment.patient_id)
        return treatment

    def get_treatments(self, patient_id: str, since: Optional[datetime] = None) -> List[Treatment]:
        cutoff = ensure_utc(since) if since is not None else None
        result: List[Treatment] = []
        for raw in self.read_json(TREATMENTS_FILE, []):
            if raw.get("patient_id") != patient_id:
                continue
            treatment = Treatment.model_validate(raw)
            if cutoff is None or treatment.timestamp >= cutoff:
                result.append(treatment)
        result.sort(key=lambda t: t.timestamp)
        return result

    # --- Readings ---

    def replace_predicted_readings(self, patient_id: str, readings: Sequence[GlucoseReading]) -> None:
        with self.update_json(READINGS_FILE, []) as current:
            current[:] = [
                r for r in current
                if not (r.get("patient_id") == patient_id and r.get("is_predicted", True))
            ]
            current.extend(r.model_dump(mode="json") for r in readings)
        logger.info("Stored %d predicted readings for patient=%s", len(readings), patient_id)

    def get_readings(self, patient_id: str, limit: int = 288) -> List[GlucoseReading]:
        rows = [r for r in self.read_json(READINGS_FILE, []) if r.get("patient_id") == patient_id]
        readings = sorted((GlucoseReading.model_validate(r) for r in rows), key=lambda r: r.timestamp)
        return readings[:limit]


__all__ = ["DataStore", "StoreError", "PatientNotFoundError"]
