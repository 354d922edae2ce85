import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from glucosim.models.enums import ExerciseIntensity, TreatmentType

# Payload fields each type tag is allowed (and required) to carry
_PAYLOAD_FIELDS = {
    TreatmentType.MEAL: ("carbohydrates",),
    TreatmentType.RAPID_INSULIN: ("rapid_insulin",),
    TreatmentType.CORRECTION: ("rapid_insulin",),
    TreatmentType.LONG_INSULIN: ("long_insulin",),
    TreatmentType.EXERCISE: ("exercise_type", "exercise_duration"),
}
_ALL_PAYLOAD_FIELDS = ("carbohydrates", "rapid_insulin", "long_insulin", "exercise_type", "exercise_duration")


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Treatment(BaseModel):
    """A logged meal, insulin dose or exercise session."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    patient_id: str
    timestamp: datetime
    type: TreatmentType

    carbohydrates: Optional[float] = Field(None, ge=0, description="grams")
    rapid_insulin: Optional[float] = Field(None, ge=0, description="units")
    long_insulin: Optional[float] = Field(None, ge=0, description="units")
    exercise_type: Optional[ExerciseIntensity] = None
    exercise_duration: Optional[float] = Field(None, ge=0, description="minutes")
    notes: Optional[str] = None

    @field_validator("timestamp")
    def _as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @model_validator(mode="before")
    @classmethod
    def _default_exercise_type(cls, data):
        # Exercise logged without an intensity counts as moderate
        if isinstance(data, dict) and data.get("type") in (TreatmentType.EXERCISE, TreatmentType.EXERCISE.value):
            if data.get("exercise_type") is None:
                data = {**data, "exercise_type": ExerciseIntensity.MODERATE}
        return data

    @model_validator(mode="after")
    def _check_payload(self) -> "Treatment":
        allowed = _PAYLOAD_FIELDS[self.type]
        for name in _ALL_PAYLOAD_FIELDS:
            value = getattr(self, name)
            if name in allowed and value is None:
                raise ValueError(f"{self.type.value} treatment requires '{name}'")
            if name not in allowed and value is not None:
                raise ValueError(f"'{name}' is not valid for a {self.type.value} treatment")
        return self

    @property
    def insulin_units(self) -> float:
        return (self.rapid_insulin or 0.0) + (self.long_insulin or 0.0)
