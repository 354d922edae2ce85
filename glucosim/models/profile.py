from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_PATIENT_ID = "default-patient-001"


class PatientProfile(BaseModel):
    """
    Physiological constants of one patient.
    Immutable for the duration of a simulation call.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = "Test Patient"
    age: int = Field(..., ge=0, le=130)
    weight: float = Field(..., gt=0, description="kg")
    height: float = Field(..., gt=0, description="cm")
    insulin_sensitivity_factor: float = Field(..., gt=0, description="mg/dL drop per unit of insulin")
    carb_ratio: float = Field(..., gt=0, description="grams of carbohydrate covered by one unit")
    basal_rate: float = Field(0.0, ge=0, description="U/h")
    target_glucose_low: float = Field(70.0, gt=0)
    target_glucose_high: float = Field(180.0, gt=0)
    is_pump_user: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode="after")
    def _check_target_range(self) -> "PatientProfile":
        if self.target_glucose_low >= self.target_glucose_high:
            raise ValueError("target_glucose_low must be lower than target_glucose_high")
        return self

    @classmethod
    def default(cls, patient_id: str = DEFAULT_PATIENT_ID) -> "PatientProfile":
        return cls(
            id=patient_id,
            age=35,
            weight=70,
            height=170,
            insulin_sensitivity_factor=50,
            carb_ratio=15,
            basal_rate=1.0,
        )
