# src/schemas/tooth_diagnosis_schemas.py
from pydantic import Field, field_validator
from typing import Dict, Optional
from datetime import date, datetime
from uuid import UUID
from models.tooth_diagnosis import ToothStatus
from .base_schemas import BaseSchema, TimestampMixin, IDMixin


class ToothDiagnosisSave(BaseSchema):
    """Charting input; color is always derived from status"""

    id: Optional[UUID] = None
    patient_id: UUID
    consultation_id: Optional[UUID] = None
    tooth_number: str
    status: ToothStatus = ToothStatus.HEALTHY
    primary_diagnosis: Optional[str] = None
    diagnosis_details: Optional[str] = None
    recommended_treatment: Optional[str] = None
    follow_up_required: bool = False
    examination_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("tooth_number")
    @classmethod
    def validate_tooth_number(cls, v: str) -> str:
        if not (len(v) == 2 and v.isdigit()):
            raise ValueError(f"Invalid FDI tooth number: {v!r}")
        return v


class ToothDiagnosisPublic(IDMixin, TimestampMixin):
    """Public tooth diagnosis schema"""

    patient_id: UUID
    consultation_id: Optional[UUID] = None
    tooth_number: str
    status: ToothStatus
    color_code: str
    follow_up_required: bool
    primary_diagnosis: Optional[str] = None
    diagnosis_details: Optional[str] = None
    recommended_treatment: Optional[str] = None
    notes: Optional[str] = None
    examination_date: Optional[date] = None
    is_auto_created: bool = False
    status_as_of: Optional[datetime] = None
    status_appointment_id: Optional[UUID] = None


class ToothChart(BaseSchema):
    """Latest diagnosis per tooth for one patient"""

    patient_id: UUID
    teeth: Dict[str, ToothDiagnosisPublic] = Field(default_factory=dict)


class ToothStats(BaseSchema):
    """Per-patient tooth status counts"""

    healthy: int = 0
    caries: int = 0
    restorations: int = 0
    attention: int = 0
    missing: int = 0
    total: int = 0
