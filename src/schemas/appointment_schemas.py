# src/schemas/appointment_schemas.py
from pydantic import Field, field_validator, model_validator
from typing import Optional, List
from datetime import date, datetime, time
from uuid import UUID
from models.appointment import (
    AppointmentStatus,
    AppointmentType,
    CONTEXTUAL_APPOINTMENT_TYPES,
)
from .base_schemas import BaseSchema, TimestampMixin, IDMixin


class ContextualAppointmentCreate(BaseSchema):
    """Booking request for an appointment linked to its clinical context"""

    patient_id: UUID
    dentist_id: UUID
    scheduled_date: date
    scheduled_time: time
    duration_minutes: Optional[int] = Field(None, ge=5, le=480)
    notes: Optional[str] = None

    appointment_type: AppointmentType
    consultation_id: Optional[UUID] = None
    treatment_id: Optional[UUID] = None

    tooth_numbers: List[str] = Field(default_factory=list)
    tooth_diagnosis_ids: List[UUID] = Field(default_factory=list)

    @field_validator("tooth_numbers")
    @classmethod
    def validate_tooth_numbers(cls, v: List[str]) -> List[str]:
        cleaned = []
        for tooth in v:
            tooth = str(tooth).strip()
            if not (len(tooth) == 2 and tooth.isdigit()):
                raise ValueError(f"Invalid FDI tooth number: {tooth!r}")
            if tooth not in cleaned:
                cleaned.append(tooth)
        return cleaned

    @property
    def requires_consultation(self) -> bool:
        return AppointmentType(self.appointment_type) in CONTEXTUAL_APPOINTMENT_TYPES


class AppointmentToothPublic(BaseSchema):
    """Tooth linked to an appointment"""

    tooth_number: str
    tooth_diagnosis_id: Optional[UUID] = None
    consultation_id: Optional[UUID] = None
    diagnosis: Optional[str] = None


class AppointmentPublic(IDMixin, TimestampMixin):
    """Public appointment schema"""

    patient_id: UUID
    dentist_id: UUID
    scheduled_date: date
    scheduled_time: time
    duration_minutes: Optional[int] = None
    appointment_type: AppointmentType
    status: AppointmentStatus
    notes: Optional[str] = None
    consultation_id: Optional[UUID] = None
    treatment_id: Optional[UUID] = None


class AppointmentDetail(AppointmentPublic):
    """Appointment with its lifecycle timestamps and linked teeth"""

    confirmed_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    teeth: List[AppointmentToothPublic] = Field(default_factory=list)


class AppointmentStatusUpdate(BaseSchema):
    """Appointment status update schema"""

    status: AppointmentStatus
    notes: Optional[str] = None

    @model_validator(mode="after")
    def strip_empty_notes(self):
        if self.notes == "":
            self.notes = None
        return self


class AppointmentStatusEvent(BaseSchema):
    """An appointment status change that already happened elsewhere"""

    status: AppointmentStatus
