# src/schemas/treatment_schemas.py
from pydantic import Field
from typing import Optional
from datetime import datetime
from uuid import UUID
from models.treatment import TreatmentStatus
from .base_schemas import BaseSchema, TimestampMixin, IDMixin


class TreatmentLink(BaseSchema):
    """Link an appointment to a (new) treatment"""

    appointment_id: UUID
    patient_id: Optional[UUID] = None
    dentist_id: Optional[UUID] = None
    treatment_type: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = None
    consultation_id: Optional[UUID] = None
    tooth_number: Optional[str] = Field(None, min_length=2, max_length=2)
    tooth_diagnosis_id: Optional[UUID] = None
    total_visits: Optional[int] = Field(None, ge=1, le=50)


class TreatmentPublic(IDMixin, TimestampMixin):
    """Public treatment schema"""

    patient_id: UUID
    dentist_id: UUID
    appointment_id: Optional[UUID] = None
    consultation_id: Optional[UUID] = None
    treatment_type: str
    notes: Optional[str] = None
    status: TreatmentStatus
    tooth_number: Optional[str] = None
    tooth_diagnosis_id: Optional[UUID] = None
    total_visits: int
    completed_visits: int
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
