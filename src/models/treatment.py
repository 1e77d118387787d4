# src/models/treatment.py
import uuid
from sqlalchemy import (
    JSON,
    Column,
    ForeignKey,
    DateTime,
    Text,
    String,
    Enum,
    Integer,
    Uuid,
)
from sqlalchemy.sql import func
from enum import Enum as PyEnum
from db.database import Base


class TreatmentStatus(str, PyEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Treatment(Base):
    __tablename__ = "treatments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # Core relationships
    patient_id = Column(Uuid, nullable=False, index=True)
    dentist_id = Column(Uuid, nullable=False)
    appointment_id = Column(
        Uuid, ForeignKey("appointments.id"), nullable=True, index=True
    )
    consultation_id = Column(Uuid, ForeignKey("consultations.id"), nullable=True)

    # Treatment details
    treatment_type = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(
        Enum(TreatmentStatus, values_callable=lambda e: [m.value for m in e]),
        default=TreatmentStatus.PENDING,
        nullable=False,
    )

    # Tooth linkage
    tooth_number = Column(String(3), nullable=True)
    tooth_diagnosis_id = Column(
        Uuid, ForeignKey("tooth_diagnoses.id"), nullable=True
    )

    # Progress tracking
    total_visits = Column(Integer, default=1, nullable=False)
    completed_visits = Column(Integer, default=0, nullable=False)
    # Appointments whose completion has already been counted as a visit
    counted_appointment_ids = Column(JSON, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return (
            f"<Treatment {self.id} {self.treatment_type!r} {self.status} "
            f"{self.completed_visits}/{self.total_visits}>"
        )
