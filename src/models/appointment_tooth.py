# src/models/appointment_tooth.py
import uuid
from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.sql import func
from db.database import Base


class AppointmentTooth(Base):
    """A tooth discussed in a visit; written once when the visit is booked"""

    __tablename__ = "appointment_teeth"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    appointment_id = Column(
        Uuid, ForeignKey("appointments.id"), nullable=False, index=True
    )
    consultation_id = Column(Uuid, ForeignKey("consultations.id"), nullable=True)
    tooth_number = Column(String(3), nullable=False)
    tooth_diagnosis_id = Column(
        Uuid, ForeignKey("tooth_diagnoses.id"), nullable=True
    )
    diagnosis = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
