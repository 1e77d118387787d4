# src/models/appointment.py
import uuid
from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Text,
    Time,
    Uuid,
)
from sqlalchemy.sql import func
from enum import Enum as PyEnum
from db.database import Base
from utils.time_utils import combine_schedule


class AppointmentStatus(str, PyEnum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class AppointmentType(str, PyEnum):
    FIRST_VISIT = "first_visit"
    CONSULTATION = "consultation"
    TREATMENT = "treatment"
    FOLLOW_UP = "follow_up"


# Types that continue an existing clinical encounter
CONTEXTUAL_APPOINTMENT_TYPES = frozenset(
    {AppointmentType.TREATMENT, AppointmentType.FOLLOW_UP}
)

# Column stamped when an appointment enters each status
APPOINTMENT_STATUS_TIMESTAMPS = {
    AppointmentStatus.CONFIRMED: "confirmed_at",
    AppointmentStatus.IN_PROGRESS: "started_at",
    AppointmentStatus.COMPLETED: "completed_at",
    AppointmentStatus.CANCELLED: "cancelled_at",
}


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # Core appointment details
    patient_id = Column(Uuid, nullable=False, index=True)
    dentist_id = Column(Uuid, nullable=False)

    # Timing
    scheduled_date = Column(Date, nullable=False)
    scheduled_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, default=60)
    appointment_type = Column(
        Enum(AppointmentType, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )

    # Status
    status = Column(
        Enum(AppointmentStatus, values_callable=lambda e: [m.value for m in e]),
        default=AppointmentStatus.SCHEDULED,
        nullable=False,
    )
    notes = Column(Text, nullable=True)

    # Clinical context
    consultation_id = Column(
        Uuid, ForeignKey("consultations.id"), nullable=True, index=True
    )
    treatment_id = Column(Uuid, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def scheduled_at(self):
        return combine_schedule(self.scheduled_date, self.scheduled_time)

    def __repr__(self):
        return (
            f"<Appointment {self.id} {self.appointment_type} "
            f"{self.scheduled_date} {self.status}>"
        )
