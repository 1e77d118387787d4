# src/models/tooth_diagnosis.py
import uuid
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import validates
from sqlalchemy.sql import func
from enum import Enum as PyEnum
from db.database import Base


class ToothStatus(str, PyEnum):
    HEALTHY = "healthy"
    CARIES = "caries"
    FILLED = "filled"
    CROWN = "crown"
    MISSING = "missing"
    ROOT_CANAL = "root_canal"
    BRIDGE = "bridge"
    IMPLANT = "implant"
    ATTENTION = "attention"


# Fixed chart palette; color_code is always derived from status through this table
TOOTH_STATUS_COLORS = {
    ToothStatus.HEALTHY: "#22c55e",  # green
    ToothStatus.CARIES: "#ef4444",  # red
    ToothStatus.FILLED: "#3b82f6",  # blue
    ToothStatus.CROWN: "#eab308",  # yellow
    ToothStatus.MISSING: "#6b7280",  # gray
    ToothStatus.ROOT_CANAL: "#a855f7",  # purple
    ToothStatus.BRIDGE: "#8b5cf6",  # violet
    ToothStatus.IMPLANT: "#06b6d4",  # cyan
    ToothStatus.ATTENTION: "#f97316",  # orange
}


def color_for_status(status) -> str:
    return TOOTH_STATUS_COLORS[ToothStatus(status)]


class ToothDiagnosis(Base):
    __tablename__ = "tooth_diagnoses"
    __table_args__ = (
        Index("ix_tooth_diagnoses_patient_tooth", "patient_id", "tooth_number"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id = Column(Uuid, nullable=False)
    consultation_id = Column(
        Uuid, ForeignKey("consultations.id"), nullable=True, index=True
    )
    tooth_number = Column(String(3), nullable=False)  # FDI notation

    # Tooth status and diagnosis
    status = Column(
        Enum(ToothStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ToothStatus.HEALTHY,
    )
    color_code = Column(
        String(7), nullable=False, default=TOOTH_STATUS_COLORS[ToothStatus.HEALTHY]
    )
    follow_up_required = Column(Boolean, nullable=False, default=False)
    primary_diagnosis = Column(Text, nullable=True)
    diagnosis_details = Column(Text, nullable=True)
    recommended_treatment = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    examination_date = Column(Date, nullable=True)

    # Rows synthesized by the sync engine for booked-but-uncharted teeth
    is_auto_created = Column(Boolean, nullable=False, default=False)

    # When the status was settled: the scheduled time of the appointment whose
    # event wrote it, or the charting time when status_appointment_id is empty
    status_as_of = Column(DateTime(timezone=True), nullable=True)
    status_appointment_id = Column(Uuid, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __init__(self, **kwargs):
        # color_code is never accepted from callers
        kwargs.pop("color_code", None)
        kwargs.setdefault("status", ToothStatus.HEALTHY)
        super().__init__(**kwargs)

    @validates("status")
    def _derive_color_code(self, key, value):
        status = ToothStatus(value)
        self.color_code = color_for_status(status)
        return status

    def __repr__(self):
        return f"<ToothDiagnosis {self.id} tooth={self.tooth_number} {self.status}>"
