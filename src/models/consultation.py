# src/models/consultation.py
import uuid
from sqlalchemy import JSON, Column, DateTime, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from db.database import Base


class Consultation(Base):
    __tablename__ = "consultations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    patient_id = Column(Uuid, nullable=False, index=True)
    dentist_id = Column(Uuid, nullable=False)

    chief_complaint = Column(Text, nullable=True)

    # Denormalized read model: {"treatments": [{"id": ..., "status": ...}], ...}
    clinical_data = Column(JSON().with_variant(JSONB, "postgresql"), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
