# src/schemas/lifecycle_schemas.py
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime
from uuid import UUID
from models.appointment import AppointmentStatus
from models.tooth_diagnosis import ToothStatus
from models.treatment import TreatmentStatus
from .base_schemas import BaseSchema, ResponseBase


class PropagationWarning(BaseSchema):
    """A derived-state write that degraded; logged and reported, never raised"""

    stage: str  # "tooth_resolution", "tooth_update", "consultation_reconcile"
    strategy: Optional[str] = None
    treatment_id: Optional[UUID] = None
    tooth_number: Optional[str] = None
    target_id: Optional[UUID] = None
    message: str


class ToothUpdate(BaseSchema):
    """One tooth diagnosis written during propagation"""

    tooth_diagnosis_id: UUID
    tooth_number: str
    previous_status: Optional[ToothStatus] = None
    status: ToothStatus
    color_code: str
    strategy: str


class LifecycleResult(ResponseBase):
    """Outcome of applying an appointment status to its linked records"""

    appointment_id: UUID
    status: AppointmentStatus
    updated_count: int = 0
    errors: List[str] = Field(default_factory=list)
    warnings: List[PropagationWarning] = Field(default_factory=list)
    tooth_updates: List[ToothUpdate] = Field(default_factory=list)
    reconciled_consultations: List[UUID] = Field(default_factory=list)


class ToothStatusResolution(BaseModel):
    """Target state for one tooth; follow_up_required None means leave as is"""

    status: ToothStatus
    color_code: str
    follow_up_required: Optional[bool] = None
    changed: bool = True


class TreatmentProgressUpdate(BaseModel):
    """Patch for a treatment row; unset fields are left untouched"""

    status: Optional[TreatmentStatus] = None
    completed_visits: Optional[int] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    counted_appointment_ids: Optional[List[str]] = None

    def values(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)
