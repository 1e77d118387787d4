# src/services/treatment_progress.py
from datetime import datetime
from typing import Any, Optional, Union
from uuid import UUID
from models.appointment import AppointmentStatus
from models.treatment import TreatmentStatus
from schemas.lifecycle_schemas import TreatmentProgressUpdate
from utils.time_utils import utc_now


def compute_treatment_progress(
    treatment: Any,
    appointment_status: Union[str, AppointmentStatus],
    now: Optional[datetime] = None,
    appointment_id: Optional[UUID] = None,
) -> Optional[TreatmentProgressUpdate]:
    """
    Work out how a treatment moves when its appointment changes status.

    Handles jumps (scheduled -> completed) as well as the step-by-step path,
    and is safe to re-apply: a completed treatment never counts past
    total_visits, and a visit is counted at most once per appointment.

    Args:
        treatment: Anything with status, total_visits, completed_visits,
            started_at and completed_at attributes (and optionally
            counted_appointment_ids)
        appointment_status: The status the appointment moved to
        now: Clock override for tests
        appointment_id: Appointment the status belongs to; when given, its
            completion is recorded so a repeated delivery is not counted again

    Returns:
        TreatmentProgressUpdate, or None when the treatment is already there
    """
    appointment_status = AppointmentStatus(appointment_status)
    now = now or utc_now()

    current = TreatmentStatus(treatment.status or TreatmentStatus.PENDING)
    total = max(treatment.total_visits or 1, 1)
    done = min(max(treatment.completed_visits or 0, 0), total)

    if appointment_status == AppointmentStatus.IN_PROGRESS:
        if current == TreatmentStatus.COMPLETED:
            return None
        patch = TreatmentProgressUpdate()
        if current != TreatmentStatus.IN_PROGRESS:
            patch.status = TreatmentStatus.IN_PROGRESS
        if treatment.started_at is None:
            patch.started_at = now
        return patch if patch.values() else None

    if appointment_status == AppointmentStatus.COMPLETED:
        if current == TreatmentStatus.COMPLETED:
            # Repeated delivery; only repair a row that breaks the invariant
            if treatment.completed_visits == total and treatment.completed_at:
                return None
            return TreatmentProgressUpdate(
                completed_visits=total,
                completed_at=treatment.completed_at or now,
            )

        counted = list(getattr(treatment, "counted_appointment_ids", None) or [])
        visit = str(appointment_id) if appointment_id is not None else None
        if visit is not None and visit in counted:
            return None

        done += 1
        patch = TreatmentProgressUpdate(
            started_at=None if treatment.started_at else now
        )
        if visit is not None:
            patch.counted_appointment_ids = counted + [visit]
        if done >= total:
            patch.status = TreatmentStatus.COMPLETED
            patch.completed_visits = total
            patch.completed_at = now
        else:
            patch.status = TreatmentStatus.IN_PROGRESS
            patch.completed_visits = done
        return patch

    if appointment_status == AppointmentStatus.CANCELLED:
        # Finished work stays finished; visit counts are history
        if current in (TreatmentStatus.CANCELLED, TreatmentStatus.COMPLETED):
            return None
        return TreatmentProgressUpdate(status=TreatmentStatus.CANCELLED)

    # scheduled / confirmed / no_show do not imply work occurred
    return None
