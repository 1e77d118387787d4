# src/services/appointment_service.py
from typing import Any, Dict, Optional, Union
from uuid import UUID
from models.appointment import APPOINTMENT_STATUS_TIMESTAMPS, AppointmentStatus
from models.treatment import TreatmentStatus
from schemas.appointment_schemas import AppointmentDetail, AppointmentToothPublic
from schemas.lifecycle_schemas import LifecycleResult
from utils.exceptions import InvalidTransitionException, NotFoundException
from utils.logger import setup_logger
from utils.time_utils import utc_now
from .appointment_lifecycle import AppointmentLifecycleCoordinator
from .clinical_repository import ClinicalRepository
from .consultation_reconciler import ConsultationReconciler

logger = setup_logger("APPOINTMENT_SERVICE")

# completed and cancelled are terminal; reopening means booking a new appointment
ALLOWED_TRANSITIONS = {
    AppointmentStatus.SCHEDULED: {
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.CONFIRMED: {
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.IN_PROGRESS: {
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    },
    AppointmentStatus.NO_SHOW: {AppointmentStatus.CANCELLED},
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELLED: set(),
}

def validate_transition(
    current_status: Union[str, AppointmentStatus],
    new_status: Union[str, AppointmentStatus],
) -> None:
    """Raise InvalidTransitionException unless the move is allowed"""
    current_status = AppointmentStatus(current_status)
    new_status = AppointmentStatus(new_status)
    if current_status == new_status:
        return
    if new_status not in ALLOWED_TRANSITIONS[current_status]:
        raise InvalidTransitionException(current_status, new_status)


class AppointmentService:
    def __init__(
        self,
        repository: ClinicalRepository,
        coordinator: AppointmentLifecycleCoordinator,
        reconciler: ConsultationReconciler,
    ):
        self.repository = repository
        self.coordinator = coordinator
        self.reconciler = reconciler

    async def get_appointment_detail(self, appointment_id: UUID) -> AppointmentDetail:
        appointment = await self.repository.get_appointment(appointment_id)
        if appointment is None:
            raise NotFoundException(f"Appointment {appointment_id} not found")

        teeth = await self.repository.list_appointment_teeth(appointment_id)
        detail = AppointmentDetail.model_validate(appointment)
        detail.teeth = [AppointmentToothPublic.model_validate(t) for t in teeth]
        return detail

    async def update_status(
        self,
        appointment_id: UUID,
        new_status: Union[str, AppointmentStatus],
        notes: Optional[str] = None,
    ) -> LifecycleResult:
        """
        Move an appointment to a new status and sync its treatments and teeth.

        Re-sending the current status skips the appointment write and only
        re-runs the sync, which is idempotent: a visit is counted once per
        appointment and the tooth mapping is pure.
        """
        new_status = AppointmentStatus(new_status)
        appointment = await self.repository.get_appointment(appointment_id)
        if appointment is None:
            raise NotFoundException(f"Appointment {appointment_id} not found")

        current_status = AppointmentStatus(appointment.status)
        validate_transition(current_status, new_status)

        if current_status != new_status:
            values: Dict[str, Any] = {"status": new_status, "updated_at": utc_now()}
            timestamp_field = APPOINTMENT_STATUS_TIMESTAMPS.get(new_status)
            if timestamp_field:
                values[timestamp_field] = utc_now()
            if notes:
                values["notes"] = notes
            await self.repository.update_appointment(appointment_id, values)
            logger.info(
                f"Appointment {appointment_id}: {current_status.value} -> "
                f"{new_status.value}"
            )
        else:
            logger.info(
                f"Appointment {appointment_id} already {new_status.value}; re-syncing"
            )

        return await self.coordinator.apply_appointment_status(
            appointment_id, new_status
        )

    async def complete_treatment(self, appointment_id: UUID) -> LifecycleResult:
        """
        Mark the treatment booked on this appointment as fully done, then push
        the result to its tooth and consultation like a final visit would.
        """
        appointment = await self.repository.get_appointment(appointment_id)
        if appointment is None:
            raise NotFoundException(f"Appointment {appointment_id} not found")
        if not appointment.treatment_id:
            raise NotFoundException(
                f"Appointment {appointment_id} has no linked treatment"
            )

        treatment = await self.repository.get_treatment(appointment.treatment_id)
        if treatment is None:
            raise NotFoundException(f"Treatment {appointment.treatment_id} not found")

        result = LifecycleResult(
            appointment_id=appointment.id, status=appointment.status
        )
        if TreatmentStatus(treatment.status) == TreatmentStatus.COMPLETED:
            logger.info(f"Treatment {treatment.id} already completed")
            return result

        now = utc_now()
        treatment_id = treatment.id
        treatment = await self.repository.update_treatment(
            treatment_id,
            {
                "status": TreatmentStatus.COMPLETED,
                "completed_visits": treatment.total_visits,
                "started_at": treatment.started_at or now,
                "completed_at": now,
            },
        )
        if treatment is None:
            raise NotFoundException(f"Treatment {treatment_id} not found")
        result.updated_count = 1
        logger.info(f"Treatment {treatment_id} completed from appointment {appointment_id}")

        await self.coordinator.propagate_to_teeth(
            appointment, treatment, AppointmentStatus.COMPLETED, result
        )

        consultation_id = treatment.consultation_id or appointment.consultation_id
        if consultation_id:
            warning = await self.reconciler.mark_treatment_completed(
                consultation_id, treatment
            )
            if warning is None:
                result.reconciled_consultations.append(consultation_id)
            else:
                result.warnings.append(warning)
        return result
