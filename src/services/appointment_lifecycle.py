# src/services/appointment_lifecycle.py
from datetime import datetime
from typing import Any, List, Union
from uuid import UUID
from models.appointment import APPOINTMENT_STATUS_TIMESTAMPS, AppointmentStatus
from models.tooth_diagnosis import ToothStatus
from models.treatment import TreatmentStatus
from schemas.lifecycle_schemas import (
    LifecycleResult,
    PropagationWarning,
    ToothUpdate,
)
from utils.exceptions import NotFoundException
from utils.logger import setup_logger
from utils.time_utils import ensure_utc, utc_now
from .clinical_repository import ClinicalRepository
from .consultation_reconciler import ConsultationReconciler
from .tooth_resolution import ResolvedTooth, ToothResolutionChain
from .tooth_status_mapping import (
    is_stale_write,
    ordering_time,
    resolve_tooth_status,
)
from .treatment_progress import compute_treatment_progress

logger = setup_logger("APPOINTMENT_LIFECYCLE")

# Statuses that never move a tooth
_NO_TOOTH_EFFECT = frozenset(
    {
        AppointmentStatus.SCHEDULED,
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.NO_SHOW,
    }
)


class AppointmentLifecycleCoordinator:
    """
    Pushes an appointment's new status out to its treatments, their teeth
    and the consultation read model.

    Treatment writes are the source of truth and any failure there aborts
    the call. Tooth and consultation writes are best effort: failures are
    collected on the returned LifecycleResult and the call still succeeds.
    """

    def __init__(
        self,
        repository: ClinicalRepository,
        resolution_chain: ToothResolutionChain,
        reconciler: ConsultationReconciler,
        ordering_guard: bool = True,
    ):
        self.repository = repository
        self.resolution_chain = resolution_chain
        self.reconciler = reconciler
        self.ordering_guard = ordering_guard

    async def apply_appointment_status(
        self,
        appointment_id: UUID,
        new_status: Union[str, AppointmentStatus],
    ) -> LifecycleResult:
        new_status = AppointmentStatus(new_status)

        appointment = await self.repository.get_appointment(appointment_id)
        if appointment is None:
            raise NotFoundException(f"Appointment {appointment_id} not found")

        result = LifecycleResult(appointment_id=appointment.id, status=new_status)
        treatments = await self._linked_treatments(appointment, result)
        if not treatments:
            logger.info(f"Appointment {appointment_id} has no linked treatments")
            return result

        for treatment in treatments:
            treatment, completed_now = await self._advance_treatment(
                appointment, treatment, new_status, result
            )

            if self._affects_tooth(new_status, treatment, completed_now):
                await self.propagate_to_teeth(
                    appointment, treatment, new_status, result
                )

            if completed_now and treatment.consultation_id:
                warning = await self.reconciler.mark_treatment_completed(
                    treatment.consultation_id, treatment
                )
                if warning is None:
                    result.reconciled_consultations.append(treatment.consultation_id)
                else:
                    result.warnings.append(warning)

        logger.info(
            f"Applied {new_status.value} to appointment {appointment_id}: "
            f"{result.updated_count} treatment(s), "
            f"{len(result.tooth_updates)} tooth update(s), "
            f"{len(result.warnings)} warning(s)"
        )
        return result

    async def _linked_treatments(
        self, appointment: Any, result: LifecycleResult
    ) -> List[Any]:
        treatments = list(
            await self.repository.list_treatments_for_appointment(appointment.id)
        )
        linked_id = appointment.treatment_id
        if linked_id and all(t.id != linked_id for t in treatments):
            treatment = await self.repository.get_treatment(linked_id)
            if treatment is not None:
                treatments.append(treatment)
            else:
                message = f"Linked treatment {linked_id} not found"
                logger.warning(f"Appointment {appointment.id}: {message}")
                result.warnings.append(
                    PropagationWarning(
                        stage="treatment_lookup",
                        treatment_id=linked_id,
                        target_id=appointment.id,
                        message=message,
                    )
                )
        return treatments

    async def _advance_treatment(
        self,
        appointment: Any,
        treatment: Any,
        new_status: AppointmentStatus,
        result: LifecycleResult,
    ):
        previous = TreatmentStatus(treatment.status or TreatmentStatus.PENDING)
        patch = compute_treatment_progress(
            treatment, new_status, appointment_id=appointment.id
        )
        if patch is None:
            return treatment, False

        updated = await self.repository.update_treatment(treatment.id, patch.values())
        if updated is None:
            raise NotFoundException(f"Treatment {treatment.id} not found")

        result.updated_count += 1
        completed_now = (
            patch.status == TreatmentStatus.COMPLETED
            and previous != TreatmentStatus.COMPLETED
        )
        logger.info(
            f"Treatment {treatment.id}: {previous.value} -> "
            f"{TreatmentStatus(updated.status).value} "
            f"({updated.completed_visits}/{updated.total_visits} visits)"
        )
        return updated, completed_now

    @staticmethod
    def _affects_tooth(
        new_status: AppointmentStatus, treatment: Any, completed_now: bool
    ) -> bool:
        if new_status in _NO_TOOTH_EFFECT:
            return False
        status = TreatmentStatus(treatment.status)
        if new_status == AppointmentStatus.CANCELLED:
            # Cancelling a later visit never undoes finished work
            return status != TreatmentStatus.COMPLETED
        if new_status == AppointmentStatus.COMPLETED:
            return True
        return status != TreatmentStatus.COMPLETED or completed_now

    @staticmethod
    def _tooth_event(new_status: AppointmentStatus, treatment: Any) -> AppointmentStatus:
        # A finished visit of an unfinished multi-visit treatment is still work underway
        if (
            new_status == AppointmentStatus.COMPLETED
            and TreatmentStatus(treatment.status) != TreatmentStatus.COMPLETED
        ):
            return AppointmentStatus.IN_PROGRESS
        return new_status

    async def propagate_to_teeth(
        self,
        appointment: Any,
        treatment: Any,
        new_status: AppointmentStatus,
        result: LifecycleResult,
    ):
        """Resolve the treatment's teeth and write the status the event implies"""
        outcome = await self.resolution_chain.resolve_for_treatment(
            appointment, treatment
        )
        result.warnings.extend(outcome.warnings)
        result.errors.extend(w.message for w in outcome.failures)

        event = self._tooth_event(new_status, treatment)
        occurred_at = self._occurred_at(appointment, new_status)
        for resolved in outcome.resolved:
            await self._write_tooth(
                appointment, treatment, event, occurred_at, resolved, result
            )

    @staticmethod
    def _occurred_at(appointment: Any, new_status: AppointmentStatus) -> datetime:
        field = APPOINTMENT_STATUS_TIMESTAMPS.get(new_status)
        stamped = ensure_utc(getattr(appointment, field, None)) if field else None
        return stamped or utc_now()

    async def _write_tooth(
        self,
        appointment: Any,
        treatment: Any,
        event: AppointmentStatus,
        occurred_at: datetime,
        resolved: ResolvedTooth,
        result: LifecycleResult,
    ):
        diagnosis = resolved.diagnosis
        resolution = resolve_tooth_status(
            event, treatment.treatment_type, diagnosis.status
        )
        if not resolution.changed:
            return

        event_as_of = ordering_time(
            diagnosis.status_appointment_id,
            appointment.id,
            appointment.scheduled_at,
            occurred_at,
        )
        if self.ordering_guard and is_stale_write(
            diagnosis.status, diagnosis.status_as_of, event_as_of
        ):
            message = (
                f"Tooth {resolved.tooth_number} was settled after this "
                f"appointment; keeping {ToothStatus(diagnosis.status).value}"
            )
            logger.warning(message)
            result.warnings.append(
                PropagationWarning(
                    stage="tooth_update",
                    strategy="ordering_guard",
                    treatment_id=treatment.id,
                    tooth_number=resolved.tooth_number,
                    target_id=diagnosis.id,
                    message=message,
                )
            )
            return

        previous_status = diagnosis.status
        values = {
            "status": resolution.status,
            "status_as_of": appointment.scheduled_at,
            "status_appointment_id": appointment.id,
            "updated_at": utc_now(),
        }
        if resolution.follow_up_required is not None:
            values["follow_up_required"] = resolution.follow_up_required

        try:
            updated = await self.repository.update_tooth_diagnosis(diagnosis.id, values)
            if updated is None:
                raise LookupError(f"tooth diagnosis {diagnosis.id} disappeared")
        except Exception as e:
            message = f"Could not update tooth {resolved.tooth_number}: {e}"
            logger.warning(f"{message} (strategy {resolved.strategy})")
            result.errors.append(message)
            result.warnings.append(
                PropagationWarning(
                    stage="tooth_update",
                    strategy=resolved.strategy,
                    treatment_id=treatment.id,
                    tooth_number=resolved.tooth_number,
                    target_id=diagnosis.id,
                    message=message,
                )
            )
            return

        result.tooth_updates.append(
            ToothUpdate(
                tooth_diagnosis_id=updated.id,
                tooth_number=resolved.tooth_number,
                previous_status=previous_status,
                status=resolution.status,
                color_code=resolution.color_code,
                strategy=resolved.strategy,
            )
        )
        logger.info(
            f"Tooth {resolved.tooth_number} -> {resolution.status.value} "
            f"via {resolved.strategy}"
        )
