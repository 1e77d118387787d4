# src/services/contextual_appointment_service.py
from typing import Any, Dict, List, Optional
from models.appointment import (
    Appointment,
    AppointmentStatus,
    CONTEXTUAL_APPOINTMENT_TYPES,
    AppointmentType,
)
from models.appointment_tooth import AppointmentTooth
from models.tooth_diagnosis import ToothStatus
from models.treatment import TreatmentStatus
from schemas.appointment_schemas import ContextualAppointmentCreate
from utils.exceptions import ContextValidationException, NotFoundException
from utils.logger import setup_logger
from utils.time_utils import utc_now
from .clinical_repository import ClinicalRepository
from .tooth_resolution import ToothCandidate, ToothResolutionChain
from .tooth_status_mapping import resolve_booking_status

logger = setup_logger("CONTEXTUAL_APPOINTMENT_SERVICE")


class ContextualAppointmentService:
    def __init__(
        self,
        repository: ClinicalRepository,
        resolution_chain: ToothResolutionChain,
        default_duration: int = 60,
    ):
        self.repository = repository
        self.resolution_chain = resolution_chain
        self.default_duration = default_duration

    async def create_appointment(self, data: ContextualAppointmentCreate) -> Appointment:
        """
        Book an appointment together with the clinical links later status
        changes resolve against.

        Everything is validated before the first write. After the appointment
        row is stored, the linked treatment is marked as started; that write
        is part of the booking and its failure fails the call. Booked teeth
        are then flagged for attention and recorded on the appointment; those
        derived writes only log when they fail.

        Raises:
            ContextValidationException: treatment/follow_up without a
                consultation, or a treatment that belongs to another patient
            NotFoundException: consultation or treatment does not exist
        """
        appointment_type = AppointmentType(data.appointment_type)
        if data.requires_consultation and not data.consultation_id:
            raise ContextValidationException(
                f"A {appointment_type.value} appointment must reference the "
                "consultation it continues"
            )

        if data.consultation_id:
            consultation = await self.repository.get_consultation(data.consultation_id)
            if consultation is None:
                raise NotFoundException(f"Consultation {data.consultation_id} not found")

        treatment = None
        if data.treatment_id:
            treatment = await self.repository.get_treatment(data.treatment_id)
            if treatment is None:
                raise NotFoundException(f"Treatment {data.treatment_id} not found")
            if treatment.patient_id != data.patient_id:
                raise ContextValidationException(
                    f"Treatment {data.treatment_id} belongs to another patient"
                )

        diagnosis_ids = list(data.tooth_diagnosis_ids)
        if treatment is not None and treatment.tooth_diagnosis_id:
            diagnosis_ids.append(treatment.tooth_diagnosis_id)
        diagnoses = (
            await self.repository.list_tooth_diagnoses_by_ids(diagnosis_ids)
            if diagnosis_ids
            else []
        )

        appointment = await self.repository.add_appointment(
            Appointment(
                patient_id=data.patient_id,
                dentist_id=data.dentist_id,
                scheduled_date=data.scheduled_date,
                scheduled_time=data.scheduled_time,
                duration_minutes=data.duration_minutes or self.default_duration,
                appointment_type=appointment_type,
                status=AppointmentStatus.SCHEDULED,
                notes=data.notes,
                consultation_id=data.consultation_id,
                treatment_id=data.treatment_id,
            )
        )
        logger.info(
            f"Created {appointment_type.value} appointment {appointment.id} "
            f"for patient {data.patient_id}"
        )

        if treatment is not None:
            await self._start_treatment(treatment, appointment)

        candidates = self._tooth_candidates(data, treatment, diagnoses)
        if appointment_type in CONTEXTUAL_APPOINTMENT_TYPES and candidates:
            candidates = await self._flag_booked_teeth(appointment, candidates)

        await self._record_teeth(appointment, candidates)
        return appointment

    async def _start_treatment(self, treatment: Any, appointment: Appointment):
        if TreatmentStatus(treatment.status) in (
            TreatmentStatus.COMPLETED,
            TreatmentStatus.CANCELLED,
        ):
            return

        values: Dict[str, Any] = {}
        if treatment.status != TreatmentStatus.IN_PROGRESS:
            values["status"] = TreatmentStatus.IN_PROGRESS
        if treatment.started_at is None:
            values["started_at"] = utc_now()
        if treatment.appointment_id is None:
            values["appointment_id"] = appointment.id
        if not values:
            return

        try:
            updated = await self.repository.update_treatment(treatment.id, values)
        except Exception as e:
            logger.error(
                f"Could not mark treatment {treatment.id} in progress for "
                f"appointment {appointment.id}: {e}"
            )
            raise
        if updated is None:
            raise NotFoundException(f"Treatment {treatment.id} not found")
        logger.info(f"Treatment {treatment.id} marked in progress")

    def _tooth_candidates(
        self,
        data: ContextualAppointmentCreate,
        treatment: Optional[Any],
        diagnoses: List[Any],
    ) -> List[ToothCandidate]:
        by_tooth: Dict[str, ToothCandidate] = {}

        def add(candidate: ToothCandidate):
            if not candidate.tooth_number:
                return
            existing = by_tooth.get(candidate.tooth_number)
            if existing is None or (
                existing.tooth_diagnosis_id is None and candidate.tooth_diagnosis_id
            ):
                by_tooth[candidate.tooth_number] = candidate

        if treatment is not None:
            tooth_number = treatment.tooth_number
            if not tooth_number and treatment.tooth_diagnosis_id:
                tooth_number = next(
                    (
                        d.tooth_number
                        for d in diagnoses
                        if d.id == treatment.tooth_diagnosis_id
                    ),
                    None,
                )
            add(
                ToothCandidate(
                    tooth_number=tooth_number,
                    tooth_diagnosis_id=treatment.tooth_diagnosis_id,
                    consultation_id=treatment.consultation_id or data.consultation_id,
                    diagnosis=treatment.treatment_type,
                    source="treatment",
                )
            )

        for diagnosis in diagnoses:
            if diagnosis.id not in data.tooth_diagnosis_ids:
                continue
            add(
                ToothCandidate(
                    tooth_number=str(diagnosis.tooth_number),
                    tooth_diagnosis_id=diagnosis.id,
                    consultation_id=diagnosis.consultation_id or data.consultation_id,
                    diagnosis=diagnosis.primary_diagnosis,
                    source="tooth_diagnosis",
                )
            )

        missing = set(data.tooth_diagnosis_ids) - {d.id for d in diagnoses}
        for diagnosis_id in missing:
            logger.warning(f"Tooth diagnosis {diagnosis_id} not found; not linked")

        for tooth_number in data.tooth_numbers:
            add(
                ToothCandidate(
                    tooth_number=tooth_number,
                    consultation_id=data.consultation_id,
                    source="tooth_number",
                )
            )

        return list(by_tooth.values())

    async def _flag_booked_teeth(
        self, appointment: Appointment, candidates: List[ToothCandidate]
    ) -> List[ToothCandidate]:
        outcome = await self.resolution_chain.resolve_candidates(
            appointment, candidates, allow_synthesis=True
        )

        linked: Dict[str, Any] = {}
        for resolved in outcome.resolved:
            linked.setdefault(resolved.tooth_number, resolved.diagnosis.id)
            diagnosis = resolved.diagnosis
            resolution = resolve_booking_status(diagnosis.status)
            if not resolution.changed:
                continue
            try:
                await self.repository.update_tooth_diagnosis(
                    diagnosis.id,
                    {
                        "status": resolution.status,
                        "follow_up_required": True,
                        "status_as_of": appointment.scheduled_at,
                        "status_appointment_id": appointment.id,
                        "updated_at": utc_now(),
                    },
                )
                logger.info(
                    f"Tooth {resolved.tooth_number} flagged "
                    f"{ToothStatus.ATTENTION.value} for appointment {appointment.id}"
                )
            except Exception as e:
                logger.warning(
                    f"Could not flag tooth {resolved.tooth_number} for "
                    f"appointment {appointment.id}: {e}"
                )

        return [
            c._replace(tooth_diagnosis_id=c.tooth_diagnosis_id or linked.get(c.tooth_number))
            for c in candidates
        ]

    async def _record_teeth(
        self, appointment: Appointment, candidates: List[ToothCandidate]
    ):
        if not candidates:
            return
        rows = [
            AppointmentTooth(
                appointment_id=appointment.id,
                consultation_id=c.consultation_id or appointment.consultation_id,
                tooth_number=c.tooth_number,
                tooth_diagnosis_id=c.tooth_diagnosis_id,
                diagnosis=c.diagnosis,
            )
            for c in candidates
        ]
        try:
            await self.repository.add_appointment_teeth(rows)
            logger.info(
                f"Linked teeth {', '.join(c.tooth_number for c in candidates)} "
                f"to appointment {appointment.id}"
            )
        except Exception as e:
            logger.warning(
                f"Could not link teeth to appointment {appointment.id}: {e}"
            )
