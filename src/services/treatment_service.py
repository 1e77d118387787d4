# src/services/treatment_service.py
from typing import List
from uuid import UUID
from models.appointment_tooth import AppointmentTooth
from models.treatment import Treatment, TreatmentStatus
from schemas.treatment_schemas import TreatmentLink
from utils.exceptions import NotFoundException
from utils.logger import setup_logger
from .clinical_repository import ClinicalRepository
from .treatment_progress import compute_treatment_progress

logger = setup_logger("TREATMENT_SERVICE")


class TreatmentService:
    def __init__(self, repository: ClinicalRepository, default_total_visits: int = 1):
        self.repository = repository
        self.default_total_visits = default_total_visits

    async def get_treatment(self, treatment_id: UUID) -> Treatment:
        treatment = await self.repository.get_treatment(treatment_id)
        if treatment is None:
            raise NotFoundException(f"Treatment {treatment_id} not found")
        return treatment

    async def list_for_appointment(self, appointment_id: UUID) -> List[Treatment]:
        return await self.repository.list_treatments_for_appointment(appointment_id)

    async def link_treatment(self, payload: TreatmentLink) -> Treatment:
        """
        Create a treatment for an existing appointment.

        Patient, dentist and treatment type default to the appointment's. The
        starting status follows the appointment: a treatment linked to a visit
        that is already underway or finished starts in the matching state.
        """
        appointment = await self.repository.get_appointment(payload.appointment_id)
        if appointment is None:
            raise NotFoundException(
                f"Appointment {payload.appointment_id} not found for linking"
            )

        treatment = Treatment(
            patient_id=payload.patient_id or appointment.patient_id,
            dentist_id=payload.dentist_id or appointment.dentist_id,
            appointment_id=appointment.id,
            consultation_id=payload.consultation_id or appointment.consultation_id,
            treatment_type=payload.treatment_type
            or getattr(appointment.appointment_type, "value", appointment.appointment_type)
            or "Treatment",
            notes=payload.notes,
            tooth_number=payload.tooth_number,
            tooth_diagnosis_id=payload.tooth_diagnosis_id,
            status=TreatmentStatus.PENDING,
            total_visits=payload.total_visits or self.default_total_visits,
            completed_visits=0,
        )

        # Catch up with the appointment's current state
        patch = compute_treatment_progress(
            treatment, appointment.status, appointment_id=appointment.id
        )
        if patch is not None:
            for field, value in patch.values().items():
                setattr(treatment, field, value)

        treatment = await self.repository.add_treatment(treatment)
        logger.info(
            f"Linked treatment {treatment.id} ({treatment.treatment_type}) to "
            f"appointment {appointment.id}"
        )

        if treatment.tooth_number:
            try:
                await self.repository.add_appointment_teeth(
                    [
                        AppointmentTooth(
                            appointment_id=appointment.id,
                            consultation_id=treatment.consultation_id,
                            tooth_number=str(treatment.tooth_number),
                            tooth_diagnosis_id=treatment.tooth_diagnosis_id,
                        )
                    ]
                )
            except Exception as e:
                logger.warning(
                    f"Could not record tooth {treatment.tooth_number} on "
                    f"appointment {appointment.id}: {e}"
                )

        return treatment
