# src/services/tooth_resolution.py
from datetime import date
from typing import Any, List, NamedTuple, Optional, Sequence
from uuid import UUID
from models.appointment import AppointmentType
from models.tooth_diagnosis import ToothDiagnosis, ToothStatus
from schemas.lifecycle_schemas import PropagationWarning
from utils.logger import setup_logger
from .clinical_repository import ClinicalRepository

logger = setup_logger("TOOTH_RESOLUTION")

STRATEGY_DIRECT = "direct_link"
STRATEGY_CONSULTATION = "consultation_tooth"
STRATEGY_APPOINTMENT_CONSULTATION = "appointment_consultation_tooth"
STRATEGY_PATIENT_LATEST = "patient_latest"
STRATEGY_AUTO_CREATED = "auto_created"


class ToothCandidate(NamedTuple):
    """A tooth some record points at, with whatever links it carries"""

    tooth_number: Optional[str]
    tooth_diagnosis_id: Optional[UUID] = None
    consultation_id: Optional[UUID] = None
    diagnosis: Optional[str] = None
    source: str = "treatment"


class ResolvedTooth(NamedTuple):
    diagnosis: ToothDiagnosis
    tooth_number: str
    strategy: str


class ToothResolutionOutcome:
    def __init__(self):
        self.resolved: List[ResolvedTooth] = []
        self.warnings: List[PropagationWarning] = []
        self.failures: List[PropagationWarning] = []

    def add(self, diagnosis: ToothDiagnosis, strategy: str):
        if any(r.diagnosis.id == diagnosis.id for r in self.resolved):
            return
        self.resolved.append(
            ResolvedTooth(diagnosis, str(diagnosis.tooth_number), strategy)
        )

    def warn(self, warning: PropagationWarning, failure: bool = False):
        self.warnings.append(warning)
        if failure:
            self.failures.append(warning)

    @property
    def resolved_teeth(self) -> List[str]:
        return [r.tooth_number for r in self.resolved]


class ToothResolutionChain:
    """
    Locates the tooth diagnosis rows an appointment or treatment refers to.

    Strategies run in priority order for each candidate tooth and stop at the
    first one that finds rows. A strategy that errors or matches nothing is
    reported as a PropagationWarning and the next one is tried; nothing here
    raises.
    """

    def __init__(self, repository: ClinicalRepository, auto_create: bool = True):
        self.repository = repository
        self.auto_create = auto_create

    async def resolve_for_treatment(
        self, appointment: Any, treatment: Any
    ) -> ToothResolutionOutcome:
        outcome = ToothResolutionOutcome()
        patient_id = appointment.patient_id or treatment.patient_id

        own = ToothCandidate(
            tooth_number=treatment.tooth_number,
            tooth_diagnosis_id=treatment.tooth_diagnosis_id,
            consultation_id=treatment.consultation_id,
        )
        if own.tooth_diagnosis_id or own.tooth_number:
            for diagnosis, strategy in await self._direct_and_consultation(
                own, outcome, treatment.id
            ):
                outcome.add(diagnosis, strategy)
            if outcome.resolved:
                return outcome

        # Fall back to the teeth recorded on the appointment
        fallback: List[ToothCandidate] = []
        try:
            rows = await self.repository.list_appointment_teeth(appointment.id)
            fallback.extend(
                ToothCandidate(
                    tooth_number=str(row.tooth_number),
                    tooth_diagnosis_id=row.tooth_diagnosis_id,
                    consultation_id=row.consultation_id
                    or treatment.consultation_id,
                    diagnosis=row.diagnosis,
                    source="appointment_teeth",
                )
                for row in rows
            )
        except Exception as e:
            self._warn(
                outcome,
                "appointment_teeth",
                f"Could not load appointment teeth: {e}",
                treatment_id=treatment.id,
                failure=True,
            )

        if own.tooth_number and own.tooth_number not in {
            c.tooth_number for c in fallback
        }:
            # Already tried by link and consultation; only the wider lookups remain
            fallback.append(own._replace(tooth_diagnosis_id=None, consultation_id=None))

        if not fallback:
            self._warn(
                outcome,
                None,
                f"No tooth linked to treatment {treatment.id} or its appointment",
                treatment_id=treatment.id,
            )
            return outcome

        await self._resolve_candidates_into(
            outcome,
            appointment,
            fallback,
            patient_id=patient_id,
            allow_synthesis=False,
            treatment_id=treatment.id,
            tried_consultation_id=treatment.consultation_id,
        )
        return outcome

    async def resolve_candidates(
        self,
        appointment: Any,
        candidates: Sequence[ToothCandidate],
        allow_synthesis: bool = False,
    ) -> ToothResolutionOutcome:
        outcome = ToothResolutionOutcome()
        await self._resolve_candidates_into(
            outcome,
            appointment,
            candidates,
            patient_id=appointment.patient_id,
            allow_synthesis=allow_synthesis,
        )
        return outcome

    async def _resolve_candidates_into(
        self,
        outcome: ToothResolutionOutcome,
        appointment: Any,
        candidates: Sequence[ToothCandidate],
        patient_id: Optional[UUID],
        allow_synthesis: bool,
        treatment_id: Optional[UUID] = None,
        tried_consultation_id: Optional[UUID] = None,
    ):
        for candidate in candidates:
            found = await self._direct_and_consultation(
                candidate, outcome, treatment_id
            )

            if not found and candidate.tooth_number:
                found = await self._appointment_consultation(
                    candidate, appointment, outcome, treatment_id, tried_consultation_id
                )

            if not found and candidate.tooth_number and patient_id:
                found = await self._patient_latest(
                    candidate, patient_id, outcome, treatment_id
                )

            if not found and allow_synthesis:
                found = await self._synthesize(
                    candidate, appointment, patient_id, outcome
                )

            if not found:
                self._warn(
                    outcome,
                    None,
                    f"No tooth diagnosis found for tooth {candidate.tooth_number}",
                    tooth_number=candidate.tooth_number,
                    treatment_id=treatment_id,
                )
                continue

            for diagnosis, strategy in found:
                outcome.add(diagnosis, strategy)

    async def _direct_and_consultation(
        self,
        candidate: ToothCandidate,
        outcome: ToothResolutionOutcome,
        treatment_id: Optional[UUID],
    ) -> list:
        if candidate.tooth_diagnosis_id:
            try:
                diagnosis = await self.repository.get_tooth_diagnosis(
                    candidate.tooth_diagnosis_id
                )
                if diagnosis is not None:
                    return [(diagnosis, STRATEGY_DIRECT)]
                self._warn(
                    outcome,
                    STRATEGY_DIRECT,
                    f"Linked tooth diagnosis {candidate.tooth_diagnosis_id} not found",
                    tooth_number=candidate.tooth_number,
                    target_id=candidate.tooth_diagnosis_id,
                    treatment_id=treatment_id,
                )
            except Exception as e:
                self._warn(
                    outcome,
                    STRATEGY_DIRECT,
                    f"Direct tooth diagnosis lookup failed: {e}",
                    tooth_number=candidate.tooth_number,
                    target_id=candidate.tooth_diagnosis_id,
                    treatment_id=treatment_id,
                    failure=True,
                )

        if candidate.consultation_id and candidate.tooth_number:
            return await self._by_consultation(
                candidate.consultation_id,
                candidate.tooth_number,
                STRATEGY_CONSULTATION,
                outcome,
                treatment_id,
            )
        return []

    async def _appointment_consultation(
        self,
        candidate: ToothCandidate,
        appointment: Any,
        outcome: ToothResolutionOutcome,
        treatment_id: Optional[UUID],
        tried_consultation_id: Optional[UUID] = None,
    ) -> list:
        consultation_id = appointment.consultation_id
        if not consultation_id or consultation_id in (
            candidate.consultation_id,
            tried_consultation_id,
        ):
            return []
        return await self._by_consultation(
            consultation_id,
            candidate.tooth_number,
            STRATEGY_APPOINTMENT_CONSULTATION,
            outcome,
            treatment_id,
        )

    async def _by_consultation(
        self,
        consultation_id: UUID,
        tooth_number: str,
        strategy: str,
        outcome: ToothResolutionOutcome,
        treatment_id: Optional[UUID],
    ) -> list:
        try:
            rows = await self.repository.find_tooth_diagnoses(
                consultation_id, str(tooth_number)
            )
        except Exception as e:
            self._warn(
                outcome,
                strategy,
                f"Consultation tooth lookup failed: {e}",
                tooth_number=tooth_number,
                treatment_id=treatment_id,
                failure=True,
            )
            return []
        if not rows:
            logger.debug(
                f"No diagnosis for tooth {tooth_number} in consultation {consultation_id}"
            )
        return [(row, strategy) for row in rows]

    async def _patient_latest(
        self,
        candidate: ToothCandidate,
        patient_id: UUID,
        outcome: ToothResolutionOutcome,
        treatment_id: Optional[UUID],
    ) -> list:
        try:
            latest = await self.repository.find_latest_tooth_diagnosis(
                patient_id, str(candidate.tooth_number)
            )
        except Exception as e:
            self._warn(
                outcome,
                STRATEGY_PATIENT_LATEST,
                f"Latest tooth diagnosis lookup failed: {e}",
                tooth_number=candidate.tooth_number,
                treatment_id=treatment_id,
                failure=True,
            )
            return []
        return [(latest, STRATEGY_PATIENT_LATEST)] if latest is not None else []

    async def _synthesize(
        self,
        candidate: ToothCandidate,
        appointment: Any,
        patient_id: Optional[UUID],
        outcome: ToothResolutionOutcome,
    ) -> list:
        if not self.auto_create or not candidate.tooth_number or not patient_id:
            return []
        appointment_type = AppointmentType(appointment.appointment_type)
        try:
            diagnosis = await self.repository.add_tooth_diagnosis(
                ToothDiagnosis(
                    patient_id=patient_id,
                    consultation_id=candidate.consultation_id
                    or appointment.consultation_id,
                    tooth_number=str(candidate.tooth_number),
                    status=ToothStatus.ATTENTION,
                    follow_up_required=True,
                    primary_diagnosis=candidate.diagnosis,
                    recommended_treatment="Planned treatment"
                    if appointment_type == AppointmentType.TREATMENT
                    else None,
                    examination_date=date.today(),
                    is_auto_created=True,
                    status_as_of=appointment.scheduled_at,
                    status_appointment_id=appointment.id,
                    notes="Auto-created from contextual appointment booking",
                )
            )
        except Exception as e:
            self._warn(
                outcome,
                STRATEGY_AUTO_CREATED,
                f"Could not create tooth diagnosis: {e}",
                tooth_number=candidate.tooth_number,
                failure=True,
            )
            return []
        logger.info(
            f"Auto-created tooth diagnosis {diagnosis.id} for tooth "
            f"{candidate.tooth_number} (appointment {appointment.id})"
        )
        return [(diagnosis, STRATEGY_AUTO_CREATED)]

    def _warn(
        self,
        outcome: ToothResolutionOutcome,
        strategy: Optional[str],
        message: str,
        tooth_number: Optional[str] = None,
        target_id: Optional[UUID] = None,
        treatment_id: Optional[UUID] = None,
        failure: bool = False,
    ):
        logger.warning(message)
        outcome.warn(
            PropagationWarning(
                stage="tooth_resolution",
                strategy=strategy,
                treatment_id=treatment_id,
                tooth_number=tooth_number,
                target_id=target_id,
                message=message,
            ),
            failure=failure,
        )
