# src/services/consultation_reconciler.py
from typing import Any, Dict, List, Optional
from uuid import UUID
from schemas.lifecycle_schemas import PropagationWarning
from utils.logger import setup_logger
from utils.time_utils import utc_now
from .clinical_repository import ClinicalRepository

logger = setup_logger("CONSULTATION_RECONCILER")

COMPLETED_LABEL = "Completed"


class ConsultationReconciler:
    """
    Mirrors treatment completion into the treatments list embedded in a
    consultation's clinical_data. Read-model only: any failure comes back as
    a PropagationWarning and is never retried.
    """

    def __init__(self, repository: ClinicalRepository):
        self.repository = repository

    async def mark_treatment_completed(
        self, consultation_id: UUID, treatment: Any
    ) -> Optional[PropagationWarning]:
        try:
            consultation = await self.repository.get_consultation(consultation_id)
            if consultation is None:
                return self._warning(
                    consultation_id, treatment, "Consultation not found"
                )

            clinical_data: Dict[str, Any] = dict(consultation.clinical_data or {})
            entries = clinical_data.get("treatments")
            if not isinstance(entries, list):
                logger.debug(
                    f"Consultation {consultation_id} has no embedded treatments"
                )
                return None

            updated, matched = self._mark_completed(entries, treatment)
            if not matched:
                return self._warning(
                    consultation_id,
                    treatment,
                    "Treatment not listed in consultation clinical data",
                )

            # New containers so the JSON column registers the change
            clinical_data["treatments"] = updated
            await self.repository.update_consultation(
                consultation_id, {"clinical_data": clinical_data}
            )
            logger.info(
                f"Marked treatment {treatment.id} completed in consultation "
                f"{consultation_id}"
            )
            return None

        except Exception as e:
            return self._warning(
                consultation_id, treatment, f"Consultation update failed: {e}"
            )

    def _mark_completed(self, entries: List[Any], treatment: Any):
        treatment_id = str(treatment.id)
        by_id = [
            i
            for i, entry in enumerate(entries)
            if isinstance(entry, dict)
            and treatment_id in (str(entry.get("id")), str(entry.get("treatment_id")))
        ]
        matches = by_id or [
            i
            for i, entry in enumerate(entries)
            if isinstance(entry, dict) and self._same_procedure(entry, treatment)
        ]

        completed_at = (treatment.completed_at or utc_now()).isoformat()
        updated = []
        for i, entry in enumerate(entries):
            if i in matches:
                entry = {**entry, "status": COMPLETED_LABEL, "completed_at": completed_at}
            updated.append(entry)
        return updated, bool(matches)

    @staticmethod
    def _same_procedure(entry: Dict[str, Any], treatment: Any) -> bool:
        if not treatment.tooth_number:
            return False
        tooth = str(entry.get("tooth_number") or entry.get("tooth") or "")
        name = str(
            entry.get("treatment_type") or entry.get("procedure") or entry.get("name") or ""
        )
        return (
            tooth == str(treatment.tooth_number)
            and name.strip().lower() == (treatment.treatment_type or "").strip().lower()
        )

    @staticmethod
    def _warning(
        consultation_id: UUID, treatment: Any, message: str
    ) -> PropagationWarning:
        logger.warning(
            f"Consultation reconcile skipped for {consultation_id} "
            f"(treatment {treatment.id}): {message}"
        )
        return PropagationWarning(
            stage="consultation_reconcile",
            treatment_id=treatment.id,
            tooth_number=treatment.tooth_number,
            target_id=consultation_id,
            message=message,
        )
