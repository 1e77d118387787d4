# src/services/tooth_diagnosis_service.py
from typing import Dict
from uuid import UUID
from models.tooth_diagnosis import ToothDiagnosis, ToothStatus
from schemas.tooth_diagnosis_schemas import (
    ToothChart,
    ToothDiagnosisPublic,
    ToothDiagnosisSave,
    ToothStats,
)
from utils.exceptions import NotFoundException
from utils.logger import setup_logger
from utils.time_utils import utc_now
from .clinical_repository import ClinicalRepository

logger = setup_logger("TOOTH_DIAGNOSIS_SERVICE")

RESTORATION_STATUSES = frozenset(
    {
        ToothStatus.FILLED,
        ToothStatus.CROWN,
        ToothStatus.ROOT_CANAL,
        ToothStatus.BRIDGE,
        ToothStatus.IMPLANT,
    }
)


class ToothDiagnosisService:
    def __init__(self, repository: ClinicalRepository):
        self.repository = repository

    async def get_tooth_diagnosis(self, diagnosis_id: UUID) -> ToothDiagnosis:
        diagnosis = await self.repository.get_tooth_diagnosis(diagnosis_id)
        if diagnosis is None:
            raise NotFoundException(f"Tooth diagnosis {diagnosis_id} not found")
        return diagnosis

    async def get_patient_tooth_chart(self, patient_id: UUID) -> ToothChart:
        """Latest diagnosis per tooth"""
        rows = await self.repository.list_patient_tooth_diagnoses(patient_id)
        teeth: Dict[str, ToothDiagnosisPublic] = {}
        for row in rows:
            # Rows come newest first within each tooth
            teeth.setdefault(str(row.tooth_number), ToothDiagnosisPublic.model_validate(row))
        return ToothChart(patient_id=patient_id, teeth=teeth)

    async def get_patient_tooth_stats(self, patient_id: UUID) -> ToothStats:
        chart = await self.get_patient_tooth_chart(patient_id)
        stats = ToothStats()
        for tooth in chart.teeth.values():
            status = ToothStatus(tooth.status)
            if status == ToothStatus.HEALTHY:
                stats.healthy += 1
            elif status == ToothStatus.CARIES:
                stats.caries += 1
            elif status == ToothStatus.ATTENTION:
                stats.attention += 1
            elif status == ToothStatus.MISSING:
                stats.missing += 1
            elif status in RESTORATION_STATUSES:
                stats.restorations += 1
            stats.total += 1
        return stats

    async def save_tooth_diagnosis(self, data: ToothDiagnosisSave) -> ToothDiagnosis:
        """
        Charting upsert. Matches by id, otherwise by patient, consultation and
        tooth. The chart color always follows the saved status.
        """
        values = data.model_dump(exclude={"id"})
        # A charted status is current clinical judgement, ordered by wall clock
        values["status_as_of"] = utc_now()
        values["status_appointment_id"] = None

        existing = None
        if data.id:
            existing = await self.repository.get_tooth_diagnosis(data.id)
            if existing is None:
                raise NotFoundException(f"Tooth diagnosis {data.id} not found")
        else:
            matches = await self.repository.find_tooth_diagnoses(
                data.consultation_id, data.tooth_number, patient_id=data.patient_id
            )
            existing = matches[0] if matches else None

        if existing is not None:
            values["updated_at"] = utc_now()
            values["is_auto_created"] = False
            saved = await self.repository.update_tooth_diagnosis(existing.id, values)
            logger.info(f"Updated tooth {data.tooth_number} diagnosis {saved.id}")
            return saved

        saved = await self.repository.add_tooth_diagnosis(ToothDiagnosis(**values))
        logger.info(f"Charted tooth {data.tooth_number} for patient {data.patient_id}")
        return saved
