# src/services/clinical_repository.py
from typing import Any, Dict, List, Optional, Protocol, Sequence
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from models.appointment import Appointment
from models.appointment_tooth import AppointmentTooth
from models.consultation import Consultation
from models.tooth_diagnosis import ToothDiagnosis
from models.treatment import Treatment
from .base_service import BaseService


class ClinicalRepository(Protocol):
    """Reads and single-row writes the synchronization engine depends on"""

    async def get_appointment(self, appointment_id: UUID) -> Optional[Appointment]: ...

    async def add_appointment(self, appointment: Appointment) -> Appointment: ...

    async def update_appointment(
        self, appointment_id: UUID, values: Dict[str, Any]
    ) -> Optional[Appointment]: ...

    async def get_treatment(self, treatment_id: UUID) -> Optional[Treatment]: ...

    async def list_treatments_for_appointment(
        self, appointment_id: UUID
    ) -> List[Treatment]: ...

    async def add_treatment(self, treatment: Treatment) -> Treatment: ...

    async def update_treatment(
        self, treatment_id: UUID, values: Dict[str, Any]
    ) -> Optional[Treatment]: ...

    async def get_tooth_diagnosis(
        self, diagnosis_id: UUID
    ) -> Optional[ToothDiagnosis]: ...

    async def list_tooth_diagnoses_by_ids(
        self, diagnosis_ids: Sequence[UUID]
    ) -> List[ToothDiagnosis]: ...

    async def find_tooth_diagnoses(
        self,
        consultation_id: UUID,
        tooth_number: str,
        patient_id: Optional[UUID] = None,
    ) -> List[ToothDiagnosis]: ...

    async def find_latest_tooth_diagnosis(
        self, patient_id: UUID, tooth_number: str
    ) -> Optional[ToothDiagnosis]: ...

    async def list_patient_tooth_diagnoses(
        self, patient_id: UUID
    ) -> List[ToothDiagnosis]: ...

    async def add_tooth_diagnosis(self, diagnosis: ToothDiagnosis) -> ToothDiagnosis: ...

    async def update_tooth_diagnosis(
        self, diagnosis_id: UUID, values: Dict[str, Any]
    ) -> Optional[ToothDiagnosis]: ...

    async def list_appointment_teeth(
        self, appointment_id: UUID
    ) -> List[AppointmentTooth]: ...

    async def add_appointment_teeth(
        self, rows: Sequence[AppointmentTooth]
    ) -> List[AppointmentTooth]: ...

    async def get_consultation(
        self, consultation_id: UUID
    ) -> Optional[Consultation]: ...

    async def update_consultation(
        self, consultation_id: UUID, values: Dict[str, Any]
    ) -> Optional[Consultation]: ...


class SqlAlchemyClinicalRepository:
    """ClinicalRepository over one AsyncSession"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.appointments = BaseService(Appointment)
        self.treatments = BaseService(Treatment)
        self.tooth_diagnoses = BaseService(ToothDiagnosis)
        self.appointment_teeth = BaseService(AppointmentTooth)
        self.consultations = BaseService(Consultation)

    # Appointments

    async def get_appointment(self, appointment_id):
        return await self.appointments.get(self.db, appointment_id)

    async def add_appointment(self, appointment):
        return await self.appointments.create(self.db, appointment)

    async def update_appointment(self, appointment_id, values):
        return await self.appointments.update(self.db, appointment_id, values)

    # Treatments

    async def get_treatment(self, treatment_id):
        return await self.treatments.get(self.db, treatment_id)

    async def list_treatments_for_appointment(self, appointment_id):
        return await self.treatments.get_multi(
            self.db,
            filters={"appointment_id": appointment_id},
            order_by=[Treatment.created_at],
        )

    async def add_treatment(self, treatment):
        return await self.treatments.create(self.db, treatment)

    async def update_treatment(self, treatment_id, values):
        return await self.treatments.update(self.db, treatment_id, values)

    # Tooth diagnoses

    async def get_tooth_diagnosis(self, diagnosis_id):
        return await self.tooth_diagnoses.get(self.db, diagnosis_id)

    async def list_tooth_diagnoses_by_ids(self, diagnosis_ids):
        return await self.tooth_diagnoses.get_by_ids(self.db, list(diagnosis_ids))

    async def find_tooth_diagnoses(self, consultation_id, tooth_number, patient_id=None):
        filters = {"consultation_id": consultation_id, "tooth_number": tooth_number}
        if patient_id is not None:
            filters["patient_id"] = patient_id
        return await self.tooth_diagnoses.get_multi(self.db, filters=filters)

    async def find_latest_tooth_diagnosis(self, patient_id, tooth_number):
        rows = await self.tooth_diagnoses.get_multi(
            self.db,
            filters={"patient_id": patient_id, "tooth_number": tooth_number},
            order_by=[
                ToothDiagnosis.updated_at.desc(),
                ToothDiagnosis.created_at.desc(),
            ],
            limit=1,
        )
        return rows[0] if rows else None

    async def list_patient_tooth_diagnoses(self, patient_id):
        return await self.tooth_diagnoses.get_multi(
            self.db,
            filters={"patient_id": patient_id},
            order_by=[
                ToothDiagnosis.tooth_number,
                ToothDiagnosis.updated_at.desc(),
                ToothDiagnosis.created_at.desc(),
            ],
        )

    async def add_tooth_diagnosis(self, diagnosis):
        return await self.tooth_diagnoses.create(self.db, diagnosis)

    async def update_tooth_diagnosis(self, diagnosis_id, values):
        return await self.tooth_diagnoses.update(self.db, diagnosis_id, values)

    # Appointment teeth

    async def list_appointment_teeth(self, appointment_id):
        return await self.appointment_teeth.get_multi(
            self.db,
            filters={"appointment_id": appointment_id},
            order_by=[AppointmentTooth.tooth_number],
        )

    async def add_appointment_teeth(self, rows):
        return await self.appointment_teeth.create_many(self.db, list(rows))

    # Consultations

    async def get_consultation(self, consultation_id):
        return await self.consultations.get(self.db, consultation_id)

    async def update_consultation(self, consultation_id, values):
        return await self.consultations.update(self.db, consultation_id, values)
