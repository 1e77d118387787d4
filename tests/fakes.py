import uuid
from datetime import datetime, time, timedelta
from typing import Any, Dict, List, Optional, Set

from models.appointment import Appointment, AppointmentStatus
from models.appointment_tooth import AppointmentTooth
from models.consultation import Consultation
from models.tooth_diagnosis import ToothDiagnosis, ToothStatus
from models.treatment import Treatment, TreatmentStatus
from utils.time_utils import ensure_utc, utc_now


class InjectedFailure(RuntimeError):
    pass


class InMemoryClinicalRepository:
    """ClinicalRepository kept in dicts; any method named in fail_on raises"""

    def __init__(self, fail_on: Optional[Set[str]] = None):
        self.fail_on: Set[str] = set(fail_on or ())
        self.appointments: Dict[uuid.UUID, Appointment] = {}
        self.treatments: Dict[uuid.UUID, Treatment] = {}
        self.tooth_diagnoses: Dict[uuid.UUID, ToothDiagnosis] = {}
        self.appointment_teeth: Dict[uuid.UUID, AppointmentTooth] = {}
        self.consultations: Dict[uuid.UUID, Consultation] = {}
        self.calls: List[str] = []
        self._order: Dict[uuid.UUID, int] = {}

    def _call(self, name: str):
        self.calls.append(name)
        if name in self.fail_on:
            raise InjectedFailure(f"injected failure in {name}")

    def _store(self, table: Dict[uuid.UUID, Any], obj: Any) -> Any:
        if obj.id is None:
            obj.id = uuid.uuid4()
        if getattr(obj, "created_at", None) is None:
            obj.created_at = utc_now()
        table[obj.id] = obj
        self._order[obj.id] = len(self._order)
        return obj

    @staticmethod
    def _patch(obj: Any, values: Dict[str, Any]) -> Any:
        for field, value in values.items():
            setattr(obj, field, value)
        return obj

    # Appointments

    async def get_appointment(self, appointment_id):
        self._call("get_appointment")
        return self.appointments.get(appointment_id)

    async def add_appointment(self, appointment):
        self._call("add_appointment")
        if appointment.status is None:
            appointment.status = AppointmentStatus.SCHEDULED
        return self._store(self.appointments, appointment)

    async def update_appointment(self, appointment_id, values):
        self._call("update_appointment")
        appointment = self.appointments.get(appointment_id)
        return self._patch(appointment, values) if appointment else None

    # Treatments

    async def get_treatment(self, treatment_id):
        self._call("get_treatment")
        return self.treatments.get(treatment_id)

    async def list_treatments_for_appointment(self, appointment_id):
        self._call("list_treatments_for_appointment")
        return [
            t for t in self.treatments.values() if t.appointment_id == appointment_id
        ]

    async def add_treatment(self, treatment):
        self._call("add_treatment")
        if treatment.status is None:
            treatment.status = TreatmentStatus.PENDING
        if treatment.total_visits is None:
            treatment.total_visits = 1
        if treatment.completed_visits is None:
            treatment.completed_visits = 0
        return self._store(self.treatments, treatment)

    async def update_treatment(self, treatment_id, values):
        self._call("update_treatment")
        treatment = self.treatments.get(treatment_id)
        return self._patch(treatment, values) if treatment else None

    # Tooth diagnoses

    async def get_tooth_diagnosis(self, diagnosis_id):
        self._call("get_tooth_diagnosis")
        return self.tooth_diagnoses.get(diagnosis_id)

    async def list_tooth_diagnoses_by_ids(self, diagnosis_ids):
        self._call("list_tooth_diagnoses_by_ids")
        return [self.tooth_diagnoses[i] for i in diagnosis_ids if i in self.tooth_diagnoses]

    async def find_tooth_diagnoses(self, consultation_id, tooth_number, patient_id=None):
        self._call("find_tooth_diagnoses")
        return [
            d
            for d in self.tooth_diagnoses.values()
            if d.consultation_id == consultation_id
            and d.tooth_number == tooth_number
            and (patient_id is None or d.patient_id == patient_id)
        ]

    def _newest_first(self, rows: List[ToothDiagnosis]) -> List[ToothDiagnosis]:
        return sorted(
            rows,
            key=lambda d: (
                ensure_utc(d.updated_at or d.created_at),
                self._order.get(d.id, 0),
            ),
            reverse=True,
        )

    async def find_latest_tooth_diagnosis(self, patient_id, tooth_number):
        self._call("find_latest_tooth_diagnosis")
        rows = self._newest_first(
            [
                d
                for d in self.tooth_diagnoses.values()
                if d.patient_id == patient_id and d.tooth_number == tooth_number
            ]
        )
        return rows[0] if rows else None

    async def list_patient_tooth_diagnoses(self, patient_id):
        self._call("list_patient_tooth_diagnoses")
        rows = self._newest_first(
            [d for d in self.tooth_diagnoses.values() if d.patient_id == patient_id]
        )
        return sorted(rows, key=lambda d: d.tooth_number)

    async def add_tooth_diagnosis(self, diagnosis):
        self._call("add_tooth_diagnosis")
        if diagnosis.follow_up_required is None:
            diagnosis.follow_up_required = False
        if diagnosis.is_auto_created is None:
            diagnosis.is_auto_created = False
        diagnosis = self._store(self.tooth_diagnoses, diagnosis)
        if diagnosis.updated_at is None:
            diagnosis.updated_at = diagnosis.created_at
        return diagnosis

    async def update_tooth_diagnosis(self, diagnosis_id, values):
        self._call("update_tooth_diagnosis")
        diagnosis = self.tooth_diagnoses.get(diagnosis_id)
        return self._patch(diagnosis, values) if diagnosis else None

    # Appointment teeth

    async def list_appointment_teeth(self, appointment_id):
        self._call("list_appointment_teeth")
        return sorted(
            (r for r in self.appointment_teeth.values() if r.appointment_id == appointment_id),
            key=lambda r: r.tooth_number,
        )

    async def add_appointment_teeth(self, rows):
        self._call("add_appointment_teeth")
        return [self._store(self.appointment_teeth, row) for row in rows]

    # Consultations

    async def get_consultation(self, consultation_id):
        self._call("get_consultation")
        return self.consultations.get(consultation_id)

    async def update_consultation(self, consultation_id, values):
        self._call("update_consultation")
        consultation = self.consultations.get(consultation_id)
        return self._patch(consultation, values) if consultation else None


class ClinicFactory:
    """Seeds an InMemoryClinicalRepository with one patient's records"""

    def __init__(self, repository: InMemoryClinicalRepository):
        self.repository = repository
        self.patient_id = uuid.uuid4()
        self.dentist_id = uuid.uuid4()
        self._day = datetime(2026, 3, 2, 9, 0)

    def consultation(self, **kwargs) -> Consultation:
        consultation = Consultation(
            patient_id=self.patient_id, dentist_id=self.dentist_id, **kwargs
        )
        return self.repository._store(self.repository.consultations, consultation)

    def appointment(self, days_from_now: int = 0, **kwargs) -> Appointment:
        when = self._day + timedelta(days=days_from_now)
        values = dict(
            patient_id=self.patient_id,
            dentist_id=self.dentist_id,
            scheduled_date=when.date(),
            scheduled_time=time(when.hour, when.minute),
            duration_minutes=60,
            appointment_type="treatment",
            status=AppointmentStatus.SCHEDULED,
        )
        values.update(kwargs)
        return self.repository._store(self.repository.appointments, Appointment(**values))

    def treatment(self, **kwargs) -> Treatment:
        values = dict(
            patient_id=self.patient_id,
            dentist_id=self.dentist_id,
            treatment_type="Composite Filling",
            status=TreatmentStatus.PENDING,
            total_visits=1,
            completed_visits=0,
        )
        values.update(kwargs)
        return self.repository._store(self.repository.treatments, Treatment(**values))

    def tooth(self, tooth_number: str, status=ToothStatus.HEALTHY, **kwargs) -> ToothDiagnosis:
        values = dict(
            patient_id=self.patient_id,
            tooth_number=tooth_number,
            status=status,
            follow_up_required=False,
            is_auto_created=False,
        )
        values.update(kwargs)
        diagnosis = self.repository._store(
            self.repository.tooth_diagnoses, ToothDiagnosis(**values)
        )
        if diagnosis.updated_at is None:
            diagnosis.updated_at = diagnosis.created_at
        return diagnosis

    def appointment_tooth(self, appointment: Appointment, tooth_number: str, **kwargs) -> AppointmentTooth:
        row = AppointmentTooth(
            appointment_id=appointment.id, tooth_number=tooth_number, **kwargs
        )
        return self.repository._store(self.repository.appointment_teeth, row)
