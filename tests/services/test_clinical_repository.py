import uuid
from datetime import date, time, timedelta

from models.appointment import Appointment, AppointmentStatus, AppointmentType
from models.appointment_tooth import AppointmentTooth
from models.consultation import Consultation
from models.tooth_diagnosis import ToothDiagnosis, ToothStatus
from models.treatment import Treatment, TreatmentStatus
from services.clinical_repository import SqlAlchemyClinicalRepository
from utils.time_utils import utc_now

PATIENT_ID = uuid.uuid4()
DENTIST_ID = uuid.uuid4()


async def seed_consultation(repository: SqlAlchemyClinicalRepository) -> Consultation:
    consultation = Consultation(patient_id=PATIENT_ID, dentist_id=DENTIST_ID)
    return await repository.consultations.create(repository.db, consultation)


async def test_appointment_round_trip(sql_repository: SqlAlchemyClinicalRepository) -> None:
    appointment = await sql_repository.add_appointment(
        Appointment(
            patient_id=PATIENT_ID,
            dentist_id=DENTIST_ID,
            scheduled_date=date(2026, 3, 9),
            scheduled_time=time(10, 0),
            appointment_type=AppointmentType.CONSULTATION,
        )
    )

    loaded = await sql_repository.get_appointment(appointment.id)

    assert loaded.status == AppointmentStatus.SCHEDULED
    assert loaded.appointment_type == AppointmentType.CONSULTATION
    assert loaded.duration_minutes == 60
    assert loaded.scheduled_at.hour == 10

    updated = await sql_repository.update_appointment(
        appointment.id, {"status": AppointmentStatus.CONFIRMED}
    )
    assert updated.status == AppointmentStatus.CONFIRMED


async def test_treatment_defaults_and_listing(sql_repository: SqlAlchemyClinicalRepository) -> None:
    appointment = await sql_repository.add_appointment(
        Appointment(
            patient_id=PATIENT_ID,
            dentist_id=DENTIST_ID,
            scheduled_date=date(2026, 3, 9),
            scheduled_time=time(10, 0),
            appointment_type=AppointmentType.FIRST_VISIT,
        )
    )
    treatment = await sql_repository.add_treatment(
        Treatment(
            patient_id=PATIENT_ID,
            dentist_id=DENTIST_ID,
            appointment_id=appointment.id,
            treatment_type="Scaling",
        )
    )

    listed = await sql_repository.list_treatments_for_appointment(appointment.id)

    assert [t.id for t in listed] == [treatment.id]
    assert listed[0].status == TreatmentStatus.PENDING
    assert listed[0].total_visits == 1
    assert listed[0].completed_visits == 0


async def test_tooth_color_follows_status(sql_repository: SqlAlchemyClinicalRepository) -> None:
    diagnosis = await sql_repository.add_tooth_diagnosis(
        ToothDiagnosis(
            patient_id=PATIENT_ID,
            tooth_number="11",
            status=ToothStatus.CARIES,
            color_code="#000000",
        )
    )

    assert diagnosis.color_code == "#ef4444"
    assert diagnosis.follow_up_required is False
    assert diagnosis.is_auto_created is False

    updated = await sql_repository.update_tooth_diagnosis(
        diagnosis.id, {"status": ToothStatus.ROOT_CANAL}
    )
    reloaded = await sql_repository.get_tooth_diagnosis(diagnosis.id)

    assert updated.color_code == "#a855f7"
    assert reloaded.status == ToothStatus.ROOT_CANAL


async def test_tooth_lookups(sql_repository: SqlAlchemyClinicalRepository) -> None:
    consultation = await seed_consultation(sql_repository)
    charted = await sql_repository.add_tooth_diagnosis(
        ToothDiagnosis(
            patient_id=PATIENT_ID,
            consultation_id=consultation.id,
            tooth_number="24",
            status=ToothStatus.CARIES,
        )
    )
    loose = await sql_repository.add_tooth_diagnosis(
        ToothDiagnosis(patient_id=PATIENT_ID, tooth_number="24", status=ToothStatus.HEALTHY)
    )
    await sql_repository.update_tooth_diagnosis(
        charted.id, {"updated_at": utc_now() + timedelta(minutes=5)}
    )

    in_consultation = await sql_repository.find_tooth_diagnoses(consultation.id, "24")
    unlinked = await sql_repository.find_tooth_diagnoses(None, "24", patient_id=PATIENT_ID)
    latest = await sql_repository.find_latest_tooth_diagnosis(PATIENT_ID, "24")
    by_ids = await sql_repository.list_tooth_diagnoses_by_ids([charted.id, loose.id])

    assert [d.id for d in in_consultation] == [charted.id]
    assert [d.id for d in unlinked] == [loose.id]
    assert latest.id == charted.id
    assert {d.id for d in by_ids} == {charted.id, loose.id}
    assert await sql_repository.find_latest_tooth_diagnosis(PATIENT_ID, "25") is None


async def test_appointment_teeth_and_consultation_data(
    sql_repository: SqlAlchemyClinicalRepository,
) -> None:
    consultation = await seed_consultation(sql_repository)
    appointment = await sql_repository.add_appointment(
        Appointment(
            patient_id=PATIENT_ID,
            dentist_id=DENTIST_ID,
            scheduled_date=date(2026, 3, 9),
            scheduled_time=time(10, 0),
            appointment_type=AppointmentType.TREATMENT,
            consultation_id=consultation.id,
        )
    )
    await sql_repository.add_appointment_teeth(
        [
            AppointmentTooth(appointment_id=appointment.id, tooth_number="17"),
            AppointmentTooth(appointment_id=appointment.id, tooth_number="16"),
        ]
    )
    await sql_repository.update_consultation(
        consultation.id, {"clinical_data": {"treatments": [{"id": "x", "status": "Planned"}]}}
    )

    rows = await sql_repository.list_appointment_teeth(appointment.id)
    reloaded = await sql_repository.get_consultation(consultation.id)

    assert [r.tooth_number for r in rows] == ["16", "17"]
    assert reloaded.clinical_data["treatments"][0]["status"] == "Planned"
