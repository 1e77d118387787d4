# src/core/dependencies.py
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from core.config import settings
from db.database import get_db
from services.appointment_lifecycle import AppointmentLifecycleCoordinator
from services.appointment_service import AppointmentService
from services.clinical_repository import SqlAlchemyClinicalRepository
from services.consultation_reconciler import ConsultationReconciler
from services.contextual_appointment_service import ContextualAppointmentService
from services.tooth_diagnosis_service import ToothDiagnosisService
from services.tooth_resolution import ToothResolutionChain
from services.treatment_service import TreatmentService


async def get_repository(
    db: AsyncSession = Depends(get_db),
) -> SqlAlchemyClinicalRepository:
    return SqlAlchemyClinicalRepository(db)


def get_resolution_chain(
    repository: SqlAlchemyClinicalRepository = Depends(get_repository),
) -> ToothResolutionChain:
    return ToothResolutionChain(
        repository, auto_create=settings.AUTO_CREATE_TOOTH_DIAGNOSES
    )


def get_lifecycle_coordinator(
    repository: SqlAlchemyClinicalRepository = Depends(get_repository),
    chain: ToothResolutionChain = Depends(get_resolution_chain),
) -> AppointmentLifecycleCoordinator:
    return AppointmentLifecycleCoordinator(
        repository,
        chain,
        ConsultationReconciler(repository),
        ordering_guard=settings.TOOTH_STATUS_ORDERING_GUARD,
    )


def get_appointment_service(
    repository: SqlAlchemyClinicalRepository = Depends(get_repository),
    coordinator: AppointmentLifecycleCoordinator = Depends(get_lifecycle_coordinator),
) -> AppointmentService:
    return AppointmentService(repository, coordinator, ConsultationReconciler(repository))


def get_contextual_appointment_service(
    repository: SqlAlchemyClinicalRepository = Depends(get_repository),
    chain: ToothResolutionChain = Depends(get_resolution_chain),
) -> ContextualAppointmentService:
    return ContextualAppointmentService(
        repository, chain, default_duration=settings.DEFAULT_APPOINTMENT_DURATION
    )


def get_treatment_service(
    repository: SqlAlchemyClinicalRepository = Depends(get_repository),
) -> TreatmentService:
    return TreatmentService(
        repository, default_total_visits=settings.DEFAULT_TOTAL_VISITS
    )


def get_tooth_diagnosis_service(
    repository: SqlAlchemyClinicalRepository = Depends(get_repository),
) -> ToothDiagnosisService:
    return ToothDiagnosisService(repository)
