# src/routes/appointments.py
from fastapi import APIRouter, Depends, status
from typing import Any
from uuid import UUID
from core.dependencies import (
    get_appointment_service,
    get_contextual_appointment_service,
    get_lifecycle_coordinator,
)
from schemas.appointment_schemas import (
    AppointmentDetail,
    AppointmentPublic,
    AppointmentStatusEvent,
    AppointmentStatusUpdate,
    ContextualAppointmentCreate,
)
from schemas.lifecycle_schemas import LifecycleResult
from services.appointment_lifecycle import AppointmentLifecycleCoordinator
from services.appointment_service import AppointmentService
from services.contextual_appointment_service import ContextualAppointmentService

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.post(
    "/contextual",
    response_model=AppointmentPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Create contextual appointment",
    description="Book an appointment linked to its consultation, treatment and teeth",
)
async def create_contextual_appointment(
    appointment_data: ContextualAppointmentCreate,
    service: ContextualAppointmentService = Depends(get_contextual_appointment_service),
) -> Any:
    """Create contextual appointment endpoint"""
    appointment = await service.create_appointment(appointment_data)
    return AppointmentPublic.model_validate(appointment)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentDetail,
    summary="Get appointment",
    description="Get appointment details and linked teeth by ID",
)
async def get_appointment(
    appointment_id: UUID,
    service: AppointmentService = Depends(get_appointment_service),
) -> Any:
    """Get appointment by ID endpoint"""
    return await service.get_appointment_detail(appointment_id)


@router.patch(
    "/{appointment_id}/status",
    response_model=LifecycleResult,
    summary="Update appointment status",
    description="Move the appointment to a new status and sync treatments and teeth",
)
async def update_appointment_status(
    appointment_id: UUID,
    status_data: AppointmentStatusUpdate,
    service: AppointmentService = Depends(get_appointment_service),
) -> Any:
    """Update appointment status endpoint"""
    return await service.update_status(
        appointment_id, status_data.status, status_data.notes
    )


@router.post(
    "/{appointment_id}/status-events",
    response_model=LifecycleResult,
    summary="Apply appointment status event",
    description="Sync treatments and teeth for a status the appointment already has",
)
async def apply_status_event(
    appointment_id: UUID,
    event: AppointmentStatusEvent,
    coordinator: AppointmentLifecycleCoordinator = Depends(get_lifecycle_coordinator),
) -> Any:
    """Appointment status event endpoint"""
    return await coordinator.apply_appointment_status(appointment_id, event.status)


@router.post(
    "/{appointment_id}/complete-treatment",
    response_model=LifecycleResult,
    summary="Complete linked treatment",
    description="Mark the appointment's treatment as fully done",
)
async def complete_treatment(
    appointment_id: UUID,
    service: AppointmentService = Depends(get_appointment_service),
) -> Any:
    """Complete treatment endpoint"""
    return await service.complete_treatment(appointment_id)
