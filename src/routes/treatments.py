# src/routes/treatments.py
from fastapi import APIRouter, Depends, Query, status
from typing import Any, List
from uuid import UUID
from core.dependencies import get_treatment_service
from schemas.treatment_schemas import TreatmentLink, TreatmentPublic
from services.treatment_service import TreatmentService
from utils.logger import setup_logger

logger = setup_logger("TREATMENT_ROUTES")

router = APIRouter(prefix="/treatments", tags=["treatments"])


@router.get(
    "",
    response_model=List[TreatmentPublic],
    summary="List treatments",
    description="Get the treatments linked to an appointment",
)
async def list_treatments(
    appointment_id: UUID = Query(..., description="Filter by appointment ID"),
    service: TreatmentService = Depends(get_treatment_service),
) -> Any:
    treatments = await service.list_for_appointment(appointment_id)
    return [TreatmentPublic.model_validate(t) for t in treatments]


@router.post(
    "/link",
    response_model=TreatmentPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Link treatment",
    description="Create a treatment for an existing appointment",
)
async def link_treatment(
    payload: TreatmentLink,
    service: TreatmentService = Depends(get_treatment_service),
) -> Any:
    treatment = await service.link_treatment(payload)
    logger.info(f"Treatment {treatment.id} linked via API")
    return TreatmentPublic.model_validate(treatment)


@router.get(
    "/{treatment_id}",
    response_model=TreatmentPublic,
    summary="Get treatment",
    description="Get treatment details by ID",
)
async def get_treatment(
    treatment_id: UUID,
    service: TreatmentService = Depends(get_treatment_service),
) -> Any:
    return TreatmentPublic.model_validate(await service.get_treatment(treatment_id))
