# src/routes/tooth_diagnoses.py
from fastapi import APIRouter, Depends
from typing import Any
from uuid import UUID
from core.dependencies import get_tooth_diagnosis_service
from schemas.tooth_diagnosis_schemas import (
    ToothChart,
    ToothDiagnosisPublic,
    ToothDiagnosisSave,
    ToothStats,
)
from services.tooth_diagnosis_service import ToothDiagnosisService

router = APIRouter(prefix="/tooth-diagnoses", tags=["tooth diagnoses"])


@router.get(
    "/patients/{patient_id}/chart",
    response_model=ToothChart,
    summary="Get tooth chart",
    description="Latest diagnosis for every charted tooth of a patient",
)
async def get_patient_tooth_chart(
    patient_id: UUID,
    service: ToothDiagnosisService = Depends(get_tooth_diagnosis_service),
) -> Any:
    return await service.get_patient_tooth_chart(patient_id)


@router.get(
    "/patients/{patient_id}/stats",
    response_model=ToothStats,
    summary="Get tooth statistics",
)
async def get_patient_tooth_stats(
    patient_id: UUID,
    service: ToothDiagnosisService = Depends(get_tooth_diagnosis_service),
) -> Any:
    return await service.get_patient_tooth_stats(patient_id)


@router.put(
    "",
    response_model=ToothDiagnosisPublic,
    summary="Save tooth diagnosis",
    description="Create or update the diagnosis for one tooth",
)
async def save_tooth_diagnosis(
    data: ToothDiagnosisSave,
    service: ToothDiagnosisService = Depends(get_tooth_diagnosis_service),
) -> Any:
    return ToothDiagnosisPublic.model_validate(await service.save_tooth_diagnosis(data))


@router.get(
    "/{diagnosis_id}",
    response_model=ToothDiagnosisPublic,
    summary="Get tooth diagnosis",
)
async def get_tooth_diagnosis(
    diagnosis_id: UUID,
    service: ToothDiagnosisService = Depends(get_tooth_diagnosis_service),
) -> Any:
    return ToothDiagnosisPublic.model_validate(
        await service.get_tooth_diagnosis(diagnosis_id)
    )
