# src/routes/__init__.py
from .appointments import router as appointments_router
from .treatments import router as treatments_router
from .tooth_diagnoses import router as tooth_diagnoses_router

__all__ = [
    "appointments_router",
    "treatments_router",
    "tooth_diagnoses_router",
]
