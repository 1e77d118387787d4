"""
Models initialization file; importing the package registers every table
"""

from .consultation import Consultation
from .appointment import (
    Appointment,
    AppointmentStatus,
    AppointmentType,
    CONTEXTUAL_APPOINTMENT_TYPES,
)
from .tooth_diagnosis import ToothDiagnosis, ToothStatus, TOOTH_STATUS_COLORS
from .treatment import Treatment, TreatmentStatus
from .appointment_tooth import AppointmentTooth

from sqlalchemy.orm import configure_mappers

# Configure all mappers
configure_mappers()

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "AppointmentType",
    "AppointmentTooth",
    "CONTEXTUAL_APPOINTMENT_TYPES",
    "Consultation",
    "TOOTH_STATUS_COLORS",
    "ToothDiagnosis",
    "ToothStatus",
    "Treatment",
    "TreatmentStatus",
]
