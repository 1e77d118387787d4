# src/schemas/__init__.py
from .base_schemas import *
from .appointment_schemas import *
from .treatment_schemas import *
from .tooth_diagnosis_schemas import *
from .lifecycle_schemas import *
