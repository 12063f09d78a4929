from walnut.models.base import Base, TimestampMixin
from walnut.models.blood_report import BloodReport, BloodTestResult
from walnut.models.medical_case import MedicalCase
from walnut.models.medication import Medication
from walnut.models.patient import Patient
from walnut.models.prescription import Prescription

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Core Models
    "Patient",
    "MedicalCase",
    "BloodReport",
    "BloodTestResult",
    "Prescription",
    "Medication",
]
