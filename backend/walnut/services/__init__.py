"""Domain services for the health journal."""

from walnut.services.biomarkers import BiomarkerEngine
from walnut.services.ingestion import (
    BloodReportIngestionService,
    IngestionResult,
    PrescriptionIngestionService,
)
from walnut.services.medications import MedicationScheduleService
from walnut.services.repositories import (
    HealthDataRepository,
    InMemoryHealthDataRepository,
    SQLHealthDataRepository,
)

__all__ = [
    "BiomarkerEngine",
    "BloodReportIngestionService",
    "HealthDataRepository",
    "InMemoryHealthDataRepository",
    "IngestionResult",
    "MedicationScheduleService",
    "PrescriptionIngestionService",
    "SQLHealthDataRepository",
]
