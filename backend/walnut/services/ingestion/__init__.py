"""Ingestion of parsed documents into journal entities."""

from walnut.services.ingestion.base import IngestionResult, IngestionService
from walnut.services.ingestion.blood_reports import BloodReportIngestionService
from walnut.services.ingestion.prescriptions import PrescriptionIngestionService

__all__ = [
    "BloodReportIngestionService",
    "IngestionResult",
    "IngestionService",
    "PrescriptionIngestionService",
]
