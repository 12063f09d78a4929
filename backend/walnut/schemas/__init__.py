"""Pydantic schemas for parsed documents and API responses."""

from walnut.schemas.biomarkers import (
    AggregatedBiomarkerResponse,
    BiomarkerDataPointResponse,
    BiomarkerTrendsResponse,
)
from walnut.schemas.blood_report import ParsedBloodReport, ParsedBloodTestResult
from walnut.schemas.ingestion import IngestionResultResponse
from walnut.schemas.prescription import (
    MealTime,
    MedicationSchedule,
    MedicationTime,
    ParsedMedication,
    ParsedPrescription,
)
from walnut.schemas.schedule import (
    DailyScheduleResponse,
    ScheduledDoseResponse,
    ScheduleMetricsResponse,
    TimeSlotResponse,
)

__all__ = [
    "AggregatedBiomarkerResponse",
    "BiomarkerDataPointResponse",
    "BiomarkerTrendsResponse",
    "DailyScheduleResponse",
    "IngestionResultResponse",
    "MealTime",
    "MedicationSchedule",
    "MedicationTime",
    "ParsedBloodReport",
    "ParsedBloodTestResult",
    "ParsedMedication",
    "ParsedPrescription",
    "ScheduleMetricsResponse",
    "ScheduledDoseResponse",
    "TimeSlotResponse",
]
