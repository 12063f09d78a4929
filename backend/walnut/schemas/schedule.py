"""Response schemas for the daily medication schedule."""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from pydantic import BaseModel

if TYPE_CHECKING:
    from walnut.services.medications import ScheduledDose, ScheduleMetrics


class ScheduledDoseResponse(BaseModel):
    id: UUID
    medication_id: Optional[int] = None
    medication_name: str
    scheduled_time: datetime
    display_time: str
    time_slot: str
    meal_relation: Optional[str] = None
    dosage: Optional[str] = None
    status: str
    actual_taken_time: Optional[datetime] = None
    is_overdue: bool = False
    is_due_soon: bool = False

    @classmethod
    def from_dose(
        cls, dose: "ScheduledDose", now: datetime, due_soon_minutes: int = 30
    ) -> "ScheduledDoseResponse":
        return cls(
            id=dose.id,
            medication_id=dose.medication.id,
            medication_name=dose.medication.name,
            scheduled_time=dose.scheduled_time,
            display_time=dose.display_time,
            time_slot=dose.time_slot.value,
            meal_relation=dose.meal_relation.short_display_text if dose.meal_relation else None,
            dosage=dose.dosage,
            status=dose.status.value,
            actual_taken_time=dose.actual_taken_time,
            is_overdue=dose.is_overdue(now),
            is_due_soon=dose.is_due_soon(now, due_soon_minutes),
        )


class ScheduleMetricsResponse(BaseModel):
    total_doses: int
    taken_doses: int
    overdue_doses: int
    upcoming_doses: int
    adherence_rate: float

    @classmethod
    def from_metrics(cls, metrics: "ScheduleMetrics") -> "ScheduleMetricsResponse":
        return cls(
            total_doses=metrics.total_doses,
            taken_doses=metrics.taken_doses,
            overdue_doses=metrics.overdue_doses,
            upcoming_doses=metrics.upcoming_doses,
            adherence_rate=metrics.adherence_rate,
        )


class TimeSlotResponse(BaseModel):
    time_slot: str
    display_name: str
    doses: list[ScheduledDoseResponse] = []


class DailyScheduleResponse(BaseModel):
    """Doses of one day grouped by time slot, plus the day's metrics."""

    patient_id: int
    day: date
    slots: list[TimeSlotResponse] = []
    doses: list[ScheduledDoseResponse] = []
    next_dose: Optional[ScheduledDoseResponse] = None
    metrics: ScheduleMetricsResponse
