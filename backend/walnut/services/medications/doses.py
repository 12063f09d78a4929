"""Per-day dose instances and their summary metrics."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

from walnut.services.medications.timing import MealRelation, TimeSlot

if TYPE_CHECKING:
    from walnut.models import Medication


class DoseStatus(StrEnum):
    scheduled = "scheduled"
    taken = "taken"
    missed = "missed"
    skipped = "skipped"

    @property
    def is_completed(self) -> bool:
        """Whether the user acted on the dose."""
        match self:
            case DoseStatus.taken | DoseStatus.skipped:
                return True
            case DoseStatus.scheduled | DoseStatus.missed:
                return False

    @property
    def requires_attention(self) -> bool:
        return self is DoseStatus.missed

    @property
    def is_terminal(self) -> bool:
        return self is not DoseStatus.scheduled


@dataclass(frozen=True)
class ScheduledDose:
    """One concrete administration of a medication on a given day."""

    medication: "Medication"
    scheduled_time: datetime
    time_slot: TimeSlot
    meal_relation: Optional[MealRelation] = None
    dosage: Optional[str] = None
    status: DoseStatus = DoseStatus.scheduled
    actual_taken_time: Optional[datetime] = None
    id: UUID = field(default_factory=uuid4)

    @property
    def display_time(self) -> str:
        return self.scheduled_time.strftime("%H:%M")

    def time_until_due(self, now: datetime) -> timedelta:
        """Negative once the dose is past due."""
        return self.scheduled_time - now

    def is_overdue(self, now: datetime) -> bool:
        return self.status is DoseStatus.scheduled and self.scheduled_time < now

    def is_upcoming(self, now: datetime, within_hours: float) -> bool:
        return (
            self.status is DoseStatus.scheduled
            and now <= self.scheduled_time <= now + timedelta(hours=within_hours)
        )

    def is_due_soon(self, now: datetime, minutes: int = 30) -> bool:
        remaining = self.time_until_due(now)
        return timedelta(0) < remaining <= timedelta(minutes=minutes)


@dataclass(frozen=True)
class ScheduleMetrics:
    total_doses: int
    taken_doses: int
    overdue_doses: int
    upcoming_doses: int

    @classmethod
    def empty(cls) -> "ScheduleMetrics":
        return cls(total_doses=0, taken_doses=0, overdue_doses=0, upcoming_doses=0)

    @property
    def adherence_rate(self) -> float:
        if not self.total_doses:
            return 0.0
        return self.taken_doses / self.total_doses
