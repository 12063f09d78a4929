"""Meal-relative timing rules and the day's time slots."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import StrEnum
from typing import TYPE_CHECKING, Optional

from walnut.schemas.prescription import MealTime, MedicationTime

if TYPE_CHECKING:
    from walnut.config import Settings

DEFAULT_MEAL_TIMES: dict[MealTime, time] = {
    MealTime.breakfast: time(8, 0),
    MealTime.lunch: time(13, 0),
    MealTime.dinner: time(19, 0),
    MealTime.bedtime: time(22, 0),
}


def as_date(day: date | datetime) -> date:
    return day.date() if isinstance(day, datetime) else day


class TimeSlot(StrEnum):
    """Coarse buckets of the day used to group doses for display."""

    morning = "morning"
    midday = "midday"
    afternoon = "afternoon"
    evening = "evening"
    night = "night"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def time_range(self) -> tuple[int, int]:
        """(start hour inclusive, end hour exclusive); night wraps past midnight."""
        match self:
            case TimeSlot.morning:
                return 6, 11
            case TimeSlot.midday:
                return 11, 14
            case TimeSlot.afternoon:
                return 14, 17
            case TimeSlot.evening:
                return 17, 21
            case TimeSlot.night:
                return 21, 6

    def contains_hour(self, hour: int) -> bool:
        start, end = self.time_range
        if start > end:
            return hour >= start or hour < end
        return start <= hour < end

    @classmethod
    def for_hour(cls, hour: int) -> "TimeSlot":
        for slot in cls:
            if slot.contains_hour(hour):
                return slot
        return cls.morning


@dataclass(frozen=True)
class MealTimeConfiguration:
    """Clock time of each meal plus the before/after offsets.

    Passed explicitly to the schedule service so tests and users can supply
    their own meal table.
    """

    meal_times: Mapping[MealTime, time] = field(
        default_factory=lambda: dict(DEFAULT_MEAL_TIMES)
    )
    before_offset_minutes: int = 15
    after_offset_minutes: int = 30

    @classmethod
    def from_settings(cls, settings: Optional["Settings"] = None) -> "MealTimeConfiguration":
        if settings is None:
            from walnut.config import settings
        return cls(
            meal_times={
                MealTime.breakfast: settings.breakfast_time,
                MealTime.lunch: settings.lunch_time,
                MealTime.dinner: settings.dinner_time,
                MealTime.bedtime: settings.bedtime_time,
            },
            before_offset_minutes=settings.before_meal_offset_minutes,
            after_offset_minutes=settings.after_meal_offset_minutes,
        )

    def time_for(self, meal_time: MealTime) -> time:
        return self.meal_times.get(meal_time, DEFAULT_MEAL_TIMES[MealTime.breakfast])

    def scheduled_time(self, meal_time: MealTime, day: date | datetime) -> datetime:
        """The meal's clock time on the given calendar day."""
        clock = self.time_for(meal_time)
        return datetime.combine(as_date(day), time(clock.hour, clock.minute))

    def offset_minutes(self, timing: Optional[MedicationTime]) -> int:
        match timing:
            case MedicationTime.before:
                return -self.before_offset_minutes
            case MedicationTime.after:
                return self.after_offset_minutes
            case None:
                return 0


@dataclass(frozen=True)
class MealRelation:
    """Anchors a dose to a meal with a signed offset in minutes."""

    meal_time: MealTime
    timing: Optional[MedicationTime]
    offset_minutes: int

    @classmethod
    def for_rule(
        cls,
        meal_time: MealTime,
        timing: Optional[MedicationTime],
        config: MealTimeConfiguration,
    ) -> "MealRelation":
        return cls(
            meal_time=meal_time,
            timing=timing,
            offset_minutes=config.offset_minutes(timing),
        )

    def calculate_actual_time(
        self, day: date | datetime, config: MealTimeConfiguration
    ) -> datetime:
        meal_time = config.scheduled_time(self.meal_time, day)
        return meal_time + timedelta(minutes=self.offset_minutes)

    @property
    def short_display_text(self) -> str:
        if self.offset_minutes < 0:
            prefix = "Before"
        elif self.offset_minutes > 0:
            prefix = "After"
        else:
            prefix = "With"
        return f"{prefix} {self.meal_time.display_name}"
