"""Daily medication schedules built from meal-relative frequency rules."""

from walnut.services.medications.doses import DoseStatus, ScheduledDose, ScheduleMetrics
from walnut.services.medications.errors import (
    MedicationScheduleError,
    ScheduleErrorKind,
    ScheduleResult,
)
from walnut.services.medications.schedule import (
    DailySchedule,
    MedicationScheduleService,
    group_by_time_slot,
    parse_dosage_quantity,
)
from walnut.services.medications.timing import (
    DEFAULT_MEAL_TIMES,
    MealRelation,
    MealTimeConfiguration,
    TimeSlot,
)

__all__ = [
    "DEFAULT_MEAL_TIMES",
    "DailySchedule",
    "DoseStatus",
    "MealRelation",
    "MealTimeConfiguration",
    "MedicationScheduleError",
    "MedicationScheduleService",
    "ScheduleErrorKind",
    "ScheduleMetrics",
    "ScheduleResult",
    "ScheduledDose",
    "TimeSlot",
    "group_by_time_slot",
    "parse_dosage_quantity",
]
