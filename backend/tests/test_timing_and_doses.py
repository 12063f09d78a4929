from datetime import date, datetime, time

import pytest

from walnut.config import Settings
from walnut.schemas.prescription import MealTime, MedicationTime
from walnut.services.medications import (
    DoseStatus,
    MealRelation,
    MealTimeConfiguration,
    ScheduleMetrics,
    TimeSlot,
)


@pytest.mark.parametrize(
    ("hour", "slot"),
    [
        (6, TimeSlot.morning),
        (10, TimeSlot.morning),
        (11, TimeSlot.midday),
        (13, TimeSlot.midday),
        (14, TimeSlot.afternoon),
        (17, TimeSlot.evening),
        (20, TimeSlot.evening),
        (21, TimeSlot.night),
        (23, TimeSlot.night),
        (0, TimeSlot.night),
        (5, TimeSlot.night),
    ],
)
def test_time_slot_for_hour(hour, slot):
    assert TimeSlot.for_hour(hour) is slot


def test_time_slot_ranges_and_names():
    assert TimeSlot.night.time_range == (21, 6)
    assert TimeSlot.midday.display_name == "Midday"


def test_offsets_by_timing():
    config = MealTimeConfiguration()

    assert config.offset_minutes(MedicationTime.before) == -15
    assert config.offset_minutes(MedicationTime.after) == 30
    assert config.offset_minutes(None) == 0


def test_meal_relation_actual_time_uses_calendar_day():
    config = MealTimeConfiguration()
    relation = MealRelation.for_rule(MealTime.dinner, MedicationTime.after, config)

    actual = relation.calculate_actual_time(datetime(2024, 5, 2, 23, 59), config)

    assert actual == datetime(2024, 5, 2, 19, 30)
    assert relation.short_display_text == "After Dinner"


def test_meal_relation_without_timing_is_with_meal():
    config = MealTimeConfiguration()
    relation = MealRelation.for_rule(MealTime.bedtime, None, config)

    assert relation.calculate_actual_time(date(2024, 5, 2), config) == datetime(2024, 5, 2, 22, 0)
    assert relation.short_display_text == "With Bedtime"


def test_meal_times_from_settings():
    settings = Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        breakfast_time="07:15",
        after_meal_offset_minutes=45,
    )

    config = MealTimeConfiguration.from_settings(settings)

    assert config.time_for(MealTime.breakfast) == time(7, 15)
    assert config.time_for(MealTime.lunch) == time(13, 0)
    assert config.offset_minutes(MedicationTime.after) == 45


def test_dose_status_flags():
    assert DoseStatus.taken.is_completed is True
    assert DoseStatus.skipped.is_completed is True
    assert DoseStatus.missed.is_completed is False
    assert DoseStatus.missed.requires_attention is True
    assert DoseStatus.scheduled.is_terminal is False
    assert all(status.is_terminal for status in (DoseStatus.taken, DoseStatus.missed, DoseStatus.skipped))


def test_schedule_metrics_empty():
    metrics = ScheduleMetrics.empty()

    assert metrics.total_doses == 0
    assert metrics.adherence_rate == 0.0
