from datetime import date, datetime, time, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from walnut.services.medications import (
    DoseStatus,
    MealTimeConfiguration,
    MedicationScheduleService,
    ScheduleErrorKind,
    TimeSlot,
    parse_dosage_quantity,
)


@pytest.fixture()
def service(meal_times, clock, schedule_day):
    return MedicationScheduleService(
        meal_times=meal_times,
        clock=clock,
        current_date=schedule_day,
        upcoming_window_hours=2,
    )


def test_metformin_before_breakfast_is_quarter_to_eight(service, make_medication):
    result = service.update_medications([make_medication()])

    assert result.success
    [dose] = service.todays_doses
    assert dose.scheduled_time == datetime(2024, 3, 10, 7, 45)
    assert dose.time_slot is TimeSlot.morning
    assert dose.status is DoseStatus.scheduled
    assert dose.dosage == "500mg"
    assert dose.display_time == "07:45"
    assert dose.meal_relation.short_display_text == "Before Breakfast"
    assert service.doses_for(TimeSlot.morning) == [dose]


def test_one_dose_per_rule_sorted_by_time(service, make_medication):
    medication = make_medication(
        frequency=[
            {"meal_time": "bedtime"},
            {"meal_time": "dinner", "timing": "after"},
            {"meal_time": "lunch", "timing": "before", "dosage": "250mg"},
        ]
    )

    service.update_medications([medication])

    times = [dose.scheduled_time.time() for dose in service.todays_doses]
    assert times == [time(12, 45), time(19, 30), time(22, 0)]
    slots = [dose.time_slot for dose in service.todays_doses]
    assert slots == [TimeSlot.midday, TimeSlot.evening, TimeSlot.night]
    assert service.todays_doses[0].dosage == "250mg"
    assert service.todays_doses[1].dosage == "500mg"


def test_camel_case_rules_are_decoded(service, make_medication):
    medication = make_medication(frequency=[{"mealTime": "lunch", "timing": "after"}])

    service.update_medications([medication])

    [dose] = service.todays_doses
    assert dose.scheduled_time == datetime(2024, 3, 10, 13, 30)


def test_custom_meal_times_are_used(clock, schedule_day, make_medication):
    config = MealTimeConfiguration(
        meal_times={**MealTimeConfiguration().meal_times, "breakfast": time(6, 30)},
        before_offset_minutes=10,
    )
    service = MedicationScheduleService(meal_times=config, clock=clock, current_date=schedule_day)

    service.update_medications([make_medication()])

    assert service.todays_doses[0].scheduled_time == datetime(2024, 3, 10, 6, 20)


def test_bedtime_after_lands_in_night_slot(service, make_medication):
    service.update_medications(
        [make_medication(frequency=[{"meal_time": "bedtime", "timing": "after"}])]
    )

    [dose] = service.todays_doses
    assert dose.scheduled_time == datetime(2024, 3, 10, 22, 30)
    assert dose.time_slot is TimeSlot.night


def test_invalid_medication_leaves_state_unchanged(service, make_medication):
    service.update_medications([make_medication()])
    before = service.todays_doses

    result = service.update_medications([make_medication(name="  ")])

    assert result.success is False
    assert result.error_kind is ScheduleErrorKind.invalid_medication
    assert service.todays_doses == before
    assert [m.name for m in service.medications] == ["Metformin"]


@pytest.mark.parametrize("number_of_days", [None, 0, -3])
def test_non_positive_duration_is_invalid(service, make_medication, number_of_days):
    result = service.validate_medication(make_medication(number_of_days=number_of_days))

    assert result.error_kind is ScheduleErrorKind.invalid_medication


def test_unknown_meal_is_invalid_frequency(service, make_medication):
    result = service.validate_medication(make_medication(frequency=[{"meal_time": "brunch"}]))

    assert result.error_kind is ScheduleErrorKind.invalid_frequency


def test_non_positive_rule_dosage_is_invalid_frequency(service, make_medication):
    medication = make_medication(frequency=[{"meal_time": "lunch", "dosage": "0 mg"}])

    result = service.validate_medication(medication)

    assert result.error_kind is ScheduleErrorKind.invalid_frequency


def test_update_wraps_frequency_errors_as_invalid_medication(service, make_medication):
    result = service.update_medications([make_medication(frequency=[{"meal_time": "brunch"}])])

    assert result.error_kind is ScheduleErrorKind.invalid_medication
    assert result.error.cause.kind is ScheduleErrorKind.invalid_frequency


def test_parse_dosage_quantity():
    assert parse_dosage_quantity("500mg") == 500.0
    assert parse_dosage_quantity("0.5 tablet") == 0.5
    assert parse_dosage_quantity("-1 tab") == -1.0
    assert parse_dosage_quantity("one tablet") is None
    assert parse_dosage_quantity(None) is None


def test_corrupted_rules_keep_previous_schedule(service, make_medication):
    medication = make_medication()
    service.update_medications([medication])
    before = service.todays_doses

    medication.frequency = [{"meal_time": "brunch"}]
    result = service.generate_schedule(date(2024, 3, 11))

    assert result.error_kind is ScheduleErrorKind.data_corruption
    assert service.todays_doses == before
    assert service.current_date == date(2024, 3, 10)


def test_loader_failure_is_persistence_error(service, make_medication):
    service.update_medications([make_medication()])

    def failing_loader():
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    result = service.update_medications_from(failing_loader)

    assert result.error_kind is ScheduleErrorKind.persistence_error
    assert len(service.todays_doses) == 1


def test_loader_success_updates_medications(service, make_medication):
    result = service.update_medications_from(lambda: [make_medication()])

    assert result.success
    assert len(service.todays_doses) == 1


def test_setting_current_date_regenerates(service, make_medication):
    service.update_medications([make_medication()])
    first_id = service.todays_doses[0].id

    service.current_date = date(2024, 3, 11)

    [dose] = service.todays_doses
    assert service.current_date == date(2024, 3, 11)
    assert dose.scheduled_time == datetime(2024, 3, 11, 7, 45)
    assert dose.id != first_id


def test_observers_are_notified_on_regeneration(service, make_medication):
    calls = []
    unsubscribe = service.subscribe(lambda: calls.append(service.current_date))

    service.update_medications([make_medication()])
    service.generate_schedule(date(2024, 3, 11))
    unsubscribe()
    service.generate_schedule(date(2024, 3, 12))

    assert calls == [date(2024, 3, 10), date(2024, 3, 11)]


def test_inactive_medications_are_skipped(service, make_medication):
    finished = make_medication(name="Amoxicillin", start_date=date(2024, 3, 1), number_of_days=5)
    running = make_medication(name="Metformin", start_date=date(2024, 3, 10), number_of_days=1)

    service.update_medications([finished, running])

    assert [dose.medication.name for dose in service.todays_doses] == ["Metformin"]
    assert service.is_medication_active(running, date(2024, 3, 11)) is False
    assert service.is_medication_active(make_medication(start_date=None), date(2030, 1, 1))


def test_overdue_and_upcoming_doses(service, make_medication, fixed_now):
    # 07:45, 12:45 and 19:30 with the clock at 09:00
    medication = make_medication(
        frequency=[
            {"meal_time": "breakfast", "timing": "before"},
            {"meal_time": "lunch", "timing": "before"},
            {"meal_time": "dinner", "timing": "after"},
        ]
    )
    service.update_medications([medication])

    overdue = service.get_overdue_doses()
    assert [dose.display_time for dose in overdue] == ["07:45"]
    assert service.get_upcoming_doses() == []
    assert [dose.display_time for dose in service.get_upcoming_doses(within_hours=4)] == ["12:45"]
    assert service.next_upcoming_dose().display_time == "12:45"


def test_taken_dose_requires_time_and_is_terminal(service, make_medication, fixed_now):
    service.update_medications([make_medication()])
    dose = service.todays_doses[0]

    missing_time = service.update_dose_status(dose, DoseStatus.taken)
    assert missing_time.error_kind is ScheduleErrorKind.dose_update_failed

    taken = service.update_dose_status(dose, DoseStatus.taken, taken_time=fixed_now)
    assert taken.success
    assert taken.value.status is DoseStatus.taken
    assert taken.value.actual_taken_time == fixed_now
    assert service.todays_doses[0].status is DoseStatus.taken
    assert service.doses_for(TimeSlot.morning)[0].status is DoseStatus.taken
    assert service.get_overdue_doses() == []

    again = service.update_dose_status(dose.id, DoseStatus.skipped)
    assert again.error_kind is ScheduleErrorKind.dose_update_failed


@pytest.mark.parametrize("status", [DoseStatus.missed, DoseStatus.skipped])
def test_missed_and_skipped_clear_taken_time(service, make_medication, fixed_now, status):
    service.update_medications([make_medication()])
    dose = service.todays_doses[0]

    result = service.update_dose_status(dose, status, taken_time=fixed_now)

    assert result.value.status is status
    assert result.value.actual_taken_time is None


def test_unknown_dose_cannot_be_updated(service, make_medication):
    service.update_medications([make_medication()])
    stale = service.todays_doses[0]
    service.generate_schedule(service.current_date)

    result = service.update_dose_status(stale, DoseStatus.skipped)

    assert result.error_kind is ScheduleErrorKind.dose_update_failed


def test_mark_missed_doses(service, make_medication):
    medication = make_medication(
        frequency=[
            {"meal_time": "breakfast", "timing": "before"},
            {"meal_time": "dinner"},
        ]
    )
    service.update_medications([medication])

    marked = service.mark_missed_doses()

    assert [dose.display_time for dose in marked] == ["07:45"]
    assert [dose.status for dose in service.todays_doses] == [
        DoseStatus.missed,
        DoseStatus.scheduled,
    ]


def test_metrics_are_computed_fresh(service, make_medication, fixed_now):
    medication = make_medication(
        frequency=[
            {"meal_time": "breakfast", "timing": "before"},
            {"meal_time": "breakfast", "timing": "after"},
            {"meal_time": "lunch", "timing": "before"},
        ]
    )
    service.update_medications([medication])

    metrics = service.calculate_metrics()
    assert (metrics.total_doses, metrics.taken_doses) == (3, 0)
    assert metrics.overdue_doses == 2
    assert metrics.upcoming_doses == 0

    service.update_dose_status(service.todays_doses[0], DoseStatus.taken, taken_time=fixed_now)

    metrics = service.calculate_metrics()
    assert metrics.taken_doses == 1
    assert metrics.overdue_doses == 1
    assert metrics.adherence_rate == pytest.approx(1 / 3)


def test_empty_schedule(service):
    result = service.generate_schedule(date(2024, 3, 10))

    assert result.success
    assert service.todays_doses == []
    assert service.timeline_doses == {}
    assert service.calculate_metrics().total_doses == 0
    assert service.next_upcoming_dose() is None


def test_multi_day_schedule_respects_duration(service, make_medication):
    service.update_medications(
        [make_medication(start_date=date(2024, 3, 10), number_of_days=2)]
    )

    schedule = service.generate_multi_day_schedule(date(2024, 3, 10), 3)

    assert list(schedule) == [date(2024, 3, 10), date(2024, 3, 11), date(2024, 3, 12)]
    assert len(schedule[date(2024, 3, 11)][TimeSlot.morning]) == 1
    assert schedule[date(2024, 3, 12)] == {}
    assert service.current_date == date(2024, 3, 10)


def test_schedule_result_unwrap_raises_error(service, make_medication):
    result = service.update_medications([make_medication(name="")])

    with pytest.raises(Exception) as exc:
        result.unwrap()

    assert exc.value is result.error
    assert result.to_dict()["error"] == "invalid_medication"
    assert "Invalid medication data" in result.to_dict()["message"]


def test_time_until_due_is_negative_when_past(service, make_medication, fixed_now):
    service.update_medications([make_medication()])
    dose = service.todays_doses[0]

    assert dose.time_until_due(fixed_now) == timedelta(minutes=-75)
    assert dose.is_due_soon(fixed_now) is False
    assert dose.is_due_soon(fixed_now - timedelta(minutes=95)) is True


def test_upcoming_metric_uses_configured_window(meal_times, schedule_day, make_medication):
    service = MedicationScheduleService(
        meal_times=meal_times,
        clock=lambda: datetime(2024, 3, 10, 7, 0),
        current_date=schedule_day,
        upcoming_window_hours=2,
    )
    medication = make_medication(
        frequency=[
            {"meal_time": "breakfast", "timing": "before"},
            {"meal_time": "breakfast", "timing": "after"},
            {"meal_time": "lunch"},
        ]
    )
    service.update_medications([medication])

    metrics = service.calculate_metrics()

    assert metrics.upcoming_doses == 2
    assert metrics.overdue_doses == 0


def test_generate_schedule_is_repeatable_for_same_day(service, make_medication):
    medication = make_medication(
        frequency=[
            {"meal_time": "dinner", "timing": "after"},
            {"meal_time": "breakfast", "timing": "before"},
            {"meal_time": "bedtime"},
        ]
    )
    service.update_medications([medication])

    service.generate_schedule(date(2024, 3, 10))
    first = [(dose.scheduled_time, dose.time_slot) for dose in service.todays_doses]
    service.generate_schedule(date(2024, 3, 10))
    second = [(dose.scheduled_time, dose.time_slot) for dose in service.todays_doses]

    assert first == second
    assert len(first) == 3
