"""Medication schedule service.

Expands meal-relative frequency rules into concrete dose instances for one
day, tracks per-dose status and computes the day's metrics. Derived state is
rebuilt from the medication list on every regeneration; nothing is patched
incrementally.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from walnut.services.medications.doses import DoseStatus, ScheduledDose, ScheduleMetrics
from walnut.services.medications.errors import ScheduleErrorKind, ScheduleResult
from walnut.services.medications.timing import (
    MealRelation,
    MealTimeConfiguration,
    TimeSlot,
    as_date,
)

if TYPE_CHECKING:
    from walnut.models import Medication

logger = logging.getLogger("walnut.schedule")

_DOSAGE_QUANTITY = re.compile(r"-?\d+(?:\.\d+)?")

DailySchedule = dict[TimeSlot, list[ScheduledDose]]


def parse_dosage_quantity(dosage: Optional[str]) -> Optional[float]:
    """Leading quantity of a dosage string ("500mg" -> 500.0), if any."""
    if not dosage:
        return None
    match = _DOSAGE_QUANTITY.search(dosage)
    if not match:
        return None
    return float(match.group())


def group_by_time_slot(doses: Iterable[ScheduledDose]) -> DailySchedule:
    """Bucket doses by time slot, each bucket sorted by scheduled time."""
    grouped: DailySchedule = {}
    for dose in sorted(doses, key=lambda d: d.scheduled_time):
        grouped.setdefault(dose.time_slot, []).append(dose)
    return grouped


class MedicationScheduleService:
    """Builds and tracks the medication timeline for a single day.

    Args:
        meal_times: Meal clock table; defaults to the configured settings
        clock: Returns the current local time (naive datetime)
        current_date: Day to schedule; defaults to today according to ``clock``
        upcoming_window_hours: Default window for :meth:`get_upcoming_doses`
    """

    def __init__(
        self,
        meal_times: Optional[MealTimeConfiguration] = None,
        clock: Optional[Callable[[], datetime]] = None,
        current_date: Optional[date] = None,
        upcoming_window_hours: Optional[int] = None,
    ):
        if upcoming_window_hours is None:
            from walnut.config import settings

            upcoming_window_hours = settings.upcoming_window_hours
        self.meal_times = meal_times or MealTimeConfiguration.from_settings()
        self.upcoming_window_hours = upcoming_window_hours
        self._clock = clock or datetime.now
        self._current_date = as_date(current_date or self._clock())
        self._medications: list[Medication] = []
        self._timeline: DailySchedule = {}
        self._todays_doses: list[ScheduledDose] = []
        self._observers: list[Callable[[], None]] = []

    # State

    @property
    def current_date(self) -> date:
        return self._current_date

    @current_date.setter
    def current_date(self, value: date | datetime) -> None:
        self.generate_schedule(value)

    @property
    def medications(self) -> list[Medication]:
        return list(self._medications)

    @property
    def timeline_doses(self) -> DailySchedule:
        return {slot: list(doses) for slot, doses in self._timeline.items()}

    @property
    def todays_doses(self) -> list[ScheduledDose]:
        return list(self._todays_doses)

    def now(self) -> datetime:
        return self._clock()

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a callback fired after every regeneration.

        Returns:
            A function that removes the callback again
        """
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._observers):
            callback()

    # Medications

    def update_medications(self, medications: Iterable[Medication]) -> ScheduleResult[None]:
        """Replace the medication set and regenerate the current day.

        The previous set and schedule are kept when any medication is invalid.
        """
        medications = list(medications)
        for medication in medications:
            validation = self.validate_medication(medication)
            if not validation.success:
                logger.warning(
                    "Rejected medication update: %s", validation.error.description
                )
                return ScheduleResult.fail(
                    ScheduleErrorKind.invalid_medication,
                    detail=validation.error.description,
                    cause=validation.error,
                )

        self._medications = medications
        return self.generate_schedule(self._current_date)

    def update_medications_from(
        self, loader: Callable[[], Iterable[Medication]]
    ) -> ScheduleResult[None]:
        """Load medications from the store, then :meth:`update_medications`."""
        try:
            medications = list(loader())
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("Could not load medications: %s", exc)
            return ScheduleResult.fail(ScheduleErrorKind.persistence_error, cause=exc)
        return self.update_medications(medications)

    def validate_medication(self, medication: Medication) -> ScheduleResult[None]:
        name = (medication.name or "").strip()
        if not name:
            return ScheduleResult.fail(
                ScheduleErrorKind.invalid_medication, detail="name is required"
            )
        if medication.number_of_days is None or medication.number_of_days <= 0:
            return ScheduleResult.fail(
                ScheduleErrorKind.invalid_medication,
                detail=f"{name} must run for at least one day",
            )

        try:
            rules = medication.schedules
        except ValidationError as exc:
            return ScheduleResult.fail(
                ScheduleErrorKind.invalid_frequency,
                detail=f"{name} has an unsupported meal or timing",
                cause=exc,
            )

        for rule in rules:
            quantity = parse_dosage_quantity(rule.dosage)
            if quantity is not None and quantity <= 0:
                return ScheduleResult.fail(
                    ScheduleErrorKind.invalid_frequency,
                    detail=f"{name} has a non-positive dosage '{rule.dosage}'",
                )

        return ScheduleResult.ok()

    def is_medication_active(self, medication: Medication, day: date | datetime) -> bool:
        """Active from ``start_date`` for ``number_of_days`` days; always active without a start."""
        start = medication.start_date
        if start is None or not medication.number_of_days:
            return True
        day = as_date(day)
        return start <= day < start + timedelta(days=medication.number_of_days)

    # Schedule generation

    def build_doses(
        self, medications: Iterable[Medication], day: date | datetime
    ) -> list[ScheduledDose]:
        """One dose per frequency rule of every medication active on ``day``.

        Raises:
            pydantic.ValidationError: If a stored frequency rule cannot be decoded.
        """
        doses = []
        for medication in medications:
            if not self.is_medication_active(medication, day):
                continue
            for rule in medication.schedules:
                relation = MealRelation.for_rule(rule.meal_time, rule.timing, self.meal_times)
                scheduled_time = relation.calculate_actual_time(day, self.meal_times)
                doses.append(
                    ScheduledDose(
                        medication=medication,
                        scheduled_time=scheduled_time,
                        time_slot=TimeSlot.for_hour(scheduled_time.hour),
                        meal_relation=relation,
                        dosage=rule.dosage or medication.dosage,
                    )
                )
        return sorted(doses, key=lambda dose: dose.scheduled_time)

    def generate_schedule(self, day: date | datetime) -> ScheduleResult[None]:
        """Regenerate the schedule for ``day``, which becomes the current date."""
        day = as_date(day)
        try:
            doses = self.build_doses(self._medications, day)
        except ValidationError as exc:
            logger.warning("Stored frequency rules could not be decoded: %s", exc)
            return ScheduleResult.fail(ScheduleErrorKind.data_corruption, cause=exc)
        except Exception as exc:
            logger.exception("Schedule generation failed for %s", day)
            return ScheduleResult.fail(ScheduleErrorKind.scheduling_failed, cause=exc)

        self._current_date = day
        self._todays_doses = doses
        self._timeline = group_by_time_slot(doses)
        logger.info("Generated %d doses for %s", len(doses), day.isoformat())
        self._notify()
        return ScheduleResult.ok()

    def generate_multi_day_schedule(
        self, start_date: date | datetime, number_of_days: int
    ) -> dict[date, DailySchedule]:
        """Slot maps for consecutive days; the current day's state is untouched."""
        start = as_date(start_date)
        schedule = {}
        for offset in range(number_of_days):
            day = start + timedelta(days=offset)
            schedule[day] = group_by_time_slot(self.build_doses(self._medications, day))
        return schedule

    # Queries

    def doses_for(self, time_slot: TimeSlot) -> list[ScheduledDose]:
        return list(self._timeline.get(time_slot, []))

    def get_overdue_doses(self) -> list[ScheduledDose]:
        now = self.now()
        return [dose for dose in self._todays_doses if dose.is_overdue(now)]

    def get_upcoming_doses(self, within_hours: Optional[float] = None) -> list[ScheduledDose]:
        if within_hours is None:
            within_hours = self.upcoming_window_hours
        now = self.now()
        return [dose for dose in self._todays_doses if dose.is_upcoming(now, within_hours)]

    def next_upcoming_dose(self) -> Optional[ScheduledDose]:
        now = self.now()
        pending = [
            dose
            for dose in self._todays_doses
            if dose.status is DoseStatus.scheduled and dose.scheduled_time > now
        ]
        return min(pending, key=lambda dose: dose.scheduled_time, default=None)

    def calculate_metrics(self) -> ScheduleMetrics:
        now = self.now()
        doses = self._todays_doses
        return ScheduleMetrics(
            total_doses=len(doses),
            taken_doses=sum(1 for dose in doses if dose.status is DoseStatus.taken),
            overdue_doses=sum(1 for dose in doses if dose.is_overdue(now)),
            upcoming_doses=sum(
                1 for dose in doses if dose.is_upcoming(now, self.upcoming_window_hours)
            ),
        )

    # Dose status

    def update_dose_status(
        self,
        dose: ScheduledDose | UUID,
        status: DoseStatus,
        taken_time: Optional[datetime] = None,
    ) -> ScheduleResult[ScheduledDose]:
        """Move a scheduled dose to taken, missed or skipped.

        ``taken`` requires ``taken_time``; ``missed`` and ``skipped`` clear it.
        Doses that already left ``scheduled`` cannot change again.
        """
        dose_id = dose.id if isinstance(dose, ScheduledDose) else dose
        current = self._find_dose(dose_id)
        if current is None:
            return self._reject_dose_update("dose is not part of the current schedule")
        if current.status.is_terminal:
            return self._reject_dose_update(f"dose is already {current.status.value}")

        match status:
            case DoseStatus.taken:
                if taken_time is None:
                    return self._reject_dose_update("a taken dose needs the time it was taken")
                updated = replace(current, status=DoseStatus(status), actual_taken_time=taken_time)
            case DoseStatus.missed | DoseStatus.skipped:
                updated = replace(current, status=DoseStatus(status), actual_taken_time=None)
            case _:
                return self._reject_dose_update(f"a dose cannot be moved back to {status}")

        self._store_dose(updated)
        return ScheduleResult.ok(updated)

    def mark_missed_doses(self) -> list[ScheduledDose]:
        """Mark every past-due, unconfirmed dose as missed."""
        marked = []
        for dose in self.get_overdue_doses():
            updated = replace(dose, status=DoseStatus.missed, actual_taken_time=None)
            self._store_dose(updated)
            marked.append(updated)
        if marked:
            logger.info("Marked %d doses as missed", len(marked))
        return marked

    def _reject_dose_update(self, detail: str) -> ScheduleResult[ScheduledDose]:
        logger.warning("Dose update rejected: %s", detail)
        return ScheduleResult.fail(ScheduleErrorKind.dose_update_failed, detail=detail)

    def _find_dose(self, dose_id: UUID) -> Optional[ScheduledDose]:
        for dose in self._todays_doses:
            if dose.id == dose_id:
                return dose
        return None

    def _store_dose(self, updated: ScheduledDose) -> None:
        self._todays_doses = [
            updated if dose.id == updated.id else dose for dose in self._todays_doses
        ]
        self._timeline = {
            slot: [updated if dose.id == updated.id else dose for dose in doses]
            for slot, doses in self._timeline.items()
        }
