import logging
from collections.abc import Callable
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError

from walnut.api.deps import get_clock, get_health_repo, get_meal_times
from walnut.config import settings
from walnut.schemas.schedule import (
    DailyScheduleResponse,
    ScheduledDoseResponse,
    ScheduleMetricsResponse,
    TimeSlotResponse,
)
from walnut.services.medications import (
    MealTimeConfiguration,
    MedicationScheduleService,
    ScheduleErrorKind,
    ScheduleResult,
)
from walnut.services.repositories import HealthDataRepository

logger = logging.getLogger("walnut.api.schedule")

router = APIRouter(prefix="/schedule", tags=["Medication Schedule"])


def status_code_for(kind: ScheduleErrorKind) -> int:
    """HTTP status used to report a failed schedule operation."""
    if kind.is_validation_error:
        return 422
    match kind:
        case ScheduleErrorKind.persistence_error:
            return 503
        case ScheduleErrorKind.dose_update_failed:
            return 409
        case _:
            return 500


def raise_for_result(result: ScheduleResult) -> None:
    if result.success:
        return
    raise HTTPException(
        status_code=status_code_for(result.error.kind),
        detail={
            "kind": result.error.kind.value,
            "description": result.error.description,
            "recovery_suggestion": result.error.recovery_suggestion,
        },
    )


@router.get("/patient/{patient_id}", response_model=DailyScheduleResponse)
async def get_daily_schedule(
    patient_id: int,
    day: Optional[date] = Query(None, description="Calendar day; defaults to today"),
    repo: HealthDataRepository = Depends(get_health_repo),
    meal_times: MealTimeConfiguration = Depends(get_meal_times),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Doses of one day grouped by time slot, with the day's metrics."""
    service = MedicationScheduleService(
        meal_times=meal_times,
        clock=clock,
        current_date=day,
        upcoming_window_hours=settings.upcoming_window_hours,
    )

    try:
        medications = await repo.list_medications(patient_id)
    except SQLAlchemyError as exc:
        logger.warning("Could not load medications for patient %s: %s", patient_id, exc)
        result = ScheduleResult.fail(ScheduleErrorKind.persistence_error, cause=exc)
    else:
        result = service.update_medications(medications)
    raise_for_result(result)

    now = service.now()

    def to_response(dose):
        return ScheduledDoseResponse.from_dose(dose, now, settings.due_soon_minutes)

    slots = [
        TimeSlotResponse(
            time_slot=slot.value,
            display_name=slot.display_name,
            doses=[to_response(dose) for dose in doses],
        )
        for slot, doses in service.timeline_doses.items()
    ]
    next_dose = service.next_upcoming_dose()

    return DailyScheduleResponse(
        patient_id=patient_id,
        day=service.current_date,
        slots=slots,
        doses=[to_response(dose) for dose in service.todays_doses],
        next_dose=to_response(next_dose) if next_dose else None,
        metrics=ScheduleMetricsResponse.from_metrics(service.calculate_metrics()),
    )
