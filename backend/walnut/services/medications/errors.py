"""Typed failures and results returned by the schedule service."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ScheduleErrorKind(StrEnum):
    invalid_medication = "invalid_medication"
    invalid_frequency = "invalid_frequency"
    scheduling_failed = "scheduling_failed"
    dose_update_failed = "dose_update_failed"
    data_corruption = "data_corruption"
    persistence_error = "persistence_error"

    @property
    def description(self) -> str:
        match self:
            case ScheduleErrorKind.invalid_medication:
                return "Invalid medication data"
            case ScheduleErrorKind.invalid_frequency:
                return "Invalid medication frequency configuration"
            case ScheduleErrorKind.scheduling_failed:
                return "Failed to generate medication schedule"
            case ScheduleErrorKind.dose_update_failed:
                return "Failed to update dose status"
            case ScheduleErrorKind.data_corruption:
                return "Medication data appears to be corrupted"
            case ScheduleErrorKind.persistence_error:
                return "Database error"

    @property
    def recovery_suggestion(self) -> str:
        match self:
            case ScheduleErrorKind.invalid_medication | ScheduleErrorKind.invalid_frequency:
                return "Please check the medication configuration and try again."
            case ScheduleErrorKind.scheduling_failed:
                return "Please try refreshing the schedule."
            case ScheduleErrorKind.dose_update_failed:
                return "Please try updating the dose status again."
            case ScheduleErrorKind.data_corruption:
                return "Please try reloading the medication data."
            case ScheduleErrorKind.persistence_error:
                return "Please try again later."

    @property
    def is_validation_error(self) -> bool:
        return self in (ScheduleErrorKind.invalid_medication, ScheduleErrorKind.invalid_frequency)


class MedicationScheduleError(Exception):
    """A failure of the medication scheduling system.

    Args:
        kind: Which failure occurred
        detail: Extra context, e.g. the offending medication name
        cause: Underlying exception for wrapped persistence/corruption errors
    """

    def __init__(
        self,
        kind: ScheduleErrorKind,
        detail: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.kind = kind
        self.detail = detail
        self.cause = cause
        super().__init__(self.description)

    @property
    def description(self) -> str:
        message = self.kind.description
        if self.detail:
            message = f"{message}: {self.detail}"
        elif self.cause is not None:
            message = f"{message}: {self.cause}"
        return message

    @property
    def recovery_suggestion(self) -> str:
        return self.kind.recovery_suggestion


class ScheduleResult(Generic[T]):
    """Result of a schedule operation; failures are returned, never raised."""

    def __init__(
        self,
        success: bool,
        value: Optional[T] = None,
        error: Optional[MedicationScheduleError] = None,
    ):
        self.success = success
        self.value = value
        self.error = error
        self.timestamp = datetime.now(timezone.utc)

    @classmethod
    def ok(cls, value: Optional[T] = None) -> "ScheduleResult[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(
        cls,
        kind: ScheduleErrorKind,
        detail: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> "ScheduleResult[T]":
        return cls(success=False, error=MedicationScheduleError(kind, detail=detail, cause=cause))

    @property
    def error_kind(self) -> Optional[ScheduleErrorKind]:
        return self.error.kind if self.error is not None else None

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "error": self.error.kind.value if self.error else None,
            "message": self.error.description if self.error else None,
            "timestamp": self.timestamp.isoformat(),
        }
