"""Derived biomarker values built from blood reports on every read."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from walnut.models import BloodReport


class TrendDirection(StrEnum):
    up = "up"
    down = "down"
    stable = "stable"


class HealthStatus(StrEnum):
    optimal = "optimal"
    good = "good"
    warning = "warning"
    critical = "critical"

    @property
    def needs_attention(self) -> bool:
        match self:
            case HealthStatus.warning | HealthStatus.critical:
                return True
            case HealthStatus.optimal | HealthStatus.good:
                return False


@dataclass(frozen=True)
class BiomarkerDataPoint:
    """A single dated value in a biomarker's history."""

    date: datetime
    value: float
    blood_report: Optional[str] = None
    document: Optional[str] = None


@dataclass(frozen=True)
class BiomarkerTrends:
    """Trend summary for one test, used by the detail view."""

    current_value: float
    current_value_text: str
    comparison_text: str
    comparison_percentage: str
    trend_direction: TrendDirection
    normal_range: str


@dataclass(frozen=True)
class AggregatedBiomarker:
    """One row per normalized test name across all of a patient's reports.

    ``historical_values`` is sorted ascending by date and ``current_value`` /
    ``latest_date`` always belong to its last entry.
    """

    test_name: str
    current_value: str
    unit: str
    reference_range: str
    category: str
    latest_date: datetime
    historical_values: list[BiomarkerDataPoint]
    health_status: HealthStatus
    trend_direction: TrendDirection
    trend_text: str
    trend_percentage: str
    latest_blood_report: "BloodReport"
    test_count: int
    id: UUID = field(default_factory=uuid4)

    @property
    def current_numeric_value(self) -> float:
        try:
            return float(self.current_value)
        except ValueError:
            return 0.0
