"""Biomarker aggregation engine.

Turns a patient's blood reports into one trend-annotated row per test name.
Everything here is a pure computation over already-loaded reports: inputs
are never mutated and malformed data is dropped rather than reported.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from walnut.services.biomarkers.aggregates import (
    AggregatedBiomarker,
    BiomarkerDataPoint,
    BiomarkerTrends,
    HealthStatus,
    TrendDirection,
)

if TYPE_CHECKING:
    from walnut.models import BloodReport, BloodTestResult

logger = logging.getLogger("walnut.biomarkers")

ResultEntry = tuple["BloodTestResult", "BloodReport"]


def normalize_test_name(name: Optional[str]) -> str:
    """Grouping key for a test name: trimmed and lowercased."""
    return (name or "").strip().lower()


def parse_numeric_value(value: Optional[str]) -> Optional[float]:
    """Parse a reported value, returning None when it is not a number."""
    if value is None:
        return None
    try:
        return float(value.strip())
    except ValueError:
        return None


def parse_reference_range(reference_range: Optional[str]) -> Optional[tuple[float, float]]:
    """Parse a ``"low-high"`` range. Other notations are not understood."""
    if not reference_range:
        return None
    parts = reference_range.split("-")
    if len(parts) != 2:
        return None
    try:
        return float(parts[0].strip()), float(parts[1].strip())
    except ValueError:
        return None


def _has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def _is_usable(result: BloodTestResult) -> bool:
    return _has_text(result.test_name) and _has_text(result.value)


def _date_key(value: datetime) -> datetime:
    """Sort key that orders naive and aware dates together, naive read as UTC."""
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def _aligned(value: datetime, reference: datetime) -> datetime:
    """Make a naive/aware pair comparable by treating naive values as UTC."""
    if value.tzinfo is None and reference.tzinfo is not None:
        return value.replace(tzinfo=timezone.utc)
    if value.tzinfo is not None and reference.tzinfo is None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class BiomarkerEngine:
    """Builds aggregated biomarker views from blood reports.

    Example:
        engine = BiomarkerEngine()
        biomarkers = engine.generate_aggregated_biomarkers(patient.blood_reports)
    """

    STABLE_THRESHOLD = 0.01
    OPTIMAL_BAND_RATIO = 0.3
    DEFAULT_CATEGORY = "General"

    def generate_aggregated_biomarkers(
        self, reports: Iterable[BloodReport]
    ) -> list[AggregatedBiomarker]:
        """Aggregate reports into one biomarker per normalized test name.

        Args:
            reports: Blood reports belonging to a single patient

        Returns:
            Aggregated biomarkers sorted by normalized test name
        """
        reports = list(reports)
        valid_reports = self.validate_reports(reports)
        dropped = len(reports) - len(valid_reports)
        if dropped:
            logger.debug("Skipped %d blood reports without usable results", dropped)
        if not valid_reports:
            return []

        groups = self._group_results_by_name(valid_reports)

        biomarkers = []
        for key in sorted(groups):
            biomarker = self.create_aggregated_biomarker(groups[key])
            if biomarker is not None:
                biomarkers.append(biomarker)
        return biomarkers

    def generate_filtered_biomarkers(
        self,
        reports: Iterable[BloodReport],
        category: Optional[str] = None,
    ) -> list[AggregatedBiomarker]:
        """Aggregate only reports whose category matches exactly."""
        if category is not None:
            reports = [report for report in reports if report.category == category]
        return self.generate_aggregated_biomarkers(reports)

    def generate_biomarkers_for_date_range(
        self,
        reports: Iterable[BloodReport],
        start_date: datetime,
        end_date: datetime,
    ) -> list[AggregatedBiomarker]:
        """Aggregate only reports with a result date inside [start_date, end_date]."""
        in_range = []
        for report in reports:
            result_date = report.result_date
            if result_date is None:
                continue
            start = _aligned(start_date, result_date)
            end = _aligned(end_date, result_date)
            if start <= result_date <= end:
                in_range.append(report)
        return self.generate_aggregated_biomarkers(in_range)

    def get_biomarker_trends(
        self, test_name: str, reports: Iterable[BloodReport]
    ) -> Optional[BiomarkerTrends]:
        """Trend summary for a single test across all valid reports."""
        key = normalize_test_name(test_name)
        entries = [
            (result, report)
            for report in self.validate_reports(reports)
            for result in report.test_results or []
            if _is_usable(result) and normalize_test_name(result.test_name) == key
        ]
        entries.sort(key=lambda entry: _date_key(entry[1].result_date))
        if not entries:
            return None

        history = [self._data_point(result, report) for result, report in entries]
        direction, trend_text, trend_percentage = self.calculate_trend(history)
        latest_result, _ = entries[-1]

        return BiomarkerTrends(
            current_value=parse_numeric_value(latest_result.value) or 0.0,
            current_value_text=latest_result.value.strip(),
            comparison_text=trend_text,
            comparison_percentage=trend_percentage,
            trend_direction=direction,
            normal_range=latest_result.reference_range or "N/A",
        )

    # Validation

    def is_valid_report(self, report: BloodReport) -> bool:
        """A report needs a result date and one result with a name and a value."""
        if report.result_date is None:
            return False
        return any(_is_usable(result) for result in report.test_results or [])

    def validate_reports(self, reports: Iterable[BloodReport]) -> list[BloodReport]:
        return [report for report in reports if self.is_valid_report(report)]

    def extract_test_results(self, reports: Iterable[BloodReport]) -> list[BloodTestResult]:
        return [result for report in reports for result in report.test_results or []]

    # Aggregation

    def _group_results_by_name(
        self, reports: list[BloodReport]
    ) -> dict[str, list[ResultEntry]]:
        groups: dict[str, list[ResultEntry]] = {}
        for report in reports:
            for result in report.test_results or []:
                if not _is_usable(result):
                    continue
                groups.setdefault(normalize_test_name(result.test_name), []).append(
                    (result, report)
                )
        return groups

    def create_aggregated_biomarker(
        self, entries: list[ResultEntry]
    ) -> Optional[AggregatedBiomarker]:
        """Reduce one group of same-named results to an aggregated biomarker."""
        dated = [
            (result, report)
            for result, report in entries
            if report is not None and report.result_date is not None
        ]
        if not dated:
            return None

        # Stable sort: among equal dates the last reported entry becomes current.
        dated.sort(key=lambda entry: _date_key(entry[1].result_date))
        historical_values = [self._data_point(result, report) for result, report in dated]
        latest_result, latest_report = dated[-1]

        trend_direction, trend_text, trend_percentage = self.calculate_trend(
            historical_values
        )
        health_status = self.determine_health_status(latest_result, historical_values)

        return AggregatedBiomarker(
            test_name=(latest_result.test_name or "").strip(),
            current_value=(latest_result.value or "").strip(),
            unit=latest_result.unit or "",
            reference_range=latest_result.reference_range or "",
            category=latest_report.category or self.DEFAULT_CATEGORY,
            latest_date=latest_report.result_date,
            historical_values=historical_values,
            health_status=health_status,
            trend_direction=trend_direction,
            trend_text=trend_text,
            trend_percentage=trend_percentage,
            latest_blood_report=latest_report,
            test_count=len(entries),
        )

    def _data_point(self, result: BloodTestResult, report: BloodReport) -> BiomarkerDataPoint:
        return BiomarkerDataPoint(
            date=report.result_date,
            value=parse_numeric_value(result.value) or 0.0,
            blood_report=report.test_name,
            document=report.report_url,
        )

    def calculate_trend(
        self, data_points: list[BiomarkerDataPoint]
    ) -> tuple[TrendDirection, str, str]:
        """Compare the two most recent points.

        Returns:
            (direction, absolute change to 1 decimal, percentage change as "NN%")
        """
        ordered = sorted(data_points, key=lambda point: _date_key(point.date))
        if len(ordered) < 2:
            return TrendDirection.stable, "0.0", "0%"

        latest = ordered[-1].value
        previous = ordered[-2].value
        change = latest - previous

        if abs(change) < self.STABLE_THRESHOLD:
            direction = TrendDirection.stable
        elif change > 0:
            direction = TrendDirection.up
        else:
            direction = TrendDirection.down

        # A zero baseline has no meaningful relative change.
        percentage = abs(change / previous * 100) if previous else 0.0

        return direction, f"{abs(change):.1f}", f"{percentage:.0f}%"

    def determine_health_status(
        self,
        result: BloodTestResult,
        data_points: list[BiomarkerDataPoint],
    ) -> HealthStatus:
        """Classify the current result.

        Abnormal results are ``warning`` when the latest value rose over the
        previous one and ``critical`` otherwise. Normal results are
        ``optimal`` when close to the middle of their reference range.
        """
        if result.is_abnormal:
            ordered = sorted(data_points, key=lambda point: _date_key(point.date))
            if len(ordered) < 2:
                return HealthStatus.critical
            # TODO: look at the whole series once product defines "improving" per analyte
            improving = ordered[-1].value > ordered[-2].value
            return HealthStatus.warning if improving else HealthStatus.critical

        bounds = parse_reference_range(result.reference_range)
        current = parse_numeric_value(result.value)
        if bounds is not None and current is not None:
            lower, upper = bounds
            midpoint = (lower + upper) / 2
            optimal_band = (upper - lower) / 2 * self.OPTIMAL_BAND_RATIO
            if abs(current - midpoint) <= optimal_band:
                return HealthStatus.optimal

        return HealthStatus.good

    # Report selection helpers

    def filter_reports_for_patient(
        self, reports: Iterable[BloodReport], patient_id: int
    ) -> list[BloodReport]:
        return [report for report in reports if _report_patient_id(report) == patient_id]

    def filter_reports_for_medical_case(
        self, reports: Iterable[BloodReport], medical_case_id: int
    ) -> list[BloodReport]:
        return [
            report
            for report in reports
            if _report_case_id(report) == medical_case_id
        ]

    def filter_abnormal_reports(self, reports: Iterable[BloodReport]) -> list[BloodReport]:
        return [
            report
            for report in reports
            if any(result.is_abnormal for result in report.test_results or [])
        ]

    def filter_normal_reports(self, reports: Iterable[BloodReport]) -> list[BloodReport]:
        return [
            report
            for report in reports
            if report.test_results
            and not any(result.is_abnormal for result in report.test_results)
        ]

    def group_reports_by_source(
        self, reports: Iterable[BloodReport]
    ) -> dict[str, list[BloodReport]]:
        """Group by medical case title, "Direct Upload" or "Other"."""
        groups: dict[str, list[BloodReport]] = {}
        for report in reports:
            if report.medical_case is not None and report.medical_case.title:
                source = report.medical_case.title
            elif report.patient_id is not None or report.patient is not None:
                source = "Direct Upload"
            else:
                source = "Other"
            groups.setdefault(source, []).append(report)
        return groups

    def most_recent_report_for_patient(
        self, reports: Iterable[BloodReport], patient_id: int
    ) -> Optional[BloodReport]:
        dated = [
            report
            for report in self.filter_reports_for_patient(reports, patient_id)
            if report.result_date is not None
        ]
        if not dated:
            return None
        return max(dated, key=lambda report: _date_key(report.result_date))


def _report_patient_id(report: BloodReport) -> Optional[int]:
    if report.patient_id is not None:
        return report.patient_id
    if report.patient is not None:
        return report.patient.id
    case = report.medical_case
    if case is not None:
        if case.patient_id is not None:
            return case.patient_id
        if case.patient is not None:
            return case.patient.id
    return None


def _report_case_id(report: BloodReport) -> Optional[int]:
    if report.medical_case_id is not None:
        return report.medical_case_id
    if report.medical_case is not None:
        return report.medical_case.id
    return None


def generate_aggregated_biomarkers(reports: Iterable[BloodReport]) -> list[AggregatedBiomarker]:
    """Convenience wrapper around :meth:`BiomarkerEngine.generate_aggregated_biomarkers`."""
    return BiomarkerEngine().generate_aggregated_biomarkers(reports)
