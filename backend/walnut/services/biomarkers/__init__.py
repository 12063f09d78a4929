"""Biomarker aggregation over blood reports."""

from walnut.services.biomarkers.aggregates import (
    AggregatedBiomarker,
    BiomarkerDataPoint,
    BiomarkerTrends,
    HealthStatus,
    TrendDirection,
)
from walnut.services.biomarkers.engine import (
    BiomarkerEngine,
    generate_aggregated_biomarkers,
    normalize_test_name,
    parse_reference_range,
)

__all__ = [
    "AggregatedBiomarker",
    "BiomarkerDataPoint",
    "BiomarkerEngine",
    "BiomarkerTrends",
    "HealthStatus",
    "TrendDirection",
    "generate_aggregated_biomarkers",
    "normalize_test_name",
    "parse_reference_range",
]
