"""Response schemas for the biomarker views."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from walnut.services.biomarkers import AggregatedBiomarker


class BiomarkerDataPointResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: datetime
    value: float
    blood_report: Optional[str] = None
    document: Optional[str] = None


class AggregatedBiomarkerResponse(BaseModel):
    """One trend-annotated row of the biomarker timeline."""

    id: UUID
    test_name: str
    current_value: str
    unit: str
    reference_range: str
    category: str
    latest_date: datetime
    health_status: str
    needs_attention: bool
    trend_direction: str
    trend_text: str
    trend_percentage: str
    test_count: int
    latest_blood_report_id: Optional[int] = None
    historical_values: list[BiomarkerDataPointResponse] = []

    @classmethod
    def from_biomarker(cls, biomarker: "AggregatedBiomarker") -> "AggregatedBiomarkerResponse":
        return cls(
            id=biomarker.id,
            test_name=biomarker.test_name,
            current_value=biomarker.current_value,
            unit=biomarker.unit,
            reference_range=biomarker.reference_range,
            category=biomarker.category,
            latest_date=biomarker.latest_date,
            health_status=biomarker.health_status.value,
            needs_attention=biomarker.health_status.needs_attention,
            trend_direction=biomarker.trend_direction.value,
            trend_text=biomarker.trend_text,
            trend_percentage=biomarker.trend_percentage,
            test_count=biomarker.test_count,
            latest_blood_report_id=biomarker.latest_blood_report.id,
            historical_values=[
                BiomarkerDataPointResponse.model_validate(point)
                for point in biomarker.historical_values
            ],
        )


class BiomarkerTrendsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    current_value: float
    current_value_text: str
    comparison_text: str
    comparison_percentage: str
    trend_direction: str
    normal_range: str
