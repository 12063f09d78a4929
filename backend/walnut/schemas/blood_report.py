"""Pydantic schemas for blood reports produced by the document parser."""

from datetime import datetime

from pydantic import Field

from walnut.schemas.prescription import ParserModel


class ParsedBloodTestResult(ParserModel):
    test_name: str = Field(..., max_length=200)
    value: str = Field("", max_length=100)
    unit: str = Field("", max_length=50)
    reference_range: str = Field("", max_length=100)
    is_abnormal: bool | None = None


class ParsedBloodReport(ParserModel):
    """Lab panel as extracted from an uploaded document."""

    test_name: str = Field(..., max_length=200)
    lab_name: str = Field("", max_length=200)
    category: str = Field("", max_length=100)
    result_date: datetime | None = None
    notes: str = ""
    test_results: list[ParsedBloodTestResult] = []
