"""Pydantic schemas for prescriptions produced by the document parser."""

from datetime import datetime
from enum import StrEnum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MealTime(StrEnum):
    breakfast = "breakfast"
    lunch = "lunch"
    dinner = "dinner"
    bedtime = "bedtime"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class MedicationTime(StrEnum):
    before = "before"
    after = "after"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class ParserModel(BaseModel):
    """Base for values decoded from the parser's camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MedicationSchedule(ParserModel):
    """One meal-relative frequency rule of a medication."""

    meal_time: MealTime
    timing: MedicationTime | None = None
    dosage: str | None = Field(None, max_length=100)


class ParsedMedication(ParserModel):
    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., max_length=200)
    frequency: list[MedicationSchedule] = []
    number_of_days: int
    dosage: str | None = Field(None, max_length=100)
    instructions: str | None = None


class ParsedPrescription(ParserModel):
    """Prescription as extracted from an uploaded document."""

    date_issued: datetime
    doctor_name: str | None = Field(None, max_length=200)
    facility_name: str | None = Field(None, max_length=200)
    follow_up_date: datetime | None = None
    follow_up_tests: list[str] = []
    notes: str | None = None
    medications: list[ParsedMedication] = []
