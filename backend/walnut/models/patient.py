from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import Date, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from walnut.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from walnut.models.blood_report import BloodReport
    from walnut.models.medical_case import MedicalCase
    from walnut.models.medication import Medication


class Patient(Base, TimestampMixin):
    """Patient whose journal owns cases, reports and medications."""

    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)

    medical_cases: Mapped[list["MedicalCase"]] = relationship(
        back_populates="patient", cascade="all, delete-orphan"
    )
    blood_reports: Mapped[list["BloodReport"]] = relationship(
        back_populates="patient", cascade="all, delete-orphan"
    )
    medications: Mapped[list["Medication"]] = relationship(
        back_populates="patient", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        """Return the patient's full name."""
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Patient(id={self.id}, name='{self.full_name}')>"
