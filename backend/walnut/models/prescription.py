from datetime import date, datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import JSON, Date, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from walnut.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from walnut.models.medical_case import MedicalCase
    from walnut.models.medication import Medication


class Prescription(Base, TimestampMixin):
    """Prescription issued during a medical case."""

    __tablename__ = "prescriptions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    medical_case_id: Mapped[int] = mapped_column(
        ForeignKey("medical_cases.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    date_issued: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    doctor_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    facility_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    follow_up_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    follow_up_tests: Mapped[list[str]] = mapped_column(JSON, default=list)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    medical_case: Mapped["MedicalCase"] = relationship(back_populates="prescriptions")
    medications: Mapped[list["Medication"]] = relationship(
        back_populates="prescription",
        cascade="all, delete-orphan",
        order_by="Medication.id",
    )

    def __repr__(self) -> str:
        return f"<Prescription(id={self.id}, issued={self.date_issued}, doctor='{self.doctor_name}')>"
