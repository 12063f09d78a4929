from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from walnut.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from walnut.models.blood_report import BloodReport
    from walnut.models.patient import Patient
    from walnut.models.prescription import Prescription


class MedicalCase(Base, TimestampMixin):
    """A clinical episode grouping reports and prescriptions."""

    __tablename__ = "medical_cases"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    case_type: Mapped[Optional[str]] = mapped_column(
        String(50), nullable=True,
        comment="e.g., consultation, follow_up, surgery"
    )
    is_active: Mapped[bool] = mapped_column(default=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    patient: Mapped["Patient"] = relationship(back_populates="medical_cases")
    blood_reports: Mapped[list["BloodReport"]] = relationship(
        back_populates="medical_case", cascade="all, delete-orphan"
    )
    prescriptions: Mapped[list["Prescription"]] = relationship(
        back_populates="medical_case", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<MedicalCase(id={self.id}, title='{self.title}')>"
