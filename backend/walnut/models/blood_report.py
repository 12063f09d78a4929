from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from walnut.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from walnut.models.medical_case import MedicalCase
    from walnut.models.patient import Patient


class BloodReport(Base, TimestampMixin):
    """One lab panel submission, parsed from a document or entered by hand."""

    __tablename__ = "blood_reports"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    medical_case_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("medical_cases.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    patient_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
        comment="Set for reports uploaded outside a medical case",
    )

    test_name: Mapped[Optional[str]] = mapped_column(
        String(200), nullable=True,
        comment="Panel name, e.g. Complete Blood Count"
    )
    lab_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True,
        comment="e.g., Hematology, Chemistry, Endocrinology"
    )
    result_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    report_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    medical_case: Mapped[Optional["MedicalCase"]] = relationship(
        back_populates="blood_reports"
    )
    patient: Mapped[Optional["Patient"]] = relationship(back_populates="blood_reports")
    test_results: Mapped[list["BloodTestResult"]] = relationship(
        back_populates="blood_report",
        cascade="all, delete-orphan",
        order_by="BloodTestResult.id",
    )

    __table_args__ = (
        Index("ix_blood_reports_patient_result_date", "patient_id", "result_date"),
    )

    def __repr__(self) -> str:
        return f"<BloodReport(id={self.id}, test='{self.test_name}', date={self.result_date})>"


class BloodTestResult(Base):
    """One analyte measurement within a blood report."""

    __tablename__ = "blood_test_results"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    blood_report_id: Mapped[int] = mapped_column(
        ForeignKey("blood_reports.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    test_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    value: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True,
        comment="Raw value as reported; may be non-numeric"
    )
    unit: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    reference_range: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_abnormal: Mapped[Optional[bool]] = mapped_column(default=False, nullable=True)

    blood_report: Mapped[Optional[BloodReport]] = relationship(
        back_populates="test_results"
    )

    def __repr__(self) -> str:
        return f"<BloodTestResult(id={self.id}, test='{self.test_name}', value='{self.value}')>"
