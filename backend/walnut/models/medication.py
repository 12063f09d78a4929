from datetime import date
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import JSON, Date, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from walnut.models.base import Base, TimestampMixin
from walnut.schemas.prescription import MedicationSchedule

if TYPE_CHECKING:
    from walnut.models.patient import Patient
    from walnut.models.prescription import Prescription


class Medication(Base, TimestampMixin):
    """A prescribed drug with its meal-relative frequency rules."""

    __tablename__ = "medications"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    external_id: Mapped[Optional[str]] = mapped_column(
        String(36), nullable=True, index=True,
        comment="Identifier assigned by the document parser"
    )
    prescription_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("prescriptions.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    patient_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
        comment="Set for medications added outside a prescription",
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    dosage: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    number_of_days: Mapped[Optional[int]] = mapped_column(nullable=True)
    instructions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    frequency: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, default=list,
        comment="List of {meal_time, timing, dosage} rules"
    )
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    prescription: Mapped[Optional["Prescription"]] = relationship(
        back_populates="medications"
    )
    patient: Mapped[Optional["Patient"]] = relationship(back_populates="medications")

    @property
    def schedules(self) -> list[MedicationSchedule]:
        """Decode the stored frequency rules.

        Raises:
            pydantic.ValidationError: If a stored rule names an unknown meal or timing.
        """
        return [MedicationSchedule.model_validate(rule) for rule in self.frequency or []]

    def __repr__(self) -> str:
        return f"<Medication(id={self.id}, name='{self.name}', days={self.number_of_days})>"
