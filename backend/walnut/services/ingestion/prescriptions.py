"""Prescription ingestion service."""

import logging
from typing import Optional

from walnut.models import Medication, Prescription
from walnut.schemas.prescription import ParsedMedication, ParsedPrescription
from walnut.services.ingestion.base import IngestionService
from walnut.services.medications.schedule import MedicationScheduleService

logger = logging.getLogger(__name__)


class PrescriptionIngestionService(IngestionService[Prescription]):
    """Service for ingesting prescriptions produced by the document parser.

    Every medication is checked with the schedule service's validation so a
    stored prescription can always be expanded into a daily schedule.

    Example input format:
    {
        "dateIssued": "2024-03-01T10:00:00Z",
        "doctorName": "Dr. Rao",
        "followUpTests": ["HbA1c"],
        "medications": [
            {"name": "Metformin", "numberOfDays": 30, "dosage": "500mg",
             "frequency": [{"mealTime": "breakfast", "timing": "before"}]}
        ]
    }
    """

    def __init__(self, *args, validator: Optional[MedicationScheduleService] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.validator = validator or MedicationScheduleService()

    async def ingest_single(self, data: dict) -> Prescription:
        """Ingest a single parsed prescription.

        Args:
            data: Parser payload matching ``ParsedPrescription``

        Returns:
            Created Prescription with its medications

        Raises:
            ValueError: If no medical case is set or a medication is invalid
        """
        if self.medical_case_id is None:
            raise ValueError("A prescription needs a medical case")

        parsed = ParsedPrescription.model_validate(data)
        medications = [self._build_medication(item, parsed) for item in parsed.medications]

        for medication in medications:
            validation = self.validator.validate_medication(medication)
            if not validation.success:
                raise ValueError(validation.error.description)

        prescription = Prescription(
            medical_case_id=self.medical_case_id,
            date_issued=parsed.date_issued,
            doctor_name=parsed.doctor_name,
            facility_name=parsed.facility_name,
            follow_up_date=parsed.follow_up_date.date() if parsed.follow_up_date else None,
            follow_up_tests=list(parsed.follow_up_tests),
            notes=parsed.notes,
            medications=medications,
        )

        self.db.add(prescription)
        await self.db.flush()

        logger.info(
            "Ingested prescription from %s with %d medications",
            parsed.doctor_name or "unknown doctor",
            len(medications),
        )
        return prescription

    def _build_medication(
        self, item: ParsedMedication, prescription: ParsedPrescription
    ) -> Medication:
        return Medication(
            external_id=str(item.id),
            patient_id=self.patient_id,
            name=item.name.strip(),
            dosage=item.dosage,
            number_of_days=item.number_of_days,
            instructions=item.instructions,
            frequency=[rule.model_dump(mode="json") for rule in item.frequency],
            start_date=prescription.date_issued.date(),
        )
