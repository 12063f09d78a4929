"""Read access to the entities the derived views are computed from."""

from __future__ import annotations

from typing import Protocol

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from walnut.models import BloodReport, MedicalCase, Medication, Prescription


class HealthDataRepository(Protocol):
    async def list_blood_reports(self, patient_id: int) -> list[BloodReport]:
        ...

    async def list_medications(self, patient_id: int) -> list[Medication]:
        ...


class SQLHealthDataRepository:
    """Health data repository backed by SQLAlchemy.

    Reports and medications belong to a patient either directly or through
    one of the patient's medical cases; both paths are returned.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_blood_reports(self, patient_id: int) -> list[BloodReport]:
        case_ids = select(MedicalCase.id).where(MedicalCase.patient_id == patient_id)
        query = (
            select(BloodReport)
            .options(
                selectinload(BloodReport.test_results),
                selectinload(BloodReport.medical_case),
            )
            .where(
                or_(
                    BloodReport.patient_id == patient_id,
                    BloodReport.medical_case_id.in_(case_ids),
                )
            )
            .order_by(BloodReport.result_date, BloodReport.id)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_medications(self, patient_id: int) -> list[Medication]:
        prescription_ids = (
            select(Prescription.id)
            .join(MedicalCase, Prescription.medical_case_id == MedicalCase.id)
            .where(MedicalCase.patient_id == patient_id)
        )
        query = (
            select(Medication)
            .where(
                or_(
                    Medication.patient_id == patient_id,
                    Medication.prescription_id.in_(prescription_ids),
                )
            )
            .order_by(Medication.id)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())


class InMemoryHealthDataRepository:
    """In-memory repository for tests and local demos.

    Holds unsaved ORM instances; ownership is resolved the same way as in
    the SQL repository, directly or through the medical case.
    """

    def __init__(self):
        self._blood_reports: list[BloodReport] = []
        self._medications: list[Medication] = []

    def add_blood_report(self, report: BloodReport) -> BloodReport:
        self._blood_reports.append(report)
        return report

    def add_medication(self, medication: Medication) -> Medication:
        self._medications.append(medication)
        return medication

    async def list_blood_reports(self, patient_id: int) -> list[BloodReport]:
        return [
            report
            for report in self._blood_reports
            if report.patient_id == patient_id
            or (report.medical_case is not None and report.medical_case.patient_id == patient_id)
        ]

    async def list_medications(self, patient_id: int) -> list[Medication]:
        return [
            medication
            for medication in self._medications
            if medication.patient_id == patient_id
            or (
                medication.prescription is not None
                and medication.prescription.medical_case is not None
                and medication.prescription.medical_case.patient_id == patient_id
            )
        ]

    def clear(self) -> None:
        self._blood_reports.clear()
        self._medications.clear()
