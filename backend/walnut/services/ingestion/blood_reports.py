"""Blood report ingestion service."""

import logging
from typing import Optional

from walnut.models import BloodReport, BloodTestResult
from walnut.schemas.blood_report import ParsedBloodReport, ParsedBloodTestResult
from walnut.services.biomarkers.engine import parse_numeric_value, parse_reference_range
from walnut.services.ingestion.base import IngestionService

logger = logging.getLogger(__name__)


class BloodReportIngestionService(IngestionService[BloodReport]):
    """Service for ingesting blood reports produced by the document parser.

    Example input format:
    {
        "testName": "Complete Blood Count",
        "labName": "City Lab",
        "category": "Hematology",
        "resultDate": "2024-01-15T08:30:00Z",
        "notes": "Fasting sample",
        "testResults": [
            {"testName": "Hemoglobin", "value": "14.2", "unit": "g/dL",
             "referenceRange": "12.0-16.0", "isAbnormal": false}
        ]
    }
    """

    COMMON_LAB_CATEGORIES = {
        "cbc": "Hematology",
        "blood count": "Hematology",
        "hemoglobin": "Hematology",
        "platelet": "Hematology",
        "lipid": "Chemistry",
        "cholesterol": "Chemistry",
        "metabolic": "Chemistry",
        "liver": "Chemistry",
        "renal": "Chemistry",
        "kidney": "Chemistry",
        "glucose": "Chemistry",
        "thyroid": "Endocrinology",
        "hba1c": "Endocrinology",
        "vitamin": "Nutrition",
        "urinalysis": "Urinalysis",
    }

    async def ingest_single(self, data: dict) -> BloodReport:
        """Ingest a single parsed blood report.

        Args:
            data: Parser payload matching ``ParsedBloodReport``

        Returns:
            Created BloodReport with its test results
        """
        if self.patient_id is None and self.medical_case_id is None:
            raise ValueError("A blood report needs a patient or a medical case")

        parsed = ParsedBloodReport.model_validate(data)
        test_name = parsed.test_name.strip()
        if not test_name:
            raise ValueError("testName is required")

        report = BloodReport(
            patient_id=self.patient_id,
            medical_case_id=self.medical_case_id,
            test_name=test_name,
            lab_name=parsed.lab_name.strip() or None,
            category=parsed.category.strip() or self._detect_category(test_name),
            result_date=parsed.result_date,
            notes=parsed.notes or None,
            test_results=[self._build_result(result) for result in parsed.test_results],
        )

        self.db.add(report)
        await self.db.flush()

        logger.info(
            "Ingested blood report '%s' with %d results", test_name, len(report.test_results)
        )
        return report

    def _build_result(self, result: ParsedBloodTestResult) -> BloodTestResult:
        is_abnormal = result.is_abnormal
        if is_abnormal is None:
            is_abnormal = self._check_abnormal(result.value, result.reference_range)
        return BloodTestResult(
            test_name=result.test_name.strip(),
            value=result.value.strip(),
            unit=result.unit.strip() or None,
            reference_range=result.reference_range.strip() or None,
            is_abnormal=is_abnormal,
        )

    def _detect_category(self, test_name: str) -> str:
        """Auto-detect lab category from the panel name."""
        test_lower = test_name.lower()
        for keyword, category in self.COMMON_LAB_CATEGORIES.items():
            if keyword in test_lower:
                return category
        return "General"

    def _check_abnormal(self, value: str, reference_range: Optional[str]) -> bool:
        """Outside a parseable ``low-high`` range counts as abnormal."""
        numeric_value = parse_numeric_value(value)
        bounds = parse_reference_range(reference_range)
        if numeric_value is None or bounds is None:
            return False
        low, high = bounds
        return numeric_value < low or numeric_value > high
