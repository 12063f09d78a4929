"""Base ingestion service with common functionality."""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Generic, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class IngestionResult:
    """Result of an ingestion operation."""

    def __init__(
        self,
        success: bool,
        records_created: int = 0,
        records_skipped: int = 0,
        errors: list[str] | None = None,
    ):
        self.success = success
        self.records_created = records_created
        self.records_skipped = records_skipped
        self.errors = errors or []
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "records_created": self.records_created,
            "records_skipped": self.records_skipped,
            "errors": self.errors,
            "timestamp": self.timestamp.isoformat(),
        }


class IngestionService(ABC, Generic[T]):
    """Base class for turning parsed documents into journal entities.

    Args:
        db: Session the created entities are added to
        patient_id: Owning patient for records uploaded outside a case
        medical_case_id: Owning medical case
    """

    def __init__(
        self,
        db: AsyncSession,
        patient_id: Optional[int] = None,
        medical_case_id: Optional[int] = None,
    ):
        self.db = db
        self.patient_id = patient_id
        self.medical_case_id = medical_case_id

    @abstractmethod
    async def ingest_single(self, data: dict) -> T:
        """Ingest a single parsed document.

        Args:
            data: The parser's JSON payload (camelCase or snake_case keys)

        Returns:
            Created model instance

        Raises:
            ValueError: If the payload cannot be ingested
        """

    async def ingest_batch(self, records: list[dict]) -> IngestionResult:
        """Ingest multiple documents; failing records are skipped, not fatal.

        Args:
            records: List of parser payloads

        Returns:
            IngestionResult with statistics
        """
        created = 0
        skipped = 0
        errors = []

        for i, record in enumerate(records):
            try:
                await self.ingest_single(record)
                created += 1
            except ValueError as e:
                errors.append(f"Record {i}: {e}")
                skipped += 1

        return IngestionResult(
            success=len(errors) == 0,
            records_created=created,
            records_skipped=skipped,
            errors=errors,
        )
