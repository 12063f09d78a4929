from datetime import datetime

from pydantic import BaseModel


class IngestionResultResponse(BaseModel):
    """Response for ingestion operations."""

    success: bool
    records_created: int = 0
    records_skipped: int = 0
    errors: list[str] = []
    timestamp: datetime
