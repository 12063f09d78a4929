"""Shared API dependencies."""

from collections.abc import Callable
from datetime import datetime

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from walnut.config import settings
from walnut.database import get_db
from walnut.services.biomarkers import BiomarkerEngine
from walnut.services.medications import MealTimeConfiguration
from walnut.services.repositories import HealthDataRepository, SQLHealthDataRepository


async def require_api_key(x_api_key: str | None = Header(None, alias="X-API-Key")):
    """Require API key when one is configured."""
    if not settings.api_key:
        return None
    if x_api_key != settings.api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )
    return None


def get_health_repo(
    db: AsyncSession = Depends(get_db),
) -> HealthDataRepository:
    return SQLHealthDataRepository(db)


def get_biomarker_engine() -> BiomarkerEngine:
    return BiomarkerEngine()


def get_meal_times() -> MealTimeConfiguration:
    return MealTimeConfiguration.from_settings(settings)


def get_clock() -> Callable[[], datetime]:
    """Local wall clock used to judge overdue and upcoming doses."""
    return datetime.now
