"""API routes for Walnut."""

from walnut.api import biomarkers, health, ingestion, schedule

__all__ = [
    "biomarkers",
    "health",
    "ingestion",
    "schedule",
]
