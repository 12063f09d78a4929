from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from walnut.api.deps import get_biomarker_engine, get_health_repo
from walnut.schemas.biomarkers import AggregatedBiomarkerResponse, BiomarkerTrendsResponse
from walnut.services.biomarkers import BiomarkerEngine
from walnut.services.repositories import HealthDataRepository

router = APIRouter(prefix="/biomarkers", tags=["Biomarkers"])


@router.get("/patient/{patient_id}", response_model=list[AggregatedBiomarkerResponse])
async def list_biomarkers(
    patient_id: int,
    category: Optional[str] = Query(None, description="Only reports of this category"),
    start: Optional[datetime] = Query(None, description="Earliest result date (inclusive)"),
    end: Optional[datetime] = Query(None, description="Latest result date (inclusive)"),
    repo: HealthDataRepository = Depends(get_health_repo),
    engine: BiomarkerEngine = Depends(get_biomarker_engine),
):
    """Trend-annotated biomarker timeline of a patient, one row per test."""
    if start and end and start > end:
        raise HTTPException(status_code=400, detail="start must not be after end")

    reports = await repo.list_blood_reports(patient_id)

    if start is None and end is None:
        biomarkers = engine.generate_filtered_biomarkers(reports, category=category)
    else:
        if category is not None:
            reports = [report for report in reports if report.category == category]
        biomarkers = engine.generate_biomarkers_for_date_range(
            reports,
            start_date=start or datetime.min.replace(tzinfo=timezone.utc),
            end_date=end or datetime.max.replace(tzinfo=timezone.utc),
        )

    return [AggregatedBiomarkerResponse.from_biomarker(biomarker) for biomarker in biomarkers]


@router.get("/patient/{patient_id}/trends/{test_name}", response_model=BiomarkerTrendsResponse)
async def get_biomarker_trends(
    patient_id: int,
    test_name: str,
    repo: HealthDataRepository = Depends(get_health_repo),
    engine: BiomarkerEngine = Depends(get_biomarker_engine),
):
    """Latest value and change against the previous measurement of one test."""
    reports = await repo.list_blood_reports(patient_id)
    trends = engine.get_biomarker_trends(test_name, reports)
    if trends is None:
        raise HTTPException(status_code=404, detail=f"No results for test '{test_name}'")
    return BiomarkerTrendsResponse.model_validate(trends)
