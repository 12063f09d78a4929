from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from walnut.database import get_db
from walnut.models import MedicalCase, Patient
from walnut.schemas.ingestion import IngestionResultResponse
from walnut.services.ingestion import (
    BloodReportIngestionService,
    PrescriptionIngestionService,
)

router = APIRouter(prefix="/ingest", tags=["Data Ingestion"])


async def _resolve_owner(
    db: AsyncSession,
    patient_id: Optional[int],
    medical_case_id: Optional[int],
) -> tuple[Optional[int], Optional[int]]:
    """Check the referenced owners exist; a case implies its patient."""
    if medical_case_id is not None:
        case = await db.get(MedicalCase, medical_case_id)
        if case is None:
            raise HTTPException(status_code=404, detail="Medical case not found")
        if patient_id is not None and case.patient_id != patient_id:
            raise HTTPException(status_code=400, detail="Medical case belongs to another patient")
        return None, medical_case_id
    if patient_id is not None:
        if await db.get(Patient, patient_id) is None:
            raise HTTPException(status_code=404, detail="Patient not found")
        return patient_id, None
    raise HTTPException(status_code=400, detail="patient_id or medical_case_id is required")


@router.post("/blood-report", response_model=IngestionResultResponse)
async def ingest_blood_reports(
    payload: dict[str, Any] | list[dict[str, Any]],
    patient_id: Optional[int] = Query(None, description="Owner for direct uploads"),
    medical_case_id: Optional[int] = Query(None, description="Owning medical case"),
    db: AsyncSession = Depends(get_db),
):
    """Ingest one or more blood reports as produced by the document parser."""
    patient_id, medical_case_id = await _resolve_owner(db, patient_id, medical_case_id)
    records = payload if isinstance(payload, list) else [payload]

    service = BloodReportIngestionService(
        db, patient_id=patient_id, medical_case_id=medical_case_id
    )
    result = await service.ingest_batch(records)
    return result.to_dict()


@router.post("/prescription", response_model=IngestionResultResponse)
async def ingest_prescriptions(
    payload: dict[str, Any] | list[dict[str, Any]],
    medical_case_id: int = Query(..., description="Owning medical case"),
    db: AsyncSession = Depends(get_db),
):
    """Ingest one or more prescriptions as produced by the document parser."""
    _, medical_case_id = await _resolve_owner(db, None, medical_case_id)
    records = payload if isinstance(payload, list) else [payload]

    service = PrescriptionIngestionService(db, medical_case_id=medical_case_id)
    result = await service.ingest_batch(records)
    return result.to_dict()
