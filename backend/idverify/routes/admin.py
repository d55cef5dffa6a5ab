"""
Admin Routes — Statistics and audit trail access.
"""
from fastapi import APIRouter, Depends, HTTPException

from idverify.dependencies import get_lifecycle
from idverify.schemas.schemas import AuditEventEntry, StatisticsResponse
from idverify.services.verification_service import VerificationService

router = APIRouter(tags=["Admin"])


@router.get("/stats", response_model=StatisticsResponse)
def get_stats(service: VerificationService = Depends(get_lifecycle)):
    """Session counts by status bucket and the total number of audit events."""
    return StatisticsResponse(**service.get_statistics())


@router.get("/audit/{session_id}", response_model=list[AuditEventEntry])
def get_audit_trail(session_id: str, service: VerificationService = Depends(get_lifecycle)):
    """Get the full audit trail for a session."""
    events = service.get_audit_trail(session_id)
    if not events:
        raise HTTPException(status_code=404, detail="No audit events found for this session")
    return events
