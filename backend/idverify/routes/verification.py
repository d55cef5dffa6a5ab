"""
Verification Routes — Session lifecycle endpoints.
Handles: session creation, status lookup with provider resync, per-user listing, data erasure.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from idverify.config import get_settings
from idverify.dependencies import get_audit, get_lifecycle, get_provider, get_store
from idverify.errors import SessionNotFoundError, UpstreamProviderError
from idverify.schemas.schemas import (
    CreateSessionRequest, CreateSessionResponse, VerificationStatusResponse,
    UserVerificationsResponse, UserSessionSummary, DeleteUserDataResponse,
)
from idverify.services.audit_service import AuditService
from idverify.services.provider import StripeIdentityProvider
from idverify.services.session_store import SessionStore
from idverify.services.verification_service import VerificationService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Verification"])


def _client_ip(request: Request):
    return request.client.host if request.client else None


@router.post("/create-session", response_model=CreateSessionResponse)
def create_session(
    request: Request,
    payload: Optional[CreateSessionRequest] = None,
    store: SessionStore = Depends(get_store),
    audit: AuditService = Depends(get_audit),
    provider: StripeIdentityProvider = Depends(get_provider),
):
    """Open a provider verification session and return its hosted URL."""
    payload = payload or CreateSessionRequest()
    settings = get_settings()
    service = VerificationService(store, audit, provider)
    try:
        session = service.create_session(
            user_reference=payload.user_reference,
            verification_type=payload.verification_type or settings.DEFAULT_VERIFICATION_TYPE,
            ip_address=_client_ip(request),
        )
    except UpstreamProviderError as exc:
        logger.error("Error creating verification session: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))

    return CreateSessionResponse(url=session.url, session_id=session.id)


@router.get("/verification-status/{session_id}", response_model=VerificationStatusResponse)
def get_verification_status(
    session_id: str,
    sync: bool = True,
    store: SessionStore = Depends(get_store),
    audit: AuditService = Depends(get_audit),
    provider: StripeIdentityProvider = Depends(get_provider),
):
    """Get the stored status of a session, reconciled with the provider unless sync=false."""
    settings = get_settings()
    service = VerificationService(store, audit, provider)
    try:
        record = service.get_status(session_id, resync=sync and settings.STATUS_RESYNC)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Verification session not found")

    return VerificationStatusResponse(
        session_id=record.session_id,
        status=record.status,
        created_at=record.created_at,
        updated_at=record.updated_at,
        verified_at=record.verified_at,
    )


@router.get("/user-verifications/{user_reference}", response_model=UserVerificationsResponse)
def list_user_verifications(user_reference: str, service: VerificationService = Depends(get_lifecycle)):
    """All verification sessions for a user reference, newest first."""
    sessions = service.list_user_sessions(user_reference)
    return UserVerificationsResponse(
        user_reference=user_reference,
        sessions=[UserSessionSummary.model_validate(s) for s in sessions],
    )


@router.delete("/user-data/{user_reference}", response_model=DeleteUserDataResponse)
def delete_user_data(user_reference: str, service: VerificationService = Depends(get_lifecycle)):
    """Right to erasure: remove every session of the user together with its audit trail."""
    deleted = service.delete_user_data(user_reference)
    return DeleteUserDataResponse(
        message="User verification data deleted successfully",
        sessions_deleted=deleted,
    )
