"""
Pydantic Schemas — Request & Response models for API validation.
"""
from datetime import datetime
from typing import Optional, Dict, List
from pydantic import BaseModel, ConfigDict, Field


# ──────────────── Verification Sessions ────────────────

class CreateSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_reference: Optional[str] = Field(
        None,
        alias="userReference",
        max_length=255,
        description="Pseudonymous user reference (hashed or internal id, never raw personal data)",
    )
    verification_type: Optional[str] = Field(None, alias="verificationType", description="Provider session type")


class CreateSessionResponse(BaseModel):
    url: Optional[str] = None
    session_id: str


class VerificationStatusResponse(BaseModel):
    session_id: str
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None


class UserSessionSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    session_id: str
    status: str
    verification_type: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None


class UserVerificationsResponse(BaseModel):
    user_reference: str
    sessions: List[UserSessionSummary] = []


class DeleteUserDataResponse(BaseModel):
    message: str
    sessions_deleted: int = 0


# ──────────────── Webhook ────────────────

class WebhookAck(BaseModel):
    received: bool = True
    status: Optional[str] = None


# ──────────────── Admin / Audit ────────────────

class StatisticsResponse(BaseModel):
    total_sessions: int
    verified: int
    pending: int
    failed: int
    audit_events: int


class AuditEventEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_type: str
    session_id: Optional[str] = None
    timestamp: datetime
    event_metadata: Optional[Dict] = None
    result: Optional[str] = None


# ──────────────── Generic ────────────────

class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    database: str
