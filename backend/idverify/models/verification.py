"""
Verification Session Model — Non-sensitive metadata for one provider verification attempt.
Maps to the 'verification_sessions' table.

Identity documents, names, addresses, dates of birth and document numbers are
never stored here; they remain in the provider's vault.
"""
import enum
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime

from idverify.database import Base


class VerificationStatus(str, enum.Enum):
    CREATED = "created"
    PROCESSING = "processing"
    VERIFIED = "verified"
    REQUIRES_INPUT = "requires_input"
    CANCELED = "canceled"


# Buckets reported by the statistics endpoint
PENDING_STATUSES = (VerificationStatus.CREATED.value, VerificationStatus.PROCESSING.value)
FAILED_STATUSES = (VerificationStatus.REQUIRES_INPUT.value, VerificationStatus.CANCELED.value)


class VerificationSession(Base):
    __tablename__ = "verification_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(255), unique=True, nullable=False, index=True)  # Provider-assigned

    # Pseudonymous caller reference (hashed id, internal user id), never raw email/name
    user_reference = Column(String(255), nullable=False, index=True)

    status = Column(String(24), nullable=False, default=VerificationStatus.CREATED.value, index=True)
    # Statuses: created → processing → verified | requires_input | canceled (last write wins)
    verification_type = Column(String(32), nullable=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    verified_at = Column(DateTime, nullable=True)

    last_event_id = Column(String(255), index=True)  # Idempotency + traceability
