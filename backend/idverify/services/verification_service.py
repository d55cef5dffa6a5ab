"""
Verification Service — Session lifecycle: create, status (with provider resync),
per-user lookup, erasure and statistics.
"""
import logging
import uuid
from typing import Optional, Dict

from idverify.errors import SessionNotFoundError, UpstreamProviderError
from idverify.models.audit import AuditEvent
from idverify.models.verification import VerificationSession, VerificationStatus
from idverify.services import audit_service as audit_events
from idverify.services.audit_service import AuditService
from idverify.services.provider import ProviderSession, StripeIdentityProvider
from idverify.services.session_store import SessionStore
from idverify.utils.hashing import generate_hash

logger = logging.getLogger(__name__)

MANUAL_SYNC = "manual_sync"

_KNOWN_STATUSES = {s.value for s in VerificationStatus}


class VerificationService:
    """Composes the provider, the session store and the audit trail."""

    def __init__(self, store: SessionStore, audit: AuditService, provider: Optional[StripeIdentityProvider] = None):
        self.store = store
        self.audit = audit
        self.provider = provider

    def create_session(
        self,
        user_reference: Optional[str] = None,
        verification_type: str = "document",
        ip_address: Optional[str] = None,
    ) -> ProviderSession:
        """Open a provider session and record it locally with status 'created'.

        Raises:
            UpstreamProviderError: the provider call failed; nothing is stored.
        """
        user_reference = user_reference or f"anon_{uuid.uuid4().hex}"

        try:
            session = self.provider.create_session(verification_type, user_reference)
        except UpstreamProviderError as exc:
            self.audit.failure(
                audit_events.SESSION_CREATION_FAILED,
                metadata={"verification_type": verification_type, "error": str(exc)},
                ip_address=ip_address,
            )
            raise

        self.store.create(session.id, user_reference, verification_type)
        self.audit.log(
            audit_events.SESSION_CREATED,
            session_id=session.id,
            metadata={
                "user_reference_sha256": generate_hash({"user_reference": user_reference}),
                "verification_type": verification_type,
            },
            ip_address=ip_address,
        )
        logger.info("Created verification session %s (%s)", session.id, verification_type)
        return session

    def get_status(self, session_id: str, resync: bool = True) -> VerificationSession:
        """Local record for ``session_id``, reconciled with the provider when ``resync``.

        Raises:
            SessionNotFoundError: no local record.
        """
        record = self.store.get(session_id)
        if record is None:
            raise SessionNotFoundError(session_id)

        if resync and self.provider is not None:
            self._resync(record)
        return record

    def _resync(self, record: VerificationSession) -> None:
        observed = record.status
        try:
            remote = self.provider.retrieve_status(record.session_id)
        except UpstreamProviderError as exc:
            logger.warning("Resync failed for %s, returning stored status: %s", record.session_id, exc)
            self.audit.failure(
                audit_events.STATUS_SYNC_FAILED,
                session_id=record.session_id,
                metadata={"error": str(exc)},
            )
            return

        if remote == observed:
            return
        if remote not in _KNOWN_STATUSES:
            logger.info("Ignoring unknown provider status %r for %s", remote, record.session_id)
            return

        try:
            changed = self.store.apply_sync_status(record.session_id, remote, observed, event_id=MANUAL_SYNC)
            if changed:
                self.audit.log(
                    audit_events.STATUS_UPDATED,
                    session_id=record.session_id,
                    metadata={"new_status": remote, "event_id": MANUAL_SYNC, "source": MANUAL_SYNC},
                    commit=False,
                )
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise

        if changed:
            logger.info("Resynced %s: %s -> %s", record.session_id, observed, remote)
        self.store.refresh(record)

    def list_user_sessions(self, user_reference: str) -> list[VerificationSession]:
        return self.store.list_for_user(user_reference)

    def get_audit_trail(self, session_id: str) -> list[AuditEvent]:
        return self.audit.get_trail(session_id)

    def delete_user_data(self, user_reference: str) -> int:
        """Erase all sessions of ``user_reference`` with their audit trail.

        The erasure itself is recorded globally (no session id) and only keeps a
        digest of the reference.
        """
        deleted = self.store.delete_user_data(user_reference)
        self.audit.log(
            audit_events.USER_DATA_DELETED,
            metadata={
                "user_reference_sha256": generate_hash({"user_reference": user_reference}),
                "sessions_deleted": deleted,
            },
        )
        logger.info("Erased %d session(s) for a user data deletion request", deleted)
        return deleted

    def get_statistics(self) -> Dict[str, int]:
        return self.store.statistics()
