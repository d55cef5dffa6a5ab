"""
Audit Service — Records the append-only compliance trail.
"""
import logging
from typing import Optional, Dict

from idverify.models.audit import AuditEvent
from idverify.services.session_store import SessionStore

logger = logging.getLogger(__name__)

SESSION_CREATED = "session_created"
SESSION_CREATION_FAILED = "session_creation_failed"
WEBHOOK_RECEIVED = "webhook_received"
WEBHOOK_ERROR = "webhook_error"
STATUS_UPDATED = "status_updated"
STATUS_SYNC_FAILED = "status_sync_failed"
USER_DATA_DELETED = "user_data_deleted"


class AuditService:
    """Writes audit events through the session store."""

    def __init__(self, store: SessionStore):
        self.store = store

    def log(
        self,
        event_type: str,
        session_id: Optional[str] = None,
        metadata: Optional[Dict] = None,
        result: str = "success",
        ip_address: Optional[str] = None,
        commit: bool = True,
    ) -> AuditEvent:
        """Append an audit event.

        Args:
            event_type: Action identifier (e.g. session_created, status_updated).
            session_id: Provider session id the action relates to, if any.
            metadata: Additional context. Must not contain personal data.
            result: Outcome tag.
            ip_address: Client IP, when the action came from a request.
            commit: Commit immediately. Pass False to join the caller's transaction.

        Returns:
            The created AuditEvent.
        """
        entry = self.store.append_audit(
            event_type,
            session_id=session_id,
            metadata=metadata,
            result=result,
            ip_address=ip_address,
        )
        if commit:
            self.store.commit()

        logger.debug("audit %s session=%s result=%s", event_type, session_id, result)
        return entry

    def failure(self, event_type: str, session_id: Optional[str] = None, **kwargs) -> AuditEvent:
        """Append an audit event with result 'failure'."""
        return self.log(event_type, session_id=session_id, result="failure", **kwargs)

    def get_trail(self, session_id: str) -> list[AuditEvent]:
        """Get the full audit trail for a session, ordered chronologically."""
        return self.store.audit_trail(session_id)
