"""
Session Store — Sole owner of persistence for verification sessions and audit events.

Every other component goes through this class; nothing else touches the tables.
"""
import logging
from datetime import datetime
from typing import Optional, Dict

from sqlalchemy import func, select
from sqlalchemy.orm import Session, aliased

from idverify.models.audit import AuditEvent
from idverify.models.verification import (
    VerificationSession, VerificationStatus, PENDING_STATUSES, FAILED_STATUSES,
)

logger = logging.getLogger(__name__)


class SessionStore:
    """Repository over the verification_sessions and audit_log tables."""

    def __init__(self, db: Session):
        self.db = db

    # ─── Sessions ──────────────────────────────────────────────────

    def create(self, session_id: str, user_reference: str, verification_type: str) -> VerificationSession:
        now = datetime.utcnow()
        record = VerificationSession(
            session_id=session_id,
            user_reference=user_reference,
            verification_type=verification_type,
            status=VerificationStatus.CREATED.value,
            created_at=now,
            updated_at=now,
        )
        self.db.add(record)
        self.db.flush()
        return record

    def get(self, session_id: str) -> Optional[VerificationSession]:
        return (
            self.db.query(VerificationSession)
            .filter(VerificationSession.session_id == session_id)
            .first()
        )

    def list_for_user(self, user_reference: str) -> list[VerificationSession]:
        return (
            self.db.query(VerificationSession)
            .filter(VerificationSession.user_reference == user_reference)
            .order_by(VerificationSession.created_at.desc(), VerificationSession.id.desc())
            .all()
        )

    def list_recent(self, limit: int = 20) -> list[VerificationSession]:
        return (
            self.db.query(VerificationSession)
            .order_by(VerificationSession.created_at.desc(), VerificationSession.id.desc())
            .limit(limit)
            .all()
        )

    def is_event_processed(self, event_id: str) -> bool:
        """True if any session was last updated by this provider event."""
        count = (
            self.db.query(func.count(VerificationSession.id))
            .filter(VerificationSession.last_event_id == event_id)
            .scalar()
        )
        return bool(count)

    def apply_event_status(self, session_id: str, status: str, event_id: str) -> int:
        """Apply a webhook-driven status transition.

        The UPDATE only matches while no row carries ``event_id`` yet, so two
        concurrent deliveries of the same event cannot both apply it.

        Returns:
            Number of rows changed (0 if the session is unknown or the event
            was applied concurrently).
        """
        processed = aliased(VerificationSession)
        already_applied = select(processed.id).where(processed.last_event_id == event_id).exists()

        return (
            self.db.query(VerificationSession)
            .filter(VerificationSession.session_id == session_id, ~already_applied)
            .update(self._transition_values(status, event_id), synchronize_session=False)
        )

    def apply_sync_status(
        self,
        session_id: str,
        status: str,
        observed_status: str,
        event_id: str = "manual_sync",
    ) -> int:
        """Apply a status read directly from the provider.

        Compare-and-set on ``observed_status`` (the value read before the provider
        call): a webhook update landing in between wins over the resync.
        """
        return (
            self.db.query(VerificationSession)
            .filter(
                VerificationSession.session_id == session_id,
                VerificationSession.status == observed_status,
            )
            .update(self._transition_values(status, event_id), synchronize_session=False)
        )

    @staticmethod
    def _transition_values(status: str, event_id: str) -> dict:
        now = datetime.utcnow()
        values = {
            VerificationSession.status: status,
            VerificationSession.last_event_id: event_id,
            VerificationSession.updated_at: now,
        }
        if status == VerificationStatus.VERIFIED.value:
            # Only set on entering verified; other transitions leave it untouched
            values[VerificationSession.verified_at] = now
        return values

    # ─── Audit ─────────────────────────────────────────────────────

    def append_audit(
        self,
        event_type: str,
        session_id: Optional[str] = None,
        metadata: Optional[Dict] = None,
        result: str = "success",
        ip_address: Optional[str] = None,
    ) -> AuditEvent:
        entry = AuditEvent(
            event_type=event_type,
            session_id=session_id,
            event_metadata=metadata or {},
            result=result,
            ip_address=ip_address,
            timestamp=datetime.utcnow(),
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def audit_trail(self, session_id: str) -> list[AuditEvent]:
        return (
            self.db.query(AuditEvent)
            .filter(AuditEvent.session_id == session_id)
            .order_by(AuditEvent.timestamp.asc(), AuditEvent.id.asc())
            .all()
        )

    def recent_audit(self, limit: int = 20) -> list[AuditEvent]:
        return (
            self.db.query(AuditEvent)
            .order_by(AuditEvent.timestamp.desc(), AuditEvent.id.desc())
            .limit(limit)
            .all()
        )

    # ─── Erasure ───────────────────────────────────────────────────

    def delete_user_data(self, user_reference: str) -> int:
        """Erase every session owned by ``user_reference`` and their audit rows.

        Both deletes run in one transaction; on any failure nothing is removed.

        Returns:
            Number of sessions deleted.
        """
        try:
            self._purge_audit(user_reference)
            deleted = self._purge_sessions(user_reference)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("User data deletion rolled back")
            raise
        return deleted

    def _owned_session_ids(self, user_reference: str):
        return select(VerificationSession.session_id).where(
            VerificationSession.user_reference == user_reference
        )

    def _purge_audit(self, user_reference: str) -> int:
        return (
            self.db.query(AuditEvent)
            .filter(AuditEvent.session_id.in_(self._owned_session_ids(user_reference)))
            .delete(synchronize_session=False)
        )

    def _purge_sessions(self, user_reference: str) -> int:
        return (
            self.db.query(VerificationSession)
            .filter(VerificationSession.user_reference == user_reference)
            .delete(synchronize_session=False)
        )

    # ─── Statistics ────────────────────────────────────────────────

    def status_counts(self) -> Dict[str, int]:
        rows = (
            self.db.query(VerificationSession.status, func.count(VerificationSession.id))
            .group_by(VerificationSession.status)
            .all()
        )
        return {status: count for status, count in rows}

    def statistics(self) -> Dict[str, int]:
        counts = self.status_counts()
        return {
            "total_sessions": sum(counts.values()),
            "verified": counts.get(VerificationStatus.VERIFIED.value, 0),
            "pending": sum(counts.get(s, 0) for s in PENDING_STATUSES),
            "failed": sum(counts.get(s, 0) for s in FAILED_STATUSES),
            "audit_events": self.db.query(func.count(AuditEvent.id)).scalar() or 0,
        }

    # ─── Transactions ──────────────────────────────────────────────

    def commit(self) -> None:
        self.db.commit()

    def refresh(self, record) -> None:
        self.db.refresh(record)

    def rollback(self) -> None:
        self.db.rollback()
