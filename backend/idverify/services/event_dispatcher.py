"""
Event Dispatcher — Reconciles provider webhook events into local session state.

Delivery is at-least-once and may be duplicated or reordered. Every attempt is
audited before anything else happens; an event id is applied at most once; the
most recently applied event wins regardless of provider ordering.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from idverify.errors import SignatureVerificationError, MalformedEventError
from idverify.models.verification import VerificationStatus
from idverify.services import audit_service as audit_events
from idverify.services.audit_service import AuditService
from idverify.services.session_store import SessionStore
from idverify.services.webhook_verifier import WebhookEvent, WebhookVerifier

logger = logging.getLogger(__name__)

EVENT_PREFIX = "identity.verification_session."

STATUS_BY_EVENT = {
    "verified": VerificationStatus.VERIFIED.value,
    "requires_input": VerificationStatus.REQUIRES_INPUT.value,
    "processing": VerificationStatus.PROCESSING.value,
    "canceled": VerificationStatus.CANCELED.value,
}

PROCESSED = "processed"
ALREADY_PROCESSED = "already_processed"
IGNORED = "ignored"


def map_event_status(event_type: str) -> Optional[str]:
    """Local status for a provider event type, or None if unmapped."""
    if not event_type.startswith(EVENT_PREFIX):
        return None
    return STATUS_BY_EVENT.get(event_type[len(EVENT_PREFIX):])


@dataclass
class DispatchResult:
    outcome: str
    session_id: str
    status: Optional[str] = None


class EventDispatcher:
    """Applies verified webhook events to the session store."""

    def __init__(self, store: SessionStore, audit: AuditService):
        self.store = store
        self.audit = audit

    def ingest(
        self,
        verifier: WebhookVerifier,
        payload: bytes,
        signature_header: Optional[str],
        ip_address: Optional[str] = None,
    ) -> DispatchResult:
        """Verify a raw delivery and dispatch it.

        Signature and payload failures are audited as webhook_error and
        re-raised so the provider redelivers.
        """
        try:
            event = verifier.verify(payload, signature_header)
        except SignatureVerificationError as exc:
            logger.warning("Webhook signature verification failed: %s", exc)
            self.audit.failure(
                audit_events.WEBHOOK_ERROR,
                metadata={"error": "signature_verification_failed", "message": str(exc)},
                ip_address=ip_address,
            )
            raise
        except MalformedEventError as exc:
            logger.warning("Malformed webhook payload: %s", exc)
            self.audit.failure(
                audit_events.WEBHOOK_ERROR,
                metadata={"error": "malformed_event", "message": str(exc)},
                ip_address=ip_address,
            )
            raise

        return self.dispatch(event, ip_address=ip_address)

    def dispatch(self, event: WebhookEvent, ip_address: Optional[str] = None) -> DispatchResult:
        # Receipt is recorded first so duplicates and ignored events still leave a trace
        self.audit.log(
            audit_events.WEBHOOK_RECEIVED,
            session_id=event.object_id,
            metadata={
                "event_id": event.event_id,
                "event_type": event.event_type,
                "object_status": event.object_status,
                "event_created": event.created,
                "signature_verified": event.verified,
            },
            ip_address=ip_address,
        )

        if self.store.is_event_processed(event.event_id):
            logger.info("Event %s already processed, skipping", event.event_id)
            return DispatchResult(ALREADY_PROCESSED, event.object_id)

        new_status = map_event_status(event.event_type)
        if new_status is None:
            logger.info("Unhandled event type %s (%s), acknowledged", event.event_type, event.event_id)
            return DispatchResult(IGNORED, event.object_id)

        try:
            changed = self.store.apply_event_status(event.object_id, new_status, event.event_id)
            if not changed and self.store.is_event_processed(event.event_id):
                # A concurrent delivery of the same event applied it first
                self.store.rollback()
                logger.info("Event %s applied concurrently, skipping", event.event_id)
                return DispatchResult(ALREADY_PROCESSED, event.object_id)

            if not changed:
                logger.warning("No local session %s for event %s", event.object_id, event.event_id)

            self.audit.log(
                audit_events.STATUS_UPDATED,
                session_id=event.object_id,
                metadata={"new_status": new_status, "event_id": event.event_id},
                result="success" if changed else "session_not_found",
                commit=False,
            )
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise

        logger.info("Session %s -> %s (event %s)", event.object_id, new_status, event.event_id)
        return DispatchResult(PROCESSED, event.object_id, new_status)
