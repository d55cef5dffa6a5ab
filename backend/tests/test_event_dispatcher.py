"""
Tests for webhook event reconciliation: idempotency, status mapping,
audit ordering and verified_at handling.
"""

import time

import pytest

from conftest import WEBHOOK_SECRET, audit_types, make_event, sign
from idverify.errors import MalformedEventError, SignatureVerificationError
from idverify.models import AuditEvent
from idverify.services.event_dispatcher import (
    ALREADY_PROCESSED, IGNORED, PROCESSED, map_event_status,
)
from idverify.services.webhook_verifier import WebhookEvent, WebhookVerifier

VERIFIED = "identity.verification_session.verified"
CANCELED = "identity.verification_session.canceled"
PROCESSING = "identity.verification_session.processing"


def _event(event_id, event_type, session_id="vs_1"):
    return WebhookEvent(event_id=event_id, event_type=event_type, object_id=session_id)


@pytest.fixture
def session(store):
    record = store.create("vs_1", "user_hash_1", "document")
    store.commit()
    return record


class TestStatusMapping:

    @pytest.mark.parametrize("event_type,expected", [
        ("identity.verification_session.verified", "verified"),
        ("identity.verification_session.requires_input", "requires_input"),
        ("identity.verification_session.processing", "processing"),
        ("identity.verification_session.canceled", "canceled"),
        ("identity.verification_session.created", None),
        ("identity.verification_session.redacted", None),
        ("payment_intent.succeeded", None),
        ("verified", None),
    ])
    def test_map_event_status(self, event_type, expected):
        assert map_event_status(event_type) == expected


class TestDispatch:

    def test_applies_transition_and_audits(self, dispatcher, store, db, session):
        result = dispatcher.dispatch(_event("evt_1", PROCESSING))

        assert result.outcome == PROCESSED
        assert result.status == "processing"
        record = store.get("vs_1")
        db.refresh(record)
        assert record.status == "processing"
        assert record.last_event_id == "evt_1"
        assert record.verified_at is None
        assert audit_types(db, "vs_1") == ["webhook_received", "status_updated"]

    def test_status_updated_audit_carries_status_and_event(self, dispatcher, db, session):
        dispatcher.dispatch(_event("evt_1", VERIFIED))

        entry = db.query(AuditEvent).filter(AuditEvent.event_type == "status_updated").one()
        assert entry.event_metadata == {"new_status": "verified", "event_id": "evt_1"}
        assert entry.result == "success"

    def test_same_event_twice_is_idempotent(self, dispatcher, store, db, session):
        first = dispatcher.dispatch(_event("evt_1", VERIFIED))
        record = store.get("vs_1")
        db.refresh(record)
        snapshot = (record.status, record.updated_at, record.verified_at, record.last_event_id)

        second = dispatcher.dispatch(_event("evt_1", VERIFIED))
        db.refresh(record)

        assert first.outcome == PROCESSED
        assert second.outcome == ALREADY_PROCESSED
        assert (record.status, record.updated_at, record.verified_at, record.last_event_id) == snapshot
        assert audit_types(db, "vs_1") == ["webhook_received", "status_updated", "webhook_received"]

    def test_unknown_event_type_is_acknowledged_without_mutation(self, dispatcher, store, db, session):
        result = dispatcher.dispatch(_event("evt_9", "identity.verification_session.redacted"))

        assert result.outcome == IGNORED
        record = store.get("vs_1")
        db.refresh(record)
        assert record.status == "created"
        assert record.last_event_id is None
        assert audit_types(db, "vs_1") == ["webhook_received"]

    def test_unknown_session_is_acknowledged(self, dispatcher, db):
        result = dispatcher.dispatch(_event("evt_1", VERIFIED, session_id="vs_missing"))

        assert result.outcome == PROCESSED
        entry = db.query(AuditEvent).filter(AuditEvent.event_type == "status_updated").one()
        assert entry.session_id == "vs_missing"
        assert entry.result == "session_not_found"

    def test_last_write_wins_on_regression(self, dispatcher, store, db, session):
        dispatcher.dispatch(_event("evt_1", VERIFIED))
        dispatcher.dispatch(_event("evt_2", CANCELED))

        record = store.get("vs_1")
        db.refresh(record)
        assert record.status == "canceled"
        assert record.last_event_id == "evt_2"

    def test_verified_at_is_never_cleared_and_moves_on_reverify(self, dispatcher, store, db, session):
        dispatcher.dispatch(_event("evt_1", VERIFIED))
        record = store.get("vs_1")
        db.refresh(record)
        first_verified_at = record.verified_at
        assert first_verified_at is not None

        dispatcher.dispatch(_event("evt_2", CANCELED))
        dispatcher.dispatch(_event("evt_3", PROCESSING))
        db.refresh(record)
        assert record.status == "processing"
        assert record.verified_at == first_verified_at

        time.sleep(0.01)
        dispatcher.dispatch(_event("evt_4", VERIFIED))
        db.refresh(record)
        assert record.verified_at > first_verified_at

    def test_concurrent_duplicate_applies_once(self, dispatcher, store, db, session, monkeypatch):
        """Second delivery passes the idempotency read before the first commits."""
        dispatcher.dispatch(_event("evt_1", VERIFIED))

        answers = iter([False, True])
        monkeypatch.setattr(store, "is_event_processed", lambda event_id: next(answers))

        result = dispatcher.dispatch(_event("evt_1", VERIFIED))

        assert result.outcome == ALREADY_PROCESSED
        assert audit_types(db, "vs_1").count("status_updated") == 1

    def test_receipt_is_audited_before_failure(self, dispatcher, store, db, session, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("disk I/O error")

        monkeypatch.setattr(store, "apply_event_status", broken)

        with pytest.raises(RuntimeError):
            dispatcher.dispatch(_event("evt_1", VERIFIED))

        assert audit_types(db, "vs_1") == ["webhook_received"]


class TestIngest:

    def test_signed_delivery_is_dispatched(self, dispatcher, store, db, session):
        verifier = WebhookVerifier(WEBHOOK_SECRET)
        payload = make_event("evt_1", VERIFIED, "vs_1", "verified")

        result = dispatcher.ingest(verifier, payload, sign(payload), ip_address="127.0.0.1")

        assert result.outcome == PROCESSED
        received = db.query(AuditEvent).filter(AuditEvent.event_type == "webhook_received").one()
        assert received.event_metadata["signature_verified"] is True
        assert received.ip_address == "127.0.0.1"

    def test_bad_signature_is_audited_and_raised(self, dispatcher, store, db, session):
        verifier = WebhookVerifier(WEBHOOK_SECRET)
        payload = make_event("evt_1", VERIFIED, "vs_1")

        with pytest.raises(SignatureVerificationError):
            dispatcher.ingest(verifier, payload, sign(payload, secret="whsec_wrong"))

        entry = db.query(AuditEvent).one()
        assert entry.event_type == "webhook_error"
        assert entry.result == "failure"
        assert entry.event_metadata["error"] == "signature_verification_failed"
        db.refresh(session)
        assert session.status == "created"

    def test_malformed_payload_is_audited_and_raised(self, dispatcher, db):
        verifier = WebhookVerifier(WEBHOOK_SECRET)
        payload = b'{"id": "evt_1"}'

        with pytest.raises(MalformedEventError):
            dispatcher.ingest(verifier, payload, sign(payload))

        entry = db.query(AuditEvent).one()
        assert entry.event_type == "webhook_error"
        assert entry.event_metadata["error"] == "malformed_event"

    def test_unsigned_delivery_is_flagged(self, dispatcher, db, session):
        verifier = WebhookVerifier(None)
        payload = make_event("evt_1", VERIFIED, "vs_1")

        result = dispatcher.ingest(verifier, payload, None)

        assert result.outcome == PROCESSED
        received = db.query(AuditEvent).filter(AuditEvent.event_type == "webhook_received").one()
        assert received.event_metadata["signature_verified"] is False
