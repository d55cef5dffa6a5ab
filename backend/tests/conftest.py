"""Test configuration and fixtures."""

import hashlib
import hmac
import json
import os
import tempfile
import time

import pytest

# Point settings at a throwaway database BEFORE idverify.config is imported.
_tmp_dir = tempfile.mkdtemp(prefix="idverify-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmp_dir, 'verification.db')}"
os.environ["LOG_DIR"] = os.path.join(_tmp_dir, "logs")
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["DEBUG"] = "false"

from idverify.database import SessionLocal, init_db
from idverify.errors import UpstreamProviderError
from idverify.models import AuditEvent, VerificationSession
from idverify.services.audit_service import AuditService
from idverify.services.event_dispatcher import EventDispatcher
from idverify.services.provider import ProviderSession
from idverify.services.session_store import SessionStore

WEBHOOK_SECRET = "whsec_test_secret"


class FakeProvider:
    """In-memory stand-in for the Stripe Identity client."""

    def __init__(self):
        self.statuses = {}
        self.created = []
        self.fail = False
        self.fail_retrieve = False

    def create_session(self, verification_type, user_reference):
        if self.fail:
            raise UpstreamProviderError("Invalid API Key provided")
        session_id = f"vs_test_{len(self.created) + 1:04d}"
        self.created.append((session_id, verification_type, user_reference))
        self.statuses[session_id] = "created"
        return ProviderSession(
            id=session_id,
            url=f"https://verify.stripe.com/start/{session_id}",
            status="requires_input",
        )

    def retrieve_status(self, session_id):
        if self.fail_retrieve:
            raise UpstreamProviderError("Connection to Stripe timed out")
        return self.statuses.get(session_id, "created")


def make_event(event_id, event_type, session_id, status=None):
    """Serialized provider event, as bytes on the wire."""
    event = {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "created": int(time.time()),
        "data": {"object": {"id": session_id, "object": "identity.verification_session", "status": status}},
    }
    return json.dumps(event).encode("utf-8")


def sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
    """Stripe-Signature header for ``payload``."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database tables before tests."""
    init_db()
    yield


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    db = SessionLocal()
    try:
        db.query(AuditEvent).delete()
        db.query(VerificationSession).delete()
        db.commit()
    finally:
        db.close()


@pytest.fixture
def db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def store(db):
    return SessionStore(db)


@pytest.fixture
def audit(store):
    return AuditService(store)


@pytest.fixture
def dispatcher(store, audit):
    return EventDispatcher(store, audit)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def client(provider):
    from fastapi.testclient import TestClient

    from idverify.dependencies import get_provider
    from idverify.main import app

    app.dependency_overrides[get_provider] = lambda: provider
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def audit_types(db, session_id=None):
    query = db.query(AuditEvent).order_by(AuditEvent.id.asc())
    if session_id is not None:
        query = query.filter(AuditEvent.session_id == session_id)
    return [e.event_type for e in query.all()]
