"""
FastAPI dependencies — per-request wiring of the store, audit trail and services.

The engine is process-wide; everything built here lives for one request.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from idverify.config import get_settings
from idverify.database import get_db
from idverify.services.audit_service import AuditService
from idverify.services.event_dispatcher import EventDispatcher
from idverify.services.provider import StripeIdentityProvider
from idverify.services.session_store import SessionStore
from idverify.services.verification_service import VerificationService
from idverify.services.webhook_verifier import WebhookVerifier


def get_store(db: Session = Depends(get_db)) -> SessionStore:
    return SessionStore(db)


def get_audit(store: SessionStore = Depends(get_store)) -> AuditService:
    return AuditService(store)


def get_provider() -> StripeIdentityProvider:
    """Provider client from settings. Raises ConfigurationError without a secret key."""
    settings = get_settings()
    return StripeIdentityProvider(
        api_key=settings.STRIPE_SECRET_KEY,
        api_version=settings.STRIPE_API_VERSION,
        return_url=settings.return_url,
    )


def get_verifier() -> WebhookVerifier:
    settings = get_settings()
    return WebhookVerifier(settings.STRIPE_WEBHOOK_SECRET, tolerance=settings.WEBHOOK_TOLERANCE_SECONDS)


def get_dispatcher(
    store: SessionStore = Depends(get_store),
    audit: AuditService = Depends(get_audit),
) -> EventDispatcher:
    return EventDispatcher(store, audit)


def get_lifecycle(
    store: SessionStore = Depends(get_store),
    audit: AuditService = Depends(get_audit),
) -> VerificationService:
    """Lifecycle service without a provider (reads, erasure, statistics)."""
    return VerificationService(store, audit)
