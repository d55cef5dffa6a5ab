from idverify.services.session_store import SessionStore
from idverify.services.audit_service import AuditService
from idverify.services.webhook_verifier import WebhookVerifier, WebhookEvent
from idverify.services.event_dispatcher import EventDispatcher, DispatchResult
from idverify.services.provider import StripeIdentityProvider, ProviderSession
from idverify.services.verification_service import VerificationService

__all__ = [
    "SessionStore", "AuditService", "WebhookVerifier", "WebhookEvent",
    "EventDispatcher", "DispatchResult", "StripeIdentityProvider", "ProviderSession",
    "VerificationService",
]
