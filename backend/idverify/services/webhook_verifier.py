"""
Webhook Verifier — Authenticates provider events before their contents are trusted.

Signatures are computed by the provider over the exact request bytes, so the
payload must reach this module unparsed.
"""
import json
import logging
from dataclasses import dataclass
from typing import Optional

import stripe

from idverify.errors import SignatureVerificationError, MalformedEventError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WebhookEvent:
    event_id: str
    event_type: str
    object_id: str
    object_status: Optional[str] = None
    created: Optional[int] = None   # Provider event time (unix seconds)
    verified: bool = True           # False when accepted without a signing secret


class WebhookVerifier:
    """Checks the provider signature header and parses the event."""

    def __init__(self, secret: Optional[str], tolerance: int = 300):
        self.secret = secret or None
        self.tolerance = tolerance

    @property
    def enforcing(self) -> bool:
        return self.secret is not None

    def verify(self, payload: bytes, signature_header: Optional[str]) -> WebhookEvent:
        """Verify and parse a raw webhook delivery.

        Raises:
            SignatureVerificationError: header missing or malformed, timestamp
                outside tolerance, or signature does not match the secret.
            MalformedEventError: payload is not a well-formed event.
        """
        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedEventError("Payload is not valid UTF-8") from exc

        if self.enforcing:
            if not signature_header:
                raise SignatureVerificationError("Missing signature header")
            try:
                stripe.WebhookSignature.verify_header(body, signature_header, self.secret, self.tolerance)
            except stripe.SignatureVerificationError as exc:
                raise SignatureVerificationError(f"Signature verification failed: {exc}") from exc
        else:
            logger.warning("STRIPE_WEBHOOK_SECRET not configured; accepting webhook without signature verification")

        return self.parse(body, verified=self.enforcing)

    @staticmethod
    def parse(body: str, verified: bool = True) -> WebhookEvent:
        try:
            event = json.loads(body)
        except ValueError as exc:
            raise MalformedEventError("Payload is not valid JSON") from exc

        if not isinstance(event, dict):
            raise MalformedEventError("Event payload must be a JSON object")

        data = event.get("data")
        obj = data.get("object") if isinstance(data, dict) else None
        event_id, event_type = event.get("id"), event.get("type")
        if not isinstance(obj, dict) or not event_id or not event_type or not obj.get("id"):
            raise MalformedEventError("Event is missing id, type or data.object.id")

        return WebhookEvent(
            event_id=str(event_id),
            event_type=str(event_type),
            object_id=str(obj["id"]),
            object_status=obj.get("status"),
            created=event.get("created"),
            verified=verified,
        )
