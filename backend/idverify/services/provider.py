"""
Identity Provider Client — Stripe Identity verification sessions.

Document capture and the vaulting of personal data happen entirely on the
provider side; this client only ever sees session ids, URLs and statuses.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import stripe

from idverify.errors import UpstreamProviderError, ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderSession:
    id: str
    url: Optional[str]
    status: str


class StripeIdentityProvider:
    """Blocking calls to the Stripe Identity API. Failures are never retried here."""

    def __init__(self, api_key: str, api_version: str, return_url: str):
        if not api_key:
            raise ConfigurationError("STRIPE_SECRET_KEY is not configured")
        self.api_key = api_key
        self.api_version = api_version
        self.return_url = return_url

    def create_session(self, verification_type: str, user_reference: str) -> ProviderSession:
        """Create a hosted verification session.

        Args:
            verification_type: Provider session type (e.g. "document").
            user_reference: Pseudonymous reference, attached as session metadata.

        Returns:
            ProviderSession with the hosted flow URL.
        """
        try:
            session = stripe.identity.VerificationSession.create(
                type=verification_type,
                return_url=self.return_url,
                metadata={"user_reference": user_reference},
                api_key=self.api_key,
                stripe_version=self.api_version,
            )
        except stripe.StripeError as exc:
            logger.error("Provider session creation failed: %s", exc)
            raise UpstreamProviderError(str(exc) or "Identity provider request failed") from exc

        return ProviderSession(id=session.id, url=session.url, status=session.status)

    def retrieve_status(self, session_id: str) -> str:
        """Current provider-side status of a session."""
        try:
            session = stripe.identity.VerificationSession.retrieve(
                session_id,
                api_key=self.api_key,
                stripe_version=self.api_version,
            )
        except stripe.StripeError as exc:
            logger.error("Provider status lookup failed for %s: %s", session_id, exc)
            raise UpstreamProviderError(str(exc) or "Identity provider request failed") from exc

        return session.status
