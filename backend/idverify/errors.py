"""
Error Taxonomy — exceptions raised by the verification services.

Routes translate these into HTTP responses; the webhook path only ever
rejects on SignatureVerificationError and MalformedEventError.
"""


class VerificationError(Exception):
    """Base class for all service-level errors."""


class SignatureVerificationError(VerificationError):
    """Webhook payload, signature header and signing secret do not match."""


class MalformedEventError(VerificationError):
    """Webhook payload is not a well-formed provider event."""


class UpstreamProviderError(VerificationError):
    """The identity provider could not be reached or rejected the request."""


class SessionNotFoundError(VerificationError):
    """No local record exists for the requested session id."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Verification session not found: {session_id}")


class ConfigurationError(VerificationError):
    """A required setting is missing; the process must not serve traffic."""
