from idverify.models.verification import VerificationSession, VerificationStatus
from idverify.models.audit import AuditEvent

__all__ = ["VerificationSession", "VerificationStatus", "AuditEvent"]
