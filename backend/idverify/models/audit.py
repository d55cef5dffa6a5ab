"""
Audit Event Model — Append-only compliance trail (records of processing).
Rows are only removed by a user data erasure request.
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, JSON

from idverify.database import Base


class AuditEvent(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)

    event_type = Column(String(50), nullable=False)
    # Types: session_created, session_creation_failed, webhook_received, webhook_error,
    #        status_updated, status_sync_failed, user_data_deleted

    session_id = Column(String(255), nullable=True, index=True)  # Not a foreign key
    timestamp = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    event_metadata = Column(JSON, default=dict)  # No personal data
    ip_address = Column(String(45))
    result = Column(String(32), nullable=False, default="success")
