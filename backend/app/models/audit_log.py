"""
Audit Log Database Model.

Tracks operator actions on shipments and bookings for accountability.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from backend.app.db.session import Base, utcnow


class AuditLog(Base):
    """
    Audit log model for tracking operator actions.

    Events logged:
    - BOOKING_VERIFIED / BOOKING_REJECTED
    - SYNC_FIXED
    - BULK_STATUS_UPDATED
    - ACTOR_TOKENS_REVOKED / ACTOR_TOKENS_RESTORED / TOKEN_REVOKED
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for system actions)
    actor_ref = Column(String(64), index=True, nullable=True)
    actor_name = Column(String(100), nullable=True)

    # What action was performed
    action = Column(String(100), nullable=False, index=True)

    # What the action targeted (tracking code, booking id, courier ref)
    target_ref = Column(String(100), index=True, nullable=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_name}, target={self.target_ref})>"
