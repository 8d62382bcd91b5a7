"""
Booking database model.

An agent-submitted request awaiting verification by a branch operator.
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, Enum
from backend.app.db.session import Base, utcnow
from backend.app.models.consignment import ConsignmentColumns
from backend.app.models.shipment_enums import BookingStatus, PaymentStatus


class Booking(ConsignmentColumns, Base):
    """
    Booking model.

    Status flow:
        pending → verified (creates exactly one ManifestRecord)
        pending → rejected (rejection_reason required)
    Both outcomes are terminal.
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Agent-generated candidate code
    tracking_code = Column(String(50), unique=True, nullable=False, index=True)

    status = Column(Enum(BookingStatus), default=BookingStatus.PENDING, nullable=False, index=True)
    payment_status = Column(Enum(PaymentStatus), default=PaymentStatus.OUTSTANDING, nullable=False)
    rejection_reason = Column(Text, nullable=True)

    agent_ref = Column(String(64), nullable=True, index=True)

    # Timestamps
    submitted_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Booking(id={self.id}, code='{self.tracking_code}', status='{self.status.value}')>"
