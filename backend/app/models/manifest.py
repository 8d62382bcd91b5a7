"""
Manifest database models.

ManifestRecord is the branch-level operational record (promoted bookings
and direct entries). CentralManifest is the head-office manifest that
ingestion falls back to for descriptive data.
"""

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, Enum
from backend.app.db.session import Base, utcnow
from backend.app.models.consignment import ConsignmentColumns
from backend.app.models.shipment_enums import PaymentStatus


class ManifestRecord(ConsignmentColumns, Base):
    """
    Branch manifest record.

    Created once, by booking promotion or direct entry; afterwards only
    settlement bookkeeping changes.
    """
    __tablename__ = "branch_manifests"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    tracking_code = Column(String(50), unique=True, nullable=False, index=True)

    # Set when the record came from a verified booking
    booking_id = Column(Integer, ForeignKey("bookings.id"), unique=True, nullable=True)

    # Settlement
    settlement_status = Column(Enum(PaymentStatus), default=PaymentStatus.OUTSTANDING, nullable=False, index=True)
    deduction = Column(Float, nullable=False, default=0)
    proof_of_payment = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<ManifestRecord(id={self.id}, code='{self.tracking_code}', total={self.total})>"


class CentralManifest(ConsignmentColumns, Base):
    """Head-office manifest entry (read-only to the lifecycle core)."""
    __tablename__ = "central_manifests"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    tracking_code = Column(String(50), unique=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<CentralManifest(id={self.id}, code='{self.tracking_code}')>"
