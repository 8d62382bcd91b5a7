"""
Shipment history database model.

Append-only audit log of status changes; never updated or deleted.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Text, ForeignKey, Enum, Index
from backend.app.db.session import Base, utcnow
from backend.app.models.shipment_enums import ShipmentStatus


class HistoryEntry(Base):
    """
    History entry model.

    One row per status change. The newest entry for a tracking code wins
    over Shipment.current_status when the two disagree.

    dedup_key is tracking code, status, actor and the id of the preceding
    entry. A second insert with the same key is a concurrent retry.
    """
    __tablename__ = "shipment_history"
    __table_args__ = (
        Index("ix_shipment_history_code_created", "tracking_code", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    tracking_code = Column(String(50), ForeignKey("shipments.tracking_code"), nullable=False, index=True)
    status = Column(Enum(ShipmentStatus), nullable=False)
    location = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True)

    # Actor
    courier_ref = Column(String(64), nullable=True, index=True)
    actor_name = Column(String(100), nullable=True)

    # Proof of delivery
    photo_url = Column(String(500), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    dedup_key = Column(String(255), unique=True, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<HistoryEntry(id={self.id}, code='{self.tracking_code}', status='{self.status.value}')>"
