"""
Shipment database model.

One row per tracking code (AWB); the cached current status of a parcel.
"""

from sqlalchemy import Column, String, Float, DateTime, Enum
from backend.app.db.session import Base, utcnow
from backend.app.models.shipment_enums import ShipmentStatus, ManifestSource


class Shipment(Base):
    """
    Shipment model.

    Only current_status, courier_ref and the timestamps are load-bearing
    for the lifecycle; sender/receiver fields are descriptive. The
    authoritative record of what happened lives in shipment_history.
    """
    __tablename__ = "shipments"

    tracking_code = Column(String(50), primary_key=True)

    current_status = Column(Enum(ShipmentStatus), default=ShipmentStatus.CREATED, nullable=False, index=True)

    # Weak reference to the courier holding the parcel (no FK, no ownership)
    courier_ref = Column(String(64), nullable=True, index=True)

    # Descriptive data
    sender_name = Column(String(255), nullable=True)
    sender_address = Column(String(500), nullable=True)
    sender_phone = Column(String(50), nullable=True)
    receiver_name = Column(String(255), nullable=True)
    receiver_address = Column(String(500), nullable=True)
    receiver_phone = Column(String(50), nullable=True)
    weight = Column(Float, nullable=False, default=1)
    dimensions = Column(String(50), nullable=True)
    service_type = Column(String(50), nullable=True)
    manifest_source = Column(Enum(ManifestSource), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Shipment(code='{self.tracking_code}', status='{self.current_status.value}', courier={self.courier_ref})>"
