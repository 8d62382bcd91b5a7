"""
Shared consignment columns.

Bookings and manifests carry the same destination, party and pricing
fields; each table gets its own copy of these columns.
"""

from sqlalchemy import Column, Integer, String, Float, Date, Text


class ConsignmentColumns:
    """Column mixin for agent bookings and manifest tables."""

    awb_date = Column(Date, nullable=True)
    via = Column(String(20), nullable=True)  # udara (air) / darat (land)
    payment_method = Column(String(20), nullable=True)  # cash / transfer / cod
    agent_customer = Column(String(100), nullable=True)

    # Destination zone
    destination_city = Column(String(100), nullable=True)
    destination_district = Column(String(100), nullable=True)

    # Parties
    sender_name = Column(String(255), nullable=True)
    sender_phone = Column(String(50), nullable=True)
    receiver_name = Column(String(255), nullable=True)
    receiver_phone = Column(String(50), nullable=True)
    receiver_address = Column(String(500), nullable=True)

    # Contents
    pieces = Column(Integer, nullable=False, default=1)
    contents = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    # Pricing
    weight = Column(Float, nullable=False, default=1)
    price_per_weight = Column(Float, nullable=False, default=0)
    subtotal = Column(Float, nullable=False, default=0)
    admin_fee = Column(Float, nullable=False, default=0)
    packaging_fee = Column(Float, nullable=False, default=0)
    transit_fee = Column(Float, nullable=False, default=0)
    total = Column(Float, nullable=False, default=0)

    origin_branch = Column(String(100), nullable=True, index=True)


CONSIGNMENT_FIELDS = tuple(
    name for name, value in vars(ConsignmentColumns).items() if isinstance(value, Column)
)
