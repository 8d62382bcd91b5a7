"""
Shipment, booking and manifest enumerations.
"""

import enum


class ShipmentStatus(str, enum.Enum):
    """
    Shipment status enumeration.

    Status flow:
        created → out_for_delivery → delivered
        Any non-delivered status can move to exception
        delivered is terminal
    """
    CREATED = "created"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    EXCEPTION = "exception"


TERMINAL_STATUSES = frozenset({ShipmentStatus.DELIVERED})

# Statuses a scan may set; anything else is downgraded to OUT_FOR_DELIVERY
SCAN_TARGET_STATUSES = frozenset({ShipmentStatus.OUT_FOR_DELIVERY, ShipmentStatus.DELIVERED})


class BookingStatus(str, enum.Enum):
    """Booking status enumeration. VERIFIED and REJECTED are both terminal."""
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class PaymentStatus(str, enum.Enum):
    """Payment / settlement status shared by bookings and manifest records."""
    OUTSTANDING = "outstanding"
    SETTLED = "settled"


class ManifestSource(str, enum.Enum):
    """Provenance of descriptive data used when ingestion creates a shipment."""
    PARTNER = "partner"
    BRANCH = "branch"
    CENTRAL = "central"
    PLACEHOLDER = "placeholder"
