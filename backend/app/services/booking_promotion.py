"""
Booking promotion service.

Moves an agent booking into the branch manifest. A booking transitions
exactly once: pending → verified (with exactly one manifest record) or
pending → rejected (with a reason, no manifest record).
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import (
    InvalidFormatError,
    InvalidTransitionError,
    PersistenceError,
    ResourceNotFoundError,
)
from backend.app.core.observability import get_logger
from backend.app.db.session import utcnow
from backend.app.domain.pricing.pricing_resolver import calculate_totals, zone_pricing
from backend.app.models.booking import Booking
from backend.app.models.consignment import CONSIGNMENT_FIELDS
from backend.app.models.manifest import ManifestRecord
from backend.app.models.shipment_enums import BookingStatus, PaymentStatus
from backend.app.schemas.booking import BookingEdits

logger = get_logger("booking")


async def get_booking(db: AsyncSession, booking_id: int, for_update: bool = False) -> Booking:
    query = select(Booking).where(Booking.id == booking_id)
    if for_update:
        query = query.with_for_update()

    result = await db.execute(query)
    booking = result.scalar_one_or_none()
    if booking is None:
        raise ResourceNotFoundError("Booking", booking_id)
    return booking


def _require_pending(booking: Booking):
    if booking.status != BookingStatus.PENDING:
        raise InvalidTransitionError(
            f"Booking {booking.id} is already {booking.status.value}",
            details={"booking_id": booking.id, "status": booking.status.value}
        )


def apply_edits(booking: Booking, edits: Optional[BookingEdits]) -> None:
    """
    Apply operator edits to a pending booking and recompute its totals.

    subtotal = weight × price_per_weight
    total = subtotal + admin_fee + packaging_fee + transit_fee
    """
    changes = edits.model_dump(exclude_none=True) if edits else {}

    destination_changed = any(
        key in changes and changes[key] != getattr(booking, key)
        for key in ("destination_city", "destination_district")
    )
    for key, value in changes.items():
        setattr(booking, key, value)

    if destination_changed:
        zone_price = zone_pricing.resolve_price(booking.destination_city, booking.destination_district)
        if "price_per_weight" not in changes:
            booking.price_per_weight = zone_price.price_per_weight
        if "transit_fee" not in changes:
            booking.transit_fee = zone_price.transit_surcharge

    booking.subtotal, booking.total = calculate_totals(
        booking.weight,
        booking.price_per_weight,
        [booking.admin_fee or 0, booking.packaging_fee or 0, booking.transit_fee or 0],
    )


def build_manifest_record(booking: Booking) -> ManifestRecord:
    record = ManifestRecord(
        tracking_code=booking.tracking_code,
        booking_id=booking.id,
        settlement_status=PaymentStatus.OUTSTANDING,
        deduction=0,
        proof_of_payment=False,
    )
    for field in CONSIGNMENT_FIELDS:
        setattr(record, field, getattr(booking, field))
    record.notes = f"Verified from agent booking {booking.tracking_code}"
    return record


async def promote(
    db: AsyncSession,
    booking_id: int,
    edits: Optional[BookingEdits] = None,
) -> ManifestRecord:
    """
    Verify a pending booking and create its manifest record.

    The booking update and the manifest insert commit together; if either
    fails both are rolled back.

    Raises:
        ResourceNotFoundError: Unknown booking
        InvalidTransitionError: Booking is not pending
        PersistenceError: The write failed (nothing was committed)
    """
    booking = await get_booking(db, booking_id, for_update=True)
    _require_pending(booking)

    tracking_code = booking.tracking_code
    apply_edits(booking, edits)
    booking.status = BookingStatus.VERIFIED
    booking.verified_at = utcnow()

    record = build_manifest_record(booking)
    db.add(record)

    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(
            "Booking promotion rolled back",
            extra={"booking_id": booking_id, "tracking_code": tracking_code, "error": str(e)}
        )
        raise PersistenceError(
            f"Failed to promote booking {booking_id}",
            details={"booking_id": booking_id, "tracking_code": tracking_code}
        )

    await db.refresh(record)
    logger.info(
        "Booking promoted",
        extra={"booking_id": booking_id, "tracking_code": tracking_code, "total": record.total}
    )
    return record


async def reject(db: AsyncSession, booking_id: int, reason: str) -> Booking:
    """
    Reject a pending booking. Never creates a manifest record.

    Raises:
        InvalidFormatError: Empty reason
        ResourceNotFoundError: Unknown booking
        InvalidTransitionError: Booking is not pending
        PersistenceError: The write failed
    """
    reason = (reason or "").strip()
    if not reason:
        raise InvalidFormatError("Rejection reason is required", details={"booking_id": booking_id})

    booking = await get_booking(db, booking_id, for_update=True)
    _require_pending(booking)

    booking.status = BookingStatus.REJECTED
    booking.rejection_reason = reason
    booking.verified_at = utcnow()
    booking.notes = f"REJECTED: {reason}"

    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise PersistenceError(
            f"Failed to reject booking {booking_id}",
            details={"booking_id": booking_id, "error": str(e)}
        )

    await db.refresh(booking)
    logger.info("Booking rejected", extra={"booking_id": booking_id})
    return booking


async def list_pending(
    db: AsyncSession,
    origin_branch: Optional[str] = None,
    limit: int = 100,
) -> list[Booking]:
    """Pending bookings, oldest submission first."""
    query = select(Booking).where(Booking.status == BookingStatus.PENDING)
    if origin_branch is not None:
        query = query.where(Booking.origin_branch == origin_branch)

    result = await db.execute(query.order_by(Booking.submitted_at, Booking.id).limit(limit))
    return list(result.scalars().all())
