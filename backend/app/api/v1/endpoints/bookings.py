"""
Booking Verification API Endpoints.

Branch operators review agent bookings: promote them into the branch
manifest (with edited figures) or reject them.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Body
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.models.enums import UserRole
from backend.app.core.config import settings
from backend.app.core.guards import require_role, branch_filter, enforce_branch
from backend.app.core.reliability import run_with_timeout
from backend.app.schemas.booking import (
    BookingEdits, BookingReject, BookingResponse, BookingListResponse, ManifestRecordResponse
)
from backend.app.services import booking_promotion
from backend.app.services.audit import log_operator_action, AuditAction

router = APIRouter(prefix="/bookings", tags=["Booking Verification"])

require_operator = require_role([UserRole.BRANCH, UserRole.ADMIN])


@router.get("/pending", response_model=BookingListResponse)
async def list_pending_bookings(
    limit: int = Query(100, ge=1, le=500),
    current_user: dict = Depends(require_operator),
    db: AsyncSession = Depends(get_db)
):
    """
    List pending bookings, oldest first.

    Branch operators only see bookings of their own branch.
    """
    bookings = await booking_promotion.list_pending(
        db, origin_branch=branch_filter(current_user), limit=limit
    )
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        total=len(bookings)
    )


@router.post("/{booking_id}/promote", response_model=ManifestRecordResponse)
async def promote_booking(
    booking_id: int = Path(..., description="Booking ID"),
    edits: Optional[BookingEdits] = Body(None),
    current_user: dict = Depends(require_operator),
    db: AsyncSession = Depends(get_db)
):
    """
    Verify a booking and create its manifest record.

    Edited weight, price and fees are applied and totals recomputed:
    subtotal = weight × price_per_weight, total = subtotal + fees.
    """
    booking = await booking_promotion.get_booking(db, booking_id)
    enforce_branch(booking.origin_branch, current_user, "booking")

    record = await run_with_timeout(
        booking_promotion.promote(db, booking_id, edits),
        settings.operation_timeout_seconds,
        "promote_booking",
    )
    response = ManifestRecordResponse.model_validate(record)

    await log_operator_action(
        db=db,
        current_user=current_user,
        action=AuditAction.BOOKING_VERIFIED,
        target_ref=response.tracking_code,
        metadata={"booking_id": booking_id, "total": response.total}
    )
    return response


@router.post("/{booking_id}/reject", response_model=BookingResponse)
async def reject_booking(
    request: BookingReject,
    booking_id: int = Path(..., description="Booking ID"),
    current_user: dict = Depends(require_operator),
    db: AsyncSession = Depends(get_db)
):
    """Reject a pending booking with a reason. No manifest record is created."""
    booking = await booking_promotion.get_booking(db, booking_id)
    enforce_branch(booking.origin_branch, current_user, "booking")

    booking = await run_with_timeout(
        booking_promotion.reject(db, booking_id, request.reason),
        settings.operation_timeout_seconds,
        "reject_booking",
    )
    response = BookingResponse.model_validate(booking)

    await log_operator_action(
        db=db,
        current_user=current_user,
        action=AuditAction.BOOKING_REJECTED,
        target_ref=response.tracking_code,
        metadata={"booking_id": booking_id, "reason": response.rejection_reason}
    )
    return response
