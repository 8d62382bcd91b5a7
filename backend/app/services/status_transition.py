"""
Status transition service.

Enforces the shipment state machine:
    created → out_for_delivery → delivered
    any non-delivered status → exception
    delivered is terminal

The shipment write is committed before the history append. A failed
history append does not undo the status change; it is returned as a
warning and left for reconciliation to repair.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import (
    InvalidTransitionError,
    PersistenceError,
    TerminalStateViolationError,
)
from backend.app.core.observability import get_logger
from backend.app.models.shipment_enums import ShipmentStatus, TERMINAL_STATUSES
from backend.app.services import shipment_store
from backend.app.services.history import HistoryOutcome, append_history

logger = get_logger("status")


@dataclass
class TransitionResult:
    """Outcome of a status write; plain values, safe to use after a rollback."""
    tracking_code: str
    status: ShipmentStatus
    previous_status: Optional[ShipmentStatus]
    courier_ref: Optional[str]
    updated_at: datetime
    history_outcome: Optional[HistoryOutcome]
    warning: Optional[str] = None


def validate_target(status) -> ShipmentStatus:
    try:
        target = ShipmentStatus(status)
    except ValueError:
        raise InvalidTransitionError(f"Unknown status: {status}", details={"status": str(status)})

    if target == ShipmentStatus.CREATED:
        raise InvalidTransitionError(
            "A shipment cannot be moved back to created",
            details={"status": target.value}
        )
    return target


async def append_history_or_warn(
    db: AsyncSession,
    tracking_code: str,
    status: ShipmentStatus,
    location: str,
    **history_fields,
) -> Tuple[Optional[HistoryOutcome], Optional[str]]:
    """
    Append history, turning a PersistenceError into a warning string.

    Returns:
        (outcome, warning): outcome is None when the append failed
    """
    try:
        outcome = await append_history(db, tracking_code, status, location, **history_fields)
        return outcome, None
    except PersistenceError as e:
        logger.warning(
            "History append failed after status write",
            extra={"tracking_code": tracking_code, "status": status.value, "error": e.message}
        )
        return None, e.message


async def apply_status(
    db: AsyncSession,
    tracking_code: str,
    new_status,
    location: str,
    notes: Optional[str] = None,
    courier_ref: Optional[str] = None,
    actor_name: Optional[str] = None,
    photo_url: Optional[str] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    actor_ref: Optional[str] = None,
) -> TransitionResult:
    """
    Move a shipment to new_status and record it in history.

    Args:
        db: Database session
        tracking_code: Normalized tracking code
        new_status: Target status (any ShipmentStatus except created)
        location: History location
        notes: History notes
        courier_ref: Courier to assign; kept unchanged when None
        actor_name: Display name recorded on the history entry
        actor_ref: Who made the change, recorded on the history entry;
            defaults to courier_ref
        photo_url, latitude, longitude: Proof of delivery

    Returns:
        TransitionResult; `warning` is set when only the history append failed

    Raises:
        ResourceNotFoundError: Unknown tracking code
        TerminalStateViolationError: Shipment is already delivered (nothing written)
        InvalidTransitionError: Target status is not reachable
        PersistenceError: The shipment write itself failed
    """
    shipment = await shipment_store.require_shipment(db, tracking_code)

    if shipment.current_status in TERMINAL_STATUSES:
        raise TerminalStateViolationError(tracking_code)

    target = validate_target(new_status)

    previous_status = shipment.current_status

    try:
        await shipment_store.write_status(db, shipment, target, courier_ref)
    except SQLAlchemyError as e:
        await db.rollback()
        raise PersistenceError(
            f"Failed to update shipment {tracking_code}",
            details={"tracking_code": tracking_code, "error": str(e)}
        )

    # Captured before the history append; a rollback there expires the instance
    result = TransitionResult(
        tracking_code=tracking_code,
        status=target,
        previous_status=previous_status,
        courier_ref=shipment.courier_ref,
        updated_at=shipment.updated_at,
        history_outcome=None,
    )

    logger.info(
        "Shipment status changed",
        extra={"tracking_code": tracking_code, "from": previous_status.value, "to": target.value}
    )

    result.history_outcome, result.warning = await append_history_or_warn(
        db,
        tracking_code,
        target,
        location,
        notes=notes,
        courier_ref=actor_ref or courier_ref,
        actor_name=actor_name,
        photo_url=photo_url,
        latitude=latitude,
        longitude=longitude,
    )
    return result
