"""
History append service.

Inserts shipment_history rows idempotently. A request is a retry when the
newest entry for the tracking code already records the same status by the
same actor within the dedup window; it is reported as DUPLICATE_IGNORED
rather than an error. Each row also carries a unique dedup_key built from
the tracking code, status, actor and the id of the entry it follows, so
concurrent retries that both passed the check collide on insert.
"""

import enum
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select, desc
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import PersistenceError
from backend.app.core.observability import get_logger
from backend.app.db.session import utcnow
from backend.app.models.shipment_history import HistoryEntry
from backend.app.models.shipment_enums import ShipmentStatus

logger = get_logger("history")

# SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


class HistoryOutcome(str, enum.Enum):
    APPENDED = "appended"
    DUPLICATE_IGNORED = "duplicate_ignored"


def build_dedup_key(
    tracking_code: str,
    status: ShipmentStatus,
    actor: Optional[str],
    previous_id: Optional[int],
) -> str:
    return f"{tracking_code}|{ShipmentStatus(status).value}|{actor or ''}|{previous_id or 0}"


def _aware(value: datetime) -> datetime:
    # sqlite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_retry_of(
    latest: Optional[HistoryEntry],
    status: ShipmentStatus,
    actor: Optional[str],
    at: datetime,
    window_seconds: Optional[int] = None,
) -> bool:
    """True when latest already records this status by this actor within the window."""
    if latest is None:
        return False
    window = timedelta(seconds=window_seconds or settings.history_dedup_window_seconds)
    return (
        latest.status == ShipmentStatus(status)
        and (latest.courier_ref or latest.actor_name or "") == (actor or "")
        and at - _aware(latest.created_at) <= window
    )


async def _latest_entry(db: AsyncSession, tracking_code: str) -> Optional[HistoryEntry]:
    result = await db.execute(
        select(HistoryEntry)
        .where(HistoryEntry.tracking_code == tracking_code)
        .order_by(desc(HistoryEntry.created_at), desc(HistoryEntry.id))
        .limit(1)
    )
    return result.scalar_one_or_none()


def is_unique_violation(exc: IntegrityError) -> bool:
    """True for unique-constraint conflicts on both asyncpg and sqlite."""
    orig = exc.orig
    if getattr(orig, "pgcode", None) == UNIQUE_VIOLATION or getattr(orig, "sqlstate", None) == UNIQUE_VIOLATION:
        return True
    message = str(orig).lower()
    return "unique" in message or "duplicate key" in message


async def append_history(
    db: AsyncSession,
    tracking_code: str,
    status: ShipmentStatus,
    location: str,
    notes: Optional[str] = None,
    courier_ref: Optional[str] = None,
    actor_name: Optional[str] = None,
    photo_url: Optional[str] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
) -> HistoryOutcome:
    """
    Append one history entry and commit.

    Args:
        db: Database session (must have no pending writes of its own)
        tracking_code: Shipment the entry belongs to
        status: Status being recorded
        location: Where the change happened
        notes: Free-text notes
        courier_ref: Reference of the actor recording the entry
        actor_name: Display name, the actor when no courier_ref is known
        photo_url: Proof-of-delivery attachment reference
        latitude, longitude: Optional geocoordinates

    Returns:
        HistoryOutcome.APPENDED, or DUPLICATE_IGNORED for a retried request

    Raises:
        PersistenceError: For any other insertion failure
    """
    created_at = utcnow()
    actor = courier_ref or actor_name

    try:
        latest = await _latest_entry(db, tracking_code)
        if is_retry_of(latest, status, actor, created_at):
            await db.rollback()
            logger.info(
                "Duplicate history ignored",
                extra={"tracking_code": tracking_code, "status": ShipmentStatus(status).value}
            )
            return HistoryOutcome.DUPLICATE_IGNORED

        db.add(HistoryEntry(
            tracking_code=tracking_code,
            status=status,
            location=location,
            notes=notes,
            courier_ref=courier_ref,
            actor_name=actor_name,
            photo_url=photo_url,
            latitude=latitude,
            longitude=longitude,
            dedup_key=build_dedup_key(tracking_code, status, actor, latest.id if latest else None),
            created_at=created_at,
        ))
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if is_unique_violation(e):
            logger.info(
                "Duplicate history ignored",
                extra={"tracking_code": tracking_code, "status": ShipmentStatus(status).value}
            )
            return HistoryOutcome.DUPLICATE_IGNORED
        raise PersistenceError(
            f"Failed to append history for {tracking_code}",
            details={"tracking_code": tracking_code, "error": str(e.orig)}
        )
    except SQLAlchemyError as e:
        await db.rollback()
        raise PersistenceError(
            f"Failed to append history for {tracking_code}",
            details={"tracking_code": tracking_code, "error": str(e)}
        )

    return HistoryOutcome.APPENDED
