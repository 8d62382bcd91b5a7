"""
Shipment record store.

Thin async accessors over the shipments and shipment_history tables.
Every caller re-reads through these functions; nothing is cached.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, desc, func
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import ResourceNotFoundError
from backend.app.db.session import utcnow
from backend.app.models.shipment import Shipment
from backend.app.models.shipment_history import HistoryEntry
from backend.app.models.shipment_enums import ShipmentStatus, ManifestSource


async def get_shipment(db: AsyncSession, tracking_code: str) -> Optional[Shipment]:
    result = await db.execute(
        select(Shipment)
        .where(Shipment.tracking_code == tracking_code)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def require_shipment(db: AsyncSession, tracking_code: str) -> Shipment:
    """
    Load a shipment or raise.

    Raises:
        ResourceNotFoundError: If no shipment has this tracking code
    """
    shipment = await get_shipment(db, tracking_code)
    if shipment is None:
        raise ResourceNotFoundError("Shipment", tracking_code)
    return shipment


async def create_shipment(
    db: AsyncSession,
    tracking_code: str,
    status: ShipmentStatus,
    courier_ref: Optional[str] = None,
    descriptive: Optional[dict] = None,
    manifest_source: Optional[ManifestSource] = None,
) -> Shipment:
    """
    Insert a new shipment and commit.

    Args:
        db: Database session
        tracking_code: Normalized tracking code
        status: Initial current status
        courier_ref: Courier holding the parcel
        descriptive: Sender/receiver/weight fields resolved from a manifest source
        manifest_source: Provenance of the descriptive fields

    Raises:
        IntegrityError: If the tracking code already exists
    """
    now = utcnow()
    shipment = Shipment(
        tracking_code=tracking_code,
        current_status=status,
        courier_ref=courier_ref,
        manifest_source=manifest_source,
        created_at=now,
        updated_at=now,
        **(descriptive or {}),
    )
    db.add(shipment)
    await db.commit()
    await db.refresh(shipment)
    return shipment


async def write_status(
    db: AsyncSession,
    shipment: Shipment,
    status: ShipmentStatus,
    courier_ref: Optional[str] = None,
) -> Shipment:
    """Set current_status (and optionally courier_ref) and commit. Last write wins."""
    shipment.current_status = status
    shipment.updated_at = utcnow()
    if courier_ref:
        shipment.courier_ref = courier_ref

    await db.commit()
    await db.refresh(shipment)
    return shipment


async def get_latest_history(db: AsyncSession, tracking_code: str) -> Optional[HistoryEntry]:
    """Most recent history entry; ties on created_at are broken by insertion order."""
    result = await db.execute(
        select(HistoryEntry)
        .where(HistoryEntry.tracking_code == tracking_code)
        .order_by(desc(HistoryEntry.created_at), desc(HistoryEntry.id))
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_latest_history_status(db: AsyncSession, tracking_code: str) -> Optional[ShipmentStatus]:
    entry = await get_latest_history(db, tracking_code)
    return entry.status if entry else None


async def list_history(db: AsyncSession, tracking_code: str) -> list[HistoryEntry]:
    """Full history for a shipment, newest first."""
    result = await db.execute(
        select(HistoryEntry)
        .where(HistoryEntry.tracking_code == tracking_code)
        .order_by(desc(HistoryEntry.created_at), desc(HistoryEntry.id))
    )
    return list(result.scalars().all())


async def count_history(db: AsyncSession, tracking_code: str) -> int:
    result = await db.execute(
        select(func.count(HistoryEntry.id)).where(HistoryEntry.tracking_code == tracking_code)
    )
    return result.scalar()


def stale_cutoff(age_days: int, now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) - timedelta(days=age_days)


async def select_stale_shipments(
    db: AsyncSession,
    courier_ref: str,
    age_days: int,
    now: Optional[datetime] = None,
) -> list[Shipment]:
    """
    Shipments held by a courier that are not delivered and older than age_days.

    Ordered oldest first so chunking is stable across retries.
    """
    result = await db.execute(
        select(Shipment)
        .where(
            Shipment.courier_ref == courier_ref,
            Shipment.current_status != ShipmentStatus.DELIVERED,
            Shipment.created_at < stale_cutoff(age_days, now),
        )
        .order_by(Shipment.created_at, Shipment.tracking_code)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def count_stale_by_courier(
    db: AsyncSession,
    age_days: int,
    now: Optional[datetime] = None,
) -> dict[str, int]:
    """Number of stale, non-delivered shipments per courier."""
    result = await db.execute(
        select(Shipment.courier_ref, func.count(Shipment.tracking_code))
        .where(
            Shipment.courier_ref.is_not(None),
            Shipment.current_status != ShipmentStatus.DELIVERED,
            Shipment.created_at < stale_cutoff(age_days, now),
        )
        .group_by(Shipment.courier_ref)
    )
    return {courier_ref: count for courier_ref, count in result.all()}
