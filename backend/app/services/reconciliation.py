"""
Reconciliation service.

Detects and repairs drift between Shipment.current_status and the latest
shipment_history entry (history is authoritative), and performs bulk
status updates for stale shipments.

Batch operations never fail as a whole: they commit per record or per
chunk, continue past failures and return a tally. When a deadline
passes, remaining work is reported as skipped and everything already
committed stays committed.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.observability import get_logger
from backend.app.core.reliability import deadline_passed
from backend.app.db.session import utcnow
from backend.app.models.shipment import Shipment
from backend.app.models.shipment_enums import ShipmentStatus, TERMINAL_STATUSES
from backend.app.services import shipment_store
from backend.app.services.status_transition import append_history_or_warn, validate_target

logger = get_logger("reconciliation")


@dataclass
class SyncMismatch:
    tracking_code: str
    shipment_status: ShipmentStatus
    history_status: ShipmentStatus


@dataclass
class ItemIssue:
    tracking_code: str
    reason: str


@dataclass
class FixSyncResult:
    fixed: int
    total: int
    fixed_codes: List[str] = field(default_factory=list)
    skipped: List[ItemIssue] = field(default_factory=list)
    failed: List[ItemIssue] = field(default_factory=list)


class ChunkState(str, enum.Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ChunkReport:
    index: int
    state: ChunkState
    tracking_codes: List[str]
    updated_codes: List[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class BulkUpdateResult:
    nothing_to_update: bool
    updated_count: int = 0
    tracking_codes: List[str] = field(default_factory=list)
    chunks: List[ChunkReport] = field(default_factory=list)
    history_warnings: List[ItemIssue] = field(default_factory=list)

    @property
    def partial_failure(self) -> bool:
        return any(chunk.state != ChunkState.COMPLETED for chunk in self.chunks)


async def verify_sync(
    db: AsyncSession,
    courier_ref: str,
    age_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[SyncMismatch]:
    """
    Read-only drift check for a courier's stale, non-delivered shipments.

    A shipment with no history, or whose latest history status equals its
    current status, is in sync.
    """
    age_days = age_days if age_days is not None else settings.reconciliation_age_days
    candidates = await shipment_store.select_stale_shipments(db, courier_ref, age_days, now)

    mismatches = []
    for shipment in candidates:
        history_status = await shipment_store.get_latest_history_status(db, shipment.tracking_code)
        if history_status is None or history_status == shipment.current_status:
            continue
        mismatches.append(SyncMismatch(
            tracking_code=shipment.tracking_code,
            shipment_status=shipment.current_status,
            history_status=history_status,
        ))

    logger.info(
        "Sync verified",
        extra={"courier_ref": courier_ref, "checked": len(candidates), "mismatches": len(mismatches)}
    )
    return mismatches


async def fix_sync(
    db: AsyncSession,
    mismatches: Sequence[SyncMismatch],
    deadline: Optional[float] = None,
) -> FixSyncResult:
    """
    Copy the latest history status onto each mismatched shipment.

    Direct field write: no history entry is appended. Each record commits
    on its own. A record is skipped when its history moved since the
    mismatch was reported, when it is already in sync, or when the
    shipment is delivered (delivered is never regressed).
    """
    result = FixSyncResult(fixed=0, total=len(mismatches))

    for position, mismatch in enumerate(mismatches):
        code = mismatch.tracking_code
        if deadline_passed(deadline):
            result.skipped.extend(
                ItemIssue(m.tracking_code, "deadline exceeded") for m in mismatches[position:]
            )
            break

        try:
            shipment = await shipment_store.get_shipment(db, code)
            if shipment is None:
                result.failed.append(ItemIssue(code, "shipment not found"))
                continue

            latest = await shipment_store.get_latest_history_status(db, code)
            if shipment.current_status in TERMINAL_STATUSES:
                result.skipped.append(ItemIssue(code, "shipment is delivered"))
                continue
            if latest is None or latest != ShipmentStatus(mismatch.history_status):
                result.skipped.append(ItemIssue(code, "history changed since verification"))
                continue
            if shipment.current_status == latest:
                result.skipped.append(ItemIssue(code, "already in sync"))
                continue

            shipment.current_status = latest
            shipment.updated_at = utcnow()
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.warning("Sync fix failed", extra={"tracking_code": code, "error": str(e)})
            result.failed.append(ItemIssue(code, str(e)))
            continue

        result.fixed += 1
        result.fixed_codes.append(code)

    logger.info(
        "Sync fixed",
        extra={"fixed": result.fixed, "total": result.total, "failed": len(result.failed)}
    )
    return result


def _chunked(items: List[str], size: int) -> List[List[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


async def bulk_update(
    db: AsyncSession,
    courier_ref: str,
    target_status,
    notes: Optional[str] = None,
    actor_name: Optional[str] = None,
    chunk_size: Optional[int] = None,
    deadline: Optional[float] = None,
    age_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> BulkUpdateResult:
    """
    Move a courier's stale, non-delivered shipments to target_status.

    Shipments are updated in chunks, each committed separately, then one
    history entry is appended per updated shipment. A failed chunk does
    not stop later chunks; committed chunks are never rolled back.

    Raises:
        InvalidTransitionError: target_status is not reachable
    """
    target = validate_target(target_status)
    age_days = age_days if age_days is not None else settings.reconciliation_age_days
    chunk_size = chunk_size or settings.bulk_chunk_size
    notes = notes or f"Bulk updated to {target.value}"

    candidates = await shipment_store.select_stale_shipments(db, courier_ref, age_days, now)
    codes = [shipment.tracking_code for shipment in candidates]
    if not codes:
        logger.info("Nothing to update", extra={"courier_ref": courier_ref})
        return BulkUpdateResult(nothing_to_update=True)

    result = BulkUpdateResult(nothing_to_update=False)
    chunks = _chunked(codes, chunk_size)

    for index, chunk in enumerate(chunks):
        if deadline_passed(deadline):
            result.chunks.extend(
                ChunkReport(index=i, state=ChunkState.SKIPPED, tracking_codes=pending)
                for i, pending in enumerate(chunks[index:], start=index)
            )
            break

        try:
            # Re-check under lock; a shipment delivered since selection is left alone
            eligible = await db.execute(
                select(Shipment.tracking_code)
                .where(
                    Shipment.tracking_code.in_(chunk),
                    Shipment.current_status != ShipmentStatus.DELIVERED,
                )
                .with_for_update()
            )
            eligible_codes = set(eligible.scalars().all())
            updated_codes = [code for code in chunk if code in eligible_codes]

            if updated_codes:
                await db.execute(
                    update(Shipment)
                    .where(Shipment.tracking_code.in_(updated_codes))
                    .values(current_status=target, updated_at=utcnow())
                    .execution_options(synchronize_session=False)
                )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                "Bulk update chunk failed",
                extra={"courier_ref": courier_ref, "chunk": index, "error": str(e)}
            )
            result.chunks.append(ChunkReport(
                index=index, state=ChunkState.FAILED, tracking_codes=chunk, error=str(e)
            ))
            continue

        for code in updated_codes:
            _, warning = await append_history_or_warn(
                db,
                code,
                target,
                settings.bulk_update_location,
                notes=notes,
                courier_ref=courier_ref,
                actor_name=actor_name,
            )
            if warning:
                result.history_warnings.append(ItemIssue(code, warning))

        result.chunks.append(ChunkReport(
            index=index, state=ChunkState.COMPLETED, tracking_codes=chunk, updated_codes=updated_codes
        ))
        result.tracking_codes.extend(updated_codes)

    result.updated_count = len(result.tracking_codes)
    logger.info(
        "Bulk update finished",
        extra={
            "courier_ref": courier_ref,
            "status": target.value,
            "updated": result.updated_count,
            "chunks": len(result.chunks),
        }
    )
    return result
