"""
Reconciliation API Endpoints (admin-only).

Drift detection between shipment status and history, repair after
review, and bulk status updates for a courier's stale shipments.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.models.enums import UserRole
from backend.app.core.config import settings
from backend.app.core.dependencies import actor_display_name
from backend.app.core.guards import require_role
from backend.app.core.reliability import deadline_from_timeout, run_with_timeout
from backend.app.schemas.reconciliation import (
    VerifySyncResponse, SyncMismatchSchema,
    FixSyncRequest, FixSyncResponse,
    BulkUpdateRequest, BulkUpdateResponse,
    StaleCountResponse,
)
from backend.app.services import reconciliation, shipment_store
from backend.app.services.audit import log_operator_action, AuditAction

router = APIRouter(prefix="/reconciliation", tags=["Reconciliation"])

require_admin = require_role([UserRole.ADMIN])


@router.get("/couriers/{courier_ref}/verify-sync", response_model=VerifySyncResponse)
async def verify_courier_sync(
    courier_ref: str = Path(..., description="Courier reference"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Report drift for a courier's stale, non-delivered shipments.

    Read-only; pass the result to fix-sync after review.
    """
    mismatches = await run_with_timeout(
        reconciliation.verify_sync(db, courier_ref),
        settings.operation_timeout_seconds,
        "verify_sync",
    )
    return VerifySyncResponse(
        courier_ref=courier_ref,
        mismatches=[SyncMismatchSchema.model_validate(m) for m in mismatches],
        total=len(mismatches)
    )


@router.post("/fix-sync", response_model=FixSyncResponse)
async def fix_sync(
    request: FixSyncRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Set each shipment's status to its latest history status.

    Continues past failures; records not reached before the deadline are
    returned as skipped.
    """
    result = await reconciliation.fix_sync(
        db,
        [reconciliation.SyncMismatch(**m.model_dump()) for m in request.mismatches],
        deadline=deadline_from_timeout(settings.operation_timeout_seconds),
    )
    response = FixSyncResponse.model_validate(result)

    if response.fixed:
        await log_operator_action(
            db=db,
            current_user=admin,
            action=AuditAction.SYNC_FIXED,
            metadata={"fixed": response.fixed, "total": response.total, "tracking_codes": response.fixed_codes}
        )
    return response


@router.post("/bulk-update", response_model=BulkUpdateResponse)
async def bulk_update(
    request: BulkUpdateRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Move all of a courier's stale, non-delivered shipments to target_status.

    Processes chunks of `bulk_chunk_size`; each chunk is reported as
    completed, failed or skipped. Completed chunks stay committed.
    """
    result = await reconciliation.bulk_update(
        db,
        request.courier_ref,
        request.target_status,
        notes=request.notes,
        actor_name=actor_display_name(admin),
        deadline=deadline_from_timeout(settings.operation_timeout_seconds),
    )
    response = BulkUpdateResponse.model_validate(result)

    if response.updated_count:
        await log_operator_action(
            db=db,
            current_user=admin,
            action=AuditAction.BULK_STATUS_UPDATED,
            target_ref=request.courier_ref,
            metadata={
                "status": request.target_status.value,
                "updated_count": response.updated_count,
                "tracking_codes": response.tracking_codes,
            }
        )
    return response


@router.get("/stale-counts", response_model=StaleCountResponse)
async def stale_counts(
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Stale, non-delivered shipment count per courier."""
    counts = await shipment_store.count_stale_by_courier(db, settings.reconciliation_age_days)
    return StaleCountResponse(age_days=settings.reconciliation_age_days, counts=counts)
