"""
Scan Ingestion API Endpoints.

Courier devices post scanned tracking codes here. A bearer token is
optional; explicit courier fields in the request take precedence.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.core.config import settings
from backend.app.core.dependencies import get_optional_user, actor_display_name
from backend.app.core.reliability import run_with_timeout
from backend.app.schemas.shipment import ScanIngestRequest, ScanIngestResponse
from backend.app.services.ingestion import ingest_scan

router = APIRouter(prefix="/scan", tags=["Scan Ingestion"])


def resolve_actor(
    courier_id: Optional[str],
    courier_name: Optional[str],
    current_user: Optional[dict],
) -> tuple[Optional[str], str]:
    """(courier_ref, display name): request fields, then token, then the default label."""
    courier_ref = courier_id
    if courier_ref is None and current_user is not None:
        courier_ref = str(current_user["user_id"])

    name = courier_name or actor_display_name(current_user) or settings.default_actor_name
    return courier_ref, name


async def _ingest(
    db: AsyncSession,
    tracking_code: str,
    status: Optional[str],
    courier_id: Optional[str],
    courier_name: Optional[str],
    current_user: Optional[dict],
) -> ScanIngestResponse:
    courier_ref, actor_name = resolve_actor(courier_id, courier_name, current_user)

    result = await run_with_timeout(
        ingest_scan(
            db,
            tracking_code,
            target_status=status,
            courier_ref=courier_ref,
            actor_name=actor_name,
        ),
        settings.operation_timeout_seconds,
        "ingest_scan",
    )

    return ScanIngestResponse(
        success=result.success,
        message=result.message,
        tracking_code=result.tracking_code,
        status=result.status,
        created=result.created,
        manifest_source=result.manifest_source,
        history_status=result.history_outcome,
    )


@router.post("/ingest", response_model=ScanIngestResponse)
async def ingest_scan_post(
    request: ScanIngestRequest,
    current_user: Optional[dict] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Ingest a scanned tracking code.

    - Creates the shipment from manifest data when it does not exist yet
    - Sets out_for_delivery (default) or delivered
    - Rejects shipments that are already delivered (409)
    """
    return await _ingest(
        db, request.tracking_code, request.status,
        request.courier_id, request.courier_name, current_user
    )


@router.get("/ingest", response_model=ScanIngestResponse)
async def ingest_scan_get(
    awb: str = Query(..., description="Scanned tracking code"),
    status: Optional[str] = Query(None, description="out_for_delivery or delivered"),
    courier_id: Optional[str] = Query(None, alias="courierId"),
    courier_name: Optional[str] = Query(None, alias="courierName"),
    current_user: Optional[dict] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Query-string variant for scanner apps that can only open URLs."""
    return await _ingest(db, awb, status, courier_id, courier_name, current_user)
