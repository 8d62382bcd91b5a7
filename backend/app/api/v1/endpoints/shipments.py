"""
Shipment API Endpoints.

Public tracking lookup and authenticated status updates with proof of
delivery.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.models.enums import UserRole
from backend.app.core.config import settings
from backend.app.core.dependencies import actor_display_name
from backend.app.core.guards import require_role
from backend.app.core.reliability import run_with_timeout
from backend.app.schemas.shipment import (
    StatusUpdateRequest, StatusUpdateResponse,
    TrackingResponse, ShipmentResponse, HistoryEntryResponse
)
from backend.app.services import shipment_store
from backend.app.services.status_transition import apply_status

router = APIRouter(prefix="/shipments", tags=["Shipments"])


@router.get("/{tracking_code}", response_model=TrackingResponse)
async def track_shipment(
    tracking_code: str = Path(..., description="Tracking code (AWB)"),
    db: AsyncSession = Depends(get_db)
):
    """
    Track a shipment (public).

    Returns the shipment and its full history, newest first.
    """
    code = tracking_code.strip().upper()
    shipment = await shipment_store.require_shipment(db, code)
    history = await shipment_store.list_history(db, code)

    return TrackingResponse(
        shipment=ShipmentResponse.model_validate(shipment),
        history=[HistoryEntryResponse.model_validate(entry) for entry in history]
    )


@router.post("/{tracking_code}/status", response_model=StatusUpdateResponse)
async def update_shipment_status(
    request: StatusUpdateRequest,
    tracking_code: str = Path(..., description="Tracking code (AWB)"),
    current_user: dict = Depends(require_role([UserRole.COURIER, UserRole.BRANCH, UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """
    Change a shipment's status.

    Validates:
    - Shipment exists (404)
    - Shipment is not delivered (409)
    - Target status is not created (409)

    A courier becomes the shipment's courier. The history entry is
    credited to the caller whatever their role. A failed history append is
    returned as `warning`; the status change itself stands.
    """
    courier_ref = None
    if current_user.get("role") == UserRole.COURIER.value:
        courier_ref = str(current_user["user_id"])

    result = await run_with_timeout(
        apply_status(
            db,
            tracking_code.strip().upper(),
            request.status,
            request.location,
            notes=request.notes,
            courier_ref=courier_ref,
            actor_name=actor_display_name(current_user),
            photo_url=request.photo_url,
            latitude=request.latitude,
            longitude=request.longitude,
            actor_ref=str(current_user["user_id"]),
        ),
        settings.operation_timeout_seconds,
        "apply_status",
    )

    return StatusUpdateResponse(
        tracking_code=result.tracking_code,
        status=result.status,
        previous_status=result.previous_status,
        courier_ref=result.courier_ref,
        updated_at=result.updated_at,
        history_status=result.history_outcome,
        warning=result.warning,
    )
