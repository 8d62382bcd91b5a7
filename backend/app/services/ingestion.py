"""
Scan ingestion.

Turns a scanned tracking code into a shipment status change: resolves or
creates the shipment, applies the scan status and appends history. A
failed history append never fails the scan; it is reported in the
response message.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import (
    AlreadyDeliveredError,
    InvalidFormatError,
    PersistenceError,
    TerminalStateViolationError,
)
from backend.app.core.observability import get_logger
from backend.app.models.shipment_enums import ShipmentStatus, ManifestSource, SCAN_TARGET_STATUSES
from backend.app.services import shipment_store
from backend.app.services.history import HistoryOutcome
from backend.app.services.manifest_lookup import ManifestLookup, resolve_manifest
from backend.app.services.status_transition import apply_status, append_history_or_warn

logger = get_logger("ingestion")

SOURCE_DESCRIPTIONS = {
    ManifestSource.PARTNER: "partner manifest",
    ManifestSource.BRANCH: "branch manifest",
    ManifestSource.CENTRAL: "central manifest",
    ManifestSource.PLACEHOLDER: "auto generated data",
}


@dataclass
class IngestionResult:
    success: bool
    message: str
    tracking_code: str
    status: ShipmentStatus
    created: bool
    manifest_source: Optional[ManifestSource] = None
    history_outcome: Optional[HistoryOutcome] = None
    warning: Optional[str] = None


def normalize_tracking_code(raw_code: Optional[str]) -> str:
    """
    Trim and upper-case a scanned code, then check its family prefix.

    Raises:
        InvalidFormatError: Missing code or unknown prefix
    """
    code = (raw_code or "").strip().upper()
    if not code:
        raise InvalidFormatError("Missing tracking code")

    prefixes = [p.upper() for p in settings.accepted_code_prefixes]
    if not any(code.startswith(prefix) and len(code) > len(prefix) for prefix in prefixes):
        raise InvalidFormatError(
            "Invalid tracking code prefix",
            details={"tracking_code": code, "accepted_prefixes": prefixes}
        )
    return code


def clamp_scan_status(requested) -> ShipmentStatus:
    """Scans may only set out_for_delivery or delivered; anything else becomes out_for_delivery."""
    if requested is None:
        return ShipmentStatus.OUT_FOR_DELIVERY
    try:
        status = ShipmentStatus(str(getattr(requested, "value", requested)).strip().lower())
    except ValueError:
        return ShipmentStatus.OUT_FOR_DELIVERY
    return status if status in SCAN_TARGET_STATUSES else ShipmentStatus.OUT_FOR_DELIVERY


def scan_notes(status: ShipmentStatus, actor_name: str) -> str:
    if status == ShipmentStatus.DELIVERED:
        return f"Scanned - Delivered by {actor_name}"
    return f"Scanned - Out for Delivery by {actor_name}"


def _message(base: str, warning: Optional[str]) -> str:
    return f"{base}; history error: {warning}" if warning else base


async def ingest_scan(
    db: AsyncSession,
    tracking_code: Optional[str],
    target_status=None,
    courier_ref: Optional[str] = None,
    actor_name: Optional[str] = None,
    lookups: Optional[Sequence[ManifestLookup]] = None,
) -> IngestionResult:
    """
    Ingest one scan.

    Args:
        db: Database session
        tracking_code: Raw scanned code
        target_status: Requested status; clamped to out_for_delivery/delivered
        courier_ref: Scanning courier, assigned to the shipment
        actor_name: Display name for history notes (defaults to "courier")
        lookups: Manifest sources override, in priority order

    Raises:
        InvalidFormatError: Bad tracking code
        AlreadyDeliveredError: Shipment is already delivered
        PersistenceError: The shipment could not be written
    """
    code = normalize_tracking_code(tracking_code)
    status = clamp_scan_status(target_status)
    actor_name = actor_name or settings.default_actor_name
    notes = scan_notes(status, actor_name)

    existing = await shipment_store.get_shipment(db, code)
    if existing is not None and existing.current_status == ShipmentStatus.DELIVERED:
        raise AlreadyDeliveredError(code)

    if existing is None:
        manifest = await resolve_manifest(db, code, lookups)
        try:
            await shipment_store.create_shipment(
                db,
                code,
                status,
                courier_ref=courier_ref,
                descriptive=manifest.shipment_fields(),
                manifest_source=manifest.source,
            )
        except IntegrityError:
            # Another scan created it first; treat this one as an update
            await db.rollback()
            logger.info("Concurrent shipment create, updating instead", extra={"tracking_code": code})
        except SQLAlchemyError as e:
            await db.rollback()
            raise PersistenceError(f"Failed to create shipment {code}", details={"error": str(e)})
        else:
            outcome, warning = await append_history_or_warn(
                db,
                code,
                status,
                settings.scan_location,
                notes=notes,
                courier_ref=courier_ref,
                actor_name=actor_name,
            )
            logger.info(
                "Shipment created from scan",
                extra={"tracking_code": code, "status": status.value, "source": manifest.source.value}
            )
            return IngestionResult(
                success=True,
                message=_message(f"Created from {SOURCE_DESCRIPTIONS[manifest.source]}", warning),
                tracking_code=code,
                status=status,
                created=True,
                manifest_source=manifest.source,
                history_outcome=outcome,
                warning=warning,
            )

    try:
        transition = await apply_status(
            db,
            code,
            status,
            settings.scan_location,
            notes=notes,
            courier_ref=courier_ref,
            actor_name=actor_name,
        )
    except TerminalStateViolationError:
        # Delivered between our read and the transition
        raise AlreadyDeliveredError(code)

    return IngestionResult(
        success=True,
        message=_message("Updated existing shipment", transition.warning),
        tracking_code=code,
        status=status,
        created=False,
        history_outcome=transition.history_outcome,
        warning=transition.warning,
    )
