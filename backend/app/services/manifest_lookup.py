"""
Manifest lookup sources for ingestion.

When a scanned tracking code has no shipment yet, descriptive data is
resolved from, in order:
1. Partner manifest API (partner code family only)
2. Branch manifest table
3. Central manifest table
The first source that returns data wins. Source failures are logged and
skipped; when nothing is found the shipment gets placeholder values.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from typing import Optional, Sequence

import httpx
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.observability import get_logger
from backend.app.core.reliability import CircuitBreaker, CircuitOpenError, partner_circuit_breaker
from backend.app.models.manifest import ManifestRecord, CentralManifest
from backend.app.models.shipment_enums import ManifestSource

logger = get_logger("manifest")

PLACEHOLDER = "Auto Generated"


@dataclass
class ManifestData:
    """Descriptive shipment fields plus their provenance."""
    source: ManifestSource
    receiver_name: str = PLACEHOLDER
    receiver_address: str = PLACEHOLDER
    receiver_phone: str = PLACEHOLDER
    sender_name: str = PLACEHOLDER
    sender_address: str = PLACEHOLDER
    sender_phone: str = PLACEHOLDER
    weight: float = 1
    dimensions: str = "10x10x10"
    service_type: str = "Standard"

    def shipment_fields(self) -> dict:
        fields = asdict(self)
        fields.pop("source")
        return fields


def placeholder_manifest() -> ManifestData:
    return ManifestData(source=ManifestSource.PLACEHOLDER)


def _text(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class ManifestLookup(ABC):
    """Read-only provider of descriptive fields keyed by tracking code."""

    source: ManifestSource

    def supports(self, tracking_code: str) -> bool:
        return True

    @abstractmethod
    async def fetch(self, db: AsyncSession, tracking_code: str) -> Optional[ManifestData]:
        """Descriptive fields for tracking_code, or None when unknown here."""


class PartnerManifestLookup(ManifestLookup):
    """
    Partner branch manifest search API.

    Expects `GET <url>?awb_number=<code>` to answer
    `{"success": true, "data": {...}}`; `data.penerima` is either a nested
    receiver object or a plain receiver name.
    """

    source = ManifestSource.PARTNER

    def __init__(
        self,
        url: Optional[str] = None,
        code_prefix: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url if url is not None else settings.partner_manifest_url
        self.code_prefix = code_prefix or settings.partner_code_prefix
        self.timeout_seconds = timeout_seconds or settings.partner_timeout_seconds
        self.breaker = breaker or partner_circuit_breaker
        self.transport = transport

    def supports(self, tracking_code: str) -> bool:
        return bool(self.url) and tracking_code.startswith(self.code_prefix)

    async def _request(self, tracking_code: str) -> Optional[dict]:
        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
            response = await client.get(self.url, params={"awb_number": tracking_code})
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    async def fetch(self, db: AsyncSession, tracking_code: str) -> Optional[ManifestData]:
        body = await self.breaker.call(self._request, tracking_code)
        if not isinstance(body, dict) or not body.get("success"):
            return None

        data = body.get("data")
        if not isinstance(data, dict) or not data:
            logger.warning(
                "Partner manifest response has no data object",
                extra={"tracking_code": tracking_code, "data_type": type(data).__name__}
            )
            return None

        receiver = data.get("penerima")
        if isinstance(receiver, dict):
            name = _text(receiver.get("nama_penerima"))
            address = _text(receiver.get("alamat_penerima"))
            phone = _text(receiver.get("no_penerima"))
        else:
            name = _text(receiver)
            address = _text(data.get("alamat_penerima"))
            phone = _text(data.get("telepon_penerima"))

        return ManifestData(
            source=self.source,
            receiver_name=name or PLACEHOLDER,
            receiver_address=address or PLACEHOLDER,
            receiver_phone=phone or PLACEHOLDER,
        )


class _TableManifestLookup(ManifestLookup):
    model = None

    async def fetch(self, db: AsyncSession, tracking_code: str) -> Optional[ManifestData]:
        result = await db.execute(
            select(self.model).where(func.upper(self.model.tracking_code) == tracking_code)
        )
        row = result.scalars().first()
        if row is None:
            return None

        return ManifestData(
            source=self.source,
            receiver_name=_text(row.receiver_name) or PLACEHOLDER,
            receiver_address=_text(row.receiver_address) or PLACEHOLDER,
            receiver_phone=_text(row.receiver_phone) or PLACEHOLDER,
            sender_name=_text(row.sender_name) or PLACEHOLDER,
            sender_phone=_text(row.sender_phone) or PLACEHOLDER,
            weight=row.weight or 1,
        )


class BranchManifestLookup(_TableManifestLookup):
    source = ManifestSource.BRANCH
    model = ManifestRecord


class CentralManifestLookup(_TableManifestLookup):
    source = ManifestSource.CENTRAL
    model = CentralManifest


def default_lookups() -> list[ManifestLookup]:
    return [PartnerManifestLookup(), BranchManifestLookup(), CentralManifestLookup()]


async def resolve_manifest(
    db: AsyncSession,
    tracking_code: str,
    lookups: Optional[Sequence[ManifestLookup]] = None,
) -> ManifestData:
    """
    Query each supporting source in priority order; never raises for a
    source failure.

    Returns:
        The first source's data, or placeholder data
    """
    for lookup in (lookups if lookups is not None else default_lookups()):
        if not lookup.supports(tracking_code):
            continue

        try:
            found = await lookup.fetch(db, tracking_code)
        except (httpx.HTTPError, CircuitOpenError, ValueError) as e:
            logger.warning(
                "Manifest source unavailable",
                extra={"tracking_code": tracking_code, "source": lookup.source.value, "error": str(e)}
            )
            continue
        except SQLAlchemyError as e:
            await db.rollback()
            logger.warning(
                "Manifest source unavailable",
                extra={"tracking_code": tracking_code, "source": lookup.source.value, "error": str(e)}
            )
            continue

        if found is not None:
            return found

    return placeholder_manifest()
