"""
Shipment Pydantic schemas.

Defines request and response models for scan ingestion, status updates
and tracking lookup.
"""

from pydantic import BaseModel, Field, AliasChoices
from datetime import datetime
from typing import Optional, List
from backend.app.models.shipment_enums import ShipmentStatus, ManifestSource
from backend.app.services.history import HistoryOutcome


class ScanIngestRequest(BaseModel):
    """
    Scanned code from a courier device.

    `status` is free text on purpose: unsupported values are downgraded
    to out_for_delivery instead of rejected.
    """
    tracking_code: str = Field(
        ...,
        validation_alias=AliasChoices("tracking_code", "awb", "awb_number"),
        description="Scanned tracking code (AWB)",
    )
    status: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("status", "current_status"),
    )
    courier_id: Optional[str] = Field(None, max_length=64)
    courier_name: Optional[str] = Field(None, max_length=100)


class ScanIngestResponse(BaseModel):
    success: bool
    message: str
    tracking_code: str
    status: ShipmentStatus
    created: bool
    manifest_source: Optional[ManifestSource] = None
    history_status: Optional[HistoryOutcome] = None


class StatusUpdateRequest(BaseModel):
    """Status change with optional proof of delivery."""
    status: ShipmentStatus
    location: str = Field(..., min_length=1, max_length=255)
    notes: Optional[str] = Field(None, max_length=1000)
    photo_url: Optional[str] = Field(None, max_length=500)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class StatusUpdateResponse(BaseModel):
    tracking_code: str
    status: ShipmentStatus
    previous_status: Optional[ShipmentStatus]
    courier_ref: Optional[str]
    updated_at: datetime
    history_status: Optional[HistoryOutcome]
    warning: Optional[str] = None


class HistoryEntryResponse(BaseModel):
    id: int
    status: ShipmentStatus
    location: str
    notes: Optional[str]
    courier_ref: Optional[str]
    actor_name: Optional[str]
    photo_url: Optional[str]
    latitude: Optional[float]
    longitude: Optional[float]
    created_at: datetime

    class Config:
        from_attributes = True


class ShipmentResponse(BaseModel):
    """Schema for shipment response."""
    tracking_code: str
    current_status: ShipmentStatus
    courier_ref: Optional[str]
    sender_name: Optional[str]
    receiver_name: Optional[str]
    receiver_address: Optional[str]
    receiver_phone: Optional[str]
    weight: float
    service_type: Optional[str]
    manifest_source: Optional[ManifestSource]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TrackingResponse(BaseModel):
    shipment: ShipmentResponse
    history: List[HistoryEntryResponse]
