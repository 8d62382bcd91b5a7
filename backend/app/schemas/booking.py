"""
Booking Pydantic schemas.

Defines request and response models for booking verification.
"""

from pydantic import BaseModel, Field
from datetime import datetime, date
from typing import Optional, List
from backend.app.models.shipment_enums import BookingStatus, PaymentStatus


class BookingEdits(BaseModel):
    """
    Operator overrides applied when a booking is promoted.

    Omitted fields keep the booking's value. When the destination changes
    and no price is given, price and transit fee are re-resolved by zone.
    """
    weight: Optional[float] = Field(None, gt=0, description="Weight in kilograms")
    price_per_weight: Optional[float] = Field(None, ge=0)
    admin_fee: Optional[float] = Field(None, ge=0)
    packaging_fee: Optional[float] = Field(None, ge=0)
    transit_fee: Optional[float] = Field(None, ge=0)
    destination_city: Optional[str] = Field(None, max_length=100)
    destination_district: Optional[str] = Field(None, max_length=100)
    receiver_name: Optional[str] = Field(None, max_length=255)
    receiver_phone: Optional[str] = Field(None, max_length=50)
    receiver_address: Optional[str] = Field(None, max_length=500)
    pieces: Optional[int] = Field(None, ge=1)
    contents: Optional[str] = Field(None, max_length=255)


class BookingReject(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000, description="Why the booking was rejected")


class BookingResponse(BaseModel):
    """Schema for booking response."""
    id: int
    tracking_code: str
    status: BookingStatus
    payment_status: PaymentStatus
    rejection_reason: Optional[str]
    agent_ref: Optional[str]
    origin_branch: Optional[str]
    destination_city: Optional[str]
    destination_district: Optional[str]
    sender_name: Optional[str]
    receiver_name: Optional[str]
    receiver_address: Optional[str]
    notes: Optional[str]
    weight: float
    price_per_weight: float
    subtotal: float
    admin_fee: float
    packaging_fee: float
    transit_fee: float
    total: float
    submitted_at: datetime
    verified_at: Optional[datetime]

    class Config:
        from_attributes = True


class BookingListResponse(BaseModel):
    bookings: List[BookingResponse]
    total: int


class ManifestRecordResponse(BaseModel):
    """Schema for the manifest record created by promotion."""
    id: int
    tracking_code: str
    booking_id: Optional[int]
    awb_date: Optional[date]
    origin_branch: Optional[str]
    destination_city: Optional[str]
    destination_district: Optional[str]
    receiver_name: Optional[str]
    notes: Optional[str]
    weight: float
    price_per_weight: float
    subtotal: float
    admin_fee: float
    packaging_fee: float
    transit_fee: float
    total: float
    settlement_status: PaymentStatus
    deduction: float
    created_at: datetime

    class Config:
        from_attributes = True
