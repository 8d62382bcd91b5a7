"""
Pricing Pydantic schemas.
"""

from pydantic import BaseModel, Field
from typing import List


class ZonePriceResponse(BaseModel):
    city: str
    district: str
    price_per_weight: int
    transit_surcharge: int


class QuoteRequest(BaseModel):
    city: str = Field(..., min_length=1, max_length=100)
    district: str = Field("", max_length=100)
    weight: float = Field(..., gt=0, description="Weight in kilograms")
    admin_fee: float = Field(0, ge=0)
    packaging_fee: float = Field(0, ge=0)


class QuoteResponse(BaseModel):
    price_per_weight: int
    billable_weight: int
    subtotal: float
    admin_fee: float
    packaging_fee: float
    transit_surcharge: int
    total: float

    class Config:
        from_attributes = True


class DistrictListResponse(BaseModel):
    city: str
    districts: List[str]
