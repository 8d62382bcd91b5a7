"""
Pricing API Endpoints (public).

Zone price lookup, district listing and shipping quotes.
"""

from fastapi import APIRouter, Query

from backend.app.domain.pricing.pricing_resolver import zone_pricing
from backend.app.schemas.pricing import (
    ZonePriceResponse, QuoteRequest, QuoteResponse, DistrictListResponse
)

router = APIRouter(prefix="/pricing", tags=["Pricing"])


@router.get("/resolve", response_model=ZonePriceResponse)
async def resolve_zone_price(
    city: str = Query(..., description="Destination city"),
    district: str = Query("", description="Destination district"),
):
    """Price per kilogram and transit surcharge for a destination."""
    zone_price = zone_pricing.resolve_price(city, district)
    return ZonePriceResponse(
        city=city,
        district=district,
        price_per_weight=zone_price.price_per_weight,
        transit_surcharge=zone_price.transit_surcharge,
    )


@router.get("/districts", response_model=DistrictListResponse)
async def list_districts(city: str = Query(..., description="Destination city")):
    return DistrictListResponse(city=city, districts=list(zone_pricing.list_districts(city)))


@router.post("/quote", response_model=QuoteResponse)
async def quote(request: QuoteRequest):
    """
    Quote a shipment.

    Weight is billed in whole kilograms (rounded up, minimum 1).
    """
    result = zone_pricing.quote(
        request.city,
        request.district,
        request.weight,
        admin_fee=request.admin_fee,
        packaging_fee=request.packaging_fee,
    )
    return QuoteResponse.model_validate(result)
