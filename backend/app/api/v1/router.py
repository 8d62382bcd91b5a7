"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import (
    scan, shipments, bookings, reconciliation, pricing, admin
)

router = APIRouter()

# Courier scans and status updates
router.include_router(scan.router)
router.include_router(shipments.router)

# Branch booking verification
router.include_router(bookings.router)

# Operator reconciliation
router.include_router(reconciliation.router)

# Zone pricing
router.include_router(pricing.router)

# Admin actor access control
router.include_router(admin.router)
