"""
Reconciliation Pydantic schemas.

Request and response models for drift detection, sync repair and bulk
status updates.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from backend.app.models.shipment_enums import ShipmentStatus
from backend.app.services.reconciliation import ChunkState


class SyncMismatchSchema(BaseModel):
    tracking_code: str
    shipment_status: ShipmentStatus
    history_status: ShipmentStatus

    class Config:
        from_attributes = True


class VerifySyncResponse(BaseModel):
    courier_ref: str
    mismatches: List[SyncMismatchSchema]
    total: int


class FixSyncRequest(BaseModel):
    mismatches: List[SyncMismatchSchema] = Field(..., description="Mismatches returned by verify-sync")


class ItemIssueSchema(BaseModel):
    tracking_code: str
    reason: str

    class Config:
        from_attributes = True


class FixSyncResponse(BaseModel):
    fixed: int
    total: int
    fixed_codes: List[str]
    skipped: List[ItemIssueSchema]
    failed: List[ItemIssueSchema]

    class Config:
        from_attributes = True


class BulkUpdateRequest(BaseModel):
    courier_ref: str = Field(..., min_length=1, max_length=64)
    target_status: ShipmentStatus
    notes: Optional[str] = Field(None, max_length=1000)


class ChunkReportSchema(BaseModel):
    index: int
    state: ChunkState
    tracking_codes: List[str]
    updated_codes: List[str]
    error: Optional[str] = None

    class Config:
        from_attributes = True


class BulkUpdateResponse(BaseModel):
    nothing_to_update: bool
    updated_count: int
    tracking_codes: List[str]
    chunks: List[ChunkReportSchema]
    history_warnings: List[ItemIssueSchema]
    partial_failure: bool

    class Config:
        from_attributes = True


class StaleCountResponse(BaseModel):
    age_days: int
    counts: Dict[str, int]
