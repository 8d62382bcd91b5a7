"""
Admin API Schema Definitions.

Pydantic schemas for admin endpoints.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List


class RevokeActorRequest(BaseModel):
    """Schema for revoking or restoring an actor's tokens."""
    reason: Optional[str] = Field(None, description="Reason (for audit log)")


class RevokeTokenRequest(BaseModel):
    """Schema for revoking a single token."""
    token: str = Field(..., min_length=1)
    reason: Optional[str] = Field(None, description="Reason (for audit log)")


class AdminActionResponse(BaseModel):
    """Schema for admin action response."""
    success: bool
    message: str
    actor_ref: Optional[str]
    action: str
    audit_log_id: int


class AuditLogResponse(BaseModel):
    """Schema for audit log entry."""
    id: int
    actor_ref: Optional[str]
    actor_name: Optional[str]
    action: str
    target_ref: Optional[str]
    meta_data: Optional[dict]
    timestamp: datetime

    class Config:
        from_attributes = True


class AuditTrailResponse(BaseModel):
    """Schema for audit trail list."""
    logs: List[AuditLogResponse]
    total: int
