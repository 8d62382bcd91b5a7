"""
Audit logging service for operator actions.

Provides centralized logging of who verified, rejected, repaired or
bulk-updated what.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from backend.app.models.audit_log import AuditLog
from backend.app.core.dependencies import actor_display_name


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    BOOKING_VERIFIED = "BOOKING_VERIFIED"
    BOOKING_REJECTED = "BOOKING_REJECTED"
    SYNC_FIXED = "SYNC_FIXED"
    BULK_STATUS_UPDATED = "BULK_STATUS_UPDATED"
    ACTOR_TOKENS_REVOKED = "ACTOR_TOKENS_REVOKED"
    ACTOR_TOKENS_RESTORED = "ACTOR_TOKENS_RESTORED"
    TOKEN_REVOKED = "TOKEN_REVOKED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_ref: Optional[str] = None,
    actor_name: Optional[str] = None,
    target_ref: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Log an operator event to the audit log.

    Called after the primary operation has committed, so it commits
    on its own.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_ref: Reference of the actor performing the action
        actor_name: Display name of the actor
        target_ref: Tracking code, booking id or courier ref acted upon
        metadata: Additional context as JSON

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_ref=actor_ref,
        actor_name=actor_name,
        action=action,
        target_ref=target_ref,
        meta_data=metadata,
    )

    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    return audit_log


async def log_operator_action(
    db: AsyncSession,
    current_user: dict,
    action: str,
    target_ref: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """Log an action performed by the actor in a decoded token payload."""
    return await log_event(
        db=db,
        action=action,
        actor_ref=str(current_user.get("user_id")) if current_user.get("user_id") is not None else None,
        actor_name=actor_display_name(current_user),
        target_ref=target_ref,
        metadata=metadata,
    )


async def get_audit_trail(
    db: AsyncSession,
    target_ref: Optional[str] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering, most recent first.
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if target_ref:
        query = query.where(AuditLog.target_ref == target_ref)

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())
