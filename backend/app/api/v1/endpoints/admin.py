"""
Admin API Endpoints.

Provides admin-only actor access control and the operator audit trail.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.models.enums import UserRole
from backend.app.schemas.admin import (
    RevokeActorRequest, RevokeTokenRequest,
    AdminActionResponse, AuditTrailResponse, AuditLogResponse
)
from backend.app.core.guards import require_role
from backend.app.core.jwt import decode_access_token
from backend.app.core.token_revocation import (
    revoke_token, revoke_all_actor_tokens, clear_actor_token_revocation
)
from backend.app.services.audit import log_operator_action, AuditAction, get_audit_trail

router = APIRouter(prefix="/admin", tags=["Admin"])

require_admin = require_role([UserRole.ADMIN])


def _revocation_unavailable():
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Token revocation store is unavailable"
    )


@router.post("/actors/{actor_ref}/revoke-tokens", response_model=AdminActionResponse)
async def revoke_actor_tokens(
    actor_ref: str,
    request: RevokeActorRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Revoke every active token of a courier or operator (admin-only).

    Used when a courier device is lost or an operator leaves.
    """
    if actor_ref == str(admin["user_id"]):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot revoke your own tokens"
        )

    if not await revoke_all_actor_tokens(actor_ref):
        raise _revocation_unavailable()

    audit_log = await log_operator_action(
        db=db,
        current_user=admin,
        action=AuditAction.ACTOR_TOKENS_REVOKED,
        target_ref=actor_ref,
        metadata={"reason": request.reason} if request.reason else None
    )

    return AdminActionResponse(
        success=True,
        message=f"All tokens of actor '{actor_ref}' have been revoked",
        actor_ref=actor_ref,
        action=AuditAction.ACTOR_TOKENS_REVOKED,
        audit_log_id=audit_log.id
    )


@router.post("/actors/{actor_ref}/restore-tokens", response_model=AdminActionResponse)
async def restore_actor_tokens(
    actor_ref: str,
    request: RevokeActorRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Lift an actor-wide revocation (admin-only)."""
    if not await clear_actor_token_revocation(actor_ref):
        raise _revocation_unavailable()

    audit_log = await log_operator_action(
        db=db,
        current_user=admin,
        action=AuditAction.ACTOR_TOKENS_RESTORED,
        target_ref=actor_ref,
        metadata={"reason": request.reason} if request.reason else None
    )

    return AdminActionResponse(
        success=True,
        message=f"Tokens of actor '{actor_ref}' are accepted again",
        actor_ref=actor_ref,
        action=AuditAction.ACTOR_TOKENS_RESTORED,
        audit_log_id=audit_log.id
    )


@router.post("/tokens/revoke", response_model=AdminActionResponse)
async def revoke_single_token(
    request: RevokeTokenRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Blacklist one token until it would have expired (admin-only)."""
    payload = decode_access_token(request.token)
    if payload is None or payload.get("user_id") is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Token is invalid or already expired"
        )

    actor_ref = str(payload["user_id"])
    if not await revoke_token(request.token, actor_ref):
        raise _revocation_unavailable()

    audit_log = await log_operator_action(
        db=db,
        current_user=admin,
        action=AuditAction.TOKEN_REVOKED,
        target_ref=actor_ref,
        metadata={"reason": request.reason} if request.reason else None
    )

    return AdminActionResponse(
        success=True,
        message=f"Token of actor '{actor_ref}' has been revoked",
        actor_ref=actor_ref,
        action=AuditAction.TOKEN_REVOKED,
        audit_log_id=audit_log.id
    )


@router.get("/audit-logs", response_model=AuditTrailResponse)
async def get_audit_logs(
    target_ref: str = Query(None, description="Filter by tracking code, booking id or actor"),
    action: str = Query(None, description="Filter by action type"),
    limit: int = Query(100, ge=1, le=500, description="Maximum records to return"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Get audit trail with optional filtering (admin-only).

    Returns recent operator actions, newest first.
    """
    logs = await get_audit_trail(
        db=db,
        target_ref=target_ref,
        action=action,
        limit=limit
    )

    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )
