"""
Authentication dependencies for FastAPI.

This module resolves the acting courier/operator from a bearer token.
"""

from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from backend.app.core.jwt import decode_access_token
from backend.app.core.token_revocation import is_token_revoked, are_actor_tokens_revoked

# HTTP Bearer security schemes
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


async def _validate_token(token: str) -> dict:
    """
    Security checks:
    1. Validates JWT token signature and expiry
    2. Checks if token has been explicitly revoked
    3. Checks if all actor tokens have been revoked
    """
    payload = decode_access_token(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if await is_token_revoked(token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has been revoked",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if await are_actor_tokens_revoked(str(user_id)):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Actor access has been revoked",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return payload


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """
    FastAPI dependency for mandatory JWT authentication.

    Returns:
        Decoded token payload containing actor information

    Raises:
        HTTPException: 401 if authentication fails for any reason
    """
    return await _validate_token(credentials.credentials)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
) -> Optional[dict]:
    """
    Like get_current_user, but a missing Authorization header yields None.

    A header that is present but invalid is still rejected.
    """
    if credentials is None:
        return None
    return await _validate_token(credentials.credentials)


def actor_display_name(payload: Optional[dict]) -> Optional[str]:
    """Best human label for an actor token: name, then email local part, then subject."""
    if not payload:
        return None
    name = payload.get("name")
    if isinstance(name, str) and name:
        return name
    email = payload.get("email")
    if isinstance(email, str) and "@" in email:
        return email.split("@")[0]
    sub = payload.get("sub")
    return sub if isinstance(sub, str) and sub else None
