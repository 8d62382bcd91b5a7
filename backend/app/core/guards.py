"""
Security guards for role-based and branch-based access control.

Provides dependencies for protecting endpoints.
"""

from typing import List, Optional
from fastapi import Depends, HTTPException, status
from backend.app.models.enums import UserRole
from backend.app.core.dependencies import get_current_user


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.post("/reconciliation/verify-sync")
        async def verify(current_user: dict = Depends(require_role([UserRole.ADMIN]))):
            ...

    Args:
        allowed_roles: List of UserRole enums that are allowed to access the endpoint

    Returns:
        FastAPI dependency function that validates actor role

    Raises:
        HTTPException 403 if actor role is not in allowed_roles
    """
    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        user_role_str = current_user.get("role")

        if not user_role_str:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Role information missing from token"
            )

        # Convert string role to UserRole enum
        try:
            user_role = UserRole(user_role_str)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid role in token"
            )

        if user_role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}"
            )

        return current_user

    return role_checker


def branch_filter(current_user: dict) -> Optional[str]:
    """
    Get the origin branch to filter booking queries by.

    For admins: Returns None (no filtering needed)
    For branch operators: Returns the branch carried in their token

    Raises:
        HTTPException 403 if a branch operator token has no branch
    """
    if current_user.get("role") == UserRole.ADMIN.value:
        return None

    branch = current_user.get("origin_branch")
    if not branch:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Branch information missing from token"
        )
    return branch


def enforce_branch(resource_branch: Optional[str], current_user: dict, resource_name: str = "resource"):
    """
    Enforce that a branch operator only touches their own branch's records.

    Raises:
        HTTPException 403 if the branch does not match
    """
    branch = branch_filter(current_user)
    if branch is not None and resource_branch != branch:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Access denied. You do not have permission to access this {resource_name}."
        )
