"""Shared FastAPI dependencies for authenticated routes."""

from typing import Annotated, Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from typeb.domain.family import FamilyAction
from typeb.services import auth_service, family_service


bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> dict[str, Any]:
    """Resolve the bearer token to the signed-in user record.

    Raises:
        HTTPException: 401 when no bearer token is sent
        PermissionError: If the token is invalid, expired or revoked
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return await auth_service.verify_session_token(credentials.credentials)


CurrentUser = Annotated[dict[str, Any], Depends(get_current_user)]


async def get_family_member(family_id: str, user: CurrentUser) -> dict[str, Any]:
    """Require the signed-in user to belong to the family in the path."""
    await family_service.validate_family_permission(user_id=user["id"], family_id=family_id, action=FamilyAction.VIEW)
    return user


FamilyMember = Annotated[dict[str, Any], Depends(get_family_member)]
