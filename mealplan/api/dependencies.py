"""
FastAPI dependencies for authentication.
"""
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from mealplan.auth.jwt import decode_access_token

# HTTP Bearer token scheme
security = HTTPBearer()


async def get_current_owner_id(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> UUID:
    """
    Dependency returning the owner ID of the authenticated caller.

    Usage:
        @router.get("/plans")
        def list_plans(owner_id: UUID = Depends(get_current_owner_id)):
            ...

    Raises:
        HTTPException: If the token is missing, expired or malformed
    """
    token_payload = decode_access_token(credentials.credentials)

    if token_payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return token_payload.owner_id
