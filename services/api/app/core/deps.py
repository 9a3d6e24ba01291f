"""Dependency injection utilities for FastAPI routes."""

from typing import Annotated

from fastapi import Cookie, Depends, Header, HTTPException, status

from app.core.security import TokenData, decode_access_token

# Cookie name for auth token
AUTH_COOKIE_NAME = "tapcard_token"


async def get_token(
    authorization: Annotated[str | None, Header()] = None,
    tapcard_token: Annotated[str | None, Cookie()] = None,
) -> str | None:
    """Extract the auth token from a Bearer header, falling back to the cookie."""
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip()
    return tapcard_token


async def get_current_principal(
    token: Annotated[str | None, Depends(get_token)],
) -> TokenData:
    """Get the authenticated caller.

    Raises HTTPException 401 if the token is missing, invalid or expired.
    """
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data = decode_access_token(token)
    if token_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return token_data


async def get_admin_principal(
    principal: Annotated[TokenData, Depends(get_current_principal)],
) -> TokenData:
    """Require the authenticated caller to be an admin."""
    if not principal.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User role not authorized",
        )
    return principal


# Type aliases for dependency injection
CurrentPrincipal = Annotated[TokenData, Depends(get_current_principal)]
AdminPrincipal = Annotated[TokenData, Depends(get_admin_principal)]
