"""
Bearer token authentication.

Resolves the caller's identity from a signed JWT before any handler runs.
Handlers receive the identity through `Depends(get_current_identity)` and
trust it without re-checking credentials.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from src.api.settings import ServiceSettings
from .keystore import get_settings

security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(identity: str, settings: ServiceSettings, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token carrying the identity claim"""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.auth.access_token_expire_minutes)
    )
    to_encode = {settings.auth.identity_claim: identity, "exp": expire}
    return jwt.encode(to_encode, settings.auth.secret_key, algorithm=settings.auth.algorithm)


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: ServiceSettings = Depends(get_settings),
) -> str:
    """Get the authenticated caller's identity from the bearer token"""
    if credentials is None:
        raise _unauthorized("Not authenticated")

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.auth.secret_key,
            algorithms=[settings.auth.algorithm],
        )
    except JWTError:
        raise _unauthorized("Invalid authentication credentials")

    identity = payload.get(settings.auth.identity_claim)
    if not identity:
        raise _unauthorized("Token does not identify a user")

    return str(identity)
