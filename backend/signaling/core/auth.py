"""
Principal extraction from bearer tokens.

Identity is issued elsewhere; this module only verifies the token signature and
reads the ``sub`` claim as the principal. ``create_access_token`` exists for
local tooling and tests.
"""
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from signaling.core.config import settings

security = HTTPBearer(auto_error=False)


def create_access_token(principal: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=60))
    to_encode = {"sub": principal, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_principal(token: str) -> str:
    """Return the principal in ``token``; raises JWTError when it is invalid or has no subject."""
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    principal = payload.get("sub")
    if not principal:
        raise JWTError("Token has no subject")
    return str(principal)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception
    try:
        return decode_principal(credentials.credentials)
    except JWTError:
        raise credentials_exception
