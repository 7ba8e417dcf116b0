"""Caller identity for pool endpoints.

The account acting on the pool is the ``sub`` claim of a Bearer JWT signed
with the service secret. Tokens are issued out of band (see
``stakepool token <account>``); the service never mints them over HTTP.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from stakepool.core.config import get_settings

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

ALGORITHM = "HS256"


def create_access_token(account: str, extra: dict | None = None) -> str:
    """Create a JWT access token for ``account``."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": account,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_access_token_expire_minutes),
        "type": "access",
    }
    if extra:
        payload.update(extra)
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token. Raises HTTPException on failure."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.warning("Auth failure: expired token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
        )
    except jwt.InvalidTokenError:
        logger.warning("Auth failure: invalid token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )


async def get_current_account(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)] = None,
) -> str:
    """Require a Bearer token and return the caller's account.

    Usage in routes:
        @router.post("/stake")
        async def stake(caller: str = Depends(get_current_account)):
            ...
    """
    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required: provide a Bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials)
    account = payload.get("sub")
    if not account or payload.get("type") != "access":
        raise HTTPException(status_code=401, detail="Invalid token payload")
    return account
