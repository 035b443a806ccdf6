"""Authentication for the check-in API: shared bearer secret."""
from __future__ import annotations

import logging
import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

import config

logger = logging.getLogger("league.web.auth")

http_bearer = HTTPBearer(auto_error=False)


def _presented_token(
    credentials: Optional[HTTPAuthorizationCredentials],
    x_auth_token: Optional[str],
) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    return x_auth_token or None


async def require_service_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    x_auth_token: Optional[str] = Header(None, alias="X-Auth-Token"),
) -> None:
    """Require INTERNAL_API_SECRET as Authorization: Bearer or X-Auth-Token (fallback for proxies that strip Authorization)."""
    if not config.INTERNAL_API_SECRET:
        logger.warning("INTERNAL_API_SECRET not set - rejecting request")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Internal API not configured")
    token = _presented_token(credentials, x_auth_token)
    if not token or not secrets.compare_digest(token, config.INTERNAL_API_SECRET):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
