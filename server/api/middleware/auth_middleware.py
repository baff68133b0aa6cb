"""Caller identification for assistant routes.

The host application authenticates its users and forwards the user id in
``X-User-Id``. Trusted adapters additionally present the shared
``SERVICE_TOKEN`` as a bearer token when one is configured.
"""
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from uuid import UUID
from typing import Optional
import hmac
import logging

from config.settings import settings

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def verify_service_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> None:
    """Reject the request unless it carries the configured service token."""
    if not settings.SERVICE_TOKEN:
        return
    token = credentials.credentials if credentials else ""
    if not hmac.compare_digest(token.encode(), settings.SERVICE_TOKEN.encode()):
        logger.warning("Rejected request with missing or invalid service token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing service token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user_id(
    x_user_id: Optional[str] = Header(None),
    _: None = Depends(verify_service_token),
) -> str:
    """Return the caller's user id (a UUID string)."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header is required",
        )
    try:
        return str(UUID(x_user_id))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-User-Id must be a valid UUID",
        )
