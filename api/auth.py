"""
Authentication module for the Submission Worker.

Only the queue trigger is protected: the caller (a cron job) sends
`Authorization: Bearer <CRON_SECRET>` and the whole header is compared verbatim.
"""

import secrets
from typing import Optional

from fastapi import Header, HTTPException, status

from .config import config


def is_authorized(authorization: Optional[str], secret: Optional[str]) -> bool:
    """True when the header is exactly 'Bearer <secret>'. An unset secret rejects everything."""
    if not secret or not authorization:
        return False
    return secrets.compare_digest(authorization.encode(), f"Bearer {secret}".encode())


async def require_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """FastAPI dependency guarding the queue trigger."""
    if not is_authorized(authorization, config.CRON_SECRET):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
