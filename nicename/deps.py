"""
Dependency wrappers for FastAPI.

This module provides settings, a database connection and the admin token
check for route handlers.
"""
import hmac
from typing import Generator, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.engine import Connection

from .config import Settings, load_settings
from .db import get_engine, open_connection


def get_settings() -> Settings:
    return load_settings()


def get_db(settings: Settings = Depends(get_settings)) -> Generator[Connection, None, None]:
    yield from open_connection(get_engine(settings.database_url))


def require_admin(
    x_admin_token: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    if not settings.admin_token:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                            detail="Admin API disabled (NICENAME_ADMIN_TOKEN not set)")
    if not hmac.compare_digest((x_admin_token or "").encode(), settings.admin_token.encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin token")
