"""FastAPI dependencies for DI (settings, DB session, caller identity, reconciler).

Two capability roles exist: an owner, identified by the ``X-User-Id`` header, who may read and edit their own rows;
and the scheduler, holding the service key, which alone may run the reconciler.
"""

import datetime as dt
import secrets
from collections.abc import Iterator

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from app.core.db import get_session
from app.core.settings import Settings, get_settings
from app.core.utils import local_today
from app.workers.reconciler import Reconciler


def get_db_session() -> Iterator[Session]:
    """Provide a SQLAlchemy session for dependency injection."""
    yield from get_session()


def get_owner_id(x_user_id: str | None = Header(default=None)) -> str:
    """Return the calling owner's id or reject the request."""
    if not x_user_id:
        raise HTTPException(401, "Missing X-User-Id header")
    return x_user_id


def require_service_key(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Allow only callers presenting the service key as a bearer token."""
    scheme, _, token = (authorization or "").partition(" ")
    expected = settings.service_role_key.encode()
    if scheme.lower() != "bearer" or not secrets.compare_digest(token.encode(), expected):
        raise HTTPException(401, "Invalid service key")


def get_today(settings: Settings = Depends(get_settings)) -> dt.date:
    """Today's date in the configured time zone."""
    return local_today(settings.timezone)


def get_reconciler(settings: Settings = Depends(get_settings)) -> Reconciler:
    """Provide a Reconciler instance for dependency injection."""
    return Reconciler(settings=settings)
