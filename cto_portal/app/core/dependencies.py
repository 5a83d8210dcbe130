"""Reusable FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache
from typing import Generator, Optional

import httpx
from fastapi import Depends, Header, HTTPException, status

from cto_portal.app.applications.drafts import DraftStore
from cto_portal.app.applications.service import DraftService
from cto_portal.app.common.session import (
    SESSION_EXPIRED_MESSAGE,
    SessionExpiredError,
    SessionInfo,
    ensure_active,
    read_session,
)
from cto_portal.app.core.config import Settings, get_settings
from cto_portal.app.utils.cto_api import CtoApiClient


def get_session(authorization: Optional[str] = Header(default=None)) -> SessionInfo:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=SESSION_EXPIRED_MESSAGE)
    token = authorization[7:].strip()
    try:
        return ensure_active(read_session(token))
    except SessionExpiredError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc


def get_upstream_transport() -> Optional[httpx.BaseTransport]:
    """Transport for upstream calls; ``None`` selects httpx's default."""

    return None


def get_api_client(
    session: SessionInfo = Depends(get_session),
    settings: Settings = Depends(get_settings),
    transport: Optional[httpx.BaseTransport] = Depends(get_upstream_transport),
) -> Generator[CtoApiClient, None, None]:
    client = CtoApiClient(
        settings.upstream_base_url,
        session.token,
        timeout=settings.upstream_timeout_seconds,
        transport=transport,
    )
    try:
        yield client
    finally:
        client.close()


@lru_cache()
def get_draft_store() -> DraftStore:
    return DraftStore(ttl_seconds=get_settings().draft_ttl_seconds)


def get_draft_service(
    store: DraftStore = Depends(get_draft_store),
    client: CtoApiClient = Depends(get_api_client),
    settings: Settings = Depends(get_settings),
) -> DraftService:
    return DraftService(store, client, settings)
