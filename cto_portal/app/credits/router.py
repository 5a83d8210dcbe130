"""CTO credit memo endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from cto_portal.app.core import dependencies
from cto_portal.app.utils.cto_api import CtoApiClient

from . import schemas, service

router = APIRouter(prefix="/cto", tags=["credits"])


@router.get("/memos", response_model=schemas.MemoListResponse)
def list_my_memos(client: CtoApiClient = Depends(dependencies.get_api_client)):
    return service.summarize_memos(client.list_my_memos())
