"""REST endpoints for composing and submitting CTO applications."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from cto_portal.app.common.session import SessionInfo
from cto_portal.app.core import dependencies

from . import drafts, schemas, service
from .form import ApplicationForm

router = APIRouter(prefix="/cto", tags=["applications"])


def _serialize(form: ApplicationForm) -> schemas.DraftRead:
    return form.describe()


@router.post("/allocations/preview", response_model=schemas.AllocationPreviewResponse)
def preview_allocation(
    payload: schemas.AllocationPreviewRequest,
    draft_service: service.DraftService = Depends(dependencies.get_draft_service),
):
    return draft_service.preview(payload.requested_hours, payload.memos)


@router.post("/applications/drafts", response_model=schemas.DraftRead, status_code=status.HTTP_201_CREATED)
def open_draft(
    payload: Optional[schemas.DraftCreate] = None,
    session: SessionInfo = Depends(dependencies.get_session),
    draft_service: service.DraftService = Depends(dependencies.get_draft_service),
):
    designation_id = payload.designation_id if payload else None
    form = draft_service.open_draft(session, designation_id=designation_id)
    return _serialize(form)


@router.get("/applications/drafts/{draft_id}", response_model=schemas.DraftRead)
def get_draft(
    draft_id: str,
    session: SessionInfo = Depends(dependencies.get_session),
    draft_service: service.DraftService = Depends(dependencies.get_draft_service),
):
    try:
        form = draft_service.get_draft(session, draft_id)
    except drafts.DraftNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _serialize(form)


@router.put("/applications/drafts/{draft_id}/hours", response_model=schemas.DraftRead)
def set_requested_hours(
    draft_id: str,
    payload: schemas.HoursUpdate,
    session: SessionInfo = Depends(dependencies.get_session),
    draft_service: service.DraftService = Depends(dependencies.get_draft_service),
):
    try:
        form = draft_service.set_hours(session, draft_id, payload.requested_hours)
    except drafts.DraftNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _serialize(form)


@router.post("/applications/drafts/{draft_id}/dates", response_model=schemas.DraftRead)
def add_inclusive_date(
    draft_id: str,
    payload: schemas.DateAdd,
    session: SessionInfo = Depends(dependencies.get_session),
    draft_service: service.DraftService = Depends(dependencies.get_draft_service),
):
    try:
        form = draft_service.add_date(session, draft_id, payload.day)
    except drafts.DraftNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _serialize(form)


@router.delete("/applications/drafts/{draft_id}/dates/{day}", response_model=schemas.DraftRead)
def remove_inclusive_date(
    draft_id: str,
    day: date,
    session: SessionInfo = Depends(dependencies.get_session),
    draft_service: service.DraftService = Depends(dependencies.get_draft_service),
):
    try:
        form = draft_service.remove_date(session, draft_id, day)
    except drafts.DraftNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _serialize(form)


@router.patch("/applications/drafts/{draft_id}", response_model=schemas.DraftRead)
def update_draft(
    draft_id: str,
    payload: schemas.DraftUpdate,
    session: SessionInfo = Depends(dependencies.get_session),
    draft_service: service.DraftService = Depends(dependencies.get_draft_service),
):
    try:
        form = draft_service.update_details(session, draft_id, payload)
    except drafts.DraftNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _serialize(form)


@router.post("/applications/drafts/{draft_id}/refresh", response_model=schemas.DraftRead)
def refresh_memos(
    draft_id: str,
    session: SessionInfo = Depends(dependencies.get_session),
    draft_service: service.DraftService = Depends(dependencies.get_draft_service),
):
    try:
        form = draft_service.refresh(session, draft_id)
    except drafts.DraftNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _serialize(form)


@router.post("/applications/drafts/{draft_id}/submit", response_model=schemas.DraftRead)
def submit_draft(
    draft_id: str,
    session: SessionInfo = Depends(dependencies.get_session),
    draft_service: service.DraftService = Depends(dependencies.get_draft_service),
):
    try:
        form = draft_service.submit(session, draft_id)
    except drafts.DraftNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _serialize(form)


@router.delete("/applications/drafts/{draft_id}", status_code=status.HTTP_204_NO_CONTENT)
def discard_draft(
    draft_id: str,
    session: SessionInfo = Depends(dependencies.get_session),
    draft_service: service.DraftService = Depends(dependencies.get_draft_service),
):
    try:
        draft_service.discard(session, draft_id)
    except drafts.DraftNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
