"""Business logic tying drafts to the CTO backend."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional, Sequence

from cto_portal.app.common.session import SessionInfo
from cto_portal.app.core.config import Settings
from cto_portal.app.credits.schemas import CreditMemo
from cto_portal.app.credits.service import build_memo_views, filter_eligible_memos, sort_by_date_approved, total_available_hours
from cto_portal.app.utils.cto_api import CtoAPIError, CtoApiClient

from . import schemas
from .allocation import allocate_hours, allocated_total, applied_by_memo
from .drafts import DraftStore
from .form import ApplicationForm

logger = logging.getLogger(__name__)


def preview_allocation(requested_hours: float, memos: Sequence[CreditMemo]) -> schemas.AllocationPreviewResponse:
    memos = list(memos)
    pool = filter_eligible_memos(sort_by_date_approved(memos))
    allocation = allocate_hours(requested_hours, pool)
    covered = allocated_total(allocation)
    return schemas.AllocationPreviewResponse(
        requested_hours=requested_hours,
        allocation=allocation,
        total_allocated=covered,
        total_available_hours=total_available_hours(memos),
        shortfall_hours=max(requested_hours - covered, 0.0),
        memos=build_memo_views(memos, applied_by_memo(allocation)),
    )


class DraftService:
    """Open, edit and submit application drafts on behalf of one session."""

    def __init__(self, store: DraftStore, client: CtoApiClient, settings: Settings) -> None:
        self._store = store
        self._client = client
        self._settings = settings

    # ------------------------------------------------------------------ create/read
    def preview(self, requested_hours: float, memos: Optional[List[CreditMemo]] = None) -> schemas.AllocationPreviewResponse:
        if memos is None:
            memos = self._client.list_my_memos()
        return preview_allocation(requested_hours, memos)

    def open_draft(self, session: SessionInfo, *, designation_id: Optional[str] = None) -> ApplicationForm:
        memos = self._client.list_my_memos()
        routing = self._default_routing(designation_id or session.designation)
        form = ApplicationForm(
            owner=session.subject,
            memos=memos,
            routing=routing,
            lead_working_days=self._settings.lead_working_days,
            hours_per_day=self._settings.hours_per_day,
            snapshot_ttl_seconds=self._settings.memo_snapshot_ttl_seconds,
        )
        self._store.add(form)
        logger.info("Opened draft %s for %s with %d memos", form.id, session.subject, len(memos))
        return form

    def get_draft(self, session: SessionInfo, draft_id: str) -> ApplicationForm:
        return self._store.get(draft_id, session.subject)

    # ------------------------------------------------------------------ edits
    def set_hours(self, session: SessionInfo, draft_id: str, requested_hours: float) -> ApplicationForm:
        form = self.get_draft(session, draft_id)
        form.set_requested_hours(requested_hours)
        return form

    def add_date(self, session: SessionInfo, draft_id: str, day: date) -> ApplicationForm:
        form = self.get_draft(session, draft_id)
        form.add_date(day)
        return form

    def remove_date(self, session: SessionInfo, draft_id: str, day: date) -> ApplicationForm:
        form = self.get_draft(session, draft_id)
        form.remove_date(day)
        return form

    def update_details(self, session: SessionInfo, draft_id: str, payload: schemas.DraftUpdate) -> ApplicationForm:
        form = self.get_draft(session, draft_id)
        form.update_details(**payload.model_dump())
        return form

    def refresh(self, session: SessionInfo, draft_id: str) -> ApplicationForm:
        form = self.get_draft(session, draft_id)
        form.replace_snapshot(self._client.list_my_memos())
        return form

    # ------------------------------------------------------------------ submit/close
    def submit(self, session: SessionInfo, draft_id: str) -> ApplicationForm:
        form = self.get_draft(session, draft_id)
        form.submit(self._client.submit_application, refresh=self._client.list_my_memos)
        return form

    def discard(self, session: SessionInfo, draft_id: str) -> None:
        self._store.discard(draft_id, session.subject)

    # ------------------------------------------------------------------ internal
    def _default_routing(self, designation_id: Optional[str]) -> schemas.ApproverRouting:
        if not designation_id:
            return schemas.ApproverRouting()
        try:
            return self._client.get_approver_settings(designation_id)
        except CtoAPIError as exc:
            # approvers can still be entered by hand
            logger.warning("Approver settings unavailable for designation %s: %s", designation_id, exc)
            return schemas.ApproverRouting()
