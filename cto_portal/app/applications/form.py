"""State machine for one CTO application being composed and submitted."""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from cto_portal.app.credits.schemas import CreditMemo
from cto_portal.app.credits.service import (
    build_memo_views,
    filter_eligible_memos,
    sort_by_date_approved,
    total_available_hours,
)

from . import validation
from .allocation import allocate_hours, allocated_total, applied_by_memo
from .schedule import (
    DEFAULT_HOURS_PER_DAY,
    DEFAULT_LEAD_WORKING_DAYS,
    max_selectable_dates,
    min_selectable_date,
)
from .schemas import AllocationEntry, ApproverRouting, DraftRead, FormState, SubmissionPayload

logger = logging.getLogger(__name__)

MemoFetcher = Callable[[], List[CreditMemo]]
Submitter = Callable[[Dict[str, Any]], Dict[str, Any]]

EDITABLE_STATES = (FormState.IDLE, FormState.FAILED)


class FormLockedError(Exception):
    """Raised when a draft is edited while it is being submitted or after success."""


class SubmissionInProgressError(Exception):
    """Raised when a submit arrives while another one is still being handled."""


class AlreadySubmittedError(Exception):
    """Raised when a draft that was already accepted is submitted again."""


class FormClosedError(Exception):
    """Raised when a torn-down draft is used."""


def _local_now() -> datetime:
    return datetime.now(tz=timezone.utc).astimezone()


class ApplicationForm:
    """One employee's CTO application draft.

    States: ``IDLE -> VALIDATING -> SUBMITTING -> SUCCEEDED | FAILED``.
    Submitting is allowed from ``IDLE`` and ``FAILED`` only. A failed
    validation returns the form to the state it was submitted from without
    contacting the CTO backend. ``SUCCEEDED`` is terminal, so a second click
    arriving while the confirmation is still on screen cannot file twice.
    """

    def __init__(
        self,
        *,
        owner: str,
        memos: Sequence[CreditMemo],
        routing: Optional[ApproverRouting] = None,
        lead_working_days: int = DEFAULT_LEAD_WORKING_DAYS,
        hours_per_day: float = DEFAULT_HOURS_PER_DAY,
        snapshot_ttl_seconds: int = 300,
        clock: Callable[[], datetime] = _local_now,
        draft_id: Optional[str] = None,
        client_request_id: Optional[str] = None,
    ) -> None:
        self.id = draft_id or uuid.uuid4().hex
        self.owner = owner
        # Fixed for the draft's lifetime so the backend can de-duplicate retries.
        self.client_request_id = client_request_id or str(uuid.uuid4())
        self.lead_working_days = lead_working_days
        self.hours_per_day = hours_per_day
        self.snapshot_ttl = timedelta(seconds=snapshot_ttl_seconds)
        self._clock = clock
        self._lock = threading.RLock()

        self._state = FormState.IDLE
        self._closed = False
        self._memos: List[CreditMemo] = list(memos)
        self._fetched_at = clock()
        self._requested_hours = 0.0
        self._allocation: List[AllocationEntry] = []
        self._dates: List[date] = []
        self._reason = ""
        self._routing = routing or ApproverRouting()
        self._last_error: Optional[str] = None
        self._application: Optional[Dict[str, Any]] = None

    # ------------------------------------------------------------------ read
    @property
    def state(self) -> FormState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def requested_hours(self) -> float:
        return self._requested_hours

    @property
    def allocation(self) -> List[AllocationEntry]:
        return list(self._allocation)

    @property
    def inclusive_dates(self) -> List[date]:
        return list(self._dates)

    @property
    def routing(self) -> ApproverRouting:
        return self._routing

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def eligible_pool(self) -> List[CreditMemo]:
        return filter_eligible_memos(sort_by_date_approved(self._memos))

    def today(self) -> date:
        return self._clock().date()

    def is_snapshot_stale(self) -> bool:
        return self._clock() - self._fetched_at > self.snapshot_ttl

    def describe(self) -> DraftRead:
        with self._lock:
            return DraftRead(
                id=self.id,
                state=self._state,
                requested_hours=self._requested_hours,
                reason=self._reason,
                inclusive_dates=list(self._dates),
                approver1=self._routing.approver1,
                approver2=self._routing.approver2,
                approver3=self._routing.approver3,
                allocation=list(self._allocation),
                total_allocated=allocated_total(self._allocation),
                total_available_hours=total_available_hours(self._memos),
                max_selectable_dates=max_selectable_dates(self._requested_hours, self.hours_per_day),
                min_selectable_date=min_selectable_date(self.today(), self.lead_working_days),
                memos=build_memo_views(self._memos, applied_by_memo(self._allocation)),
                client_request_id=self.client_request_id,
                snapshot_fetched_at=self._fetched_at,
                last_error=self._last_error,
                application=self._application,
            )

    # ------------------------------------------------------------------ edits
    def set_requested_hours(self, hours: float) -> None:
        with self._lock:
            self._ensure_editable()
            self._requested_hours = max(float(hours or 0), 0.0)
            # dates were sized for the old total
            self._dates = []
            self._reallocate()

    def add_date(self, day: date) -> bool:
        with self._lock:
            self._ensure_editable()
            added = validation.ensure_date_allowed(
                day,
                requested_hours=self._requested_hours,
                chosen=self._dates,
                today=self.today(),
                lead_working_days=self.lead_working_days,
                hours_per_day=self.hours_per_day,
            )
            if added:
                self._dates.append(day)
                self._dates.sort()
            return added

    def remove_date(self, day: date) -> None:
        with self._lock:
            self._ensure_editable()
            self._dates = [chosen for chosen in self._dates if chosen != day]

    def update_details(
        self,
        *,
        reason: Optional[str] = None,
        approver1: Optional[str] = None,
        approver2: Optional[str] = None,
        approver3: Optional[str] = None,
    ) -> None:
        with self._lock:
            self._ensure_editable()
            if reason is not None:
                self._reason = reason
            changes = {
                key: value
                for key, value in (("approver1", approver1), ("approver2", approver2), ("approver3", approver3))
                if value is not None
            }
            if changes:
                self._routing = ApproverRouting(**{**self._routing.model_dump(), **changes})

    def replace_snapshot(self, memos: Sequence[CreditMemo]) -> None:
        with self._lock:
            self._ensure_editable()
            self._apply_snapshot(memos)

    def teardown(self) -> None:
        with self._lock:
            self._closed = True

    # ------------------------------------------------------------------ submit
    def submit(self, submitter: Submitter, *, refresh: Optional[MemoFetcher] = None) -> Dict[str, Any]:
        """Validate the draft and hand it to ``submitter`` exactly once.

        ``refresh`` is consulted only when the memo snapshot has outlived its
        TTL; the allocation is recomputed against the fresh balances before the
        rules are checked.
        """

        with self._lock:
            if self._closed:
                raise FormClosedError("This application draft has been closed.")
            if self._state == FormState.SUCCEEDED:
                raise AlreadySubmittedError("This application has already been submitted.")
            if self._state not in EDITABLE_STATES:
                raise SubmissionInProgressError("This application is already being submitted.")
            resume_state = self._state
            self._state = FormState.VALIDATING

        try:
            fresh = refresh() if refresh is not None and self.is_snapshot_stale() else None
            with self._lock:
                if fresh is not None:
                    logger.info("Draft %s memo snapshot expired; refreshed before submit", self.id)
                    self._apply_snapshot(fresh)
                payload = self._build_payload()
        except Exception:
            with self._lock:
                self._state = resume_state
            raise

        with self._lock:
            if self._closed:
                # torn down while validating; nothing goes upstream
                self._state = resume_state
                raise FormClosedError("This application draft has been closed.")
            self._state = FormState.SUBMITTING

        logger.info(
            "Submitting draft %s (%s hours over %d memos, request %s)",
            self.id,
            payload.requested_hours,
            len(payload.memos),
            self.client_request_id,
        )
        try:
            response = submitter(payload.to_wire())
        except Exception as exc:
            with self._lock:
                if self._closed:
                    logger.info("Ignoring failed submission for closed draft %s: %s", self.id, exc)
                else:
                    self._state = FormState.FAILED
                    self._last_error = str(exc)
            raise

        with self._lock:
            if self._closed:
                logger.info("Ignoring submission response for closed draft %s", self.id)
                return response
            self._state = FormState.SUCCEEDED
            self._last_error = None
            self._application = response
        return response

    # ------------------------------------------------------------------ internal
    def _ensure_editable(self) -> None:
        if self._closed:
            raise FormClosedError("This application draft has been closed.")
        if self._state not in EDITABLE_STATES:
            raise FormLockedError(f"This application cannot be changed while {self._state.value}.")

    def _apply_snapshot(self, memos: Sequence[CreditMemo]) -> None:
        self._memos = list(memos)
        self._fetched_at = self._clock()
        self._reallocate()

    def _reallocate(self) -> None:
        self._allocation = allocate_hours(self._requested_hours, self.eligible_pool())

    def _build_payload(self) -> SubmissionPayload:
        pool = self.eligible_pool()
        validation.validate_application(
            requested_hours=self._requested_hours,
            pool=pool,
            allocation=self._allocation,
            reason=self._reason,
            inclusive_dates=self._dates,
            routing=self._routing,
            today=self.today(),
            lead_working_days=self.lead_working_days,
            hours_per_day=self.hours_per_day,
        )
        return SubmissionPayload(
            requested_hours=self._requested_hours,
            reason=self._reason.strip(),
            inclusive_dates=list(self._dates),
            approver1=self._routing.approver1,
            approver2=self._routing.approver2,
            approver3=self._routing.approver3,
            memos=list(self._allocation),
            client_request_id=self.client_request_id,
        )
