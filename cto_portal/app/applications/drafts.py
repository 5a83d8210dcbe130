"""In-memory registry of open application drafts."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List

from .form import ApplicationForm
from .schemas import FormState

logger = logging.getLogger(__name__)

IN_FLIGHT_STATES = (FormState.VALIDATING, FormState.SUBMITTING)


class DraftNotFoundError(Exception):
    """Raised when a draft does not exist, has expired or belongs to someone else."""


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class DraftStore:
    """Hold drafts per process, scoped to the session subject that opened them."""

    def __init__(self, *, ttl_seconds: int = 3600, clock: Callable[[], datetime] = _utcnow) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._drafts: Dict[str, ApplicationForm] = {}
        self._seen: Dict[str, datetime] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._drafts)

    def add(self, form: ApplicationForm) -> ApplicationForm:
        with self._lock:
            self._purge_expired()
            self._drafts[form.id] = form
            self._seen[form.id] = self._clock()
        return form

    def get(self, draft_id: str, owner: str) -> ApplicationForm:
        with self._lock:
            self._purge_expired()
            form = self._drafts.get(draft_id)
            if form is None or form.owner != owner:
                raise DraftNotFoundError("Application draft not found.")
            self._seen[draft_id] = self._clock()
            return form

    def discard(self, draft_id: str, owner: str) -> None:
        with self._lock:
            form = self._drafts.get(draft_id)
            if form is None or form.owner != owner:
                raise DraftNotFoundError("Application draft not found.")
            del self._drafts[draft_id]
            self._seen.pop(draft_id, None)
        form.teardown()
        logger.info("Draft %s discarded in state %s", draft_id, form.state.value)

    # ------------------------------------------------------------------ internal
    def _purge_expired(self) -> None:
        cutoff = self._clock() - self._ttl
        expired: List[str] = [
            draft_id
            for draft_id, seen in self._seen.items()
            if seen < cutoff and self._drafts[draft_id].state not in IN_FLIGHT_STATES
        ]
        for draft_id in expired:
            form = self._drafts.pop(draft_id)
            self._seen.pop(draft_id, None)
            form.teardown()
            logger.info("Draft %s expired after inactivity", draft_id)
