"""Greedy allocation of requested hours across eligible credit memos."""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence

from cto_portal.app.credits.schemas import CreditMemo

from .schemas import AllocationEntry


def allocate_hours(requested_hours: float, eligible_memos: Sequence[CreditMemo]) -> List[AllocationEntry]:
    """Draw ``requested_hours`` from ``eligible_memos`` in list order.

    Each memo gives up to its remaining balance before the next one is
    touched, so older credits are consumed first when the list is sorted by
    approval date. Hours already drawn are never handed back to fit a later
    memo better.

    When the pool cannot cover the request the result is simply short; the
    caller decides whether a short allocation may be submitted.
    """

    remaining = requested_hours
    entries: List[AllocationEntry] = []
    for memo in eligible_memos:
        if remaining <= 0:
            break
        applied = min(memo.remaining_hours, remaining)
        if applied <= 0:
            continue
        entries.append(AllocationEntry(memo_id=memo.id, applied_hours=applied))
        remaining -= applied
    return entries


def allocated_total(entries: Iterable[AllocationEntry]) -> float:
    return sum(entry.applied_hours for entry in entries)


def applied_by_memo(entries: Iterable[AllocationEntry]) -> Dict[str, float]:
    totals: Dict[str, float] = {}
    for entry in entries:
        totals[entry.memo_id] = totals.get(entry.memo_id, 0.0) + entry.applied_hours
    return totals
