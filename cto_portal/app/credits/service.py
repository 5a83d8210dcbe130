"""Credit pool selection and read-only memo status helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Mapping, Optional

from .schemas import CreditMemo, MemoDisplayStatus, MemoListResponse, MemoView

_NO_DATE = datetime.max.replace(tzinfo=timezone.utc)


def filter_eligible_memos(memos: Iterable[CreditMemo]) -> List[CreditMemo]:
    """Return the memos hours may be drawn from, in their original order.

    Rolled-back memos are never eligible, whatever balance they still show,
    and neither is any memo with nothing left to draw.
    """

    return [memo for memo in memos if not memo.is_rolled_back and memo.remaining_hours > 0]


def sort_by_date_approved(memos: Iterable[CreditMemo]) -> List[CreditMemo]:
    return sorted(memos, key=lambda memo: memo.date_approved or _NO_DATE)


def total_available_hours(memos: Iterable[CreditMemo]) -> float:
    return sum(memo.remaining_hours for memo in filter_eligible_memos(memos))


def derive_memo_status(memo: CreditMemo, applied_in_current_request: float = 0.0) -> MemoDisplayStatus:
    """Classify a memo for display against the request being composed.

    The first matching rule wins; a memo held by another submitted application
    is reported as such before its balance is considered.
    """

    applied = applied_in_current_request or 0.0
    if memo.reserved_hours > 0 and applied == 0:
        return MemoDisplayStatus.USED_IN_APPLICATION
    if memo.remaining_hours <= 0:
        return MemoDisplayStatus.EXHAUSTED
    if applied > 0 and applied == memo.credited_hours:
        return MemoDisplayStatus.USED_IN_THIS_REQUEST
    if applied > 0:
        return MemoDisplayStatus.PARTIALLY_USED
    return MemoDisplayStatus.ACTIVE


def build_memo_views(
    memos: Iterable[CreditMemo],
    applied_by_memo: Optional[Mapping[str, float]] = None,
) -> List[MemoView]:
    applied_by_memo = applied_by_memo or {}
    views: List[MemoView] = []
    for memo in sort_by_date_approved(memos):
        applied = applied_by_memo.get(memo.id, 0.0)
        views.append(
            MemoView(
                **memo.model_dump(),
                applied_hours=applied,
                display_status=derive_memo_status(memo, applied),
            )
        )
    return views


def summarize_memos(
    memos: Iterable[CreditMemo],
    applied_by_memo: Optional[Mapping[str, float]] = None,
) -> MemoListResponse:
    memos = list(memos)
    return MemoListResponse(
        memos=build_memo_views(memos, applied_by_memo),
        total_available_hours=total_available_hours(memos),
        eligible_count=len(filter_eligible_memos(memos)),
    )
