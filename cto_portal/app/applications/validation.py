"""Pre-submission checks for CTO applications.

Every rule here is evaluated before the CTO backend is contacted. A failed
rule raises an :class:`InputError` subclass whose message is shown to the
employee as-is; nothing is sent upstream.
"""

from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from cto_portal.app.credits.schemas import CreditMemo
from cto_portal.app.credits.service import total_available_hours

from .allocation import allocated_total
from .schedule import (
    DEFAULT_HOURS_PER_DAY,
    DEFAULT_LEAD_WORKING_DAYS,
    max_selectable_dates,
    min_selectable_date,
)
from .schemas import AllocationEntry, ApproverRouting

# Float slack for sums of fractional credit hours.
HOURS_EPSILON = 1e-9


class InputError(Exception):
    """Raised when an application breaks a client-side filing rule."""

    rule = "input"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class HoursRequiredError(InputError):
    rule = "hours_required"


class ExceedsBalanceError(InputError):
    rule = "exceeds_balance"


class InsufficientMemoCreditsError(InputError):
    """The allocation falls short of the requested hours."""

    rule = "insufficient_memo_credits"


class ReasonRequiredError(InputError):
    rule = "reason_required"


class DatesRequiredError(InputError):
    rule = "dates_required"


class TooManyDatesError(InputError):
    rule = "too_many_dates"


class LeadTimeError(InputError):
    rule = "lead_time"


class ApproverRoutingError(InputError):
    rule = "approver_routing"


def _fmt(hours: float) -> str:
    return f"{hours:g}"


def ensure_hours_entered(requested_hours: float) -> None:
    if not requested_hours or requested_hours <= 0:
        raise HoursRequiredError("Please enter requested hours.")


def ensure_within_balance(requested_hours: float, pool: Sequence[CreditMemo]) -> None:
    available = total_available_hours(pool)
    if requested_hours > available + HOURS_EPSILON:
        raise ExceedsBalanceError(
            f"Requested hours ({_fmt(requested_hours)}) exceed your available balance ({_fmt(available)})."
        )


def ensure_fully_covered(requested_hours: float, allocation: Sequence[AllocationEntry]) -> None:
    covered = allocated_total(allocation)
    if covered + HOURS_EPSILON < requested_hours:
        raise InsufficientMemoCreditsError(
            f"Insufficient memo credits: only {_fmt(covered)} of {_fmt(requested_hours)} hours could be allocated."
        )


def ensure_date_allowed(
    day: date,
    *,
    requested_hours: float,
    chosen: Sequence[date],
    today: date,
    lead_working_days: int = DEFAULT_LEAD_WORKING_DAYS,
    hours_per_day: float = DEFAULT_HOURS_PER_DAY,
) -> bool:
    """Check one date before it joins the selection.

    Returns ``False`` when the date is already chosen; the caller keeps the
    selection unchanged in that case.
    """

    if not requested_hours or requested_hours <= 0:
        raise HoursRequiredError("Please enter requested hours first.")
    if day < min_selectable_date(today, lead_working_days):
        raise LeadTimeError(
            f"Applications must be filed at least {lead_working_days} working days in advance."
        )
    if day in chosen:
        return False
    cap = max_selectable_dates(requested_hours, hours_per_day)
    if len(chosen) >= cap:
        raise TooManyDatesError(
            f"You can only select up to {cap} days for {_fmt(requested_hours)} hours."
        )
    return True


def validate_application(
    *,
    requested_hours: float,
    pool: Sequence[CreditMemo],
    allocation: Sequence[AllocationEntry],
    reason: Optional[str],
    inclusive_dates: Sequence[date],
    routing: ApproverRouting,
    today: date,
    lead_working_days: int = DEFAULT_LEAD_WORKING_DAYS,
    hours_per_day: float = DEFAULT_HOURS_PER_DAY,
) -> None:
    ensure_hours_entered(requested_hours)
    ensure_within_balance(requested_hours, pool)
    ensure_fully_covered(requested_hours, allocation)

    if not reason or not reason.strip():
        raise ReasonRequiredError("Please provide a reason for this application.")

    if not inclusive_dates:
        raise DatesRequiredError("Please select inclusive dates.")
    cap = max_selectable_dates(requested_hours, hours_per_day)
    if len(inclusive_dates) > cap:
        raise TooManyDatesError(
            f"You can only select up to {cap} days for {_fmt(requested_hours)} hours."
        )
    if min(inclusive_dates) < min_selectable_date(today, lead_working_days):
        raise LeadTimeError(
            f"Applications must be filed at least {lead_working_days} working days in advance."
        )

    missing = routing.missing_levels()
    if missing:
        levels = ", ".join(str(level) for level in missing)
        raise ApproverRoutingError(f"Approvers for level {levels} are required.")
