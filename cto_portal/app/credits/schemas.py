"""Pydantic schemas for CTO credit memos."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

ROLLED_BACK = "rolledback"


class MemoDisplayStatus(str, Enum):
    USED_IN_APPLICATION = "Used in Application"
    EXHAUSTED = "Exhausted"
    USED_IN_THIS_REQUEST = "Used in this request"
    PARTIALLY_USED = "Partially used"
    ACTIVE = "Active"


class CreditMemo(BaseModel):
    """One HR-issued grant of compensatory hours, as seen by one employee."""

    id: str
    memo_number: Optional[str] = Field(
        default=None,
        alias="memoNo",
        validation_alias=AliasChoices("memoNo", "memoNumber", "memo_number"),
    )
    credited_hours: float = Field(default=0.0, alias="creditedHours", ge=0, allow_inf_nan=False)
    used_hours: float = Field(default=0.0, alias="usedHours", ge=0, allow_inf_nan=False)
    remaining_hours: float = Field(..., alias="remainingHours", allow_inf_nan=False)
    reserved_hours: float = Field(default=0.0, alias="reservedHours", ge=0, allow_inf_nan=False)
    status: str = Field(default="ACTIVE")
    date_approved: Optional[datetime] = Field(default=None, alias="dateApproved")
    uploaded_memo: Optional[str] = Field(default=None, alias="uploadedMemo")

    model_config = {"populate_by_name": True}

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> str:
        if value is None or str(value).strip() == "":
            raise ValueError("memo id is required")
        return str(value)

    @field_validator("credited_hours", "used_hours", "remaining_hours", "reserved_hours", mode="before")
    @classmethod
    def default_missing_hours(cls, value: Any) -> Any:
        # upstream serialises unset counters as null
        return 0.0 if value is None else value

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, value: Any) -> str:
        return str(value) if value else "ACTIVE"

    @field_validator("date_approved")
    @classmethod
    def ensure_aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def is_rolled_back(self) -> bool:
        return self.status.strip().lower() == ROLLED_BACK


class MemoView(CreditMemo):
    applied_hours: float = Field(default=0.0, alias="appliedHours")
    display_status: MemoDisplayStatus = Field(..., alias="displayStatus")


class MemoListResponse(BaseModel):
    memos: List[MemoView]
    total_available_hours: float = Field(..., alias="totalAvailableHours")
    eligible_count: int = Field(..., alias="eligibleCount")

    model_config = {"populate_by_name": True}
