"""Pydantic schemas for CTO application drafts and submissions."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from cto_portal.app.credits.schemas import CreditMemo, MemoView


class FormState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class AllocationEntry(BaseModel):
    memo_id: str = Field(..., alias="memoId")
    applied_hours: float = Field(..., alias="appliedHours", gt=0)

    model_config = {"populate_by_name": True, "frozen": True}


class ApproverRouting(BaseModel):
    approver1: Optional[str] = None
    approver2: Optional[str] = None
    approver3: Optional[str] = None

    @field_validator("approver1", "approver2", "approver3", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    def missing_levels(self) -> List[int]:
        levels = (self.approver1, self.approver2, self.approver3)
        return [index for index, approver in enumerate(levels, start=1) if not approver]


class AllocationPreviewRequest(BaseModel):
    requested_hours: float = Field(..., alias="requestedHours", ge=0, allow_inf_nan=False)
    memos: Optional[List[CreditMemo]] = None

    model_config = {"populate_by_name": True}


class AllocationPreviewResponse(BaseModel):
    requested_hours: float = Field(..., alias="requestedHours")
    allocation: List[AllocationEntry]
    total_allocated: float = Field(..., alias="totalAllocated")
    total_available_hours: float = Field(..., alias="totalAvailableHours")
    shortfall_hours: float = Field(..., alias="shortfallHours")
    memos: List[MemoView]

    model_config = {"populate_by_name": True}


class DraftCreate(BaseModel):
    designation_id: Optional[str] = Field(default=None, alias="designationId")

    model_config = {"populate_by_name": True}


class HoursUpdate(BaseModel):
    requested_hours: float = Field(..., alias="requestedHours", ge=0, allow_inf_nan=False)

    model_config = {"populate_by_name": True}


class DateAdd(BaseModel):
    day: date = Field(..., alias="date")

    model_config = {"populate_by_name": True}


class DraftUpdate(BaseModel):
    reason: Optional[str] = None
    approver1: Optional[str] = None
    approver2: Optional[str] = None
    approver3: Optional[str] = None


class SubmissionPayload(BaseModel):
    """Body sent to the CTO backend for one confirmed submit."""

    requested_hours: float = Field(..., alias="requestedHours")
    reason: str
    inclusive_dates: List[date] = Field(..., alias="inclusiveDates")
    approver1: str
    approver2: str
    approver3: str
    memos: List[AllocationEntry]
    client_request_id: str = Field(..., alias="clientRequestId")

    model_config = {"populate_by_name": True}

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class DraftRead(BaseModel):
    id: str
    state: FormState
    requested_hours: float = Field(..., alias="requestedHours")
    reason: str
    inclusive_dates: List[date] = Field(..., alias="inclusiveDates")
    approver1: Optional[str] = None
    approver2: Optional[str] = None
    approver3: Optional[str] = None
    allocation: List[AllocationEntry]
    total_allocated: float = Field(..., alias="totalAllocated")
    total_available_hours: float = Field(..., alias="totalAvailableHours")
    max_selectable_dates: int = Field(..., alias="maxSelectableDates")
    min_selectable_date: date = Field(..., alias="minSelectableDate")
    memos: List[MemoView]
    client_request_id: str = Field(..., alias="clientRequestId")
    snapshot_fetched_at: datetime = Field(..., alias="snapshotFetchedAt")
    last_error: Optional[str] = Field(default=None, alias="lastError")
    application: Optional[Dict[str, Any]] = None

    model_config = {"populate_by_name": True}
