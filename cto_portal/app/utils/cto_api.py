"""Client for the handful of CTO backend endpoints the gateway relies on."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type

import httpx

from cto_portal.app.applications.schemas import ApproverRouting
from cto_portal.app.common.session import SESSION_EXPIRED_MESSAGE, SessionExpiredError
from cto_portal.app.credits.schemas import CreditMemo

logger = logging.getLogger(__name__)

MY_MEMOS_PATH = "/employee/memos/me"
APPROVER_SETTINGS_PATH = "/cto/settings/{designation_id}"
APPLY_PATH = "/cto/applications/apply"


class CtoAPIError(Exception):
    """Raised when the CTO backend cannot be reached or answers with an error."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SubmissionError(CtoAPIError):
    """Raised when the CTO backend rejects an application submission."""


class CtoApiClient:
    """Thin synchronous wrapper that forwards the caller's bearer token."""

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "CtoApiClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def list_my_memos(self) -> List[CreditMemo]:
        data = self._request("GET", MY_MEMOS_PATH, fallback="Failed to fetch your CTO memos")
        raw_memos = data.get("memos") if isinstance(data, dict) else data
        if not isinstance(raw_memos, list):
            raise CtoAPIError("CTO service returned an unexpected memo list")
        try:
            return [CreditMemo.model_validate(item) for item in raw_memos]
        except ValueError as exc:
            raise CtoAPIError("CTO service returned a malformed memo") from exc

    def get_approver_settings(self, designation_id: str) -> ApproverRouting:
        data = self._request(
            "GET",
            APPROVER_SETTINGS_PATH.format(designation_id=designation_id),
            fallback="Failed to fetch approver settings",
        )
        setting = data.get("data") if isinstance(data, dict) else None
        if not setting:
            logger.info("No approver setting for designation %s", designation_id)
            return ApproverRouting()
        return ApproverRouting(
            approver1=_approver_id(setting.get("level1Approver")),
            approver2=_approver_id(setting.get("level2Approver")),
            approver3=_approver_id(setting.get("level3Approver")),
        )

    def submit_application(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        data = self._request(
            "POST",
            APPLY_PATH,
            json=payload,
            error_cls=SubmissionError,
            fallback="Failed to submit CTO application",
        )
        return data if isinstance(data, dict) else {"application": data}

    # ------------------------------------------------------------------ internal
    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        error_cls: Type[CtoAPIError] = CtoAPIError,
        fallback: str = "Request failed",
    ) -> Any:
        try:
            resp = self._client.request(method, path, json=json)
        except httpx.HTTPError as exc:
            logger.warning("CTO service unreachable on %s %s: %s", method, path, exc)
            raise CtoAPIError("Unable to reach the CTO service") from exc

        data = _json_or_none(resp)
        if resp.status_code in (401, 403):
            raise SessionExpiredError(_error_message(data) or SESSION_EXPIRED_MESSAGE)
        if resp.is_error:
            message = _error_message(data) or fallback
            logger.warning("CTO service answered %s on %s %s: %s", resp.status_code, method, path, message)
            raise error_cls(message, status_code=resp.status_code)
        return data


def _json_or_none(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None


def _error_message(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    message = data.get("message") or data.get("error")
    return str(message) if message else None


def _approver_id(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        value = value.get("_id") or value.get("id")
    return str(value) if value else None
