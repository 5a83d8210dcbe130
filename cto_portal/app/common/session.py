"""Read-only helpers for the bearer tokens issued by the CTO backend."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

import jwt

SESSION_EXPIRED_MESSAGE = "Your session has expired. Please sign in again."


class SessionExpiredError(Exception):
    """Raised when a bearer token is missing, unreadable or past its expiry."""

    def __init__(self, message: str = SESSION_EXPIRED_MESSAGE) -> None:
        super().__init__(message)


@dataclass(frozen=True)
class SessionInfo:
    token: str
    subject: str
    role: Optional[str] = None
    designation: Optional[str] = None
    expires_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        current = now or datetime.now(tz=timezone.utc)
        return self.expires_at <= current


def read_session(token: str) -> SessionInfo:
    """Decode the token claims without verifying the signature.

    The gateway is not the token authority: the CTO backend verifies every
    forwarded request. Decoding here only lets us refuse work on an expired
    session early and scope drafts to the token's subject.
    """

    try:
        payload = jwt.decode(
            token,
            options={
                "verify_signature": False,
                "verify_exp": False,
                "verify_aud": False,
                "verify_iss": False,
            },
        )
    except jwt.PyJWTError as exc:  # type: ignore[attr-defined]
        raise SessionExpiredError() from exc

    subject = payload.get("id") or payload.get("sub")
    if not subject:
        raise SessionExpiredError()

    exp = payload.get("exp")
    expires_at = None
    if exp is not None:
        try:
            expires_at = datetime.fromtimestamp(int(exp), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError) as exc:
            raise SessionExpiredError() from exc

    return SessionInfo(
        token=token,
        subject=str(subject),
        role=payload.get("role"),
        designation=_identifier(payload.get("designation")),
        expires_at=expires_at,
    )


def ensure_active(session: SessionInfo, now: Optional[datetime] = None) -> SessionInfo:
    if session.is_expired(now):
        raise SessionExpiredError()
    return session


def _identifier(value: Any) -> Optional[str]:
    # designation may arrive populated ({"_id": ..., "name": ...}) or as a bare id
    if value is None or value == "":
        return None
    if isinstance(value, dict):
        value = value.get("_id") or value.get("id")
        if not value:
            return None
    return str(value)
