"""Remote failure type and the retryable-vs-denied decision.

Raw failures are classified exactly once, at the submission/flush boundary.
Code above that boundary only ever sees a ``FailureKind``.
"""

from __future__ import annotations

from enum import StrEnum

_DENIED_STATUSES = frozenset({401, 403})
# 42501 is Postgres ``insufficient_privilege``, what row-level security returns.
_DENIED_CODE_MARKERS = ("permission-denied", "permission_denied", "42501")


class RemoteServiceError(Exception):
    """Failure reported by the hosted data service or the transport to it."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status: int | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status
        self.details = details

    def __repr__(self) -> str:
        return f"RemoteServiceError({self.message!r}, code={self.code!r}, status={self.status!r})"


class FailureKind(StrEnum):
    auth_denied = "auth_denied"
    transient = "transient"


def _carried_status(error: BaseException) -> int:
    for attr in ("status", "status_code"):
        raw = getattr(error, attr, None)
        if raw is None:
            continue
        try:
            return int(raw)
        except (TypeError, ValueError):
            continue
    return 0


def is_permission_denied(error: BaseException) -> bool:
    code = str(getattr(error, "code", None) or "").lower()
    if any(marker in code for marker in _DENIED_CODE_MARKERS):
        return True
    return _carried_status(error) in _DENIED_STATUSES


def classify_failure(error: BaseException) -> FailureKind:
    """Map any failure to AuthDenied or Transient.

    Only access-policy rejections are terminal. Timeouts, DNS errors, 5xx
    responses and anything unrecognised are transient and go to the queue.
    """
    if is_permission_denied(error):
        return FailureKind.auth_denied
    return FailureKind.transient


__all__ = [
    "FailureKind",
    "RemoteServiceError",
    "classify_failure",
    "is_permission_denied",
]
