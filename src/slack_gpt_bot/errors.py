"""
Error kinds raised along the request pipeline.

Only AuthenticationFailure changes the HTTP acknowledgment; everything raised
after an event is accepted is turned into a fallback notice in the thread.
"""

from __future__ import annotations

from enum import Enum


class BotError(Exception):
    """Base class for pipeline errors."""


class AuthenticationFailure(BotError):
    pass


class DuplicateDelivery(BotError):
    pass


class SecretUnavailable(BotError):
    pass


class SlackApiError(BotError):
    """Slack Web API call failed (transport, HTTP status or ``ok: false``)."""

    def __init__(self, method: str, reason: str, status: int | None = None) -> None:
        super().__init__(f"{method}: {reason}")
        self.method = method
        self.reason = reason
        self.status = status


class HistoryFetchError(BotError):
    pass


class FailureKind(str, Enum):
    TIMEOUT = "timeout"
    NETWORK = "network"
    UPSTREAM_ERROR = "upstream_error"
    RATE_LIMITED = "rate_limited"
    MALFORMED = "malformed"
    EMPTY = "empty"
    INVALID_IMAGE = "invalid_image"
    HISTORY = "history"
    INTERNAL = "internal"


class CompletionError(BotError):
    def __init__(self, kind: FailureKind, detail: str = "", status: int | None = None) -> None:
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)
        self.kind = kind
        self.detail = detail
        self.status = status

    @property
    def retryable(self) -> bool:
        if self.kind in (FailureKind.TIMEOUT, FailureKind.NETWORK):
            return True
        return self.kind is FailureKind.UPSTREAM_ERROR and (self.status or 0) >= 500


class DispatchError(BotError):
    pass
