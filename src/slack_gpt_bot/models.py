"""Conversation and completion value objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from .errors import CompletionError, FailureKind

Role = Literal["user", "assistant"]


def _ts_key(ts: str) -> float:
    try:
        return float(ts)
    except (TypeError, ValueError):
        return 0.0


@dataclass(frozen=True)
class ConversationTurn:
    role: Role
    text: str
    ts: str = ""
    # data: URLs of attached images
    images: tuple[str, ...] = ()

    def as_message(self) -> dict[str, Any]:
        if not self.images:
            return {"role": self.role, "content": self.text}
        parts: list[dict[str, Any]] = [{"type": "text", "text": self.text}]
        parts.extend({"type": "image_url", "image_url": {"url": u}} for u in self.images)
        return {"role": self.role, "content": parts}


@dataclass(frozen=True)
class ConversationWindow:
    """Chronological turns, never more than ``max_size`` (oldest dropped)."""

    turns: tuple[ConversationTurn, ...] = ()
    max_size: int = 10

    def __post_init__(self) -> None:
        ordered = sorted(self.turns, key=lambda t: _ts_key(t.ts))
        keep = max(0, self.max_size)
        ordered = ordered[-keep:] if keep else []
        object.__setattr__(self, "turns", tuple(ordered))

    def __len__(self) -> int:
        return len(self.turns)

    def __iter__(self):
        return iter(self.turns)

    @property
    def has_assistant_turn(self) -> bool:
        return any(t.role == "assistant" for t in self.turns)


@dataclass(frozen=True)
class CompletionRequest:
    model: str
    temperature: float | None
    messages: tuple[dict[str, Any], ...] = field(default_factory=tuple)

    def body(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model,
            "messages": [dict(m) for m in self.messages],
        }
        # reasoning models only accept the default temperature
        if self.temperature is not None:
            body["temperature"] = self.temperature
        return body

    @property
    def turn_count(self) -> int:
        return sum(1 for m in self.messages if m.get("role") != "system")


@dataclass(frozen=True)
class CompletionResult:
    text: str | None = None
    failure: FailureKind | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None and bool(self.text)

    @classmethod
    def success(cls, text: str) -> CompletionResult:
        return cls(text=text)

    @classmethod
    def failed(cls, kind: FailureKind) -> CompletionResult:
        return cls(failure=kind)

    @classmethod
    def from_error(cls, err: CompletionError) -> CompletionResult:
        return cls(failure=err.kind)
