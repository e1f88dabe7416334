"""
Prompt composition: history window + incoming message -> CompletionRequest.

The `o1` model takes neither a system message nor a temperature nor images,
so for it the system prompt is folded into the last user turn.
"""

from __future__ import annotations

from typing import Any

from .config import Settings
from .models import CompletionRequest, ConversationTurn, ConversationWindow


def compose(
    window: ConversationWindow,
    incoming_text: str,
    settings: Settings,
    incoming_ts: str = "",
    images: tuple[str, ...] = (),
    o1: bool = False,
) -> CompletionRequest:
    turns = list(window.turns)
    incoming = ConversationTurn(
        role="user", text=incoming_text, ts=incoming_ts, images=() if o1 else images
    )
    if o1 and settings.system_prompt:
        incoming = ConversationTurn(
            role="user", text=f"{settings.system_prompt}\n\n{incoming_text}", ts=incoming_ts
        )
    turns.append(incoming)
    # truncation belongs to the fetcher; this only enforces the hard bound
    overflow = len(turns) - (settings.max_past_num + 1)
    if overflow > 0:
        turns = turns[overflow:]

    messages: list[dict[str, Any]] = []
    if settings.system_prompt and not o1:
        messages.append({"role": "system", "content": settings.system_prompt})
    messages.extend(t.as_message() for t in turns)
    return CompletionRequest(
        model=settings.o1_model if o1 else settings.gpt_model,
        temperature=None if o1 else settings.temperature,
        messages=tuple(messages),
    )
