"""
Conversation history from Slack, mapped to role-tagged turns.

Threads are read in full (`conversations.replies` pages oldest-first) and
trimmed locally to the newest N turns. DMs read one newest-first page of
`conversations.history` of size N + 1.
"""

from __future__ import annotations

from typing import Any

from . import commands
from .errors import HistoryFetchError, SlackApiError
from .events import InboundEvent
from .models import ConversationTurn, ConversationWindow
from .slack import SlackClient


def _after(ts: Any, trigger_ts: str) -> bool:
    try:
        return float(ts) > float(trigger_ts)
    except (TypeError, ValueError):
        return False


def to_turn(message: dict[str, Any], bot_member_id: str) -> ConversationTurn | None:
    """Map one Slack message to a turn; None when it carries no usable text."""
    ts = message.get("ts")
    if not isinstance(ts, str) or not ts:
        raise HistoryFetchError("message without ts")
    raw_text = message.get("text")
    text = commands.pure_text(raw_text if isinstance(raw_text, str) else "")
    if not text:
        return None
    role = "assistant" if message.get("user") == bot_member_id else "user"
    return ConversationTurn(role=role, text=text, ts=ts)


class HistoryFetcher:
    def __init__(
        self, slack: SlackClient, bot_member_id: str, default_past_num: int, max_past_num: int
    ) -> None:
        self.slack = slack
        self.bot_member_id = bot_member_id
        self.default_past_num = default_past_num
        self.max_past_num = max_past_num

    def _limit(self, limit: int | None) -> int:
        if limit is None:
            limit = self.default_past_num
        return max(0, min(int(limit), self.max_past_num))

    def fetch(self, thread: InboundEvent, limit: int | None = None) -> ConversationWindow:
        """Turns preceding the triggering message, oldest first, at most `limit`."""
        n = self._limit(limit)
        if n == 0:
            return ConversationWindow((), self.max_past_num)
        try:
            if thread.in_thread:
                raw = self.slack.get_replies(thread.channel, thread.thread_ts or "")
            elif thread.is_direct_message:
                # +1: the triggering message itself is returned and dropped below
                raw = self.slack.get_history(thread.channel, n + 1)
            else:
                # top-level channel mention starts a new thread
                raw = []
        except SlackApiError as e:
            raise HistoryFetchError(str(e)) from e

        turns: list[ConversationTurn] = []
        for message in raw:
            if message.get("ts") == thread.ts or _after(message.get("ts"), thread.ts):
                continue
            turn = to_turn(message, self.bot_member_id)
            if turn is not None:
                turns.append(turn)
        window = ConversationWindow(tuple(turns), self.max_past_num)
        if len(window) > n:
            window = ConversationWindow(window.turns[len(window) - n :], self.max_past_num)
        return window
