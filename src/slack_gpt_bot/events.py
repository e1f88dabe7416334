"""
Slack Events API payload parsing.

Every payload is classified into exactly one EventKind; the gateway only
drives the pipeline for the addressed kinds.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from . import commands

MESSAGE_EVENT_TYPES = ("message", "app_mention")


class EventKind(str, Enum):
    URL_VERIFICATION = "url_verification"
    MENTION = "mention"
    THREAD_REPLY = "thread_reply"
    DIRECT_MESSAGE = "direct_message"
    BOT_ORIGINATED = "bot_originated"
    NOT_ADDRESSED = "not_addressed"
    UNSUPPORTED = "unsupported"

    @property
    def addressed(self) -> bool:
        return self in (EventKind.MENTION, EventKind.THREAD_REPLY, EventKind.DIRECT_MESSAGE)


@dataclass(frozen=True)
class SharedFile:
    mimetype: str
    url_private: str
    name: str = ""


@dataclass(frozen=True)
class InboundEvent:
    kind: EventKind
    delivery_id: str = ""
    channel: str = ""
    user: str = ""
    text: str = ""
    ts: str = ""
    thread_ts: str | None = None
    channel_type: str | None = None
    challenge: str | None = None
    files: tuple[SharedFile, ...] = ()

    @property
    def in_thread(self) -> bool:
        return bool(self.thread_ts)

    @property
    def is_direct_message(self) -> bool:
        return self.channel_type == "im"

    @property
    def reply_thread_ts(self) -> str | None:
        """Thread to answer in: the same thread, none for top-level DMs, else a new thread."""
        if self.in_thread:
            return self.thread_ts
        if self.is_direct_message:
            return None
        return self.ts


def _str(v: Any) -> str:
    return v if isinstance(v, str) else ""


def _files(event: dict[str, Any]) -> tuple[SharedFile, ...]:
    raw = event.get("files")
    if not isinstance(raw, list):
        return ()
    return tuple(
        SharedFile(
            mimetype=_str(f.get("mimetype")),
            url_private=_str(f.get("url_private")),
            name=_str(f.get("name")),
        )
        for f in raw
        if isinstance(f, dict)
    )


def delivery_id_for(payload: dict[str, Any], event: dict[str, Any]) -> str:
    # `message` and `app_mention` deliveries of one post share channel+ts.
    channel, ts = _str(event.get("channel")), _str(event.get("ts"))
    if channel and ts:
        return f"{channel}:{ts}"
    return _str(payload.get("event_id"))


def classify(event: dict[str, Any], bot_member_id: str) -> EventKind:
    if _str(event.get("type")) not in MESSAGE_EVENT_TYPES:
        return EventKind.UNSUPPORTED
    subtype = event.get("subtype")
    user = _str(event.get("user"))
    if event.get("bot_id") or subtype == "bot_message" or (user and user == bot_member_id):
        return EventKind.BOT_ORIGINATED
    if subtype not in (None, "file_share"):
        return EventKind.UNSUPPORTED
    if not user or not _str(event.get("channel")) or not _str(event.get("ts")):
        return EventKind.UNSUPPORTED

    text = _str(event.get("text"))
    if _str(event.get("channel_type")) == "im":
        return EventKind.DIRECT_MESSAGE
    if commands.is_mention_to(text, bot_member_id):
        return EventKind.MENTION
    if _str(event.get("thread_ts")) and not commands.is_mention_to_other(text, bot_member_id):
        return EventKind.THREAD_REPLY
    return EventKind.NOT_ADDRESSED


def parse_event(payload: dict[str, Any], bot_member_id: str) -> InboundEvent:
    if not isinstance(payload, dict):
        return InboundEvent(kind=EventKind.UNSUPPORTED)
    ptype = payload.get("type")
    if ptype == "url_verification":
        return InboundEvent(
            kind=EventKind.URL_VERIFICATION, challenge=_str(payload.get("challenge"))
        )
    event = payload.get("event")
    if ptype != "event_callback" or not isinstance(event, dict):
        return InboundEvent(kind=EventKind.UNSUPPORTED)

    return InboundEvent(
        kind=classify(event, bot_member_id),
        delivery_id=delivery_id_for(payload, event),
        channel=_str(event.get("channel")),
        user=_str(event.get("user")),
        text=_str(event.get("text")),
        ts=_str(event.get("ts")),
        thread_ts=_str(event.get("thread_ts")) or None,
        channel_type=_str(event.get("channel_type")) or None,
        files=_files(event),
    )
