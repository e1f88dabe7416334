"""
Mention detection, `o1` and `pastN` command parsing, and text cleanup.

Commands follow the leading mentions in a fixed order:
  <@BOT> o1 past3 question
"""

from __future__ import annotations

import re

MENTION_RE = re.compile(r"<@([A-Z0-9]+)(?:\|[^>]*)?>")
LEADING_MENTIONS_RE = re.compile(r"^(?:\s*<@[A-Z0-9]+(?:\|[^>]*)?>)+\s*")
PAST_RE = re.compile(r"^past(\d+)", re.IGNORECASE)
O1_RE = re.compile(r"^o1(?!\d)\s*")


def mentioned_users(text: str | None) -> list[str]:
    return MENTION_RE.findall(text or "")


def is_mention_to(text: str | None, user_id: str) -> bool:
    return bool(user_id) and user_id in mentioned_users(text)


def is_mention_to_other(text: str | None, bot_id: str) -> bool:
    users = mentioned_users(text)
    return bool(users) and bot_id not in users


def _strip_mentions(text: str | None) -> str:
    return LEADING_MENTIONS_RE.sub("", text or "")


def is_o1(text: str | None) -> bool:
    """True when the message asks for the reasoning model (`o1` after mentions)."""
    return bool(O1_RE.match(_strip_mentions(text)))


def parse_past_num(text: str | None) -> int | None:
    """Return N for a message starting with `pastN` (after mentions and `o1`), else None."""
    m = PAST_RE.match(O1_RE.sub("", _strip_mentions(text), count=1))
    if not m:
        return None
    return int(m.group(1))


def pure_text(text: str | None) -> str:
    # <@BOT> o1 past3 hello -> hello
    result = O1_RE.sub("", _strip_mentions(text), count=1)
    result = PAST_RE.sub("", result, count=1)
    return result.strip()
