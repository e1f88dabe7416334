"""
Post the completion (or a fallback notice) back into the Slack thread.
"""

from __future__ import annotations

import logging
import time
from enum import Enum

from .errors import DispatchError, FailureKind, SlackApiError
from .events import InboundEvent
from .logs import log
from .models import CompletionResult
from .slack import SlackClient

ERROR_MESSAGE = "エラーですにゃ。めんご。"
EMPTY_MESSAGE = "OpenAIからの返答が空ですにゃ。調子が悪い可能性がありますにゃ。めんご。"
USAGE_LIMIT_MESSAGE = "OpenAIの使用制限に達しましたにゃ。また後でよろしくにゃ。"
INVALID_IMAGE_FORMAT = "対応していない画像形式ですにゃ。png, jpeg, gif, webpのいずれかでお願いしますにゃ。"


class DispatchOutcome(str, Enum):
    POSTED = "posted"
    FALLBACK_POSTED = "fallback_posted"
    FAILED = "failed"


def fallback_text(kind: FailureKind | None) -> str:
    if kind is FailureKind.EMPTY:
        return EMPTY_MESSAGE
    if kind is FailureKind.RATE_LIMITED:
        return USAGE_LIMIT_MESSAGE
    if kind is FailureKind.INVALID_IMAGE:
        return INVALID_IMAGE_FORMAT
    return ERROR_MESSAGE


class ResponseDispatcher:
    def __init__(self, slack: SlackClient) -> None:
        self.slack = slack

    def _post(self, thread: InboundEvent, text: str) -> None:
        try:
            self.slack.post_message(thread.channel, text, thread.reply_thread_ts)
        except SlackApiError as e:
            raise DispatchError(str(e)) from e

    def dispatch(self, thread: InboundEvent, result: CompletionResult) -> DispatchOutcome:
        if result.ok:
            text, outcome = result.text or "", DispatchOutcome.POSTED
        else:
            text, outcome = fallback_text(result.failure), DispatchOutcome.FALLBACK_POSTED
        t0 = time.time()
        try:
            self._post(thread, text)
        except DispatchError as e:
            # acknowledgment already decided; nothing left to retry
            log(
                "slack_post_error",
                level=logging.ERROR,
                channel=thread.channel,
                error=str(e),
                fallback=outcome is DispatchOutcome.FALLBACK_POSTED,
            )
            return DispatchOutcome.FAILED
        log(
            "slack_post_ok",
            channel=thread.channel,
            outcome=outcome.value,
            ms=int((time.time() - t0) * 1000),
        )
        return outcome
