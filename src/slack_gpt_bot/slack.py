"""
Minimal Slack Web API client using stdlib urllib.
"""

from __future__ import annotations

import http.client
import json
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

from .errors import SlackApiError
from .logs import log

SLACK_API_BASE = "https://slack.com/api"
REPLIES_PAGE_SIZE = 200
REPLIES_MAX_PAGES = 10


class SlackClient:
    def __init__(
        self, token: str, timeout: float = 8.0, base_api: str = SLACK_API_BASE
    ) -> None:
        self.base_api = base_api.rstrip("/")
        self.token = token
        self.timeout = timeout

    # ----- Helpers -----
    def _headers(self, content_type: str | None = None) -> dict[str, str]:
        h = {"User-Agent": "SlackGptBot/1.0", "Authorization": f"Bearer {self.token}"}
        if content_type:
            h["Content-Type"] = content_type
        return h

    def _call(self, method: str, req: urllib.request.Request) -> dict[str, Any]:
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:  # nosec B310
                data = resp.read()
        except urllib.error.HTTPError as e:
            raise SlackApiError(method, f"http {e.code}", status=e.code) from e
        except (OSError, http.client.HTTPException) as e:
            raise SlackApiError(method, f"transport {type(e).__name__}") from e
        try:
            body = json.loads(data.decode("utf-8"))
        except ValueError as e:
            raise SlackApiError(method, "invalid json") from e
        if not isinstance(body, dict):
            raise SlackApiError(method, "unexpected response shape")
        if body.get("ok") is not True:
            raise SlackApiError(method, str(body.get("error") or "not ok"))
        return body

    def _get_json(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_api}/{method}?" + urllib.parse.urlencode(params)
        req = urllib.request.Request(url, headers=self._headers())
        return self._call(method, req)

    def _post_json(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        req = urllib.request.Request(
            f"{self.base_api}/{method}",
            data=json.dumps(payload, ensure_ascii=False).encode("utf-8"),
            headers=self._headers("application/json; charset=utf-8"),
            method="POST",
        )
        return self._call(method, req)

    # ----- Public APIs -----
    def get_replies(self, channel: str, thread_ts: str) -> list[dict[str, Any]]:
        """Whole thread, oldest first.

        conversations.replies pages from the thread root forward, so the newest
        messages are only reached by following ``next_cursor`` to the end.
        """
        messages: list[dict[str, Any]] = []
        params: dict[str, Any] = {"channel": channel, "ts": thread_ts, "limit": REPLIES_PAGE_SIZE}
        for _ in range(REPLIES_MAX_PAGES):
            data = self._get_json("conversations.replies", params)
            messages.extend(_messages(data, "conversations.replies"))
            cursor = (data.get("response_metadata") or {}).get("next_cursor")
            if not data.get("has_more") and not cursor:
                return messages
            if not cursor:
                break
            params = {**params, "cursor": cursor}
        log("replies_truncated", channel=channel, thread_ts=thread_ts, fetched=len(messages))
        return messages

    def get_history(self, channel: str, limit: int) -> list[dict[str, Any]]:
        data = self._get_json("conversations.history", {"channel": channel, "limit": limit})
        return _messages(data, "conversations.history")

    def post_message(self, channel: str, text: str, thread_ts: str | None = None) -> str:
        payload: dict[str, Any] = {"channel": channel, "text": text}
        if thread_ts:
            payload["thread_ts"] = thread_ts
        data = self._post_json("chat.postMessage", payload)
        return str(data.get("ts") or "")

    def download(self, url: str, max_bytes: int) -> bytes:
        """Fetch a private file (url_private) with the bot token."""
        req = urllib.request.Request(url, headers=self._headers())
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:  # nosec B310
                data = resp.read(max_bytes + 1)
        except urllib.error.HTTPError as e:
            raise SlackApiError("files.download", f"http {e.code}", status=e.code) from e
        except (OSError, http.client.HTTPException) as e:
            raise SlackApiError("files.download", f"transport {type(e).__name__}") from e
        if len(data) > max_bytes:
            raise SlackApiError("files.download", f"larger than {max_bytes} bytes")
        return data


def _messages(data: dict[str, Any], method: str) -> list[dict[str, Any]]:
    messages = data.get("messages")
    if not isinstance(messages, list):
        raise SlackApiError(method, "missing messages")
    return [m for m in messages if isinstance(m, dict)]
