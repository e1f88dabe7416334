"""
OpenAI chat-completions wrapper.

Uses the `/chat/completions` endpoint over stdlib urllib. Each request makes
at most `RetryPolicy.max_attempts` upstream calls, each bounded by the time
left in the invocation minus a reserve for posting the reply.
"""

from __future__ import annotations

import http.client
import json
import time
import urllib.error
import urllib.request
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .deadline import Deadline
from .errors import CompletionError, FailureKind
from .logs import log
from .models import CompletionRequest, CompletionResult

# below this an attempt cannot realistically complete
MIN_ATTEMPT_SECONDS = 1.0

Transport = Callable[[str, dict[str, str], bytes, float], tuple[int, bytes]]


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 2
    delay_seconds: float = 1.0

    def should_retry(self, attempt: int, err: CompletionError) -> bool:
        return attempt < self.max_attempts and err.retryable


def _http_post_json(
    url: str, headers: dict[str, str], body: bytes, timeout: float
) -> tuple[int, bytes]:
    req = urllib.request.Request(url, data=body, headers=headers, method="POST")
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:  # nosec B310
            return resp.status, resp.read()
    except urllib.error.HTTPError as e:
        return e.code, e.read() or b""


def extract_reply(status: int, data: bytes) -> str:
    """Top choice text from a response, or CompletionError."""
    if status == 429:
        raise CompletionError(FailureKind.RATE_LIMITED, "usage limit", status=status)
    if status == 400 and b"invalid_image_format" in data:
        raise CompletionError(FailureKind.INVALID_IMAGE, "image rejected", status=status)
    if status >= 400:
        raise CompletionError(FailureKind.UPSTREAM_ERROR, f"http {status}", status=status)
    try:
        body = json.loads(data.decode("utf-8"))
        content = body["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as e:
        raise CompletionError(FailureKind.MALFORMED, type(e).__name__, status=status) from e
    if not isinstance(content, str):
        raise CompletionError(FailureKind.MALFORMED, "non-text content", status=status)
    if not content.strip():
        raise CompletionError(FailureKind.EMPTY, status=status)
    return content.strip()


class CompletionClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 25.0,
        reserve_seconds: float = 10.0,
        retry: RetryPolicy | None = None,
        transport: Transport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.url = base_url.rstrip("/") + "/chat/completions"
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.reserve_seconds = reserve_seconds
        self.retry = retry or RetryPolicy()
        self.transport = transport
        self.sleep = sleep

    def _attempt(self, request: CompletionRequest, timeout: float) -> str:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "User-Agent": "SlackGptBot/1.0",
        }
        body = json.dumps(request.body(), ensure_ascii=False).encode("utf-8")
        transport = self.transport or _http_post_json
        try:
            status, data = transport(self.url, headers, body, timeout)
        except TimeoutError as e:
            raise CompletionError(FailureKind.TIMEOUT, f"after {timeout:.1f}s") from e
        except urllib.error.URLError as e:
            if isinstance(e.reason, TimeoutError):
                raise CompletionError(FailureKind.TIMEOUT, f"after {timeout:.1f}s") from e
            raise CompletionError(FailureKind.NETWORK, type(e.reason).__name__) from e
        except (OSError, http.client.HTTPException) as e:
            # IncompleteRead and BadStatusLine are not OSError
            raise CompletionError(FailureKind.NETWORK, type(e).__name__) from e
        return extract_reply(status, data)

    def complete(self, request: CompletionRequest, deadline: Deadline) -> CompletionResult:
        attempt = 0
        while True:
            attempt += 1
            timeout = deadline.budget(self.timeout_seconds, reserve=self.reserve_seconds)
            if timeout < MIN_ATTEMPT_SECONDS:
                log("llm_no_budget", attempt=attempt, remaining=round(deadline.remaining(), 2))
                return CompletionResult.failed(FailureKind.TIMEOUT)
            t0 = time.time()
            try:
                text = self._attempt(request, timeout)
            except CompletionError as e:
                fields: dict[str, Any] = {
                    "attempt": attempt,
                    "model": request.model,
                    "kind": e.kind.value,
                    "status": e.status,
                    "ms": int((time.time() - t0) * 1000),
                }
                if not self.retry.should_retry(attempt, e):
                    log("llm_failed", **fields)
                    return CompletionResult.from_error(e)
                log("llm_retry", **fields)
                if deadline.budget(
                    self.timeout_seconds, reserve=self.reserve_seconds + self.retry.delay_seconds
                ) < MIN_ATTEMPT_SECONDS:
                    log("llm_no_budget", attempt=attempt + 1)
                    return CompletionResult.from_error(e)
                self.sleep(self.retry.delay_seconds)
                continue
            log(
                "llm_ok",
                attempt=attempt,
                model=request.model,
                ms=int((time.time() - t0) * 1000),
                messages=len(request.messages),
                out_chars=len(text),
            )
            return CompletionResult.success(text)
