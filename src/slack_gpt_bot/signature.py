"""
Slack request signing verification.

https://api.slack.com/authentication/verifying-requests-from-slack
"""

from __future__ import annotations

import hashlib
import hmac
import time

from .errors import AuthenticationFailure

SIGNATURE_HEADER = "X-Slack-Signature"
TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"


def compute_signature(signing_secret: str, timestamp: str, body: str) -> str:
    basestring = f"v0:{timestamp}:{body}".encode("utf-8")
    digest = hmac.new(signing_secret.encode("utf-8"), basestring, hashlib.sha256).hexdigest()
    return f"v0={digest}"


def verify_slack_signature(
    signing_secret: str,
    timestamp: str | None,
    signature: str | None,
    body: str,
    tolerance_seconds: int = 300,
    now: float | None = None,
) -> None:
    """Raise AuthenticationFailure unless the request was signed by Slack."""
    if not timestamp or not signature:
        raise AuthenticationFailure("missing signature headers")
    try:
        ts = int(timestamp)
    except ValueError as e:
        raise AuthenticationFailure("malformed request timestamp") from e
    current = time.time() if now is None else now
    if tolerance_seconds and abs(current - ts) > tolerance_seconds:
        raise AuthenticationFailure("stale request timestamp")
    expected = compute_signature(signing_secret, timestamp, body)
    if not hmac.compare_digest(expected, signature):
        raise AuthenticationFailure("signature mismatch")
