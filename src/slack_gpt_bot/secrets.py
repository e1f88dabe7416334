"""
Credentials from SSM Parameter Store, cached for the process lifetime.

The parameter holds a JSON blob:
  {"bot_member_id": ..., "slack_auth_token": ..., "openai_secret_key": ...,
   "slack_signing_secret": ...}
"""

from __future__ import annotations

import importlib
import json
from dataclasses import dataclass

from botocore.config import Config

from .errors import SecretUnavailable

_REQUIRED_KEYS = (
    "bot_member_id",
    "slack_auth_token",
    "openai_secret_key",
    "slack_signing_secret",
)


def _boto3():
    # Allow tests to monkeypatch module-level `boto3` symbol.
    return globals().get("boto3") or importlib.import_module("boto3")


def _ssm_client(timeout_seconds: float):
    config = Config(
        connect_timeout=timeout_seconds,
        read_timeout=timeout_seconds,
        retries={"max_attempts": 1},
    )
    return _boto3().client("ssm", config=config)


@dataclass(frozen=True)
class Credentials:
    bot_member_id: str
    slack_auth_token: str
    openai_secret_key: str
    slack_signing_secret: str

    def __repr__(self) -> str:
        return f"Credentials(bot_member_id={self.bot_member_id!r}, ...)"

    @classmethod
    def from_json(cls, raw: str) -> Credentials:
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise SecretUnavailable("parameter is not valid JSON") from e
        if not isinstance(data, dict):
            raise SecretUnavailable("parameter is not a JSON object")
        missing = [k for k in _REQUIRED_KEYS if not isinstance(data.get(k), str) or not data[k]]
        if missing:
            raise SecretUnavailable(f"parameter is missing keys: {', '.join(missing)}")
        return cls(**{k: data[k] for k in _REQUIRED_KEYS})


class SecretResolver:
    def __init__(self, parameter_name: str, timeout_seconds: float = 5.0) -> None:
        self.parameter_name = parameter_name
        self.timeout_seconds = timeout_seconds
        self._cached: Credentials | None = None

    @property
    def cached(self) -> bool:
        return self._cached is not None

    def resolve(self) -> Credentials:
        if self._cached is not None:
            return self._cached
        try:
            resp = _ssm_client(self.timeout_seconds).get_parameter(
                Name=self.parameter_name, WithDecryption=True
            )
            raw = resp["Parameter"]["Value"]
        except Exception as e:
            # botocore raises ClientError/EndpointConnectionError/ReadTimeoutError;
            # a missing key in the response is malformed.
            raise SecretUnavailable(
                f"cannot read parameter {self.parameter_name}: {type(e).__name__}"
            ) from e
        self._cached = Credentials.from_json(raw)
        return self._cached

    def invalidate(self) -> None:
        self._cached = None


_default: SecretResolver | None = None


def default_resolver(parameter_name: str, timeout_seconds: float = 5.0) -> SecretResolver:
    """Process-wide resolver; created on first use and reused by warm invocations."""
    global _default
    if _default is None or _default.parameter_name != parameter_name:
        _default = SecretResolver(parameter_name, timeout_seconds)
    return _default
