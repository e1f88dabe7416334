"""
Configuration helpers and defaults.

Centralize tunables to avoid magic numbers in code/tests.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_SYSTEM_PROMPT = (
    "You are a friendly Cat AI assistant. "
    "Please output your response message according to following format. "
    '- bold/heading: "*bold*" '
    '- italic: "_italic_" '
    '- strikethrough: "~strikethrough~" '
    '- code: "`code`" '
    '- link: "<https://slack.com|link text>" '
    '- block: "``` code block" '
    '- bulleted list: "* *title*: content" '
    '- numbered list: "1. *title*: content" '
    '- quoted sentence: ">sentence" '
    "Be sure to include a space before and after the single quote in the sentence. "
    "ex) word`code`word -> word `code` word "
    "And answer in the language the user uses. "
    'If you use Japanese, your first person pronoun is "我輩" and the ending of your word is "にゃ". '
    'If you use English, the ending of your word is "meow". '
    "If your answer is specifically about programming, please provide URL sources. "
    "Let's begin."
)


# formats accepted by the vision endpoint
VALID_IMAGE_MIME_TYPES = ("image/png", "image/jpeg", "image/gif", "image/webp")


def _env(name: str, default: str | None = None) -> str | None:
    # The deployment template uses lower-case names; accept both.
    v = os.getenv(name)
    if v is None:
        v = os.getenv(name.lower())
    return v if v is not None else default


def _flag(name: str, default: str) -> bool:
    return (_env(name, default) or default).lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    parameter_store_name: str
    gpt_model: str
    o1_model: str
    temperature: float
    default_past_num: int
    max_past_num: int
    openai_base_url: str
    system_prompt: str
    llm_timeout_seconds: float
    llm_max_attempts: int
    llm_retry_delay_seconds: float
    slack_timeout_seconds: float
    ssm_timeout_seconds: float
    execution_timeout_seconds: float
    safety_margin_seconds: float
    signature_tolerance_seconds: int
    dedup_ttl_seconds: float
    dedup_max_entries: int
    ignore_slack_retries: bool
    max_image_bytes: int
    log_level: str


def load_settings() -> Settings:
    """Load settings from environment with safe defaults for local tests."""

    max_past = int(_env("MAX_PAST_NUM", "10") or 10)
    default_past = int(_env("DEFAULT_PAST_NUM", "6") or 6)

    return Settings(
        parameter_store_name=_env("PARAMETER_STORE_NAME", "cat-gpt-slack-bot")
        or "cat-gpt-slack-bot",
        gpt_model=_env("GPT_MODEL", "gpt-4o") or "gpt-4o",
        o1_model=_env("O1_MODEL", "o1-preview") or "o1-preview",
        temperature=float(_env("TEMPERATURE", "0.2") or 0.2),
        default_past_num=min(default_past, max_past),
        max_past_num=max_past,
        openai_base_url=(_env("OPENAI_BASE_URL", "https://api.openai.com/v1") or "").rstrip("/")
        or "https://api.openai.com/v1",
        system_prompt=_env("SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT) or "",
        llm_timeout_seconds=float(_env("LLM_TIMEOUT_SECONDS", "25") or 25),
        llm_max_attempts=int(_env("LLM_MAX_ATTEMPTS", "2") or 2),
        llm_retry_delay_seconds=float(_env("LLM_RETRY_DELAY_SECONDS", "1.0") or 1.0),
        slack_timeout_seconds=float(_env("SLACK_TIMEOUT_SECONDS", "8") or 8),
        ssm_timeout_seconds=float(_env("SSM_TIMEOUT_SECONDS", "5") or 5),
        execution_timeout_seconds=float(_env("EXECUTION_TIMEOUT_SECONDS", "90") or 90),
        safety_margin_seconds=float(_env("SAFETY_MARGIN_SECONDS", "10") or 10),
        signature_tolerance_seconds=int(_env("SIGNATURE_TOLERANCE_SECONDS", "300") or 300),
        dedup_ttl_seconds=float(_env("DEDUP_TTL_SECONDS", "600") or 600),
        dedup_max_entries=int(_env("DEDUP_MAX_ENTRIES", "1024") or 1024),
        ignore_slack_retries=_flag("IGNORE_SLACK_RETRIES", "true"),
        max_image_bytes=int(_env("MAX_IMAGE_BYTES", str(20 * 1024 * 1024)) or 20 * 1024 * 1024),
        log_level=(_env("LOG_LEVEL", "INFO") or "INFO").upper(),
    )
