"""
JSON-line logging on top of stdlib logging (CloudWatch friendly).
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

logger = logging.getLogger("slack_gpt_bot")


def configure_logging(level_name: str | None = None) -> None:
    level_name = (level_name or os.getenv("LOG_LEVEL") or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logger.setLevel(level)
    root = logging.getLogger()
    if root.level and root.level > level:
        root.setLevel(level)


def rid(context: Any) -> str | None:
    return getattr(context, "aws_request_id", None)


def log(msg: str, level: int = logging.INFO, **fields: Any) -> None:
    try:
        rec = {"msg": msg, **fields}
        logger.log(level, json.dumps(rec, ensure_ascii=False, default=str))
    except (TypeError, ValueError):
        # Fallback to plain log
        logger.log(level, "%s | %s", msg, fields)
