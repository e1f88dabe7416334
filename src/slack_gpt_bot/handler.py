"""
AWS Lambda handler for Slack Events API (message / app_mention) -> ChatGPT reply.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import time
from typing import Any

from . import commands
from .config import VALID_IMAGE_MIME_TYPES, Settings, load_settings
from .deadline import Deadline
from .dispatch import ResponseDispatcher
from .errors import (
    AuthenticationFailure,
    DuplicateDelivery,
    FailureKind,
    HistoryFetchError,
    SecretUnavailable,
    SlackApiError,
)
from .events import EventKind, InboundEvent, SharedFile, parse_event
from .history import HistoryFetcher
from .idempotency import RecentDeliveries, default_deliveries
from .llm import CompletionClient, RetryPolicy
from .logs import configure_logging, log, logger, rid
from .models import CompletionResult
from .prompt import compose
from .secrets import Credentials, SecretResolver, default_resolver
from .signature import SIGNATURE_HEADER, TIMESTAMP_HEADER, verify_slack_signature
from .slack import SlackClient

RETRY_HEADER = "X-Slack-Retry-Num"


def _response(status: int, body: dict[str, Any]) -> dict[str, Any]:
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body, ensure_ascii=False),
    }


def _ack() -> dict[str, Any]:
    # one acknowledgment for processed, ignored and duplicate deliveries alike
    return _response(200, {"result": "ok"})


def _raw_body(event: dict[str, Any]) -> str:
    """Request body exactly as signed by Slack."""
    body = event.get("body") or ""
    if event.get("isBase64Encoded"):
        try:
            body = base64.b64decode(body)
        except (binascii.Error, ValueError):
            return ""
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")
    return body if isinstance(body, str) else ""


def _parse_json(body: str) -> dict[str, Any]:
    try:
        data = json.loads(body or "{}")
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _get_header(event: dict[str, Any], name: str) -> str | None:
    headers = event.get("headers") or {}
    for k, v in headers.items():
        if k.lower() == name.lower():
            return v
    return None


class EventGateway:
    """Verify, de-duplicate and classify one delivery, then run the pipeline."""

    def __init__(
        self,
        settings: Settings,
        resolver: SecretResolver,
        deliveries: RecentDeliveries,
        clock=time.time,
    ) -> None:
        self.settings = settings
        self.resolver = resolver
        self.deliveries = deliveries
        self.clock = clock

    def handle(self, event: dict[str, Any], context: Any = None) -> dict[str, Any]:
        start_ts = time.time()
        request_id = rid(context)
        deadline = Deadline.from_context(context, self.settings.execution_timeout_seconds)

        # 1) Credentials (cached after the cold start)
        try:
            creds = self.resolver.resolve()
        except SecretUnavailable as e:
            log("secret_unavailable", level=logging.ERROR, rid=request_id, error=str(e))
            return _response(503, {"error": "unavailable"})

        # 2) Verify Slack signature before anything else
        body = _raw_body(event)
        try:
            verify_slack_signature(
                creds.slack_signing_secret,
                _get_header(event, TIMESTAMP_HEADER),
                _get_header(event, SIGNATURE_HEADER),
                body,
                tolerance_seconds=self.settings.signature_tolerance_seconds,
                now=self.clock(),
            )
        except AuthenticationFailure as e:
            log("auth_failed", level=logging.WARNING, rid=request_id, reason=str(e))
            return _response(401, {"error": "unauthorized"})

        # 3) Parse payload
        inbound = parse_event(_parse_json(body), creds.bot_member_id)
        if inbound.kind is EventKind.URL_VERIFICATION:
            log("url_verification", rid=request_id)
            return _response(200, {"challenge": inbound.challenge or ""})

        # 4) Idempotency
        retry_num = _get_header(event, RETRY_HEADER)
        if retry_num and self.settings.ignore_slack_retries:
            log("retry_ignored", rid=request_id, retryNum=retry_num)
            return _ack()
        try:
            self._claim(inbound)
        except DuplicateDelivery:
            log(
                "duplicate_ignored",
                rid=request_id,
                deliveryId=inbound.delivery_id,
                retryNum=retry_num,
            )
            return _ack()

        # 5) Only messages addressed to the bot
        if not inbound.kind.addressed:
            log("ignored", rid=request_id, kind=inbound.kind.value)
            return _ack()

        try:
            self._run(inbound, creds, deadline, request_id)
        except Exception as e:  # pragma: no cover
            # the event is accepted; failures are reported in the thread
            logger.exception("Pipeline failed")
            log("pipeline_error", level=logging.ERROR, rid=request_id, error=type(e).__name__)
        log(
            "ok",
            rid=request_id,
            kind=inbound.kind.value,
            deliveryId=inbound.delivery_id,
            ms_total=int((time.time() - start_ts) * 1000),
        )
        return _ack()

    def _claim(self, inbound: InboundEvent) -> None:
        if inbound.delivery_id and not self.deliveries.record_if_new(inbound.delivery_id):
            raise DuplicateDelivery(inbound.delivery_id)

    def _run(
        self, inbound: InboundEvent, creds: Credentials, deadline: Deadline, request_id: str | None
    ) -> None:
        settings = self.settings
        slack = SlackClient(
            creds.slack_auth_token,
            timeout=max(
                1.0,
                deadline.budget(
                    settings.slack_timeout_seconds, reserve=settings.safety_margin_seconds
                ),
            ),
        )
        dispatcher = ResponseDispatcher(slack)

        # 6) History
        fetcher = HistoryFetcher(
            slack, creds.bot_member_id, settings.default_past_num, settings.max_past_num
        )
        t0 = time.time()
        try:
            window = fetcher.fetch(inbound, commands.parse_past_num(inbound.text))
        except HistoryFetchError as e:
            log("history_fetch_error", level=logging.ERROR, rid=request_id, error=str(e))
            if inbound.kind is not EventKind.THREAD_REPLY:
                dispatcher.dispatch(inbound, CompletionResult.failed(FailureKind.HISTORY))
            return
        log(
            "history_fetch_ok",
            rid=request_id,
            channel=inbound.channel,
            turns=len(window),
            ms=int((time.time() - t0) * 1000),
        )

        # unmentioned thread replies only where the bot already takes part
        if inbound.kind is EventKind.THREAD_REPLY and not window.has_assistant_turn:
            log("ignored_not_participating", rid=request_id, channel=inbound.channel)
            return

        incoming = commands.pure_text(inbound.text)
        if not incoming and not inbound.files:
            log("ignored_empty_text", rid=request_id, channel=inbound.channel)
            return

        # 7) Attachments
        rejected = [f.mimetype for f in inbound.files if f.mimetype not in VALID_IMAGE_MIME_TYPES]
        if rejected:
            log("invalid_image_format", rid=request_id, mimetypes=rejected)
            dispatcher.dispatch(inbound, CompletionResult.failed(FailureKind.INVALID_IMAGE))
            return
        o1 = commands.is_o1(inbound.text)
        images = () if o1 else _load_images(slack, inbound.files, settings.max_image_bytes)

        # 8) Completion
        request = compose(window, incoming, settings, inbound.ts, images=images, o1=o1)
        client = CompletionClient(
            creds.openai_secret_key,
            base_url=settings.openai_base_url,
            timeout_seconds=settings.llm_timeout_seconds,
            reserve_seconds=settings.safety_margin_seconds,
            retry=RetryPolicy(
                max_attempts=max(1, min(settings.llm_max_attempts, 2)),
                delay_seconds=settings.llm_retry_delay_seconds,
            ),
        )
        try:
            result = client.complete(request, deadline)
        except Exception as e:  # pragma: no cover
            logger.exception("Completion failed unexpectedly")
            log("llm_unexpected_error", level=logging.ERROR, rid=request_id, error=type(e).__name__)
            result = CompletionResult.failed(FailureKind.INTERNAL)

        # 9) Post reply
        slack.timeout = max(1.0, deadline.budget(settings.slack_timeout_seconds))
        outcome = dispatcher.dispatch(inbound, result)
        log(
            "dispatched",
            rid=request_id,
            outcome=outcome.value,
            failure=result.failure.value if result.failure else None,
        )


def _load_images(
    slack: SlackClient, files: tuple[SharedFile, ...], max_bytes: int
) -> tuple[str, ...]:
    """Download attached images as data: URLs; files that fail to download are skipped."""
    urls: list[str] = []
    for f in files:
        if not f.url_private:
            continue
        try:
            data = slack.download(f.url_private, max_bytes)
        except SlackApiError as e:
            log("image_download_error", level=logging.WARNING, file=f.name, error=str(e))
            continue
        encoded = base64.b64encode(data).decode("ascii")
        urls.append(f"data:{f.mimetype};base64,{encoded}")
    return tuple(urls)


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    configure_logging()
    settings = load_settings()
    gateway = EventGateway(
        settings,
        default_resolver(settings.parameter_store_name, settings.ssm_timeout_seconds),
        default_deliveries(settings.dedup_ttl_seconds, settings.dedup_max_entries),
    )
    return gateway.handle(event, context)
