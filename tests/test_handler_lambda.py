import json
import time
import types

import slack_gpt_bot.handler as h
import slack_gpt_bot.idempotency as idem
import slack_gpt_bot.llm as llm
import slack_gpt_bot.secrets as sec
from slack_gpt_bot.signature import compute_signature


class FakeSSM:
    def __init__(self):
        self.calls = 0

    def get_parameter(self, Name: str, WithDecryption: bool):
        self.calls += 1
        value = {
            "bot_member_id": "UBOT",
            "slack_auth_token": "xoxb-x",
            "openai_secret_key": "sk-x",
            "slack_signing_secret": "secret",
        }
        return {"Parameter": {"Value": json.dumps(value)}}


class FakeSlack:
    def __init__(self, *_a, **_k):
        self.posted = []

    def get_replies(self, channel, thread_ts):
        return [{"user": "UBOT", "text": "earlier answer", "ts": "1.0"}]

    def get_history(self, channel, limit):
        return []

    def post_message(self, channel, text, thread_ts=None):
        self.posted.append((channel, text, thread_ts))
        return "3.0"


def _event(text, ts):
    body = json.dumps(
        {
            "type": "event_callback",
            "event_id": f"Ev{ts}",
            "event": {
                "type": "message",
                "channel": "C1",
                "channel_type": "channel",
                "user": "UALICE",
                "text": text,
                "ts": ts,
                "thread_ts": "1.0",
            },
        }
    )
    now = str(int(time.time()))
    return {
        "headers": {
            "x-slack-request-timestamp": now,
            "x-slack-signature": compute_signature("secret", now, body),
        },
        "body": body,
        "isBase64Encoded": False,
    }


def test_lambda_handler_happy_path(monkeypatch):
    monkeypatch.setenv("PARAMETER_STORE_NAME", "cat-gpt-slack-bot")
    monkeypatch.setenv("LLM_RETRY_DELAY_SECONDS", "0")
    monkeypatch.setattr(sec, "_default", None)
    monkeypatch.setattr(idem, "_default", None)

    ssm = FakeSSM()

    class BotoModule:
        def client(self, name: str, config=None):
            if name == "ssm":
                return ssm
            raise ValueError(name)

    monkeypatch.setitem(sec.__dict__, "boto3", BotoModule())
    fs = FakeSlack()
    monkeypatch.setitem(h.__dict__, "SlackClient", lambda *_a, **_k: fs)
    monkeypatch.setattr(
        llm,
        "_http_post_json",
        lambda url, headers, body, timeout: (
            200,
            json.dumps({"choices": [{"message": {"content": "OK"}}]}).encode("utf-8"),
        ),
    )
    context = types.SimpleNamespace(
        aws_request_id="req-1", get_remaining_time_in_millis=lambda: 60_000
    )

    first = h.lambda_handler(_event("follow-up question", "2.0"), context)
    second = h.lambda_handler(_event("another one", "3.0"), context)

    assert first["statusCode"] == 200 and second["statusCode"] == 200
    assert json.loads(first["body"]) == {"result": "ok"}
    # warm invocations reuse cached credentials
    assert ssm.calls == 1
    assert fs.posted == [("C1", "OK", "1.0"), ("C1", "OK", "1.0")]
