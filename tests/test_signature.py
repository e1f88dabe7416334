import pytest

from slack_gpt_bot.errors import AuthenticationFailure
from slack_gpt_bot.signature import compute_signature, verify_slack_signature

SECRET = "8f742231b10e8888abcd99yyyzzz85a5"
BODY = "token=xyz&team_id=T1&text=hi"
NOW = 1_700_000_000


def test_compute_signature_format():
    sig = compute_signature(SECRET, str(NOW), BODY)
    assert sig.startswith("v0=")
    assert len(sig) == 3 + 64


def test_valid_signature_passes():
    sig = compute_signature(SECRET, str(NOW), BODY)
    verify_slack_signature(SECRET, str(NOW), sig, BODY, now=NOW + 10)


@pytest.mark.parametrize(
    "timestamp,signature,body",
    [
        (str(NOW), "v0=deadbeef", BODY),
        (str(NOW), None, BODY),
        (None, "v0=x", BODY),
        ("not-a-number", "v0=x", BODY),
    ],
)
def test_invalid_signature_rejected(timestamp, signature, body):
    with pytest.raises(AuthenticationFailure):
        verify_slack_signature(SECRET, timestamp, signature, body, now=NOW)


def test_tampered_body_rejected():
    sig = compute_signature(SECRET, str(NOW), BODY)
    with pytest.raises(AuthenticationFailure):
        verify_slack_signature(SECRET, str(NOW), sig, BODY + "&x=1", now=NOW)


def test_stale_timestamp_rejected():
    sig = compute_signature(SECRET, str(NOW), BODY)
    with pytest.raises(AuthenticationFailure, match="stale"):
        verify_slack_signature(SECRET, str(NOW), sig, BODY, tolerance_seconds=300, now=NOW + 301)
