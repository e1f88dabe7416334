import pytest

from slack_gpt_bot.events import EventKind, SharedFile, classify, parse_event

BOT = "UBOT"


def _ev(**kw):
    ev = {
        "type": "message",
        "channel": "C1",
        "channel_type": "channel",
        "user": "UALICE",
        "text": "hello",
        "ts": "1700000100.000100",
    }
    ev.update(kw)
    return ev


@pytest.mark.parametrize(
    "event,expect",
    [
        (_ev(text=f"<@{BOT}> hi"), EventKind.MENTION),
        (_ev(type="app_mention", text=f"<@{BOT}> hi"), EventKind.MENTION),
        (_ev(text="hi"), EventKind.NOT_ADDRESSED),
        (_ev(thread_ts="1.0", text="hi"), EventKind.THREAD_REPLY),
        (_ev(thread_ts="1.0", text="<@UOTHER> hi"), EventKind.NOT_ADDRESSED),
        (_ev(thread_ts="1.0", text=f"<@UOTHER> <@{BOT}> hi"), EventKind.MENTION),
        (_ev(channel_type="im"), EventKind.DIRECT_MESSAGE),
        (_ev(user=BOT), EventKind.BOT_ORIGINATED),
        (_ev(bot_id="B1"), EventKind.BOT_ORIGINATED),
        (_ev(subtype="bot_message"), EventKind.BOT_ORIGINATED),
        (_ev(subtype="message_changed", text=f"<@{BOT}> hi"), EventKind.UNSUPPORTED),
        (_ev(subtype="file_share", text=f"<@{BOT}> look"), EventKind.MENTION),
        (_ev(type="reaction_added"), EventKind.UNSUPPORTED),
        (_ev(user=None), EventKind.UNSUPPORTED),
    ],
)
def test_classify(event, expect):
    assert classify(event, BOT) is expect


def test_parse_url_verification():
    inbound = parse_event({"type": "url_verification", "challenge": "c"}, BOT)
    assert inbound.kind is EventKind.URL_VERIFICATION
    assert inbound.challenge == "c"


def test_parse_event_callback_fields():
    payload = {"type": "event_callback", "event_id": "Ev9", "event": _ev(thread_ts="1.5")}
    inbound = parse_event(payload, BOT)
    assert inbound.delivery_id == "C1:1700000100.000100"
    assert inbound.thread_ts == "1.5"
    assert inbound.in_thread is True


def test_delivery_id_falls_back_to_event_id():
    payload = {"type": "event_callback", "event_id": "Ev9", "event": {"type": "message"}}
    inbound = parse_event(payload, BOT)
    assert inbound.delivery_id == "Ev9"
    assert inbound.kind is EventKind.UNSUPPORTED


@pytest.mark.parametrize("payload", [{}, {"type": "event_callback"}, {"type": "other"}, []])
def test_parse_unsupported_payloads(payload):
    assert parse_event(payload, BOT).kind is EventKind.UNSUPPORTED


def test_reply_thread_ts_rules():
    def inbound(**kw):
        return parse_event({"type": "event_callback", "event": _ev(**kw)}, BOT)

    assert inbound(thread_ts="1.0").reply_thread_ts == "1.0"
    assert inbound(channel_type="im").reply_thread_ts is None
    assert inbound().reply_thread_ts == "1700000100.000100"


def test_shared_files_are_parsed():
    files = [
        {"id": "F1", "name": "cat.png", "mimetype": "image/png", "url_private": "https://f/1"},
        "not a file",
    ]
    payload = {"type": "event_callback", "event": _ev(subtype="file_share", files=files)}
    inbound = parse_event(payload, BOT)
    assert inbound.files == (SharedFile("image/png", "https://f/1", "cat.png"),)
    assert parse_event({"type": "event_callback", "event": _ev()}, BOT).files == ()
