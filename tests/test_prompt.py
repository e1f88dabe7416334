from dataclasses import replace

import pytest

from slack_gpt_bot.config import load_settings
from slack_gpt_bot.models import ConversationTurn, ConversationWindow
from slack_gpt_bot.prompt import compose


def _settings(**kw):
    return replace(load_settings(), **kw)


def _window(n, max_size=10):
    turns = tuple(
        ConversationTurn(role="user" if i % 2 else "assistant", text=f"t{i}", ts=f"{i}.0")
        for i in range(1, n + 1)
    )
    return ConversationWindow(turns, max_size)


def test_three_turns_plus_new_message():
    settings = _settings(default_past_num=6, system_prompt="")
    req = compose(_window(3), "new question", settings)

    assert req.turn_count == 4
    assert [m["content"] for m in req.messages] == ["t1", "t2", "t3", "new question"]
    assert req.messages[-1] == {"role": "user", "content": "new question"}


def test_system_prompt_leads_and_does_not_count():
    settings = _settings(system_prompt="be a cat")
    req = compose(_window(2), "hi", settings)
    assert req.messages[0] == {"role": "system", "content": "be a cat"}
    assert req.turn_count == 3


def test_hard_bound_drops_oldest():
    settings = _settings(max_past_num=3, system_prompt="")
    # window built with a looser bound than the settings
    req = compose(_window(6, max_size=6), "latest", settings)

    assert req.turn_count == 4
    assert [m["content"] for m in req.messages] == ["t4", "t5", "t6", "latest"]


def test_request_carries_model_and_temperature():
    settings = _settings(gpt_model="gpt-4o-mini", temperature=0.7)
    req = compose(_window(0), "hi", settings)
    body = req.body()
    assert body["model"] == "gpt-4o-mini"
    assert body["temperature"] == 0.7
    assert body["messages"][-1]["content"] == "hi"


def test_window_orders_and_bounds_turns():
    turns = tuple(ConversationTurn("user", f"t{i}", f"{i}.0") for i in (5, 1, 3, 2, 4))
    window = ConversationWindow(turns, max_size=3)
    assert [t.text for t in window] == ["t3", "t4", "t5"]
    assert ConversationWindow(turns, max_size=0).turns == ()


@pytest.mark.parametrize("max_size", [1, 3, 10])
def test_window_keeps_newest_turns_for_every_length(max_size):
    for n in range(0, 2 * max_size + 1):
        window = _window(n, max_size=max_size)
        expected = [f"t{i}" for i in range(1, n + 1)][-max_size:]
        assert len(window) == min(n, max_size)
        assert [t.text for t in window] == expected


def test_images_become_content_parts():
    settings = _settings(system_prompt="")
    req = compose(_window(1), "what is it?", settings, images=("data:image/png;base64,AA==",))
    assert req.messages[0] == {"role": "assistant", "content": "t1"}
    assert req.messages[-1]["content"] == [
        {"type": "text", "text": "what is it?"},
        {"type": "image_url", "image_url": {"url": "data:image/png;base64,AA=="}},
    ]


def test_o1_folds_system_prompt_into_last_turn():
    settings = _settings(system_prompt="be a cat", o1_model="o1-mini")
    req = compose(_window(2), "why?", settings, images=("data:image/png;base64,AA==",), o1=True)

    body = req.body()
    assert body["model"] == "o1-mini"
    assert "temperature" not in body
    assert [m["role"] for m in req.messages] == ["assistant", "user", "user"]
    assert req.messages[-1] == {"role": "user", "content": "be a cat\n\nwhy?"}
