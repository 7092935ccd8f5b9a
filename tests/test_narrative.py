# tests/test_narrative.py
#
# Tests for dccore/narrative.py with a fake chat client (no network).

import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from conftest import make_session

DIP = [90, 88, 91, 89, 90, 40, 38, 42, 90, 92]
REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


class FakeCompletions:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


def _client(response=None, error=None):
    completions = FakeCompletions(response, error)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def _tool_response(items):
    call = SimpleNamespace(function=SimpleNamespace(
        name="provide_coaching_feedback", arguments=json.dumps({"feedback": items}),
    ))
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(tool_calls=[call], content=None))])


def _content_response(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(tool_calls=None, content=text))])


def _moments():
    from dccore.worst_moments import find_worst_moments
    return find_worst_moments(make_session(DIP))


def test_format_clock():
    from dccore.narrative import format_clock
    assert format_clock(0) == "0:00"
    assert format_clock(65.4) == "1:05"
    assert format_clock(600) == "10:00"
    assert format_clock(-3) == "0:00"


def test_moment_payload():
    from dccore.narrative import moment_payload
    p = moment_payload(_moments()[0])
    assert p["timeRange"] == "0:05–0:07"
    assert p["avgScore"] == pytest.approx(40.0)
    assert p["worstSegments"] == "Left Arm (40%), Right Arm (40%), Left Leg (40%)"
    assert p["posecodeContext"].startswith("Reference pose: ")


def test_build_messages():
    from dccore.narrative import SYSTEM_PROMPT, build_messages, moment_payload
    msgs = build_messages([moment_payload(m) for m in _moments()])
    assert msgs[0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert msgs[1]["role"] == "user"
    assert "Moment 1 (0:05–0:07, average accuracy: 40.0%):" in msgs[1]["content"]
    assert "Here are the 1 worst moments" in msgs[1]["content"]


def test_generate_with_forced_tool_call():
    from dccore.config import NarrativeConfig
    from dccore.narrative import OK, NarrativeClient
    items = [{"observation": "Your port de bras dropped.", "tip": "Lift from the back."},
             {"observation": "extra", "tip": "extra"}]
    client, completions = _client(_tool_response(items))
    result = NarrativeClient(client, NarrativeConfig(model="test-model")).generate(_moments())

    assert result.status == OK and result.ok
    assert [f.observation for f in result.feedback] == ["Your port de bras dropped."]
    call = completions.calls[0]
    assert call["model"] == "test-model"
    assert call["tool_choice"]["function"]["name"] == "provide_coaching_feedback"
    assert call["tools"][0]["function"]["name"] == "provide_coaching_feedback"


def test_generate_falls_back_to_message_content():
    from dccore.narrative import NarrativeClient
    text = "```json\n" + json.dumps({"feedback": [{"observation": "o", "tip": "t"}]}) + "\n```"
    client, _ = _client(_content_response(text))
    result = NarrativeClient(client).generate(_moments())
    assert result.ok
    assert (result.feedback[0].observation, result.feedback[0].tip) == ("o", "t")


def test_parse_feedback_rejects_garbage():
    from dccore.narrative import parse_feedback
    with pytest.raises(ValueError):
        parse_feedback(SimpleNamespace(tool_calls=None, content="not json"))
    with pytest.raises(ValueError):
        parse_feedback(SimpleNamespace(tool_calls=None, content=""))
    with pytest.raises(ValueError):
        parse_feedback(SimpleNamespace(tool_calls=None, content='{"feedback": "nope"}'))


@pytest.mark.parametrize("error, status", [
    (openai.RateLimitError("slow down", response=httpx.Response(429, request=REQUEST), body=None), "rate_limited"),
    (openai.APIStatusError("pay up", response=httpx.Response(402, request=REQUEST), body=None), "payment_required"),
    (openai.InternalServerError("boom", response=httpx.Response(500, request=REQUEST), body=None), "failed"),
    (openai.APIConnectionError(request=REQUEST), "failed"),
])
def test_errors_map_to_status(error, status):
    from dccore.narrative import STATUS_MESSAGES, NarrativeClient
    client, _ = _client(error=error)
    result = NarrativeClient(client).generate(_moments())
    assert result.status == status
    assert result.feedback == []
    assert result.message == STATUS_MESSAGES[status]


def test_unusable_response_fails():
    from dccore.narrative import FAILED, NarrativeClient
    client, _ = _client(_content_response("sorry, no"))
    assert NarrativeClient(client).generate(_moments()).status == FAILED
    client, _ = _client(SimpleNamespace(choices=[]))
    assert NarrativeClient(client).generate(_moments()).status == FAILED


def test_empty_feedback_is_unavailable():
    from dccore.narrative import UNAVAILABLE, NarrativeClient
    client, _ = _client(_tool_response([]))
    assert NarrativeClient(client).generate(_moments()).status == UNAVAILABLE


def test_no_moments_makes_no_call():
    from dccore.narrative import UNAVAILABLE, NarrativeClient
    client, completions = _client(_tool_response([]))
    result = NarrativeClient(client).generate([])
    assert result.status == UNAVAILABLE
    assert completions.calls == []


def test_from_config_requires_key_and_enabled():
    from dccore.config import NarrativeConfig
    from dccore.narrative import NarrativeClient
    assert NarrativeClient.from_config(NarrativeConfig(api_key=None)) is None
    assert NarrativeClient.from_config(NarrativeConfig(api_key="sk-test", enabled=False)) is None
    nc = NarrativeClient.from_config(NarrativeConfig(api_key="sk-test"))
    assert isinstance(nc, NarrativeClient)
    assert isinstance(nc.client, openai.OpenAI)
