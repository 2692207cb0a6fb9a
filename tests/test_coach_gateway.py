import json
import threading

import pytest
import requests
from force3.services.coach_gateway import (
    CoachClient,
    CoachError,
    StreamSlot,
    fallback_document,
    parse_plan_document,
)
from force3.services.profile import Profile

from conftest import COACH_DOC, FakeResponse, FakeSession, chat_response, sse_lines


def _client(session, api_key="sk-test"):
    return CoachClient(api_key=api_key, coach="Ricky", session=session)


# ---------- Documento de plan ----------

def test_plan_document_valid_json():
    session = FakeSession(chat_response(json.dumps(COACH_DOC)))
    doc = _client(session).plan_document(Profile(name="Ana"), brief=True)
    assert doc == COACH_DOC

    url, kwargs = session.calls[0]
    assert url.endswith("/chat/completions")
    assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
    assert kwargs["json"]["messages"][0]["content"].lstrip().startswith("You are Ricky")
    assert json.loads(kwargs["json"]["messages"][1]["content"])["brief"] is True


def test_plan_document_wraps_plain_text():
    doc = _client(FakeSession(chat_response("Just lift heavy things."))).plan_document(Profile())
    assert doc["title"] == "Ricky Plan"
    assert doc["summary"] == "Structured JSON was expected."
    assert doc["sections"] == [{"heading": "Content", "bullets": ["Just lift heavy things."]}]


def test_chat_reply_fallback():
    doc = _client(FakeSession(chat_response("Sure!"))).chat_reply("hi")
    assert doc["title"] == "Ricky Reply"
    assert doc["sections"][0]["heading"] == "Message"
    assert doc["next_actions"] == ["Ask a follow-up.", "Provide more details."]


def test_missing_content_gives_empty_document():
    resp = FakeResponse(payload={"choices": []})
    doc = _client(FakeSession(resp)).plan_document(Profile())
    assert doc == {"title": "Plan", "summary": "No content", "sections": [], "next_actions": []}


def test_document_with_wrong_shape_is_wrapped():
    doc = parse_plan_document(json.dumps({"title": "x"}), "answers", "Coach")
    assert doc == fallback_document(json.dumps({"title": "x"}), "answers", "Coach")


# ---------- Errores ----------

@pytest.mark.parametrize("status,kind,http", [
    (401, "auth", 401),
    (403, "auth", 403),
    (429, "quota", 429),
    (500, "http", 500),
    (404, "http", 404),
])
def test_http_errors_are_classified(status, kind, http):
    with pytest.raises(CoachError) as exc:
        _client(FakeSession(FakeResponse(status_code=status))).chat_reply("hi")
    assert exc.value.kind == kind
    assert exc.value.status == status
    assert exc.value.http_status == http


def test_auth_message_names_the_coach():
    with pytest.raises(CoachError) as exc:
        _client(FakeSession(FakeResponse(status_code=401))).chat_reply("hi")
    assert exc.value.user_message.startswith("Ricky can't access the API")


def test_network_error():
    session = FakeSession(exc=requests.ConnectionError("boom"))
    with pytest.raises(CoachError) as exc:
        _client(session).text_plan({}, {})
    assert exc.value.kind == "network"
    assert exc.value.http_status == 502
    assert "boom" in exc.value.user_message


def test_missing_key_never_calls_provider():
    session = FakeSession(chat_response("x"))
    with pytest.raises(CoachError) as exc:
        _client(session, api_key="").chat_reply("hi")
    assert exc.value.kind == "config"
    assert exc.value.http_status == 500
    assert session.calls == []


def test_invalid_provider_json_is_malformed():
    with pytest.raises(CoachError) as exc:
        _client(FakeSession(FakeResponse(text="<html>"))).text_plan({}, {})
    assert exc.value.kind == "malformed"
    assert exc.value.http_status == 502


# ---------- Streaming ----------

def test_stream_yields_chunks_in_order():
    resp = FakeResponse(lines=sse_lines("## Week 1", "\n- Mon", ": Bench 5x5"))
    chunks = list(_client(FakeSession(resp)).stream_text_plan({}, {}))
    assert chunks == ["## Week 1", "\n- Mon", ": Bench 5x5"]
    assert resp.closed


def test_stream_skips_garbage_lines():
    resp = FakeResponse(lines=["event: ping", "data: {not json", *sse_lines("ok")])
    assert list(_client(FakeSession(resp)).stream_text_plan({}, {})) == ["ok"]


def test_stream_stops_when_cancelled():
    resp = FakeResponse(lines=sse_lines("a", "b", "c"))
    cancel = threading.Event()
    out = []
    for chunk in _client(FakeSession(resp)).stream_text_plan({}, {}, cancel=cancel):
        out.append(chunk)
        cancel.set()
    assert out == ["a"]
    assert resp.closed


def test_stream_connection_drop_is_network_error():
    lines = sse_lines("## Week 1")[:1] + [requests.exceptions.ChunkedEncodingError("connection reset")]
    resp = FakeResponse(lines=lines)
    out = []
    with pytest.raises(CoachError) as exc:
        for chunk in _client(FakeSession(resp)).stream_text_plan({}, {}):
            out.append(chunk)
    assert out == ["## Week 1"]
    assert exc.value.kind == "network"
    assert exc.value.http_status == 502
    assert resp.closed


def test_stream_slot_cancels_previous():
    slot = StreamSlot()
    first = slot.start()
    second = slot.start()
    assert first.is_set()
    assert not second.is_set()
    slot.finish(first)
    third = slot.start()
    assert second.is_set() and not third.is_set()


# ---------- Plantilla de hoy ----------

def test_today_plan_structured():
    content = json.dumps({"strength": [{"name": "Squat", "sets": 5, "reps": 3}],
                          "run": {"type": "Tempo", "distance": 5, "unit": "mi"}})
    parsed = _client(FakeSession(chat_response(content))).today_plan(Profile())
    assert parsed.source == "structured"
    assert parsed.strength == [{"name": "Squat", "sets": 5, "reps": 3}]
    assert parsed.run == {"type": "Tempo", "distance": 5}


def test_today_plan_falls_back_to_text():
    parsed = _client(FakeSession(chat_response("Row 4x8\nEasy 4 mi"))).today_plan(Profile())
    assert parsed.source == "legacy"
    assert parsed.strength == [{"name": "Row", "sets": 4, "reps": 8}]
    assert parsed.run == {"type": "Easy", "distance": 4}


def test_from_config():
    client = CoachClient.from_config({"OPENAI_API_KEY": "k", "COACH_NAME": "Ricky",
                                      "OPENAI_BASE_URL": "http://local/v1/"})
    assert client.base_url == "http://local/v1"
    assert client.coach == "Ricky"
    assert client.model == "gpt-4o-mini"
