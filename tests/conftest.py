# tests/conftest.py

import json

import pytest
from force3 import create_app, db

VALID_ANSWERS = {
    "name": "Ana",
    "sex": "female",
    "age": 31,
    "units": "imperial",
    "height": "175 cm / 5'9\"",
    "weight": 150,
    "primary_goals": ["hybrid"],
    "modalities": ["strength", "run"],
    "experience": "intermediate",
    "availability": 4,
    "constraints": ["no_deadlifts"],
    "beta": "FORCE3BETA",
}


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "x" * 32,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "WTF_CSRF_ENABLED": False,
        "OPENAI_API_KEY": "sk-test",
        "COACH_NAME": "Ricky",
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def onboarded(client):
    resp = client.post("/api/onboarding", json=VALID_ANSWERS)
    assert resp.status_code == 200
    return client


# ---------- Proveedor del coach falso ----------

COACH_DOC = {
    "title": "Hybrid Base",
    "summary": "4 days",
    "sections": [{"heading": "Week 1", "bullets": ["Bench 5x5"]},
                 {"heading": "Paces", "table": {"columns": ["Run", "Pace"], "rows": [["Easy", "9:30"]]}}],
    "next_actions": ["Book a gym slot"],
}


class FakeResponse:
    def __init__(self, status_code=200, payload=None, lines=None, reason="", text=None):
        self.status_code = status_code
        self._payload = payload
        self._lines = lines or []
        self.reason = reason
        self._text = text
        self.closed = False

    def json(self):
        if self._text is not None:
            return json.loads(self._text)
        return self._payload

    def iter_lines(self, decode_unicode=False):
        for line in self._lines:
            if isinstance(line, Exception):
                raise line
            yield line

    def close(self):
        self.closed = True


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.exc is not None:
            raise self.exc
        return self.response


def chat_response(content):
    return FakeResponse(payload={"choices": [{"message": {"content": content}}]})


def sse_lines(*chunks):
    lines = [f'data: {json.dumps({"choices": [{"delta": {"content": c}}]})}' for c in chunks]
    return lines + ["", "data: [DONE]"]
