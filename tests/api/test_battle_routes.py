"""Tests for the /debate endpoints."""

import json
import random

import pytest
from fastapi.testclient import TestClient

from api_server.main import app
from battle_core.config import PRESET_OPTIONS
from battle_core.errors import AUTH_REJECTED_MESSAGE, MODEL_ERROR_MESSAGE
from llm_client import APIKeyError, LLMError


@pytest.fixture
def use_llm(make_client):
    """Install a scripted provider client on the app for one test."""
    previous = (app.state.llm_client, app.state.rng)

    def install(*, missing=False, **script):
        client = None if missing else make_client(**script)
        app.state.llm_client = client
        app.state.rng = random.Random(99)
        return client

    yield install
    app.state.llm_client, app.state.rng = previous


@pytest.fixture
def http():
    return TestClient(app)


def round_body(**overrides):
    body = {
        "topic": "AI会取代人类吗",
        "round": 1,
        "userChoice": "A",
        "currentState": {"proHP": 1000, "conHP": 1000, "combo": 0, "totalScore": 0},
        "history": [],
    }
    body.update(overrides)
    return body


def sse_events(text):
    return [json.loads(frame[len("data: "):]) for frame in text.split("\n\n") if frame.startswith("data: ")]


class TestBufferedRound:
    """Tests for POST /debate."""

    def test_full_round(self, http, use_llm, make_verdict):
        client = use_llm(turns=["正方观点", "反方反击"], json_replies=[make_verdict(), make_verdict()])

        response = http.post("/debate", json=round_body())

        assert response.status_code == 200
        data = response.json()
        assert data["kimi"]["content"] == "正方观点"
        assert data["deepseek"]["content"] == "反方反击"
        assert data["state"]["currentHP"]["pro"] < 1000
        assert data["state"]["currentHP"]["con"] < 1000
        assert len(client.calls) == 4

    @pytest.mark.parametrize("missing", ["topic", "userChoice", "currentState"])
    def test_missing_field(self, http, use_llm, missing):
        client = use_llm()
        body = round_body()
        del body[missing]

        response = http.post("/debate", json=body)

        assert response.status_code == 400
        assert response.json()["code"] == "BAD_REQUEST"
        assert client.calls == []

    def test_blank_topic(self, http, use_llm):
        use_llm()
        response = http.post("/debate", json=round_body(topic="   "))
        assert response.status_code == 400
        assert response.json()["code"] == "BAD_REQUEST"

    def test_out_of_range_hp(self, http, use_llm):
        use_llm()
        state = {"proHP": 1500, "conHP": 1000, "combo": 0, "totalScore": 0}
        response = http.post("/debate", json=round_body(currentState=state))
        assert response.status_code == 400
        assert response.json()["code"] == "BAD_REQUEST"

    def test_finished_battle(self, http, use_llm):
        client = use_llm()
        state = {"proHP": 1000, "conHP": 0, "combo": 3, "totalScore": 5000}
        response = http.post("/debate", json=round_body(currentState=state))
        assert response.status_code == 400
        assert client.calls == []

    def test_missing_credential(self, http, use_llm):
        use_llm(missing=True)
        response = http.post("/debate", json=round_body())
        assert response.status_code == 500
        assert response.json() == {"error": "请在 .env 中配置 GROQ_API_KEY", "code": "AUTH_FAILED"}

    def test_provider_failure(self, http, use_llm):
        use_llm(turns=[LLMError("Groq API error: overloaded")])
        response = http.post("/debate", json=round_body())
        assert response.status_code == 500
        assert response.json()["code"] == "MODEL_ERROR"

    def test_unexpected_failure_keeps_error_body(self, use_llm):
        use_llm(turns=[RuntimeError("boom")])
        http = TestClient(app, raise_server_exceptions=False)

        response = http.post("/debate", json=round_body())

        assert response.status_code == 500
        assert response.json() == {"error": MODEL_ERROR_MESSAGE, "code": "MODEL_ERROR"}

    def test_rejected_key(self, http, use_llm):
        use_llm(turns=[APIKeyError("Invalid API key", status_code=401)])
        response = http.post("/debate", json=round_body())
        assert response.status_code == 500
        assert response.json() == {"error": AUTH_REJECTED_MESSAGE, "code": "AUTH_FAILED"}

    def test_long_topic_and_choice_accepted(self, http, use_llm, make_verdict):
        use_llm(turns=["正方", "反方"], json_replies=[make_verdict(), make_verdict()])
        body = round_body(topic="人工智能" * 80, userChoice="从历史经验出发" * 20)

        response = http.post("/debate", json=body)

        assert response.status_code == 200
        assert "deepseek" in response.json()


class TestStreamRound:
    """Tests for POST /debate/stream."""

    def test_event_stream(self, http, use_llm, make_verdict):
        use_llm(streams=[["正方", "观点"], ["反方"]], json_replies=[make_verdict(), make_verdict()])

        response = http.post("/debate/stream", json=round_body())

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        events = sse_events(response.text)
        assert [e["type"] for e in events] == [
            "kimi_start", "kimi_token", "kimi_token", "kimi_end", "judge_kimi",
            "deepseek_start", "deepseek_token", "deepseek_end", "judge_deepseek",
            "done",
        ]
        assert "正方" in response.text
        assert events[4]["payload"]["battleStatus"] == "ongoing"
        assert events[8]["payload"]["currentHP"]["con"] == events[4]["payload"]["currentHP"]["con"]

    def test_kimi_only_phase(self, http, use_llm, make_verdict):
        use_llm(streams=[["正方"]], json_replies=[make_verdict()])
        response = http.post("/debate/stream", json=round_body(phase="kimi_only"))
        assert [e["type"] for e in sse_events(response.text)][-2:] == ["judge_kimi", "done"]

    def test_failure_becomes_error_frame(self, http, use_llm):
        use_llm(streams=[["正方", LLMError("Groq API error: reset")]])

        response = http.post("/debate/stream", json=round_body())

        assert response.status_code == 200
        events = sse_events(response.text)
        assert [e["type"] for e in events] == ["kimi_start", "kimi_token", "error"]
        assert events[-1]["code"] == "MODEL_ERROR"
        assert events[-1]["error"] == "Groq API error: reset"

    def test_bad_input_rejected_before_stream(self, http, use_llm):
        client = use_llm()
        response = http.post("/debate/stream", json=round_body(userChoice=""))
        assert response.status_code == 400
        assert response.json()["code"] == "BAD_REQUEST"
        assert client.calls == []

    def test_unknown_phase(self, http, use_llm):
        use_llm()
        response = http.post("/debate/stream", json=round_body(phase="both"))
        assert response.status_code == 400


class TestOptions:
    """Tests for POST /debate/options."""

    def test_preset_in_early_rounds(self, http, use_llm):
        client = use_llm()
        response = http.post("/debate/options", json={"topic": "题目", "round": 1})
        assert response.status_code == 200
        assert response.json()["options"] in PRESET_OPTIONS
        assert client.calls == []

    def test_without_credential_still_answers(self, http, use_llm):
        use_llm(missing=True)
        response = http.post("/debate/options", json={"topic": "题目", "round": 5, "side": "con"})
        assert response.status_code == 200
        assert response.json()["options"] in PRESET_OPTIONS

    def test_missing_topic(self, http, use_llm):
        use_llm()
        response = http.post("/debate/options", json={"round": 3})
        assert response.status_code == 400
        assert response.json()["code"] == "BAD_REQUEST"
