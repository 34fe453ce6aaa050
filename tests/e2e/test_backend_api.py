"""
End-to-End Tests for the Backend API

Exercises the FastAPI routes through TestClient with the session manager
dependency overridden to use in-memory collaborators.
"""

import pytest
import sys
import os

from fastapi.testclient import TestClient

# Add project root and backend to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "conversation_copilot", "src"))
sys.path.insert(0, os.path.join(project_root, "backend"))

import main
from conversation_copilot.config import CopilotSettings
from conversation_copilot.conversation_state import ConfidenceScores, SentenceSentiment, SentimentScore
from conversation_copilot.providers import EnrichmentResult, SentimentAnalysis
from conversation_copilot.session_manager import SessionManager

LONG_UTTERANCES = [
    "I am forty five and I work as a software engineer at a bank.",
    "My wife and I have about eight hundred thousand saved in total.",
    "We would like to retire at sixty two with a comfortable income.",
    "I'd say our risk tolerance is moderate, nothing too aggressive.",
]


class StubCopilotProvider:
    """Deterministic collaborator for API tests."""

    def __init__(self):
        self.guidance_calls = 0
        self.recommendation_calls = 0

    async def enrich(self, utterance_text):
        score = SentimentScore(
            label="neutral",
            score=0.6,
            confidence=ConfidenceScores(positive=0.2, negative=0.2, neutral=0.6),
        )
        return EnrichmentResult(
            key_phrases="Key Phrases: retirement",
            entities="",
            pii_redacted="PII:",
            sentiment=SentimentAnalysis(overall=score, sentences=[SentenceSentiment(utterance_text, score)]),
        )

    async def generate_guidance(self, full_transcript, question_template):
        self.guidance_calls += 1
        return "Addressed Questions\n1. Age? - 45\nUnaddressed Questions\n2. Assets?"

    async def generate_recommendation(self, full_transcript):
        self.recommendation_calls += 1
        return "Consider a Roth IRA conversion ladder before retirement."

    async def complete_custom_prompt(self, full_transcript, custom_prompt):
        return f"{custom_prompt.upper()}"


class TestBackendAPI:
    """Test the conversation REST endpoints."""

    @pytest.fixture
    def provider(self):
        return StubCopilotProvider()

    @pytest.fixture
    def manager(self, provider):
        return SessionManager(provider, provider, provider, provider, settings=CopilotSettings())

    @pytest.fixture
    def client(self, manager):
        main.app.dependency_overrides[main.get_session_manager] = lambda: manager
        with TestClient(main.app) as client:
            yield client
        main.app.dependency_overrides.clear()

    @pytest.fixture
    def session_id(self, client):
        response = client.post("/api/sessions", json={})
        assert response.status_code == 200
        return response.json()["session_id"]

    def ingest_all(self, client, session_id, utterances):
        for text in utterances:
            response = client.post(
                f"/api/sessions/{session_id}/utterances",
                json={"text": text, "wait": True},
            )
            assert response.status_code == 200

    def test_health(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_create_and_list_sessions(self, client):
        created = client.post("/api/sessions", json={"question_template": "1. Age?", "recommendations_enabled": False})

        assert created.status_code == 200
        body = created.json()
        assert body["is_recording"] is True
        assert body["recommendations_enabled"] is False

        listed = client.get("/api/sessions").json()
        assert body["session_id"] in listed["sessions"]

    def test_ingest_and_read_state(self, client, session_id, provider):
        response = client.post(
            f"/api/sessions/{session_id}/utterances",
            json={"text": "I'm worried about my retirement savings", "wait": True},
        )
        assert response.json()["transcript_event_count"] == 1

        self.ingest_all(client, session_id, ["I want something safe and conservative"])

        state = client.get(f"/api/sessions/{session_id}/state").json()
        assert state["transcript_event_count"] == 2
        assert len(state["sentiment"]["rolling"]["all_sentences"]) == 2
        assert state["guidance"]["completed"][0]["answer_text"] == "45"
        assert state["guidance"]["pending"][0]["question_text"] == "Assets?"
        assert provider.guidance_calls == 1

    def test_unknown_session(self, client):
        assert client.get("/api/sessions/conv_missing/state").status_code == 404
        assert client.post("/api/sessions/conv_missing/utterances", json={"text": "hi"}).status_code == 404
        assert client.post("/api/sessions/conv_missing/stop").status_code == 404
        assert client.delete("/api/sessions/conv_missing").status_code == 404

    def test_recommendation_alerts(self, client, session_id, provider):
        self.ingest_all(client, session_id, LONG_UTTERANCES)

        state = client.get(f"/api/sessions/{session_id}/state").json()
        alerts = state["alerts"]
        assert provider.recommendation_calls == 1
        assert alerts["unread_count"] == 1
        assert alerts["history"][0]["priority"] == "low"
        alert_id = alerts["history"][0]["id"]

        response = client.post(f"/api/sessions/{session_id}/alerts/{alert_id}/read")
        assert response.status_code == 200
        assert response.json()["unread_count"] == 0
        assert response.json()["history"][0]["is_read"] is True

        assert client.post(f"/api/sessions/{session_id}/alerts/rec_0_missing00/read").status_code == 404

        response = client.post(f"/api/sessions/{session_id}/alerts/read-all")
        assert response.json()["unread_count"] == 0
        assert len(response.json()["history"]) == 1

    def test_stop_flushes_and_rejects_new_utterances(self, client, session_id, provider):
        self.ingest_all(client, session_id, LONG_UTTERANCES[:3])

        response = client.post(f"/api/sessions/{session_id}/stop")

        assert response.status_code == 200
        state = response.json()
        assert state["is_recording"] is False
        assert provider.recommendation_calls == 1
        assert provider.guidance_calls == 2

        rejected = client.post(f"/api/sessions/{session_id}/utterances", json={"text": "one more"})
        assert rejected.status_code == 409

    def test_repeated_stop_is_rejected(self, client, session_id, provider):
        self.ingest_all(client, session_id, LONG_UTTERANCES[:3])

        assert client.post(f"/api/sessions/{session_id}/stop").status_code == 200
        again = client.post(f"/api/sessions/{session_id}/stop")

        assert again.status_code == 409
        assert provider.recommendation_calls == 1
        state = client.get(f"/api/sessions/{session_id}/state").json()
        assert len(state["alerts"]["history"]) == 1

    def test_mark_alert_unread(self, client, session_id):
        self.ingest_all(client, session_id, LONG_UTTERANCES)
        alert_id = client.get(f"/api/sessions/{session_id}/state").json()["alerts"]["history"][0]["id"]
        client.post(f"/api/sessions/{session_id}/alerts/{alert_id}/read")

        response = client.post(f"/api/sessions/{session_id}/alerts/{alert_id}/unread")

        assert response.status_code == 200
        assert response.json()["unread_count"] == 1
        assert response.json()["history"][0]["is_read"] is False

        missing = client.post(f"/api/sessions/{session_id}/alerts/rec_0_missing00/unread")
        assert missing.status_code == 404

    def test_replace_template(self, client, session_id):
        response = client.put(
            f"/api/sessions/{session_id}/template",
            json={"question_template": "1. What is the client's name?"},
        )

        assert response.status_code == 200
        state = client.get(f"/api/sessions/{session_id}/state").json()
        assert state["question_template"] == "1. What is the client's name?"

        empty = client.put(f"/api/sessions/{session_id}/template", json={"question_template": "  "})
        assert empty.status_code == 400

    def test_insights(self, client, session_id):
        response = client.post(f"/api/sessions/{session_id}/insights", json={"prompt": "summarize"})

        assert response.status_code == 200
        assert response.json()["output"] == "SUMMARIZE"
        state = client.get(f"/api/sessions/{session_id}/state").json()
        assert state["insights_output"] == "SUMMARIZE"

    def test_delete_session(self, client, session_id):
        response = client.delete(f"/api/sessions/{session_id}")

        assert response.status_code == 200
        assert client.get(f"/api/sessions/{session_id}/state").status_code == 404


class TestProvidersNotConfigured:
    """Endpoints that need providers report 503 without an API key."""

    def test_create_session_without_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.setattr(main, "_session_manager", None)
        main.app.dependency_overrides.clear()

        with TestClient(main.app) as client:
            response = client.post("/api/sessions", json={})
            health = client.get("/")

        assert response.status_code == 503
        assert health.status_code == 200
        assert health.json()["openai_configured"] is False
