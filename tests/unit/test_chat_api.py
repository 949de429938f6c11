import pytest
from fastapi.testclient import TestClient

from app.dependencies import get_orchestrator
from app.main import app
from pipeline.conversation_memory import ConversationMemoryStore
from pipeline.integration_dispatcher import IntegrationDispatcher
from pipeline.intent_classifier import IntentClassifier
from pipeline.orchestrator import SupportOrchestrator
from pipeline.response_formatter import ResponseFormatter
from pipeline.response_planner import ResponsePlanner
from tests.fakes import FakeCommerce, FakeSupportDesk, make_order


@pytest.fixture
def orchestrator():
    memory = ConversationMemoryStore()
    return SupportOrchestrator(
        memory=memory,
        classifier=IntentClassifier(memory=memory),
        planner=ResponsePlanner(memory),
        dispatcher=IntegrationDispatcher(
            commerce=FakeCommerce(orders=[make_order()]),
            support_desk=FakeSupportDesk(),
        ),
        formatter=ResponseFormatter(),
    )


@pytest.fixture
def client(orchestrator):
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestChatAPI:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_chat_asks_for_email(self, client):
        response = client.post("/api/v1/chat", json={
            "message": "where is my order",
            "conversation_id": "conv-1",
        })

        assert response.status_code == 200
        body = response.json()
        assert "What email address did you use" in body["text"]
        assert body["actions"][0]["label"] == "I have my order number"
        assert body["metadata"]["source"] == "smart_integration"
        assert body["analysis"]["intents"] == ["orderTracking"]
        assert body["conversation_id"] == "conv-1"

    def test_chat_with_known_email_finds_order(self, client):
        response = client.post("/api/v1/chat", json={
            "message": "where is my order",
            "conversation_id": "conv-2",
            "email": "jane@example.com",
        })

        body = response.json()
        assert "**Order Found!**" in body["text"]
        assert body["metadata"]["integrations_used"] == ["shopify"]

    def test_empty_message_is_rejected(self, client):
        response = client.post("/api/v1/chat", json={"message": ""})
        assert response.status_code == 422

    def test_context_endpoint(self, client):
        client.post("/api/v1/chat", json={"message": "where is my order", "conversation_id": "conv-3"})

        response = client.get("/api/v1/context/conv-3")

        assert response.status_code == 200
        assert response.json()["waiting_for"] == "email"

    def test_context_endpoint_unknown_conversation(self, client):
        response = client.get("/api/v1/context/nope")
        assert response.status_code == 404

    def test_integration_status_and_refresh(self, client):
        before = client.get("/api/v1/integrations/status").json()
        assert before["shopify"]["connected"] is False

        after = client.post("/api/v1/integrations/refresh").json()
        assert after["shopify"]["connected"] is True
        assert after["kustomer"]["connected"] is True
        assert after["ai"]["connected"] is False

    def test_chat_returns_history_summary(self, client):
        response = client.post("/api/v1/chat", json={
            "message": "hello",
            "conversation_id": "conv-4",
            "chat_history": [{"sender_type": "user", "content": "I need headphones"}],
        })

        summary = response.json()["history_summary"]
        assert summary["message_count"] == 1
        assert summary["has_product_questions"] is True
