from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from chatbot_engine.database import get_db
from chatbot_engine.main import app
from chatbot_engine.routers import chatbots as chatbots_router
from chatbot_engine.schemas.conversation import AnalyticsResponse
from chatbot_engine.services.chatbot_service import DispatchOutcome, OutcomeKind
from chatbot_engine.services.config_service import ChatbotConfigError, ChatbotNotFoundError
from chatbot_engine.services.result import Result


@pytest.fixture
def db():
    return MagicMock()


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[chatbots_router.get_config_cache] = lambda: MagicMock()
    app.dependency_overrides[chatbots_router.get_rate_limiter] = lambda: MagicMock()
    app.dependency_overrides[chatbots_router.get_whatsapp_sender] = lambda: MagicMock()
    yield TestClient(app)
    app.dependency_overrides.clear()


def conversation_row(**overrides):
    data = {
        "id": uuid4(),
        "chatbot_id": uuid4(),
        "sender_phone": "+1555",
        "status": "completed",
        "started_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "ended_at": None,
        "message_count": 4,
        "rating": None,
        "feedback": None,
    }
    data.update(overrides)
    return SimpleNamespace(**data)


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}


class TestInbound:
    @patch("chatbot_engine.routers.chatbots.process_inbound_message")
    def test_acknowledges_and_schedules(self, mock_process, client):
        bot_id = uuid4()

        response = client.post(f"/chatbots/{bot_id}/inbound", json={"sender_phone": "+1555", "message_text": "hi"})

        assert response.status_code == 202
        assert response.json() == {"accepted": True, "chatbot_id": str(bot_id)}
        mock_process.assert_called_once()
        assert mock_process.call_args.args[1:] == ("+1555", "hi", "text")

    def test_rejects_missing_sender(self, client):
        response = client.post(f"/chatbots/{uuid4()}/inbound", json={"message_text": "hi"})
        assert response.status_code == 422


class TestDryRun:
    @patch("chatbot_engine.routers.chatbots.ChatbotEngine")
    def test_returns_outcome(self, mock_engine, client, db):
        conversation_id = uuid4()
        mock_engine.return_value.handle.return_value = DispatchOutcome(
            kind=OutcomeKind.BOT_RESPONSE, text="Hello!", sent=True, conversation_id=conversation_id
        )

        response = client.post(f"/chatbots/{uuid4()}/test", json={"message": "hi"})

        assert response.status_code == 200
        body = response.json()
        assert body["input"] == "hi"
        assert body["kind"] == "bot-response"
        assert body["response"] == "Hello!"
        assert body["conversation_id"] == str(conversation_id)
        assert mock_engine.return_value.handle.call_args.args[1] == "test_user"
        db.commit.assert_called_once()

    @patch("chatbot_engine.routers.chatbots.ChatbotEngine")
    def test_silent_bot(self, mock_engine, client):
        mock_engine.return_value.handle.return_value = None

        body = client.post(f"/chatbots/{uuid4()}/test", json={"message": "hi"}).json()

        assert body["response"] is None
        assert body["sent"] is False

    def test_unknown_bot(self, client, db):
        db.query.return_value.filter.return_value.first.return_value = None
        assert client.post(f"/chatbots/{uuid4()}/test", json={"message": "hi"}).status_code == 404


class TestPatchChatbot:
    @patch("chatbot_engine.routers.chatbots.update_chatbot")
    def test_update_hides_secrets(self, mock_update, client, make_config):
        mock_update.return_value = make_config(ai_api_key="sk-secret", welcome_message="Hey")

        response = client.patch(f"/chatbots/{uuid4()}", json={"welcome_message": "Hey"})

        assert response.status_code == 200
        assert response.json()["welcome_message"] == "Hey"
        assert "ai_api_key" not in response.json()

    @patch("chatbot_engine.routers.chatbots.update_chatbot")
    def test_invalid_config(self, mock_update, client):
        mock_update.side_effect = ChatbotConfigError("unknown timezone: Mars/Base")
        response = client.patch(f"/chatbots/{uuid4()}", json={"timezone": "Mars/Base"})
        assert response.status_code == 422

    @patch("chatbot_engine.routers.chatbots.update_chatbot")
    def test_missing_chatbot(self, mock_update, client):
        bot_id = uuid4()
        mock_update.side_effect = ChatbotNotFoundError(bot_id)
        assert client.patch(f"/chatbots/{bot_id}", json={"name": "x"}).status_code == 404


class TestAnalytics:
    @patch("chatbot_engine.routers.chatbots.get_chatbot_analytics")
    def test_analytics(self, mock_analytics, client):
        mock_analytics.return_value = AnalyticsResponse(
            total_conversations=4,
            total_messages=20,
            handed_off=1,
            handoff_rate=25.0,
            average_rating=4.5,
            average_messages_per_conversation=5.0,
        )

        response = client.get(
            f"/chatbots/{uuid4()}/analytics",
            params={"start": "2024-01-01T00:00:00", "end": "2024-01-31T23:59:59"},
        )

        assert response.status_code == 200
        assert response.json()["handoff_rate"] == 25.0

    def test_start_after_end(self, client):
        response = client.get(
            f"/chatbots/{uuid4()}/analytics",
            params={"start": "2024-02-01T00:00:00", "end": "2024-01-01T00:00:00"},
        )
        assert response.status_code == 422


class TestConversationEndpoints:
    @patch("chatbot_engine.routers.conversations.complete_conversation")
    def test_complete(self, mock_complete, client):
        row = conversation_row()
        mock_complete.return_value = Result.success(row)

        response = client.post(f"/conversations/{row.id}/complete")

        assert response.status_code == 200
        assert response.json()["status"] == "completed"

    @patch("chatbot_engine.routers.conversations.complete_conversation")
    def test_complete_not_active(self, mock_complete, client):
        mock_complete.return_value = Result.failure("Invalid transition", "invalid_state")
        assert client.post(f"/conversations/{uuid4()}/complete").status_code == 409

    @patch("chatbot_engine.routers.conversations.rate_conversation")
    def test_rate(self, mock_rate, client):
        row = conversation_row(rating=5, feedback="great")
        mock_rate.return_value = Result.success(row)

        response = client.post(f"/conversations/{row.id}/rating", json={"rating": 5, "feedback": "great"})

        assert response.status_code == 200
        assert response.json()["rating"] == 5

    def test_rating_out_of_range(self, client):
        response = client.post(f"/conversations/{uuid4()}/rating", json={"rating": 9})
        assert response.status_code == 422

    @patch("chatbot_engine.routers.conversations.rate_conversation")
    def test_rate_missing(self, mock_rate, client):
        mock_rate.return_value = Result.failure("Conversation not found", "not_found")
        assert client.post(f"/conversations/{uuid4()}/rating", json={"rating": 3}).status_code == 404


def message_row(**overrides):
    data = {
        "id": uuid4(),
        "conversation_id": uuid4(),
        "direction": "incoming",
        "content": "hi",
        "type": "text",
        "is_ai_generated": False,
        "ai_provider": None,
        "matched_rule": None,
        "status": "sent",
        "error_code": None,
        "whatsapp_message_id": None,
        "timestamp": datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return SimpleNamespace(**data)


class TestConversationListing:
    @patch("chatbot_engine.routers.chatbots.list_conversations")
    def test_paginated_list(self, mock_list, client):
        bot_id = uuid4()
        mock_list.return_value = ([conversation_row(chatbot_id=bot_id, status="active")], 41)

        response = client.get(f"/chatbots/{bot_id}/conversations", params={"status": "active", "page": 2})

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 41
        assert body["page"] == 2
        assert body["limit"] == 20
        assert body["pages"] == 3
        assert body["items"][0]["status"] == "active"
        assert mock_list.call_args.kwargs == {"status": "active", "search": None, "page": 2, "limit": 20}

    @patch("chatbot_engine.routers.chatbots.list_conversations", return_value=([], 0))
    def test_limit_clamped(self, mock_list, client):
        body = client.get(f"/chatbots/{uuid4()}/conversations", params={"limit": 1000, "page": 0}).json()

        assert body["limit"] == 100
        assert body["page"] == 1
        assert body["pages"] == 0

    def test_unknown_status(self, client):
        response = client.get(f"/chatbots/{uuid4()}/conversations", params={"status": "archived"})
        assert response.status_code == 422


class TestConversationTranscript:
    @patch("chatbot_engine.routers.chatbots.list_messages")
    @patch("chatbot_engine.routers.chatbots.get_conversation")
    def test_messages_oldest_first(self, mock_get, mock_list, client):
        conversation = conversation_row()
        mock_get.return_value = conversation
        mock_list.return_value = [
            message_row(conversation_id=conversation.id, content="hi"),
            message_row(conversation_id=conversation.id, direction="outgoing", content="Hello!"),
        ]

        response = client.get(f"/chatbots/{conversation.chatbot_id}/conversations/{conversation.id}/messages")

        assert response.status_code == 200
        body = response.json()
        assert [item["content"] for item in body["items"]] == ["hi", "Hello!"]
        assert body["items"][1]["direction"] == "outgoing"
        assert mock_list.call_args.kwargs == {"page": 1, "limit": 50}

    @patch("chatbot_engine.routers.chatbots.list_messages")
    @patch("chatbot_engine.routers.chatbots.get_conversation", return_value=None)
    def test_conversation_of_other_bot(self, mock_get, mock_list, client):
        response = client.get(f"/chatbots/{uuid4()}/conversations/{uuid4()}/messages")

        assert response.status_code == 404
        mock_list.assert_not_called()
