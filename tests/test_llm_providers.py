from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from chatbot_engine.services.llm import (
    AnthropicProvider,
    CustomWebhookProvider,
    GoogleProvider,
    LLMProviderError,
    OpenAIProvider,
    build_provider,
)

MESSAGES = [
    {"role": "system", "content": "Be brief."},
    {"role": "user", "content": "Hi"},
    {"role": "assistant", "content": "Hello!"},
    {"role": "user", "content": "Opening hours?"},
]


def http_response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    response.text = str(body)
    return response


def install_client(mock_client_cls, response):
    client = mock_client_cls.return_value.__enter__.return_value
    client.post.return_value = response
    return client


class TestOpenAIProvider:
    @patch("chatbot_engine.services.llm.openai_provider.httpx.Client")
    def test_generate(self, mock_client_cls):
        client = install_client(
            mock_client_cls,
            http_response(
                body={
                    "model": "gpt-4o-mini",
                    "choices": [{"message": {"content": "9 to 6"}}],
                    "usage": {"total_tokens": 42},
                }
            ),
        )

        result = OpenAIProvider(api_key="sk-test").generate(MESSAGES, temperature=0.2, max_tokens=100, timeout_seconds=5)

        assert result.content == "9 to 6"
        assert result.tokens_used == 42
        mock_client_cls.assert_called_once_with(timeout=5)
        payload = client.post.call_args.kwargs["json"]
        assert payload["messages"] == MESSAGES
        assert payload["max_completion_tokens"] == 100
        assert client.post.call_args.kwargs["headers"]["Authorization"] == "Bearer sk-test"

    @patch("chatbot_engine.services.llm.openai_provider.httpx.Client")
    def test_http_error_raises(self, mock_client_cls):
        install_client(mock_client_cls, http_response(status_code=429, body={"error": "slow down"}))

        with pytest.raises(LLMProviderError) as exc_info:
            OpenAIProvider(api_key="sk-test").generate(MESSAGES)
        assert exc_info.value.status_code == 429


class TestAnthropicProvider:
    @patch("chatbot_engine.services.llm.anthropic_provider.httpx.Client")
    def test_system_prompt_sent_separately(self, mock_client_cls):
        client = install_client(
            mock_client_cls,
            http_response(
                body={
                    "content": [{"type": "text", "text": "We open at 9."}],
                    "usage": {"input_tokens": 10, "output_tokens": 5},
                }
            ),
        )

        result = AnthropicProvider(api_key="key").generate(MESSAGES)

        payload = client.post.call_args.kwargs["json"]
        assert payload["system"] == "Be brief."
        assert all(m["role"] != "system" for m in payload["messages"])
        assert client.post.call_args.kwargs["headers"]["x-api-key"] == "key"
        assert result.content == "We open at 9."
        assert result.tokens_used == 15


class TestGoogleProvider:
    def test_roles_mapped_to_user_and_model(self):
        contents = GoogleProvider.to_contents(MESSAGES[1:])
        assert [c["role"] for c in contents] == ["user", "model", "user"]

    @patch("chatbot_engine.services.llm.google_provider.httpx.Client")
    def test_generate(self, mock_client_cls):
        client = install_client(
            mock_client_cls,
            http_response(
                body={
                    "candidates": [{"content": {"parts": [{"text": "Nine "}, {"text": "to six."}]}}],
                    "usageMetadata": {"totalTokenCount": 7},
                }
            ),
        )

        result = GoogleProvider(api_key="g-key").generate(MESSAGES, model="gemini-pro")

        assert result.content == "Nine to six."
        assert result.tokens_used == 7
        assert client.post.call_args.args[0].endswith("/gemini-pro:generateContent")
        assert client.post.call_args.kwargs["params"] == {"key": "g-key"}
        assert client.post.call_args.kwargs["json"]["systemInstruction"] == {"parts": [{"text": "Be brief."}]}


class TestCustomWebhookProvider:
    @pytest.mark.parametrize(
        "body,expected",
        [
            ({"response": "from response"}, "from response"),
            ({"message": "from message"}, "from message"),
            ("bare string", "bare string"),
        ],
    )
    @patch("chatbot_engine.services.llm.custom_provider.httpx.Client")
    def test_reply_shapes(self, mock_client_cls, body, expected):
        client = install_client(mock_client_cls, http_response(body=body))

        result = CustomWebhookProvider("https://bot.example.com/reply", {"X-Token": "t"}).generate(
            MESSAGES, temperature=0.3, max_tokens=50
        )

        assert result.content == expected
        assert client.post.call_args.kwargs["json"]["config"] == {"temperature": 0.3, "maxTokens": 50}
        assert client.post.call_args.kwargs["headers"]["X-Token"] == "t"

    @patch("chatbot_engine.services.llm.custom_provider.httpx.Client")
    def test_unexpected_body(self, mock_client_cls):
        install_client(mock_client_cls, http_response(body=[1, 2]))
        with pytest.raises(LLMProviderError):
            CustomWebhookProvider("https://bot.example.com/reply").generate(MESSAGES)


class TestBuildProvider:
    def test_builds_by_name(self):
        config = SimpleNamespace(ai_provider="anthropic", ai_api_key="key")
        assert isinstance(build_provider(config), AnthropicProvider)

    def test_missing_key(self):
        with pytest.raises(LLMProviderError):
            build_provider(SimpleNamespace(ai_provider="openai", ai_api_key=None))

    def test_custom_requires_url(self):
        with pytest.raises(LLMProviderError):
            build_provider(SimpleNamespace(ai_provider="custom", webhook_url=None, webhook_headers={}))

    def test_unknown_provider(self):
        with pytest.raises(LLMProviderError):
            build_provider(SimpleNamespace(ai_provider="cohere"))
