from typing import List, Optional

import httpx

from chatbot_engine.logging_config import get_logger
from chatbot_engine.services.llm.base import LLMProvider, LLMProviderError, LLMResponse

logger = get_logger("llm.custom")


class CustomWebhookProvider(LLMProvider):
    """
    Self-hosted model behind a webhook.

    Request body: ``{"messages": [...], "config": {"temperature", "maxTokens"}}``.
    The reply may be ``{"response": ...}``, ``{"message": ...}`` or a bare JSON
    string; an optional ``usage.total_tokens`` is reported when present.
    """

    name = "custom"

    def __init__(self, url: str, headers: Optional[dict] = None):
        self.url = url
        self.headers = headers or {}

    @classmethod
    def from_config(cls, config) -> "CustomWebhookProvider":
        if not config.webhook_url:
            raise LLMProviderError(cls.name, "Custom AI endpoint not configured")
        return cls(url=config.webhook_url, headers=dict(config.webhook_headers))

    def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
        timeout_seconds: Optional[float] = None,
    ) -> LLMResponse:
        payload = {
            "messages": messages,
            "config": {"temperature": temperature, "maxTokens": max_tokens},
        }

        timeout = timeout_seconds if timeout_seconds is not None else 60.0
        with httpx.Client(timeout=timeout) as client:
            response = client.post(
                self.url,
                headers={"Content-Type": "application/json", **self.headers},
                json=payload,
            )

        if response.status_code >= 300:
            logger.error(f"Custom AI error: status={response.status_code} body={response.text[:200]}")
            raise LLMProviderError(self.name, f"API error {response.status_code}", response.status_code)

        data = response.json()
        tokens = 0
        if isinstance(data, str):
            content = data
        elif isinstance(data, dict):
            content = data.get("response") or data.get("message") or ""
            tokens = int((data.get("usage") or {}).get("total_tokens") or 0)
        else:
            raise LLMProviderError(self.name, f"Unexpected response body type {type(data).__name__}")

        if not isinstance(content, str):
            raise LLMProviderError(self.name, "Response text is not a string")

        return LLMResponse(content=content, model=model or "custom", tokens_used=tokens)
