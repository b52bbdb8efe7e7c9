from typing import List, Optional

import httpx

from chatbot_engine.logging_config import get_logger
from chatbot_engine.services.llm.base import LLMProvider, LLMProviderError, LLMResponse, split_system_prompt

logger = get_logger("llm.anthropic")

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider(LLMProvider):
    """Anthropic messages API. The system prompt travels in its own field."""

    name = "anthropic"

    def __init__(self, api_key: str, default_model: str = "claude-3-5-sonnet-latest"):
        self.api_key = api_key
        self.default_model = default_model
        self.base_url = "https://api.anthropic.com/v1/messages"

    @classmethod
    def from_config(cls, config) -> "AnthropicProvider":
        if not config.ai_api_key:
            raise LLMProviderError(cls.name, "API key not configured")
        return cls(api_key=config.ai_api_key)

    def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
        timeout_seconds: Optional[float] = None,
    ) -> LLMResponse:
        model = model or self.default_model
        system, conversation = split_system_prompt(messages)

        payload = {
            "model": model,
            "messages": conversation,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if system:
            payload["system"] = system

        timeout = timeout_seconds if timeout_seconds is not None else 60.0
        with httpx.Client(timeout=timeout) as client:
            logger.debug(f"Anthropic request: model={model}, messages_count={len(conversation)}")
            response = client.post(
                self.base_url,
                headers={
                    "x-api-key": self.api_key,
                    "anthropic-version": ANTHROPIC_VERSION,
                    "Content-Type": "application/json",
                },
                json=payload,
            )

        if response.status_code != 200:
            logger.error(f"Anthropic error: {response.text}")
            raise LLMProviderError(self.name, f"API error {response.status_code}", response.status_code)

        data = response.json()
        content = "".join(block.get("text", "") for block in data.get("content") or [] if block.get("type") == "text")

        usage = data.get("usage") or {}
        tokens = int(usage.get("input_tokens") or 0) + int(usage.get("output_tokens") or 0)
        return LLMResponse(content=content, model=data.get("model", model), tokens_used=tokens, usage=usage or None)
