from typing import List, Optional

import httpx

from chatbot_engine.logging_config import get_logger
from chatbot_engine.services.llm.base import LLMProvider, LLMProviderError, LLMResponse, split_system_prompt

logger = get_logger("llm.google")


class GoogleProvider(LLMProvider):
    """Gemini generateContent API."""

    name = "google"

    def __init__(self, api_key: str, default_model: str = "gemini-1.5-flash"):
        self.api_key = api_key
        self.default_model = default_model
        self.base_url = "https://generativelanguage.googleapis.com/v1beta/models"

    @classmethod
    def from_config(cls, config) -> "GoogleProvider":
        if not config.ai_api_key:
            raise LLMProviderError(cls.name, "API key not configured")
        return cls(api_key=config.ai_api_key)

    @staticmethod
    def to_contents(messages: List[dict]) -> List[dict]:
        return [
            {"role": "user" if m["role"] == "user" else "model", "parts": [{"text": m["content"]}]}
            for m in messages
        ]

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
            "contents": self.to_contents(conversation),
            "generationConfig": {"temperature": temperature, "maxOutputTokens": max_tokens},
        }
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}

        timeout = timeout_seconds if timeout_seconds is not None else 60.0
        with httpx.Client(timeout=timeout) as client:
            logger.debug(f"Gemini request: model={model}, contents_count={len(conversation)}")
            response = client.post(
                f"{self.base_url}/{model}:generateContent",
                params={"key": self.api_key},
                headers={"Content-Type": "application/json"},
                json=payload,
            )

        if response.status_code != 200:
            logger.error(f"Gemini error: {response.text}")
            raise LLMProviderError(self.name, f"API error {response.status_code}", response.status_code)

        data = response.json()
        content = ""
        candidates = data.get("candidates") or []
        if candidates:
            parts = (candidates[0].get("content") or {}).get("parts") or []
            content = "".join(part.get("text", "") for part in parts)

        usage = data.get("usageMetadata") or {}
        return LLMResponse(
            content=content,
            model=model,
            tokens_used=int(usage.get("totalTokenCount") or 0),
            usage=usage or None,
        )
