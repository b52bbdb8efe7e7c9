import time
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from chatbot_engine.config import settings
from chatbot_engine.logging_config import get_logger
from chatbot_engine.schemas.chatbot_config import ChatbotConfig
from chatbot_engine.services.llm import LLMProvider, LLMProviderError, build_provider
from chatbot_engine.services.message_service import get_conversation_history
from chatbot_engine.services.result import Result

logger = get_logger("ai_responder")

ROLE_BY_DIRECTION = {"incoming": "user", "outgoing": "assistant"}


@dataclass
class AIReply:
    text: str
    provider: str
    model: Optional[str]
    tokens_used: int
    latency_ms: int


def build_ai_messages(config: ChatbotConfig, history: Iterable, user_message: str) -> List[dict]:
    """System prompt, then prior turns (if context memory is on), then the current message."""
    messages = [{"role": "system", "content": config.ai_system_prompt}]

    if config.enable_context_memory:
        turns = [m for m in history if m.content and m.direction in ROLE_BY_DIRECTION]
        if config.context_window_size:
            turns = turns[-config.context_window_size:]
        else:
            turns = []
        for message in turns:
            messages.append({"role": ROLE_BY_DIRECTION[message.direction], "content": message.content})

    messages.append({"role": "user", "content": user_message})
    return messages


def generate_ai_reply(
    db: Session,
    config: ChatbotConfig,
    conversation_id: UUID,
    user_message: str,
    exclude_message_id: Optional[UUID] = None,
    provider_factory: Callable[[ChatbotConfig], LLMProvider] = build_provider,
) -> Result[AIReply]:
    """
    Ask the configured provider for a reply.

    Never raises: provider, transport and payload problems come back as
    Result.failure so the caller can fall back.
    """
    if config.ai_provider is None:
        return Result.failure("No AI provider configured", "ai_not_configured")

    provider_name = config.ai_provider.value
    started = time.monotonic()

    try:
        provider = provider_factory(config)

        history = []
        if config.enable_context_memory and config.context_window_size > 0:
            history = get_conversation_history(
                db,
                conversation_id,
                limit=config.context_window_size,
                exclude_message_id=exclude_message_id,
            )
        messages = build_ai_messages(config, history, user_message)

        response = provider.generate(
            messages,
            model=config.ai_model,
            temperature=config.ai_temperature,
            max_tokens=config.ai_max_tokens,
            timeout_seconds=settings.ai_request_timeout_seconds,
        )
    except LLMProviderError as exc:
        logger.error(
            "AI provider error",
            extra={"context": {"provider": provider_name, "chatbot_id": str(config.id), "error": str(exc)}},
        )
        return Result.failure(str(exc), "ai_provider_error")
    except Exception as exc:
        logger.error(
            "AI call failed",
            extra={"context": {"provider": provider_name, "chatbot_id": str(config.id), "error": repr(exc)}},
        )
        return Result.failure(f"{provider_name}: {exc}", "ai_provider_error")

    latency_ms = int((time.monotonic() - started) * 1000)
    text = (response.content or "").strip()
    if not text:
        logger.warning(
            "AI provider returned empty reply",
            extra={"context": {"provider": provider_name, "chatbot_id": str(config.id)}},
        )
        return Result.failure(f"{provider_name}: empty response", "ai_empty_response")

    return Result.success(
        AIReply(
            text=text,
            provider=provider_name,
            model=config.ai_model or response.model,
            tokens_used=response.tokens_used,
            latency_ms=latency_ms,
        )
    )
