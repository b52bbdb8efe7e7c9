from chatbot_engine.services.llm.anthropic_provider import AnthropicProvider
from chatbot_engine.services.llm.base import LLMProvider, LLMProviderError, LLMResponse
from chatbot_engine.services.llm.custom_provider import CustomWebhookProvider
from chatbot_engine.services.llm.google_provider import GoogleProvider
from chatbot_engine.services.llm.openai_provider import OpenAIProvider

PROVIDERS: dict[str, type[LLMProvider]] = {
    OpenAIProvider.name: OpenAIProvider,
    AnthropicProvider.name: AnthropicProvider,
    GoogleProvider.name: GoogleProvider,
    CustomWebhookProvider.name: CustomWebhookProvider,
}


def build_provider(config) -> LLMProvider:
    """Adapter for ``config.ai_provider``. Raises LLMProviderError if unknown or unconfigured."""
    name = getattr(config.ai_provider, "value", config.ai_provider)
    provider_cls = PROVIDERS.get(name)
    if provider_cls is None:
        raise LLMProviderError(str(name), "Unsupported AI provider")
    return provider_cls.from_config(config)


__all__ = [
    "AnthropicProvider",
    "CustomWebhookProvider",
    "GoogleProvider",
    "LLMProvider",
    "LLMProviderError",
    "LLMResponse",
    "OpenAIProvider",
    "PROVIDERS",
    "build_provider",
]
