from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class LLMResponse:
    content: str
    model: str
    tokens_used: int = 0
    usage: Optional[dict] = None


class LLMProviderError(Exception):
    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"{provider}: {message}")


class LLMProvider(ABC):
    """
    One vendor behind the uniform chat contract.

    ``messages`` are role-tagged dicts (system/user/assistant); adapters map
    them to their own wire format and report total tokens used.
    """

    name: str = ""

    @classmethod
    @abstractmethod
    def from_config(cls, config) -> "LLMProvider":
        """Build the adapter from a ChatbotConfig."""

    @abstractmethod
    def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
        timeout_seconds: Optional[float] = None,
    ) -> LLMResponse:
        """Generate response from LLM."""


def split_system_prompt(messages: List[dict]) -> tuple[str, List[dict]]:
    """Pull the system entry out for APIs that take it as a separate field."""
    system = next((m["content"] for m in messages if m.get("role") == "system"), "")
    rest = [m for m in messages if m.get("role") != "system"]
    return system, rest
