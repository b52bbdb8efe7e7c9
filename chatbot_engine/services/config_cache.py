"""Read-through Redis cache of validated chatbot configs."""

from typing import Callable, Optional

from pydantic import ValidationError
from redis.exceptions import RedisError

from chatbot_engine.config import settings
from chatbot_engine.logging_config import get_logger
from chatbot_engine.schemas.chatbot_config import ChatbotConfig

logger = get_logger("config_cache")


def config_cache_key(chatbot_id) -> str:
    return f"chatbot:{chatbot_id}"


class ChatbotConfigCache:
    """
    Snapshots live in Redis for ``ttl_seconds``; edits must call ``invalidate``.

    Readers may see a config up to one TTL old if an edit skipped invalidation.
    """

    def __init__(self, redis_client, ttl_seconds: Optional[int] = None):
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.config_cache_ttl_seconds

    def get(self, chatbot_id, loader: Callable[[], Optional[ChatbotConfig]]) -> Optional[ChatbotConfig]:
        key = config_cache_key(chatbot_id)

        cached = self._read(key)
        if cached is not None:
            return cached

        config = loader()
        if config is not None:
            self._write(key, config)
        return config

    def invalidate(self, chatbot_id) -> None:
        key = config_cache_key(chatbot_id)
        try:
            self.redis.delete(key)
            logger.debug(f"Config cache invalidated: {key}")
        except RedisError as exc:
            logger.error("Config cache invalidate failed", extra={"context": {"key": key, "error": str(exc)}})

    def _read(self, key: str) -> Optional[ChatbotConfig]:
        try:
            raw = self.redis.get(key)
        except RedisError as exc:
            logger.warning("Config cache read failed", extra={"context": {"key": key, "error": str(exc)}})
            return None
        if not raw:
            logger.debug(f"Config cache miss: {key}")
            return None
        try:
            return ChatbotConfig.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("Discarding unreadable cached config", extra={"context": {"key": key, "error": str(exc)}})
            return None

    def _write(self, key: str, config: ChatbotConfig) -> None:
        try:
            self.redis.setex(key, self.ttl_seconds, config.model_dump_json())
        except RedisError as exc:
            logger.warning("Config cache write failed", extra={"context": {"key": key, "error": str(exc)}})
