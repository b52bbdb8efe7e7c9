import redis

from chatbot_engine.config import settings

_redis_client = None
_redis_url = None


def get_redis_client() -> redis.Redis:
    """Process-wide Redis client, rebuilt if the configured URL changes."""
    global _redis_client, _redis_url
    if _redis_client is None or _redis_url != settings.redis_url:
        _redis_url = settings.redis_url
        _redis_client = redis.Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=settings.redis_socket_timeout_seconds,
            socket_connect_timeout=settings.redis_socket_timeout_seconds,
        )
    return _redis_client
