"""Per-(bot, sender) fixed-window message counter backed by Redis."""

from redis.exceptions import RedisError

from chatbot_engine.logging_config import get_logger

logger = get_logger("rate_limiter")


def rate_limit_key(chatbot_id, sender_phone: str) -> str:
    return f"ratelimit:{chatbot_id}:{sender_phone}"


class RateLimiter:
    """
    Fixed-window limiter shared by every worker through Redis.

    The window starts with the first message from a sender and resets when the
    key expires, so a sender can burst up to 2x the cap across a window edge.
    """

    def __init__(self, redis_client):
        self.redis = redis_client

    def allow(self, chatbot_id, sender_phone: str, cap: int, window_seconds: int) -> bool:
        """
        Count this message and report whether it fits in the window.

        Returns True when the sender is still under ``cap``. Redis being
        unavailable lets the message through.
        """
        key = rate_limit_key(chatbot_id, sender_phone)
        try:
            pipe = self.redis.pipeline(transaction=True)
            # Creates the counter with the window's TTL only if it is not already running.
            pipe.set(key, 0, ex=window_seconds, nx=True)
            pipe.incr(key)
            _, count = pipe.execute()
        except RedisError as exc:
            logger.warning(
                "Rate limit check failed, allowing message",
                extra={"context": {"key": key, "error": str(exc)}},
            )
            return True

        if int(count) > cap:
            logger.info(
                "Rate limit exceeded",
                extra={"context": {"key": key, "count": int(count), "cap": cap}},
            )
            return False
        return True
