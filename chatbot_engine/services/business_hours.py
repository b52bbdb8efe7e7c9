from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from chatbot_engine.schemas.chatbot_config import BusinessHours

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def local_now(tz_name: str, now: Optional[datetime] = None) -> datetime:
    """Current time in the bot's zone. Naive ``now`` is taken as UTC."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(ZoneInfo(tz_name))


def is_within_business_hours(business_hours: BusinessHours, now: datetime) -> bool:
    """Inclusive HH:MM check of ``now`` against that weekday's schedule. Unconfigured days are closed."""
    day = business_hours.for_day(WEEKDAYS[now.weekday()])
    if day is None or not day.enabled:
        return False
    current_time = now.strftime("%H:%M")
    return day.start <= current_time <= day.end
