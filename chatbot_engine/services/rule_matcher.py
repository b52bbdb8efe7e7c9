import re
from functools import lru_cache
from typing import Iterable, Optional

from chatbot_engine.config import settings
from chatbot_engine.logging_config import get_logger
from chatbot_engine.schemas.chatbot_config import MatchType, Rule

logger = get_logger("rule_matcher")

# A quantified group that itself contains a quantifier, e.g. (a+)+ or (\w+\s?)*
_NESTED_QUANTIFIER = re.compile(r"\((?:[^()\\]|\\.)*[+*{](?:[^()\\]|\\.)*\)[+*{]")


def normalize(text: str) -> str:
    return (text or "").strip().lower()


@lru_cache(maxsize=512)
def compile_trigger(pattern: str) -> Optional[re.Pattern]:
    """Compile a user-supplied regex trigger, or None if it is unusable."""
    if len(pattern) > settings.max_rule_pattern_length:
        logger.warning(
            "Regex trigger too long, ignoring rule",
            extra={"context": {"length": len(pattern), "max": settings.max_rule_pattern_length}},
        )
        return None
    if _NESTED_QUANTIFIER.search(pattern):
        logger.warning("Regex trigger has nested quantifiers, ignoring rule", extra={"context": {"pattern": pattern}})
        return None
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as exc:
        logger.error(f"Invalid regex pattern: {pattern}", extra={"context": {"error": str(exc)}})
        return None


def rule_matches(rule: Rule, text: str) -> bool:
    if rule.match_type == MatchType.REGEX:
        compiled = compile_trigger(rule.trigger)
        return bool(compiled and compiled.search(text or ""))

    message = normalize(text)
    trigger = normalize(rule.trigger)

    if rule.match_type == MatchType.EXACT:
        return message == trigger
    if rule.match_type == MatchType.STARTS_WITH:
        return message.startswith(trigger)
    if rule.match_type == MatchType.ENDS_WITH:
        return message.endswith(trigger)
    return trigger in message


def match_rule(rules: Iterable[Rule], text: str) -> Optional[Rule]:
    """
    First matching rule by descending priority.

    Equal priorities keep configuration order (sorted() is stable).
    """
    for rule in sorted(rules, key=lambda r: r.priority, reverse=True):
        if rule_matches(rule, text):
            return rule
    return None
