"""Inbound message pipeline: gates, conversation lifecycle, responders, send + log."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from chatbot_engine.database import SessionLocal
from chatbot_engine.logging_config import ContextLogger, bind, get_logger
from chatbot_engine.models import ChatbotConversation, ChatbotMessage
from chatbot_engine.schemas.chatbot_config import ChatbotConfig, ChatbotMode
from chatbot_engine.services.ai_responder import generate_ai_reply
from chatbot_engine.services.business_hours import is_within_business_hours, local_now
from chatbot_engine.services.config_cache import ChatbotConfigCache
from chatbot_engine.services.config_service import get_chatbot_config
from chatbot_engine.services.conversation_service import mark_handed_off, resolve_conversation, touch_conversation
from chatbot_engine.services.llm import LLMProvider, build_provider
from chatbot_engine.services.message_service import save_message
from chatbot_engine.services.rate_limiter import RateLimiter
from chatbot_engine.services.rule_matcher import match_rule, normalize
from chatbot_engine.services.state_machine import InvalidTransitionError
from chatbot_engine.services.template_service import render_menu, render_template
from chatbot_engine.services.whatsapp_client import WhatsAppSender, WhatsAppSendError

logger = get_logger("chatbot_service")


class OutcomeKind(str, Enum):
    WELCOME = "welcome"
    OUT_OF_OFFICE = "out-of-office"
    HANDOFF = "handoff"
    MENU = "menu"
    BOT_RESPONSE = "bot-response"


@dataclass
class DispatchOutcome:
    kind: OutcomeKind
    text: str
    sent: bool
    conversation_id: Optional[UUID] = None
    provider_message_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class _Reply:
    text: str
    fields: dict = field(default_factory=dict)


def contains_handoff_keyword(text: str, keywords: Iterable[str]) -> bool:
    message = (text or "").lower()
    return any(keyword.lower() in message for keyword in keywords if keyword)


class ChatbotEngine:
    """
    Decides and delivers the bot's reply to one inbound WhatsApp message.

    Collaborators are injected so each invocation works on its own session and
    the shared Redis-backed cache and limiter.
    """

    def __init__(
        self,
        db: Session,
        config_cache: ChatbotConfigCache,
        rate_limiter: RateLimiter,
        sender: WhatsAppSender,
        provider_factory: Callable[[ChatbotConfig], LLMProvider] = build_provider,
    ):
        self.db = db
        self.config_cache = config_cache
        self.rate_limiter = rate_limiter
        self.sender = sender
        self.provider_factory = provider_factory

    def handle(
        self,
        chatbot_id: UUID,
        sender_phone: str,
        message_text: str,
        message_type: str = "text",
    ) -> Optional[DispatchOutcome]:
        """
        Run the pipeline for one message. Returns the outcome of the reply that
        was sent, or None when the bot stays silent.

        Never raises; unexpected failures are logged and treated as silence.
        """
        log = bind(logger, chatbot_id=str(chatbot_id), sender=sender_phone)
        try:
            return self._process(chatbot_id, sender_phone, message_text or "", message_type, log)
        except Exception:
            log.exception("Chatbot message processing failed")
            return None

    def _process(
        self,
        chatbot_id: UUID,
        sender_phone: str,
        message_text: str,
        message_type: str,
        log: ContextLogger,
    ) -> Optional[DispatchOutcome]:
        started = time.monotonic()

        # 1. Config
        config = get_chatbot_config(self.db, self.config_cache, chatbot_id)
        if not config or not config.is_active:
            log.warning("Chatbot is missing or inactive")
            return None

        # 2. Business hours
        if config.business_hours_enabled and not is_within_business_hours(
            config.business_hours, local_now(config.timezone)
        ):
            log.info("Outside business hours")
            return self._send(config, sender_phone, config.out_of_office_message, None, OutcomeKind.OUT_OF_OFFICE)

        # 3. Conversation
        conversation, created = resolve_conversation(self.db, config, sender_phone)
        if created and config.welcome_enabled and config.welcome_message:
            self._send(config, sender_phone, config.welcome_message, conversation, OutcomeKind.WELCOME)

        # 4. Rate limit
        if config.rate_limit_enabled and not self.rate_limiter.allow(
            config.id, sender_phone, config.max_messages_per_user, config.rate_limit_window
        ):
            log.warning("Rate limit exceeded, dropping message")
            return None

        # 5. Incoming log
        incoming = self._record(conversation, config, "incoming", message_text, message_type)

        # 6. Handoff
        if config.human_handoff_enabled and contains_handoff_keyword(message_text, config.human_handoff_keywords):
            return self._hand_off(config, conversation, sender_phone, log)

        # 7. Menu
        if config.menu_enabled and normalize(message_text) == normalize(config.menu_keyword):
            menu = render_menu(config.menu_options)
            if not menu:
                log.info("Menu requested but no options configured")
                return None
            return self._send(config, sender_phone, menu, conversation, OutcomeKind.MENU)

        # 8. Responders
        reply, failure_metadata = self._generate_reply(
            config, conversation, message_text, incoming.id if incoming else None
        )

        # 9. Fallback
        if reply is None and config.fallback_enabled and config.fallback_message:
            reply = _Reply(config.fallback_message, {"metadata": {"fallback": True, **failure_metadata}})

        if reply is None:
            log.info("No response produced")
            return None

        # 10. Send + log
        reply.fields["response_time"] = int((time.monotonic() - started) * 1000)
        return self._send(config, sender_phone, reply.text, conversation, OutcomeKind.BOT_RESPONSE, reply.fields)

    def _generate_reply(
        self,
        config: ChatbotConfig,
        conversation: ChatbotConversation,
        message_text: str,
        incoming_id: Optional[UUID],
    ) -> tuple[Optional[_Reply], dict]:
        if config.mode in (ChatbotMode.RULE_BASED, ChatbotMode.HYBRID):
            rule = match_rule(config.rules, message_text)
            if rule:
                text = render_template(rule.response, conversation, local_now(config.timezone))
                return _Reply(text, {"matched_rule": rule.model_dump(mode="json", by_alias=True)}), {}

        use_ai = config.mode == ChatbotMode.AI_POWERED or (
            config.mode == ChatbotMode.HYBRID and config.ai_provider is not None
        )
        if not use_ai:
            return None, {}

        result = generate_ai_reply(
            self.db,
            config,
            conversation.id,
            message_text,
            exclude_message_id=incoming_id,
            provider_factory=self.provider_factory,
        )
        if not result.ok:
            return None, {"ai_error": result.error, "ai_error_code": result.error_code}

        ai = result.value
        return (
            _Reply(
                ai.text,
                {
                    "is_ai_generated": True,
                    "ai_provider": ai.provider,
                    "ai_model": ai.model,
                    "ai_tokens_used": ai.tokens_used,
                    "ai_latency": ai.latency_ms,
                },
            ),
            {},
        )

    def _hand_off(
        self,
        config: ChatbotConfig,
        conversation: ChatbotConversation,
        sender_phone: str,
        log: ContextLogger,
    ) -> DispatchOutcome:
        try:
            with self.db.begin_nested():
                mark_handed_off(self.db, conversation)
        except (SQLAlchemyError, InvalidTransitionError) as exc:
            log.error("Failed to mark conversation handed off", context={"error": str(exc)})
        return self._send(config, sender_phone, config.human_handoff_message, conversation, OutcomeKind.HANDOFF)

    def _send(
        self,
        config: ChatbotConfig,
        phone: str,
        text: str,
        conversation: Optional[ChatbotConversation],
        kind: OutcomeKind,
        fields: Optional[dict] = None,
    ) -> DispatchOutcome:
        """Deliver first, then log. A failed write never retracts a delivered message."""
        provider_message_id = None
        error = None
        error_code = None
        try:
            result = self.sender.send_text(config.whatsapp_account_id, phone, text)
            provider_message_id = result.provider_message_id
        except WhatsAppSendError as exc:
            error, error_code = str(exc), exc.code
        except Exception as exc:
            error, error_code = str(exc) or repr(exc), "send_failed"

        if error:
            logger.error(
                "WhatsApp send failed",
                extra={"context": {"chatbot_id": str(config.id), "kind": kind.value, "error": error}},
            )

        if conversation is not None:
            row_fields = dict(fields or {})
            metadata = {**row_fields.pop("metadata", {}), "kind": kind.value}
            self._record(
                conversation,
                config,
                "outgoing",
                text,
                status="failed" if error else "sent",
                whatsapp_message_id=provider_message_id,
                error=error,
                error_code=error_code,
                message_metadata=metadata,
                **row_fields,
            )

        return DispatchOutcome(
            kind=kind,
            text=text,
            sent=error is None,
            conversation_id=conversation.id if conversation is not None else None,
            provider_message_id=provider_message_id,
            error=error,
        )

    def _record(
        self,
        conversation: ChatbotConversation,
        config: ChatbotConfig,
        direction: str,
        content: str,
        message_type: str = "text",
        **fields,
    ) -> Optional[ChatbotMessage]:
        try:
            with self.db.begin_nested():
                message = save_message(
                    self.db, conversation.id, config.id, direction, content, message_type, **fields
                )
                touch_conversation(conversation)
            return message
        except SQLAlchemyError as exc:
            logger.error(
                "Failed to persist chatbot message",
                extra={
                    "context": {
                        "conversation_id": str(conversation.id),
                        "direction": direction,
                        "error": str(exc),
                    }
                },
            )
            return None


def process_inbound_message(
    chatbot_id: UUID,
    sender_phone: str,
    message_text: str,
    message_type: str = "text",
    *,
    config_cache: ChatbotConfigCache,
    rate_limiter: RateLimiter,
    sender: WhatsAppSender,
    session_factory: Callable[[], Session] = SessionLocal,
) -> Optional[DispatchOutcome]:
    """Background entry point: own session, commit on the way out, never raise."""
    db = session_factory()
    try:
        engine = ChatbotEngine(db, config_cache, rate_limiter, sender)
        outcome = engine.handle(chatbot_id, sender_phone, message_text, message_type)
        db.commit()
        return outcome
    except Exception as exc:
        db.rollback()
        logger.error(
            "Inbound message processing failed",
            extra={"context": {"chatbot_id": str(chatbot_id), "error": str(exc)}},
        )
        return None
    finally:
        db.close()
