from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from chatbot_engine.config import settings
from chatbot_engine.logging_config import get_logger

logger = get_logger("whatsapp_client")


@dataclass
class SendResult:
    provider_message_id: Optional[str]


class WhatsAppSendError(Exception):
    def __init__(self, message: str, code: str = "send_failed", status_code: Optional[int] = None):
        self.code = code
        self.status_code = status_code
        super().__init__(message)


class WhatsAppSender(Protocol):
    def send_text(self, account_id: Optional[str], phone: str, text: str) -> SendResult: ...


class WhatsAppCloudClient:
    """Text sends through the WhatsApp Cloud (Graph) API."""

    def __init__(
        self,
        access_token: Optional[str] = None,
        base_url: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.access_token = access_token if access_token is not None else settings.whatsapp_access_token
        self.base_url = (base_url or settings.whatsapp_api_base_url).rstrip("/")
        self.api_version = api_version or settings.whatsapp_api_version
        self.timeout_seconds = timeout_seconds or settings.whatsapp_send_timeout_seconds

    def send_text(self, account_id: Optional[str], phone: str, text: str) -> SendResult:
        """
        Send ``text`` to ``phone`` from the business number ``account_id``.

        Raises WhatsAppSendError on missing credentials, transport failure or
        a non-2xx answer.
        """
        if not self.access_token:
            raise WhatsAppSendError("WhatsApp access token is not configured", "missing_token")
        if not account_id:
            raise WhatsAppSendError("Chatbot has no WhatsApp phone number id", "missing_account")

        url = f"{self.base_url}/{self.api_version}/{account_id}/messages"
        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": phone,
            "type": "text",
            "text": {"body": text},
        }

        try:
            with httpx.Client(timeout=self.timeout_seconds) as client:
                response = client.post(
                    url,
                    headers={
                        "Authorization": f"Bearer {self.access_token}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
        except httpx.HTTPError as exc:
            logger.error(f"WhatsApp send transport error: {exc}", extra={"context": {"to": phone}})
            raise WhatsAppSendError(str(exc), "network_error") from exc

        logger.info(f"WhatsApp response: status={response.status_code}, to={phone}")
        if response.status_code >= 300:
            raise WhatsAppSendError(
                f"WhatsApp API error {response.status_code}: {response.text[:200]}",
                f"http_{response.status_code}",
                response.status_code,
            )

        data = response.json()
        messages = data.get("messages") or []
        message_id = messages[0].get("id") if messages else None
        return SendResult(provider_message_id=message_id)


class CapturingSender:
    """Keeps outgoing texts in memory instead of sending them. Used for dry runs."""

    def __init__(self):
        self.sent: list[tuple[Optional[str], str, str]] = []

    def send_text(self, account_id: Optional[str], phone: str, text: str) -> SendResult:
        self.sent.append((account_id, phone, text))
        return SendResult(provider_message_id=None)
