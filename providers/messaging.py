"""Messaging gateway: delivers sanitized replies to the end user."""

import logging
import re
from abc import ABC, abstractmethod
from typing import Optional

import requests

logger = logging.getLogger(__name__)

FALLBACK_TEXT = "🤔 No he podido formular una respuesta. ¿Podrías contarme un poco más?"
ELLIPSIS = "…"

_MARKDOWN_EMPHASIS = re.compile(r"\*+")


class DeliveryFailure(Exception):
    """The gateway could not deliver a message."""


def prepare_outbound_text(
    text: Optional[str],
    max_length: int = 4096,
    fallback: str = FALLBACK_TEXT
) -> str:
    """
    Apply the gateway's text constraints.

    Strips Markdown emphasis markers the chat client would render literally,
    substitutes the fallback for empty text, and truncates with an ellipsis
    when over max_length.
    """
    cleaned = _MARKDOWN_EMPHASIS.sub("", text or "").strip()
    if not cleaned:
        cleaned = fallback
    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length - len(ELLIPSIS)].rstrip() + ELLIPSIS
    return cleaned


class MessagingGateway(ABC):

    @abstractmethod
    def send_message(self, chat_id: str, text: str) -> None:
        pass

    def send_typing(self, chat_id: str) -> None:
        """Optional "typing..." indicator."""
        pass


class TelegramGateway(MessagingGateway):
    """Telegram Bot API gateway."""

    API_URL = "https://api.telegram.org"
    MAX_MESSAGE_LENGTH = 4096

    def __init__(self, token: str, timeout: float = 10.0, max_length: Optional[int] = None):
        """
        Initialize gateway.

        Args:
            token: Bot token issued by BotFather
            timeout: Request timeout in seconds
            max_length: Message length bound (default: Telegram's 4096)
        """
        if ":" not in token:
            logger.warning("TELEGRAM_TOKEN looks malformed (expected '<id>:<secret>')")
        self.base_url = f"{self.API_URL}/bot{token}"
        self.timeout = timeout
        self.max_length = max_length or self.MAX_MESSAGE_LENGTH
        self.session = requests.Session()

    def _post(self, method: str, payload: dict) -> dict:
        try:
            response = self.session.post(
                f"{self.base_url}/{method}",
                json=payload,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise DeliveryFailure(f"Telegram {method} failed: {e}") from e

        if response.status_code != 200:
            raise DeliveryFailure(
                f"Telegram {method} returned {response.status_code}: {response.text[:200]}"
            )
        try:
            return response.json()
        except ValueError as e:
            raise DeliveryFailure(f"Telegram {method} returned a non-JSON body") from e

    def send_message(self, chat_id: str, text: str) -> None:
        payload = {
            "chat_id": chat_id,
            "text": prepare_outbound_text(text, max_length=self.max_length),
        }
        self._post("sendMessage", payload)
        logger.info(f"Message delivered to chat {chat_id}")

    def send_typing(self, chat_id: str) -> None:
        try:
            self._post("sendChatAction", {"chat_id": chat_id, "action": "typing"})
        except DeliveryFailure as e:
            logger.warning(f"Typing indicator not sent: {e}")
