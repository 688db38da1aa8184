"""Outbound message delivery to the chat platforms."""
import logging
from typing import Protocol

import httpx

from core.config import Settings
from services.exceptions import MessageDeliveryError
from services.user_service import Platform

logger = logging.getLogger(__name__)


class Messenger(Protocol):
    """Sends a text reply to a chat on one platform."""

    platform: Platform

    async def send(self, chat_id: str, text: str) -> None:
        """Deliver text to chat_id. Raises MessageDeliveryError on failure."""
        ...


async def _post(
    platform: Platform,
    url: str,
    payload: dict,
    timeout: float,
    headers: dict[str, str] | None = None,
) -> None:
    """POST a JSON payload and raise MessageDeliveryError unless it returns 2xx."""
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(url, json=payload, headers=headers)
    except httpx.HTTPError as e:
        raise MessageDeliveryError(platform, str(e) or type(e).__name__) from e

    if not response.is_success:
        logger.error("%s API error (%s): %s", platform, response.status_code, response.text)
        raise MessageDeliveryError(platform, response.text or f"HTTP {response.status_code}")


class TelegramMessenger:
    """Sends Markdown messages through the Telegram Bot API."""

    platform: Platform = "telegram"

    def __init__(self, bot_token: str, api_base: str, timeout: float) -> None:
        self.bot_token = bot_token
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout

    async def send(self, chat_id: str, text: str) -> None:
        """Send a message to a Telegram chat."""
        await _post(
            self.platform,
            f"{self.api_base}/bot{self.bot_token}/sendMessage",
            {"chat_id": chat_id, "text": text, "parse_mode": "Markdown"},
            self.timeout,
        )


class WhatsAppMessenger:
    """Sends text messages through the Whapi WhatsApp gateway."""

    platform: Platform = "whatsapp"

    def __init__(self, api_token: str, api_base: str, timeout: float) -> None:
        self.api_token = api_token
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout

    async def send(self, chat_id: str, text: str) -> None:
        """Send a message to a WhatsApp chat."""
        await _post(
            self.platform,
            f"{self.api_base}/messages/text",
            {"to": chat_id, "body": text},
            self.timeout,
            headers={"Authorization": f"Bearer {self.api_token}"},
        )
        logger.info("WhatsApp message sent to %s", chat_id)


def get_messenger(platform: Platform, settings: Settings) -> Messenger:
    """
    Build the messenger for a platform from settings.

    Raises:
        MissingConfigError: If the platform's token is not configured.
    """
    if platform == "telegram":
        return TelegramMessenger(
            bot_token=settings.require("telegram_bot_token"),
            api_base=settings.telegram_api_base,
            timeout=settings.http_timeout,
        )
    return WhatsAppMessenger(
        api_token=settings.require("whapi_api_token"),
        api_base=settings.whapi_api_base,
        timeout=settings.http_timeout,
    )
