"""
Dispatch an inbound chat message to the right bookmark command.

Shared by the Telegram and WhatsApp webhooks. Each call handles one message
as a strictly sequential chain: resolve the sender's account, parse the text,
run the command, and send the reply. Nothing is retried; a delivery or AI
failure propagates to the webhook endpoint.
"""
import logging
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import quote

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from services.chat_commands import Unrecognized, parse_command
from services.chat_executor import execute_command
from services.gemini_client import GeminiClient
from services.messenger_client import Messenger, get_messenger
from services.user_service import Platform, resolve_account

logger = logging.getLogger(__name__)

START_COMMAND = "/start"

WHATSAPP_NOT_LINKED = (
    "❌ Phone number not linked. Please link your WhatsApp in the web app settings first."
)


@dataclass(frozen=True)
class InboundMessage:
    """A chat message extracted from a platform webhook envelope."""

    platform: Platform
    sender_external_id: str
    chat_id: str
    text: str
    sender_name: str = "User"


class Completer(Protocol):
    """Anything that turns a prompt into a reply, e.g. GeminiClient."""

    async def complete(self, prompt: str) -> str:
        """Return the model's reply to prompt."""
        ...


def telegram_link_url(settings: Settings, message: InboundMessage) -> str:
    """URL of the web app page that links a Telegram user to an account."""
    return (
        f"{settings.frontend_url.rstrip('/')}/auth"
        f"?telegram_id={message.sender_external_id}"
        f"&username={quote(message.sender_name, safe='')}"
    )


def linking_prompt(settings: Settings, message: InboundMessage) -> str:
    """Reply sent to a sender whose chat identity isn't linked to an account."""
    if message.platform == "telegram":
        return (
            "👋 Welcome! To use this bot, please link your account:\n\n"
            f"{telegram_link_url(settings, message)}\n\n"
            "Click the link above to login or create an account."
        )
    return WHATSAPP_NOT_LINKED


def start_greeting(message: InboundMessage) -> str:
    """Reply to the Telegram /start command."""
    return (
        f"Hello {message.sender_name}! 👋\n\n"
        "I'm your bookmark assistant. Send *list*, *reading list*, "
        "*add [url] | [title] | [tags]* or *search [query]*, "
        "or ask me anything else and I'll answer with Gemini."
    )


async def dispatch_message(
    db: AsyncSession,
    message: InboundMessage,
    settings: Settings,
    messenger: Messenger | None = None,
    completer: Completer | None = None,
) -> str | None:
    """
    Handle one inbound chat message and send the reply.

    Args:
        db: Database session.
        message: The extracted inbound message.
        settings: Application settings (tokens, URLs).
        messenger: Outbound sender; built from settings when omitted.
        completer: AI relay for unrecognized Telegram text; built from
            settings on first use when omitted.

    Returns:
        The reply that was sent, or None for an empty message.

    Raises:
        MissingConfigError: If a required token is not configured.
        MessageDeliveryError: If the reply could not be delivered.
        AIRelayError: If the AI relay call failed.
    """
    text = message.text.strip()
    if not text:
        logger.info("Ignoring empty %s message from %s", message.platform, message.sender_external_id)
        return None

    if messenger is None:
        messenger = get_messenger(message.platform, settings)

    user = await resolve_account(db, message.platform, message.sender_external_id)
    if user is None:
        logger.info(
            "Unlinked %s sender %s; sending linking prompt",
            message.platform,
            message.sender_external_id,
        )
        reply = linking_prompt(settings, message)
        await messenger.send(message.chat_id, reply)
        return reply

    if message.platform == "telegram" and text == START_COMMAND:
        reply = start_greeting(message)
        await messenger.send(message.chat_id, reply)
        return reply

    command = parse_command(text)
    logger.info("Dispatching %s for user %s via %s", type(command).__name__, user.id, message.platform)

    if message.platform == "telegram" and isinstance(command, Unrecognized):
        if completer is None:
            completer = GeminiClient.from_settings(settings)
        reply = await completer.complete(command.raw_text)
    else:
        reply = await execute_command(db, command, user.id)

    await messenger.send(message.chat_id, reply)
    return reply
