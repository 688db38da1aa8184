"""Pydantic schemas for inbound chat platform webhook payloads."""
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class TelegramUser(BaseModel):
    """Sender of a Telegram message."""

    id: int
    username: str | None = None
    first_name: str | None = None

    @property
    def display_name(self) -> str:
        """Username, first name, or a generic fallback."""
        return self.username or self.first_name or "User"


class TelegramChat(BaseModel):
    """Chat a Telegram message was sent in."""

    id: int


class TelegramMessage(BaseModel):
    """The `message` object of a Telegram update."""

    model_config = ConfigDict(populate_by_name=True)

    from_: TelegramUser = Field(alias="from")
    chat: TelegramChat
    text: str | None = None


class TelegramUpdate(BaseModel):
    """Telegram webhook update. Only `message` updates are handled."""

    message: TelegramMessage | None = None


class WhatsAppText(BaseModel):
    """Text content of a WhatsApp message."""

    body: str = ""


class WhatsAppMessage(BaseModel):
    """A single message from a Whapi webhook delivery."""

    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    text: WhatsAppText | None = None
    chat_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("chatId", "chat_id"),
    )

    @property
    def body(self) -> str:
        """Message text, empty for non-text messages."""
        return self.text.body if self.text else ""

    @property
    def reply_to(self) -> str:
        """Chat to reply to; falls back to the sender."""
        return self.chat_id or self.from_


class WhatsAppWebhook(BaseModel):
    """Whapi webhook payload."""

    messages: list[WhatsAppMessage] = []
