"""Shared exceptions for service layer operations."""


class ChatError(Exception):
    """
    Base exception for failures in the chat webhook chain.

    Any ChatError that reaches the webhook endpoint is terminal for the request
    and is answered with HTTP 500 so the chat platform may redeliver.
    """


class MissingConfigError(ChatError):
    """Raised when a required secret (bot token, API key) is not configured."""

    def __init__(self, setting_name: str) -> None:
        self.setting_name = setting_name
        super().__init__(f"{setting_name} not configured")


class MessageDeliveryError(ChatError):
    """Raised when the chat provider rejects or fails an outbound message."""

    def __init__(self, platform: str, detail: str) -> None:
        self.platform = platform
        self.detail = detail
        super().__init__(f"Failed to send {platform} message: {detail}")


class AIRelayError(ChatError):
    """Raised when the generative-AI completion call fails."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"AI completion failed: {detail}")


class IdentityAlreadyLinkedError(Exception):
    """Raised when a chat identity is already linked to another account."""

    def __init__(self, platform: str, external_id: str) -> None:
        self.platform = platform
        self.external_id = external_id
        super().__init__(f"This {platform} identity is already linked to another account")
