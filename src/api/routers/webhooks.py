"""
Chat platform webhook endpoints (Telegram, WhatsApp).

Platforms redeliver a webhook unless it is answered with 200, so anything the
user should know about (unlinked account, bad command, store error) is sent
back as a chat reply and the webhook still succeeds. Only failures of the
request itself (malformed payload, missing secret, delivery or AI failure)
return 500.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_settings
from core.config import Settings
from schemas.webhooks import TelegramUpdate, WhatsAppWebhook
from services.chat_dispatcher import InboundMessage, dispatch_message


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def _json(content: dict[str, Any], status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, headers=CORS_HEADERS)


async def _fail(db: AsyncSession, platform: str, exc: Exception) -> JSONResponse:
    """Roll back the request's changes and answer 500 so the platform may redeliver."""
    logger.exception("Error processing %s webhook", platform)
    await db.rollback()
    return _json({"error": str(exc)}, status_code=500)


@router.options("/telegram")
@router.options("/whatsapp")
async def webhook_preflight() -> Response:
    """Answer CORS preflight requests with an empty body."""
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post("/telegram")
async def telegram_webhook(
    request: Request,
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """Handle a Telegram bot update."""
    try:
        update = TelegramUpdate.model_validate(await request.json())
        message = update.message
        if message is None or not message.text:
            return _json({"ok": True})

        logger.info("Received Telegram message from %s", message.from_.id)
        await dispatch_message(
            db,
            InboundMessage(
                platform="telegram",
                sender_external_id=str(message.from_.id),
                chat_id=str(message.chat.id),
                text=message.text,
                sender_name=message.from_.display_name,
            ),
            settings,
        )
    except Exception as e:
        return await _fail(db, "telegram", e)

    return _json({"ok": True})


@router.post("/whatsapp")
async def whatsapp_webhook(
    request: Request,
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """Handle a Whapi WhatsApp webhook delivery. Only the first message is processed."""
    try:
        payload = WhatsAppWebhook.model_validate(await request.json())
        if not payload.messages:
            return _json({"success": True, "message": "No messages to process"})

        message = payload.messages[0]
        logger.info("Received WhatsApp message from %s", message.from_)
        await dispatch_message(
            db,
            InboundMessage(
                platform="whatsapp",
                sender_external_id=message.from_,
                chat_id=message.reply_to,
                text=message.body,
            ),
            settings,
        )
    except Exception as e:
        return await _fail(db, "whatsapp", e)

    return _json({"success": True})
