"""End-to-end tests for the Telegram and WhatsApp webhooks."""
import json
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest
import respx
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.main import app
from core.config import get_settings
from models.bookmark import Bookmark
from models.user import User
from services import bookmark_service
from tests.conftest import (
    GEMINI_URL,
    TELEGRAM_SEND_URL,
    WHAPI_SEND_URL,
    add_bookmark,
    make_settings,
)


def telegram_update(text: str | None, sender_id: int = 1001) -> dict[str, Any]:
    message: dict[str, Any] = {
        "message_id": 1,
        "from": {"id": sender_id, "is_bot": False, "first_name": "Alice", "username": "alice"},
        "chat": {"id": 5001, "type": "private"},
        "date": 1700000000,
    }
    if text is not None:
        message["text"] = text
    return {"update_id": 1, "message": message}


def whatsapp_payload(text: str | None, sender: str = "15551234567") -> dict[str, Any]:
    message: dict[str, Any] = {
        "id": "msg-1",
        "from": sender,
        "chat_id": f"{sender}@s.whatsapp.net",
        "type": "text" if text is not None else "image",
    }
    if text is not None:
        message["text"] = {"body": text}
    return {"messages": [message], "event": {"type": "messages", "event": "post"}}


def sent_body(route: respx.Route) -> dict[str, Any]:
    return json.loads(route.calls.last.request.content)


async def _bookmark_count(db_session: AsyncSession) -> int:
    result = await db_session.execute(select(func.count()).select_from(Bookmark))
    return result.scalar_one()


# =============================================================================
# Preflight
# =============================================================================


@pytest.mark.parametrize("path", ["/webhooks/telegram", "/webhooks/whatsapp"])
async def test__webhook_preflight__returns_cors_headers(client: AsyncClient, path: str) -> None:
    response = await client.options(path)

    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "*"
    assert "content-type" in response.headers["access-control-allow-headers"]


# =============================================================================
# Telegram
# =============================================================================


async def test__telegram_webhook__linked_user_reading_list(
    client: AsyncClient,
    db_session: AsyncSession,
    test_user: User,
    respx_mock: respx.MockRouter,
) -> None:
    await add_bookmark(
        db_session, test_user, "Later", url="https://later.example.com/", reading=True,
    )
    route = respx_mock.post(TELEGRAM_SEND_URL).mock(return_value=httpx.Response(200, json={}))

    response = await client.post("/webhooks/telegram", json=telegram_update("reading list"))

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert response.headers["access-control-allow-origin"] == "*"
    body = sent_body(route)
    assert body["chat_id"] == "5001"
    assert body["parse_mode"] == "Markdown"
    assert "*Later*" in body["text"]


async def test__telegram_webhook__add_command_stores_bookmark(
    client: AsyncClient,
    db_session: AsyncSession,
    test_user: User,  # noqa: ARG001
    respx_mock: respx.MockRouter,
) -> None:
    route = respx_mock.post(TELEGRAM_SEND_URL).mock(return_value=httpx.Response(200, json={}))

    response = await client.post(
        "/webhooks/telegram",
        json=telegram_update("add https://x.com | Title | tech,tutorial | A desc"),
    )

    assert response.status_code == 200
    assert sent_body(route)["text"].startswith("✅ Bookmark added successfully!")
    assert await _bookmark_count(db_session) == 1


async def test__telegram_webhook__unlinked_sender_gets_link(
    client: AsyncClient,
    respx_mock: respx.MockRouter,
) -> None:
    route = respx_mock.post(TELEGRAM_SEND_URL).mock(return_value=httpx.Response(200, json={}))

    response = await client.post("/webhooks/telegram", json=telegram_update("list", sender_id=777))

    assert response.status_code == 200
    assert route.call_count == 1
    assert (
        "https://bookmarks.example.com/auth?telegram_id=777&username=alice"
        in sent_body(route)["text"]
    )


async def test__telegram_webhook__free_text_relayed_to_gemini(
    client: AsyncClient,
    test_user: User,  # noqa: ARG001
    respx_mock: respx.MockRouter,
) -> None:
    gemini = respx_mock.post(GEMINI_URL).mock(
        return_value=httpx.Response(
            200, json={"candidates": [{"content": {"parts": [{"text": "Paris."}]}}]},
        ),
    )
    route = respx_mock.post(TELEGRAM_SEND_URL).mock(return_value=httpx.Response(200, json={}))

    response = await client.post(
        "/webhooks/telegram", json=telegram_update("What is the capital of France?"),
    )

    assert response.status_code == 200
    assert gemini.call_count == 1
    assert sent_body(route)["text"] == "Paris."


async def test__telegram_webhook__no_text_is_ok(
    client: AsyncClient,
    respx_mock: respx.MockRouter,
) -> None:
    route = respx_mock.post(TELEGRAM_SEND_URL)

    no_text = await client.post("/webhooks/telegram", json=telegram_update(None))
    no_message = await client.post("/webhooks/telegram", json={"update_id": 2})

    assert no_text.json() == {"ok": True}
    assert no_message.json() == {"ok": True}
    assert route.call_count == 0


async def test__telegram_webhook__malformed_json_returns_500(client: AsyncClient) -> None:
    response = await client.post(
        "/webhooks/telegram",
        content=b"not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 500
    assert "error" in response.json()


async def test__telegram_webhook__send_failure_returns_500_and_rolls_back(
    client: AsyncClient,
    db_session: AsyncSession,
    test_user: User,  # noqa: ARG001
    respx_mock: respx.MockRouter,
) -> None:
    respx_mock.post(TELEGRAM_SEND_URL).mock(
        return_value=httpx.Response(403, text="Forbidden: bot was blocked by the user"),
    )

    response = await client.post(
        "/webhooks/telegram", json=telegram_update("add https://x.com | Title"),
    )

    assert response.status_code == 500
    assert response.json() == {
        "error": "Failed to send telegram message: Forbidden: bot was blocked by the user",
    }
    assert await _bookmark_count(db_session) == 0


async def test__telegram_webhook__gemini_failure_returns_500(
    client: AsyncClient,
    test_user: User,  # noqa: ARG001
    respx_mock: respx.MockRouter,
) -> None:
    respx_mock.post(GEMINI_URL).mock(return_value=httpx.Response(503))
    route = respx_mock.post(TELEGRAM_SEND_URL)

    response = await client.post("/webhooks/telegram", json=telegram_update("hi there"))

    assert response.status_code == 500
    assert "HTTP 503" in response.json()["error"]
    assert route.call_count == 0


async def test__telegram_webhook__store_failure_still_returns_200(
    client: AsyncClient,
    test_user: User,  # noqa: ARG001
    respx_mock: respx.MockRouter,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """A store error is reported to the user as a chat reply, not as a failed webhook."""
    monkeypatch.setattr(
        bookmark_service,
        "search_bookmarks",
        AsyncMock(side_effect=SQLAlchemyError("connection lost")),
    )
    route = respx_mock.post(TELEGRAM_SEND_URL).mock(return_value=httpx.Response(200, json={}))

    response = await client.post("/webhooks/telegram", json=telegram_update("list"))

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert sent_body(route)["text"].startswith("❌ Error fetching bookmarks:")


async def test__telegram_webhook__missing_bot_token_returns_500(
    client: AsyncClient,
    respx_mock: respx.MockRouter,
) -> None:
    app.dependency_overrides[get_settings] = lambda: make_settings(telegram_bot_token=None)
    route = respx_mock.post(TELEGRAM_SEND_URL)

    response = await client.post("/webhooks/telegram", json=telegram_update("list"))

    assert response.status_code == 500
    assert response.json() == {"error": "TELEGRAM_BOT_TOKEN not configured"}
    assert route.call_count == 0


# =============================================================================
# WhatsApp
# =============================================================================


async def test__whatsapp_webhook__linked_user_list(
    client: AsyncClient,
    db_session: AsyncSession,
    test_user: User,
    respx_mock: respx.MockRouter,
) -> None:
    await add_bookmark(db_session, test_user, "Saved", url="https://saved.example.com/")
    route = respx_mock.post(WHAPI_SEND_URL).mock(return_value=httpx.Response(200, json={}))

    response = await client.post("/webhooks/whatsapp", json=whatsapp_payload("show all"))

    assert response.status_code == 200
    assert response.json() == {"success": True}
    body = sent_body(route)
    assert body["to"] == "15551234567@s.whatsapp.net"
    assert "*Saved*" in body["body"]


async def test__whatsapp_webhook__unlinked_number(
    client: AsyncClient,
    respx_mock: respx.MockRouter,
) -> None:
    route = respx_mock.post(WHAPI_SEND_URL).mock(return_value=httpx.Response(200, json={}))

    response = await client.post(
        "/webhooks/whatsapp", json=whatsapp_payload("list", sender="15550000000"),
    )

    assert response.status_code == 200
    assert sent_body(route)["body"].startswith("❌ Phone number not linked.")


async def test__whatsapp_webhook__malformed_add_sends_usage(
    client: AsyncClient,
    test_user: User,  # noqa: ARG001
    respx_mock: respx.MockRouter,
) -> None:
    route = respx_mock.post(WHAPI_SEND_URL).mock(return_value=httpx.Response(200, json={}))

    response = await client.post(
        "/webhooks/whatsapp", json=whatsapp_payload("add onlyoneparttext"),
    )

    assert response.status_code == 200
    assert sent_body(route)["body"].startswith("❌ Invalid format.")


async def test__whatsapp_webhook__no_messages(
    client: AsyncClient,
    respx_mock: respx.MockRouter,
) -> None:
    route = respx_mock.post(WHAPI_SEND_URL)

    response = await client.post("/webhooks/whatsapp", json={"messages": []})
    missing = await client.post("/webhooks/whatsapp", json={})

    assert response.json() == {"success": True, "message": "No messages to process"}
    assert missing.json() == {"success": True, "message": "No messages to process"}
    assert route.call_count == 0


async def test__whatsapp_webhook__non_text_message_is_ignored(
    client: AsyncClient,
    test_user: User,  # noqa: ARG001
    respx_mock: respx.MockRouter,
) -> None:
    route = respx_mock.post(WHAPI_SEND_URL)

    response = await client.post("/webhooks/whatsapp", json=whatsapp_payload(None))

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert route.call_count == 0


async def test__whatsapp_webhook__only_first_message_processed(
    client: AsyncClient,
    test_user: User,  # noqa: ARG001
    respx_mock: respx.MockRouter,
) -> None:
    route = respx_mock.post(WHAPI_SEND_URL).mock(return_value=httpx.Response(200, json={}))
    payload = whatsapp_payload("reading list")
    payload["messages"].append(whatsapp_payload("list")["messages"][0])

    response = await client.post("/webhooks/whatsapp", json=payload)

    assert response.status_code == 200
    assert route.call_count == 1


async def test__whatsapp_webhook__missing_api_token_returns_500(
    client: AsyncClient,
) -> None:
    app.dependency_overrides[get_settings] = lambda: make_settings(whapi_api_token=None)

    response = await client.post("/webhooks/whatsapp", json=whatsapp_payload("list"))

    assert response.status_code == 500
    assert response.json() == {"error": "WHAPI_API_TOKEN not configured"}


async def test__whatsapp_webhook__send_failure_returns_500(
    client: AsyncClient,
    test_user: User,  # noqa: ARG001
    respx_mock: respx.MockRouter,
) -> None:
    respx_mock.post(WHAPI_SEND_URL).mock(return_value=httpx.Response(500, text="gateway down"))

    response = await client.post("/webhooks/whatsapp", json=whatsapp_payload("list"))

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to send whatsapp message: gateway down"}


async def test__whatsapp_webhook__store_failure_still_returns_200(
    client: AsyncClient,
    test_user: User,  # noqa: ARG001
    respx_mock: respx.MockRouter,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(
        bookmark_service,
        "search_bookmarks",
        AsyncMock(side_effect=SQLAlchemyError("connection lost")),
    )
    route = respx_mock.post(WHAPI_SEND_URL).mock(return_value=httpx.Response(200, json={}))

    response = await client.post("/webhooks/whatsapp", json=whatsapp_payload("list"))

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert sent_body(route)["body"].startswith("❌ Error fetching bookmarks:")
