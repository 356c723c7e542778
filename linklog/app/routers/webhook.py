from __future__ import annotations

import asyncio
import hmac
from typing import Any

from fastapi import APIRouter, Header, Request, Response
from loguru import logger

from linklog.app.application.ingestion_service import IngestionOutcome
from linklog.app.core import SERVICE_NAME
from linklog.app.schemas.telegram import TelegramUpdate, WebhookAck

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"
REPLY_TIMEOUT_DEFAULT = 10.0
FAILURE_REPLY = "❌ Could not save this link right now. Please send it again later."

webhook_router = APIRouter(tags=["Telegram"])


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


def reply_text_for(outcome: IngestionOutcome) -> str | None:
    """Chat reply for an outcome; None means stay silent."""
    if outcome.saved and outcome.record is not None:
        return f"✅ Saved: {outcome.record.display_name}"
    if outcome.queued and outcome.record is not None:
        return f"⏳ Queued for retry: {outcome.record.display_name}"
    return None


def _secret_matches(request: Request, provided: str | None) -> bool:
    settings = getattr(request.app.state, "settings", None)
    expected = getattr(settings, "webhook_secret", "") if settings is not None else ""
    if not expected or provided is None:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())


async def _reply(request: Request, chat_id: int, text: str) -> None:
    sender = getattr(request.app.state, "reply_sender", None)
    if sender is None:
        return
    settings = getattr(request.app.state, "settings", None)
    timeout_s = getattr(settings, "reply_timeout_seconds", REPLY_TIMEOUT_DEFAULT)
    try:
        await asyncio.wait_for(sender.send(chat_id, text), timeout=timeout_s)
    except Exception as exc:
        logger.warning("reply to chat {} failed: {}", chat_id, exc)


@webhook_router.post(
    "/webhook",
    summary="Telegram webhook",
    description="Receives a Telegram update, saves the first URL in the message as a bookmark and replies with the outcome. Always answers 200 for authenticated updates so Telegram does not redeliver.",
    response_model=WebhookAck,
    responses={
        200: {"description": "Update handled (saved, queued, ignored, or failed and reported to the chat)."},
        401: {"description": "Missing or wrong secret token header."},
        503: {"description": "Ingestion service not initialized."},
    },
)
async def telegram_webhook(
    request: Request,
    x_telegram_bot_api_secret_token: str | None = Header(default=None),
) -> Any:
    if not _secret_matches(request, x_telegram_bot_api_secret_token):
        _log("webhook_unauthorized")
        return Response(status_code=401, content="Unauthorized")

    ingestion = getattr(request.app.state, "ingestion_service", None)
    if ingestion is None:
        return Response(status_code=503, content="Ingestion not available")

    try:
        update = TelegramUpdate.model_validate(await request.json())
    except ValueError as exc:
        # Acknowledged so Telegram stops redelivering it.
        logger.warning("unreadable webhook update dropped: {}", exc)
        return WebhookAck()

    message = update.message
    if message is None:
        return WebhookAck()

    chat_id = message.chat.id
    try:
        outcome = await ingestion.submit(message.body, chat_id=chat_id)
    except Exception as exc:
        logger.exception("webhook update {} failed: {}", update.update_id, exc)
        await _reply(request, chat_id, FAILURE_REPLY)
        return WebhookAck()

    if outcome.ignored:
        _log("update_ignored", chat_id=chat_id, reason=outcome.reason)
    text = reply_text_for(outcome)
    if text:
        await _reply(request, chat_id, text)
    return WebhookAck()
