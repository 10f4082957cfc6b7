"""
File: app/webhooks.py
Path: app/webhooks.py

Project: AgriConnect WhatsApp Bot

Purpose:
Inbound WhatsApp webhook handler (POST).

Pipeline:
- Parse the Meta payload: entry[0].changes[0].value.messages[0]
- Hand (sender, text) to the ConversationEngine
- Always acknowledge with 200 OK

Notes:
- Status callbacks and other payloads without a message are acknowledged and ignored
- Media / location messages carry no text body and are processed as empty text
- Processing errors are logged, never surfaced to Meta (it would redeliver)
"""

import logging
import threading

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from app.config import SESSION_BACKEND_DATABASE, load_settings
from app.conversation.engine import ConversationEngine
from app.conversation.session_store import InMemorySessionStore, SqlSessionStore
from app.db import get_session_factory, init_db
from app.outbound.factory import build_send_gateway
from app.services.catalog_service import CatalogGateway

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
logger = logging.getLogger("webhooks")
logging.basicConfig(level=logging.INFO)


# -------------------------------------------------
# Conversation engine singleton
# -------------------------------------------------
_engine: ConversationEngine | None = None
_engine_lock = threading.Lock()


def _build_conversation_engine() -> ConversationEngine:
    settings = load_settings()
    session_factory = get_session_factory()

    # create_all skips tables that already exist
    init_db()

    if settings.session_backend == SESSION_BACKEND_DATABASE:
        store = SqlSessionStore(session_factory)
    else:
        store = InMemorySessionStore()

    engine = ConversationEngine(
        store=store,
        catalog=CatalogGateway(session_factory),
        gateway=build_send_gateway(settings.outbound_mode),
        default_farmer_id=settings.default_farmer_id,
    )
    logger.info(
        "Conversation engine ready (sessions=%s, outbound=%s)",
        settings.session_backend,
        settings.outbound_mode,
    )
    return engine


def get_conversation_engine() -> ConversationEngine:
    global _engine
    if _engine is None:
        # FastAPI resolves sync dependencies in a threadpool
        with _engine_lock:
            if _engine is None:
                _engine = _build_conversation_engine()
    return _engine


# -------------------------------------------------
# Payload extraction
# -------------------------------------------------
def _extract_message(payload: dict) -> dict | None:
    try:
        message = payload["entry"][0]["changes"][0]["value"]["messages"][0]
    except (KeyError, IndexError, TypeError):
        return None
    return message if isinstance(message, dict) else None


def _extract_sender_number(message: dict) -> str | None:
    sender = message.get("from")
    return str(sender) if sender else None


def _extract_message_text(message: dict) -> str:
    text = message.get("text")
    if isinstance(text, dict):
        return str(text.get("body") or "")
    return ""


@router.post("/whatsapp", response_class=PlainTextResponse)
async def whatsapp_webhook(
    request: Request,
    engine: ConversationEngine = Depends(get_conversation_engine),
):
    # ---- Parse payload ----
    try:
        payload = await request.json()
    except Exception:
        logger.warning("Webhook body is not JSON")
        return "OK"

    message = _extract_message(payload)
    if message is None:
        logger.info("Webhook without messages ignored")
        return "OK"

    sender_number = _extract_sender_number(message)
    if not sender_number:
        logger.warning("Message without sender ignored")
        return "OK"

    message_text = _extract_message_text(message)

    logger.info("Sender number: %s", sender_number)
    logger.info("Message text: %s", message_text)

    try:
        engine.handle_message(sender_number, message_text)
    except Exception:
        logger.exception("Conversation processing failed for %s", sender_number)

    return "OK"
