"""
File: app/main.py

Project: AgriConnect WhatsApp Bot

Purpose:
Application entry point.
Responsible only for:
- FastAPI app creation
- Router registration
- Meta WhatsApp webhook verification (GET)

Design principles:
- No business logic in this file
- No outbound message creation
- All inbound WhatsApp processing is delegated to app.webhooks
- POST /webhooks/whatsapp is defined exactly once via router inclusion
"""

import logging

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import PlainTextResponse

from app.config import load_settings
from app.health import router as health_router
from app.webhooks import router as webhooks_router

logger = logging.getLogger("main")

app = FastAPI(title="AgriConnect WhatsApp Bot")

# -------------------------------------------------------------------
# Webhook routes (POST /webhooks/whatsapp)
# -------------------------------------------------------------------
app.include_router(webhooks_router)

# -------------------------------------------------------------------
# Health (GET /health, GET /health/db)
# -------------------------------------------------------------------
app.include_router(health_router)


# -------------------------------------------------------------------
# Meta webhook verification (GET)
# -------------------------------------------------------------------
@app.get("/webhooks/whatsapp", response_class=PlainTextResponse)
def verify_webhook(request: Request):
    params = request.query_params

    mode = params.get("hub.mode")
    token = params.get("hub.verify_token")
    challenge = params.get("hub.challenge")

    verify_token = load_settings().verify_token

    if mode == "subscribe" and verify_token and token == verify_token and challenge:
        logger.info("Webhook verified successfully")
        return challenge

    logger.warning("Webhook verification failed (mode=%s)", mode)
    raise HTTPException(status_code=403, detail="Forbidden")
