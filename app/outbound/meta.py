"""
File: app/outbound/meta.py
Path: app/outbound/meta.py

Project: AgriConnect WhatsApp Bot

Purpose:
Meta WhatsApp Cloud API client and the SendGateway built on it.
Supports:
- Session messages (free text) only
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
import requests

from app.outbound.gateway import (
    SendGateway,
    OutboundSendRequest,
    OutboundSendReceipt,
    SendStatus,
)
from app.outbound.settings import MetaWhatsAppSettings

logger = logging.getLogger("outbound.meta")


class MetaWhatsAppError(RuntimeError):
    pass


@dataclass(frozen=True)
class MetaSendResult:
    ok: bool
    status_code: int
    response_json: Dict[str, Any]

    @property
    def provider_message_id(self) -> Optional[str]:
        messages = self.response_json.get("messages") or []
        if messages and isinstance(messages[0], dict):
            return messages[0].get("id")
        return None


class MetaWhatsAppClient:
    def __init__(
        self,
        settings: MetaWhatsAppSettings,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._settings = settings
        self._session = session or requests.Session()

    # ---------------------------------------------------------
    # SESSION MESSAGE (every bot reply)
    # ---------------------------------------------------------
    def send_session_message(self, *, to_msisdn: str, text: str) -> MetaSendResult:
        if not text:
            raise MetaWhatsAppError("Session message text cannot be empty")

        payload = {
            "messaging_product": "whatsapp",
            "to": to_msisdn,
            "type": "text",
            "text": {"body": text},
        }

        headers = {
            "Authorization": f"Bearer {self._settings.access_token}",
            "Content-Type": "application/json",
        }

        resp = self._session.post(
            self._settings.messages_url,
            json=payload,
            headers=headers,
            timeout=30,
        )

        try:
            data = resp.json()
        except Exception:
            data = {"raw_text": resp.text}

        return MetaSendResult(
            ok=200 <= resp.status_code < 300,
            status_code=resp.status_code,
            response_json=data,
        )


class MetaSendGateway(SendGateway):
    """
    Real delivery. Failures are logged and reported in the receipt, never raised.
    """

    def __init__(self, client: MetaWhatsAppClient) -> None:
        self._client = client

    def send_text(self, req: OutboundSendRequest) -> OutboundSendReceipt:
        try:
            result = self._client.send_session_message(
                to_msisdn=req.to_number,
                text=req.body_text,
            )
        except (requests.RequestException, MetaWhatsAppError) as e:
            logger.error("Error sending message to %s: %s", req.to_number, e)
            return OutboundSendReceipt.now(status=SendStatus.FAILED, detail=str(e))

        if not result.ok:
            logger.error(
                "Failed to send message to %s: status=%s body=%s",
                req.to_number,
                result.status_code,
                result.response_json,
            )
            return OutboundSendReceipt.now(
                status=SendStatus.FAILED,
                detail=f"HTTP {result.status_code}",
            )

        logger.info("Message sent successfully to %s", req.to_number)
        return OutboundSendReceipt.now(
            status=SendStatus.SENT,
            detail=f"HTTP {result.status_code}",
            provider_message_id=result.provider_message_id,
        )
