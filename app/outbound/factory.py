"""
File: app/outbound/factory.py
Path: app/outbound/factory.py

Project: AgriConnect WhatsApp Bot

Purpose:
- Provide a single place to construct the outbound send gateway
- Reuse a single Meta WhatsApp client instance (singleton-style)

Design rules:
- No business logic here
- Only construction / wiring
"""

from __future__ import annotations

from app.outbound.dry_run import DryRunSendGateway
from app.outbound.gateway import SendGateway
from app.outbound.meta import MetaSendGateway, MetaWhatsAppClient
from app.outbound.settings import load_meta_settings

OUTBOUND_MODE_META = "meta"
OUTBOUND_MODE_DRY_RUN = "dry_run"


# -------------------------------------------------
# Meta client singleton
# -------------------------------------------------
_meta_client: MetaWhatsAppClient | None = None


def get_meta_client() -> MetaWhatsAppClient:
    global _meta_client
    if _meta_client is None:
        settings = load_meta_settings()
        _meta_client = MetaWhatsAppClient(settings=settings)
    return _meta_client


def build_send_gateway(mode: str) -> SendGateway:
    if mode == OUTBOUND_MODE_META:
        return MetaSendGateway(get_meta_client())
    if mode == OUTBOUND_MODE_DRY_RUN:
        return DryRunSendGateway()
    raise RuntimeError(f"Unknown OUTBOUND_MODE: {mode!r} (expected 'meta' or 'dry_run')")
