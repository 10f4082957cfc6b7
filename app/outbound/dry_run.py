"""
AgriConnect WhatsApp Bot
Outbound delivery - DRY-RUN gateway

This gateway never sends anything.
It logs the reply, keeps it in `sent` and returns a simulated receipt.
"""

from __future__ import annotations

import logging
from typing import List

from .gateway import SendGateway, OutboundSendRequest, OutboundSendReceipt, SendStatus

logger = logging.getLogger("outbound.dry_run")


class DryRunSendGateway(SendGateway):
    def __init__(self) -> None:
        self.sent: List[OutboundSendRequest] = []

    def send_text(self, req: OutboundSendRequest) -> OutboundSendReceipt:
        # No side effects beyond logging. Never raises. Never calls external services.
        self.sent.append(req)
        logger.info("DRY_RUN to=%s text=%r", req.to_number, req.body_text)
        detail = f"DRY_RUN: outbound delivery simulated (not sent). to={req.to_number}"
        return OutboundSendReceipt.now(status=SendStatus.DRY_RUN, detail=detail, provider_message_id=None)

    def texts_to(self, to_number: str) -> List[str]:
        return [r.body_text for r in self.sent if r.to_number == to_number]
