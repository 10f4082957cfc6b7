"""
AgriConnect WhatsApp Bot
Outbound delivery abstraction

This module defines a stable SendGateway interface and strongly-typed
request/receipt objects for outbound delivery.

Guardrails:
- Delivery is fire-and-forget: no retry, no queue
- A gateway must never raise for a failed send; it returns a FAILED receipt
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol, Optional


class SendStatus(str, Enum):
    DRY_RUN = "dry_run"
    SENT = "sent"
    FAILED = "failed"


@dataclass(frozen=True)
class OutboundSendRequest:
    """
    A single text reply to one WhatsApp user.

    - to_number is the sender id from the inbound webhook (e.g. 15551234567)
    - body_text is the reply exactly as it should appear in the chat
    """
    to_number: str
    body_text: str


@dataclass(frozen=True)
class OutboundSendReceipt:
    """
    Result of a delivery attempt (or simulated attempt).
    """
    status: SendStatus
    provider_message_id: Optional[str]
    detail: str
    created_at_utc: datetime

    @property
    def ok(self) -> bool:
        return self.status != SendStatus.FAILED

    @staticmethod
    def now(status: SendStatus, detail: str, provider_message_id: Optional[str] = None) -> "OutboundSendReceipt":
        return OutboundSendReceipt(
            status=status,
            provider_message_id=provider_message_id,
            detail=detail,
            created_at_utc=datetime.now(timezone.utc),
        )


class SendGateway(Protocol):
    """
    Abstract gateway for outbound delivery.
    """
    def send_text(self, req: OutboundSendRequest) -> OutboundSendReceipt:
        """
        Deliver a WhatsApp text message (or simulate it, depending on gateway).
        Must not throw.
        """
        ...
