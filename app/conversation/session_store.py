"""
File: app/conversation/session_store.py

Project: AgriConnect WhatsApp Bot

Purpose:
Per-user conversation sessions keyed by the sender's phone number.

Design rules:
- The conversation engine is the only reader / writer
- Stores never raise on a missing key: absence means "start over"
- In-memory store is process-local; a restart resets every conversation
- No per-user locking: two concurrent messages from one user may race
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol

from sqlalchemy.orm import Session as DbSession

from app.models import ConversationSession

logger = logging.getLogger("session_store")


class ConversationState(str, Enum):
    INITIAL = "initial"
    ROLE_SELECTION = "role_selection"
    FARMER_MENU = "farmer_menu"
    ADD_PRODUCT_NAME = "add_product_name"
    ADD_PRODUCT_QUANTITY = "add_product_quantity"
    ADD_PRODUCT_PRICE = "add_product_price"
    ADD_PRODUCT_DESCRIPTION = "add_product_description"
    SEARCH_SUPPLIES = "search_supplies"
    VENDOR_MENU = "vendor_menu"


@dataclass
class DraftProduct:
    """
    Product being collected over several messages.
    Fields fill strictly in order: name -> quantity -> price -> description.
    """
    name: str
    quantity_available: Optional[int] = None
    price_per_unit: Optional[Decimal] = None
    description: Optional[str] = None

    def is_complete(self) -> bool:
        return (
            bool(self.name)
            and self.quantity_available is not None
            and self.price_per_unit is not None
            and self.description is not None
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "quantity_available": self.quantity_available,
            "price_per_unit": None if self.price_per_unit is None else str(self.price_per_unit),
            "description": self.description,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "DraftProduct":
        price = data.get("price_per_unit")
        return DraftProduct(
            name=data.get("name") or "",
            quantity_available=data.get("quantity_available"),
            price_per_unit=None if price is None else Decimal(price),
            description=data.get("description"),
        )


@dataclass
class Session:
    user_id: str
    # A raw string only when a persisted state is no longer a known member
    state: ConversationState | str = ConversationState.INITIAL
    draft: Optional[DraftProduct] = field(default=None)


class SessionStore(Protocol):
    def get(self, user_id: str) -> Optional[Session]:
        ...

    def set(self, user_id: str, session: Session) -> None:
        ...


class InMemorySessionStore:
    """
    Process-local dict of sessions. Nothing is ever evicted.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}

    def get(self, user_id: str) -> Optional[Session]:
        return self._sessions.get(user_id)

    def set(self, user_id: str, session: Session) -> None:
        self._sessions[user_id] = session

    def __len__(self) -> int:
        return len(self._sessions)


class SqlSessionStore:
    """
    Sessions persisted in conversation_sessions, one row per user.
    Survives restarts; still last-write-wins between concurrent messages.
    """

    def __init__(self, session_factory: Callable[[], DbSession]) -> None:
        self._session_factory = session_factory

    def get(self, user_id: str) -> Optional[Session]:
        db = self._session_factory()
        try:
            row = db.get(ConversationSession, user_id)
            if row is None:
                return None

            try:
                state: ConversationState | str = ConversationState(row.state)
            except ValueError:
                logger.warning("Unknown stored state %r for %s", row.state, user_id)
                state = row.state

            draft = DraftProduct.from_dict(row.draft) if row.draft else None
            return Session(user_id=user_id, state=state, draft=draft)
        finally:
            db.close()

    def set(self, user_id: str, session: Session) -> None:
        state = session.state.value if isinstance(session.state, ConversationState) else session.state
        draft = session.draft.to_dict() if session.draft else None

        db = self._session_factory()
        try:
            row = db.get(ConversationSession, user_id)
            if row is None:
                row = ConversationSession(user_id=user_id)
                db.add(row)
            row.state = state
            row.draft = draft
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
