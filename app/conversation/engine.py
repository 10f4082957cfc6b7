"""
File: app/conversation/engine.py

Project: AgriConnect WhatsApp Bot

Purpose:
Per-user conversation state machine behind the WhatsApp webhook.

One inbound message = one transition:
- load (or create) the sender's session
- run the handler for the current state
- save the session
- send zero or more replies through the SendGateway

Design rules:
- "hi" / "hello" / "menu" reset to the welcome menu from any non-initial state
- Invalid quantity / price re-prompts; the draft and the state stay untouched
- Catalog failures become an apology message, never an exception
- Failed sends are logged by the gateway and otherwise ignored
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, Optional

from app.config import DEFAULT_FARMER_ID
from app.conversation import messages
from app.conversation.session_store import (
    ConversationState,
    DraftProduct,
    Session,
    SessionStore,
)
from app.outbound.gateway import OutboundSendRequest, SendGateway
from app.services.catalog_service import CatalogError, CatalogGateway

logger = logging.getLogger("conversation")

RESET_COMMANDS = frozenset({"hi", "hello", "menu"})

# products.quantity_available is a 32-bit INTEGER
MAX_QUANTITY = 2_147_483_647

# products.price_per_unit is NUMERIC(12, 2)
_QUANTITY_RE = re.compile(r"\+?\d+")
_PRICE_RE = re.compile(r"\+?(\d{1,10}(\.\d{0,2})?|\.\d{1,2})")


def parse_quantity(text: str) -> Optional[int]:
    """Whole number of units, 1..MAX_QUANTITY. Anything else is None."""
    if not _QUANTITY_RE.fullmatch(text):
        return None
    value = int(text)
    return value if 0 < value <= MAX_QUANTITY else None


def parse_price(text: str) -> Optional[Decimal]:
    """
    Plain decimal (no exponent, no sign other than +), > 0, at most
    10 integer digits and 2 decimal places. Anything else is None.
    """
    if not _PRICE_RE.fullmatch(text):
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    return value if value > 0 else None


Handler = Callable[[Session, str, str], None]


class ConversationEngine:
    def __init__(
        self,
        *,
        store: SessionStore,
        catalog: CatalogGateway,
        gateway: SendGateway,
        default_farmer_id: str = DEFAULT_FARMER_ID,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._gateway = gateway
        self._default_farmer_id = default_farmer_id

        self._handlers: Dict[ConversationState, Handler] = {
            ConversationState.INITIAL: self._on_initial,
            ConversationState.ROLE_SELECTION: self._on_role_selection,
            ConversationState.FARMER_MENU: self._on_farmer_menu,
            ConversationState.ADD_PRODUCT_NAME: self._on_product_name,
            ConversationState.ADD_PRODUCT_QUANTITY: self._on_product_quantity,
            ConversationState.ADD_PRODUCT_PRICE: self._on_product_price,
            ConversationState.ADD_PRODUCT_DESCRIPTION: self._on_product_description,
            ConversationState.SEARCH_SUPPLIES: self._on_search_supplies,
            ConversationState.VENDOR_MENU: self._on_vendor_menu,
        }

    # ------------------------------------------------------------------
    # Public entry
    # ------------------------------------------------------------------
    def handle_message(self, user_id: str, text: str) -> Session:
        """
        Execute exactly one transition for `user_id` and return the saved session.

        `text` is the raw message body. Menu choices are matched on the
        trimmed, lower-cased body; free-text answers keep their casing.
        """
        raw = (text or "").strip()
        command = raw.lower()

        session = self._store.get(user_id)
        if session is None:
            logger.info("Creating new session for %s", user_id)
            session = Session(user_id=user_id)

        previous = session.state

        if session.state != ConversationState.INITIAL and command in RESET_COMMANDS:
            self._reset(session)
        else:
            handler = self._handlers.get(session.state)
            if handler is None:
                logger.warning("No handler for state %r (user %s)", session.state, user_id)
                self._send(user_id, messages.NOT_UNDERSTOOD_TEXT)
            else:
                handler(session, command, raw)

        self._store.set(user_id, session)
        logger.info("Session %s: %s -> %s", user_id, _state_name(previous), _state_name(session.state))
        return session

    # ------------------------------------------------------------------
    # Menus
    # ------------------------------------------------------------------
    def _reset(self, session: Session) -> None:
        session.state = ConversationState.INITIAL
        session.draft = None
        self._send(session.user_id, messages.WELCOME_TEXT)

    def _on_initial(self, session: Session, command: str, raw: str) -> None:
        self._send(session.user_id, messages.WELCOME_TEXT)
        session.state = ConversationState.ROLE_SELECTION

    def _on_role_selection(self, session: Session, command: str, raw: str) -> None:
        if command == "1":
            session.state = ConversationState.FARMER_MENU
            self._send(session.user_id, messages.FARMER_MENU_TEXT)
        elif command == "2":
            session.state = ConversationState.VENDOR_MENU
            self._send(session.user_id, messages.VENDOR_MENU_TEXT)
        else:
            self._send(session.user_id, messages.ROLE_REPROMPT_TEXT)

    def _on_farmer_menu(self, session: Session, command: str, raw: str) -> None:
        if command == "1":
            session.state = ConversationState.ADD_PRODUCT_NAME
            session.draft = None
            self._send(session.user_id, messages.ASK_PRODUCT_NAME_TEXT)
        elif command == "2":
            session.state = ConversationState.SEARCH_SUPPLIES
            self._send(session.user_id, messages.ASK_SUPPLY_SEARCH_TEXT)
        elif command == "3":
            session.state = ConversationState.INITIAL
            self._send(session.user_id, messages.WELCOME_TEXT)
        else:
            self._send(session.user_id, messages.FARMER_MENU_TEXT)

    def _on_vendor_menu(self, session: Session, command: str, raw: str) -> None:
        if command == "1":
            self._send_available_products(session.user_id)
            self._send(session.user_id, messages.VENDOR_MENU_TEXT)
        elif command == "2":
            session.state = ConversationState.INITIAL
            self._send(session.user_id, messages.WELCOME_TEXT)
        else:
            self._send(session.user_id, messages.VENDOR_MENU_TEXT)

    # ------------------------------------------------------------------
    # Add product flow: name -> quantity -> price -> description
    # ------------------------------------------------------------------
    def _on_product_name(self, session: Session, command: str, raw: str) -> None:
        session.draft = DraftProduct(name=raw)
        session.state = ConversationState.ADD_PRODUCT_QUANTITY
        self._send(session.user_id, messages.ASK_QUANTITY_TEXT)

    def _draft_or_restart(self, session: Session) -> Optional[DraftProduct]:
        # A persisted session can come back without its draft; start the flow again.
        if session.draft is None:
            session.state = ConversationState.ADD_PRODUCT_NAME
            self._send(session.user_id, messages.ASK_PRODUCT_NAME_TEXT)
        return session.draft

    def _on_product_quantity(self, session: Session, command: str, raw: str) -> None:
        if self._draft_or_restart(session) is None:
            return

        quantity = parse_quantity(command)
        if quantity is None:
            self._send(session.user_id, messages.INVALID_QUANTITY_TEXT)
            return

        session.draft.quantity_available = quantity
        session.state = ConversationState.ADD_PRODUCT_PRICE
        self._send(session.user_id, messages.ASK_PRICE_TEXT)

    def _on_product_price(self, session: Session, command: str, raw: str) -> None:
        if self._draft_or_restart(session) is None:
            return

        price = parse_price(command)
        if price is None:
            self._send(session.user_id, messages.INVALID_PRICE_TEXT)
            return

        session.draft.price_per_unit = price
        session.state = ConversationState.ADD_PRODUCT_DESCRIPTION
        self._send(session.user_id, messages.ASK_DESCRIPTION_TEXT)

    def _on_product_description(self, session: Session, command: str, raw: str) -> None:
        draft = self._draft_or_restart(session)
        if draft is None:
            return

        draft.description = raw

        try:
            self._catalog.insert_product(draft, farmer_id=self._default_farmer_id)
        except CatalogError:
            logger.exception("Error saving product for %s", session.user_id)
            self._send(session.user_id, messages.PRODUCT_SAVE_FAILED_TEXT)
        else:
            self._send(session.user_id, messages.product_saved_text(draft.name))

        self._send(session.user_id, messages.FARMER_MENU_TEXT)
        session.state = ConversationState.FARMER_MENU
        session.draft = None

    # ------------------------------------------------------------------
    # Searches
    # ------------------------------------------------------------------
    def _on_search_supplies(self, session: Session, command: str, raw: str) -> None:
        try:
            supplies = self._catalog.search_supplies(raw)
        except CatalogError:
            logger.exception("Error searching supplies for %s", session.user_id)
            self._send(session.user_id, messages.SUPPLY_SEARCH_FAILED_TEXT)
        else:
            self._send(session.user_id, messages.format_supplies(raw, supplies))

        session.state = ConversationState.FARMER_MENU
        self._send(session.user_id, messages.RETURN_TO_MENU_TEXT)

    def _send_available_products(self, user_id: str) -> None:
        try:
            products = self._catalog.search_available_products()
        except CatalogError:
            logger.exception("Error fetching products for %s", user_id)
            self._send(user_id, messages.PRODUCT_LISTING_FAILED_TEXT)
            return

        self._send(user_id, messages.format_products(products))

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------
    def _send(self, user_id: str, text: str) -> None:
        self._gateway.send_text(OutboundSendRequest(to_number=user_id, body_text=text))


def _state_name(state: ConversationState | str) -> str:
    return state.value if isinstance(state, ConversationState) else str(state)
