"""
File: app/services/catalog_service.py
Project: AgriConnect WhatsApp Bot

Purpose:
Catalog gateway used by the WhatsApp conversation.

This is the ONLY place the bot is allowed to:
- search supplies by name
- list products that are available to buy
- insert a product created over WhatsApp

Design rules:
- No messaging
- No updates or deletes
- DB errors are rolled back, logged and re-raised as CatalogError
- Callers receive plain records, never ORM objects
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.conversation.session_store import DraftProduct
from app.models import Product, Profile, Supply

logger = logging.getLogger("catalog_service")

SEARCH_LIMIT = 5
STATUS_AVAILABLE = "available"


class CatalogError(RuntimeError):
    pass


@dataclass(frozen=True)
class SupplyRecord:
    name: str
    price: Decimal
    unit: str
    quantity_available: int
    supplier_name: str
    description: Optional[str] = None


@dataclass(frozen=True)
class ProductRecord:
    name: str
    price_per_unit: Decimal
    unit: str
    quantity_available: int
    farmer_name: Optional[str] = None
    description: Optional[str] = None
    harvest_date: Optional[date] = None


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class CatalogGateway:
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    # -------------------------------------------------
    # Queries
    # -------------------------------------------------

    def search_supplies(self, term: str, *, limit: int = SEARCH_LIMIT) -> List[SupplyRecord]:
        """
        Case-insensitive substring match on supply name.
        """
        pattern = f"%{_escape_like(term)}%"
        db = self._session_factory()
        try:
            rows = (
                db.query(Supply)
                .filter(Supply.name.ilike(pattern, escape="\\"))
                .order_by(Supply.name.asc())
                .limit(limit)
                .all()
            )
            return [
                SupplyRecord(
                    name=r.name,
                    price=r.price,
                    unit=r.unit,
                    quantity_available=r.quantity_available,
                    supplier_name=r.supplier_name,
                    description=r.description,
                )
                for r in rows
            ]
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Supply search failed for term %r", term)
            raise CatalogError("supply search failed") from e
        finally:
            db.close()

    def search_available_products(self, *, limit: int = SEARCH_LIMIT) -> List[ProductRecord]:
        """
        Products a vendor can buy right now, with the farmer's display name.
        """
        db = self._session_factory()
        try:
            rows = (
                db.query(Product, Profile.display_name)
                .outerjoin(Profile, Profile.id == Product.farmer_id)
                .filter(
                    Product.status == STATUS_AVAILABLE,
                    Product.quantity_available > 0,
                )
                .order_by(Product.created_at.desc())
                .limit(limit)
                .all()
            )
            return [
                ProductRecord(
                    name=p.name,
                    price_per_unit=p.price_per_unit,
                    unit=p.unit,
                    quantity_available=p.quantity_available,
                    farmer_name=display_name,
                    description=p.description,
                    harvest_date=p.harvest_date,
                )
                for p, display_name in rows
            ]
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Available product listing failed")
            raise CatalogError("product listing failed") from e
        finally:
            db.close()

    # -------------------------------------------------
    # Commands
    # -------------------------------------------------

    def insert_product(self, draft: DraftProduct, *, farmer_id: str) -> uuid.UUID:
        """
        Inserts one product row built from a completed draft.

        Returns:
            id of the new product
        """
        if not draft.is_complete():
            raise CatalogError("draft product is incomplete")

        db = self._session_factory()
        try:
            product = Product(
                farmer_id=uuid.UUID(farmer_id),
                name=draft.name,
                quantity_available=draft.quantity_available,
                price_per_unit=draft.price_per_unit,
                description=draft.description,
                status=STATUS_AVAILABLE,
            )
            db.add(product)
            db.commit()
            logger.info("Inserted product %s (%s)", product.id, draft.name)
            return product.id
        except (SQLAlchemyError, ValueError, ArithmeticError) as e:
            db.rollback()
            logger.exception("Product insert failed for %r", draft.name)
            raise CatalogError("product insert failed") from e
        finally:
            db.close()
