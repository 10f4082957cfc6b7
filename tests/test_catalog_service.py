import unittest
import uuid
from datetime import date
from decimal import Decimal
from unittest import mock

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.conversation import messages
from app.conversation.engine import ConversationEngine
from app.conversation.session_store import (
    ConversationState,
    DraftProduct,
    InMemorySessionStore,
    Session,
)
from app.models import Base, Product, Profile, Supply
from app.outbound.dry_run import DryRunSendGateway
from app.services.catalog_service import CatalogError, CatalogGateway

FARMER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


def _memory_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


class CatalogGatewayTests(unittest.TestCase):
    def setUp(self):
        self.SessionLocal = _memory_session_factory()
        self.catalog = CatalogGateway(self.SessionLocal)

        db = self.SessionLocal()
        db.add(Profile(id=FARMER_ID, display_name="Ravi Kumar", role="farmer"))
        for i in range(7):
            db.add(
                Supply(
                    name=f"Organic Seeds {i}",
                    category="seeds",
                    price=Decimal("120.00"),
                    quantity_available=10,
                    unit="packet",
                    supplier_name="Seed House",
                )
            )
        db.add(
            Supply(
                name="100%_Neem Oil",
                category="pesticide",
                price=Decimal("250.00"),
                supplier_name="Agro Mart",
                description="Cold pressed",
            )
        )
        db.add_all(
            [
                Product(
                    farmer_id=FARMER_ID,
                    name="Tomatoes",
                    price_per_unit=Decimal("25.00"),
                    quantity_available=50,
                    status="available",
                    harvest_date=date(2024, 3, 1),
                ),
                Product(
                    farmer_id=FARMER_ID,
                    name="Potatoes",
                    price_per_unit=Decimal("18.00"),
                    quantity_available=0,
                    status="available",
                ),
                Product(
                    farmer_id=FARMER_ID,
                    name="Carrots",
                    price_per_unit=Decimal("30.00"),
                    quantity_available=20,
                    status="sold",
                ),
                Product(
                    farmer_id=uuid.uuid4(),
                    name="Garlic",
                    price_per_unit=Decimal("90.00"),
                    quantity_available=5,
                    status="available",
                ),
            ]
        )
        db.commit()
        db.close()

    def test_search_supplies_is_case_insensitive_and_limited(self):
        results = self.catalog.search_supplies("ORGANIC seeds")
        self.assertEqual(len(results), 5)
        self.assertTrue(all(r.supplier_name == "Seed House" for r in results))

    def test_search_supplies_escapes_wildcards(self):
        self.assertEqual(
            [r.name for r in self.catalog.search_supplies("%")],
            ["100%_Neem Oil"],
        )
        results = self.catalog.search_supplies("100%_neem")
        self.assertEqual([r.name for r in results], ["100%_Neem Oil"])
        self.assertEqual(results[0].description, "Cold pressed")
        self.assertEqual(results[0].unit, "kg")

    def test_search_supplies_no_match(self):
        self.assertEqual(self.catalog.search_supplies("tractor"), [])

    def test_available_products_filter_and_farmer_name(self):
        results = {r.name: r for r in self.catalog.search_available_products()}
        self.assertEqual(set(results), {"Tomatoes", "Garlic"})
        self.assertEqual(results["Tomatoes"].farmer_name, "Ravi Kumar")
        self.assertEqual(results["Tomatoes"].harvest_date, date(2024, 3, 1))
        self.assertIsNone(results["Garlic"].farmer_name)

    def test_insert_product(self):
        draft = DraftProduct(
            name="Mangoes",
            quantity_available=12,
            price_per_unit=Decimal("80.5"),
            description="Alphonso",
        )
        product_id = self.catalog.insert_product(draft, farmer_id=str(FARMER_ID))

        db = self.SessionLocal()
        try:
            row = db.get(Product, product_id)
            self.assertEqual(row.name, "Mangoes")
            self.assertEqual(row.quantity_available, 12)
            self.assertEqual(row.price_per_unit, Decimal("80.50"))
            self.assertEqual(row.description, "Alphonso")
            self.assertEqual(row.status, "available")
            self.assertEqual(row.farmer_id, FARMER_ID)
        finally:
            db.close()

    def test_insert_incomplete_draft_is_rejected(self):
        with self.assertRaises(CatalogError):
            self.catalog.insert_product(DraftProduct(name="Mangoes"), farmer_id=str(FARMER_ID))

    def test_insert_with_bad_farmer_id(self):
        draft = DraftProduct(
            name="Mangoes",
            quantity_available=1,
            price_per_unit=Decimal("1"),
            description="",
        )
        with self.assertRaises(CatalogError):
            self.catalog.insert_product(draft, farmer_id="not-a-uuid")

    def test_oversized_quantity_is_a_catalog_error(self):
        draft = DraftProduct(
            name="Mangoes",
            quantity_available=99999999999999999999999,
            price_per_unit=Decimal("2.5"),
            description="Fresh",
        )
        with self.assertRaises(CatalogError):
            self.catalog.insert_product(draft, farmer_id=str(FARMER_ID))

    def test_failed_insert_still_ends_the_add_product_flow(self):
        store = InMemorySessionStore()
        gateway = DryRunSendGateway()
        engine = ConversationEngine(store=store, catalog=self.catalog, gateway=gateway)
        store.set(
            "+1555",
            Session(
                user_id="+1555",
                state=ConversationState.ADD_PRODUCT_DESCRIPTION,
                draft=DraftProduct(
                    name="Mangoes",
                    quantity_available=99999999999999999999999,
                    price_per_unit=Decimal("2.5"),
                ),
            ),
        )

        session = engine.handle_message("+1555", "Fresh")

        self.assertEqual(session.state, ConversationState.FARMER_MENU)
        self.assertIsNone(session.draft)
        self.assertEqual(
            gateway.texts_to("+1555"),
            [messages.PRODUCT_SAVE_FAILED_TEXT, messages.FARMER_MENU_TEXT],
        )

    def test_database_errors_become_catalog_errors(self):
        broken = mock.MagicMock()
        broken.query.side_effect = OperationalError("SELECT", {}, Exception("gone"))
        catalog = CatalogGateway(lambda: broken)

        with self.assertRaises(CatalogError):
            catalog.search_supplies("seeds")
        with self.assertRaises(CatalogError):
            catalog.search_available_products()
        broken.rollback.assert_called()
        broken.close.assert_called()


if __name__ == "__main__":
    unittest.main()
