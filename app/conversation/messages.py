"""
app/conversation/messages.py

Reply texts for the AgriConnect WhatsApp conversation
-----------------------------------------------------
- Static menus and prompts
- Formatters for supply / product search results

Rules enforced:
- No I/O
- Deterministic output for the same records
"""

from decimal import Decimal
from typing import List

from app.services.catalog_service import ProductRecord, SupplyRecord


# =========================
# Static Text Configuration
# =========================

WELCOME_TEXT = (
    "🌾 Welcome to AgriConnect! 🌾\n\n"
    "I'm your farming assistant. How can I help you today?\n\n"
    "1️⃣ I'm a Farmer\n"
    "2️⃣ I'm a Vendor\n\n"
    "Reply with 1 or 2"
)

FARMER_MENU_TEXT = (
    "👨‍🌾 Farmer Menu\n\n"
    "What would you like to do?\n\n"
    "1️⃣ Add a product to sell\n"
    "2️⃣ Search for supplies to buy\n"
    "3️⃣ Back to main menu\n\n"
    "Reply with 1, 2, or 3"
)

VENDOR_MENU_TEXT = (
    "🏪 Vendor Menu\n\n"
    "What would you like to do?\n\n"
    "1️⃣ Browse available products\n"
    "2️⃣ Back to main menu\n\n"
    "Reply with 1 or 2"
)

ROLE_REPROMPT_TEXT = "Please select 1 for Farmer or 2 for Vendor"

ASK_PRODUCT_NAME_TEXT = "Please enter the product name:"
ASK_QUANTITY_TEXT = "Great! Now enter the quantity available (in kg):"
INVALID_QUANTITY_TEXT = "Please enter a valid number for quantity:"
ASK_PRICE_TEXT = "Enter the price per kg (in rupees):"
INVALID_PRICE_TEXT = "Please enter a valid price:"
ASK_DESCRIPTION_TEXT = "Enter a brief description of your product:"

PRODUCT_SAVE_FAILED_TEXT = "❌ Sorry, there was an error saving your product. Please try again."

ASK_SUPPLY_SEARCH_TEXT = "What supplies are you looking for? Type the name:"
SUPPLY_SEARCH_FAILED_TEXT = "❌ Sorry, there was an error searching for supplies."
RETURN_TO_MENU_TEXT = 'Type "menu" to return to main menu'

PRODUCT_LISTING_FAILED_TEXT = "❌ Sorry, there was an error fetching products."
NO_PRODUCTS_TEXT = "😕 No products available at the moment."

NOT_UNDERSTOOD_TEXT = "I didn't understand. Type \"hi\" to start over."

SUPPLY_PURCHASE_HINT = "💡 To purchase any of these items, visit our website or contact the supplier directly."
PRODUCT_PURCHASE_HINT = "💡 To purchase any of these products, visit our website to complete the transaction."


# =========================
# Dynamic Text
# =========================

def product_saved_text(name: str) -> str:
    return (
        f"✅ Product \"{name}\" has been successfully added to the website!\n\n"
        "📱 Customers can now see and purchase your product online.\n\n"
        "What would you like to do next?"
    )


def no_supplies_text(term: str) -> str:
    return f"😕 No supplies found matching \"{term}\". Try searching with different keywords."


def _money(value: Decimal) -> str:
    return f"₹{value}"


def format_supplies(term: str, supplies: List[SupplyRecord]) -> str:
    if not supplies:
        return no_supplies_text(term)

    lines = [f"🔍 Found {len(supplies)} supplies matching \"{term}\":", ""]
    for index, s in enumerate(supplies, start=1):
        lines.append(f"{index}. {s.name}")
        lines.append(f"💰 Price: {_money(s.price)} per {s.unit}")
        lines.append(f"📦 Available: {s.quantity_available} {s.unit}")
        lines.append(f"🏪 Supplier: {s.supplier_name}")
        if s.description:
            lines.append(f"📝 {s.description}")
        lines.append("")

    lines.append(SUPPLY_PURCHASE_HINT)
    return "\n".join(lines)


def format_products(products: List[ProductRecord]) -> str:
    if not products:
        return NO_PRODUCTS_TEXT

    lines = ["🛒 Available Products:", ""]
    for index, p in enumerate(products, start=1):
        lines.append(f"{index}. {p.name}")
        lines.append(f"💰 Price: {_money(p.price_per_unit)} per {p.unit}")
        lines.append(f"📦 Available: {p.quantity_available} {p.unit}")
        lines.append(f"👨‍🌾 Farmer: {p.farmer_name or 'Unknown'}")
        if p.description:
            lines.append(f"📝 {p.description}")
        if p.harvest_date:
            lines.append(f"🗓️ Harvested: {p.harvest_date.strftime('%d %b %Y')}")
        lines.append("")

    lines.append(PRODUCT_PURCHASE_HINT)
    return "\n".join(lines)
