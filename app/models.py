"""
File: app/models.py

Project: AgriConnect WhatsApp Bot

Purpose:
SQLAlchemy ORM models for the marketplace records the bot reads and writes,
plus the optional table backing the database session store.

Design principles:
- Tables mirror the marketplace backend (profiles, products, supplies)
- No business logic in models
- The bot only ever inserts products; it never updates or deletes catalog rows
"""


import uuid
from sqlalchemy import (
    Column,
    Text,
    Integer,
    Numeric,
    Date,
    DateTime,
    ForeignKey,
    CheckConstraint,
    JSON,
    Uuid,
    func,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


# ---------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------
class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, unique=True, default=uuid.uuid4)
    display_name = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    role = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


# ---------------------------------------------------------------------
# Product (sold by farmers)
# ---------------------------------------------------------------------
class Product(Base):
    __tablename__ = "products"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    farmer_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id"),
        nullable=False,
    )
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    price_per_unit = Column(Numeric(12, 2), nullable=False)
    quantity_available = Column(Integer, nullable=False, server_default="0")
    unit = Column(Text, nullable=False, server_default="kg")
    status = Column(Text, nullable=False, server_default="available")
    harvest_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            "quantity_available >= 0",
            name="ck_products_quantity",
        ),
    )

    farmer = relationship("Profile")


# ---------------------------------------------------------------------
# Supply (bought by farmers)
# ---------------------------------------------------------------------
class Supply(Base):
    __tablename__ = "supplies"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    category = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    quantity_available = Column(Integer, nullable=False, server_default="0")
    unit = Column(Text, nullable=False, server_default="kg")
    supplier_name = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())


# ---------------------------------------------------------------------
# Conversation session (only used when SESSION_BACKEND=database)
# ---------------------------------------------------------------------
class ConversationSession(Base):
    __tablename__ = "conversation_sessions"

    user_id = Column(Text, primary_key=True)
    state = Column(Text, nullable=False)
    draft = Column(JSON, nullable=True)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )
