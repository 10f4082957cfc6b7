"""
app/config.py
AgriConnect WhatsApp Bot
Application configuration

Purpose:
- Environment-driven settings (Render / Supabase compatible)
- Nothing here touches the network or the database

Notes:
- DATABASE_URL is required only once the database is first used
- WHATSAPP_VERIFY_TOKEN must be set for the Meta handshake to succeed
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_FARMER_ID = "00000000-0000-0000-0000-000000000001"

SESSION_BACKEND_MEMORY = "memory"
SESSION_BACKEND_DATABASE = "database"


def _require_env(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise RuntimeError(
            f"Missing required environment variable: {name}. "
            f"Set it in your .env / Render / shell before running."
        )
    return value


@dataclass(frozen=True)
class Settings:
    verify_token: str | None
    outbound_mode: str
    session_backend: str
    default_farmer_id: str


def load_settings() -> Settings:
    return Settings(
        verify_token=os.getenv("WHATSAPP_VERIFY_TOKEN", "").strip() or None,
        outbound_mode=os.getenv("OUTBOUND_MODE", "dry_run").strip().lower(),
        session_backend=os.getenv("SESSION_BACKEND", SESSION_BACKEND_MEMORY).strip().lower(),
        default_farmer_id=os.getenv("DEFAULT_FARMER_ID", DEFAULT_FARMER_ID).strip(),
    )


def database_url() -> str:
    return _require_env("DATABASE_URL")
