"""
Supabase client initialization.

This module contains *only* the database connection setup. Repository modules
call `get_client()`; the client is created on first use so that domain code and
services can be imported without credentials.

Environment variables required:
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (server-side service key; routing writes
  across tenants)
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from supabase import Client, create_client  # type: ignore[import-not-found]

# Postgres unique_violation; surfaced by PostgREST as the error code.
UNIQUE_VIOLATION = "23505"

# Look for .env in the project root.
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _require_env(name: str, hint: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing environment variable: {name}. {hint}")
    return value


@lru_cache(maxsize=1)
def get_client() -> Client:
    url = _require_env("SUPABASE_URL", "Set SUPABASE_URL to your Supabase project URL.")
    key = _require_env("SUPABASE_KEY", "Set SUPABASE_KEY to your Supabase API key.")
    return create_client(url, key)


def raise_for_error(response: object, action: str) -> None:
    """Raise RuntimeError if a Supabase response carries an error payload."""

    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to {action}: {error}")


def rows_of(response: object) -> list[dict]:
    return list(getattr(response, "data", None) or [])


def is_unique_violation(error: object) -> bool:
    return str(getattr(error, "code", "")) == UNIQUE_VIOLATION


__all__ = ["get_client", "raise_for_error", "rows_of", "is_unique_violation", "UNIQUE_VIOLATION"]
