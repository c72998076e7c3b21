"""
Supabase clients, one per key per process.

The API authenticates callers itself (see expertclaims_api.middleware.auth)
and reads and writes Postgres with the service key. The anon key is kept for
the few public reads where row-level security should still apply.

Usage:
    from expertclaims_shared.db import get_supabase_client

    supabase = get_supabase_client(service_role=True)
    rows = supabase.table("support_tickets").select("*").execute().data
"""

from __future__ import annotations

import threading

import structlog
from supabase import Client, create_client

from expertclaims_shared.config import settings

logger = structlog.get_logger(__name__)

_lock = threading.Lock()
_clients: dict[str, Client] = {}


def _key_for(role: str) -> str:
    if role == "service_role":
        key, env_name = settings.supabase_service_key, "SUPABASE_SERVICE_KEY"
    else:
        key, env_name = settings.supabase_anon_key, "SUPABASE_ANON_KEY"
    if not key:
        raise RuntimeError(f"{env_name} is not set; add it to .env")
    return key


def get_supabase_client(*, service_role: bool = False) -> Client:
    """Return the shared client for the service key or, by default, the anon key."""
    role = "service_role" if service_role else "anon"
    with _lock:
        client = _clients.get(role)
        if client is None:
            client = create_client(settings.supabase_url, _key_for(role))
            _clients[role] = client
            logger.info("supabase_client_created", role=role)
        return client


def reset_supabase_clients() -> None:
    """Drop cached clients so the next call builds fresh ones from settings."""
    with _lock:
        _clients.clear()
