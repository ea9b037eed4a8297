"""Singleton HTTP client manager with connection pooling.

Provides a single get_http_client() interface for the REST gateway so
every table and storage call reuses one pooled connection set.

Key features:
  - Event-loop-aware client lifecycle (recreates when a new loop is running)
  - Per-service timeout configuration
  - Graceful shutdown via close_all_clients()
"""
from __future__ import annotations

import asyncio
import logging

import httpx

from corpus_admin.config import get_settings

logger = logging.getLogger(__name__)

_CONNECTION_LIMITS = httpx.Limits(
    max_connections=20,
    max_keepalive_connections=10,
    keepalive_expiry=120,
)

# ── Client pool (module-level singletons) ──────────────────────────────

_clients: dict[str, httpx.AsyncClient] = {}
_client_loop_ids: dict[str, int] = {}


def _timeout() -> httpx.Timeout:
    return httpx.Timeout(get_settings().GATEWAY_TIMEOUT_SECONDS, connect=10.0)


def get_http_client(service: str) -> httpx.AsyncClient:
    """Get or create an httpx AsyncClient for *service*.

    Automatically recreates the client when the event loop changes
    (each ``asyncio.run`` starts a fresh loop).
    """
    loop_id = id(asyncio.get_running_loop())

    if (
        service not in _clients
        or _clients[service].is_closed
        or _client_loop_ids.get(service) != loop_id
    ):
        _clients[service] = httpx.AsyncClient(
            timeout=_timeout(),
            limits=_CONNECTION_LIMITS,
        )
        _client_loop_ids[service] = loop_id
        logger.debug("Created new HTTP client for '%s'", service)

    return _clients[service]


async def close_all_clients() -> None:
    """Close every pooled HTTP client (for graceful shutdown)."""
    for name, client in list(_clients.items()):
        if not client.is_closed:
            try:
                await client.aclose()
            except Exception as exc:
                logger.warning("Failed to close HTTP client '%s': %s", name, exc)
    _clients.clear()
    _client_loop_ids.clear()
    logger.info("All HTTP clients closed")
