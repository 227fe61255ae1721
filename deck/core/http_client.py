"""Shared async HTTP client for webhook and gateway calls (origin and timeout from config)."""
from typing import Optional

import httpx

from deck.core.config import settings

_http_client: Optional[httpx.AsyncClient] = None


def get_http_client() -> httpx.AsyncClient:
    """Return a singleton httpx.AsyncClient whose base_url is the webhook origin, so resolved paths like /n8n/webhook/... can be posted as-is.
    Why available: One connection pool for every feed (clip jobs, search router, gateway feeds) with the same timeout."""
    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(
            base_url=settings.webhook_origin,
            timeout=settings.http_timeout_seconds,
        )
    return _http_client


async def close_http_client() -> None:
    """Close and forget the singleton client (called on API shutdown)."""
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None
