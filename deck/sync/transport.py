"""JSON-or-text webhook transport on top of httpx.AsyncClient."""
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx


class FeedRequestError(Exception):
    """A webhook/gateway call answered with a non-2xx status. The message becomes the feed error string."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


@dataclass
class WebhookResponse:
    """Outcome of one call: ok mirrors 2xx, data is parsed JSON, raw text for non-JSON bodies, or None for an empty body."""

    ok: bool
    status: int
    data: Any


def parse_body(text: str) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    payload: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> WebhookResponse:
    """Send one request and parse the body defensively: a body that is not JSON comes back as raw text instead of raising.
    Why available: n8n webhooks sometimes answer with HTML or plain text; callers validate shape themselves."""
    res = await client.request(method, url, json=payload, headers=headers)
    return WebhookResponse(ok=res.is_success, status=res.status_code, data=parse_body(res.text))


async def post_json(client: httpx.AsyncClient, url: str, payload: Dict[str, Any]) -> WebhookResponse:
    return await request_json(client, "POST", url, payload)
