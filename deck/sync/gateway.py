"""Background gateway feeds (nodes, logs, debug): plain GET of a JSON document under the gateway URL."""
from typing import Callable, Dict, Optional

import httpx

from deck.storage.settings_store import UiSettings
from deck.sync.endpoints import join_paths
from deck.sync.feed_state import FeedState
from deck.sync.transport import FeedRequestError, request_json

TAB_LOGS = "logs"
TAB_DEBUG = "debug"

FEED_PATHS = {
    "nodes": "/api/nodes",
    "logs": "/api/logs",
    "debug": "/api/debug",
}


class GatewayFeed:
    def __init__(self, name: str, http: httpx.AsyncClient, get_settings: Callable[[], UiSettings], path: Optional[str] = None):
        self.name = name
        self.path = path or FEED_PATHS[name]
        self.http = http
        self.get_settings = get_settings
        self.state = FeedState(name=name)

    def url(self) -> str:
        base = self.get_settings().gateway_url.rstrip("/")
        return base + join_paths("", self.path)

    def _headers(self) -> Optional[Dict[str, str]]:
        token = self.get_settings().token.strip()
        return {"Authorization": f"Bearer {token}"} if token else None

    async def refresh(self) -> None:
        if self.state.loading:
            return
        with self.state.attempt():
            res = await request_json(self.http, "GET", self.url(), headers=self._headers())
            if not res.ok:
                raise FeedRequestError(f"Gateway {self.name} failed ({res.status})", status=res.status)
            self.state.mark_success(res.data)
