"""Search router feeds: quota status (polled and on-demand) and test query execution with a follow-up quota refresh."""
import logging
from typing import Callable, List, Optional

import httpx

from deck.models.schemas import SearchQueryRequest, SearchStatusRequest
from deck.storage.settings_store import UiSettings
from deck.sync.endpoints import resolve_search_router_url
from deck.sync.feed_state import FeedState, SoftFeedError
from deck.sync.transport import FeedRequestError, post_json

logger = logging.getLogger(__name__)

TAB_WORK_SEARCH = "workSearch"
MAX_DOMAINS = 20


def parse_domains(raw: str) -> List[str]:
    """Split the comma-separated allowlist: trimmed, empties dropped, at most MAX_DOMAINS entries."""
    return [d.strip() for d in (raw or "").split(",") if d.strip()][:MAX_DOMAINS]


def build_query_request(settings: UiSettings, query: str) -> SearchQueryRequest:
    domains = parse_domains(settings.work_search_domains)
    return SearchQueryRequest(
        query=query,
        provider=settings.work_search_provider,
        mode=settings.work_search_mode,
        strictFree=bool(settings.work_search_strict_free),
        maxResults=settings.work_search_max_results,
        domains=domains or None,
    )


class SearchRouterFeed:
    """Quota feed (search-quota) and query result holder (search-query) against the search router webhook.
    Why available: A query may change provider usage counters, so every query attempt is followed by one quota refresh that shares the quota latch."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        get_settings: Callable[[], UiSettings],
        quota: Optional[FeedState] = None,
        query: Optional[FeedState] = None,
    ):
        self.http = http
        self.get_settings = get_settings
        self.quota = quota or FeedState(name="search-quota")
        self.query = query or FeedState(name="search-query")

    def url(self) -> str:
        return resolve_search_router_url(self.get_settings())

    async def refresh_quota(self) -> None:
        if self.quota.loading:
            return
        with self.quota.attempt():
            body = SearchStatusRequest(strictFree=bool(self.get_settings().work_search_strict_free))
            res = await post_json(self.http, self.url(), body.model_dump(by_alias=True))
            if not res.ok:
                raise FeedRequestError(f"Search router status failed ({res.status})", status=res.status)
            data = res.data
            if not isinstance(data, dict) or data.get("ok") is not True or data.get("op") != "status":
                self.quota.payload = data
                raise SoftFeedError("Unexpected search router status payload")
            self.quota.mark_success(data)

    async def run_query(self, query: Optional[str] = None) -> None:
        """Execute a search query (the stored test query unless overridden), then refresh quotas once, best-effort."""
        if self.query.loading:
            return
        text = (query if query is not None else self.get_settings().work_search_test_query or "").strip()
        if not text:
            self.query.error = "Missing query."
            return

        with self.query.attempt():
            body = build_query_request(self.get_settings(), text)
            res = await post_json(self.http, self.url(), body.model_dump(by_alias=True, exclude_none=True))
            if not res.ok:
                raise FeedRequestError(f"Search router query failed ({res.status})", status=res.status)
            data = res.data
            if not isinstance(data, dict) or data.get("ok") is not True:
                self.query.payload = data
                message = None
                if isinstance(data, dict) and isinstance(data.get("error"), dict):
                    message = data["error"].get("message")
                raise SoftFeedError(message or "Search returned an error.")
            self.query.mark_success(data)

        await self._refresh_quota_quietly()

    async def _refresh_quota_quietly(self) -> None:
        # status-only op: does not burn provider credits
        try:
            await self.refresh_quota()
        except Exception:
            logger.debug("search_quota_refresh_ignored", exc_info=True)
