"""Control session: wires feeds to their poll controllers and continuation predicates, and tracks the active tab."""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from deck.core.config import settings as app_settings
from deck.models.schemas import ClipJobResponse, FeedSnapshot, PollerSnapshot
from deck.storage.settings_store import SettingsStore, UiSettings
from deck.sync.clips import TAB_CLIP_STUDIO, ClipStudioFeed, JobStatusClient
from deck.sync.feed_state import FeedState
from deck.sync.gateway import TAB_DEBUG, TAB_LOGS, GatewayFeed
from deck.sync.polling import PollController
from deck.sync.search import TAB_WORK_SEARCH, SearchRouterFeed

logger = logging.getLogger(__name__)


@dataclass
class PollIntervals:
    nodes: float = 5.0
    logs: float = 2.0
    debug: float = 3.0
    clip_job: float = 2.5
    search_quota: float = 30.0

    @classmethod
    def from_config(cls) -> "PollIntervals":
        return cls(
            nodes=app_settings.nodes_poll_seconds,
            logs=app_settings.logs_poll_seconds,
            debug=app_settings.debug_poll_seconds,
            clip_job=app_settings.clip_poll_seconds,
            search_quota=app_settings.search_poll_seconds,
        )


class UnknownFeedError(KeyError):
    pass


class ControlSession:
    """One client's synchronization loop: feeds, their controllers, the active tab and the settings they read.
    Why available: Replaces a shared mutable host object; every controller gets only the feed call and predicate it needs."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        store: SettingsStore,
        intervals: Optional[PollIntervals] = None,
        tab: str = "overview",
    ):
        self.store = store
        self.settings: UiSettings = store.load()
        self.tab = tab
        intervals = intervals or PollIntervals.from_config()

        self.nodes = GatewayFeed("nodes", http, self.get_settings)
        self.logs = GatewayFeed("logs", http, self.get_settings)
        self.debug = GatewayFeed("debug", http, self.get_settings)
        self.clips = ClipStudioFeed(JobStatusClient(http, self.get_settings))
        self.search = SearchRouterFeed(http, self.get_settings)

        self.controllers: Dict[str, PollController] = {
            "nodes": PollController("nodes", intervals.nodes, self.nodes.refresh),
            "logs": PollController("logs", intervals.logs, self.logs.refresh, lambda: self.tab == TAB_LOGS),
            "debug": PollController("debug", intervals.debug, self.debug.refresh, lambda: self.tab == TAB_DEBUG),
            "clip-job": PollController(
                "clip-job",
                intervals.clip_job,
                self.clips.refresh_status,
                self.should_poll_clips,
                stop_when_false=True,
            ),
            "search-quota": PollController(
                "search-quota",
                intervals.search_quota,
                self.search.refresh_quota,
                lambda: self.tab == TAB_WORK_SEARCH,
            ),
        }
        self._refreshers = {
            "nodes": self.nodes.refresh,
            "logs": self.logs.refresh,
            "debug": self.debug.refresh,
            "clip-job": self.clips.refresh_status,
            "search-quota": self.search.refresh_quota,
            # re-runs the stored test query (settings.work_search_test_query)
            "search-query": self.search.run_query,
        }

    # -------------------------
    # Settings (read-only to feeds)
    # -------------------------

    def get_settings(self) -> UiSettings:
        return self.settings

    def update_settings(self, patch: Dict[str, Any]) -> UiSettings:
        """Validate a partial update against the current settings and persist it. Raises pydantic.ValidationError on bad input."""
        merged = {**self.settings.model_dump(), **patch}
        next_settings = UiSettings.model_validate(merged)
        self.store.save(next_settings)
        self.settings = next_settings
        return next_settings

    # -------------------------
    # Lifecycle
    # -------------------------

    def should_poll_clips(self) -> bool:
        return self.clips.should_poll(self.tab)

    def start(self) -> None:
        for name in ("nodes", "logs", "debug", "search-quota"):
            self.controllers[name].start()
        if self.should_poll_clips():
            self.controllers["clip-job"].start()

    def stop(self) -> None:
        for controller in self.controllers.values():
            controller.stop()

    async def shutdown(self) -> None:
        self.stop()
        for controller in self.controllers.values():
            await controller.drain()

    def set_tab(self, tab: str) -> None:
        self.tab = tab
        # a terminal or missing job never re-arms the clip poll from a tab switch
        if tab == TAB_CLIP_STUDIO and self.should_poll_clips():
            self.controllers["clip-job"].start()

    def controller(self, name: str) -> PollController:
        try:
            return self.controllers[name]
        except KeyError:
            raise UnknownFeedError(name) from None

    # -------------------------
    # Feed operations
    # -------------------------

    def feed_states(self) -> Dict[str, FeedState]:
        return {
            "nodes": self.nodes.state,
            "logs": self.logs.state,
            "debug": self.debug.state,
            "clip-job": self.clips.state,
            "search-quota": self.search.quota,
            "search-query": self.search.query,
        }

    def feed(self, name: str) -> FeedSnapshot:
        states = self.feed_states()
        if name not in states:
            raise UnknownFeedError(name)
        return states[name].snapshot()

    async def refresh(self, name: str) -> FeedSnapshot:
        """On-demand refresh of one feed; shares the feed's single-flight latch with its timer."""
        if name not in self._refreshers:
            raise UnknownFeedError(name)
        await self._refreshers[name]()
        return self.feed(name)

    async def create_clip_job(self, video_url: str, extra: Optional[Dict[str, Any]] = None) -> ClipJobResponse:
        previous = self.clips.job.job_id
        await self.clips.create_job(video_url, extra)
        if self.clips.job.job_id and self.clips.job.job_id != previous:
            # new job: re-arm even if the previous one reached a terminal state
            self.controllers["clip-job"].start()
        return self.clip_job()

    def clip_job(self) -> ClipJobResponse:
        return ClipJobResponse(
            job_id=self.clips.job.job_id,
            status=self.clips.job.status,
            polling=self.controllers["clip-job"].armed,
            feed=self.clips.state.snapshot(),
        )

    async def run_search_query(self, query: Optional[str] = None) -> None:
        await self.search.run_query(query)

    def pollers(self) -> Dict[str, PollerSnapshot]:
        return {
            name: PollerSnapshot(name=name, armed=c.armed, interval_seconds=c.interval_seconds)
            for name, c in self.controllers.items()
        }
