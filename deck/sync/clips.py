"""Clip studio job tracking: create a clip job, poll its status, and decide when polling is no longer useful."""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import httpx

from deck.models.schemas import ClipCreateRequest, JobStatus
from deck.storage.settings_store import UiSettings
from deck.sync.endpoints import resolve_clip_router_url
from deck.sync.feed_state import FeedState, SoftFeedError
from deck.sync.transport import FeedRequestError, WebhookResponse, post_json

logger = logging.getLogger(__name__)

TAB_CLIP_STUDIO = "clipStudio"


@dataclass
class JobHandle:
    """Server-assigned job id (None until created) and the last fetched status snapshot."""

    job_id: Optional[str] = None
    status: Optional[JobStatus] = None

    @property
    def started(self) -> bool:
        return bool((self.job_id or "").strip())


class JobStatusClient:
    """Performs the clip router's create and status ops. Holds no latch: single-flight is owned by the caller's FeedState."""

    def __init__(self, http: httpx.AsyncClient, get_settings: Callable[[], UiSettings]):
        self.http = http
        self.get_settings = get_settings

    def url(self) -> str:
        return resolve_clip_router_url(self.get_settings())

    async def status(self, job_id: Optional[str]) -> WebhookResponse:
        payload: Dict[str, Any] = {"op": "status"}
        if job_id:
            payload["jobId"] = job_id
        return await post_json(self.http, self.url(), payload)

    async def create(self, request: ClipCreateRequest) -> WebhookResponse:
        return await post_json(self.http, self.url(), request.model_dump(by_alias=True, exclude_none=True))


def build_create_request(settings: UiSettings, video_url: str, extra: Optional[Dict[str, Any]] = None) -> ClipCreateRequest:
    """Creation payload with the TikTok defaults from settings; extra fields are forwarded as-is unless they name a core field."""
    reserved = set(ClipCreateRequest.model_fields)
    reserved.update(f.alias for f in ClipCreateRequest.model_fields.values() if f.alias)
    extra = {k: v for k, v in (extra or {}).items() if k not in reserved}
    return ClipCreateRequest(
        videoUrl=video_url,
        maxClips=settings.work_clip_max_clips,
        minSeconds=settings.work_clip_min_seconds,
        maxSeconds=settings.work_clip_max_seconds,
        subtitleStyle=settings.work_clip_subtitle_style,
        **extra,
    )


class ClipStudioFeed:
    """The clip-job feed: one FeedState latch shared by create and status, plus the JobHandle they update.
    Why available: The clip-job poll controller ticks refresh_status() and asks should_poll() whether to keep its timer."""

    def __init__(self, client: JobStatusClient, state: Optional[FeedState] = None):
        self.client = client
        self.state = state or FeedState(name="clip-job")
        self.job = JobHandle()

    def should_poll(self, tab: str) -> bool:
        """Keep polling while on the clip studio tab with a started job whose state is not done/error (unknown keeps polling)."""
        if tab != TAB_CLIP_STUDIO:
            return False
        if not self.job.started:
            return False
        status = self.job.status
        return status is None or not status.is_terminal

    async def refresh_status(self) -> None:
        if self.state.loading:
            return
        if not self.job.started:
            return
        job_id = self.job.job_id
        with self.state.attempt():
            res = await self.client.status(job_id)
            if not res.ok:
                raise FeedRequestError(f"Clip studio status failed ({res.status})", status=res.status)
            self._apply_status(res.data, "Unexpected clip studio status payload")

    async def create_job(self, video_url: str, extra: Optional[Dict[str, Any]] = None) -> None:
        """Create a new clip job. A returned jobId replaces the tracked job; the old one is abandoned.

        A failed create, or one answered without a jobId, leaves the tracked handle (id and status) untouched.
        """
        if self.state.loading:
            return
        video_url = (video_url or "").strip()
        if not video_url:
            self.state.error = "Missing video URL."
            return

        with self.state.attempt():
            request = build_create_request(self.client.get_settings(), video_url, extra)
            res = await self.client.create(request)
            if not res.ok:
                raise FeedRequestError(f"Clip studio create failed ({res.status})", status=res.status)
            data = res.data
            if not isinstance(data, dict):
                self.state.payload = data
                raise SoftFeedError("Unexpected clip studio create payload")
            status = JobStatus.model_validate(data)
            if not status.job_id:
                self.state.payload = status
                message = status.error.message if status.error else None
                raise SoftFeedError(message or "Clip studio create returned no job id")
            self.job.job_id = status.job_id
            logger.info("clip_job_created", extra={"job_id": self.job.job_id})
            self._apply_status(data, "Unexpected clip studio create payload")

    def _apply_status(self, data: Any, unexpected_message: str) -> None:
        if not isinstance(data, dict):
            self.state.payload = data
            self.job.status = JobStatus()
            raise SoftFeedError(unexpected_message)
        status = JobStatus.model_validate(data)
        self.job.status = status
        self.state.mark_success(status)
        if status.is_terminal:
            logger.info("clip_job_terminal", extra={"job_id": self.job.job_id, "state": status.state})
