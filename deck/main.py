import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import ValidationError

from deck.core.config import settings
from deck.core.http_client import close_http_client, get_http_client
from deck.guardrails.errors import as_http_500
from deck.models.schemas import (
    ClipCreateBody,
    ClipJobResponse,
    FeedSnapshot,
    PollerSnapshot,
    SearchQueryBody,
    SearchQueryResponse,
    TabRequest,
)
from deck.observability.middleware import RequestTimingMiddleware, get_request_id
from deck.storage.settings_store import SettingsStore, UiSettings
from deck.sync.session import ControlSession, PollIntervals, UnknownFeedError

logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger(__name__)


# -------------------------
# App setup
# -------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the control session on startup (arming background polls when configured) and stop every timer on shutdown."""
    session = ControlSession(
        get_http_client(),
        SettingsStore(settings.settings_file),
        intervals=PollIntervals.from_config(),
    )
    app.state.session = session
    if settings.autostart_polling:
        session.start()
    logger.info("control_session_started", extra={"autostart": settings.autostart_polling})
    try:
        yield
    finally:
        await session.shutdown()
        await close_http_client()
        logger.info("control_session_stopped")


app = FastAPI(title="Work Deck Sync", lifespan=lifespan)
app.add_middleware(RequestTimingMiddleware)


def get_session(request: Request) -> ControlSession:
    return request.app.state.session


def _not_found(name: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Unknown feed: {name}")


# -------------------------
# Root
# -------------------------

@app.get("/")
def root():
    """Returns a minimal welcome payload with app name and docs URL."""
    return {"app": "Work Deck Sync", "docs": "/docs"}


@app.get("/health")
def health():
    """Returns 200 OK with status. Used by health checks to see if the API is up."""
    return {"status": "ok"}


# -------------------------
# Settings
# -------------------------

@app.get("/settings", response_model=UiSettings)
def read_settings(session: ControlSession = Depends(get_session)):
    return session.get_settings()


@app.put("/settings", response_model=UiSettings)
def update_settings(patch: Dict[str, Any], request: Request, session: ControlSession = Depends(get_session)):
    """Applies a partial settings update, validates it against the settings schema, and persists it.
    Why available: Feeds read base path, webhook paths and provider options from here on their next call."""
    try:
        return session.update_settings(patch)
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=[{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()],
        )
    except OSError as e:
        raise as_http_500(e, get_request_id(request))


# -------------------------
# Tabs & polling
# -------------------------

@app.post("/tab")
async def set_tab(req: TabRequest, session: ControlSession = Depends(get_session)):
    """Switches the active tab. Tab-scoped feeds (logs, debug, search quota) only fire while their tab is active."""
    session.set_tab(req.tab)
    return {"tab": session.tab}


@app.get("/polling", response_model=List[PollerSnapshot])
def list_pollers(session: ControlSession = Depends(get_session)):
    return list(session.pollers().values())


@app.post("/polling/{name}/start", response_model=PollerSnapshot)
async def start_poller(name: str, session: ControlSession = Depends(get_session)):
    """Arms a feed's timer (idempotent)."""
    try:
        session.controller(name).start()
    except UnknownFeedError:
        raise _not_found(name)
    return session.pollers()[name]


@app.post("/polling/{name}/stop", response_model=PollerSnapshot)
async def stop_poller(name: str, session: ControlSession = Depends(get_session)):
    """Disarms a feed's timer (idempotent). A request already in flight still lands."""
    try:
        session.controller(name).stop()
    except UnknownFeedError:
        raise _not_found(name)
    return session.pollers()[name]


# -------------------------
# Feeds
# -------------------------

@app.get("/feeds", response_model=List[FeedSnapshot])
def list_feeds(session: ControlSession = Depends(get_session)):
    return [state.snapshot() for state in session.feed_states().values()]


@app.get("/feeds/{name}", response_model=FeedSnapshot)
def read_feed(name: str, session: ControlSession = Depends(get_session)):
    try:
        return session.feed(name)
    except UnknownFeedError:
        raise _not_found(name)


@app.post("/feeds/{name}/refresh", response_model=FeedSnapshot)
async def refresh_feed(name: str, request: Request, session: ControlSession = Depends(get_session)):
    """On-demand refresh. A no-op when the feed already has a request in flight; failures are reported in the feed's error field."""
    try:
        return await session.refresh(name)
    except UnknownFeedError:
        raise _not_found(name)
    except Exception as e:
        raise as_http_500(e, get_request_id(request))


# -------------------------
# Clip studio
# -------------------------

@app.post("/clips/jobs", response_model=ClipJobResponse)
async def create_clip_job(req: ClipCreateBody, session: ControlSession = Depends(get_session)):
    """Creates a clip job on the clip router. A returned job id replaces the tracked job and arms status polling.
    Why available: The only way to start tracking a new job; validation and router failures come back in feed.error."""
    return await session.create_clip_job(req.video_url, req.extra)


@app.get("/clips/job", response_model=ClipJobResponse)
def read_clip_job(session: ControlSession = Depends(get_session)):
    return session.clip_job()


# -------------------------
# Search router
# -------------------------

@app.post("/search/query", response_model=SearchQueryResponse)
async def run_search_query(req: SearchQueryBody, session: ControlSession = Depends(get_session)):
    """Runs a search router query, then refreshes quota figures once (best-effort)."""
    await session.run_search_query(req.query)
    return SearchQueryResponse(
        query=session.feed("search-query"),
        quota=session.feed("search-quota"),
    )
