from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from typing import List, Optional, Dict, Any

JOB_STATES = ("queued", "running", "done", "error")
TERMINAL_JOB_STATES = ("done", "error")


# -------------------------
# Clip studio wire models
# -------------------------

class ClipAsset(BaseModel):
    """One generated clip. Why available: Part of the job status snapshot so the UI can list downloadable clips."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    title: Optional[str] = None
    hook: Optional[str] = None
    start_sec: Optional[float] = Field(None, alias="startSec")
    end_sec: Optional[float] = Field(None, alias="endSec")
    download_url: Optional[str] = Field(None, alias="downloadUrl")
    captions_url: Optional[str] = Field(None, alias="captionsUrl")
    score: Optional[float] = None

    @field_validator("id", "title", "hook", "download_url", "captions_url", mode="before")
    @classmethod
    def as_text(cls, v):
        return None if v is None else str(v)


class JobError(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Optional[str] = None
    status: Optional[int] = None
    message: Optional[str] = None

    @field_validator("message", "type", mode="before")
    @classmethod
    def as_text(cls, v):
        return None if v is None else str(v)

    @field_validator("status", mode="before")
    @classmethod
    def as_status(cls, v):
        return v if isinstance(v, int) and not isinstance(v, bool) else None


class JobStatus(BaseModel):
    """Clip job status snapshot returned by the clip router (create and status ops). Unknown or missing states normalize to "unknown".
    Why available: The clip-job poll loop reads state from here to decide whether to keep polling."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    ok: Optional[bool] = None
    ts: Optional[str] = None
    op: Optional[str] = None
    job_id: Optional[str] = Field(None, alias="jobId")
    state: str = "unknown"
    progress: Optional[float] = Field(None, description="0..100 when reported")
    clips: List[ClipAsset] = Field(default_factory=list)
    error: Optional[JobError] = None

    @field_validator("ok", mode="before")
    @classmethod
    def strict_bool(cls, v):
        return v if isinstance(v, bool) else None

    @field_validator("ts", "op", mode="before")
    @classmethod
    def optional_text(cls, v):
        return v if isinstance(v, str) else None

    @field_validator("job_id", mode="before")
    @classmethod
    def job_id_text(cls, v):
        if v is None or isinstance(v, (dict, list, bool)):
            return None
        text = str(v).strip()
        return text or None

    @field_validator("state", mode="before")
    @classmethod
    def normalize_state(cls, v):
        return v if v in JOB_STATES else "unknown"

    @field_validator("progress", mode="before")
    @classmethod
    def progress_in_range(cls, v):
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return None
        return v if 0 <= v <= 100 else None

    @field_validator("clips", mode="before")
    @classmethod
    def keep_valid_clips(cls, v):
        clips = []
        for item in v if isinstance(v, list) else []:
            try:
                clips.append(ClipAsset.model_validate(item))
            except ValidationError:
                continue
        return clips

    @field_validator("error", mode="before")
    @classmethod
    def error_object(cls, v):
        return v if isinstance(v, dict) else None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_JOB_STATES


class ClipCreateRequest(BaseModel):
    """Body for op=create on the clip router. Extra fields pass through untouched (the backend ignores unknown fields)."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    op: str = "create"
    video_url: str = Field(..., alias="videoUrl", min_length=1)
    max_clips: int = Field(..., alias="maxClips")
    min_seconds: int = Field(..., alias="minSeconds")
    max_seconds: int = Field(..., alias="maxSeconds")
    subtitle_style: str = Field(..., alias="subtitleStyle")
    format: str = "tiktok"


# -------------------------
# Search router wire models
# -------------------------

class SearchStatusRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    op: str = "status"
    provider: str = "auto"
    strict_free: bool = Field(..., alias="strictFree")


class SearchQueryRequest(BaseModel):
    """Body for a search router query execution. domains is omitted when the allowlist is empty."""

    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(..., min_length=1)
    provider: str
    mode: str
    strict_free: bool = Field(..., alias="strictFree")
    max_results: int = Field(..., alias="maxResults")
    domains: Optional[List[str]] = None


# -------------------------
# Control API models
# -------------------------

class FeedSnapshot(BaseModel):
    """Client-visible state of one feed. Why available: GET /feeds lets a UI render last-known-good data plus loading/error flags."""

    name: str
    loading: bool
    error: Optional[str] = None
    last_fetch_at: Optional[float] = Field(None, description="Epoch seconds of the last successful fetch")
    payload: Any = None


class PollerSnapshot(BaseModel):
    name: str
    armed: bool
    interval_seconds: float


class ClipJobResponse(BaseModel):
    """Clip job handle plus its feed state. Why available: Lets clients see job_id, latest status and whether polling is armed."""

    job_id: Optional[str] = None
    status: Optional[JobStatus] = None
    polling: bool = False
    feed: FeedSnapshot


class TabRequest(BaseModel):
    tab: str = Field(..., min_length=1, description="Active UI tab, e.g. logs, debug, clipStudio, workSearch")


class ClipCreateBody(BaseModel):
    video_url: str = Field("", description="Source video URL; empty is rejected as a feed error, not a 422")
    extra: Dict[str, Any] = Field(default_factory=dict, description="Free-form fields forwarded to the clip router")


class SearchQueryBody(BaseModel):
    query: Optional[str] = Field(None, description="Overrides the stored test query when given")


class SearchQueryResponse(BaseModel):
    query: FeedSnapshot
    quota: FeedSnapshot
