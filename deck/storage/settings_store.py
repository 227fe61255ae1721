"""Persisted UI settings: schema-defaulted load (never raises) and atomic save to a JSON file."""
import json
import logging
import math
import os
import tempfile
from typing import Any, Dict, Literal

from pydantic import BaseModel, ValidationError, field_validator

logger = logging.getLogger(__name__)

DEFAULT_N8N_BASE_PATH = "/n8n"
DEFAULT_SEARCH_ROUTER_WEBHOOK_PATH = "/webhook/cmd-search-router"
DEFAULT_CLIP_ROUTER_WEBHOOK_PATH = "/webhook/cmd-clip-studio"

# field -> (min, max) for integer settings; values are floored then clamped
_INT_BOUNDS = {
    "work_search_max_results": (1, 20),
    "work_clip_max_clips": (1, 20),
    "work_clip_min_seconds": (5, 120),
    "work_clip_max_seconds": (10, 180),
}


class UiSettings(BaseModel):
    """Settings the synchronization core reads: gateway location, n8n base/webhook paths, search provider options, and clip defaults.
    Why available: Read-only input to endpoint resolution and request building; only the settings store writes it."""

    gateway_url: str = "http://localhost:18789"
    token: str = ""
    work_search_ui_mode: Literal["quick", "assistant"] = "quick"
    work_n8n_base_path: str = DEFAULT_N8N_BASE_PATH
    work_search_router_webhook_path: str = DEFAULT_SEARCH_ROUTER_WEBHOOK_PATH
    work_search_strict_free: bool = True
    work_search_provider: Literal["auto", "brave", "tavily"] = "auto"
    work_search_mode: Literal["serp", "deep"] = "serp"
    work_search_max_results: int = 10
    work_search_domains: str = ""
    work_search_test_query: str = ""
    work_clip_router_webhook_path: str = DEFAULT_CLIP_ROUTER_WEBHOOK_PATH
    work_clip_max_clips: int = 10
    work_clip_min_seconds: int = 15
    work_clip_max_seconds: int = 45
    work_clip_subtitle_style: Literal["karaoke", "clean"] = "karaoke"

    @field_validator(
        "gateway_url",
        "work_n8n_base_path",
        "work_search_router_webhook_path",
        "work_clip_router_webhook_path",
        mode="before",
    )
    @classmethod
    def non_empty_text(cls, v):
        if not isinstance(v, str) or not v.strip():
            raise ValueError("must be a non-empty string")
        return v.strip()

    @field_validator("token", "work_search_domains", "work_search_test_query", mode="before")
    @classmethod
    def plain_text(cls, v):
        if not isinstance(v, str):
            raise ValueError("must be a string")
        return v

    @field_validator("work_search_strict_free", mode="before")
    @classmethod
    def strict_bool(cls, v):
        if not isinstance(v, bool):
            raise ValueError("must be a boolean")
        return v

    @field_validator(*_INT_BOUNDS, mode="before")
    @classmethod
    def clamp_int(cls, v, info):
        if isinstance(v, bool) or not isinstance(v, (int, float)) or not math.isfinite(v):
            raise ValueError("must be a finite number")
        low, high = _INT_BOUNDS[info.field_name]
        return min(high, max(low, math.floor(v)))


def _clean_fields(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only the fields that validate on their own; anything else falls back to its default."""
    clean: Dict[str, Any] = {}
    for name in UiSettings.model_fields:
        if name not in raw:
            continue
        try:
            UiSettings.model_validate({name: raw[name]})
        except ValidationError:
            logger.warning("settings_field_ignored", extra={"field": name})
            continue
        clean[name] = raw[name]
    return clean


class SettingsStore:
    """JSON-file settings store. load() never raises; save() replaces the file atomically."""

    def __init__(self, path: str):
        self.path = path

    def load(self) -> UiSettings:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError:
            return UiSettings()
        except (OSError, ValueError):
            logger.warning("settings_load_failed", exc_info=True, extra={"path": self.path})
            return UiSettings()
        if not isinstance(raw, dict):
            logger.warning("settings_not_an_object", extra={"path": self.path})
            return UiSettings()
        return UiSettings.model_validate(_clean_fields(raw))

    def save(self, next_settings: UiSettings) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".ui_settings.", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as out:
                json.dump(next_settings.model_dump(), out, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
