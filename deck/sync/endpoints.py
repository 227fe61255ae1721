"""Webhook endpoint resolution: normalize and join an n8n base path with a webhook path."""
from deck.storage.settings_store import (
    DEFAULT_CLIP_ROUTER_WEBHOOK_PATH,
    DEFAULT_N8N_BASE_PATH,
    DEFAULT_SEARCH_ROUTER_WEBHOOK_PATH,
    UiSettings,
)


def normalize_path_segment(value: str, fallback: str) -> str:
    """Normalize one path segment: blank -> fallback, slashes only -> "", otherwise exactly one leading "/"."""
    trimmed = (value or "").strip()
    if not trimmed:
        return normalize_path_segment(fallback, "") if fallback else ""
    if not trimmed.strip("/"):
        return ""
    return "/" + trimmed.lstrip("/")


def join_paths(base: str, suffix: str) -> str:
    """Join two segments with exactly one "/" between them; "/" when both are empty."""
    a = normalize_path_segment(base, "")
    b = normalize_path_segment(suffix, "")
    if not a:
        return b or "/"
    if not b:
        return a
    return f"{a.rstrip('/')}/{b.lstrip('/')}"


def resolve(base_path: str, webhook_path: str, base_default: str = "", webhook_default: str = "") -> str:
    """Resolve the URL path for a webhook under a base path. Total: the worst case is "/".
    Why available: Both routers (clip studio, search) call the same n8n instance under a configurable prefix."""
    return join_paths(
        normalize_path_segment(base_path, base_default),
        normalize_path_segment(webhook_path, webhook_default),
    )


def resolve_clip_router_url(settings: UiSettings) -> str:
    return resolve(
        settings.work_n8n_base_path,
        settings.work_clip_router_webhook_path,
        DEFAULT_N8N_BASE_PATH,
        DEFAULT_CLIP_ROUTER_WEBHOOK_PATH,
    )


def resolve_search_router_url(settings: UiSettings) -> str:
    return resolve(
        settings.work_n8n_base_path,
        settings.work_search_router_webhook_path,
        DEFAULT_N8N_BASE_PATH,
        DEFAULT_SEARCH_ROUTER_WEBHOOK_PATH,
    )
