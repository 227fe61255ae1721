import os
from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Process settings loaded from environment: where UI settings are persisted, the webhook origin, HTTP timeout, and per-feed poll intervals.
    Why available: Single source of configuration so the session, API and scripts agree on intervals and endpoints."""
    settings_file: str = os.getenv("DECK_SETTINGS_FILE", os.path.join("data", "ui_settings.json"))
    webhook_origin: str = os.getenv("DECK_WEBHOOK_ORIGIN", "http://localhost:5678")
    http_timeout_seconds: float = float(os.getenv("DECK_HTTP_TIMEOUT_SECONDS", "30"))
    nodes_poll_seconds: float = float(os.getenv("DECK_NODES_POLL_SECONDS", "5"))
    logs_poll_seconds: float = float(os.getenv("DECK_LOGS_POLL_SECONDS", "2"))
    debug_poll_seconds: float = float(os.getenv("DECK_DEBUG_POLL_SECONDS", "3"))
    clip_poll_seconds: float = float(os.getenv("DECK_CLIP_POLL_SECONDS", "2.5"))
    search_poll_seconds: float = float(os.getenv("DECK_SEARCH_POLL_SECONDS", "30"))
    autostart_polling: bool = _env_flag("DECK_AUTOSTART_POLLING", "1")
    log_level: str = os.getenv("DECK_LOG_LEVEL", "INFO")

    @field_validator(
        "http_timeout_seconds",
        "nodes_poll_seconds",
        "logs_poll_seconds",
        "debug_poll_seconds",
        "clip_poll_seconds",
        "search_poll_seconds",
    )
    @classmethod
    def must_be_positive(cls, v):
        """Ensure timeouts and poll intervals are positive. Prevents a zero interval from spinning a feed."""
        if v <= 0:
            raise ValueError("must be > 0")
        return v


settings = Settings()
