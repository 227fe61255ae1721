"""Per-feed client state (loading / error / last fetch / payload) and the single-flight attempt discipline."""
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Optional

import httpx

from deck.models.schemas import FeedSnapshot
from deck.sync.transport import FeedRequestError

logger = logging.getLogger(__name__)


class SoftFeedError(Exception):
    """Response arrived but had an unexpected shape; the received payload is kept and only the message is surfaced."""


@dataclass
class FeedState:
    """Mutable state for one polled feed: loading flag (single-flight latch), last error, last successful fetch time and last payload.
    Why available: Owned by exactly one feed's call path so a UI can render last-known-good data while a refresh is in flight."""

    name: str
    loading: bool = False
    error: Optional[str] = None
    last_fetch_at: Optional[float] = None
    payload: Any = None

    def mark_success(self, payload: Any) -> None:
        self.payload = payload
        self.last_fetch_at = time.time()

    @contextmanager
    def attempt(self) -> Iterator["FeedState"]:
        """Run one request attempt under the latch. Caller must check `loading` first; errors are folded into `error`, never raised.

        Order: error cleared, loading set, body runs; on every exit state is updated before loading is cleared.
        """
        self.error = None
        self.loading = True
        try:
            yield self
        except (FeedRequestError, SoftFeedError) as e:
            self.error = str(e)
        except httpx.HTTPError as e:
            logger.warning("feed_transport_error", extra={"feed": self.name, "error": repr(e)})
            self.error = f"{type(e).__name__}: {e}"
        except Exception as e:
            logger.exception("feed_request_failed", extra={"feed": self.name})
            self.error = str(e) or type(e).__name__
        finally:
            self.loading = False

    def snapshot(self) -> FeedSnapshot:
        payload = self.payload
        if hasattr(payload, "model_dump"):
            payload = payload.model_dump(by_alias=True)
        return FeedSnapshot(
            name=self.name,
            loading=self.loading,
            error=self.error,
            last_fetch_at=self.last_fetch_at,
            payload=payload,
        )
