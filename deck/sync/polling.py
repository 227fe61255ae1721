"""Per-feed repeating poll timer with idempotent start/stop and a continuation predicate checked on every tick."""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)


def _always() -> bool:
    return True


class PollController:
    """Owns zero or one repeating timer for a feed.

    Each tick asks `should_continue()`; when true the feed call is dispatched as its own task,
    so stop() only prevents future ticks and never aborts an outstanding request. With
    `stop_when_false`, a false predicate stops the timer from inside the tick instead of
    just skipping the call.
    """

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        action: Callable[[], Awaitable[None]],
        should_continue: Optional[Callable[[], bool]] = None,
        stop_when_false: bool = False,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self.name = name
        self.interval_seconds = interval_seconds
        self._action = action
        self._should_continue = should_continue or _always
        self._stop_when_false = stop_when_false
        self._timer: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def armed(self) -> bool:
        return self._timer is not None

    def start(self) -> None:
        if self._timer is not None:
            return
        self._timer = asyncio.get_running_loop().create_task(self._run(), name=f"poll:{self.name}")
        logger.debug("poll_started", extra={"feed": self.name, "interval_seconds": self.interval_seconds})

    def stop(self) -> None:
        timer = self._timer
        if timer is None:
            return
        self._timer = None
        # a self-stop from the tick's own task must not cancel it mid-tick
        if timer is not asyncio.current_task():
            timer.cancel()
        logger.debug("poll_stopped", extra={"feed": self.name})

    def tick(self) -> bool:
        """Run one tick. Returns True when a feed call was dispatched."""
        try:
            proceed = self._should_continue()
        except Exception:
            logger.exception("poll_predicate_failed", extra={"feed": self.name})
            return False
        if not proceed:
            if self._stop_when_false:
                self.stop()
            return False
        task = asyncio.get_running_loop().create_task(self._call(), name=f"poll-call:{self.name}")
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return True

    async def drain(self) -> None:
        """Wait for dispatched feed calls to settle (shutdown and tests)."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def _call(self) -> None:
        try:
            await self._action()
        except Exception:
            logger.exception("poll_call_failed", extra={"feed": self.name})

    async def _run(self) -> None:
        me = asyncio.current_task()
        while self._timer is me:
            await asyncio.sleep(self.interval_seconds)
            if self._timer is not me:
                break
            self.tick()
