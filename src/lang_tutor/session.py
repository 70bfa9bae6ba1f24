"""ExerciseSession: runs the state machine on an asyncio event loop."""
import asyncio
import logging
from collections import deque
from typing import Callable, Optional

from lang_tutor.config import DISPLAY_DELAY_MS
from lang_tutor.machine import (
    Advance, Flip, Rate, Restart, Skip, Status, Submit, ToggleAutoAdvance, ToggleHint,
    initialize_state, pending_timer, reduce, snapshot,
)

logger = logging.getLogger(__name__)


class ExerciseSession:
    """Owns one run of an exercise: its state, its timer and its callbacks.

    Events are processed one at a time in arrival order; an event dispatched
    from inside a callback is queued until the current one finishes. At most
    one timer is pending, and it is canceled whenever the status, position or
    auto-advance flag changes, on restart and on close().
    """

    def __init__(self, content, on_complete: Optional[Callable[[dict], None]] = None,
                 on_change: Optional[Callable[[dict], None]] = None,
                 settings=None, records=None, seed=None,
                 loop: Optional[asyncio.AbstractEventLoop] = None,
                 display_delay_ms: int = DISPLAY_DELAY_MS):
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                raise RuntimeError(
                    "ExerciseSession needs a running event loop or an explicit loop"
                ) from None
        self.state = initialize_state(content, settings, records, seed)
        self.on_complete = on_complete
        self.on_change = on_change
        self.settings = settings
        self.display_delay_ms = display_delay_ms
        self.closed = False
        self._loop = loop
        self._timer: Optional[asyncio.TimerHandle] = None
        self._timer_key = None
        self._queue: deque = deque()
        self._dispatching = False

    @property
    def status(self) -> Status:
        return self.state.status

    @property
    def snapshot(self) -> dict:
        return snapshot(self.state)

    @property
    def reviews(self) -> dict:
        """Updated SRS records for the cards rated so far (flashcards only)."""
        return dict(self.state.reviews)

    @property
    def ratings(self) -> dict:
        return dict(self.state.ratings)

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    def dispatch(self, event) -> None:
        if self.closed:
            logger.debug("Session closed, dropping %s", type(event).__name__)
            return
        self._queue.append(event)
        if self._dispatching:
            return
        self._dispatching = True
        try:
            while self._queue and not self.closed:
                self._process(self._queue.popleft())
        finally:
            self._dispatching = False
            self._queue.clear()

    def _process(self, event) -> None:
        previous = self.state
        self.state = reduce(previous, event)
        if self.state is previous:
            return
        self._sync_timer(force=isinstance(event, Restart))
        if self.on_change:
            self.on_change(snapshot(self.state))
        if self.state.status is Status.COMPLETED and previous.status is not Status.COMPLETED:
            if self.on_complete:
                self.on_complete(dict(self.state.result))

    def _sync_timer(self, force: bool = False) -> None:
        key = (self.state.status, self.state.position, self.state.auto_advance_enabled)
        if key == self._timer_key and not force:
            return
        self._timer_key = key
        self.cancel_timer()
        pending = pending_timer(self.state, self.display_delay_ms)
        if pending is None:
            return
        event_type, delay_ms = pending
        logger.debug("Scheduling %s in %d ms", event_type.__name__, delay_ms)
        self._timer = self._loop.call_later(delay_ms / 1000, self._fire, event_type)

    def _fire(self, event_type) -> None:
        self._timer = None
        self.dispatch(event_type())

    def cancel_timer(self) -> None:
        if self._timer is not None:
            logger.debug("Canceling pending timer")
            self._timer.cancel()
            self._timer = None

    def close(self) -> None:
        """Tear down the session; pending timers never fire after this."""
        self.cancel_timer()
        self.closed = True

    # Convenience wrappers

    def submit(self, answer: str) -> None:
        self.dispatch(Submit(answer))

    def advance(self) -> None:
        self.dispatch(Advance())

    def skip(self) -> None:
        self.dispatch(Skip())

    def toggle_auto_advance(self) -> None:
        self.dispatch(ToggleAutoAdvance())

    def toggle_hint(self, kind: str) -> None:
        self.dispatch(ToggleHint(kind))

    def flip(self) -> None:
        self.dispatch(Flip())

    def rate(self, quality: int) -> None:
        self.dispatch(Rate(quality))

    def restart(self, content=None, records=None, seed=None, settings=None) -> None:
        """Start the run over; raises ContentError if the content has nothing to run.

        Without ``content`` the current exercise restarts with this session's
        settings. New content uses its own settings unless ``settings`` is given.
        """
        if content is None:
            content = self.state.content
            settings = settings or self.settings
        self.dispatch(Restart(content, settings, records, seed))
        self.settings = settings
