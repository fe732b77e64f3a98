"""Time-series playback for the map.

A :class:`TimeSeriesPlayer` walks a displayed date forward one month per
tick.  Ticks come from an injected :class:`Ticker`: :class:`ThreadTicker`
for wall-clock playback, :class:`ManualTicker` for tests that need to
advance time deterministically.  Passing today wraps back to the start.
"""

from __future__ import annotations

import calendar
import threading
from abc import ABC, abstractmethod
from datetime import date
from typing import Callable, Optional

from loguru import logger

DEFAULT_START = date(2024, 1, 1)

TickCallback = Callable[[], None]


def add_months(d: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the month length."""
    index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


# ---------------------------------------------------------------------------
# Tickers
# ---------------------------------------------------------------------------

class Ticker(ABC):
    """Recurring timer abstraction."""

    @abstractmethod
    def start(self, callback: TickCallback, interval: float) -> None:
        """Begin calling ``callback`` every ``interval`` seconds."""

    @abstractmethod
    def stop(self, wait: bool = True) -> None:
        """Cancel the timer.  Safe to call when not running.

        With ``wait=False`` the timer is only signalled; no further ticks are
        started but one already in flight may still be finishing.
        """

    @property
    @abstractmethod
    def running(self) -> bool:
        ...


class ManualTicker(Ticker):
    """Ticker driven by explicit :meth:`advance` calls."""

    def __init__(self) -> None:
        self._callback: Optional[TickCallback] = None
        self.interval: float = 0.0

    def start(self, callback: TickCallback, interval: float) -> None:
        self._callback = callback
        self.interval = interval

    def stop(self, wait: bool = True) -> None:
        self._callback = None

    @property
    def running(self) -> bool:
        return self._callback is not None

    def advance(self, ticks: int = 1) -> None:
        """Fire ``ticks`` ticks.  No-op while stopped."""
        for _ in range(ticks):
            if self._callback is None:
                return
            self._callback()


class ThreadTicker(Ticker):
    """Wall-clock ticker on a daemon thread."""

    def __init__(self, name: str = "timeseries-ticker", join_timeout: float = 2.0) -> None:
        self._name = name
        self._join_timeout = join_timeout
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self, callback: TickCallback, interval: float) -> None:
        self.stop()
        self._stop = threading.Event()
        stop_event = self._stop

        def _loop() -> None:
            while not stop_event.wait(interval):
                try:
                    callback()
                except Exception as e:
                    logger.warning(f"Time-series tick failed: {e}")

        self._thread = threading.Thread(target=_loop, daemon=True, name=self._name)
        self._thread.start()

    def stop(self, wait: bool = True) -> None:
        self._stop.set()
        thread = self._thread
        if thread is None or not wait or thread is threading.current_thread():
            # Left for the next stop() or start() to join
            return
        thread.join(timeout=self._join_timeout)
        if thread.is_alive():
            logger.warning(f"Ticker thread {self._name} did not stop within {self._join_timeout}s")
        self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()


# ---------------------------------------------------------------------------
# Player
# ---------------------------------------------------------------------------

class TimeSeriesPlayer:
    """Play/pause/step control over a displayed date.

    Timer ticks run under ``lock`` and are dropped once playback has been
    stopped, so a tick that was already waiting never lands afterwards.
    Pass the lock that also guards whoever stops playback.

    Args:
        ticker: Timer source.
        on_change: Called with the new date after every change.
        start: Date playback starts from and wraps back to.
        interval: Seconds between ticks while playing.
        today: Returns "now"; injectable for tests.
        lock: Re-entrant lock ticks are serialised on.
    """

    def __init__(
        self,
        ticker: Ticker,
        on_change: Callable[[date], None] | None = None,
        start: date = DEFAULT_START,
        interval: float = 1.0,
        today: Callable[[], date] = date.today,
        lock: Optional[threading.RLock] = None,
    ) -> None:
        self._ticker = ticker
        self._on_change = on_change
        self.start_date = start
        self.interval = interval
        self._today = today
        self._lock = lock if lock is not None else threading.RLock()
        self.current = start
        self.playing = False

    def _set(self, value: date) -> None:
        self.current = value
        if self._on_change is not None:
            self._on_change(value)

    def _on_tick(self) -> None:
        with self._lock:
            if not self.playing:
                return
            self.tick()

    def tick(self) -> None:
        """Advance one month, wrapping to the start once past today."""
        nxt = add_months(self.current, 1)
        if nxt > self._today():
            nxt = self.start_date
        self._set(nxt)

    def play(self) -> None:
        if self.playing:
            return
        self.playing = True
        self._ticker.start(self._on_tick, self.interval)

    def pause(self) -> None:
        self.playing = False
        self._ticker.stop()

    def toggle(self) -> None:
        if self.playing:
            self.pause()
        else:
            self.play()

    def step_forward(self) -> None:
        self.tick()

    def step_back(self) -> None:
        """Go back one month, never before the start date."""
        self._set(max(self.start_date, add_months(self.current, -1)))

    def reset(self) -> None:
        self.pause()
        self._set(self.start_date)

    def cancel(self, wait: bool = True) -> None:
        """Stop the timer without touching the date (unmount, feature off).

        Use ``wait=False`` while holding the tick lock: a tick blocked on it
        could never finish, so joining would only time out.
        """
        self.playing = False
        self._ticker.stop(wait=wait)
