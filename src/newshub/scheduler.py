from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from .preferences import PreferenceStore

logger = logging.getLogger("newshub")

DISABLED = "disabled"
ARMED = "armed"


class AutoRefreshScheduler:
    """Calls ``refresh`` every ``interval`` minutes; an interval of 0 disarms it.

    Each arming owns its own stop event and ticker thread, so re-arming with a
    new interval cancels the old ticker before the new one starts.
    """

    def __init__(
        self,
        refresh: Callable[[], Any],
        seconds_per_minute: float = 60.0,
    ):
        self.refresh = refresh
        self.seconds_per_minute = seconds_per_minute
        self.interval = 0
        self._stop: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def state(self) -> str:
        return ARMED if self._stop is not None else DISABLED

    def set_interval(self, minutes: int) -> None:
        minutes = max(0, int(minutes))
        with self._lock:
            self._cancel()
            self.interval = minutes
            if minutes == 0:
                logger.info("Auto refresh disabled")
                return
            stop = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(stop, minutes * self.seconds_per_minute),
                name="newshub-auto-refresh",
                daemon=True,
            )
            self._stop, self._thread = stop, thread
            thread.start()
        logger.info("Auto refresh armed every %d minutes", minutes)

    def _cancel(self) -> None:
        if self._stop is not None:
            self._stop.set()
        self._stop = None
        self._thread = None

    def _run(self, stop: threading.Event, period: float) -> None:
        while not stop.wait(period):
            # Disarmed between the timeout and this tick
            if stop.is_set():
                break
            logger.debug("Auto refresh tick")
            try:
                self.refresh()
            except Exception:
                logger.exception("Auto refresh failed")

    def stop(self) -> None:
        with self._lock:
            self._cancel()
            self.interval = 0
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def bind(self, preferences: PreferenceStore) -> None:
        """Follow the auto refresh interval stored in the preferences."""

        def on_change(field_name: str) -> None:
            if field_name == "auto_refresh_interval":
                self.set_interval(preferences.auto_refresh_interval)

        self._unsubscribe = preferences.subscribe(on_change)
        self.set_interval(preferences.auto_refresh_interval)
