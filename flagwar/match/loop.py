"""Fixed-cadence round driver for a match."""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from flagwar.game.state import GameStatus
from flagwar.match.session import MatchSession

logger = logging.getLogger("flagwar.match")


class TickLoop(threading.Thread):
    """Calls ``session.tick()`` every ``interval`` seconds while the match is playing.

    Ticks are scheduled against absolute deadlines, so the time a tick takes
    does not stretch the period. If a tick overruns whole periods, the
    missed slots are skipped rather than fired back to back.
    """

    def __init__(self, session: MatchSession, interval: float):
        super().__init__(name=f"tick-{session.match_id}", daemon=True)
        self.session = session
        self.interval = interval
        self._stop_event = threading.Event()
        self._clock = time.monotonic

    def run(self) -> None:
        logger.info(f"Tick loop for match {self.session.match_id} every {self.interval:.2f}s")
        next_tick = self._clock() + self.interval
        while not self._stop_event.wait(max(0.0, next_tick - self._clock())):
            next_tick += self.interval
            now = self._clock()
            if next_tick <= now:
                skipped = int((now - next_tick) // self.interval) + 1
                next_tick += skipped * self.interval
                logger.debug(f"Tick loop for match {self.session.match_id} skipped {skipped} slot(s)")

            status = self.session.status
            if status == GameStatus.FINISHED:
                break
            if status != GameStatus.PLAYING:
                continue
            try:
                self.session.tick()
            except Exception:
                logger.exception(f"Tick failed for match {self.session.match_id}")
        logger.info(f"Tick loop for match {self.session.match_id} stopped")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal the loop to exit; with a timeout, also wait for it."""
        self._stop_event.set()
        if timeout is not None and self.is_alive() and threading.current_thread() is not self:
            self.join(timeout)
