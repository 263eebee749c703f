"""Match manager: tracks active matches and their tick loops."""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Iterable, Optional

from flagwar.engine.exploration import ExplorationConfig
from flagwar.engine.scoring import DEFAULT_WEIGHTS, ScoreWeights
from flagwar.game.board import BoardConfig
from flagwar.game.state import Side
from flagwar.match.loop import TickLoop
from flagwar.match.session import MatchSession

logger = logging.getLogger("flagwar.match")


class MatchManager:
    """Creates and tracks MatchSession instances.

    Holds the shared board, scoring and search settings. With a positive
    ``tick_seconds`` each started match gets its own TickLoop; with 0 rounds
    only advance through explicit ``tick()`` calls.
    """

    def __init__(
        self,
        board: Optional[BoardConfig] = None,
        exploration: Optional[ExplorationConfig] = None,
        weights: ScoreWeights = DEFAULT_WEIGHTS,
        tick_seconds: float = 0.0,
        default_ai_sides: Iterable[Side] = (Side.B,),
        join_timeout: float = 5.0,
    ):
        self.board = board
        self.weights = weights
        self.exploration = exploration or ExplorationConfig(weights=weights)
        self.tick_seconds = tick_seconds
        self.default_ai_sides = [Side(s) for s in default_ai_sides]
        self.join_timeout = join_timeout

        self._matches: dict[str, MatchSession] = {}
        self._loops: dict[str, TickLoop] = {}
        self._lock = threading.Lock()

    def create_match(self, ai_sides: Optional[Iterable[Side]] = None) -> MatchSession:
        """Create a new match in WAITING status.

        Args:
            ai_sides: Sides played by the search strategy; defaults to the
                manager's ``default_ai_sides``.
        """
        match_id = uuid.uuid4().hex[:12]
        sides = self.default_ai_sides if ai_sides is None else [Side(s) for s in ai_sides]
        session = MatchSession(
            match_id=match_id,
            config=self.board,
            ai_sides=sides,
            exploration=self.exploration,
            weights=self.weights,
            background_planning=self.tick_seconds > 0,
        )
        with self._lock:
            self._matches[match_id] = session
        logger.info(f"Created match {match_id} (ai: {[s.value for s in sides] or 'none'})")
        return session

    def get_match(self, match_id: str) -> Optional[MatchSession]:
        with self._lock:
            return self._matches.get(match_id)

    def start_match(self, match_id: str) -> Optional[MatchSession]:
        """Start or resume a match, launching its tick loop when configured."""
        session = self.get_match(match_id)
        if session is None:
            return None
        session.start()
        if self.tick_seconds > 0:
            with self._lock:
                loop = self._loops.get(match_id)
                if loop is None or not loop.is_alive():
                    loop = TickLoop(session, self.tick_seconds)
                    self._loops[match_id] = loop
                    loop.start()
        return session

    def delete_match(self, match_id: str) -> bool:
        with self._lock:
            session = self._matches.pop(match_id, None)
            loop = self._loops.pop(match_id, None)
        if loop is not None:
            loop.stop(self.join_timeout)
        if session is not None:
            logger.info(f"Deleted match {match_id}")
        return session is not None

    def list_matches(self) -> list[str]:
        with self._lock:
            return list(self._matches)

    def shutdown(self) -> None:
        with self._lock:
            loops = list(self._loops.values())
            self._loops.clear()
            sessions = list(self._matches.values())
        for loop in loops:
            loop.stop()
        for loop in loops:
            loop.join(self.join_timeout)
            if loop.is_alive():
                logger.warning(f"Tick loop {loop.name} did not stop within {self.join_timeout:.1f}s")
        for session in sessions:
            session.wait_for_planning(self.join_timeout)
