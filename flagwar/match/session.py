"""Match session: live state, per-round command queue, AI seats and history.

MatchSession is the pure-Python core with no HTTP dependency. Every
mutation of the live state goes through ``tick()`` under the session lock.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterable, Optional

from flagwar.engine.exploration import ExplorationConfig, PositionExplorationStrategy, Strategy
from flagwar.engine.scoring import DEFAULT_WEIGHTS, ScoreWeights, evaluate_state
from flagwar.game.board import BoardConfig, render_board
from flagwar.game.flags import initialize_flags
from flagwar.game.movement import coerce_movement
from flagwar.game.rules import RoundResult, default_capture_events, execute_round
from flagwar.game.state import GameState, GameStatus, Movement, Side

logger = logging.getLogger("flagwar.match")


class StatusError(Exception):
    """Raised when an action is attempted in the wrong match status."""

    def __init__(self, current: GameStatus, allowed: list[GameStatus]):
        self.current = current
        self.allowed = allowed
        names = ", ".join(s.value for s in allowed)
        super().__init__(
            f"Action not allowed while match is {current.value}. "
            f"Allowed while: {names}"
        )


@dataclass
class RoundRecord:
    """What went into and came out of one executed round."""
    round: int
    commands: dict[str, list[dict]]
    result: dict
    scores: dict[str, float]

    def to_dict(self) -> dict:
        return {
            "round": self.round,
            "commands": self.commands,
            "result": self.result,
            "scores": self.scores,
        }


@dataclass
class _Seat:
    side: Side
    strategy: Optional[Strategy] = None

    @property
    def is_ai(self) -> bool:
        return self.strategy is not None


class MatchSession:
    """One match between two seats, each human-driven or AI-driven.

    AI seats plan on a snapshot outside the session lock. With
    ``background_planning`` each plan runs on its own worker thread and is
    queued whenever it finishes, so a slow search never holds up a round.
    Without it ``start()`` and ``tick()`` plan before returning, which keeps
    manually driven matches deterministic.
    """

    def __init__(
        self,
        match_id: str,
        config: Optional[BoardConfig] = None,
        ai_sides: Iterable[Side] = (),
        exploration: Optional[ExplorationConfig] = None,
        weights: ScoreWeights = DEFAULT_WEIGHTS,
        background_planning: bool = False,
    ):
        self.match_id = match_id
        self.state = GameState(config)
        self.weights = weights
        self.exploration = exploration or ExplorationConfig(weights=weights)
        self.background_planning = background_planning

        ai = set(Side(s) for s in ai_sides)
        self.seats = {
            side: _Seat(side, PositionExplorationStrategy(self.exploration) if side in ai else None)
            for side in Side
        }
        self.history: list[RoundRecord] = []
        self.capture_counts: dict[Side, int] = {side: 0 for side in Side}
        self.last_result: Optional[RoundResult] = None

        self._queue: dict[int, dict[Side, list[Movement]]] = {}
        self._lock = threading.Lock()
        # Plans are numbered per side; an older plan never replaces a newer one.
        self._plans_started: dict[Side, int] = {side: 0 for side in Side}
        self._plans_queued: dict[Side, int] = {side: 0 for side in Side}
        self._planners: list[threading.Thread] = []
        self._events = default_capture_events()
        self._events.subscribe(self._count_capture)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def status(self) -> GameStatus:
        return self.state.status

    @property
    def ai_sides(self) -> list[Side]:
        return [side for side, seat in self.seats.items() if seat.is_ai]

    def _require(self, *allowed: GameStatus) -> None:
        if self.state.status not in allowed:
            raise StatusError(self.state.status, list(allowed))

    def start(self) -> None:
        """Begin (or resume) play. AI seats plan the first round immediately."""
        with self._lock:
            self._require(GameStatus.WAITING, GameStatus.PAUSED)
            if self.state.status == GameStatus.WAITING:
                initialize_flags(self.state)
            self.state.status = GameStatus.PLAYING
            logger.info(f"Match {self.match_id} playing from round {self.state.round}")
            jobs = self._snapshot_for_ai()
        self._launch_planning(jobs)

    def pause(self) -> None:
        with self._lock:
            self._require(GameStatus.PLAYING)
            self.state.status = GameStatus.PAUSED
            logger.info(f"Match {self.match_id} paused at round {self.state.round}")

    # ------------------------------------------------------------------
    # Commands and rounds
    # ------------------------------------------------------------------

    def submit_commands(self, side: Side, commands: Iterable, target_round: Optional[int] = None) -> int:
        """Queue commands for a side. Returns the round they will apply to.

        Commands aimed at a round that already executed go to the current
        round. Malformed entries are dropped here and again at execution.
        """
        side = Side(side)
        movements = [m for m in (coerce_movement(c) for c in commands) if m is not None]
        with self._lock:
            self._require(GameStatus.WAITING, GameStatus.PLAYING, GameStatus.PAUSED)
            return self._enqueue(side, movements, target_round)

    def _enqueue(self, side: Side, movements: list[Movement], target_round: Optional[int]) -> int:
        """Queue movements, moving stale rounds up to the current one. Caller holds the lock."""
        round_no = self.state.round if target_round is None else max(target_round, self.state.round)
        self._queue.setdefault(round_no, {})[side] = movements
        logger.debug(f"Match {self.match_id}: {len(movements)} command(s) from {side.value} for round {round_no}")
        return round_no

    def tick(self) -> RoundRecord:
        """Execute the current round with whatever commands are queued."""
        with self._lock:
            self._require(GameStatus.PLAYING)
            round_no = self.state.round
            queued = self._queue.pop(round_no, {})
            before = self.state.clone()

            result = execute_round(self.state, queued, self._events)
            self.last_result = result

            record = RoundRecord(
                round=round_no,
                commands={
                    side.value: [m.to_dict() for m in queued.get(side, [])] for side in Side
                },
                result=result.to_dict(),
                scores={
                    side.value: evaluate_state(self.state, side, before, self.weights).total
                    for side in Side
                },
            )
            self.history.append(record)

            jobs = []
            if self.state.done:
                self._queue.clear()
                winner = self.state.winner.value if self.state.winner else "draw"
                logger.info(f"Match {self.match_id} finished after round {round_no}: {winner}")
            else:
                jobs = self._snapshot_for_ai()
        self._launch_planning(jobs)
        return record

    def suggest(self, side: Side) -> tuple[list[Movement], dict]:
        """Run the search for a side without queuing anything."""
        side = Side(side)
        strategy = self.seats[side].strategy or PositionExplorationStrategy(self.exploration)
        with self._lock:
            snapshot = self.state.clone()
        if isinstance(strategy, PositionExplorationStrategy):
            result = strategy.search(snapshot, side)
            return result.movements, result.analysis.to_dict()
        return strategy.get_commands(snapshot, side), {}

    def wait_for_planning(self, timeout: Optional[float] = None) -> bool:
        """Join background planners. Returns False if any is still running."""
        with self._lock:
            planners = list(self._planners)
        for worker in planners:
            worker.join(timeout)
        with self._lock:
            self._planners = [w for w in self._planners if w.is_alive()]
            return not self._planners

    def _snapshot_for_ai(self) -> list[tuple[Side, GameState, int]]:
        """Number a new plan for each AI seat and snapshot the state. Caller holds the lock."""
        jobs = []
        for side, seat in self.seats.items():
            if seat.is_ai:
                self._plans_started[side] += 1
                jobs.append((side, self.state.clone(), self._plans_started[side]))
        return jobs

    def _launch_planning(self, jobs: list[tuple[Side, GameState, int]]) -> None:
        for side, snapshot, plan_no in jobs:
            if not self.background_planning:
                self._plan(side, snapshot, plan_no)
                continue
            worker = threading.Thread(
                target=self._plan, args=(side, snapshot, plan_no),
                name=f"plan-{self.match_id}-{side.value}", daemon=True,
            )
            worker.start()
            with self._lock:
                self._planners = [w for w in self._planners if w.is_alive()]
                self._planners.append(worker)

    def _plan(self, side: Side, snapshot: GameState, plan_no: int) -> None:
        """Search on a snapshot, then queue the result for the round it was made for.

        A plan that finishes after its round executed goes to the current
        round, unless a newer plan for the same side is already queued.
        """
        try:
            movements = self.seats[side].strategy.get_commands(snapshot, side)
        except Exception:
            logger.exception(f"Match {self.match_id}: AI planning failed for side {side.value}")
            return
        with self._lock:
            if self.state.done:
                return
            if plan_no <= self._plans_queued[side]:
                logger.debug(f"Match {self.match_id}: dropped stale plan {plan_no} for {side.value}")
                return
            self._plans_queued[side] = plan_no
            round_no = self._enqueue(side, movements, snapshot.round)
        if round_no != snapshot.round:
            logger.info(
                f"Match {self.match_id}: plan for {side.value} round {snapshot.round} "
                f"arrived late, queued for round {round_no}"
            )

    def _count_capture(self, state: GameState, side: Side, piece_id: int) -> None:
        # Credit goes to the side that did the capturing.
        self.capture_counts[side.opponent] += 1

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_state(self) -> dict:
        with self._lock:
            return self.state.to_dict()

    def scores(self) -> dict[str, dict]:
        with self._lock:
            return {side.value: evaluate_state(self.state, side, weights=self.weights).to_dict()
                    for side in Side}

    def render(self) -> str:
        with self._lock:
            return render_board(self.state)

    def get_status(self) -> dict:
        with self._lock:
            return {
                "match_id": self.match_id,
                "status": self.state.status,
                "round": self.state.round,
                "winner": self.state.winner,
                "ai_sides": self.ai_sides,
                "captures": {side.value: n for side, n in self.capture_counts.items()},
                "queued_rounds": sorted(self._queue),
            }
