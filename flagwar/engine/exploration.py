"""Position exploration: per-piece directional search against a predicted reply.

For each living piece the search simulates every distance in every direction
together with a predicted opponent reply, keeps the best distance per
direction, then picks the best combination of per-piece choices that does
not stack two pieces on one cell.
"""

from __future__ import annotations

import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from flagwar.engine.scoring import (
    DEFAULT_WEIGHTS, ScoreBreakdown, ScoreWeights, evaluate_state, evaluate_total,
)
from flagwar.game.movement import trace_path
from flagwar.game.rescue import apply_pending_resets
from flagwar.game.rules import default_capture_events, simulate_round, update_no_guard_zones
from flagwar.game.state import DIRECTIONS, GameState, Movement, Piece, Side

logger = logging.getLogger("flagwar.engine")

# Direction index used for tie-breaks when a piece stays.
STAY_INDEX = -1


class SearchTimeout(Exception):
    """Raised internally when the wall-clock budget runs out."""


@dataclass
class _SearchRun:
    """Deadline and simulation count of one ``search()`` call."""
    clock: Callable[[], float]
    deadline: Optional[float] = None
    simulations: int = 0

    def check_deadline(self) -> None:
        if self.deadline is not None and self.clock() > self.deadline:
            raise SearchTimeout()


@dataclass
class ExplorationConfig:
    time_budget: float = 2.5          # seconds; 0 or less disables the cutoff
    max_distance: Optional[int] = None  # defaults to the largest board dimension
    weights: ScoreWeights = DEFAULT_WEIGHTS

    @classmethod
    def from_dict(cls, d: Optional[dict], weights: Optional[ScoreWeights] = None) -> "ExplorationConfig":
        d = d or {}
        return cls(
            time_budget=float(d.get("time_budget", 2.5)),
            max_distance=d.get("max_distance"),
            weights=weights or ScoreWeights.from_dict(d.get("weights")),
        )


@dataclass
class Candidate:
    """Best movement found for one piece in one direction (or stay)."""
    movement: Movement
    direction_index: int
    delta: float
    final_position: Optional[tuple[int, int]]  # None when the piece ends jailed

    def to_dict(self) -> dict:
        return {
            "movement": self.movement.to_dict(),
            "delta": self.delta,
            "final_position": list(self.final_position) if self.final_position else None,
        }


@dataclass
class SearchAnalysis:
    elapsed: float = 0.0
    simulations: int = 0
    baseline_score: float = 0.0
    predicted_enemy_moves: list[Movement] = field(default_factory=list)
    candidates: dict[int, list[Candidate]] = field(default_factory=dict)
    chosen_delta: float = 0.0
    predicted_score: Optional[ScoreBreakdown] = None
    predicted_enemy_score: Optional[ScoreBreakdown] = None
    timed_out: bool = False
    failed_pieces: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "elapsed": round(self.elapsed, 4),
            "simulations": self.simulations,
            "baseline_score": self.baseline_score,
            "predicted_enemy_moves": [m.to_dict() for m in self.predicted_enemy_moves],
            "candidates": {
                str(pid): [c.to_dict() for c in cands] for pid, cands in self.candidates.items()
            },
            "chosen_delta": self.chosen_delta,
            "predicted_score": self.predicted_score.to_dict() if self.predicted_score else None,
            "predicted_enemy_score": (
                self.predicted_enemy_score.to_dict() if self.predicted_enemy_score else None
            ),
            "timed_out": self.timed_out,
            "failed_pieces": list(self.failed_pieces),
        }


@dataclass
class SearchResult:
    movements: list[Movement]
    analysis: SearchAnalysis


class Strategy:
    """Base class for anything that chooses a side's commands for a round."""

    name = "strategy"

    def get_commands(self, state: GameState, side: Side) -> list[Movement]:
        """Return one Movement per living piece of ``side``."""
        raise NotImplementedError


def all_stay(state: GameState, side: Side) -> list[Movement]:
    return [Movement.stay(p.id) for p in _by_id(state.rosters[side].pieces) if p.alive]


class PositionExplorationStrategy(Strategy):
    """Greedy per-piece search assembled into a non-stacking combination.

    The opponent reply is predicted one piece at a time with our side
    standing still, which is an approximation rather than a best response.

    One instance may serve several threads at once. Each ``search()`` call
    keeps its deadline and counters in its own ``_SearchRun``.
    """

    name = "position_exploration"

    def __init__(self, config: Optional[ExplorationConfig] = None):
        self.config = config or ExplorationConfig()
        self.last_analysis: Optional[SearchAnalysis] = None
        self._clock = time.monotonic

    def get_commands(self, state: GameState, side: Side) -> list[Movement]:
        return self.search(state, side).movements

    def search(self, state: GameState, side: Side) -> SearchResult:
        """Choose commands for ``side``. ``state`` is never modified."""
        start = self._clock()
        budget = self.config.time_budget
        run = _SearchRun(self._clock, start + budget if budget and budget > 0 else None)
        analysis = SearchAnalysis()

        # Rescuers waiting to be relocated move before any path is built.
        work = state.clone()
        apply_pending_resets(work)
        update_no_guard_zones(work)
        own = _by_id(work.rosters[side].living())

        movements = all_stay(work, side)
        if own and not work.done:
            try:
                movements = self._run(work, side, own, analysis, run)
            except SearchTimeout:
                analysis.timed_out = True
                movements = all_stay(work, side)
                logger.warning(
                    f"Search for side {side.value} exceeded {budget:.2f}s after "
                    f"{run.simulations} simulations; all pieces stay"
                )
            except Exception:
                logger.exception(f"Search for side {side.value} failed; all pieces stay")
                movements = all_stay(work, side)

        analysis.simulations = run.simulations
        analysis.elapsed = self._clock() - start
        self.last_analysis = analysis
        logger.debug(
            f"Side {side.value} round {state.round}: delta={analysis.chosen_delta:.0f} "
            f"sims={analysis.simulations} in {analysis.elapsed:.3f}s"
        )
        return SearchResult(movements=movements, analysis=analysis)

    # ------------------------------------------------------------------
    # Search phases
    # ------------------------------------------------------------------

    def _run(self, work: GameState, side: Side, own: list[Piece],
             analysis: SearchAnalysis, run: _SearchRun) -> list[Movement]:
        other = side.opponent
        weights = self.config.weights

        enemy_moves = self._predict_opponent(work, side, run)
        analysis.predicted_enemy_moves = enemy_moves

        baseline_state = self._simulate(work, {other: enemy_moves}, run)
        baseline = evaluate_total(baseline_state, side, work, weights)
        analysis.baseline_score = baseline

        for piece in own:
            try:
                cands = self._search_piece(work, side, piece, enemy_moves, baseline,
                                           baseline_state, run)
            except SearchTimeout:
                raise
            except Exception:
                logger.exception(f"Search failed for {side.value}{piece.id}; piece stays")
                analysis.failed_pieces.append(piece.id)
                cands = [self._stay_candidate(baseline_state, side, piece.id)]
            analysis.candidates[piece.id] = cands

        chosen = self._assemble(own, analysis.candidates, run)
        if chosen is None:
            logger.debug(f"No non-stacking combination for side {side.value}; all pieces stay")
            return all_stay(work, side)

        analysis.chosen_delta = sum(c.delta for c in chosen)
        movements = [c.movement for c in chosen]

        # The choice is made; the closing simulation is analysis only.
        run.deadline = None
        final = self._simulate(work, {side: movements, other: enemy_moves}, run)
        analysis.predicted_score = evaluate_state(final, side, work, weights)
        analysis.predicted_enemy_score = evaluate_state(final, other, work, weights)
        return movements

    def _predict_opponent(self, work: GameState, side: Side, run: _SearchRun) -> list[Movement]:
        """Best single movement per opposing piece with ``side`` standing still."""
        other = side.opponent
        weights = self.config.weights
        base_state = self._simulate(work, {}, run)
        base = evaluate_total(base_state, other, work, weights)

        predicted = []
        for piece in _by_id(work.rosters[other].pieces):
            if not piece.alive:
                continue
            best = Movement.stay(piece.id)
            best_key = (0.0, 0, STAY_INDEX)
            for index, direction in enumerate(DIRECTIONS):
                for distance in range(1, self._reach(work, other, piece, direction) + 1):
                    move = Movement(piece.id, direction, distance)
                    sim = self._simulate(work, {other: [move]}, run)
                    delta = evaluate_total(sim, other, work, weights) - base
                    # Larger delta, then shorter distance, then direction order.
                    if (delta > best_key[0]
                            or (delta == best_key[0] and (distance, index) < best_key[1:])):
                        best, best_key = move, (delta, distance, index)
            predicted.append(best)
        return predicted

    def _search_piece(self, work: GameState, side: Side, piece: Piece,
                      enemy_moves: list[Movement], baseline: float,
                      baseline_state: GameState, run: _SearchRun) -> list[Candidate]:
        """Stay plus the best distance in each direction, deduplicated."""
        weights = self.config.weights
        stay = self._stay_candidate(baseline_state, side, piece.id)
        found = [stay]
        for index, direction in enumerate(DIRECTIONS):
            best = stay
            for distance in range(1, self._reach(work, side, piece, direction) + 1):
                move = Movement(piece.id, direction, distance)
                sim = self._simulate(work, {side: [move], side.opponent: enemy_moves}, run)
                delta = evaluate_total(sim, side, work, weights) - baseline
                if delta > best.delta:
                    best = Candidate(move, index, delta, _final_cell(sim, side, piece.id))
            if best is not stay:
                found.append(best)
        return found

    def _assemble(self, own: list[Piece], candidates: dict[int, list[Candidate]],
                  run: Optional[_SearchRun] = None) -> Optional[list[Candidate]]:
        """Best-scoring combination with no two pieces on one final cell."""
        pools = [candidates[p.id] for p in own]
        best = None
        best_key = None
        for combo in itertools.product(*pools):
            if run is not None:
                run.check_deadline()
            cells = [c.final_position for c in combo if c.final_position is not None]
            if len(cells) != len(set(cells)):
                continue
            key = (
                -sum(c.delta for c in combo),
                sum(c.movement.distance for c in combo),
                tuple(c.direction_index for c in combo),
            )
            if best_key is None or key < best_key:
                best, best_key = list(combo), key
        return best

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _max_distance(self, state: GameState) -> int:
        cap = state.config.max_dimension
        if self.config.max_distance:
            return min(cap, int(self.config.max_distance))
        return cap

    def _reach(self, state: GameState, side: Side, piece: Piece, direction) -> int:
        """Farthest distance that still changes the path; longer requests stop at the same cell."""
        move = Movement(piece.id, direction, self._max_distance(state))
        return len(trace_path(state, side, piece, move)) - 1

    def _stay_candidate(self, baseline_state: GameState, side: Side, piece_id: int) -> Candidate:
        return Candidate(Movement.stay(piece_id), STAY_INDEX, 0.0,
                         _final_cell(baseline_state, side, piece_id))

    def _simulate(self, state: GameState, commands: dict, run: _SearchRun) -> GameState:
        run.check_deadline()
        sim = state.clone()
        simulate_round(sim, commands, default_capture_events())
        run.simulations += 1
        return sim


def _by_id(pieces) -> list[Piece]:
    return sorted(pieces, key=lambda p: p.id)


def _final_cell(state: GameState, side: Side, piece_id: int) -> Optional[tuple[int, int]]:
    piece = state.get_piece(side, piece_id)
    if piece is None or not piece.alive:
        return None
    return (piece.x, piece.y)
