"""Position scoring from one side's perspective."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Optional

from flagwar.game.state import GameState, Side


@dataclass(frozen=True)
class ScoreWeights:
    win: float = 10000.0
    flag_possession: float = 8000.0
    on_flag: float = 3000.0
    safe_zone: float = 1000.0
    back_rank: float = 500.0
    piece: float = 200.0
    capture: float = 1000.0

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> "ScoreWeights":
        if not d:
            return cls()
        known = {f.name for f in fields(cls)}
        unknown = set(d) - known
        if unknown:
            raise ValueError(f"Unknown scoring weights: {sorted(unknown)}")
        return cls(**{k: float(v) for k, v in d.items()})


DEFAULT_WEIGHTS = ScoreWeights()


@dataclass
class ScoreBreakdown:
    """Itemized score. Each term is already weighted and signed."""
    total: float = 0.0
    terminal: float = 0.0
    we_have_flag: float = 0.0
    they_have_flag: float = 0.0
    we_on_their_flag: float = 0.0
    they_on_our_flag: float = 0.0
    we_in_their_safe_zone: float = 0.0
    they_in_our_safe_zone: float = 0.0
    we_on_back_rank: float = 0.0
    they_on_back_rank: float = 0.0
    piece_advantage: float = 0.0
    captures_this_round: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def _holds_flag(state: GameState, side: Side, flag_side: Side) -> bool:
    carrier = state.flags[flag_side].carried_by
    return carrier is not None and carrier.side == side


def _count_on_flag(state: GameState, side: Side) -> int:
    flag = state.flags[side.opponent]
    if flag.is_carried:
        return 0
    return sum(1 for p in state.rosters[side].pieces
               if p.alive and p.x == flag.x and p.y == flag.y)


def _count_in_safe_zone(state: GameState, side: Side) -> int:
    """Pieces of ``side`` inside the opponent's active zone while their own flag is home."""
    other = side.opponent
    if not state.no_guard_zone_active[other] or state.flags[side].is_carried:
        return 0
    return sum(1 for p in state.rosters[side].pieces
               if p.alive and state.config.in_no_guard_zone(other, p.x, p.y))


def _count_on_back_rank(state: GameState, side: Side) -> int:
    row = state.config.back_rank(side.opponent)
    return sum(1 for p in state.rosters[side].pieces if p.alive and p.y == row)


def _new_jailed(state: GameState, before: GameState, side: Side) -> int:
    now = len(state.rosters[side].jailed_piece_ids)
    prev = len(before.rosters[side].jailed_piece_ids)
    return max(0, now - prev)


def evaluate_state(
    state: GameState,
    side: Side,
    before: Optional[GameState] = None,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> ScoreBreakdown:
    """Score ``state`` for ``side``. Pure; neither state is modified.

    Args:
        state: Position to score (usually after a simulated round).
        side: Perspective.
        before: Position before the round, enabling the capture term.
        weights: Term weights.
    """
    other = side.opponent
    b = ScoreBreakdown()

    if state.winner is not None:
        b.terminal = weights.win if state.winner == side else -weights.win
        b.total = b.terminal
        return b

    if _holds_flag(state, side, other):
        b.we_have_flag = weights.flag_possession
    if _holds_flag(state, other, side):
        b.they_have_flag = -weights.flag_possession

    b.we_on_their_flag = weights.on_flag * _count_on_flag(state, side)
    b.they_on_our_flag = -weights.on_flag * _count_on_flag(state, other)
    b.we_in_their_safe_zone = weights.safe_zone * _count_in_safe_zone(state, side)
    b.they_in_our_safe_zone = -weights.safe_zone * _count_in_safe_zone(state, other)
    b.we_on_back_rank = weights.back_rank * _count_on_back_rank(state, side)
    b.they_on_back_rank = -weights.back_rank * _count_on_back_rank(state, other)

    alive_diff = state.rosters[side].alive_count() - state.rosters[other].alive_count()
    b.piece_advantage = weights.piece * alive_diff

    if before is not None:
        net = _new_jailed(state, before, other) - _new_jailed(state, before, side)
        b.captures_this_round = weights.capture * net

    b.total = sum(
        getattr(b, f.name) for f in fields(b) if f.name not in ("total", "terminal")
    )
    return b


def evaluate_total(
    state: GameState,
    side: Side,
    before: Optional[GameState] = None,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> float:
    return evaluate_state(state, side, before, weights).total
