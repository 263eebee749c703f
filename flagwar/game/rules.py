"""Round execution: paths -> collisions -> flags -> rescue -> next round."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional

from flagwar.game.collision import Collision, detect_collisions, resolve_collisions
from flagwar.game.flags import FlagEvent, check_flag_interactions, on_piece_captured
from flagwar.game.movement import PiecePath, apply_final_positions, resolve_paths
from flagwar.game.rescue import apply_pending_resets, check_for_rescue
from flagwar.game.state import GameState, GameStatus, Side

logger = logging.getLogger("flagwar.game")

CaptureListener = Callable[[GameState, Side, int], None]


class CaptureEvents:
    """Observer hub for "piece jailed" notifications.

    Listeners are called in subscription order with (state, side, piece_id).
    """

    def __init__(self, listeners: Optional[list[CaptureListener]] = None):
        self._listeners: list[CaptureListener] = list(listeners or [])

    def subscribe(self, listener: CaptureListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: CaptureListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, state: GameState, side: Side, piece_id: int) -> None:
        for listener in list(self._listeners):
            listener(state, side, piece_id)


def default_capture_events() -> CaptureEvents:
    """Hub with the flag return hook already subscribed."""
    return CaptureEvents([on_piece_captured])


@dataclass
class RoundResult:
    round: int
    executed: bool = True
    paths: list[PiecePath] = field(default_factory=list)
    collisions: list[Collision] = field(default_factory=list)
    captured: list[tuple[Side, int]] = field(default_factory=list)
    flag_events: list[FlagEvent] = field(default_factory=list)
    rescued: dict[Side, list[int]] = field(default_factory=dict)
    winner: Optional[Side] = None
    finished: bool = False

    def to_dict(self) -> dict:
        return {
            "round": self.round,
            "executed": self.executed,
            "collisions": [c.to_dict() for c in self.collisions],
            "captured": [{"side": s.value, "piece_id": pid} for s, pid in self.captured],
            "flag_events": [e.to_dict() for e in self.flag_events],
            "rescued": {s.value: ids for s, ids in self.rescued.items()},
            "winner": self.winner.value if self.winner else None,
            "finished": self.finished,
        }


def update_no_guard_zones(state: GameState) -> None:
    """A side's zone is active unless its own flag is being carried."""
    for side in Side:
        state.no_guard_zone_active[side] = not state.flags[side].is_carried


def simulate_round(
    state: GameState,
    commands: Optional[Mapping] = None,
    capture_events: Optional[CaptureEvents] = None,
) -> RoundResult:
    """Movement, collisions and the flag pass, applied to ``state`` in place.

    Does not run the rescue pass or advance the round counter. The search
    calls this on cloned states.
    """
    events = capture_events if capture_events is not None else default_capture_events()

    # A relocated rescuer may have dropped a flag; zones must match before paths are traced.
    if apply_pending_resets(state):
        update_no_guard_zones(state)
    paths = resolve_paths(state, commands)
    collisions = detect_collisions(paths, state.config)
    apply_final_positions(state, paths)
    captured = resolve_collisions(state, collisions, events)
    flag_events = check_flag_interactions(state)
    update_no_guard_zones(state)

    return RoundResult(
        round=state.round,
        paths=paths,
        collisions=collisions,
        captured=captured,
        flag_events=flag_events,
        winner=state.winner,
        finished=state.done,
    )


def execute_round(
    state: GameState,
    commands: Optional[Mapping] = None,
    capture_events: Optional[CaptureEvents] = None,
) -> RoundResult:
    """Execute one full round on ``state``. No-op once the match is finished.

    Args:
        state: Live state, mutated in place.
        commands: Mapping of side -> iterable of Movement or dict commands.
        capture_events: Capture hub; defaults to one with the flag hook.

    Returns:
        RoundResult describing what happened.
    """
    if state.status == GameStatus.FINISHED:
        logger.debug(f"Round {state.round} skipped: match already finished")
        return RoundResult(round=state.round, executed=False,
                           winner=state.winner, finished=True)

    result = simulate_round(state, commands, capture_events)
    result.rescued = check_for_rescue(state)
    state.round += 1

    if result.captured:
        jailed = ", ".join(f"{s.value}{pid}" for s, pid in result.captured)
        logger.info(f"Round {result.round}: jailed {jailed}")
    return result
