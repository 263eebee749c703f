"""Collision detection and capture resolution between opposing paths."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from flagwar.game.board import BoardConfig
from flagwar.game.movement import PiecePath
from flagwar.game.state import GameState, Side

if TYPE_CHECKING:
    from flagwar.game.rules import CaptureEvents

logger = logging.getLogger("flagwar.game")

SAME_CELL = "same_cell"
HEAD_ON = "head_on"


@dataclass(frozen=True)
class CaptureCandidate:
    side: Side
    piece_id: int
    x: int
    y: int
    captured: bool


@dataclass(frozen=True)
class Collision:
    step: int
    kind: str
    first: CaptureCandidate
    second: CaptureCandidate

    def to_dict(self) -> dict:
        return {
            "step": self.step,
            "kind": self.kind,
            "pieces": [
                {"side": c.side.value, "piece_id": c.piece_id, "x": c.x, "y": c.y,
                 "captured": c.captured}
                for c in (self.first, self.second)
            ],
        }


def is_captured_at(config: BoardConfig, side: Side, x: int, y: int) -> bool:
    """A piece in a collision is jailed unless it stands in its own territory."""
    return config.territory_at(y) != side


def _candidate(config: BoardConfig, path: PiecePath, step: int) -> CaptureCandidate:
    cell = path.path[step]
    return CaptureCandidate(path.side, path.piece_id, cell.x, cell.y,
                            is_captured_at(config, path.side, cell.x, cell.y))


def detect_collisions(paths: list[PiecePath], config: BoardConfig) -> list[Collision]:
    """Scan opposing path pairs step by step, truncating paths in place.

    At every step head-on swaps (between step-1 and step) are found first and
    both pieces halt where they were before the swap; then same-cell meetings
    at step are found and both pieces halt there. Each phase is judged against
    one snapshot, so the outcome does not depend on path order. A piece that
    is jailed takes part in no later collision.
    """
    if not paths:
        return []

    length = max(len(p.path) for p in paths)
    pairs = [
        (i, j)
        for i in range(len(paths))
        for j in range(i + 1, len(paths))
        if paths[i].side != paths[j].side
    ]
    removed: set[int] = set()
    collisions: list[Collision] = []

    def record(kind: str, step: int, hits: list[tuple[int, int]], halt_step: int) -> None:
        # Candidates are read from the snapshot before any path is halted.
        found = [
            (i, j, Collision(step, kind,
                             _candidate(config, paths[i], halt_step),
                             _candidate(config, paths[j], halt_step)))
            for i, j in hits
        ]
        for i, j, collision in found:
            collisions.append(collision)
            paths[i].halt_at(halt_step)
            paths[j].halt_at(halt_step)
            if collision.first.captured:
                removed.add(i)
            if collision.second.captured:
                removed.add(j)

    for step in range(length):
        if step > 0:
            swaps = []
            for i, j in pairs:
                if i in removed or j in removed:
                    continue
                a, b = paths[i].path, paths[j].path
                if (a[step - 1].cell != a[step].cell
                        and a[step - 1].cell == b[step].cell
                        and b[step - 1].cell == a[step].cell):
                    swaps.append((i, j))
            if swaps:
                record(HEAD_ON, step, swaps, step - 1)

        meets = []
        for i, j in pairs:
            if i in removed or j in removed:
                continue
            if paths[i].path[step].cell == paths[j].path[step].cell:
                meets.append((i, j))
        if meets:
            record(SAME_CELL, step, meets, step)

    return collisions


def jail_piece(state: GameState, side: Side, piece_id: int) -> bool:
    """Mark a piece as jailed. Returns False if it was already jailed."""
    piece = state.get_piece(side, piece_id)
    roster = state.rosters[side]
    if piece is None or piece_id in roster.jailed_piece_ids:
        return False
    piece.alive = False
    roster.jailed_piece_ids.append(piece_id)
    return True


def resolve_collisions(
    state: GameState,
    collisions: list[Collision],
    capture_events: Optional[CaptureEvents] = None,
) -> list[tuple[Side, int]]:
    """Jail every captured candidate and fire the capture event once per piece."""
    captured = []
    for collision in collisions:
        for cand in (collision.first, collision.second):
            if not cand.captured:
                continue
            if jail_piece(state, cand.side, cand.piece_id):
                captured.append((cand.side, cand.piece_id))
                logger.debug(
                    f"Round {state.round}: {cand.side.value}{cand.piece_id} jailed at "
                    f"({cand.x}, {cand.y}) [{collision.kind}]"
                )
                if capture_events is not None:
                    capture_events.emit(state, cand.side, cand.piece_id)
    return captured
