"""Flag pickup, carrier tracking, return-on-capture and win detection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from flagwar.game.state import Carrier, Flag, GameState, GameStatus, Side

logger = logging.getLogger("flagwar.game")

PICKUP = "pickup"
RETURN = "return"
SCORE = "score"


@dataclass(frozen=True)
class FlagEvent:
    kind: str
    flag_side: Side
    side: Side
    piece_id: int

    def to_dict(self) -> dict:
        return {"kind": self.kind, "flag_side": self.flag_side.value,
                "side": self.side.value, "piece_id": self.piece_id}


def initialize_flags(state: GameState) -> None:
    """Place both flags, uncarried, at their home coordinates."""
    for side in Side:
        x, y = state.config.flag_home(side)
        state.flags[side] = Flag(x, y)


def return_flag(state: GameState, flag_side: Side) -> None:
    x, y = state.config.flag_home(flag_side)
    state.flags[flag_side] = Flag(x, y)


def carried_flag_of(state: GameState, side: Side, piece_id: int) -> Optional[Side]:
    """Side of the flag this piece is carrying, if any."""
    for flag_side, flag in state.flags.items():
        c = flag.carried_by
        if c is not None and c.side == side and c.piece_id == piece_id:
            return flag_side
    return None


def on_piece_captured(state: GameState, side: Side, piece_id: int) -> None:
    """Capture hook: a jailed carrier drops its flag back home."""
    flag_side = carried_flag_of(state, side, piece_id)
    if flag_side is not None:
        return_flag(state, flag_side)
        logger.info(f"Round {state.round}: {side.value}{piece_id} captured, flag {flag_side.value} returned")


def sync_carried_flags(state: GameState) -> list[FlagEvent]:
    """Keep carried flags on their carriers; return any whose carrier is gone."""
    events = []
    for flag_side, flag in list(state.flags.items()):
        if flag.carried_by is None:
            continue
        carrier = state.carrier_of(flag_side)
        if carrier is None or not carrier.alive:
            c = flag.carried_by
            return_flag(state, flag_side)
            events.append(FlagEvent(RETURN, flag_side, c.side, c.piece_id))
            logger.debug(f"Flag {flag_side.value} lost its carrier {c.side.value}{c.piece_id}; returned")
        else:
            flag.x, flag.y = carrier.x, carrier.y
    return events


def check_flag_interactions(state: GameState) -> list[FlagEvent]:
    """Run the per-round flag pass: sync carriers, pickups, then win check.

    A simultaneous score by both sides finishes the match as a draw.
    """
    events = sync_carried_flags(state)

    for side in Side:
        flag_side = side.opponent
        flag = state.flags[flag_side]
        if flag.is_carried:
            continue
        for piece in state.rosters[side].pieces:
            if piece.alive and (piece.x, piece.y) == (flag.x, flag.y):
                flag.carried_by = Carrier(side, piece.id)
                events.append(FlagEvent(PICKUP, flag_side, side, piece.id))
                logger.info(f"Round {state.round}: {side.value}{piece.id} picked up flag {flag_side.value}")
                break

    scorers = []
    for side in Side:
        flag = state.flags[side.opponent]
        carrier = state.carrier_of(side.opponent)
        if carrier is None or not carrier.alive:
            continue
        if (carrier.x, carrier.y) == (flag.x, flag.y) and state.config.in_territory(side, carrier.y):
            scorers.append(side)
            events.append(FlagEvent(SCORE, side.opponent, side, carrier.id))

    if scorers:
        state.status = GameStatus.FINISHED
        state.winner = scorers[0] if len(scorers) == 1 else None
        if state.winner is None:
            logger.info(f"Round {state.round}: both sides scored, match drawn")
        else:
            logger.info(f"Round {state.round}: side {state.winner.value} wins")
    return events
