"""Rescue keys: spawn while a side has jailed pieces, release them all on pickup."""

from __future__ import annotations

import logging

from flagwar.game.flags import carried_flag_of, return_flag
from flagwar.game.state import GameState, Side

logger = logging.getLogger("flagwar.game")


def update_keys(state: GameState) -> None:
    """A side's key is present iff that side has jailed pieces."""
    for side in Side:
        if state.rosters[side].jailed_piece_ids:
            state.rescue_keys[side] = state.config.key_position(side)
        else:
            state.rescue_keys[side] = None


def apply_pending_resets(state: GameState) -> list[tuple[Side, int]]:
    """Send last round's rescuers back to spawn. Consumed exactly once."""
    moved = []
    for side in Side:
        pending, state.pending_resets[side] = state.pending_resets[side], []
        for piece_id in pending:
            piece = state.get_piece(side, piece_id)
            spawn = state.config.spawn_of(side, piece_id)
            if piece is None or spawn is None or not piece.alive:
                continue
            # A relocated carrier must not bring the flag along.
            flag_side = carried_flag_of(state, side, piece_id)
            if flag_side is not None:
                return_flag(state, flag_side)
            piece.x, piece.y = spawn
            moved.append((side, piece_id))
    return moved


def check_for_rescue(state: GameState) -> dict[Side, list[int]]:
    """Release jailed pieces of any side whose living piece stands on its key.

    Returns the released piece ids per side (only sides that were rescued).
    """
    update_keys(state)
    rescued: dict[Side, list[int]] = {}
    for side in Side:
        key = state.rescue_keys[side]
        roster = state.rosters[side]
        if key is None or not roster.jailed_piece_ids:
            continue
        rescuer = next(
            (p for p in roster.pieces if p.alive and (p.x, p.y) == key), None
        )
        if rescuer is None:
            continue

        released = list(roster.jailed_piece_ids)
        for piece_id in released:
            piece = roster.get_piece(piece_id)
            spawn = state.config.spawn_of(side, piece_id)
            if piece is None or spawn is None:
                continue
            piece.alive = True
            piece.x, piece.y = spawn
        roster.jailed_piece_ids.clear()
        state.pending_resets[side].append(rescuer.id)
        rescued[side] = released
        logger.info(
            f"Round {state.round}: {side.value}{rescuer.id} rescued {len(released)} piece(s)"
        )
    update_keys(state)
    return rescued
