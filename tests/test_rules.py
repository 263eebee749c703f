"""Tests for the round pipeline and capture event hub."""

from flagwar.game.collision import jail_piece
from flagwar.game.flags import on_piece_captured
from flagwar.game.rules import (
    CaptureEvents, default_capture_events, execute_round, simulate_round, update_no_guard_zones,
)
from flagwar.game.state import GameState, Side

from conftest import give_flag, mv, place


class TestExecuteRound:
    def test_round_advances(self, small_state):
        result = execute_round(small_state, {})
        assert result.round == 0
        assert result.executed
        assert small_state.round == 1

    def test_empty_round_changes_nothing_else(self, small_state):
        before = small_state.to_dict()
        execute_round(small_state, None)
        after = small_state.to_dict()
        before.pop("round")
        after.pop("round")
        assert before == after

    def test_deterministic(self, default_state):
        commands = {
            Side.A: [mv(1, "down", 4), mv(3, "left", 2), mv(7, "right", 6)],
            Side.B: [mv(1, "up", 4), mv(4, "up", 8), mv(6, "left", 3)],
        }
        s1, s2 = default_state.clone(), default_state.clone()
        r1 = execute_round(s1, commands)
        r2 = execute_round(s2, commands)
        assert s1 == s2
        assert r1.to_dict() == r2.to_dict()

    def test_result_serializes(self, small_state):
        place(small_state, Side.A, 1, 4, 7)
        place(small_state, Side.B, 1, 4, 5)
        result = execute_round(small_state, {Side.A: [mv(1, "down", 1)], Side.B: [mv(1, "up", 1)]})
        d = result.to_dict()
        assert d["round"] == 0
        assert {"side": "A", "piece_id": 1} in d["captured"]
        assert d["collisions"][0]["kind"] == "same_cell"

    def test_malformed_input_does_not_abort(self, small_state):
        execute_round(small_state, {
            Side.A: [{"piece_id": 1, "direction": "north", "distance": 3}, mv(2, "down", 1)],
            Side.B: ["garbage"],
        })
        assert small_state.round == 1
        assert small_state.get_piece(Side.A, 1).position == (1, 10)
        assert small_state.get_piece(Side.A, 2).position == (2, 9)


class TestSimulateRound:
    def test_no_round_advance(self, small_state):
        simulate_round(small_state, {Side.A: [mv(1, "down", 2)]})
        assert small_state.round == 0
        assert small_state.get_piece(Side.A, 1).position == (1, 8)

    def test_no_rescue(self, small_state):
        jail_piece(small_state, Side.A, 2)
        place(small_state, Side.A, 1, 17, 3)
        simulate_round(small_state, {Side.A: [mv(1, "down", 2)]})
        assert small_state.rosters[Side.A].jailed_piece_ids == [2]


class TestZones:
    def test_zone_follows_flag(self):
        state = GameState()
        place(state, Side.A, 1, 9, 0)
        give_flag(state, Side.A, 1)
        state.no_guard_zone_active[Side.B] = True
        update_no_guard_zones(state)
        assert not state.no_guard_zone_active[Side.B]
        state.flags[Side.B].carried_by = None
        update_no_guard_zones(state)
        assert state.no_guard_zone_active[Side.B]


class TestCaptureEvents:
    def test_default_hub_has_flag_hook(self):
        events = default_capture_events()
        assert events._listeners == [on_piece_captured]

    def test_subscribe_and_emit(self, small_state):
        seen = []

        def listener(state, side, piece_id):
            seen.append((side, piece_id))

        events = CaptureEvents()
        events.subscribe(listener)
        events.subscribe(listener)
        events.emit(small_state, Side.B, 2)
        assert seen == [(Side.B, 2)]

        events.unsubscribe(listener)
        events.emit(small_state, Side.B, 1)
        assert seen == [(Side.B, 2)]

    def test_flag_hook_runs_before_later_listeners(self, small_state):
        place(small_state, Side.A, 1, 9, 6)
        give_flag(small_state, Side.A, 1)
        place(small_state, Side.B, 1, 9, 4)
        observed = []
        events = default_capture_events()
        events.subscribe(lambda state, side, pid: observed.append(state.flags[Side.B].is_carried))
        execute_round(small_state, {Side.B: [mv(1, "up", 2)]}, events)
        assert observed and not any(observed)
