"""Tests for flag pickup, carrying, return-on-capture and winning."""

from flagwar.game.flags import PICKUP, RETURN, SCORE, check_flag_interactions, initialize_flags
from flagwar.game.rules import execute_round
from flagwar.game.state import Carrier, GameStatus, Side

from conftest import give_flag, mv, place


class TestPickup:
    def test_walk_onto_enemy_flag(self, small_state):
        place(small_state, Side.A, 1, 9, 2)
        result = execute_round(small_state, {Side.A: [mv(1, "down", 2)]})
        flag = small_state.flags[Side.B]
        assert flag.carried_by == Carrier(Side.A, 1)
        assert (flag.x, flag.y) == (9, 0)
        assert [e.kind for e in result.flag_events] == [PICKUP]
        assert small_state.status == GameStatus.PLAYING

    def test_pickup_disables_owner_zone(self, small_state):
        place(small_state, Side.A, 1, 9, 2)
        execute_round(small_state, {Side.A: [mv(1, "down", 2)]})
        assert not small_state.no_guard_zone_active[Side.B]
        assert small_state.no_guard_zone_active[Side.A]

    def test_own_flag_not_picked_up(self, small_state):
        place(small_state, Side.A, 1, 9, 12)
        check_flag_interactions(small_state)
        assert not small_state.flags[Side.A].is_carried

    def test_lowest_index_piece_takes_flag(self, small_state):
        place(small_state, Side.A, 1, 9, 0)
        place(small_state, Side.A, 2, 9, 0)
        check_flag_interactions(small_state)
        assert small_state.flags[Side.B].carried_by == Carrier(Side.A, 1)


class TestCarrying:
    def test_flag_follows_carrier(self, small_state):
        place(small_state, Side.A, 1, 9, 2)
        execute_round(small_state, {Side.A: [mv(1, "down", 2)]})
        execute_round(small_state, {Side.A: [mv(1, "up", 5)]})
        flag = small_state.flags[Side.B]
        assert (flag.x, flag.y) == (9, 5)
        assert flag.carried_by == Carrier(Side.A, 1)

    def test_carrier_jailed_drops_flag(self, small_state):
        place(small_state, Side.A, 1, 9, 6)
        give_flag(small_state, Side.A, 1)
        place(small_state, Side.B, 1, 9, 4)
        execute_round(small_state, {Side.B: [mv(1, "up", 2)]})
        flag = small_state.flags[Side.B]
        assert not small_state.get_piece(Side.A, 1).alive
        assert flag.carried_by is None
        assert (flag.x, flag.y) == (9, 0)

    def test_zone_reactivates_after_return(self, small_state):
        place(small_state, Side.A, 1, 9, 6)
        give_flag(small_state, Side.A, 1)
        assert not small_state.no_guard_zone_active[Side.B]
        place(small_state, Side.B, 1, 9, 4)
        execute_round(small_state, {Side.B: [mv(1, "up", 2)]})
        assert small_state.no_guard_zone_active[Side.B]

    def test_dead_carrier_heals(self, small_state):
        place(small_state, Side.A, 1, 9, 6)
        give_flag(small_state, Side.A, 1)
        small_state.get_piece(Side.A, 1).alive = False
        events = check_flag_interactions(small_state)
        assert [e.kind for e in events] == [RETURN]
        assert not small_state.flags[Side.B].is_carried
        assert (small_state.flags[Side.B].x, small_state.flags[Side.B].y) == (9, 0)

    def test_initialize_flags_resets(self, small_state):
        place(small_state, Side.A, 1, 9, 6)
        give_flag(small_state, Side.A, 1)
        initialize_flags(small_state)
        for side in Side:
            assert not small_state.flags[side].is_carried
        assert (small_state.flags[Side.B].x, small_state.flags[Side.B].y) == (9, 0)


class TestWinning:
    def test_carrier_reaches_home(self, small_state):
        place(small_state, Side.A, 1, 9, 7)
        give_flag(small_state, Side.A, 1)
        result = execute_round(small_state, {Side.A: [mv(1, "up", 1)]})
        assert small_state.status == GameStatus.FINISHED
        assert small_state.winner == Side.A
        assert result.finished and result.winner == Side.A
        assert SCORE in [e.kind for e in result.flag_events]

    def test_simultaneous_score_is_draw(self, small_state):
        place(small_state, Side.A, 1, 1, 7)
        give_flag(small_state, Side.A, 1)
        place(small_state, Side.B, 1, 15, 5)
        give_flag(small_state, Side.B, 1)
        execute_round(small_state, {Side.A: [mv(1, "up", 1)], Side.B: [mv(1, "down", 1)]})
        assert small_state.status == GameStatus.FINISHED
        assert small_state.winner is None

    def test_finished_match_ignores_rounds(self, small_state):
        place(small_state, Side.A, 1, 9, 7)
        give_flag(small_state, Side.A, 1)
        execute_round(small_state, {Side.A: [mv(1, "up", 1)]})
        snapshot = small_state.to_dict()
        result = execute_round(small_state, {Side.A: [mv(1, "down", 3)]})
        assert not result.executed
        assert small_state.to_dict() == snapshot
