from __future__ import annotations

import unittest

from eventai.errors import InvalidCommandError
from eventai.move_route import (
    Chance,
    Const,
    Facing,
    PlayerWithin,
    RouteElse,
    RouteIf,
    RouteProgram,
    SetSound,
    SwitchIs,
    VariableCompare,
    parse_condition,
    parse_route_script,
)

from eventai_fixtures import FixedRandom, cmd, event, make_map, make_session, page, route_script


def _route(*commands, repeat=False, wait=False):
    return {"list": list(commands) + [{"code": 0, "parameters": []}], "repeat": repeat,
            "skippable": True, "wait": wait}


def _walker(event_id, x, y, route):
    return event(event_id, x, y, [page(moveType=3, moveRoute=route)])


class RouteParseTest(unittest.TestCase):
    def test_conditions(self):
        self.assertEqual(parse_condition("s[3]"), SwitchIs(3, True))
        self.assertEqual(parse_condition("!s[3]"), SwitchIs(3, False))
        self.assertEqual(parse_condition("v[2] >= 10"), VariableCompare(2, ">=", 10.0))
        self.assertEqual(parse_condition("near(3)"), PlayerWithin(3, True))
        self.assertEqual(parse_condition("chance(25)"), Chance(25.0))
        self.assertEqual(parse_condition("facing('up')"), Facing(8))

    def test_unknown_condition_raises(self):
        with self.assertRaises(InvalidCommandError):
            parse_condition("$gameParty.size() > 2")

    def test_scripts(self):
        self.assertEqual(parse_route_script("this.rbIf(s[1]);"), RouteIf(SwitchIs(1, True)))
        self.assertEqual(parse_route_script("rbElse()"), RouteElse(None))
        self.assertEqual(parse_route_script("setSe('Bell1', 80)"), SetSound("Bell1", 80, 100))
        self.assertIsNone(parse_route_script("this.setOpacity(128)"))

    def test_malformed_script_is_skipped_when_compiling(self):
        with self.assertLogs("eventai.move_route", level="WARNING"):
            program = RouteProgram.compile(_route(route_script("setSe()")))
        self.assertEqual(program.instructions, {})

    def test_malformed_branch_keeps_its_place_in_the_chain(self):
        route = _route(route_script("rbIf(true)"), route_script("rbIf(party > 2)"), {"code": 4},
                       route_script("rbEnd()"), {"code": 3}, route_script("rbEnd()"))
        with self.assertLogs("eventai.move_route", level="WARNING"):
            program = RouteProgram.compile(route)
        self.assertEqual(program.instructions[1], RouteIf(Const(False)))
        self.assertEqual(program.end_of[1], 3)
        self.assertEqual(program.end_of[0], 5)

    def test_unmatched_markers_warn(self):
        with self.assertLogs("eventai.move_route", level="WARNING"):
            RouteProgram.compile(_route(route_script("rbEnd()")))
        with self.assertLogs("eventai.move_route", level="WARNING"):
            program = RouteProgram.compile(_route(route_script("rbIf(true)"), {"code": 3}))
        self.assertEqual(program.end_of[0], 3)


class RouteBranchTest(unittest.TestCase):
    def _session(self, route, **kwargs):
        return make_session({1: make_map([_walker(1, 5, 5, route)])}, **kwargs)

    def _branch_route(self):
        return _route(
            route_script("rbIf(s[1])"),
            {"code": 3},
            route_script("rbElse()"),
            {"code": 2},
            route_script("rbEnd()"),
        )

    def test_false_condition_takes_else(self):
        session = self._session(self._branch_route())
        walker = session.game_map.event(1)
        walker.update_routine_move()
        self.assertEqual((walker.x, walker.y), (4, 5))
        walker.update_routine_move()
        self.assertEqual(walker.branch_taken, [True])

    def test_true_condition_skips_else(self):
        session = self._session(self._branch_route())
        session.switches.set_value(1, True)
        walker = session.game_map.event(1)
        walker.update_routine_move()
        self.assertEqual((walker.x, walker.y), (6, 5))
        walker.update_routine_move()
        self.assertEqual((walker.x, walker.y), (6, 5))
        self.assertEqual(walker.branch_taken, [True])

    def test_else_if_chain(self):
        route = _route(
            route_script("rbIf(v[1] > 5)"),
            {"code": 4},
            route_script("rbElse(v[1] > 2)"),
            {"code": 1},
            route_script("rbElse()"),
            {"code": 2},
            route_script("rbEnd()"),
        )
        session = self._session(route)
        session.variables.set_value(1, 3)
        walker = session.game_map.event(1)
        walker.update_routine_move()
        self.assertEqual((walker.x, walker.y), (5, 6))

    def test_switch_condition_reads_the_walkers_own_self_switch(self):
        route = _route(route_script("rbIf(s[1])"), {"code": 3}, route_script("rbEnd()"))
        maps = {1: make_map([_walker(1, 5, 5, route), _walker(2, 5, 7, route)])}
        session = make_session(maps, switches=["s:Alert"])
        with session.owner_scope(1, 1):
            session.switches.set_value(1, True)
        first, second = session.game_map.event(1), session.game_map.event(2)
        first.update_routine_move()
        second.update_routine_move()
        self.assertEqual(first.x, 6)
        self.assertEqual(second.x, 5)

    def test_markers_take_no_frame(self):
        route = _route(route_script("setSe('Bell1', 80, 110)"), route_script("setBln(3)"), {"code": 3})
        session = self._session(route)
        walker = session.game_map.event(1)
        walker.update_routine_move()
        self.assertEqual(walker.x, 6)
        self.assertEqual(session.audio.played, [{"name": "Bell1", "volume": 80, "pitch": 110, "pan": 0}])
        self.assertEqual(len(session.temp.balloon_requests), 1)

    def test_set_effects_fire_on_change_only(self):
        route = _route(route_script("setSe('Bell1')"), route_script("setBln(3)"), {"code": 3}, repeat=True)
        session = self._session(route)
        walker = session.game_map.event(1)
        for _ in range(3):
            walker.update_routine_move()
        self.assertEqual(walker.x, 8)
        self.assertEqual(len(session.audio.played), 1)
        self.assertEqual(len(session.temp.balloon_requests), 1)

    def test_unset_lets_the_effect_fire_again(self):
        route = _route(route_script("setSe('Bell1')"), {"code": 3}, route_script("unsetSe()"), repeat=True)
        session = self._session(route)
        walker = session.game_map.event(1)
        for _ in range(2):
            walker.update_routine_move()
        self.assertEqual(len(session.audio.played), 2)

    def test_show_balloon_always_fires(self):
        route = _route(route_script("showBln(1)"), {"code": 3}, repeat=True)
        session = self._session(route)
        walker = session.game_map.event(1)
        for _ in range(2):
            walker.update_routine_move()
        self.assertEqual([b for _, b in session.temp.balloon_requests], [1, 1])

    def test_malformed_inner_branch_is_never_entered(self):
        route = _route(route_script("rbIf(true)"), route_script("rbIf(party > 2)"), {"code": 4},
                       route_script("rbEnd()"), {"code": 3}, route_script("rbEnd()"))
        with self.assertLogs("eventai.move_route", level="WARNING"):
            session = self._session(route)
        walker = session.game_map.event(1)
        walker.update_routine_move()
        self.assertEqual((walker.x, walker.y), (6, 5))
        walker.update_routine_move()
        self.assertEqual(walker.branch_taken, [True])

    def test_chance_uses_session_rng(self):
        route = _route(route_script("rbIf(chance(50))"), {"code": 3}, route_script("rbEnd()"), {"code": 1})
        session = self._session(route, rng=FixedRandom([0.9]))
        walker = session.game_map.event(1)
        walker.update_routine_move()
        self.assertEqual((walker.x, walker.y), (5, 6))


class ForcedRouteTest(unittest.TestCase):
    def _session(self):
        session = make_session({1: make_map([event(1, 5, 5, [page()])])})
        session.move_route_behavior = "freeze"
        return session

    def _run(self, session, *commands, frames=5):
        session.game_map.interpreter.setup(list(commands) + [cmd(0)], 0)
        for _ in range(frames):
            session.update()

    def _branch_route(self):
        return _route(
            route_script("rbIf(s[1])"),
            {"code": 3},
            route_script("rbElse()"),
            {"code": 2},
            route_script("rbEnd()"),
            wait=True,
        )

    def test_forced_route_moves_while_frozen_and_runs_branches(self):
        session = self._session()
        session.switches.set_value(1, True)
        self._run(session, cmd(205, 1, self._branch_route()), cmd(121, 2, 2, 0))
        walker = session.game_map.event(1)
        self.assertEqual((walker.x, walker.y), (6, 5))
        self.assertFalse(walker.move_route_forcing)
        self.assertEqual(walker.branch_taken, [True])
        self.assertTrue(session.switches.value(2))

    def test_event_waits_for_the_forced_route(self):
        session = self._session()
        session.game_map.interpreter.setup([cmd(205, 1, self._branch_route()), cmd(121, 2, 2, 0), cmd(0)], 0)
        session.update()
        self.assertTrue(session.game_map.event(1).move_route_forcing)
        self.assertFalse(session.switches.value(2))
        self.assertEqual(session.game_map.event(1).x, 4)

    def test_forced_route_on_the_player(self):
        session = self._session()
        self._run(session, cmd(205, -1, _route({"code": 1}, wait=True)))
        self.assertEqual((session.player.x, session.player.y), (0, 1))
        self.assertFalse(session.player.move_route_forcing)

    def test_frozen_events_do_not_follow_their_own_route(self):
        route = _route({"code": 3}, repeat=True)
        session = make_session({1: make_map([_walker(1, 5, 5, route)])})
        session.move_route_behavior = "freeze"
        for _ in range(10):
            session.update()
        self.assertEqual(session.game_map.event(1).x, 5)


if __name__ == "__main__":
    unittest.main()
