from __future__ import annotations

import random
import unittest

from eventai.weighted_branch import WeightBranchTable, parse_weight

from eventai_fixtures import FixedRandom, cmd, event, make_map, make_session, plugin


def _set_var(variable_id, value, indent=0):
    return cmd(122, variable_id, variable_id, 0, 0, value, indent=indent)


def _two_way(first=1, second=3):
    return [
        plugin("weight", {"weight": str(first)}),
        _set_var(1, 1),
        plugin("weight", {"weight": str(second)}),
        _set_var(1, 2),
        plugin("end_weight_branches"),
        _set_var(2, 9),
        cmd(0),
    ]


class WeightParseTest(unittest.TestCase):
    def test_numeric_text(self):
        self.assertEqual(parse_weight({"weight": "2.5"}), 2.5)

    def test_bad_weights_count_as_zero(self):
        with self.assertLogs("eventai.weighted_branch", level="WARNING"):
            self.assertEqual(parse_weight({"weight": "lots"}), 0.0)
        with self.assertLogs("eventai.weighted_branch", level="WARNING"):
            self.assertEqual(parse_weight({"weight": "-1"}), 0.0)


class WeightTableTest(unittest.TestCase):
    def test_markers_jump_to_next_sibling_then_end(self):
        table = WeightBranchTable.build(_two_way())
        self.assertEqual(len(table.sets), 1)
        self.assertEqual(table.sets[0].branches, [0, 2])
        self.assertEqual(table.sets[0].weights, [1.0, 3.0])
        self.assertEqual(table.marker(0).next_stop, 2)
        self.assertEqual(table.marker(2).next_stop, 4)
        self.assertTrue(table.marker(4).is_end)

    def test_nested_sets_are_separate(self):
        commands = [
            cmd(111, 0, 1, 0),
            plugin("weight", {"weight": "1"}, indent=1),
            plugin("weight", {"weight": "1"}, indent=1),
            plugin("end_weight_branches", indent=1),
            cmd(0, indent=1),
            cmd(412),
            plugin("weight", {"weight": "1"}),
            plugin("end_weight_branches"),
        ]
        table = WeightBranchTable.build(commands)
        self.assertEqual([s.depth for s in table.sets], [1, 0])

    def test_unclosed_set_ends_where_indent_drops(self):
        commands = [
            cmd(111, 0, 1, 0),
            plugin("weight", {"weight": "1"}, indent=1),
            cmd(0, indent=1),
            cmd(412),
        ]
        table = WeightBranchTable.build(commands)
        self.assertEqual(table.marker(1).next_stop, 3)


class WeightedBranchRunTest(unittest.TestCase):
    def _run(self, commands, draws):
        session = make_session({1: make_map([event(1, 0, 0, [])])}, rng=FixedRandom(draws))
        interpreter = session.game_map.interpreter
        interpreter.setup(commands, 1)
        interpreter.update()
        return session

    def test_low_draw_takes_first_branch(self):
        session = self._run(_two_way(), [0.1])
        self.assertEqual(session.variables.value(1), 1)
        self.assertEqual(session.variables.value(2), 9)

    def test_high_draw_takes_second_branch(self):
        session = self._run(_two_way(), [0.5])
        self.assertEqual(session.variables.value(1), 2)
        self.assertEqual(session.variables.value(2), 9)

    def test_draw_is_proportional_to_weight(self):
        # 0.3 * 4 = 1.2 lies past the first branch's share of 1.
        session = self._run(_two_way(), [0.3])
        self.assertEqual(session.variables.value(1), 2)

    def test_all_zero_weights_take_first_branch(self):
        with self.assertLogs("eventai.weighted_branch", level="WARNING"):
            session = self._run(_two_way(0, 0), [0.9])
        self.assertEqual(session.variables.value(1), 1)

    def test_consecutive_sets_draw_independently(self):
        commands = _two_way()[:-1] + [
            plugin("weight", {"weight": "1"}),
            _set_var(3, 1),
            plugin("weight", {"weight": "1"}),
            _set_var(3, 2),
            plugin("end_weight_branches"),
            cmd(0),
        ]
        session = self._run(commands, [0.1, 0.9])
        self.assertEqual(session.variables.value(1), 1)
        self.assertEqual(session.variables.value(3), 2)

    def test_selection_frequency_follows_weights(self):
        session = make_session({1: make_map([event(1, 0, 0, [])])}, rng=random.Random(7))
        interpreter = session.game_map.interpreter
        first = 0
        trials = 2000
        for _ in range(trials):
            interpreter.setup(_two_way(1, 3), 1)
            interpreter.update()
            if session.variables.value(1) == 1:
                first += 1
        self.assertAlmostEqual(first / trials, 0.25, delta=0.04)

    def test_leaving_a_branch_forgets_its_unclosed_set(self):
        commands = [
            cmd(111, 0, 1, 1),
            plugin("weight", {"weight": "1"}, indent=1),
            _set_var(1, 1, indent=1),
            plugin("weight", {"weight": "1"}, indent=1),
            _set_var(1, 2, indent=1),
            cmd(0, indent=1),
            cmd(412),
            cmd(230, 1),
            cmd(111, 0, 1, 1),
            plugin("weight", {"weight": "1"}, indent=1),
            _set_var(2, 1, indent=1),
            plugin("weight", {"weight": "1"}, indent=1),
            _set_var(2, 2, indent=1),
            cmd(0, indent=1),
            cmd(412),
            cmd(0),
        ]
        rng = FixedRandom([0.9, 0.1])
        session = make_session({1: make_map([event(1, 0, 0, [])])}, rng=rng)
        interpreter = session.game_map.interpreter
        interpreter.setup(commands, 1)
        interpreter.update()
        self.assertEqual(session.variables.value(1), 2)
        self.assertEqual(interpreter.weights.selections, {})
        interpreter.update()
        interpreter.update()
        self.assertEqual(session.variables.value(2), 1)
        self.assertEqual(rng.values, [])

    def test_end_without_open_set_warns(self):
        with self.assertLogs("eventai.weighted_branch", level="WARNING"):
            session = self._run([plugin("end_weight_branches"), _set_var(1, 5), cmd(0)], [])
        self.assertEqual(session.variables.value(1), 5)


if __name__ == "__main__":
    unittest.main()
