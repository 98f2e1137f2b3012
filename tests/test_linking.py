from __future__ import annotations

import unittest

from eventai.linking import Candidate, choose_nearest, filter_candidates, parse_selector

from eventai_fixtures import cmd, common_event, event, make_map, make_session, page, plugin


def _maps():
    town = make_map([
        event(1, 0, 0, [page()], name="Runner"),
        event(2, 5, 5, [page()], name="Chest"),
        event(3, 2, 2, [page()], name="Chest"),
        event(4, 8, 8, [page()], name="Door", note="locked"),
    ])
    cave = make_map([event(1, 3, 3, [page()], name="Chest")])
    return {1: town, 2: cave}


class SelectorTest(unittest.TestCase):
    def test_selector_kinds(self):
        self.assertIsNone(parse_selector(""))
        self.assertIsNone(parse_selector("  "))
        self.assertEqual(parse_selector("12"), 12)
        self.assertEqual(parse_selector("Chest"), "Chest")

    def test_nearest_ties_keep_id_order(self):
        pool = [Candidate(5, "a", "", 1, 0), Candidate(3, "b", "", 0, 1)]
        self.assertEqual(choose_nearest(pool, (0, 0)).id, 3)

    def test_filters_combine(self):
        pool = [Candidate(1, "Chest", "", 0, 0), Candidate(2, "Chest", "gold", 9, 9), Candidate(3, "Box", "gold", 1, 1)]
        self.assertEqual([c.id for c in filter_candidates(pool, "Chest", "gold", None, None)], [2])
        self.assertEqual([c.id for c in filter_candidates(pool, None, "", (0, 0), 1)], [1, 3])


class LinkEventTest(unittest.TestCase):
    def setUp(self):
        self.session = make_session(_maps(), common_events=[common_event(1, [cmd(123, "B", 0)])],
                                    variables=["s:Mood", "Global"], map_names={1: "Town", 2: "Cave"})
        self.interpreter = self.session.game_map.interpreter

    def run_commands(self, *commands, event_id=1):
        self.interpreter.setup(list(commands) + [cmd(0)], event_id)
        self.interpreter.update()

    def test_self_switch_goes_to_nearest_named_event(self):
        self.run_commands(plugin("link_event", {"event": "Chest"}), cmd(123, "A", 0))
        switches = self.session.self_switches
        self.assertTrue(switches.value((1, 3, "A")))
        self.assertFalse(switches.value((1, 2, "A")))
        self.assertFalse(switches.value((1, 1, "A")))

    def test_self_switch_condition_reads_linked_event_until_unlinked(self):
        self.session.self_switches.set_value((1, 3, "A"), True)
        self.run_commands(
            plugin("link_event", {"event": "3"}),
            cmd(111, 2, "A", 0),
            cmd(122, 2, 2, 0, 0, 1, indent=1),
            cmd(0, indent=1),
            cmd(412),
            plugin("unlink_event"),
            cmd(111, 2, "A", 0),
            cmd(122, 3, 3, 0, 0, 1, indent=1),
            cmd(0, indent=1),
            cmd(412),
        )
        self.assertEqual(self.session.variables.value(2), 1)
        self.assertEqual(self.session.variables.value(3), 0)

    def test_note_filter(self):
        self.run_commands(plugin("link_event", {"note": "locked"}), cmd(123, "A", 0))
        self.assertTrue(self.session.self_switches.value((1, 4, "A")))

    def test_location_without_distance_means_exact_tile(self):
        self.run_commands(plugin("link_event", {"location": '{"x": "5", "y": "5"}'}), cmd(123, "C", 0))
        self.assertTrue(self.session.self_switches.value((1, 2, "C")))

    def test_location_relative_to_missing_event_links_nothing(self):
        location = '{"x": "0", "y": "0", "relativity": "event"}'
        with self.assertLogs("eventai.linking", level="WARNING"):
            self.run_commands(plugin("link_event", {"location": location}), cmd(123, "A", 0), event_id=0)
        self.assertEqual(len(self.session.self_switches), 0)

    def test_failed_link_keeps_previous_link(self):
        with self.assertLogs("eventai.linking", level="WARNING"):
            self.run_commands(
                plugin("link_event", {"event": "2"}),
                plugin("link_event", {"event": "Nobody"}),
                cmd(123, "A", 0),
            )
        self.assertTrue(self.session.self_switches.value((1, 2, "A")))

    def test_link_is_dropped_when_the_event_finishes(self):
        self.run_commands(plugin("link_event", {"event": "2"}))
        self.assertFalse(self.interpreter.link.is_linked)
        self.run_commands(cmd(123, "A", 0))
        self.assertTrue(self.session.self_switches.value((1, 1, "A")))

    def test_self_variable_follows_link(self):
        self.run_commands(
            plugin("link_event", {"event": "2"}),
            cmd(122, 1, 1, 0, 0, 7),
            cmd(122, 2, 2, 0, 0, 3),
        )
        values = self.session.self_variables
        self.assertEqual(values.value((1, 2, 1)), 7)
        self.assertEqual(values.value((1, 1, 1)), 0)
        self.assertEqual(self.session.variables.value(2), 3)

    def test_common_event_runs_as_linked_event(self):
        self.run_commands(plugin("link_event", {"event": "2"}), cmd(117, 1))
        self.assertTrue(self.session.self_switches.value((1, 2, "B")))
        self.assertFalse(self.session.self_switches.value((1, 1, "B")))

    def test_remote_link_by_map_name(self):
        self.run_commands(plugin("link_event", {"map": "Cave", "event": "Chest"}), cmd(123, "D", 0))
        self.assertTrue(self.session.self_switches.value((2, 1, "D")))
        self.assertFalse(self.session.self_switches.value((1, 1, "D")))

    def test_common_event_through_remote_link_has_no_event(self):
        self.run_commands(plugin("link_event", {"map": "2", "event": "1"}), cmd(117, 1))
        self.assertFalse(self.session.self_switches.value((2, 1, "B")))
        self.assertFalse(self.session.self_switches.value((1, 1, "B")))
        self.assertEqual(len(self.session.self_switches), 0)

    def test_link_to_erased_event_falls_back_to_self(self):
        self.session.game_map.event(2).erase()
        with self.assertLogs("eventai.linking", level="WARNING"):
            self.run_commands(plugin("link_event", {"event": "2"}), cmd(123, "A", 0))
        self.assertTrue(self.session.self_switches.value((1, 1, "A")))


class EraseThroughLinkTest(unittest.TestCase):
    def setUp(self):
        self.session = make_session(_maps())
        self.interpreter = self.session.game_map.interpreter

    def test_erase_targets_linked_event_and_clears_link(self):
        self.interpreter.setup([
            plugin("link_event", {"event": "2"}),
            cmd(214),
            cmd(123, "A", 0),
            cmd(0),
        ], 1)
        self.interpreter.update()
        game_map = self.session.game_map
        self.assertTrue(game_map.event(2).erased)
        self.assertFalse(game_map.event(1).erased)
        self.assertTrue(self.session.self_switches.value((1, 1, "A")))

    def test_erase_through_remote_link_changes_nothing(self):
        self.interpreter.setup([plugin("link_event", {"map": "2", "event": "1"}), cmd(214), cmd(0)], 1)
        with self.assertLogs("eventai.interpreter", level="WARNING"):
            self.interpreter.update()
        self.assertFalse(self.session.game_map.event(1).erased)

    def test_erase_without_link_erases_running_event(self):
        self.interpreter.setup([cmd(214), cmd(0)], 3)
        self.interpreter.update()
        self.assertTrue(self.session.game_map.event(3).erased)


if __name__ == "__main__":
    unittest.main()
