from __future__ import annotations

import unittest

from eventai.triggers import TriggerDescriptor, TriggerKind, command_plugin_name, find_custom_page_trigger

from eventai_fixtures import cmd, plugin


class PageTriggerTest(unittest.TestCase):
    def test_no_plugin_commands_keeps_host_trigger(self):
        self.assertIsNone(find_custom_page_trigger([cmd(101, "", 0, 0, 2), cmd(0)]))

    def test_region_entry_reads_region_id(self):
        found = find_custom_page_trigger([plugin("page_trigger_region_entry", {"region_id": "12"}), cmd(0)])
        self.assertEqual(found, TriggerDescriptor(TriggerKind.REGION_ENTRY, 12))

    def test_out_of_range_region_is_ignored(self):
        with self.assertLogs("eventai.triggers", level="WARNING"):
            found = find_custom_page_trigger([plugin("page_trigger_region_entry", {"region_id": "256"})])
        self.assertIsNone(found)

    def test_follower_touch_is_party_touch(self):
        found = find_custom_page_trigger([plugin("page_trigger_follower_touch")])
        self.assertEqual(found.kind, TriggerKind.PARTY_TOUCH)

    def test_first_trigger_command_wins(self):
        found = find_custom_page_trigger([
            plugin("link_event", {"event": "2"}),
            plugin("page_trigger_map_setup"),
            plugin("page_trigger_party_touch"),
        ])
        self.assertEqual(found.kind, TriggerKind.MAP_SETUP)

    def test_scan_stops_at_other_commands(self):
        found = find_custom_page_trigger([
            cmd(121, 1, 1, 0),
            plugin("page_trigger_map_setup"),
        ])
        self.assertIsNone(found)

    def test_scan_stops_at_other_plugins(self):
        found = find_custom_page_trigger([
            plugin("anything", plugin_name="SomeOtherPlugin"),
            plugin("page_trigger_map_setup"),
        ])
        self.assertIsNone(found)

    def test_plugin_name_may_be_a_path(self):
        self.assertEqual(command_plugin_name(["plugins\\Tyruswoo_EventAI.js", "x"]), "Tyruswoo_EventAI")
        found = find_custom_page_trigger([plugin("page_trigger_map_setup", plugin_name="js/Tyruswoo_EventAI.js")])
        self.assertEqual(found.kind, TriggerKind.MAP_SETUP)


if __name__ == "__main__":
    unittest.main()
