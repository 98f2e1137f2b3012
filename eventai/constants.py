"""Command codes and runtime constants shared across the package."""

from __future__ import annotations

PLUGIN_NAME = "Tyruswoo_EventAI"

# Event command codes
CODE_END = 0
CODE_SHOW_TEXT = 101
CODE_TEXT_LINE = 401
CODE_CONDITIONAL_BRANCH = 111
CODE_EXIT_EVENT = 115
CODE_COMMON_EVENT = 117
CODE_CONTROL_SWITCHES = 121
CODE_CONTROL_VARIABLES = 122
CODE_CONTROL_SELF_SWITCH = 123
CODE_CHANGE_GOLD = 125
CODE_CHANGE_ITEMS = 126
CODE_CHANGE_WEAPONS = 127
CODE_CHANGE_ARMORS = 128
CODE_SET_MOVE_ROUTE = 205
CODE_ERASE_EVENT = 214
CODE_WAIT = 230
CODE_PLAY_SE = 250
CODE_PLUGIN_COMMAND = 357
CODE_ELSE = 411
CODE_BRANCH_END = 412

# Move route command codes
ROUTE_END = 0
ROUTE_MOVE_DOWN = 1
ROUTE_MOVE_LEFT = 2
ROUTE_MOVE_RIGHT = 3
ROUTE_MOVE_UP = 4
ROUTE_MOVE_RANDOM = 9
ROUTE_MOVE_TOWARD = 10
ROUTE_MOVE_AWAY = 11
ROUTE_MOVE_FORWARD = 12
ROUTE_WAIT = 15
ROUTE_TURN_DOWN = 16
ROUTE_TURN_LEFT = 17
ROUTE_TURN_RIGHT = 18
ROUTE_TURN_UP = 19
ROUTE_PLAY_SE = 44
ROUTE_SCRIPT = 45

# Event move types
MOVE_TYPE_FIXED = 0
MOVE_TYPE_RANDOM = 1
MOVE_TYPE_APPROACH = 2
MOVE_TYPE_CUSTOM = 3

DEFAULT_SELF_SCOPE_PREFIX = "s:"

MAX_REGION_ID = 255
MAX_ITEMS = 99
MAX_GOLD = 99999999
