"""Event command interpreter with linked-event redirection and weighted branches."""

from __future__ import annotations

import logging
from typing import Any

from .constants import (
    CODE_BRANCH_END,
    CODE_CHANGE_ARMORS,
    CODE_CHANGE_GOLD,
    CODE_CHANGE_ITEMS,
    CODE_CHANGE_WEAPONS,
    CODE_COMMON_EVENT,
    CODE_CONDITIONAL_BRANCH,
    CODE_CONTROL_SELF_SWITCH,
    CODE_CONTROL_SWITCHES,
    CODE_CONTROL_VARIABLES,
    CODE_ELSE,
    CODE_END,
    CODE_ERASE_EVENT,
    CODE_EXIT_EVENT,
    CODE_PLAY_SE,
    CODE_PLUGIN_COMMAND,
    CODE_SET_MOVE_ROUTE,
    CODE_SHOW_TEXT,
    CODE_TEXT_LINE,
    CODE_WAIT,
)
from .linking import LinkedEventResolver
from .weighted_branch import WeightBranchState

logger = logging.getLogger(__name__)

_ITEM_KIND_BY_CODE = {
    CODE_CHANGE_ITEMS: "item",
    CODE_CHANGE_WEAPONS: "weapon",
    CODE_CHANGE_ARMORS: "armor",
}
_ITEM_KIND_BY_CONDITION = {8: "item", 9: "weapon", 10: "armor"}


def _param(p, index: int, default: Any = 0) -> Any:
    return p[index] if len(p) > index else default


class EventInterpreter:
    """Runs one event command list; nested common events run in a child."""

    def __init__(self, session, depth: int = 0):
        self.session = session
        self.depth = depth
        self.link = LinkedEventResolver(self)
        self.weights = WeightBranchState(session.rng)
        self.clear()

    def clear(self) -> None:
        self.map_id = 0
        self.event_id = 0
        self.list: list | None = None
        self.index = 0
        self.indent = 0
        self.wait_count = 0
        self.route_character = None
        self.child: EventInterpreter | None = None
        self.branch: dict[int, Any] = {}
        self.link.unlink()
        self.weights.clear()

    def setup(self, command_list, event_id: int = 0) -> None:
        self.clear()
        game_map = self.session.game_map
        self.map_id = game_map.map_id if game_map is not None else 0
        self.event_id = event_id
        self.list = list(command_list or [])
        self.weights.attach(self.list)

    def is_running(self) -> bool:
        return self.list is not None

    def character(self, param: int = 0):
        """-1 is the player, 0 the running event, anything else an event on this map."""
        game_map = self.session.game_map
        if param < 0:
            return self.session.player
        if game_map is None or game_map.map_id != self.map_id:
            return None
        event_id = param or self.event_id
        return game_map.event(event_id) if event_id > 0 else None

    def resolve(self) -> tuple[int, int]:
        """``(entity_id, map_id)`` whose self data this interpreter addresses."""
        return self.link.resolve()

    def terminate(self) -> None:
        self.list = None
        self.child = None
        self.link.unlink()
        self.weights.clear()

    # -- main loop --------------------------------------------------------

    def update(self) -> None:
        with self.session.running(self):
            while self.is_running():
                if self.update_child() or self.update_wait():
                    break
                self.execute_command()

    def update_child(self) -> bool:
        if self.child is None:
            return False
        self.child.update()
        if self.child.is_running():
            return True
        self.child = None
        return False

    def update_wait(self) -> bool:
        if self.wait_count > 0:
            self.wait_count -= 1
            return True
        if self.route_character is not None:
            if self.route_character.move_route_forcing:
                return True
            self.route_character = None
        return False

    def current_command(self) -> dict | None:
        if self.list is not None and self.index < len(self.list):
            return self.list[self.index]
        return None

    def execute_command(self) -> None:
        command = self.current_command()
        if command is None:
            self.terminate()
            return
        self.indent = int(command.get("indent", 0) or 0)
        self.weights.prune(self.indent)
        params = command.get("parameters") or []
        handler = self._handlers().get(command.get("code", CODE_END))
        if handler is not None:
            handler(self, params)
        self.index += 1

    def skip_branch(self) -> None:
        while self.index + 1 < len(self.list) and int(self.list[self.index + 1].get("indent", 0)) > self.indent:
            self.index += 1

    def jump_to(self, index: int) -> None:
        """Continue at ``index`` on the next step."""
        self.index = index - 1

    # -- commands ---------------------------------------------------------

    def command_show_text(self, params) -> None:
        lines = []
        while (self.index + 1 < len(self.list)
               and self.list[self.index + 1].get("code") == CODE_TEXT_LINE):
            self.index += 1
            lines.append(str(_param(self.list[self.index].get("parameters") or [], 0, "")))
        self.session.show_text("\n".join(lines))

    def command_conditional_branch(self, params) -> None:
        result = self.evaluate_condition(params)
        self.branch[self.indent] = result
        if not result:
            self.skip_branch()

    def evaluate_condition(self, p) -> bool:
        session = self.session
        kind = _param(p, 0)
        if kind == 0:
            return session.switches.value(_param(p, 1)) == (_param(p, 2) == 0)
        if kind == 1:
            value1 = session.variables.value(_param(p, 1))
            operand = _param(p, 3)
            value2 = operand if _param(p, 2) == 0 else session.variables.value(operand)
            return _compare(value1, value2, _param(p, 4))
        if kind == 2:
            entity_id, map_id = self.resolve()
            if entity_id <= 0:
                return False
            key = (map_id, entity_id, _param(p, 1, "A"))
            return session.self_switches.value(key) == (_param(p, 2) == 0)
        if kind == 7:
            gold = session.party.gold
            value = _param(p, 1)
            op = _param(p, 2)
            if op == 0:
                return gold >= value
            if op == 1:
                return gold <= value
            return gold < value
        if kind in _ITEM_KIND_BY_CONDITION:
            data = session.database.item_data(_ITEM_KIND_BY_CONDITION[kind], _param(p, 1))
            return session.party.num_items(data) > 0
        logger.debug("Conditional branch type %s is not supported; treating as false", kind)
        return False

    def command_else(self, params) -> None:
        if self.branch.get(self.indent) is not False:
            self.skip_branch()

    def command_exit_event(self, params) -> None:
        self.index = len(self.list)

    def command_common_event(self, params) -> None:
        common_event = self.session.database.get_common_event(_param(params, 0))
        if not common_event:
            logger.warning("Common event %s does not exist", _param(params, 0))
            return
        if self.link.is_linked:
            event_id = self.link.linked_event_id if self.link.is_local() else 0
        else:
            event_id = self.event_id
        self.setup_child(common_event.get("list") or [], event_id)

    def setup_child(self, command_list, event_id: int) -> None:
        self.child = EventInterpreter(self.session, self.depth + 1)
        self.child.setup(command_list, event_id)

    def command_control_switches(self, params) -> None:
        start, end, value = _param(params, 0), _param(params, 1), _param(params, 2)
        for switch_id in range(start, end + 1):
            self.session.switches.set_value(switch_id, value == 0)
        self.session.game_map.request_refresh()

    def operand_value(self, operand_type, operand) -> int:
        if operand_type == 0:
            return operand
        return self.session.variables.value(operand)

    def command_control_variables(self, params) -> None:
        start, end, op, operand_type = (_param(params, i) for i in range(4))
        if operand_type == 0:
            value = _param(params, 4)
        elif operand_type == 1:
            value = self.session.variables.value(_param(params, 4))
        elif operand_type == 2:
            low, high = _param(params, 4), _param(params, 5)
            value = low + self.session.rng.randrange(high - low + 1)
        else:
            logger.debug("Variable operand type %s is not supported", operand_type)
            return
        variables = self.session.variables
        for variable_id in range(start, end + 1):
            old = variables.value(variable_id) or 0
            variables.set_value(variable_id, _operate(old, op, value))
        self.session.game_map.request_refresh()

    def command_control_self_switch(self, params) -> None:
        entity_id, map_id = self.resolve()
        if entity_id <= 0:
            return
        key = (map_id, entity_id, _param(params, 0, "A"))
        self.session.self_switches.set_value(key, _param(params, 1) == 0)
        self.session.game_map.request_refresh()

    def command_change_gold(self, params) -> None:
        value = self.operand_value(_param(params, 1), _param(params, 2))
        self.session.party.gain_gold(-value if _param(params, 0) else value)

    def command_change_items(self, params) -> None:
        code = self.current_command().get("code")
        data = self.session.database.item_data(_ITEM_KIND_BY_CODE[code], _param(params, 0))
        value = self.operand_value(_param(params, 2), _param(params, 3))
        self.session.party.gain_item(data, -value if _param(params, 1) else value)

    def command_erase_event(self, params) -> None:
        game_map = self.session.game_map
        if self.link.is_linked:
            if not self.link.is_local():
                logger.warning("Erase Event: linked event %d lives on map %d, not the current map; nothing erased",
                               self.link.linked_event_id, self.link.linked_map_id)
                return
            event = self.link.linked_event()
            if event is not None:
                event.erase()
            self.link.unlink()
            return
        if self.event_id > 0 and self.map_id == game_map.map_id:
            event = game_map.event(self.event_id)
            if event is not None:
                event.erase()

    def command_set_move_route(self, params) -> None:
        character = self.character(int(_param(params, 0)))
        route = _param(params, 1, None)
        if character is None or not isinstance(route, dict):
            logger.debug("Set Movement Route: no character for %s", _param(params, 0))
            return
        character.force_move_route(route)
        if route.get("wait"):
            self.route_character = character

    def command_wait(self, params) -> None:
        self.wait_count = int(_param(params, 0))

    def command_play_se(self, params) -> None:
        se = _param(params, 0, None)
        if isinstance(se, dict):
            self.session.audio.play_se(se)

    def command_plugin(self, params) -> None:
        self.session.commands.dispatch(self, params)

    _HANDLERS: dict[int, Any] | None = None

    @classmethod
    def _handlers(cls) -> dict[int, Any]:
        if cls._HANDLERS is None:
            cls._HANDLERS = {
                CODE_SHOW_TEXT: cls.command_show_text,
                CODE_CONDITIONAL_BRANCH: cls.command_conditional_branch,
                CODE_ELSE: cls.command_else,
                CODE_BRANCH_END: lambda self, params: None,
                CODE_EXIT_EVENT: cls.command_exit_event,
                CODE_COMMON_EVENT: cls.command_common_event,
                CODE_CONTROL_SWITCHES: cls.command_control_switches,
                CODE_CONTROL_VARIABLES: cls.command_control_variables,
                CODE_CONTROL_SELF_SWITCH: cls.command_control_self_switch,
                CODE_CHANGE_GOLD: cls.command_change_gold,
                CODE_CHANGE_ITEMS: cls.command_change_items,
                CODE_CHANGE_WEAPONS: cls.command_change_items,
                CODE_CHANGE_ARMORS: cls.command_change_items,
                CODE_SET_MOVE_ROUTE: cls.command_set_move_route,
                CODE_ERASE_EVENT: cls.command_erase_event,
                CODE_WAIT: cls.command_wait,
                CODE_PLAY_SE: cls.command_play_se,
                CODE_PLUGIN_COMMAND: cls.command_plugin,
            }
        return cls._HANDLERS


def _compare(a, b, op) -> bool:
    if op == 0:
        return a == b
    if op == 1:
        return a >= b
    if op == 2:
        return a <= b
    if op == 3:
        return a > b
    if op == 4:
        return a < b
    return a != b


def _operate(old, op, value):
    if op == 0:
        return value
    if op == 1:
        return old + value
    if op == 2:
        return old - value
    if op == 3:
        return old * value
    if op == 4:
        return int(old / value) if value else old
    if op == 5:
        return old % value if value else old
    return old
