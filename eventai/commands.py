"""Plugin command registry and the commands this package contributes."""

from __future__ import annotations

import logging
from typing import Any, Callable

from .config import MOVE_ROUTE_BEHAVIORS
from .constants import PLUGIN_NAME
from .errors import NoSuchItemError
from .geometry import parse_location
from .origins import set_new_origin
from .treasure import give_treasure_by_name, give_treasure_gold, give_treasure_item
from .triggers import TRIGGER_COMMANDS, command_plugin_name

logger = logging.getLogger(__name__)

Handler = Callable[[Any, dict], None]


class PluginCommandRegistry:
    """Routes 357 commands to handlers by ``(plugin_name, command_name)``."""

    def __init__(self):
        self._handlers: dict[tuple[str, str], Handler] = {}

    def register(self, plugin_name: str, command_name: str, handler: Handler) -> None:
        self._handlers[(plugin_name, command_name)] = handler

    def handler(self, plugin_name: str, command_name: str) -> Handler | None:
        return self._handlers.get((plugin_name, command_name))

    def names(self, plugin_name: str = PLUGIN_NAME) -> list[str]:
        return sorted(name for plugin, name in self._handlers if plugin == plugin_name)

    def dispatch(self, interpreter, params) -> None:
        plugin_name = command_plugin_name(params)
        command_name = str(params[1]) if len(params) > 1 else ""
        args = params[3] if len(params) > 3 and isinstance(params[3], dict) else {}
        handler = self.handler(plugin_name, command_name)
        if handler is None:
            logger.debug("No handler for plugin command %s/%s", plugin_name, command_name)
            return
        handler(interpreter, args)


def _arg(args: dict, *names: str, default: Any = "") -> Any:
    for name in names:
        if name in args:
            return args[name]
    return default


def _trigger_marker(interpreter, args) -> None:
    # Trigger commands only classify a page; running one does nothing.
    pass


def _treasure_kind(kind: str) -> Handler:
    def handler(interpreter, args) -> None:
        give_treasure_item(interpreter.session, kind, _arg(args, "id", "item_id"),
                           _arg(args, "amount", "quantity", default=1))
    return handler


def _treasure_gold(interpreter, args) -> None:
    give_treasure_gold(interpreter.session, _arg(args, "amount", "quantity", default=0))


def _treasure_by_name(interpreter, args) -> None:
    name = str(_arg(args, "name")).strip()
    try:
        give_treasure_by_name(interpreter.session, name, _arg(args, "amount", "quantity", default=1))
    except NoSuchItemError as exc:
        logger.error("Treasure by name: %s", exc)


def _link_event(interpreter, args) -> None:
    interpreter.link.link(
        event_selector=_arg(args, "event", "event_id"),
        map_selector=_arg(args, "map", "map_id"),
        note_filter=_arg(args, "note"),
        location_filter=_arg(args, "location", default=None) or None,
        max_distance=_arg(args, "max_distance", "maxDistance", default=None),
    )


def _unlink_event(interpreter, args) -> None:
    interpreter.link.unlink()


def _weight(interpreter, args) -> None:
    stop = interpreter.weights.on_weight(interpreter.index, interpreter.indent)
    if stop is not None:
        interpreter.jump_to(stop)


def _end_weight_branches(interpreter, args) -> None:
    interpreter.weights.on_end(interpreter.indent)


def _set_new_origin(interpreter, args) -> None:
    spec = parse_location(_arg(args, "location", default=None) or args)
    if spec is None:
        logger.warning("Set New Origin: no usable location in %r", args)
        return
    set_new_origin(interpreter, spec)


def _move_route_behavior(interpreter, args) -> None:
    behavior = str(_arg(args, "behavior", "move_route_behavior", default="normal")).strip().lower()
    if behavior not in MOVE_ROUTE_BEHAVIORS:
        logger.warning("Unknown move route behavior %r; keeping %s",
                       behavior, interpreter.session.move_route_behavior)
        return
    interpreter.session.move_route_behavior = behavior


def register_eventai_commands(registry: PluginCommandRegistry, plugin_name: str = PLUGIN_NAME) -> PluginCommandRegistry:
    for command_name in TRIGGER_COMMANDS:
        registry.register(plugin_name, command_name, _trigger_marker)
    registry.register(plugin_name, "treasure_item", _treasure_kind("item"))
    registry.register(plugin_name, "treasure_weapon", _treasure_kind("weapon"))
    registry.register(plugin_name, "treasure_armor", _treasure_kind("armor"))
    registry.register(plugin_name, "treasure_gold", _treasure_gold)
    registry.register(plugin_name, "treasure_by_name", _treasure_by_name)
    registry.register(plugin_name, "link_event", _link_event)
    registry.register(plugin_name, "unlink_event", _unlink_event)
    registry.register(plugin_name, "weight", _weight)
    registry.register(plugin_name, "end_weight_branches", _end_weight_branches)
    registry.register(plugin_name, "set_new_origin", _set_new_origin)
    registry.register(plugin_name, "move_route_behavior", _move_route_behavior)
    return registry
