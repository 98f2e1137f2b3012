"""Custom page triggers declared by leading plugin commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from pathlib import PurePosixPath

from .constants import CODE_PLUGIN_COMMAND, MAX_REGION_ID, PLUGIN_NAME

logger = logging.getLogger(__name__)


class TriggerKind(IntEnum):
    ACTION_BUTTON = 0
    PLAYER_TOUCH = 1
    EVENT_TOUCH = 2
    AUTORUN = 3
    PARALLEL = 4
    REGION_ENTRY = 5
    PARTY_TOUCH = 6
    MAP_SETUP = 7


CUSTOM_TRIGGERS = (TriggerKind.REGION_ENTRY, TriggerKind.PARTY_TOUCH, TriggerKind.MAP_SETUP)

TRIGGER_COMMANDS = {
    "page_trigger_region_entry": TriggerKind.REGION_ENTRY,
    "page_trigger_follower_touch": TriggerKind.PARTY_TOUCH,
    "page_trigger_party_touch": TriggerKind.PARTY_TOUCH,
    "page_trigger_map_setup": TriggerKind.MAP_SETUP,
}


@dataclass(frozen=True)
class TriggerDescriptor:
    kind: TriggerKind
    region_id: int | None = None


def command_plugin_name(params) -> str:
    """Plugin a 357 command belongs to; the editor may store it as a path."""
    if not params:
        return ""
    raw = str(params[0] or "").replace("\\", "/")
    name = PurePosixPath(raw).name
    return name[:-3] if name.endswith(".js") else name


def is_own_plugin_command(cmd, plugin_name: str = PLUGIN_NAME) -> bool:
    if not isinstance(cmd, dict) or cmd.get("code") != CODE_PLUGIN_COMMAND:
        return False
    return command_plugin_name(cmd.get("parameters") or []) == plugin_name


def plugin_command_name(cmd) -> str:
    params = cmd.get("parameters") or []
    return str(params[1]) if len(params) > 1 else ""


def plugin_command_args(cmd) -> dict:
    params = cmd.get("parameters") or []
    args = params[3] if len(params) > 3 else {}
    return args if isinstance(args, dict) else {}


def _region_descriptor(args) -> TriggerDescriptor | None:
    raw = args.get("region_id", args.get("regionId", ""))
    try:
        region_id = int(float(str(raw).strip()))
    except (TypeError, ValueError):
        logger.warning("Region entry trigger has a non-numeric region id %r; ignoring", raw)
        return None
    if not 1 <= region_id <= MAX_REGION_ID:
        logger.warning("Region entry trigger region id %d out of range 1-%d; ignoring", region_id, MAX_REGION_ID)
        return None
    return TriggerDescriptor(TriggerKind.REGION_ENTRY, region_id)


def find_custom_page_trigger(command_list, plugin_name: str = PLUGIN_NAME) -> TriggerDescriptor | None:
    """Classify a page by the trigger commands at the head of its list.

    Only the leading run of this plugin's commands is read: the scan stops at
    the first instruction that is not one of them. Returns None when the host's
    own trigger applies.
    """
    if not isinstance(command_list, list):
        return None
    for cmd in command_list:
        if not is_own_plugin_command(cmd, plugin_name):
            break
        kind = TRIGGER_COMMANDS.get(plugin_command_name(cmd))
        if kind is None:
            continue
        if kind == TriggerKind.REGION_ENTRY:
            descriptor = _region_descriptor(plugin_command_args(cmd))
            if descriptor is not None:
                return descriptor
            continue
        return TriggerDescriptor(kind)
    return None


class TriggerOwner:
    """Mixin for entities whose trigger can be overridden by a descriptor.

    Implementers provide ``list()``; the descriptor is cached until the next
    call to ``apply_trigger_descriptor``.
    """

    _trigger: int | None = None
    _region_id: int | None = None

    def apply_trigger_descriptor(self, host_trigger: int | None) -> TriggerDescriptor | None:
        descriptor = find_custom_page_trigger(self.list())
        if descriptor is not None:
            self._trigger = int(descriptor.kind)
            self._region_id = descriptor.region_id
        else:
            self._trigger = host_trigger
            self._region_id = None
        return descriptor

    @property
    def trigger(self) -> int | None:
        return self._trigger

    @property
    def region_id(self) -> int | None:
        return self._region_id

    def is_region_entry_event(self, region_id: int | None = None) -> bool:
        return self._trigger == TriggerKind.REGION_ENTRY and (region_id is None or self._region_id == region_id)

    def is_party_touch_event(self) -> bool:
        return self._trigger == TriggerKind.PARTY_TOUCH

    def is_map_setup_event(self) -> bool:
        return self._trigger == TriggerKind.MAP_SETUP
