"""The current map: its events, regions and the map interpreter."""

from __future__ import annotations

import logging

from .characters import GameEvent
from .interpreter import EventInterpreter
from .triggers import TriggerKind, TriggerOwner

logger = logging.getLogger(__name__)

REGION_LAYER = 5


class GameCommonEvent(TriggerOwner):
    """A database common event with its trigger classified once on creation."""

    def __init__(self, session, common_event_id: int):
        self.session = session
        self.common_event_id = common_event_id
        self.apply_trigger_descriptor(self.event().get("trigger", 0))

    def event(self) -> dict:
        return self.session.database.get_common_event(self.common_event_id) or {}

    def list(self) -> list:
        return self.event().get("list") or []

    def is_autorun(self) -> bool:
        data = self.event()
        return bool(self._trigger == 1 and data.get("switchId")
                    and self.session.switches.value(int(data["switchId"])))


class GameMap:
    """Map state for the frame loop: events, region data and dispatch."""

    def __init__(self, session):
        self.session = session
        self.map_id = 0
        self.data: dict = {}
        self.width = 0
        self.height = 0
        self._events: dict[int, GameEvent] = {}
        self.interpreter = EventInterpreter(session)
        self._common_events: list[GameCommonEvent] | None = None
        self._pending_setup: list[tuple[list, int]] = []
        self._blocked: set[tuple[int, int]] = set()
        self.need_refresh = False

    def setup(self, map_id: int, data: dict | None = None) -> None:
        """Load a map and queue its map setup events ahead of anything else."""
        if data is None:
            loader = self.session.loader
            data = loader.load_map(map_id) if loader is not None else None
        if data is None:
            logger.warning("Map %d has no data; setting up an empty map", map_id)
            data = {}
        self.map_id = map_id
        self.data = data
        self.width = int(data.get("width", 0) or 0)
        self.height = int(data.get("height", 0) or 0)
        self.interpreter.clear()
        self._blocked = set()
        self._events = {}
        for raw in data.get("events") or []:
            if raw and isinstance(raw, dict):
                event = GameEvent(self.session, map_id, raw)
                self._events[event.event_id] = event
        self.start_map_setup_events()

    # -- lookups ----------------------------------------------------------

    def events(self) -> list[GameEvent]:
        return list(self._events.values())

    def event(self, event_id: int) -> GameEvent | None:
        return self._events.get(event_id)

    def events_xy(self, x: int, y: int) -> list[GameEvent]:
        return [e for e in self._events.values() if not e.erased and e.pos(x, y)]

    def is_valid(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def set_impassable(self, tiles) -> None:
        self._blocked = set(map(tuple, tiles or ()))

    def is_passable(self, x: int, y: int) -> bool:
        return (x, y) not in self._blocked

    def tile_id(self, x: int, y: int, z: int) -> int:
        tiles = self.data.get("data") or []
        index = (z * self.height + y) * self.width + x
        if not self.is_valid(x, y) or index >= len(tiles):
            return 0
        return int(tiles[index] or 0)

    def region_id(self, x: int, y: int) -> int:
        return self.tile_id(x, y, REGION_LAYER) if self.is_valid(x, y) else 0

    def common_events(self) -> list[GameCommonEvent]:
        if self._common_events is None:
            self._common_events = [
                GameCommonEvent(self.session, ce_id) for ce_id in self.session.database.common_event_ids()
            ]
        return self._common_events

    # -- running events ---------------------------------------------------

    def is_event_running(self) -> bool:
        if self.interpreter.is_running() or self._pending_setup:
            return True
        return any(e.starting for e in self._events.values())

    def active_event_character(self) -> GameEvent | None:
        if self.interpreter.is_running():
            return self.event(self.interpreter.event_id)
        return None

    def request_refresh(self) -> None:
        self.need_refresh = True

    def refresh(self) -> None:
        for event in self._events.values():
            event.refresh()
        self.need_refresh = False

    def region_entry_events(self, region_id: int | None = None) -> list[GameEvent]:
        return [e for e in self.events() if e.is_region_entry_event(region_id)]

    def region_entry_common_events(self, region_id: int | None = None) -> list[GameCommonEvent]:
        return [ce for ce in self.common_events() if ce.is_region_entry_event(region_id)]

    def start_region_entry_event(self, region_id: int) -> None:
        if self.is_event_running():
            return
        for event in self.region_entry_events(region_id):
            event.start()
        for common_event in self.region_entry_common_events(region_id):
            self.session.temp.reserve_common_event(common_event.common_event_id)

    def start_map_setup_events(self) -> None:
        for event in self.events():
            if event.is_map_setup_event():
                self._pending_setup.append((event.list(), event.event_id))
        for common_event in self.common_events():
            if common_event.is_map_setup_event():
                self._pending_setup.append((common_event.list(), 0))
        if self._pending_setup:
            logger.debug("Map %d queued %d map setup event(s)", self.map_id, len(self._pending_setup))

    def setup_starting_event(self) -> bool:
        if self.need_refresh:
            self.refresh()
        if self._pending_setup:
            command_list, event_id = self._pending_setup.pop(0)
            self.interpreter.setup(command_list, event_id)
            return True
        common_event_id = self.session.temp.retrieve_common_event()
        if common_event_id:
            common_event = self.session.database.get_common_event(common_event_id)
            if common_event:
                self.interpreter.setup(common_event.get("list") or [], 0)
                return True
        for event in self.events():
            if event.starting:
                event.clear_starting_flag()
                self.interpreter.setup(event.list(), event.event_id)
                return True
        for event in self.events():
            if event.is_trigger_in(TriggerKind.AUTORUN) and event.list():
                self.interpreter.setup(event.list(), event.event_id)
                return True
        for common_event in self.common_events():
            if common_event.is_autorun():
                self.interpreter.setup(common_event.list(), 0)
                return True
        return False

    def update_interpreter(self) -> None:
        for _ in range(100):
            self.interpreter.update()
            if self.interpreter.is_running():
                return
            if not self.setup_starting_event():
                return

    def update(self) -> None:
        if self.need_refresh:
            self.refresh()
        self.update_interpreter()
        for event in self.events():
            event.update()
