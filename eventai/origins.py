"""Per-event spawn position overrides that persist in save data."""

from __future__ import annotations

import logging
from typing import Any

from .geometry import LocationSpec, resolve_location

logger = logging.getLogger(__name__)


def origin_key(map_id: int, event_id: int) -> str:
    return f"{int(map_id)} {int(event_id)}"


class EventOrigins:
    """Maps ``"mapId eventId"`` to the ``{"x", "y"}`` an event spawns at."""

    def __init__(self):
        self._data: dict[str, dict[str, int]] = {}

    def origin_for(self, map_id: int, event_id: int, default: tuple[int, int]) -> tuple[int, int]:
        entry = self._data.get(origin_key(map_id, event_id))
        if entry is None:
            return default
        return entry["x"], entry["y"]

    def set_origin(self, map_id: int, event_id: int, x: int, y: int) -> None:
        self._data[origin_key(map_id, event_id)] = {"x": int(x), "y": int(y)}

    def __len__(self) -> int:
        return len(self._data)

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {k: dict(v) for k, v in self._data.items()}

    def load_dict(self, data: dict[str, Any] | None) -> None:
        self._data = {}
        for key, value in (data or {}).items():
            if isinstance(value, dict) and "x" in value and "y" in value:
                self._data[str(key)] = {"x": int(value["x"]), "y": int(value["y"])}


def set_new_origin(interpreter, spec: LocationSpec) -> tuple[int, int] | None:
    """Record where the addressed event (linked or running) spawns from now on."""
    session = interpreter.session
    entity_id, map_id = interpreter.resolve()
    if entity_id <= 0:
        logger.warning("Set New Origin needs an event; none is running or linked")
        return None
    reference = None
    if map_id == session.game_map.map_id:
        reference = session.game_map.event(entity_id)
    if reference is None:
        reference = interpreter.character()
    point = resolve_location(spec, reference, session.player)
    if point is None:
        return None
    session.event_origins.set_origin(map_id, entity_id, *point)
    logger.debug("Event %d on map %d now spawns at %s", entity_id, map_id, point)
    return point
