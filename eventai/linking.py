"""Linked events: letting a running event act on another event's self data."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .geometry import box_distance, parse_location, resolve_location

logger = logging.getLogger(__name__)


@dataclass
class Candidate:
    id: int
    name: str
    note: str
    x: int
    y: int


def parse_selector(raw) -> int | str | None:
    """Blank selects anything, digits select an id, other text selects a name."""
    if raw is None:
        return None
    if isinstance(raw, int):
        return raw if raw > 0 else None
    text = str(raw).strip()
    if not text:
        return None
    if text.isdigit():
        value = int(text)
        return value if value > 0 else None
    return text


def parse_max_distance(raw) -> int | None:
    if raw is None or str(raw).strip() == "":
        return None
    try:
        value = int(float(str(raw).strip()))
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric max distance %r", raw)
        return None
    return value if value >= 0 else None


def filter_candidates(candidates, selector, note, ref, max_distance) -> list[Candidate]:
    pool = list(candidates)
    if isinstance(selector, int):
        pool = [c for c in pool if c.id == selector]
    elif isinstance(selector, str):
        pool = [c for c in pool if c.name == selector]
    if note:
        pool = [c for c in pool if c.note == note]
    if ref is not None and max_distance is not None:
        rx, ry = ref
        pool = [c for c in pool if box_distance(c.x, c.y, rx, ry) <= max_distance]
    return pool


def choose_nearest(pool, ref) -> Candidate | None:
    if not pool:
        return None
    if ref is None:
        return min(pool, key=lambda c: c.id)
    rx, ry = ref
    return min(pool, key=lambda c: (box_distance(c.x, c.y, rx, ry), c.id))


class LinkedEventResolver:
    """Holds an interpreter's link target and answers whose self data to use."""

    def __init__(self, interpreter):
        self.interpreter = interpreter
        self.linked_event_id = 0
        self.linked_map_id = 0

    @property
    def session(self):
        return self.interpreter.session

    @property
    def is_linked(self) -> bool:
        return self.linked_event_id > 0 and self.linked_map_id > 0

    def _current_map_id(self) -> int:
        game_map = self.session.game_map
        return game_map.map_id if game_map is not None else 0

    def _resolve_map_id(self, map_selector) -> int | None:
        selector = parse_selector(map_selector)
        if selector is None:
            return self._current_map_id()
        if isinstance(selector, int):
            return selector
        map_id = self.session.database.map_id_by_name(selector)
        if map_id is None:
            logger.warning("Link Event: no map named %r", selector)
        return map_id

    def _reference_point(self, spec) -> tuple[int, int] | None:
        player = self.session.player
        if spec is not None:
            return resolve_location(spec, self.interpreter.character(), player)
        if player is None:
            return None
        return player.x, player.y

    def _local_candidates(self) -> list[Candidate]:
        out = []
        for event in self.session.game_map.events():
            if event.erased:
                continue
            out.append(Candidate(event.event_id, event.name, event.note, event.x, event.y))
        return out

    def _remote_candidates(self, map_id: int) -> list[Candidate] | None:
        data = self.session.loader.load_map(map_id) if self.session.loader else None
        if data is None:
            logger.warning("Link Event: map %d could not be loaded", map_id)
            return None
        origins = self.session.event_origins
        out = []
        for raw in data.get("events") or []:
            if not raw or not isinstance(raw, dict):
                continue
            event_id = int(raw.get("id", 0))
            x, y = origins.origin_for(map_id, event_id, (raw.get("x", 0), raw.get("y", 0)))
            out.append(Candidate(event_id, str(raw.get("name", "")), str(raw.get("note", "")), x, y))
        return out

    def link(self, event_selector=None, map_selector=None, note_filter="", location_filter=None,
             max_distance=None) -> bool:
        """Point this interpreter's self operations at another event.

        Leaves the current link untouched and returns False when nothing matches.
        """
        map_id = self._resolve_map_id(map_selector)
        if map_id is None:
            return False
        selector = parse_selector(event_selector)
        note = str(note_filter or "")
        distance = parse_max_distance(max_distance)
        location = parse_location(location_filter)
        if location is not None and distance is None:
            distance = 0
        ref = self._reference_point(location)
        if location is not None and ref is None:
            logger.warning("Link Event: location filter has no reference point; link unchanged")
            return False

        if map_id == self._current_map_id():
            candidates = self._local_candidates()
        else:
            candidates = self._remote_candidates(map_id)
            if candidates is None:
                return False

        pool = filter_candidates(candidates, selector, note, ref, distance)
        chosen = choose_nearest(pool, ref)
        if chosen is None:
            logger.warning("Link Event: no event on map %d matches selector=%r note=%r", map_id, selector, note)
            return False
        self.linked_event_id = chosen.id
        self.linked_map_id = map_id
        logger.debug("Linked interpreter of event %d to event %d on map %d",
                     self.interpreter.event_id, chosen.id, map_id)
        return True

    def unlink(self) -> None:
        self.linked_event_id = 0
        self.linked_map_id = 0

    def is_local(self) -> bool:
        return self.is_linked and self.linked_map_id == self._current_map_id()

    def linked_event(self):
        if not self.is_local():
            return None
        return self.session.game_map.event(self.linked_event_id)

    def _is_valid(self) -> bool:
        if not self.is_linked:
            return False
        if not self.is_local():
            return True
        event = self.linked_event()
        return event is not None and not event.erased

    def resolve(self) -> tuple[int, int]:
        """Effective ``(entity_id, map_id)`` for self switches and variables."""
        if self._is_valid():
            return self.linked_event_id, self.linked_map_id
        return self.interpreter.event_id, self.interpreter.map_id
