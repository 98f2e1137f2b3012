"""Coordinate helpers: distances, facing offsets and location specs."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

DIRECTION_DOWN = 2
DIRECTION_LEFT = 4
DIRECTION_RIGHT = 6
DIRECTION_UP = 8

_OFFSETS = {
    DIRECTION_DOWN: (0, 1),
    DIRECTION_LEFT: (-1, 0),
    DIRECTION_RIGHT: (1, 0),
    DIRECTION_UP: (0, -1),
}

# Right hand side of a character facing the key direction.
_RIGHT_OF = {
    DIRECTION_DOWN: DIRECTION_LEFT,
    DIRECTION_LEFT: DIRECTION_UP,
    DIRECTION_UP: DIRECTION_RIGHT,
    DIRECTION_RIGHT: DIRECTION_DOWN,
}

RELATIVITY_ABSOLUTE = "absolute"
RELATIVITY_EVENT = "event"
RELATIVITY_PLAYER = "player"

_RELATIVITY_ALIASES = {
    "absolute": RELATIVITY_ABSOLUTE,
    "abs": RELATIVITY_ABSOLUTE,
    "map": RELATIVITY_ABSOLUTE,
    "event": RELATIVITY_EVENT,
    "this event": RELATIVITY_EVENT,
    "relative to event": RELATIVITY_EVENT,
    "relative_to_event": RELATIVITY_EVENT,
    "player": RELATIVITY_PLAYER,
    "relative to player": RELATIVITY_PLAYER,
    "relative_to_player": RELATIVITY_PLAYER,
}


def box_distance(x1: int, y1: int, x2: int, y2: int) -> int:
    """Chebyshev distance: the side length of the smallest box around both points."""
    return max(abs(x1 - x2), abs(y1 - y2))


def manhattan_distance(x1: int, y1: int, x2: int, y2: int) -> int:
    return abs(x1 - x2) + abs(y1 - y2)


def direction_offset(direction: int) -> tuple[int, int]:
    return _OFFSETS.get(direction, (0, 0))


def reverse_direction(direction: int) -> int:
    return 10 - direction if direction in _OFFSETS else direction


def right_of(direction: int) -> int:
    return _RIGHT_OF.get(direction, direction)


def shift_point(x: int, y: int, direction: int, forward: int = 0, rightward: int = 0) -> tuple[int, int]:
    fx, fy = direction_offset(direction)
    rx, ry = direction_offset(right_of(direction))
    return x + fx * forward + rx * rightward, y + fy * forward + ry * rightward


def direction_toward(from_x: int, from_y: int, to_x: int, to_y: int) -> int:
    """Facing that best closes the gap between two points (0 when they coincide)."""
    dx = to_x - from_x
    dy = to_y - from_y
    if dx == 0 and dy == 0:
        return 0
    if abs(dx) > abs(dy):
        return DIRECTION_RIGHT if dx > 0 else DIRECTION_LEFT
    return DIRECTION_DOWN if dy > 0 else DIRECTION_UP


@dataclass(frozen=True)
class LocationSpec:
    x: int = 0
    y: int = 0
    relativity: str = RELATIVITY_ABSOLUTE
    forward: int = 0
    rightward: int = 0


def _int_field(raw: dict[str, Any], *names: str, default: int = 0) -> int:
    for name in names:
        if name in raw and raw[name] not in (None, ""):
            return int(float(raw[name]))
    return default


def parse_location(payload: Any) -> LocationSpec | None:
    """Build a LocationSpec from an editor struct (dict or JSON text).

    Unrecognized keys are ignored. A payload that cannot be read at all yields
    None so callers behave as if no location had been given.
    """
    if payload is None or payload == "":
        return None
    raw = payload
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring malformed location filter: %r", payload)
            return None
    if not isinstance(raw, dict):
        logger.warning("Ignoring location filter of unexpected type: %r", payload)
        return None
    lowered = {str(k).strip().lower(): v for k, v in raw.items()}

    relativity_text = str(lowered.get("relativity", lowered.get("relative_to", "")) or "").strip().lower()
    relativity = _RELATIVITY_ALIASES.get(relativity_text or "absolute")
    if relativity is None:
        logger.warning("Unknown location relativity %r; treating as absolute", relativity_text)
        relativity = RELATIVITY_ABSOLUTE
    try:
        return LocationSpec(
            x=_int_field(lowered, "x"),
            y=_int_field(lowered, "y"),
            relativity=relativity,
            forward=_int_field(lowered, "forward", "shift_forward"),
            rightward=_int_field(lowered, "rightward", "right", "shift_right"),
        )
    except (TypeError, ValueError):
        logger.warning("Ignoring location filter with non-numeric fields: %r", payload)
        return None


def resolve_location(spec: LocationSpec, event=None, player=None) -> tuple[int, int] | None:
    """Turn a LocationSpec into map coordinates.

    Relative modes offset from the reference character and then shift along its
    facing. Returns None when the reference character is missing.
    """
    if spec.relativity == RELATIVITY_ABSOLUTE:
        return spec.x, spec.y
    ref = event if spec.relativity == RELATIVITY_EVENT else player
    if ref is None:
        logger.warning("Location relative to %s has no reference character", spec.relativity)
        return None
    x = ref.x + spec.x
    y = ref.y + spec.y
    return shift_point(x, y, ref.direction, spec.forward, spec.rightward)
