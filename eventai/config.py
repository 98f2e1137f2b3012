"""Plugin parameters as configured in the editor's plugin manager."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .constants import DEFAULT_SELF_SCOPE_PREFIX, PLUGIN_NAME

logger = logging.getLogger(__name__)

MOVE_ROUTE_BEHAVIORS = ("normal", "freeze", "ignore-player")


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(str(value).strip() or default)
    except (TypeError, ValueError):
        return default


@dataclass
class PluginConfig:
    treasure_display_common_event: int = 0
    self_scope_prefix: str = DEFAULT_SELF_SCOPE_PREFIX
    move_route_behavior: str = "normal"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "PluginConfig":
        data = data or {}
        behavior = str(data.get("Default Move Route Behavior", "normal") or "normal").strip().lower()
        if behavior not in MOVE_ROUTE_BEHAVIORS:
            logger.warning("Unknown move route behavior %r; using normal", behavior)
            behavior = "normal"
        prefix = str(data.get("Self Scope Prefix", "") or "").strip() or DEFAULT_SELF_SCOPE_PREFIX
        return cls(
            treasure_display_common_event=_to_int(data.get("Treasure Display Common Event", 0)),
            self_scope_prefix=prefix,
            move_route_behavior=behavior,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "Treasure Display Common Event": str(self.treasure_display_common_event),
            "Self Scope Prefix": self.self_scope_prefix,
            "Default Move Route Behavior": self.move_route_behavior,
        }


def load_plugin_parameters(game_root: str | Path, plugin_name: str = PLUGIN_NAME) -> dict[str, Any]:
    """Read this plugin's parameters from ``js/plugins.js``.

    Returns an empty dict when the file is missing, unreadable or does not list
    the plugin.
    """
    root = Path(game_root).expanduser().resolve()
    for candidate in (root / "js" / "plugins.js", root / "www" / "js" / "plugins.js"):
        if candidate.exists():
            break
    else:
        return {}

    try:
        raw = candidate.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Cannot read %s: %s", candidate, exc)
        return {}

    start = raw.find("[")
    end = raw.rfind("]")
    if start < 0 or end < start:
        logger.warning("No plugin list found in %s", candidate)
        return {}
    try:
        plugins = json.loads(raw[start:end + 1])
    except json.JSONDecodeError as exc:
        logger.warning("Malformed plugin list in %s: %s", candidate, exc)
        return {}

    for entry in plugins:
        if isinstance(entry, dict) and entry.get("name") == plugin_name:
            params = entry.get("parameters")
            return dict(params) if isinstance(params, dict) else {}
    return {}
