"""Data loading scoped to one game's MV/MZ JSON data directory."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .errors import GameDataInvalidError

_SENTINEL = object()


def discover_data_dir(game_root: str | Path) -> Path:
    """Locate the data folder of a game, preferring the MV ``www/data`` layout."""
    root = Path(game_root).expanduser().resolve()
    if (root / "MapInfos.json").exists():
        return root
    candidates = [
        root / "www" / "data",
        root / "data",
    ]
    for data_dir in candidates:
        if (data_dir / "MapInfos.json").exists():
            return data_dir.resolve()
    raise GameDataInvalidError(f"No MapInfos.json under {root} (tried www/data and data)")


class DataLoader:
    """Loads and caches game data files by name."""

    def __init__(self, data_dir: str | Path):
        self.data_dir = Path(data_dir).resolve()
        self._cache: dict[str, Any] = {}

    def file_path(self, filename: str) -> Path:
        return self.data_dir / filename

    def load_json(self, filename: str) -> Any:
        cache_key = filename.lower()
        if cache_key in self._cache:
            value = self._cache[cache_key]
            return None if value is _SENTINEL else value

        value = self._read_json(filename)
        self._cache[cache_key] = _SENTINEL if value is None else value
        return value

    def load_map(self, map_id: int) -> dict[str, Any] | None:
        data = self.load_json(f"Map{int(map_id):03d}.json")
        return data if isinstance(data, dict) else None

    def map_ids(self) -> list[int]:
        ids = []
        for path in sorted(self.data_dir.glob("Map[0-9][0-9][0-9].json")):
            ids.append(int(path.stem[3:]))
        return ids

    def _read_json(self, filename: str) -> Any:
        filepath = self.file_path(filename)
        try:
            with filepath.open("r", encoding="utf-8") as f:
                return json.load(f)
        except (FileNotFoundError, json.JSONDecodeError, UnicodeDecodeError):
            return None
