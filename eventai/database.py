"""Database cache and helper lookups for MV/MZ JSON data."""

from __future__ import annotations

import re

from .constants import DEFAULT_SELF_SCOPE_PREFIX

ITEM_KINDS = ("item", "weapon", "armor")


def build_self_scope_ids(names, prefix: str = DEFAULT_SELF_SCOPE_PREFIX) -> set[int]:
    """Ids whose editor name starts with the self-scope prefix (case-insensitive)."""
    pattern = re.compile(r"^\s*" + re.escape(prefix), re.IGNORECASE)
    ids = set()
    if not isinstance(names, list):
        return ids
    for idx, name in enumerate(names):
        if idx == 0:
            continue
        if isinstance(name, str) and pattern.match(name):
            ids.add(idx)
    return ids


class Database:
    """Loads and caches the database tables the event layer consults."""

    def __init__(self, loader, self_scope_prefix: str = DEFAULT_SELF_SCOPE_PREFIX):
        self.loader = loader

        self.raw_items = loader.load_json("Items.json") or []
        self.raw_weapons = loader.load_json("Weapons.json") or []
        self.raw_armors = loader.load_json("Armors.json") or []

        system_data = loader.load_json("System.json")
        if isinstance(system_data, dict):
            self.switch_names = system_data.get("switches", []) or []
            self.variable_names = system_data.get("variables", []) or []
            terms = system_data.get("terms") or {}
            self.currency_unit = system_data.get("currencyUnit") or terms.get("currencyUnit") or "G"
        else:
            self.switch_names = []
            self.variable_names = []
            self.currency_unit = "G"

        self.self_switch_ids = build_self_scope_ids(self.switch_names, self_scope_prefix)
        self.self_variable_ids = build_self_scope_ids(self.variable_names, self_scope_prefix)

        self.map_infos = loader.load_json("MapInfos.json") or []
        self.common_events = loader.load_json("CommonEvents.json") or []

    def _table(self, kind: str):
        if kind == "weapon":
            return self.raw_weapons
        if kind == "armor":
            return self.raw_armors
        return self.raw_items

    def item_data(self, kind: str, item_id: int):
        table = self._table(kind)
        if not isinstance(table, list):
            return None
        for entry in table:
            if entry and isinstance(entry, dict) and entry.get("id") == item_id:
                return entry
        return None

    def find_item_by_name(self, name: str):
        """Return ``(kind, data)`` for the first item, weapon or armor called ``name``."""
        wanted = (name or "").strip()
        if not wanted:
            return None
        folded = wanted.casefold()
        loose_match = None
        for kind in ITEM_KINDS:
            for entry in self._table(kind):
                if not entry or not isinstance(entry, dict):
                    continue
                entry_name = str(entry.get("name", "")).strip()
                if entry_name == wanted:
                    return kind, entry
                if loose_match is None and entry_name.casefold() == folded:
                    loose_match = (kind, entry)
        return loose_match

    def get_map_name(self, map_id):
        if isinstance(self.map_infos, list):
            for info in self.map_infos:
                if info and isinstance(info, dict) and info.get("id") == map_id:
                    return info.get("name", f"Map#{map_id}")
        return f"Map#{map_id}"

    def map_id_by_name(self, name: str):
        wanted = (name or "").strip()
        if not wanted or not isinstance(self.map_infos, list):
            return None
        for info in self.map_infos:
            if info and isinstance(info, dict) and str(info.get("name", "")).strip() == wanted:
                return info.get("id")
        return None

    def get_common_event(self, ce_id):
        if isinstance(self.common_events, list):
            for ce in self.common_events:
                if ce and isinstance(ce, dict) and ce.get("id") == ce_id:
                    return ce
        return None

    def common_event_ids(self) -> list[int]:
        ids = []
        if isinstance(self.common_events, list):
            for ce in self.common_events:
                if ce and isinstance(ce, dict) and ce.get("id"):
                    ids.append(ce["id"])
        return ids
