"""Self switches, self variables and self-scoped global switches/variables.

A self-scoped slot is addressed by a ``SelfScopeKey``: the map the owning
entity lives on, the entity id, and the property id (a self-switch letter or a
switch/variable id whose editor name carries the self-scope prefix). Reads and
writes of those ids on ``GameSwitches``/``GameVariables`` are routed to a keyed
store using whatever scope the session reports as current, so a linked event
redirects them without the caller knowing.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, NamedTuple

ScopeProvider = Callable[[], "tuple[int, int]"]


class SelfScopeKey(NamedTuple):
    map_id: int
    entity_id: int
    property_id: Any


class SelfScopeStore:
    """Keyed value store compared by key value, persisted as a list of pairs."""

    default: Any = None

    def __init__(self):
        self._data: dict[SelfScopeKey, Any] = {}

    def value(self, key) -> Any:
        return self._data.get(SelfScopeKey(*key), self.default)

    def set_value(self, key, value: Any) -> None:
        self._data[SelfScopeKey(*key)] = value

    def keys(self) -> list[SelfScopeKey]:
        return list(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def to_list(self) -> list[list[Any]]:
        return [[list(key), value] for key, value in self._data.items()]

    def load_list(self, rows: Iterable[Any] | None) -> None:
        self._data = {}
        for row in rows or []:
            if not isinstance(row, (list, tuple)) or len(row) != 2:
                continue
            key, value = row
            if isinstance(key, (list, tuple)) and len(key) == 3:
                self._data[SelfScopeKey(*key)] = value


class SelfSwitches(SelfScopeStore):
    default = False

    def value(self, key) -> bool:
        return bool(super().value(key))

    def set_value(self, key, value: Any) -> None:
        super().set_value(key, bool(value))


class SelfVariables(SelfScopeStore):
    default = 0


class _ScopedTable:
    """Flat id-indexed global table with a set of ids diverted to a keyed store."""

    default: Any = None

    def __init__(self, self_store: SelfScopeStore, scope: ScopeProvider, self_ids: Iterable[int] = ()):
        self._data: dict[int, Any] = {}
        self.self_store = self_store
        self.scope = scope
        self.self_ids = set(self_ids)

    def _key(self, item_id: int) -> SelfScopeKey:
        map_id, entity_id = self.scope()
        return SelfScopeKey(map_id, entity_id, item_id)

    def value(self, item_id: int) -> Any:
        if item_id in self.self_ids:
            return self.self_store.value(self._key(item_id))
        return self._data.get(item_id, self.default)

    def set_value(self, item_id: int, value: Any) -> None:
        if item_id <= 0:
            return
        if item_id in self.self_ids:
            self.self_store.set_value(self._key(item_id), value)
            return
        self._data[item_id] = value

    def value_for(self, item_id: int, map_id: int, entity_id: int) -> Any:
        """Read ``item_id`` as seen by a specific entity, ignoring the current scope."""
        if item_id in self.self_ids:
            return self.self_store.value(SelfScopeKey(map_id, entity_id, item_id))
        return self._data.get(item_id, self.default)

    def to_dict(self) -> dict[str, Any]:
        return {str(k): v for k, v in self._data.items()}

    def load_dict(self, data: dict[str, Any] | None) -> None:
        self._data = {}
        for k, v in (data or {}).items():
            try:
                self._data[int(k)] = v
            except (TypeError, ValueError):
                continue


class GameSwitches(_ScopedTable):
    default = False

    def value(self, item_id: int) -> bool:
        return bool(super().value(item_id))

    def set_value(self, item_id: int, value: Any) -> None:
        super().set_value(item_id, bool(value))


class GameVariables(_ScopedTable):
    default = 0
