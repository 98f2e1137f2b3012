"""Party inventory: the item and gold service treasure commands give through."""

from __future__ import annotations

from .constants import MAX_GOLD, MAX_ITEMS


def item_kind(data) -> str:
    if "wtypeId" in data:
        return "weapon"
    if "atypeId" in data:
        return "armor"
    return "item"


def _item_key(data) -> tuple[str, int] | None:
    if not data or not isinstance(data, dict):
        return None
    return item_kind(data), int(data.get("id", 0))


class Party:
    """Holds items, gold and the member list followers are drawn from."""

    def __init__(self, members: list[int] | None = None):
        self.members: list[int] = list(members or [])
        self.gold = 0
        self._items: dict[tuple[str, int], int] = {}

    def max_items(self, data) -> int:
        return MAX_ITEMS

    def max_gold(self) -> int:
        return MAX_GOLD

    def num_items(self, data) -> int:
        key = _item_key(data)
        return self._items.get(key, 0) if key else 0

    def has_max_items(self, data) -> bool:
        return self.num_items(data) >= self.max_items(data)

    def gain_item(self, data, amount: int) -> None:
        key = _item_key(data)
        if key is None:
            return
        count = max(0, min(self.num_items(data) + amount, self.max_items(data)))
        if count:
            self._items[key] = count
        else:
            self._items.pop(key, None)

    def gain_gold(self, amount: int) -> None:
        self.gold = max(0, min(self.gold + amount, self.max_gold()))

    def to_dict(self) -> dict:
        return {
            "members": list(self.members),
            "gold": self.gold,
            "items": [[kind, item_id, count] for (kind, item_id), count in self._items.items()],
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "Party":
        data = data or {}
        party = cls(data.get("members") or [])
        party.gold = int(data.get("gold", 0) or 0)
        for row in data.get("items") or []:
            if isinstance(row, list) and len(row) == 3:
                party._items[(str(row[0]), int(row[1]))] = int(row[2])
        return party
