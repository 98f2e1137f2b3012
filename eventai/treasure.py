"""Treasure commands: give loot, remember it, and show it with text codes."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from .errors import NoSuchItemError

logger = logging.getLogger(__name__)

_NAME_CODE = re.compile(r"<treasure[ _\-]?name>", re.IGNORECASE)
_ICON_CODE = re.compile(r"<treasure[ _\-]?icon>", re.IGNORECASE)
_AMOUNT_CODE = re.compile(r"<treasure[ _\-]?(?:amount|quantity)>", re.IGNORECASE)


@dataclass
class TreasureInfo:
    type: str
    name: str
    amount: int
    success: bool
    id: int = 0
    data: dict[str, Any] | None = None
    icon_index: int = 0


def _to_int(value, what: str) -> int:
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError):
        logger.warning("Treasure %s %r is not a number; using 0", what, value)
        return 0


def give_treasure_item(session, item_type: str, item_id, amount=1) -> TreasureInfo:
    """Give an item, weapon or armor unless the party already holds the maximum."""
    item_type = (item_type or "item").lower()
    if item_type not in ("item", "weapon", "armor"):
        logger.warning("Unknown treasure type %r; treating it as an item", item_type)
        item_type = "item"
    item_id = _to_int(item_id, "id")
    amount = _to_int(amount, "amount")
    data = session.database.item_data(item_type, item_id)
    if data is None:
        logger.warning("Treasure %s #%d does not exist in the database", item_type, item_id)
    given = data is not None and not session.party.has_max_items(data)
    if given:
        session.party.gain_item(data, amount)

    treasure = TreasureInfo(
        type=item_type,
        name=str((data or {}).get("name", "")),
        amount=amount,
        success=given,
        id=item_id,
        data=data,
        icon_index=int((data or {}).get("iconIndex", 0) or 0),
    )
    session.temp.last_treasure = treasure
    run_treasure_display_common_event(session)
    return treasure


def give_treasure_gold(session, amount) -> TreasureInfo:
    amount = _to_int(amount, "amount")
    party = session.party
    given = party.gold < party.max_gold()
    if given:
        party.gain_gold(amount)
    treasure = TreasureInfo(
        type="gold",
        name=session.database.currency_unit,
        amount=amount,
        success=given,
    )
    session.temp.last_treasure = treasure
    run_treasure_display_common_event(session)
    return treasure


def give_treasure_by_name(session, name: str, amount=1) -> TreasureInfo:
    found = session.database.find_item_by_name(name)
    if found is None:
        raise NoSuchItemError(f"No item, weapon or armor is named {name!r}")
    kind, data = found
    return give_treasure_item(session, kind, data.get("id", 0), amount)


def run_treasure_display_common_event(session) -> None:
    """Show the treasure inline if an event is running, otherwise queue it."""
    common_event_id = session.config.treasure_display_common_event
    if not common_event_id:
        return
    interpreter = session.active_interpreter()
    if interpreter is not None and interpreter.is_running():
        interpreter.command_common_event([common_event_id])
    else:
        session.temp.reserve_common_event(common_event_id)


def convert_treasure_text_codes(text: str, treasure: TreasureInfo | None) -> str:
    if treasure is None:
        return text
    text = _NAME_CODE.sub(lambda m: treasure.name, text)
    icon = f"\\I[{treasure.icon_index}]" if treasure.icon_index else ""
    text = _ICON_CODE.sub(lambda m: icon, text)
    text = _AMOUNT_CODE.sub(lambda m: str(treasure.amount), text)
    return text
