"""Hand-built game data shared by the test modules."""

from __future__ import annotations

import random

from eventai.config import PluginConfig
from eventai.constants import PLUGIN_NAME
from eventai.database import Database
from eventai.session import GameSession


class FakeLoader:
    def __init__(self, files=None, maps=None):
        self.files = dict(files or {})
        self.maps = dict(maps or {})

    def load_json(self, filename):
        return self.files.get(filename)

    def load_map(self, map_id):
        return self.maps.get(map_id)

    def map_ids(self):
        return sorted(self.maps)


def cmd(code, *params, indent=0):
    return {"code": code, "indent": indent, "parameters": list(params)}


def plugin(name, args=None, indent=0, plugin_name=PLUGIN_NAME):
    return cmd(357, plugin_name, name, "", dict(args or {}), indent=indent)


def route_script(text):
    return {"code": 45, "parameters": [text]}


def page(commands=(), trigger=0, conditions=None, **extra):
    data = {
        "conditions": dict(conditions or {}),
        "image": {"characterName": "", "characterIndex": 0, "direction": 2, "tileId": 0},
        "list": list(commands) + [cmd(0)],
        "moveType": 0,
        "moveFrequency": 3,
        "priorityType": 1,
        "through": False,
        "trigger": trigger,
    }
    data.update(extra)
    return data


def event(event_id, x, y, pages, name="", note=""):
    return {"id": event_id, "name": name or f"EV{event_id:03d}", "note": note, "x": x, "y": y, "pages": list(pages)}


def make_map(events=(), width=10, height=10, regions=None):
    """A blank map; ``regions`` maps ``(x, y)`` to a region id."""
    layer = width * height
    data = [0] * (layer * 6)
    for (x, y), region_id in (regions or {}).items():
        data[5 * layer + y * width + x] = region_id
    events_by_id = [None]
    for evt in events:
        while len(events_by_id) <= evt["id"]:
            events_by_id.append(None)
        events_by_id[evt["id"]] = evt
    return {"width": width, "height": height, "data": data, "events": events_by_id}


def common_event(ce_id, commands=(), trigger=0, switch_id=0, name=""):
    return {"id": ce_id, "name": name, "trigger": trigger, "switchId": switch_id,
            "list": list(commands) + [cmd(0)]}


def make_database(maps=None, common_events=(), items=(), weapons=(), armors=(),
                  switches=(), variables=(), map_names=None, prefix="s:"):
    files = {
        "Items.json": [None] + list(items),
        "Weapons.json": [None] + list(weapons),
        "Armors.json": [None] + list(armors),
        "System.json": {"switches": [""] + list(switches), "variables": [""] + list(variables),
                        "currencyUnit": "G"},
        "MapInfos.json": [None] + [{"id": mid, "name": name} for mid, name in (map_names or {}).items()],
        "CommonEvents.json": [None] + list(common_events),
    }
    loader = FakeLoader(files, maps)
    return Database(loader, prefix), loader


def make_session(maps, map_id=1, x=0, y=0, members=(1,), config=None, rng=None, **db_kwargs):
    database, loader = make_database(maps=maps, **db_kwargs)
    session = GameSession(database, loader, config or PluginConfig(), rng or random.Random(0))
    session.setup_new_game(map_id, x, y, list(members))
    return session


class FixedRandom(random.Random):
    """Returns queued values from ``random()``; falls back to 0.0."""

    def __init__(self, values=()):
        super().__init__(0)
        self.values = list(values)

    def random(self):
        return self.values.pop(0) if self.values else 0.0


def run_until_idle(session, frames=20):
    for _ in range(frames):
        session.update()
        if not session.game_map.is_event_running():
            return
