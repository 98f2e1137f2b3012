"""Game session: every store and runtime object one running game owns."""

from __future__ import annotations

import logging
import random
from contextlib import contextmanager
from typing import Any

from .characters import GamePlayer, SpriteInfo
from .commands import PluginCommandRegistry, register_eventai_commands
from .config import MOVE_ROUTE_BEHAVIORS, PluginConfig, load_plugin_parameters
from .data_loader import DataLoader, discover_data_dir
from .database import Database
from .game_map import GameMap
from .origins import EventOrigins
from .party import Party
from .self_scope import GameSwitches, GameVariables, SelfSwitches, SelfVariables
from .treasure import TreasureInfo, convert_treasure_text_codes

logger = logging.getLogger(__name__)


class GameTemp:
    """Per-session scratch state that is never saved."""

    def __init__(self):
        self._reserved: list[int] = []
        self.last_treasure: TreasureInfo | None = None
        self.messages: list[str] = []
        self.balloon_requests: list[tuple[Any, int]] = []

    def reserve_common_event(self, common_event_id: int) -> None:
        self._reserved.append(int(common_event_id))

    def retrieve_common_event(self) -> int:
        return self._reserved.pop(0) if self._reserved else 0

    def request_balloon(self, character, balloon_id: int) -> None:
        self.balloon_requests.append((character, int(balloon_id)))


class AudioLog:
    """Records sound effect requests in play order."""

    def __init__(self):
        self.played: list[dict] = []

    def play_se(self, se: dict) -> None:
        if not se or not se.get("name"):
            return
        self.played.append(dict(se))
        logger.debug("SE %s (volume %s, pitch %s)", se.get("name"), se.get("volume"), se.get("pitch"))


class GameSession:
    def __init__(self, database, loader=None, config: PluginConfig | None = None, rng: random.Random | None = None):
        self.config = config or PluginConfig()
        self.database = database
        self.loader = loader if loader is not None else getattr(database, "loader", None)
        self.rng = rng or random.Random()
        self.commands = register_eventai_commands(PluginCommandRegistry())
        self._interpreters: list = []
        self._scopes: list[tuple[int, int]] = []
        self.temp = GameTemp()
        self.audio = AudioLog()
        self.followers_visible = True
        self.game_map: GameMap | None = None
        self._init_stores()
        self.game_map = GameMap(self)
        self.player = GamePlayer(self)

    def _init_stores(self) -> None:
        self.self_switches = SelfSwitches()
        self.self_variables = SelfVariables()
        self.switches = GameSwitches(self.self_switches, self.current_scope,
                                     getattr(self.database, "self_switch_ids", ()))
        self.variables = GameVariables(self.self_variables, self.current_scope,
                                       getattr(self.database, "self_variable_ids", ()))
        self.event_origins = EventOrigins()
        self.party = Party()
        self.move_route_behavior = self.config.move_route_behavior

    # -- scope ------------------------------------------------------------

    @contextmanager
    def running(self, interpreter):
        self._interpreters.append(interpreter)
        try:
            yield interpreter
        finally:
            self._interpreters.pop()

    @contextmanager
    def owner_scope(self, map_id: int, entity_id: int):
        """Read self-scoped switches and variables as ``entity_id`` would."""
        self._scopes.append((map_id, entity_id))
        try:
            yield
        finally:
            self._scopes.pop()

    def active_interpreter(self):
        return self._interpreters[-1] if self._interpreters else None

    def current_scope(self) -> tuple[int, int]:
        if self._scopes:
            return self._scopes[-1]
        interpreter = self.active_interpreter()
        if interpreter is not None:
            entity_id, map_id = interpreter.resolve()
            return map_id, entity_id
        map_id = self.game_map.map_id if self.game_map is not None else 0
        return map_id, 0

    # -- host services ----------------------------------------------------

    def show_text(self, text: str) -> None:
        self.temp.messages.append(convert_treasure_text_codes(text, self.temp.last_treasure))

    def party_characters(self) -> list:
        if self.player is None:
            return []
        return [self.player, *self.player.visible_followers()]

    @property
    def sprite(self) -> SpriteInfo:
        return SpriteInfo(self.game_map.active_event_character())

    @sprite.setter
    def sprite(self, value) -> None:
        """Replace the active event's image.

        Accepts a ``SpriteInfo``, a dict with ``name``/``index``, ``tileId`` or
        ``characterName``/``characterIndex``, or a falsy value to clear it.
        """
        character = self.game_map.active_event_character()
        if character is None:
            logger.warning("No active event; sprite not set")
            return
        if not value:
            character.set_image("", 0)
        elif isinstance(value, SpriteInfo):
            if value.tile_id:
                character.set_tile_image(value.tile_id)
            else:
                character.set_image(value.name, value.index)
        elif value.get("name"):
            character.set_image(value["name"], int(value.get("index", 0) or 0))
        elif value.get("tileId"):
            character.set_tile_image(int(value["tileId"]))
        elif value.get("characterName"):
            character.set_image(value["characterName"], int(value.get("characterIndex", 0) or 0))
        else:
            logger.warning("Sprite value %r has no name, tileId or characterName; no change", value)

    # -- lifecycle --------------------------------------------------------

    def setup_new_game(self, map_id: int, x: int = 0, y: int = 0, members: list[int] | None = None) -> None:
        self._init_stores()
        self.party.members = list(members or [1])
        self.temp = GameTemp()
        self.player.refresh_followers()
        self.setup_map(map_id)
        self.player.perform_transfer(map_id, x, y)

    def setup_map(self, map_id: int) -> None:
        self.game_map.setup(map_id)

    def update(self) -> None:
        self.game_map.update()
        self.player.update()

    def make_save_contents(self) -> dict[str, Any]:
        return {
            "switches": self.switches.to_dict(),
            "variables": self.variables.to_dict(),
            "selfSwitches": self.self_switches.to_list(),
            "selfVariables": self.self_variables.to_list(),
            "eventOrigins": self.event_origins.to_dict(),
            "party": self.party.to_dict(),
            "moveRouteBehavior": self.move_route_behavior,
            "map": {
                "mapId": self.game_map.map_id,
                "x": self.player.x,
                "y": self.player.y,
                "direction": self.player.direction,
            },
        }

    def extract_save_contents(self, contents: dict[str, Any] | None) -> None:
        """Restore a save. Missing blocks start empty so older saves still load."""
        contents = contents or {}
        self.switches.load_dict(contents.get("switches"))
        self.variables.load_dict(contents.get("variables"))
        self.self_switches.load_list(contents.get("selfSwitches"))
        self.self_variables.load_list(contents.get("selfVariables"))
        self.event_origins.load_dict(contents.get("eventOrigins"))
        self.party = Party.from_dict(contents.get("party"))
        behavior = contents.get("moveRouteBehavior", self.config.move_route_behavior)
        if behavior not in MOVE_ROUTE_BEHAVIORS:
            logger.warning("Saved move route behavior %r is unknown; using normal", behavior)
            behavior = "normal"
        self.move_route_behavior = behavior
        self.temp = GameTemp()
        self.player.refresh_followers()
        position = contents.get("map")
        if position and position.get("mapId"):
            # Reload so events spawn at their saved origins.
            self.setup_map(int(position["mapId"]))
            self.player.perform_transfer(int(position["mapId"]), int(position.get("x", 0)),
                                         int(position.get("y", 0)), int(position.get("direction", 2)))


def open_game(game_root, rng: random.Random | None = None) -> GameSession:
    """Build a session for a project folder (or its data folder) on disk."""
    data_dir = discover_data_dir(game_root)
    config = PluginConfig.from_dict(load_plugin_parameters(data_dir.parent))
    loader = DataLoader(data_dir)
    database = Database(loader, config.self_scope_prefix)
    logger.info("Loaded game data from %s", data_dir)
    return GameSession(database, loader, config, rng)
