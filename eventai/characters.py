"""Map characters: events, the player and followers."""

from __future__ import annotations

import logging

from .constants import (
    MOVE_TYPE_APPROACH,
    MOVE_TYPE_CUSTOM,
    MOVE_TYPE_FIXED,
    MOVE_TYPE_RANDOM,
    ROUTE_END,
    ROUTE_MOVE_AWAY,
    ROUTE_MOVE_DOWN,
    ROUTE_MOVE_FORWARD,
    ROUTE_MOVE_LEFT,
    ROUTE_MOVE_RANDOM,
    ROUTE_MOVE_RIGHT,
    ROUTE_MOVE_TOWARD,
    ROUTE_MOVE_UP,
    ROUTE_PLAY_SE,
    ROUTE_SCRIPT,
    ROUTE_TURN_DOWN,
    ROUTE_TURN_LEFT,
    ROUTE_TURN_RIGHT,
    ROUTE_TURN_UP,
    ROUTE_WAIT,
)
from .geometry import direction_offset, direction_toward, reverse_direction
from .move_route import MovementRouteHost, RouteProgram, execute_instruction
from .triggers import TriggerKind, TriggerOwner

logger = logging.getLogger(__name__)

_MOVE_CODES = {
    ROUTE_MOVE_DOWN: 2,
    ROUTE_MOVE_LEFT: 4,
    ROUTE_MOVE_RIGHT: 6,
    ROUTE_MOVE_UP: 8,
}
_TURN_CODES = {
    ROUTE_TURN_DOWN: 2,
    ROUTE_TURN_LEFT: 4,
    ROUTE_TURN_RIGHT: 6,
    ROUTE_TURN_UP: 8,
}

PRIORITY_BELOW = 0
PRIORITY_SAME = 1
PRIORITY_ABOVE = 2


class GameCharacter(MovementRouteHost):
    """Position, facing and move route processing shared by all characters."""

    entity_id = 0

    def __init__(self, session):
        self.session = session
        self.x = 0
        self.y = 0
        self.direction = 2
        self.through = False
        self.priority_type = PRIORITY_SAME
        self.character_name = ""
        self.character_index = 0
        self.tile_id = 0
        self.balloon_id = 0
        self.wait_count = 0
        self.move_succeeded = True
        self.move_route_forcing = False
        self._moved = False
        self._route_program = RouteProgram([])
        self._route: dict | None = None
        self._original_route: dict | None = None
        self._original_route_index = 0
        self.move_route_index = 0
        self.branch_taken = [True]
        self.last_se_name: str | None = None
        self.last_balloon_id: int | None = None

    @property
    def map_id(self) -> int:
        game_map = self.session.game_map
        return game_map.map_id if game_map is not None else 0

    def pos(self, x: int, y: int) -> bool:
        return self.x == x and self.y == y

    def locate(self, x: int, y: int) -> None:
        self.x = x
        self.y = y

    def set_direction(self, direction: int) -> None:
        if direction:
            self.direction = direction

    def set_image(self, name: str, index: int) -> None:
        self.tile_id = 0
        self.character_name = name
        self.character_index = index

    def set_tile_image(self, tile_id: int) -> None:
        self.tile_id = tile_id
        self.character_name = ""
        self.character_index = 0

    def is_normal_priority(self) -> bool:
        return self.priority_type == PRIORITY_SAME

    # -- movement ---------------------------------------------------------

    def can_pass(self, x: int, y: int, direction: int) -> bool:
        dx, dy = direction_offset(direction)
        x2, y2 = x + dx, y + dy
        game_map = self.session.game_map
        if not game_map.is_valid(x2, y2):
            return False
        if self.through:
            return True
        if not game_map.is_passable(x2, y2):
            return False
        return not self.is_collided_with_characters(x2, y2)

    def is_collided_with_characters(self, x: int, y: int) -> bool:
        for event in self.session.game_map.events_xy(x, y):
            if event is not self and not event.through and event.is_normal_priority():
                return True
        return False

    def move_straight(self, direction: int) -> bool:
        self.move_succeeded = self.can_pass(self.x, self.y, direction)
        self.set_direction(direction)
        if self.move_succeeded:
            dx, dy = direction_offset(direction)
            self.x += dx
            self.y += dy
            self._moved = True
            self.on_moved()
        else:
            dx, dy = direction_offset(direction)
            self.check_event_trigger_touch(self.x + dx, self.y + dy)
        return self.move_succeeded

    def on_moved(self) -> None:
        pass

    def check_event_trigger_touch(self, x: int, y: int) -> None:
        pass

    def move_random(self) -> bool:
        direction = 2 + self.session.rng.randrange(4) * 2
        if self.can_pass(self.x, self.y, direction):
            return self.move_straight(direction)
        self.move_succeeded = False
        return False

    def move_toward_character(self, character) -> bool:
        direction = direction_toward(self.x, self.y, character.x, character.y)
        if not direction:
            return False
        return self.move_straight(direction)

    def move_away_from_character(self, character) -> bool:
        direction = direction_toward(self.x, self.y, character.x, character.y)
        if not direction:
            return False
        return self.move_straight(reverse_direction(direction))

    def move_forward(self) -> bool:
        return self.move_straight(self.direction)

    def consume_moved(self) -> bool:
        moved = self._moved
        self._moved = False
        return moved

    # -- move routes ------------------------------------------------------

    def set_move_route(self, route: dict | None) -> None:
        self._route = route
        self._route_program = RouteProgram.compile(route)
        self.move_route_index = 0
        self.move_route_forcing = False
        self.init_move_state()

    def force_move_route(self, route: dict) -> None:
        if self._original_route is None:
            self._original_route = self._route
            self._original_route_index = self.move_route_index
        self._route = route
        self._route_program = RouteProgram.compile(route)
        self.move_route_index = 0
        self.move_route_forcing = True
        self.wait_count = 0
        self.init_move_state()

    def restore_move_route(self) -> None:
        self._route = self._original_route
        self._route_program = RouteProgram.compile(self._route)
        self.move_route_index = self._original_route_index
        self._original_route = None
        self.move_route_forcing = False
        self.init_move_state()

    def init_move_state(self) -> None:
        self.reset_route_branches()

    def play_route_se(self, name: str, volume: int, pitch: int) -> None:
        self.session.audio.play_se({"name": name, "volume": volume, "pitch": pitch, "pan": 0})

    def request_balloon(self, balloon_id: int) -> None:
        self.balloon_id = balloon_id
        self.session.temp.request_balloon(self, balloon_id)

    def _route_finished(self) -> bool:
        route = self._route or {}
        if route.get("repeat"):
            self.move_route_index = 0
            self.reset_route_branches()
            return False
        if self.move_route_forcing:
            self.restore_move_route()
        return True

    def update_routine_move(self) -> None:
        """Advance the move route by one frame's worth of work."""
        if self.wait_count > 0:
            self.wait_count -= 1
            return
        program = self._route_program
        commands = program.commands
        # Instructions that take no frame may chain; bound them so a route made
        # only of markers cannot spin forever.
        budget = len(commands) + 1
        while budget > 0:
            budget -= 1
            if self.move_route_index >= len(commands):
                if self._route_finished():
                    return
                continue
            index = self.move_route_index
            cmd = commands[index]
            if cmd.get("code") == ROUTE_SCRIPT and program.instruction(index) is not None:
                self.move_route_index = execute_instruction(self, program, index)
                continue
            if cmd.get("code") == ROUTE_END:
                self.move_route_index = len(commands)
                if self._route_finished():
                    return
                continue
            self.process_move_command(cmd)
            if self.move_succeeded or (self._route or {}).get("skippable"):
                self.move_route_index += 1
            return

    def process_move_command(self, cmd: dict) -> None:
        code = cmd.get("code")
        params = cmd.get("parameters") or []
        self.move_succeeded = True
        if code in _MOVE_CODES:
            self.move_straight(_MOVE_CODES[code])
        elif code == ROUTE_MOVE_RANDOM:
            self.move_random()
        elif code == ROUTE_MOVE_TOWARD:
            self.move_toward_player()
        elif code == ROUTE_MOVE_AWAY:
            self.move_away_from_player()
        elif code == ROUTE_MOVE_FORWARD:
            self.move_forward()
        elif code == ROUTE_WAIT:
            self.wait_count = max(0, int(params[0] if params else 0) - 1)
        elif code in _TURN_CODES:
            self.set_direction(_TURN_CODES[code])
        elif code == ROUTE_PLAY_SE:
            if params:
                self.session.audio.play_se(params[0])
        elif code == ROUTE_SCRIPT:
            logger.debug("Move route script %r is not handled here", params[0] if params else "")

    def _ignores_player(self) -> bool:
        return False

    def move_toward_player(self) -> bool:
        if self._ignores_player():
            return self.move_random()
        return self.move_toward_character(self.session.player)

    def move_away_from_player(self) -> bool:
        if self._ignores_player():
            return self.move_random()
        return self.move_away_from_character(self.session.player)


class GameEvent(GameCharacter, TriggerOwner):
    """An event placed on the current map."""

    def __init__(self, session, map_id: int, data: dict):
        super().__init__(session)
        self._map_id = map_id
        self.data = data
        self.event_id = int(data.get("id", 0))
        self.name = str(data.get("name", "") or "")
        self.note = str(data.get("note", "") or "")
        self.pages = [p for p in (data.get("pages") or []) if isinstance(p, dict)]
        self.page_index = -2
        self.page: dict | None = None
        self.erased = False
        self.starting = False
        self.move_type = 0
        self.move_frequency = 3
        self._stop_count = 0
        x, y = session.event_origins.origin_for(map_id, self.event_id, (data.get("x", 0), data.get("y", 0)))
        self.locate(int(x), int(y))
        self.refresh()

    @property
    def entity_id(self) -> int:
        return self.event_id

    @property
    def map_id(self) -> int:
        return self._map_id

    def list(self) -> list:
        return (self.page or {}).get("list") or []

    # -- pages ------------------------------------------------------------

    def meets_conditions(self, page: dict) -> bool:
        """Page activation check; self-scoped ids are read as this event's own."""
        c = page.get("conditions") or {}
        session = self.session
        if c.get("switch1Valid"):
            if not session.switches.value_for(int(c.get("switch1Id", 0)), self._map_id, self.event_id):
                return False
        if c.get("switch2Valid"):
            if not session.switches.value_for(int(c.get("switch2Id", 0)), self._map_id, self.event_id):
                return False
        if c.get("variableValid"):
            value = session.variables.value_for(int(c.get("variableId", 0)), self._map_id, self.event_id)
            try:
                if float(value) < float(c.get("variableValue", 0)):
                    return False
            except (TypeError, ValueError):
                return False
        if c.get("selfSwitchValid"):
            key = (self._map_id, self.event_id, c.get("selfSwitchCh", "A"))
            if not session.self_switches.value(key):
                return False
        if c.get("itemValid"):
            item = session.database.item_data("item", int(c.get("itemId", 0)))
            if not session.party.num_items(item):
                return False
        if c.get("actorValid"):
            if int(c.get("actorId", 0)) not in session.party.members:
                return False
        return True

    def find_proper_page_index(self) -> int:
        for index in range(len(self.pages) - 1, -1, -1):
            if self.meets_conditions(self.pages[index]):
                return index
        return -1

    def refresh(self) -> None:
        new_index = -1 if self.erased else self.find_proper_page_index()
        if new_index != self.page_index:
            self.page_index = new_index
            self.setup_page()

    def setup_page(self) -> None:
        if self.page_index >= 0:
            self.page = self.pages[self.page_index]
            self.setup_page_settings()
        else:
            self.page = None
            self._trigger = None
            self._region_id = None
            self.set_image("", 0)
            self.set_move_route(None)
            self.through = True
        self.starting = False

    def setup_page_settings(self) -> None:
        page = self.page or {}
        image = page.get("image") or {}
        self.tile_id = int(image.get("tileId", 0) or 0)
        self.character_name = str(image.get("characterName", "") or "")
        self.character_index = int(image.get("characterIndex", 0) or 0)
        if image.get("direction"):
            self.direction = int(image["direction"])
        self.move_type = int(page.get("moveType", 0) or 0)
        self.move_frequency = int(page.get("moveFrequency", 3) or 3)
        self.priority_type = int(page.get("priorityType", PRIORITY_SAME))
        self.through = bool(page.get("through", False))
        self.set_move_route(page.get("moveRoute") if self.move_type == MOVE_TYPE_CUSTOM else None)
        self.apply_trigger_descriptor(page.get("trigger", 0))

    # -- running ----------------------------------------------------------

    def start(self) -> None:
        if self.list():
            self.starting = True

    def clear_starting_flag(self) -> None:
        self.starting = False

    def erase(self) -> None:
        self.erased = True
        self.refresh()

    def is_trigger_in(self, *kinds) -> bool:
        return self._trigger in [int(k) for k in kinds]

    def _ignores_player(self) -> bool:
        return self.session.move_route_behavior == "ignore-player"

    def check_event_trigger_touch(self, x: int, y: int) -> None:
        """Event-initiated touch: this event tried to step onto ``(x, y)``."""
        game_map = self.session.game_map
        if game_map.is_event_running() or self._ignores_player():
            return
        party = self.session.party_characters()
        player = self.session.player
        if self.is_trigger_in(TriggerKind.EVENT_TOUCH) and player is not None and player.pos(x, y):
            self.start()
        elif self.is_party_touch_event() and any(c.pos(x, y) for c in party):
            self.start()

    def is_collided_with_characters(self, x: int, y: int) -> bool:
        if super().is_collided_with_characters(x, y):
            return True
        if not self.is_normal_priority():
            return False
        return any(c.pos(x, y) for c in self.session.party_characters())

    # -- frame update -----------------------------------------------------

    def update(self) -> None:
        if self.erased:
            return
        if self.move_route_forcing:
            self.update_routine_move()
            return
        if self.session.move_route_behavior == "freeze":
            return
        self.update_self_movement()

    def _stop_threshold(self) -> int:
        return 1 << max(0, 5 - self.move_frequency)

    def update_self_movement(self) -> None:
        if self.move_type == MOVE_TYPE_FIXED:
            return
        self._stop_count += 1
        if self._stop_count < self._stop_threshold():
            return
        self._stop_count = 0
        if self.move_type == MOVE_TYPE_RANDOM:
            self.move_random()
        elif self.move_type == MOVE_TYPE_APPROACH:
            self.move_toward_player()
        elif self.move_type == MOVE_TYPE_CUSTOM:
            self.update_routine_move()


class GameFollower(GameCharacter):
    def __init__(self, session, member_index: int):
        super().__init__(session)
        self.member_index = member_index
        self.through = True

    def is_visible(self) -> bool:
        members = self.session.party.members
        return self.session.followers_visible and self.member_index < len(members)


class GamePlayer(GameCharacter):
    """The party leader. Tracks region changes for region entry triggers."""

    def __init__(self, session):
        super().__init__(session)
        self.followers: list[GameFollower] = []
        self._last_region_id = 0

    def refresh_followers(self) -> None:
        count = max(0, len(self.session.party.members) - 1)
        self.followers = [GameFollower(self.session, i + 1) for i in range(count)]
        for follower in self.followers:
            follower.locate(self.x, self.y)
            follower.set_direction(self.direction)

    def visible_followers(self) -> list[GameFollower]:
        return [f for f in self.followers if f.is_visible()]

    def region_id(self) -> int:
        return self.session.game_map.region_id(self.x, self.y)

    def perform_transfer(self, map_id: int, x: int, y: int, direction: int = 0) -> None:
        """Move to a map position without counting the arrival as a region entry."""
        if self.session.game_map.map_id != map_id:
            self.session.setup_map(map_id)
        self.locate(x, y)
        self.set_direction(direction)
        for follower in self.followers:
            follower.locate(x, y)
            follower.set_direction(self.direction)
        self._last_region_id = self.region_id()

    def on_moved(self) -> None:
        # Each follower steps into the tile the character ahead of it left.
        leader_x, leader_y = self.x, self.y
        dx, dy = direction_offset(self.direction)
        trail_x, trail_y = leader_x - dx, leader_y - dy
        for follower in self.followers:
            prev_x, prev_y = follower.x, follower.y
            if (prev_x, prev_y) != (trail_x, trail_y):
                follower.set_direction(direction_toward(prev_x, prev_y, trail_x, trail_y) or follower.direction)
                follower.locate(trail_x, trail_y)
                follower._moved = True
            trail_x, trail_y = prev_x, prev_y

    def check_event_trigger_touch(self, x: int, y: int) -> None:
        """Player-initiated touch: the player bumped into whatever is on ``(x, y)``."""
        game_map = self.session.game_map
        if game_map.is_event_running():
            return
        for event in game_map.events_xy(x, y):
            if event.is_normal_priority() and event.is_trigger_in(
                    TriggerKind.PLAYER_TOUCH, TriggerKind.EVENT_TOUCH, TriggerKind.PARTY_TOUCH):
                event.start()

    def check_event_trigger_here(self) -> None:
        game_map = self.session.game_map
        if game_map.is_event_running():
            return
        for event in game_map.events_xy(self.x, self.y):
            if not event.is_normal_priority() and event.is_trigger_in(
                    TriggerKind.PLAYER_TOUCH, TriggerKind.EVENT_TOUCH, TriggerKind.PARTY_TOUCH):
                event.start()

    def check_followers_touch(self) -> None:
        game_map = self.session.game_map
        if game_map.is_event_running():
            return
        for follower in self.visible_followers():
            if not follower.consume_moved():
                continue
            for event in game_map.events_xy(follower.x, follower.y):
                if event.is_party_touch_event():
                    event.start()

    def check_region_change(self) -> bool:
        current = self.region_id()
        changed = current != self._last_region_id
        self._last_region_id = current
        return changed

    def update(self) -> None:
        if self.move_route_forcing:
            self.update_routine_move()
        was_moving = self.consume_moved()
        self.update_nonmoving(was_moving)

    def update_nonmoving(self, was_moving: bool) -> None:
        if not was_moving:
            return
        game_map = self.session.game_map
        if game_map.is_event_running():
            return
        self.check_event_trigger_here()
        self.check_followers_touch()
        if self.check_region_change():
            game_map.start_region_entry_event(self._last_region_id)


class SpriteInfo:
    """Read/write view of a character's image, for the event currently running."""

    def __init__(self, character):
        self._character = character

    @property
    def name(self) -> str:
        return self._character.character_name if self._character else ""

    @name.setter
    def name(self, value: str) -> None:
        if self._character is None:
            logger.warning("No event is active; cannot set image name")
            return
        self._character.set_image(value, self._character.character_index)

    @property
    def index(self) -> int:
        return self._character.character_index if self._character else 0

    @index.setter
    def index(self, value: int) -> None:
        if self._character is None:
            logger.warning("No event is active; cannot set image index")
            return
        self._character.set_image(self._character.character_name, value)

    @property
    def tile_id(self) -> int:
        return self._character.tile_id if self._character else 0

    @tile_id.setter
    def tile_id(self, value: int) -> None:
        if self._character is None:
            logger.warning("No event is active; cannot set tile image")
            return
        self._character.set_tile_image(value)
