"""Conditional branches and on-change effects inside move routes.

Move route script commands are compiled into a closed set of instructions
instead of being evaluated as code:

    rbIf(cond)      open a branch chain; enter it when ``cond`` holds
    rbElse(cond)    alternative; without a condition it is a plain else
    rbEnd()         close the chain
    setSe(name, volume, pitch) / unsetSe()
    setBln(id) / unsetBln() / showBln(id)

Conditions are a closed set as well: ``true``, ``false``, ``s[N]``, ``!s[N]``,
``self[A]``, ``!self[A]``, ``v[N] <op> K``, ``near(N)``, ``far(N)``,
``chance(P)`` and ``facing(D)``.

``RouteProgram.compile`` pairs the markers once per route, so a failed
condition jumps straight to the next same-depth marker. None of these
instructions consume a frame: after acting, route processing resumes at the
following command.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from .constants import ROUTE_SCRIPT
from .errors import InvalidCommandError
from .geometry import box_distance

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Conditions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Const:
    value: bool

    def evaluate(self, host, session) -> bool:
        return self.value


@dataclass(frozen=True)
class SwitchIs:
    switch_id: int
    expected: bool = True

    def evaluate(self, host, session) -> bool:
        with session.owner_scope(host.map_id, host.entity_id):
            return session.switches.value(self.switch_id) == self.expected


@dataclass(frozen=True)
class SelfSwitchIs:
    channel: str
    expected: bool = True

    def evaluate(self, host, session) -> bool:
        key = (host.map_id, host.entity_id, self.channel)
        return session.self_switches.value(key) == self.expected


_COMPARATORS = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    ">=": lambda a, b: a >= b,
    "<=": lambda a, b: a <= b,
    ">": lambda a, b: a > b,
    "<": lambda a, b: a < b,
}


@dataclass(frozen=True)
class VariableCompare:
    variable_id: int
    op: str
    operand: float

    def evaluate(self, host, session) -> bool:
        with session.owner_scope(host.map_id, host.entity_id):
            value = session.variables.value(self.variable_id)
        try:
            return _COMPARATORS[self.op](float(value), self.operand)
        except (TypeError, ValueError):
            return False


@dataclass(frozen=True)
class PlayerWithin:
    distance: int
    inside: bool = True

    def evaluate(self, host, session) -> bool:
        player = session.player
        if player is None:
            return False
        near = box_distance(host.x, host.y, player.x, player.y) <= self.distance
        return near if self.inside else not near


@dataclass(frozen=True)
class Chance:
    percent: float

    def evaluate(self, host, session) -> bool:
        return session.rng.random() * 100 < self.percent


@dataclass(frozen=True)
class Facing:
    direction: int

    def evaluate(self, host, session) -> bool:
        return host.direction == self.direction


_DIRECTION_NAMES = {"down": 2, "left": 4, "right": 6, "up": 8}

_COND_PATTERNS = [
    (re.compile(r"^(true|false)$", re.I), lambda m: Const(m.group(1).lower() == "true")),
    (re.compile(r"^(!?)\s*s\[\s*(\d+)\s*\]$"), lambda m: SwitchIs(int(m.group(2)), m.group(1) != "!")),
    (re.compile(r"^(!?)\s*self\[\s*['\"]?([A-Da-d])['\"]?\s*\]$"),
     lambda m: SelfSwitchIs(m.group(2).upper(), m.group(1) != "!")),
    (re.compile(r"^v\[\s*(\d+)\s*\]\s*(==|!=|>=|<=|>|<)\s*(-?\d+(?:\.\d+)?)$"),
     lambda m: VariableCompare(int(m.group(1)), m.group(2), float(m.group(3)))),
    (re.compile(r"^near\(\s*(\d+)\s*\)$"), lambda m: PlayerWithin(int(m.group(1)), True)),
    (re.compile(r"^far\(\s*(\d+)\s*\)$"), lambda m: PlayerWithin(int(m.group(1)), False)),
    (re.compile(r"^chance\(\s*(\d+(?:\.\d+)?)\s*\)$"), lambda m: Chance(float(m.group(1)))),
    (re.compile(r"^facing\(\s*([2468])\s*\)$"), lambda m: Facing(int(m.group(1)))),
    (re.compile(r"^facing\(\s*['\"]?(down|left|right|up)['\"]?\s*\)$", re.I),
     lambda m: Facing(_DIRECTION_NAMES[m.group(1).lower()])),
]


def parse_condition(text: str):
    source = (text or "").strip()
    for pattern, build in _COND_PATTERNS:
        match = pattern.match(source)
        if match:
            return build(match)
    raise InvalidCommandError(f"Unrecognized move route condition: {text!r}")


# ---------------------------------------------------------------------------
# Instructions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RouteIf:
    condition: Any


@dataclass(frozen=True)
class RouteElse:
    condition: Any = None


@dataclass(frozen=True)
class RouteEnd:
    pass


@dataclass(frozen=True)
class SetSound:
    name: str
    volume: int = 90
    pitch: int = 100


@dataclass(frozen=True)
class UnsetSound:
    pass


@dataclass(frozen=True)
class SetBalloon:
    balloon_id: int


@dataclass(frozen=True)
class UnsetBalloon:
    pass


@dataclass(frozen=True)
class ShowBalloon:
    balloon_id: int


_CALL_RE = re.compile(r"^(?:this\.)?(\w+)\s*\((.*)\)\s*;?$", re.S)
_ROUTE_CALLS = {"rbIf", "rbElse", "rbEnd", "setSe", "unsetSe", "setBln", "unsetBln", "showBln"}


def _split_args(raw: str) -> list[str]:
    args = [a.strip() for a in raw.split(",")]
    return [a for a in args if a]


def _unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"":
        return text[1:-1]
    return text


def _int_arg(args: list[str], index: int, default: int, call: str) -> int:
    if len(args) <= index:
        return default
    try:
        return int(args[index])
    except ValueError as exc:
        raise InvalidCommandError(f"{call}: argument {index + 1} must be a number, got {args[index]!r}") from exc


def parse_route_script(text: str):
    """Compile one route script line; returns None for scripts this layer does not own."""
    source = (text or "").strip()
    match = _CALL_RE.match(source)
    if not match or match.group(1) not in _ROUTE_CALLS:
        return None
    call, raw_args = match.group(1), match.group(2).strip()

    if call == "rbIf":
        if not raw_args:
            raise InvalidCommandError("rbIf needs a condition")
        return RouteIf(parse_condition(raw_args))
    if call == "rbElse":
        return RouteElse(parse_condition(raw_args) if raw_args else None)
    if call == "rbEnd":
        return RouteEnd()

    args = _split_args(raw_args)
    if call == "setSe":
        if not args:
            raise InvalidCommandError("setSe needs a sound name")
        return SetSound(_unquote(args[0]), _int_arg(args, 1, 90, call), _int_arg(args, 2, 100, call))
    if call == "unsetSe":
        return UnsetSound()
    if call == "setBln":
        return SetBalloon(_int_arg(args, 0, 0, call))
    if call == "unsetBln":
        return UnsetBalloon()
    return ShowBalloon(_int_arg(args, 0, 0, call))


def _never_taken_marker(text: str):
    # A branch marker with a bad condition still opens or continues its chain.
    match = _CALL_RE.match((text or "").strip())
    call = match.group(1) if match else ""
    if call == "rbIf":
        return RouteIf(Const(False))
    if call == "rbElse":
        return RouteElse(Const(False))
    return None


@dataclass
class RouteProgram:
    """A move route's commands with compiled instructions and marker jumps."""

    commands: list[dict]
    instructions: dict[int, Any] = field(default_factory=dict)
    next_marker: dict[int, int] = field(default_factory=dict)
    end_of: dict[int, int] = field(default_factory=dict)

    @classmethod
    def compile(cls, route: dict | None) -> "RouteProgram":
        commands = list((route or {}).get("list") or [])
        program = cls(commands)
        for index, cmd in enumerate(commands):
            if cmd.get("code") != ROUTE_SCRIPT:
                continue
            params = cmd.get("parameters") or [""]
            try:
                instruction = parse_route_script(str(params[0]))
            except InvalidCommandError as exc:
                instruction = _never_taken_marker(str(params[0]))
                if instruction is None:
                    logger.warning("Route command %d ignored: %s", index, exc)
                    continue
                logger.warning("Route command %d never taken: %s", index, exc)
            if instruction is not None:
                program.instructions[index] = instruction
        program._pair_markers()
        return program

    def _pair_markers(self) -> None:
        chains: list[list[int]] = []
        for index in sorted(self.instructions):
            instruction = self.instructions[index]
            if isinstance(instruction, RouteIf):
                chains.append([index])
            elif isinstance(instruction, RouteElse):
                if not chains:
                    logger.warning("rbElse at route command %d has no open rbIf", index)
                    continue
                chains[-1].append(index)
            elif isinstance(instruction, RouteEnd):
                if not chains:
                    logger.warning("rbEnd at route command %d has no open rbIf", index)
                    continue
                chain = chains.pop()
                chain.append(index)
                self._link_chain(chain, index)
        for chain in chains:
            logger.warning("rbIf at route command %d is never closed", chain[0])
            self._link_chain(chain, len(self.commands))

    def _link_chain(self, chain: list[int], end: int) -> None:
        for a, b in zip(chain, chain[1:]):
            self.next_marker[a] = b
        for marker in chain:
            self.end_of[marker] = end

    def instruction(self, index: int):
        return self.instructions.get(index)


class MovementRouteHost:
    """What a character provides to the route evaluator.

    Implementers carry ``x``, ``y``, ``direction``, ``map_id``, ``entity_id``,
    ``branch_taken``, ``last_se_name``, ``last_balloon_id`` and a ``session``.
    """

    def reset_route_branches(self) -> None:
        self.branch_taken = [True]

    def play_route_se(self, name: str, volume: int, pitch: int) -> None:
        raise NotImplementedError

    def request_balloon(self, balloon_id: int) -> None:
        raise NotImplementedError


def execute_instruction(host, program: RouteProgram, index: int) -> int:
    """Run the compiled instruction at ``index``; returns the next command index.

    The caller keeps processing from the returned index within the same frame.
    """
    instruction = program.instruction(index)
    session = host.session

    if isinstance(instruction, RouteIf):
        host.branch_taken.append(False)
        if instruction.condition.evaluate(host, session):
            host.branch_taken[-1] = True
            return index + 1
        return program.next_marker.get(index, program.end_of.get(index, len(program.commands)))

    if isinstance(instruction, RouteElse):
        if host.branch_taken[-1]:
            return program.end_of.get(index, len(program.commands))
        condition = instruction.condition
        if condition is None or condition.evaluate(host, session):
            host.branch_taken[-1] = True
            return index + 1
        return program.next_marker.get(index, program.end_of.get(index, len(program.commands)))

    if isinstance(instruction, RouteEnd):
        if len(host.branch_taken) > 1:
            host.branch_taken.pop()
        else:
            logger.warning("rbEnd at route command %d closes no open branch", index)
        return index + 1

    if isinstance(instruction, SetSound):
        if instruction.name != host.last_se_name:
            host.play_route_se(instruction.name, instruction.volume, instruction.pitch)
            host.last_se_name = instruction.name
        return index + 1

    if isinstance(instruction, UnsetSound):
        host.last_se_name = None
        return index + 1

    if isinstance(instruction, SetBalloon):
        if instruction.balloon_id != host.last_balloon_id:
            host.request_balloon(instruction.balloon_id)
            host.last_balloon_id = instruction.balloon_id
        return index + 1

    if isinstance(instruction, UnsetBalloon):
        host.last_balloon_id = None
        return index + 1

    if isinstance(instruction, ShowBalloon):
        host.request_balloon(instruction.balloon_id)
        host.last_balloon_id = instruction.balloon_id
        return index + 1

    return index + 1
