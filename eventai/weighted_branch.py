"""Weighted random branches over an event command list.

Authors write sibling ``weight`` plugin commands at one indent, each followed by
its block of commands, and close the set with ``end_weight_branches``. The
first marker reached draws one branch with probability proportional to its
weight; the other blocks are skipped. A pre-pass turns the list into a jump
table so skipping never rescans the list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .triggers import is_own_plugin_command, plugin_command_args, plugin_command_name

logger = logging.getLogger(__name__)

WEIGHT_COMMAND = "weight"
END_COMMAND = "end_weight_branches"


def parse_weight(args) -> float:
    raw = args.get("weight", args.get("Weight", 0)) if isinstance(args, dict) else args
    try:
        value = float(str(raw).strip())
    except (TypeError, ValueError):
        logger.warning("Weight branch has a non-numeric weight %r; counting it as 0", raw)
        return 0.0
    if value <= 0:
        logger.warning("Weight branch has a non-positive weight %s; counting it as 0", value)
        return 0.0
    return value


@dataclass
class BranchSet:
    depth: int
    branches: list[int] = field(default_factory=list)
    weights: list[float] = field(default_factory=list)
    end_index: int | None = None

    @property
    def total_weight(self) -> float:
        return sum(self.weights)

    def select(self, draw: float) -> int:
        """Branch index chosen for a draw in ``[0, total_weight)``."""
        acc = 0.0
        for index, weight in zip(self.branches, self.weights):
            acc += weight
            if acc > draw:
                return index
        return self.branches[-1]


@dataclass
class Marker:
    index: int
    depth: int
    is_end: bool
    branch_set: BranchSet | None = None
    next_stop: int = 0


class WeightBranchTable:
    """Jump table of weight markers for one command list."""

    def __init__(self):
        self.markers: dict[int, Marker] = {}
        self.sets: list[BranchSet] = []

    @classmethod
    def build(cls, command_list) -> "WeightBranchTable":
        table = cls()
        command_list = command_list or []
        open_sets: dict[int, BranchSet] = {}
        pending: dict[int, Marker] = {}

        def close_deeper(depth: int, stop: int) -> None:
            for d in [d for d in open_sets if d > depth]:
                open_sets.pop(d)
                marker = pending.pop(d, None)
                if marker is not None:
                    marker.next_stop = stop

        for index, cmd in enumerate(command_list):
            depth = int(cmd.get("indent", 0)) if isinstance(cmd, dict) else 0
            close_deeper(depth, index)
            if not is_own_plugin_command(cmd):
                continue
            name = plugin_command_name(cmd)
            if name == WEIGHT_COMMAND:
                branch_set = open_sets.get(depth)
                if branch_set is None:
                    branch_set = BranchSet(depth)
                    open_sets[depth] = branch_set
                    table.sets.append(branch_set)
                branch_set.branches.append(index)
                branch_set.weights.append(parse_weight(plugin_command_args(cmd)))
                marker = Marker(index, depth, False, branch_set)
                previous = pending.get(depth)
                if previous is not None:
                    previous.next_stop = index
                pending[depth] = marker
                table.markers[index] = marker
            elif name == END_COMMAND:
                branch_set = open_sets.pop(depth, None)
                previous = pending.pop(depth, None)
                if previous is not None:
                    previous.next_stop = index
                if branch_set is not None:
                    branch_set.end_index = index
                table.markers[index] = Marker(index, depth, True, branch_set, index + 1)

        close_deeper(-1, len(command_list))
        return table

    def marker(self, index: int) -> Marker | None:
        return self.markers.get(index)


class WeightBranchState:
    """Per-interpreter record of which branch each open set selected."""

    def __init__(self, rng):
        self.rng = rng
        self.table = WeightBranchTable()
        self.selections: dict[int, int] = {}

    def attach(self, command_list) -> None:
        self.table = WeightBranchTable.build(command_list)
        self.selections = {}

    def clear(self) -> None:
        self.selections = {}

    def prune(self, depth: int) -> None:
        """Forget selections of sets whose scope execution has left."""
        for d in [d for d in self.selections if d > depth]:
            del self.selections[d]

    def _draw(self, branch_set: BranchSet) -> int:
        total = branch_set.total_weight
        if total <= 0:
            logger.warning("Weight branch set at indent %d has no positive weight; taking the first branch",
                           branch_set.depth)
            return branch_set.branches[0]
        return branch_set.select(self.rng.random() * total)

    def on_weight(self, index: int, depth: int) -> int | None:
        """Handle a weight marker. Returns the index to resume at, or None to fall through."""
        marker = self.table.marker(index)
        if marker is None or marker.branch_set is None:
            logger.warning("Weight command at %d is not part of a known branch set", index)
            return None
        selected = self.selections.get(depth)
        if selected is None or selected not in marker.branch_set.branches:
            selected = self._draw(marker.branch_set)
            self.selections[depth] = selected
        if selected == index:
            return None
        return marker.next_stop

    def on_end(self, depth: int) -> None:
        closing = [d for d in self.selections if d >= depth]
        if not closing:
            logger.warning("End Weight Branches at indent %d with no open branch set", depth)
            return
        for d in closing:
            del self.selections[d]
