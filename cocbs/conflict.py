"""Constraints and conflicts between pairs of agents."""

from __future__ import annotations

import random
from enum import Enum, IntEnum
from typing import NamedTuple


class ConstraintType(Enum):
    LEQLENGTH = "L"
    GLENGTH = "G"
    RANGE = "R"
    BARRIER = "B"
    VERTEX = "V"
    EDGE = "E"
    POSITIVE_VERTEX = "V+"
    POSITIVE_EDGE = "E+"
    POSITIVE_BARRIER = "B+"
    POSITIVE_RANGE = "R+"


_PRINTED_CODES = {
    ConstraintType.VERTEX,
    ConstraintType.POSITIVE_VERTEX,
    ConstraintType.EDGE,
    ConstraintType.POSITIVE_EDGE,
    ConstraintType.BARRIER,
    ConstraintType.RANGE,
    ConstraintType.GLENGTH,
    ConstraintType.LEQLENGTH,
}


class ConflictType(IntEnum):
    """Conflict kinds; a smaller value has higher priority."""

    MUTEX = 0
    TARGET = 1
    CORRIDOR = 2
    RECTANGLE = 3
    STANDARD = 4
    TYPE_COUNT = 5


class ConflictPriority(IntEnum):
    """Cardinality classes; a smaller value has higher priority."""

    CARDINAL = 0
    SEMI = 1
    NON = 2
    PRIORITY_COUNT = 3


class Constraint(NamedTuple):
    agent: int
    loc1: int
    loc2: int
    t: int
    type: ConstraintType

    def __str__(self) -> str:
        code = self.type.value if self.type in _PRINTED_CODES else ""
        return f"<{self.agent},{self.loc1},{self.loc2},{self.t},{code}>"


_PRIORITY_NAMES = {
    ConflictPriority.CARDINAL: "cardinal ",
    ConflictPriority.SEMI: "semi-cardinal ",
    ConflictPriority.NON: "non-cardinal ",
    ConflictPriority.PRIORITY_COUNT: "",
}

_TYPE_NAMES = {
    ConflictType.STANDARD: "standard",
    ConflictType.RECTANGLE: "rectangle",
    ConflictType.CORRIDOR: "corridor",
    ConflictType.TARGET: "target",
    ConflictType.MUTEX: "mutex",
    ConflictType.TYPE_COUNT: "",
}


class Conflict:
    """A conflict between two agents and the constraints that resolve it."""

    def __init__(self) -> None:
        self.a1 = -1
        self.a2 = -1
        self.constraint1: list[Constraint] = []
        self.constraint2: list[Constraint] = []
        self.type = ConflictType.TYPE_COUNT
        self.priority = ConflictPriority.PRIORITY_COUNT
        self.secondary_priority = 0

    def vertex_conflict(self, a1: int, a2: int, v: int, t: int) -> None:
        self.a1, self.a2 = a1, a2
        self.constraint1 = [Constraint(a1, v, -1, t, ConstraintType.VERTEX)]
        self.constraint2 = [Constraint(a2, v, -1, t, ConstraintType.VERTEX)]
        self.type = ConflictType.STANDARD

    def edge_conflict(self, a1: int, a2: int, v1: int, v2: int, t: int) -> None:
        self.a1, self.a2 = a1, a2
        self.constraint1 = [Constraint(a1, v1, v2, t, ConstraintType.EDGE)]
        self.constraint2 = [Constraint(a2, v2, v1, t, ConstraintType.EDGE)]
        self.type = ConflictType.STANDARD

    def target_conflict(self, a1: int, a2: int, v: int, t: int) -> None:
        self.a1, self.a2 = a1, a2
        self.constraint1 = [Constraint(a1, v, -1, t, ConstraintType.LEQLENGTH)]
        self.constraint2 = [Constraint(a1, v, -1, t, ConstraintType.GLENGTH)]
        self.type = ConflictType.TARGET

    def corridor_conflict(self, a1, a2, constraints1, constraints2) -> None:
        self.a1, self.a2 = a1, a2
        self.constraint1 = list(constraints1)
        self.constraint2 = list(constraints2)
        self.type = ConflictType.CORRIDOR

    def lower_priority_than(self, other: "Conflict", rng=None) -> bool:
        """True if ``other`` should be chosen before this conflict.

        Cardinality is compared first, then type, then the secondary priority;
        remaining ties are broken at random with ``rng``.
        """
        if self.priority != other.priority:
            return self.priority > other.priority
        if self.type != other.type:
            return self.type > other.type
        if self.secondary_priority != other.secondary_priority:
            return self.secondary_priority > other.secondary_priority
        source = rng if rng is not None else random
        return source.randrange(2) == 1

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Conflict):
            return NotImplemented
        same = (
            self.a1 == other.a1
            and self.a2 == other.a2
            and self.constraint1 == other.constraint1
            and self.constraint2 == other.constraint2
        )
        swapped = (
            self.a1 == other.a2
            and self.a2 == other.a1
            and self.constraint1 == other.constraint2
            and self.constraint2 == other.constraint1
        )
        return same or swapped

    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        first = "".join(f"{c}," for c in self.constraint1)
        second = "".join(f"{c}," for c in self.constraint2)
        return (
            f"{_PRIORITY_NAMES[self.priority]}{_TYPE_NAMES[self.type]} conflict:  "
            f"{self.a1} with {first} and {self.a2} with {second}"
        )