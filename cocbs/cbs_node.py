"""High-level search tree node."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .conflict import Conflict, Constraint, ConstraintType

_SHARED_CONSTRAINT_TYPES = {
    ConstraintType.LEQLENGTH,
    ConstraintType.POSITIVE_VERTEX,
    ConstraintType.POSITIVE_EDGE,
}


@dataclass(eq=False)
class CBSNode:
    """A node of the constraint tree, holding only the paths that changed."""

    parent: Optional["CBSNode"] = None
    root: bool = False
    g_val: int = 0
    h_val: int = 0
    soc: int = 0
    makespan: int = 0
    depth: int = 0
    time_generated: int = 0
    time_expanded: int = 0
    tie_breaking: int = 0
    meetings_tb: int = 0
    changed_task_idx: int = -1
    assignment_idx: int = 0
    assignment: Any = None
    solved: bool = True
    h_computed: bool = False
    constraints: list[Constraint] = field(default_factory=list)
    conflicts: list[Conflict] = field(default_factory=list)
    unknown_conf: list[Conflict] = field(default_factory=list)
    conflict: Optional[Conflict] = None
    conflict_graph: dict[int, int] = field(default_factory=dict)
    paths: list[tuple[int, list]] = field(default_factory=list)
    meetings: list[tuple] = field(default_factory=list)
    meetings_set: list[int] = field(default_factory=list)

    def clear(self) -> None:
        """Drop the conflict lists and the conflict graph."""
        self.conflicts.clear()
        self.unknown_conf.clear()
        self.conflict_graph.clear()

    def format_conflict_graph(self, num_of_agents: int) -> str:
        """Describe the non-zero edges of the conflict graph, or '' if it is empty."""
        if not self.conflict_graph:
            return ""
        edges = "".join(
            f"({key // num_of_agents},{key % num_of_agents})={weight},"
            for key, weight in self.conflict_graph.items()
            if weight != 0
        )
        return f"\tBuild conflict graph in {self}: {edges}"

    def constraints_on(self, agent: int) -> list[Constraint]:
        """Constraints on the path from this node up to the root that bind ``agent``.

        Each node is classified by its first constraint.
        """
        found: list[Constraint] = []
        curr = self
        while curr.parent is not None:
            if curr.constraints:
                head = curr.constraints[0]
                if head.type in _SHARED_CONSTRAINT_TYPES or head.agent == agent:
                    found.extend(curr.constraints)
            curr = curr.parent
        return found

    def __str__(self) -> str:
        kind = "root" if self.root else "regular"
        meetings = ",".join(str(m) for m in self.meetings_set)
        return (
            f"{kind} node {self.time_generated} ({self.g_val + self.h_val} = "
            f"{self.g_val} + {self.h_val} ) with {len(self.constraints)} constraints, "
            f"{len(self.conflicts) + len(self.unknown_conf)} conflicts and "
            f"{len(self.paths)} new paths, meetings set: {meetings}"
            f", assignment index: {self.assignment_idx}"
            f", tie_breaking: {self.tie_breaking}"
            f", meetings_tb: {self.meetings_tb}"
        )