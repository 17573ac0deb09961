"""Pairwise mutex propagation between the MDDs of two agents."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Optional, Union

from .conflict import Constraint, ConstraintType

NodeEnd = tuple["MDDNode", Optional["MDDNode"]]
MutexPair = tuple[NodeEnd, NodeEnd]


@dataclass(eq=False)
class MDDNode:
    """A location at one level of a multi-valued decision diagram."""

    location: int
    level: int
    cost: int = 0
    children: list["MDDNode"] = field(default_factory=list, repr=False)
    parents: list["MDDNode"] = field(default_factory=list, repr=False)


@dataclass(eq=False)
class MDD:
    """A multi-valued decision diagram stored level by level."""

    goal_location: int
    levels: list[list[MDDNode]] = field(default_factory=list)

    def goal_at(self, level: int) -> Optional[MDDNode]:
        """The goal node reached exactly at ``level``, or None."""
        if level < 0 or level >= len(self.levels):
            return None
        for node in self.levels[level]:
            if node.location == self.goal_location and node.cost == level:
                return node
        return None


def _end(item: Union[MDDNode, NodeEnd]) -> NodeEnd:
    if isinstance(item, MDDNode):
        return (item, None)
    return item


def _is_edge_mutex(mutex: MutexPair) -> bool:
    return mutex[0][1] is not None


def _node_mutex(a: MDDNode, b: MDDNode) -> MutexPair:
    return ((a, None), (b, None))


def _collect_level(mdd: MDD, level: int) -> dict[int, MDDNode]:
    return {node.location: node for node in mdd.levels[level]}


class ConstraintPropagation:
    """Forward and backward mutexes between the nodes and edges of two MDDs."""

    def __init__(self, mdd0: MDD, mdd1: MDD) -> None:
        self.mdd0 = mdd0
        self.mdd1 = mdd1
        self.fwd_mutexes: set[MutexPair] = set()
        self.bwd_mutexes: set[MutexPair] = set()

    # -- queries ----------------------------------------------------------

    def has_fwd_mutex(self, a, b) -> bool:
        """Whether two nodes, or two (node, child) edges, are forward mutex."""
        ea, eb = _end(a), _end(b)
        return (ea, eb) in self.fwd_mutexes or (eb, ea) in self.fwd_mutexes

    def has_mutex(self, a, b) -> bool:
        """Whether two nodes, or two (node, child) edges, are mutex in either direction."""
        ea, eb = _end(a), _end(b)
        return (
            (ea, eb) in self.bwd_mutexes
            or (eb, ea) in self.bwd_mutexes
            or self.has_fwd_mutex(ea, eb)
        )

    # -- insertion --------------------------------------------------------

    def _add_fwd_node_mutex(self, a: MDDNode, b: MDDNode) -> None:
        if not self.has_fwd_mutex(a, b):
            self.fwd_mutexes.add(_node_mutex(a, b))

    def _add_fwd_edge_mutex(
        self, a: MDDNode, a_to: MDDNode, b: MDDNode, b_to: MDDNode
    ) -> None:
        if not self.has_fwd_mutex((a, a_to), (b, b_to)):
            self.fwd_mutexes.add(((a, a_to), (b, b_to)))

    def _add_bwd_node_mutex(self, a: MDDNode, b: MDDNode) -> None:
        if not self.has_mutex(a, b):
            self.bwd_mutexes.add(_node_mutex(a, b))

    def _should_be_fwd_mutexed(self, a: MDDNode, b: MDDNode) -> bool:
        for a_from in a.parents:
            for b_from in b.parents:
                if self.has_fwd_mutex(b_from, a_from):
                    continue
                if self.has_fwd_mutex((a_from, a), (b_from, b)):
                    continue
                return False
        return True

    def _should_be_bwd_mutexed(self, a: MDDNode, b: MDDNode) -> bool:
        for a_to in a.children:
            for b_to in b.children:
                if self.has_mutex(b_to, a_to):
                    continue
                if self.has_mutex((a, a_to), (b, b_to)):
                    continue
                return False
        return True

    # -- propagation ------------------------------------------------------

    def init_mutex(self) -> None:
        """Mark vertex collisions as node mutexes and swaps as edge mutexes."""
        num_level = min(len(self.mdd0.levels), len(self.mdd1.levels))
        for i in range(num_level):
            by_location = _collect_level(self.mdd0, i)
            for node in self.mdd1.levels[i]:
                other = by_location.get(node.location)
                if other is not None:
                    self._add_fwd_node_mutex(other, node)

        next_level = _collect_level(self.mdd1, 0) if num_level > 0 else {}
        for i in range(num_level - 1):
            this_level = next_level
            next_level = _collect_level(self.mdd1, i + 1)
            for node_0 in self.mdd0.levels[i]:
                node_1_to = next_level.get(node_0.location)
                if node_1_to is None:
                    continue
                for node_0_to in node_0.children:
                    node_1 = this_level.get(node_0_to.location)
                    if node_1 is None:
                        continue
                    for child in node_1.children:
                        if child is node_1_to:
                            self._add_fwd_edge_mutex(node_0, node_0_to, node_1, node_1_to)

    def fwd_mutex_prop(self) -> None:
        """Propagate mutexes forward, level by level."""
        depth = max(len(self.mdd0.levels), len(self.mdd1.levels))
        to_check: list[set[MutexPair]] = [set() for _ in range(depth + 1)]
        for mutex in self.fwd_mutexes:
            to_check[mutex[0][0].level].add(mutex)

        for i in range(len(to_check) - 1):
            for mutex in list(to_check[i]):
                if _is_edge_mutex(mutex):
                    candidates = [(mutex[0][1], mutex[1][1])]
                else:
                    a, b = mutex[0][0], mutex[1][0]
                    candidates = [(ac, bc) for ac in a.children for bc in b.children]
                for a_next, b_next in candidates:
                    if self.has_fwd_mutex(a_next, b_next):
                        continue
                    if not self._should_be_fwd_mutexed(a_next, b_next):
                        continue
                    new_mutex = _node_mutex(a_next, b_next)
                    self.fwd_mutexes.add(new_mutex)
                    to_check[i + 1].add(new_mutex)

    def bwd_mutex_prop(self) -> None:
        """Propagate the forward mutexes backward towards the roots."""
        open_list: deque[MutexPair] = deque(self.fwd_mutexes)
        while open_list:
            mutex = open_list.popleft()
            if _is_edge_mutex(mutex):
                candidates = [(mutex[0][0], mutex[1][0])]
            else:
                a, b = mutex[0][0], mutex[1][0]
                candidates = [(ap, bp) for ap in a.parents for bp in b.parents]
            for a_prev, b_prev in candidates:
                if self.has_mutex(a_prev, b_prev):
                    continue
                if not self._should_be_bwd_mutexed(a_prev, b_prev):
                    continue
                new_mutex = _node_mutex(a_prev, b_prev)
                self.bwd_mutexes.add(new_mutex)
                open_list.append(new_mutex)

    # -- goal reasoning ---------------------------------------------------

    def _ordered(self, level_0: int, level_1: int) -> tuple[MDD, MDD, int, int, bool]:
        if level_0 > level_1:
            return self.mdd1, self.mdd0, level_1, level_0, True
        return self.mdd0, self.mdd1, level_0, level_1, False

    def _checked(self, level_0: int, level_1: int) -> tuple[MDD, MDD, int, int, MDDNode]:
        mdd_s, mdd_l, level_0, level_1, _ = self._ordered(level_0, level_1)
        if level_0 > len(mdd_s.levels) or level_1 > len(mdd_l.levels):
            raise ValueError(f"levels ({level_0}, {level_1}) exceed the MDDs")
        goal = mdd_s.goal_at(level_0)
        if goal is None:
            raise ValueError(f"no goal node at level {level_0}")
        return mdd_s, mdd_l, level_0, level_1, goal

    def mutexed(self, level_0: int, level_1: int) -> bool:
        """Whether the earlier goal is mutex with every node of the other MDD at that level."""
        _, mdd_l, level_0, level_1, goal = self._checked(level_0, level_1)
        return all(
            node.cost > level_1 or self.has_fwd_mutex(goal, node)
            for node in mdd_l.levels[level_0]
        )

    def _feasible(self, level_0: int, level_1: int) -> int:
        _, mdd_l, level_0, level_1, goal_i = self._checked(level_0, level_1)
        stack = [
            node
            for node in mdd_l.levels[level_0]
            if node.cost <= level_1 and not self.has_fwd_mutex(goal_i, node)
        ]
        if not stack:
            return -1
        goal_j = mdd_l.goal_at(level_1)
        not_allowed = goal_i.location
        closed: set[MDDNode] = set()
        while stack:
            node = stack.pop()
            if node is goal_j:
                return 1
            if node in closed:
                continue
            closed.add(node)
            for child in node.children:
                if child not in closed and child.location != not_allowed:
                    stack.append(child)
        return -2

    def feasible(self, level_0: int, level_1: int) -> bool:
        """True when the agents cannot reach their goals at these levels without colliding."""
        return self._feasible(level_0, level_1) < 0

    def generate_constraints(
        self, level_0: int, level_1: int
    ) -> tuple[list[Constraint], list[Constraint]]:
        """Constraints for agents 0 and 1 that resolve the mutex of their goals."""
        mdd_s, mdd_l, level_0, level_1, reversed_ = self._ordered(level_0, level_1)
        goal_i = mdd_s.goal_at(level_0)
        if goal_i is None:
            raise ValueError(f"no goal node at level {level_0}")

        candidates = [n for n in mdd_l.levels[level_0] if n.cost <= level_1]
        non_mutexed = [n for n in candidates if not self.has_fwd_mutex(goal_i, n)]

        if non_mutexed:
            cons_set_1: set[tuple[int, int]] = set()
            level_i: set[MDDNode] = {goal_i}
            level_j: set[MDDNode] = set(candidates)
            for lvl in range(level_0, -1, -1):
                for ptr_j in level_j:
                    if all(self.has_fwd_mutex(ptr_i, ptr_j) for ptr_i in level_i):
                        cons_set_1.add((lvl, ptr_j.location))
                level_i = {p for n in level_i for p in n.parents}
                level_j = {p for n in level_j for p in n.parents}

            goal_j = mdd_l.goal_at(level_1)
            not_allowed = goal_i.location
            closed: set[MDDNode] = set()
            stack: deque[MDDNode] = deque(non_mutexed)
            while stack:
                node = stack.popleft()
                if node is goal_j:
                    return [], []
                if node in closed:
                    continue
                closed.add(node)
                for child in node.children:
                    if child in closed:
                        continue
                    if child.location == not_allowed:
                        cons_set_1.add((child.level, child.location))
                        continue
                    stack.appendleft(child)

            length_con = Constraint(0, goal_i.location, -1, level_0, ConstraintType.GLENGTH)
            cons_vec_1 = [
                Constraint(1, loc, -1, lvl, ConstraintType.VERTEX)
                for lvl, loc in sorted(cons_set_1)
            ]
            if reversed_:
                return cons_vec_1, [length_con]
            return [length_con], cons_vec_1

        blue_0: set[MDDNode] = set()
        blue_1: set[MDDNode] = set()
        cons_0: list[MDDNode] = []
        cons_1: list[MDDNode] = []
        for lvl in range(level_0 + 1):
            nodes_i = [n for n in mdd_s.levels[lvl] if n.cost <= level_0]
            nodes_j = [n for n in mdd_l.levels[lvl] if n.cost <= level_1]
            for it_i in nodes_i:
                if all(self.has_fwd_mutex(it_i, it_j) for it_j in nodes_j):
                    blue_0.add(it_i)
                    if any(p not in blue_0 for p in it_i.parents):
                        cons_0.append(it_i)
            for it_j in nodes_j:
                if all(self.has_fwd_mutex(it_i, it_j) for it_i in nodes_i):
                    blue_1.add(it_j)
                    if any(p not in blue_1 for p in it_j.parents):
                        cons_1.append(it_j)

        cons_vec_0 = [Constraint(0, n.location, -1, n.level, ConstraintType.VERTEX) for n in cons_0]
        cons_vec_1 = [Constraint(1, n.location, -1, n.level, ConstraintType.VERTEX) for n in cons_1]
        if reversed_:
            return cons_vec_1, cons_vec_0
        return cons_vec_0, cons_vec_1