"""Detection of corridor conflicts between two agents.

Paths are sequences of locations. The map is given by a ``neighbors``
callable, and shortest travel times under a constraint table by a
``travel_time(agent, end, table, upper_bound)`` callable.
"""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Optional

from .cbs_node import CBSNode
from .conflict import Conflict, Constraint, ConstraintType
from .constraint_table import MAX_TIMESTEP, ConstraintTable

Path = Sequence[int]
TravelTime = Callable[[int, int, ConstraintTable, int], int]
SingletonCheck = Callable[[int, int], bool]


class CorridorStrategy(Enum):
    NC = "NC"
    C = "C"
    PC = "PC"
    STC = "STC"
    GC = "GC"
    DC = "DC"


def corridor_length(
    path: Path, t_start: int, loc_end: int
) -> tuple[int, Optional[tuple[int, int]]]:
    """Net distance travelled along ``path`` from ``t_start`` until ``loc_end``.

    Waits are skipped and turning around counts backwards. Also returns the
    first edge traversed forwards, or None if there is none.
    """
    curr = path[t_start]
    prev = -1
    length = 0
    t = t_start
    move_forward = True
    edge: Optional[tuple[int, int]] = None
    while curr != loc_end:
        t += 1
        nxt = path[t]
        if nxt == curr:
            continue
        if nxt == prev:
            move_forward = not move_forward
        if move_forward:
            if edge is None:
                edge = (curr, nxt)
            length += 1
        else:
            length -= 1
        prev = curr
        curr = nxt
    return length, edge


def blocked(path: Path, constraint: Constraint) -> bool:
    """Whether ``path`` violates a range constraint."""
    if constraint.type is not ConstraintType.RANGE:
        raise ValueError(f"expected a range constraint, got {constraint.type.name}")
    loc, t1, t2 = constraint.loc1, constraint.loc2, constraint.t
    for t in range(t1, t2):
        if t >= len(path):
            if loc == path[-1]:
                return True
        elif t >= 0 and path[t] == loc:
            return True
    return False


class CorridorReasoning:
    """Finds corridor, pseudo-corridor and corridor-target conflicts."""

    def __init__(
        self,
        neighbors: Callable[[int], Sequence[int]],
        travel_time: TravelTime,
        initial_constraints: Sequence[ConstraintTable],
        strategy: CorridorStrategy = CorridorStrategy.NC,
        is_single: Optional[SingletonCheck] = None,
        clock: Callable[[], float] = time.process_time,
    ) -> None:
        self.neighbors = neighbors
        self.travel_time = travel_time
        self.initial_constraints = initial_constraints
        self.strategy = strategy
        self._is_single = is_single
        self._clock = clock
        self.accumulated_runtime = 0.0
        self.num_pseudo_corridors = 0

    def get_name(self) -> str:
        return self.strategy.value

    def _degree(self, loc: int) -> int:
        return len(self.neighbors(loc))

    def _single(self, agent: int, timestep: int) -> bool:
        return True if self._is_single is None else bool(self._is_single(agent, timestep))

    def _table(self, agent: int, node: CBSNode) -> ConstraintTable:
        table = self.initial_constraints[agent].copy()
        table.build(node, agent)
        return table

    def run(
        self, conflict: Conflict, paths: Sequence[Path], node: CBSNode
    ) -> Optional[Conflict]:
        """Return a corridor conflict that replaces ``conflict``, or None."""
        if self.strategy is CorridorStrategy.NC:
            return None
        started = self._clock()
        if self.strategy is CorridorStrategy.C:
            corridor = self.find_corridor_conflict(conflict, paths, node)
        elif self.strategy is CorridorStrategy.PC:
            corridor = self.find_corridor_conflict(conflict, paths, node)
            if corridor is None:
                corridor = self.find_pseudo_corridor_conflict(conflict, paths, node)
        elif self.strategy is CorridorStrategy.STC:
            corridor = self.find_corridor_target_conflict(conflict, paths, node)
        else:
            corridor = self.find_corridor_target_conflict(conflict, paths, node)
            if corridor is None:
                corridor = self.find_pseudo_corridor_conflict(conflict, paths, node)
        self.accumulated_runtime += self._clock() - started
        return corridor

    def find_corridor_conflict(
        self, conflict: Conflict, paths: Sequence[Path], node: CBSNode
    ) -> Optional[Conflict]:
        a = [conflict.a1, conflict.a2]
        _, loc1, loc2, timestep, _ = conflict.constraint1[-1]
        curr = -1
        if self._degree(loc1) == 2:
            curr = loc1
            if loc2 >= 0:
                timestep -= 1
        elif loc2 >= 0 and self._degree(loc2) == 2:
            curr = loc2
        if curr <= 0:
            return None

        enter_time = [
            self.entering_time(paths[a[i]], paths[a[1 - i]], timestep) for i in range(2)
        ]
        if enter_time[0] > enter_time[1]:
            enter_time.reverse()
            a.reverse()
        enter_location = [paths[a[i]][enter_time[i]] for i in range(2)]
        if enter_location[0] == enter_location[1]:
            return None
        for i in range(2):
            if enter_location[1 - i] not in paths[a[i]][enter_time[i]:]:
                return None

        length, edge = corridor_length(paths[a[0]], enter_time[0], enter_location[1])
        if length < 2 or edge is None:
            return None

        ct1 = self._table(a[0], node)
        t3 = self.travel_time(a[0], enter_location[1], ct1, MAX_TIMESTEP)
        ct1.insert_edge(edge[0], edge[1], 0, MAX_TIMESTEP)
        ct1.insert_edge(edge[1], edge[0], 0, MAX_TIMESTEP)
        t3_ = self.travel_time(a[0], enter_location[1], ct1, t3 + 2 * length + 1)
        ct2 = self._table(a[1], node)
        t4 = self.travel_time(a[1], enter_location[0], ct2, MAX_TIMESTEP)
        ct2.insert_edge(edge[0], edge[1], 0, MAX_TIMESTEP)
        ct2.insert_edge(edge[1], edge[0], 0, MAX_TIMESTEP)
        t4_ = self.travel_time(a[1], enter_location[0], ct2, t3 + length + 1)

        if abs(t3 - t4) <= length and t3_ > t3 and t4_ > t4:
            t1 = min(t3_ - 1, t4 + length)
            t2 = min(t4_ - 1, t3 + length)
            c1 = Constraint(a[0], enter_location[1], 0, t1, ConstraintType.RANGE)
            c2 = Constraint(a[1], enter_location[0], 0, t2, ConstraintType.RANGE)
            if blocked(paths[a[0]], c1) and blocked(paths[a[1]], c2):
                corridor = Conflict()
                corridor.corridor_conflict(a[0], a[1], [c1], [c2])
                return corridor
        return None

    def find_pseudo_corridor_conflict(
        self, conflict: Conflict, paths: Sequence[Path], node: CBSNode
    ) -> Optional[Conflict]:
        _, loc1, loc2, timestep, _ = conflict.constraint1[-1]
        a1, a2 = conflict.a1, conflict.a2
        p1, p2 = paths[a1], paths[a2]
        if loc2 < 0:
            if len(p1) <= timestep + 1 or len(p2) <= timestep + 1:
                return None
            if p1[timestep - 1] != p2[timestep + 1] or p2[timestep - 1] != p1[timestep + 1]:
                return None
            steps = (timestep - 1, timestep, timestep + 1)
            if not all(self._single(ag, t) for ag in (a1, a2) for t in steps):
                return None
            endpoint1 = p1[timestep + 1]
            endpoint2 = loc1
            lowerbound1 = timestep + 1
            lowerbound2 = timestep
        else:
            steps = (timestep - 1, timestep)
            if not all(self._single(ag, t) for ag in (a1, a2) for t in steps):
                return None
            endpoint1 = loc2
            endpoint2 = loc1
            lowerbound1 = timestep
            lowerbound2 = timestep

        t1, t2 = self.time_ranges(
            a1, a2, endpoint1, endpoint2, endpoint2, endpoint1,
            lowerbound1, lowerbound2, 1, node,
        )
        if t1 < 0:
            return None
        corridor = Conflict()
        corridor.corridor_conflict(
            a1,
            a2,
            [Constraint(a1, endpoint1, 0, t1, ConstraintType.RANGE)],
            [Constraint(a2, endpoint2, 0, t2, ConstraintType.RANGE)],
        )
        self.num_pseudo_corridors += 1
        return corridor

    def find_corridor_target_conflict(
        self, conflict: Conflict, paths: Sequence[Path], node: CBSNode
    ) -> Optional[Conflict]:
        if len(conflict.constraint1) != 1:
            raise ValueError("corridor-target reasoning needs a single-constraint conflict")
        _, loc1, loc2, timestep, _ = conflict.constraint1[-1]
        corridor = self.find_corridor(loc1, loc2)
        if not corridor:
            return None
        length = len(corridor) - 1
        a = [conflict.a1, conflict.a2]
        entry = [-1, -1]
        exit_ = [-1, -1]
        start = [-1, -1]
        goal = [-1, -1]
        goal_time = [-1, -1]
        for i in range(2):
            path = paths[a[i]]
            if path[0] in corridor:
                start[i] = corridor.index(path[0])
            else:
                for t in range(min(len(path), timestep) - 1, -1, -1):
                    if path[t] == corridor[0]:
                        entry[i] = 0
                        break
                    if path[t] == corridor[-1]:
                        entry[i] = len(corridor) - 1
                        break
            if path[-1] in corridor:
                goal[i] = corridor.index(path[-1])
                goal_time[i] = len(path) - 1
            else:
                for t in range(timestep, len(path) - 1):
                    if path[t] == corridor[0]:
                        exit_[i] = 0
                        goal_time[i] = t
                        break
                    if path[t] == corridor[-1]:
                        exit_[i] = len(corridor) - 1
                        goal_time[i] = t
                        break
        if (max(start[0], entry[0]) - max(start[1], entry[1])) * (
            max(goal[0], exit_[0]) - max(goal[1], exit_[1])
        ) >= 0:
            return None

        if goal[0] >= 0 or goal[1] >= 0:
            middle = 0 if goal[0] >= 0 else 1
            if start[1] == goal[1] and start[1] >= 0:
                middle = 1
            other = 1 - middle
            am, ao = a[middle], a[other]
            ct1 = self._table(am, node)
            ct2 = self._table(ao, node)
            t1 = self.travel_time(am, corridor[0], ct1, MAX_TIMESTEP) - 1
            t2 = self.travel_time(ao, corridor[0], ct2, MAX_TIMESTEP)
            l1 = max(t1, t2) + goal[middle]
            bound = l1 - length + goal[middle]
            t1 = self.travel_time(am, corridor[-1], ct1, bound) - 1
            t2 = self.travel_time(ao, corridor[-1], ct2, bound)
            l1 = min(l1, max(t1, t2) + length - goal[middle])
            if l1 < len(paths[am]) - 1:
                return None
            c1 = [Constraint(am, corridor[goal[middle]], -1, l1, ConstraintType.GLENGTH)]
            c2 = [Constraint(am, corridor[goal[middle]], -1, l1, ConstraintType.LEQLENGTH)]
            direction = max(goal[other], exit_[other]) - max(start[other], entry[other])
            if direction == 0:
                raise ValueError("the other agent does not move through the corridor")
            direction = 1 if direction > 0 else -1
            idx = max(exit_[other], goal[other])
            edge = (corridor[idx], corridor[idx - direction])
            ct2.insert_edge(edge[0], edge[1], 0, MAX_TIMESTEP)
            ct2.insert_edge(edge[1], edge[0], 0, MAX_TIMESTEP)
            l2 = self.travel_time(ao, edge[0], ct2, MAX_TIMESTEP) - 1
            if goal[other] >= 0:
                if l2 < len(paths[ao]) - 1:
                    return None
                c2.append(Constraint(ao, edge[0], -1, l2, ConstraintType.GLENGTH))
            else:
                if goal_time[other] >= l2:
                    return None
                c2.append(Constraint(ao, edge[0], 0, l2, ConstraintType.RANGE))
            result = Conflict()
            result.corridor_conflict(am, ao, c1, c2)
            return result

        direction = exit_[0] - max(start[0], entry[0])
        if direction == 0:
            raise ValueError("the agent does not move through the corridor")
        direction = 1 if direction > 0 else -1
        t1, t2 = self.time_ranges(
            a[0], a[1], corridor[exit_[0]], corridor[exit_[1]],
            corridor[exit_[0] - direction], corridor[exit_[1] + direction],
            goal_time[0], goal_time[1], length, node,
        )
        if t1 < 0:
            return None
        result = Conflict()
        result.corridor_conflict(
            a[0],
            a[1],
            [Constraint(a[0], corridor[exit_[0]], 0, t1, ConstraintType.RANGE)],
            [Constraint(a[1], corridor[exit_[1]], 0, t2, ConstraintType.RANGE)],
        )
        return result

    def find_corridor(self, loc1: int, loc2: int) -> list[int]:
        """The maximal chain of degree-2 cells through ``loc1`` (or ``loc2``), with its ends."""
        if self._degree(loc1) == 2:
            root = loc1
        elif loc2 >= 0 and self._degree(loc2) == 2:
            root = loc2
        else:
            return []
        cells = deque([root])
        for grow, pick in ((cells.appendleft, 0), (cells.append, -1)):
            prev = root
            curr = self.neighbors(root)[pick]
            grow(curr)
            around = self.neighbors(curr)
            while len(around) == 2:
                nxt = around[-1] if around[0] == prev else around[0]
                grow(nxt)
                prev, curr = curr, nxt
                around = self.neighbors(nxt)
        return list(cells)

    def entering_time(self, path: Path, path2: Path, t: int) -> int:
        """Timestep at which ``path`` entered the corridor it occupies at ``t``."""
        t = min(t, len(path) - 1)
        loc = path[t]
        while loc != path[0] and loc != path2[-1] and self._degree(loc) == 2:
            t -= 1
            loc = path[t]
        return t

    def time_ranges(
        self,
        a1: int,
        a2: int,
        endpoint1: int,
        endpoint2: int,
        from1: int,
        from2: int,
        lowerbound1: int,
        lowerbound2: int,
        corridor_length: int,
        node: CBSNode,
    ) -> tuple[int, int]:
        """Ends of the two range constraints, or (-1, -1) if there is no corridor conflict."""
        ct1 = self._table(a1, node)
        t0 = self.travel_time(a1, endpoint1, ct1, MAX_TIMESTEP)
        if t0 + corridor_length < lowerbound2:
            return -1, -1
        ct2 = self._table(a2, node)
        t1 = self.travel_time(a2, endpoint2, ct2, MAX_TIMESTEP)
        if t1 + corridor_length < lowerbound1:
            return -1, -1
        ct1.insert_edge(from1, endpoint1, 0, MAX_TIMESTEP)
        ct1.insert_edge(endpoint1, from1, 0, MAX_TIMESTEP)
        tp0 = self.travel_time(a1, endpoint1, ct1, t1 + corridor_length + 1)
        if tp0 - 1 < lowerbound1:
            return -1, -1
        ct2.insert_edge(from2, endpoint2, 0, MAX_TIMESTEP)
        ct2.insert_edge(endpoint2, from2, 0, MAX_TIMESTEP)
        tp1 = self.travel_time(a2, endpoint2, ct2, t0 + corridor_length + 1)
        if tp1 - 1 < lowerbound2:
            return -1, -1
        return min(tp0 - 1, t1 + corridor_length), min(tp1 - 1, t0 + corridor_length)