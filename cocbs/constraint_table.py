"""Per-agent table of constraints and conflict avoidance data."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Optional

from .cbs_node import CBSNode
from .conflict import ConstraintType

MAX_TIMESTEP = (2**31 - 1) // 2
MAP_SIZE_THRESHOLD = 10000


class ConstraintTable:
    """Constraints on one agent, indexed by location or edge.

    Edges are stored under an index beyond the map cells. Time ranges are
    half-open: ``t_min <= t < t_max``. Paths are sequences of locations.
    """

    def __init__(self, num_col: int = 0, map_size: int = 0) -> None:
        self.num_col = num_col
        self.map_size = map_size
        self.length_min = 0
        self.length_max = MAX_TIMESTEP
        self.goal_location = -1
        self.latest_timestep = 0
        self.ct: dict[int, list[tuple[int, int]]] = {}
        self.landmarks: dict[int, int] = {}
        self.positive_constraint_sets: list[list[tuple[int, int]]] = []
        self.cat: list[set[int]] = []
        self.cat_size = 0

    @property
    def _small_map(self) -> bool:
        return self.map_size < MAP_SIZE_THRESHOLD

    def edge_index(self, from_loc: int, to_loc: int) -> int:
        return (1 + from_loc) * self.map_size + to_loc

    def insert_edge(self, from_loc: int, to_loc: int, t_min: int, t_max: int) -> None:
        self.insert(self.edge_index(from_loc, to_loc), t_min, t_max)

    def insert(self, loc: int, t_min: int, t_max: int) -> None:
        if loc < 0:
            raise ValueError(f"negative location {loc}")
        self.ct.setdefault(loc, []).append((t_min, t_max))
        if t_max < MAX_TIMESTEP and t_max > self.latest_timestep:
            self.latest_timestep = t_max
        elif t_max == MAX_TIMESTEP and t_min > self.latest_timestep:
            self.latest_timestep = t_min

    def insert_landmark(self, loc: int, t: int) -> None:
        existing = self.landmarks.get(t)
        if existing is None:
            self.landmarks[t] = loc
            if t > self.latest_timestep:
                self.latest_timestep = t
        elif existing != loc:
            raise ValueError(f"agent already has to be at {existing} at timestep {t}")

    def decode_barrier(self, x: int, y: int, t: int) -> list[tuple[int, int]]:
        """Location-time pairs on a barrier, in increasing order of time."""
        n = self.num_col
        x1, y1 = divmod(x, n)
        x2, y2 = divmod(y, n)
        if x1 == x2:
            if y1 < y2:
                return [(x1 * n + y2 - i, t - i) for i in range(min(y2 - y1, t), -1, -1)]
            return [(x1 * n + y2 + i, t - i) for i in range(min(y1 - y2, t), -1, -1)]
        if x1 < x2:
            return [((x2 - i) * n + y1, t - i) for i in range(min(x2 - x1, t), -1, -1)]
        return [((x2 + i) * n + y1, t - i) for i in range(min(x1 - x2, t), -1, -1)]

    def constrained(self, loc: int, t: int) -> bool:
        if loc < 0:
            raise ValueError(f"negative location {loc}")
        if loc < self.map_size:
            landmark = self.landmarks.get(t)
            if landmark is not None and landmark != loc:
                return True
        return any(t_min <= t < t_max for t_min, t_max in self.ct.get(loc, ()))

    def edge_constrained(self, curr_loc: int, next_loc: int, next_t: int) -> bool:
        return self.constrained(self.edge_index(curr_loc, next_loc), next_t)

    def copy(self) -> "ConstraintTable":
        """A new table with the same constraints; the avoidance table is not copied."""
        other = ConstraintTable(self.num_col, self.map_size)
        other.length_min = self.length_min
        other.length_max = self.length_max
        other.goal_location = self.goal_location
        other.latest_timestep = self.latest_timestep
        other.ct = {loc: list(ranges) for loc, ranges in self.ct.items()}
        other.landmarks = dict(self.landmarks)
        other.positive_constraint_sets = [list(s) for s in self.positive_constraint_sets]
        return other

    def build(self, node: CBSNode, agent: int) -> None:
        """Add the constraints on ``agent`` from ``node`` up to the nearest root."""
        curr = node
        while not curr.root and curr.parent is not None:
            a, x, y, t, kind = curr.constraints[0]
            if kind is ConstraintType.LEQLENGTH:
                if agent == a:
                    self.length_max = min(self.length_max, t)
                else:
                    self.insert(x, t, MAX_TIMESTEP)
                if len(curr.constraints) == 2:
                    a, x, y, t, kind = curr.constraints[-1]
                    if kind is ConstraintType.GLENGTH and a == agent:
                        self.length_min = max(self.length_min, t + 1)
                    elif kind is ConstraintType.RANGE and a == agent:
                        self.insert(x, y, t + 1)
            elif kind is ConstraintType.GLENGTH:
                if a == agent:
                    self.length_min = max(self.length_min, t + 1)
            elif kind is ConstraintType.POSITIVE_VERTEX:
                if agent == a:
                    self.insert_landmark(x, t)
                else:
                    self.insert(x, t, t + 1)
            elif kind is ConstraintType.POSITIVE_EDGE:
                if agent == a:
                    self.insert_landmark(x, t - 1)
                    self.insert_landmark(y, t)
                else:
                    self.insert(x, t - 1, t)
                    self.insert(y, t, t + 1)
                    self.insert_edge(y, x, t, t + 1)
            elif kind is ConstraintType.VERTEX:
                if a == agent:
                    for constraint in curr.constraints:
                        self.insert(constraint.loc1, constraint.t, constraint.t + 1)
            elif kind is ConstraintType.EDGE:
                if a == agent:
                    self.insert_edge(x, y, t, t + 1)
            elif kind is ConstraintType.BARRIER:
                if a == agent:
                    for constraint in curr.constraints:
                        for loc, step in self.decode_barrier(
                            constraint.loc1, constraint.loc2, constraint.t
                        ):
                            self.insert(loc, step, step + 1)
            elif kind is ConstraintType.RANGE:
                if a == agent:
                    self.insert(x, y, t + 1)
            curr = curr.parent
        if self.latest_timestep < self.length_min:
            self.latest_timestep = self.length_min
        if self.length_max < MAX_TIMESTEP and self.latest_timestep < self.length_max:
            self.latest_timestep = self.length_max

    def _cat_slot(self, timestep: int) -> set[int]:
        while len(self.cat) <= timestep:
            self.cat.append(set())
        return self.cat[timestep]

    def build_cat(
        self, agent: int, paths: Sequence[Optional[Sequence[int]]], cat_size: int
    ) -> None:
        """Build the conflict avoidance table from the other agents' paths."""
        if self.length_min >= MAX_TIMESTEP or self.length_min > self.length_max:
            return
        self.cat_size = max(cat_size, self.latest_timestep)
        self.cat = [set() for _ in range(self.cat_size)]
        for ag, path in enumerate(paths):
            if ag == agent or not path:
                continue
            if self._small_map:
                for timestep, loc in enumerate(path):
                    self._cat_slot(timestep).add(loc)
            else:
                for timestep in range(1, len(path)):
                    slot = self._cat_slot(timestep)
                    slot.add(path[timestep])
                    slot.add(self.edge_index(path[timestep], path[timestep - 1]))
            goal = path[-1]
            for timestep in range(len(path), self.cat_size):
                self.cat[timestep].add(goal)

    def num_conflicts_for_step(self, curr_id: int, next_id: int, next_timestep: int) -> int:
        """1 if moving from ``curr_id`` to ``next_id`` hits another agent, else 0."""
        if not self.cat:
            return 0
        if next_timestep >= len(self.cat):
            return int(next_id in self.cat[-1])
        slot = self.cat[next_timestep]
        if self._small_map:
            swap = (
                curr_id != next_id
                and next_timestep > 0
                and next_id in self.cat[next_timestep - 1]
                and curr_id in slot
            )
            return int(next_id in slot or swap)
        return int(next_id in slot or self.edge_index(curr_id, next_id) in slot)

    def holding_time(self) -> int:
        """Earliest timestep from which the agent can stay at its goal."""
        result = self.length_min
        for _, t_max in self.ct.get(self.goal_location, ()):
            result = max(result, t_max)
        for t, loc in self.landmarks.items():
            if loc != self.goal_location:
                result = max(result, t + 1)
        return result

    def update_unsatisfied_positive_constraints(
        self, old_set: Sequence[int], location: int, timestep: int
    ) -> Optional[list[int]]:
        """Positive constraint sets still unsatisfied after visiting ``location``.

        Returns None if one of the sets can no longer be satisfied.
        """
        remaining: list[int] = []
        for i in old_set:
            states = self.positive_constraint_sets[i]
            first_t, last_t = states[0][1], states[-1][1]
            if first_t <= timestep <= last_t:
                if (location, timestep) not in states:
                    remaining.append(i)
            elif last_t < timestep:
                return None
            else:
                remaining.append(i)
        return remaining