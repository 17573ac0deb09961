"""Admissible high-level heuristics built from conflict graphs."""

from __future__ import annotations

import time
from collections.abc import Callable
from enum import Enum
from typing import Optional

from .cbs_node import CBSNode
from .conflict import ConflictPriority
from .vertex_cover import (
    DEFAULT_DP_NODE_THRESHOLD,
    MAX_COST,
    Deadline,
    VertexCoverTimeout,
    incremental_vertex_cover,
    minimum_vertex_cover,
    weighted_vertex_cover,
)


class HeuristicType(Enum):
    ZERO = "zero"
    CG = "cg"
    DG = "dg"
    WDG = "wdg"


DependencyCheck = Callable[[int, int, CBSNode], bool]
TwoAgentSolver = Callable[[int, int, CBSNode, bool], int]
TieBreaker = Callable[[CBSNode], int]


class CBSHeuristic:
    """Computes h-values for constraint tree nodes.

    ``CG`` uses the cardinal conflict graph, ``DG`` the pairwise dependency
    graph and ``WDG`` the weighted dependency graph. Whether two agents depend
    on each other and the cost of solving two agents jointly are supplied by
    the ``dependent`` and ``solve_two_agents`` callables.
    """

    def __init__(
        self,
        num_of_agents: int,
        heuristic: HeuristicType = HeuristicType.ZERO,
        *,
        target_reasoning: bool = False,
        disjoint_splitting: bool = False,
        multi_agent_replanning: bool = False,
        mutex_reasoning: bool = False,
        always_solve_two_agents: bool = False,
        dp_node_threshold: int = DEFAULT_DP_NODE_THRESHOLD,
        dependent: Optional[DependencyCheck] = None,
        solve_two_agents: Optional[TwoAgentSolver] = None,
        meetings_tie_breaker: Optional[TieBreaker] = None,
        clock: Callable[[], float] = time.process_time,
    ) -> None:
        self.num_of_agents = num_of_agents
        self.type = heuristic
        self.target_reasoning = target_reasoning
        self.disjoint_splitting = disjoint_splitting
        self.multi_agent_replanning = multi_agent_replanning
        self.mutex_reasoning = mutex_reasoning
        self.always_solve_two_agents = always_solve_two_agents
        self.dp_node_threshold = dp_node_threshold
        self._dependent_check = dependent
        self._two_agent_solver = solve_two_agents
        self._meetings_tie_breaker = meetings_tie_breaker
        self._clock = clock
        self.time_limit = float("inf")
        self._deadline = Deadline(self.time_limit, clock)
        self.lookup_table: dict[tuple, int] = {}
        self.num_memoization = 0
        self.num_merge_mdds = 0
        self.num_solve_2agent_problems = 0
        self.runtime_build_dependency_graph = 0.0
        self.runtime_solve_mvc = 0.0

    # -- quick heuristics -------------------------------------------------

    def compute_quick_heuristics(self, node: CBSNode) -> None:
        """Set the path-max h-value and the tie-breaking value of a non-root node."""
        parent = node.parent
        if parent is None:
            raise ValueError("quick heuristics need a node with a parent")
        node.h_val = max(0, parent.g_val + parent.h_val - node.g_val)
        pairs = {(min(c.a1, c.a2), max(c.a1, c.a2)) for c in node.unknown_conf}
        node.tie_breaking = len(node.conflicts) + len(pairs)
        self.copy_conflict_graph(node, parent)
        if node.root and self._meetings_tie_breaker is not None:
            node.meetings_tb = self._meetings_tie_breaker(node)

    # -- informed heuristics ----------------------------------------------

    @property
    def _incremental_allowed(self) -> bool:
        return not (
            self.target_reasoning or self.multi_agent_replanning or self.disjoint_splitting
        )

    def compute_informed_heuristics(self, node: CBSNode, time_limit: float) -> bool:
        """Raise ``node.h_val`` to the heuristic value; False if the node should be pruned."""
        node.h_computed = True
        self.time_limit = time_limit
        self._deadline = Deadline(time_limit, self._clock)
        n = self.num_of_agents
        try:
            if self.type is HeuristicType.ZERO:
                h = 0
            elif self.type is HeuristicType.CG:
                graph, num_edges = self.build_cardinal_conflict_graph(node)
                h = self._cover(graph, num_edges, node)
            elif self.type is HeuristicType.DG:
                built = self._build_dependence_graph(node)
                if built is None:
                    return False
                graph, num_edges = built
                h = self._cover(graph, num_edges, node)
            else:
                graph = self._build_weighted_dependency_graph(node)
                if graph is None:
                    return False
                started = self._clock()
                try:
                    h = weighted_vertex_cover(graph, n, self._deadline, self.dp_node_threshold)
                finally:
                    self.runtime_solve_mvc += self._clock() - started
        except VertexCoverTimeout:
            return False
        if h < 0:
            return False
        node.h_val = max(h, node.h_val)
        return True

    def _cover(self, graph: list[int], num_edges: int, node: CBSNode) -> int:
        started = self._clock()
        try:
            if node.parent is None or not self._incremental_allowed:
                return minimum_vertex_cover(
                    graph, self.num_of_agents, self._deadline, self.dp_node_threshold
                )
            return incremental_vertex_cover(
                graph,
                node.parent.h_val,
                self.num_of_agents,
                num_edges,
                self._deadline,
                self.dp_node_threshold,
            )
        finally:
            self.runtime_solve_mvc += self._clock() - started

    # -- graphs -----------------------------------------------------------

    def build_cardinal_conflict_graph(self, node: CBSNode) -> tuple[list[int], int]:
        """Graph with an edge between agents in a cardinal conflict, and its edge count."""
        started = self._clock()
        n = self.num_of_agents
        graph = [0] * (n * n)
        num_edges = 0
        for conflict in node.conflicts:
            if conflict.priority is not ConflictPriority.CARDINAL:
                continue
            a1, a2 = conflict.a1, conflict.a2
            if not graph[a1 * n + a2]:
                graph[a1 * n + a2] = 1
                graph[a2 * n + a1] = 1
                num_edges += 1
        self.runtime_build_dependency_graph += self._clock() - started
        return graph, num_edges

    def build_conflict_graph(self, node: CBSNode) -> list[int]:
        """Graph with an edge between every pair of agents in a classified conflict."""
        n = self.num_of_agents
        graph = [0] * (n * n)
        for conflict in node.conflicts:
            graph[conflict.a1 * n + conflict.a2] = 1
            graph[conflict.a2 * n + conflict.a1] = 1
        return graph

    def mvc_on_all_conflicts(self, node: CBSNode) -> int:
        """Minimum vertex cover of the graph of all classified conflicts."""
        deadline = Deadline(self.time_limit, self._clock)
        return minimum_vertex_cover(
            self.build_conflict_graph(node), self.num_of_agents, deadline, self.dp_node_threshold
        )

    def copy_conflict_graph(self, child: CBSNode, parent: CBSNode) -> None:
        """Inherit the parent's dependency edges between agents whose paths did not change."""
        if self.type not in (HeuristicType.DG, HeuristicType.WDG):
            return
        n = self.num_of_agents
        changed = {agent for agent, _ in child.paths}
        for key, weight in parent.conflict_graph.items():
            if key // n not in changed and key % n not in changed:
                child.conflict_graph[key] = weight

    # -- dependency graphs ------------------------------------------------

    def _lookup_key(self, a1: int, a2: int, node: CBSNode) -> tuple:
        return (
            a1,
            a2,
            frozenset(node.constraints_on(a1)),
            frozenset(node.constraints_on(a2)),
        )

    def _dependent(self, a1: int, a2: int, node: CBSNode) -> bool:
        if self._dependent_check is None:
            raise ValueError("a dependency check is needed for this heuristic")
        self.num_merge_mdds += 1
        return bool(self._dependent_check(a1, a2, node))

    def _solve_two_agents(self, a1: int, a2: int, node: CBSNode, cardinal: bool) -> int:
        if self._two_agent_solver is None:
            raise ValueError("a two-agent solver is needed for this heuristic")
        self.num_solve_2agent_problems += 1
        result = self._two_agent_solver(a1, a2, node, cardinal)
        if result < 0:
            raise ValueError(f"two-agent solver returned a negative cost {result}")
        return result

    def _fill_graph(self, node: CBSNode) -> tuple[list[int], int]:
        n = self.num_of_agents
        graph = [0] * (n * n)
        num_edges = 0
        for i in range(n):
            for j in range(i + 1, n):
                weight = node.conflict_graph.get(i * n + j, 0)
                if weight > 0:
                    graph[i * n + j] = weight
                    graph[j * n + i] = weight
                    num_edges += 1
        return graph, num_edges

    def _build_dependence_graph(self, node: CBSNode) -> Optional[tuple[list[int], int]]:
        started = self._clock()
        n = self.num_of_agents
        try:
            for conflict in node.conflicts:
                a1, a2 = min(conflict.a1, conflict.a2), max(conflict.a1, conflict.a2)
                idx = a1 * n + a2
                if conflict.priority is ConflictPriority.CARDINAL:
                    node.conflict_graph[idx] = 1
                elif idx not in node.conflict_graph:
                    key = self._lookup_key(a1, a2, node)
                    if key in self.lookup_table:
                        self.num_memoization += 1
                        node.conflict_graph[idx] = self.lookup_table[key]
                    else:
                        node.conflict_graph[idx] = 1 if self._dependent(a1, a2, node) else 0
                        self.lookup_table[key] = node.conflict_graph[idx]
                if self._deadline.expired():
                    return None
            return self._fill_graph(node)
        finally:
            self.runtime_build_dependency_graph += self._clock() - started

    def _build_weighted_dependency_graph(self, node: CBSNode) -> Optional[list[int]]:
        started = self._clock()
        n = self.num_of_agents
        try:
            for conflict in node.conflicts:
                a1, a2 = min(conflict.a1, conflict.a2), max(conflict.a1, conflict.a2)
                idx = a1 * n + a2
                if idx in node.conflict_graph:
                    continue
                key = self._lookup_key(a1, a2, node)
                if key in self.lookup_table:
                    self.num_memoization += 1
                    node.conflict_graph[idx] = self.lookup_table[key]
                elif self.always_solve_two_agents:
                    node.conflict_graph[idx] = self._solve_two_agents(a1, a2, node, False)
                    self.lookup_table[key] = node.conflict_graph[idx]
                else:
                    cardinal = conflict.priority is ConflictPriority.CARDINAL
                    if not cardinal and not self.mutex_reasoning:
                        cardinal = self._dependent(a1, a2, node)
                    if cardinal:
                        node.conflict_graph[idx] = self._solve_two_agents(a1, a2, node, True)
                    else:
                        node.conflict_graph[idx] = 0
                    self.lookup_table[key] = node.conflict_graph[idx]
                if node.conflict_graph[idx] == MAX_COST:
                    return None
                if self._deadline.expired():
                    return None
            graph, _ = self._fill_graph(node)
            return graph
        finally:
            self.runtime_build_dependency_graph += self._clock() - started