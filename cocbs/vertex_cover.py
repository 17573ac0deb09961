"""Exact and approximate vertex covers of small conflict graphs.

Graphs are flat row-major ``n * n`` sequences of non-negative edge weights;
an entry greater than zero is an edge.
"""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Optional

MAX_COST = (2**31 - 1) // 2
DEFAULT_DP_NODE_THRESHOLD = 8


class VertexCoverTimeout(TimeoutError):
    """Raised when a cover computation runs past its deadline."""


@dataclass
class Deadline:
    """A time budget measured on ``clock`` from ``start``."""

    time_limit: float
    clock: Callable[[], float] = time.process_time
    start: Optional[float] = None

    def __post_init__(self) -> None:
        if self.start is None:
            self.start = self.clock()

    @property
    def elapsed(self) -> float:
        return self.clock() - self.start

    def expired(self) -> bool:
        return self.elapsed > self.time_limit


def _components(graph: Sequence[int], n: int) -> Iterator[tuple[list[int], list[int]]]:
    """Yield each connected component as (vertices, heaviest incident edge per vertex)."""
    done = [False] * n
    for i in range(n):
        if done[i]:
            continue
        done[i] = True
        queue = deque([i])
        members: list[int] = []
        widest_edges: list[int] = []
        while queue:
            j = queue.popleft()
            members.append(j)
            widest = 0
            for k in range(n):
                weight = graph[j * n + k]
                if weight <= 0:
                    weight = graph[k * n + j]
                if weight > 0:
                    widest = max(widest, weight)
                    if not done[k]:
                        done[k] = True
                        queue.append(k)
            widest_edges.append(widest)
        yield members, widest_edges


def minimum_vertex_cover(
    graph: Sequence[int],
    num_nodes: int,
    deadline: Deadline,
    dp_node_threshold: int = DEFAULT_DP_NODE_THRESHOLD,
) -> int:
    """Size of a minimum vertex cover, summed over connected components.

    Components larger than ``dp_node_threshold`` are approximated by greedy
    matching. Raises VertexCoverTimeout when the deadline passes.
    """
    total = 0
    for members, _ in _components(graph, num_nodes):
        size = len(members)
        if size == 1:
            continue
        if size == 2:
            total += 1
            continue
        sub = [0] * (size * size)
        num_edges = 0
        for j, u in enumerate(members):
            for k in range(j + 1, size):
                v = members[k]
                sub[j * size + k] = graph[u * num_nodes + v]
                sub[k * size + j] = graph[v * num_nodes + u]
                if sub[j * size + k] > 0:
                    num_edges += 1
        if size > dp_node_threshold:
            total += greedy_matching(sub, size)
            if deadline.expired():
                raise VertexCoverTimeout("minimum vertex cover ran out of time")
        else:
            for k in range(1, size):
                if k_vertex_cover(sub, size, num_edges, k, size, deadline):
                    total += k
                    break
                if deadline.expired():
                    raise VertexCoverTimeout("minimum vertex cover ran out of time")
    return total


def incremental_vertex_cover(
    graph: Sequence[int],
    old_mvc: int,
    cols: int,
    num_edges: int,
    deadline: Deadline,
    dp_node_threshold: int = DEFAULT_DP_NODE_THRESHOLD,
) -> int:
    """Minimum vertex cover size, given that it differs from ``old_mvc`` by at most one."""
    if old_mvc < 0:
        raise ValueError(f"previous cover size must be non-negative, got {old_mvc}")
    if num_edges < 2:
        return num_edges
    num_nodes = sum(
        1 for i in range(cols) if any(w > 0 for w in graph[i * cols:(i + 1) * cols])
    )
    if num_nodes > dp_node_threshold:
        return minimum_vertex_cover(graph, cols, deadline, dp_node_threshold)
    if k_vertex_cover(graph, num_nodes, num_edges, old_mvc - 1, cols, deadline):
        return old_mvc - 1
    if k_vertex_cover(graph, num_nodes, num_edges, old_mvc, cols, deadline):
        return old_mvc
    return old_mvc + 1


def k_vertex_cover(
    graph: Sequence[int],
    num_nodes: int,
    num_edges: int,
    k: int,
    cols: int,
    deadline: Deadline,
) -> bool:
    """Whether a vertex cover of at most ``k`` vertices exists.

    Answers True once the deadline has passed.
    """
    if deadline.expired():
        return True
    if num_edges == 0:
        return True
    if num_edges > k * num_nodes - k:
        return False

    edge = next(
        ((i, j) for i in range(cols - 1) for j in range(i + 1, cols) if graph[i * cols + j] > 0),
        (0, 0),
    )
    for endpoint in edge:
        reduced = list(graph)
        remaining = num_edges
        for j in range(cols):
            if reduced[endpoint * cols + j] > 0:
                reduced[endpoint * cols + j] = 0
                reduced[j * cols + endpoint] = 0
                remaining -= 1
        if k_vertex_cover(reduced, num_nodes - 1, remaining, k - 1, cols, deadline):
            return True
    return False


def greedy_matching(graph: Sequence[int], cols: int) -> int:
    """Total weight of a greedy matching that always takes the heaviest free edge."""
    total = 0
    used = [False] * cols
    while True:
        best_weight = 0
        best_edge = None
        for i in range(cols):
            if used[i]:
                continue
            for j in range(i + 1, cols):
                if not used[j] and best_weight < graph[i * cols + j]:
                    best_weight = graph[i * cols + j]
                    best_edge = (i, j)
        if best_edge is None:
            return total
        total += best_weight
        used[best_edge[0]] = used[best_edge[1]] = True


def _weighted_cover_dp(
    weights: Sequence[int], ranges: Sequence[int], deadline: Deadline
) -> int:
    """Minimum weighted vertex cover of one component by branch and bound."""
    num = len(ranges)
    values = [0] * num
    best = MAX_COST

    def search(i: int, total: int) -> int:
        nonlocal best
        if total >= best:
            return MAX_COST
        if deadline.expired():
            raise VertexCoverTimeout("weighted vertex cover ran out of time")
        if i == num:
            best = total
            return total
        if ranges[i] == 0:
            result = search(i + 1, total)
            best = min(best, result)
            return best

        min_cost = 0
        for j in range(i):
            required = weights[j * num + i]
            if min_cost + values[j] < required:
                min_cost = required - values[j]

        best_cost = -1
        for cost in range(min_cost, ranges[i] + 1):
            values[i] = cost
            result = search(i + 1, total + cost)
            if result < best:
                best = result
                best_cost = cost
        if best_cost >= 0:
            values[i] = best_cost
        return best

    return search(0, 0)


def weighted_vertex_cover(
    graph: Sequence[int],
    num_nodes: int,
    deadline: Deadline,
    dp_node_threshold: int = DEFAULT_DP_NODE_THRESHOLD,
) -> int:
    """Minimum weighted vertex cover: integer vertex values whose sum over each edge
    reaches the edge weight, minimising the total.

    Components larger than ``dp_node_threshold`` are approximated by greedy
    matching. Raises VertexCoverTimeout when the deadline passes.
    """
    total = 0
    for members, ranges in _components(graph, num_nodes):
        num = len(members)
        if num == 1:
            continue
        if num == 2:
            u, v = members
            total += max(graph[u * num_nodes + v], graph[v * num_nodes + u])
            continue
        weights = [0] * (num * num)
        for j, u in enumerate(members):
            for k in range(j + 1, num):
                v = members[k]
                weights[j * num + k] = max(graph[u * num_nodes + v], graph[v * num_nodes + u])
        if num > dp_node_threshold:
            total += greedy_matching(weights, num)
        else:
            total += _weighted_cover_dp(weights, ranges, deadline)
        if deadline.expired():
            raise VertexCoverTimeout("weighted vertex cover ran out of time")
    return total