"""Shortest paths on the map graph, with a small cache of distance tables."""

from __future__ import annotations

from collections import OrderedDict, deque
from collections.abc import Callable, Iterable


class Dijkstra:
    """Single-source shortest paths over the free cells of a map.

    Every move costs one step, so the search expands cells in breadth-first
    order. Locations that cannot be reached from the start are left out of
    the results.
    """

    def __init__(
        self,
        map_size: int,
        neighbors: Callable[[int], Iterable[int]],
        is_obstacle: Callable[[int], bool] = lambda loc: False,
        cache_size: int = 4,
    ) -> None:
        self.map_size = map_size
        self._is_obstacle = is_obstacle
        self._adjacency = {
            loc: list(neighbors(loc)) for loc in range(map_size) if not is_obstacle(loc)
        }
        self._cache_size = max(1, cache_size)
        self._cache: OrderedDict[int, dict[int, int]] = OrderedDict()

    def _predecessors(self, start: int) -> dict[int, int]:
        if not 0 <= start < self.map_size:
            raise ValueError(f"start location {start} is outside the map")
        previous = {start: start}
        queue = deque([start])
        while queue:
            loc = queue.popleft()
            for nxt in self._adjacency.get(loc, ()):
                if nxt not in previous:
                    previous[nxt] = loc
                    queue.append(nxt)
        return previous

    def search(self, start: int) -> dict[int, list[int]]:
        """Shortest path to every reachable free location, listed from that location back to ``start``."""
        previous = self._predecessors(start)
        paths: dict[int, list[int]] = {}
        for loc in range(self.map_size):
            if self._is_obstacle(loc) or loc not in previous:
                continue
            path = [loc]
            while path[-1] != start:
                path.append(previous[path[-1]])
            paths[loc] = path
        return paths

    def search_lengths(self, start: int) -> dict[int, int]:
        """Distance from ``start`` to every reachable free location."""
        cached = self._cache.get(start)
        if cached is not None:
            self._cache.move_to_end(start)
            return dict(cached)
        lengths = {loc: len(path) - 1 for loc, path in self.search(start).items()}
        self._cache[start] = lengths
        if len(self._cache) > self._cache_size:
            self._cache.popitem(last=False)
        return dict(lengths)