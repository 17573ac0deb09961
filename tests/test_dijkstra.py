import pytest

from cocbs.dijkstra import Dijkstra


def grid(rows, cols, obstacles=()):
    blocked = set(obstacles)

    def neighbors(loc):
        r, c = divmod(loc, cols)
        for dr, dc in ((-1, 0), (1, 0), (0, -1), (0, 1)):
            nr, nc = r + dr, c + dc
            if 0 <= nr < rows and 0 <= nc < cols and nr * cols + nc not in blocked:
                yield nr * cols + nc

    return Dijkstra(rows * cols, neighbors, lambda loc: loc in blocked, cache_size=2)


def test_open_grid_distances_are_manhattan():
    rows, cols = 4, 5
    planner = grid(rows, cols)
    start = 7
    sr, sc = divmod(start, cols)
    lengths = planner.search_lengths(start)
    assert len(lengths) == rows * cols
    for loc, dist in lengths.items():
        r, c = divmod(loc, cols)
        assert dist == abs(r - sr) + abs(c - sc)


def test_paths_run_from_goal_back_to_start():
    cols = 4
    planner = grid(3, cols, obstacles=[5])
    start = 0
    paths = planner.search(start)
    lengths = planner.search_lengths(start)
    assert paths.keys() == lengths.keys()
    for loc, path in paths.items():
        assert path[0] == loc
        assert path[-1] == start
        assert len(path) - 1 == lengths[loc]
        for a, b in zip(path, path[1:]):
            ar, ac = divmod(a, cols)
            br, bc = divmod(b, cols)
            assert abs(ar - br) + abs(ac - bc) == 1
        assert 5 not in path


def test_path_to_start_is_start_alone():
    assert grid(2, 2).search(3)[3] == [3]


def test_obstacles_are_excluded():
    planner = grid(3, 3, obstacles=[4])
    assert 4 not in planner.search_lengths(0)
    assert 4 not in planner.search(0)


def test_wall_forces_detour():
    planner = grid(3, 3, obstacles=[1, 4])
    assert planner.search_lengths(0)[2] == 6


def test_unreachable_locations_are_omitted():
    planner = grid(1, 3, obstacles=[1])
    assert planner.search_lengths(0) == {0: 0}


def test_distances_are_symmetric():
    planner = grid(3, 4, obstacles=[5, 6])
    free = [loc for loc in range(12) if loc not in (5, 6)]
    tables = {loc: planner.search_lengths(loc) for loc in free}
    for a in free:
        for b in free:
            assert tables[a][b] == tables[b][a]


def test_cached_lengths_are_not_shared_with_callers():
    planner = grid(2, 3)
    first = planner.search_lengths(0)
    expected = dict(first)
    first[5] = 99
    assert planner.search_lengths(0) == expected


def test_results_survive_cache_eviction():
    planner = grid(3, 3)
    before = planner.search_lengths(0)
    for start in (1, 2, 3):
        planner.search_lengths(start)
    assert planner.search_lengths(0) == before


def test_start_outside_map_is_rejected():
    with pytest.raises(ValueError):
        grid(2, 2).search(4)