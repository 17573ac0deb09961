# cocbs

Building blocks for cooperative conflict-based search (CBS) in multi-agent
path finding, where pairs of agents meet to carry out a task. The package
provides the data structures and reasoning pieces of the high level of such a
search; map access, single-agent planning and MDD construction are supplied
by the caller as plain callables and objects.

The package has no dependencies outside the standard library.

## Installation

    pip install .

For running the tests:

    pip install ".[test]"
    pytest

## Modules

### `cocbs.conflict`

- `ConstraintType`, `ConflictType`, `ConflictPriority` enums.
  For `ConflictType` and `ConflictPriority` a smaller value means higher
  priority.
- `Constraint`, a named tuple `(agent, loc1, loc2, t, type)` printed as
  `<agent,loc1,loc2,t,code>`.
- `Conflict`, filled in with `vertex_conflict`, `edge_conflict`,
  `target_conflict` or `corridor_conflict`. `lower_priority_than(other, rng)`
  compares cardinality, then type, then `secondary_priority`, and breaks
  remaining ties at random. Two conflicts are equal when they have the same
  agents and constraints, in either order.

### `cocbs.cbs_node`

- `CBSNode`, a dataclass for a constraint-tree node: g/h values, constraints,
  new paths, classified (`conflicts`) and unclassified (`unknown_conf`)
  conflicts, a `conflict_graph` dict, and meeting and assignment fields.
  `clear()` drops the conflict lists and graph, `format_conflict_graph(n)`
  describes its non-zero edges, and `constraints_on(agent)` collects the
  constraints that bind an agent on the way to the root.

### `cocbs.constraint_table`

- `ConstraintTable(num_col, map_size)` holds half-open time ranges on
  locations and edges, positive (landmark) constraints and length bounds.
  `build(node, agent)` adds the constraints from a `CBSNode` up to the
  nearest root; `constrained` and `edge_constrained` query it;
  `holding_time()` gives the earliest step the agent can stay at its goal.
  `build_cat(agent, paths, cat_size)` and `num_conflicts_for_step` form a
  conflict-avoidance table from other agents' paths (paths are sequences of
  locations). `copy()` returns an independent table without the avoidance
  data.
- `MAX_TIMESTEP` and `MAP_SIZE_THRESHOLD` constants.

### `cocbs.vertex_cover`

Graphs are flat row-major `n * n` lists of edge weights.

- `Deadline(time_limit, clock, start)` with `expired()`.
- `minimum_vertex_cover`, `incremental_vertex_cover`, `k_vertex_cover`,
  `weighted_vertex_cover` and `greedy_matching`. Components larger than the
  `dp_node_threshold` are approximated by greedy matching. Running past the
  deadline raises `VertexCoverTimeout`, except in `k_vertex_cover`, which
  answers `True`.

### `cocbs.dijkstra`

- `Dijkstra(map_size, neighbors, is_obstacle, cache_size)` computes
  unit-cost shortest paths. `search(start)` maps each reachable free
  location to its path, listed from that location back to `start`;
  `search_lengths(start)` maps it to its distance and keeps recent results
  in a small least-recently-used cache.

### `cocbs.heuristic`

- `HeuristicType` (`ZERO`, `CG`, `DG`, `WDG`) and `CBSHeuristic`.
  `compute_quick_heuristics(node)` sets the path-max h-value and tie-breaking
  value of a child; `compute_informed_heuristics(node, time_limit)` raises the
  h-value from the cardinal conflict graph, dependency graph or weighted
  dependency graph, returning `False` when the node should be pruned. The
  dependency test and the two-agent solver are passed in as the `dependent`
  and `solve_two_agents` callables; results are memoised in `lookup_table`.

### `cocbs.corridor`

- `CorridorStrategy` and `CorridorReasoning(neighbors, travel_time,
  initial_constraints, strategy, is_single)`. `run(conflict, paths, node)`
  returns a corridor, pseudo-corridor or corridor-target conflict that
  replaces the given one, or `None`.
- `corridor_length(path, t_start, loc_end)` and `blocked(path, constraint)`.

### `cocbs.propagation`

- `MDDNode`, `MDD` (with `goal_at(level)`) and `ConstraintPropagation(mdd0,
  mdd1)`, which marks node and edge mutexes between two MDDs
  (`init_mutex`), propagates them forward and backward, and from the mutex
  of two goals derives constraints with `generate_constraints`.

### `cocbs.unique`

- `unique_vector(values)` returns sorted distinct floats, merging values
  within floating-point spacing, keeping each infinity once and every NaN at
  the end.

## Example

    from cocbs.conflict import Conflict
    from cocbs.constraint_table import ConstraintTable
    from cocbs.dijkstra import Dijkstra
    from cocbs.vertex_cover import Deadline, minimum_vertex_cover

    conflict = Conflict()
    conflict.vertex_conflict(0, 1, 12, 3)
    print(conflict)

    table = ConstraintTable(num_col=8, map_size=64)
    table.insert(12, 3, 4)
    assert table.constrained(12, 3)
    assert not table.constrained(12, 4)

    triangle = [0, 1, 1,
                1, 0, 1,
                1, 1, 0]
    assert minimum_vertex_cover(triangle, 3, Deadline(1.0)) == 2

    line = Dijkstra(3, lambda loc: [n for n in (loc - 1, loc + 1) if 0 <= n < 3])
    assert line.search_lengths(0) == {0: 0, 1: 1, 2: 2}

## What the package does not do

It contains no complete search driver: there is no high-level loop that
expands nodes, no single-agent low-level planner, no building of MDDs from a
map, no task assignment, no loading of map or scenario files, and no
command-line program. Those parts are left to the caller, who connects them
through the callables and objects the classes above accept.