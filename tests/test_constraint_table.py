import pytest

from cocbs.cbs_node import CBSNode
from cocbs.conflict import Constraint, ConstraintType
from cocbs.constraint_table import MAX_TIMESTEP, MAP_SIZE_THRESHOLD, ConstraintTable


def _chain(*constraint_lists):
    node = CBSNode(root=True)
    for constraints in constraint_lists:
        node = CBSNode(parent=node, constraints=list(constraints))
    return node


def test_vertex_range_is_half_open():
    table = ConstraintTable(5, 25)
    table.insert(7, 2, 4)
    assert not table.constrained(7, 1)
    assert table.constrained(7, 2)
    assert table.constrained(7, 3)
    assert not table.constrained(7, 4)
    assert table.latest_timestep == 4


def test_open_ended_range_uses_t_min_for_latest():
    table = ConstraintTable(5, 25)
    table.insert(3, 6, MAX_TIMESTEP)
    assert table.latest_timestep == 6
    assert table.constrained(3, 1000)


def test_edge_constraint_is_directional():
    table = ConstraintTable(5, 25)
    table.insert_edge(1, 2, 3, 4)
    assert table.edge_constrained(1, 2, 3)
    assert not table.edge_constrained(2, 1, 3)
    assert table.edge_index(1, 2) >= table.map_size


def test_negative_location_rejected():
    with pytest.raises(ValueError):
        ConstraintTable(5, 25).insert(-1, 0, 1)


def test_landmark_forbids_other_cells():
    table = ConstraintTable(5, 25)
    table.insert_landmark(4, 3)
    assert table.constrained(9, 3)
    assert not table.constrained(4, 3)
    table.insert_landmark(4, 3)
    with pytest.raises(ValueError):
        table.insert_landmark(5, 3)


@pytest.mark.parametrize("x,y,t", [(0, 2, 4), (2, 0, 4), (0, 15, 5), (15, 0, 5), (0, 4, 2)])
def test_decode_barrier_ends_at_y_with_consecutive_times(x, y, t):
    states = ConstraintTable(5, 25).decode_barrier(x, y, t)
    assert states[-1] == (y, t)
    times = [step for _, step in states]
    assert times == list(range(times[0], t + 1))


def test_build_applies_constraints_for_agent():
    node = _chain(
        [Constraint(0, 6, -1, 2, ConstraintType.VERTEX)],
        [Constraint(1, 8, -1, 3, ConstraintType.VERTEX)],
        [Constraint(0, 1, 2, 5, ConstraintType.EDGE)],
    )
    table = ConstraintTable(5, 25)
    table.build(node, 0)
    assert table.constrained(6, 2)
    assert not table.constrained(8, 3)
    assert table.edge_constrained(1, 2, 5)


def test_build_length_constraints():
    node = _chain([Constraint(0, 6, -1, 7, ConstraintType.GLENGTH)])
    table = ConstraintTable(5, 25)
    table.build(node, 0)
    assert table.length_min == 8
    assert table.latest_timestep == table.length_min

    leq = _chain([Constraint(0, 6, -1, 4, ConstraintType.LEQLENGTH)])
    own = ConstraintTable(5, 25)
    own.build(leq, 0)
    other = ConstraintTable(5, 25)
    other.build(leq, 1)
    assert own.length_max == 4
    assert other.constrained(6, 50)
    assert not other.constrained(6, 3)


def test_build_positive_vertex():
    node = _chain([Constraint(0, 6, -1, 4, ConstraintType.POSITIVE_VERTEX)])
    own = ConstraintTable(5, 25)
    own.build(node, 0)
    other = ConstraintTable(5, 25)
    other.build(node, 1)
    assert own.landmarks == {4: 6}
    assert other.constrained(6, 4)
    assert not other.constrained(6, 5)


def test_build_stops_at_root():
    root = CBSNode(root=True, parent=CBSNode(constraints=[Constraint(0, 6, -1, 2, ConstraintType.VERTEX)]))
    table = ConstraintTable(5, 25)
    table.build(root, 0)
    assert table.ct == {}


def test_holding_time():
    table = ConstraintTable(5, 25)
    table.goal_location = 3
    table.insert(3, 1, 5)
    assert table.holding_time() == 5
    table.insert_landmark(9, 8)
    assert table.holding_time() == 9


def test_copy_is_independent():
    table = ConstraintTable(5, 25)
    table.insert(2, 0, 3)
    clone = table.copy()
    clone.insert(2, 10, 11)
    assert not table.constrained(2, 10)
    assert clone.constrained(2, 1)


@pytest.mark.parametrize("map_size", [25, MAP_SIZE_THRESHOLD + 1])
def test_cat_detects_vertex_and_swap(map_size):
    table = ConstraintTable(5, map_size)
    table.build_cat(0, [None, [2, 1, 0]], 3)
    assert table.num_conflicts_for_step(1, 2, 1) == 1
    assert table.num_conflicts_for_step(3, 1, 1) == 1
    assert table.num_conflicts_for_step(3, 4, 1) == 0
    assert table.num_conflicts_for_step(4, 0, 10) == 1


def test_cat_ignores_own_path():
    table = ConstraintTable(5, 25)
    table.build_cat(0, [[2, 1, 0]], 3)
    assert table.num_conflicts_for_step(3, 1, 1) == 0


def test_update_unsatisfied_positive_constraints():
    table = ConstraintTable(5, 25)
    table.positive_constraint_sets = [[(3, 1), (4, 2)]]
    assert table.update_unsatisfied_positive_constraints([0], 3, 1) == []
    assert table.update_unsatisfied_positive_constraints([0], 5, 1) == [0]
    assert table.update_unsatisfied_positive_constraints([0], 3, 0) == [0]
    assert table.update_unsatisfied_positive_constraints([0], 4, 5) is None