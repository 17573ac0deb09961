import pytest

from cocbs.conflict import Constraint, ConstraintType
from cocbs.propagation import MDD, ConstraintPropagation, MDDNode


def chain(locations, cost=None):
    """An MDD holding a single path through ``locations``."""
    cost = len(locations) - 1 if cost is None else cost
    mdd = MDD(goal_location=locations[-1])
    previous = None
    for level, loc in enumerate(locations):
        node = MDDNode(loc, level, cost)
        if previous is not None:
            previous.children.append(node)
            node.parents.append(previous)
        mdd.levels.append([node])
        previous = node
    return mdd


def test_goal_at_finds_goal_node():
    mdd = chain([0, 1, 2])
    assert mdd.goal_at(2) is mdd.levels[2][0]
    assert mdd.goal_at(1) is None
    assert mdd.goal_at(5) is None


def test_vertex_collision_is_node_mutex_both_ways():
    a, b = chain([5]), chain([5])
    cp = ConstraintPropagation(a, b)
    cp.init_mutex()
    na, nb = a.levels[0][0], b.levels[0][0]
    assert cp.has_fwd_mutex(na, nb)
    assert cp.has_fwd_mutex(nb, na)
    assert cp.has_mutex(na, nb)


def test_swap_gives_edge_mutex_and_forward_propagation():
    a, b = chain([0, 1]), chain([1, 0])
    cp = ConstraintPropagation(a, b)
    cp.init_mutex()
    a0, a1 = a.levels[0][0], a.levels[1][0]
    b0, b1 = b.levels[0][0], b.levels[1][0]
    assert cp.has_fwd_mutex((a0, a1), (b0, b1))
    assert not cp.has_fwd_mutex(a1, b1)
    assert not cp.mutexed(1, 1)
    cp.fwd_mutex_prop()
    assert cp.has_fwd_mutex(a1, b1)
    assert cp.mutexed(1, 1)
    assert cp.feasible(1, 1)


def test_backward_propagation_reaches_roots():
    a, b = chain([0, 1]), chain([1, 0])
    cp = ConstraintPropagation(a, b)
    cp.init_mutex()
    cp.fwd_mutex_prop()
    a0, b0 = a.levels[0][0], b.levels[0][0]
    assert not cp.has_mutex(a0, b0)
    cp.bwd_mutex_prop()
    assert cp.has_mutex(a0, b0)
    assert not cp.has_fwd_mutex(a0, b0)


def test_disjoint_paths_have_no_mutex():
    a, b = chain([0, 1]), chain([2, 3])
    cp = ConstraintPropagation(a, b)
    cp.init_mutex()
    cp.fwd_mutex_prop()
    cp.bwd_mutex_prop()
    assert cp.fwd_mutexes == set()
    assert cp.bwd_mutexes == set()
    assert not cp.mutexed(1, 1)
    assert not cp.feasible(1, 1)


def test_generate_constraints_for_mutexed_goals():
    a, b = chain([0, 1]), chain([1, 0])
    cp = ConstraintPropagation(a, b)
    cp.init_mutex()
    cp.fwd_mutex_prop()
    cons_0, cons_1 = cp.generate_constraints(1, 1)
    assert cons_0 == [Constraint(0, 1, -1, 1, ConstraintType.VERTEX)]
    assert cons_1 == [Constraint(1, 0, -1, 1, ConstraintType.VERTEX)]


def test_generate_constraints_when_other_agent_crosses_goal():
    a = chain([0, 1])
    b = chain([3, 4, 1, 2])
    cp = ConstraintPropagation(a, b)
    cp.init_mutex()
    cp.fwd_mutex_prop()
    cons_0, cons_1 = cp.generate_constraints(1, 3)
    assert cons_0 == [Constraint(0, 1, -1, 1, ConstraintType.GLENGTH)]
    assert cons_1 == [Constraint(1, 1, -1, 2, ConstraintType.VERTEX)]


def test_generate_constraints_reversed_order_swaps_result():
    a = chain([0, 1])
    b = chain([3, 4, 1, 2])
    forward = ConstraintPropagation(a, b).generate_constraints(1, 3)
    backward = ConstraintPropagation(b, a).generate_constraints(3, 1)
    assert backward == (forward[1], forward[0])


def test_mutexed_rejects_levels_beyond_mdd():
    cp = ConstraintPropagation(chain([0, 1]), chain([2, 3]))
    with pytest.raises(ValueError):
        cp.mutexed(5, 6)


def test_feasible_rejects_missing_goal():
    cp = ConstraintPropagation(chain([0, 1]), chain([2, 3]))
    with pytest.raises(ValueError):
        cp.feasible(0, 1)