import random

import pytest

from mapfsolve.path_table import (
    MAX_TIMESTEP,
    NO_AGENT,
    PathTable,
    PathTableWC,
    format_path,
    is_same_path,
)


def test_format_path():
    assert format_path([1, 2, 3]) == "1\t2\t3\t"
    assert format_path([]) == ""


def test_is_same_path():
    assert is_same_path([1, 2], [1, 2])
    assert not is_same_path([1, 2], [1, 3])
    assert not is_same_path([1], [1, 1])


def test_insert_sets_table_and_goal():
    pt = PathTable(6)
    pt.insert_path(0, [1, 2, 3])
    assert pt.table[2][1] == 0
    assert pt.table[3][0] == NO_AGENT
    assert pt.goals[3] == 2
    assert pt.makespan == 2


def test_vertex_edge_and_target_conflicts():
    pt = PathTable(6)
    pt.insert_path(0, [1, 2, 3])
    assert pt.constrained(0, 2, 1)  # vertex
    assert pt.constrained(2, 1, 1)  # edge swap
    assert pt.constrained(4, 3, 5)  # target
    assert not pt.constrained(2, 4, 1)
    assert not pt.constrained(4, 5, 1)


def test_delete_restores_empty_state():
    pt = PathTable(6)
    pt.insert_path(0, [1, 2, 3])
    pt.insert_path(1, [4, 5])
    pt.delete_path(0, [1, 2, 3])
    assert pt.goals[3] == MAX_TIMESTEP
    assert pt.makespan == 1
    assert not pt.constrained(0, 2, 1)


def test_delete_wrong_agent_raises():
    pt = PathTable(4)
    pt.insert_path(0, [1, 2])
    with pytest.raises(ValueError):
        pt.delete_path(1, [1, 2])


def test_duplicate_goal_raises():
    pt = PathTable(4)
    pt.insert_path(0, [1, 2])
    with pytest.raises(ValueError):
        pt.insert_path(1, [3, 2])


def test_conflicting_agents():
    pt = PathTable(6)
    pt.insert_path(7, [1, 2, 3])
    assert pt.get_conflicting_agents(0, 0, 2, 1) == {7}
    assert pt.get_conflicting_agents(0, 2, 1, 1) == {7}
    assert pt.get_conflicting_agents(0, 4, 5, 1) == set()


def test_get_agents():
    pt = PathTable(5)
    pt.insert_path(0, [1, 2])
    pt.insert_path(1, [3, 1, 4])
    assert pt.get_agents(1) == {0, 1}
    assert pt.get_agents(-1) == set()


def test_sample_agents_subset_and_bounded():
    pt = PathTable(8)
    for agent in range(5):
        pt.insert_path(agent, [agent + 2] * agent + [0] + [agent + 2])
    everyone = pt.get_agents(0)
    sample = pt.sample_agents(3, 0, random.Random(1))
    assert sample <= everyone
    assert 0 < len(sample) <= 3


def test_sample_agents_only_time_zero_is_empty():
    pt = PathTable(4)
    pt.insert_path(0, [1, 2])
    assert pt.sample_agents(3, 1, random.Random(0)) == set()


def test_holding_time():
    pt = PathTable(5)
    pt.insert_path(0, [1, 2, 3])
    pt.insert_path(1, [4, 4, 2, 0])
    assert pt.get_holding_time(2, 0) == len([4, 4, 2])
    assert pt.get_holding_time(0, 7) == 7
    assert PathTable(0).get_holding_time(0, 3) == 3


def test_wc_collisions():
    pt = PathTableWC(6)
    pt.insert_path(0, [1, 2, 3])
    pt.insert_path(1, [4, 2, 5])
    assert pt.get_num_of_collisions(0, 2, 1) == 2
    assert pt.has_collisions(0, 2, 1)
    assert pt.has_edge_collisions(2, 1, 1)
    assert not pt.has_edge_collisions(0, 1, 1)
    assert not pt.has_collisions(0, 0, 1)


def test_wc_future_collisions_and_last_timestep():
    pt = PathTableWC(6)
    pt.insert_path(0, [1, 2, 1, 3])
    assert pt.get_future_num_of_collisions(1, 0) == 1
    assert pt.get_last_collision_timestep(1) == 2
    assert pt.get_last_collision_timestep(4) == -1


def test_wc_agent_with_target_and_reinsert():
    pt = PathTableWC(6)
    path = [1, 2, 3]
    pt.insert_path(4, path)
    assert pt.get_agent_with_target(3, 5) == 4
    assert pt.get_agent_with_target(3, 1) is None
    pt.delete_path(4)
    assert pt.get_agent_with_target(3, 5) is None
    pt.insert_path(4)
    assert pt.get_agent_with_target(3, 5) == 4


def test_wc_clear():
    pt = PathTableWC(6)
    pt.insert_path(0, [1, 2])
    pt.clear()
    assert pt.table == [] and pt.goals == [] and pt.paths == {}
    assert not pt.has_collisions(1, 2, 1)