import pytest

from mapfsolve.agent import Agent, InvalidMoveError
from mapfsolve.graph import Node
from mapfsolve.task import Task


@pytest.fixture
def nodes():
    n1, n2, n3 = Node(1), Node(2), Node(3)
    n1.neighbors = [n2]
    n2.neighbors = [n1]
    return n1, n2, n3


def test_move_to_neighbor_records_before_node(nodes):
    n1, n2, _ = nodes
    agent = Agent(n1)
    assert agent.before_node is None
    agent.set_node(n2)
    assert agent.node is n2
    assert agent.before_node is n1


def test_stay_is_allowed(nodes):
    n1, _, _ = nodes
    agent = Agent(n1)
    agent.set_node(n1)
    assert agent.node is n1
    assert agent.before_node is n1


def test_move_to_non_neighbor_raises(nodes):
    n1, _, n3 = nodes
    agent = Agent(n1)
    with pytest.raises(InvalidMoveError):
        agent.set_node(n3)
    assert agent.node is n1


def test_update_hist_records_goal_and_task(nodes):
    n1, n2, _ = nodes
    agent = Agent(n1)
    agent.update_hist()
    task = Task([n2])
    agent.goal = n2
    agent.task = task
    agent.update_hist()
    assert agent.hist[0].g is None and agent.hist[0].tau is None
    assert agent.hist[1].v is n1
    assert agent.hist[1].g is n2
    assert agent.hist[1].tau is task


def test_release_variants(nodes):
    n1, n2, _ = nodes
    agent = Agent(n1)
    agent.goal, agent.task = n2, Task([n2])
    agent.release_task_only()
    assert agent.has_goal() and not agent.has_task()
    agent.task = Task([n2])
    agent.release_goal_only()
    assert not agent.has_goal() and agent.has_task()
    agent.goal = n2
    agent.release_task()
    assert not agent.has_goal() and not agent.has_task()


def test_explicit_id():
    agent = Agent(agent_id=7)
    assert agent.id == 7


def test_log_str(nodes):
    n1, n2, _ = nodes
    agent = Agent(n1, agent_id=7)
    agent.update_hist()
    agent.goal = n2
    agent.set_node(n2)
    agent.update_hist()
    assert agent.log_str() == "[agent] id:7\npath:1,2,\ngoal:*,2,\n"