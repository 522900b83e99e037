import pytest

from mapfsolve.agent import Agent
from mapfsolve.graph import Grid, Node
from mapfsolve.problem import MAPF, Problem, ProblemError
from mapfsolve.task import Task


def make_grid(rows):
    height, width = len(rows), len(rows[0])
    nodes = {
        j * width + i: Node(j * width + i, pos=(j, i))
        for j, row in enumerate(rows)
        for i, cell in enumerate(row)
        if cell == "."
    }
    for nid, node in nodes.items():
        j, i = node.pos
        cand = []
        if j > 0:
            cand.append(nid - width)
        if i > 0:
            cand.append(nid - 1)
        if i < width - 1:
            cand.append(nid + 1)
        if j < height - 1:
            cand.append(nid + width)
        node.neighbors = [nodes[c] for c in cand if c in nodes]
    return Grid(width, height, list(nodes.values()))


@pytest.fixture
def line():
    grid = make_grid([".."])
    n0, n1 = grid.get_node(0), grid.get_node(1)
    agent = Agent(n0, agent_id=0)
    task = Task([n1])
    return grid, agent, task, MAPF(grid, [agent], [task])


def test_problem_is_abstract():
    with pytest.raises(TypeError):
        Problem(make_grid(["."]), [])


def test_mismatched_sizes_raise():
    grid = make_grid([".."])
    with pytest.raises(ProblemError):
        MAPF(grid, [Agent(grid.get_node(0))], [])


def test_init_assigns_tasks(line):
    grid, agent, task, problem = line
    assert agent.task is task
    assert agent.goal is grid.get_node(1)
    assert len(agent.hist) == 1
    assert problem.allocated()
    assert not problem.is_solved()


def test_reaching_goal_solves(line):
    grid, agent, task, problem = line
    agent.set_node(grid.get_node(1))
    problem.update()
    assert problem.t_close == [task]
    assert problem.t_open == []
    assert problem.is_solved()
    assert problem.termination_time() == problem.timestep
    assert len(agent.hist) == 2


def test_leaving_goal_creates_new_task(line):
    grid, agent, task, problem = line
    agent.set_node(grid.get_node(1))
    problem.update()
    agent.set_node(grid.get_node(0))
    problem.update()
    assert len(problem.t_open) == 1
    assert problem.t_open[0].g_open == [grid.get_node(1)]
    assert agent.task is problem.t_open[0]
    assert not problem.is_solved()


def test_assign_closes_task(line):
    _, _, task, problem = line
    problem.assign(task)
    assert task in problem.t_close
    assert task not in problem.t_open


def test_log_str(line):
    grid, agent, _, problem = line
    agent.set_node(grid.get_node(1))
    problem.update()
    text = problem.log_str()
    assert text.startswith("[problem] timesteplimit:0\n[problem] type:MAPF\n[problem] agentnum:1\n")
    assert grid.log_str() in text
    assert agent.log_str() in text