import random

import pytest

from mapfsolve.agent import Agent
from mapfsolve.problem import MAPF
from mapfsolve.simplegrid import SimpleGrid
from mapfsolve.task import Task
from mapfsolve.winpibt import WinPIBT


def _grid(tmp_path, rows):
    text = f"type octile\nheight {len(rows)}\nwidth {len(rows[0])}\nmap\n" + "\n".join(rows) + "\n"
    path = tmp_path / "test.map"
    path.write_text(text)
    return SimpleGrid(path, random.Random(0))


def _problem(grid, pairs):
    agents = [Agent(grid.get_node(s)) for s, _ in pairs]
    tasks = [Task([grid.get_node(g)]) for _, g in pairs]
    return MAPF(grid, agents, tasks, random.Random(0))


def test_single_agent_takes_shortest_path(tmp_path):
    grid = _grid(tmp_path, ["...", "...", "..."])
    problem = _problem(grid, [(0, 8)])
    solver = WinPIBT(problem, window=3, rng=random.Random(1), time_limit=10)
    assert solver.solve() is True
    agent = problem.agents[0]
    assert agent.node is grid.get_node(8)
    start, goal = grid.get_node(0), grid.get_node(8)
    assert len(agent.hist) - 1 == solver.path_dist(start, goal)


def test_two_agents_swap_sides(tmp_path):
    grid = _grid(tmp_path, ["...", "...", "..."])
    problem = _problem(grid, [(0, 2), (2, 0)])
    solver = WinPIBT(problem, window=3, rng=random.Random(2), time_limit=10)
    assert solver.solve() is True
    for agent, goal in zip(problem.agents, (2, 0)):
        assert agent.node is grid.get_node(goal)
    assert len(problem.agents[0].hist) == len(problem.agents[1].hist)
    for a, b in zip(problem.agents[0].hist, problem.agents[1].hist):
        assert a.v is not b.v


def test_reserved_paths_cover_run(tmp_path):
    grid = _grid(tmp_path, ["....", "....", "...."])
    problem = _problem(grid, [(0, 11), (3, 8), (8, 3)])
    solver = WinPIBT(problem, window=2, softmode=False, rng=random.Random(3), time_limit=10)
    assert solver.solve() is True
    end = problem.termination_time()
    for i, agent in enumerate(problem.agents):
        assert solver.ell(i) == solver.ell(agent)
        assert solver.ell(i) >= end
        assert len(solver.paths[i]) == solver.ell(i) + 1
        assert [s.v for s in agent.hist] == solver.paths[i][:end + 1]


def test_paths_are_connected(tmp_path):
    grid = _grid(tmp_path, ["....", ".@..", "...."])
    problem = _problem(grid, [(0, 11), (11, 0)])
    solver = WinPIBT(problem, window=4, rng=random.Random(4), time_limit=10)
    assert solver.solve() is True
    for path in solver.paths:
        for prev, curr in zip(path, path[1:]):
            assert curr is prev or curr in prev.neighbors


def test_update_priority_increases_for_agents_away_from_goal(tmp_path):
    grid = _grid(tmp_path, ["...", "...", "..."])
    problem = _problem(grid, [(0, 8), (4, 4)])
    solver = WinPIBT(problem)
    solver.update_priority()
    assert solver.eta == [1, 0]
    assert solver.priority[0] == pytest.approx(1 + solver.epsilon[0])
    assert solver.priority[1] == pytest.approx(solver.epsilon[1])
    solver.update_priority()
    assert solver.eta[0] == 2


def test_allocate_keeps_mapf_goals(tmp_path):
    grid = _grid(tmp_path, ["...", "...", "..."])
    problem = _problem(grid, [(0, 8), (2, 6)])
    solver = WinPIBT(problem)
    solver.allocate()
    assert [a.goal for a in problem.agents] == [grid.get_node(8), grid.get_node(6)]


def test_initial_state(tmp_path):
    grid = _grid(tmp_path, ["...", "...", "..."])
    problem = _problem(grid, [(0, 8), (2, 6)])
    solver = WinPIBT(problem)
    assert solver.window == 5
    assert solver.softmode is True
    assert solver.paths == [[grid.get_node(0)], [grid.get_node(2)]]
    assert solver.ell(0) == 0 and solver.ell(problem.agents[1]) == 0
    assert solver.epsilon == [0.0, 0.5]


def test_log_str_header(tmp_path):
    grid = _grid(tmp_path, ["...", "...", "..."])
    problem = _problem(grid, [(0, 8)])
    solver = WinPIBT(problem, window=3, softmode=False, time_limit=10)
    solver.solve()
    text = solver.log_str()
    assert text.startswith("[solver] type:winPIBT-3\n[solver] softmode:0\n[solver] solved:1\n")
    assert "[problem] type:MAPF\n" in text