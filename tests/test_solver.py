import pytest

from mapfsolve.agent import Agent, AgentStatus
from mapfsolve.graph import Grid, Node, manhattan_dist
from mapfsolve.problem import MAPF
from mapfsolve.solver import ConsistencyError, Solver, formalize_path, get_max_length_paths
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


def make_solver(rows, pairs):
    grid = make_grid(rows)
    agents = [Agent(grid.get_node(s), agent_id=k) for k, (s, _) in enumerate(pairs)]
    tasks = [Task([grid.get_node(g)]) for _, g in pairs]
    problem = MAPF(grid, agents, tasks)
    return grid, agents, Solver(problem)


def test_warshall_floyd_on_line():
    _, _, solver = make_solver(["...."], [(0, 3)])
    solver.warshall_floyd()
    for i in range(4):
        for j in range(4):
            assert solver.dists[i][j] == abs(i - j)


def test_path_dist_matches_manhattan_and_caches():
    grid, _, solver = make_solver(["...", "...", "..."], [(0, 8)])
    s, g = grid.get_node(0), grid.get_node(8)
    assert solver.path_dist(s, g) == manhattan_dist(s, g)
    assert solver.dists[s.index][g.index] == manhattan_dist(s, g)
    assert solver.dists[g.index][s.index] == manhattan_dist(s, g)
    assert solver.path_dist(s, g) == manhattan_dist(s, g)
    assert solver.path_dist(s, s) == 0


def test_path_dist_with_prohibited():
    grid, _, solver = make_solver(["..", ".."], [(0, 3)])
    s, g = grid.get_node(0), grid.get_node(3)
    blocked = [grid.get_node(1)]
    expected = len(grid.get_path(s, g, blocked)) - 1
    assert solver.path_dist(s, g, blocked) == expected
    assert solver.path_dist(s, g, [grid.get_node(1), grid.get_node(2)]) == -1


def test_solve_end_detects_vertex_conflict():
    grid, agents, solver = make_solver(["..."], [(0, 2), (2, 0)])
    middle = grid.get_node(1)
    for agent in agents:
        agent.hist.append(AgentStatus(middle, None, None))
    solver.solve_start()
    with pytest.raises(ConsistencyError):
        solver.solve_end()


def test_solve_end_detects_size_difference():
    grid, agents, solver = make_solver(["..."], [(0, 2), (2, 0)])
    agents[0].hist.append(AgentStatus(grid.get_node(1), None, None))
    solver.solve_start()
    with pytest.raises(ConsistencyError):
        solver.solve_end()


def test_solve_end_accepts_valid_histories():
    _, agents, solver = make_solver(["..."], [(0, 2), (2, 0)])
    solver.solve_start()
    solver.solve_end()
    assert solver.elapsed_time >= 0
    assert all(len(a.hist) == 1 for a in agents)


def test_formalize_path():
    a, b, c = Node(0), Node(1), Node(2)
    paths = [[a], [a, b, c]]
    assert get_max_length_paths(paths) == 3
    formalize_path(paths)
    assert paths[0] == [a, a, a]
    assert paths[1] == [a, b, c]
    assert get_max_length_paths([]) == 0


def test_log_str_reports_unsolved():
    _, _, solver = make_solver(["..."], [(0, 2)])
    text = solver.log_str()
    assert text.startswith("[solver] solved:0\n[solver] elapsed:")
    assert "[problem] type:MAPF\n" in text