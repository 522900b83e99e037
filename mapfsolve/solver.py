"""Base class shared by the search-based solvers."""

from __future__ import annotations

import random
import time
from collections.abc import Iterable

from .graph import Node
from .problem import Problem

_INF = 100000


class ConsistencyError(RuntimeError):
    """The produced plan is invalid or a shortest path was not optimal."""


def get_max_length_paths(paths: list[list[Node]]) -> int:
    """Length of the longest path, 0 for none."""
    return max((len(p) for p in paths), default=0)


def formalize_path(paths: list[list[Node]]) -> None:
    """Pad every path with its last node up to the longest length."""
    max_length = get_max_length_paths(paths)
    for path in paths:
        path.extend([path[-1]] * (max_length - len(path)))


class Solver:
    """Common state and utilities for solvers working on a Problem."""

    def __init__(self, problem: Problem, rng: random.Random | None = None,
                 time_limit: float = 0.0) -> None:
        self.problem = problem
        self.rng = rng if rng is not None else random.Random()
        self.time_limit = time_limit
        self.graph = problem.graph
        self.agents = problem.agents
        node_num = len(self.graph.nodes)
        self.dists = [[0] * node_num for _ in range(node_num)]
        self.elapsed_time = 0.0
        self._start = 0.0

    def solve_start(self) -> None:
        self._start = time.monotonic()

    def _time_over(self) -> bool:
        return bool(self.time_limit) and time.monotonic() - self._start > self.time_limit

    def solve_end(self) -> None:
        """Record elapsed time and check the agents' histories for conflicts."""
        self.elapsed_time = (time.monotonic() - self._start) * 1000.0
        paths = [[s.v for s in a.hist] for a in self.agents]
        for i, path_i in enumerate(paths):
            for j in range(i + 1, len(paths)):
                path_j = paths[j]
                if len(path_i) != len(path_j):
                    raise ConsistencyError("path size is different")
                for t in range(len(path_i)):
                    if t > 0:
                        prev = path_i[t - 1]
                        if path_i[t] is not prev and path_i[t] not in prev.neighbors:
                            raise ConsistencyError(
                                f"path is not connected at t={t}, agent {i}, "
                                f"from {prev.id}, to {path_i[t].id}"
                            )
                    if path_i[t] is path_j[t]:
                        raise ConsistencyError(f"vertex conflict at t={t} between {i} and {j}")
                    if t > 0 and path_i[t] is path_j[t - 1] and path_i[t - 1] is path_j[t]:
                        raise ConsistencyError(f"swap conflict at t={t} between {i} and {j}")

    def warshall_floyd(self) -> None:
        """Fill the distance table with all-pairs shortest path lengths."""
        nodes = self.graph.nodes
        n = len(nodes)
        dists = [[_INF] * n for _ in range(n)]
        for i, node in enumerate(nodes):
            for v in self.graph.neighbor(node):
                dists[i][v.index] = 1
            dists[i][i] = 0
        for k in range(n):
            row_k = dists[k]
            for i in range(n):
                row_i = dists[i]
                d_ik = row_i[k]
                for j in range(n):
                    if row_i[j] > d_ik + row_k[j]:
                        row_i[j] = d_ik + row_k[j]
        self.dists = dists

    def path_dist(self, s: Node, g: Node, prohibited: Iterable[Node] | None = None) -> int:
        """Shortest path length from s to g; cached unless nodes are prohibited."""
        if s is g:
            return 0
        if prohibited is not None:
            return len(self.graph.get_path(s, g, prohibited)) - 1

        g_index = g.index
        cached = self.dists[s.index][g_index]
        if cached != 0:
            return cached

        path = self.graph.get_path(s, g)
        dist = len(path) - 1
        cost = dist
        for v in path:
            index = v.index
            d = self.dists[index][g_index]
            if index != g_index and d == 0:
                self.dists[index][g_index] = cost
                if not self.graph.directed:
                    self.dists[g_index][index] = cost
                cost -= 1
            elif d == cost:
                break
            else:
                raise ConsistencyError(
                    f"{s.id} -> {g.id}, {s.pos} -> {g.pos}, not optimal path is obtained"
                )
        return dist

    def log_str(self) -> str:
        return (
            f"[solver] solved:{int(self.problem.is_solved())}\n"
            f"[solver] elapsed:{int(self.elapsed_time)}\n"
            f"[solver] makespan:{self.problem.termination_time()}\n"
            + self.problem.log_str()
        )