"""Windowed PIBT: priority inheritance with backtracking over a planning window."""

from __future__ import annotations

import heapq
import itertools
import random
from dataclasses import dataclass

from .agent import Agent
from .graph import Node
from .problem import Problem
from .solver import Solver


@dataclass(eq=False)
class _SearchNode:
    v: Node
    g: int
    f: int
    parent: _SearchNode | None

    @property
    def key(self) -> tuple[int, int]:
        return (self.g, self.v.id)


class WinPIBT(Solver):
    """PIBT that reserves paths for several steps ahead instead of one."""

    def __init__(self, problem: Problem, window: int = 5, softmode: bool = True,
                 rng: random.Random | None = None, time_limit: float = 0.0) -> None:
        super().__init__(problem, rng, time_limit)
        self.window = window
        self.softmode = softmode
        self.graph.reg_flg = True
        agent_num = len(self.agents)
        self.epsilon = [i / agent_num for i in range(agent_num)]
        self.eta = [0] * agent_num
        self.priority = [e + n for e, n in zip(self.epsilon, self.eta)]
        self.paths: list[list[Node]] = [[a.node] for a in self.agents]
        self.reserved_until: list[int] = [0] * agent_num
        self._index = {a: i for i, a in enumerate(self.agents)}

    # ------------------------------------------------------------------ main loop

    def solve(self) -> bool:
        self.solve_start()
        t = 0
        t_sup = 0
        while not self.problem.is_solved():
            self.allocate()
            self.update_priority()
            order = sorted(range(len(self.agents)), key=lambda k: -self.priority[k])
            for j, i in enumerate(order):
                agent = self.agents[i]
                if self.ell(i) <= t:
                    w = self.window if agent.has_task() else 1
                    if j == 0:
                        self._winpibt(agent, t + w, self.softmode)
                    else:
                        self._winpibt(agent, min(t + w, t_sup), self.softmode)
                t_sup = self.ell(i) if j == 0 else min(t_sup, self.ell(i))

            for agent, path in zip(self.agents, self.paths):
                agent.set_node(path[t + 1])

            self.problem.update()
            if self._time_over():
                break
            t += 1
        self.solve_end()
        return self.problem.is_solved()

    def allocate(self) -> None:
        """Give every agent without a task the nearest open task's goal."""
        if self.problem.allocated():
            return
        tasks = self.problem.t_open
        for agent in self.agents:
            if agent.has_task():
                continue
            if not tasks:
                agent.release_goal_only()
            else:
                v = agent.node
                nearest = min(tasks, key=lambda t: self.graph.dist(t.g_open[0], v))
                agent.goal = nearest.g_open[0]

    def ell(self, agent_id: Agent | int) -> int:
        """Last timestep up to which the agent's path is reserved.

        Accepts an agent or its position in the solver's agent list.
        """
        index = self._index[agent_id] if isinstance(agent_id, Agent) else agent_id
        return self.reserved_until[index]

    def update_priority(self) -> None:
        for i, agent in enumerate(self.agents):
            if agent.updated:
                self.eta[i] = 0
            elif agent.has_task() and agent.node is not agent.goal:
                self.eta[i] += 1
            else:
                self.eta[i] = 0
            self.priority[i] = self.eta[i] + self.epsilon[i]

    # ------------------------------------------------------------------ helpers

    def _last_node(self, i: int) -> Node:
        return self.paths[i][self.reserved_until[i]]

    def _goal_of(self, a: Agent) -> Node:
        if a.has_goal():
            return a.goal
        return self._last_node(self._index[a])

    def _find_pi_target(self, v: Node, t: int) -> Agent | None:
        for i, b in enumerate(self.agents):
            if self.reserved_until[i] < t and self._last_node(i) is v:
                return b
        return None

    def _t_max(self, t_tmp: int) -> int:
        size = max(len(p) for p in self.paths) - 1
        return max(t_tmp, size)

    def _winpibt(self, a: Agent, t_tmp: int, varphi: bool) -> bool:
        i = self._index[a]
        l = self.reserved_until[i]
        if l >= t_tmp:
            return True

        path_i = self.paths[i]
        g = self._goal_of(a)

        if varphi and self._last_node(i) is g:
            path_i.append(g)
            self.reserved_until[i] += 1
            return True

        t_max = self._t_max(t_tmp)
        path = self._get_path(a, g, l, t_max)

        if not path:
            v = path_i[l]
            path_i.extend([v] * (t_tmp - l))
            self.reserved_until[i] = t_tmp
            return False

        t = l + 1
        t_dtmp = t_tmp
        for j in range(t, t_tmp + 1):
            path_i.append(path[j - l])
            if varphi and path[j - l] is g:
                t_dtmp = j
                break

        while t <= t_dtmp:
            v = path_i[t]
            self.reserved_until[i] = t

            b = self._find_pi_target(v, t - 1)
            while b is not None:
                self._winpibt(b, self.ell(b) + 1, False)
                b = self._find_pi_target(v, t - 1)
            b = self._find_pi_target(v, t)

            if b is not None and not self._winpibt(b, t, False):
                del path_i[len(path_i) - (t_dtmp - t + 1):]
                self.reserved_until[i] = t - 1
                new_path = self._get_path(a, g, t - 1, t_max)
                if not new_path:
                    v = path_i[t - 1]
                    path_i.extend([v] * (t_dtmp - t + 1))
                    self.reserved_until[i] = t_dtmp
                    return False
                t_dtmp = t_tmp
                for j in range(t, t_dtmp + 1):
                    path_i.append(new_path[j - t + 1])
                    if varphi and new_path[j - t + 1] is g:
                        t_dtmp = j
                        break
                continue

            if v is g:
                if varphi:
                    return True
                g = self._goal_of(a)
                if t < t_dtmp:
                    new_path = self._get_path(a, g, t, t_max)
                    if new_path:
                        for j in range(t + 1, t_dtmp + 1):
                            path_i[j] = new_path[j - t]
            t += 1

        return True

    def _check_valid_path(self, index: int, path: list[Node], t1: int, t2: int) -> bool:
        for j in range(1, len(path)):
            v1, v2 = path[j - 1], path[j]
            tj = j + t1
            for i, other in enumerate(self.paths):
                if i == index:
                    continue
                k = self.reserved_until[i]
                for t in range(tj + 1, t2 + 1):
                    if k < t:
                        break
                    if other[t] is v2:
                        return False
                if len(other) - 1 < tj:
                    continue
                if other[tj] is v2:
                    return False
                if v1 is other[tj] and v2 is other[tj - 1]:
                    return False
        return True

    def _get_path(self, a: Agent, goal: Node, t1: int, t2: int) -> list[Node]:
        """Collision-free path for a from its node at t1 until t2; [] if none."""
        index = self._index[a]
        if t2 <= t1 or t2 <= self.reserved_until[index]:
            raise ValueError(
                f"invalid window, ell : {self.reserved_until[index]}, t1 : {t1}, t2 : {t2}"
            )

        start = _SearchNode(self.paths[index][t1], t1, 0, None)
        start.f = self.path_dist(start.v, goal)
        counter = itertools.count()
        heap = [(start.f, next(counter), start)]
        searched = {start.key: start}
        closed: set[tuple[int, int]] = set()
        found: _SearchNode | None = None

        while heap:
            f, _, n = heap[0]
            if n.key in closed or f != n.f:
                heapq.heappop(heap)
                continue

            if n.g >= t2:
                found = n
                break

            shortcut = self.graph.get_path(n.v, goal)
            if shortcut:
                length = t2 - n.g + 1
                if len(shortcut) < length:
                    shortcut.extend([goal] * (length - len(shortcut)))
                del shortcut[length:]
                if self._check_valid_path(index, shortcut, n.g, t2):
                    for v in shortcut[1:]:
                        n = _SearchNode(v, n.g + 1, 0, n)
                    found = n
                    break

            heapq.heappop(heap)
            closed.add(n.key)

            for m in [*self.graph.neighbor(n.v), n.v]:
                g = n.g + 1
                key = (g, m.id)
                if key in closed:
                    continue
                if not self._check_valid_path(index, [n.v, m], n.g, t2):
                    continue
                f_new = g + self.path_dist(m, goal)
                existing = searched.get(key)
                if existing is None:
                    child = _SearchNode(m, g, f_new, n)
                    searched[key] = child
                    heapq.heappush(heap, (f_new, next(counter), child))
                elif existing.f > f_new:
                    existing.g = g
                    existing.f = f_new
                    existing.parent = n
                    heapq.heappush(heap, (f_new, next(counter), existing))

        if found is None:
            return []
        path: list[Node] = []
        cursor: _SearchNode | None = found
        while cursor is not None:
            path.append(cursor.v)
            cursor = cursor.parent
        path.reverse()
        return path

    def log_str(self) -> str:
        return (
            f"[solver] type:winPIBT-{self.window}\n"
            f"[solver] softmode:{int(self.softmode)}\n"
            + super().log_str()
        )