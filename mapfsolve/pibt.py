"""Priority Inheritance with Backtracking."""

from __future__ import annotations

import random

from .agent import Agent
from .graph import Node
from .problem import Problem
from .solver import Solver


class PIBT(Solver):
    """Plans one step at a time; blocked agents inherit priority and backtrack."""

    def __init__(self, problem: Problem, rng: random.Random | None = None,
                 time_limit: float = 0.0) -> None:
        super().__init__(problem, rng, time_limit)
        self.graph.reg_flg = True
        agent_num = len(self.agents)
        self.epsilon = [i / agent_num for i in range(agent_num)]
        self.eta = [0] * agent_num
        self.priority = [e + n for e, n in zip(self.epsilon, self.eta)]

    def solve(self) -> bool:
        self.solve_start()
        while not self.problem.is_solved():
            self.allocate()
            self.update()
            self.problem.update()
            if self._time_over():
                break
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

    def update(self) -> None:
        """Decide every agent's next node for one timestep."""
        self.update_priority()
        priorities = list(self.priority)
        close_node: list[Node] = []
        open_agent = list(self.agents)
        while open_agent:
            index = max(range(len(priorities)), key=priorities.__getitem__)
            agent = open_agent[index]
            candidates = self._create_candidates(agent, close_node)
            self._priority_inheritance(agent, candidates, close_node, open_agent, priorities)

    def update_priority(self) -> None:
        for i, agent in enumerate(self.agents):
            if agent.updated:
                self.eta[i] = 0
            elif agent.has_task() and agent.node is not agent.goal:
                self.eta[i] += 1
            else:
                self.eta[i] = 0
            self.priority[i] = self.eta[i] + self.epsilon[i]

    def get_density(self, a: Agent) -> float:
        """Crowdedness of the neighbourhood around a."""
        density = 0.0
        v = a.node
        ci = self.graph.neighbor(v)
        for b in self.agents:
            if b is a:
                continue
            u = b.node
            d = self.graph.dist(u, v)
            if d > 2:
                continue
            tmp = 2 - d
            cj = self.graph.neighbor(u)
            for w in cj:
                if w is v:
                    tmp += 2
                elif self.graph.dist(w, u) == 1:
                    tmp += 1
            density += tmp / len(cj)
        return density / len(ci)

    def _create_candidates(self, a: Agent, close_node: list[Node],
                           extra: Node | None = None) -> list[Node]:
        def allowed(v: Node) -> bool:
            return v not in close_node and v is not extra

        candidates = [v for v in self.graph.neighbor(a.node) if allowed(v)]
        if allowed(a.node):
            candidates.append(a.node)
        return candidates

    def _priority_inheritance(self, a: Agent, candidates: list[Node], close_node: list[Node],
                              open_agent: list[Agent], priorities: list[float]) -> bool:
        index = open_agent.index(a)
        del priorities[index]
        del open_agent[index]

        while candidates:
            target = self._choose_node(a, candidates)
            close_node.append(target)
            blocker = next((b for b in open_agent if b.node is target), None)
            if blocker is None:
                a.set_node(target)
                return True
            blocker_candidates = self._create_candidates(blocker, close_node, a.node)
            if self._priority_inheritance(blocker, blocker_candidates, close_node,
                                          open_agent, priorities):
                a.set_node(target)
                return True
            candidates[:] = [u for u in candidates if u not in close_node]

        a.set_node(a.node)
        return False

    def _choose_node(self, a: Agent, candidates: list[Node]) -> Node:
        if not candidates:
            raise ValueError("no candidate nodes to choose from")
        options = list(candidates)
        self.rng.shuffle(options)

        if not a.has_goal():
            return a.node if a.node in options else options[0]

        goal = a.goal
        path = self.graph.get_path(a.node, goal)
        if len(path) > 1 and path[1] in options:
            return path[1]

        best: list[Node] = []
        min_cost = 10000
        for v in options:
            cost = self.path_dist(v, goal)
            if cost < min_cost:
                min_cost = cost
                best = [v]
            elif cost == min_cost:
                best.append(v)

        if len(best) == 1:
            return best[0]
        for v in best:
            if not any(b.node is v for b in self.agents):
                return v
        return best[0]

    def log_str(self) -> str:
        return "[solver] type:PIBT\n" + super().log_str()