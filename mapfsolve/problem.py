"""Problem definitions: a graph, agents and tasks evolving over timesteps."""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from collections.abc import Iterable

from .agent import Agent
from .graph import Graph
from .task import Task


class ProblemError(ValueError):
    """The problem is set up inconsistently."""


class Problem(ABC):
    """Agents on a graph with open and closed tasks."""

    def __init__(self, graph: Graph, agents: Iterable[Agent], tasks: Iterable[Task] = (),
                 rng: random.Random | None = None, timestep_limit: int = 0) -> None:
        self.graph = graph
        self.agents: list[Agent] = list(agents)
        self.t_open: list[Task] = list(tasks)
        self.t_close: list[Task] = []
        self.rng = rng if rng is not None else random.Random()
        self.timestep = 0
        self.timestep_limit = timestep_limit

    @abstractmethod
    def is_solved(self) -> bool:
        """Whether every agent has finished."""

    @abstractmethod
    def update(self) -> None:
        """Advance the problem by one timestep."""

    @abstractmethod
    def termination_time(self) -> int:
        """The timestep at which the run ended."""

    def _close_task(self, task: Task) -> None:
        if task in self.t_open:
            self.t_open.remove(task)
            self.t_close.append(task)

    def assign(self, task: Task) -> None:
        """Move task from the open list to the closed list."""
        self._close_task(task)

    def allocated(self) -> bool:
        return False

    def log_str(self) -> str:
        return f"[problem] timesteplimit:{self.timestep_limit}\n"


class MAPF(Problem):
    """One-shot path finding: agent i gets task i at the start."""

    def __init__(self, graph: Graph, agents: Iterable[Agent], tasks: Iterable[Task],
                 rng: random.Random | None = None, timestep_limit: int = 0) -> None:
        super().__init__(graph, agents, tasks, rng, timestep_limit)
        if len(self.agents) != len(self.t_open):
            raise ProblemError("this is not a MAPF instance, |A| != |T|")
        for agent, task in zip(self.agents, self.t_open):
            agent.task = task
            agent.goal = task.g_open[0]
            agent.update_hist()

    def is_solved(self) -> bool:
        if self.t_open:
            return False
        return all(a.goal is a.node for a in self.agents)

    def allocated(self) -> bool:
        return True

    def update(self) -> None:
        self.timestep += 1
        for agent in self.agents:
            task = agent.task
            if task is not None:
                task.update(agent.node)
                if task.completed():
                    agent.release_task_only()
                    self._close_task(task)
            elif agent.node is not agent.goal:
                new_task = Task([agent.goal])
                agent.task = new_task
                agent.goal = new_task.g_open[0]
                self.t_open.append(new_task)
            agent.update_hist()

    def termination_time(self) -> int:
        return self.timestep

    def log_str(self) -> str:
        parts = [
            super().log_str(),
            "[problem] type:MAPF\n",
            f"[problem] agentnum:{len(self.agents)}\n",
            self.graph.log_str(),
        ]
        parts.extend(task.log_str() for task in self.t_close)
        for agent in self.agents:
            at_goal = 0
            for status in reversed(agent.hist):
                if status.v is not agent.goal:
                    break
                at_goal += 1
            path_size = self.termination_time() - at_goal + 1
            parts.append(agent.log_str())
            parts.append(f"size:{path_size}\n")
        return "".join(parts)