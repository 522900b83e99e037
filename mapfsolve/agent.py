"""Agents that move over a graph and keep a history of their states."""

from __future__ import annotations

import itertools
from dataclasses import dataclass

from .graph import Node
from .task import Task


class InvalidMoveError(ValueError):
    """An agent was moved to a node that is not adjacent to its current one."""


@dataclass
class AgentStatus:
    """Snapshot of an agent at one timestep."""

    v: Node | None
    g: Node | None
    tau: Task | None


class Agent:
    """An agent with a current node, an optional goal and an optional task."""

    _ids = itertools.count()

    def __init__(self, node: Node | None = None, agent_id: int | None = None) -> None:
        self.id = next(Agent._ids) if agent_id is None else agent_id
        self.node: Node | None = None
        self.before_node: Node | None = None
        self.goal: Node | None = None
        self.task: Task | None = None
        self.updated = False
        self.hist: list[AgentStatus] = []
        if node is not None:
            self.set_node(node)

    def set_node(self, v: Node) -> None:
        """Move to v, which must be the current node or one of its neighbours."""
        if self.node is not None and v is not self.node and v not in self.node.neighbors:
            raise InvalidMoveError(
                f"agent {self.id} cannot move from {self.node.id} to {v.id}"
            )
        self.before_node = self.node
        self.node = v

    def update_hist(self) -> None:
        self.hist.append(AgentStatus(self.node, self.goal, self.task))

    def has_goal(self) -> bool:
        return self.goal is not None

    def has_task(self) -> bool:
        return self.task is not None

    def release_task(self) -> None:
        self.goal = None
        self.task = None

    def release_task_only(self) -> None:
        self.task = None

    def release_goal_only(self) -> None:
        self.goal = None

    def log_str(self) -> str:
        path = "".join(f"{s.v.id}," for s in self.hist)
        goals = "".join(f"{s.g.id}," if s.g is not None else "*," for s in self.hist)
        return f"[agent] id:{self.id}\npath:{path}\ngoal:{goals}\n"