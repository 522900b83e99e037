"""Space-time occupancy tables built from agent paths."""

from __future__ import annotations

import random
from collections.abc import Sequence

NO_AGENT = -1
MAX_TIMESTEP = 1073741823

Path = Sequence[int]


def format_path(path: Path) -> str:
    """Render a path as tab-terminated locations."""
    return "".join(f"{location}\t" for location in path)


def is_same_path(p1: Path, p2: Path) -> bool:
    """Return True if both paths visit the same locations in the same order."""
    return list(p1) == list(p2)


def _recompute_makespan(goals: list[int]) -> int:
    return max((t for t in goals if t < MAX_TIMESTEP), default=0)


class PathTable:
    """Occupancy table with at most one agent per location and timestep."""

    def __init__(self, map_size: int = 0) -> None:
        self.table: list[list[int]] = [[] for _ in range(map_size)]
        self.goals: list[int] = [MAX_TIMESTEP] * map_size
        self.makespan = 0

    def insert_path(self, agent_id: int, path: Path) -> None:
        if not path:
            return
        for t, location in enumerate(path):
            row = self.table[location]
            if len(row) <= t:
                row.extend([NO_AGENT] * (t + 1 - len(row)))
            row[t] = agent_id
        goal = path[-1]
        if self.goals[goal] != MAX_TIMESTEP:
            raise ValueError(f"location {goal} is already the goal of another path")
        self.goals[goal] = len(path) - 1
        self.makespan = max(self.makespan, len(path) - 1)

    def delete_path(self, agent_id: int, path: Path) -> None:
        if not path:
            return
        for t, location in enumerate(path):
            row = self.table[location]
            if len(row) <= t or row[t] != agent_id:
                raise ValueError(f"agent {agent_id} is not at {location} at time {t}")
            row[t] = NO_AGENT
        self.goals[path[-1]] = MAX_TIMESTEP
        if self.makespan == len(path) - 1:
            self.makespan = _recompute_makespan(self.goals)

    def constrained(self, from_loc: int, to_loc: int, to_time: int) -> bool:
        """Return True if moving from_loc -> to_loc arriving at to_time collides."""
        if self.table:
            to_row = self.table[to_loc]
            from_row = self.table[from_loc]
            if len(to_row) > to_time and to_row[to_time] != NO_AGENT:
                return True
            if (0 < to_time <= len(to_row) and len(from_row) > to_time
                    and to_row[to_time - 1] != NO_AGENT
                    and from_row[to_time] == to_row[to_time - 1]):
                return True
        if self.goals and self.goals[to_loc] <= to_time:
            return True
        return False

    def get_conflicting_agents(self, agent_id: int, from_loc: int, to_loc: int,
                               to_time: int) -> set[int]:
        """Agents that collide with the move from_loc -> to_loc at to_time."""
        agents: set[int] = set()
        if not self.table:
            return agents
        to_row = self.table[to_loc]
        from_row = self.table[from_loc]
        if len(to_row) > to_time and to_row[to_time] != NO_AGENT:
            agents.add(to_row[to_time])
        if (0 < to_time <= len(to_row) and len(from_row) > to_time
                and to_row[to_time - 1] != NO_AGENT
                and from_row[to_time] == to_row[to_time - 1]):
            agents.add(from_row[to_time])
        return agents

    def get_agents(self, loc: int) -> set[int]:
        """All agents that ever occupy loc."""
        if loc < 0:
            return set()
        return {agent for agent in self.table[loc] if agent >= 0}

    def sample_agents(self, neighbor_size: int, loc: int, rng: random.Random) -> set[int]:
        """Agents visiting loc, collected outward from a random timestep."""
        agents: set[int] = set()
        if loc < 0 or not self.table[loc]:
            return agents
        row = self.table[loc]
        t_max = len(row) - 1
        while row[t_max] == NO_AGENT and t_max > 0:
            t_max -= 1
        if t_max == 0:
            return agents
        t0 = rng.randrange(t_max)
        if row[t0] != NO_AGENT:
            agents.add(row[t0])
        delta = 1
        while t0 - delta >= 0 or t0 + delta <= t_max:
            for t in (t0 - delta, t0 + delta):
                if 0 <= t <= t_max and row[t] != NO_AGENT:
                    agents.add(row[t])
                    if len(agents) == neighbor_size:
                        return agents
            delta += 1
        return agents

    def get_holding_time(self, location: int, earliest_timestep: int = 0) -> int:
        """Earliest time from which location stays free forever."""
        if not self.table or len(self.table[location]) <= earliest_timestep:
            return earliest_timestep
        row = self.table[location]
        rst = len(row)
        while rst > earliest_timestep and row[rst - 1] == NO_AGENT:
            rst -= 1
        return rst


class PathTableWC:
    """Occupancy table that allows several agents per location and timestep."""

    def __init__(self, map_size: int = 0) -> None:
        self.table: list[list[list[int]]] = [[] for _ in range(map_size)]
        self.goals: list[int] = [MAX_TIMESTEP] * map_size
        self.paths: dict[int, Path] = {}
        self.makespan = 0

    def insert_path(self, agent_id: int, path: Path | None = None) -> None:
        """Insert a path; without one, re-insert the agent's stored path."""
        if path is None:
            if agent_id not in self.paths:
                raise KeyError(f"no stored path for agent {agent_id}")
            path = self.paths[agent_id]
        self.paths[agent_id] = path
        if not path:
            return
        for t, location in enumerate(path):
            row = self.table[location]
            while len(row) <= t:
                row.append([])
            row[t].append(agent_id)
        goal = path[-1]
        if self.goals[goal] != MAX_TIMESTEP:
            raise ValueError(f"location {goal} is already the goal of another path")
        self.goals[goal] = len(path) - 1
        self.makespan = max(self.makespan, len(path) - 1)

    def delete_path(self, agent_id: int) -> None:
        path = self.paths[agent_id]
        if not path:
            return
        for t, location in enumerate(path):
            row = self.table[location]
            if len(row) <= t or agent_id not in row[t]:
                raise ValueError(f"agent {agent_id} is not at {location} at time {t}")
            row[t].remove(agent_id)
        self.goals[path[-1]] = MAX_TIMESTEP
        if self.makespan == len(path) - 1:
            self.makespan = _recompute_makespan(self.goals)

    def get_future_num_of_collisions(self, loc: int, time: int) -> int:
        """Number of agents occupying loc strictly after time."""
        if self.goals and self.goals[loc] != MAX_TIMESTEP:
            raise ValueError(f"location {loc} is the goal of another agent")
        if not self.table or len(self.table[loc]) <= time:
            return 0
        return sum(len(agents) for agents in self.table[loc][time + 1:])

    def _edge_collisions(self, from_loc: int, to_loc: int, to_time: int) -> int:
        if from_loc == to_loc or to_time < 1:
            return 0
        to_row = self.table[to_loc]
        from_row = self.table[from_loc]
        if len(to_row) < to_time or len(from_row) <= to_time:
            return 0
        return sum(1 for a1 in to_row[to_time - 1] for a2 in from_row[to_time] if a1 == a2)

    def get_num_of_collisions(self, from_loc: int, to_loc: int, to_time: int) -> int:
        rst = 0
        if self.table:
            if len(self.table[to_loc]) > to_time:
                rst += len(self.table[to_loc][to_time])
            rst += self._edge_collisions(from_loc, to_loc, to_time)
        if self.goals and self.goals[to_loc] < to_time:
            rst += 1
        return rst

    def has_collisions(self, from_loc: int, to_loc: int, to_time: int) -> bool:
        if self.table:
            to_row = self.table[to_loc]
            if len(to_row) > to_time and to_row[to_time]:
                return True
            if self._edge_collisions(from_loc, to_loc, to_time) > 0:
                return True
        return bool(self.goals) and self.goals[to_loc] < to_time

    def has_edge_collisions(self, from_loc: int, to_loc: int, to_time: int) -> bool:
        return bool(self.table) and self._edge_collisions(from_loc, to_loc, to_time) > 0

    def get_agent_with_target(self, target_location: int, latest_timestep: int) -> int | None:
        """Agent whose goal is target_location, if it arrives by latest_timestep."""
        if not self.table or not self.goals or self.goals[target_location] > latest_timestep:
            return None
        for agent in self.table[target_location][self.goals[target_location]]:
            if self.paths[agent][-1] == target_location:
                return agent
        raise RuntimeError(f"goal table and paths disagree at location {target_location}")

    def get_last_collision_timestep(self, location: int) -> int:
        """Last timestep at which location is occupied, or -1."""
        if not self.table:
            return -1
        row = self.table[location]
        for t in range(len(row) - 1, -1, -1):
            if row[t]:
                return t
        return -1

    def clear(self) -> None:
        self.table.clear()
        self.goals.clear()
        self.paths.clear()