"""Parallel Push and Swap: agents push others aside and swap at branching nodes."""

from __future__ import annotations

import itertools
import random
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum, IntEnum

from .agent import Agent
from .graph import Node
from .problem import Problem
from .solver import Solver


class SwapPhase(IntEnum):
    """Stages of a swap operation, in the order they happen."""

    GO_TARGET = 0
    CLEARING = 1
    EVAC_H = 2
    EVAC_L = 3
    SWAP_DONE = 4


class Res(Enum):
    """Outcome of a push or swap attempt."""

    SUCCESS = "success"
    FAIL = "fail"
    PAUSE = "pause"


class Check(Enum):
    """Outcome of a validity check."""

    VALID = "valid"
    INVALID = "invalid"


class PPSError(RuntimeError):
    """The push-and-swap state became inconsistent."""


@dataclass(eq=False)
class Swaper:
    """A group of agents performing a swap at a branching node."""

    id: int
    agents: list[Agent]
    low_origin: Node | None
    esv: list[Node]
    target: Node | None = None
    origin: Node | None = None
    evac_h: Node | None = None
    evac_l: Node | None = None
    area: list[Node | None] = field(default_factory=list)
    phase: SwapPhase = SwapPhase.GO_TARGET


class PPS(Solver):
    """Moves agents along shortest paths, pushing blockers and swapping when needed."""

    def __init__(self, problem: Problem, rng: random.Random | None = None,
                 time_limit: float = 0.0) -> None:
        super().__init__(problem, rng, time_limit)
        self.status = True
        self.graph.reg_flg = True
        self.goals: dict[Agent, Node | None] = {a: a.goal for a in self.agents}
        self.is_tmp_goal: dict[Agent, bool] = {a: False for a in self.agents}
        self.deg3_nodes: list[Node] = [
            v for v in self.graph.nodes if len(self.graph.neighbor(v)) >= 3
        ]
        self.pushers: list[Agent] = []
        self.swapers: list[Swaper] = []
        self.done_swapers: list[Swaper] = []
        self.pusher_to_swaper: list[Agent] = []
        self.swaper_to_pusher: list[Agent] = []
        self.at_goal: list[Agent] = []          # U
        self.locked: list[Node | None] = []     # L
        self.moved: list[Agent] = []            # M
        self.history: list[Agent] = []          # H
        self._uuid = itertools.count()

    # ------------------------------------------------------------------ main loop

    def solve(self) -> bool:
        self.solve_start()
        self.pushers = list(self.agents)
        self.at_goal.clear()
        self.locked.clear()
        while not self.problem.is_solved():
            self.update()
            if not self.status:
                self.solve_end()
                return False
            self.problem.update()
            if self._time_over():
                break
        self.solve_end()
        return self.problem.is_solved()

    def update(self) -> None:
        """Plan one timestep: run swaps, then pushes, then refresh bookkeeping."""
        self.moved.clear()

        for s in list(self.swapers):
            self.history.clear()
            if self._check_swaper(s) is Check.VALID:
                if self._swap(s) is Res.FAIL:
                    self.status = False
                    return

        for p in self.agents:
            self.history.clear()
            if self._check_pusher(p) is Check.VALID:
                self._push(p, [], False)

        for a in self.agents:
            if a in self.at_goal:
                if self._check_goal(a) is Check.INVALID:
                    self.at_goal.remove(a)
            elif self._check_goal(a) is Check.VALID:
                self.at_goal.append(a)

        for a in self.pusher_to_swaper:
            if a in self.pushers:
                self.pushers.remove(a)
        self.pusher_to_swaper.clear()

        for a in self.swaper_to_pusher:
            if not self._in_s(a):
                self.pushers.append(a)
        self.swaper_to_pusher.clear()

        for s in self.done_swapers:
            if s in self.swapers:
                self.swapers.remove(s)
        self.done_swapers.clear()

    # ------------------------------------------------------------------ helpers

    def _agent_at(self, v: Node | None) -> Agent | None:
        return next((a for a in self.agents if a.node is v), None)

    def _reserved(self, v: Node, agents: Iterable[Agent]) -> bool:
        return any(a.node is v for a in agents)

    def _is_free(self, v: Node) -> bool:
        return self._agent_at(v) is None and v not in self.locked

    def _in_s(self, a: Agent) -> bool:
        return any(a in s.agents for s in self.swapers if s not in self.done_swapers)

    def _get_s(self, a: Agent) -> Swaper:
        for s in self.swapers:
            if a in s.agents:
                return s
        raise PPSError(f"corresponding swaper does not exist, agent : {a.id}")

    def _check_priority(self, c: Agent | Swaper, a: Agent | Swaper) -> Check:
        s_c = c if isinstance(c, Swaper) else self._get_s(c)
        s_a = a if isinstance(a, Swaper) else self._get_s(a)
        if s_a.phase >= SwapPhase.CLEARING:
            return Check.INVALID
        return Check.VALID if s_c.id <= s_a.id else Check.INVALID

    def _shortest_path(self, c: Agent, g: Node | None,
                       prohibited: Iterable[Node | None] = ()) -> list[Node]:
        banned = list(prohibited)
        banned.extend(a.node for a in self.history)
        return self.graph.get_path(c.node, g, banned)

    def depend(self, pi_a: list[Node], pi_b: list[Node]) -> bool:
        """Whether path pi_b's endpoints make it interfere with pi_a."""
        if not pi_b:
            return False
        if pi_b[0] in pi_a and pi_b[-1] in pi_a:
            return True
        return pi_b[0] in pi_a and bool(pi_a) and pi_a[0] in pi_b

    def closest_empty_vertices(self, c: Agent) -> list[Node]:
        """Unoccupied nodes at the smallest hop distance from c's node."""
        occupied = {a.node for a in self.agents}
        seen: dict[Node, int] = {c.node: 0}
        frontier: dict[Node, int] = {c.node: 0}
        found: list[Node] = []
        best = 0
        while frontier:
            n = min(frontier, key=frontier.__getitem__)
            d = frontier[n]
            if n not in occupied:
                if not found:
                    best = d
                elif best < d:
                    break
                found.append(n)
            del frontier[n]
            for m in self.graph.neighbor(n):
                if m not in seen:
                    seen[m] = d + 1
                    frontier[m] = d + 1
        return found

    def _sorted_esv(self, c: Agent) -> list[Node]:
        v = c.node
        return sorted(self.deg3_nodes, key=lambda u: self.graph.dist(v, u))

    # ------------------------------------------------------------------ checks

    def _check_pusher(self, a: Agent) -> Check:
        if a not in self.pushers or a in self.pusher_to_swaper:
            return Check.INVALID
        return Check.VALID

    def _check_goal(self, a: Agent) -> Check:
        return Check.VALID if a.node is self.goals[a] else Check.INVALID

    def _check_swaper(self, s: Swaper) -> Check:
        num = len(s.agents)
        if num < 2 or num > 3:
            raise PPSError(f"swaper {s.id} has invalid agents")
        if s in self.done_swapers:
            return Check.INVALID
        if s.phase >= SwapPhase.EVAC_H:
            return Check.VALID

        a_h, a_l = s.agents[0], s.agents[1]
        neighbor = self.graph.neighbor(a_h.node)
        l_near_h = a_l.node in neighbor
        e_near_h = True
        if num == 3:
            e_near_h = s.agents[2].node in neighbor

        pi_h = self.graph.get_path(a_h.node, a_h.goal)
        pi_l = self.graph.get_path(a_l.node, a_l.goal)
        dep = self.depend(pi_h, pi_l) or self.depend(pi_l, pi_h)
        if l_near_h and e_near_h and dep:
            return Check.VALID

        self._add_done_swapers(s)
        return Check.INVALID

    def _release_to_original_goal(self, a: Agent) -> None:
        self.is_tmp_goal[a] = False
        self.problem.assign(a.task)
        a.release_task()
        a.goal = self.goals[a]

    def _add_done_swapers(self, s: Swaper) -> None:
        self.done_swapers.append(s)
        if len(s.agents) == 3:
            self._release_to_original_goal(s.agents[2])
        for a in list(s.agents):
            if a in self.pushers:
                raise PPSError(f"duplicated pusher : {a.id}")
            self.pushers.append(a)

    # ------------------------------------------------------------------ pushing

    def _push(self, c: Agent, prohibited: list[Node | None], swap: bool) -> Res:
        if c in self.history:
            return Res.FAIL
        if c in self.moved:
            return Res.PAUSE
        if not swap and c in self.at_goal:
            return Res.PAUSE
        if c in self.at_goal:
            self.at_goal.remove(c)

        if self.is_tmp_goal[c]:
            s = self._get_s(c)
            if s not in self.done_swapers and s.phase is not SwapPhase.CLEARING:
                raise PPSError(f"invalid swap phase, s : {s.id}, phase : {int(s.phase)}")
            pi = self.graph.get_path(c.node, c.goal, prohibited)
            attempt = self._feasible(c, pi, prohibited, swap)
        else:
            pi = self._shortest_path(c, c.goal, prohibited)
            attempt = self._feasible(c, pi, prohibited, swap)
            if attempt is Res.FAIL and c not in self.pusher_to_swaper:
                empties = self.closest_empty_vertices(c)
                if empties:
                    g = c.goal
                    e = min(empties, key=lambda u: self.path_dist(u, g))
                    pi = self._shortest_path(c, e, prohibited)
                    attempt = self._feasible(c, pi, prohibited, swap)

        if attempt is Res.SUCCESS:
            self._move(c, pi)
            self.moved.append(c)
        return attempt

    def _push_swaper(self, s: Swaper) -> Res:
        a_h, a_l = s.agents[0], s.agents[1]
        target = s.esv[0]
        if a_h in self.moved or a_l in self.moved:
            return Res.PAUSE

        if len(s.agents) == 2:
            if self.path_dist(a_h.node, target) > self.path_dist(a_l.node, target):
                s.agents = [a_l, a_h]
                a_h, a_l = a_l, a_h

        if a_h.node is target:
            return self._swap(s)

        pi = self.graph.get_path(a_h.node, target)
        attempt = self._feasible_swaper(s, pi)
        if attempt is Res.SUCCESS:
            self._move_swaper(s, pi)
            self.moved.extend(s.agents)
        return attempt

    def _feasible(self, c: Agent, pi: list[Node], prohibited: list[Node | None],
                  swap: bool) -> Res:
        if len(pi) < 2:
            return Res.FAIL
        v = pi[1]
        if c in self.moved:
            return Res.FAIL
        if self._reserved(v, self.moved):
            return Res.PAUSE
        if v in self.locked:
            return Res.PAUSE

        a = self._agent_at(v)
        if a is None:
            return Res.SUCCESS
        if not swap:
            if self._in_s(a):
                return Res.FAIL
            pi_one = self.graph.get_path(c.node, c.goal)
            pi_two = self.graph.get_path(a.node, a.goal)
            if self.depend(pi_one, pi_two):
                self._setup_swap(c, a)
                return Res.FAIL
        elif self._in_s(a):
            origin = self.history[0] if self.history else c
            if self._in_s(origin) and self._check_priority(origin, a) is Check.INVALID:
                return Res.FAIL

        self.history.append(c)
        return self._push(a, prohibited, swap)

    def _feasible_swaper(self, s: Swaper, pi: list[Node]) -> Res:
        if len(pi) < 2:
            return Res.FAIL
        v = pi[1]
        if self._reserved(v, self.moved) or v in self.locked:
            return Res.PAUSE

        a = self._agent_at(v)
        if a is None:
            return Res.SUCCESS
        if self._in_s(a) and self._check_priority(s, a) is Check.INVALID:
            return Res.FAIL

        self.history.append(s.agents[0])
        self.history.append(s.agents[1])
        return self._push(a, [], True)

    def _move(self, a: Agent, pi: list[Node]) -> None:
        if len(pi) < 2:
            raise PPSError("pi does not have enough nodes")
        a.set_node(pi[1])

    def _move_swaper(self, s: Swaper, pi: list[Node]) -> None:
        if s.phase not in (SwapPhase.GO_TARGET, SwapPhase.CLEARING):
            raise PPSError("invalid movement")
        s.agents[0].set_node(pi[1])
        s.agents[1].set_node(pi[0])

    # ------------------------------------------------------------------ swapping

    def _setup_swap(self, c: Agent, a: Agent) -> None:
        if not self.deg3_nodes:
            raise PPSError("graph does not have esv")
        sorted_esv = self._sorted_esv(c)
        v = sorted_esv[0]
        if self.path_dist(c.node, v) <= self.path_dist(a.node, v):
            agents = [c, a]
        else:
            agents = [a, c]
        s = Swaper(next(self._uuid), agents, a.node, sorted_esv)
        self.pusher_to_swaper.append(c)
        self.pusher_to_swaper.append(a)
        self.swapers.append(s)
        self._swap(s)

    def _swap(self, s: Swaper) -> Res:
        if s.phase in (SwapPhase.EVAC_H, SwapPhase.EVAC_L, SwapPhase.SWAP_DONE):
            self._swap_primitives(s)
            return Res.SUCCESS

        a_h, a_l = s.agents[0], s.agents[1]
        target = s.esv[0]

        if len(s.agents) == 2:
            if a_h.node is not target:
                self._push_swaper(s)
            elif self._clear(s):
                if s.phase is not SwapPhase.CLEARING:
                    self._swap_primitives(s)
            elif self._find_new_vertex(s) is Res.SUCCESS:
                self._swap(s)
            else:
                self.moved.append(a_h)
                self.moved.append(a_l)
        elif len(s.agents) == 3:
            if s.phase is not SwapPhase.CLEARING:
                raise PPSError("there are three agents")
            a = s.agents[2]
            attempt = self._push(a, s.area, True)
            if attempt is Res.FAIL:
                s.agents.pop()
                self._release_to_original_goal(a)
                self.pushers.append(a)
                s.phase = SwapPhase.GO_TARGET
                return self._find_new_vertex(s)
            if attempt is Res.SUCCESS:
                if a.node is a.goal:
                    s.agents.pop()
                    self._release_to_original_goal(a)
                    self.swaper_to_pusher.append(a)
                    if len(s.agents) != 2:
                        raise PPSError("the number of agents should be two")
                    s.phase = SwapPhase.GO_TARGET
                    self._swap(s)
                else:
                    self._push_swaper(s)
        else:
            raise PPSError("the number of agents should be less than four")
        return Res.SUCCESS

    def _find_new_vertex(self, s: Swaper) -> Res:
        if len(s.agents) != 2:
            raise PPSError("the number of agents should be two")
        if not s.esv:
            return Res.FAIL
        for t in self.swapers:
            if t.id == s.id:
                continue
            if self._check_priority(s, t) is Check.INVALID:
                return Res.PAUSE
        s.esv.pop(0)
        if not s.esv:
            return Res.FAIL
        a0, a1 = s.agents[0], s.agents[1]
        v = s.esv[0]
        if self.path_dist(a0.node, v) <= self.path_dist(a1.node, v):
            s.agents = [a0, a1]
        else:
            s.agents = [a1, a0]
        return Res.SUCCESS

    def _swap_primitives(self, s: Swaper) -> None:
        if s.phase not in (SwapPhase.EVAC_H, SwapPhase.EVAC_L, SwapPhase.SWAP_DONE):
            raise PPSError("invalid phase was called")
        if len(s.agents) != 2:
            raise PPSError(f"the size of agents must be 2, not {len(s.agents)}")

        a_h, a_l = s.agents[0], s.agents[1]
        if a_h in self.moved or a_l in self.moved:
            self.moved.append(a_h)
            self.moved.append(a_l)
            return

        if s.phase is SwapPhase.EVAC_H:
            a_h.set_node(s.evac_h)
            a_l.set_node(s.target)
            s.phase = SwapPhase.EVAC_L
        elif s.phase is SwapPhase.EVAC_L:
            a_h.set_node(s.target)
            a_l.set_node(s.evac_l)
            s.phase = SwapPhase.SWAP_DONE
        else:
            a_h.set_node(s.origin)
            a_l.set_node(s.target)
            self._finish_swap(s)
        self.moved.append(a_h)
        self.moved.append(a_l)

    def _finish_swap(self, s: Swaper) -> None:
        if len(s.agents) != 2:
            raise PPSError("the number of agents is not two")
        for v in (s.target, s.origin, s.evac_h, s.evac_l):
            if v in self.locked:
                self.locked.remove(v)
        self.swaper_to_pusher.append(s.agents[0])
        self.swaper_to_pusher.append(s.agents[1])
        self.done_swapers.append(s)

    def _clear(self, s: Swaper) -> bool:
        """Free two neighbours of the swap node so that the swap can run."""
        a_h, a_l = s.agents[0], s.agents[1]
        target = s.esv[0]
        if s.phase is not SwapPhase.GO_TARGET:
            raise PPSError("phase is invalid")
        if len(s.agents) != 2:
            raise PPSError("the number of agent is not two")
        if a_h.node is not target:
            raise PPSError(f"agent {a_h.id} is not on node {target.id}")

        neighbor = self.graph.neighbor(target)
        evac_h: Node | None = None
        evac_l: Node | None = None
        al_pos = a_l.node

        # free neighbours
        for v in neighbor:
            if v is al_pos or not self._is_free(v):
                continue
            if evac_h is None:
                evac_h = v
            elif evac_l is None:
                evac_l = v
                s.phase = SwapPhase.EVAC_H
                break

        # push occupants away
        if evac_l is None:
            for v in neighbor:
                if v in self.locked or v is al_pos:
                    continue
                if evac_h is not None and v is evac_h:
                    continue
                a = self._agent_at(v)
                if a is None:
                    continue
                self.history.append(a_h)
                self.history.append(a_l)
                if self._push(a, [evac_h], True) is not Res.SUCCESS:
                    continue
                if evac_h is None:
                    evac_h = v
                else:
                    evac_l = v
                    s.phase = SwapPhase.EVAC_H
                    break

        # recruit a third agent to evacuate
        if evac_h is not None and evac_l is None:
            for v in neighbor:
                if v in self.locked or v is al_pos:
                    continue
                a3 = self._agent_at(v)
                if a3 is None or a3 in self.moved:
                    continue
                if self._in_s(a3) and self._check_priority(s, a3) is Check.INVALID:
                    continue

                a3_target = next(
                    (u for u in self.graph.neighbor(evac_h)
                     if u is not target and u is not a3.node),
                    None,
                )
                if a3_target is None:
                    continue
                pi = self.graph.get_path(evac_h, a3_target, [al_pos])
                if len(pi) < 2:
                    continue

                a_h.goal = a_l.node
                for u in self.graph.neighbor(al_pos):
                    if u is a3_target or u is target:
                        continue
                    a_l.goal = u
                    attempt = self._push(a_l, [a3_target, target, evac_h], True)
                    if attempt is not Res.SUCCESS:
                        continue

                    if self._in_s(a3):
                        t = self._get_s(a3)
                        self.done_swapers.append(t)
                        for b in t.agents:
                            b.goal = self.goals[b]
                            self.is_tmp_goal[b] = False
                            if b is not a3:
                                self.pushers.append(b)

                    if a3 in self.at_goal:
                        self.at_goal.remove(a3)

                    self._push(a_h, [], True)

                    a3.goal = pi[1]
                    self.is_tmp_goal[a3] = True
                    self.pusher_to_swaper.append(a3)
                    s.agents.append(a3)
                    s.phase = SwapPhase.CLEARING
                    self._push(a3, [], True)
                    evac_l = a3.node
                    break

                a_l.goal = self.goals[a_l]
                a_h.goal = self.goals[a_h]
                if evac_l is not None:
                    break

        if s.phase is SwapPhase.EVAC_H:
            s.target = a_h.node
            s.origin = a_l.node
            s.evac_h = evac_h
            s.evac_l = evac_l
            self.locked.extend([s.target, s.origin, s.evac_h, s.evac_l])
            return True
        if s.phase is SwapPhase.CLEARING:
            s.area = [a_h.node, a_l.node, evac_l]
            return True
        return False

    def log_str(self) -> str:
        return "[solver] type:Parallel Push & Swap\n" + super().log_str()