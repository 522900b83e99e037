"""Graph of nodes with cached A* shortest paths, and grid specialisation."""

from __future__ import annotations

import heapq
import itertools
import random
from collections.abc import Iterable
from dataclasses import dataclass, field


@dataclass(eq=False)
class Node:
    """A vertex; identity is the object itself."""

    id: int
    index: int = 0
    pos: tuple[int, int] = (0, 0)
    neighbors: list[Node] = field(default_factory=list)

    def __repr__(self) -> str:
        return f"Node({self.id})"


@dataclass(eq=False)
class _SearchNode:
    v: Node
    g: int
    f: int
    parent: _SearchNode | None


class Graph:
    """A set of nodes with neighbour lists and a shortest-path cache."""

    def __init__(self, nodes: Iterable[Node] = (), rng: random.Random | None = None) -> None:
        self.rng = rng if rng is not None else random.Random()
        self.directed = False
        self.reg_flg = True
        self._nodes: list[Node] = []
        self._by_id: dict[int, Node] = {}
        self._by_pos: dict[tuple[int, int], Node] = {}
        for index, node in enumerate(nodes):
            node.index = index
            self._nodes.append(node)
            self._by_id[node.id] = node
            self._by_pos.setdefault(node.pos, node)
        self.starts: list[Node] = []
        self.goals: list[Node] = []
        self.known_paths: dict[tuple[int, int], list[Node]] = {}

    @property
    def nodes(self) -> tuple[Node, ...]:
        return tuple(self._nodes)

    def get_node(self, node_id: int) -> Node:
        try:
            return self._by_id[node_id]
        except KeyError:
            raise KeyError(f"node {node_id} does not exist") from None

    def get_node_at(self, x: int, y: int) -> Node | None:
        return self._by_pos.get((x, y))

    def exist_node(self, node_id: int) -> bool:
        return node_id in self._by_id

    def _resolve(self, v: Node | int) -> Node:
        return v if isinstance(v, Node) else self.get_node(v)

    def neighbor(self, v: Node | int) -> list[Node]:
        return list(self._resolve(v).neighbors)

    def dist(self, v: Node, u: Node) -> int:
        """Admissible distance estimate used by the path search."""
        return 0

    @staticmethod
    def _key(s: Node, g: Node) -> tuple[int, int]:
        return (s.index, g.index)

    def get_path(self, s: Node | int, g: Node | int,
                 prohibited: Iterable[Node | None] | None = None) -> list[Node]:
        """Shortest path from s to g avoiding prohibited nodes; [] if none."""
        s = self._resolve(s)
        g = self._resolve(g)
        banned = set(prohibited or ())
        is_prohibited = bool(banned)

        if self.reg_flg and not is_prohibited:
            known = self.known_paths.get(self._key(s, g))
            if known is not None:
                return list(known)

        counter = itertools.count()
        start = _SearchNode(s, 0, self.dist(s, g), None)
        heap = [(start.f, next(counter), start)]
        searched = {s.id: start}
        closed: set[int] = set()
        found: _SearchNode | None = None

        while heap:
            f, _, n = heap[0]
            if n.v.id in closed or f != n.f:
                heapq.heappop(heap)
                continue
            if n.v is g:
                found = n
                break
            known = self.known_paths.get(self._key(n.v, g))
            if known is not None and not (is_prohibited and any(v in banned for v in known)):
                for v in known[1:]:
                    n = _SearchNode(v, 0, 0, n)
                found = n
                break
            heapq.heappop(heap)
            closed.add(n.v.id)

            for m in n.v.neighbors:
                if m in banned or m.id in closed:
                    continue
                f_new = n.g + 1 + self.dist(m, g)
                if self.reg_flg:
                    known_m = self.known_paths.get(self._key(m, g))
                    if known_m is not None:
                        f_new = n.g + len(known_m)
                existing = searched.get(m.id)
                if existing is None:
                    child = _SearchNode(m, n.g + 1, f_new, n)
                    searched[m.id] = child
                    heapq.heappush(heap, (f_new, next(counter), child))
                elif existing.f > f_new:
                    existing.g = n.g + 1
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
        if self.reg_flg and not is_prohibited:
            self.register_path(path)
        return path

    def register_path(self, path: list[Node]) -> None:
        """Cache the path and each of its suffixes to the same goal."""
        if not path:
            return
        tmp = list(path)
        while True:
            self.known_paths.setdefault(self._key(tmp[0], tmp[-1]), list(tmp))
            tmp.pop(0)
            if len(tmp) <= 2:
                break

    def get_random_start_goal(self, num: int) -> list[tuple[Node, Node]]:
        """Random start/goal pairs in which no start equals its goal."""
        if num > len(self.starts) or num > len(self.goals):
            raise ValueError(f"cannot draw {num} start/goal pairs from this graph")
        starts = list(self.starts)
        goals = list(self.goals)
        while True:
            self.rng.shuffle(starts)
            self.rng.shuffle(goals)
            pairs = list(zip(starts[:num], goals[:num]))
            if all(s is not g for s, g in pairs):
                return pairs


def manhattan_dist(v: Node, u: Node) -> int:
    return abs(v.pos[0] - u.pos[0]) + abs(v.pos[1] - u.pos[1])


class Grid(Graph):
    """A graph laid out on a width x height grid."""

    def __init__(self, width: int = 0, height: int = 0, nodes: Iterable[Node] = (),
                 rng: random.Random | None = None) -> None:
        super().__init__(nodes, rng)
        self.width = width
        self.height = height

    def dist(self, v: Node, u: Node) -> int:
        return manhattan_dist(v, u)

    def log_str(self) -> str:
        return f"[graph] width:{self.width}\n[graph] height:{self.height}\n"