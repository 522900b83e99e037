"""Grids read from the text map format."""

from __future__ import annotations

import random
import re
from os import PathLike

from .graph import Grid, Node

_HEIGHT = re.compile(r"height\s(\d+)")
_WIDTH = re.compile(r"width\s(\d+)")
_OBSTACLES = frozenset("@T")
_UP = frozenset(".oaefgkmn")
_DOWN = frozenset(".ocfhjklm")
_LEFT = frozenset(".odgijlmn")
_RIGHT = frozenset(".obehikln")


class MapFormatError(ValueError):
    """The map file does not match its declared size."""


def _read_map(filename: str | PathLike[str]) -> tuple[int, int, list[str]]:
    with open(filename, encoding="utf-8") as handle:
        lines = [line.rstrip("\r") for line in handle.read().splitlines()]
    width = height = 0
    for position, line in enumerate(lines):
        if match := _HEIGHT.fullmatch(line):
            height = int(match.group(1))
        if match := _WIDTH.fullmatch(line):
            width = int(match.group(1))
        if line == "map":
            return width, height, lines[position + 1:]
    return width, height, []


class SimpleGrid(Grid):
    """A grid loaded from a map file; every free cell is a start and goal."""

    def __init__(self, filename: str | PathLike[str], rng: random.Random | None = None) -> None:
        width, height, rows = _read_map(filename)
        for row in rows:
            if len(row) != width:
                raise MapFormatError(f"width is invalid, should be {width}")
        if len(rows) != height:
            raise MapFormatError(f"height is invalid, should be {height}")

        by_id: dict[int, Node] = {}
        for j, row in enumerate(rows):
            for i, cell in enumerate(row):
                if cell not in _OBSTACLES:
                    node_id = j * width + i
                    by_id[node_id] = Node(node_id, pos=(j, i))

        directed = False
        for j, row in enumerate(rows):
            for i, cell in enumerate(row):
                if cell in _OBSTACLES:
                    continue
                if "a" <= cell <= "z":
                    directed = True
                node_id = j * width + i
                candidates = []
                if cell in _UP:
                    candidates.append(node_id - width)
                if i != 0 and cell in _LEFT:
                    candidates.append(node_id - 1)
                if i != width - 1 and cell in _RIGHT:
                    candidates.append(node_id + 1)
                if cell in _DOWN:
                    candidates.append(node_id + width)
                by_id[node_id].neighbors = [by_id[c] for c in candidates if c in by_id]

        super().__init__(width, height, list(by_id.values()), rng)
        self.filename = str(filename)
        self.directed = directed
        self.starts = list(self.nodes)
        self.goals = list(self.nodes)

    def get_new_goal(self, v: Node) -> Node:
        """A random goal different from v."""
        while True:
            u = self.rng.choice(self.goals)
            if u is not v:
                return u

    def log_str(self) -> str:
        return super().log_str() + f"[graph] filename:{self.filename}\n"