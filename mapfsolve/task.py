"""Tasks: ordered lists of goal nodes that an agent has to visit."""

from __future__ import annotations

import itertools
from collections.abc import Iterable

from .graph import Node


class Task:
    """A sequence of goal nodes; visited goals move from open to closed."""

    _ids = itertools.count()

    def __init__(self, nodes: Iterable[Node] = (), start_time: int = 0) -> None:
        self.id = next(Task._ids)
        self.start_time = start_time
        self.end_time = 0
        self.g_open: list[Node] = list(nodes)
        self.g_close: list[Node] = []

    def update(self, g: Node) -> None:
        """Mark g as visited if it is still an open goal."""
        if g in self.g_open:
            self.g_open.remove(g)
            self.g_close.append(g)

    def completed(self) -> bool:
        return not self.g_open

    def get_next(self, g: Node) -> Node | None:
        """The open goal that follows g, or None."""
        for current, following in zip(self.g_open, self.g_open[1:]):
            if current is g:
                return following
        return None

    def log_str(self) -> str:
        nodes = "".join(f"{v.id}," for v in self.g_close)
        return (
            f"[task] id:{self.id},start:{self.start_time},end:{self.end_time},"
            f"service time:{self.end_time - self.start_time},nodes:{nodes}\n"
        )