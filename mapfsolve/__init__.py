"""Multi-agent path finding: path tables, grid graphs and the PIBT, winPIBT and PPS solvers."""

__version__ = "0.1.0"
__all__ = [
    "path_table",
    "graph",
    "simplegrid",
    "task",
    "agent",
    "problem",
    "solver",
    "pibt",
    "pps",
    "winpibt",
]