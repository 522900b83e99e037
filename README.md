# mapfsolve

Multi-agent path finding (MAPF) on 4-connected grid maps. It is written in pure
Python and needs no third-party packages.

## What is in the package

- **Path tables** (`mapfsolve.path_table`)
  - `PathTable` records at most one agent per cell and timestep. It answers
    vertex, edge (swap) and target conflict queries with `constrained` and
    `get_conflicting_agents`. `get_agents` and `sample_agents` give the agents
    that visit a cell, and `get_holding_time` gives holding times.
  - `PathTableWC` allows several agents per cell. It counts collisions with
    `get_num_of_collisions`, `get_future_num_of_collisions`, `has_collisions`
    and `has_edge_collisions`, and looks up the owner of a target with
    `get_agent_with_target`.
  - `format_path` and `is_same_path` are helpers for paths given as sequences
    of location indices.
- **Graphs** (`mapfsolve.graph`, `mapfsolve.simplegrid`)
  - `Node`, `Graph` and `Grid` hold the graph. `Graph.get_path` is an A* search
    that can skip prohibited nodes. Unless nodes are prohibited, it caches every
    path it finds, and each suffix of that path.
  - `manhattan_dist` is the grid heuristic.
  - `SimpleGrid` loads a map in the `.map` text format. The file has
    `height N` and `width N` lines, then a `map` line, then the rows. `@` and
    `T` are obstacles. Lower-case letters are directional cells and make the
    graph directed. Every free cell is used as both a start and a goal.
    `get_new_goal` draws a random goal.
- **Problem model**
  - `Task` (`mapfsolve.task`) is an ordered list of goal nodes.
  - `Agent` (`mapfsolve.agent`) has a current node, a goal, a task and a
    history of `AgentStatus` snapshots.
  - `MAPF` (`mapfsolve.problem`) is the one-shot problem: agent *i* gets task
    *i*. It builds on the abstract `Problem`.
- **Solvers**. All of them derive from `Solver` (`mapfsolve.solver`), which
  times the run, caches path distances (`path_dist`, `warshall_floyd`) and
  checks the agents' histories when the run ends.
  - `PIBT` (`mapfsolve.pibt`): Priority Inheritance with Backtracking.
  - `WinPIBT` (`mapfsolve.winpibt`): windowed PIBT. The `window` argument
    defaults to 5 and `softmode` defaults to `True`.
  - `PPS` (`mapfsolve.pps`): Parallel Push & Swap.

  Each solver takes an optional `random.Random` as `rng`. It also takes a
  `time_limit` in seconds, where `0` means no limit.

## Installation

```
pip install .
```

To run the tests, install the test extra and run pytest:

```
pip install .[test]
pytest
```

## Example

Say `room.map` contains:

```
type octile
height 2
width 3
map
...
...
```

Node ids are `row * width + column`. Two agents on that map can then be solved
like this:

```python
from mapfsolve.simplegrid import SimpleGrid
from mapfsolve.agent import Agent
from mapfsolve.task import Task
from mapfsolve.problem import MAPF
from mapfsolve.pibt import PIBT

grid = SimpleGrid("room.map")
agents = [Agent(grid.get_node(0)), Agent(grid.get_node(5))]
tasks = [Task([grid.get_node(5)]), Task([grid.get_node(0)])]
problem = MAPF(grid, agents, tasks)

solver = PIBT(problem)
if solver.solve():
    print(solver.log_str())
```

## Errors

Problems are reported as exceptions:

- `MapFormatError`: a map's rows do not match its declared width or height.
- `InvalidMoveError`: an agent is moved to a node that is not adjacent.
- `ProblemError`: a `MAPF` instance has a different number of agents and tasks.
- `ConsistencyError`: a finished plan has a disconnected path, a vertex
  conflict or a swap conflict, or a path distance came out non-optimal.
- `PPSError`: the push-and-swap state became inconsistent.
- `ValueError`: a path table is given an inconsistent path, for example two
  paths ending at the same location.

## What the package does not do

- There is no command-line program. You build the agents, tasks and problem
  in Python.
- It does not read agent or scenario files. Only map files are read, through
  `SimpleGrid`.
- It does not write plans or statistics to files. `log_str` returns the run
  summary as a string.
- The path tables are standalone data structures. None of the solvers in the
  package use them.