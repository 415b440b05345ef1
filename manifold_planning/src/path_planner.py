#!/usr/bin/env python3
"""
Sampling-Based Planners for Constrained State Spaces

Planners only use the common state space interface (valid state sampling,
steering, motion checking), so each of them works with the atlas, projected
and nullspace representations alike:
- RRTConnect: bidirectional trees with greedy connection (default)
- RRT: single tree with goal biasing and approximate solutions
- PRM: roadmap with shortest-path extraction on a sparse graph

Planning runs until a solution is found or the termination condition fires.

Author: Robot Control Team
"""

import numpy as np
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type
from scipy.spatial import cKDTree
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import connected_components, dijkstra

from .constrained_state_space import (
    ConstrainedState, ConstrainedStateSpace, MotionResult, SamplingExhaustedError
)
from .geometric_path import GeometricPath
from .planning_config import merge_config

logger = logging.getLogger(__name__)

class UnknownPlannerError(Exception):
    """Raised when a planner name is not registered."""
    pass

class PlannerStatus(Enum):
    """Planning outcome."""
    EXACT_SOLUTION = "exact_solution"
    APPROXIMATE_SOLUTION = "approximate_solution"
    TIMEOUT = "timeout"
    INVALID_START = "invalid_start"
    INVALID_GOAL = "invalid_goal"

@dataclass
class PlanningResult:
    """Result container for planning operations."""
    status: PlannerStatus
    path: Optional[GeometricPath] = None
    computation_time: Optional[float] = None
    iterations: int = 0
    error_message: Optional[str] = None
    validation_results: Optional[Dict[str, Any]] = None

    @property
    def success(self) -> bool:
        return self.status in (PlannerStatus.EXACT_SOLUTION, PlannerStatus.APPROXIMATE_SOLUTION)

    @property
    def approximate(self) -> bool:
        return self.status == PlannerStatus.APPROXIMATE_SOLUTION

@dataclass
class PlannerData:
    """Planner graph for export: vertex points and index pairs."""
    vertices: List[np.ndarray] = field(default_factory=list)
    edges: List[Tuple[int, int]] = field(default_factory=list)

    def as_matrix(self) -> np.ndarray:
        if not self.vertices:
            return np.zeros((0, 0))
        return np.array(self.vertices)

class PlannerTerminationCondition:
    """
    Stop criterion polled once per planner iteration.

    Fires when the time limit elapsed or the iteration budget is used up,
    whichever comes first.
    """

    def __init__(self, time_limit: Optional[float] = None, iterations: Optional[int] = None):
        self.time_limit = time_limit
        self.iterations = iterations
        self.times_called = 0
        self._start_time: Optional[float] = None

    @classmethod
    def from_time(cls, seconds: float) -> 'PlannerTerminationCondition':
        return cls(time_limit=seconds)

    @classmethod
    def from_iterations(cls, count: int) -> 'PlannerTerminationCondition':
        return cls(iterations=count)

    def start(self):
        self._start_time = time.time()
        self.times_called = 0

    def __call__(self) -> bool:
        if self._start_time is None:
            self.start()

        if self.iterations is not None and self.times_called >= self.iterations:
            return True
        if self.time_limit is not None and time.time() - self._start_time >= self.time_limit:
            return True

        self.times_called += 1
        return False

    @property
    def iterations_used(self) -> int:
        return self.times_called

class _SearchTree:
    """Tree of states with parent links and nearest-neighbour queries."""

    def __init__(self, root: ConstrainedState):
        self.states: List[ConstrainedState] = [root]
        self.parents: List[int] = [-1]
        self._kdtree: Optional[cKDTree] = None

    def __len__(self) -> int:
        return len(self.states)

    def add(self, state: ConstrainedState, parent: int) -> int:
        self.states.append(state)
        self.parents.append(parent)
        self._kdtree = None
        return len(self.states) - 1

    def nearest(self, x: np.ndarray) -> int:
        if self._kdtree is None:
            self._kdtree = cKDTree(np.array([s.x for s in self.states]))
        _, index = self._kdtree.query(x)
        return int(index)

    def path_to(self, index: int) -> List[ConstrainedState]:
        """States from the root to the given node."""
        path = []
        current = index
        while current != -1:
            path.append(self.states[current])
            current = self.parents[current]
        return path[::-1]

    def edges(self, offset: int = 0) -> List[Tuple[int, int]]:
        return [(parent + offset, child + offset)
                for child, parent in enumerate(self.parents) if parent != -1]

class BasePlanner:
    """Common start/goal handling and planning loop."""

    name = "base"

    def __init__(self, space: ConstrainedStateSpace, start: ConstrainedState, goal: ConstrainedState,
                 config: Optional[Dict[str, Any]] = None):
        """
        Initialize planner.

        Args:
            space: Constrained state space to plan in
            start: Start state on the manifold
            goal: Goal state on the manifold
            config: Overrides for the `planner` configuration section
        """
        self.space = space
        self.start = start
        self.goal = goal
        self.config = merge_config(dict(space.config['planner']), config or {})
        self.stats = {'iterations': 0, 'sampling_failures': 0, 'rejected_edges': 0}

        logger.info(f"{self.name} planner initialized with range {self.config['range']}")

    @property
    def range(self) -> float:
        return float(self.config['range'])

    def update_config(self, new_config: Dict[str, Any]):
        merge_config(self.config, new_config)
        logger.info(f"{self.name} planner configuration updated")

    def _setup(self):
        raise NotImplementedError

    def _iterate(self) -> bool:
        """Run one planning iteration; return True once an exact solution exists."""
        raise NotImplementedError

    def _solution(self) -> List[ConstrainedState]:
        raise NotImplementedError

    def _approximate_solution(self) -> Optional[List[ConstrainedState]]:
        return None

    def get_planner_data(self) -> PlannerData:
        raise NotImplementedError

    def _sample(self) -> Optional[ConstrainedState]:
        try:
            return self.space.sample_valid_state()
        except SamplingExhaustedError as e:
            self.stats['sampling_failures'] += 1
            logger.debug(f"Skipping iteration: {e}")
            return None

    def solve(self, ptc: PlannerTerminationCondition) -> PlanningResult:
        """
        Plan from start to goal.

        Args:
            ptc: Termination condition polled every iteration

        Returns:
            PlanningResult with the solution path if one was found
        """
        start_time = time.time()

        if not self.space.is_state_valid(self.start):
            return PlanningResult(PlannerStatus.INVALID_START, error_message="Start state is invalid",
                                  computation_time=time.time() - start_time)
        if not self.space.is_state_valid(self.goal):
            return PlanningResult(PlannerStatus.INVALID_GOAL, error_message="Goal state is invalid",
                                  computation_time=time.time() - start_time)

        self._setup()
        ptc.start()
        solved = False

        logger.info(f"Starting {self.name} planning")

        while not ptc():
            self.stats['iterations'] += 1
            if self._iterate():
                solved = True
                break

        computation_time = time.time() - start_time
        iterations = ptc.iterations_used
        validation_results = dict(self.stats)

        if solved:
            path = GeometricPath(self.space, self._solution())
            logger.info(f"{self.name} found a solution in {computation_time:.3f}s "
                        f"({iterations} iterations, {len(path)} states)")
            return PlanningResult(PlannerStatus.EXACT_SOLUTION, path, computation_time, iterations,
                                  validation_results=validation_results)

        approximate = self._approximate_solution()
        if approximate is not None:
            path = GeometricPath(self.space, approximate)
            logger.info(f"{self.name} found an approximate solution in {computation_time:.3f}s")
            return PlanningResult(PlannerStatus.APPROXIMATE_SOLUTION, path, computation_time, iterations,
                                  validation_results=validation_results)

        logger.info(f"{self.name} found no solution in {computation_time:.3f}s ({iterations} iterations)")
        return PlanningResult(PlannerStatus.TIMEOUT, None, computation_time, iterations,
                              error_message="No path found before termination",
                              validation_results=validation_results)

class RRTConnect(BasePlanner):
    """Bidirectional RRT growing trees from start and goal."""

    name = "RRTConnect"

    def _setup(self):
        self.tree_a = _SearchTree(self.start)
        self.tree_b = _SearchTree(self.goal)
        self._connection: Optional[Tuple[int, int]] = None
        self._grow_start = True

    def _add_motion(self, tree: _SearchTree, parent: int, result: MotionResult) -> Optional[int]:
        """
        Add the end of a steered motion to a tree.

        Goal tree edges are walked child to parent in the final path, so they
        must be traversable in that direction too.
        """
        end = result.end
        if tree is self.tree_b:
            traversable = self.space.check_motion(end, tree.states[parent])
        else:
            traversable = result.reached or self.space.check_motion(tree.states[parent], end)

        if not traversable:
            self.stats['rejected_edges'] += 1
            return None
        return tree.add(end, parent)

    def _extend(self, tree: _SearchTree, target: ConstrainedState) -> Optional[int]:
        nearest = tree.nearest(target.x)
        result = self.space.steer(tree.states[nearest], target, self.range)
        if len(result.states) < 2:
            return None
        return self._add_motion(tree, nearest, result)

    def _connect(self, tree: _SearchTree, target: ConstrainedState) -> Optional[int]:
        """Extend tree toward target until it is reached or blocked."""
        current = tree.nearest(target.x)

        while True:
            result = self.space.steer(tree.states[current], target, self.range)
            if len(result.states) < 2:
                return None
            current = self._add_motion(tree, current, result)
            if current is None:
                return None
            if result.reached:
                return current
            if result.failure is not None:
                return None

    def _iterate(self) -> bool:
        tree_from, tree_to = (self.tree_a, self.tree_b) if self._grow_start else (self.tree_b, self.tree_a)
        self._grow_start = not self._grow_start

        sample = self._sample()
        if sample is None:
            return False

        new_index = self._extend(tree_from, sample)
        if new_index is None:
            return False

        connect_index = self._connect(tree_to, tree_from.states[new_index])
        if connect_index is None:
            return False

        if tree_from is self.tree_a:
            self._connection = (new_index, connect_index)
        else:
            self._connection = (connect_index, new_index)
        return True

    def _solution(self) -> List[ConstrainedState]:
        index_a, index_b = self._connection
        forward = self.tree_a.path_to(index_a)
        backward = self.tree_b.path_to(index_b)[::-1]
        return forward + backward[1:]

    def get_planner_data(self) -> PlannerData:
        vertices = [s.x for s in self.tree_a.states] + [s.x for s in self.tree_b.states]
        edges = self.tree_a.edges() + self.tree_b.edges(len(self.tree_a))
        return PlannerData(vertices, edges)

class RRT(BasePlanner):
    """Single-tree RRT with goal biasing."""

    name = "RRT"

    def _setup(self):
        self.tree = _SearchTree(self.start)
        self._goal_index: Optional[int] = None
        self._closest_index = 0
        self._closest_distance = self.space.distance(self.start, self.goal)

    def _iterate(self) -> bool:
        if self.space.rng.uniform() < float(self.config['goal_bias']):
            target = self.goal
        else:
            target = self._sample()
            if target is None:
                return False

        nearest = self.tree.nearest(target.x)
        result = self.space.steer(self.tree.states[nearest], target, self.range)
        if len(result.states) < 2:
            return False
        if not result.reached and not self.space.check_motion(self.tree.states[nearest], result.end):
            self.stats['rejected_edges'] += 1
            return False

        index = self.tree.add(result.end, nearest)

        distance = self.space.distance(result.end, self.goal)
        if distance < self._closest_distance:
            self._closest_distance = distance
            self._closest_index = index

        if result.reached and target is self.goal:
            self._goal_index = index
            return True
        return False

    def _solution(self) -> List[ConstrainedState]:
        return self.tree.path_to(self._goal_index)

    def _approximate_solution(self) -> Optional[List[ConstrainedState]]:
        if self._closest_index == 0:
            return None
        return self.tree.path_to(self._closest_index)

    def get_planner_data(self) -> PlannerData:
        return PlannerData([s.x for s in self.tree.states], self.tree.edges())

class PRM(BasePlanner):
    """Probabilistic roadmap; connects each new state to its nearest neighbours."""

    name = "PRM"

    def _setup(self):
        self.vertices: List[ConstrainedState] = [self.start, self.goal]
        self.edges: Dict[Tuple[int, int], float] = {}
        self._path: Optional[List[int]] = None

    def _neighbors(self, state: ConstrainedState, index: int) -> List[int]:
        points = np.array([v.x for v in self.vertices])
        k = min(int(self.config['prm_neighbors']) + 1, len(self.vertices))
        _, indices = cKDTree(points).query(state.x, k=k)
        return [int(i) for i in np.atleast_1d(indices) if int(i) != index]

    def _graph(self) -> csr_matrix:
        count = len(self.vertices)
        if not self.edges:
            return csr_matrix((count, count))
        rows, cols = zip(*self.edges.keys())
        weights = list(self.edges.values())
        return csr_matrix((weights, (rows, cols)), shape=(count, count))

    def _iterate(self) -> bool:
        state = None
        if len(self.vertices) > 2 and self.space.rng.uniform() < 0.5:
            near = self.vertices[self.space.rng.integers(len(self.vertices))]
            try:
                state = self.space.sample_near(near, self.range)
            except SamplingExhaustedError as e:
                self.stats['sampling_failures'] += 1
                logger.debug(f"Skipping roadmap expansion: {e}")
        if state is None:
            state = self._sample()
            if state is None:
                return False

        self.vertices.append(state)
        index = len(self.vertices) - 1

        connected = False
        # Roadmap edges are searched in both directions
        for neighbor in self._neighbors(state, index):
            other = self.vertices[neighbor]
            if self.space.check_motion(other, state) and self.space.check_motion(state, other):
                self.edges[(neighbor, index)] = self.space.distance(other, state)
                connected = True
            else:
                self.stats['rejected_edges'] += 1

        if not connected:
            return False

        _, labels = connected_components(self._graph(), directed=False)
        if labels[0] != labels[1]:
            return False

        _, predecessors = dijkstra(self._graph(), directed=False, indices=0, return_predecessors=True)
        path = [1]
        while path[-1] != 0:
            path.append(int(predecessors[path[-1]]))
        self._path = path[::-1]
        return True

    def _solution(self) -> List[ConstrainedState]:
        return [self.vertices[i] for i in self._path]

    def get_planner_data(self) -> PlannerData:
        return PlannerData([v.x for v in self.vertices], list(self.edges.keys()))

PLANNERS: Dict[str, Type[BasePlanner]] = {
    'RRTConnect': RRTConnect,
    'RRT': RRT,
    'PRM': PRM,
}

def create_planner(name: str, space: ConstrainedStateSpace, start: ConstrainedState, goal: ConstrainedState,
                   planners: Optional[Dict[str, Type[BasePlanner]]] = None, **kwargs) -> BasePlanner:
    """
    Create a registered planner by name.

    Args:
        name: Planner name
        space: Constrained state space
        start: Start state
        goal: Goal state
        planners: Registry to look the name up in (PLANNERS if None)

    Raises:
        UnknownPlannerError: If the name is not registered
    """
    registry = PLANNERS if planners is None else planners
    if name not in registry:
        raise UnknownPlannerError(f"Unknown planner '{name}', available: {', '.join(sorted(registry))}")
    return registry[name](space, start, goal, **kwargs)
