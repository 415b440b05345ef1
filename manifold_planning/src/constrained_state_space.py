#!/usr/bin/env python3
"""
Constrained State Space Module

Common interface for the three constraint-handling representations:
- Atlas: piecewise-linear charts covering the manifold
- Projected: ambient steps followed by Newton projection
- Nullspace: tangent-space steps followed by Newton projection

Every representation offers the same capabilities to planners: valid state
sampling, steering, interpolation and motion checking along discrete
geodesics. Local failures (blocked motions, manifold deviation) never escape
the geodesic computation; they are reported as motions that did not reach
their target.

Author: Robot Control Team
"""

import numpy as np
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Any, List, Optional

from manifold_constraints.src.constraint import Constraint, DimensionMismatchError
from .planning_config import default_config, merge_config

logger = logging.getLogger(__name__)

StateValidityCheckerFn = Callable[[np.ndarray], bool]

class ManifoldDeviationError(Exception):
    """Raised when a motion cannot be kept within tolerance of the manifold."""
    pass

class MotionBlockedError(Exception):
    """Raised when an intermediate state of a motion is invalid."""
    pass

class SamplingExhaustedError(Exception):
    """Raised when no valid sample was found within the attempt budget."""
    pass

class SpaceType(Enum):
    """Available constraint-handling representations."""
    ATLAS = "atlas"
    PROJECTED = "projected"
    NULLSPACE = "null"

@dataclass
class ConstrainedState:
    """
    A point of the ambient space on (or near) the manifold.

    `chart` is the index of the atlas chart the state was produced in. The
    chart itself is owned by the atlas; projection-based spaces leave it None.
    """
    x: np.ndarray
    chart: Optional[int] = None

    def copy(self) -> 'ConstrainedState':
        return ConstrainedState(self.x.copy(), self.chart)

@dataclass
class MotionResult:
    """Outcome of a discrete geodesic between two states."""
    reached: bool
    states: List[ConstrainedState] = field(default_factory=list)
    failure: Optional[Exception] = None

    @property
    def end(self) -> ConstrainedState:
        """Last state reached along the motion."""
        return self.states[-1]

    def length(self) -> float:
        """Ambient length of the piecewise-linear geodesic."""
        if len(self.states) < 2:
            return 0.0
        points = np.array([s.x for s in self.states])
        return float(np.sum(np.linalg.norm(np.diff(points, axis=0), axis=1)))

@dataclass
class AmbientBounds:
    """Axis-aligned box bounds of the ambient space."""
    low: np.ndarray
    high: np.ndarray

    @classmethod
    def uniform(cls, dimension: int, bound: float) -> 'AmbientBounds':
        return cls(np.full(dimension, -float(bound)), np.full(dimension, float(bound)))

    @property
    def dimension(self) -> int:
        return self.low.shape[0]

    def contains(self, x: np.ndarray) -> bool:
        return bool(np.all(x >= self.low) and np.all(x <= self.high))

    def sample(self, rng: np.random.Generator) -> np.ndarray:
        return rng.uniform(self.low, self.high)

class ConstrainedStateSpace:
    """Base class for constraint-handling state spaces."""

    space_type: Optional[SpaceType] = None

    def __init__(self, constraint: Constraint, bounds: AmbientBounds,
                 is_valid: Optional[StateValidityCheckerFn] = None,
                 config: Optional[Dict[str, Any]] = None,
                 rng: Optional[np.random.Generator] = None):
        """
        Initialize constrained state space.

        Args:
            constraint: Constraint defining the manifold
            bounds: Ambient box bounds
            is_valid: State validity checker over ambient points (all valid if None)
            config: Configuration overrides merged over the defaults
            rng: Random generator shared by samplers and planners
        """
        if bounds.dimension != constraint.ambient_dim:
            raise DimensionMismatchError(
                f"Bounds have dimension {bounds.dimension}, constraint expects {constraint.ambient_dim}")

        self.constraint = constraint
        self.bounds = bounds
        self.is_valid = is_valid or (lambda x: True)
        self.config = merge_config(default_config(), config or {})
        self.rng = rng if rng is not None else np.random.default_rng()

        self._apply_config()

        self.stats = {
            'geodesics': 0,
            'blocked_motions': 0,
            'manifold_deviations': 0,
        }
        self._stats_lock = threading.RLock()

        self.sampler = self._create_sampler()

    @property
    def ambient_dim(self) -> int:
        return self.constraint.ambient_dim

    @property
    def manifold_dim(self) -> int:
        return self.constraint.manifold_dim

    def _apply_config(self):
        space_config = self.config['constrained_space']
        delta = float(space_config['delta'])
        lambda_ = float(space_config['lambda'])
        if delta <= 0:
            raise ValueError(f"Geodesic step delta must be positive, got {delta}")
        if lambda_ <= 1:
            raise ValueError(f"Deviation ratio lambda must exceed 1, got {lambda_}")
        self.delta = delta
        self.lambda_ = lambda_

    def update_config(self, new_config: Dict[str, Any]):
        """
        Update space configuration.

        Args:
            new_config: Nested configuration overrides
        """
        merge_config(self.config, new_config)
        self._apply_config()
        logger.info(f"{type(self).__name__} configuration updated")

    def _create_sampler(self):
        raise NotImplementedError

    def _traverse_manifold(self, start: ConstrainedState, goal: ConstrainedState,
                           states: List[ConstrainedState]):
        """
        Walk from start toward goal, appending every intermediate state.

        Raises:
            MotionBlockedError: If an intermediate state is invalid
            ManifoldDeviationError: If the walk cannot stay on the manifold
        """
        raise NotImplementedError

    # State handling

    def make_state(self, x: np.ndarray) -> ConstrainedState:
        """
        Wrap an on-manifold ambient point as a state (used for start and goal).

        Raises:
            ManifoldDeviationError: If x does not satisfy the constraint
        """
        x = np.asarray(x, dtype=float)
        if not self.constraint.is_satisfied(x):
            raise ManifoldDeviationError(
                f"Point is not on the manifold (residual {self.constraint.distance(x):.3e})")
        return ConstrainedState(x.copy())

    def distance(self, a: ConstrainedState, b: ConstrainedState) -> float:
        """Ambient Euclidean distance between two states."""
        return float(np.linalg.norm(a.x - b.x))

    def satisfies_bounds(self, x: np.ndarray) -> bool:
        return self.bounds.contains(x)

    def is_state_valid(self, state: ConstrainedState) -> bool:
        """Check bounds, manifold tolerance and the external validity checker."""
        return (self.satisfies_bounds(state.x) and
                self.constraint.is_satisfied(state.x) and
                bool(self.is_valid(state.x)))

    # Sampling

    def sample_valid_state(self) -> ConstrainedState:
        """
        Sample a valid state on the manifold.

        Raises:
            SamplingExhaustedError: If the sampler's attempt budget ran out
        """
        return self.sampler.sample_uniform()

    def sample_near(self, state: ConstrainedState, distance: float) -> ConstrainedState:
        """Sample a valid state within roughly `distance` of `state`."""
        return self.sampler.sample_near(state, distance)

    # Local planning

    def discrete_geodesic(self, start: ConstrainedState, goal: ConstrainedState) -> MotionResult:
        """
        Compute a discrete geodesic from start toward goal.

        Args:
            start: Motion origin
            goal: Motion target

        Returns:
            MotionResult; on failure `states` holds the valid prefix
        """
        states = [start]

        with self._stats_lock:
            self.stats['geodesics'] += 1

        try:
            self._traverse_manifold(start, goal, states)
        except MotionBlockedError as e:
            with self._stats_lock:
                self.stats['blocked_motions'] += 1
            logger.debug(f"Motion blocked after {len(states)} states: {e}")
            return MotionResult(False, states, e)
        except ManifoldDeviationError as e:
            with self._stats_lock:
                self.stats['manifold_deviations'] += 1
            logger.debug(f"Motion left the manifold after {len(states)} states: {e}")
            return MotionResult(False, states, e)

        return MotionResult(True, states)

    def check_motion(self, start: ConstrainedState, goal: ConstrainedState) -> bool:
        """Check whether the geodesic from start reaches goal."""
        return self.discrete_geodesic(start, goal).reached

    def steer(self, start: ConstrainedState, goal: ConstrainedState, max_distance: float) -> MotionResult:
        """
        Move from start toward goal, stopping at `max_distance` from start.

        Returns:
            MotionResult truncated to the states within max_distance; `reached`
            is True only if goal itself was reached
        """
        result = self.discrete_geodesic(start, goal)

        for i, state in enumerate(result.states):
            if self.distance(start, state) > max_distance:
                return MotionResult(False, result.states[:max(i, 1)], result.failure)

        return result

    def interpolate(self, start: ConstrainedState, goal: ConstrainedState, t: float) -> ConstrainedState:
        """
        State at fraction t of the geodesic from start to goal.

        If the geodesic fails, the fraction applies to the reached prefix.
        """
        return self.geodesic_interpolate(self.discrete_geodesic(start, goal).states, t)

    def geodesic_interpolate(self, states: List[ConstrainedState], t: float) -> ConstrainedState:
        """State at fraction t of the arc length along a geodesic."""
        if len(states) == 1 or t <= 0:
            return states[0].copy()
        if t >= 1:
            return states[-1].copy()

        points = np.array([s.x for s in states])
        cumulative = np.concatenate([[0.0], np.cumsum(np.linalg.norm(np.diff(points, axis=0), axis=1))])
        if cumulative[-1] <= 0:
            return states[-1].copy()

        index = int(np.searchsorted(cumulative, t * cumulative[-1]))
        return states[min(index, len(states) - 1)].copy()

    def get_statistics(self) -> Dict[str, Any]:
        with self._stats_lock:
            return dict(self.stats)

def create_state_space(space_type: SpaceType, constraint: Constraint, bounds: AmbientBounds,
                       is_valid: Optional[StateValidityCheckerFn] = None,
                       config: Optional[Dict[str, Any]] = None,
                       rng: Optional[np.random.Generator] = None) -> ConstrainedStateSpace:
    """
    Create a constrained state space of the requested representation.

    Args:
        space_type: Representation to build
        constraint: Constraint defining the manifold
        bounds: Ambient box bounds
        is_valid: State validity checker
        config: Configuration overrides
        rng: Random generator

    Returns:
        Configured state space
    """
    # Imported here to avoid circular imports with the concrete spaces
    from .atlas_state_space import AtlasStateSpace
    from .projected_state_space import ProjectedStateSpace, NullspaceStateSpace

    space_classes = {
        SpaceType.ATLAS: AtlasStateSpace,
        SpaceType.PROJECTED: ProjectedStateSpace,
        SpaceType.NULLSPACE: NullspaceStateSpace,
    }

    space = space_classes[SpaceType(space_type)](constraint, bounds, is_valid, config, rng)
    logger.info(f"Created {space.space_type.value} state space: ambient dimension {constraint.ambient_dim}, "
                f"co-dimension {constraint.co_dim}")
    return space
