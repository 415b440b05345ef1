#!/usr/bin/env python3
"""
Projection-Based Constrained State Spaces

Both spaces walk toward the goal in small steps and pull each step back onto
the manifold with Newton projection:
- ProjectedStateSpace steps along the ambient straight line
- NullspaceStateSpace steps along the tangent-space component of it

Author: Robot Control Team
"""

import numpy as np
import logging
from typing import List

from manifold_constraints.src.constraint import RetractionFailedError, SingularJacobianError
from .constrained_state_space import (
    ConstrainedState, ConstrainedStateSpace, ManifoldDeviationError,
    MotionBlockedError, SpaceType
)
from .state_sampler import ProjectedStateSampler

logger = logging.getLogger(__name__)

class ProjectedStateSpace(ConstrainedStateSpace):
    """Constrained state space stepping in the ambient space."""

    space_type = SpaceType.PROJECTED

    def _create_sampler(self):
        return ProjectedStateSampler(self)

    def _step_direction(self, x: np.ndarray, target: np.ndarray) -> np.ndarray:
        return target - x

    def _traverse_manifold(self, start: ConstrainedState, goal: ConstrainedState,
                           states: List[ConstrainedState]):
        total_distance = self.distance(start, goal)
        max_steps = int(np.ceil(self.lambda_ * total_distance / self.delta)) + 1

        previous = start.x
        travelled = 0.0

        for _ in range(max_steps):
            remaining = np.linalg.norm(goal.x - previous)
            if remaining <= self.delta:
                break

            direction = self._step_direction(previous, goal.x)
            norm = np.linalg.norm(direction)
            if norm < 1e-12:
                raise ManifoldDeviationError("Step direction vanished before reaching the goal")

            try:
                candidate = self.constraint.project(previous + self.delta * direction / norm)
            except RetractionFailedError as e:
                raise ManifoldDeviationError(str(e)) from e

            step = float(np.linalg.norm(candidate - previous))
            if step > self.lambda_ * self.delta:
                raise ManifoldDeviationError(f"Projection moved {step:.3f}, more than {self.lambda_} x step size")

            if np.linalg.norm(goal.x - candidate) >= remaining:
                raise ManifoldDeviationError("Projected step made no progress toward the goal")

            travelled += step
            if travelled > self.lambda_ * total_distance:
                raise ManifoldDeviationError(
                    f"Travelled {travelled:.3f} exceeds {self.lambda_} x straight-line distance {total_distance:.3f}")

            if not self.satisfies_bounds(candidate) or not self.is_valid(candidate):
                raise MotionBlockedError(f"Invalid state after travelling {travelled:.3f}")

            states.append(ConstrainedState(candidate))
            previous = candidate
        else:
            raise ManifoldDeviationError(f"Goal not reached within {max_steps} steps")

        states.append(goal.copy())

class NullspaceStateSpace(ProjectedStateSpace):
    """Constrained state space stepping in the constraint nullspace."""

    space_type = SpaceType.NULLSPACE

    def _step_direction(self, x: np.ndarray, target: np.ndarray) -> np.ndarray:
        try:
            basis = self.constraint.tangent_basis(x)
        except SingularJacobianError as e:
            raise ManifoldDeviationError(f"Singular point along motion: {e}") from e
        return basis @ (basis.T @ (target - x))
