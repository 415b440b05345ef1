#!/usr/bin/env python3
"""
Geometric Path Module

Sequence of constrained states connected by discrete geodesics of a state
space, with shortcut simplification and geodesic resampling.

Author: Robot Control Team
"""

import numpy as np
import logging
from typing import List, Optional

from .constrained_state_space import ConstrainedState, ConstrainedStateSpace

logger = logging.getLogger(__name__)

class GeometricPath:
    """Piecewise-geodesic path through a constrained state space."""

    def __init__(self, space: ConstrainedStateSpace, states: Optional[List[ConstrainedState]] = None):
        self.space = space
        self.states: List[ConstrainedState] = list(states or [])

    def __len__(self) -> int:
        return len(self.states)

    def length(self) -> float:
        """Sum of ambient distances between consecutive states."""
        return float(sum(self.space.distance(a, b) for a, b in zip(self.states[:-1], self.states[1:])))

    def as_matrix(self) -> np.ndarray:
        """States stacked as rows of shape (count, n)."""
        if not self.states:
            return np.zeros((0, self.space.ambient_dim))
        return np.array([state.x for state in self.states])

    def check(self) -> bool:
        """Check that every state is valid and every segment is traversable."""
        if not all(self.space.is_state_valid(state) for state in self.states):
            return False
        return all(self.space.check_motion(a, b) for a, b in zip(self.states[:-1], self.states[1:]))

    def simplify(self, max_steps: int = 100, rng: Optional[np.random.Generator] = None) -> float:
        """
        Shorten the path by random shortcutting.

        Two random states are joined directly whenever the geodesic between
        them is traversable and shorter than the path section it replaces.

        Args:
            max_steps: Number of shortcut attempts
            rng: Random generator (the space's if None)

        Returns:
            Path length after simplification
        """
        rng = rng if rng is not None else self.space.rng
        original_length = self.length()

        for _ in range(max_steps):
            if len(self.states) < 3:
                break

            i, j = sorted(rng.choice(len(self.states), size=2, replace=False))
            if j - i < 2:
                continue

            section = GeometricPath(self.space, self.states[i:j + 1]).length()
            if self.space.distance(self.states[i], self.states[j]) >= section:
                continue

            result = self.space.discrete_geodesic(self.states[i], self.states[j])
            if result.reached and result.length() < section:
                self.states = self.states[:i + 1] + self.states[j:]

        logger.debug(f"Simplified path from {original_length:.3f} to {self.length():.3f}")
        return self.length()

    def interpolate(self, count: int = 100):
        """
        Resample the path to `count` states along its geodesics.

        States are allocated to segments in proportion to segment length.
        Segments whose geodesic cannot be recomputed keep their end states.
        """
        if len(self.states) < 2 or count <= len(self.states):
            return

        lengths = np.array([self.space.distance(a, b) for a, b in zip(self.states[:-1], self.states[1:])])
        total = lengths.sum()
        if total <= 0:
            return

        extra = count - len(self.states)
        allocation = np.floor(extra * lengths / total).astype(int)
        remainder = extra - int(allocation.sum())
        for index in np.argsort(-(extra * lengths / total - allocation))[:remainder]:
            allocation[index] += 1

        resampled = [self.states[0]]
        for (a, b), inserted in zip(zip(self.states[:-1], self.states[1:]), allocation):
            if inserted > 0:
                geodesic = self.space.discrete_geodesic(a, b)
                if geodesic.reached:
                    for k in range(1, inserted + 1):
                        resampled.append(self.space.geodesic_interpolate(geodesic.states, k / (inserted + 1.0)))
            resampled.append(b)

        self.states = resampled
