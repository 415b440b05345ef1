#!/usr/bin/env python3
"""
Valid State Samplers for Constrained State Spaces

- AtlasStateSampler: samples local coordinates in a chart chosen by its
  measure, lifts them onto the manifold and grows the atlas at its frontier
- ProjectedStateSampler: samples the ambient box and projects onto the
  manifold with Newton-Raphson

Both retry up to a bounded number of attempts and raise
SamplingExhaustedError when the budget runs out; planners treat that as a
transient failure.

Author: Robot Control Team
"""

import numpy as np
import logging
from typing import Optional

from manifold_constraints.src.constraint import (
    RetractionFailedError, SingularJacobianError
)
from .atlas_chart import sample_ball
from .constrained_state_space import (
    ConstrainedState, ManifoldDeviationError, SamplingExhaustedError
)

logger = logging.getLogger(__name__)

class ProjectedStateSampler:
    """Ambient-box sampler with Newton projection."""

    def __init__(self, space, attempts: Optional[int] = None):
        """
        Initialize sampler.

        Args:
            space: Projection-based constrained state space
            attempts: Attempt budget per sample (configured value if None)
        """
        self.space = space
        self.attempts = int(attempts or space.config['sampler']['attempts'])

    def sample_uniform(self) -> ConstrainedState:
        """Sample a valid state from the whole ambient box."""
        for _ in range(self.attempts):
            state = self._project_candidate(self.space.bounds.sample(self.space.rng))
            if state is not None:
                return state

        raise SamplingExhaustedError(f"No valid projected sample after {self.attempts} attempts")

    def sample_near(self, near: ConstrainedState, distance: float) -> ConstrainedState:
        """Sample a valid state in an ambient ball around `near`."""
        for _ in range(self.attempts):
            offset = sample_ball(self.space.rng, self.space.ambient_dim, distance)
            state = self._project_candidate(near.x + offset)
            if state is not None:
                return state

        raise SamplingExhaustedError(f"No valid projected sample near state after {self.attempts} attempts")

    def _project_candidate(self, x: np.ndarray) -> Optional[ConstrainedState]:
        try:
            x = self.space.constraint.project(x)
        except RetractionFailedError as e:
            logger.debug(f"Sample projection failed: {e}")
            return None

        if not self.space.satisfies_bounds(x) or not self.space.is_valid(x):
            return None

        return ConstrainedState(x)

class AtlasStateSampler:
    """Chart-based sampler that extends the atlas at its frontier."""

    def __init__(self, atlas, attempts: Optional[int] = None):
        """
        Initialize sampler.

        Args:
            atlas: AtlasStateSpace to sample from
            attempts: Attempt budget per sample (configured value if None)
        """
        self.atlas = atlas
        self.attempts = int(attempts or atlas.config['sampler']['attempts'])

    def sample_uniform(self) -> ConstrainedState:
        """
        Sample a valid state from the atlas.

        Local coordinates are drawn from the radius-rho_s ball of a chart, so a
        share of the samples falls beyond the chart border and creates new
        charts there.
        """
        atlas = self.atlas

        for _ in range(self.attempts):
            chart = atlas.sample_chart()
            u = sample_ball(atlas.rng, atlas.manifold_dim, atlas.rho_s)
            state = self._lift_candidate(chart, u)
            if state is not None:
                return state

        raise SamplingExhaustedError(f"No valid atlas sample after {self.attempts} attempts")

    def sample_near(self, near: ConstrainedState, distance: float) -> ConstrainedState:
        """Sample a valid state within `distance` of `near` in chart coordinates."""
        atlas = self.atlas

        for _ in range(self.attempts):
            try:
                chart = atlas.state_chart(near)
            except (SingularJacobianError, ManifoldDeviationError) as e:
                raise SamplingExhaustedError(f"No chart available near state: {e}") from e

            u = chart.project_to_local(near.x) + sample_ball(atlas.rng, atlas.manifold_dim, distance)
            state = self._lift_candidate(chart, u)
            if state is not None:
                return state

        raise SamplingExhaustedError(f"No valid atlas sample near state after {self.attempts} attempts")

    def _lift_candidate(self, chart, u: np.ndarray) -> Optional[ConstrainedState]:
        atlas = self.atlas

        try:
            x = chart.lift_to_ambient(u)
        except RetractionFailedError as e:
            logger.debug(f"Sample retraction failed in chart {chart.index}: {e}")
            return None

        if not atlas.satisfies_bounds(x) or not atlas.constraint.is_satisfied(x):
            return None

        try:
            owner = atlas.chart_at(x)
        except (SingularJacobianError, ManifoldDeviationError) as e:
            logger.debug(f"Could not register chart for sample: {e}")
            return None

        if not atlas.is_valid(x):
            return None

        return ConstrainedState(x, owner.index)
