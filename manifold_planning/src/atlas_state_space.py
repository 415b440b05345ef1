#!/usr/bin/env python3
"""
Atlas State Space Module

Approximates the constraint manifold by an incrementally grown atlas of
tangent-space charts:
- Chart creation on demand, separated from neighbours by halfspaces
- Owning chart lookup by anchor proximity (KD-tree) and polytope membership
- Measure-weighted chart sampling with frontier expansion
- Discrete geodesics that step in chart coordinates and switch charts when
  the chart no longer approximates the manifold well
- Coverage diagnostics (chart count, frontier percentage, PLY export)

Charts are stored in a growable list owned by the atlas and referenced by
index from states. Charts are never removed during a planning session, so the
chart count only grows.

Author: Robot Control Team
"""

import numpy as np
import logging
import threading
from typing import Any, Dict, List, Optional, TextIO, Tuple
from scipy.spatial import cKDTree

from manifold_constraints.src.constraint import (
    Constraint, RetractionFailedError, SingularJacobianError
)
from .atlas_chart import AtlasChart
from .constrained_state_space import (
    AmbientBounds, ConstrainedState, ConstrainedStateSpace, ManifoldDeviationError,
    MotionBlockedError, SamplingExhaustedError, SpaceType, StateValidityCheckerFn
)
from .mesh_export import write_atlas_ply
from .state_sampler import AtlasStateSampler

logger = logging.getLogger(__name__)

class AtlasConfigurationError(ValueError):
    """Raised for out-of-range atlas parameters."""
    pass

class AtlasStateSpace(ConstrainedStateSpace):
    """Constrained state space backed by an atlas of charts."""

    space_type = SpaceType.ATLAS

    def __init__(self, constraint: Constraint, bounds: AmbientBounds,
                 is_valid: Optional[StateValidityCheckerFn] = None,
                 config: Optional[Dict[str, Any]] = None,
                 rng: Optional[np.random.Generator] = None):
        """
        Initialize atlas state space.

        Args:
            constraint: Constraint defining the manifold
            bounds: Ambient box bounds
            is_valid: State validity checker
            config: Configuration overrides (see the `atlas` section)
            rng: Random generator
        """
        self._charts: List[AtlasChart] = []
        self._anchors: Dict[Tuple[float, ...], int] = {}
        self._anchor_tree: Optional[cKDTree] = None
        self._chart_lock = threading.RLock()

        super().__init__(constraint, bounds, is_valid, config, rng)

        logger.info(f"Atlas state space initialized: rho={self.rho}, epsilon={self.epsilon}, "
                    f"alpha={self.alpha:.3f}, exploration={self.exploration}, separate={self.separate}")

    def _apply_config(self):
        super()._apply_config()

        atlas_config = self.config['atlas']
        self.set_rho(atlas_config['rho'])
        self.set_epsilon(atlas_config['epsilon'])
        self.set_alpha(atlas_config['alpha'])
        self.set_exploration(atlas_config['exploration'])
        self.set_separate(atlas_config['separate'])
        self.max_charts_per_extension = int(atlas_config['max_charts_per_extension'])
        self.frontier_samples = int(atlas_config['frontier_samples'])
        self.measure_samples = int(atlas_config['measure_samples'])

    def _create_sampler(self):
        return AtlasStateSampler(self)

    # Parameters

    def set_rho(self, rho: float):
        """Set the chart radius."""
        if rho <= 0:
            raise AtlasConfigurationError(f"rho must be positive, got {rho}")
        self.rho = float(rho)
        self._update_sampling_radius()

    def set_epsilon(self, epsilon: float):
        """Set the maximum distance between a chart and the manifold."""
        if epsilon <= 0:
            raise AtlasConfigurationError(f"epsilon must be positive, got {epsilon}")
        self.epsilon = float(epsilon)

    def set_alpha(self, alpha: float):
        """Set the maximum angle between a chart and the manifold."""
        if not 0 < alpha < np.pi / 2:
            raise AtlasConfigurationError(f"alpha must be in (0, pi/2), got {alpha}")
        self.alpha = float(alpha)
        self.cos_alpha = float(np.cos(alpha))

    def set_exploration(self, exploration: float):
        """Set the share of samples drawn beyond chart borders."""
        if not 0 <= exploration < 1:
            raise AtlasConfigurationError(f"exploration must be in [0, 1), got {exploration}")
        self.exploration = float(exploration)
        self._update_sampling_radius()

    def set_separate(self, separate: bool):
        """Enable or disable halfspace separation between neighbouring charts."""
        self.separate = bool(separate)

    def _update_sampling_radius(self):
        if not hasattr(self, 'rho') or not hasattr(self, 'exploration'):
            return
        dimension = max(self.manifold_dim, 1)
        self.rho_s = self.rho / (1.0 - self.exploration) ** (1.0 / dimension)

    # Chart management

    def get_chart_count(self) -> int:
        """Number of charts created so far."""
        with self._chart_lock:
            return len(self._charts)

    def get_charts(self) -> Tuple[AtlasChart, ...]:
        with self._chart_lock:
            return tuple(self._charts)

    def get_chart(self, index: int) -> AtlasChart:
        with self._chart_lock:
            return self._charts[index]

    def anchor_chart(self, point: np.ndarray) -> AtlasChart:
        """
        Seed the atlas with a chart at the given point.

        Repeated calls with the same point return the same chart.

        Raises:
            DimensionMismatchError: If the point has the wrong dimension
            ManifoldDeviationError: If the point is not on the manifold
            SingularJacobianError: If the manifold is singular at the point
        """
        point = self.constraint.check_point(point)
        key = tuple(np.round(point, 12))

        with self._chart_lock:
            if key in self._anchors:
                return self._charts[self._anchors[key]]

            chart = self._new_chart(point)
            self._anchors[key] = chart.index
            logger.info(f"Anchored chart {chart.index} at {np.array2string(point, precision=3)}")
            return chart

    def chart_at(self, point: np.ndarray) -> AtlasChart:
        """
        Chart covering the point, creating one anchored there if none does.

        Raises:
            DimensionMismatchError: If the point has the wrong dimension
            ManifoldDeviationError: If a new chart is needed off the manifold
            SingularJacobianError: If a new chart is needed at a singular point
        """
        point = self.constraint.check_point(point)

        with self._chart_lock:
            chart = self.owning_chart(point)
            if chart is None:
                chart = self._new_chart(point)
            return chart

    def owning_chart(self, point: np.ndarray) -> Optional[AtlasChart]:
        """
        Find an existing chart whose polytope covers the point.

        Candidates are the charts with anchors within rho, nearest first. A
        candidate owns the point if its local coordinate lies in the polytope
        and the tangent plane is within epsilon of the point.
        """
        point = self.constraint.check_point(point)

        with self._chart_lock:
            for chart in self._nearby_charts(point, self.rho):
                u = chart.project_to_local(point)
                if not chart.contains_local(u):
                    continue
                if np.linalg.norm(chart.phi(u) - point) > self.epsilon:
                    continue
                return chart

        return None

    def state_chart(self, state: ConstrainedState) -> AtlasChart:
        """Chart a state was produced in, or the chart covering it."""
        with self._chart_lock:
            if state.chart is not None and 0 <= state.chart < len(self._charts):
                return self._charts[state.chart]
            chart = self.chart_at(state.x)
            state.chart = chart.index
            return chart

    def sample_chart(self) -> AtlasChart:
        """Pick a chart with probability proportional to its measure."""
        with self._chart_lock:
            if not self._charts:
                raise SamplingExhaustedError("Atlas has no charts; anchor a chart first")

            measures = np.array([chart.measure for chart in self._charts])
            index = self.rng.choice(len(self._charts), p=measures / measures.sum())
            return self._charts[index]

    def _nearby_charts(self, point: np.ndarray, radius: float) -> List[AtlasChart]:
        if not self._charts:
            return []

        if self._anchor_tree is None:
            self._anchor_tree = cKDTree(np.array([chart.origin for chart in self._charts]))

        indices = self._anchor_tree.query_ball_point(point, radius)
        charts = [self._charts[i] for i in indices]
        charts.sort(key=lambda chart: np.linalg.norm(chart.origin - point))
        return charts

    def _new_chart(self, point: np.ndarray) -> AtlasChart:
        """
        Create and register a chart anchored at an on-manifold point.

        Raises:
            ManifoldDeviationError: If the point is not on the manifold
            SingularJacobianError: If the Jacobian is rank deficient there
        """
        if not self.constraint.is_satisfied(point):
            raise ManifoldDeviationError(
                f"Cannot anchor a chart off the manifold (residual {self.constraint.distance(point):.3e})")

        with self._chart_lock:
            chart = AtlasChart.anchor_at(len(self._charts), self.constraint, point, self.rho)

            if self.separate:
                for neighbor in self._nearby_charts(point, 2.0 * self.rho):
                    if chart.add_halfspace(neighbor) is not None:
                        neighbor.add_halfspace(chart)
                        neighbor.update_measure(self.rng, self.measure_samples)

            chart.update_measure(self.rng, self.measure_samples)
            self._charts.append(chart)
            self._anchor_tree = None

        logger.debug(f"Created chart {chart.index} ({len(chart.halfspaces)} neighbours)")
        return chart

    # State handling

    def make_state(self, x: np.ndarray) -> ConstrainedState:
        """Wrap an on-manifold point as a state with an anchored chart."""
        state = super().make_state(x)
        state.chart = self.anchor_chart(state.x).index
        return state

    # Local planning

    def _traverse_manifold(self, start: ConstrainedState, goal: ConstrainedState,
                           states: List[ConstrainedState]):
        """
        Step toward the goal in chart coordinates.

        A new chart is selected whenever the lifted point leaves the chart
        polytope, drifts more than epsilon from the tangent plane, or the step
        bends by more than alpha.
        """
        total_distance = self.distance(start, goal)
        max_steps = int(np.ceil(self.lambda_ * total_distance / self.delta)) + 1

        try:
            chart = self.state_chart(start)
        except SingularJacobianError as e:
            raise ManifoldDeviationError(f"No chart at motion start: {e}") from e

        previous = start.x
        travelled = 0.0
        charts_created = 0

        for _ in range(max_steps):
            if np.linalg.norm(goal.x - previous) <= self.delta:
                break

            u_previous = chart.project_to_local(previous)
            direction = chart.project_to_local(goal.x) - u_previous
            norm = np.linalg.norm(direction)
            if norm < 1e-12:
                raise ManifoldDeviationError(f"Goal is normal to chart {chart.index}")

            u_next = u_previous + self.delta * direction / norm
            try:
                candidate = chart.lift_to_ambient(u_next)
            except RetractionFailedError as e:
                raise ManifoldDeviationError(str(e)) from e

            step = float(np.linalg.norm(candidate - previous))
            travelled += step
            if travelled > self.lambda_ * total_distance:
                raise ManifoldDeviationError(
                    f"Travelled {travelled:.3f} exceeds {self.lambda_} x straight-line distance {total_distance:.3f}")

            if not self.satisfies_bounds(candidate) or not self.is_valid(candidate):
                raise MotionBlockedError(f"Invalid state after travelling {travelled:.3f}")

            if (np.linalg.norm(candidate - chart.phi(u_next)) > self.epsilon or
                    step <= 0 or self.delta / step < self.cos_alpha or
                    not chart.contains_local(u_next)):
                owner = self.owning_chart(candidate)
                if owner is None or owner is chart:
                    if charts_created >= self.max_charts_per_extension:
                        raise ManifoldDeviationError(
                            f"Exceeded {self.max_charts_per_extension} new charts in one motion")
                    try:
                        owner = self._new_chart(candidate)
                    except SingularJacobianError as e:
                        raise ManifoldDeviationError(f"Singular point along motion: {e}") from e
                    charts_created += 1
                chart = owner

            states.append(ConstrainedState(candidate, chart.index))
            previous = candidate
        else:
            raise ManifoldDeviationError(f"Goal not reached within {max_steps} steps")

        states.append(goal.copy())

    # Diagnostics

    def estimate_frontier_percent(self) -> float:
        """Percentage of charts that still border unexplored manifold."""
        with self._chart_lock:
            if not self._charts:
                return 0.0
            frontier = sum(1 for chart in self._charts
                           if chart.estimate_is_frontier(self.rng, self.frontier_samples))
            return 100.0 * frontier / len(self._charts)

    def write_ply(self, stream: TextIO, boundary_samples: int = 32):
        """Write the atlas chart polygons as a PLY mesh (2-D manifolds in R^3)."""
        write_atlas_ply(self.get_charts(), stream, boundary_samples)

    def get_statistics(self) -> Dict[str, Any]:
        stats = super().get_statistics()
        stats['charts'] = self.get_chart_count()
        return stats
