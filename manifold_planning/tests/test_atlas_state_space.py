#!/usr/bin/env python3
"""
Unit Tests for Atlas State Space Module

Test suite covering:
- Atlas sampling on the unit sphere
- Chart anchoring, ownership and creation
- Chart count monotonicity and frontier estimation
- Singular points
- Discrete geodesics with chart switching
- Parameter validation and configuration updates

Author: Robot Control Team
"""

import sys
import os
import io
import unittest
import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from manifold_constraints.src.constraint import DimensionMismatchError, SingularJacobianError
from manifold_constraints.src.implicit_surfaces import SphereConstraint
from manifold_constraints.src.kinematic_chain import ChainConstraint
from manifold_planning.src.atlas_state_space import AtlasStateSpace, AtlasConfigurationError
from manifold_planning.src.constrained_state_space import (
    AmbientBounds, ManifoldDeviationError, MotionBlockedError, SamplingExhaustedError
)

NORTH = np.array([0.0, 0.0, 1.0])
SOUTH = np.array([0.0, 0.0, -1.0])
EAST = np.array([1.0, 0.0, 0.0])


def make_sphere_atlas(is_valid=None, seed=42, config=None):
    return AtlasStateSpace(SphereConstraint(), AmbientBounds.uniform(3, 2.0), is_valid,
                           config, np.random.default_rng(seed))


class TestAtlasSampling(unittest.TestCase):
    """Test cases for valid state sampling from the atlas."""

    def setUp(self):
        self.atlas = make_sphere_atlas(is_valid=lambda x: True)
        self.atlas.anchor_chart(NORTH)
        self.atlas.anchor_chart(SOUTH)

    def test_samples_stay_on_sphere(self):
        """1000 samples all satisfy the sphere constraint to 1e-6."""
        for _ in range(1000):
            state = self.atlas.sample_valid_state()
            self.assertLessEqual(abs(np.linalg.norm(state.x) - 1.0), 1e-6)
            self.assertIsNotNone(state.chart)
            self.assertTrue(self.atlas.satisfies_bounds(state.x))

    def test_chart_count_never_decreases(self):
        counts = []
        for _ in range(5):
            for _ in range(100):
                self.atlas.sample_valid_state()
            counts.append(self.atlas.get_chart_count())

        self.assertEqual(counts, sorted(counts))
        self.assertGreater(counts[-1], 2)

    def test_frontier_percent_range(self):
        for _ in range(300):
            self.atlas.sample_valid_state()

        percent = self.atlas.estimate_frontier_percent()
        self.assertGreaterEqual(percent, 0.0)
        self.assertLessEqual(percent, 100.0)

    def test_sample_near(self):
        near = self.atlas.make_state(NORTH)
        state = self.atlas.sample_near(near, 0.2)
        self.assertLessEqual(abs(np.linalg.norm(state.x) - 1.0), 1e-6)

    def test_sampled_chart_is_registered(self):
        state = self.atlas.sample_valid_state()
        chart = self.atlas.get_chart(state.chart)
        self.assertLessEqual(np.linalg.norm(chart.origin - state.x), self.atlas.rho + 1e-9)


class TestAtlasCharts(unittest.TestCase):
    """Test cases for chart management."""

    def setUp(self):
        self.atlas = make_sphere_atlas()

    def test_empty_atlas(self):
        self.assertEqual(self.atlas.get_chart_count(), 0)
        self.assertEqual(self.atlas.estimate_frontier_percent(), 0.0)
        with self.assertRaises(SamplingExhaustedError):
            self.atlas.sample_valid_state()

    def test_anchor_is_idempotent(self):
        first = self.atlas.anchor_chart(NORTH)
        second = self.atlas.anchor_chart(NORTH.copy())
        self.assertIs(first, second)
        self.assertEqual(self.atlas.get_chart_count(), 1)

    def test_anchor_off_manifold(self):
        with self.assertRaises(ManifoldDeviationError):
            self.atlas.anchor_chart(np.array([0.0, 0.0, 1.5]))

    def test_make_state_records_chart(self):
        state = self.atlas.make_state(NORTH)
        self.assertEqual(state.chart, 0)
        self.assertIs(self.atlas.state_chart(state), self.atlas.get_chart(0))

    def test_chart_at_reuses_owner(self):
        """Points inside an existing chart do not create new charts."""
        self.atlas.anchor_chart(NORTH)
        nearby = np.array([0.0, np.sin(0.1), np.cos(0.1)])
        chart = self.atlas.chart_at(nearby)
        self.assertEqual(chart.index, 0)
        self.assertEqual(self.atlas.get_chart_count(), 1)

    def test_chart_at_creates_separated_chart(self):
        self.atlas.anchor_chart(NORTH)
        point = np.array([np.sin(0.6), 0.0, np.cos(0.6)])
        self.assertIsNone(self.atlas.owning_chart(np.array([np.sin(1.2), 0.0, np.cos(1.2)])))

        chart = self.atlas.chart_at(point)
        self.assertEqual(chart.index, 1)
        self.assertEqual(len(chart.halfspaces), 1)
        self.assertEqual(len(self.atlas.get_chart(0).halfspaces), 1)

    def test_wrong_dimension_with_charts(self):
        """Wrong-sized points are rejected the same way before and after anchoring."""
        with self.assertRaises(DimensionMismatchError):
            self.atlas.chart_at(np.array([0.0, 1.0]))

        self.atlas.anchor_chart(NORTH)
        with self.assertRaises(DimensionMismatchError):
            self.atlas.chart_at(np.array([0.0, 1.0]))
        with self.assertRaises(DimensionMismatchError):
            self.atlas.owning_chart(np.zeros(4))
        with self.assertRaises(DimensionMismatchError):
            self.atlas.anchor_chart(np.array([0.0, 1.0]))
        self.assertEqual(self.atlas.get_chart_count(), 1)

    def test_no_separation(self):
        atlas = make_sphere_atlas(config={'atlas': {'separate': False}})
        atlas.anchor_chart(NORTH)
        chart = atlas.chart_at(np.array([np.sin(0.9), 0.0, np.cos(0.9)]))
        self.assertEqual(len(chart.halfspaces), 0)

    def test_write_ply(self):
        self.atlas.anchor_chart(NORTH)
        self.atlas.anchor_chart(SOUTH)
        stream = io.StringIO()
        self.atlas.write_ply(stream)
        self.assertIn("element face 2", stream.getvalue())

    def test_statistics_include_charts(self):
        self.atlas.anchor_chart(NORTH)
        self.assertEqual(self.atlas.get_statistics()['charts'], 1)


class TestSingularPoints(unittest.TestCase):
    """Test cases for charts at rank-deficient points."""

    def setUp(self):
        self.chain = ChainConstraint(links=5, end_effector_radius=5.0)
        self.stretched = self.chain.stretched_configuration()
        self.atlas = AtlasStateSpace(self.chain, AmbientBounds.uniform(15, 5.0),
                                     rng=np.random.default_rng(0))

    def test_stretched_chain_is_on_manifold(self):
        self.assertTrue(self.chain.is_satisfied(self.stretched))

    def test_chart_at_singular_point(self):
        with self.assertRaises(SingularJacobianError):
            self.atlas.chart_at(self.stretched)
        self.assertEqual(self.atlas.get_chart_count(), 0)

    def test_anchor_at_singular_point(self):
        with self.assertRaises(SingularJacobianError):
            self.atlas.anchor_chart(self.stretched)


class TestAtlasGeodesics(unittest.TestCase):
    """Test cases for discrete geodesics through the atlas."""

    def test_geodesic_reaches_goal(self):
        atlas = make_sphere_atlas()
        start, goal = atlas.make_state(NORTH), atlas.make_state(EAST)

        result = atlas.discrete_geodesic(start, goal)

        self.assertTrue(result.reached)
        self.assertIsNone(result.failure)
        np.testing.assert_allclose(result.end.x, EAST)
        for state in result.states:
            self.assertLessEqual(abs(np.linalg.norm(state.x) - 1.0), 1e-6)
        self.assertLessEqual(result.length(), atlas.lambda_ * np.sqrt(2.0))
        self.assertGreater(atlas.get_chart_count(), 2)

    def test_geodesic_steps_are_bounded(self):
        atlas = make_sphere_atlas()
        result = atlas.discrete_geodesic(atlas.make_state(NORTH), atlas.make_state(EAST))

        points = np.array([s.x for s in result.states])
        steps = np.linalg.norm(np.diff(points, axis=0), axis=1)
        self.assertTrue(np.all(steps <= 2 * atlas.delta))

    def test_blocked_geodesic_returns_prefix(self):
        atlas = make_sphere_atlas(is_valid=lambda x: x[0] < 0.6)
        start, goal = atlas.make_state(NORTH), atlas.make_state(EAST)

        result = atlas.discrete_geodesic(start, goal)

        self.assertFalse(result.reached)
        self.assertIsInstance(result.failure, MotionBlockedError)
        self.assertTrue(all(s.x[0] < 0.6 for s in result.states))
        self.assertFalse(atlas.check_motion(start, goal))
        self.assertEqual(atlas.get_statistics()['blocked_motions'], 2)

    def test_interpolate_on_sphere(self):
        atlas = make_sphere_atlas()
        middle = atlas.interpolate(atlas.make_state(NORTH), atlas.make_state(EAST), 0.5)
        self.assertLessEqual(abs(np.linalg.norm(middle.x) - 1.0), 1e-6)
        self.assertGreater(middle.x[0], 0.3)
        self.assertGreater(middle.x[2], 0.3)

    def test_steer_truncates(self):
        atlas = make_sphere_atlas()
        start = atlas.make_state(NORTH)
        result = atlas.steer(start, atlas.make_state(EAST), 0.3)

        self.assertFalse(result.reached)
        self.assertGreater(len(result.states), 1)
        self.assertTrue(all(atlas.distance(start, s) <= 0.3 for s in result.states))


class TestAtlasParameters(unittest.TestCase):
    """Test cases for parameter validation."""

    def test_sampling_radius(self):
        atlas = make_sphere_atlas()
        self.assertAlmostEqual(atlas.rho_s, 0.5 / (0.25 ** 0.5))

    def test_invalid_parameters(self):
        atlas = make_sphere_atlas()
        with self.assertRaises(AtlasConfigurationError):
            atlas.set_rho(0.0)
        with self.assertRaises(AtlasConfigurationError):
            atlas.set_epsilon(-1.0)
        with self.assertRaises(AtlasConfigurationError):
            atlas.set_alpha(np.pi)
        with self.assertRaises(AtlasConfigurationError):
            atlas.set_exploration(1.0)

    def test_invalid_configuration(self):
        with self.assertRaises(AtlasConfigurationError):
            make_sphere_atlas(config={'atlas': {'rho': -0.5}})

    def test_update_config(self):
        atlas = make_sphere_atlas()
        atlas.update_config({'atlas': {'rho': 0.25, 'exploration': 0.0},
                             'constrained_space': {'delta': 0.02}})
        self.assertAlmostEqual(atlas.rho, 0.25)
        self.assertAlmostEqual(atlas.rho_s, 0.25)
        self.assertAlmostEqual(atlas.delta, 0.02)


if __name__ == '__main__':
    unittest.main(verbosity=2)
