#!/usr/bin/env python3
"""
Unit Tests for Kinematic Chain Constraint

Author: Robot Control Team
"""

import sys
import os
import unittest
import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from manifold_constraints.src.constraint import (
    ConstraintConfigurationError, SingularJacobianError
)
from manifold_constraints.src.kinematic_chain import ChainConstraint


class TestChainConstraint(unittest.TestCase):
    """Test cases for ChainConstraint."""

    def setUp(self):
        self.chain = ChainConstraint(links=5)

    def test_dimensions(self):
        """Five links give a 15-dimensional ambient space with 5 constraints."""
        self.assertEqual(self.chain.ambient_dim, 15)
        self.assertEqual(self.chain.co_dim, 5)
        self.assertEqual(self.chain.manifold_dim, 10)

    def test_end_effector_adds_constraint(self):
        """End-effector sphere adds one row."""
        chain = ChainConstraint(links=4, end_effector_radius=2.0)
        self.assertEqual(chain.ambient_dim, 12)
        self.assertEqual(chain.co_dim, 5)

    def test_zero_configuration_violates_every_link(self):
        """All joints at the origin give residual -L for every link."""
        residual = self.chain.evaluate(np.zeros(15))
        np.testing.assert_allclose(residual, -np.ones(5))
        self.assertFalse(self.chain.is_satisfied(np.zeros(15)))

    def test_stretched_configuration_satisfies(self):
        """A chain stretched along any direction satisfies the link lengths."""
        for direction in ([1, 0, 0], [0, -1, 0], [1, 1, 1]):
            x = self.chain.stretched_configuration(direction)
            self.assertTrue(self.chain.is_satisfied(x))
            np.testing.assert_allclose(np.linalg.norm(self.chain.joint_positions(x)[-1]), 5.0)

    def test_analytic_jacobian_matches_finite_differences(self):
        """Analytic Jacobian agrees with central differences."""
        rng = np.random.default_rng(3)
        x = rng.normal(size=15)
        expected = super(ChainConstraint, self.chain)._jacobian(x)
        np.testing.assert_allclose(self.chain.jacobian(x), expected, atol=1e-6)

    def test_projection_onto_chain(self):
        """Perturbed configurations project back onto the chain manifold."""
        rng = np.random.default_rng(11)
        x = self.chain.stretched_configuration([0, 0, 1]) + rng.normal(0, 0.1, 15)
        projected = self.chain.project(x)
        links = np.diff(np.vstack([np.zeros(3), self.chain.joint_positions(projected)]), axis=0)
        np.testing.assert_allclose(np.linalg.norm(links, axis=1), np.ones(5), atol=1e-7)

    def test_tangent_basis_dimension(self):
        """Tangent space of the plain chain has dimension 2 * links."""
        basis = self.chain.tangent_basis(self.chain.stretched_configuration())
        self.assertEqual(basis.shape, (15, 10))

    def test_singular_stretched_configuration(self):
        """Fully stretched chain at the end-effector reach limit is singular."""
        chain = ChainConstraint(links=5, end_effector_radius=5.0)
        x = chain.stretched_configuration()
        self.assertTrue(chain.is_satisfied(x))
        with self.assertRaises(SingularJacobianError):
            chain.tangent_basis(x)

    def test_invalid_chain(self):
        """Chains need at least one link of positive length."""
        with self.assertRaises(ConstraintConfigurationError):
            ChainConstraint(links=0)
        with self.assertRaises(ConstraintConfigurationError):
            ChainConstraint(links=3, link_length=-1.0)


if __name__ == '__main__':
    unittest.main(verbosity=2)
