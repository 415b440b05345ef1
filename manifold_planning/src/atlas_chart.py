#!/usr/bin/env python3
"""
Atlas Chart Module

A chart is a local linear approximation of the constraint manifold around an
anchor point a: the tangent space spanned by an orthonormal basis B. It maps
local coordinates u to ambient points and back:

    phi(u)      = a + B u                     (point on the tangent plane)
    psi(u)      = retraction of phi(u)        (point on the manifold)
    psi^-1(x)   = B^T (x - a)

The retraction solves [F(x); B^T (x - phi(u))] = 0 by Newton iteration, so the
correction stays in the orthogonal complement of the chart.

Neighbouring charts are separated by halfspaces in local coordinates; the
intersection of those halfspaces with the radius-rho ball is the chart's
polytope.

Author: Robot Control Team
"""

import numpy as np
import logging
from dataclasses import dataclass
from typing import List, Optional
from scipy import special

from manifold_constraints.src.constraint import Constraint, RetractionFailedError

logger = logging.getLogger(__name__)

# Slack applied to halfspace membership tests
HALFSPACE_TOLERANCE = 1e-12

@dataclass
class Halfspace:
    """Linear inequality u . normal <= offset in chart coordinates."""
    normal: np.ndarray
    offset: float
    neighbor: int

    def contains(self, u: np.ndarray) -> bool:
        return float(u @ self.normal) <= self.offset + HALFSPACE_TOLERANCE

def sample_ball(rng: np.random.Generator, dimension: int, radius: float, count: Optional[int] = None) -> np.ndarray:
    """
    Sample uniformly from a ball of given radius centered at the origin.

    Args:
        rng: Random generator
        dimension: Ball dimension
        radius: Ball radius
        count: Number of samples (single vector if None)

    Returns:
        Array of shape (dimension,) or (count, dimension)
    """
    shape = (1 if count is None else count, dimension)
    directions = rng.normal(size=shape)
    norms = np.linalg.norm(directions, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    radii = radius * rng.uniform(size=(shape[0], 1)) ** (1.0 / max(dimension, 1))
    samples = directions / norms * radii
    return samples[0] if count is None else samples

def ball_volume(dimension: int, radius: float) -> float:
    """Volume of a ball in R^dimension."""
    return float(np.pi ** (dimension / 2.0) / special.gamma(dimension / 2.0 + 1.0) * radius ** dimension)

class AtlasChart:
    """Tangent-space chart of the constraint manifold."""

    def __init__(self, index: int, constraint: Constraint, origin: np.ndarray,
                 basis: np.ndarray, radius: float):
        """
        Initialize chart. Use `anchor_at` to compute the basis from the constraint.

        Args:
            index: Position of the chart in the atlas
            constraint: Constraint defining the manifold
            origin: Anchor point on the manifold
            basis: Orthonormal tangent basis of shape (n, m)
            radius: Validity radius rho
        """
        self.index = index
        self.constraint = constraint
        self.origin = np.asarray(origin, dtype=float).copy()
        self.basis = basis
        self.radius = float(radius)
        self.halfspaces: List[Halfspace] = []
        self.measure = ball_volume(self.manifold_dim, self.radius)

        self._normals = np.zeros((0, self.manifold_dim))
        self._offsets = np.zeros(0)

    @classmethod
    def anchor_at(cls, index: int, constraint: Constraint, point: np.ndarray, radius: float) -> 'AtlasChart':
        """
        Create a chart anchored at an on-manifold point.

        Raises:
            SingularJacobianError: If the Jacobian is rank deficient at point
        """
        basis = constraint.tangent_basis(point)
        return cls(index, constraint, point, basis, radius)

    @property
    def manifold_dim(self) -> int:
        return self.basis.shape[1]

    def phi(self, u: np.ndarray) -> np.ndarray:
        """Point on the tangent plane at local coordinate u."""
        return self.origin + self.basis @ u

    def lift_to_ambient(self, u: np.ndarray) -> np.ndarray:
        """
        Map local coordinate u onto the manifold (psi).

        Raises:
            RetractionFailedError: If Newton iteration does not converge
        """
        target = self.phi(u)
        x = target.copy()
        constraint = self.constraint

        for _ in range(constraint.max_iterations):
            residual = np.concatenate([constraint.evaluate(x), self.basis.T @ (x - target)])
            if np.linalg.norm(residual) <= constraint.tolerance:
                return x

            system = np.vstack([constraint.jacobian(x), self.basis.T])
            try:
                x = x - np.linalg.solve(system, residual)
            except np.linalg.LinAlgError as e:
                raise RetractionFailedError(f"Singular retraction system in chart {self.index}") from e

            if not np.all(np.isfinite(x)):
                raise RetractionFailedError(f"Retraction diverged in chart {self.index}")

        if constraint.is_satisfied(x) and np.linalg.norm(self.basis.T @ (x - target)) <= constraint.tolerance:
            return x

        raise RetractionFailedError(
            f"Retraction in chart {self.index} did not converge within {constraint.max_iterations} iterations")

    def project_to_local(self, x: np.ndarray) -> np.ndarray:
        """Local coordinate of an ambient point (psi inverse)."""
        return self.basis.T @ (self.constraint.check_point(x) - self.origin)

    def covers(self, x: np.ndarray) -> bool:
        """Check whether x lies within the chart radius of the anchor."""
        return float(np.linalg.norm(self.constraint.check_point(x) - self.origin)) <= self.radius

    def in_polytope(self, u: np.ndarray) -> bool:
        """Check u against every separating halfspace."""
        if not self.halfspaces:
            return True
        return bool(np.all(self._normals @ u <= self._offsets + HALFSPACE_TOLERANCE))

    def contains_local(self, u: np.ndarray) -> bool:
        """Check that u is inside both the radius ball and the polytope."""
        return float(np.linalg.norm(u)) <= self.radius and self.in_polytope(u)

    def add_halfspace(self, neighbor: 'AtlasChart') -> Optional[Halfspace]:
        """
        Separate this chart from a neighbour by the bisector of the anchors.

        Returns:
            The new halfspace, or None if the anchors coincide in local coordinates
        """
        center = self.project_to_local(neighbor.origin)
        squared = float(center @ center)
        if squared <= HALFSPACE_TOLERANCE:
            return None

        halfspace = Halfspace(center, 0.5 * squared, neighbor.index)
        self.halfspaces.append(halfspace)
        self._normals = np.vstack([self._normals, center])
        self._offsets = np.append(self._offsets, halfspace.offset)
        return halfspace

    def update_measure(self, rng: np.random.Generator, samples: int = 200):
        """Monte Carlo estimate of the polytope volume."""
        volume = ball_volume(self.manifold_dim, self.radius)
        if not self.halfspaces or self.manifold_dim == 0:
            self.measure = volume
            return

        points = sample_ball(rng, self.manifold_dim, self.radius, samples)
        inside = np.all(points @ self._normals.T <= self._offsets + HALFSPACE_TOLERANCE, axis=1)
        self.measure = volume * max(int(np.sum(inside)), 1) / samples

    def estimate_is_frontier(self, rng: np.random.Generator, samples: int = 1000) -> bool:
        """
        Estimate whether the chart still borders unexplored manifold.

        A chart is on the frontier if some point of its radius boundary is not
        cut away by a neighbour's halfspace.
        """
        if self.manifold_dim == 0:
            return False
        if not self.halfspaces:
            return True

        directions = rng.normal(size=(samples, self.manifold_dim))
        norms = np.linalg.norm(directions, axis=1, keepdims=True)
        norms[norms == 0] = 1.0
        boundary = directions / norms * self.radius
        inside = np.all(boundary @ self._normals.T <= self._offsets + HALFSPACE_TOLERANCE, axis=1)
        return bool(np.any(inside))

    def boundary_polygon(self, samples: int = 32) -> np.ndarray:
        """
        Boundary of the chart polytope on its tangent plane (2-D manifolds).

        Each ray from the anchor is clipped at the radius and at the first
        halfspace it crosses.

        Returns:
            Ambient points of shape (samples, n), counter-clockwise in chart coordinates
        """
        if self.manifold_dim != 2:
            raise ValueError(f"Chart polygons need a 2-D manifold, got dimension {self.manifold_dim}")

        angles = np.linspace(0.0, 2.0 * np.pi, samples, endpoint=False)
        directions = np.column_stack([np.cos(angles), np.sin(angles)])
        extents = np.full(samples, self.radius)

        for halfspace in self.halfspaces:
            rates = directions @ halfspace.normal
            crossing = rates > HALFSPACE_TOLERANCE
            extents[crossing] = np.minimum(extents[crossing], halfspace.offset / rates[crossing])

        return np.array([self.phi(t * d) for t, d in zip(extents, directions)])

    def __repr__(self) -> str:
        return f"AtlasChart(index={self.index}, halfspaces={len(self.halfspaces)})"
