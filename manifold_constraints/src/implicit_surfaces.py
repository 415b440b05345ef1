#!/usr/bin/env python3
"""
Implicit Surface Constraints

Closed-form constraints for the canned planning problems:
- Sphere of given radius and center
- Torus around the z axis
- Hyperplane (linear constraint, useful in intersections)

All Jacobians are analytic. At points where a gradient is undefined (the
sphere center, the torus tube center line) the Jacobian row is zero, which the
tangent space computation reports as a singular point.

Author: Robot Control Team
"""

import numpy as np
import logging
from typing import Optional, Sequence

from .constraint import Constraint, ConstraintConfigurationError

logger = logging.getLogger(__name__)

# Norms below this are treated as a degenerate gradient
GRADIENT_EPSILON = 1e-12

class SphereConstraint(Constraint):
    """Sphere |x - c| = r embedded in R^dimension."""

    def __init__(self, radius: float = 1.0, center: Optional[Sequence[float]] = None,
                 dimension: int = 3, **kwargs):
        super().__init__(dimension, 1, **kwargs)
        if radius <= 0:
            raise ConstraintConfigurationError(f"Sphere radius must be positive, got {radius}")

        self.radius = float(radius)
        self.center = np.zeros(dimension) if center is None else np.asarray(center, dtype=float)
        if self.center.shape != (dimension,):
            raise ConstraintConfigurationError(
                f"Sphere center must have {dimension} coordinates, got {self.center.shape}")

    def _evaluate(self, x: np.ndarray) -> np.ndarray:
        return np.array([np.linalg.norm(x - self.center) - self.radius])

    def _jacobian(self, x: np.ndarray) -> np.ndarray:
        offset = x - self.center
        norm = np.linalg.norm(offset)
        if norm < GRADIENT_EPSILON:
            return np.zeros((1, self.ambient_dim))
        return (offset / norm).reshape(1, self.ambient_dim)

class TorusConstraint(Constraint):
    """
    Torus around the z axis.

    The tube of radius `inner_radius` follows a circle of radius
    `outer_radius` in the xy-plane.
    """

    def __init__(self, outer_radius: float = 2.0, inner_radius: float = 1.0, **kwargs):
        super().__init__(3, 1, **kwargs)
        if not 0 < inner_radius < outer_radius:
            raise ConstraintConfigurationError(
                f"Torus requires 0 < inner radius < outer radius, got {inner_radius}, {outer_radius}")

        self.outer_radius = float(outer_radius)
        self.inner_radius = float(inner_radius)

    def _evaluate(self, x: np.ndarray) -> np.ndarray:
        planar = np.hypot(x[0], x[1])
        return np.array([np.hypot(planar - self.outer_radius, x[2]) - self.inner_radius])

    def _jacobian(self, x: np.ndarray) -> np.ndarray:
        planar = np.hypot(x[0], x[1])
        tube = np.hypot(planar - self.outer_radius, x[2])

        if planar < GRADIENT_EPSILON or tube < GRADIENT_EPSILON:
            return np.zeros((1, 3))

        radial = (planar - self.outer_radius) / tube
        return np.array([[radial * x[0] / planar, radial * x[1] / planar, x[2] / tube]])

    def point_at(self, theta: float, phi: float) -> np.ndarray:
        """Point on the torus at tube angle theta and ring angle phi."""
        ring = self.outer_radius + self.inner_radius * np.cos(theta)
        return np.array([ring * np.cos(phi), ring * np.sin(phi), self.inner_radius * np.sin(theta)])

class PlaneConstraint(Constraint):
    """Hyperplane n . x = offset."""

    def __init__(self, normal: Sequence[float], offset: float = 0.0, **kwargs):
        normal = np.asarray(normal, dtype=float)
        norm = np.linalg.norm(normal)
        if normal.ndim != 1 or norm < GRADIENT_EPSILON:
            raise ConstraintConfigurationError("Plane normal must be a non-zero vector")

        super().__init__(normal.shape[0], 1, **kwargs)
        self.normal = normal / norm
        self.offset = float(offset) / norm

    def _evaluate(self, x: np.ndarray) -> np.ndarray:
        return np.array([self.normal @ x - self.offset])

    def _jacobian(self, x: np.ndarray) -> np.ndarray:
        return self.normal.reshape(1, self.ambient_dim)
