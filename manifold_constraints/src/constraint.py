#!/usr/bin/env python3
"""
Constraint Module for Implicit Manifolds

This module defines the equality constraints that carve a manifold out of an
ambient vector space:
- Residual and Jacobian evaluation with dimension checking
- Newton-Raphson projection onto the manifold
- Tangent space (Jacobian null space) computation
- Intersection of several constraints sharing one ambient space

A constraint is immutable after construction. The manifold it defines is
{x in R^n : F(x) = 0} with F: R^n -> R^k, so the manifold dimension is n - k.

Author: Robot Control Team
"""

import numpy as np
import logging
import time
from typing import List, Sequence
from scipy import linalg

logger = logging.getLogger(__name__)

# Singular values below this fraction of the largest one count as zero
SINGULAR_VALUE_THRESHOLD = 1e-9
FINITE_DIFFERENCE_STEP = 1e-6

class ConstraintError(Exception):
    """Base exception for constraint errors."""
    pass

class ConstraintConfigurationError(ConstraintError):
    """Raised when a constraint is constructed with invalid dimensions or parameters."""
    pass

class DimensionMismatchError(ConstraintError):
    """Raised when a point does not have the constraint's ambient dimension."""
    pass

class SingularJacobianError(ConstraintError):
    """Raised when the constraint Jacobian is rank deficient at a point."""
    pass

class RetractionFailedError(ConstraintError):
    """Raised when Newton iteration fails to pull a point onto the manifold."""
    pass

class Constraint:
    """
    Base class for a vector of scalar equality constraints.

    Subclasses implement `_evaluate` and may override `_jacobian`; the default
    Jacobian uses central finite differences.
    """

    def __init__(self, ambient_dim: int, co_dim: int, tolerance: float = 1e-8,
                 max_iterations: int = 50, delay: float = 0.0):
        """
        Initialize constraint dimensions and projection parameters.

        Args:
            ambient_dim: Dimension n of the ambient space
            co_dim: Number k of scalar equality constraints
            tolerance: Residual norm below which a point is on the manifold
            max_iterations: Newton iteration budget for projections
            delay: Artificial delay in seconds per evaluation (benchmark knob)
        """
        if ambient_dim <= 0:
            raise ConstraintConfigurationError(f"Ambient dimension must be positive, got {ambient_dim}")
        if co_dim < 0:
            raise ConstraintConfigurationError(f"Co-dimension must be non-negative, got {co_dim}")
        if co_dim > ambient_dim:
            raise ConstraintConfigurationError(
                f"Co-dimension {co_dim} exceeds ambient dimension {ambient_dim}")
        if tolerance <= 0:
            raise ConstraintConfigurationError(f"Tolerance must be positive, got {tolerance}")
        if max_iterations < 1:
            raise ConstraintConfigurationError(f"Iteration budget must be at least 1, got {max_iterations}")

        self.ambient_dim = int(ambient_dim)
        self.co_dim = int(co_dim)
        self.tolerance = float(tolerance)
        self.max_iterations = int(max_iterations)
        self.delay = max(0.0, float(delay))

    @property
    def manifold_dim(self) -> int:
        """Dimension of the constraint manifold."""
        return self.ambient_dim - self.co_dim

    def evaluate(self, x: np.ndarray) -> np.ndarray:
        """
        Evaluate the constraint residual.

        Args:
            x: Ambient space point of length n

        Returns:
            Residual vector of length k, zero on the manifold
        """
        x = self._check_dimension(x)
        if self.delay > 0:
            time.sleep(self.delay)
        return np.asarray(self._evaluate(x), dtype=float).reshape(self.co_dim)

    def jacobian(self, x: np.ndarray) -> np.ndarray:
        """
        Evaluate the constraint Jacobian.

        Args:
            x: Ambient space point of length n

        Returns:
            Jacobian matrix of shape (k, n)
        """
        x = self._check_dimension(x)
        return np.asarray(self._jacobian(x), dtype=float).reshape(self.co_dim, self.ambient_dim)

    def distance(self, x: np.ndarray) -> float:
        """Norm of the constraint residual at x."""
        return float(np.linalg.norm(self.evaluate(x)))

    def is_satisfied(self, x: np.ndarray) -> bool:
        """Check whether x lies on the manifold within tolerance."""
        return self.distance(x) <= self.tolerance

    def project(self, x: np.ndarray) -> np.ndarray:
        """
        Project a point onto the manifold by Newton-Raphson iteration.

        Uses the minimum-norm update x <- x - J(x)^+ F(x).

        Args:
            x: Ambient space point near the manifold

        Returns:
            Projected point satisfying the constraint

        Raises:
            RetractionFailedError: If iteration does not converge
        """
        x = self._check_dimension(x).copy()

        for _ in range(self.max_iterations):
            f = self.evaluate(x)
            if np.linalg.norm(f) <= self.tolerance:
                return x

            step, *_ = np.linalg.lstsq(self.jacobian(x), f, rcond=None)
            x = x - step

            if not np.all(np.isfinite(x)):
                raise RetractionFailedError("Projection diverged to a non-finite point")

        residual = self.distance(x)
        if residual <= self.tolerance:
            return x

        raise RetractionFailedError(
            f"Projection did not converge within {self.max_iterations} iterations "
            f"(residual {residual:.3e})")

    def tangent_basis(self, x: np.ndarray) -> np.ndarray:
        """
        Compute an orthonormal basis of the tangent space at x.

        The tangent space is the null space of the Jacobian, obtained from the
        right singular vectors of its SVD.

        Args:
            x: Ambient space point

        Returns:
            Basis matrix of shape (n, n - k) with orthonormal columns

        Raises:
            SingularJacobianError: If the Jacobian rank is below k
        """
        J = self.jacobian(x)
        if self.co_dim == 0:
            return np.eye(self.ambient_dim)

        if not np.all(np.isfinite(J)):
            raise SingularJacobianError("Jacobian contains non-finite entries")

        _, singular_values, vt = linalg.svd(J)
        scale = max(singular_values[0], 1.0)
        rank = int(np.sum(singular_values > SINGULAR_VALUE_THRESHOLD * scale))

        if rank < self.co_dim:
            raise SingularJacobianError(
                f"Jacobian rank {rank} is below co-dimension {self.co_dim}")

        return vt[self.co_dim:].T

    def _evaluate(self, x: np.ndarray) -> np.ndarray:
        raise NotImplementedError("Constraint subclasses must implement _evaluate")

    def _jacobian(self, x: np.ndarray) -> np.ndarray:
        """Central finite difference Jacobian."""
        J = np.zeros((self.co_dim, self.ambient_dim))
        h = FINITE_DIFFERENCE_STEP

        for j in range(self.ambient_dim):
            offset = np.zeros(self.ambient_dim)
            offset[j] = h
            J[:, j] = (np.asarray(self._evaluate(x + offset)) -
                       np.asarray(self._evaluate(x - offset))) / (2.0 * h)

        return J

    def check_point(self, x: np.ndarray) -> np.ndarray:
        """
        Convert x to a float array of the ambient dimension.

        Raises:
            DimensionMismatchError: If x is not an ambient point
        """
        return self._check_dimension(x)

    def _check_dimension(self, x: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=float)
        if x.ndim != 1 or x.shape[0] != self.ambient_dim:
            raise DimensionMismatchError(
                f"Expected a {self.ambient_dim}-dimensional point, got shape {x.shape}")
        return x

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(ambient_dim={self.ambient_dim}, "
                f"co_dim={self.co_dim}, manifold_dim={self.manifold_dim})")

class ConstraintIntersection(Constraint):
    """Intersection of several constraints defined on the same ambient space."""

    def __init__(self, ambient_dim: int, constraints: Sequence[Constraint], **kwargs):
        """
        Initialize a stacked constraint.

        Args:
            ambient_dim: Shared ambient dimension
            constraints: Component constraints, evaluated in order
            **kwargs: Projection parameters forwarded to Constraint
        """
        if not constraints:
            raise ConstraintConfigurationError("Intersection requires at least one constraint")

        for constraint in constraints:
            if constraint.ambient_dim != ambient_dim:
                raise ConstraintConfigurationError(
                    f"{constraint!r} has ambient dimension {constraint.ambient_dim}, "
                    f"expected {ambient_dim}")

        self.constraints: List[Constraint] = list(constraints)
        super().__init__(ambient_dim, sum(c.co_dim for c in self.constraints), **kwargs)

    def _evaluate(self, x: np.ndarray) -> np.ndarray:
        return np.concatenate([c.evaluate(x) for c in self.constraints])

    def _jacobian(self, x: np.ndarray) -> np.ndarray:
        return np.vstack([c.jacobian(x) for c in self.constraints])
