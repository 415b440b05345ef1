#!/usr/bin/env python3
"""
Kinematic Chain Constraint

A spatial chain of `links` rigid links anchored at the origin. The ambient
state stacks the 3D positions of every joint, so the ambient dimension is
3 * links. Each link contributes one joint-distance constraint

    |x_i - x_{i-1}| - L = 0,    x_{-1} = origin

and an optional end-effector constraint pins the last joint to a sphere of
given radius around the origin.

Author: Robot Control Team
"""

import numpy as np
import logging
from typing import Optional, Sequence

from .constraint import Constraint, ConstraintConfigurationError
from .implicit_surfaces import GRADIENT_EPSILON

logger = logging.getLogger(__name__)

class ChainConstraint(Constraint):
    """Joint-distance constraints of an anchored spatial chain."""

    def __init__(self, links: int = 5, link_length: float = 1.0,
                 end_effector_radius: Optional[float] = None, **kwargs):
        """
        Initialize chain constraint.

        Args:
            links: Number of links (and joints)
            link_length: Length of every link
            end_effector_radius: If given, the last joint must lie on a sphere
                of this radius around the origin
            **kwargs: Projection parameters forwarded to Constraint
        """
        if links < 1:
            raise ConstraintConfigurationError(f"Chain requires at least one link, got {links}")
        if link_length <= 0:
            raise ConstraintConfigurationError(f"Link length must be positive, got {link_length}")

        co_dim = links + (0 if end_effector_radius is None else 1)
        super().__init__(3 * links, co_dim, **kwargs)

        self.links = int(links)
        self.link_length = float(link_length)
        self.end_effector_radius = None if end_effector_radius is None else float(end_effector_radius)

        logger.debug(f"Chain constraint with {self.links} links, co-dimension {self.co_dim}")

    def joint_positions(self, x: np.ndarray) -> np.ndarray:
        """Joint positions as an array of shape (links, 3)."""
        return np.asarray(x, dtype=float).reshape(self.links, 3)

    def stretched_configuration(self, direction: Sequence[float] = (1.0, 0.0, 0.0)) -> np.ndarray:
        """Configuration with every link aligned along `direction`."""
        direction = np.asarray(direction, dtype=float)
        direction = direction / np.linalg.norm(direction)
        return np.concatenate([(i + 1) * self.link_length * direction for i in range(self.links)])

    def _link_vectors(self, x: np.ndarray) -> np.ndarray:
        joints = self.joint_positions(x)
        previous = np.vstack([np.zeros(3), joints[:-1]])
        return joints - previous

    def _evaluate(self, x: np.ndarray) -> np.ndarray:
        residual = np.linalg.norm(self._link_vectors(x), axis=1) - self.link_length

        if self.end_effector_radius is not None:
            end_effector = self.joint_positions(x)[-1]
            residual = np.append(residual, np.linalg.norm(end_effector) - self.end_effector_radius)

        return residual

    def _jacobian(self, x: np.ndarray) -> np.ndarray:
        J = np.zeros((self.co_dim, self.ambient_dim))

        for i, link in enumerate(self._link_vectors(x)):
            norm = np.linalg.norm(link)
            if norm < GRADIENT_EPSILON:
                continue
            direction = link / norm
            J[i, 3 * i:3 * i + 3] = direction
            if i > 0:
                J[i, 3 * (i - 1):3 * i] = -direction

        if self.end_effector_radius is not None:
            end_effector = self.joint_positions(x)[-1]
            norm = np.linalg.norm(end_effector)
            if norm >= GRADIENT_EPSILON:
                J[self.links, -3:] = end_effector / norm

        return J
