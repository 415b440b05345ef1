#!/usr/bin/env python3
"""
Manifold Constraints Package - Source Module

Equality constraints defining implicit manifolds for constrained motion
planning.

This package provides:
- Residual/Jacobian evaluation with dimension checking
- Newton-Raphson projection and tangent space computation
- Canned surfaces (sphere, torus, plane) and a kinematic chain

Author: Robot Control Team
Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Robot Control Team"

from .constraint import (
    Constraint,
    ConstraintIntersection,
    ConstraintError,
    ConstraintConfigurationError,
    DimensionMismatchError,
    SingularJacobianError,
    RetractionFailedError,
)
from .implicit_surfaces import SphereConstraint, TorusConstraint, PlaneConstraint
from .kinematic_chain import ChainConstraint

__all__ = [
    'Constraint',
    'ConstraintIntersection',
    'ConstraintError',
    'ConstraintConfigurationError',
    'DimensionMismatchError',
    'SingularJacobianError',
    'RetractionFailedError',
    'SphereConstraint',
    'TorusConstraint',
    'PlaneConstraint',
    'ChainConstraint',
]

__title__ = "manifold_constraints"
__description__ = "Equality constraints for implicit manifolds"
__license__ = "MIT"
