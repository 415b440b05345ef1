#!/usr/bin/env python3
"""
Constrained Planning Problems

Canned benchmark problems pairing a constraint with start and goal states, a
state validity checker and ambient bounds:
- sphere: unit sphere with three narrow-passage bands between the poles
- torus: torus with a barrier wall across one half
- chain: anchored spatial chain swinging from +x to -x around an obstacle

Problems are looked up by name in a plain registry mapping, which callers
may replace with their own.

Author: Robot Control Team
"""

import numpy as np
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional
from scipy.spatial.distance import pdist, squareform

from manifold_constraints.src.constraint import Constraint
from manifold_constraints.src.implicit_surfaces import SphereConstraint, TorusConstraint
from manifold_constraints.src.kinematic_chain import ChainConstraint
from .constrained_state_space import AmbientBounds, StateValidityCheckerFn

logger = logging.getLogger(__name__)

# Half width of the gaps in the sphere and torus obstacles
PASSAGE_HALF_WIDTH = 0.05
TORUS_BARRIER_HALF_WIDTH = 0.2

class UnknownProblemError(Exception):
    """Raised when a problem name is not registered."""
    pass

@dataclass
class ConstrainedProblem:
    """Constraint, endpoints, validity checker and ambient bound of a planning query."""
    name: str
    constraint: Constraint
    start: np.ndarray
    goal: np.ndarray
    is_valid: StateValidityCheckerFn
    bound: float

    @property
    def bounds(self) -> AmbientBounds:
        return AmbientBounds.uniform(self.constraint.ambient_dim, self.bound)

def sphere_valid(x: np.ndarray) -> bool:
    """
    Narrow-passage obstacles on the unit sphere.

    Three horizontal bands block the way from the south to the north pole.
    Each band has a single gap, and the gaps alternate sides.
    """
    if -0.8 < x[2] < -0.6:
        if -PASSAGE_HALF_WIDTH < x[1] < PASSAGE_HALF_WIDTH:
            return bool(x[0] > 0)
        return False
    if -0.1 < x[2] < 0.1:
        if -PASSAGE_HALF_WIDTH < x[0] < PASSAGE_HALF_WIDTH:
            return bool(x[1] < 0)
        return False
    if 0.6 < x[2] < 0.8:
        if -PASSAGE_HALF_WIDTH < x[1] < PASSAGE_HALF_WIDTH:
            return bool(x[0] < 0)
        return False
    return True

def torus_valid(x: np.ndarray) -> bool:
    """Wall across the y > 0 half of the torus."""
    return not (abs(x[0]) < TORUS_BARRIER_HALF_WIDTH and x[1] > 0)

def chain_validity_checker(constraint: ChainConstraint, obstacle_center: np.ndarray,
                           obstacle_radius: float) -> StateValidityCheckerFn:
    """
    Build a validity checker for a chain.

    Args:
        constraint: Chain constraint providing the joint layout
        obstacle_center: Center of a spherical obstacle
        obstacle_radius: Radius of the obstacle

    Returns:
        Checker rejecting self-collisions between non-adjacent joints and
        joints inside the obstacle
    """
    clearance = 0.5 * constraint.link_length
    count = constraint.links + 1
    non_adjacent = np.abs(np.subtract.outer(np.arange(count), np.arange(count))) > 1

    def is_valid(x: np.ndarray) -> bool:
        joints = np.vstack([np.zeros(3), constraint.joint_positions(x)])

        distances = squareform(pdist(joints))
        if np.any(distances[non_adjacent] < clearance):
            return False

        return bool(np.all(np.linalg.norm(joints - obstacle_center, axis=1) > obstacle_radius))

    return is_valid

def sphere_problem(links: int = 5, **constraint_kwargs) -> ConstrainedProblem:
    constraint = SphereConstraint(radius=1.0, **constraint_kwargs)
    return ConstrainedProblem(
        name='sphere',
        constraint=constraint,
        start=np.array([0.0, 0.0, -1.0]),
        goal=np.array([0.0, 0.0, 1.0]),
        is_valid=sphere_valid,
        bound=20.0,
    )

def torus_problem(links: int = 5, **constraint_kwargs) -> ConstrainedProblem:
    constraint = TorusConstraint(outer_radius=2.0, inner_radius=1.0, **constraint_kwargs)
    return ConstrainedProblem(
        name='torus',
        constraint=constraint,
        start=np.array([3.0, 0.0, 0.0]),
        goal=np.array([-1.0, 0.0, 0.0]),
        is_valid=torus_valid,
        bound=20.0,
    )

def chain_problem(links: int = 5, **constraint_kwargs) -> ConstrainedProblem:
    """Chain of unit links; the obstacle sits above the sweep between the endpoints."""
    constraint = ChainConstraint(links=links, link_length=1.0, **constraint_kwargs)
    obstacle_center = np.array([0.0, 0.5 * links, 0.0])

    return ConstrainedProblem(
        name='chain',
        constraint=constraint,
        start=constraint.stretched_configuration((1.0, 0.0, 0.0)),
        goal=constraint.stretched_configuration((-1.0, 0.0, 0.0)),
        is_valid=chain_validity_checker(constraint, obstacle_center, 1.0),
        bound=float(links),
    )

PROBLEMS: Dict[str, Callable[..., ConstrainedProblem]] = {
    'sphere': sphere_problem,
    'torus': torus_problem,
    'chain': chain_problem,
}

def create_problem(name: str, problems: Optional[Dict[str, Callable[..., ConstrainedProblem]]] = None,
                   links: int = 5, delay: float = 0.0, **constraint_kwargs) -> ConstrainedProblem:
    """
    Create a registered problem by name.

    Args:
        name: Problem name
        problems: Registry to look the name up in (PROBLEMS if None)
        links: Number of chain links (chain problem only)
        delay: Artificial delay per constraint evaluation
        **constraint_kwargs: Projection parameters (tolerance, max_iterations)

    Raises:
        UnknownProblemError: If the name is not registered
    """
    registry = PROBLEMS if problems is None else problems
    if name not in registry:
        raise UnknownProblemError(f"Unknown problem '{name}', available: {', '.join(sorted(registry))}")

    problem = registry[name](links=links, delay=delay, **constraint_kwargs)
    logger.info(f"Created {name} problem: ambient dimension {problem.constraint.ambient_dim}, "
                f"co-dimension {problem.constraint.co_dim}")
    return problem
