#!/usr/bin/env python3
"""
Constrained Motion Planning Package

Sampling-based motion planning on implicitly defined manifolds, built on the
constraint definitions of the manifold_constraints package.

This package provides:
- Atlas of tangent-space charts grown incrementally over the manifold
- Projection and nullspace alternatives behind the same state space interface
- Valid state samplers and discrete geodesic local planning
- RRTConnect, RRT and PRM planners with path simplification
- Benchmark problems, mesh export, plotting and a command line demo

Author: Robot Control Team
Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Robot Control Team"
