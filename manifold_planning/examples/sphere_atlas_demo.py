#!/usr/bin/env python3
"""
Constrained Planning Demonstration

Demonstrates the constrained planning stack on the sphere problem:
- Atlas growth from start and goal charts
- Comparison of atlas, projected and nullspace state spaces
- Path simplification and interpolation
- Mesh export of the resulting atlas
"""

import sys
import os
import numpy as np
import logging

# Add project root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from manifold_planning.src.constrained_state_space import SpaceType, create_state_space
from manifold_planning.src.path_planner import PlannerTerminationCondition, create_planner
from manifold_planning.src.planning_config import load_planning_config
from manifold_planning.src.problem_registry import create_problem

# Setup logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger('constrained_planning_demo')


def demo_atlas_growth(config, seed=1):
    logger.info("=== Atlas Growth ===")
    problem = create_problem('sphere')
    space = create_state_space(SpaceType.ATLAS, problem.constraint, problem.bounds,
                               config=config, rng=np.random.default_rng(seed))
    space.make_state(problem.start)
    space.make_state(problem.goal)

    print("\nAtlas growth while sampling:")
    print("-" * 50)
    for batch in range(5):
        for _ in range(200):
            space.sample_valid_state()
        print(f"After {(batch + 1) * 200:4d} samples: {space.get_chart_count():3d} charts, "
              f"{space.estimate_frontier_percent():5.1f}% open")
    return space


def demo_space_comparison(config, seed=1, time_limit=5.0):
    logger.info("=== State Space Comparison ===")
    print("\nRRTConnect on the sphere problem:")
    print("-" * 50)

    for space_type in SpaceType:
        problem = create_problem('sphere')
        space = create_state_space(space_type, problem.constraint, problem.bounds, problem.is_valid,
                                   config, np.random.default_rng(seed))
        planner = create_planner('RRTConnect', space, space.make_state(problem.start),
                                 space.make_state(problem.goal))
        result = planner.solve(PlannerTerminationCondition.from_time(time_limit))

        if result.success:
            original_length = result.path.length()
            result.path.simplify()
            result.path.interpolate(100)
            print(f"{space_type.value:>10}: {result.computation_time:6.2f}s, "
                  f"length {original_length:.3f} -> {result.path.length():.3f}, "
                  f"valid path: {result.path.check()}")
        else:
            print(f"{space_type.value:>10}: {result.status.value}")


def main():
    config = load_planning_config()
    space = demo_atlas_growth(config)
    demo_space_comparison(config)

    atlas_file = os.path.join(os.path.dirname(__file__), 'sphere_atlas.ply')
    with open(atlas_file, 'w') as f:
        space.write_ply(f)
    print(f"\nAtlas mesh written to {atlas_file}")


if __name__ == "__main__":
    main()
