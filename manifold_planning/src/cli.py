#!/usr/bin/env python3
"""
Constrained Planning Demo CLI

Plans on one of the registered problems with a chosen planner and
constrained state space, then reports timing, path length and atlas
coverage. Optionally dumps the interpolated path, the planner graph and the
atlas as files for external viewers.

Usage:
    python -m manifold_planning -c sphere -p RRTConnect -s atlas -t 5 -o

Author: Robot Control Team
"""

import argparse
import logging
import os
import numpy as np
from typing import Dict, List, Optional

from manifold_constraints.src.constraint import DimensionMismatchError, SingularJacobianError
from .constrained_state_space import ManifoldDeviationError, SpaceType, create_state_space
from .path_planner import PLANNERS, PlannerTerminationCondition, UnknownPlannerError, create_planner
from .planning_config import load_planning_config
from .problem_registry import PROBLEMS, UnknownProblemError, create_problem
from .mesh_export import write_graph_ply, write_path_matrix, write_path_ply

logger = logging.getLogger(__name__)

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Constrained motion planning demo")
    parser.add_argument("-c", "--problem", default="sphere", help="Problem to plan for")
    parser.add_argument("-p", "--planner", default="RRTConnect", help="Planner to use")
    parser.add_argument("-s", "--space", default="projected",
                        help="Constrained state space: atlas, projected or null")
    parser.add_argument("-t", "--time", type=float, default=5.0, help="Planning time limit in seconds")
    parser.add_argument("-w", "--sleep", type=float, default=0.0,
                        help="Artificial delay per constraint evaluation in seconds")
    parser.add_argument("-o", "--output", action="store_true",
                        help="Write animation, path, graph and atlas files")
    parser.add_argument("-n", "--links", type=int, default=5, help="Number of links for the chain problem")
    parser.add_argument("-i", "--iterations", type=int, default=0,
                        help="Iteration limit (overrides the time limit when non-zero)")
    parser.add_argument("-a", "--no-separate", action="store_true",
                        help="Disable halfspace separation between atlas charts")
    parser.add_argument("--config", help="Path to planning configuration file")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("--output-dir", default=".", help="Directory for output files")
    parser.add_argument("--plot", help="Save a plot of the solution to this image file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser

def print_usage(parser: argparse.ArgumentParser, problems: Dict, planners: Dict):
    parser.print_usage()
    print(f"Available problems: {' '.join(problems)}")
    print(f"Available planners: {' '.join(planners)}")

def main(argv: Optional[List[str]] = None, problems: Optional[Dict] = None,
         planners: Optional[Dict] = None) -> int:
    """
    Run the demo.

    Args:
        argv: Command line arguments (sys.argv[1:] if None)
        problems: Problem registry (PROBLEMS if None)
        planners: Planner registry (PLANNERS if None)

    Returns:
        Process exit status
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    problems = PROBLEMS if problems is None else problems
    planners = PLANNERS if planners is None else planners

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    try:
        space_type = SpaceType(args.space)
    except ValueError:
        print("Invalid constrained state space.")
        print_usage(parser, problems, planners)
        return 1

    config = load_planning_config(args.config)
    if args.no_separate:
        config['atlas']['separate'] = False

    try:
        problem = create_problem(args.problem, problems, links=args.links, delay=args.sleep,
                                 tolerance=config['constraint']['tolerance'],
                                 max_iterations=config['constraint']['max_iterations'])
    except UnknownProblemError as e:
        logger.error(str(e))
        print("Invalid problem.")
        print_usage(parser, problems, planners)
        return 1

    constraint = problem.constraint
    print("Constrained Planning Testing:")
    print(f"  Planning in '{space_type.value}' state space with '{args.planner}' for '{problem.name}' problem.")
    print(f"  Ambient Dimension: {constraint.ambient_dim}   CoDimension: {constraint.co_dim}")
    print(f"  Timeout: {args.time:3.2f}s   Artificial Delay: {args.sleep:3.2f}s")

    rng = np.random.default_rng(args.seed)
    space = create_state_space(space_type, constraint, problem.bounds, problem.is_valid, config, rng)
    try:
        start = space.make_state(problem.start)
        goal = space.make_state(problem.goal)
    except (ManifoldDeviationError, SingularJacobianError, DimensionMismatchError) as e:
        logger.error(f"Cannot use endpoints of problem '{problem.name}': {e}")
        print("Invalid problem.")
        print_usage(parser, problems, planners)
        return 1

    try:
        planner = create_planner(args.planner, space, start, goal, planners)
    except UnknownPlannerError as e:
        logger.error(str(e))
        print("Invalid planner.")
        print_usage(parser, problems, planners)
        return 1

    if args.iterations:
        ptc = PlannerTerminationCondition.from_iterations(args.iterations)
    else:
        ptc = PlannerTerminationCondition.from_time(args.time)

    result = planner.solve(ptc)

    if args.iterations:
        print(f"{ptc.times_called}/{args.iterations} iterations.")

    if result.success:
        print(f"Took {result.computation_time:.3f} seconds.")

        path = result.path
        original_length = path.length()
        path.simplify(int(config['planner']['simplify_steps']))
        print(f"Path Length {original_length:.3f} -> {path.length():.3f}")

        if args.output:
            _write_outputs(args.output_dir, config['output'], path, planner, space, space_type)

        if args.plot:
            from .visualization import plot_solution

            charts = None
            if space_type == SpaceType.ATLAS and space.manifold_dim == 2 and space.ambient_dim == 3:
                charts = space.get_charts()
            graph = planner.get_planner_data().as_matrix() if space.ambient_dim == 3 else None
            plot_solution(path.as_matrix(), args.plot, graph, charts,
                          title=f"{problem.name} / {args.planner} / {space_type.value}")

        if result.approximate:
            print("Solution is approximate.")
    else:
        print("No solution found.")

    if space_type == SpaceType.ATLAS:
        print(f"Atlas created {space.get_chart_count()} charts.")
        print(f"{space.estimate_frontier_percent():.1f}% open.")

    return 0

def _write_outputs(output_dir: str, names: Dict[str, str], path, planner, space, space_type: SpaceType):
    os.makedirs(output_dir, exist_ok=True)

    print("Interpolating path...")
    path.interpolate(int(space.config['planner']['interpolation_count']))

    print("Dumping animation file...")
    with open(os.path.join(output_dir, names['animation_file']), 'w') as f:
        write_path_matrix(path.as_matrix(), f)

    if space.ambient_dim == 3:
        print("Dumping path mesh...")
        with open(os.path.join(output_dir, names['path_mesh']), 'w') as f:
            write_path_ply(path.as_matrix(), f)

        print("Dumping graph mesh...")
        data = planner.get_planner_data()
        with open(os.path.join(output_dir, names['graph_mesh']), 'w') as f:
            write_graph_ply(data.as_matrix(), data.edges, f)

    if space.manifold_dim == 2 and space_type == SpaceType.ATLAS and space.ambient_dim == 3:
        print("Dumping atlas mesh...")
        with open(os.path.join(output_dir, names['atlas_mesh']), 'w') as f:
            space.write_ply(f)
