#!/usr/bin/env python3
"""
Unit Tests for the Constrained Planning CLI

Test suite covering:
- Argument parsing and defaults
- Invalid problem, planner and space handling
- End-to-end runs with output files for each state space

Author: Robot Control Team
"""

import sys
import os
import io
import shutil
import tempfile
import unittest
import numpy as np
from contextlib import redirect_stdout
from unittest.mock import patch

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from manifold_constraints.src.implicit_surfaces import SphereConstraint
from manifold_constraints.src.kinematic_chain import ChainConstraint
from manifold_planning.src.cli import build_parser, main
from manifold_planning.src.constrained_state_space import create_state_space
from manifold_planning.src.problem_registry import ConstrainedProblem


def open_sphere(links=5, **kwargs):
    """Obstacle-free sphere between the north pole and the equator."""
    return ConstrainedProblem('open_sphere', SphereConstraint(**kwargs), np.array([0.0, 0.0, 1.0]),
                              np.array([1.0, 0.0, 0.0]), lambda x: True, 2.0)


def lifted_sphere(links=5, **kwargs):
    """Start above the sphere surface."""
    return ConstrainedProblem('lifted_sphere', SphereConstraint(**kwargs), np.array([0.0, 0.0, 1.5]),
                              np.array([1.0, 0.0, 0.0]), lambda x: True, 2.0)


def reaching_chain(links=5, **kwargs):
    """Chain whose start is fully stretched against the end-effector sphere."""
    chain = ChainConstraint(links=links, end_effector_radius=float(links), **kwargs)
    return ConstrainedProblem('reaching_chain', chain, chain.stretched_configuration(),
                              chain.stretched_configuration((0.0, 1.0, 0.0)), lambda x: True, float(links))


class TestArgumentParsing(unittest.TestCase):

    def test_defaults(self):
        args = build_parser().parse_args([])
        self.assertEqual(args.problem, 'sphere')
        self.assertEqual(args.planner, 'RRTConnect')
        self.assertEqual(args.space, 'projected')
        self.assertEqual(args.time, 5.0)
        self.assertEqual(args.links, 5)
        self.assertEqual(args.iterations, 0)
        self.assertFalse(args.output)
        self.assertFalse(args.no_separate)

    def test_short_flags(self):
        args = build_parser().parse_args(['-c', 'chain', '-p', 'PRM', '-s', 'atlas', '-t', '2',
                                          '-w', '0.1', '-o', '-n', '7', '-i', '300', '-a'])
        self.assertEqual((args.problem, args.planner, args.space), ('chain', 'PRM', 'atlas'))
        self.assertEqual((args.time, args.sleep, args.links, args.iterations), (2.0, 0.1, 7, 300))
        self.assertTrue(args.output)
        self.assertTrue(args.no_separate)


class TestInvalidArguments(unittest.TestCase):

    def _run(self, argv):
        stdout = io.StringIO()
        with redirect_stdout(stdout):
            status = main(argv)
        return status, stdout.getvalue()

    def test_invalid_space(self):
        status, output = self._run(['-s', 'manifold'])
        self.assertEqual(status, 1)
        self.assertIn("Invalid constrained state space.", output)
        self.assertIn("Available problems: sphere torus chain", output)

    def test_invalid_problem(self):
        status, output = self._run(['-c', 'klein_bottle'])
        self.assertEqual(status, 1)
        self.assertIn("Invalid problem.", output)

    def test_invalid_planner(self):
        status, output = self._run(['-p', 'KPIECE1', '-i', '1'])
        self.assertEqual(status, 1)
        self.assertIn("Invalid planner.", output)

    def test_off_manifold_endpoint(self):
        stdout = io.StringIO()
        with redirect_stdout(stdout):
            status = main(['-c', 'lifted_sphere'], problems={'lifted_sphere': lifted_sphere})
        self.assertEqual(status, 1)
        self.assertIn("Invalid problem.", stdout.getvalue())

    def test_singular_endpoint(self):
        stdout = io.StringIO()
        with redirect_stdout(stdout):
            status = main(['-c', 'reaching_chain', '-s', 'atlas'], problems={'reaching_chain': reaching_chain})
        self.assertEqual(status, 1)
        self.assertIn("Invalid problem.", stdout.getvalue())


class TestDemoRuns(unittest.TestCase):
    """End-to-end runs on an obstacle-free sphere."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.problems = {'open_sphere': open_sphere}

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def _run(self, space, *extra):
        argv = ['-c', 'open_sphere', '-s', space, '-i', '2000', '--seed', '3',
                '--output-dir', self.temp_dir] + list(extra)
        stdout = io.StringIO()
        with redirect_stdout(stdout):
            status = main(argv, problems=self.problems)
        return status, stdout.getvalue()

    def test_atlas_run_with_output(self):
        status, output = self._run('atlas', '-o')

        self.assertEqual(status, 0)
        self.assertIn("Ambient Dimension: 3   CoDimension: 1", output)
        self.assertIn("Path Length", output)
        self.assertIn("Atlas created", output)
        self.assertIn("% open.", output)

        for name in ('anim.txt', 'path.ply', 'graph.ply', 'atlas.ply'):
            self.assertTrue(os.path.exists(os.path.join(self.temp_dir, name)), name)

        animation = np.loadtxt(os.path.join(self.temp_dir, 'anim.txt'))
        self.assertEqual(animation.shape, (100, 3))
        np.testing.assert_allclose(np.linalg.norm(animation, axis=1), 1.0, atol=1e-6)

    def test_projected_run_skips_atlas_output(self):
        status, output = self._run('projected', '-o')

        self.assertEqual(status, 0)
        self.assertNotIn("Atlas created", output)
        self.assertTrue(os.path.exists(os.path.join(self.temp_dir, 'path.ply')))
        self.assertFalse(os.path.exists(os.path.join(self.temp_dir, 'atlas.ply')))

    def test_iteration_report(self):
        status, output = self._run('null')
        self.assertEqual(status, 0)
        self.assertIn("/2000 iterations.", output)

    def test_no_separate_flag(self):
        with patch('manifold_planning.src.cli.create_state_space', wraps=create_state_space) as factory:
            status, _ = self._run('atlas', '-a')

        self.assertEqual(status, 0)
        config = factory.call_args[0][4]
        self.assertFalse(config['atlas']['separate'])

    def test_plot(self):
        plot_path = os.path.join(self.temp_dir, 'solution.png')
        status, _ = self._run('atlas', '--plot', plot_path)
        self.assertEqual(status, 0)
        self.assertTrue(os.path.exists(plot_path))


if __name__ == '__main__':
    unittest.main(verbosity=2)
