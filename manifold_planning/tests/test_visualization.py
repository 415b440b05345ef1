#!/usr/bin/env python3
"""
Unit Tests for Solution Plotting

Author: Robot Control Team
"""

import sys
import os
import shutil
import tempfile
import unittest
import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from manifold_constraints.src.implicit_surfaces import SphereConstraint
from manifold_constraints.src.kinematic_chain import ChainConstraint
from manifold_planning.src.atlas_chart import AtlasChart
from manifold_planning.src.visualization import plot_solution


class TestPlotSolution(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_sphere_path(self):
        angles = np.linspace(0, np.pi / 2, 20)
        path = np.column_stack([np.sin(angles), np.zeros(20), np.cos(angles)])
        chart = AtlasChart.anchor_at(0, SphereConstraint(), path[0], 0.5)
        save_path = os.path.join(self.temp_dir, 'sphere.png')

        self.assertTrue(plot_solution(path, save_path, graph_vertices=path[::2], charts=[chart]))
        self.assertTrue(os.path.exists(save_path))

    def test_chain_path(self):
        chain = ChainConstraint(links=4)
        path = np.array([chain.stretched_configuration((np.cos(a), np.sin(a), 0.0))
                         for a in np.linspace(0, np.pi, 15)])
        save_path = os.path.join(self.temp_dir, 'chain.png')

        self.assertTrue(plot_solution(path, save_path, snapshots=5))
        self.assertTrue(os.path.exists(save_path))

    def test_unsupported_dimension(self):
        with self.assertRaises(ValueError):
            plot_solution(np.zeros((5, 4)), os.path.join(self.temp_dir, 'bad.png'))


if __name__ == '__main__':
    unittest.main(verbosity=2)
