#!/usr/bin/env python3
"""
Unit Tests for Mesh Export Module

Author: Robot Control Team
"""

import sys
import os
import io
import unittest
import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from manifold_constraints.src.implicit_surfaces import SphereConstraint
from manifold_planning.src.atlas_chart import AtlasChart
from manifold_planning.src.mesh_export import (
    write_atlas_ply, write_graph_ply, write_path_matrix, write_path_ply
)


def header_and_body(text):
    lines = text.splitlines()
    end = lines.index("end_header")
    return lines[:end + 1], lines[end + 1:]


class TestPathExport(unittest.TestCase):

    def setUp(self):
        self.points = np.array([[0.0, 0.0, 1.0], [0.6, 0.0, 0.8], [1.0, 0.0, 0.0]])

    def test_path_matrix(self):
        stream = io.StringIO()
        write_path_matrix(self.points, stream)
        stream.seek(0)
        np.testing.assert_allclose(np.loadtxt(stream), self.points)

    def test_path_matrix_any_dimension(self):
        stream = io.StringIO()
        write_path_matrix(np.zeros((4, 15)), stream)
        self.assertEqual(len(stream.getvalue().splitlines()), 4)
        self.assertEqual(len(stream.getvalue().splitlines()[0].split()), 15)

    def test_path_ply(self):
        stream = io.StringIO()
        write_path_ply(self.points, stream)
        header, body = header_and_body(stream.getvalue())

        self.assertEqual(header[0], "ply")
        self.assertIn("element vertex 3", header)
        self.assertIn("element edge 2", header)
        self.assertEqual(len(body), 5)
        self.assertEqual(body[3:], ["0 1", "1 2"])

    def test_path_ply_requires_3d(self):
        with self.assertRaises(ValueError):
            write_path_ply(np.zeros((3, 15)), io.StringIO())


class TestGraphExport(unittest.TestCase):

    def test_graph_ply(self):
        vertices = np.eye(3)
        stream = io.StringIO()
        write_graph_ply(vertices, [(0, 1), (0, 2)], stream)
        header, body = header_and_body(stream.getvalue())

        self.assertIn("element vertex 3", header)
        self.assertIn("element edge 2", header)
        self.assertEqual(body[3:], ["0 1", "0 2"])

    def test_empty_graph(self):
        stream = io.StringIO()
        write_graph_ply(np.zeros((0, 0)), [], stream)
        header, body = header_and_body(stream.getvalue())
        self.assertIn("element vertex 0", header)
        self.assertEqual(body, [])


class TestAtlasExport(unittest.TestCase):

    def test_atlas_ply(self):
        sphere = SphereConstraint()
        charts = [AtlasChart.anchor_at(0, sphere, np.array([0.0, 0.0, 1.0]), 0.5),
                  AtlasChart.anchor_at(1, sphere, np.array([0.0, 0.0, -1.0]), 0.5)]
        stream = io.StringIO()
        write_atlas_ply(charts, stream, boundary_samples=8)
        header, body = header_and_body(stream.getvalue())

        self.assertIn("element vertex 16", header)
        self.assertIn("element face 2", header)
        self.assertIn("property list uint uint vertex_index", header)
        self.assertEqual(body[16], "8 0 1 2 3 4 5 6 7")
        self.assertEqual(body[17], "8 8 9 10 11 12 13 14 15")


if __name__ == '__main__':
    unittest.main(verbosity=2)
