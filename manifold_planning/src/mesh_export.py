#!/usr/bin/env python3
"""
Mesh and Path Export

Writes planning diagnostics for external viewers:
- Animation matrix: one state per row, whitespace separated
- Path, planner graph and atlas meshes as ASCII PLY

PLY output is limited to 3-D ambient spaces.

Author: Robot Control Team
"""

import numpy as np
import logging
from typing import Iterable, Optional, Sequence, TextIO, Tuple

logger = logging.getLogger(__name__)

def _check_ambient(points: np.ndarray, what: str):
    if points.ndim != 2 or points.shape[1] != 3:
        raise ValueError(f"{what} export needs 3-D ambient points, got shape {points.shape}")

def _write_ply_header(stream: TextIO, vertex_count: int, element: Optional[str] = None, element_count: int = 0):
    stream.write("ply\n")
    stream.write("format ascii 1.0\n")
    stream.write(f"element vertex {vertex_count}\n")
    stream.write("property float x\n")
    stream.write("property float y\n")
    stream.write("property float z\n")
    if element == 'edge':
        stream.write(f"element edge {element_count}\n")
        stream.write("property int vertex1\n")
        stream.write("property int vertex2\n")
    elif element == 'face':
        stream.write(f"element face {element_count}\n")
        stream.write("property list uint uint vertex_index\n")
    stream.write("end_header\n")

def write_path_matrix(points: np.ndarray, stream: TextIO):
    """
    Write path states as a matrix, one state per row.

    Args:
        points: Array of shape (count, n)
        stream: Text stream to write to
    """
    np.savetxt(stream, np.atleast_2d(points), fmt='%.10f')

def write_path_ply(points: np.ndarray, stream: TextIO):
    """Write a path as a PLY polyline (consecutive vertices joined by edges)."""
    points = np.atleast_2d(np.asarray(points, dtype=float))
    _check_ambient(points, "Path")

    edges = [(i, i + 1) for i in range(len(points) - 1)]
    _write_ply_header(stream, len(points), 'edge', len(edges))
    np.savetxt(stream, points, fmt='%.6f')
    for a, b in edges:
        stream.write(f"{a} {b}\n")

def write_graph_ply(vertices: np.ndarray, edges: Iterable[Tuple[int, int]], stream: TextIO):
    """
    Write a planner graph as PLY vertices and edges.

    Args:
        vertices: Array of shape (count, 3)
        edges: Index pairs into vertices
        stream: Text stream to write to
    """
    vertices = np.asarray(vertices, dtype=float)
    if vertices.size == 0:
        vertices = vertices.reshape(0, 3)
    _check_ambient(vertices, "Graph")
    edges = list(edges)

    _write_ply_header(stream, len(vertices), 'edge', len(edges))
    if len(vertices):
        np.savetxt(stream, vertices, fmt='%.6f')
    for a, b in edges:
        stream.write(f"{a} {b}\n")

def write_atlas_ply(charts: Sequence, stream: TextIO, boundary_samples: int = 32):
    """
    Write every chart polygon of a 2-D atlas in R^3 as a PLY face.

    Args:
        charts: Atlas charts
        stream: Text stream to write to
        boundary_samples: Polygon vertices per chart
    """
    polygons = [chart.boundary_polygon(boundary_samples) for chart in charts]
    vertices = np.vstack(polygons) if polygons else np.zeros((0, 3))
    _check_ambient(vertices, "Atlas")

    _write_ply_header(stream, len(vertices), 'face', len(polygons))
    if len(vertices):
        np.savetxt(stream, vertices, fmt='%.6f')

    offset = 0
    for polygon in polygons:
        indices = " ".join(str(offset + i) for i in range(len(polygon)))
        stream.write(f"{len(polygon)} {indices}\n")
        offset += len(polygon)

    logger.debug(f"Wrote atlas mesh with {len(polygons)} charts")
