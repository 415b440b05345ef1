#!/usr/bin/env python3
"""
Solution Plotting

Renders planning results with matplotlib 3D axes:
- 3-D ambient spaces: path polyline, planner graph vertices and atlas chart
  polygons
- Chains (ambient dimension a multiple of 3): a selection of configurations
  drawn as joint polylines from the anchor

Author: Robot Control Team
"""

import numpy as np
import logging
import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend
import matplotlib.pyplot as plt
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

def _plot_chain(ax, path: np.ndarray, snapshots: int):
    links = path.shape[1] // 3
    indices = np.unique(np.linspace(0, len(path) - 1, min(snapshots, len(path))).astype(int))
    colors = plt.cm.viridis(np.linspace(0, 1, len(indices)))

    for color, index in zip(colors, indices):
        joints = np.vstack([np.zeros(3), path[index].reshape(links, 3)])
        ax.plot(joints[:, 0], joints[:, 1], joints[:, 2], 'o-', color=color, markersize=3, linewidth=1.5)

def plot_solution(path: np.ndarray, save_path: str, graph_vertices: Optional[np.ndarray] = None,
                  charts: Optional[Sequence] = None, title: str = "Constrained Planning Solution",
                  snapshots: int = 10) -> bool:
    """
    Plot a solution path and save the figure.

    Args:
        path: Path states of shape (count, n)
        save_path: Output image file
        graph_vertices: Planner graph vertices of shape (count, 3) to scatter
        charts: Atlas charts whose polygons are drawn (2-D manifolds in R^3)
        title: Figure title
        snapshots: Number of chain configurations drawn

    Returns:
        True if the figure was saved
    """
    path = np.atleast_2d(np.asarray(path, dtype=float))
    dimension = path.shape[1]
    if dimension % 3 != 0:
        raise ValueError(f"Cannot plot states of dimension {dimension}")

    fig = plt.figure(figsize=(10, 8))
    ax = fig.add_subplot(111, projection='3d')

    try:
        if dimension == 3:
            if graph_vertices is not None and len(graph_vertices):
                graph_vertices = np.asarray(graph_vertices)
                ax.scatter(graph_vertices[:, 0], graph_vertices[:, 1], graph_vertices[:, 2],
                           s=4, c='gray', alpha=0.4, label='Planner graph')

            for chart in charts or ():
                polygon = chart.boundary_polygon()
                polygon = np.vstack([polygon, polygon[:1]])
                ax.plot(polygon[:, 0], polygon[:, 1], polygon[:, 2], color='tab:blue', linewidth=0.5, alpha=0.5)

            ax.plot(path[:, 0], path[:, 1], path[:, 2], 'r-', linewidth=2, label='Path')
            ax.scatter(*path[0], c='green', s=60, label='Start')
            ax.scatter(*path[-1], c='black', s=60, label='Goal')
            ax.legend()
        else:
            _plot_chain(ax, path, snapshots)

        ax.set_xlabel('X')
        ax.set_ylabel('Y')
        ax.set_zlabel('Z')
        ax.set_title(title)

        plt.tight_layout()
        plt.savefig(save_path, dpi=150)
        logger.info(f"Solution plot saved to: {save_path}")
        return True
    finally:
        plt.close(fig)
