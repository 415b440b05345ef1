#!/usr/bin/env python3
"""
Planning Configuration Module

Loads constrained planning parameters from YAML with built-in defaults:
- Constraint projection tolerance and iteration budget
- Discrete geodesic step size and deviation ratio
- Atlas chart parameters (rho, epsilon, alpha, exploration, separation)
- Sampler, planner and output settings

Missing or unreadable configuration files fall back to the defaults so the
planning stack always starts with a complete parameter set.

Author: Robot Control Team
"""

import copy
import logging
import os
import numpy as np
import yaml
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    'constraint': {
        'tolerance': 1e-8,
        'max_iterations': 50,
    },
    'constrained_space': {
        'delta': 0.05,
        'lambda': 2.0,
    },
    'atlas': {
        'rho': 0.5,
        'epsilon': 0.2,
        'alpha': np.pi / 8,
        'exploration': 0.75,
        'separate': True,
        'max_charts_per_extension': 200,
        'frontier_samples': 1000,
        'measure_samples': 200,
    },
    'sampler': {
        'attempts': 100,
    },
    'planner': {
        'range': 1.0,
        'goal_bias': 0.05,
        'prm_neighbors': 8,
        'simplify_steps': 100,
        'interpolation_count': 100,
    },
    'output': {
        'animation_file': 'anim.txt',
        'path_mesh': 'path.ply',
        'graph_mesh': 'graph.ply',
        'atlas_mesh': 'atlas.ply',
    },
}

class PlanningConfigError(Exception):
    """Raised when a configuration file has an invalid structure."""
    pass

def get_default_config_path() -> str:
    """Get default path to the planning configuration."""
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "config", "planning.yaml"))

def merge_config(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge overrides into base (in place).

    Args:
        base: Configuration dictionary to update
        overrides: Values taking precedence over base

    Returns:
        The updated base dictionary
    """
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merge_config(base[key], value)
        else:
            base[key] = value
    return base

def default_config() -> Dict[str, Any]:
    """Fresh copy of the built-in defaults."""
    return copy.deepcopy(DEFAULT_CONFIG)

def load_planning_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load planning configuration from YAML, merged over the defaults.

    Args:
        config_path: Path to a YAML file (packaged default if None)

    Returns:
        Complete configuration dictionary
    """
    path = config_path or get_default_config_path()
    config = default_config()

    if not os.path.exists(path):
        logger.warning(f"Planning config not found: {path}, using defaults")
        return config

    try:
        with open(path, 'r') as f:
            overrides = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load planning config from {path}: {e}")
        return config

    if overrides is None:
        return config

    if not isinstance(overrides, dict):
        raise PlanningConfigError(f"Planning config {path} must contain a mapping, got {type(overrides).__name__}")

    merge_config(config, overrides)
    logger.info(f"Planning config loaded from: {path}")
    return config
