"""
Constrained planning module initialization.

Imports are structured to avoid circular dependencies.
"""

# Base modules without dependencies on the state spaces
from .planning_config import load_planning_config, PlanningConfigError
from .constrained_state_space import (
    ConstrainedStateSpace,
    ConstrainedState,
    MotionResult,
    AmbientBounds,
    SpaceType,
    ManifoldDeviationError,
    MotionBlockedError,
    SamplingExhaustedError,
    create_state_space,
)
from .atlas_chart import AtlasChart, Halfspace

# State space implementations
from .atlas_state_space import AtlasStateSpace, AtlasConfigurationError
from .projected_state_space import ProjectedStateSpace, NullspaceStateSpace
from .state_sampler import AtlasStateSampler, ProjectedStateSampler

# Planning on top of the state spaces
from .geometric_path import GeometricPath
from .path_planner import (
    RRTConnect,
    RRT,
    PRM,
    PLANNERS,
    PlannerStatus,
    PlanningResult,
    PlannerData,
    PlannerTerminationCondition,
    UnknownPlannerError,
    create_planner,
)
from .problem_registry import ConstrainedProblem, PROBLEMS, UnknownProblemError, create_problem

__all__ = [
    'load_planning_config',
    'PlanningConfigError',
    'ConstrainedStateSpace',
    'ConstrainedState',
    'MotionResult',
    'AmbientBounds',
    'SpaceType',
    'ManifoldDeviationError',
    'MotionBlockedError',
    'SamplingExhaustedError',
    'create_state_space',
    'AtlasChart',
    'Halfspace',
    'AtlasStateSpace',
    'AtlasConfigurationError',
    'ProjectedStateSpace',
    'NullspaceStateSpace',
    'AtlasStateSampler',
    'ProjectedStateSampler',
    'GeometricPath',
    'RRTConnect',
    'RRT',
    'PRM',
    'PLANNERS',
    'PlannerStatus',
    'PlanningResult',
    'PlannerData',
    'PlannerTerminationCondition',
    'UnknownPlannerError',
    'create_planner',
    'ConstrainedProblem',
    'PROBLEMS',
    'UnknownProblemError',
    'create_problem',
]

__version__ = "1.0.0"
