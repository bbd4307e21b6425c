# mini_fabrik/kernel - Dimension-agnostic FABRIK core
"""
KERNEL: THE DIMENSION-AGNOSTIC FOUNDATION
==========================================

This package contains everything about FABRIK that works the same in 2D
and 3D:

- Vector helpers (distance, direction, angle between)
- Bone storage with immutable length
- Chain bookkeeping: base location, fixed base, embedded targets, caching
- The best-of-N iteration loop
- Structures: ordered forests of chains with host/connected relationships

The CONSTRAINT implementations (2D arc clamp, 3D ball and hinge joints)
are dimension-specific and live in mini_fabrik.constraints and
mini_fabrik.v3d.constraints.
"""

from .settings import SolverSettings, DEFAULT_SETTINGS_2D, DEFAULT_SETTINGS_3D
from .solve import (
    FabrikError,
    ChainConfigurationError,
    ConstraintError,
    ConstraintAngleError,
    solve_best_of_iterations,
)
from .connections import (
    BoneConnectionPoint,
    ChainConnection,
    ChainConnectionError,
    validate_connection_indices,
)

__all__ = [
    'SolverSettings',
    'DEFAULT_SETTINGS_2D',
    'DEFAULT_SETTINGS_3D',
    'FabrikError',
    'ChainConfigurationError',
    'ConstraintError',
    'ConstraintAngleError',
    'solve_best_of_iterations',
    'BoneConnectionPoint',
    'ChainConnection',
    'ChainConnectionError',
    'validate_connection_indices',
]
