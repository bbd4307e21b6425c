# mini_fabrik - Constrained multi-chain FABRIK inverse kinematics
"""
MINI-FABRIK: Constrained Inverse Kinematics for Chains of Bones
===============================================================

This package provides:
- 2D chains with clockwise/anticlockwise joint limits
- 3D chains with ball (rotor) and global/local hinge joints
- Base-bone constraints (world-space or relative to a host bone)
- Structures: chains attached to bones of other chains
- Embedded per-chain targets

ARCHITECTURE:
-------------
    kernel/         Dimension-agnostic core (bones, chain bookkeeping,
                    iteration loop, structures, connections, settings)
    model.py        2D model definitions (Joint2D, Bone2D)
    constraints.py  2D signed angles and arc clamping
    chain.py        Chain2D (2D FABRIK)
    structure.py    Structure2D

    v3d/            3D joints, bones, chains and structures

    scenarios.py    Ready-made demo structures with their targets
    viz.py          Matplotlib snapshots of solved chains
"""

from .kernel import (
    SolverSettings,
    FabrikError,
    ChainConfigurationError,
    ConstraintError,
    ConstraintAngleError,
    BoneConnectionPoint,
    ChainConnection,
    ChainConnectionError,
)
from .model import Joint2D, JointType2D, Bone2D, BaseboneConstraintType2D
from .chain import Chain2D
from .structure import Structure2D

__version__ = "0.1.0"

__all__ = [
    'SolverSettings',
    'FabrikError',
    'ChainConfigurationError',
    'ConstraintError',
    'ConstraintAngleError',
    'BoneConnectionPoint',
    'ChainConnection',
    'ChainConnectionError',
    'Joint2D',
    'JointType2D',
    'Bone2D',
    'BaseboneConstraintType2D',
    'Chain2D',
    'Structure2D',
]
