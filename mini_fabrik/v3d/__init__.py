# mini_fabrik/v3d - 3D FABRIK chains and structures
"""
V3D: 3D INVERSE KINEMATICS
==========================

This package provides the 3D half of mini_fabrik:
- Joint variants: UnconstrainedJoint, BallJoint, GlobalHingeJoint, LocalHingeJoint
- Bone3D, Chain3D and Structure3D
- 3D vector and frame primitives (rotation about an axis, plane projection)

These build on the dimension-agnostic kernel for bookkeeping and the
iteration loop.

USAGE:
------
    from mini_fabrik.v3d import Bone3D, Chain3D, Structure3D

    chain = Chain3D("tentacle")
    chain.add_bone(Bone3D([0, 0, 0], [0, 10, 0]))
    for _ in range(4):
        chain.add_consecutive_rotor_constrained_bone([0, 1, 0], 10, constraint_degs=30)

    structure = Structure3D("creature")
    structure.add_chain(chain)
    structure.solve_for_target([20, 25, 5])
"""

from .model import (
    JointType,
    BaseboneConstraintType3D,
    UnconstrainedJoint,
    BallJoint,
    HingeJoint,
    GlobalHingeJoint,
    LocalHingeJoint,
    hinge_joint,
    Bone3D,
)
from .elements import (
    rotate_about_axis_degs,
    project_onto_plane,
    perpendicular_quick,
    signed_angle_between_degs,
    angle_limited_uv,
    rotation_matrix_from_direction,
    bone_transform,
)
from .chain import Chain3D
from .structure import Structure3D

__all__ = [
    'JointType',
    'BaseboneConstraintType3D',
    'UnconstrainedJoint',
    'BallJoint',
    'HingeJoint',
    'GlobalHingeJoint',
    'LocalHingeJoint',
    'hinge_joint',
    'Bone3D',
    'rotate_about_axis_degs',
    'project_onto_plane',
    'perpendicular_quick',
    'signed_angle_between_degs',
    'angle_limited_uv',
    'rotation_matrix_from_direction',
    'bone_transform',
    'Chain3D',
    'Structure3D',
]
