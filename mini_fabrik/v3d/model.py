# mini_fabrik/v3d/model.py
r"""
3D MODEL DEFINITIONS: Joints and Bone3D
=======================================

PURPOSE:
--------
A 3D joint is one of four closed variants. Each carries exactly the
parameters it needs:

    UnconstrainedJoint()                         bone may point anywhere
    BallJoint(max_angle_degs)                    cone around the previous bone
    GlobalHingeJoint(rotation_axis, reference_axis, cw, acw)
                                                 arc in a plane fixed in the world
    LocalHingeJoint(rotation_axis, reference_axis, cw, acw)
                                                 arc in a plane that moves with the
                                                 previous bone

HINGE GEOMETRY:
---------------
The bone is kept in the plane perpendicular to `rotation_axis`. Inside
that plane its angle is measured from `reference_axis`, positive
anticlockwise about `rotation_axis`, and clamped to [-cw, +acw]:

              rotation_axis (out of the page)
                     (.)
                      |\
                      | \  +acw
          reference --+--\--->
                      | /
                      |/   -cw

The reference axis must lie in that plane, so it has to be perpendicular
to the rotation axis. Setting both limits to 180 gives a FREELY ROTATING
hinge: the bone stays in the plane but may point anywhere within it.

Angles outside [0, 180] are rejected at construction, never clamped.
"""

import numpy as np
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from ..kernel.bone import BoneBase
from ..kernel.geometry import VectorLike, validate_direction_uv
from ..kernel.solve import MAX_CONSTRAINT_ANGLE_DEGS, ConstraintError, validate_constraint_angle
from .elements import is_perpendicular, perpendicular_quick


class JointType(Enum):
    UNCONSTRAINED = "unconstrained"
    BALL = "ball"
    GLOBAL_HINGE = "global_hinge"
    LOCAL_HINGE = "local_hinge"


class BaseboneConstraintType3D(Enum):
    """
    How the first bone of a 3D chain is constrained.

    NONE         : bone 0 is free
    GLOBAL_ROTOR : cone around a fixed world-space direction
    LOCAL_ROTOR  : cone around a direction expressed in the host bone's frame
    GLOBAL_HINGE : bone 0's hinge joint, axes in world space
    LOCAL_HINGE  : bone 0's hinge joint, axes in the host bone's frame
    """
    NONE = "none"
    GLOBAL_ROTOR = "global_rotor"
    LOCAL_ROTOR = "local_rotor"
    GLOBAL_HINGE = "global_hinge"
    LOCAL_HINGE = "local_hinge"


def _read_only(v: np.ndarray) -> np.ndarray:
    v.setflags(write=False)
    return v


@dataclass(frozen=True)
class UnconstrainedJoint:
    joint_type = JointType.UNCONSTRAINED


@dataclass(frozen=True)
class BallJoint:
    """
    Ball (rotor) joint.

    Parameters:
    -----------
    max_angle_degs : float
        Half-angle of the permitted cone, in [0, 180]. 180 leaves the bone free.
    """
    max_angle_degs: float = MAX_CONSTRAINT_ANGLE_DEGS

    joint_type = JointType.BALL

    def __post_init__(self):
        validate_constraint_angle(self.max_angle_degs, "ball joint constraint")


@dataclass(frozen=True, eq=False)
class HingeJoint:
    """
    Shared fields of the global and local hinge variants.

    Parameters:
    -----------
    rotation_axis : array-like (3,)
        Hinge axis. Normalised on construction.
    reference_axis : array-like (3,)
        Zero-angle direction, perpendicular to rotation_axis. Normalised on construction.
    clockwise_degs : float
        Maximum clockwise swing from the reference axis, in [0, 180]
    anticlockwise_degs : float
        Maximum anticlockwise swing from the reference axis, in [0, 180]
    """
    rotation_axis: np.ndarray
    reference_axis: np.ndarray
    clockwise_degs: float = MAX_CONSTRAINT_ANGLE_DEGS
    anticlockwise_degs: float = MAX_CONSTRAINT_ANGLE_DEGS

    joint_type = None

    def __post_init__(self):
        try:
            rotation_axis = validate_direction_uv(self.rotation_axis, 3)
            reference_axis = validate_direction_uv(self.reference_axis, 3)
        except ValueError as exc:
            raise ConstraintError(f"Invalid hinge axis: {exc}") from exc
        if not is_perpendicular(rotation_axis, reference_axis):
            raise ConstraintError(
                f"Hinge reference axis {reference_axis} must be perpendicular to "
                f"rotation axis {rotation_axis}"
            )
        validate_constraint_angle(self.clockwise_degs, "hinge clockwise constraint")
        validate_constraint_angle(self.anticlockwise_degs, "hinge anticlockwise constraint")

        object.__setattr__(self, "rotation_axis", _read_only(rotation_axis))
        object.__setattr__(self, "reference_axis", _read_only(reference_axis))

    @classmethod
    def freely_rotating(cls, rotation_axis: VectorLike):
        """Hinge with no arc limits and an arbitrary reference axis."""
        axis = validate_direction_uv(rotation_axis, 3)
        return cls(axis, perpendicular_quick(axis))

    @property
    def is_freely_rotating(self) -> bool:
        return (self.clockwise_degs == MAX_CONSTRAINT_ANGLE_DEGS
                and self.anticlockwise_degs == MAX_CONSTRAINT_ANGLE_DEGS)

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return (
            np.array_equal(self.rotation_axis, other.rotation_axis)
            and np.array_equal(self.reference_axis, other.reference_axis)
            and self.clockwise_degs == other.clockwise_degs
            and self.anticlockwise_degs == other.anticlockwise_degs
        )

    def __hash__(self):
        return hash((type(self), tuple(self.rotation_axis), tuple(self.reference_axis),
                     self.clockwise_degs, self.anticlockwise_degs))


class GlobalHingeJoint(HingeJoint):
    """Hinge whose axes are fixed in world space."""
    joint_type = JointType.GLOBAL_HINGE


class LocalHingeJoint(HingeJoint):
    """Hinge whose axes are expressed in the frame of the previous bone."""
    joint_type = JointType.LOCAL_HINGE


JOINT_CLASSES = {
    JointType.GLOBAL_HINGE: GlobalHingeJoint,
    JointType.LOCAL_HINGE: LocalHingeJoint,
}


def hinge_joint(
    joint_type: JointType,
    rotation_axis: VectorLike,
    reference_axis: VectorLike,
    clockwise_degs: float = MAX_CONSTRAINT_ANGLE_DEGS,
    anticlockwise_degs: float = MAX_CONSTRAINT_ANGLE_DEGS,
) -> HingeJoint:
    """Build a global or local hinge from a JointType tag."""
    if joint_type not in JOINT_CLASSES:
        raise ConstraintError(
            f"Hinge joint type must be GLOBAL_HINGE or LOCAL_HINGE, got {joint_type!r}"
        )
    return JOINT_CLASSES[joint_type](rotation_axis, reference_axis, clockwise_degs, anticlockwise_degs)


Joint3D = (UnconstrainedJoint, BallJoint, GlobalHingeJoint, LocalHingeJoint)


class Bone3D(BoneBase):
    """A 3D bone carrying one of the Joint3D variants."""

    dim = 3

    def _default_joint(self) -> UnconstrainedJoint:
        return UnconstrainedJoint()

    def _validate_joint(self, joint):
        if not isinstance(joint, Joint3D):
            raise ConstraintError(f"A 3D bone needs a 3D joint, got {type(joint).__name__}")
        return joint

    def _require_hinge(self) -> HingeJoint:
        if not isinstance(self._joint, HingeJoint):
            raise ConstraintError(f"Bone has a {self._joint.joint_type.name} joint, not a hinge")
        return self._joint

    @property
    def ball_joint_constraint_degs(self) -> float:
        if not isinstance(self._joint, BallJoint):
            raise ConstraintError(f"Bone has a {self._joint.joint_type.name} joint, not a ball joint")
        return self._joint.max_angle_degs

    def set_ball_joint_constraint_degs(self, angle_degs: float) -> None:
        """Make this a ball joint with the given cone half-angle."""
        self._joint = BallJoint(angle_degs)

    @property
    def hinge_rotation_axis(self) -> np.ndarray:
        return self._require_hinge().rotation_axis.copy()

    @property
    def hinge_reference_axis(self) -> np.ndarray:
        return self._require_hinge().reference_axis.copy()

    @property
    def hinge_clockwise_constraint_degs(self) -> float:
        return self._require_hinge().clockwise_degs

    @property
    def hinge_anticlockwise_constraint_degs(self) -> float:
        return self._require_hinge().anticlockwise_degs

    def set_hinge_clockwise_constraint_degs(self, angle_degs: float) -> None:
        self._joint = replace(self._require_hinge(), clockwise_degs=angle_degs)

    def set_hinge_anticlockwise_constraint_degs(self, angle_degs: float) -> None:
        self._joint = replace(self._require_hinge(), anticlockwise_degs=angle_degs)

    def set_hinge_joint(
        self,
        joint_type: JointType,
        rotation_axis: VectorLike,
        reference_axis: Optional[VectorLike] = None,
        clockwise_degs: float = MAX_CONSTRAINT_ANGLE_DEGS,
        anticlockwise_degs: float = MAX_CONSTRAINT_ANGLE_DEGS,
    ) -> None:
        """Replace the joint with a hinge. Without a reference axis the hinge rotates freely."""
        if reference_axis is None:
            reference_axis = perpendicular_quick(validate_direction_uv(rotation_axis, 3))
        self._joint = hinge_joint(joint_type, rotation_axis, reference_axis,
                                  clockwise_degs, anticlockwise_degs)
