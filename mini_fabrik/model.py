# Joint2D, Bone2D and the 2D base-bone constraint types

from dataclasses import dataclass, replace
from enum import Enum

from .kernel.bone import BoneBase
from .kernel.solve import MAX_CONSTRAINT_ANGLE_DEGS, ConstraintError, validate_constraint_angle


class JointType2D(Enum):
    UNCONSTRAINED = "unconstrained"
    HINGE = "hinge"


class BaseboneConstraintType2D(Enum):
    """
    How the first bone of a 2D chain is constrained.

    NONE            : bone 0 is free
    GLOBAL_ABSOLUTE : clamped about a fixed world-space direction
    LOCAL_RELATIVE  : clamped about the host bone's direction (connected chains),
                      or about bone 0's direction when the type was set (root chains)
    LOCAL_ABSOLUTE  : clamped about a direction expressed relative to the host bone
    """
    NONE = "none"
    GLOBAL_ABSOLUTE = "global_absolute"
    LOCAL_RELATIVE = "local_relative"
    LOCAL_ABSOLUTE = "local_absolute"


@dataclass(frozen=True)
class Joint2D:
    """
    2D joint: limits how far a bone may swing away from its reference direction.

    Angles are measured from the reference direction (previous bone, or the
    base-bone constraint direction for bone 0). Anticlockwise is positive.

    Parameters:
    -----------
    clockwise_degs : float
        Maximum clockwise swing, in [0, 180]
    anticlockwise_degs : float
        Maximum anticlockwise swing, in [0, 180]
    """
    clockwise_degs: float = MAX_CONSTRAINT_ANGLE_DEGS
    anticlockwise_degs: float = MAX_CONSTRAINT_ANGLE_DEGS

    def __post_init__(self):
        validate_constraint_angle(self.clockwise_degs, "clockwise constraint")
        validate_constraint_angle(self.anticlockwise_degs, "anticlockwise constraint")

    @property
    def joint_type(self) -> JointType2D:
        if (self.clockwise_degs == MAX_CONSTRAINT_ANGLE_DEGS
                and self.anticlockwise_degs == MAX_CONSTRAINT_ANGLE_DEGS):
            return JointType2D.UNCONSTRAINED
        return JointType2D.HINGE


class Bone2D(BoneBase):
    """A 2D bone with a Joint2D at its start."""

    dim = 2

    def _default_joint(self) -> Joint2D:
        return Joint2D()

    def _validate_joint(self, joint) -> Joint2D:
        if not isinstance(joint, Joint2D):
            raise ConstraintError(f"A 2D bone needs a Joint2D, got {type(joint).__name__}")
        return joint

    @property
    def clockwise_constraint_degs(self) -> float:
        return self._joint.clockwise_degs

    @property
    def anticlockwise_constraint_degs(self) -> float:
        return self._joint.anticlockwise_degs

    def set_clockwise_constraint_degs(self, angle_degs: float) -> None:
        self._joint = replace(self._joint, clockwise_degs=angle_degs)

    def set_anticlockwise_constraint_degs(self, angle_degs: float) -> None:
        self._joint = replace(self._joint, anticlockwise_degs=angle_degs)
