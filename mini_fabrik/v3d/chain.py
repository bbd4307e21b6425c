# mini_fabrik/v3d/chain.py
"""
3D FABRIK CHAIN
===============

PURPOSE:
--------
Chain3D is the 3D counterpart of mini_fabrik.chain.Chain2D. The two
passes are the same; what changes is how a joint clamps a direction:

    BallJoint        angle to the previous bone <= max_angle_degs
    GlobalHingeJoint bone stays in a world-space plane, within an arc
    LocalHingeJoint  as above, but the plane turns with the previous bone

BACKWARD PASS (target -> base):
    A ball-jointed bone is pulled back inside its own cone around the
    outer bone, then a hinged bone is projected onto its hinge plane.
    Hinge arcs are not clamped on this pass.

FORWARD PASS (base -> target):
    Bone 0 is re-pinned on the base and clamped by the base-bone
    constraint. Every later bone is clamped by its own joint relative to
    the resolved direction of the bone before it, so after this pass
    every joint constraint holds exactly.

USAGE:
------
    chain = Chain3D("leg")
    chain.add_bone(Bone3D([0, 0, 0], [0, 0, 10]))
    chain.add_consecutive_rotor_constrained_bone([0, 0, 1], 10, constraint_degs=45)
    chain.add_consecutive_hinged_bone(
        [0, 0, 1], 10, JointType.GLOBAL_HINGE,
        rotation_axis=[0, 1, 0], clockwise_degs=90, anticlockwise_degs=90,
        reference_axis=[0, 0, 1],
    )
    chain.solve_for_target([5, 0, 20])
"""

import numpy as np
from typing import Optional

from ..kernel.bone import Colour
from ..kernel.chain import ChainBase
from ..kernel.geometry import VectorLike, approximately_equal, normalised, validate_direction_uv
from ..kernel.settings import DEFAULT_SETTINGS_3D
from ..kernel.solve import MAX_CONSTRAINT_ANGLE_DEGS, ChainConfigurationError, ConstraintError
from .constraints import clamp_to_hinge, constrain_direction, hinge_axes, project_onto_hinge_plane
from .elements import angle_limited_uv, perpendicular_quick, rotation_matrix_from_direction
from .model import (
    BallJoint,
    BaseboneConstraintType3D,
    Bone3D,
    GlobalHingeJoint,
    HingeJoint,
    JointType,
    LocalHingeJoint,
    hinge_joint,
)

ROTOR_TYPES = frozenset({BaseboneConstraintType3D.GLOBAL_ROTOR, BaseboneConstraintType3D.LOCAL_ROTOR})

# Base-bone hinge type -> joint class bone 0 must carry
HINGE_TYPES = {
    BaseboneConstraintType3D.GLOBAL_HINGE: GlobalHingeJoint,
    BaseboneConstraintType3D.LOCAL_HINGE: LocalHingeJoint,
}


class Chain3D(ChainBase):
    """Chain of Bone3D solved with 3D FABRIK."""

    dim = 3
    bone_class = Bone3D
    constraint_types = BaseboneConstraintType3D
    default_settings = DEFAULT_SETTINGS_3D
    fixed_base_types = frozenset({BaseboneConstraintType3D.GLOBAL_ROTOR})

    def __init__(self, name=None, settings=None):
        super().__init__(name=name, settings=settings)
        self._basebone_relative_reference_constraint_uv = np.zeros(3)

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def add_consecutive_rotor_constrained_bone(
        self,
        direction: VectorLike,
        length: float,
        constraint_degs: float,
        colour: Optional[Colour] = None,
    ) -> Bone3D:
        """Append a bone with a ball joint of the given cone half-angle."""
        bone = self._consecutive_bone(direction, length, BallJoint(constraint_degs), colour)
        self.add_bone(bone)
        return bone

    def add_consecutive_hinged_bone(
        self,
        direction: VectorLike,
        length: float,
        joint_type: JointType,
        rotation_axis: VectorLike,
        clockwise_degs: float,
        anticlockwise_degs: float,
        reference_axis: VectorLike,
        colour: Optional[Colour] = None,
    ) -> Bone3D:
        """Append a bone with a global or local hinge joint."""
        joint = hinge_joint(joint_type, rotation_axis, reference_axis, clockwise_degs, anticlockwise_degs)
        bone = self._consecutive_bone(direction, length, joint, colour)
        self.add_bone(bone)
        return bone

    def add_consecutive_freely_rotating_hinged_bone(
        self,
        direction: VectorLike,
        length: float,
        joint_type: JointType,
        rotation_axis: VectorLike,
        colour: Optional[Colour] = None,
    ) -> Bone3D:
        """Append a hinged bone with no arc limits."""
        axis = validate_direction_uv(rotation_axis, 3)
        return self.add_consecutive_hinged_bone(
            direction, length, joint_type, axis,
            MAX_CONSTRAINT_ANGLE_DEGS, MAX_CONSTRAINT_ANGLE_DEGS,
            perpendicular_quick(axis), colour=colour,
        )

    # ------------------------------------------------------------------
    # Base-bone constraints
    # ------------------------------------------------------------------

    def set_basebone_constraint_type(self, constraint_type: BaseboneConstraintType3D) -> None:
        self._require_bones("set a base-bone constraint")
        joint = self._bones[0].joint
        if constraint_type in ROTOR_TYPES and not isinstance(joint, BallJoint):
            raise ConstraintError(
                f"A {constraint_type.name} base-bone constraint needs a ball joint on bone 0, "
                f"found {joint.joint_type.name}"
            )
        if constraint_type in HINGE_TYPES and not isinstance(joint, HINGE_TYPES[constraint_type]):
            raise ConstraintError(
                f"A {constraint_type.name} base-bone constraint needs a "
                f"{HINGE_TYPES[constraint_type].__name__} on bone 0, found {joint.joint_type.name}"
            )
        super().set_basebone_constraint_type(constraint_type)
        if constraint_type in HINGE_TYPES:
            self._set_constraint_axes(joint.rotation_axis.copy(), joint.reference_axis.copy())

    def set_basebone_constraint_uv(self, direction: VectorLike) -> None:
        if self._basebone_constraint_type is BaseboneConstraintType3D.NONE:
            raise ChainConfigurationError(
                "Specify a base-bone constraint type before setting its direction"
            )
        super().set_basebone_constraint_uv(direction)

    @property
    def basebone_relative_reference_constraint_uv(self) -> np.ndarray:
        return self._basebone_relative_reference_constraint_uv.copy()

    def set_rotor_basebone_constraint(
        self, constraint_type: BaseboneConstraintType3D, axis: VectorLike, angle_degs: float
    ) -> None:
        """
        Constrain bone 0 to a cone of half-angle angle_degs around axis.

        GLOBAL_ROTOR axes are in world space. LOCAL_ROTOR axes are in the
        frame of the host bone when the chain is connected in a structure.
        """
        self._require_bones("set a base-bone constraint")
        if constraint_type not in ROTOR_TYPES:
            raise ConstraintError(f"Expected GLOBAL_ROTOR or LOCAL_ROTOR, got {constraint_type!r}")
        uv = validate_direction_uv(axis, 3)
        joint = BallJoint(angle_degs)

        previous_joint = self._bones[0].joint
        self._bones[0].set_joint(joint)
        try:
            super().set_basebone_constraint_type(constraint_type)
        except ChainConfigurationError:
            self._bones[0].set_joint(previous_joint)
            raise
        self._set_constraint_axes(uv)

    def set_hinge_basebone_constraint(
        self,
        constraint_type: BaseboneConstraintType3D,
        rotation_axis: VectorLike,
        clockwise_degs: float,
        anticlockwise_degs: float,
        reference_axis: VectorLike,
    ) -> None:
        """
        Constrain bone 0 to a hinge.

        Raises:
            ConstraintError: If the reference axis is not perpendicular to the rotation axis
        """
        self._require_bones("set a base-bone constraint")
        if constraint_type not in HINGE_TYPES:
            raise ConstraintError(f"Expected GLOBAL_HINGE or LOCAL_HINGE, got {constraint_type!r}")
        joint = HINGE_TYPES[constraint_type](rotation_axis, reference_axis,
                                              clockwise_degs, anticlockwise_degs)

        self._bones[0].set_joint(joint)
        super().set_basebone_constraint_type(constraint_type)
        self._set_constraint_axes(joint.rotation_axis.copy(), joint.reference_axis.copy())

    def set_freely_rotating_global_hinged_basebone(self, rotation_axis: VectorLike) -> None:
        axis = validate_direction_uv(rotation_axis, 3)
        self.set_hinge_basebone_constraint(
            BaseboneConstraintType3D.GLOBAL_HINGE, axis,
            MAX_CONSTRAINT_ANGLE_DEGS, MAX_CONSTRAINT_ANGLE_DEGS, perpendicular_quick(axis),
        )

    def set_freely_rotating_local_hinged_basebone(self, rotation_axis: VectorLike) -> None:
        axis = validate_direction_uv(rotation_axis, 3)
        self.set_hinge_basebone_constraint(
            BaseboneConstraintType3D.LOCAL_HINGE, axis,
            MAX_CONSTRAINT_ANGLE_DEGS, MAX_CONSTRAINT_ANGLE_DEGS, perpendicular_quick(axis),
        )

    def _set_constraint_axes(self, uv: np.ndarray, reference_uv: Optional[np.ndarray] = None) -> None:
        self._basebone_constraint_uv = uv
        if self._connection is None:
            # Root chains have no host frame: relative axes are the world axes
            self._basebone_relative_constraint_uv = uv.copy()
            if reference_uv is not None:
                self._basebone_relative_reference_constraint_uv = reference_uv.copy()
        self._invalidate_solution()

    def _follow_host_bone(self, host_uv: np.ndarray) -> None:
        """Map LOCAL_ROTOR / LOCAL_HINGE axes into the host bone's current frame."""
        constraint_type = self._basebone_constraint_type
        if constraint_type not in (BaseboneConstraintType3D.LOCAL_ROTOR,
                                   BaseboneConstraintType3D.LOCAL_HINGE):
            return

        frame = rotation_matrix_from_direction(host_uv)
        self._set_basebone_relative_constraint_uv(normalised(frame @ self._basebone_constraint_uv))

        if constraint_type is BaseboneConstraintType3D.LOCAL_HINGE:
            reference = normalised(frame @ self._bones[0].joint.reference_axis)
            if not approximately_equal(reference, self._basebone_relative_reference_constraint_uv, 1e-3):
                self._invalidate_solution()
            self._basebone_relative_reference_constraint_uv = reference

    def _constrain_basebone(self, uv: np.ndarray, joint) -> np.ndarray:
        constraint_type = self._basebone_constraint_type
        if constraint_type is BaseboneConstraintType3D.NONE:
            return uv
        if constraint_type is BaseboneConstraintType3D.GLOBAL_ROTOR:
            return angle_limited_uv(uv, self._basebone_constraint_uv, joint.max_angle_degs)
        if constraint_type is BaseboneConstraintType3D.LOCAL_ROTOR:
            return angle_limited_uv(uv, self._basebone_relative_constraint_uv, joint.max_angle_degs)
        if constraint_type is BaseboneConstraintType3D.GLOBAL_HINGE:
            return clamp_to_hinge(uv, joint.rotation_axis, joint.reference_axis,
                                  joint.clockwise_degs, joint.anticlockwise_degs)
        return clamp_to_hinge(
            uv,
            self._basebone_relative_constraint_uv,
            self._basebone_relative_reference_constraint_uv,
            joint.clockwise_degs,
            joint.anticlockwise_degs,
        )

    # ------------------------------------------------------------------
    # Solving
    # ------------------------------------------------------------------

    def _hinge_axes_for(self, index: int):
        """World-space hinge axes of bone `index`, or None if it is not hinged."""
        joint = self._bones[index].joint
        if not isinstance(joint, HingeJoint):
            return None
        if index > 0:
            return hinge_axes(joint, self._bones[index - 1].direction_uv)
        if self._basebone_constraint_type is BaseboneConstraintType3D.LOCAL_HINGE:
            return (self._basebone_relative_constraint_uv,
                    self._basebone_relative_reference_constraint_uv)
        # No previous bone to carry a local frame: treat bone 0's axes as world axes
        return joint.rotation_axis, joint.reference_axis

    def _solve_iteration(self, target: np.ndarray) -> float:
        bones = self._bones
        last = len(bones) - 1

        # Backward pass: end effector to base
        for i in range(last, -1, -1):
            bone = bones[i]
            if i == last:
                previous_uv = bone.direction_uv
                bone.set_end_location(target)
                outer_to_inner = -bone.direction_uv_or(previous_uv)
            else:
                outer_uv = bones[i + 1].direction_uv
                outer_to_inner = -bone.direction_uv_or(outer_uv)
                if isinstance(bone.joint, BallJoint):
                    outer_to_inner = angle_limited_uv(outer_to_inner, -outer_uv, bone.joint.max_angle_degs)

            axes = self._hinge_axes_for(i)
            if axes is not None:
                rotation_axis, reference_axis = axes
                outer_to_inner = project_onto_hinge_plane(outer_to_inner, rotation_axis, -reference_axis)

            new_start = bone.end_location + outer_to_inner * bone.length
            bone.set_start_location(new_start)
            if i > 0:
                bones[i - 1].set_end_location(new_start)

        # Forward pass: base to end effector
        for i, bone in enumerate(bones):
            if i == 0:
                uv = bone.direction_uv_or(self._basebone_constraint_uv)
                if self._fixed_base_mode:
                    bone.set_start_location(self._base_location)
                    uv = bone.direction_uv_or(uv)
                else:
                    bone.set_start_location(bone.end_location - uv * bone.length)
                uv = self._constrain_basebone(uv, bone.joint)
            else:
                previous_uv = bones[i - 1].direction_uv
                uv = constrain_direction(bone.joint, bone.direction_uv_or(previous_uv), previous_uv)

            new_end = bone.start_location + uv * bone.length
            bone.set_end_location(new_end)
            if i < last:
                bones[i + 1].set_start_location(new_end)

        return self._end_effector_distance(target)
