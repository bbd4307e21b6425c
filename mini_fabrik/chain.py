# mini_fabrik/chain.py
"""
2D FABRIK CHAIN
===============

PURPOSE:
--------
Chain2D solves a sequence of 2D bones toward a target with FABRIK
(Forward And Backward Reaching Inverse Kinematics). Each iteration is
two passes over the bones:

    BACKWARD (target -> base):
        pin the end effector on the target, then walk toward the base,
        pointing each bone at the bone further out and clamping it to the
        arc allowed by the OUTER bone's joint.

    FORWARD (base -> target):
        re-pin bone 0 on the base (fixed base mode), clamp bone 0 against
        the base-bone constraint, then walk outward clamping each bone to
        its OWN joint relative to the bone before it.

After the forward pass every joint constraint holds exactly and every
bone has its original length, whatever the target.

USAGE:
------
    chain = Chain2D("arm")
    chain.add_bone(Bone2D([0, 0], [0, 40]))
    chain.add_consecutive_bone([0, 1], 40)
    chain.add_consecutive_constrained_bone([0, 1], 40, clockwise_degs=90, anticlockwise_degs=45)

    distance = chain.solve_for_target([50, 60])
"""

import numpy as np
from typing import Optional

from .constraints import constrained_uv, rotate_degs, signed_angle_degs
from .kernel.bone import Colour
from .kernel.chain import ChainBase
from .kernel.geometry import VectorLike
from .kernel.settings import DEFAULT_SETTINGS_2D
from .model import BaseboneConstraintType2D, Bone2D, Joint2D

# Reference "up" used to express LOCAL_ABSOLUTE directions relative to a host bone
UP = np.array([0.0, 1.0])


class Chain2D(ChainBase):
    """Chain of Bone2D solved with 2D FABRIK."""

    dim = 2
    bone_class = Bone2D
    constraint_types = BaseboneConstraintType2D
    default_settings = DEFAULT_SETTINGS_2D
    fixed_base_types = frozenset({BaseboneConstraintType2D.GLOBAL_ABSOLUTE})

    def add_consecutive_constrained_bone(
        self,
        direction: VectorLike,
        length: float,
        clockwise_degs: float,
        anticlockwise_degs: float,
        colour: Optional[Colour] = None,
    ) -> Bone2D:
        """Append a bone whose joint limits its swing relative to the current last bone."""
        joint = Joint2D(clockwise_degs, anticlockwise_degs)
        bone = self._consecutive_bone(direction, length, joint, colour)
        self.add_bone(bone)
        return bone

    def set_basebone_constraint_type(self, constraint_type: BaseboneConstraintType2D) -> None:
        super().set_basebone_constraint_type(constraint_type)
        if constraint_type is BaseboneConstraintType2D.LOCAL_RELATIVE and self._connection is None:
            # Root chains have no host bone, so capture bone 0's current direction once
            uv = self._bones[0].direction_uv
            self._basebone_constraint_uv = uv
            self._basebone_relative_constraint_uv = uv.copy()

    def _follow_host_bone(self, host_uv: np.ndarray) -> None:
        """Refresh host-relative constraint directions before a structure solve."""
        if self._basebone_constraint_type is BaseboneConstraintType2D.LOCAL_RELATIVE:
            if not np.allclose(host_uv, self._basebone_constraint_uv, atol=1e-3):
                self._invalidate_solution()
            self._basebone_constraint_uv = np.array(host_uv, dtype=float)
        elif self._basebone_constraint_type is BaseboneConstraintType2D.LOCAL_ABSOLUTE:
            angle = signed_angle_degs(UP, host_uv)
            self._set_basebone_relative_constraint_uv(rotate_degs(self._basebone_constraint_uv, angle))

    def _constrain_basebone(self, uv: np.ndarray, joint: Joint2D) -> np.ndarray:
        constraint_type = self._basebone_constraint_type
        if constraint_type is BaseboneConstraintType2D.NONE:
            return uv
        if constraint_type is BaseboneConstraintType2D.LOCAL_ABSOLUTE:
            reference = self._basebone_relative_constraint_uv
        else:
            reference = self._basebone_constraint_uv
        return constrained_uv(uv, reference, joint.clockwise_degs, joint.anticlockwise_degs)

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
                outer = bones[i + 1]
                outer_uv = outer.direction_uv
                outer_to_inner = constrained_uv(
                    -bone.direction_uv_or(outer_uv),
                    -outer_uv,
                    outer.joint.clockwise_degs,
                    outer.joint.anticlockwise_degs,
                )

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
                uv = constrained_uv(
                    bone.direction_uv_or(previous_uv),
                    previous_uv,
                    bone.joint.clockwise_degs,
                    bone.joint.anticlockwise_degs,
                )

            new_end = bone.start_location + uv * bone.length
            bone.set_end_location(new_end)
            if i < last:
                bones[i + 1].set_start_location(new_end)

        return self._end_effector_distance(target)
