# tests/test_chain3d.py
"""
3D CHAIN TESTS: Ball Joints, Hinges and Base-Bone Constraints
=============================================================

The same invariants as in 2D (lengths, contiguity, fixed base) plus the
3D joint guarantees after every solve:

- BALL: angle to the previous bone <= the cone half-angle
- GLOBAL HINGE: bone perpendicular to the world-space hinge axis,
  and within its arc from the reference axis
- LOCAL HINGE: bone perpendicular to the hinge axis carried into the
  frame of the previous bone
"""

import numpy as np
import pytest

from mini_fabrik.kernel.geometry import angle_between_degs, normalised
from mini_fabrik.kernel.settings import DEFAULT_SETTINGS_3D
from mini_fabrik.kernel.solve import ChainConfigurationError, ConstraintError
from mini_fabrik.v3d.chain import Chain3D
from mini_fabrik.v3d.elements import (
    X_AXIS,
    Y_AXIS,
    Z_AXIS,
    rotation_matrix_from_direction,
    signed_angle_between_degs,
)
from mini_fabrik.v3d.model import (
    BallJoint,
    BaseboneConstraintType3D,
    Bone3D,
    GlobalHingeJoint,
    JointType,
    LocalHingeJoint,
    UnconstrainedJoint,
)

TARGETS = [
    np.array([10.0, 20.0, 5.0]),
    np.array([-25.0, -10.0, 15.0]),
    np.array([0.0, -30.0, -20.0]),
    np.array([300.0, 100.0, -200.0]),
]


def make_straight_chain(direction=Y_AXIS, num_bones: int = 4, bone_length: float = 10.0, start=(0.0, 0.0, 0.0)):
    chain = Chain3D("straight")
    chain.add_bone(Bone3D.from_direction(start, direction, bone_length))
    for _ in range(num_bones - 1):
        chain.add_consecutive_bone(direction, bone_length)
    return chain


def assert_chain_is_sound(chain, tol: float = 1e-9):
    for i, bone in enumerate(chain.bones):
        assert bone.live_length == pytest.approx(bone.length, rel=tol)
        if i > 0:
            np.testing.assert_allclose(bone.start_location, chain.get_bone(i - 1).end_location, atol=tol)


class TestUnconstrained3D:

    def test_default_settings(self):
        assert Chain3D().settings == DEFAULT_SETTINGS_3D
        assert Chain3D().settings.max_iterations == 20

    def test_reachable_target(self):
        chain = make_straight_chain()
        distance = chain.solve_for_target(TARGETS[0])

        assert distance <= chain.settings.solve_distance_threshold
        assert_chain_is_sound(chain)
        np.testing.assert_allclose(chain.get_bone(0).start_location, np.zeros(3), atol=1e-12)

    def test_unreachable_target(self):
        chain = make_straight_chain()
        distance = chain.solve_for_target([0.0, 0.0, 1000.0])
        assert distance == pytest.approx(1000.0 - 40.0, abs=0.1)
        assert_chain_is_sound(chain)


class TestBallJoints:

    @pytest.mark.parametrize("target", TARGETS)
    def test_cone_limits_hold(self, target):
        chain = Chain3D("rotor")
        chain.add_bone(Bone3D.from_direction([0.0, 0.0, 0.0], Y_AXIS, 10.0))
        for _ in range(5):
            chain.add_consecutive_rotor_constrained_bone(Y_AXIS, 10.0, 30.0)
        chain.solve_for_target(target)

        for i in range(1, chain.num_bones):
            angle = angle_between_degs(chain.get_bone(i - 1).direction_uv, chain.get_bone(i).direction_uv)
            assert angle <= 30.0 + 1e-6, f"Joint {i} at {angle:.4f} degrees"
        assert_chain_is_sound(chain)


class TestHinges:

    @pytest.mark.parametrize("target", TARGETS)
    def test_freely_rotating_global_hinge_keeps_bone_in_plane(self, target):
        chain = Chain3D("global hinges")
        chain.add_bone(Bone3D.from_direction([0.0, 0.0, 0.0], Y_AXIS, 10.0))
        for _ in range(4):
            chain.add_consecutive_freely_rotating_hinged_bone(Y_AXIS, 10.0, JointType.GLOBAL_HINGE, X_AXIS)
        chain.solve_for_target(target)

        for bone in chain.bones[1:]:
            assert isinstance(bone.joint, GlobalHingeJoint)
            assert abs(np.dot(bone.direction_uv, X_AXIS)) < 1e-6
        assert_chain_is_sound(chain)

    @pytest.mark.parametrize("target", TARGETS)
    def test_global_hinge_arc_limits_hold(self, target):
        chain = Chain3D("limited hinges")
        chain.add_bone(Bone3D.from_direction([0.0, 30.0, 0.0], -Y_AXIS, 10.0))
        for _ in range(4):
            chain.add_consecutive_hinged_bone(-Y_AXIS, 10.0, JointType.GLOBAL_HINGE, Z_AXIS, 45.0, 45.0, -Y_AXIS)
        chain.solve_for_target(target)

        for bone in chain.bones[1:]:
            uv = bone.direction_uv
            assert abs(np.dot(uv, Z_AXIS)) < 1e-6
            angle = signed_angle_between_degs(-Y_AXIS, uv, Z_AXIS)
            assert -45.0 - 1e-6 <= angle <= 45.0 + 1e-6
        assert_chain_is_sound(chain)

    @pytest.mark.parametrize("target", TARGETS)
    def test_local_hinge_follows_previous_bone(self, target):
        chain = Chain3D("local hinges")
        chain.add_bone(Bone3D.from_direction([0.0, 0.0, 0.0], Z_AXIS, 10.0))
        for i in range(5):
            axis = X_AXIS if i % 2 == 0 else Y_AXIS
            chain.add_consecutive_freely_rotating_hinged_bone(Z_AXIS, 10.0, JointType.LOCAL_HINGE, axis)
        chain.solve_for_target(target)

        for i in range(1, chain.num_bones):
            bone = chain.get_bone(i)
            assert isinstance(bone.joint, LocalHingeJoint)
            frame = rotation_matrix_from_direction(chain.get_bone(i - 1).direction_uv)
            world_axis = normalised(frame @ bone.joint.rotation_axis)
            assert abs(np.dot(bone.direction_uv, world_axis)) < 1e-6
        assert_chain_is_sound(chain)

    def test_non_perpendicular_reference_axis_is_rejected(self):
        chain = make_straight_chain()
        with pytest.raises(ConstraintError):
            chain.add_consecutive_hinged_bone(Y_AXIS, 10.0, JointType.GLOBAL_HINGE, Z_AXIS, 90.0, 90.0, [0.0, 1.0, 1.0])
        assert chain.num_bones == 4

    def test_direction_along_hinge_axis_falls_back_to_reference(self):
        # The target lies on the hinge axis, so its projection onto the hinge plane is zero
        chain = make_straight_chain(num_bones=1)
        chain.set_hinge_basebone_constraint(BaseboneConstraintType3D.GLOBAL_HINGE, X_AXIS, 180.0, 180.0, Y_AXIS)
        distance = chain.solve_for_target([40.0, 0.0, 0.0])

        np.testing.assert_allclose(chain.get_bone(0).direction_uv, Y_AXIS, atol=1e-9)
        np.testing.assert_allclose(chain.get_bone(0).start_location, np.zeros(3), atol=1e-12)
        assert distance == pytest.approx(np.hypot(40.0, 10.0))
        assert_chain_is_sound(chain)

    @pytest.mark.parametrize("target", TARGETS)
    def test_locked_hinge_keeps_reference_direction(self, target):
        chain = Chain3D("locked hinge")
        chain.add_bone(Bone3D.from_direction([0.0, 0.0, 0.0], Y_AXIS, 10.0))
        chain.add_consecutive_hinged_bone(Y_AXIS, 10.0, JointType.GLOBAL_HINGE, Z_AXIS, 0.0, 0.0, X_AXIS)
        chain.add_consecutive_bone(Y_AXIS, 10.0)
        chain.solve_for_target(target)

        np.testing.assert_allclose(chain.get_bone(1).direction_uv, X_AXIS, atol=1e-9)
        assert_chain_is_sound(chain)


class TestBackwardPass3D:

    def test_ball_joint_limits_own_bone_against_outer_bone(self):
        """
        One iteration towards (10, 20, 0) from a straight chain up +Y:

            bone 2 swings to +X
            bone 1 is pulled back within ITS 60 degree cone around bone 2
            bone 0 then points at bone 1's new start

        Using bone 2's 10 degree cone instead would swing bone 0 much further.
        """
        chain = Chain3D("mixed cones")
        chain.add_bone(Bone3D.from_direction([0.0, 0.0, 0.0], Y_AXIS, 10.0))
        chain.add_consecutive_rotor_constrained_bone(Y_AXIS, 10.0, 60.0)
        chain.add_consecutive_rotor_constrained_bone(Y_AXIS, 10.0, 10.0)
        chain.set_max_iteration_attempts(1)
        chain.solve_for_target([10.0, 20.0, 0.0])

        angle = np.radians(60.0)
        bone1_start = np.array([0.0, 20.0, 0.0]) + 10.0 * np.array([-np.cos(angle), -np.sin(angle), 0.0])
        np.testing.assert_allclose(chain.get_bone(0).direction_uv, normalised(bone1_start), atol=1e-9)

        assert angle_between_degs(chain.get_bone(0).direction_uv, chain.get_bone(1).direction_uv) <= 60.0 + 1e-6
        assert angle_between_degs(chain.get_bone(1).direction_uv, chain.get_bone(2).direction_uv) <= 10.0 + 1e-6
        assert_chain_is_sound(chain)


class TestBaseboneConstraints3D:

    @pytest.mark.parametrize("target", TARGETS)
    def test_global_rotor(self, target):
        chain = make_straight_chain(direction=X_AXIS)
        chain.set_rotor_basebone_constraint(BaseboneConstraintType3D.GLOBAL_ROTOR, X_AXIS, 30.0)
        chain.solve_for_target(target)

        assert angle_between_degs(chain.get_bone(0).direction_uv, X_AXIS) <= 30.0 + 1e-6
        assert isinstance(chain.get_bone(0).joint, BallJoint)
        assert_chain_is_sound(chain)

    def test_global_rotor_requires_fixed_base(self):
        chain = make_straight_chain()
        chain.set_fixed_base_mode(False)
        with pytest.raises(ChainConfigurationError):
            chain.set_rotor_basebone_constraint(BaseboneConstraintType3D.GLOBAL_ROTOR, X_AXIS, 30.0)
        # Failed call leaves bone 0 as it was
        assert isinstance(chain.get_bone(0).joint, UnconstrainedJoint)
        assert chain.basebone_constraint_type is BaseboneConstraintType3D.NONE

    def test_rotor_type_needs_ball_joint_on_bone_zero(self):
        chain = make_straight_chain()
        with pytest.raises(ConstraintError):
            chain.set_basebone_constraint_type(BaseboneConstraintType3D.GLOBAL_ROTOR)

        chain.get_bone(0).set_ball_joint_constraint_degs(20.0)
        chain.set_basebone_constraint_type(BaseboneConstraintType3D.GLOBAL_ROTOR)
        chain.set_basebone_constraint_uv(Y_AXIS)
        np.testing.assert_allclose(chain.basebone_constraint_uv, Y_AXIS)

    def test_hinge_type_needs_matching_hinge(self):
        chain = make_straight_chain()
        chain.get_bone(0).set_hinge_joint(JointType.GLOBAL_HINGE, Z_AXIS)
        with pytest.raises(ConstraintError):
            chain.set_basebone_constraint_type(BaseboneConstraintType3D.LOCAL_HINGE)
        chain.set_basebone_constraint_type(BaseboneConstraintType3D.GLOBAL_HINGE)

    @pytest.mark.parametrize("constraint_type, joint_class", [
        (BaseboneConstraintType3D.GLOBAL_HINGE, GlobalHingeJoint),
        (BaseboneConstraintType3D.LOCAL_HINGE, LocalHingeJoint),
    ])
    @pytest.mark.parametrize("limit", [45.0, 180.0])
    def test_hinge_type_set_from_bone_zero_joint(self, constraint_type, joint_class, limit):
        chain = make_straight_chain(num_bones=3)
        chain.get_bone(0).set_joint(joint_class(X_AXIS, Y_AXIS, limit, limit))
        chain.set_basebone_constraint_type(constraint_type)

        np.testing.assert_allclose(chain.basebone_constraint_uv, X_AXIS)
        np.testing.assert_allclose(chain.basebone_relative_constraint_uv, X_AXIS)
        np.testing.assert_allclose(chain.basebone_relative_reference_constraint_uv, Y_AXIS)

        for target in ([5.0, 5.0, 10.0], [12.0, 5.0, 0.0]):
            chain.solve_for_target(target)
            uv = chain.get_bone(0).direction_uv
            assert abs(np.dot(uv, X_AXIS)) < 1e-6
            angle = signed_angle_between_degs(Y_AXIS, uv, X_AXIS)
            assert -limit - 1e-6 <= angle <= limit + 1e-6
            assert_chain_is_sound(chain)

    def test_constraint_direction_needs_a_type(self):
        chain = make_straight_chain()
        with pytest.raises(ChainConfigurationError):
            chain.set_basebone_constraint_uv(X_AXIS)

    def test_invalid_hinge_basebone(self):
        chain = make_straight_chain()
        with pytest.raises(ConstraintError):
            chain.set_hinge_basebone_constraint(BaseboneConstraintType3D.GLOBAL_HINGE, Z_AXIS, 90.0, 90.0, [1.0, 0.0, 1.0])
        with pytest.raises(ConstraintError):
            chain.set_hinge_basebone_constraint(BaseboneConstraintType3D.GLOBAL_ROTOR, Z_AXIS, 90.0, 90.0, X_AXIS)

    @pytest.mark.parametrize("target", TARGETS)
    def test_global_hinge_basebone(self, target):
        chain = make_straight_chain(direction=X_AXIS, num_bones=3)
        chain.set_hinge_basebone_constraint(BaseboneConstraintType3D.GLOBAL_HINGE, Z_AXIS, 90.0, 90.0, X_AXIS)
        chain.solve_for_target(target)

        uv = chain.get_bone(0).direction_uv
        assert abs(np.dot(uv, Z_AXIS)) < 1e-6
        angle = signed_angle_between_degs(X_AXIS, uv, Z_AXIS)
        assert -90.0 - 1e-6 <= angle <= 90.0 + 1e-6
        assert_chain_is_sound(chain)

    def test_local_hinge_basebone_on_root_chain_uses_world_axes(self):
        chain = make_straight_chain(direction=X_AXIS, num_bones=3)
        chain.set_freely_rotating_local_hinged_basebone(Z_AXIS)
        np.testing.assert_allclose(chain.basebone_relative_constraint_uv, Z_AXIS)
        assert np.dot(chain.basebone_relative_reference_constraint_uv, Z_AXIS) == pytest.approx(0.0, abs=1e-12)

        chain.solve_for_target([5.0, 5.0, 20.0])
        assert abs(np.dot(chain.get_bone(0).direction_uv, Z_AXIS)) < 1e-6
        assert_chain_is_sound(chain)

    def test_freely_rotating_global_hinged_basebone(self):
        chain = make_straight_chain(direction=X_AXIS, num_bones=3)
        chain.set_freely_rotating_global_hinged_basebone(Y_AXIS)
        assert chain.basebone_constraint_type is BaseboneConstraintType3D.GLOBAL_HINGE
        assert chain.get_bone(0).joint.is_freely_rotating

        chain.solve_for_target([0.0, 25.0, 5.0])
        assert abs(np.dot(chain.get_bone(0).direction_uv, Y_AXIS)) < 1e-6
