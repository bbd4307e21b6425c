# tests/test_structure.py
"""
STRUCTURE TESTS: Connected Chains
=================================

A connected chain is authored relative to the origin and attached to a
bone of an earlier chain. After every structure solve:

1. Its base sits on the host bone's start or end
2. Host-relative base-bone constraints are measured from the host bone's
   CURRENT direction, not the one it had when the chain was connected
"""

import numpy as np
import pytest

from mini_fabrik.chain import Chain2D
from mini_fabrik.constraints import rotate_degs, signed_angle_degs
from mini_fabrik.kernel.connections import (
    BoneConnectionPoint,
    ChainConnection,
    ChainConnectionError,
    validate_connection_indices,
)
from mini_fabrik.kernel.geometry import angle_between_degs
from mini_fabrik.kernel.solve import ChainConfigurationError
from mini_fabrik.model import BaseboneConstraintType2D, Bone2D
from mini_fabrik.structure import Structure2D
from mini_fabrik.v3d.chain import Chain3D
from mini_fabrik.v3d.elements import X_AXIS, Y_AXIS, Z_AXIS
from mini_fabrik.v3d.model import BaseboneConstraintType3D, Bone3D
from mini_fabrik.v3d.structure import Structure3D

UP = np.array([0.0, 1.0])
LEFT = np.array([-1.0, 0.0])


def make_trunk():
    trunk = Chain2D("trunk")
    trunk.add_bone(Bone2D([0.0, 0.0], [0.0, 50.0]))
    trunk.add_consecutive_bone(UP, 50.0)
    trunk.add_consecutive_bone(UP, 50.0)
    return trunk


def make_branch(constraint_type=None, limit_degs: float = 30.0):
    """Three bones pointing left from the origin, bone 0 limited to +/- limit_degs."""
    branch = Chain2D("branch")
    basebone = Bone2D.from_direction([0.0, 0.0], LEFT, 20.0)
    basebone.set_clockwise_constraint_degs(limit_degs)
    basebone.set_anticlockwise_constraint_degs(limit_degs)
    branch.add_bone(basebone)
    branch.add_consecutive_bone(LEFT, 20.0)
    branch.add_consecutive_bone(LEFT, 20.0)
    if constraint_type is not None:
        branch.set_basebone_constraint_type(constraint_type)
        branch.set_basebone_constraint_uv(LEFT)
    return branch


class TestConnectChain:

    def test_connect_stores_a_translated_copy(self):
        structure = Structure2D("tree")
        structure.add_chain(make_trunk())
        branch = make_branch()

        stored = structure.connect_chain(branch, 0, 1, BoneConnectionPoint.END)

        assert stored is not branch
        assert structure.get_chain(1) is stored
        np.testing.assert_allclose(stored.base_location, [0.0, 100.0])
        np.testing.assert_allclose(stored.get_bone(0).start_location, [0.0, 100.0])
        np.testing.assert_allclose(stored.effector_location, [-60.0, 100.0])
        assert stored.fixed_base_mode

        # Caller's chain is untouched and later edits do not leak in
        np.testing.assert_allclose(branch.get_bone(0).start_location, [0.0, 0.0])
        branch.add_consecutive_bone(LEFT, 20.0)
        assert stored.num_bones == 3

    def test_connect_to_bone_start(self):
        structure = Structure2D()
        structure.add_chain(make_trunk())
        stored = structure.connect_chain(make_branch(), 0, 2, BoneConnectionPoint.START)
        np.testing.assert_allclose(stored.base_location, [0.0, 100.0])
        assert stored.connection == ChainConnection(0, 2, BoneConnectionPoint.START)

    def test_connection_metadata(self):
        structure = Structure2D()
        structure.add_chain(make_trunk())
        structure.connect_chain(make_branch(), 0, 0)
        structure.connect_chain(make_branch(), 1, 2)

        connections = structure.connections
        assert set(connections) == {1, 2}
        assert connections[1].point is BoneConnectionPoint.END
        assert structure.get_chain(2).connected_chain_index == 1
        assert structure.get_chain(2).connected_bone_index == 2
        assert structure.get_chain(0).connected_chain_index is None

    @pytest.mark.parametrize("host_chain, host_bone", [(1, 0), (-1, 0), (0, 3), (0, -1)])
    def test_invalid_host_indices(self, host_chain, host_bone):
        structure = Structure2D()
        structure.add_chain(make_trunk())
        with pytest.raises(ChainConnectionError):
            structure.connect_chain(make_branch(), host_chain, host_bone)
        assert structure.num_chains == 1

    def test_connection_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            validate_connection_indices(0, 0, num_chains=0)
        validate_connection_indices(0, 2, num_chains=1, num_host_bones=3)

    def test_empty_chain_cannot_be_connected(self):
        structure = Structure2D()
        structure.add_chain(make_trunk())
        with pytest.raises(ChainConnectionError):
            structure.connect_chain(Chain2D("empty"), 0, 0)

    def test_connected_chain_keeps_fixed_base(self):
        structure = Structure2D()
        structure.add_chain(make_trunk())
        stored = structure.connect_chain(make_branch(), 0, 0)
        with pytest.raises(ChainConfigurationError):
            stored.set_fixed_base_mode(False)

        # Structure-wide setting only touches roots
        structure.set_fixed_base_mode(False)
        assert not structure.get_chain(0).fixed_base_mode
        assert stored.fixed_base_mode

    def test_dimension_mismatch(self):
        with pytest.raises(TypeError):
            Structure2D().add_chain(Chain3D())
        with pytest.raises(TypeError):
            Structure3D().add_chain(make_trunk())


class TestRemoveChain:

    def test_host_cannot_be_removed(self):
        structure = Structure2D()
        structure.add_chain(make_trunk())
        structure.connect_chain(make_branch(), 0, 1)
        with pytest.raises(ChainConnectionError):
            structure.remove_chain(0)

    def test_leaf_and_unreferenced_chains_can_be_removed(self):
        structure = Structure2D()
        structure.add_chain(make_trunk())
        spare = make_trunk()
        structure.add_chain(spare)
        structure.connect_chain(make_branch(), 0, 1)

        assert structure.remove_chain(1) is spare
        assert structure.num_chains == 2
        assert structure.get_chain(1).connected_chain_index == 0

        with pytest.raises(IndexError):
            structure.remove_chain(5)


class TestStructureSolve2D:

    def test_connected_base_follows_host_bone(self):
        structure = Structure2D()
        structure.add_chain(make_trunk())
        end_branch = structure.connect_chain(make_branch(), 0, 1, BoneConnectionPoint.END)
        start_branch = structure.connect_chain(make_branch(), 0, 1, BoneConnectionPoint.START)

        distances = structure.solve_for_target([80.0, 60.0])

        assert len(distances) == 3
        trunk = structure.get_chain(0)
        np.testing.assert_allclose(end_branch.get_bone(0).start_location,
                                   trunk.get_bone(1).end_location, atol=1e-9)
        np.testing.assert_allclose(start_branch.get_bone(0).start_location,
                                   trunk.get_bone(1).start_location, atol=1e-9)
        assert distances[0] <= trunk.settings.solve_distance_threshold

    def test_local_relative_follows_host_direction(self):
        structure = Structure2D()
        structure.add_chain(make_trunk())
        branch = structure.connect_chain(make_branch(BaseboneConstraintType2D.LOCAL_RELATIVE), 0, 1)

        structure.solve_for_target([90.0, 40.0])

        host_uv = structure.get_chain(0).get_bone(1).direction_uv
        np.testing.assert_allclose(branch.basebone_constraint_uv, host_uv, atol=1e-9)
        angle = signed_angle_degs(host_uv, branch.get_bone(0).direction_uv)
        assert -30.0 - 1e-6 <= angle <= 30.0 + 1e-6

    def test_local_absolute_rotates_with_host(self):
        structure = Structure2D()
        structure.add_chain(make_trunk())
        branch = structure.connect_chain(make_branch(BaseboneConstraintType2D.LOCAL_ABSOLUTE), 0, 1)

        structure.solve_for_target([90.0, 40.0])

        host_uv = structure.get_chain(0).get_bone(1).direction_uv
        expected = rotate_degs(LEFT, signed_angle_degs(UP, host_uv))
        np.testing.assert_allclose(branch.basebone_relative_constraint_uv, expected, atol=1e-9)
        np.testing.assert_allclose(branch.basebone_constraint_uv, LEFT)
        angle = signed_angle_degs(expected, branch.get_bone(0).direction_uv)
        assert -30.0 - 1e-6 <= angle <= 30.0 + 1e-6

    def test_embedded_targets(self):
        structure = Structure2D()
        structure.add_chain(make_trunk())
        finger = make_trunk()
        finger.set_base_location([200.0, 0.0])
        finger.set_embedded_target_mode(True)
        finger.update_embedded_target([240.0, 60.0])
        structure.add_chain(finger)

        shared_target = np.array([-60.0, 70.0])
        distances = structure.solve_for_target(shared_target)

        assert distances[0] == pytest.approx(np.linalg.norm(structure.get_chain(0).effector_location - shared_target))
        assert distances[1] == pytest.approx(np.linalg.norm(finger.effector_location - [240.0, 60.0]))
        assert distances[1] <= finger.settings.solve_distance_threshold

    def test_str_lists_chains(self):
        structure = Structure2D("tree")
        structure.add_chain(make_trunk())
        structure.connect_chain(make_branch(), 0, 1)
        text = str(structure)
        assert "tree" in text
        assert "[1]" in text
        assert "connected to chain 0, bone 1 (END)" in text


class TestStructureSolve3D:

    def _make_trunk(self):
        trunk = Chain3D("trunk")
        trunk.add_bone(Bone3D.from_direction([0.0, 0.0, 0.0], Y_AXIS, 10.0))
        for _ in range(3):
            trunk.add_consecutive_bone(Y_AXIS, 10.0)
        return trunk

    def _make_branch(self):
        branch = Chain3D("branch")
        branch.add_bone(Bone3D.from_direction([0.0, 0.0, 0.0], X_AXIS, 10.0))
        for _ in range(2):
            branch.add_consecutive_bone(X_AXIS, 10.0)
        return branch

    def test_local_rotor_is_measured_in_host_frame(self):
        structure = Structure3D()
        structure.add_chain(self._make_trunk())
        branch = self._make_branch()
        # Local +Z runs along the host bone
        branch.set_rotor_basebone_constraint(BaseboneConstraintType3D.LOCAL_ROTOR, Z_AXIS, 40.0)
        stored = structure.connect_chain(branch, 0, 2)

        structure.solve_for_target([25.0, 10.0, -10.0])

        host_uv = structure.get_chain(0).get_bone(2).direction_uv
        np.testing.assert_allclose(stored.basebone_relative_constraint_uv, host_uv, atol=1e-9)
        assert angle_between_degs(host_uv, stored.get_bone(0).direction_uv) <= 40.0 + 1e-6
        np.testing.assert_allclose(stored.get_bone(0).start_location,
                                   structure.get_chain(0).get_bone(2).end_location, atol=1e-9)

    def test_local_hinge_basebone_follows_host_frame(self):
        structure = Structure3D()
        structure.add_chain(self._make_trunk())
        branch = self._make_branch()
        branch.set_freely_rotating_local_hinged_basebone(X_AXIS)
        stored = structure.connect_chain(branch, 0, 3)

        structure.solve_for_target([-20.0, 30.0, 15.0])

        host_uv = structure.get_chain(0).get_bone(3).direction_uv
        axis = stored.basebone_relative_constraint_uv
        assert np.dot(axis, host_uv) == pytest.approx(0.0, abs=1e-9)
        assert abs(np.dot(stored.get_bone(0).direction_uv, axis)) < 1e-6

    def test_embedded_target_on_connected_chain(self):
        structure = Structure3D()
        structure.add_chain(self._make_trunk())
        branch = self._make_branch()
        branch.set_embedded_target_mode(True)
        branch.update_embedded_target([20.0, 15.0, 5.0])
        stored = structure.connect_chain(branch, 0, 1, BoneConnectionPoint.START)

        distances = structure.solve_for_target([0.0, 30.0, 20.0])

        np.testing.assert_allclose(stored.embedded_target, [20.0, 15.0, 5.0])
        assert distances[1] == pytest.approx(np.linalg.norm(stored.effector_location - [20.0, 15.0, 5.0]))
