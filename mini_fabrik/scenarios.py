# mini_fabrik/scenarios.py
"""
SCENARIOS: Ready-Made Chains and Structures
===========================================

PURPOSE:
--------
Small, literal-parameter structures that exercise each feature of the
solver. They are used by demos/run_scenarios.py and by the tests.

Each builder returns a (structure, targets) pair: the structure to solve
and a few targets worth solving it for. Scenarios are looked up by
number in SCENARIOS, an explicit registry:

    >>> title, build = SCENARIOS[1]
    >>> structure, targets = build()
    >>> structure.solve_for_target(targets[0])
"""

import numpy as np
from typing import Callable, Dict, List, Tuple

from .chain import Chain2D
from .constraints import rotate_degs
from .kernel.connections import BoneConnectionPoint
from .kernel.structure import StructureBase
from .model import BaseboneConstraintType2D, Bone2D
from .structure import Structure2D
from .v3d.chain import Chain3D
from .v3d.elements import X_AXIS, Y_AXIS, Z_AXIS
from .v3d.model import BaseboneConstraintType3D, Bone3D, JointType
from .v3d.structure import Structure3D

UP = np.array([0.0, 1.0])
LEFT = np.array([-1.0, 0.0])
RIGHT = np.array([1.0, 0.0])

MID_GREEN = (0.0, 0.6, 0.0, 1.0)
GREY = (0.5, 0.5, 0.5, 1.0)
YELLOW = (0.9, 0.8, 0.0, 1.0)
RED = (0.8, 0.1, 0.1, 1.0)
BLUE = (0.1, 0.3, 0.9, 1.0)

Scenario = Tuple[StructureBase, List[np.ndarray]]

TARGETS_2D = [np.array(t, dtype=float) for t in ([60.0, 80.0], [-90.0, 20.0], [10.0, -120.0], [300.0, 300.0])]
TARGETS_3D = [np.array(t, dtype=float) for t in ([30.0, 20.0, 10.0], [-40.0, -10.0, 25.0], [0.0, -60.0, -30.0])]


# ============================================================================
# 2D
# ============================================================================

def fixed_base_unconstrained_2d() -> Scenario:
    """One chain, fixed base, no joint limits."""
    chain = Chain2D("unconstrained")
    chain.add_bone(Bone2D([0.0, 0.0], [0.0, 30.0], colour=BLUE))
    for _ in range(4):
        chain.add_consecutive_bone(UP, 30.0, colour=BLUE)

    structure = Structure2D("Fixed base, unconstrained bones")
    structure.add_chain(chain)
    return structure, TARGETS_2D


def fixed_base_constrained_bones_2d() -> Scenario:
    """A curling chain of short bones, each limited to +/-60 degrees."""
    chain = Chain2D("curl")
    chain.add_bone(Bone2D.from_direction([0.0, 0.0], RIGHT, 10.0, colour=RED))
    for i in range(15):
        chain.add_consecutive_constrained_bone(rotate_degs(RIGHT, 15.0 * i), 10.0, 60.0, 60.0, colour=RED)

    structure = Structure2D("Fixed base, constrained bones")
    structure.add_chain(chain)
    return structure, TARGETS_2D


def global_absolute_basebone_2d() -> Scenario:
    """Bone 0 may only swing 30 degrees either side of straight up."""
    chain = Chain2D("absolute")
    basebone = Bone2D.from_direction([0.0, -50.0], UP, 40.0, colour=GREY)
    basebone.set_clockwise_constraint_degs(30.0)
    basebone.set_anticlockwise_constraint_degs(30.0)
    chain.add_bone(basebone)
    chain.add_consecutive_constrained_bone(UP, 40.0, 90.0, 90.0, colour=GREY)
    chain.add_consecutive_constrained_bone(UP, 40.0, 90.0, 90.0, colour=GREY)
    chain.set_basebone_constraint_type(BaseboneConstraintType2D.GLOBAL_ABSOLUTE)
    chain.set_basebone_constraint_uv(UP)

    structure = Structure2D("GLOBAL_ABSOLUTE base-bone constraint")
    structure.add_chain(chain)
    return structure, TARGETS_2D


def _vertical_trunk_2d(bone_length: float = 50.0) -> Chain2D:
    trunk = Chain2D("trunk")
    basebone = Bone2D.from_direction([0.0, -100.0], UP, bone_length)
    basebone.set_clockwise_constraint_degs(15.0)
    basebone.set_anticlockwise_constraint_degs(15.0)
    trunk.add_bone(basebone)
    trunk.add_consecutive_constrained_bone(UP, bone_length, 15.0, 15.0)
    trunk.add_consecutive_constrained_bone(UP, bone_length, 15.0, 15.0)
    trunk.set_basebone_constraint_type(BaseboneConstraintType2D.GLOBAL_ABSOLUTE)
    trunk.set_basebone_constraint_uv(UP)
    return trunk


def _side_chain_2d(direction: np.ndarray, colour, constraint_type=None, bone_length: float = 30.0) -> Chain2D:
    """Chain authored at the origin, to be connected to a host bone."""
    chain = Chain2D("side")
    basebone = Bone2D.from_direction([0.0, 0.0], direction, bone_length, colour=colour)
    basebone.set_clockwise_constraint_degs(30.0)
    basebone.set_anticlockwise_constraint_degs(30.0)
    chain.add_bone(basebone)
    chain.add_consecutive_constrained_bone(direction, bone_length, 90.0, 90.0, colour=colour)
    chain.add_consecutive_constrained_bone(direction, bone_length, 90.0, 90.0, colour=colour)
    if constraint_type is not None:
        chain.set_basebone_constraint_type(constraint_type)
        chain.set_basebone_constraint_uv(direction)
    return chain


def connected_chains_2d(constraint_type=None, title="Connected chains, no base-bone constraints") -> Scenario:
    """A vertical trunk with a left branch on bone 0 and a right branch on bone 1."""
    structure = Structure2D(title)
    structure.add_chain(_vertical_trunk_2d())
    structure.connect_chain(_side_chain_2d(LEFT, MID_GREEN, constraint_type), 0, 0, BoneConnectionPoint.END)
    structure.connect_chain(_side_chain_2d(RIGHT, GREY, constraint_type), 0, 1, BoneConnectionPoint.END)
    return structure, TARGETS_2D


def connected_chains_local_relative_2d() -> Scenario:
    return connected_chains_2d(BaseboneConstraintType2D.LOCAL_RELATIVE,
                               "Connected chains, LOCAL_RELATIVE base bones")


def connected_chains_local_absolute_2d() -> Scenario:
    return connected_chains_2d(BaseboneConstraintType2D.LOCAL_ABSOLUTE,
                               "Connected chains, LOCAL_ABSOLUTE base bones")


def embedded_targets_2d() -> Scenario:
    """Three fixed chains side by side, each chasing its own embedded target."""
    structure = Structure2D("Fixed chains with embedded targets")
    for i, x in enumerate((-80.0, 0.0, 80.0)):
        chain = Chain2D(f"finger {i}")
        chain.add_bone(Bone2D.from_direction([x, -60.0], UP, 25.0, colour=MID_GREEN))
        for _ in range(3):
            chain.add_consecutive_constrained_bone(UP, 25.0, 45.0, 45.0, colour=MID_GREEN)
        chain.set_embedded_target_mode(True)
        chain.update_embedded_target([x + 30.0 * (i - 1), 20.0 + 10.0 * i])
        structure.add_chain(chain)
    return structure, TARGETS_2D[:1]


# ============================================================================
# 3D
# ============================================================================

def _straight_chain_3d(name: str, start, direction, num_bones: int = 6,
                       bone_length: float = 10.0, colour=None) -> Chain3D:
    chain = Chain3D(name)
    chain.add_bone(Bone3D.from_direction(start, direction, bone_length, colour=colour))
    for _ in range(num_bones - 1):
        chain.add_consecutive_bone(direction, bone_length, colour=colour)
    return chain


def unconstrained_bones_3d() -> Scenario:
    structure = Structure3D("Unconstrained 3D bones")
    structure.add_chain(_straight_chain_3d("free", [0.0, 0.0, 0.0], -Y_AXIS, colour=BLUE))
    return structure, TARGETS_3D


def rotor_constrained_bones_3d() -> Scenario:
    """Every bone after the first limited to a 45 degree cone."""
    chain = Chain3D("rotor")
    chain.add_bone(Bone3D.from_direction([0.0, 30.0, 0.0], -Y_AXIS, 10.0, colour=RED))
    for _ in range(7):
        chain.add_consecutive_rotor_constrained_bone(-Y_AXIS, 10.0, 45.0, colour=RED)

    structure = Structure3D("Rotor (ball joint) constrained bones")
    structure.add_chain(chain)
    return structure, TARGETS_3D


def rotor_constrained_basebone_3d() -> Scenario:
    """Bone 0 kept within 30 degrees of +X."""
    chain = Chain3D("rotor base")
    chain.add_bone(Bone3D.from_direction([0.0, 0.0, 0.0], X_AXIS, 10.0, colour=YELLOW))
    for _ in range(5):
        chain.add_consecutive_rotor_constrained_bone(X_AXIS, 10.0, 60.0, colour=YELLOW)
    chain.set_rotor_basebone_constraint(BaseboneConstraintType3D.GLOBAL_ROTOR, X_AXIS, 30.0)

    structure = Structure3D("GLOBAL_ROTOR base bone")
    structure.add_chain(chain)
    return structure, TARGETS_3D


def freely_rotating_global_hinges_3d() -> Scenario:
    """Every other bone hinged about world +X, so the chain folds in the YZ plane."""
    chain = Chain3D("global hinges")
    chain.add_bone(Bone3D.from_direction([0.0, 30.0, 0.0], -Y_AXIS, 10.0, colour=GREY))
    for i in range(7):
        if i % 2 == 0:
            chain.add_consecutive_freely_rotating_hinged_bone(-Y_AXIS, 10.0, JointType.GLOBAL_HINGE, X_AXIS, colour=GREY)
        else:
            chain.add_consecutive_bone(-Y_AXIS, 10.0, colour=MID_GREEN)

    structure = Structure3D("Freely rotating global hinges")
    structure.add_chain(chain)
    return structure, TARGETS_3D


def global_hinges_with_reference_axis_3d() -> Scenario:
    """Hinges about +Z, limited to 120 degrees either side of -Y."""
    chain = Chain3D("limited hinges")
    chain.add_bone(Bone3D.from_direction([0.0, 30.0, -40.0], -Y_AXIS, 10.0, colour=YELLOW))
    for i in range(8):
        if i % 2 == 0:
            chain.add_consecutive_hinged_bone(-Y_AXIS, 10.0, JointType.GLOBAL_HINGE, Z_AXIS,
                                              120.0, 120.0, -Y_AXIS, colour=GREY)
        else:
            chain.add_consecutive_bone(-Y_AXIS, 10.0, colour=MID_GREEN)

    structure = Structure3D("Global hinges with reference axis constraints")
    structure.add_chain(chain)
    return structure, TARGETS_3D


def freely_rotating_local_hinges_3d() -> Scenario:
    """Hinges whose axis turns with the previous bone."""
    chain = Chain3D("local hinges")
    chain.add_bone(Bone3D.from_direction([0.0, 0.0, 0.0], Z_AXIS, 10.0, colour=BLUE))
    for i in range(7):
        axis = X_AXIS if i % 2 == 0 else Y_AXIS
        chain.add_consecutive_freely_rotating_hinged_bone(Z_AXIS, 10.0, JointType.LOCAL_HINGE, axis, colour=BLUE)

    structure = Structure3D("Freely rotating local hinges")
    structure.add_chain(chain)
    return structure, TARGETS_3D


def local_rotor_connected_chains_3d() -> Scenario:
    """A trunk with branches whose base bones are coned about the host bone's frame."""
    structure = Structure3D("LOCAL_ROTOR connected chains")
    structure.add_chain(_straight_chain_3d("trunk", [0.0, 0.0, 0.0], Y_AXIS, num_bones=5, colour=GREY))

    for host_bone, direction in ((1, X_AXIS), (3, -X_AXIS)):
        branch = _straight_chain_3d("branch", [0.0, 0.0, 0.0], direction, num_bones=4, colour=MID_GREEN)
        # Local +Z is along the host bone
        branch.set_rotor_basebone_constraint(BaseboneConstraintType3D.LOCAL_ROTOR, Z_AXIS, 60.0)
        structure.connect_chain(branch, 0, host_bone, BoneConnectionPoint.END)
    return structure, TARGETS_3D


def connected_chains_with_embedded_targets_3d() -> Scenario:
    structure = Structure3D("Connected chains with embedded targets")
    structure.add_chain(_straight_chain_3d("trunk", [0.0, -30.0, 0.0], Y_AXIS, num_bones=4, colour=GREY))

    branch = _straight_chain_3d("branch", [0.0, 0.0, 0.0], X_AXIS, num_bones=4, colour=RED)
    branch.set_embedded_target_mode(True)
    branch.update_embedded_target([40.0, 10.0, 0.0])
    structure.connect_chain(branch, 0, 1, BoneConnectionPoint.START)
    return structure, TARGETS_3D


# ============================================================================
# Registry
# ============================================================================

SCENARIOS: Dict[int, Tuple[str, Callable[[], Scenario]]] = {
    1: ("2D fixed base, unconstrained bones", fixed_base_unconstrained_2d),
    2: ("2D fixed base, constrained bones", fixed_base_constrained_bones_2d),
    3: ("2D GLOBAL_ABSOLUTE base bone", global_absolute_basebone_2d),
    4: ("2D connected chains, no base-bone constraints", connected_chains_2d),
    5: ("2D connected chains, LOCAL_RELATIVE base bones", connected_chains_local_relative_2d),
    6: ("2D connected chains, LOCAL_ABSOLUTE base bones", connected_chains_local_absolute_2d),
    7: ("2D embedded targets", embedded_targets_2d),
    8: ("3D unconstrained bones", unconstrained_bones_3d),
    9: ("3D rotor constrained bones", rotor_constrained_bones_3d),
    10: ("3D GLOBAL_ROTOR base bone", rotor_constrained_basebone_3d),
    11: ("3D freely rotating global hinges", freely_rotating_global_hinges_3d),
    12: ("3D global hinges with reference axis limits", global_hinges_with_reference_axis_3d),
    13: ("3D freely rotating local hinges", freely_rotating_local_hinges_3d),
    14: ("3D LOCAL_ROTOR connected chains", local_rotor_connected_chains_3d),
    15: ("3D connected chains with embedded targets", connected_chains_with_embedded_targets_3d),
}
