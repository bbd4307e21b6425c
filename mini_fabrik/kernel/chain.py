# mini_fabrik/kernel/chain.py
"""
CHAIN: Dimension-Agnostic FABRIK Bookkeeping
============================================

PURPOSE:
--------
Everything a chain does that does not depend on how joints are
constrained lives here:

    - bone storage and introspection (num_bones, get_bone, chain_length)
    - base location, fixed-base mode and connection metadata
    - solver settings and their validated setters
    - embedded targets
    - the "same target as last time?" cache
    - the best-of-N iteration loop (kernel.solve.solve_best_of_iterations)
      and the chain-local buffer that holds the best layout seen so far

Chain2D and Chain3D subclass ChainBase and supply one method,
_solve_iteration(target), which runs a single backward+forward pass and
returns the end effector's distance to the target.
"""

import copy
import dataclasses
import logging
import numpy as np
from typing import List, Optional, Tuple

from .bone import BoneBase, Colour
from .connections import ChainConnection
from .geometry import (
    VectorLike,
    approximately_equal,
    as_vector,
    distance_between,
    validate_direction_uv,
)
from .settings import SolverSettings
from .solve import ChainConfigurationError, solve_best_of_iterations

logger = logging.getLogger(__name__)

# Target/base movement below this is treated as "no change" between solves
SAME_TARGET_TOLERANCE = 0.001


class ChainBase:
    """
    Ordered, contiguous sequence of bones solved together toward one target.

    Subclasses set:
        dim                  : 2 or 3
        bone_class           : Bone2D / Bone3D
        constraint_types     : the base-bone constraint Enum for the dimension
        default_settings     : SolverSettings used when none is given
        fixed_base_types     : constraint types that only make sense with a fixed base
    """

    dim: int = None
    bone_class = BoneBase
    constraint_types = None
    default_settings: SolverSettings = SolverSettings()
    fixed_base_types = frozenset()

    def __init__(self, name: Optional[str] = None, settings: Optional[SolverSettings] = None):
        self.name = name
        self._bones: List[BoneBase] = []
        self._settings = self.default_settings if settings is None else settings

        self._fixed_base_mode = True
        self._base_location = np.zeros(self.dim)
        self._basebone_constraint_type = self.constraint_types.NONE
        self._basebone_constraint_uv = np.zeros(self.dim)
        self._basebone_relative_constraint_uv = np.zeros(self.dim)

        self._embedded_target_mode = False
        self._embedded_target = np.zeros(self.dim)

        self._connection: Optional[ChainConnection] = None

        self._last_target_location: Optional[np.ndarray] = None
        self._last_base_location: Optional[np.ndarray] = None
        self._current_solve_distance = float("inf")

        # (num_bones, 2, dim): start and end of every bone in the best pass so far
        self._best_solution = np.empty((0, 2, self.dim))

    # ------------------------------------------------------------------
    # Bones
    # ------------------------------------------------------------------

    @property
    def bones(self) -> Tuple[BoneBase, ...]:
        return tuple(self._bones)

    @property
    def num_bones(self) -> int:
        return len(self._bones)

    def get_bone(self, index: int) -> BoneBase:
        if not 0 <= index < len(self._bones):
            raise IndexError(
                f"Bone index {index} is out of range for chain with {len(self._bones)} bone(s)"
            )
        return self._bones[index]

    def add_bone(self, bone: BoneBase) -> None:
        """
        Append a bone. The first bone defines the chain's base location and
        its initial base-bone constraint direction.
        """
        if not isinstance(bone, self.bone_class):
            raise TypeError(f"Expected {self.bone_class.__name__}, got {type(bone).__name__}")

        self._bones.append(bone)
        if len(self._bones) == 1:
            self._base_location = bone.start_location
            self._basebone_constraint_uv = bone.direction_uv
            self._basebone_relative_constraint_uv = bone.direction_uv
        self._invalidate_solution()

    def _consecutive_bone(self, direction: VectorLike, length: float, joint, colour) -> BoneBase:
        if not self._bones:
            raise ChainConfigurationError(
                "Cannot add a consecutive bone to a chain with zero bones: add a basebone first"
            )
        start = self._bones[-1].end_location
        return self.bone_class.from_direction(start, direction, length, joint=joint, colour=colour)

    def add_consecutive_bone(
        self, direction: VectorLike, length: float, colour: Optional[Colour] = None
    ) -> BoneBase:
        """Append an unconstrained bone starting at the current end effector."""
        bone = self._consecutive_bone(direction, length, None, colour)
        self.add_bone(bone)
        return bone

    def remove_bone(self, index: int) -> BoneBase:
        bone = self.get_bone(index)
        del self._bones[index]
        self._invalidate_solution()
        return bone

    def set_colour(self, colour: Colour) -> None:
        for bone in self._bones:
            bone.colour = tuple(colour)

    @property
    def chain_length(self) -> float:
        """Sum of fixed bone lengths (maximum reach)."""
        return float(sum(bone.length for bone in self._bones))

    @property
    def live_chain_length(self) -> float:
        return float(sum(bone.live_length for bone in self._bones))

    @property
    def effector_location(self) -> np.ndarray:
        self._require_bones("query the end effector")
        return self._bones[-1].end_location

    # ------------------------------------------------------------------
    # Base
    # ------------------------------------------------------------------

    @property
    def base_location(self) -> np.ndarray:
        return self._base_location.copy()

    def set_base_location(self, location: VectorLike) -> None:
        """Move the anchor. Takes effect on the next solve."""
        self._base_location = as_vector(location, self.dim)

    @property
    def fixed_base_mode(self) -> bool:
        return self._fixed_base_mode

    def set_fixed_base_mode(self, value: bool) -> None:
        if not value:
            if self._connection is not None:
                raise ChainConfigurationError(
                    "A chain connected to another chain must keep a fixed base"
                )
            if self._basebone_constraint_type in self.fixed_base_types:
                raise ChainConfigurationError(
                    f"Cannot free the base of a chain with a "
                    f"{self._basebone_constraint_type.name} base-bone constraint"
                )
        self._fixed_base_mode = bool(value)
        self._invalidate_solution()

    # ------------------------------------------------------------------
    # Base-bone constraint
    # ------------------------------------------------------------------

    @property
    def basebone_constraint_type(self):
        return self._basebone_constraint_type

    def set_basebone_constraint_type(self, constraint_type) -> None:
        self._require_bones("set a base-bone constraint")
        if not isinstance(constraint_type, self.constraint_types):
            raise TypeError(
                f"Expected {self.constraint_types.__name__}, got {constraint_type!r}"
            )
        if constraint_type in self.fixed_base_types and not self._fixed_base_mode:
            raise ChainConfigurationError(
                f"A {constraint_type.name} base-bone constraint requires fixed base mode"
            )
        self._basebone_constraint_type = constraint_type
        self._invalidate_solution()

    @property
    def basebone_constraint_uv(self) -> np.ndarray:
        return self._basebone_constraint_uv.copy()

    def set_basebone_constraint_uv(self, direction: VectorLike) -> None:
        self._require_bones("set a base-bone constraint direction")
        uv = validate_direction_uv(direction, self.dim)
        self._basebone_constraint_uv = uv
        if self._connection is None:
            self._basebone_relative_constraint_uv = uv.copy()
        self._invalidate_solution()

    @property
    def basebone_relative_constraint_uv(self) -> np.ndarray:
        return self._basebone_relative_constraint_uv.copy()

    def _set_basebone_relative_constraint_uv(self, uv: np.ndarray) -> None:
        """Called by structures before each solve of a connected chain."""
        if not approximately_equal(uv, self._basebone_relative_constraint_uv, SAME_TARGET_TOLERANCE):
            self._invalidate_solution()
        self._basebone_relative_constraint_uv = np.array(uv, dtype=float)

    # ------------------------------------------------------------------
    # Connection metadata (written by structures)
    # ------------------------------------------------------------------

    @property
    def connection(self) -> Optional[ChainConnection]:
        return self._connection

    @property
    def connected_chain_index(self) -> Optional[int]:
        return None if self._connection is None else self._connection.host_chain_index

    @property
    def connected_bone_index(self) -> Optional[int]:
        return None if self._connection is None else self._connection.host_bone_index

    def _attach(self, connection: ChainConnection) -> None:
        self._connection = connection
        self._fixed_base_mode = True
        self._invalidate_solution()

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @property
    def settings(self) -> SolverSettings:
        return self._settings

    def set_max_iteration_attempts(self, value: int) -> None:
        self._settings = dataclasses.replace(self._settings, max_iterations=value)

    def set_min_iteration_change(self, value: float) -> None:
        self._settings = dataclasses.replace(self._settings, min_iteration_change=value)

    def set_solve_distance_threshold(self, value: float) -> None:
        self._settings = dataclasses.replace(self._settings, solve_distance_threshold=value)
        self._invalidate_solution()

    # ------------------------------------------------------------------
    # Embedded target
    # ------------------------------------------------------------------

    @property
    def embedded_target_mode(self) -> bool:
        return self._embedded_target_mode

    def set_embedded_target_mode(self, value: bool) -> None:
        self._embedded_target_mode = bool(value)

    @property
    def embedded_target(self) -> np.ndarray:
        return self._embedded_target.copy()

    def update_embedded_target(self, target: VectorLike) -> None:
        if not self._embedded_target_mode:
            raise ChainConfigurationError(
                "Cannot update the embedded target: embedded target mode is disabled"
            )
        self._embedded_target = as_vector(target, self.dim)

    def solve_for_embedded_target(self) -> float:
        if not self._embedded_target_mode:
            raise ChainConfigurationError(
                "Cannot solve for the embedded target: embedded target mode is disabled"
            )
        return self.solve_for_target(self._embedded_target)

    # ------------------------------------------------------------------
    # Solving
    # ------------------------------------------------------------------

    @property
    def last_target_location(self) -> Optional[np.ndarray]:
        return None if self._last_target_location is None else self._last_target_location.copy()

    @property
    def current_solve_distance(self) -> float:
        return self._current_solve_distance

    def solve_for_target(self, target: VectorLike) -> float:
        """
        Move the bones so the end effector gets as close to target as the
        joint constraints allow.

        Returns:
            Distance from the end effector to the target for the best
            layout found. Not reaching the target is not an error.

        Raises:
            ChainConfigurationError: If the chain has no bones
        """
        self._require_bones("solve")
        target = as_vector(target, self.dim)

        if (
            self._last_target_location is not None
            and approximately_equal(target, self._last_target_location, SAME_TARGET_TOLERANCE)
            and approximately_equal(self._base_location, self._last_base_location, SAME_TARGET_TOLERANCE)
        ):
            logger.debug("Chain %r: target and base unchanged, reusing last solution", self.name)
            return self._current_solve_distance

        best_distance, _ = solve_best_of_iterations(
            lambda: self._solve_iteration(target),
            self._store_best_solution,
            self._restore_best_solution,
            self._settings,
        )

        self._current_solve_distance = best_distance
        self._last_target_location = target.copy()
        self._last_base_location = self._base_location.copy()

        return best_distance

    def _solve_iteration(self, target: np.ndarray) -> float:
        raise NotImplementedError

    def _end_effector_distance(self, target: np.ndarray) -> float:
        return distance_between(self._bones[-1].end_location, target)

    def _store_best_solution(self) -> None:
        n = len(self._bones)
        if self._best_solution.shape[0] != n:
            self._best_solution = np.empty((n, 2, self.dim))
        for i, bone in enumerate(self._bones):
            self._best_solution[i, 0] = bone.start_location
            self._best_solution[i, 1] = bone.end_location

    def _restore_best_solution(self) -> None:
        for i, bone in enumerate(self._bones):
            bone.set_start_location(self._best_solution[i, 0])
            bone.set_end_location(self._best_solution[i, 1])

    def _invalidate_solution(self) -> None:
        self._last_target_location = None
        self._last_base_location = None

    def _require_bones(self, action: str) -> None:
        if not self._bones:
            raise ChainConfigurationError(f"Cannot {action}: chain has zero bones")

    # ------------------------------------------------------------------

    def copy(self):
        """Deep clone: bones, joints, vectors and settings are all independent."""
        return copy.deepcopy(self)

    def __str__(self) -> str:
        lines = [
            f"{type(self).__name__} '{self.name or 'unnamed'}'",
            f"  bones: {len(self._bones)}, chain length: {self.chain_length:.3f}",
            f"  fixed base: {self._fixed_base_mode}, base location: {np.round(self._base_location, 3)}",
            f"  base-bone constraint: {self._basebone_constraint_type.name}",
        ]
        if self._connection is not None:
            lines.append(
                f"  connected to chain {self._connection.host_chain_index}, "
                f"bone {self._connection.host_bone_index} ({self._connection.point.name})"
            )
        if self._embedded_target_mode:
            lines.append(f"  embedded target: {np.round(self._embedded_target, 3)}")
        return "\n".join(lines)
