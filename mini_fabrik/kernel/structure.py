# mini_fabrik/kernel/structure.py
"""
STRUCTURE: A Forest of Chains
=============================

PURPOSE:
--------
A structure owns an ordered list of chains. Chains added with add_chain()
are ROOTS whose base the caller controls. Chains added with
connect_chain() are attached to a bone of an EARLIER chain and follow
that bone around:

    chain 0 (root)   o----o----o----o
                               |
    chain 1                    o----o----o      connected to chain 0, bone 1, END

Because a chain can only connect to a chain with a lower index, solving
the chains in ascending index order always resolves a host before any
chain that hangs off it. No topological sort is needed.

USAGE:
------
    structure = Structure2D("arm")
    structure.add_chain(torso)
    structure.connect_chain(finger, host_chain_index=0, host_bone_index=2)
    structure.solve_for_target([30, 40])
"""

import logging
import numpy as np
from typing import Dict, List, Optional, Tuple

from .chain import ChainBase
from .connections import (
    BoneConnectionPoint,
    ChainConnection,
    ChainConnectionError,
    validate_connection_indices,
)
from .geometry import VectorLike, as_vector

logger = logging.getLogger(__name__)


class StructureBase:
    """Dimension-agnostic structure. Subclasses set dim and chain_class."""

    dim: int = None
    chain_class = ChainBase

    def __init__(self, name: Optional[str] = None):
        self.name = name
        self._chains: List[ChainBase] = []

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    def _check_chain(self, chain) -> None:
        if not isinstance(chain, self.chain_class):
            raise TypeError(f"Expected {self.chain_class.__name__}, got {type(chain).__name__}")

    def add_chain(self, chain: ChainBase) -> None:
        """Append a root chain. The chain is stored as given, not copied."""
        self._check_chain(chain)
        self._chains.append(chain)
        logger.info("Structure %r: added root chain %d (%r)", self.name, len(self._chains) - 1, chain.name)

    def connect_chain(
        self,
        chain: ChainBase,
        host_chain_index: int,
        host_bone_index: int,
        connection_point: BoneConnectionPoint = BoneConnectionPoint.END,
    ) -> ChainBase:
        """
        Attach a COPY of `chain` to a bone of an existing chain.

        The bones of `chain` are treated as relative to the connection point:
        every bone is translated by the host bone's start or end location.
        The copy gets a fixed base at that location. Later changes to the
        caller's `chain` object do not affect the structure.

        Returns:
            The copy actually stored in the structure

        Raises:
            ChainConnectionError: If the host chain or host bone does not exist
        """
        self._check_chain(chain)
        if not isinstance(connection_point, BoneConnectionPoint):
            raise TypeError(f"Expected BoneConnectionPoint, got {connection_point!r}")

        validate_connection_indices(host_chain_index, host_bone_index, len(self._chains))
        host_chain = self._chains[host_chain_index]
        validate_connection_indices(
            host_chain_index, host_bone_index, len(self._chains), host_chain.num_bones
        )
        if chain.num_bones == 0:
            raise ChainConnectionError("Cannot connect a chain with zero bones")

        location = self._connection_location(host_chain, host_bone_index, connection_point)

        clone = chain.copy()
        for bone in clone.bones:
            bone.set_start_location(bone.start_location + location)
            bone.set_end_location(bone.end_location + location)
        clone.set_base_location(location)
        clone._attach(ChainConnection(host_chain_index, host_bone_index, connection_point))

        self._chains.append(clone)
        logger.info(
            "Structure %r: connected chain %d (%r) to chain %d bone %d (%s)",
            self.name, len(self._chains) - 1, clone.name,
            host_chain_index, host_bone_index, connection_point.name,
        )
        return clone

    def remove_chain(self, index: int) -> ChainBase:
        """
        Remove a chain.

        Only chains that nothing depends on, and whose removal does not shift
        the index of any connected chain's host, can be removed.
        """
        chain = self.get_chain(index)
        for i, other in enumerate(self._chains):
            if other.connection is None or i == index:
                continue
            if other.connection.host_chain_index >= index:
                raise ChainConnectionError(
                    f"Cannot remove chain {index}: chain {i} is connected to chain "
                    f"{other.connection.host_chain_index}"
                )
        del self._chains[index]
        return chain

    @staticmethod
    def _connection_location(
        host_chain: ChainBase, host_bone_index: int, point: BoneConnectionPoint
    ) -> np.ndarray:
        host_bone = host_chain.get_bone(host_bone_index)
        if point is BoneConnectionPoint.START:
            return host_bone.start_location
        return host_bone.end_location

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def chains(self) -> Tuple[ChainBase, ...]:
        return tuple(self._chains)

    @property
    def num_chains(self) -> int:
        return len(self._chains)

    def get_chain(self, index: int) -> ChainBase:
        if not 0 <= index < len(self._chains):
            raise IndexError(
                f"Chain index {index} is out of range for structure with {len(self._chains)} chain(s)"
            )
        return self._chains[index]

    @property
    def connections(self) -> Dict[int, ChainConnection]:
        """Chain index -> connection, for every non-root chain."""
        return {
            i: chain.connection
            for i, chain in enumerate(self._chains)
            if chain.connection is not None
        }

    def set_fixed_base_mode(self, value: bool) -> None:
        """Apply fixed base mode to every root chain."""
        for chain in self._chains:
            if chain.connection is None:
                chain.set_fixed_base_mode(value)

    # ------------------------------------------------------------------
    # Solving
    # ------------------------------------------------------------------

    def solve_for_target(self, target: VectorLike) -> List[float]:
        """
        Solve every chain, in ascending index order.

        Connected chains first move their base onto their host bone and
        refresh any host-relative base-bone constraint. Chains in embedded
        target mode solve for their own target instead of `target`.

        Returns:
            Solve distance of each chain, by chain index
        """
        target = as_vector(target, self.dim)
        distances = []
        for chain in self._chains:
            connection = chain.connection
            if connection is not None:
                host_chain = self._chains[connection.host_chain_index]
                host_bone = host_chain.get_bone(connection.host_bone_index)
                chain.set_base_location(
                    self._connection_location(host_chain, connection.host_bone_index, connection.point)
                )
                self._update_relative_constraints(chain, host_bone.direction_uv)

            if chain.embedded_target_mode:
                distances.append(chain.solve_for_embedded_target())
            else:
                distances.append(chain.solve_for_target(target))
        return distances

    def _update_relative_constraints(self, chain: ChainBase, host_uv: np.ndarray) -> None:
        """Re-express host-relative base-bone constraints of a connected chain."""
        raise NotImplementedError

    def __str__(self) -> str:
        lines = [f"{type(self).__name__} '{self.name or 'unnamed'}': {len(self._chains)} chain(s)"]
        for i, chain in enumerate(self._chains):
            lines.append(f"[{i}] " + str(chain))
        return "\n".join(lines)
