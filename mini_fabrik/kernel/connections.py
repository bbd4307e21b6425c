# mini_fabrik/kernel/connections.py
"""Chain-to-chain connection metadata and index validation."""

from dataclasses import dataclass
from enum import Enum

from .solve import FabrikError


class ChainConnectionError(FabrikError, ValueError):
    """Raised when a connection references a chain or bone that does not exist."""
    pass


class BoneConnectionPoint(Enum):
    """Which end of the host bone a connected chain's base follows."""
    START = "start"
    END = "end"


@dataclass(frozen=True)
class ChainConnection:
    """
    Where a non-root chain is attached inside its structure.

    Parameters:
    -----------
    host_chain_index : int
        Index of the chain being attached to (always lower than the connected chain's own index)
    host_bone_index : int
        Index of the bone within the host chain
    point : BoneConnectionPoint
        START or END of the host bone
    """
    host_chain_index: int
    host_bone_index: int
    point: BoneConnectionPoint = BoneConnectionPoint.END


def validate_connection_indices(
    host_chain_index: int,
    host_bone_index: int,
    num_chains: int,
    num_host_bones: int = None,
) -> None:
    """
    Check that a host chain/bone pair exists.

    Call once with num_host_bones=None to check the chain index alone, then
    again with the host chain's bone count.

    Raises:
        ChainConnectionError: If either index is out of range
    """
    if not 0 <= host_chain_index < num_chains:
        raise ChainConnectionError(
            f"Host chain index {host_chain_index} is out of range: "
            f"structure has {num_chains} chain(s), valid indices are 0..{num_chains - 1}"
        )
    if num_host_bones is not None and not 0 <= host_bone_index < num_host_bones:
        raise ChainConnectionError(
            f"Host bone index {host_bone_index} is out of range: chain {host_chain_index} "
            f"has {num_host_bones} bone(s), valid indices are 0..{num_host_bones - 1}"
        )
