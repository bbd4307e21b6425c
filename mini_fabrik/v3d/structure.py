# mini_fabrik/v3d/structure.py
"""3D structures: forests of Chain3D."""

import numpy as np

from ..kernel.structure import StructureBase
from .chain import Chain3D


class Structure3D(StructureBase):
    """
    Ordered collection of 3D chains, some connected to bones of earlier ones.

    Before each connected chain is solved, LOCAL_ROTOR and LOCAL_HINGE
    base-bone axes are mapped through the host bone's current frame.
    """

    dim = 3
    chain_class = Chain3D

    def _update_relative_constraints(self, chain: Chain3D, host_uv: np.ndarray) -> None:
        chain._follow_host_bone(host_uv)
