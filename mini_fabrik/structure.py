# mini_fabrik/structure.py
"""2D structures: forests of Chain2D."""

import numpy as np

from .chain import Chain2D
from .kernel.structure import StructureBase


class Structure2D(StructureBase):
    """
    Ordered collection of 2D chains, some connected to bones of earlier ones.

    Before each connected chain is solved, LOCAL_RELATIVE base-bone
    constraints take the host bone's direction and LOCAL_ABSOLUTE ones are
    rotated by the host bone's angle from +Y.
    """

    dim = 2
    chain_class = Chain2D

    def _update_relative_constraints(self, chain: Chain2D, host_uv: np.ndarray) -> None:
        chain._follow_host_bone(host_uv)
