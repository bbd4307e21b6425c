"""
VISUALIZATION: SNAPSHOTS OF SOLVED CHAINS
=========================================

PURPOSE:
--------
Static plots of chains and structures after a solve, saved to file. They
are a debugging aid for checking solver behaviour by eye:

    - Does the end effector sit on the target (or as close as it can)?
    - Do connected chains start on their host bone?
    - Do constrained joints look plausibly clamped?

Bones are drawn as lines with a dot at each joint, the target as a
cross, and each chain's base as a square.
"""

import os
import numpy as np
import matplotlib.pyplot as plt
from typing import Iterable, Optional

from .kernel.bone import WHITE
from .kernel.chain import ChainBase


def _ensure_dir(outpath: str) -> None:
    os.makedirs(os.path.dirname(outpath) if os.path.dirname(outpath) else '.', exist_ok=True)


def _line_colour(chain: ChainBase):
    """RGB of bone 0, or None (matplotlib default cycle) for the default white."""
    colour = chain.get_bone(0).colour
    return None if tuple(colour) == WHITE else colour[:3]


def _chain_points(chain: ChainBase) -> np.ndarray:
    """(num_bones + 1, dim) array: every joint location from base to end effector."""
    points = [chain.get_bone(0).start_location]
    points.extend(bone.end_location for bone in chain.bones)
    return np.array(points)


def plot_chains_2d(
    chains: Iterable[ChainBase],
    target: Optional[np.ndarray],
    outpath: str,
    title: str = "Solved chains",
) -> None:
    """
    Plot 2D chains (e.g. `structure.chains`) and the shared target.

    Parameters:
    -----------
    chains : iterable of Chain2D
        Chains to draw, in solve order
    target : array-like (2,) or None
        Shared target; embedded targets are drawn for chains that use them
    outpath : str
        Path to save the figure
    title : str
        Plot title
    """
    fig, ax = plt.subplots(figsize=(8, 8))

    for i, chain in enumerate(chains):
        if chain.num_bones == 0:
            continue
        pts = _chain_points(chain)
        colour = _line_colour(chain)
        ax.plot(pts[:, 0], pts[:, 1], '-o', color=colour, markersize=4,
                linewidth=chain.get_bone(0).line_width + 1, label=chain.name or f"chain {i}")
        ax.plot(*chain.base_location, 's', color='black', markersize=6)
        if chain.embedded_target_mode:
            ax.plot(*chain.embedded_target, 'x', color=colour, markersize=10, mew=2)

    if target is not None:
        ax.plot(target[0], target[1], 'x', color='red', markersize=12, mew=3, label='target')

    ax.set_aspect('equal', adjustable='datalim')
    ax.set_title(title, fontsize=14, fontweight='bold')
    ax.grid(True, alpha=0.3, linestyle='--')
    ax.legend(loc='best', fontsize=9)

    _ensure_dir(outpath)
    plt.tight_layout()
    plt.savefig(outpath, dpi=150, bbox_inches='tight')
    plt.close(fig)


def plot_chains_3d(
    chains: Iterable[ChainBase],
    target: Optional[np.ndarray],
    outpath: str,
    title: str = "Solved chains",
) -> None:
    """Plot 3D chains and the shared target on a 3D axes."""
    fig = plt.figure(figsize=(9, 8))
    ax = fig.add_subplot(111, projection='3d')

    for i, chain in enumerate(chains):
        if chain.num_bones == 0:
            continue
        pts = _chain_points(chain)
        colour = _line_colour(chain)
        ax.plot(pts[:, 0], pts[:, 1], pts[:, 2], '-o', color=colour, markersize=3,
                label=chain.name or f"chain {i}")
        if chain.embedded_target_mode:
            ax.scatter(*chain.embedded_target, marker='x', color=colour, s=60)

    if target is not None:
        ax.scatter(target[0], target[1], target[2], marker='x', color='red', s=100, label='target')

    ax.set_title(title, fontsize=14, fontweight='bold')
    ax.set_xlabel('x')
    ax.set_ylabel('y')
    ax.set_zlabel('z')
    ax.legend(loc='best', fontsize=9)

    _ensure_dir(outpath)
    plt.tight_layout()
    plt.savefig(outpath, dpi=150, bbox_inches='tight')
    plt.close(fig)
