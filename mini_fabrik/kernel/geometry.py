# mini_fabrik/kernel/geometry.py
"""
GEOMETRY: Dimension-Agnostic Vector Helpers
===========================================

PURPOSE:
--------
FABRIK only ever asks a handful of questions of its vectors:

    - How far apart are two points?         distance_between(a, b)
    - Which way does a bone point?          direction_uv(start, end)
    - What is the angle between two bones?  angle_between_degs(a, b)
    - Has the target moved since last time? approximately_equal(a, b, tol)

None of these care whether the vectors have 2 or 3 components, so they
live here and are shared by the 2D solver (mini_fabrik.chain) and the
3D solver (mini_fabrik.v3d.chain).

CONVENTIONS:
------------
Vectors are plain numpy float64 arrays of shape (2,) or (3,). They are
immutable BY CONVENTION: every helper returns a fresh array and never
writes into its arguments.

    >>> a = as_vector([0, 1], dim=2)
    >>> direction_uv(a, as_vector([0, 5], dim=2))
    array([0., 1.])
"""

import numpy as np
from typing import Sequence, Union

VectorLike = Union[Sequence[float], np.ndarray]

# Anything shorter than this is treated as a zero vector
ZERO_LENGTH_EPSILON = 1e-9


def as_vector(v: VectorLike, dim: int) -> np.ndarray:
    """
    Coerce a sequence of floats to a fresh float64 vector of the given dimension.

    Raises:
        ValueError: If v does not have exactly `dim` finite components
    """
    arr = np.array(v, dtype=float).reshape(-1)
    if arr.shape != (dim,):
        raise ValueError(f"Expected a {dim}D vector, got shape {np.shape(v)}")
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"Vector components must be finite, got {arr}")
    return arr


def length(v: np.ndarray) -> float:
    return float(np.linalg.norm(v))


def distance_between(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.linalg.norm(np.asarray(b) - np.asarray(a)))


def normalised(v: np.ndarray) -> np.ndarray:
    """Return v scaled to unit length. Zero vectors raise ValueError."""
    mag = np.linalg.norm(v)
    if mag < ZERO_LENGTH_EPSILON:
        raise ValueError("Cannot normalise a zero-length vector")
    return np.asarray(v, dtype=float) / mag


def direction_uv(start: np.ndarray, end: np.ndarray) -> np.ndarray:
    """Unit vector pointing from start to end."""
    return normalised(np.asarray(end, dtype=float) - np.asarray(start, dtype=float))


def angle_between_degs(a: np.ndarray, b: np.ndarray) -> float:
    """
    Unsigned angle between two vectors in degrees, range [0, 180].

    The dot product is clipped before arccos so that nearly parallel unit
    vectors never produce NaN through rounding (dot = 1.0000001).
    """
    dot = float(np.dot(normalised(a), normalised(b)))
    return float(np.degrees(np.arccos(np.clip(dot, -1.0, 1.0))))


def approximately_equal(a: np.ndarray, b: np.ndarray, tolerance: float) -> bool:
    """True if every component of a is within tolerance of the matching component of b."""
    return bool(np.all(np.abs(np.asarray(a) - np.asarray(b)) <= tolerance))


def validate_direction_uv(v: VectorLike, dim: int) -> np.ndarray:
    """
    Validate and normalise a user-supplied direction.

    Returns:
        Unit vector of dimension `dim`

    Raises:
        ValueError: If the direction has zero magnitude
    """
    arr = as_vector(v, dim)
    if np.linalg.norm(arr) < ZERO_LENGTH_EPSILON:
        raise ValueError(f"Direction must have non-zero magnitude, got {arr}")
    return normalised(arr)


def validate_length(value: float) -> float:
    if not np.isfinite(value) or value <= 0:
        raise ValueError(f"Bone length must be positive, got {value}")
    return float(value)
