# mini_fabrik/v3d/elements.py
"""
3D VECTOR AND FRAME PRIMITIVES
==============================

PURPOSE:
--------
The 3D joint constraints need a few operations that do not exist in 2D:

    rotate_about_axis_degs(v, angle, axis)   right-handed rotation (scipy Rotation)
    project_onto_plane(v, normal)            drop the component along the normal
    signed_angle_between_degs(a, b, n)       angle a -> b, signed by the side of n
    angle_limited_uv(v, baseline, limit)     pull v back inside a cone around baseline
    perpendicular_quick(u)                   any unit vector perpendicular to u
    rotation_matrix_from_direction(d)        orthonormal frame whose Z axis is d

LOCAL FRAMES:
-------------
A local hinge is authored in the frame of the bone before it. The frame is
built from that bone's direction alone:

    Z = direction
    X = normalise(Z x +Y)       (Z x +X instead when Z is nearly +/-Y)
    Y = Z x X

and the matrix has X, Y, Z as COLUMNS, so

    M @ v = X * v[0] + Y * v[1] + Z * v[2]

maps a local axis into world space. Because the frame is orthonormal,
axes that are perpendicular locally stay perpendicular in world space.
"""

import numpy as np
from scipy.spatial.transform import Rotation

from ..kernel.geometry import ZERO_LENGTH_EPSILON, angle_between_degs, normalised

X_AXIS = np.array([1.0, 0.0, 0.0])
Y_AXIS = np.array([0.0, 1.0, 0.0])
Z_AXIS = np.array([0.0, 0.0, 1.0])

# Projections shorter than this are treated as degenerate
DEGENERATE_PROJECTION_LENGTH = 1e-6


def rotate_about_axis_degs(v: np.ndarray, angle_degs: float, axis: np.ndarray) -> np.ndarray:
    """Rotate v by angle_degs about axis (right-hand rule)."""
    rotvec = np.radians(angle_degs) * normalised(axis)
    return Rotation.from_rotvec(rotvec).apply(v)


def project_onto_plane(v: np.ndarray, plane_normal: np.ndarray) -> np.ndarray:
    """
    Component of v lying in the plane with the given normal.

    The result is NOT normalised: a near-zero result means v was (almost)
    parallel to the normal and the caller must pick a fallback.
    """
    n = normalised(plane_normal)
    return np.asarray(v, dtype=float) - n * np.dot(v, n)


def perpendicular_quick(u: np.ndarray) -> np.ndarray:
    """A unit vector perpendicular to u (u x +Y, or u x +X when u is nearly vertical)."""
    if abs(u[1]) < 0.99:
        perp = np.array([-u[2], 0.0, u[0]])
    else:
        perp = np.array([0.0, u[2], -u[1]])
    return normalised(perp)


def is_perpendicular(a: np.ndarray, b: np.ndarray, tolerance: float = 0.01) -> bool:
    return abs(float(np.dot(normalised(a), normalised(b)))) <= tolerance


def signed_angle_between_degs(reference: np.ndarray, other: np.ndarray, normal: np.ndarray) -> float:
    """
    Angle from reference to other in degrees, positive when (reference x other)
    points the same way as normal.
    """
    unsigned = angle_between_degs(reference, other)
    sign = 1.0 if np.dot(np.cross(reference, other), normal) >= 0.0 else -1.0
    return sign * unsigned


def angle_limited_uv(v: np.ndarray, baseline: np.ndarray, limit_degs: float) -> np.ndarray:
    """
    Return v, or if v is more than limit_degs away from baseline, the
    direction exactly limit_degs from baseline on the way toward v.
    """
    if angle_between_degs(baseline, v) <= limit_degs:
        return np.asarray(v, dtype=float)

    axis = np.cross(baseline, v)
    if np.linalg.norm(axis) < ZERO_LENGTH_EPSILON:
        # v points straight back along baseline: every axis is equally good
        axis = perpendicular_quick(baseline)
    return normalised(rotate_about_axis_degs(baseline, limit_degs, axis))


def rotation_matrix_from_direction(direction: np.ndarray) -> np.ndarray:
    """3x3 orthonormal frame with `direction` as its Z axis (see module docstring)."""
    z = normalised(direction)
    helper = X_AXIS if abs(z[1]) > 0.9999 else Y_AXIS
    x = normalised(np.cross(z, helper))
    y = np.cross(z, x)
    return np.column_stack([x, y, z])


def bone_transform(start: np.ndarray, direction: np.ndarray) -> np.ndarray:
    """
    4x4 homogeneous transform placing the local frame of a bone at its start.

    Local +Z runs along the bone, so a renderer can draw a constraint cone or
    hinge disc in local space and map it into the world with this matrix.
    """
    transform = np.eye(4)
    transform[:3, :3] = rotation_matrix_from_direction(direction)
    transform[:3, 3] = start
    return transform
