# mini_fabrik/constraints.py
r"""
2D CONSTRAINT MATH: Signed Angles and Arc Clamping
==================================================

In 2D every joint is a hinge about +z. A joint allows the bone to swing
`anticlockwise_degs` one way and `clockwise_degs` the other way from a
baseline direction:

                  baseline
                     ^
          acw limit  |  cw limit
                 \   |   /
                  \  |  /
                   \ | /
                    \|/
                     o

Anything outside that arc is snapped to the nearer limit. The clamped
direction is produced by rotating the BASELINE by the limit angle, so
the result is exact even when the proposed direction is far away.
"""

import numpy as np

from .kernel.geometry import angle_between_degs


def zcross(u: np.ndarray, v: np.ndarray) -> int:
    """Sign of the z component of u x v: +1 when v is anticlockwise of u, -1 clockwise, 0 parallel."""
    p = u[0] * v[1] - v[0] * u[1]
    if p > 0.0:
        return 1
    if p < 0.0:
        return -1
    return 0


def signed_angle_degs(from_uv: np.ndarray, to_uv: np.ndarray) -> float:
    """
    Signed angle from one direction to another, in [-180, 180].

    Anticlockwise is positive. Parallel and anti-parallel vectors have no
    preferred side and come out as 0 and -180.
    """
    unsigned = angle_between_degs(from_uv, to_uv)
    return unsigned if zcross(from_uv, to_uv) == 1 else -unsigned


def rotate_degs(v: np.ndarray, angle_degs: float) -> np.ndarray:
    """Rotate a 2D vector anticlockwise by angle_degs."""
    theta = np.radians(angle_degs)
    c, s = np.cos(theta), np.sin(theta)
    return np.array([c * v[0] - s * v[1], s * v[0] + c * v[1]])


def constrained_uv(
    direction_uv: np.ndarray,
    baseline_uv: np.ndarray,
    clockwise_degs: float,
    anticlockwise_degs: float,
) -> np.ndarray:
    """
    Clamp a direction to the arc [-clockwise, +anticlockwise] around a baseline.

    Returns direction_uv unchanged when it is already inside the arc.
    """
    angle = signed_angle_degs(baseline_uv, direction_uv)
    if angle > anticlockwise_degs:
        return rotate_degs(baseline_uv, anticlockwise_degs)
    if angle < -clockwise_degs:
        return rotate_degs(baseline_uv, -clockwise_degs)
    return direction_uv
