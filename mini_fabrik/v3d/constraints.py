# mini_fabrik/v3d/constraints.py
"""Clamp a proposed 3D bone direction to what its joint allows."""

import logging
import numpy as np

from ..kernel.geometry import normalised
from .elements import (
    DEGENERATE_PROJECTION_LENGTH,
    angle_limited_uv,
    project_onto_plane,
    rotate_about_axis_degs,
    rotation_matrix_from_direction,
    signed_angle_between_degs,
)
from .model import BallJoint, GlobalHingeJoint, HingeJoint, LocalHingeJoint, UnconstrainedJoint

logger = logging.getLogger(__name__)


def hinge_axes(joint: HingeJoint, reference_direction: np.ndarray):
    """
    World-space (rotation_axis, reference_axis) of a hinge.

    Local hinge axes are mapped through the frame of reference_direction.
    """
    if isinstance(joint, LocalHingeJoint):
        frame = rotation_matrix_from_direction(reference_direction)
        return normalised(frame @ joint.rotation_axis), normalised(frame @ joint.reference_axis)
    return joint.rotation_axis, joint.reference_axis


def project_onto_hinge_plane(
    direction: np.ndarray, rotation_axis: np.ndarray, fallback: np.ndarray
) -> np.ndarray:
    """
    Unit projection of direction onto the plane perpendicular to rotation_axis.

    A direction (nearly) parallel to the axis has no usable projection, so
    `fallback` is returned instead.
    """
    projected = project_onto_plane(direction, rotation_axis)
    if np.linalg.norm(projected) < DEGENERATE_PROJECTION_LENGTH:
        logger.debug("Degenerate hinge projection, falling back to %s", fallback)
        return np.array(fallback, dtype=float)
    return normalised(projected)


def clamp_to_hinge(
    direction: np.ndarray,
    rotation_axis: np.ndarray,
    reference_axis: np.ndarray,
    clockwise_degs: float,
    anticlockwise_degs: float,
) -> np.ndarray:
    """Project onto the hinge plane, then clamp to [-clockwise, +anticlockwise] from the reference axis."""
    uv = project_onto_hinge_plane(direction, rotation_axis, reference_axis)
    if clockwise_degs >= 180.0 and anticlockwise_degs >= 180.0:
        return uv

    angle = signed_angle_between_degs(reference_axis, uv, rotation_axis)
    if angle > anticlockwise_degs:
        return normalised(rotate_about_axis_degs(reference_axis, anticlockwise_degs, rotation_axis))
    if angle < -clockwise_degs:
        return normalised(rotate_about_axis_degs(reference_axis, -clockwise_degs, rotation_axis))
    return uv


def constrain_direction(joint, direction: np.ndarray, reference_direction: np.ndarray) -> np.ndarray:
    """
    Apply a joint to a bone direction during the base-to-target pass.

    Args:
        joint: One of UnconstrainedJoint, BallJoint, GlobalHingeJoint, LocalHingeJoint
        direction: Proposed unit direction of the bone
        reference_direction: Resolved direction of the bone before it

    Returns:
        Unit direction satisfying the joint
    """
    if isinstance(joint, UnconstrainedJoint):
        return direction
    if isinstance(joint, BallJoint):
        return angle_limited_uv(direction, reference_direction, joint.max_angle_degs)
    if isinstance(joint, (GlobalHingeJoint, LocalHingeJoint)):
        rotation_axis, reference_axis = hinge_axes(joint, reference_direction)
        return clamp_to_hinge(direction, rotation_axis, reference_axis,
                              joint.clockwise_degs, joint.anticlockwise_degs)
    raise TypeError(f"Unknown joint variant {type(joint).__name__}")
