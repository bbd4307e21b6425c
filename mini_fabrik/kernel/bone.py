# mini_fabrik/kernel/bone.py
"""
BONE: Fixed-Length Rigid Segment
================================

PURPOSE:
--------
A bone is the line segment between two joints. The solver is allowed to
MOVE a bone (change its start and end locations) but never to STRETCH it:

    length = |end - start|      fixed when the bone is created

The dimension-specific subclasses (Bone2D in mini_fabrik.model and
Bone3D in mini_fabrik.v3d.model) only add the joint type that is valid
for their dimension.

USAGE:
------
    bone = Bone2D([0, 0], [0, 10])
    bone = Bone2D.from_direction([0, 0], direction_uv=[0, 1], length=10)
"""

import copy
import numpy as np
from typing import Optional, Tuple

from .geometry import (
    ZERO_LENGTH_EPSILON,
    VectorLike,
    as_vector,
    direction_uv,
    distance_between,
    validate_direction_uv,
    validate_length,
)

Colour = Tuple[float, float, float, float]

WHITE: Colour = (1.0, 1.0, 1.0, 1.0)

MIN_LINE_WIDTH = 1.0
MAX_LINE_WIDTH = 64.0


class BoneBase:
    """
    Common state and behaviour of 2D and 3D bones.

    Attributes:
    -----------
    dim : int
        Number of vector components (set by subclasses)
    colour : tuple
        RGBA in [0, 1], presentation only
    line_width : float
        Presentation only, in [1, 64]
    name : str or None
        Optional label
    """

    dim: int = None

    def __init__(
        self,
        start: VectorLike,
        end: VectorLike,
        joint=None,
        colour: Optional[Colour] = None,
        line_width: float = MIN_LINE_WIDTH,
        name: Optional[str] = None,
    ):
        self._start = as_vector(start, self.dim)
        self._end = as_vector(end, self.dim)
        self._length = validate_length(distance_between(self._start, self._end))
        self._joint = self._default_joint() if joint is None else self._validate_joint(joint)
        self.colour = WHITE if colour is None else tuple(colour)
        self.line_width = line_width
        self.name = name

    @classmethod
    def from_direction(
        cls,
        start: VectorLike,
        direction: VectorLike,
        length: float,
        joint=None,
        colour: Optional[Colour] = None,
        line_width: float = MIN_LINE_WIDTH,
        name: Optional[str] = None,
    ):
        """Create a bone that starts at `start` and extends `length` along `direction`."""
        start = as_vector(start, cls.dim)
        uv = validate_direction_uv(direction, cls.dim)
        length = validate_length(length)
        return cls(start, start + uv * length, joint=joint, colour=colour,
                   line_width=line_width, name=name)

    # Hooks for subclasses
    def _default_joint(self):
        raise NotImplementedError

    def _validate_joint(self, joint):
        raise NotImplementedError

    @property
    def line_width(self) -> float:
        return self._line_width

    @line_width.setter
    def line_width(self, value: float):
        if not MIN_LINE_WIDTH <= value <= MAX_LINE_WIDTH:
            raise ValueError(
                f"line_width must be in [{MIN_LINE_WIDTH}, {MAX_LINE_WIDTH}], got {value}"
            )
        self._line_width = float(value)

    @property
    def start_location(self) -> np.ndarray:
        return self._start.copy()

    @property
    def end_location(self) -> np.ndarray:
        return self._end.copy()

    def set_start_location(self, location: VectorLike) -> None:
        self._start = as_vector(location, self.dim)

    def set_end_location(self, location: VectorLike) -> None:
        self._end = as_vector(location, self.dim)

    @property
    def length(self) -> float:
        """Length fixed at construction."""
        return self._length

    @property
    def live_length(self) -> float:
        """Current |end - start|. Equal to `length` except mid-pass."""
        return distance_between(self._start, self._end)

    @property
    def direction_uv(self) -> np.ndarray:
        return direction_uv(self._start, self._end)

    def direction_uv_or(self, fallback: np.ndarray) -> np.ndarray:
        """Direction of the bone, or `fallback` if start and end currently coincide."""
        delta = self._end - self._start
        mag = np.linalg.norm(delta)
        if mag < ZERO_LENGTH_EPSILON:
            return np.array(fallback, dtype=float)
        return delta / mag

    @property
    def joint(self):
        return self._joint

    def set_joint(self, joint) -> None:
        self._joint = self._validate_joint(joint)

    @property
    def joint_type(self):
        return self._joint.joint_type

    def copy(self):
        return copy.deepcopy(self)

    def __str__(self) -> str:
        label = f" '{self.name}'" if self.name else ""
        return (
            f"{type(self).__name__}{label}: start={np.round(self._start, 3)}, "
            f"end={np.round(self._end, 3)}, length={self._length:.3f}, joint={self._joint}"
        )
