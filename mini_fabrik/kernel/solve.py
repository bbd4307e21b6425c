# mini_fabrik/kernel/solve.py
"""Error types, constraint angle validation and the best-of-N iteration driver."""

import logging
import math
from typing import Callable, Tuple

from .settings import SolverSettings

logger = logging.getLogger(__name__)


class FabrikError(Exception):
    """Base class for every error raised by mini_fabrik."""
    pass


class ChainConfigurationError(FabrikError, RuntimeError):
    """Raised when a chain is asked to do something its current state does not allow."""
    pass


class ConstraintError(FabrikError, ValueError):
    """Raised when a joint or base-bone constraint is malformed or of the wrong kind."""
    pass


class ConstraintAngleError(ConstraintError):
    """Raised when a constraint angle lies outside [0, 180] degrees."""
    pass


def solve_best_of_iterations(
    single_pass: Callable[[], float],
    store_best: Callable[[], None],
    restore_best: Callable[[], None],
    settings: SolverSettings,
) -> Tuple[float, int]:
    """
    Run FABRIK passes until converged, stalled, or out of attempts.

    The layout left behind is the BEST one seen, not necessarily the last:
    a later pass can overshoot, so every improvement is snapshotted and the
    snapshot is written back at the end.

    Args:
        single_pass: Runs one backward+forward pass, returns end effector distance to target
        store_best: Snapshots the current bone layout as the best solution
        restore_best: Writes the snapshot back into the bones
        settings: Threshold, iteration cap and minimum change

    Returns:
        best_distance: Smallest end effector distance seen
        iterations: Number of passes actually run
    """
    best_distance = math.inf
    last_distance = math.inf
    have_best = False
    iterations = 0

    for iterations in range(1, settings.max_iterations + 1):
        distance = single_pass()

        if distance < best_distance:
            best_distance = distance
            store_best()
            have_best = True
            if distance <= settings.solve_distance_threshold:
                break
        elif abs(distance - last_distance) < settings.min_iteration_change:
            # Stalled
            break

        last_distance = distance

    if have_best:
        restore_best()

    logger.debug(
        "FABRIK finished after %d iteration(s), best distance %.6g", iterations, best_distance
    )
    return best_distance, iterations


MAX_CONSTRAINT_ANGLE_DEGS = 180.0


def validate_constraint_angle(value: float, label: str = "constraint angle") -> float:
    """
    Check that a constraint angle lies in [0, 180] degrees.

    180 means "effectively unconstrained". Out-of-range values are rejected,
    never clamped.

    Raises:
        ConstraintAngleError: If value is outside [0, 180] or not finite
    """
    if not math.isfinite(value) or not 0.0 <= value <= MAX_CONSTRAINT_ANGLE_DEGS:
        raise ConstraintAngleError(
            f"{label} must be in [0, {MAX_CONSTRAINT_ANGLE_DEGS:g}] degrees, got {value}"
        )
    return float(value)
