# mini_fabrik/kernel/settings.py
"""
Solver tuning parameters and their defaults.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SolverSettings:
    """
    Convergence settings for one chain's FABRIK solve.

    There is no single "correct" epsilon or iteration cap for FABRIK, so
    every chain carries its own copy of these values.

    Parameters:
    -----------
    solve_distance_threshold : float
        Stop as soon as the end effector is at most this far from the target
    max_iterations : int
        Hard cap on backward+forward passes per solve (>= 1)
    min_iteration_change : float
        Stop when a pass fails to improve AND moved the solve distance by
        less than this amount compared to the previous pass
    """
    solve_distance_threshold: float = 1.0
    max_iterations: int = 15
    min_iteration_change: float = 0.01

    def __post_init__(self):
        if self.solve_distance_threshold < 0:
            raise ValueError(
                f"solve_distance_threshold must be >= 0, got {self.solve_distance_threshold}"
            )
        if int(self.max_iterations) != self.max_iterations or self.max_iterations < 1:
            raise ValueError(f"max_iterations must be an integer >= 1, got {self.max_iterations}")
        if self.min_iteration_change < 0:
            raise ValueError(
                f"min_iteration_change must be >= 0, got {self.min_iteration_change}"
            )


DEFAULT_SETTINGS_2D = SolverSettings(
    solve_distance_threshold=1.0,
    max_iterations=15,
    min_iteration_change=0.01,
)

DEFAULT_SETTINGS_3D = SolverSettings(
    solve_distance_threshold=1.0,
    max_iterations=20,
    min_iteration_change=0.01,
)
