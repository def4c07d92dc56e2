"""
Configuration for the EM mixture classifier.
"""

from dataclasses import dataclass

# Default EM settings
DEFAULT_MAX_ITERATIONS = 100
DEFAULT_TOLERANCE = 1e-3


@dataclass(frozen=True)
class EMConfig:
    """
    EM convergence settings.

    Attributes:
        max_iterations: Maximum number of E/M cycles.
        tolerance: Stop once the increase of the incomplete-data
            log-likelihood between cycles is at most this value.
    """

    max_iterations: int = DEFAULT_MAX_ITERATIONS
    tolerance: float = DEFAULT_TOLERANCE

    def __post_init__(self) -> None:
        if self.max_iterations < 1:
            raise ValueError(
                f"max_iterations must be >= 1, got {self.max_iterations}"
            )
        if self.tolerance < 0:
            raise ValueError(f"tolerance must be >= 0, got {self.tolerance}")
