"""
Configuration for bootstrap-calibrated likelihood-ratio tests.
"""

from dataclasses import dataclass
from enum import Enum

# Default bootstrap settings
DEFAULT_N_BOOT = 0
DEFAULT_CONFIDENCE_LEVEL = 0.95


class PValueMethod(str, Enum):
    """How the tail probability is read off the bootstrap ECDF."""

    NEAREST = "nearest"
    INTERPOLATE = "interpolate"


@dataclass(frozen=True)
class BootstrapConfig:
    """
    Parametric bootstrap settings.

    Attributes:
        n_boot: Replicates per pair and model. 0 skips the bootstrap.
        confidence_level: Coverage of the equal-tailed interval.
        p_value_method: ECDF lookup rule for the tail probability.
        seed: Root seed. Each (model, pair) task gets its own child
            stream, so results do not depend on the worker count.
    """

    n_boot: int = DEFAULT_N_BOOT
    confidence_level: float = DEFAULT_CONFIDENCE_LEVEL
    p_value_method: PValueMethod = PValueMethod.NEAREST
    seed: int | None = None

    def __post_init__(self) -> None:
        if self.n_boot < 0:
            raise ValueError(f"n_boot must be >= 0, got {self.n_boot}")
        if not 0 < self.confidence_level < 1:
            raise ValueError(
                f"confidence_level must be in (0, 1), "
                f"got {self.confidence_level}"
            )
