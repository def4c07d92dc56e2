"""
Configuration dataclasses for ability and RSC estimation.

This module defines the configuration parameters for:
- Parameter bounds explored by the optimizers
- Optimizer tolerances and iteration caps
- Worker-pool fan-out
"""

import logging
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as installed_version

import toml

from dyad_analysis.core.parallel import ParallelConfig
from dyad_analysis.core.paths import (
    DISTRIBUTION_NAME,
    ProjectRootNotFound,
    get_project_root_dir,
)

logger = logging.getLogger(__name__)

UNKNOWN_VERSION = "unknown"

# Default parameter bounds
DEFAULT_THETA_BOUNDS = (-4.0, 4.0)
DEFAULT_WEIGHT_LOGIT_BOUNDS = (-10.0, 10.0)

# Default optimizer settings
DEFAULT_MAX_ITERATIONS = 200
DEFAULT_TOLERANCE = 1e-10
DEFAULT_SCALAR_TOLERANCE = 1e-6
DEFAULT_MAX_SCALAR_ITERATIONS = 500
DEFAULT_HESSIAN_STEP = 1e-4

# Default prior standard deviation of the weight logit under MAP
DEFAULT_PRIOR_SIGMA = 1.0


def _get_package_version() -> str:
    """Installed distribution version, else this checkout's pyproject."""
    try:
        return installed_version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        pass

    try:
        root_dir = get_project_root_dir()
    except ProjectRootNotFound:
        logger.warning(f"No version found for {DISTRIBUTION_NAME}")
        return UNKNOWN_VERSION

    with open(root_dir / "pyproject.toml") as f:
        data = toml.load(f)

    version = data["project"].get("version")
    if not isinstance(version, str):
        logger.warning("Version not found in pyproject.toml")
        return UNKNOWN_VERSION
    return version


@dataclass(frozen=True)
class ParameterBounds:
    """
    Bounds for person parameters during optimization.

    Attributes:
        theta: (min, max) interval searched for latent abilities.
        weight_logit: (min, max) interval for the RSC weight logit u.
            w = logistic(u) is within 5e-5 of 0 or 1 at the default edges.
    """

    theta: tuple[float, float] = DEFAULT_THETA_BOUNDS
    weight_logit: tuple[float, float] = DEFAULT_WEIGHT_LOGIT_BOUNDS

    def __post_init__(self) -> None:
        for name, (lo, hi) in (
            ("theta", self.theta),
            ("weight_logit", self.weight_logit),
        ):
            if not lo < hi:
                raise ValueError(f"{name} bounds must satisfy lo < hi")


@dataclass(frozen=True)
class OptimizerConfig:
    """
    Optimizer settings.

    Attributes:
        max_iterations: Iteration cap for L-BFGS-B (RSC).
        tolerance: Relative function tolerance (ftol) for L-BFGS-B.
        scalar_tolerance: Absolute theta tolerance (xatol) for bounded
            scalar minimization.
        max_scalar_iterations: Iteration cap for bounded scalar
            minimization.
        hessian_step: Finite-difference step for numerical second
            derivatives, relative to max(1, |x|).
    """

    max_iterations: int = DEFAULT_MAX_ITERATIONS
    tolerance: float = DEFAULT_TOLERANCE
    scalar_tolerance: float = DEFAULT_SCALAR_TOLERANCE
    max_scalar_iterations: int = DEFAULT_MAX_SCALAR_ITERATIONS
    hessian_step: float = DEFAULT_HESSIAN_STEP


@dataclass(frozen=True)
class EstimationConfig:
    """
    Master configuration for ability and RSC estimation.

    Attributes:
        bounds: Parameter bounds for optimization.
        optimizer: Optimizer tolerances and caps.
        parallel: Worker-pool settings for per-row and per-pair fits.
        model_version: Version string for reproducibility tracking.
    """

    bounds: ParameterBounds = ParameterBounds()
    optimizer: OptimizerConfig = OptimizerConfig()
    parallel: ParallelConfig = ParallelConfig()
    model_version: str = field(default_factory=_get_package_version)


def default_config() -> EstimationConfig:
    """Create a default estimation configuration."""
    return EstimationConfig()
