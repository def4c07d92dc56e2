"""
Person-parameter estimation.

Key components:
- EstimationConfig: bounds, optimizer and worker-pool settings
- ml_irf: per-row 2PL ability estimation (ML or WLE)
- estimate_rsc: per-pair joint (theta1, theta2, u) estimation (ML or MAP)
- AbilityEstimates / RSCEstimates: result tables
"""

from dyad_analysis.irt.estimation.abilities import fit_rows, ml_irf
from dyad_analysis.irt.estimation.config import (
    EstimationConfig,
    OptimizerConfig,
    ParameterBounds,
    default_config,
)
from dyad_analysis.irt.estimation.data_models import (
    AbilityEstimates,
    PairFit,
    RSCEstimates,
)
from dyad_analysis.irt.estimation.rsc import estimate_rsc, fit_pair

__all__ = [
    "AbilityEstimates",
    "EstimationConfig",
    "OptimizerConfig",
    "PairFit",
    "ParameterBounds",
    "RSCEstimates",
    "default_config",
    "estimate_rsc",
    "fit_pair",
    "fit_rows",
    "ml_irf",
]
