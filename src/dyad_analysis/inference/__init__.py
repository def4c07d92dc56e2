"""
Likelihood-ratio testing with parametric bootstrap calibration.
"""

from dyad_analysis.inference.bootstrap import (
    BootstrapSummary,
    bootstrap_interval,
    empirical_tail_probability,
    summarize_bootstrap,
)
from dyad_analysis.inference.config import BootstrapConfig, PValueMethod
from dyad_analysis.inference.likelihood_ratio import lr_test

__all__ = [
    "BootstrapConfig",
    "BootstrapSummary",
    "PValueMethod",
    "bootstrap_interval",
    "empirical_tail_probability",
    "lr_test",
    "summarize_bootstrap",
]
