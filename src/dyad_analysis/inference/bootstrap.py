"""
Summaries of a per-pair bootstrap distribution.

A distribution is a 1D array of replicate statistics with failed
replicates already removed. It is reduced to an equal-tailed percentile
interval and the tail probability P(LR_boot > LR_observed) read off the
empirical CDF.
"""

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from dyad_analysis.inference.config import BootstrapConfig, PValueMethod


@dataclass(frozen=True)
class BootstrapSummary:
    """
    Attributes:
        ci_lower: Lower percentile of the distribution.
        ci_upper: Upper percentile of the distribution.
        p_obs: Empirical tail probability of the observed statistic.
        n_valid: Number of replicates the summary is based on.
    """

    ci_lower: float
    ci_upper: float
    p_obs: float
    n_valid: int


def bootstrap_interval(
    samples: NDArray[np.float64], confidence_level: float = 0.95
) -> tuple[float, float]:
    """
    Equal-tailed percentile interval, e.g. (2.5%, 97.5%) at 0.95.

    Uses linearly interpolated sample quantiles. Returns (NaN, NaN) for an
    empty sample.
    """
    if samples.size == 0:
        return np.nan, np.nan
    tail = (1.0 - confidence_level) / 2.0
    lower, upper = np.quantile(samples, [tail, 1.0 - tail])
    return float(lower), float(upper)


def empirical_tail_probability(
    samples: NDArray[np.float64],
    observed: float,
    method: PValueMethod = PValueMethod.NEAREST,
) -> float:
    """
    P(X > observed) under the empirical distribution of `samples`.

    NEAREST evaluates the ECDF at the distinct sample value closest to
    `observed` (first one on ties). INTERPOLATE interpolates the ECDF
    linearly between distinct sample values, clamped to [0, 1] outside
    the sample range.

    Returns:
        Tail probability, or NaN if the sample is empty or `observed` is
        not finite.
    """
    if samples.size == 0 or not np.isfinite(observed):
        return np.nan

    ordered = np.sort(samples)
    support = np.unique(ordered)
    cdf = np.searchsorted(ordered, support, side="right") / ordered.size

    if PValueMethod(method) == PValueMethod.NEAREST:
        idx = int(np.argmin(np.abs(support - observed)))
        return float(1.0 - cdf[idx])
    return float(1.0 - np.interp(observed, support, cdf, left=0.0, right=1.0))


def summarize_bootstrap(
    samples: NDArray[np.float64],
    observed: float,
    config: BootstrapConfig,
) -> BootstrapSummary:
    """Interval and tail probability of one pair's distribution."""
    ci_lower, ci_upper = bootstrap_interval(samples, config.confidence_level)
    return BootstrapSummary(
        ci_lower=ci_lower,
        ci_upper=ci_upper,
        p_obs=empirical_tail_probability(
            samples, observed, config.p_value_method
        ),
        n_valid=int(samples.size),
    )
