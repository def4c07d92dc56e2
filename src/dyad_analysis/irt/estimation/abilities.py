"""
Single-ability estimation under the 2PL.

Each response row is fitted independently by bounded scalar minimization
of the negative log-likelihood over the ability interval:

    theta_hat = argmax_theta  sum_j w_j log P(x_j | theta)

With ScoringMethod.WLE the objective is Warm's weighted likelihood,
logL(theta) + 0.5 * log I(theta), which pulls perfect and zero scores
inside the interval. The reported log-likelihood is always the plain one.

Standard errors come from the numerical second derivative of the
log-likelihood at the estimate:
    SE = 1 / sqrt(-d2 logL / dtheta2)
and are NaN when that curvature is not negative. A flat or monotone
likelihood drives the estimate onto an interval bound; such rows are
flagged with `at_bound` rather than corrected.
"""

import logging

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.optimize import minimize_scalar

from dyad_analysis.core.constants import MISSING_VALUE
from dyad_analysis.core.data_models import ResponseMatrix
from dyad_analysis.core.parallel import parallel_map
from dyad_analysis.irt.enums import ScoringMethod
from dyad_analysis.irt.estimation.config import (
    EstimationConfig,
    OptimizerConfig,
    ParameterBounds,
)
from dyad_analysis.irt.estimation.data_models import AbilityEstimates
from dyad_analysis.irt.estimation.gradients import (
    numerical_hessian,
    two_pl_information,
    two_pl_log_likelihood,
)
from dyad_analysis.irt.likelihood import broadcast_weights
from dyad_analysis.irt.parameters import ItemParameterSet

logger = logging.getLogger(__name__)

# Rows handed to one worker task
ROWS_PER_TASK = 256

# Estimates within this many xatol of a bound are flagged as at the bound
_BOUND_TOLERANCE_FACTOR = 10.0


def _fit_row(
    responses: NDArray[np.int8],
    weights: NDArray[np.float64],
    alpha: NDArray[np.float64],
    beta: NDArray[np.float64],
    bounds: ParameterBounds,
    optimizer: OptimizerConfig,
    method: ScoringMethod,
) -> tuple[float, float, float, bool, bool]:
    lo, hi = bounds.theta

    def neg_objective(theta: float) -> float:
        ll = two_pl_log_likelihood(theta, responses, alpha, beta, weights)
        if method == ScoringMethod.WLE:
            info = two_pl_information(theta, responses, alpha, beta, weights)
            ll += 0.5 * np.log(info) if info > 0 else -np.inf
        return float(-ll)

    result = minimize_scalar(
        neg_objective,
        bounds=(lo, hi),
        method="bounded",
        options={
            "xatol": optimizer.scalar_tolerance,
            "maxiter": optimizer.max_scalar_iterations,
        },
    )
    theta = float(result.x)
    ll = float(two_pl_log_likelihood(theta, responses, alpha, beta, weights))

    curvature = numerical_hessian(
        lambda x: two_pl_log_likelihood(
            x[0], responses, alpha, beta, weights
        ),
        np.array([theta]),
        step=optimizer.hessian_step,
    )[0, 0]
    if np.isfinite(curvature) and curvature < 0:
        se = float(1.0 / np.sqrt(-curvature))
    else:
        se = np.nan

    margin = _BOUND_TOLERANCE_FACTOR * optimizer.scalar_tolerance
    at_bound = theta - lo <= margin or hi - theta <= margin
    # A row with no observed, weighted cell has a flat likelihood
    has_data = bool(np.any((responses != MISSING_VALUE) & (weights != 0)))
    converged = has_data and bool(result.success) and bool(np.isfinite(ll))
    return ll, theta, se, at_bound, converged


def fit_rows(
    responses: NDArray[np.int8],
    weights: NDArray[np.float64],
    alpha: NDArray[np.float64],
    beta: NDArray[np.float64],
    bounds: ParameterBounds,
    optimizer: OptimizerConfig,
    method: ScoringMethod = ScoringMethod.ML,
) -> AbilityEstimates:
    """
    Fit every row of a raw response array in-process.

    This is the array-level worker behind `ml_irf`; the bootstrap calls it
    directly on simulated replicates.

    Args:
        responses: int8 array of shape (n_rows, n_items).
        weights: Weights of the same shape (zero skips a cell).
        alpha: Discriminations, shape (n_items,).
        beta: Difficulties, shape (n_items,).
        bounds: Ability interval.
        optimizer: Scalar optimizer settings.
        method: ML or WLE scoring.

    Returns:
        AbilityEstimates for the rows, in order.
    """
    responses = np.ascontiguousarray(responses, dtype=np.int8)
    weights = np.ascontiguousarray(weights, dtype=np.float64)
    alpha = np.ascontiguousarray(alpha, dtype=np.float64)
    beta = np.ascontiguousarray(beta, dtype=np.float64)

    rows = [
        _fit_row(
            responses[i], weights[i], alpha, beta, bounds, optimizer, method
        )
        for i in range(responses.shape[0])
    ]
    if not rows:
        empty = np.empty(0, dtype=np.float64)
        flags = np.empty(0, dtype=bool)
        return AbilityEstimates(empty, empty, empty, flags, flags)

    ll, theta, se, at_bound, converged = zip(*rows)
    return AbilityEstimates(
        log_likelihood=np.array(ll, dtype=np.float64),
        theta=np.array(theta, dtype=np.float64),
        se=np.array(se, dtype=np.float64),
        at_bound=np.array(at_bound, dtype=bool),
        converged=np.array(converged, dtype=bool),
    )


def ml_irf(
    data: ResponseMatrix,
    parms: ItemParameterSet,
    config: EstimationConfig | None = None,
    method: ScoringMethod = ScoringMethod.ML,
    weights: ArrayLike | None = None,
) -> AbilityEstimates:
    """
    Estimate one 2PL ability per response row.

    Args:
        data: Binary responses aligned with `parms`.
        parms: Item parameters.
        config: Estimation configuration. Uses defaults if None.
        method: ML (default) or WLE scoring.
        weights: Optional per-response weights broadcastable to the
            response matrix shape.

    Returns:
        AbilityEstimates with log-likelihood, theta, se and flags per row.

    Raises:
        ValueError: If the data and item parameters are misaligned.
    """
    if config is None:
        config = EstimationConfig()
    method = ScoringMethod(method)

    if data.n_items != parms.n_items:
        raise ValueError(
            f"Response matrix has {data.n_items} items but item parameters "
            f"have {parms.n_items}"
        )

    w = broadcast_weights(weights, data.responses.shape)
    logger.info(
        f"Estimating {method.value} abilities for {data.n_rows} rows "
        f"on {data.n_items} items"
    )

    chunks = [
        idx
        for idx in np.array_split(
            np.arange(data.n_rows),
            max(1, -(-data.n_rows // ROWS_PER_TASK)),
        )
        if len(idx) > 0
    ]
    tasks = [
        (
            data.responses[idx],
            w[idx],
            parms.alphas,
            parms.betas,
            config.bounds,
            config.optimizer,
            method,
        )
        for idx in chunks
    ]
    parts = parallel_map(fit_rows, tasks, config.parallel)

    if not parts:
        return fit_rows(
            data.responses,
            w,
            parms.alphas,
            parms.betas,
            config.bounds,
            config.optimizer,
            method,
        )

    estimates = AbilityEstimates(
        log_likelihood=np.concatenate([p.log_likelihood for p in parts]),
        theta=np.concatenate([p.theta for p in parts]),
        se=np.concatenate([p.se for p in parts]),
        at_bound=np.concatenate([p.at_bound for p in parts]),
        converged=np.concatenate([p.converged for p in parts]),
    )

    n_bound = int(estimates.at_bound.sum())
    if n_bound:
        logger.warning(
            f"{n_bound} of {data.n_rows} ability estimates hit the bounds "
            f"{config.bounds.theta}"
        )
    n_failed = int((~estimates.converged).sum())
    if n_failed:
        logger.warning(f"{n_failed} ability fits did not converge")
    return estimates
