"""
Joint estimation of the RSC collaboration model.

For each pair k the estimator maximizes, over (theta1, theta2, u),

    l_k = l_ind(theta1 | member 1) + l_ind(theta2 | member 2)
          + l_group(theta1, theta2, u | pair)
          [- u^2 / (2 sigma^2)  under MAP]

using L-BFGS-B with analytical gradients on the box given by the ability
and weight-logit bounds. Pairs are independent and dispatched through
`parallel_map`.

Standard errors are the square roots of the diagonal of the inverse of the
negative (observed or expected) Hessian at the optimum. The Hessian
includes the prior term under MAP. A singular or indefinite Hessian gives
NaN standard errors rather than an error.
"""

import logging

import numpy as np
from numpy.typing import NDArray
from scipy.optimize import minimize

from dyad_analysis.core.constants import MISSING_VALUE
from dyad_analysis.core.data_models import PairResponseMatrix
from dyad_analysis.core.parallel import parallel_map
from dyad_analysis.irt.enums import (
    ConvergenceStatus,
    EstimationMethod,
    InformationType,
)
from dyad_analysis.irt.estimation.config import (
    DEFAULT_PRIOR_SIGMA,
    EstimationConfig,
    OptimizerConfig,
    ParameterBounds,
)
from dyad_analysis.irt.estimation.data_models import PairFit, RSCEstimates
from dyad_analysis.irt.estimation.gradients import (
    rsc_gradient,
    rsc_hessian,
    rsc_log_likelihood,
)
from dyad_analysis.irt.parameters import ItemParameterSet

logger = logging.getLogger(__name__)

DEFAULT_GROUP_TAG = "COL"

# L-BFGS-B status code for hitting the iteration/evaluation cap
_LBFGSB_MAX_ITERATIONS = 1


def _starting_theta(
    responses: NDArray[np.int8], bounds: tuple[float, float]
) -> float:
    """Smoothed log-odds of the proportion correct, clipped to the bounds."""
    observed = responses != MISSING_VALUE
    n = int(observed.sum())
    n_correct = int((responses[observed] == 1).sum())
    start = np.log((n_correct + 0.5) / (n - n_correct + 0.5))
    return float(np.clip(start, bounds[0], bounds[1]))


def standard_errors(neg_hessian: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Square roots of the diagonal of the inverse of a negative Hessian.

    A parameter whose row and column are entirely zero carries no
    information (u when the group form is fully missing under ML). It gets
    a NaN standard error and the remaining block is inverted on its own.
    Returns NaN for every parameter when that block is singular or not
    finite, and NaN for individual entries with a non-positive variance.
    """
    n = neg_hessian.shape[0]
    se: NDArray[np.float64] = np.full(n, np.nan)
    if not np.all(np.isfinite(neg_hessian)):
        return se
    identified = np.any(neg_hessian != 0, axis=0) | np.any(
        neg_hessian != 0, axis=1
    )
    if not identified.any():
        return se
    block = neg_hessian[np.ix_(identified, identified)]
    try:
        covariance = np.linalg.inv(block)
    except np.linalg.LinAlgError:
        return se
    variances = np.diag(covariance)
    with np.errstate(invalid="ignore"):
        se[identified] = np.where(variances > 0, np.sqrt(variances), np.nan)
    return se


def _projected_gradient_norm(
    x: NDArray[np.float64],
    grad: NDArray[np.float64],
    lower: NDArray[np.float64],
    upper: NDArray[np.float64],
) -> float:
    """Gradient norm of a minimization objective, ignoring active bounds."""
    g = grad.copy()
    g[(x <= lower) & (g > 0)] = 0.0
    g[(x >= upper) & (g < 0)] = 0.0
    return float(np.linalg.norm(g))


def fit_pair(
    ind_responses1: NDArray[np.int8],
    ind_responses2: NDArray[np.int8],
    group_responses: NDArray[np.int8],
    ind_alpha: NDArray[np.float64],
    ind_beta: NDArray[np.float64],
    group_alpha: NDArray[np.float64],
    group_beta: NDArray[np.float64],
    prior_precision: float,
    information: InformationType,
    bounds: ParameterBounds,
    optimizer: OptimizerConfig,
) -> PairFit:
    """
    Fit (theta1, theta2, u) for one pair.

    Args:
        ind_responses1: Member 1 individual-form responses.
        ind_responses2: Member 2 individual-form responses.
        group_responses: The pair's group-form responses.
        ind_alpha: Individual-form discriminations.
        ind_beta: Individual-form difficulties.
        group_alpha: Group-form discriminations.
        group_beta: Group-form difficulties.
        prior_precision: 1 / sigma^2 for the normal prior on u (0 for ML).
        information: Observed or expected Hessian for standard errors.
        bounds: Box constraints.
        optimizer: L-BFGS-B settings.

    Returns:
        PairFit for the pair.
    """
    args = (
        ind_responses1,
        ind_responses2,
        ind_alpha,
        ind_beta,
        group_responses,
        group_alpha,
        group_beta,
    )
    prior_grad = np.array([0.0, 0.0, prior_precision])

    def objective(
        x: NDArray[np.float64],
    ) -> tuple[float, NDArray[np.float64]]:
        ll = rsc_log_likelihood(x, *args) - 0.5 * prior_precision * x[2] ** 2
        grad = rsc_gradient(x, *args) - prior_grad * x[2]
        if not np.isfinite(ll):
            return np.inf, np.zeros(3)
        return float(-ll), -grad

    x0 = np.array(
        [
            _starting_theta(
                ind_responses1 if ind_responses1.size else group_responses,
                bounds.theta,
            ),
            _starting_theta(
                ind_responses2 if ind_responses2.size else group_responses,
                bounds.theta,
            ),
            0.0,
        ]
    )
    box = [bounds.theta, bounds.theta, bounds.weight_logit]
    result = minimize(
        objective,
        x0,
        jac=True,
        method="L-BFGS-B",
        bounds=box,
        options={
            "maxiter": optimizer.max_iterations,
            "ftol": optimizer.tolerance,
        },
    )

    estimate = np.asarray(result.x, dtype=np.float64)
    log_likelihood = float(rsc_log_likelihood(estimate, *args))

    hessian = rsc_hessian(
        estimate, *args, information == InformationType.EXPECTED
    )
    hessian[2, 2] -= prior_precision
    se = standard_errors(-hessian)

    lower = np.array([b[0] for b in box])
    upper = np.array([b[1] for b in box])
    _, grad = objective(estimate)
    gradient_norm = _projected_gradient_norm(estimate, grad, lower, upper)

    if result.success and np.isfinite(log_likelihood):
        status = ConvergenceStatus.CONVERGED
    elif result.status == _LBFGSB_MAX_ITERATIONS:
        status = ConvergenceStatus.MAX_ITERATIONS
    else:
        status = ConvergenceStatus.FAILED

    return PairFit(
        estimate=estimate,
        se=se,
        log_likelihood=log_likelihood,
        n_iterations=int(result.nit),
        gradient_norm=gradient_norm,
        status=status,
    )


def estimate_rsc(
    data: PairResponseMatrix,
    parms: ItemParameterSet,
    group_mask: NDArray[np.bool_] | None = None,
    group_tag: str = DEFAULT_GROUP_TAG,
    method: EstimationMethod = EstimationMethod.ML,
    sigma: float = DEFAULT_PRIOR_SIGMA,
    information: InformationType = InformationType.OBSERVED,
    config: EstimationConfig | None = None,
) -> RSCEstimates:
    """
    Estimate (theta1, theta2, u) for every pair of a combined assessment.

    Args:
        data: Pair responses, two consecutive rows per pair, with both
            individual-form and group-form columns.
        parms: Item parameters for all columns, in column order.
        group_mask: Boolean mask selecting the group-form columns. If None,
            columns whose item name contains `group_tag` are used.
        group_tag: Item-name substring that marks group-form items.
        method: ML, or MAP with a N(0, sigma^2) prior on u.
        sigma: Prior standard deviation of u under MAP.
        information: Observed or expected Hessian for standard errors.
        config: Estimation configuration. Uses defaults if None.

    Returns:
        RSCEstimates with one PairFit per pair.

    Raises:
        ValueError: On misaligned inputs, an empty group form or a
            non-positive sigma.
    """
    if config is None:
        config = EstimationConfig()
    method = EstimationMethod(method)
    information = InformationType(information)

    if data.n_items != parms.n_items:
        raise ValueError(
            f"Response matrix has {data.n_items} items but item parameters "
            f"have {parms.n_items}"
        )
    if not sigma > 0:
        raise ValueError(f"sigma must be positive, got {sigma}")

    if group_mask is None:
        group_mask = parms.form_mask(group_tag)
    group_mask = np.asarray(group_mask, dtype=bool)
    if group_mask.shape != (parms.n_items,):
        raise ValueError(
            f"group_mask must have shape ({parms.n_items},), "
            f"got {group_mask.shape}"
        )
    if not group_mask.any():
        raise ValueError("No group-form items selected")
    ind_mask = ~group_mask

    prior_precision = 1.0 / sigma**2 if method == EstimationMethod.MAP else 0.0

    ind_alpha = np.ascontiguousarray(parms.alphas[ind_mask])
    ind_beta = np.ascontiguousarray(parms.betas[ind_mask])
    group_alpha = np.ascontiguousarray(parms.alphas[group_mask])
    group_beta = np.ascontiguousarray(parms.betas[group_mask])

    ind1 = data.member1[:, ind_mask]
    ind2 = data.member2[:, ind_mask]
    group = data.pair_rows(group_mask)

    logger.info(
        f"Fitting RSC ({method.value}) for {data.n_pairs} pairs: "
        f"{int(ind_mask.sum())} individual and {int(group_mask.sum())} "
        f"group items"
    )

    tasks = [
        (
            np.ascontiguousarray(ind1[k]),
            np.ascontiguousarray(ind2[k]),
            np.ascontiguousarray(group[k]),
            ind_alpha,
            ind_beta,
            group_alpha,
            group_beta,
            prior_precision,
            information,
            config.bounds,
            config.optimizer,
        )
        for k in range(data.n_pairs)
    ]
    fits = parallel_map(fit_pair, tasks, config.parallel)

    for k, fit in enumerate(fits):
        if fit.status != ConvergenceStatus.CONVERGED:
            logger.warning(
                f"Pair {k}: optimizer {fit.status.value} after "
                f"{fit.n_iterations} iterations"
            )
    lo, hi = config.bounds.theta
    n_bound = sum(
        1
        for fit in fits
        if np.any(np.isclose(fit.estimate[:2], lo))
        or np.any(np.isclose(fit.estimate[:2], hi))
    )
    if n_bound:
        logger.warning(
            f"{n_bound} of {data.n_pairs} pairs have an ability at the "
            f"bounds {config.bounds.theta}"
        )

    return RSCEstimates(fits=tuple(fits), model_version=config.model_version)
