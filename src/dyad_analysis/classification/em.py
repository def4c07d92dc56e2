"""
EM classification of pairs into collaboration models.

The data are modeled as a finite mixture over K collaboration models with
abilities and item parameters held fixed:

    f(x_i) = sum_k pi_k * L_k(x_i | theta1_i, theta2_i)

Only the mixing proportions pi are estimated.

E-step:
    r_ik = pi_k L_ik / sum_h pi_h L_ih
M-step:
    pi_k = mean_i r_ik

The incomplete-data log-likelihood sum_i log sum_k pi_k L_ik is recorded
after every cycle and is non-decreasing. All computations run on log
likelihoods with log-sum-exp, so long forms do not underflow.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike, NDArray
from scipy.special import logsumexp

from dyad_analysis.classification.config import EMConfig
from dyad_analysis.core.data_models import ResponseMatrix
from dyad_analysis.irt.enums import (
    COLLABORATION_MODELS,
    ConvergenceStatus,
    ModelLabel,
)
from dyad_analysis.irt.likelihood import log_likelihood
from dyad_analysis.irt.parameters import ItemParameterSet

logger = logging.getLogger(__name__)


def _log_joint(
    log_l: NDArray[np.float64], prior: NDArray[np.float64]
) -> NDArray[np.float64]:
    """log(pi_k) + log L_ik, shape (n_pairs, n_models)."""
    with np.errstate(divide="ignore"):
        log_prior = np.log(prior)
    result: NDArray[np.float64] = log_l.T + log_prior[np.newaxis, :]
    return result


def posterior(
    log_l: NDArray[np.float64], prior: NDArray[np.float64]
) -> NDArray[np.float64]:
    """
    E-step: class responsibilities.

    Args:
        log_l: Log-likelihoods, shape (n_models, n_pairs).
        prior: Mixing proportions, shape (n_models,).

    Returns:
        Posterior membership probabilities, shape (n_pairs, n_models),
        rows summing to one.
    """
    joint = _log_joint(log_l, prior)
    norm = logsumexp(joint, axis=1, keepdims=True)
    result: NDArray[np.float64] = np.exp(joint - norm)
    return result


def update_prior(post: NDArray[np.float64]) -> NDArray[np.float64]:
    """M-step: average responsibility per model."""
    result: NDArray[np.float64] = post.mean(axis=0)
    return result


def incomplete_data_log_likelihood(
    log_l: NDArray[np.float64], prior: NDArray[np.float64]
) -> float:
    """sum_i log sum_k pi_k L_ik."""
    return float(np.sum(logsumexp(_log_joint(log_l, prior), axis=1)))


@dataclass(frozen=True)
class EMResult:
    """
    Result of an EM fit.

    Attributes:
        models: Mixture components, in column order.
        prior: Final mixing proportions indexed by model label.
        posterior: Membership probabilities, shape (n_pairs, n_models),
            computed under the final prior.
        trace: Incomplete-data log-likelihood, one entry for the initial
            prior plus one per cycle.
        n_iterations: Number of E/M cycles run.
        status: CONVERGED if the tolerance was met, FAILED on a non-finite
            log-likelihood, else MAX_ITERATIONS.
    """

    models: tuple[ModelLabel, ...]
    prior: pd.Series
    posterior: NDArray[np.float64]
    trace: tuple[float, ...]
    n_iterations: int
    status: ConvergenceStatus

    @property
    def n_pairs(self) -> int:
        return self.posterior.shape[0]

    @property
    def converged(self) -> bool:
        return self.status == ConvergenceStatus.CONVERGED

    def posterior_frame(self) -> pd.DataFrame:
        """Posterior table with one column per model label."""
        return pd.DataFrame(
            self.posterior, columns=[m.value for m in self.models]
        )

    def assignments(self) -> pd.Series:
        """Arg-max model label per pair."""
        labels = np.array([m.value for m in self.models])
        return pd.Series(labels[np.argmax(self.posterior, axis=1)])


class EMClassifier:
    """
    Mixture-proportion estimator over collaboration models.

    Abilities and item parameters are treated as known; each pair's
    likelihood under every model is computed once and reused by every
    E/M cycle.
    """

    def __init__(
        self,
        models: Sequence[ModelLabel | str] = COLLABORATION_MODELS,
        config: EMConfig | None = None,
    ):
        self.models = tuple(ModelLabel.parse(m) for m in models)
        if not self.models:
            raise ValueError("At least one model is required")
        self.config = config or EMConfig()

    def fit(
        self,
        data: ResponseMatrix,
        parms: ItemParameterSet,
        theta1: ArrayLike,
        theta2: ArrayLike,
        weights: ArrayLike | None = None,
        initial_prior: ArrayLike | None = None,
    ) -> EMResult:
        """
        Run EM from a uniform (or given) prior.

        Args:
            data: Group-form responses, one row per pair.
            parms: Item parameters aligned with `data`.
            theta1: Member 1 abilities, shape (n_pairs,).
            theta2: Member 2 abilities, shape (n_pairs,).
            weights: Optional per-response weights (e.g. screening
                weights).
            initial_prior: Starting mixing proportions. Defaults to
                uniform.

        Returns:
            EMResult with prior, posterior and trace.
        """
        log_l = log_likelihood(
            self.models, data, parms, theta1, theta2, weights=weights
        )
        return self.fit_log_likelihoods(log_l, initial_prior)

    def fit_log_likelihoods(
        self,
        log_l: NDArray[np.float64],
        initial_prior: ArrayLike | None = None,
    ) -> EMResult:
        """
        Run EM on a precomputed log-likelihood matrix.

        Args:
            log_l: Shape (n_models, n_pairs), rows in `self.models` order.
            initial_prior: Starting mixing proportions. Defaults to
                uniform.
        """
        n_models = len(self.models)
        if log_l.ndim != 2 or log_l.shape[0] != n_models:
            raise ValueError(
                f"log_l must have shape ({n_models}, n_pairs), "
                f"got {log_l.shape}"
            )

        if initial_prior is None:
            prior = np.full(n_models, 1.0 / n_models)
        else:
            prior = np.asarray(initial_prior, dtype=np.float64)
            if prior.shape != (n_models,) or not np.isclose(prior.sum(), 1):
                raise ValueError(
                    f"initial_prior must be {n_models} proportions summing "
                    f"to 1"
                )

        trace = [incomplete_data_log_likelihood(log_l, prior)]
        status = ConvergenceStatus.MAX_ITERATIONS
        n_iterations = 0

        for iteration in range(self.config.max_iterations):
            post = posterior(log_l, prior)
            prior = update_prior(post)
            trace.append(incomplete_data_log_likelihood(log_l, prior))
            n_iterations = iteration + 1

            if not np.isfinite(trace[-1]):
                logger.warning(
                    f"EM stopped at iteration {n_iterations}: "
                    f"non-finite log-likelihood"
                )
                status = ConvergenceStatus.FAILED
                break

            change = trace[-1] - trace[-2]
            logger.debug(
                f"EM iteration {n_iterations}: LL = {trace[-1]:.4f}, "
                f"change = {change:.2e}"
            )
            if not change > self.config.tolerance:
                status = ConvergenceStatus.CONVERGED
                break

        post = posterior(log_l, prior)
        logger.info(
            f"EM {status.value} after {n_iterations} iterations "
            f"(LL = {trace[-1]:.4f})"
        )
        return EMResult(
            models=self.models,
            prior=pd.Series(prior, index=[m.value for m in self.models]),
            posterior=post,
            trace=tuple(trace),
            n_iterations=n_iterations,
            status=status,
        )
