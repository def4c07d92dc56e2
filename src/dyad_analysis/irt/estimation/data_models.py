from dataclasses import dataclass

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy.special import expit

from dyad_analysis.irt.enums import ConvergenceStatus


@dataclass(frozen=True)
class AbilityEstimates:
    """
    Single-ability (2PL) estimates, one per response row.

    Attributes:
        log_likelihood: Log-likelihood at the estimate, shape (n_rows,).
        theta: Point estimates, shape (n_rows,).
        se: Standard errors from the observed information; NaN where the
            curvature at the estimate is not negative.
        at_bound: True where the estimate sits on an ability bound.
        converged: Optimizer success flag per row.
    """

    log_likelihood: NDArray[np.float64]
    theta: NDArray[np.float64]
    se: NDArray[np.float64]
    at_bound: NDArray[np.bool_]
    converged: NDArray[np.bool_]

    @property
    def n_rows(self) -> int:
        """Number of estimated rows."""
        return len(self.theta)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "log_likelihood": self.log_likelihood,
                "theta": self.theta,
                "se": self.se,
                "at_bound": self.at_bound,
                "converged": self.converged,
            }
        )


@dataclass(frozen=True)
class PairFit:
    """
    RSC fit for a single pair.

    Attributes:
        estimate: [theta1, theta2, u] at the optimum.
        se: Standard errors of the three parameters (u on the logit scale).
        log_likelihood: Log-likelihood at the optimum (without the prior).
        n_iterations: Optimizer iterations.
        gradient_norm: Euclidean norm of the objective gradient at the
            optimum, ignoring components pinned at a bound.
        status: How the optimizer terminated.
    """

    estimate: NDArray[np.float64]
    se: NDArray[np.float64]
    log_likelihood: float
    n_iterations: int
    gradient_norm: float
    status: ConvergenceStatus


@dataclass(frozen=True)
class RSCEstimates:
    """
    RSC estimates for a batch of pairs.

    Attributes:
        fits: One PairFit per pair, in pair order.
        model_version: Version string for reproducibility tracking.
    """

    fits: tuple[PairFit, ...]
    model_version: str

    @property
    def n_pairs(self) -> int:
        return len(self.fits)

    @property
    def estimates(self) -> NDArray[np.float64]:
        """Array of shape (n_pairs, 3) with columns theta1, theta2, u."""
        return np.array([f.estimate for f in self.fits], dtype=np.float64)

    @property
    def standard_errors(self) -> NDArray[np.float64]:
        """Array of shape (n_pairs, 3) with the matching standard errors."""
        return np.array([f.se for f in self.fits], dtype=np.float64)

    @property
    def converged(self) -> NDArray[np.bool_]:
        return np.array(
            [f.status == ConvergenceStatus.CONVERGED for f in self.fits],
            dtype=bool,
        )

    def to_frame(self) -> pd.DataFrame:
        """
        Per-pair table of estimates and convergence diagnostics.

        Columns: theta1, theta1_se, theta2, theta2_se, u, u_se, w,
        log_likelihood, n_iterations, gradient_norm, status.
        """
        est = self.estimates.reshape(-1, 3)
        se = self.standard_errors.reshape(-1, 3)
        return pd.DataFrame(
            {
                "theta1": est[:, 0],
                "theta1_se": se[:, 0],
                "theta2": est[:, 1],
                "theta2_se": se[:, 1],
                "u": est[:, 2],
                "u_se": se[:, 2],
                "w": expit(est[:, 2]),
                "log_likelihood": [f.log_likelihood for f in self.fits],
                "n_iterations": [f.n_iterations for f in self.fits],
                "gradient_norm": [f.gradient_norm for f in self.fits],
                "status": [f.status.value for f in self.fits],
            }
        )
