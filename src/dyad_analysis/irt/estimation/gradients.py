"""
Likelihood kernels, analytical gradients and Hessians for person estimation.

2PL, for one respondent with responses x_j:
    l(theta)   = sum_j x_j log p_j + (1 - x_j) log(1 - p_j)
    dl/dtheta  = sum_j alpha_j (x_j - p_j)
    d2l/dtheta2 = -sum_j alpha_j^2 p_j (1 - p_j)

RSC, for one pair with parameters (theta1, theta2, u) and w = logistic(u):
    R_j = w (p1_j + p2_j) + (1 - 2w) p1_j p2_j
    l = l_ind(theta1) + l_ind(theta2)
        + sum_j x_j log R_j + (1 - x_j) log(1 - R_j)

With g_j = dl/dR_j and k_j = d2l/dR_j^2, each group item adds
    dl/da     += g_j * dR_j/da
    d2l/da db += k_j * dR_j/da * dR_j/db + g_j * d2R_j/da db
For the expected (Fisher) Hessian, E[g_j] = 0 and E[k_j] = -1/(R_j(1 - R_j)).

Missing responses (MISSING_VALUE) are skipped in every kernel.
"""

from collections.abc import Callable

import numpy as np
from numba import njit  # type: ignore
from numpy.typing import NDArray

from dyad_analysis.core.constants import MISSING_VALUE


@njit  # type: ignore
def _expit(z: float) -> float:
    """Overflow-free logistic function for scalars."""
    if z >= 0.0:
        return 1.0 / (1.0 + np.exp(-z))
    e = np.exp(z)
    return e / (1.0 + e)


@njit  # type: ignore
def two_pl_log_likelihood(
    theta: float,
    responses: NDArray[np.int8],
    alpha: NDArray[np.float64],
    beta: NDArray[np.float64],
    weights: NDArray[np.float64],
) -> float:
    """
    Weighted 2PL log-likelihood of one response row at `theta`.

    Args:
        theta: Latent ability.
        responses: 0/1/MISSING_VALUE codes, shape (n_items,).
        alpha: Discriminations, shape (n_items,).
        beta: Difficulties, shape (n_items,).
        weights: Per-item weights, shape (n_items,). Zero skips the item.

    Returns:
        Log-likelihood (may be -inf if a probability underflows).
    """
    total = 0.0
    for j in range(responses.shape[0]):
        x = responses[j]
        if x == MISSING_VALUE or weights[j] == 0.0:
            continue
        p = _expit(alpha[j] * (theta - beta[j]))
        if x == 1:
            total += weights[j] * np.log(p)
        else:
            total += weights[j] * np.log1p(-p)
    return total


@njit  # type: ignore
def two_pl_information(
    theta: float,
    responses: NDArray[np.int8],
    alpha: NDArray[np.float64],
    beta: NDArray[np.float64],
    weights: NDArray[np.float64],
) -> float:
    """Weighted test information over the observed items of one row."""
    total = 0.0
    for j in range(responses.shape[0]):
        if responses[j] == MISSING_VALUE or weights[j] == 0.0:
            continue
        p = _expit(alpha[j] * (theta - beta[j]))
        total += weights[j] * alpha[j] * alpha[j] * p * (1.0 - p)
    return total


@njit  # type: ignore
def _individual_terms(
    theta: float,
    responses: NDArray[np.int8],
    alpha: NDArray[np.float64],
    beta: NDArray[np.float64],
) -> tuple[float, float, float]:
    """Log-likelihood, score and curvature of one member's 2PL responses."""
    ll = 0.0
    d1 = 0.0
    d2 = 0.0
    for j in range(responses.shape[0]):
        x = responses[j]
        if x == MISSING_VALUE:
            continue
        p = _expit(alpha[j] * (theta - beta[j]))
        if x == 1:
            ll += np.log(p)
        else:
            ll += np.log1p(-p)
        d1 += alpha[j] * (x - p)
        d2 -= alpha[j] * alpha[j] * p * (1.0 - p)
    return ll, d1, d2


@njit  # type: ignore
def rsc_log_likelihood(
    params: NDArray[np.float64],
    ind_responses1: NDArray[np.int8],
    ind_responses2: NDArray[np.int8],
    ind_alpha: NDArray[np.float64],
    ind_beta: NDArray[np.float64],
    group_responses: NDArray[np.int8],
    group_alpha: NDArray[np.float64],
    group_beta: NDArray[np.float64],
) -> float:
    """
    Joint log-likelihood of one pair's individual and group responses.

    Args:
        params: [theta1, theta2, u].
        ind_responses1: Member 1 individual-form responses.
        ind_responses2: Member 2 individual-form responses.
        ind_alpha: Individual-form discriminations.
        ind_beta: Individual-form difficulties.
        group_responses: The pair's group-form responses.
        group_alpha: Group-form discriminations.
        group_beta: Group-form difficulties.

    Returns:
        Log-likelihood.
    """
    theta1 = params[0]
    theta2 = params[1]
    w = _expit(params[2])

    ll1, _, _ = _individual_terms(theta1, ind_responses1, ind_alpha, ind_beta)
    ll2, _, _ = _individual_terms(theta2, ind_responses2, ind_alpha, ind_beta)

    total = ll1 + ll2
    for j in range(group_responses.shape[0]):
        x = group_responses[j]
        if x == MISSING_VALUE:
            continue
        p1 = _expit(group_alpha[j] * (theta1 - group_beta[j]))
        p2 = _expit(group_alpha[j] * (theta2 - group_beta[j]))
        r = w * (p1 + p2) + (1.0 - 2.0 * w) * p1 * p2
        if x == 1:
            total += np.log(r)
        else:
            total += np.log1p(-r)
    return total


@njit  # type: ignore
def rsc_gradient(
    params: NDArray[np.float64],
    ind_responses1: NDArray[np.int8],
    ind_responses2: NDArray[np.int8],
    ind_alpha: NDArray[np.float64],
    ind_beta: NDArray[np.float64],
    group_responses: NDArray[np.int8],
    group_alpha: NDArray[np.float64],
    group_beta: NDArray[np.float64],
) -> NDArray[np.float64]:
    """
    Gradient of `rsc_log_likelihood` in (theta1, theta2, u).

    Returns:
        Array of shape (3,).
    """
    theta1 = params[0]
    theta2 = params[1]
    w = _expit(params[2])
    dw = w * (1.0 - w)

    grad = np.zeros(3, dtype=np.float64)
    _, s1, _ = _individual_terms(theta1, ind_responses1, ind_alpha, ind_beta)
    _, s2, _ = _individual_terms(theta2, ind_responses2, ind_alpha, ind_beta)
    grad[0] += s1
    grad[1] += s2

    for j in range(group_responses.shape[0]):
        x = group_responses[j]
        if x == MISSING_VALUE:
            continue
        a = group_alpha[j]
        p1 = _expit(a * (theta1 - group_beta[j]))
        p2 = _expit(a * (theta2 - group_beta[j]))
        d1 = a * p1 * (1.0 - p1)
        d2 = a * p2 * (1.0 - p2)
        r = w * (p1 + p2) + (1.0 - 2.0 * w) * p1 * p2

        r_t1 = d1 * (w + (1.0 - 2.0 * w) * p2)
        r_t2 = d2 * (w + (1.0 - 2.0 * w) * p1)
        r_u = dw * (p1 + p2 - 2.0 * p1 * p2)

        if x == 1:
            g = 1.0 / r
        else:
            g = -1.0 / (1.0 - r)

        grad[0] += g * r_t1
        grad[1] += g * r_t2
        grad[2] += g * r_u
    return grad


@njit  # type: ignore
def rsc_hessian(
    params: NDArray[np.float64],
    ind_responses1: NDArray[np.int8],
    ind_responses2: NDArray[np.int8],
    ind_alpha: NDArray[np.float64],
    ind_beta: NDArray[np.float64],
    group_responses: NDArray[np.int8],
    group_alpha: NDArray[np.float64],
    group_beta: NDArray[np.float64],
    expected: bool,
) -> NDArray[np.float64]:
    """
    Hessian of `rsc_log_likelihood` in (theta1, theta2, u).

    Args:
        expected: If True, return the expected (Fisher) Hessian, which
            only depends on the response pattern through which cells are
            observed.

    Returns:
        Symmetric array of shape (3, 3).
    """
    theta1 = params[0]
    theta2 = params[1]
    w = _expit(params[2])
    dw = w * (1.0 - w)
    d2w = dw * (1.0 - 2.0 * w)

    hess = np.zeros((3, 3), dtype=np.float64)
    _, _, c1 = _individual_terms(theta1, ind_responses1, ind_alpha, ind_beta)
    _, _, c2 = _individual_terms(theta2, ind_responses2, ind_alpha, ind_beta)
    hess[0, 0] += c1
    hess[1, 1] += c2

    for j in range(group_responses.shape[0]):
        x = group_responses[j]
        if x == MISSING_VALUE:
            continue
        a = group_alpha[j]
        p1 = _expit(a * (theta1 - group_beta[j]))
        p2 = _expit(a * (theta2 - group_beta[j]))
        d1 = a * p1 * (1.0 - p1)
        d2 = a * p2 * (1.0 - p2)
        h1 = a * d1 * (1.0 - 2.0 * p1)
        h2 = a * d2 * (1.0 - 2.0 * p2)
        r = w * (p1 + p2) + (1.0 - 2.0 * w) * p1 * p2

        r_t1 = d1 * (w + (1.0 - 2.0 * w) * p2)
        r_t2 = d2 * (w + (1.0 - 2.0 * w) * p1)
        r_u = dw * (p1 + p2 - 2.0 * p1 * p2)

        r_11 = h1 * (w + (1.0 - 2.0 * w) * p2)
        r_22 = h2 * (w + (1.0 - 2.0 * w) * p1)
        r_12 = d1 * d2 * (1.0 - 2.0 * w)
        r_13 = d1 * dw * (1.0 - 2.0 * p2)
        r_23 = d2 * dw * (1.0 - 2.0 * p1)
        r_33 = d2w * (p1 + p2 - 2.0 * p1 * p2)

        if expected:
            g = 0.0
            k = -1.0 / (r * (1.0 - r))
        elif x == 1:
            g = 1.0 / r
            k = -1.0 / (r * r)
        else:
            g = -1.0 / (1.0 - r)
            k = -1.0 / ((1.0 - r) * (1.0 - r))

        hess[0, 0] += k * r_t1 * r_t1 + g * r_11
        hess[1, 1] += k * r_t2 * r_t2 + g * r_22
        hess[2, 2] += k * r_u * r_u + g * r_33
        hess[0, 1] += k * r_t1 * r_t2 + g * r_12
        hess[0, 2] += k * r_t1 * r_u + g * r_13
        hess[1, 2] += k * r_t2 * r_u + g * r_23

    hess[1, 0] = hess[0, 1]
    hess[2, 0] = hess[0, 2]
    hess[2, 1] = hess[1, 2]
    return hess


def numerical_hessian(
    func: Callable[[NDArray[np.float64]], float],
    x: NDArray[np.float64],
    step: float = 1e-4,
) -> NDArray[np.float64]:
    """
    Central finite-difference Hessian of a scalar function.

    Steps are scaled by max(1, |x_i|) per coordinate.

    Args:
        func: Scalar function of a 1D array.
        x: Point of evaluation, shape (n,).
        step: Relative step size.

    Returns:
        Symmetric array of shape (n, n).
    """
    x = np.asarray(x, dtype=np.float64)
    n = x.shape[0]
    h = step * np.maximum(1.0, np.abs(x))
    f0 = func(x)

    hess = np.empty((n, n), dtype=np.float64)
    for i in range(n):
        ei = np.zeros(n)
        ei[i] = h[i]
        hess[i, i] = (func(x + ei) - 2.0 * f0 + func(x - ei)) / h[i] ** 2
        for j in range(i):
            ej = np.zeros(n)
            ej[j] = h[j]
            hess[i, j] = (
                func(x + ei + ej)
                - func(x + ei - ej)
                - func(x - ei + ej)
                + func(x - ei - ej)
            ) / (4.0 * h[i] * h[j])
            hess[j, i] = hess[i, j]
    return hess
