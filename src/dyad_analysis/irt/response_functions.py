"""
Item response functions for individuals and pairs.

All functions return a matrix of probabilities of a correct response with
one row per respondent (or pair) and one column per item.

Single ability (2PL):
    IRF(theta) = logistic(alpha * (theta - beta))

Collaboration models, with p1 = IRF(theta1) and p2 = IRF(theta2):
    Ind = p1 * p2                 both members must succeed
    Min = IRF(min(theta1, theta2)) the weaker member gates the pair
    Max = IRF(max(theta1, theta2)) the stronger member gates the pair
    AI  = p1 + p2 - p1 * p2       either member succeeding is enough

The RSC model mixes Ind and AI with a pair-level weight w = logistic(u):
    R = w * (p1 + p2) + (1 - 2w) * p1 * p2
which is Ind at w = 0 and AI at w = 1.
"""

from collections.abc import Callable

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.special import expit

from dyad_analysis.irt.enums import ModelLabel
from dyad_analysis.irt.parameters import ItemParameterSet

ResponseFunction = Callable[
    [ItemParameterSet, ArrayLike, ArrayLike | None], NDArray[np.float64]
]


def _logits(parms: ItemParameterSet, theta: ArrayLike) -> NDArray[np.float64]:
    """alpha_j * (theta_i - beta_j), shape (n_theta, n_items)."""
    theta_arr = np.atleast_1d(np.asarray(theta, dtype=np.float64))
    z: NDArray[np.float64] = parms.alphas[np.newaxis, :] * (
        theta_arr[:, np.newaxis] - parms.betas[np.newaxis, :]
    )
    return z


def _require_theta2(theta2: ArrayLike | None, model: str) -> ArrayLike:
    if theta2 is None:
        raise ValueError(f"Model {model} requires theta2")
    return theta2


def irf(
    parms: ItemParameterSet,
    theta1: ArrayLike,
    theta2: ArrayLike | None = None,
) -> NDArray[np.float64]:
    """
    2PL probabilities of a correct response.

    Args:
        parms: Item parameters.
        theta1: Abilities, scalar or shape (n,).
        theta2: Ignored; accepted so every model shares one signature.

    Returns:
        Array of shape (n, n_items).
    """
    result: NDArray[np.float64] = expit(_logits(parms, theta1))
    return result


def irf_derivative(
    parms: ItemParameterSet, theta: ArrayLike
) -> NDArray[np.float64]:
    """First derivative of the 2PL in theta: alpha * P * (1 - P)."""
    p = irf(parms, theta)
    result: NDArray[np.float64] = parms.alphas[np.newaxis, :] * p * (1 - p)
    return result


def irf_second_derivative(
    parms: ItemParameterSet, theta: ArrayLike
) -> NDArray[np.float64]:
    """Second derivative of the 2PL in theta: alpha * P' * (1 - 2P)."""
    p = irf(parms, theta)
    result: NDArray[np.float64] = (
        parms.alphas[np.newaxis, :]
        * irf_derivative(parms, theta)
        * (1 - 2 * p)
    )
    return result


def information(
    parms: ItemParameterSet, theta: ArrayLike
) -> NDArray[np.float64]:
    """
    Test information of the 2PL at each theta.

        I(theta) = sum_j alpha_j^2 * P_j * (1 - P_j)

    Items with undefined probabilities are skipped.

    Returns:
        Array of shape (n,).
    """
    p = irf(parms, theta)
    per_item = parms.alphas[np.newaxis, :] ** 2 * p * (1 - p)
    result: NDArray[np.float64] = np.nansum(per_item, axis=1)
    return result


def information_slope(
    parms: ItemParameterSet, theta: ArrayLike
) -> NDArray[np.float64]:
    """
    Derivative of the test information in theta.

        I'(theta) = sum_j alpha_j^3 * P_j * (1 - P_j) * (1 - 2 P_j)

    Returns:
        Array of shape (n,).
    """
    p = irf(parms, theta)
    per_item = parms.alphas[np.newaxis, :] ** 3 * p * (1 - p) * (1 - 2 * p)
    result: NDArray[np.float64] = np.nansum(per_item, axis=1)
    return result


def independence(
    parms: ItemParameterSet,
    theta1: ArrayLike,
    theta2: ArrayLike | None = None,
) -> NDArray[np.float64]:
    """Both members must answer correctly: p1 * p2."""
    theta2 = _require_theta2(theta2, ModelLabel.IND.value)
    result: NDArray[np.float64] = irf(parms, theta1) * irf(parms, theta2)
    return result


def minimum(
    parms: ItemParameterSet,
    theta1: ArrayLike,
    theta2: ArrayLike | None = None,
) -> NDArray[np.float64]:
    """
    The weaker member determines the pair: IRF(min(theta1, theta2)).

    A present ability wins over a missing (NaN) one.
    """
    theta2 = _require_theta2(theta2, ModelLabel.MIN.value)
    theta = np.fmin(
        np.asarray(theta1, dtype=np.float64),
        np.asarray(theta2, dtype=np.float64),
    )
    return irf(parms, theta)


def maximum(
    parms: ItemParameterSet,
    theta1: ArrayLike,
    theta2: ArrayLike | None = None,
) -> NDArray[np.float64]:
    """
    The stronger member determines the pair: IRF(max(theta1, theta2)).

    A present ability wins over a missing (NaN) one.
    """
    theta2 = _require_theta2(theta2, ModelLabel.MAX.value)
    theta = np.fmax(
        np.asarray(theta1, dtype=np.float64),
        np.asarray(theta2, dtype=np.float64),
    )
    return irf(parms, theta)


def additive_independence(
    parms: ItemParameterSet,
    theta1: ArrayLike,
    theta2: ArrayLike | None = None,
) -> NDArray[np.float64]:
    """Either member answering correctly is enough: p1 + p2 - p1 * p2."""
    theta2 = _require_theta2(theta2, ModelLabel.AI.value)
    p1 = irf(parms, theta1)
    p2 = irf(parms, theta2)
    result: NDArray[np.float64] = p1 + p2 - p1 * p2
    return result


def rsc_probabilities(
    parms: ItemParameterSet,
    theta1: ArrayLike,
    theta2: ArrayLike,
    u: ArrayLike,
) -> NDArray[np.float64]:
    """
    RSC probabilities for pairs with collaboration weight logit `u`.

        R = w * (p1 + p2) + (1 - 2w) * p1 * p2,  w = logistic(u)

    Args:
        parms: Group-form item parameters.
        theta1: Member 1 abilities, shape (n,).
        theta2: Member 2 abilities, shape (n,).
        u: Weight logits, scalar or shape (n,).

    Returns:
        Array of shape (n, n_items).
    """
    p1 = irf(parms, theta1)
    p2 = irf(parms, theta2)
    w = np.atleast_1d(expit(np.asarray(u, dtype=np.float64)))[:, np.newaxis]
    result: NDArray[np.float64] = w * (p1 + p2) + (1 - 2 * w) * p1 * p2
    return result


_RESPONSE_FUNCTIONS: dict[ModelLabel, ResponseFunction] = {
    ModelLabel.IRF: irf,
    ModelLabel.IND: independence,
    ModelLabel.MIN: minimum,
    ModelLabel.MAX: maximum,
    ModelLabel.AI: additive_independence,
}


def get_response_function(model: ModelLabel | str) -> ResponseFunction:
    """
    Look up the response function for a model label.

    Raises:
        UnknownModelError: If `model` is not one of IRF, Ind, Min, Max, AI.
    """
    return _RESPONSE_FUNCTIONS[ModelLabel.parse(model)]


def model_probabilities(
    model: ModelLabel | str,
    parms: ItemParameterSet,
    theta1: ArrayLike,
    theta2: ArrayLike | None = None,
) -> NDArray[np.float64]:
    """Probabilities of a correct response under the named model."""
    return get_response_function(model)(parms, theta1, theta2)
