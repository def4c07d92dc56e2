"""
Conditional likelihood of binary response patterns.

For a model with probabilities P (rows x items) the weighted
log-likelihood of row i is

    sum_j w_ij * (x_ij * log P_ij + (1 - x_ij) * log(1 - P_ij))

where the sum runs over observed cells only. Missing responses and cells
with zero (or NaN) weight contribute nothing.

Probabilities are not clipped: a P of exactly 0 or 1 that disagrees with
the observed response yields -inf for that row. Callers that need finite
sums must keep item and ability parameters away from that regime.
"""

from collections.abc import Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from dyad_analysis.core.constants import CORRECT, MISSING_VALUE
from dyad_analysis.core.data_models import ResponseMatrix
from dyad_analysis.core.utils import as_ability_array
from dyad_analysis.irt.enums import ModelLabel
from dyad_analysis.irt.parameters import ItemParameterSet
from dyad_analysis.irt.response_functions import model_probabilities


def _check_alignment(data: ResponseMatrix, parms: ItemParameterSet) -> None:
    if data.n_items != parms.n_items:
        raise ValueError(
            f"Response matrix has {data.n_items} items but item parameters "
            f"have {parms.n_items}"
        )


def broadcast_weights(
    weights: ArrayLike | None, shape: tuple[int, int]
) -> NDArray[np.float64]:
    """
    Broadcast per-response weights to the response matrix shape.

    None means unit weights. NaN weights are treated as zero.
    """
    if weights is None:
        return np.ones(shape, dtype=np.float64)
    w = np.broadcast_to(np.asarray(weights, dtype=np.float64), shape)
    result: NDArray[np.float64] = np.where(np.isnan(w), 0.0, w)
    return result


def pattern_log_likelihood(
    probs: NDArray[np.float64],
    responses: NDArray[np.int8],
    weights: NDArray[np.float64] | None = None,
) -> NDArray[np.float64]:
    """
    Row-wise log-likelihood of binary responses given probabilities.

    Args:
        probs: Probabilities of a correct response, shape (n_rows, n_items).
        responses: 0/1/MISSING_VALUE codes, shape (n_rows, n_items).
        weights: Optional weights of the same shape (already broadcast).

    Returns:
        Array of shape (n_rows,).
    """
    observed = responses != MISSING_VALUE
    if weights is not None:
        observed &= weights != 0

    with np.errstate(divide="ignore", invalid="ignore"):
        log_p = np.where(
            responses == CORRECT, np.log(probs), np.log1p(-probs)
        )
        if weights is not None:
            log_p = weights * log_p

    result: NDArray[np.float64] = np.where(observed, log_p, 0.0).sum(axis=1)
    return result


def log_likelihood(
    models: ModelLabel | str | Sequence[ModelLabel | str],
    data: ResponseMatrix,
    parms: ItemParameterSet,
    theta1: ArrayLike,
    theta2: ArrayLike | None = None,
    weights: ArrayLike | None = None,
    log: bool = True,
) -> NDArray[np.float64]:
    """
    Log-likelihood of each response row under one or more models.

    Args:
        models: A single model label, or a sequence of labels.
        data: Binary responses aligned with `parms`.
        parms: Item parameters.
        theta1: Abilities (member 1 for pair models), scalar or (n_rows,).
        theta2: Member 2 abilities for collaboration models.
        weights: Optional per-response weights broadcastable to the
            response matrix shape. Defaults to ones.
        log: If False, return likelihoods instead of log-likelihoods.

    Returns:
        Shape (n_rows,) for a single label, or (n_models, n_rows) for a
        sequence of labels.

    Raises:
        UnknownModelError: If a label is outside the closed model set.
        ValueError: If shapes are inconsistent.
    """
    _check_alignment(data, parms)
    single = isinstance(models, (str, ModelLabel))
    labels = [ModelLabel.parse(models)] if single else [
        ModelLabel.parse(m) for m in models  # type: ignore[union-attr]
    ]

    theta1_arr = as_ability_array(theta1, data.n_rows, "theta1")
    theta2_arr = as_ability_array(theta2, data.n_rows, "theta2")
    w = broadcast_weights(weights, data.responses.shape)

    out = np.zeros((len(labels), data.n_rows), dtype=np.float64)
    for i, label in enumerate(labels):
        probs = model_probabilities(label, parms, theta1_arr, theta2_arr)
        out[i] = pattern_log_likelihood(probs, data.responses, w)

    if not log:
        out = np.exp(out)
    if single:
        result: NDArray[np.float64] = out[0]
        return result
    return out
