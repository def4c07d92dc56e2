"""
Response simulation for single-ability and collaboration models.

Responses are drawn by comparing model probabilities against independent
uniform thresholds: a cell is correct when P > U(0, 1).
"""

import numpy as np
from numpy.random import Generator
from numpy.typing import ArrayLike, NDArray

from dyad_analysis.core.constants import MISSING_VALUE
from dyad_analysis.core.utils import get_rng
from dyad_analysis.irt.enums import ModelLabel
from dyad_analysis.irt.parameters import ItemParameterSet
from dyad_analysis.irt.response_functions import (
    model_probabilities,
    rsc_probabilities,
)


def _threshold_draw(
    probs: NDArray[np.float64], rng: Generator
) -> NDArray[np.int8]:
    u = rng.random(probs.shape)
    result: NDArray[np.int8] = (probs > u).astype(np.int8)
    return result


def simulate_responses(
    model: ModelLabel | str,
    parms: ItemParameterSet,
    theta1: ArrayLike,
    theta2: ArrayLike | None = None,
    rng: Generator | None = None,
) -> NDArray[np.int8]:
    """
    Simulate binary responses under the 2PL or a collaboration model.

    Args:
        model: Model label (IRF, Ind, Min, Max or AI).
        parms: Item parameters.
        theta1: Abilities (member 1 for pair models), shape (n,).
        theta2: Member 2 abilities for collaboration models.
        rng: Random number generator.

    Returns:
        Array of shape (n, n_items) with 0/1 responses.
    """
    if rng is None:
        rng = get_rng()
    probs = model_probabilities(model, parms, theta1, theta2)
    return _threshold_draw(probs, rng)


def simulate_rsc_responses(
    parms: ItemParameterSet,
    theta1: ArrayLike,
    theta2: ArrayLike,
    u: ArrayLike,
    rng: Generator | None = None,
) -> NDArray[np.int8]:
    """Simulate group-form pair responses under the RSC model."""
    if rng is None:
        rng = get_rng()
    probs = rsc_probabilities(parms, theta1, theta2, u)
    return _threshold_draw(probs, rng)


def conjunctive_scores(
    member1: NDArray[np.int8], member2: NDArray[np.int8]
) -> NDArray[np.int8]:
    """
    Score a pair response as the logical AND of two members' responses.

    A cell is missing if either member's response is missing.

    Args:
        member1: Responses of member 1, shape (n_pairs, n_items).
        member2: Responses of member 2, same shape.

    Returns:
        Array of shape (n_pairs, n_items).
    """
    if member1.shape != member2.shape:
        raise ValueError(
            f"Member response shapes differ: {member1.shape} vs "
            f"{member2.shape}"
        )
    missing = (member1 == MISSING_VALUE) | (member2 == MISSING_VALUE)
    both = ((member1 == 1) & (member2 == 1)).astype(np.int8)
    result: NDArray[np.int8] = np.where(missing, MISSING_VALUE, both).astype(
        np.int8
    )
    return result
