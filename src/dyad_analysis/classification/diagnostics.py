"""
Diagnostics for EM classification and item screening.

Screening: an item only discriminates between the gated models when the
pair's Min and Max probabilities differ. The screening statistic

    delta_ij = Min_ij * (1 - Max_ij)

is large where the weaker member probably succeeds and the stronger
member probably fails, and small elsewhere. Items below a cutoff can be
given zero weight in the likelihood.
"""

from collections.abc import Iterable
from typing import Any

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike, NDArray

from dyad_analysis.classification.em import EMResult
from dyad_analysis.irt.enums import ModelLabel
from dyad_analysis.irt.parameters import ItemParameterSet
from dyad_analysis.irt.response_functions import maximum, minimum


def classification_confidence(result: EMResult) -> pd.Series:
    """
    Mean posterior probability of the assigned class, by assigned class.

    Classes that are never assigned do not appear.
    """
    assigned = result.assignments()
    top = result.posterior.max(axis=1)
    confidence = pd.Series(top).groupby(assigned.to_numpy()).mean()
    confidence.index.name = "model"
    return confidence


def assignment_accuracy(
    result: EMResult, true_labels: Iterable[ModelLabel | str]
) -> float:
    """Share of pairs whose arg-max class equals the true label."""
    truth = _as_label_array(true_labels, result.n_pairs)
    return float(np.mean(result.assignments().to_numpy() == truth))


def confusion_table(
    result: EMResult, true_labels: Iterable[ModelLabel | str]
) -> pd.DataFrame:
    """Counts of true (rows) against assigned (columns) classes."""
    truth = _as_label_array(true_labels, result.n_pairs)
    labels = [m.value for m in result.models]
    table = pd.crosstab(
        pd.Categorical(truth, categories=labels),
        pd.Categorical(result.assignments(), categories=labels),
        rownames=["true"],
        colnames=["assigned"],
        dropna=False,
    )
    return table


def _as_label_array(
    labels: Iterable[Any], n_pairs: int
) -> NDArray[np.str_]:
    arr = np.array([getattr(x, "value", x) for x in labels])
    if arr.shape != (n_pairs,):
        raise ValueError(
            f"Expected {n_pairs} true labels, got {arr.shape[0]}"
        )
    return arr


def screening_delta(
    parms: ItemParameterSet, theta1: ArrayLike, theta2: ArrayLike
) -> NDArray[np.float64]:
    """Min * (1 - Max) per pair and item, shape (n_pairs, n_items)."""
    result: NDArray[np.float64] = minimum(parms, theta1, theta2) * (
        1 - maximum(parms, theta1, theta2)
    )
    return result


def screening_weights(
    parms: ItemParameterSet,
    theta1: ArrayLike,
    theta2: ArrayLike,
    cutoff: float,
) -> NDArray[np.float64]:
    """1 where the screening statistic reaches `cutoff`, else 0."""
    delta = screening_delta(parms, theta1, theta2)
    result: NDArray[np.float64] = np.where(delta >= cutoff, 1.0, 0.0)
    return result
