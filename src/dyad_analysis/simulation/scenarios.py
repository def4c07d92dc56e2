"""
Simulated pair data for likelihood-ratio and EM studies.

Pair scenario: every pair responds to a group form under one known
collaboration model, and each member also answers an individual form
under the 2PL. Abilities are drawn i.i.d. normal.

Mixture scenario: pairs are split across Ind, Min, Max and AI in
proportion to a prior (counts round(prior * n_pairs), last class takes
any remainder) and shuffled. Member abilities are the larger (theta1)
and smaller (theta2) of two N(0, 1) draws.
"""

import logging
from dataclasses import dataclass

import numpy as np
from numpy.random import Generator
from numpy.typing import ArrayLike, NDArray

from dyad_analysis.core.constants import MISSING_VALUE
from dyad_analysis.core.data_models import PairResponseMatrix, ResponseMatrix
from dyad_analysis.core.utils import get_rng
from dyad_analysis.irt.enums import COLLABORATION_MODELS, ModelLabel
from dyad_analysis.irt.parameters import ItemParameterSet
from dyad_analysis.irt.sampling import simulate_responses
from dyad_analysis.simulation.config import (
    BETA_LINSPACE,
    ItemBankConfig,
    MixtureScenarioConfig,
    PairScenarioConfig,
)

logger = logging.getLogger(__name__)

INDIVIDUAL_TAG = "IND"
GROUP_TAG = "COL"


def make_item_bank(
    config: ItemBankConfig, tag: str, rng: Generator | None = None
) -> ItemParameterSet:
    """
    Build a 2PL item bank with names like "COL_00".

    Args:
        config: Item bank settings.
        tag: Form tag embedded in every item name.
        rng: Random number generator (only used for sorted-uniform
            difficulties).
    """
    if config.beta_spacing == BETA_LINSPACE:
        beta = np.linspace(
            config.beta_lower, config.beta_upper, config.n_items
        )
    else:
        if rng is None:
            rng = get_rng()
        beta = np.sort(
            rng.uniform(config.beta_lower, config.beta_upper, config.n_items)
        )
    width = len(str(config.n_items - 1))
    names = [f"{tag}_{j:0{width}d}" for j in range(config.n_items)]
    return ItemParameterSet.from_arrays(
        alpha=np.full(config.n_items, config.alpha),
        beta=beta,
        item_names=names,
    )


def interleave_members(
    theta1: NDArray[np.float64], theta2: NDArray[np.float64]
) -> NDArray[np.float64]:
    """Member abilities in pair order: [t1_0, t2_0, t1_1, t2_1, ...]."""
    out = np.empty(2 * len(theta1), dtype=np.float64)
    out[0::2] = theta1
    out[1::2] = theta2
    return out


def combine_forms(
    individual: ResponseMatrix, group: ResponseMatrix
) -> PairResponseMatrix:
    """
    Build a combined pair matrix from individual and group responses.

    Args:
        individual: Individual-form responses, two consecutive rows per
            pair (member 1, member 2).
        group: Group-form responses, one row per pair.

    Returns:
        PairResponseMatrix with the individual columns first and the group
        row repeated on both member rows.
    """
    if individual.n_rows != 2 * group.n_rows:
        raise ValueError(
            f"Need two individual rows per pair: got {individual.n_rows} "
            f"individual rows for {group.n_rows} pairs"
        )
    responses = np.hstack(
        [individual.responses, np.repeat(group.responses, 2, axis=0)]
    )
    names = None
    if individual.item_names is not None and group.item_names is not None:
        names = individual.item_names + group.item_names
    return PairResponseMatrix(ResponseMatrix(responses, item_names=names))


@dataclass(frozen=True)
class PairScenario:
    """
    Simulated data from one collaboration model.

    Attributes:
        model: Generating model.
        individual_parms: Individual-form item parameters.
        group_parms: Group-form item parameters.
        individual: Individual responses, two rows per pair.
        group: Group responses, one row per pair.
        theta1: True member 1 abilities, shape (n_pairs,).
        theta2: True member 2 abilities, shape (n_pairs,).
    """

    model: ModelLabel
    individual_parms: ItemParameterSet
    group_parms: ItemParameterSet
    individual: ResponseMatrix
    group: ResponseMatrix
    theta1: NDArray[np.float64]
    theta2: NDArray[np.float64]

    @property
    def n_pairs(self) -> int:
        return self.group.n_rows

    @property
    def ind_theta(self) -> NDArray[np.float64]:
        """True abilities in member order, length 2 * n_pairs."""
        return interleave_members(self.theta1, self.theta2)

    def combined(self) -> tuple[PairResponseMatrix, ItemParameterSet]:
        """Combined pair matrix and item parameters for RSC fitting."""
        return (
            combine_forms(self.individual, self.group),
            self.individual_parms.concat(self.group_parms),
        )


def simulate_pair_scenario(config: PairScenarioConfig) -> PairScenario:
    """Simulate individual and group responses for one model."""
    rng = get_rng(config.random_seed)
    model = ModelLabel.parse(config.model)

    individual_parms = make_item_bank(config.items, INDIVIDUAL_TAG, rng)
    group_parms = make_item_bank(config.items, GROUP_TAG, rng)

    theta = rng.normal(
        config.ability_mean, config.ability_std, (config.n_pairs, 2)
    )
    theta1 = theta[:, 0]
    theta2 = theta[:, 1]

    individual = simulate_responses(
        ModelLabel.IRF,
        individual_parms,
        interleave_members(theta1, theta2),
        rng=rng,
    )
    group = simulate_responses(model, group_parms, theta1, theta2, rng=rng)

    logger.info(
        f"Simulated {config.n_pairs} pairs under {model.value} on "
        f"{config.items.n_items} items per form"
    )
    return PairScenario(
        model=model,
        individual_parms=individual_parms,
        group_parms=group_parms,
        individual=ResponseMatrix(
            individual, item_names=individual_parms.item_names
        ),
        group=ResponseMatrix(group, item_names=group_parms.item_names),
        theta1=theta1,
        theta2=theta2,
    )


@dataclass(frozen=True)
class MixtureSample:
    """
    Pairs drawn from a mixture of collaboration models.

    Attributes:
        parms: Group-form item parameters.
        responses: Group responses, one row per pair.
        theta1: Member 1 abilities (the larger draw).
        theta2: Member 2 abilities (the smaller draw).
        labels: Generating model of each pair.
    """

    parms: ItemParameterSet
    responses: ResponseMatrix
    theta1: NDArray[np.float64]
    theta2: NDArray[np.float64]
    labels: tuple[ModelLabel, ...]


def _class_counts(
    prior: NDArray[np.float64], n_pairs: int
) -> NDArray[np.int_]:
    counts = np.round(prior * n_pairs).astype(int)
    counts[-1] = n_pairs - counts[:-1].sum()
    if counts[-1] < 0:
        raise ValueError(
            f"prior {prior.tolist()} cannot be split over {n_pairs} pairs"
        )
    return counts


def simulate_mixture(
    n_pairs: int,
    parms: ItemParameterSet,
    prior: ArrayLike | None = None,
    rng: Generator | None = None,
) -> MixtureSample:
    """
    Simulate group responses from a mixture of Ind, Min, Max and AI.

    Args:
        n_pairs: Number of pairs.
        parms: Group-form item parameters.
        prior: Class proportions in the order Ind, Min, Max, AI.
            Defaults to uniform.
        rng: Random number generator.

    Returns:
        MixtureSample with shuffled rows and their true labels.
    """
    if rng is None:
        rng = get_rng()
    if prior is None:
        prior_arr = np.full(len(COLLABORATION_MODELS), 0.25)
    else:
        prior_arr = np.asarray(prior, dtype=np.float64)
    if prior_arr.shape != (len(COLLABORATION_MODELS),):
        raise ValueError(
            f"prior needs {len(COLLABORATION_MODELS)} proportions, "
            f"got {prior_arr.shape}"
        )

    draws = rng.standard_normal((n_pairs, 2))
    theta1 = draws.max(axis=1)
    theta2 = draws.min(axis=1)

    counts = _class_counts(prior_arr, n_pairs)
    responses = np.full((n_pairs, parms.n_items), MISSING_VALUE, np.int8)
    labels: list[ModelLabel] = []
    start = 0
    for model, count in zip(COLLABORATION_MODELS, counts):
        stop = start + int(count)
        if count > 0:
            responses[start:stop] = simulate_responses(
                model, parms, theta1[start:stop], theta2[start:stop], rng=rng
            )
        labels.extend([model] * int(count))
        start = stop

    order = rng.permutation(n_pairs)
    return MixtureSample(
        parms=parms,
        responses=ResponseMatrix(
            responses[order], item_names=parms.item_names
        ),
        theta1=theta1[order],
        theta2=theta2[order],
        labels=tuple(labels[i] for i in order),
    )


def simulate_mixture_scenario(config: MixtureScenarioConfig) -> MixtureSample:
    """Simulate a mixture sample from a preset configuration."""
    rng = get_rng(config.random_seed)
    parms = make_item_bank(config.items, GROUP_TAG, rng)
    sample = simulate_mixture(config.n_pairs, parms, config.prior, rng)
    logger.info(
        f"Simulated {config.n_pairs} mixture pairs on {parms.n_items} items"
    )
    return sample
