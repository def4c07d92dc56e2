"""
Likelihood-ratio tests of collaboration models against the 2PL reference.

For pair k and collaboration model M the observed statistic is

    LR_k = -2 * (logL_M(x_k | theta1_k, theta2_k) - logL_IRF(x_k | c_k))

where (theta1_k, theta2_k) are the members' individually estimated
abilities and c_k is the pair's ability estimated from its own group-form
responses. Item and person parameters are plug-in values, so the
chi-square reference does not apply; instead each pair gets a
parametric bootstrap null:

1. Simulate n_boot response vectors from M at (theta1_k, theta2_k).
2. For each replicate, re-estimate the reference ability by ML and
   recompute LR.
3. Drop replicates whose re-estimation failed, then summarize the rest
   (percentile interval and P(LR_boot > LR_k)).

Replicates copy the pair's observed missingness pattern. Every
(model, pair) task draws from its own child of the root SeedSequence.
"""

import logging
from collections.abc import Sequence

import numpy as np
import pandas as pd
from numpy.random import SeedSequence
from numpy.typing import ArrayLike, NDArray

from dyad_analysis.core.constants import MISSING_VALUE
from dyad_analysis.core.data_models import ResponseMatrix
from dyad_analysis.core.parallel import parallel_map
from dyad_analysis.core.utils import get_rng, spawn_seed_sequences
from dyad_analysis.inference.bootstrap import (
    BootstrapSummary,
    summarize_bootstrap,
)
from dyad_analysis.inference.config import BootstrapConfig
from dyad_analysis.irt.enums import ModelLabel, ScoringMethod
from dyad_analysis.irt.estimation.abilities import fit_rows
from dyad_analysis.irt.estimation.config import EstimationConfig
from dyad_analysis.irt.likelihood import log_likelihood, pattern_log_likelihood
from dyad_analysis.irt.parameters import ItemParameterSet
from dyad_analysis.irt.response_functions import model_probabilities

logger = logging.getLogger(__name__)

LR_COLUMNS = ["lr", "ci_lower", "ci_upper", "p_obs", "n_valid"]


def bootstrap_pair(
    model: ModelLabel,
    parms: ItemParameterSet,
    theta1: float,
    theta2: float,
    observed_lr: float,
    observed_mask: NDArray[np.bool_],
    seed: SeedSequence,
    bootstrap: BootstrapConfig,
    config: EstimationConfig,
) -> BootstrapSummary:
    """
    Bootstrap null distribution of LR for one pair under one model.

    Args:
        model: Collaboration model to simulate from.
        parms: Group-form item parameters.
        theta1: Member 1 ability.
        theta2: Member 2 ability.
        observed_lr: The pair's observed statistic.
        observed_mask: Items the pair actually answered, shape (n_items,).
        seed: Independent random stream for this task.
        bootstrap: Replicate count and summary settings.
        config: Settings for the reference re-estimation.

    Returns:
        BootstrapSummary over the retained replicates.
    """
    rng = get_rng(seed)
    n_boot = bootstrap.n_boot
    t1 = np.full(n_boot, theta1)
    t2 = np.full(n_boot, theta2)

    probs = model_probabilities(model, parms, t1, t2)
    replicates = (probs > rng.random(probs.shape)).astype(np.int8)
    replicates[:, ~observed_mask] = MISSING_VALUE

    model_ll = pattern_log_likelihood(probs, replicates)
    reference = fit_rows(
        replicates,
        np.ones(replicates.shape, dtype=np.float64),
        parms.alphas,
        parms.betas,
        config.bounds,
        config.optimizer,
        ScoringMethod.ML,
    )
    boot_lr = -2.0 * (model_ll - reference.log_likelihood)

    valid = reference.converged & np.isfinite(boot_lr)
    return summarize_bootstrap(boot_lr[valid], observed_lr, bootstrap)


def lr_test(
    data: ResponseMatrix,
    models: Sequence[ModelLabel | str],
    parms: ItemParameterSet,
    ind_theta: ArrayLike,
    col_theta: ArrayLike,
    bootstrap: BootstrapConfig | None = None,
    config: EstimationConfig | None = None,
) -> dict[ModelLabel, pd.DataFrame]:
    """
    LR statistics (and optional bootstrap calibration) per model and pair.

    Args:
        data: Conjunctively scored group-form responses, one row per pair.
        models: Collaboration models to test (Ind, Min, Max, AI).
        parms: Group-form item parameters.
        ind_theta: Individual abilities, two consecutive entries per pair
            (member 1, member 2), length 2 * n_pairs.
        col_theta: Pair abilities estimated from the group form, length
            n_pairs.
        bootstrap: Bootstrap settings. Defaults to no bootstrap.
        config: Estimation settings for the bootstrap reference fits and
            the worker pool.

    Returns:
        Mapping from model to a DataFrame with columns lr, ci_lower,
        ci_upper, p_obs and n_valid, one row per pair. The bootstrap
        columns are NaN (n_valid 0) when n_boot is 0.

    Raises:
        UnknownModelError: If a label is outside the closed model set.
        ValueError: If IRF is requested or shapes are inconsistent.
    """
    if bootstrap is None:
        bootstrap = BootstrapConfig()
    if config is None:
        config = EstimationConfig()

    labels = [ModelLabel.parse(m) for m in models]
    for label in labels:
        if not label.is_collaborative:
            raise ValueError(
                f"{label.value} is the reference model; test one of the "
                f"collaboration models instead"
            )

    n_pairs = data.n_rows
    ind = np.asarray(ind_theta, dtype=np.float64).reshape(-1)
    if ind.shape[0] != 2 * n_pairs:
        raise ValueError(
            f"ind_theta must have length {2 * n_pairs} "
            f"(two members per pair), got {ind.shape[0]}"
        )
    theta1 = ind[0::2]
    theta2 = ind[1::2]

    model_ll = log_likelihood(labels, data, parms, theta1, theta2)
    reference_ll = log_likelihood(ModelLabel.IRF, data, parms, col_theta)
    lr = -2.0 * (model_ll - reference_ll[np.newaxis, :])

    out: dict[ModelLabel, pd.DataFrame] = {}
    if bootstrap.n_boot == 0:
        for i, label in enumerate(labels):
            out[label] = pd.DataFrame(
                {
                    "lr": lr[i],
                    "ci_lower": np.nan,
                    "ci_upper": np.nan,
                    "p_obs": np.nan,
                    "n_valid": 0,
                },
                columns=LR_COLUMNS,
            )
        return out

    # One stream per ModelLabel member, indexed by label rather than by its
    # position in `models`, so adding or reordering models changes nothing
    all_labels = list(ModelLabel)
    model_seeds = spawn_seed_sequences(bootstrap.seed, len(all_labels))
    for i, label in enumerate(labels):
        logger.info(
            f"Running {bootstrap.n_boot} bootstrap replicates for model "
            f"{label.value} over {n_pairs} pairs"
        )
        pair_seeds = model_seeds[all_labels.index(label)].spawn(n_pairs)
        tasks = [
            (
                label,
                parms,
                float(theta1[k]),
                float(theta2[k]),
                float(lr[i, k]),
                data.valid_mask[k],
                pair_seeds[k],
                bootstrap,
                config,
            )
            for k in range(n_pairs)
        ]
        summaries = parallel_map(bootstrap_pair, tasks, config.parallel)

        frame = pd.DataFrame(
            {
                "lr": lr[i],
                "ci_lower": [s.ci_lower for s in summaries],
                "ci_upper": [s.ci_upper for s in summaries],
                "p_obs": [s.p_obs for s in summaries],
                "n_valid": [s.n_valid for s in summaries],
            },
            columns=LR_COLUMNS,
        )
        n_short = int((frame["n_valid"] < bootstrap.n_boot).sum())
        if n_short:
            logger.warning(
                f"Model {label.value}: {n_short} pairs lost bootstrap "
                f"replicates to failed reference fits"
            )
        logger.debug(
            f"Model {label.value}: mean LR {np.nanmean(lr[i]):.3f}, "
            f"mean p_obs {frame['p_obs'].mean():.3f}"
        )
        out[label] = frame
    return out
