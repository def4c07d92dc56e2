"""
Tests for likelihood-ratio statistics and their bootstrap calibration.
"""

import numpy as np
import pandas as pd
import pytest

from dyad_analysis.core.constants import MISSING_VALUE
from dyad_analysis.core.data_models import ResponseMatrix
from dyad_analysis.core.parallel import ParallelConfig
from dyad_analysis.core.utils import get_rng
from dyad_analysis.inference.config import BootstrapConfig
from dyad_analysis.inference.likelihood_ratio import LR_COLUMNS, lr_test
from dyad_analysis.irt.enums import ModelLabel
from dyad_analysis.irt.estimation import EstimationConfig, ml_irf
from dyad_analysis.irt.exceptions import UnknownModelError
from dyad_analysis.irt.likelihood import log_likelihood
from dyad_analysis.irt.parameters import ItemParameterSet
from dyad_analysis.irt.sampling import simulate_responses
from dyad_analysis.simulation.scenarios import interleave_members

N_PAIRS = 5


@pytest.fixture
def parms() -> ItemParameterSet:
    return ItemParameterSet.from_arrays(
        alpha=np.full(12, 1.0), beta=np.linspace(-2, 2, 12)
    )


@pytest.fixture
def config() -> EstimationConfig:
    return EstimationConfig(model_version="test")


@pytest.fixture
def study(
    parms: ItemParameterSet, config: EstimationConfig
) -> tuple[ResponseMatrix, np.ndarray, np.ndarray]:
    rng = get_rng(21)
    theta1 = rng.normal(0, 1, N_PAIRS)
    theta2 = rng.normal(0, 1, N_PAIRS)
    responses = simulate_responses("Min", parms, theta1, theta2, rng=rng)
    responses[0, :3] = MISSING_VALUE
    data = ResponseMatrix(responses)
    col_theta = ml_irf(data, parms, config).theta
    return data, interleave_members(theta1, theta2), col_theta


class TestObservedStatistic:
    def test_no_bootstrap_gives_nan_columns(
        self,
        parms: ItemParameterSet,
        study: tuple[ResponseMatrix, np.ndarray, np.ndarray],
        config: EstimationConfig,
    ) -> None:
        data, ind_theta, col_theta = study
        out = lr_test(
            data, ["Min", "AI"], parms, ind_theta, col_theta, config=config
        )

        assert set(out) == {ModelLabel.MIN, ModelLabel.AI}
        for frame in out.values():
            assert list(frame.columns) == LR_COLUMNS
            assert len(frame) == N_PAIRS
            assert frame[["ci_lower", "ci_upper", "p_obs"]].isna().all().all()
            assert (frame["n_valid"] == 0).all()

    def test_statistic_is_minus_twice_log_ratio(
        self,
        parms: ItemParameterSet,
        study: tuple[ResponseMatrix, np.ndarray, np.ndarray],
        config: EstimationConfig,
    ) -> None:
        data, ind_theta, col_theta = study
        out = lr_test(
            data, ["Max"], parms, ind_theta, col_theta, config=config
        )

        model = log_likelihood(
            "Max", data, parms, ind_theta[0::2], ind_theta[1::2]
        )
        reference = log_likelihood("IRF", data, parms, col_theta)
        np.testing.assert_allclose(
            out[ModelLabel.MAX]["lr"], -2 * (model - reference)
        )

    def test_reference_model_rejected(
        self,
        parms: ItemParameterSet,
        study: tuple[ResponseMatrix, np.ndarray, np.ndarray],
    ) -> None:
        data, ind_theta, col_theta = study
        with pytest.raises(ValueError, match="reference model"):
            lr_test(data, ["Min", "IRF"], parms, ind_theta, col_theta)

    def test_unknown_model_rejected(
        self,
        parms: ItemParameterSet,
        study: tuple[ResponseMatrix, np.ndarray, np.ndarray],
    ) -> None:
        data, ind_theta, col_theta = study
        with pytest.raises(UnknownModelError):
            lr_test(data, ["Mid"], parms, ind_theta, col_theta)

    def test_ind_theta_needs_two_entries_per_pair(
        self,
        parms: ItemParameterSet,
        study: tuple[ResponseMatrix, np.ndarray, np.ndarray],
    ) -> None:
        data, ind_theta, col_theta = study
        with pytest.raises(ValueError, match="two members per pair"):
            lr_test(data, ["Min"], parms, ind_theta[:-1], col_theta)


class TestBootstrapCalibration:
    def test_summaries_are_well_formed(
        self,
        parms: ItemParameterSet,
        study: tuple[ResponseMatrix, np.ndarray, np.ndarray],
        config: EstimationConfig,
    ) -> None:
        data, ind_theta, col_theta = study
        bootstrap = BootstrapConfig(n_boot=40, seed=3)
        frame = lr_test(
            data,
            ["Min"],
            parms,
            ind_theta,
            col_theta,
            bootstrap=bootstrap,
            config=config,
        )[ModelLabel.MIN]

        assert (frame["n_valid"] > 0).all()
        assert (frame["n_valid"] <= 40).all()
        assert (frame["ci_lower"] <= frame["ci_upper"]).all()
        assert frame["p_obs"].between(0, 1).all()

    def test_same_seed_reproduces(
        self,
        parms: ItemParameterSet,
        study: tuple[ResponseMatrix, np.ndarray, np.ndarray],
        config: EstimationConfig,
    ) -> None:
        data, ind_theta, col_theta = study
        bootstrap = BootstrapConfig(n_boot=25, seed=99)

        first = lr_test(
            data, ["Ind"], parms, ind_theta, col_theta, bootstrap, config
        )
        second = lr_test(
            data, ["Ind"], parms, ind_theta, col_theta, bootstrap, config
        )
        pd.testing.assert_frame_equal(
            first[ModelLabel.IND], second[ModelLabel.IND]
        )

    def test_worker_count_does_not_change_results(
        self,
        parms: ItemParameterSet,
        study: tuple[ResponseMatrix, np.ndarray, np.ndarray],
        config: EstimationConfig,
    ) -> None:
        data, ind_theta, col_theta = study
        bootstrap = BootstrapConfig(n_boot=25, seed=5)
        pooled_config = EstimationConfig(
            parallel=ParallelConfig(n_jobs=2, backend="threading"),
            model_version="test",
        )

        serial = lr_test(
            data,
            ["Min", "Max"],
            parms,
            ind_theta,
            col_theta,
            bootstrap,
            config,
        )
        pooled = lr_test(
            data,
            ["Min", "Max"],
            parms,
            ind_theta,
            col_theta,
            bootstrap,
            pooled_config,
        )
        for label in (ModelLabel.MIN, ModelLabel.MAX):
            pd.testing.assert_frame_equal(serial[label], pooled[label])

    def test_models_draw_independent_streams(
        self,
        parms: ItemParameterSet,
        study: tuple[ResponseMatrix, np.ndarray, np.ndarray],
        config: EstimationConfig,
    ) -> None:
        """Adding a model leaves the other model's results unchanged."""
        data, ind_theta, col_theta = study
        bootstrap = BootstrapConfig(n_boot=25, seed=8)

        alone = lr_test(
            data, ["Min"], parms, ind_theta, col_theta, bootstrap, config
        )
        together = lr_test(
            data, ["Min", "AI"], parms, ind_theta, col_theta, bootstrap, config
        )
        pd.testing.assert_frame_equal(
            alone[ModelLabel.MIN], together[ModelLabel.MIN]
        )

    def test_model_position_does_not_change_its_stream(
        self,
        parms: ItemParameterSet,
        study: tuple[ResponseMatrix, np.ndarray, np.ndarray],
        config: EstimationConfig,
    ) -> None:
        """A model tested after others matches the same model tested alone."""
        data, ind_theta, col_theta = study
        bootstrap = BootstrapConfig(n_boot=25, seed=8)

        alone = lr_test(
            data, ["Max"], parms, ind_theta, col_theta, bootstrap, config
        )
        after = lr_test(
            data,
            ["Min", "AI", "Max"],
            parms,
            ind_theta,
            col_theta,
            bootstrap,
            config,
        )
        pd.testing.assert_frame_equal(
            alone[ModelLabel.MAX], after[ModelLabel.MAX]
        )
