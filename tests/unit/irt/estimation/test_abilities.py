"""
Tests for single-ability (2PL) estimation.
"""

import numpy as np
import pytest

from dyad_analysis.core.data_models import ResponseMatrix
from dyad_analysis.core.parallel import ParallelConfig
from dyad_analysis.core.utils import get_rng
from dyad_analysis.irt.enums import ScoringMethod
from dyad_analysis.irt.estimation import abilities
from dyad_analysis.irt.estimation.abilities import ml_irf
from dyad_analysis.irt.estimation.config import EstimationConfig
from dyad_analysis.irt.likelihood import log_likelihood
from dyad_analysis.irt.parameters import ItemParameterSet
from dyad_analysis.irt.response_functions import information
from dyad_analysis.irt.sampling import simulate_responses


@pytest.fixture
def parms() -> ItemParameterSet:
    return ItemParameterSet.from_arrays(
        alpha=np.ones(30), beta=np.zeros(30)
    )


@pytest.fixture
def config() -> EstimationConfig:
    return EstimationConfig(model_version="test")


class TestMLIRF:
    @pytest.mark.parametrize("true_theta", [-2.0, 0.0, 2.0])
    def test_estimate_beats_true_ability(
        self,
        true_theta: float,
        parms: ItemParameterSet,
        config: EstimationConfig,
    ) -> None:
        """The maximized log-likelihood is at least that at the truth."""
        theta = np.full(20, true_theta)
        data = ResponseMatrix(
            simulate_responses("IRF", parms, theta, rng=get_rng(7))
        )
        est = ml_irf(data, parms, config)
        at_truth = log_likelihood("IRF", data, parms, theta)

        interior = ~est.at_bound
        assert interior.any()
        assert np.all(est.log_likelihood >= at_truth - 1e-8)

    def test_se_matches_test_information(
        self, parms: ItemParameterSet, config: EstimationConfig
    ) -> None:
        """For the 2PL observed and expected information coincide."""
        responses = np.zeros((1, 30), np.int8)
        responses[0, :12] = 1
        est = ml_irf(ResponseMatrix(responses), parms, config)

        expected_se = 1 / np.sqrt(information(parms, est.theta))
        np.testing.assert_allclose(est.se, expected_se, rtol=1e-3)
        # 12 of 30 correct on identical items: theta = log(12 / 18)
        np.testing.assert_allclose(est.theta, [np.log(12 / 18)], atol=1e-4)

    def test_perfect_score_sits_on_bound(
        self, parms: ItemParameterSet, config: EstimationConfig
    ) -> None:
        data = ResponseMatrix(
            np.vstack([np.ones(30, np.int8), np.zeros(30, np.int8)])
        )
        est = ml_irf(data, parms, config)

        lo, hi = config.bounds.theta
        np.testing.assert_allclose(est.theta, [hi, lo], atol=1e-3)
        assert est.at_bound.all()
        assert np.all(np.isfinite(est.log_likelihood))

    def test_wle_pulls_perfect_score_inside(
        self, config: EstimationConfig
    ) -> None:
        """On n identical items WLE solves p = (n + 0.5) / (n + 1)."""
        parms = ItemParameterSet.from_arrays(
            alpha=np.ones(5), beta=np.zeros(5)
        )
        data = ResponseMatrix(np.ones((1, 5), np.int8))
        est = ml_irf(data, parms, config, method=ScoringMethod.WLE)

        assert not est.at_bound[0]
        np.testing.assert_allclose(est.theta, [np.log(5.5 / 0.5)], atol=1e-4)

    def test_missing_and_zero_weight_cells_are_ignored(
        self, parms: ItemParameterSet, config: EstimationConfig
    ) -> None:
        responses = np.zeros((1, 30), np.int8)
        responses[0, :12] = 1
        dropped = responses.copy()
        dropped[0, 20:] = -1
        weights = np.ones(30)
        weights[20:] = 0.0

        by_missing = ml_irf(ResponseMatrix(dropped), parms, config)
        by_weight = ml_irf(
            ResponseMatrix(responses), parms, config, weights=weights
        )
        np.testing.assert_allclose(by_missing.theta, by_weight.theta)
        np.testing.assert_allclose(
            by_missing.log_likelihood, by_weight.log_likelihood
        )

    def test_row_without_data_is_not_converged(
        self, parms: ItemParameterSet, config: EstimationConfig
    ) -> None:
        responses = np.zeros((3, 30), np.int8)
        responses[0, :12] = 1
        responses[1] = -1
        weights = np.ones((3, 30))
        weights[2] = 0.0
        est = ml_irf(ResponseMatrix(responses), parms, config, weights=weights)

        np.testing.assert_array_equal(est.converged, [True, False, False])
        assert np.all(np.isnan(est.se[1:]))

    def test_chunked_pool_matches_in_process(
        self,
        parms: ItemParameterSet,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(abilities, "ROWS_PER_TASK", 7)
        theta = get_rng(3).normal(0, 1, 40)
        data = ResponseMatrix(
            simulate_responses("IRF", parms, theta, rng=get_rng(4))
        )

        serial = ml_irf(data, parms, EstimationConfig(model_version="test"))
        pooled = ml_irf(
            data,
            parms,
            EstimationConfig(
                parallel=ParallelConfig(n_jobs=2, backend="threading"),
                model_version="test",
            ),
        )
        np.testing.assert_array_equal(serial.theta, pooled.theta)
        np.testing.assert_array_equal(serial.se, pooled.se)

    def test_output_table(
        self, parms: ItemParameterSet, config: EstimationConfig
    ) -> None:
        data = ResponseMatrix(np.zeros((3, 30), np.int8))
        table = ml_irf(data, parms, config).to_frame()
        assert list(table.columns) == [
            "log_likelihood",
            "theta",
            "se",
            "at_bound",
            "converged",
        ]
        assert len(table) == 3

    def test_item_count_mismatch_raises(
        self, parms: ItemParameterSet, config: EstimationConfig
    ) -> None:
        data = ResponseMatrix(np.zeros((2, 5), np.int8))
        with pytest.raises(ValueError, match="5 items"):
            ml_irf(data, parms, config)
