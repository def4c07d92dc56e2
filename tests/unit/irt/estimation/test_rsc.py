"""
Tests for joint RSC estimation.
"""

import numpy as np
import pytest

from dyad_analysis.core.constants import MISSING_VALUE
from dyad_analysis.core.data_models import PairResponseMatrix, ResponseMatrix
from dyad_analysis.core.parallel import ParallelConfig
from dyad_analysis.core.utils import get_rng
from dyad_analysis.irt.enums import (
    ConvergenceStatus,
    EstimationMethod,
    InformationType,
)
from dyad_analysis.irt.estimation.config import EstimationConfig
from dyad_analysis.irt.estimation.gradients import rsc_gradient
from dyad_analysis.irt.estimation.rsc import estimate_rsc, standard_errors
from dyad_analysis.irt.parameters import ItemParameterSet
from dyad_analysis.irt.sampling import (
    simulate_responses,
    simulate_rsc_responses,
)
from dyad_analysis.simulation.scenarios import combine_forms


def _make_assessment(
    n_pairs: int, u: float, seed: int
) -> tuple[PairResponseMatrix, ItemParameterSet]:
    rng = get_rng(seed)
    individual = ItemParameterSet.from_arrays(
        alpha=np.full(15, 1.2),
        beta=np.linspace(-2, 2, 15),
        item_names=[f"IND_{j:02d}" for j in range(15)],
    )
    group = ItemParameterSet.from_arrays(
        alpha=np.full(15, 1.2),
        beta=np.linspace(-1.5, 2.5, 15),
        item_names=[f"COL_{j:02d}" for j in range(15)],
    )
    theta1 = rng.normal(0, 1, n_pairs)
    theta2 = rng.normal(0, 1, n_pairs)
    ind = np.empty((2 * n_pairs, 15), np.int8)
    ind[0::2] = simulate_responses("IRF", individual, theta1, rng=rng)
    ind[1::2] = simulate_responses("IRF", individual, theta2, rng=rng)
    grp = simulate_rsc_responses(
        group, theta1, theta2, np.full(n_pairs, u), rng=rng
    )
    data = combine_forms(
        ResponseMatrix(ind, individual.item_names),
        ResponseMatrix(grp, group.item_names),
    )
    return data, individual.concat(group)


@pytest.fixture
def config() -> EstimationConfig:
    return EstimationConfig(model_version="test")


class TestEstimateRSC:
    def test_fits_are_stationary_or_on_bounds(
        self, config: EstimationConfig
    ) -> None:
        data, parms = _make_assessment(6, 0.0, seed=1)
        estimates = estimate_rsc(data, parms, config=config)

        assert estimates.n_pairs == 6
        assert estimates.model_version == "test"
        assert estimates.converged.all()
        for fit in estimates.fits:
            assert fit.gradient_norm < 1e-2
            lo, hi = config.bounds.weight_logit
            assert lo <= fit.estimate[2] <= hi

    def test_map_shrinks_weight_toward_zero(
        self, config: EstimationConfig
    ) -> None:
        data, parms = _make_assessment(8, 3.0, seed=2)
        ml = estimate_rsc(data, parms, config=config)
        tight = estimate_rsc(
            data,
            parms,
            method=EstimationMethod.MAP,
            sigma=0.1,
            config=config,
        )

        assert (
            np.abs(tight.estimates[:, 2]).mean()
            < np.abs(ml.estimates[:, 2]).mean()
        )
        assert np.all(np.abs(tight.estimates[:, 2]) < 0.5)

    def test_map_standard_errors_are_finite(
        self, config: EstimationConfig
    ) -> None:
        """The prior keeps the weight identified even at extreme data."""
        data, parms = _make_assessment(5, 8.0, seed=3)
        est = estimate_rsc(
            data,
            parms,
            method="MAP",
            sigma=1.0,
            information=InformationType.EXPECTED,
            config=config,
        )
        assert np.all(np.isfinite(est.standard_errors))

    def test_expected_information_changes_only_se(
        self, config: EstimationConfig
    ) -> None:
        data, parms = _make_assessment(4, 0.5, seed=4)
        observed = estimate_rsc(data, parms, config=config)
        expected = estimate_rsc(
            data,
            parms,
            information=InformationType.EXPECTED,
            config=config,
        )
        np.testing.assert_array_equal(
            observed.estimates, expected.estimates
        )

    def test_gradient_at_estimate_is_small(
        self, config: EstimationConfig
    ) -> None:
        """Interior fits sit at a stationary point of the log-likelihood."""
        data, parms = _make_assessment(4, 0.5, seed=5)
        mask = parms.form_mask("COL")
        est = estimate_rsc(data, parms, config=config)

        group = data.pair_rows(mask)
        for k, fit in enumerate(est.fits):
            lo, hi = config.bounds.theta
            theta = fit.estimate[:2]
            if np.any(np.isclose(theta, lo) | np.isclose(theta, hi)):
                continue
            if not -9.9 < fit.estimate[2] < 9.9:
                continue
            grad = rsc_gradient(
                fit.estimate,
                np.ascontiguousarray(data.member1[k, ~mask]),
                np.ascontiguousarray(data.member2[k, ~mask]),
                parms.alphas[~mask],
                parms.betas[~mask],
                np.ascontiguousarray(group[k]),
                parms.alphas[mask],
                parms.betas[mask],
            )
            assert np.linalg.norm(grad) < 1e-2

    def test_pooled_matches_in_process(self) -> None:
        data, parms = _make_assessment(6, 1.0, seed=6)
        serial = estimate_rsc(
            data, parms, config=EstimationConfig(model_version="test")
        )
        pooled = estimate_rsc(
            data,
            parms,
            config=EstimationConfig(
                parallel=ParallelConfig(n_jobs=3, backend="threading"),
                model_version="test",
            ),
        )
        np.testing.assert_array_equal(serial.estimates, pooled.estimates)

    def test_fully_missing_group_form_leaves_weight_at_start(
        self, config: EstimationConfig
    ) -> None:
        """With no group data only u is unidentified.

        The abilities are still pinned down by the individual form, so their
        standard errors stay finite.
        """
        data, parms = _make_assessment(2, 0.0, seed=7)
        responses = data.data.responses.copy()
        responses[:, parms.form_mask("COL")] = MISSING_VALUE
        blank = PairResponseMatrix(
            ResponseMatrix(responses, data.data.item_names)
        )

        est = estimate_rsc(blank, parms, config=config)
        np.testing.assert_allclose(est.estimates[:, 2], 0.0)
        assert np.all(np.isnan(est.standard_errors[:, 2]))
        assert np.all(np.isfinite(est.standard_errors[:, :2]))
        assert np.all(est.standard_errors[:, :2] > 0)

    def test_output_table_columns(self, config: EstimationConfig) -> None:
        data, parms = _make_assessment(3, 0.0, seed=8)
        table = estimate_rsc(data, parms, config=config).to_frame()

        assert list(table.columns) == [
            "theta1",
            "theta1_se",
            "theta2",
            "theta2_se",
            "u",
            "u_se",
            "w",
            "log_likelihood",
            "n_iterations",
            "gradient_norm",
            "status",
        ]
        assert set(table["status"]) <= {s.value for s in ConvergenceStatus}
        assert ((table["w"] > 0) & (table["w"] < 1)).all()

    def test_rejects_non_positive_sigma(
        self, config: EstimationConfig
    ) -> None:
        data, parms = _make_assessment(2, 0.0, seed=9)
        with pytest.raises(ValueError, match="sigma"):
            estimate_rsc(data, parms, method="MAP", sigma=0.0, config=config)

    def test_rejects_missing_group_form(
        self, config: EstimationConfig
    ) -> None:
        data, parms = _make_assessment(2, 0.0, seed=10)
        with pytest.raises(ValueError, match="No group-form items"):
            estimate_rsc(data, parms, group_tag="GRP", config=config)

    def test_rejects_misaligned_items(self, config: EstimationConfig) -> None:
        data, parms = _make_assessment(2, 0.0, seed=11)
        with pytest.raises(ValueError, match="item parameters"):
            estimate_rsc(data, parms.subset(list(range(10))), config=config)


class TestStandardErrors:
    def test_diagonal_inverse(self) -> None:
        np.testing.assert_allclose(
            standard_errors(np.diag([4.0, 1.0, 0.25])), [0.5, 1.0, 2.0]
        )

    def test_singular_gives_nan(self) -> None:
        assert np.isnan(standard_errors(np.zeros((3, 3)))).all()

    def test_zero_row_is_dropped_before_inverting(self) -> None:
        m = np.array([[4.0, 1.0, 0.0], [1.0, 2.0, 0.0], [0.0, 0.0, 0.0]])
        se = standard_errors(m)

        covariance = np.linalg.inv(m[:2, :2])
        np.testing.assert_allclose(se[:2], np.sqrt(np.diag(covariance)))
        assert np.isnan(se[2])

    def test_non_finite_gives_nan(self) -> None:
        m = np.eye(3)
        m[0, 0] = np.inf
        assert np.isnan(standard_errors(m)).all()

    def test_negative_variance_is_nan(self) -> None:
        se = standard_errors(np.diag([1.0, -1.0, 4.0]))
        np.testing.assert_allclose(se[[0, 2]], [1.0, 0.5])
        assert np.isnan(se[1])
