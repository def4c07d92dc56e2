"""
Tests for the EM mixture classifier.
"""

import numpy as np
import pytest
from scipy.special import logsumexp

from dyad_analysis.classification.config import EMConfig
from dyad_analysis.classification.em import (
    EMClassifier,
    incomplete_data_log_likelihood,
    posterior,
    update_prior,
)
from dyad_analysis.irt.enums import ConvergenceStatus, ModelLabel
from dyad_analysis.irt.likelihood import log_likelihood
from dyad_analysis.irt.parameters import ItemParameterSet
from dyad_analysis.simulation.scenarios import simulate_mixture


@pytest.fixture
def log_l() -> np.ndarray:
    """Log-likelihoods for 4 models and 60 pairs."""
    rng = np.random.default_rng(0)
    return -rng.gamma(4.0, 3.0, size=(4, 60))


class TestSteps:
    def test_posterior_rows_sum_to_one(self, log_l: np.ndarray) -> None:
        post = posterior(log_l, np.array([0.1, 0.2, 0.3, 0.4]))
        assert post.shape == (60, 4)
        np.testing.assert_allclose(post.sum(axis=1), 1.0, rtol=1e-12)

    def test_posterior_is_bayes_rule(self) -> None:
        log_l = np.log(np.array([[0.2], [0.6]]))
        post = posterior(log_l, np.array([0.5, 0.5]))
        np.testing.assert_allclose(post, [[0.25, 0.75]])

    def test_no_underflow_on_long_forms(self) -> None:
        """Likelihoods of exp(-2000) still give a proper posterior."""
        log_l = np.array([[-2000.0], [-2001.0]])
        post = posterior(log_l, np.array([0.5, 0.5]))
        np.testing.assert_allclose(
            post, [[1 / (1 + np.exp(-1)), 1 / (1 + np.exp(1))]]
        )

    def test_zero_prior_class_gets_zero_posterior(
        self, log_l: np.ndarray
    ) -> None:
        post = posterior(log_l, np.array([0.0, 0.5, 0.5, 0.0]))
        np.testing.assert_array_equal(post[:, [0, 3]], 0.0)

    def test_update_prior_is_column_mean(self) -> None:
        post = np.array([[1.0, 0.0], [0.5, 0.5], [0.0, 1.0], [0.5, 0.5]])
        np.testing.assert_allclose(update_prior(post), [0.5, 0.5])

    def test_incomplete_data_log_likelihood(self, log_l: np.ndarray) -> None:
        prior = np.array([0.25, 0.25, 0.25, 0.25])
        expected = np.sum(
            logsumexp(log_l + np.log(prior)[:, np.newaxis], axis=0)
        )
        assert incomplete_data_log_likelihood(log_l, prior) == pytest.approx(
            expected
        )


class TestEMClassifier:
    def test_trace_starts_at_initial_prior(self, log_l: np.ndarray) -> None:
        result = EMClassifier().fit_log_likelihoods(log_l)
        uniform = np.full(4, 0.25)
        assert result.trace[0] == pytest.approx(
            incomplete_data_log_likelihood(log_l, uniform)
        )
        assert len(result.trace) == result.n_iterations + 1

    @pytest.mark.parametrize("seed", [1, 2, 3])
    def test_trace_is_non_decreasing(
        self, log_l: np.ndarray, seed: int
    ) -> None:
        start = np.random.default_rng(seed).dirichlet(np.ones(4))
        classifier = EMClassifier(config=EMConfig(tolerance=0.0))
        result = classifier.fit_log_likelihoods(log_l, initial_prior=start)
        assert np.all(np.diff(result.trace) >= -1e-9)

    def test_prior_is_a_distribution(self, log_l: np.ndarray) -> None:
        result = EMClassifier().fit_log_likelihoods(log_l)
        assert result.prior.sum() == pytest.approx(1.0)
        assert (result.prior >= 0).all()
        assert list(result.prior.index) == ["Ind", "Min", "Max", "AI"]

    def test_posterior_matches_final_prior(self, log_l: np.ndarray) -> None:
        result = EMClassifier().fit_log_likelihoods(log_l)
        np.testing.assert_allclose(
            result.posterior, posterior(log_l, result.prior.to_numpy())
        )

    def test_converges_within_tolerance(self, log_l: np.ndarray) -> None:
        result = EMClassifier(
            config=EMConfig(max_iterations=500, tolerance=1e-6)
        ).fit_log_likelihoods(log_l)
        assert result.status == ConvergenceStatus.CONVERGED
        assert result.converged
        assert result.trace[-1] - result.trace[-2] <= 1e-6

    def test_iteration_cap(self, log_l: np.ndarray) -> None:
        result = EMClassifier(
            config=EMConfig(max_iterations=2, tolerance=0.0)
        ).fit_log_likelihoods(log_l)
        assert result.n_iterations == 2
        assert result.status == ConvergenceStatus.MAX_ITERATIONS

    def test_non_finite_likelihood_fails(self) -> None:
        log_l = np.array([[-1.0, -np.inf], [-2.0, -np.inf]])
        result = EMClassifier(models=["Min", "Max"]).fit_log_likelihoods(
            log_l
        )
        assert result.status == ConvergenceStatus.FAILED

    def test_single_class_data(self) -> None:
        """When one model dominates every pair its share goes to one."""
        log_l = np.vstack([np.full(30, -5.0), np.full(30, -25.0)])
        result = EMClassifier(models=["Min", "Max"]).fit_log_likelihoods(
            log_l
        )
        assert result.prior["Min"] == pytest.approx(1.0, abs=1e-6)
        assert (result.assignments() == "Min").all()

    def test_fit_uses_likelihood_engine(self) -> None:
        parms = ItemParameterSet.from_arrays(
            alpha=np.ones(10), beta=np.linspace(-2, 2, 10)
        )
        sample = simulate_mixture(40, parms, rng=np.random.default_rng(4))
        data = sample.responses
        classifier = EMClassifier()

        result = classifier.fit(data, parms, sample.theta1, sample.theta2)
        direct = classifier.fit_log_likelihoods(
            log_likelihood(
                classifier.models, data, parms, sample.theta1, sample.theta2
            )
        )
        np.testing.assert_allclose(result.posterior, direct.posterior)
        assert result.posterior_frame().shape == (40, 4)

    def test_rejects_bad_initial_prior(self, log_l: np.ndarray) -> None:
        with pytest.raises(ValueError, match="initial_prior"):
            EMClassifier().fit_log_likelihoods(
                log_l, initial_prior=[0.5, 0.5, 0.5, 0.5]
            )

    def test_rejects_mismatched_log_l(self, log_l: np.ndarray) -> None:
        with pytest.raises(ValueError, match="log_l must have shape"):
            EMClassifier(models=[ModelLabel.MIN]).fit_log_likelihoods(log_l)

    def test_rejects_empty_model_set(self) -> None:
        with pytest.raises(ValueError, match="At least one model"):
            EMClassifier(models=[])


class TestEMConfig:
    def test_validation(self) -> None:
        with pytest.raises(ValueError, match="max_iterations"):
            EMConfig(max_iterations=0)
        with pytest.raises(ValueError, match="tolerance"):
            EMConfig(tolerance=-1.0)
