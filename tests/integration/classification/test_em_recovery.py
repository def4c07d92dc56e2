"""
Integration test for EM classification of a known model mixture.

Uses the em_mixture preset (400 pairs, 100 items, uniform mixture of
Ind, Min, Max and AI) with the true abilities plugged in.
"""

import numpy as np
import pytest

from dyad_analysis.classification import (
    EMClassifier,
    assignment_accuracy,
    classification_confidence,
    confusion_table,
    screening_weights,
)
from dyad_analysis.irt.enums import ConvergenceStatus
from dyad_analysis.simulation.config import MixtureScenarioConfig
from dyad_analysis.simulation.presets import get_preset
from dyad_analysis.simulation.scenarios import simulate_mixture_scenario


@pytest.mark.slow
def test_em_recovers_mixture() -> None:
    config = get_preset("em_mixture")
    assert isinstance(config, MixtureScenarioConfig)
    sample = simulate_mixture_scenario(config)

    result = EMClassifier().fit(
        sample.responses, sample.parms, sample.theta1, sample.theta2
    )

    assert result.status == ConvergenceStatus.CONVERGED
    assert np.all(np.diff(result.trace) >= -1e-9)

    accuracy = assignment_accuracy(result, sample.labels)
    print(f"\nPrior: {result.prior.round(3).to_dict()}")
    print(f"Accuracy: {accuracy:.3f}")
    print(confusion_table(result, sample.labels))
    assert accuracy > 0.6
    np.testing.assert_allclose(result.prior, 0.25, atol=0.12)

    confidence = classification_confidence(result)
    assert (confidence > 0.5).all()


@pytest.mark.slow
def test_screened_em_still_classifies() -> None:
    """Dropping uninformative items leaves a usable classifier."""
    config = get_preset("em_mixture")
    assert isinstance(config, MixtureScenarioConfig)
    sample = simulate_mixture_scenario(config)

    weights = screening_weights(
        sample.parms, sample.theta1, sample.theta2, cutoff=0.01
    )
    result = EMClassifier().fit(
        sample.responses,
        sample.parms,
        sample.theta1,
        sample.theta2,
        weights=weights,
    )

    assert 0 < weights.mean() < 1
    assert result.prior.sum() == pytest.approx(1.0)
    assert assignment_accuracy(result, sample.labels) > 0.4
