"""
IRT (Item Response Theory) module for individuals and dyads.

This module provides:
- The closed set of response models and their response functions
- A likelihood engine over binary response matrices
- Sampling functions for generating responses
- Person-parameter estimation (2PL abilities and the RSC model)
"""

from dyad_analysis.irt.enums import (
    COLLABORATION_MODELS,
    ConvergenceStatus,
    EstimationMethod,
    InformationType,
    ModelLabel,
    ScoringMethod,
)
from dyad_analysis.irt.exceptions import UnknownModelError
from dyad_analysis.irt.likelihood import log_likelihood
from dyad_analysis.irt.parameters import ItemParameterSet
from dyad_analysis.irt.response_functions import (
    additive_independence,
    get_response_function,
    independence,
    information,
    information_slope,
    irf,
    irf_derivative,
    irf_second_derivative,
    maximum,
    minimum,
    model_probabilities,
    rsc_probabilities,
)
from dyad_analysis.irt.sampling import (
    conjunctive_scores,
    simulate_responses,
    simulate_rsc_responses,
)

__all__ = [
    "COLLABORATION_MODELS",
    "ConvergenceStatus",
    "EstimationMethod",
    "InformationType",
    "ItemParameterSet",
    "ModelLabel",
    "ScoringMethod",
    "UnknownModelError",
    "additive_independence",
    "conjunctive_scores",
    "get_response_function",
    "independence",
    "information",
    "information_slope",
    "irf",
    "irf_derivative",
    "irf_second_derivative",
    "log_likelihood",
    "maximum",
    "minimum",
    "model_probabilities",
    "rsc_probabilities",
    "simulate_responses",
    "simulate_rsc_responses",
]
