"""
Unsupervised classification of pairs into collaboration models.
"""

from dyad_analysis.classification.config import EMConfig
from dyad_analysis.classification.diagnostics import (
    assignment_accuracy,
    classification_confidence,
    confusion_table,
    screening_delta,
    screening_weights,
)
from dyad_analysis.classification.em import (
    EMClassifier,
    EMResult,
    incomplete_data_log_likelihood,
    posterior,
    update_prior,
)

__all__ = [
    "EMClassifier",
    "EMConfig",
    "EMResult",
    "assignment_accuracy",
    "classification_confidence",
    "confusion_table",
    "incomplete_data_log_likelihood",
    "posterior",
    "screening_delta",
    "screening_weights",
    "update_prior",
]
