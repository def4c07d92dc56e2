"""
Core shared types and utilities.

This module provides foundational components used across the IRT models,
the inference and classification layers, and the simulation tooling.
"""

from dyad_analysis.core.data_models import PairResponseMatrix, ResponseMatrix
from dyad_analysis.core.utils import get_rng, spawn_seed_sequences

__all__ = [
    "PairResponseMatrix",
    "ResponseMatrix",
    "get_rng",
    "spawn_seed_sequences",
]
