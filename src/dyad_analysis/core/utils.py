"""
Core utility functions shared across analysis modules.

This module provides foundational utilities used by the IRT models, the
bootstrap machinery and the simulation layer.
"""

import numpy as np
from numpy.random import Generator, SeedSequence
from numpy.typing import ArrayLike, NDArray


def get_rng(seed: int | SeedSequence | None = None) -> Generator:
    """
    Create a numpy random Generator with optional seed.

    Args:
        seed: Random seed (or SeedSequence) for reproducibility.
            If None, uses entropy.

    Returns:
        A numpy random Generator instance.
    """
    return np.random.default_rng(seed)


def spawn_seed_sequences(
    seed: int | SeedSequence | None, n: int
) -> list[SeedSequence]:
    """
    Derive `n` statistically independent seed sequences from one seed.

    Each child drives its own Generator, so tasks that draw random numbers
    can run in any order (or in separate processes) without sharing a
    stream.

    Args:
        seed: Root seed. If None, the root sequence uses fresh entropy.
        n: Number of child sequences.

    Returns:
        List of `n` child SeedSequence objects.
    """
    root = seed if isinstance(seed, SeedSequence) else SeedSequence(seed)
    return root.spawn(n)


def as_ability_array(
    theta: ArrayLike | None, n_rows: int, name: str = "theta"
) -> NDArray[np.float64] | None:
    """
    Coerce an ability argument to a float64 vector of length `n_rows`.

    Scalars broadcast to every row. NaN marks a missing ability.

    Raises:
        ValueError: If the vector length does not match `n_rows`.
    """
    if theta is None:
        return None
    arr = np.asarray(theta, dtype=np.float64)
    if arr.ndim == 0:
        return np.full(n_rows, float(arr), dtype=np.float64)
    arr = arr.reshape(-1)
    if arr.shape[0] != n_rows:
        raise ValueError(
            f"{name} must have length {n_rows}, got {arr.shape[0]}"
        )
    return arr
