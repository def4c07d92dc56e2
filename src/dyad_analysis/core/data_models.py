"""
Data models for binary item-response data.

This module defines the data structures for:
- ResponseMatrix: one row of binary responses per respondent (or per pair)
- PairResponseMatrix: two consecutive rows per dyad
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from dyad_analysis.core.constants import CORRECT, INCORRECT, MISSING_VALUE


@dataclass(frozen=True)
class ResponseMatrix:
    """
    Binary response data aligned to an item parameter set.

    Attributes:
        responses: Array of shape (n_rows, n_items) containing 0 (incorrect),
            1 (correct) or MISSING_VALUE (absent).
        item_names: Optional column names, one per item.
    """

    responses: NDArray[np.int8]
    item_names: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        """Validate response matrix."""
        if self.responses.ndim != 2:
            raise ValueError(
                f"responses must be 2D, got shape {self.responses.shape}"
            )
        allowed = np.isin(
            self.responses, (INCORRECT, CORRECT, MISSING_VALUE)
        )
        if not allowed.all():
            bad = np.unique(self.responses[~allowed])
            raise ValueError(
                f"Response values must be 0, 1 or {MISSING_VALUE}, "
                f"got {bad.tolist()}"
            )
        if (
            self.item_names is not None
            and len(self.item_names) != self.n_items
        ):
            raise ValueError(
                f"Expected {self.n_items} item names, "
                f"got {len(self.item_names)}"
            )

    @property
    def n_rows(self) -> int:
        """Number of response rows."""
        return self.responses.shape[0]

    @property
    def n_items(self) -> int:
        """Number of items (columns)."""
        return self.responses.shape[1]

    @property
    def missing_mask(self) -> NDArray[np.bool_]:
        """Boolean mask where True indicates missing response."""
        result: NDArray[np.bool_] = self.responses == MISSING_VALUE
        return result

    @property
    def valid_mask(self) -> NDArray[np.bool_]:
        """Boolean mask where True indicates an observed response."""
        result: NDArray[np.bool_] = self.responses != MISSING_VALUE
        return result

    def select_items(self, mask: NDArray[np.bool_]) -> "ResponseMatrix":
        """Return a ResponseMatrix restricted to the masked columns."""
        mask = np.asarray(mask, dtype=bool)
        if mask.shape != (self.n_items,):
            raise ValueError(
                f"mask must have shape ({self.n_items},), got {mask.shape}"
            )
        names = None
        if self.item_names is not None:
            names = tuple(n for n, keep in zip(self.item_names, mask) if keep)
        return ResponseMatrix(
            responses=self.responses[:, mask], item_names=names
        )

    def select_rows(self, rows: NDArray[np.intp]) -> "ResponseMatrix":
        """Return a ResponseMatrix restricted to the given row indices."""
        return ResponseMatrix(
            responses=self.responses[rows, :], item_names=self.item_names
        )

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> "ResponseMatrix":
        """
        Build a ResponseMatrix from a table with one column per item.

        NaN cells become MISSING_VALUE.
        """
        values = df.to_numpy(dtype=np.float64)
        responses = np.where(np.isnan(values), MISSING_VALUE, values)
        return cls(
            responses=responses.astype(np.int8),
            item_names=tuple(str(c) for c in df.columns),
        )

    def to_frame(self) -> pd.DataFrame:
        """Return the responses as a DataFrame with NaN for missing cells."""
        values = self.responses.astype(np.float64)
        values[self.missing_mask] = np.nan
        columns = (
            list(self.item_names)
            if self.item_names is not None
            else [f"item_{j}" for j in range(self.n_items)]
        )
        return pd.DataFrame(values, columns=columns)


@dataclass(frozen=True)
class PairResponseMatrix:
    """
    Responses for dyads, two consecutive rows per pair.

    Row 2k is member 1 and row 2k+1 is member 2 of pair k. Group-form
    columns carry the (conjunctively scored) pair response on both rows;
    individual-form columns differ by member.

    Attributes:
        data: Underlying response matrix with an even number of rows.
    """

    data: ResponseMatrix

    def __post_init__(self) -> None:
        if self.data.n_rows % 2 != 0:
            raise ValueError(
                f"Pair data needs an even number of rows, "
                f"got {self.data.n_rows}"
            )

    @property
    def n_pairs(self) -> int:
        """Number of dyads."""
        return self.data.n_rows // 2

    @property
    def n_items(self) -> int:
        return self.data.n_items

    @property
    def member1(self) -> NDArray[np.int8]:
        """Responses of the first member of each pair, (n_pairs, n_items)."""
        result: NDArray[np.int8] = self.data.responses[0::2, :]
        return result

    @property
    def member2(self) -> NDArray[np.int8]:
        """Responses of the second member of each pair, (n_pairs, n_items)."""
        result: NDArray[np.int8] = self.data.responses[1::2, :]
        return result

    def pair_rows(self, mask: NDArray[np.bool_]) -> NDArray[np.int8]:
        """
        Collapse the masked (group-form) columns to one row per pair.

        Uses member 1's entry, falling back to member 2's where member 1's
        is missing.

        Returns:
            Array of shape (n_pairs, mask.sum()).
        """
        first = self.member1[:, mask]
        second = self.member2[:, mask]
        result: NDArray[np.int8] = np.where(
            first == MISSING_VALUE, second, first
        ).astype(np.int8)
        return result
