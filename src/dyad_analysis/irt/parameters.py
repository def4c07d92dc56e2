"""
2PL item parameter representation.

Each item j has a discrimination alpha_j > 0 and a difficulty beta_j:
    P(correct | theta) = 1 / (1 + exp(-alpha_j * (theta - beta_j)))

Parameters are produced by an external calibration step; this module only
holds, validates and slices them. A combined assessment concatenates the
individual-form and group-form item sets in a fixed order, and item names
carry a form tag (e.g. "IND"/"COL") that `form_mask` can filter on.
"""

from collections.abc import Sequence
from typing import Self

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, model_validator


class ItemParameterSet(BaseModel):
    """
    Ordered 2PL parameters for a set of items.

    Attributes:
        item_names: Unique item identifiers, in column order.
        alpha: Discriminations, one per item, all > 0.
        beta: Difficulties, one per item.
    """

    model_config = ConfigDict(frozen=True)

    item_names: tuple[str, ...]
    alpha: tuple[float, ...]
    beta: tuple[float, ...]

    @model_validator(mode="after")
    def _validate_lengths(self) -> "ItemParameterSet":
        n = len(self.item_names)
        if n == 0:
            raise ValueError("ItemParameterSet needs at least one item")
        if len(self.alpha) != n or len(self.beta) != n:
            raise ValueError(
                f"item_names, alpha and beta must have same length, "
                f"got {n}, {len(self.alpha)} and {len(self.beta)}"
            )
        return self

    @model_validator(mode="after")
    def _validate_discriminations(self) -> "ItemParameterSet":
        bad = [
            name for name, a in zip(self.item_names, self.alpha) if not a > 0
        ]
        if bad:
            raise ValueError(f"alpha must be > 0, violated for items {bad}")
        return self

    @model_validator(mode="after")
    def _validate_unique_names(self) -> "ItemParameterSet":
        if len(set(self.item_names)) != len(self.item_names):
            raise ValueError("item_names must be unique")
        return self

    @classmethod
    def from_arrays(
        cls,
        alpha: Sequence[float] | NDArray[np.float64],
        beta: Sequence[float] | NDArray[np.float64],
        item_names: Sequence[str] | None = None,
    ) -> Self:
        """
        Build from parallel arrays. Names default to item_0, item_1, ...
        """
        alpha_t = tuple(float(a) for a in np.asarray(alpha).reshape(-1))
        beta_t = tuple(float(b) for b in np.asarray(beta).reshape(-1))
        if item_names is None:
            item_names = [f"item_{j}" for j in range(len(alpha_t))]
        return cls(
            item_names=tuple(str(n) for n in item_names),
            alpha=alpha_t,
            beta=beta_t,
        )

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> Self:
        """Build from a table with `alpha`, `beta` columns, indexed by item."""
        missing = {"alpha", "beta"} - set(df.columns)
        if missing:
            raise ValueError(
                f"Item table is missing columns {sorted(missing)}"
            )
        return cls.from_arrays(
            df["alpha"].to_numpy(dtype=np.float64),
            df["beta"].to_numpy(dtype=np.float64),
            [str(i) for i in df.index],
        )

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {"alpha": self.alpha, "beta": self.beta},
            index=pd.Index(self.item_names, name="item"),
        )

    @property
    def n_items(self) -> int:
        """Number of items."""
        return len(self.item_names)

    @property
    def alphas(self) -> NDArray[np.float64]:
        """Discriminations as a float64 array, shape (n_items,)."""
        return np.array(self.alpha, dtype=np.float64)

    @property
    def betas(self) -> NDArray[np.float64]:
        """Difficulties as a float64 array, shape (n_items,)."""
        return np.array(self.beta, dtype=np.float64)

    def form_mask(self, tag: str) -> NDArray[np.bool_]:
        """Boolean mask of items whose name contains `tag`."""
        return np.array([tag in name for name in self.item_names], dtype=bool)

    def subset(
        self, selector: NDArray[np.bool_] | Sequence[int]
    ) -> "ItemParameterSet":
        """
        Return the items picked by a boolean mask or a list of indices.

        Order follows the current item order (masks) or the index order.
        """
        selector_arr = np.asarray(selector)
        if selector_arr.dtype == bool:
            if selector_arr.shape != (self.n_items,):
                raise ValueError(
                    f"mask must have shape ({self.n_items},), "
                    f"got {selector_arr.shape}"
                )
            indices = np.flatnonzero(selector_arr)
        else:
            indices = selector_arr.astype(np.intp)
        return ItemParameterSet(
            item_names=tuple(self.item_names[i] for i in indices),
            alpha=tuple(self.alpha[i] for i in indices),
            beta=tuple(self.beta[i] for i in indices),
        )

    def concat(self, other: "ItemParameterSet") -> "ItemParameterSet":
        """Append `other`'s items after this set's items."""
        return ItemParameterSet(
            item_names=self.item_names + other.item_names,
            alpha=self.alpha + other.alpha,
            beta=self.beta + other.beta,
        )
