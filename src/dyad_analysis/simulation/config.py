from dataclasses import dataclass, field

from omegaconf import MISSING

from dyad_analysis.irt.enums import COLLABORATION_MODELS, ModelLabel

PAIR_SCENARIO = "pair"
MIXTURE_SCENARIO = "mixture"

BETA_LINSPACE = "linspace"
BETA_SORTED_UNIFORM = "sorted_uniform"


@dataclass
class ItemBankConfig:
    """Configuration for a simulated 2PL item bank.

    Attributes:
        n_items: Number of items.
        alpha: Common discrimination of every item.
        beta_lower: Lower end of the difficulty range.
        beta_upper: Upper end of the difficulty range.
        beta_spacing: "linspace" (evenly spaced) or "sorted_uniform"
            (sorted U(lower, upper) draws).
    """

    n_items: int = 20
    alpha: float = 1.0
    beta_lower: float = -2.0
    beta_upper: float = 2.0
    beta_spacing: str = BETA_LINSPACE

    def __post_init__(self) -> None:
        if self.n_items <= 0:
            raise ValueError("Must have at least 1 item")
        if self.alpha <= 0:
            raise ValueError(f"alpha must be positive, got {self.alpha}")
        if not self.beta_lower < self.beta_upper:
            raise ValueError("beta_lower must be below beta_upper")
        if self.beta_spacing not in (BETA_LINSPACE, BETA_SORTED_UNIFORM):
            raise ValueError(f"Unknown beta_spacing: {self.beta_spacing}")


@dataclass
class PairScenarioConfig:
    """Pairs responding under one known collaboration model.

    Each member also takes an individual form built from the same item
    bank, so individual abilities can be estimated.

    Attributes:
        n_pairs: Number of pairs.
        model: Generating collaboration model (Ind, Min, Max or AI).
        items: Item bank shared by the individual and group forms.
        ability_mean: Mean of the member ability distribution.
        ability_std: Standard deviation of the member abilities.
        random_seed: Seed for abilities and responses.
    """

    n_pairs: int
    model: str
    items: ItemBankConfig = field(default_factory=ItemBankConfig)
    ability_mean: float = 0.0
    ability_std: float = 1.0
    random_seed: int = MISSING
    kind: str = PAIR_SCENARIO

    def __post_init__(self) -> None:
        if self.n_pairs <= 0:
            raise ValueError("Must have at least 1 pair")
        if not ModelLabel.parse(self.model).is_collaborative:
            raise ValueError(f"{self.model} is not a collaboration model")
        if self.ability_std <= 0:
            raise ValueError("ability_std must be positive")


def _default_mixture_prior() -> list[float]:
    return [1.0 / len(COLLABORATION_MODELS)] * len(COLLABORATION_MODELS)


def _default_mixture_items() -> ItemBankConfig:
    return ItemBankConfig(
        n_items=100,
        beta_lower=-3.0,
        beta_upper=3.0,
        beta_spacing=BETA_SORTED_UNIFORM,
    )


@dataclass
class MixtureScenarioConfig:
    """Pairs drawn from a known mixture of the collaboration models.

    Attributes:
        n_pairs: Number of pairs.
        prior: Class proportions in the order Ind, Min, Max, AI.
        items: Group-form item bank.
        random_seed: Seed for abilities, classes and responses.
    """

    n_pairs: int
    prior: list[float] = field(default_factory=_default_mixture_prior)
    items: ItemBankConfig = field(default_factory=_default_mixture_items)
    random_seed: int = MISSING
    kind: str = MIXTURE_SCENARIO

    def __post_init__(self) -> None:
        if self.n_pairs <= 0:
            raise ValueError("Must have at least 1 pair")
        if len(self.prior) != len(COLLABORATION_MODELS):
            raise ValueError(
                f"prior needs {len(COLLABORATION_MODELS)} proportions"
            )
        if any(p < 0 for p in self.prior) or abs(sum(self.prior) - 1) > 1e-8:
            raise ValueError("prior must be non-negative and sum to 1")
