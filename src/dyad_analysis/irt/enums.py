from enum import Enum

from dyad_analysis.irt.exceptions import UnknownModelError


class ModelLabel(str, Enum):
    """
    Closed set of response models.

    IRF is the single-ability 2PL; the other four combine two abilities
    into a pair's probability of a correct joint response.
    """

    IRF = "IRF"
    IND = "Ind"
    MIN = "Min"
    MAX = "Max"
    AI = "AI"

    @classmethod
    def parse(cls, value: "ModelLabel | str") -> "ModelLabel":
        """
        Resolve a label, rejecting anything outside the closed set.

        Raises:
            UnknownModelError: If `value` is not a valid model label.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError as e:
            raise UnknownModelError(value, [m.value for m in cls]) from e

    @property
    def is_collaborative(self) -> bool:
        """Whether the model needs two abilities."""
        return self is not ModelLabel.IRF


COLLABORATION_MODELS: tuple[ModelLabel, ...] = (
    ModelLabel.IND,
    ModelLabel.MIN,
    ModelLabel.MAX,
    ModelLabel.AI,
)


class ConvergenceStatus(str, Enum):
    CONVERGED = "converged"
    MAX_ITERATIONS = "max_iterations"
    FAILED = "failed"


class EstimationMethod(str, Enum):
    ML = "ML"
    MAP = "MAP"


class InformationType(str, Enum):
    OBSERVED = "observed"
    EXPECTED = "expected"


class ScoringMethod(str, Enum):
    """Single-ability scoring rule: plain ML or Warm's weighted ML."""

    ML = "ML"
    WLE = "WLE"
