class UnknownModelError(ValueError):
    """Raised when a model label is outside the closed set of models."""

    def __init__(self, label: object, valid: list[str]) -> None:
        self.label = label
        self.valid = valid
        super().__init__(f"Unknown model {label!r}: must be one of {valid}")
