"""
Preset simulation scenarios.

Presets are YAML files under `params/`. Each file names its scenario
`kind` ("pair" or "mixture") and is merged onto the matching structured
config, so omitted keys take the dataclass defaults.
"""

from pathlib import Path

from omegaconf import OmegaConf

from dyad_analysis.simulation.config import (
    MIXTURE_SCENARIO,
    PAIR_SCENARIO,
    MixtureScenarioConfig,
    PairScenarioConfig,
)

PARAMS_DIR = Path(__file__).parent / "params"

ScenarioConfig = PairScenarioConfig | MixtureScenarioConfig

_SCHEMAS: dict[str, type[ScenarioConfig]] = {
    PAIR_SCENARIO: PairScenarioConfig,
    MIXTURE_SCENARIO: MixtureScenarioConfig,
}


def load_config(yaml_path: Path) -> ScenarioConfig:
    """Load and validate a scenario from YAML.

    Args:
        yaml_path: Path to YAML config file

    Returns:
        Validated PairScenarioConfig or MixtureScenarioConfig

    Raises:
        FileNotFoundError: If yaml_path doesn't exist
        ValueError: If the scenario kind is unknown or a value is invalid
    """
    if not yaml_path.exists():
        raise FileNotFoundError(f"Config file not found: {yaml_path}")

    user_config = OmegaConf.load(yaml_path)
    kind = user_config.get("kind", PAIR_SCENARIO)
    if kind not in _SCHEMAS:
        raise ValueError(
            f"Unknown scenario kind: {kind}. Expected one of {list(_SCHEMAS)}"
        )

    schema = OmegaConf.structured(_SCHEMAS[kind])
    config = OmegaConf.merge(schema, user_config)

    result = OmegaConf.to_object(config)
    assert isinstance(result, (PairScenarioConfig, MixtureScenarioConfig))
    return result


def get_available_presets() -> list[str]:
    return sorted(x.stem for x in PARAMS_DIR.glob("*.yaml"))


def get_preset(name: str) -> ScenarioConfig:
    """Get a preset configuration by name."""
    config_path = PARAMS_DIR / f"{name}.yaml"
    if not config_path.exists():
        available_presets = get_available_presets()
        raise ValueError(
            f"Unknown preset: {name}. Available presets: {available_presets}"
        )
    return load_config(config_path)
