"""
Simulated pair data and preset scenarios.
"""

from dyad_analysis.simulation.config import (
    ItemBankConfig,
    MixtureScenarioConfig,
    PairScenarioConfig,
)
from dyad_analysis.simulation.presets import (
    get_available_presets,
    get_preset,
    load_config,
)
from dyad_analysis.simulation.scenarios import (
    MixtureSample,
    PairScenario,
    combine_forms,
    make_item_bank,
    simulate_mixture,
    simulate_mixture_scenario,
    simulate_pair_scenario,
)

__all__ = [
    "ItemBankConfig",
    "MixtureSample",
    "MixtureScenarioConfig",
    "PairScenario",
    "PairScenarioConfig",
    "combine_forms",
    "get_available_presets",
    "get_preset",
    "load_config",
    "make_item_bank",
    "simulate_mixture",
    "simulate_mixture_scenario",
    "simulate_pair_scenario",
]
