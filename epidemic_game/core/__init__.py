"""Epidemic simulation core: turn engine, cost model, case sampling."""

from .costs import CostBreakdown, compute_costs, death_cost, economic_cost, medical_cost, total_cost
from .engine import InvalidStateError, TurnEngine, cap_effective_r, run_turns
from .loader import ScenarioValidationError, default_scenario, load_scenario, parse_scenario
from .models import (
    CapabilityImprovement,
    ContainmentPolicy,
    CostSettings,
    Indicators,
    NextTurnState,
    PlayerActions,
    RandomEvent,
    Scenario,
    SimulatorState,
    VictoryCondition,
    VictoryState,
    WorldState,
    is_next_turn,
    is_victory,
)
from .rng import SimulationRNG
from .sampler import CaseGenerator
from .settings import EngineSettings

__all__ = [
    "CapabilityImprovement",
    "CaseGenerator",
    "ContainmentPolicy",
    "CostBreakdown",
    "CostSettings",
    "EngineSettings",
    "Indicators",
    "InvalidStateError",
    "NextTurnState",
    "PlayerActions",
    "RandomEvent",
    "Scenario",
    "ScenarioValidationError",
    "SimulationRNG",
    "SimulatorState",
    "TurnEngine",
    "VictoryCondition",
    "VictoryState",
    "WorldState",
    "cap_effective_r",
    "compute_costs",
    "death_cost",
    "default_scenario",
    "economic_cost",
    "is_next_turn",
    "is_victory",
    "load_scenario",
    "medical_cost",
    "parse_scenario",
    "run_turns",
    "total_cost",
]
