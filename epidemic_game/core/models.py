from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

EffectOperator = Literal[
    "adjustR",
    "scaleR",
    "setR",
    "adjustHospitalCapacity",
    "adjustImportedCases",
    "adjustInfected",
]
VictoryKind = Literal["totalCostAbove", "cumulativeCostAbove", "daysElapsedAtLeast", "infectedAtMost"]
CountDistribution = Literal["negative_binomial", "poisson", "deterministic"]
EngineStatus = Literal["active", "concluded"]

MAX_REPRODUCTION_RATE = 100.0


class StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class FrozenModel(StrictModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)


class CostSettings(FrozenModel):
    hospitalization_rate: float = Field(default=0.1, alias="hospitalizationRate", ge=0, le=1)
    cost_per_hospitalization: float = Field(default=50_000.0, alias="costPerHospitalization", ge=0)
    value_of_statistical_life: float = Field(default=1e7, alias="valueOfStatisticalLife", ge=0)
    lockdown_output_loss: float = Field(default=0.2, alias="lockdownOutputLoss", ge=0, le=1)
    lockdown_cost_exponent: float = Field(default=10.0, alias="lockdownCostExponent", gt=0, le=50)


class Indicators(FrozenModel):
    num_infected: int = Field(alias="numInfected", ge=0)
    num_dead: float = Field(default=0.0, alias="numDead", ge=0)
    total_population: int = Field(alias="totalPopulation", gt=0)
    hospital_capacity: float = Field(alias="hospitalCapacity", ge=0)
    reproduction_rate: float = Field(alias="r", ge=0, le=MAX_REPRODUCTION_RATE)
    imported_cases_per_day: float = Field(default=0.0, alias="importedCasesPerDay", ge=0)
    economic_costs: float = Field(default=0.0, alias="economicCosts")
    medical_costs: float = Field(default=0.0, alias="medicalCosts")
    death_costs: float = Field(default=0.0, alias="deathCosts")
    total_cost: float = Field(default=0.0, alias="totalCost")

    @model_validator(mode="after")
    def validate_infected_within_population(self) -> "Indicators":
        if self.num_infected > self.total_population:
            raise ValueError("numInfected cannot exceed totalPopulation.")
        return self


class EffectOp(FrozenModel):
    op: EffectOperator
    value: float

    @model_validator(mode="before")
    @classmethod
    def from_operator_object(cls, data: Any) -> Any:
        # Content files write effects as single-operator objects: {"adjustR": -0.03}
        if isinstance(data, dict) and "op" not in data:
            if len(data) != 1:
                raise ValueError("Effect must contain exactly one operator.")
            (op, value), = data.items()
            return {"op": op, "value": value}
        return data


class PlayerActions(FrozenModel):
    containment_policies: tuple[str, ...] = Field(default=(), alias="containmentPolicies")
    capability_improvements: tuple[str, ...] = Field(default=(), alias="capabilityImprovements")


class ContainmentPolicy(FrozenModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str = ""
    immediate_effects: tuple[EffectOp, ...] = Field(default=(), alias="immediateEffect")
    recurring_effects: tuple[EffectOp, ...] = Field(default=(), alias="recurringEffect")


class CapabilityImprovement(FrozenModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str = ""
    immediate_effects: tuple[EffectOp, ...] = Field(default=(), alias="immediateEffect")
    recurring_effects: tuple[EffectOp, ...] = Field(default=(), alias="recurringEffect")


class RandomEvent(FrozenModel):
    name: str = Field(min_length=1)
    description: str = ""
    probability: float = Field(ge=0, le=1)
    min_days_before_appear: int = Field(default=0, alias="minDaysBeforeAppear", ge=0)
    happens_once: bool = Field(default=True, alias="happensOnce")
    immediate_effects: tuple[EffectOp, ...] = Field(default=(), alias="immediateEffect")


class VictoryCondition(FrozenModel):
    id: str = Field(min_length=1)
    description: str = ""
    kind: VictoryKind
    threshold: float
    min_days: int = Field(default=0, alias="minDays", ge=0)


class Scenario(FrozenModel):
    name: str = Field(default="Unnamed scenario", min_length=1)
    total_population: int = Field(alias="totalPopulation", gt=0)
    initial_num_infected: int = Field(alias="initialNumInfected", ge=0)
    r0: float = Field(gt=0, le=MAX_REPRODUCTION_RATE)
    mortality: float = Field(ge=0, le=1)
    hospital_capacity: float = Field(alias="hospitalCapacity", ge=0)
    imported_cases_per_day: float = Field(default=0.0, alias="importedCasesPerDay", ge=0)
    gdp_per_day: float = Field(default=0.0, alias="gdpPerDay", ge=0)
    distribution: CountDistribution = "negative_binomial"
    dispersion: float = Field(default=50.0, gt=0)
    costs: CostSettings = Field(default_factory=CostSettings)
    containment_policies: tuple[ContainmentPolicy, ...] = Field(default=(), alias="containmentPolicies")
    capability_improvements: tuple[CapabilityImprovement, ...] = Field(default=(), alias="capabilityImprovements")
    random_events: tuple[RandomEvent, ...] = Field(default=(), alias="randomEvents")
    victory_conditions: tuple[VictoryCondition, ...] = Field(default=(), alias="victoryConditions")

    @model_validator(mode="after")
    def validate_references(self) -> "Scenario":
        if self.initial_num_infected > self.total_population:
            raise ValueError("initialNumInfected cannot exceed totalPopulation.")

        seen_actions: set[str] = set()
        for action in (*self.containment_policies, *self.capability_improvements):
            if action.id in seen_actions:
                raise ValueError(f"Duplicate action id '{action.id}'.")
            seen_actions.add(action.id)

        seen_events: set[str] = set()
        for event in self.random_events:
            if event.name in seen_events:
                raise ValueError(f"Duplicate random event name '{event.name}'.")
            seen_events.add(event.name)

        seen_conditions: set[str] = set()
        for condition in self.victory_conditions:
            if condition.id in seen_conditions:
                raise ValueError(f"Duplicate victory condition id '{condition.id}'.")
            seen_conditions.add(condition.id)
        return self

    def policy_by_id(self) -> dict[str, ContainmentPolicy]:
        return {policy.id: policy for policy in self.containment_policies}

    def improvement_by_id(self) -> dict[str, CapabilityImprovement]:
        return {improvement.id: improvement for improvement in self.capability_improvements}


class WorldState(FrozenModel):
    days_elapsed: int = Field(default=0, alias="daysElapsed", ge=0)
    indicators: Indicators
    active_player_actions: PlayerActions = Field(default_factory=PlayerActions, alias="activePlayerActions")
    active_random_events: tuple[str, ...] = Field(default=(), alias="activeRandomEvents")
    fired_random_events: tuple[str, ...] = Field(default=(), alias="firedRandomEvents")
    effective_r: float | None = Field(default=None, alias="effectiveR")


class SimulatorState(FrozenModel):
    scenario: Scenario
    current_state: WorldState = Field(alias="currentState")
    history: tuple[WorldState, ...] = ()
    status: EngineStatus = "active"

    @property
    def turn(self) -> int:
        return len(self.history)

    def timeline(self) -> tuple[WorldState, ...]:
        return (*self.history, self.current_state)


class NextTurnState(FrozenModel):
    kind: Literal["next_turn"] = "next_turn"
    snapshot: SimulatorState
    new_random_events: tuple[RandomEvent, ...] = Field(default=(), alias="newRandomEvents")


class VictoryState(FrozenModel):
    kind: Literal["victory"] = "victory"
    final_snapshot: SimulatorState = Field(alias="finalSnapshot")
    score: float
    victory_condition: VictoryCondition = Field(alias="victoryCondition")


TurnResult = NextTurnState | VictoryState


def is_next_turn(result: TurnResult) -> bool:
    return result.kind == "next_turn"


def is_victory(result: TurnResult) -> bool:
    return result.kind == "victory"
