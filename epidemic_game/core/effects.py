from __future__ import annotations

from typing import Callable, Iterable, TypeVar

from .models import (
    MAX_REPRODUCTION_RATE,
    CapabilityImprovement,
    ContainmentPolicy,
    EffectOp,
    Indicators,
    RandomEvent,
    WorldState,
)

PlayerAction = ContainmentPolicy | CapabilityImprovement
EffectCarrier = ContainmentPolicy | CapabilityImprovement | RandomEvent
C = TypeVar("C", ContainmentPolicy, CapabilityImprovement, RandomEvent)
EffectHook = Callable[[C, WorldState], Indicators]


def _clamp_r(value: float) -> float:
    return min(max(value, 0.0), MAX_REPRODUCTION_RATE)


def apply_effect(indicators: Indicators, effect: EffectOp) -> Indicators:
    op, value = effect.op, effect.value

    if op == "adjustR":
        return indicators.model_copy(update={"reproduction_rate": _clamp_r(indicators.reproduction_rate + value)})
    if op == "scaleR":
        return indicators.model_copy(update={"reproduction_rate": _clamp_r(indicators.reproduction_rate * value)})
    if op == "setR":
        return indicators.model_copy(update={"reproduction_rate": _clamp_r(value)})
    if op == "adjustHospitalCapacity":
        return indicators.model_copy(update={"hospital_capacity": max(indicators.hospital_capacity + value, 0.0)})
    if op == "adjustImportedCases":
        return indicators.model_copy(
            update={"imported_cases_per_day": max(indicators.imported_cases_per_day + value, 0.0)}
        )
    if op == "adjustInfected":
        infected = int(indicators.num_infected + value)
        return indicators.model_copy(
            update={"num_infected": min(max(infected, 0), indicators.total_population)}
        )

    raise ValueError(f"Unsupported effect operator '{op}'.")


def apply_effects(indicators: Indicators, effects: Iterable[EffectOp]) -> Indicators:
    for effect in effects:
        indicators = apply_effect(indicators, effect)
    return indicators


def immediate_effect(item: EffectCarrier, state: WorldState) -> Indicators:
    """Indicators after the one-off effect applied the turn ``item`` becomes active."""
    return apply_effects(state.indicators, item.immediate_effects)


def recurring_effect(item: PlayerAction, state: WorldState) -> Indicators:
    """Indicators after the per-turn effect of an action that stays active."""
    return apply_effects(state.indicators, item.recurring_effects)


def apply_in_order(state: WorldState, items: Iterable[C], hook: EffectHook) -> WorldState:
    # Each item sees the indicators produced by the one before it.
    for item in items:
        state = state.model_copy(update={"indicators": hook(item, state)})
    return state
