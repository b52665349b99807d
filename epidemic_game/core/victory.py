from __future__ import annotations

import logging

from .models import Scenario, SimulatorState, VictoryCondition

logger = logging.getLogger(__name__)


def cumulative_cost(snapshot: SimulatorState) -> float:
    return sum(world.indicators.total_cost for world in snapshot.timeline())


def is_met(condition: VictoryCondition, snapshot: SimulatorState) -> bool:
    current = snapshot.current_state
    if current.days_elapsed < condition.min_days:
        return False

    if condition.kind == "totalCostAbove":
        return current.indicators.total_cost > condition.threshold
    if condition.kind == "cumulativeCostAbove":
        return cumulative_cost(snapshot) > condition.threshold
    if condition.kind == "daysElapsedAtLeast":
        return current.days_elapsed >= condition.threshold
    if condition.kind == "infectedAtMost":
        return current.indicators.num_infected <= condition.threshold

    raise ValueError(f"Unsupported victory condition kind '{condition.kind}'.")


def evaluate(scenario: Scenario, snapshot: SimulatorState) -> VictoryCondition | None:
    for condition in scenario.victory_conditions:
        if is_met(condition, snapshot):
            logger.debug("Victory condition '%s' met on day %d.", condition.id, snapshot.current_state.days_elapsed)
            return condition
    return None
