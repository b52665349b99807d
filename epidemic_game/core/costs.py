"""Dollar costs of an epidemic turn.

All functions are pure. Inputs are assumed to be non-negative finite numbers;
negative or NaN values are not checked and simply propagate into the result.
"""

from __future__ import annotations

from dataclasses import dataclass

from .models import CostSettings

DEFAULT_COSTS = CostSettings()


@dataclass(frozen=True, slots=True)
class CostBreakdown:
    medical: float
    economic: float
    death: float
    total: float


def medical_cost(num_infected: float, settings: CostSettings = DEFAULT_COSTS) -> float:
    num_hospitalizations = num_infected * settings.hospitalization_rate
    return num_hospitalizations * settings.cost_per_hospitalization


def death_cost(num_dead: float, settings: CostSettings = DEFAULT_COSTS) -> float:
    return num_dead * settings.value_of_statistical_life


def lockdown_scale_factor(gdp_per_day: float, settings: CostSettings = DEFAULT_COSTS) -> float:
    """Daily output lost at a full lockdown."""
    return gdp_per_day * settings.lockdown_output_loss


def economic_cost(
    r: float,
    r0: float,
    scale_factor: float,
    days_elapsed: float,
    settings: CostSettings = DEFAULT_COSTS,
) -> float:
    if r >= r0:
        return 0.0
    exponent = settings.lockdown_cost_exponent
    baseline = r0**exponent
    return scale_factor * (baseline - r**exponent) / baseline * days_elapsed


def compute_costs(
    num_infected: float,
    num_dead: float,
    r: float,
    r0: float,
    scale_factor: float,
    days_elapsed: float,
    settings: CostSettings = DEFAULT_COSTS,
) -> CostBreakdown:
    medical = medical_cost(num_infected, settings)
    economic = economic_cost(r, r0, scale_factor, days_elapsed, settings)
    death = death_cost(num_dead, settings)
    return CostBreakdown(medical=medical, economic=economic, death=death, total=medical + economic + death)


def total_cost(
    num_infected: float,
    num_dead: float,
    r: float,
    r0: float,
    scale_factor: float,
    days_elapsed: float,
    settings: CostSettings = DEFAULT_COSTS,
) -> float:
    return compute_costs(num_infected, num_dead, r, r0, scale_factor, days_elapsed, settings).total
