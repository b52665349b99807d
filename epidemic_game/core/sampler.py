from __future__ import annotations

import math
from dataclasses import dataclass

from .models import CountDistribution, Scenario
from .rng import SimulationRNG

DEFAULT_DISPERSION = 50.0
# numpy's poisson sampler rejects rates above ~9.2e18.
MAX_EXPECTED_CASES = 1e15


def expected_new_cases(
    prev_infected: float,
    effective_r: float,
    imported_cases_per_day: float,
    fraction_susceptible: float = 1.0,
) -> float:
    return prev_infected * effective_r * fraction_susceptible + imported_cases_per_day


@dataclass(frozen=True, slots=True)
class CaseGenerator:
    """Draws the next infection count from a count distribution with mean lambda.

    ``negative_binomial`` is overdispersed (variance above the mean) to model
    superspreading; ``poisson`` has variance equal to the mean; ``deterministic``
    always returns the floored mean.
    """

    total_population: int
    distribution: CountDistribution = "negative_binomial"
    dispersion: float = DEFAULT_DISPERSION

    @classmethod
    def from_scenario(cls, scenario: Scenario) -> "CaseGenerator":
        return cls(
            total_population=scenario.total_population,
            distribution=scenario.distribution,
            dispersion=scenario.dispersion,
        )

    def draw(self, lam: float, rng: SimulationRNG) -> float:
        lam = min(max(lam, 0.0), MAX_EXPECTED_CASES)
        if self.distribution == "deterministic":
            return lam
        if self.distribution == "poisson":
            return float(rng.poisson(lam))
        # numpy counts failures before `dispersion` successes, so its success
        # probability is dispersion / (dispersion + lam) for a mean of lam.
        return float(rng.negative_binomial(self.dispersion, self.dispersion / (self.dispersion + lam)))

    def sample(
        self,
        prev_infected: float,
        effective_r: float,
        imported_cases_per_day: float,
        rng: SimulationRNG,
    ) -> int:
        lam = expected_new_cases(prev_infected, effective_r, imported_cases_per_day)
        count = math.floor(self.draw(lam, rng))
        return min(max(count, 0), self.total_population)
