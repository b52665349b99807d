from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any

import numpy as np


def seed_to_uint32(seed: int | str) -> int:
    text = str(seed).encode("utf-8")
    digest = hashlib.sha256(text).hexdigest()
    value = int(digest[:8], 16)
    return value if value != 0 else 0x9E3779B9


@dataclass(slots=True)
class SimulationRNG:
    """Seeded random source shared by case sampling and random event draws.

    The underlying numpy generator state can be captured with :meth:`snapshot`
    and restored with :meth:`restore`, which is what makes turns replayable.
    """

    seed: int | str
    generator: np.random.Generator
    calls: int = 0

    @classmethod
    def from_seed(cls, seed: int | str) -> "SimulationRNG":
        return cls(seed=seed, generator=np.random.default_rng(seed_to_uint32(seed)), calls=0)

    def next_float(self) -> float:
        self.calls += 1
        return float(self.generator.random())

    def chance(self, probability: float) -> bool:
        return self.next_float() < probability

    def poisson(self, lam: float) -> int:
        self.calls += 1
        return int(self.generator.poisson(lam))

    def negative_binomial(self, n: float, p: float) -> int:
        self.calls += 1
        return int(self.generator.negative_binomial(n, p))

    def snapshot(self) -> dict[str, Any]:
        return {
            "seed": self.seed,
            "calls": self.calls,
            "bit_generator": self.generator.bit_generator.state,
        }

    @classmethod
    def restore(cls, snapshot: dict[str, Any]) -> "SimulationRNG":
        rng = cls.from_seed(snapshot["seed"])
        rng.generator.bit_generator.state = snapshot["bit_generator"]
        rng.calls = int(snapshot["calls"])
        return rng
