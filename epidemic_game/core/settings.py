from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EngineSettings(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    days_per_turn: int = Field(default=10, ge=1)
    death_lag_days: int = Field(default=20, ge=0)
    seed: int | str = 1337

    @property
    def death_lag_turns(self) -> int:
        """Turns between an infection count and the deaths it produces."""
        return self.death_lag_days // self.days_per_turn

    def as_dict(self) -> dict[str, Any]:
        return json.loads(self.model_dump_json())


def merge_settings(payload: dict[str, Any] | None) -> EngineSettings:
    if not isinstance(payload, dict):
        payload = {}
    return EngineSettings.model_validate(payload)


def default_settings() -> dict[str, Any]:
    return EngineSettings().as_dict()
