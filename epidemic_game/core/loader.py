from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .models import Scenario

DEFAULT_SCENARIO_FILE = "baseline.json"


class ScenarioValidationError(ValueError):
    def __init__(self, message: str, details: list[str] | None = None) -> None:
        self.details = details or []
        suffix = "\n".join(self.details)
        super().__init__(f"{message}\n{suffix}" if suffix else message)


def _load_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ScenarioValidationError(f"Missing scenario file: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ScenarioValidationError(f"Invalid JSON in {path.name}: {exc.msg} at line {exc.lineno}") from exc


def parse_scenario(payload: Any, source: str = "scenario") -> Scenario:
    try:
        return Scenario.model_validate(payload)
    except ValidationError as exc:
        errors = []
        for issue in exc.errors():
            issue_path = ".".join(str(part) for part in issue.get("loc", [])) or "(root)"
            errors.append(f"{source}:{issue_path}: {issue.get('msg', 'validation error')}")
        raise ScenarioValidationError(f"Schema validation failed for {source}.", errors) from exc


def load_scenario(path: Path | str) -> Scenario:
    scenario_path = Path(path)
    return parse_scenario(_load_json(scenario_path), source=scenario_path.name)


def content_dir() -> Path:
    return Path(__file__).resolve().parents[1] / "content"


def default_scenario() -> Scenario:
    return load_scenario(content_dir() / DEFAULT_SCENARIO_FILE)
