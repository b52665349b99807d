from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from epidemic_game.core.engine import TurnEngine
from epidemic_game.core.loader import ScenarioValidationError, default_scenario, load_scenario
from epidemic_game.core.models import PlayerActions, SimulatorState, is_victory
from epidemic_game.core.settings import EngineSettings
from epidemic_game.services.logger import configure_logging

app = typer.Typer(add_completion=False, help="Run a headless epidemic game for balancing and testing.")
console = Console()


def _normalize_seed(raw_seed: str) -> int | str:
    try:
        return int(raw_seed)
    except ValueError:
        return raw_seed


def _signature(snapshot: SimulatorState) -> str:
    payload = [world.model_dump(mode="json", by_alias=True) for world in snapshot.timeline()]
    return hashlib.sha256(json.dumps(payload, sort_keys=True).encode("utf-8")).hexdigest()[:16]


@app.command()
def main(
    seed: str = typer.Option("123", "--seed", help="Seed value (int or string)."),
    turns: int = typer.Option(12, "--turns", min=1, help="Max number of turns to play."),
    policy: list[str] = typer.Option([], "--policy", help="Containment policy id to keep active (repeatable)."),
    improvement: list[str] = typer.Option([], "--improvement", help="Capability improvement id (repeatable)."),
    scenario_path: Optional[Path] = typer.Option(None, "--scenario", help="Scenario JSON file."),
    days_per_turn: int = typer.Option(10, "--days-per-turn", min=1, help="Days covered by one turn."),
    logs_dir: Optional[Path] = typer.Option(None, "--logs-dir", help="Write run logs to this directory."),
) -> None:
    turns_logger = logging.getLogger("epidemic_game.turns")
    if logs_dir is not None:
        bundle = configure_logging(logs_dir)
        turns_logger = bundle.turns
        console.print(f"Logging to {bundle.latest_log_path}")

    try:
        scenario = load_scenario(scenario_path) if scenario_path else default_scenario()
    except ScenarioValidationError as exc:
        console.print(f"[bold red]Scenario load failed:[/bold red] {exc}")
        raise typer.Exit(1) from exc

    settings = EngineSettings(days_per_turn=days_per_turn, seed=_normalize_seed(seed))
    engine = TurnEngine(scenario, settings=settings)
    actions = PlayerActions(containment_policies=tuple(policy), capability_improvements=tuple(improvement))

    table = Table(title=scenario.name)
    for column in ("Turn", "Day", "Infected", "Dead", "r_eff", "Total cost", "Events"):
        table.add_column(column, justify="left" if column == "Events" else "right")

    result = None
    for _ in range(turns):
        result = engine.next_turn(actions)
        world = engine.state().current_state
        indicators = world.indicators
        turns_logger.info(
            "turn=%d day=%d infected=%d dead=%.2f total_cost=%.2f",
            engine.turn,
            world.days_elapsed,
            indicators.num_infected,
            indicators.num_dead,
            indicators.total_cost,
        )
        table.add_row(
            str(engine.turn),
            str(world.days_elapsed),
            str(indicators.num_infected),
            f"{indicators.num_dead:.2f}",
            f"{world.effective_r:.3f}" if world.effective_r is not None else "-",
            f"{indicators.total_cost:,.0f}",
            ", ".join(world.active_random_events) or "-",
        )
        if is_victory(result):
            break

    console.print(table)

    snapshot = engine.state()
    summary = Table(title="Simulation Summary")
    summary.add_column("Field", style="cyan", no_wrap=True)
    summary.add_column("Value", style="white")
    summary.add_row("Seed", str(settings.seed))
    summary.add_row("Turns", f"{snapshot.turn}/{turns}")
    summary.add_row("Days", str(snapshot.current_state.days_elapsed))
    summary.add_row("Policies", ", ".join(snapshot.current_state.active_player_actions.containment_policies) or "-")
    summary.add_row(
        "Improvements",
        ", ".join(snapshot.current_state.active_player_actions.capability_improvements) or "-",
    )
    summary.add_row("Fired events", ", ".join(snapshot.current_state.fired_random_events) or "-")
    if result is not None and is_victory(result):
        summary.add_row("Victory", result.victory_condition.id)
        summary.add_row("Score", f"{result.score:,.0f}")
    else:
        summary.add_row("Victory", "-")
    console.print()
    console.print(summary)
    console.print(f"\n[bold green]Deterministic signature:[/bold green] {_signature(snapshot)}")


if __name__ == "__main__":
    app()
