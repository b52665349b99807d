from __future__ import annotations

import logging
import math
from typing import Any, Mapping

from .costs import compute_costs, lockdown_scale_factor
from .effects import apply_in_order, immediate_effect, recurring_effect
from .loader import parse_scenario
from .models import (
    CapabilityImprovement,
    ContainmentPolicy,
    EngineStatus,
    Indicators,
    NextTurnState,
    PlayerActions,
    RandomEvent,
    Scenario,
    SimulatorState,
    TurnResult,
    VictoryState,
    WorldState,
)
from .rng import SimulationRNG
from .sampler import CaseGenerator
from .settings import EngineSettings
from .victory import cumulative_cost, evaluate

logger = logging.getLogger(__name__)


MAX_EFFECTIVE_R = 1e15


class InvalidStateError(RuntimeError):
    pass


def compound_r(daily_r: float, days: int) -> float:
    """Reproduction number over ``days`` days of a repeated daily rate, bounded by ``MAX_EFFECTIVE_R``."""
    if daily_r <= 0:
        return 0.0
    if days * math.log(daily_r) >= math.log(MAX_EFFECTIVE_R):
        return MAX_EFFECTIVE_R
    return daily_r**days


def cap_effective_r(prev_infected: float, effective_r: float, hospital_capacity: float) -> float:
    """Limit ``effective_r`` so projected infections never exceed hospital capacity."""
    if prev_infected <= 0:
        return effective_r
    if prev_infected * effective_r >= hospital_capacity:
        return hospital_capacity / prev_infected
    return effective_r


class TurnEngine:
    """Advances an epidemic scenario one multi-day turn at a time.

    The engine owns the current :class:`WorldState` and the append-only history of
    earlier ones. Every record it hands out is a frozen pydantic model, so callers
    cannot reach back into engine state.
    """

    def __init__(
        self,
        scenario: Scenario | Mapping[str, Any],
        settings: EngineSettings | None = None,
        rng: SimulationRNG | None = None,
        case_generator: CaseGenerator | None = None,
    ) -> None:
        if not isinstance(scenario, Scenario):
            scenario = parse_scenario(scenario)
        self._scenario = scenario
        self._settings = settings or EngineSettings()
        self._rng = rng or SimulationRNG.from_seed(self._settings.seed)
        self._case_generator = case_generator or CaseGenerator.from_scenario(scenario)
        self._scale_factor = lockdown_scale_factor(scenario.gdp_per_day, scenario.costs)
        self._status: EngineStatus = "active"
        self._history: list[WorldState] = []
        self._current = self._initial_world_state()
        # Random source state at the start of each turn index, used by rewind().
        self._rng_log: list[dict[str, Any]] = [self._rng.snapshot()]

    @property
    def scenario(self) -> Scenario:
        return self._scenario

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    @property
    def status(self) -> EngineStatus:
        return self._status

    @property
    def turn(self) -> int:
        return len(self._history)

    def state(self) -> SimulatorState:
        return SimulatorState(
            scenario=self._scenario,
            current_state=self._current,
            history=tuple(self._history),
            status=self._status,
        )

    def state_at(self, turn: int) -> SimulatorState:
        """Snapshot of the simulation as it stood after ``turn`` turns."""
        self._check_turn_index(turn)
        timeline = self._timeline()
        return SimulatorState(
            scenario=self._scenario,
            current_state=timeline[turn],
            history=tuple(timeline[:turn]),
            status=self._status if turn == self.turn else "active",
        )

    def rewind(self, turn: int) -> "TurnEngine":
        """Return a new engine positioned at ``turn``; this engine is left untouched."""
        self._check_turn_index(turn)
        timeline = self._timeline()
        engine = TurnEngine(
            self._scenario,
            settings=self._settings,
            rng=SimulationRNG.restore(self._rng_log[turn]),
            case_generator=self._case_generator,
        )
        engine._history = timeline[:turn]
        engine._current = timeline[turn]
        engine._rng_log = list(self._rng_log[: turn + 1])
        engine._status = self._status if turn == self.turn else "active"
        logger.debug("Rewound engine from turn %d to turn %d.", self.turn, turn)
        return engine

    def next_turn(self, actions: PlayerActions | Mapping[str, Any] | None = None) -> TurnResult:
        if self._status == "concluded":
            raise InvalidStateError("The game is already won; start a new engine to play again.")

        policies, improvements = self._resolve_actions(actions)
        candidate = self._current
        previous = candidate.active_player_actions

        continuing_policies = [p for p in policies if p.id in previous.containment_policies]
        continuing_improvements = [i for i in improvements if i.id in previous.capability_improvements]
        candidate = apply_in_order(candidate, continuing_policies, recurring_effect)
        candidate = apply_in_order(candidate, continuing_improvements, recurring_effect)

        new_policies = [p for p in policies if p.id not in previous.containment_policies]
        new_improvements = [i for i in improvements if i.id not in previous.capability_improvements]
        candidate = apply_in_order(candidate, new_policies, immediate_effect)
        candidate = apply_in_order(candidate, new_improvements, immediate_effect)

        new_events = self._pick_random_events(candidate)
        candidate = apply_in_order(candidate, new_events, immediate_effect)

        next_state = self._advance(candidate, policies, improvements, new_events)
        self._commit(next_state)

        snapshot = self.state()
        condition = evaluate(self._scenario, snapshot)
        if condition is not None:
            self._status = "concluded"
            score = cumulative_cost(snapshot)
            logger.info(
                "Victory '%s' reached on day %d with score %.2f.",
                condition.id,
                next_state.days_elapsed,
                score,
            )
            return VictoryState(
                final_snapshot=snapshot.model_copy(update={"status": self._status}),
                score=score,
                victory_condition=condition,
            )
        return NextTurnState(snapshot=snapshot, new_random_events=tuple(new_events))

    def _timeline(self) -> list[WorldState]:
        return [*self._history, self._current]

    def _check_turn_index(self, turn: int) -> None:
        if turn < 0 or turn > self.turn:
            raise InvalidStateError(f"Turn {turn} is outside the recorded range 0..{self.turn}.")

    def _resolve_actions(
        self,
        actions: PlayerActions | Mapping[str, Any] | None,
    ) -> tuple[list[ContainmentPolicy], list[CapabilityImprovement]]:
        if actions is None:
            actions = PlayerActions()
        elif not isinstance(actions, PlayerActions):
            actions = PlayerActions.model_validate(actions)

        requested_policies = set(actions.containment_policies)
        requested_improvements = set(actions.capability_improvements)
        policies = [p for p in self._scenario.containment_policies if p.id in requested_policies]
        improvements = [i for i in self._scenario.capability_improvements if i.id in requested_improvements]

        unknown = (requested_policies - {p.id for p in policies}) | (
            requested_improvements - {i.id for i in improvements}
        )
        if unknown:
            logger.debug("Ignoring unknown action ids: %s", ", ".join(sorted(unknown)))
        return policies, improvements

    def _pick_random_events(self, candidate: WorldState) -> list[RandomEvent]:
        fired = set(candidate.fired_random_events)
        picked: list[RandomEvent] = []
        for event in self._scenario.random_events:
            if candidate.days_elapsed < event.min_days_before_appear:
                continue
            if event.happens_once and event.name in fired:
                continue
            if self._rng.chance(event.probability):
                logger.info("Random event '%s' fired on day %d.", event.name, candidate.days_elapsed)
                picked.append(event)
        return picked

    def _lagged_deaths(self, new_num_infected: int) -> float:
        lag = self._settings.death_lag_turns
        timeline = self._timeline()
        turn = len(timeline)
        if lag == 0:
            source = new_num_infected
        elif turn < lag:
            return 0.0
        else:
            source = timeline[turn - lag].indicators.num_infected
        return source * self._scenario.mortality

    def _advance(
        self,
        candidate: WorldState,
        policies: list[ContainmentPolicy],
        improvements: list[CapabilityImprovement],
        new_events: list[RandomEvent],
    ) -> WorldState:
        days_per_turn = self._settings.days_per_turn
        prev_infected = candidate.indicators.num_infected

        effective_r = compound_r(candidate.indicators.reproduction_rate, days_per_turn)
        effective_r = cap_effective_r(prev_infected, effective_r, candidate.indicators.hospital_capacity)

        num_infected = self._case_generator.sample(
            prev_infected,
            effective_r,
            candidate.indicators.imported_cases_per_day,
            self._rng,
        )
        num_dead = self._lagged_deaths(num_infected)
        days_elapsed = self._current.days_elapsed + days_per_turn
        logger.debug(
            "Day %d: r_eff=%.4f infected %d -> %d, deaths %.2f.",
            days_elapsed,
            effective_r,
            prev_infected,
            num_infected,
            num_dead,
        )

        event_names = tuple(event.name for event in new_events)
        return WorldState(
            days_elapsed=days_elapsed,
            indicators=self._baseline_indicators(num_infected, num_dead, effective_r, days_elapsed),
            active_player_actions=PlayerActions(
                containment_policies=tuple(p.id for p in policies),
                capability_improvements=tuple(i.id for i in improvements),
            ),
            active_random_events=event_names,
            fired_random_events=candidate.fired_random_events + event_names,
            effective_r=effective_r,
        )

    def _baseline_indicators(self, num_infected: int, num_dead: float, r: float, days_elapsed: int) -> Indicators:
        # r, capacity and imports go back to the scenario baseline every turn;
        # active actions re-apply their recurring effects on top of it.
        scenario = self._scenario
        costs = compute_costs(
            num_infected,
            num_dead,
            r,
            scenario.r0,
            self._scale_factor,
            days_elapsed,
            scenario.costs,
        )
        return Indicators(
            num_infected=num_infected,
            num_dead=num_dead,
            total_population=scenario.total_population,
            hospital_capacity=scenario.hospital_capacity,
            reproduction_rate=scenario.r0,
            imported_cases_per_day=scenario.imported_cases_per_day,
            economic_costs=costs.economic,
            medical_costs=costs.medical,
            death_costs=costs.death,
            total_cost=costs.total,
        )

    def _initial_world_state(self) -> WorldState:
        return WorldState(
            days_elapsed=0,
            indicators=self._baseline_indicators(self._scenario.initial_num_infected, 0.0, self._scenario.r0, 0),
        )

    def _commit(self, next_state: WorldState) -> None:
        self._history.append(self._current)
        self._current = next_state
        self._rng_log.append(self._rng.snapshot())


def run_turns(
    engine: TurnEngine,
    actions: PlayerActions | Mapping[str, Any] | None,
    turns: int,
) -> list[TurnResult]:
    results: list[TurnResult] = []
    for _ in range(turns):
        if engine.status == "concluded":
            break
        results.append(engine.next_turn(actions))
    return results
