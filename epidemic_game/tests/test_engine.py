from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError

from epidemic_game.core.engine import (
    MAX_EFFECTIVE_R,
    InvalidStateError,
    TurnEngine,
    cap_effective_r,
    compound_r,
    run_turns,
)
from epidemic_game.core.loader import ScenarioValidationError
from epidemic_game.core.models import PlayerActions, is_next_turn, is_victory
from epidemic_game.core.settings import EngineSettings


def _payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "totalPopulation": 1000,
        "initialNumInfected": 100,
        "r0": 4.0,
        "mortality": 0.01,
        "hospitalCapacity": 100,
        "importedCasesPerDay": 0.0,
        "gdpPerDay": 0.0,
        "distribution": "deterministic",
        "containmentPolicies": [
            {
                "id": "schools",
                "name": "Schools",
                "immediateEffect": [{"adjustR": -1.0}],
                "recurringEffect": [{"adjustR": -0.5}],
            },
            {"id": "transit", "name": "Close transit", "recurringEffect": [{"adjustR": -0.04}]},
        ],
        "capabilityImprovements": [
            {"id": "beds", "name": "Field hospitals", "recurringEffect": [{"adjustHospitalCapacity": 1000}]},
        ],
    }
    payload.update(overrides)
    return payload


def test_initial_state_starts_on_day_zero_with_scenario_values() -> None:
    engine = TurnEngine(_payload())
    state = engine.state()
    indicators = state.current_state.indicators

    assert state.turn == 0
    assert state.history == ()
    assert state.current_state.days_elapsed == 0
    assert indicators.num_infected == 100
    assert indicators.reproduction_rate == 4.0
    assert indicators.total_cost == indicators.medical_costs + indicators.economic_costs + indicators.death_costs


def test_first_turn_is_capped_to_hospital_capacity() -> None:
    engine = TurnEngine(_payload(importedCasesPerDay=0.5))

    result = engine.next_turn({})

    assert is_next_turn(result)
    current = result.snapshot.current_state
    assert current.effective_r == pytest.approx(1.0)
    assert current.indicators.num_infected == 100
    assert current.days_elapsed == 10


def test_cap_effective_r_skips_capping_without_infections() -> None:
    assert cap_effective_r(0, 1e6, 100) == 1e6
    assert cap_effective_r(50, 1.5, 100) == 1.5
    assert cap_effective_r(50, 2.0, 100) == pytest.approx(2.0)
    assert cap_effective_r(50, 3.0, 100) == pytest.approx(2.0)


def test_history_grows_by_one_and_days_advance_by_turn_length() -> None:
    engine = TurnEngine(_payload(distribution="negative_binomial"), settings=EngineSettings(days_per_turn=7, seed=3))

    for expected_turn in range(1, 8):
        engine.next_turn()
        state = engine.state()
        assert state.turn == expected_turn
        assert len(state.history) == expected_turn

    days = [world.days_elapsed for world in engine.state().timeline()]
    assert days == [7 * index for index in range(8)]


def test_every_state_respects_population_bounds_and_cost_identity() -> None:
    engine = TurnEngine(
        _payload(distribution="negative_binomial", hospitalCapacity=5000, importedCasesPerDay=3.0, gdpPerDay=1e9),
        settings=EngineSettings(seed=11),
    )
    run_turns(engine, {"containmentPolicies": ["transit"]}, 15)

    for world in engine.state().timeline():
        indicators = world.indicators
        assert 0 <= indicators.num_infected <= indicators.total_population
        assert indicators.total_cost == indicators.medical_costs + indicators.economic_costs + indicators.death_costs


def test_lagged_deaths_read_infections_from_two_turns_back() -> None:
    engine = TurnEngine(
        _payload(r0=1.0, hospitalCapacity=1e9, importedCasesPerDay=10.0, mortality=0.5),
    )
    run_turns(engine, None, 4)
    timeline = engine.state().timeline()

    assert [world.indicators.num_infected for world in timeline] == [100, 110, 120, 130, 140]
    assert timeline[1].indicators.num_dead == 0.0
    assert timeline[2].indicators.num_dead == pytest.approx(100 * 0.5)
    assert timeline[3].indicators.num_dead == pytest.approx(110 * 0.5)
    assert timeline[4].indicators.num_dead == pytest.approx(120 * 0.5)
    assert timeline[4].indicators.death_costs == pytest.approx(60 * 1e7)


def test_new_actions_apply_immediate_effect_and_continuing_actions_recurring_effect() -> None:
    engine = TurnEngine(
        _payload(r0=2.0, hospitalCapacity=1e12),
        settings=EngineSettings(days_per_turn=1),
    )

    first = engine.next_turn({"containmentPolicies": ["schools"]})
    second = engine.next_turn({"containmentPolicies": ["schools"]})
    third = engine.next_turn({})

    assert first.snapshot.current_state.effective_r == pytest.approx(1.0)
    assert second.snapshot.current_state.effective_r == pytest.approx(1.5)
    assert third.snapshot.current_state.effective_r == pytest.approx(2.0)
    # Policies do not accumulate: the committed r is back at the baseline.
    assert second.snapshot.current_state.indicators.reproduction_rate == 2.0


def test_capability_improvement_raises_capacity_used_by_the_cap() -> None:
    engine = TurnEngine(_payload(r0=2.0), settings=EngineSettings(days_per_turn=1))

    engine.next_turn({"capabilityImprovements": ["beds"]})
    result = engine.next_turn({"capabilityImprovements": ["beds"]})

    assert engine.state().history[1].effective_r == pytest.approx(1.0)
    assert result.snapshot.current_state.effective_r == pytest.approx(2.0)


def test_unknown_action_ids_are_ignored() -> None:
    engine = TurnEngine(_payload())

    result = engine.next_turn(
        PlayerActions(containment_policies=("nope", "transit", "schools", "schools"), capability_improvements=("x",))
    )

    actions = result.snapshot.current_state.active_player_actions
    assert actions.containment_policies == ("schools", "transit")
    assert actions.capability_improvements == ()


def test_random_events_respect_day_threshold_and_happens_once() -> None:
    engine = TurnEngine(
        _payload(
            randomEvents=[
                {"name": "Festival", "probability": 1.0, "minDaysBeforeAppear": 10, "happensOnce": True},
                {"name": "Travel", "probability": 1.0, "minDaysBeforeAppear": 0, "happensOnce": False},
                {"name": "Never", "probability": 0.0},
            ]
        )
    )

    fired = [[event.name for event in engine.next_turn().new_random_events] for _ in range(3)]

    assert fired == [["Travel"], ["Festival", "Travel"], ["Travel"]]
    current = engine.state().current_state
    assert current.active_random_events == ("Travel",)
    assert current.fired_random_events == ("Travel", "Festival", "Travel", "Travel")


def test_random_event_effect_applies_before_sampling() -> None:
    engine = TurnEngine(
        _payload(
            r0=1.0,
            hospitalCapacity=1e9,
            randomEvents=[{"name": "Wave", "probability": 1.0, "immediateEffect": [{"adjustImportedCases": 25}]}],
        )
    )
    result = engine.next_turn()
    assert result.snapshot.current_state.indicators.num_infected == 125


def test_victory_concludes_the_game_and_further_turns_fail() -> None:
    engine = TurnEngine(
        _payload(
            mortality=0.0,
            victoryConditions=[{"id": "spent", "kind": "cumulativeCostAbove", "threshold": 1_200_000}],
        )
    )

    first = engine.next_turn()
    second = engine.next_turn()

    assert is_next_turn(first)
    assert is_victory(second)
    assert second.victory_condition.id == "spent"
    assert second.score == pytest.approx(1_500_000)
    assert second.final_snapshot.status == "concluded"
    assert engine.status == "concluded"

    with pytest.raises(InvalidStateError):
        engine.next_turn()
    assert engine.state().turn == 2


def test_run_turns_stops_at_victory() -> None:
    engine = TurnEngine(
        _payload(victoryConditions=[{"id": "expensive", "kind": "totalCostAbove", "threshold": 400_000}]),
    )
    results = run_turns(engine, None, 10)
    assert len(results) == 1
    assert is_victory(results[0])


def test_snapshots_are_isolated_from_engine_state() -> None:
    engine = TurnEngine(_payload(distribution="negative_binomial"), settings=EngineSettings(seed=5))
    engine.next_turn()
    snapshot = engine.state()

    with pytest.raises(ValidationError):
        snapshot.current_state.indicators.num_infected = 999
    with pytest.raises(AttributeError):
        snapshot.history.append(snapshot.current_state)  # type: ignore[attr-defined]

    tampered = snapshot.model_copy(update={"history": ()})
    assert tampered.turn == 0
    assert engine.state().turn == 1
    assert engine.state() == snapshot


def test_invalid_scenario_fails_at_construction() -> None:
    with pytest.raises(ScenarioValidationError):
        TurnEngine(_payload(totalPopulation=-5))
    with pytest.raises(ScenarioValidationError):
        TurnEngine(_payload(r0=0))


def test_adjust_infected_event_changes_the_sampling_base() -> None:
    payload = _payload(
        r0=1.0,
        hospitalCapacity=1e9,
        randomEvents=[{"name": "Festival", "probability": 1.0, "immediateEffect": [{"adjustInfected": 300}]}],
    )
    baseline = TurnEngine(_payload(r0=1.0, hospitalCapacity=1e9)).next_turn()
    boosted = TurnEngine(payload).next_turn()

    assert baseline.snapshot.current_state.indicators.num_infected == 100
    assert boosted.snapshot.current_state.indicators.num_infected == 400


def test_capacity_cap_divides_by_infections_after_effects() -> None:
    engine = TurnEngine(
        _payload(
            hospitalCapacity=500,
            randomEvents=[{"name": "Festival", "probability": 1.0, "immediateEffect": [{"adjustInfected": 150}]}],
        )
    )
    result = engine.next_turn()

    assert result.snapshot.current_state.effective_r == pytest.approx(500 / 250)
    assert result.snapshot.current_state.indicators.num_infected == 500


def test_compound_r_is_bounded_for_extreme_rates() -> None:
    assert compound_r(4.0, 10) == pytest.approx(4.0**10)
    assert compound_r(0.0, 10) == 0.0
    assert compound_r(100.0, 365) == MAX_EFFECTIVE_R


def test_maximum_reproduction_rate_does_not_overflow() -> None:
    engine = TurnEngine(
        _payload(
            r0=100.0,
            hospitalCapacity=1e30,
            containmentPolicies=[{"id": "surge", "name": "Surge", "immediateEffect": [{"scaleR": 1e300}]}],
        ),
        settings=EngineSettings(days_per_turn=365),
    )

    result = engine.next_turn({"containmentPolicies": ["surge"]})

    current = result.snapshot.current_state
    assert current.effective_r == MAX_EFFECTIVE_R
    assert current.indicators.num_infected == 1000
