"""Tests for draftroom/processing/strategy.py."""

import uuid

import pytest

from draftroom.errors import ValidationError
from draftroom.models import DraftStrategy, Player, Position, TeamNeed
from draftroom.processing.strategy import (
    DEFAULT_POSITION_VALUES,
    need_score,
    need_score_from_needs,
    position_value,
    resolve_strategy,
    set_strategy,
    validate_strategy,
)

TEAM_ID = uuid.uuid4()
DRAFT_ID = uuid.uuid4()


def _strategy(**kwargs) -> DraftStrategy:
    return DraftStrategy(team_id=TEAM_ID, draft_id=DRAFT_ID, **kwargs)


def _player(position: Position) -> Player:
    return Player(id=uuid.uuid4(), first_name="A", last_name="B", position=position, draft_year=2026)


# ---------------------------------------------------------------------------
# validation
# ---------------------------------------------------------------------------


def test_default_weights_are_valid():
    validate_strategy(_strategy())


def test_weights_must_sum_to_100():
    with pytest.raises(ValidationError, match="sum to 100"):
        validate_strategy(_strategy(bpa_weight=70, need_weight=40))


def test_weight_out_of_range():
    with pytest.raises(ValidationError):
        validate_strategy(_strategy(bpa_weight=120, need_weight=-20))


def test_risk_tolerance_range():
    with pytest.raises(ValidationError, match="Risk tolerance"):
        validate_strategy(_strategy(risk_tolerance=11))


def test_position_values_must_be_positive():
    with pytest.raises(ValidationError, match="QB"):
        validate_strategy(_strategy(position_values={Position.QB: 0.0}))


# ---------------------------------------------------------------------------
# need score and position value
# ---------------------------------------------------------------------------


def test_need_score_decreases_with_priority():
    needs = [
        TeamNeed(TEAM_ID, Position.QB, 1),
        TeamNeed(TEAM_ID, Position.CB, 2),
        TeamNeed(TEAM_ID, Position.LB, 5),
    ]

    assert need_score_from_needs(_player(Position.QB), needs) == 100.0
    assert need_score_from_needs(_player(Position.CB), needs) == 90.0
    assert need_score_from_needs(_player(Position.LB), needs) == 60.0


def test_need_score_floor_and_unlisted():
    """Low-priority needs bottom out above unlisted positions."""
    needs = [TeamNeed(TEAM_ID, Position.S, 14)]

    listed = need_score_from_needs(_player(Position.S), needs)
    unlisted = need_score_from_needs(_player(Position.WR), needs)

    assert listed == 10.0
    assert unlisted < listed


def test_position_value_defaults_and_override():
    strategy = _strategy(position_values={Position.RB: 1.4})

    assert position_value(strategy, Position.RB) == 1.4
    assert position_value(strategy, Position.QB) == DEFAULT_POSITION_VALUES[Position.QB]
    assert position_value(_strategy(), Position.K) == 0.5


async def test_need_score_loads_team_needs(store):
    team = store.add_team("Bears", "CHI")
    store.add_need(team, Position.OT, 1)
    store.add_need(team, Position.QB, 3)

    assert await need_score(_player(Position.QB), team.id) == 80.0


# ---------------------------------------------------------------------------
# persistence
# ---------------------------------------------------------------------------


async def test_resolve_strategy_creates_default_once(store):
    first = await resolve_strategy(TEAM_ID, DRAFT_ID)
    second = await resolve_strategy(TEAM_ID, DRAFT_ID)

    assert first.bpa_weight == 60
    assert first.need_weight == 40
    assert first.risk_tolerance == 5
    assert first.id is not None
    assert second.id == first.id
    assert len(store.strategies) == 1


async def test_set_strategy_replaces_existing(store):
    created = await resolve_strategy(TEAM_ID, DRAFT_ID)

    updated = await set_strategy(_strategy(bpa_weight=30, need_weight=70))

    assert updated.id == created.id
    assert (await resolve_strategy(TEAM_ID, DRAFT_ID)).need_weight == 70


async def test_set_strategy_rejects_invalid_weights(store):
    with pytest.raises(ValidationError):
        await set_strategy(_strategy(bpa_weight=50, need_weight=40))

    assert store.strategies == {}
