"""Per-team draft strategy: BPA/need weighting, need scores and position value."""

import logging
from uuid import UUID

from ..errors import ValidationError
from ..models import DraftStrategy, Player, Position, TeamNeed
from ..storage.db import (
    get_connection,
    get_draft_strategy,
    get_team_needs,
    insert_draft_strategy,
    upsert_draft_strategy,
)

logger = logging.getLogger(__name__)

DEFAULT_BPA_WEIGHT = 60
DEFAULT_NEED_WEIGHT = 40
DEFAULT_RISK_TOLERANCE = 5

DEFAULT_POSITION_VALUES: dict[Position, float] = {
    Position.QB: 1.5,
    Position.RB: 0.85,
    Position.WR: 1.0,
    Position.TE: 0.9,
    Position.OT: 1.2,
    Position.OG: 1.0,
    Position.C: 1.0,
    Position.DE: 1.3,
    Position.DT: 1.1,
    Position.LB: 1.1,
    Position.CB: 1.2,
    Position.S: 1.0,
    Position.K: 0.5,
    Position.P: 0.5,
}

# Listed needs decay 10 points per priority step down to a floor of 10.
# Unlisted positions sit below the floor.
TOP_NEED_SCORE = 100.0
NEED_DECAY_PER_PRIORITY = 10.0
MIN_LISTED_NEED_SCORE = 10.0
UNLISTED_NEED_SCORE = 5.0


def default_strategy(team_id: UUID, draft_id: UUID) -> DraftStrategy:
    return DraftStrategy(
        team_id=team_id,
        draft_id=draft_id,
        bpa_weight=DEFAULT_BPA_WEIGHT,
        need_weight=DEFAULT_NEED_WEIGHT,
        position_values=None,
        risk_tolerance=DEFAULT_RISK_TOLERANCE,
    )


def validate_strategy(strategy: DraftStrategy) -> None:
    """Raise ValidationError unless weights are 0-100 summing to 100."""
    if not 0 <= strategy.bpa_weight <= 100:
        raise ValidationError("BPA weight must be between 0 and 100")
    if not 0 <= strategy.need_weight <= 100:
        raise ValidationError("Need weight must be between 0 and 100")
    if strategy.bpa_weight + strategy.need_weight != 100:
        raise ValidationError(
            f"BPA weight ({strategy.bpa_weight}) and need weight "
            f"({strategy.need_weight}) must sum to 100"
        )
    if not 0 <= strategy.risk_tolerance <= 10:
        raise ValidationError("Risk tolerance must be between 0 and 10")
    for position, value in (strategy.position_values or {}).items():
        if value <= 0:
            raise ValidationError(f"Position value for {position.value} must be positive")


def need_score_from_needs(player: Player, needs: list[TeamNeed]) -> float:
    for need in needs:
        if need.position == player.position:
            return max(
                TOP_NEED_SCORE - (need.priority - 1) * NEED_DECAY_PER_PRIORITY,
                MIN_LISTED_NEED_SCORE,
            )
    return UNLISTED_NEED_SCORE


def position_value(strategy: DraftStrategy, position: Position) -> float:
    if strategy.position_values and position in strategy.position_values:
        return strategy.position_values[position]
    return DEFAULT_POSITION_VALUES[position]


async def resolve_strategy(team_id: UUID, draft_id: UUID) -> DraftStrategy:
    """Return the team's strategy for a draft, persisting the default on first use."""
    async with get_connection() as conn:
        strategy = await get_draft_strategy(conn, team_id, draft_id)
        if strategy is not None:
            return strategy
        strategy = await insert_draft_strategy(conn, default_strategy(team_id, draft_id))
    logger.info("Created default strategy for team %s in draft %s", team_id, draft_id)
    return strategy


async def set_strategy(strategy: DraftStrategy) -> DraftStrategy:
    validate_strategy(strategy)
    async with get_connection() as conn:
        stored = await upsert_draft_strategy(conn, strategy)
    logger.info(
        "Set strategy for team %s in draft %s (%d%% BPA / %d%% need)",
        stored.team_id, stored.draft_id, stored.bpa_weight, stored.need_weight,
    )
    return stored


async def load_team_needs(team_id: UUID) -> list[TeamNeed]:
    async with get_connection() as conn:
        return await get_team_needs(conn, team_id)


async def need_score(player: Player, team_id: UUID) -> float:
    """Score how well a player's position matches the team's needs, 5-100."""
    return need_score_from_needs(player, await load_team_needs(team_id))
