"""Automated pick decisions.

Each available player gets a final score:

    final = (bpa * bpa_weight/100 + need * need_weight/100) * position_value

and the highest final score wins. Equal final scores go to the higher BPA
score, then to the player listed first in the available pool.
"""

import logging
from dataclasses import dataclass, field
from uuid import UUID

from ..errors import NotFoundError, ValidationError
from ..models import DraftStrategy, Player
from .evaluation import load_scouting_inputs, score_players
from .strategy import load_team_needs, need_score_from_needs, position_value, resolve_strategy

logger = logging.getLogger(__name__)


@dataclass
class PlayerScore:
    player_id: UUID
    bpa_score: float
    need_score: float
    position_value: float
    final_score: float
    rationale: str


@dataclass
class AutoPickDecision:
    """The chosen player and every candidate's score breakdown, best first."""

    player_id: UUID
    scores: list[PlayerScore] = field(default_factory=list)

    @property
    def selected(self) -> PlayerScore:
        return next(s for s in self.scores if s.player_id == self.player_id)

    @property
    def rationale(self) -> str:
        return self.selected.rationale


def build_rationale(
    player: Player,
    bpa: float,
    need: float,
    pos_value: float,
    final: float,
    strategy: DraftStrategy,
) -> str:
    return (
        f"{player.full_name} ({player.position.value}): BPA={bpa:.1f}, Need={need:.1f}, "
        f"PosValue={pos_value:.2f}, Final={final:.1f} "
        f"({strategy.bpa_weight}% BPA / {strategy.need_weight}% Need)"
    )


def final_score(bpa: float, need: float, pos_value: float, strategy: DraftStrategy) -> float:
    return (bpa * strategy.bpa_weight / 100.0 + need * strategy.need_weight / 100.0) * pos_value


class AutoPickService:
    """Chooses a player for a team from the available pool."""

    async def score_all_players(
        self,
        team_id: UUID,
        players: list[Player],
        strategy: DraftStrategy,
    ) -> list[PlayerScore]:
        """Score players in pool order; players without a scouting report are skipped."""
        needs = await load_team_needs(team_id)
        inputs = await load_scouting_inputs(team_id, players)
        bpa_scores = score_players(players, inputs)

        scores = []
        for player in players:
            bpa = bpa_scores.get(player.id)
            if bpa is None:
                continue
            need = need_score_from_needs(player, needs)
            pos_value = position_value(strategy, player.position)
            final = final_score(bpa, need, pos_value, strategy)
            scores.append(
                PlayerScore(
                    player_id=player.id,
                    bpa_score=bpa,
                    need_score=need,
                    position_value=pos_value,
                    final_score=final,
                    rationale=build_rationale(player, bpa, need, pos_value, final, strategy),
                )
            )
        return scores

    async def decide_pick(
        self,
        team_id: UUID,
        draft_id: UUID,
        available_players: list[Player],
    ) -> AutoPickDecision:
        """Pick the best player for the team.

        Raises ValidationError on an empty pool and NotFoundError when no
        player in the pool has a scouting report from this team.
        """
        if not available_players:
            raise ValidationError("No available players to choose from")

        strategy = await resolve_strategy(team_id, draft_id)
        scores = await self.score_all_players(team_id, available_players, strategy)
        if not scores:
            raise NotFoundError("No players could be scored (missing scouting reports)")

        # stable sort keeps pool order among equal scores
        ranked = sorted(scores, key=lambda s: (s.final_score, s.bpa_score), reverse=True)
        logger.debug("Scored %d of %d available players for team %s",
                     len(scores), len(available_players), team_id)
        return AutoPickDecision(player_id=ranked[0].player_id, scores=ranked)
