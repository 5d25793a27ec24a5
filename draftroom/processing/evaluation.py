"""Best-player-available scoring for a (team, player) pair."""

import logging
from dataclasses import dataclass
from uuid import UUID

from ..errors import NotFoundError
from ..models import CombinePercentile, CombineResult, FitGrade, Player, ScoutingReport
from ..storage.db import (
    get_combine_percentiles,
    get_combine_results,
    get_connection,
    get_player,
    get_scouting_report,
    get_team_scouting_reports,
)
from .measurements import RasScore, calculate_ras, combine_score, position_group

logger = logging.getLogger(__name__)

GRADE_WEIGHT = 0.60
COMBINE_WEIGHT = 0.20
FIT_WEIGHT = 0.15
CONCERN_PENALTY = 5.0

FIT_SCORES = {
    FitGrade.A: 100.0,
    FitGrade.B: 80.0,
    FitGrade.C: 60.0,
    FitGrade.D: 40.0,
    FitGrade.F: 20.0,
}
DEFAULT_FIT_SCORE = FIT_SCORES[FitGrade.C]


@dataclass
class ScoutingInputs:
    """Pre-fetched inputs for scoring many players from one team's view."""

    reports: dict[UUID, ScoutingReport]
    combines: dict[UUID, CombineResult]
    percentiles: dict[str, dict[str, CombinePercentile]]


def fit_score(report: ScoutingReport) -> float:
    if report.fit_grade is None:
        return DEFAULT_FIT_SCORE
    return FIT_SCORES[report.fit_grade]


def concern_penalty(report: ScoutingReport) -> float:
    penalty = 0.0
    if report.injury_concern:
        penalty += CONCERN_PENALTY
    if report.character_concern:
        penalty += CONCERN_PENALTY
    return penalty


def calculate_bpa_score(
    player: Player,
    report: ScoutingReport,
    combine: CombineResult | None = None,
    percentiles: dict[str, CombinePercentile] | None = None,
) -> float:
    """Combine grade, athleticism, fit and concerns into a 0-100 score.

    score = 10*grade*0.60 + combine*0.20 + fit*0.15 - penalty
    """
    score = (
        report.grade * 10.0 * GRADE_WEIGHT
        + combine_score(combine, player.position, percentiles) * COMBINE_WEIGHT
        + fit_score(report) * FIT_WEIGHT
        - concern_penalty(report)
    )
    return max(0.0, min(100.0, score))


async def bpa_score(player: Player, team_id: UUID) -> float:
    """Score one player for one team.

    Raises NotFoundError if the team has no scouting report on the player.
    """
    async with get_connection() as conn:
        report = await get_scouting_report(conn, team_id, player.id)
        if report is None:
            raise NotFoundError(
                f"No scouting report found for player {player.id} and team {team_id}"
            )
        combines = await get_combine_results(conn, [player.id])
        percentiles = await get_combine_percentiles(conn, position_group(player.position))
    return calculate_bpa_score(player, report, combines.get(player.id), percentiles)


async def load_scouting_inputs(team_id: UUID, players: list[Player]) -> ScoutingInputs:
    """Batch-load reports, combine results and percentile tables for a pick."""
    groups = sorted({position_group(p.position) for p in players})
    async with get_connection() as conn:
        reports = await get_team_scouting_reports(conn, team_id)
        combines = await get_combine_results(conn, [p.id for p in players])
        percentiles = {group: await get_combine_percentiles(conn, group) for group in groups}
    return ScoutingInputs(reports=reports, combines=combines, percentiles=percentiles)


def score_players(players: list[Player], inputs: ScoutingInputs) -> dict[UUID, float]:
    """Score every player that has a report; unreported players are left out."""
    scores = {}
    for player in players:
        report = inputs.reports.get(player.id)
        if report is None:
            continue
        scores[player.id] = calculate_bpa_score(
            player,
            report,
            inputs.combines.get(player.id),
            inputs.percentiles.get(position_group(player.position)),
        )
    logger.debug("Scored %d of %d players", len(scores), len(players))
    return scores


async def rank_players_bpa(players: list[Player], team_id: UUID) -> list[tuple[Player, float]]:
    """Rank players by BPA score, highest first."""
    inputs = await load_scouting_inputs(team_id, players)
    scores = score_players(players, inputs)
    ranked = [(p, scores[p.id]) for p in players if p.id in scores]
    ranked.sort(key=lambda item: item[1], reverse=True)
    return ranked


async def player_ras(player_id: UUID) -> RasScore:
    """Relative Athletic Score for a player against their position group."""
    async with get_connection() as conn:
        player = await get_player(conn, player_id)
        if player is None:
            raise NotFoundError(f"Player with id {player_id} not found")
        combines = await get_combine_results(conn, [player_id])
        percentiles = await get_combine_percentiles(conn, position_group(player.position))
    return calculate_ras(player, combines.get(player_id), percentiles)
