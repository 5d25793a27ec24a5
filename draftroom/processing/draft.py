"""Draft lifecycle and pick sequencing."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING
from uuid import UUID

from ..config import get_config
from ..errors import (
    InternalError,
    InvalidStateError,
    NotFoundError,
    PlayerAlreadyDraftedError,
    ValidationError,
)
from ..models import Draft, DraftPick, DraftStatus, PickSlot, Player, Team
from ..storage.db import (
    assign_pick_player,
    get_all_teams,
    get_available_picks,
    get_connection,
    get_draft,
    get_draft_picks,
    get_drafted_player_ids,
    get_next_pick,
    get_pick,
    get_player,
    get_players_by_draft_year,
    get_team_seasons,
    insert_draft,
    insert_draft_picks,
    list_drafts,
    update_draft_status,
)
from .events import DraftEvent, EventBroadcaster, EventType, notify

if TYPE_CHECKING:
    from .auto_pick import AutoPickService

logger = logging.getLogger(__name__)

MIN_YEAR, MAX_YEAR = 2000, 2100
MIN_ROUNDS, MAX_ROUNDS = 1, 20
MIN_PICKS_PER_ROUND, MAX_PICKS_PER_ROUND = 1, 100


def validate_draft(year: int, rounds: int, picks_per_round: int | None) -> None:
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationError(f"Draft year must be between {MIN_YEAR} and {MAX_YEAR}")
    if not MIN_ROUNDS <= rounds <= MAX_ROUNDS:
        raise ValidationError(f"Rounds must be between {MIN_ROUNDS} and {MAX_ROUNDS}")
    if picks_per_round is not None and not MIN_PICKS_PER_ROUND <= picks_per_round <= MAX_PICKS_PER_ROUND:
        raise ValidationError(
            f"Picks per round must be between {MIN_PICKS_PER_ROUND} and {MAX_PICKS_PER_ROUND}"
        )


def build_pick_order(draft: Draft, teams: list[Team]) -> list[DraftPick]:
    """Lay out every pick: the same team order repeated each round."""
    picks = []
    overall = 1
    for round_number in range(1, draft.rounds + 1):
        for index, team in enumerate(teams, start=1):
            picks.append(
                DraftPick(
                    id=uuid.uuid4(),
                    draft_id=draft.id,
                    round=round_number,
                    pick_number=index,
                    overall_pick=overall,
                    team_id=team.id,
                )
            )
            overall += 1
    return picks


def validate_pick_order(draft: Draft, slots: list[PickSlot], team_ids: set[UUID]) -> None:
    """Check a supplied order before any of it is stored.

    Overall picks must run 1..N without gaps, every round of the draft must
    appear in order, and picks within a round must run 1..k.
    """
    if not slots:
        raise ValidationError("Draft order must contain at least one pick")

    ordered = sorted(slots, key=lambda s: s.overall_pick)
    overall = [s.overall_pick for s in ordered]
    if overall != list(range(1, len(ordered) + 1)):
        raise ValidationError(f"Overall picks must run from 1 to {len(ordered)} with no gaps or repeats")

    round_sizes: dict[int, int] = {}
    previous_round = 0
    for slot in ordered:
        if not 1 <= slot.round <= draft.rounds:
            raise ValidationError(
                f"Pick {slot.overall_pick} is in round {slot.round}; draft has {draft.rounds} rounds"
            )
        if slot.round < previous_round:
            raise ValidationError(f"Pick {slot.overall_pick} is out of round order")
        if slot.round > previous_round + 1:
            raise ValidationError(f"Round {previous_round + 1} has no picks")
        previous_round = slot.round

        expected = round_sizes.get(slot.round, 0) + 1
        if slot.pick_number != expected:
            raise ValidationError(
                f"Pick {slot.overall_pick} should be pick {expected} of round {slot.round}, "
                f"not {slot.pick_number}"
            )
        round_sizes[slot.round] = expected

        for team_id in (slot.team_id, slot.original_team_id):
            if team_id is not None and team_id not in team_ids:
                raise ValidationError(f"Pick {slot.overall_pick} references unknown team {team_id}")

    if previous_round != draft.rounds:
        raise ValidationError(f"Draft order covers {previous_round} of {draft.rounds} rounds")
    if draft.picks_per_round is not None:
        for round_number, size in round_sizes.items():
            if size != draft.picks_per_round:
                raise ValidationError(
                    f"Round {round_number} has {size} picks; draft is fixed at {draft.picks_per_round}"
                )


def parse_draft_order(records: list[dict], teams: list[Team]) -> list[PickSlot]:
    """Build slots from draft order records keyed by team abbreviation.

    Each record has round, pick, overall and team, plus optional
    original_team, compensatory and notes.
    """
    by_abbreviation = {t.abbreviation: t.id for t in teams}

    def team_id(abbreviation: str, overall: int) -> UUID:
        if abbreviation not in by_abbreviation:
            raise ValidationError(f"Pick {overall} references unknown team {abbreviation}")
        return by_abbreviation[abbreviation]

    slots = []
    for record in records:
        try:
            overall = int(record["overall"])
            slot = PickSlot(
                round=int(record["round"]),
                pick_number=int(record["pick"]),
                overall_pick=overall,
                team_id=team_id(record["team"], overall),
                is_compensatory=bool(record.get("compensatory", False)),
                notes=record.get("notes"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Malformed draft order record {record!r}: {e}") from e
        if record.get("original_team"):
            slot.original_team_id = team_id(record["original_team"], overall)
        slots.append(slot)
    return slots


class DraftEngine:
    """Runs drafts: creation, status changes, pick order and pick making.

    Auto-picking needs an AutoPickService; without one execute_auto_pick
    raises InternalError.
    """

    def __init__(
        self,
        auto_pick: AutoPickService | None = None,
        broadcaster: EventBroadcaster | None = None,
        auto_pick_attempts: int | None = None,
        use_standings: bool = True,
    ):
        self.auto_pick = auto_pick
        self.broadcaster = broadcaster
        self.auto_pick_attempts = (
            auto_pick_attempts if auto_pick_attempts is not None else get_config().auto_pick_attempts
        )
        self.use_standings = use_standings

    # -- drafts ---------------------------------------------------------------

    async def create_draft(self, name: str, year: int, rounds: int, picks_per_round: int) -> Draft:
        validate_draft(year, rounds, picks_per_round)
        async with get_connection() as conn:
            draft = await insert_draft(conn, name, year, rounds, picks_per_round)
        logger.info("Created draft %s (%d, %d rounds x %d)", draft.id, year, rounds, picks_per_round)
        return draft

    async def create_realistic_draft(self, name: str, year: int, rounds: int) -> Draft:
        """Create a draft whose round size comes from the team count at initialization."""
        validate_draft(year, rounds, None)
        async with get_connection() as conn:
            draft = await insert_draft(conn, name, year, rounds, None)
        logger.info("Created realistic draft %s (%d, %d rounds)", draft.id, year, rounds)
        return draft

    async def get_draft(self, draft_id: UUID) -> Draft:
        async with get_connection() as conn:
            draft = await get_draft(conn, draft_id)
        if draft is None:
            raise NotFoundError(f"Draft with id {draft_id} not found")
        return draft

    async def list_drafts(self, year: int | None = None, status: DraftStatus | None = None) -> list[Draft]:
        async with get_connection() as conn:
            return await list_drafts(conn, year=year, status=status)

    async def _transition(self, draft_id: UUID, action: str) -> Draft:
        draft = await self.get_draft(draft_id)
        getattr(draft, action)()
        async with get_connection() as conn:
            await update_draft_status(conn, draft.id, draft.status)
        logger.info("Draft %s is now %s", draft.id, draft.status.value)
        return draft

    async def start_draft(self, draft_id: UUID) -> Draft:
        return await self._transition(draft_id, "start")

    async def pause_draft(self, draft_id: UUID) -> Draft:
        return await self._transition(draft_id, "pause")

    async def complete_draft(self, draft_id: UUID) -> Draft:
        return await self._transition(draft_id, "complete")

    # -- pick order -----------------------------------------------------------

    async def _teams_in_draft_order(self, draft_year: int) -> list[Team]:
        async with get_connection() as conn:
            teams = await get_all_teams(conn)
            if not teams or not self.use_standings:
                return teams

            standings_year = draft_year - 1
            seasons = await get_team_seasons(conn, standings_year)

        by_id = {team.id: team for team in teams}
        if len(seasons) == len(teams):
            ordered = [by_id[s.team_id] for s in seasons if s.team_id in by_id]
            if len({t.id for t in ordered}) == len(teams):
                logger.info("Using standings-based draft order from %d season", standings_year)
                return ordered

        if seasons:
            logger.warning(
                "Partial standings data found for %d (%d of %d teams). Using default team order.",
                standings_year, len(seasons), len(teams),
            )
        else:
            logger.info("No standings data for %d draft year. Using default team order.", draft_year)
        return teams

    async def initialize_picks(self, draft_id: UUID) -> list[DraftPick]:
        """Create every pick for a draft from the team order.

        Raises ValidationError if picks already exist, no teams exist, or the
        round size does not match the team count.
        """
        draft = await self.get_draft(draft_id)
        teams = await self._teams_in_draft_order(draft.year)
        if not teams:
            raise ValidationError("Cannot initialize draft picks: no teams found")

        picks_per_round = draft.picks_per_round or len(teams)
        if picks_per_round != len(teams):
            raise ValidationError(
                f"Draft configured for {picks_per_round} picks per round but {len(teams)} teams exist"
            )

        picks = build_pick_order(draft, teams)
        async with get_connection() as conn:
            picks = await insert_draft_picks(conn, draft.id, picks)
        logger.info("Initialized %d picks for draft %s", len(picks), draft_id)
        return picks

    async def initialize_picks_from_order(self, draft_id: UUID, slots: list[PickSlot]) -> list[DraftPick]:
        """Create every pick for a draft from a supplied order.

        Round sizes may vary and slots may be compensatory or already traded.
        The whole order is inserted or none of it is.
        """
        draft = await self.get_draft(draft_id)
        async with get_connection() as conn:
            teams = await get_all_teams(conn)
        validate_pick_order(draft, slots, {t.id for t in teams})

        picks = [
            DraftPick(
                id=uuid.uuid4(),
                draft_id=draft.id,
                round=slot.round,
                pick_number=slot.pick_number,
                overall_pick=slot.overall_pick,
                team_id=slot.team_id,
                original_team_id=(
                    slot.original_team_id if slot.original_team_id != slot.team_id else None
                ),
                is_compensatory=slot.is_compensatory,
                notes=slot.notes,
            )
            for slot in sorted(slots, key=lambda s: s.overall_pick)
        ]
        async with get_connection() as conn:
            picks = await insert_draft_picks(conn, draft.id, picks)
        compensatory = sum(1 for p in picks if p.is_compensatory)
        logger.info(
            "Initialized %d picks (%d compensatory) for draft %s from supplied order",
            len(picks), compensatory, draft_id,
        )
        return picks

    async def get_all_picks(self, draft_id: UUID) -> list[DraftPick]:
        async with get_connection() as conn:
            return await get_draft_picks(conn, draft_id)

    async def get_next_pick(self, draft_id: UUID) -> DraftPick | None:
        async with get_connection() as conn:
            return await get_next_pick(conn, draft_id)

    async def get_available_picks(self, draft_id: UUID) -> list[DraftPick]:
        async with get_connection() as conn:
            return await get_available_picks(conn, draft_id)

    async def get_available_players(self, draft_id: UUID) -> list[Player]:
        """Eligible players for the draft's year not yet taken in this draft."""
        draft = await self.get_draft(draft_id)
        async with get_connection() as conn:
            players = await get_players_by_draft_year(conn, draft.year)
            taken = await get_drafted_player_ids(conn, draft_id)
        return [p for p in players if p.id not in taken]

    # -- making picks ---------------------------------------------------------

    async def make_pick(self, pick_id: UUID, player_id: UUID) -> DraftPick:
        """Assign a player to a pick.

        Raises NotFoundError for an unknown pick or player, ValidationError for
        an ineligible player, InvalidStateError if the pick was already made and
        PlayerAlreadyDraftedError if another pick holds the player.
        """
        async with get_connection() as conn:
            pick = await get_pick(conn, pick_id)
            if pick is None:
                raise NotFoundError(f"Pick with id {pick_id} not found")
            player = await get_player(conn, player_id)
            if player is None:
                raise NotFoundError(f"Player with id {player_id} not found")
            draft = await get_draft(conn, pick.draft_id)
            if draft is None:
                raise NotFoundError(f"Draft with id {pick.draft_id} not found")

            if player.draft_year != draft.year:
                raise ValidationError(
                    f"Player is eligible for {player.draft_year} draft, not {draft.year}"
                )
            if not player.draft_eligible:
                raise ValidationError("Player is not draft eligible")
            if pick.is_picked:
                raise InvalidStateError(f"Pick {pick.overall_pick} has already been made")

            taken = await get_drafted_player_ids(conn, draft.id)
            if player_id in taken:
                raise PlayerAlreadyDraftedError(
                    f"Player {player.full_name} has already been drafted in this draft"
                )

            pick = await assign_pick_player(conn, pick_id, player_id)

        logger.info(
            "Pick %d (round %d): team %s selected %s (%s)",
            pick.overall_pick, pick.round, pick.team_id, player.full_name, player.position.value,
        )
        notify(
            self.broadcaster,
            DraftEvent(
                event_type=EventType.PICK_MADE,
                draft_id=pick.draft_id,
                data={
                    "pick_id": str(pick.id),
                    "overall_pick": pick.overall_pick,
                    "round": pick.round,
                    "team_id": str(pick.team_id),
                    "player_id": str(player_id),
                },
            ),
        )
        return pick

    async def execute_auto_pick(self, pick_id: UUID) -> DraftPick:
        """Let the auto-pick service choose and make a pick.

        A lost race for a player refreshes the pool and tries again, up to
        auto_pick_attempts times in total.
        """
        if self.auto_pick is None:
            raise InternalError("Auto-pick service not configured for this draft engine")

        async with get_connection() as conn:
            pick = await get_pick(conn, pick_id)
        if pick is None:
            raise NotFoundError(f"Pick with id {pick_id} not found")

        for attempt in range(1, self.auto_pick_attempts + 1):
            available = await self.get_available_players(pick.draft_id)
            if not available:
                raise ValidationError("No available players to draft")

            decision = await self.auto_pick.decide_pick(pick.team_id, pick.draft_id, available)
            logger.info("Auto-pick for pick %d: %s", pick.overall_pick, decision.rationale)
            try:
                return await self.make_pick(pick_id, decision.player_id)
            except PlayerAlreadyDraftedError:
                if attempt >= self.auto_pick_attempts:
                    raise
                logger.warning(
                    "Auto-pick attempt %d/%d for pick %d lost a race for player %s, retrying",
                    attempt, self.auto_pick_attempts, pick.overall_pick, decision.player_id,
                )

        raise InternalError(f"Auto-pick for pick {pick_id} made no attempts")
