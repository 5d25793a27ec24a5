"""Pytest configuration for draftroom tests."""

import importlib
import uuid
from contextlib import asynccontextmanager
from dataclasses import replace
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from dotenv import load_dotenv

from draftroom.errors import (
    InvalidStateError,
    NotFoundError,
    PlayerAlreadyDraftedError,
    ValidationError,
)
from draftroom.models import (
    CombinePercentile,
    CombineResult,
    Draft,
    DraftSession,
    DraftStatus,
    FitGrade,
    Player,
    Position,
    ScoutingReport,
    Team,
    TeamNeed,
    TeamSeason,
    TradeDirection,
    TradeProposal,
    TradeStatus,
    utcnow,
)

# Load .env from project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)


@asynccontextmanager
async def mock_conn():
    yield AsyncMock()


class InMemoryStore:
    """Dict-backed stand-in for the storage functions the engines call.

    Mirrors the database guarantees: one player per draft, conditional pick
    assignment, pick exclusivity across Proposed trades and an all-or-nothing
    ownership swap.
    """

    def __init__(self):
        self.teams: dict[uuid.UUID, Team] = {}
        self.players: dict[uuid.UUID, Player] = {}
        self.drafts: dict[uuid.UUID, Draft] = {}
        self.picks: dict[uuid.UUID, object] = {}
        self.reports: dict[tuple, ScoutingReport] = {}
        self.combines: dict[uuid.UUID, CombineResult] = {}
        self.percentiles: dict[str, dict[str, CombinePercentile]] = {}
        self.needs: dict[uuid.UUID, list[TeamNeed]] = {}
        self.seasons: list[TeamSeason] = []
        self.strategies: dict[tuple, object] = {}
        self.sessions: dict[uuid.UUID, DraftSession] = {}
        self.trades: dict[uuid.UUID, object] = {}
        self.trade_details: dict[uuid.UUID, list] = {}

    # -- seeding helpers ----------------------------------------------------

    def add_team(self, name: str, abbreviation: str) -> Team:
        team = Team(id=uuid.uuid4(), name=name, abbreviation=abbreviation)
        self.teams[team.id] = team
        return team

    def add_player(
        self,
        first_name: str,
        last_name: str,
        position: Position,
        draft_year: int = 2026,
        draft_eligible: bool = True,
        **kwargs,
    ) -> Player:
        player = Player(
            id=uuid.uuid4(),
            first_name=first_name,
            last_name=last_name,
            position=position,
            draft_year=draft_year,
            draft_eligible=draft_eligible,
            **kwargs,
        )
        self.players[player.id] = player
        return player

    def add_report(
        self,
        team: Team,
        player: Player,
        grade: float,
        fit_grade: FitGrade | None = None,
        injury_concern: bool = False,
        character_concern: bool = False,
    ) -> ScoutingReport:
        report = ScoutingReport(
            team_id=team.id,
            player_id=player.id,
            grade=grade,
            fit_grade=fit_grade,
            injury_concern=injury_concern,
            character_concern=character_concern,
        )
        self.reports[(team.id, player.id)] = report
        return report

    def add_need(self, team: Team, position: Position, priority: int) -> None:
        self.needs.setdefault(team.id, []).append(TeamNeed(team.id, position, priority))

    def add_combine(self, player: Player, **measurements) -> CombineResult:
        result = CombineResult(player_id=player.id, year=player.draft_year, **measurements)
        self.combines[player.id] = result
        return result

    def add_season(self, team: Team, season_year: int, draft_position: int) -> None:
        self.seasons.append(TeamSeason(team.id, season_year, draft_position=draft_position))

    def add_percentile(self, group: str, measurement: str, breakpoints: list[float]) -> None:
        self.percentiles.setdefault(group, {})[measurement] = CombinePercentile(
            position=group, measurement=measurement, breakpoints=breakpoints, sample_size=100
        )

    # -- teams and players --------------------------------------------------

    async def get_all_teams(self, conn):
        return sorted(self.teams.values(), key=lambda t: t.name)

    async def get_team(self, conn, team_id):
        return self.teams.get(team_id)

    async def get_player(self, conn, player_id):
        return self.players.get(player_id)

    async def get_players_by_draft_year(self, conn, year):
        players = [p for p in self.players.values() if p.draft_year == year and p.draft_eligible]
        return sorted(players, key=lambda p: (p.last_name, p.first_name, str(p.id)))

    # -- scouting inputs ----------------------------------------------------

    async def get_scouting_report(self, conn, team_id, player_id):
        return self.reports.get((team_id, player_id))

    async def get_team_scouting_reports(self, conn, team_id):
        return {pid: r for (tid, pid), r in self.reports.items() if tid == team_id}

    async def get_combine_results(self, conn, player_ids):
        return {pid: self.combines[pid] for pid in player_ids if pid in self.combines}

    async def get_combine_percentiles(self, conn, position_group):
        return dict(self.percentiles.get(position_group, {}))

    async def get_team_needs(self, conn, team_id):
        return sorted(self.needs.get(team_id, []), key=lambda n: n.priority)

    async def get_team_seasons(self, conn, season_year):
        seasons = [
            s for s in self.seasons
            if s.season_year == season_year and s.draft_position is not None
        ]
        return sorted(seasons, key=lambda s: s.draft_position)

    # -- strategies ---------------------------------------------------------

    async def get_draft_strategy(self, conn, team_id, draft_id):
        strategy = self.strategies.get((team_id, draft_id))
        return replace(strategy) if strategy else None

    async def insert_draft_strategy(self, conn, strategy):
        key = (strategy.team_id, strategy.draft_id)
        if key not in self.strategies:
            self.strategies[key] = replace(strategy, id=uuid.uuid4())
        return replace(self.strategies[key])

    async def upsert_draft_strategy(self, conn, strategy):
        key = (strategy.team_id, strategy.draft_id)
        existing = self.strategies.get(key)
        self.strategies[key] = replace(strategy, id=existing.id if existing else uuid.uuid4())
        return replace(self.strategies[key])

    # -- drafts and picks ---------------------------------------------------

    async def insert_draft(self, conn, name, year, rounds, picks_per_round):
        draft = Draft(id=uuid.uuid4(), name=name, year=year, rounds=rounds,
                      picks_per_round=picks_per_round)
        self.drafts[draft.id] = draft
        return replace(draft)

    async def get_draft(self, conn, draft_id):
        draft = self.drafts.get(draft_id)
        return replace(draft) if draft else None

    async def list_drafts(self, conn, year=None, status=None):
        drafts = [
            replace(d) for d in self.drafts.values()
            if (year is None or d.year == year) and (status is None or d.status == status)
        ]
        return sorted(drafts, key=lambda d: d.year, reverse=True)

    async def update_draft_status(self, conn, draft_id, status: DraftStatus):
        if draft_id not in self.drafts:
            raise NotFoundError(f"Draft {draft_id} not found")
        self.drafts[draft_id].status = status

    async def insert_draft_picks(self, conn, draft_id, picks):
        if draft_id not in self.drafts:
            raise NotFoundError(f"Draft {draft_id} not found")
        if any(p.draft_id == draft_id for p in self.picks.values()):
            raise ValidationError(f"Draft picks have already been initialized for draft {draft_id}")
        for pick in picks:
            self.picks[pick.id] = replace(pick)
        return picks

    async def get_pick(self, conn, pick_id):
        pick = self.picks.get(pick_id)
        return replace(pick) if pick else None

    def _draft_picks(self, draft_id):
        return sorted(
            (p for p in self.picks.values() if p.draft_id == draft_id),
            key=lambda p: p.overall_pick,
        )

    async def get_draft_picks(self, conn, draft_id):
        return [replace(p) for p in self._draft_picks(draft_id)]

    async def get_next_pick(self, conn, draft_id):
        available = [p for p in self._draft_picks(draft_id) if p.player_id is None]
        return replace(available[0]) if available else None

    async def get_available_picks(self, conn, draft_id):
        return [replace(p) for p in self._draft_picks(draft_id) if p.player_id is None]

    async def get_drafted_player_ids(self, conn, draft_id):
        return {p.player_id for p in self._draft_picks(draft_id) if p.player_id is not None}

    async def assign_pick_player(self, conn, pick_id, player_id):
        pick = self.picks.get(pick_id)
        if pick is None:
            raise NotFoundError(f"Pick {pick_id} not found")
        if pick.player_id is not None:
            raise InvalidStateError(f"Pick {pick.overall_pick} has already been made")
        if any(p.player_id == player_id for p in self._draft_picks(pick.draft_id)):
            raise PlayerAlreadyDraftedError(f"Player {player_id} has already been drafted")
        pick.player_id = player_id
        pick.picked_at = utcnow()
        return replace(pick)

    # -- sessions and trades ------------------------------------------------

    async def insert_session(self, conn, draft_id, chart_type, auto_pick_enabled=False):
        session = DraftSession(id=uuid.uuid4(), draft_id=draft_id, chart_type=chart_type,
                               auto_pick_enabled=auto_pick_enabled)
        self.sessions[session.id] = session
        return replace(session)

    async def get_session(self, conn, session_id):
        session = self.sessions.get(session_id)
        return replace(session) if session else None

    def _check_picks(self, pick_ids, owner_id):
        for pick_id in pick_ids:
            pick = self.picks.get(pick_id)
            if pick is None:
                raise NotFoundError(f"Pick {pick_id} not found")
            if pick.team_id != owner_id:
                raise ValidationError(f"Pick {pick.overall_pick} is not owned by team {owner_id}")
            if pick.player_id is not None:
                raise ValidationError(f"Pick {pick.overall_pick} has already been used")

    def _proposal(self, trade_id):
        details = self.trade_details[trade_id]
        return TradeProposal(
            trade=replace(self.trades[trade_id]),
            from_team_picks=[d.pick_id for d in details if d.direction == TradeDirection.FROM_TEAM],
            to_team_picks=[d.pick_id for d in details if d.direction == TradeDirection.TO_TEAM],
        )

    async def insert_trade(self, conn, trade, details):
        from_picks = [d.pick_id for d in details if d.direction == TradeDirection.FROM_TEAM]
        to_picks = [d.pick_id for d in details if d.direction == TradeDirection.TO_TEAM]
        self._check_picks(from_picks, trade.from_team_id)
        self._check_picks(to_picks, trade.to_team_id)
        for pick_id in from_picks + to_picks:
            if await self.is_pick_in_active_trade(conn, pick_id):
                raise ValidationError(f"Pick {pick_id} is already in an active trade proposal")
        stored = replace(trade, id=uuid.uuid4(), status=TradeStatus.PROPOSED, proposed_at=utcnow())
        self.trades[stored.id] = stored
        self.trade_details[stored.id] = list(details)
        return self._proposal(stored.id)

    async def get_trade(self, conn, trade_id):
        if trade_id not in self.trades:
            return None
        return self._proposal(trade_id)

    async def get_pending_trades_for_team(self, conn, team_id):
        return [
            self._proposal(t.id) for t in self.trades.values()
            if t.to_team_id == team_id and t.status == TradeStatus.PROPOSED
        ]

    async def is_pick_in_active_trade(self, conn, pick_id, exclude_trade_id=None):
        for trade_id, details in self.trade_details.items():
            if trade_id == exclude_trade_id:
                continue
            if self.trades[trade_id].status != TradeStatus.PROPOSED:
                continue
            if any(d.pick_id == pick_id for d in details):
                return True
        return False

    async def execute_trade(self, conn, proposal):
        trade = self.trades.get(proposal.trade.id)
        if trade is None:
            raise NotFoundError(f"Trade {proposal.trade.id} not found")
        if trade.status != TradeStatus.PROPOSED:
            raise InvalidStateError(f"Cannot accept trade in status: {trade.status.value}")
        self._check_picks(proposal.from_team_picks, trade.from_team_id)
        self._check_picks(proposal.to_team_picks, trade.to_team_id)
        for pick_ids, new_owner in (
            (proposal.from_team_picks, trade.to_team_id),
            (proposal.to_team_picks, trade.from_team_id),
        ):
            for pick_id in pick_ids:
                pick = self.picks[pick_id]
                if pick.original_team_id is None:
                    pick.original_team_id = pick.team_id
                pick.team_id = new_owner
        trade.status = TradeStatus.ACCEPTED
        trade.responded_at = utcnow()
        return replace(trade)

    async def reject_trade(self, conn, trade_id):
        trade = self.trades.get(trade_id)
        if trade is None or trade.status != TradeStatus.PROPOSED:
            raise InvalidStateError(f"Trade {trade_id} is no longer Proposed")
        trade.status = TradeStatus.REJECTED
        trade.responded_at = utcnow()
        return replace(trade)


STORE_FUNCTIONS = [
    "assign_pick_player",
    "execute_trade",
    "get_all_teams",
    "get_available_picks",
    "get_combine_percentiles",
    "get_combine_results",
    "get_draft",
    "get_draft_picks",
    "get_draft_strategy",
    "get_drafted_player_ids",
    "get_next_pick",
    "get_pending_trades_for_team",
    "get_pick",
    "get_player",
    "get_players_by_draft_year",
    "get_scouting_report",
    "get_session",
    "get_team",
    "get_team_needs",
    "get_team_scouting_reports",
    "get_team_seasons",
    "get_trade",
    "insert_draft",
    "insert_draft_picks",
    "insert_draft_strategy",
    "insert_session",
    "insert_trade",
    "is_pick_in_active_trade",
    "list_drafts",
    "reject_trade",
    "update_draft_status",
    "upsert_draft_strategy",
]

PROCESSING_MODULES = [
    "draftroom.processing.draft",
    "draftroom.processing.evaluation",
    "draftroom.processing.strategy",
    "draftroom.processing.trades",
]


def _dispatch(store: InMemoryStore, name: str):
    # looked up per call so tests can swap a store method mid-test
    async def call(*args, **kwargs):
        return await getattr(store, name)(*args, **kwargs)

    return call


@pytest.fixture
def store():
    """Run the engines against an in-memory store instead of Postgres.

    Patches get_connection and every storage function at each processing
    module that imports it.
    """
    memory = InMemoryStore()
    patches = []
    for module_name in PROCESSING_MODULES:
        module = importlib.import_module(module_name)
        patches.append(patch(f"{module_name}.get_connection", side_effect=mock_conn))
        for name in STORE_FUNCTIONS:
            if hasattr(module, name):
                patches.append(patch(f"{module_name}.{name}", new=_dispatch(memory, name)))

    for p in patches:
        p.start()
    yield memory
    for p in patches:
        p.stop()


@pytest.fixture
def teams(store):
    """Four teams, in the default (name) order."""
    return [
        store.add_team("Bears", "CHI"),
        store.add_team("Eagles", "PHI"),
        store.add_team("Falcons", "ATL"),
        store.add_team("Jets", "NYJ"),
    ]
