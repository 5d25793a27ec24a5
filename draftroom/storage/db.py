"""Database connection and operations for draftroom."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

import psycopg
from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool

from ..config import get_config
from ..errors import InvalidStateError, NotFoundError, PlayerAlreadyDraftedError, ValidationError
from ..models import (
    CombinePercentile,
    CombineResult,
    Draft,
    DraftPick,
    DraftSession,
    DraftStatus,
    DraftStrategy,
    FitGrade,
    PickTrade,
    PickTradeDetail,
    Player,
    Position,
    ScoutingReport,
    Team,
    TeamNeed,
    TeamSeason,
    TradeDirection,
    TradeProposal,
    TradeStatus,
)

logger = logging.getLogger(__name__)

_pool: AsyncConnectionPool | None = None

MIN_POOL_CONNECTIONS = 2
MAX_POOL_CONNECTIONS = 10


async def init_pool(
    min_conn: int | None = None,
    max_conn: int | None = None,
) -> None:
    """Initialize the async connection pool. Safe to call multiple times."""
    global _pool
    if _pool is not None:
        return
    config = get_config()
    if not config.database_url:
        raise ValueError("DATABASE_URL environment variable not set")
    min_conn = min_conn or config.pool_min or MIN_POOL_CONNECTIONS
    max_conn = max_conn or config.pool_max or MAX_POOL_CONNECTIONS
    _pool = AsyncConnectionPool(
        conninfo=config.database_url,
        min_size=min_conn,
        max_size=max_conn,
        open=False,
    )
    await _pool.open()
    logger.info("Async connection pool initialized (min=%d, max=%d)", min_conn, max_conn)


async def close_pool() -> None:
    """Close all connections in the pool."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("Async connection pool closed")


@asynccontextmanager
async def get_connection() -> AsyncIterator[psycopg.AsyncConnection]:
    """Async context manager that yields a connection from the pool.

    Lazily initializes the pool on first call.
    """
    global _pool
    if _pool is None:
        await init_pool()
    async with _pool.connection() as conn:
        yield conn


# ---------------------------------------------------------------------------
# Row conversion
# ---------------------------------------------------------------------------


async def _fetchall_dicts(cur: psycopg.AsyncCursor) -> list[dict]:
    columns = [desc[0] for desc in cur.description]
    rows = await cur.fetchall()
    return [dict(zip(columns, row)) for row in rows]


async def _fetchone_dict(cur: psycopg.AsyncCursor) -> dict | None:
    row = await cur.fetchone()
    if not row:
        return None
    columns = [desc[0] for desc in cur.description]
    return dict(zip(columns, row))


def _team(row: dict) -> Team:
    return Team(id=row["id"], name=row["name"], abbreviation=row["abbreviation"], city=row["city"])


def _player(row: dict) -> Player:
    return Player(
        id=row["id"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        position=Position(row["position"]),
        draft_year=row["draft_year"],
        draft_eligible=row["draft_eligible"],
        college=row["college"],
        height_inches=row["height_inches"],
        weight_pounds=row["weight_pounds"],
    )


def _draft(row: dict) -> Draft:
    return Draft(
        id=row["id"],
        name=row["name"],
        year=row["year"],
        rounds=row["rounds"],
        picks_per_round=row["picks_per_round"],
        status=DraftStatus(row["status"]),
    )


def _pick(row: dict) -> DraftPick:
    return DraftPick(
        id=row["id"],
        draft_id=row["draft_id"],
        round=row["round"],
        pick_number=row["pick_number"],
        overall_pick=row["overall_pick"],
        team_id=row["team_id"],
        player_id=row["player_id"],
        picked_at=row["picked_at"],
        original_team_id=row["original_team_id"],
        is_compensatory=row["is_compensatory"],
        notes=row["notes"],
    )


def _strategy(row: dict) -> DraftStrategy:
    position_values = None
    if row["position_values"]:
        position_values = {Position(k): float(v) for k, v in row["position_values"].items()}
    return DraftStrategy(
        id=row["id"],
        team_id=row["team_id"],
        draft_id=row["draft_id"],
        bpa_weight=row["bpa_weight"],
        need_weight=row["need_weight"],
        position_values=position_values,
        risk_tolerance=row["risk_tolerance"],
    )


def _trade(row: dict) -> PickTrade:
    return PickTrade(
        id=row["id"],
        session_id=row["session_id"],
        from_team_id=row["from_team_id"],
        to_team_id=row["to_team_id"],
        from_team_value=row["from_team_value"],
        to_team_value=row["to_team_value"],
        status=TradeStatus(row["status"]),
        proposed_at=row["proposed_at"],
        responded_at=row["responded_at"],
    )


_PICK_COLUMNS = """
    id, draft_id, round, pick_number, overall_pick, team_id, player_id,
    picked_at, original_team_id, is_compensatory, notes
"""

_TRADE_COLUMNS = """
    id, session_id, from_team_id, to_team_id, status, from_team_value,
    to_team_value, proposed_at, responded_at
"""


# ---------------------------------------------------------------------------
# Teams and players
# ---------------------------------------------------------------------------


async def get_all_teams(conn: psycopg.AsyncConnection) -> list[Team]:
    """Get every team ordered by name."""
    cur = conn.cursor()
    await cur.execute("SELECT id, name, abbreviation, city FROM draft.teams ORDER BY name, id")
    return [_team(row) for row in await _fetchall_dicts(cur)]


async def get_team(conn: psycopg.AsyncConnection, team_id: UUID) -> Team | None:
    cur = conn.cursor()
    await cur.execute(
        "SELECT id, name, abbreviation, city FROM draft.teams WHERE id = %s",
        (team_id,),
    )
    row = await _fetchone_dict(cur)
    return _team(row) if row else None


async def get_player(conn: psycopg.AsyncConnection, player_id: UUID) -> Player | None:
    cur = conn.cursor()
    await cur.execute(
        """
        SELECT id, first_name, last_name, position, draft_year, draft_eligible,
               college, height_inches, weight_pounds
        FROM draft.players
        WHERE id = %s
        """,
        (player_id,),
    )
    row = await _fetchone_dict(cur)
    return _player(row) if row else None


async def get_players_by_draft_year(conn: psycopg.AsyncConnection, year: int) -> list[Player]:
    """Get draft-eligible players for a year in a stable order."""
    cur = conn.cursor()
    await cur.execute(
        """
        SELECT id, first_name, last_name, position, draft_year, draft_eligible,
               college, height_inches, weight_pounds
        FROM draft.players
        WHERE draft_year = %s AND draft_eligible = TRUE
        ORDER BY last_name, first_name, id
        """,
        (year,),
    )
    return [_player(row) for row in await _fetchall_dicts(cur)]


# ---------------------------------------------------------------------------
# Scouting inputs
# ---------------------------------------------------------------------------


async def get_scouting_report(
    conn: psycopg.AsyncConnection,
    team_id: UUID,
    player_id: UUID,
) -> ScoutingReport | None:
    """Get one team's scouting report on a player."""
    cur = conn.cursor()
    await cur.execute(
        """
        SELECT team_id, player_id, grade, fit_grade, injury_concern, character_concern, notes
        FROM draft.scouting_reports
        WHERE team_id = %s AND player_id = %s
        """,
        (team_id, player_id),
    )
    row = await _fetchone_dict(cur)
    if not row:
        return None
    return ScoutingReport(
        team_id=row["team_id"],
        player_id=row["player_id"],
        grade=float(row["grade"]),
        fit_grade=FitGrade(row["fit_grade"]) if row["fit_grade"] else None,
        injury_concern=row["injury_concern"],
        character_concern=row["character_concern"],
        notes=row["notes"],
    )


async def get_team_scouting_reports(
    conn: psycopg.AsyncConnection,
    team_id: UUID,
) -> dict[UUID, ScoutingReport]:
    """Get all of a team's scouting reports keyed by player."""
    cur = conn.cursor()
    await cur.execute(
        """
        SELECT team_id, player_id, grade, fit_grade, injury_concern, character_concern, notes
        FROM draft.scouting_reports
        WHERE team_id = %s
        """,
        (team_id,),
    )
    reports = {}
    for row in await _fetchall_dicts(cur):
        reports[row["player_id"]] = ScoutingReport(
            team_id=row["team_id"],
            player_id=row["player_id"],
            grade=float(row["grade"]),
            fit_grade=FitGrade(row["fit_grade"]) if row["fit_grade"] else None,
            injury_concern=row["injury_concern"],
            character_concern=row["character_concern"],
            notes=row["notes"],
        )
    return reports


async def get_combine_results(
    conn: psycopg.AsyncConnection,
    player_ids: list[UUID],
) -> dict[UUID, CombineResult]:
    """Get the most relevant combine result per player.

    Official combine numbers win over pro day numbers; newest year wins within a source.
    """
    if not player_ids:
        return {}
    cur = conn.cursor()
    await cur.execute(
        """
        SELECT DISTINCT ON (player_id)
               player_id, year, source, forty_yard_dash, bench_press, vertical_jump,
               broad_jump, three_cone_drill, twenty_yard_shuttle, ten_yard_split,
               twenty_yard_split
        FROM draft.combine_results
        WHERE player_id = ANY(%s)
        ORDER BY player_id, (source = 'combine') DESC, year DESC
        """,
        (list(player_ids),),
    )
    return {row["player_id"]: CombineResult(**row) for row in await _fetchall_dicts(cur)}


async def get_combine_percentiles(
    conn: psycopg.AsyncConnection,
    position_group: str,
) -> dict[str, CombinePercentile]:
    """Get percentile breakpoints for a position group keyed by measurement."""
    cur = conn.cursor()
    await cur.execute(
        """
        SELECT position, measurement, sample_size, min_value, p10, p20, p30, p40,
               p50, p60, p70, p80, p90, max_value
        FROM draft.combine_percentiles
        WHERE position = %s
        """,
        (position_group,),
    )
    percentiles = {}
    for row in await _fetchall_dicts(cur):
        breakpoints = [
            row["min_value"], row["p10"], row["p20"], row["p30"], row["p40"], row["p50"],
            row["p60"], row["p70"], row["p80"], row["p90"], row["max_value"],
        ]
        percentiles[row["measurement"]] = CombinePercentile(
            position=row["position"],
            measurement=row["measurement"],
            breakpoints=[float(b) for b in breakpoints],
            sample_size=row["sample_size"],
        )
    return percentiles


async def get_team_needs(conn: psycopg.AsyncConnection, team_id: UUID) -> list[TeamNeed]:
    """Get a team's positional needs, most pressing first."""
    cur = conn.cursor()
    await cur.execute(
        """
        SELECT team_id, position, priority
        FROM draft.team_needs
        WHERE team_id = %s
        ORDER BY priority ASC
        """,
        (team_id,),
    )
    return [
        TeamNeed(team_id=row["team_id"], position=Position(row["position"]), priority=row["priority"])
        for row in await _fetchall_dicts(cur)
    ]


async def get_team_seasons(conn: psycopg.AsyncConnection, season_year: int) -> list[TeamSeason]:
    """Get a season's standings ordered by draft position."""
    cur = conn.cursor()
    await cur.execute(
        """
        SELECT team_id, season_year, wins, losses, ties, draft_position
        FROM draft.team_seasons
        WHERE season_year = %s AND draft_position IS NOT NULL
        ORDER BY draft_position ASC
        """,
        (season_year,),
    )
    return [TeamSeason(**row) for row in await _fetchall_dicts(cur)]


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


def _position_values_json(strategy: DraftStrategy) -> Jsonb | None:
    if strategy.position_values is None:
        return None
    return Jsonb({pos.value: value for pos, value in strategy.position_values.items()})


async def get_draft_strategy(
    conn: psycopg.AsyncConnection,
    team_id: UUID,
    draft_id: UUID,
) -> DraftStrategy | None:
    cur = conn.cursor()
    await cur.execute(
        """
        SELECT id, team_id, draft_id, bpa_weight, need_weight, position_values, risk_tolerance
        FROM draft.draft_strategies
        WHERE team_id = %s AND draft_id = %s
        """,
        (team_id, draft_id),
    )
    row = await _fetchone_dict(cur)
    return _strategy(row) if row else None


async def insert_draft_strategy(
    conn: psycopg.AsyncConnection,
    strategy: DraftStrategy,
) -> DraftStrategy:
    """Insert a strategy unless one exists, and return the stored row.

    Concurrent first-time callers all get back the same row.
    """
    cur = conn.cursor()
    await cur.execute(
        """
        INSERT INTO draft.draft_strategies
            (team_id, draft_id, bpa_weight, need_weight, position_values, risk_tolerance)
        VALUES (%s, %s, %s, %s, %s, %s)
        ON CONFLICT (team_id, draft_id) DO NOTHING
        """,
        (
            strategy.team_id,
            strategy.draft_id,
            strategy.bpa_weight,
            strategy.need_weight,
            _position_values_json(strategy),
            strategy.risk_tolerance,
        ),
    )
    await conn.commit()
    stored = await get_draft_strategy(conn, strategy.team_id, strategy.draft_id)
    if stored is None:
        raise NotFoundError(f"Strategy for team {strategy.team_id} in draft {strategy.draft_id}")
    return stored


async def upsert_draft_strategy(
    conn: psycopg.AsyncConnection,
    strategy: DraftStrategy,
) -> DraftStrategy:
    """Insert or replace a team's strategy for a draft."""
    cur = conn.cursor()
    await cur.execute(
        """
        INSERT INTO draft.draft_strategies
            (team_id, draft_id, bpa_weight, need_weight, position_values, risk_tolerance)
        VALUES (%s, %s, %s, %s, %s, %s)
        ON CONFLICT (team_id, draft_id) DO UPDATE SET
            bpa_weight = EXCLUDED.bpa_weight,
            need_weight = EXCLUDED.need_weight,
            position_values = EXCLUDED.position_values,
            risk_tolerance = EXCLUDED.risk_tolerance
        RETURNING id, team_id, draft_id, bpa_weight, need_weight, position_values, risk_tolerance
        """,
        (
            strategy.team_id,
            strategy.draft_id,
            strategy.bpa_weight,
            strategy.need_weight,
            _position_values_json(strategy),
            strategy.risk_tolerance,
        ),
    )
    row = await _fetchone_dict(cur)
    await conn.commit()
    return _strategy(row)


# ---------------------------------------------------------------------------
# Drafts and picks
# ---------------------------------------------------------------------------


async def insert_draft(
    conn: psycopg.AsyncConnection,
    name: str,
    year: int,
    rounds: int,
    picks_per_round: int | None,
) -> Draft:
    cur = conn.cursor()
    await cur.execute(
        """
        INSERT INTO draft.drafts (name, year, rounds, picks_per_round, status)
        VALUES (%s, %s, %s, %s, %s)
        RETURNING id, name, year, rounds, picks_per_round, status
        """,
        (name, year, rounds, picks_per_round, DraftStatus.NOT_STARTED.value),
    )
    row = await _fetchone_dict(cur)
    await conn.commit()
    return _draft(row)


async def get_draft(conn: psycopg.AsyncConnection, draft_id: UUID) -> Draft | None:
    cur = conn.cursor()
    await cur.execute(
        "SELECT id, name, year, rounds, picks_per_round, status FROM draft.drafts WHERE id = %s",
        (draft_id,),
    )
    row = await _fetchone_dict(cur)
    return _draft(row) if row else None


async def list_drafts(
    conn: psycopg.AsyncConnection,
    year: int | None = None,
    status: DraftStatus | None = None,
) -> list[Draft]:
    """List drafts, newest first, with optional filters."""
    conditions = []
    params: list = []
    if year is not None:
        conditions.append("year = %s")
        params.append(year)
    if status is not None:
        conditions.append("status = %s")
        params.append(status.value)
    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

    cur = conn.cursor()
    await cur.execute(
        f"""
        SELECT id, name, year, rounds, picks_per_round, status
        FROM draft.drafts
        {where}
        ORDER BY year DESC, created_at DESC
        """,
        params,
    )
    return [_draft(row) for row in await _fetchall_dicts(cur)]


async def update_draft_status(
    conn: psycopg.AsyncConnection,
    draft_id: UUID,
    status: DraftStatus,
) -> None:
    cur = conn.cursor()
    await cur.execute(
        "UPDATE draft.drafts SET status = %s, updated_at = NOW() WHERE id = %s",
        (status.value, draft_id),
    )
    if cur.rowcount == 0:
        raise NotFoundError(f"Draft {draft_id} not found")
    await conn.commit()


async def insert_draft_picks(
    conn: psycopg.AsyncConnection,
    draft_id: UUID,
    picks: list[DraftPick],
) -> list[DraftPick]:
    """Insert a full pick order in one transaction.

    The draft row is locked first so concurrent initializers serialize; the
    loser sees the winner's picks and gets ValidationError.
    """
    already_initialized = f"Draft picks have already been initialized for draft {draft_id}"
    try:
        async with conn.transaction():
            cur = conn.cursor()
            await cur.execute("SELECT id FROM draft.drafts WHERE id = %s FOR UPDATE", (draft_id,))
            if await cur.fetchone() is None:
                raise NotFoundError(f"Draft {draft_id} not found")
            await cur.execute(
                "SELECT COUNT(*) FROM draft.draft_picks WHERE draft_id = %s", (draft_id,)
            )
            (existing,) = await cur.fetchone()
            if existing:
                raise ValidationError(already_initialized)
            await cur.executemany(
                """
                INSERT INTO draft.draft_picks
                    (id, draft_id, round, pick_number, overall_pick, team_id,
                     original_team_id, is_compensatory, notes)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                """,
                [
                    (p.id, draft_id, p.round, p.pick_number, p.overall_pick, p.team_id,
                     p.original_team_id, p.is_compensatory, p.notes)
                    for p in picks
                ],
            )
    except psycopg.errors.UniqueViolation as e:
        raise ValidationError(already_initialized) from e
    await conn.commit()
    return picks


async def get_pick(conn: psycopg.AsyncConnection, pick_id: UUID) -> DraftPick | None:
    cur = conn.cursor()
    await cur.execute(f"SELECT {_PICK_COLUMNS} FROM draft.draft_picks WHERE id = %s", (pick_id,))
    row = await _fetchone_dict(cur)
    return _pick(row) if row else None


async def get_draft_picks(conn: psycopg.AsyncConnection, draft_id: UUID) -> list[DraftPick]:
    """Get every pick in a draft ordered by overall pick."""
    cur = conn.cursor()
    await cur.execute(
        f"""
        SELECT {_PICK_COLUMNS}
        FROM draft.draft_picks
        WHERE draft_id = %s
        ORDER BY overall_pick ASC
        """,
        (draft_id,),
    )
    return [_pick(row) for row in await _fetchall_dicts(cur)]


async def get_next_pick(conn: psycopg.AsyncConnection, draft_id: UUID) -> DraftPick | None:
    """Get the lowest-numbered pick that has not been made."""
    cur = conn.cursor()
    await cur.execute(
        f"""
        SELECT {_PICK_COLUMNS}
        FROM draft.draft_picks
        WHERE draft_id = %s AND player_id IS NULL
        ORDER BY overall_pick ASC
        LIMIT 1
        """,
        (draft_id,),
    )
    row = await _fetchone_dict(cur)
    return _pick(row) if row else None


async def get_available_picks(conn: psycopg.AsyncConnection, draft_id: UUID) -> list[DraftPick]:
    """Get every unmade pick in order."""
    cur = conn.cursor()
    await cur.execute(
        f"""
        SELECT {_PICK_COLUMNS}
        FROM draft.draft_picks
        WHERE draft_id = %s AND player_id IS NULL
        ORDER BY overall_pick ASC
        """,
        (draft_id,),
    )
    return [_pick(row) for row in await _fetchall_dicts(cur)]


async def get_drafted_player_ids(conn: psycopg.AsyncConnection, draft_id: UUID) -> set[UUID]:
    cur = conn.cursor()
    await cur.execute(
        "SELECT player_id FROM draft.draft_picks WHERE draft_id = %s AND player_id IS NOT NULL",
        (draft_id,),
    )
    return {row[0] for row in await cur.fetchall()}


async def assign_pick_player(
    conn: psycopg.AsyncConnection,
    pick_id: UUID,
    player_id: UUID,
) -> DraftPick:
    """Record the player selected with a pick.

    The update only applies to an unmade pick, and the per-draft unique index on
    player_id turns a double selection into PlayerAlreadyDraftedError.
    """
    try:
        async with conn.transaction():
            cur = conn.cursor()
            await cur.execute(
                f"""
                UPDATE draft.draft_picks
                SET player_id = %s, picked_at = NOW(), updated_at = NOW()
                WHERE id = %s AND player_id IS NULL
                RETURNING {_PICK_COLUMNS}
                """,
                (player_id, pick_id),
            )
            row = await _fetchone_dict(cur)
    except psycopg.errors.UniqueViolation as e:
        raise PlayerAlreadyDraftedError(f"Player {player_id} has already been drafted") from e
    await conn.commit()

    if row is None:
        existing = await get_pick(conn, pick_id)
        if existing is None:
            raise NotFoundError(f"Pick {pick_id} not found")
        raise InvalidStateError(f"Pick {existing.overall_pick} has already been made")
    return _pick(row)


# ---------------------------------------------------------------------------
# Sessions and trades
# ---------------------------------------------------------------------------


async def insert_session(
    conn: psycopg.AsyncConnection,
    draft_id: UUID,
    chart_type: str,
    auto_pick_enabled: bool = False,
) -> DraftSession:
    cur = conn.cursor()
    await cur.execute(
        """
        INSERT INTO draft.draft_sessions (draft_id, chart_type, auto_pick_enabled)
        VALUES (%s, %s, %s)
        RETURNING id, draft_id, chart_type, auto_pick_enabled
        """,
        (draft_id, chart_type, auto_pick_enabled),
    )
    row = await _fetchone_dict(cur)
    await conn.commit()
    return DraftSession(**row)


async def get_session(conn: psycopg.AsyncConnection, session_id: UUID) -> DraftSession | None:
    cur = conn.cursor()
    await cur.execute(
        "SELECT id, draft_id, chart_type, auto_pick_enabled FROM draft.draft_sessions WHERE id = %s",
        (session_id,),
    )
    row = await _fetchone_dict(cur)
    return DraftSession(**row) if row else None


async def _lock_picks(cur: psycopg.AsyncCursor, pick_ids: list[UUID]) -> dict[UUID, dict]:
    await cur.execute(
        """
        SELECT id, team_id, player_id, overall_pick
        FROM draft.draft_picks
        WHERE id = ANY(%s)
        ORDER BY id
        FOR UPDATE
        """,
        (pick_ids,),
    )
    return {row["id"]: row for row in await _fetchall_dicts(cur)}


def _check_locked_picks(
    locked: dict[UUID, dict],
    pick_ids: list[UUID],
    owner_id: UUID,
) -> None:
    for pick_id in pick_ids:
        row = locked.get(pick_id)
        if row is None:
            raise NotFoundError(f"Pick {pick_id} not found")
        if row["team_id"] != owner_id:
            raise ValidationError(f"Pick {row['overall_pick']} is not owned by team {owner_id}")
        if row["player_id"] is not None:
            raise ValidationError(f"Pick {row['overall_pick']} has already been used")


async def insert_trade(
    conn: psycopg.AsyncConnection,
    trade: PickTrade,
    details: list[PickTradeDetail],
) -> TradeProposal:
    """Insert a proposed trade and its pick details atomically.

    The offered picks are locked first, so two proposals racing for the same pick
    serialize and the loser sees the winner's Proposed trade.
    """
    from_picks = [d.pick_id for d in details if d.direction == TradeDirection.FROM_TEAM]
    to_picks = [d.pick_id for d in details if d.direction == TradeDirection.TO_TEAM]
    all_picks = from_picks + to_picks

    async with conn.transaction():
        cur = conn.cursor()
        locked = await _lock_picks(cur, all_picks)
        _check_locked_picks(locked, from_picks, trade.from_team_id)
        _check_locked_picks(locked, to_picks, trade.to_team_id)

        await cur.execute(
            """
            SELECT ptd.pick_id
            FROM draft.pick_trade_details ptd
            JOIN draft.pick_trades pt ON pt.id = ptd.trade_id
            WHERE ptd.pick_id = ANY(%s) AND pt.status = %s
            LIMIT 1
            """,
            (all_picks, TradeStatus.PROPOSED.value),
        )
        busy = await cur.fetchone()
        if busy:
            raise ValidationError(f"Pick {busy[0]} is already in an active trade proposal")

        await cur.execute(
            f"""
            INSERT INTO draft.pick_trades
                (session_id, from_team_id, to_team_id, status, from_team_value,
                 to_team_value, value_difference)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING {_TRADE_COLUMNS}
            """,
            (
                trade.session_id,
                trade.from_team_id,
                trade.to_team_id,
                TradeStatus.PROPOSED.value,
                trade.from_team_value,
                trade.to_team_value,
                trade.value_difference,
            ),
        )
        stored = _trade(await _fetchone_dict(cur))
        await cur.executemany(
            """
            INSERT INTO draft.pick_trade_details (trade_id, pick_id, direction, pick_value)
            VALUES (%s, %s, %s, %s)
            """,
            [(stored.id, d.pick_id, d.direction.value, d.pick_value) for d in details],
        )
    await conn.commit()
    return TradeProposal(trade=stored, from_team_picks=from_picks, to_team_picks=to_picks)


async def _get_trade_picks(
    conn: psycopg.AsyncConnection,
    trade_id: UUID,
) -> tuple[list[UUID], list[UUID]]:
    cur = conn.cursor()
    await cur.execute(
        """
        SELECT pick_id, direction
        FROM draft.pick_trade_details
        WHERE trade_id = %s
        ORDER BY pick_value DESC, pick_id
        """,
        (trade_id,),
    )
    from_picks, to_picks = [], []
    for pick_id, direction in await cur.fetchall():
        if TradeDirection(direction) == TradeDirection.FROM_TEAM:
            from_picks.append(pick_id)
        else:
            to_picks.append(pick_id)
    return from_picks, to_picks


async def get_trade(conn: psycopg.AsyncConnection, trade_id: UUID) -> TradeProposal | None:
    """Get a trade with the picks on each side."""
    cur = conn.cursor()
    await cur.execute(f"SELECT {_TRADE_COLUMNS} FROM draft.pick_trades WHERE id = %s", (trade_id,))
    row = await _fetchone_dict(cur)
    if not row:
        return None
    from_picks, to_picks = await _get_trade_picks(conn, trade_id)
    return TradeProposal(trade=_trade(row), from_team_picks=from_picks, to_team_picks=to_picks)


async def get_pending_trades_for_team(
    conn: psycopg.AsyncConnection,
    team_id: UUID,
) -> list[TradeProposal]:
    """Get Proposed trades awaiting a team's response, oldest first."""
    cur = conn.cursor()
    await cur.execute(
        f"""
        SELECT {_TRADE_COLUMNS}
        FROM draft.pick_trades
        WHERE to_team_id = %s AND status = %s
        ORDER BY proposed_at ASC
        """,
        (team_id, TradeStatus.PROPOSED.value),
    )
    proposals = []
    for row in await _fetchall_dicts(cur):
        from_picks, to_picks = await _get_trade_picks(conn, row["id"])
        proposals.append(
            TradeProposal(trade=_trade(row), from_team_picks=from_picks, to_team_picks=to_picks)
        )
    return proposals


async def is_pick_in_active_trade(
    conn: psycopg.AsyncConnection,
    pick_id: UUID,
    exclude_trade_id: UUID | None = None,
) -> bool:
    """Check whether a pick is part of any Proposed trade other than the excluded one."""
    cur = conn.cursor()
    await cur.execute(
        """
        SELECT EXISTS (
            SELECT 1
            FROM draft.pick_trade_details ptd
            JOIN draft.pick_trades pt ON pt.id = ptd.trade_id
            WHERE ptd.pick_id = %s AND pt.status = %s
              AND (%s::uuid IS NULL OR pt.id != %s::uuid)
        )
        """,
        (pick_id, TradeStatus.PROPOSED.value, exclude_trade_id, exclude_trade_id),
    )
    row = await cur.fetchone()
    return bool(row[0])


async def execute_trade(conn: psycopg.AsyncConnection, proposal: TradeProposal) -> PickTrade:
    """Swap pick ownership and mark the trade Accepted in one transaction.

    Either every pick changes hands and the trade is Accepted, or nothing changes.
    """
    trade = proposal.trade
    async with conn.transaction():
        cur = conn.cursor()
        await cur.execute(
            "SELECT status FROM draft.pick_trades WHERE id = %s FOR UPDATE",
            (trade.id,),
        )
        row = await cur.fetchone()
        if row is None:
            raise NotFoundError(f"Trade {trade.id} not found")
        if TradeStatus(row[0]) != TradeStatus.PROPOSED:
            raise InvalidStateError(f"Cannot accept trade in status: {row[0]}")

        locked = await _lock_picks(cur, proposal.from_team_picks + proposal.to_team_picks)
        _check_locked_picks(locked, proposal.from_team_picks, trade.from_team_id)
        _check_locked_picks(locked, proposal.to_team_picks, trade.to_team_id)

        for pick_ids, new_owner in (
            (proposal.from_team_picks, trade.to_team_id),
            (proposal.to_team_picks, trade.from_team_id),
        ):
            if not pick_ids:
                continue
            await cur.execute(
                """
                UPDATE draft.draft_picks
                SET original_team_id = COALESCE(original_team_id, team_id),
                    team_id = %s,
                    updated_at = NOW()
                WHERE id = ANY(%s)
                """,
                (new_owner, pick_ids),
            )

        await cur.execute(
            f"""
            UPDATE draft.pick_trades
            SET status = %s, responded_at = NOW()
            WHERE id = %s
            RETURNING {_TRADE_COLUMNS}
            """,
            (TradeStatus.ACCEPTED.value, trade.id),
        )
        stored = _trade(await _fetchone_dict(cur))
    await conn.commit()
    return stored


async def reject_trade(conn: psycopg.AsyncConnection, trade_id: UUID) -> PickTrade:
    """Mark a Proposed trade Rejected."""
    cur = conn.cursor()
    await cur.execute(
        f"""
        UPDATE draft.pick_trades
        SET status = %s, responded_at = NOW()
        WHERE id = %s AND status = %s
        RETURNING {_TRADE_COLUMNS}
        """,
        (TradeStatus.REJECTED.value, trade_id, TradeStatus.PROPOSED.value),
    )
    row = await _fetchone_dict(cur)
    await conn.commit()
    if row is None:
        raise InvalidStateError(f"Trade {trade_id} is no longer Proposed")
    return _trade(row)
