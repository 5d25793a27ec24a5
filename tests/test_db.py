# tests/test_db.py
"""Tests against a live Postgres database.

Skipped unless DATABASE_URL is set. The schema is applied on first use.
"""

import asyncio
import os
import uuid
from pathlib import Path

import pytest

from draftroom.errors import InvalidStateError, PlayerAlreadyDraftedError, ValidationError
from draftroom.models import (
    DraftPick,
    PickTrade,
    PickTradeDetail,
    TradeDirection,
    TradeProposal,
    TradeStatus,
)
from draftroom.storage.db import (
    assign_pick_player,
    close_pool,
    execute_trade,
    get_connection,
    get_pick,
    insert_draft,
    insert_draft_picks,
    insert_session,
    insert_trade,
    reject_trade,
)

pytestmark = pytest.mark.skipif(not os.environ.get("DATABASE_URL"), reason="DATABASE_URL not set")

SCHEMA_PATH = Path(__file__).parent.parent / "draftroom" / "storage" / "schema.sql"


@pytest.fixture
async def seeded():
    """Two teams, one player and a one-round draft with two picks."""
    async with get_connection() as conn:
        await conn.execute(SCHEMA_PATH.read_text())
        await conn.commit()

        cur = conn.cursor()
        team_ids = []
        for name in ("Test Home", "Test Away"):
            await cur.execute(
                "INSERT INTO draft.teams (name, abbreviation) VALUES (%s, %s) RETURNING id",
                (name, uuid.uuid4().hex[:5].upper()),
            )
            team_ids.append((await cur.fetchone())[0])
        await cur.execute(
            """
            INSERT INTO draft.players (first_name, last_name, position, draft_year)
            VALUES ('Race', 'Condition', 'QB', 2026) RETURNING id
            """
        )
        player_id = (await cur.fetchone())[0]
        await conn.commit()

        draft = await insert_draft(conn, "DB Test", 2026, 1, 2)
        picks = await insert_draft_picks(
            conn,
            draft.id,
            [
                DraftPick(uuid.uuid4(), draft.id, 1, n, n, team_ids[n - 1])
                for n in (1, 2)
            ],
        )

    yield {"draft": draft, "picks": picks, "teams": team_ids, "player_id": player_id}

    async with get_connection() as conn:
        cur = conn.cursor()
        await cur.execute("DELETE FROM draft.drafts WHERE id = %s", (draft.id,))
        await cur.execute("DELETE FROM draft.players WHERE id = %s", (player_id,))
        await cur.execute("DELETE FROM draft.teams WHERE id = ANY(%s)", (team_ids,))
        await conn.commit()
    await close_pool()


async def test_get_connection_returns_connection():
    """Test that we can connect to the database."""
    async with get_connection() as conn:
        cur = conn.cursor()
        await cur.execute("SELECT 1")
        result = await cur.fetchone()
        assert result[0] == 1
    await close_pool()


async def test_concurrent_picks_of_one_player(seeded):
    """Two picks racing for one player: exactly one wins."""
    player_id = seeded["player_id"]

    async def attempt(pick):
        async with get_connection() as conn:
            return await assign_pick_player(conn, pick.id, player_id)

    results = await asyncio.gather(
        *(attempt(p) for p in seeded["picks"]), return_exceptions=True
    )

    winners = [r for r in results if isinstance(r, DraftPick)]
    losers = [r for r in results if isinstance(r, PlayerAlreadyDraftedError)]
    assert len(winners) == 1
    assert len(losers) == 1


async def test_made_pick_is_final(seeded):
    pick = seeded["picks"][0]
    async with get_connection() as conn:
        await assign_pick_player(conn, pick.id, seeded["player_id"])

        with pytest.raises(InvalidStateError):
            await assign_pick_player(conn, pick.id, seeded["player_id"])


async def test_trade_swaps_atomically(seeded):
    home, away = seeded["teams"]
    first, second = seeded["picks"]
    async with get_connection() as conn:
        session = await insert_session(conn, seeded["draft"].id, "JimmyJohnson")
        trade = PickTrade(None, session.id, home, away, 3000, 2600)
        details = [
            PickTradeDetail(first.id, TradeDirection.FROM_TEAM, 3000),
            PickTradeDetail(second.id, TradeDirection.TO_TEAM, 2600),
        ]
        proposal = await insert_trade(conn, trade, details)

        with pytest.raises(ValidationError):
            await insert_trade(conn, trade, details)

        accepted = await execute_trade(conn, proposal)
        assert accepted.status == TradeStatus.ACCEPTED

        moved = await get_pick(conn, first.id)
        assert (moved.team_id, moved.original_team_id) == (away, home)

        with pytest.raises(InvalidStateError):
            await reject_trade(conn, proposal.trade.id)


async def test_concurrent_proposals_on_one_pick(seeded):
    """Two proposals racing for the same pick: the row lock lets exactly one through."""
    home, away = seeded["teams"]
    first, second = seeded["picks"]
    async with get_connection() as conn:
        session = await insert_session(conn, seeded["draft"].id, "JimmyJohnson")

    async def propose():
        async with get_connection() as conn:
            return await insert_trade(
                conn,
                PickTrade(None, session.id, home, away, 3000, 2600),
                [
                    PickTradeDetail(first.id, TradeDirection.FROM_TEAM, 3000),
                    PickTradeDetail(second.id, TradeDirection.TO_TEAM, 2600),
                ],
            )

    results = await asyncio.gather(propose(), propose(), return_exceptions=True)

    winners = [r for r in results if isinstance(r, TradeProposal)]
    losers = [r for r in results if isinstance(r, ValidationError)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert "active trade" in str(losers[0])


async def test_concurrent_initialization_of_one_draft(seeded):
    """Two initializers for one draft: one order is stored, the other is a validation error."""
    home, away = seeded["teams"]
    async with get_connection() as conn:
        draft = await insert_draft(conn, "DB Init Race", 2026, 1, None)

    async def initialize():
        picks = [DraftPick(uuid.uuid4(), draft.id, 1, n, n, team) for n, team in ((1, home), (2, away))]
        async with get_connection() as conn:
            return await insert_draft_picks(conn, draft.id, picks)

    try:
        results = await asyncio.gather(initialize(), initialize(), return_exceptions=True)

        assert sum(isinstance(r, list) for r in results) == 1
        assert sum(isinstance(r, ValidationError) for r in results) == 1
        async with get_connection() as conn:
            cur = conn.cursor()
            await cur.execute("SELECT COUNT(*) FROM draft.draft_picks WHERE draft_id = %s", (draft.id,))
            assert (await cur.fetchone())[0] == 2
    finally:
        async with get_connection() as conn:
            await conn.execute("DELETE FROM draft.drafts WHERE id = %s", (draft.id,))
            await conn.commit()
