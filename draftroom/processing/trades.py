"""Pick trades: proposal, valuation, acceptance and rejection."""

import logging
from uuid import UUID

import psycopg

from ..config import get_config
from ..errors import InvalidStateError, NotFoundError, ValidationError
from ..models import (
    DraftPick,
    DraftSession,
    PickTrade,
    PickTradeDetail,
    TradeDirection,
    TradeProposal,
    TradeStatus,
)
from ..storage.db import (
    execute_trade,
    get_connection,
    get_draft,
    get_pending_trades_for_team,
    get_pick,
    get_session,
    get_team,
    get_trade,
    insert_session,
    insert_trade,
    is_pick_in_active_trade,
    reject_trade,
)
from .events import DraftEvent, EventBroadcaster, EventType, notify
from .trade_value import ChartType, TradeValueChart, get_chart, is_trade_fair

logger = logging.getLogger(__name__)


def validate_trade_shape(
    from_team_id: UUID,
    to_team_id: UUID,
    from_picks: list[UUID],
    to_picks: list[UUID],
) -> None:
    if from_team_id == to_team_id:
        raise ValidationError("Cannot trade with the same team")
    if not from_picks and not to_picks:
        raise ValidationError("Trade must include at least one pick")
    seen = set()
    for pick_id in [*from_picks, *to_picks]:
        if pick_id in seen:
            raise ValidationError(f"Duplicate pick in trade: {pick_id}")
        seen.add(pick_id)


class TradeEngine:
    """Proposes and settles pick trades within a draft session."""

    def __init__(
        self,
        broadcaster: EventBroadcaster | None = None,
        fairness_threshold_percent: int | None = None,
    ):
        config = get_config()
        self.broadcaster = broadcaster
        self.fairness_threshold_percent = (
            fairness_threshold_percent
            if fairness_threshold_percent is not None
            else config.fairness_threshold_percent
        )
        self.default_chart = config.default_chart

    # -- sessions -------------------------------------------------------------

    async def create_session(
        self,
        draft_id: UUID,
        chart_type: ChartType | str | None = None,
        auto_pick_enabled: bool = False,
    ) -> DraftSession:
        chart = get_chart(chart_type or self.default_chart)
        async with get_connection() as conn:
            if await get_draft(conn, draft_id) is None:
                raise NotFoundError(f"Draft with id {draft_id} not found")
            session = await insert_session(conn, draft_id, chart.chart_type.value, auto_pick_enabled)
        logger.info("Created session %s for draft %s using %s chart", session.id, draft_id, chart.name)
        return session

    async def get_session(self, session_id: UUID) -> DraftSession:
        async with get_connection() as conn:
            session = await get_session(conn, session_id)
        if session is None:
            raise NotFoundError(f"Session with id {session_id} not found")
        return session

    # -- validation -----------------------------------------------------------

    async def _validate_picks(
        self,
        conn: psycopg.AsyncConnection,
        pick_ids: list[UUID],
        owner_id: UUID,
        exclude_trade_id: UUID | None = None,
    ) -> list[DraftPick]:
        picks = []
        for pick_id in pick_ids:
            pick = await get_pick(conn, pick_id)
            if pick is None:
                raise NotFoundError(f"Pick with id {pick_id} not found")
            if pick.team_id != owner_id:
                raise ValidationError(f"Pick {pick.overall_pick} is not owned by team {owner_id}")
            if pick.is_picked:
                raise ValidationError(f"Pick {pick.overall_pick} has already been used")
            if await is_pick_in_active_trade(conn, pick_id, exclude_trade_id):
                raise ValidationError(
                    f"Pick {pick.overall_pick} is already in an active trade proposal"
                )
            picks.append(pick)
        return picks

    # -- operations -----------------------------------------------------------

    async def propose_trade(
        self,
        session_id: UUID,
        from_team_id: UUID,
        to_team_id: UUID,
        from_team_picks: list[UUID],
        to_team_picks: list[UUID],
    ) -> TradeProposal:
        """Propose swapping picks between two teams.

        Raises ValidationError when a pick is not owned by the side offering it,
        is already used or already in a Proposed trade, or when the two sides'
        chart values differ by more than the fairness threshold.
        """
        validate_trade_shape(from_team_id, to_team_id, from_team_picks, to_team_picks)
        session = await self.get_session(session_id)
        chart: TradeValueChart = get_chart(session.chart_type)

        async with get_connection() as conn:
            for team_id in (from_team_id, to_team_id):
                if await get_team(conn, team_id) is None:
                    raise NotFoundError(f"Team with id {team_id} not found")

            from_picks = await self._validate_picks(conn, from_team_picks, from_team_id)
            to_picks = await self._validate_picks(conn, to_team_picks, to_team_id)

            for pick in [*from_picks, *to_picks]:
                if pick.draft_id != session.draft_id:
                    raise ValidationError(f"Pick {pick.id} does not belong to this session's draft")

            details = [
                PickTradeDetail(p.id, TradeDirection.FROM_TEAM, chart.pick_value(p.overall_pick))
                for p in from_picks
            ] + [
                PickTradeDetail(p.id, TradeDirection.TO_TEAM, chart.pick_value(p.overall_pick))
                for p in to_picks
            ]
            from_value = sum(d.pick_value for d in details if d.direction == TradeDirection.FROM_TEAM)
            to_value = sum(d.pick_value for d in details if d.direction == TradeDirection.TO_TEAM)

            if not is_trade_fair(from_value, to_value, self.fairness_threshold_percent):
                raise ValidationError(
                    f"Trade is unfair: {chart.name} values {from_value} vs {to_value} differ "
                    f"by more than {self.fairness_threshold_percent}%"
                )

            trade = PickTrade(
                id=None,
                session_id=session_id,
                from_team_id=from_team_id,
                to_team_id=to_team_id,
                from_team_value=from_value,
                to_team_value=to_value,
            )
            proposal = await insert_trade(conn, trade, details)

        logger.info(
            "Trade %s proposed: team %s (%d) <-> team %s (%d)",
            proposal.trade.id, from_team_id, from_value, to_team_id, to_value,
        )
        notify(
            self.broadcaster,
            DraftEvent(
                event_type=EventType.TRADE_PROPOSED,
                draft_id=session.draft_id,
                data={
                    "trade_id": str(proposal.trade.id),
                    "from_team_id": str(from_team_id),
                    "to_team_id": str(to_team_id),
                    "from_team_value": from_value,
                    "to_team_value": to_value,
                },
            ),
        )
        return proposal

    async def get_trade(self, trade_id: UUID) -> TradeProposal:
        async with get_connection() as conn:
            proposal = await get_trade(conn, trade_id)
        if proposal is None:
            raise NotFoundError(f"Trade with id {trade_id} not found")
        return proposal

    async def get_pending_trades(self, team_id: UUID) -> list[TradeProposal]:
        """Proposed trades waiting on a team's answer."""
        async with get_connection() as conn:
            return await get_pending_trades_for_team(conn, team_id)

    async def accept_trade(self, trade_id: UUID, acting_team_id: UUID) -> PickTrade:
        """Accept a trade as its receiving team and swap pick ownership."""
        proposal = await self.get_trade(trade_id)
        trade = proposal.trade
        if acting_team_id != trade.to_team_id:
            raise ValidationError("Only the receiving team can accept a trade")
        if trade.status != TradeStatus.PROPOSED:
            raise InvalidStateError(f"Cannot accept trade in status: {trade.status.value}")
        session = await self.get_session(trade.session_id)

        async with get_connection() as conn:
            await self._validate_picks(conn, proposal.from_team_picks, trade.from_team_id, trade.id)
            await self._validate_picks(conn, proposal.to_team_picks, trade.to_team_id, trade.id)
            accepted = await execute_trade(conn, proposal)

        logger.info("Trade %s accepted by team %s", trade.id, acting_team_id)
        notify(
            self.broadcaster,
            DraftEvent(
                event_type=EventType.TRADE_EXECUTED,
                draft_id=session.draft_id,
                data={
                    "trade_id": str(trade.id),
                    "from_team_id": str(trade.from_team_id),
                    "to_team_id": str(trade.to_team_id),
                    "from_team_picks": [str(p) for p in proposal.from_team_picks],
                    "to_team_picks": [str(p) for p in proposal.to_team_picks],
                },
            ),
        )
        return accepted

    async def reject_trade(self, trade_id: UUID, acting_team_id: UUID) -> PickTrade:
        """Reject a trade. Either party may reject; pick ownership is untouched."""
        proposal = await self.get_trade(trade_id)
        trade = proposal.trade
        if acting_team_id not in (trade.from_team_id, trade.to_team_id):
            raise ValidationError("Only a team party to the trade can reject it")
        if trade.status != TradeStatus.PROPOSED:
            raise InvalidStateError(f"Cannot reject trade in status: {trade.status.value}")
        session = await self.get_session(trade.session_id)

        async with get_connection() as conn:
            rejected = await reject_trade(conn, trade_id)

        logger.info("Trade %s rejected by team %s", trade.id, acting_team_id)
        notify(
            self.broadcaster,
            DraftEvent(
                event_type=EventType.TRADE_REJECTED,
                draft_id=session.draft_id,
                data={"trade_id": str(trade.id), "rejected_by": str(acting_team_id)},
            ),
        )
        return rejected
