# draftroom/api/main.py
"""FastAPI application for the draftroom API."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from dotenv import load_dotenv
from fastapi import FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

load_dotenv()

from ..errors import (  # noqa: E402
    DraftRoomError,
    InternalError,
    NotFoundError,
    PlayerAlreadyDraftedError,
    ValidationError,
)
from ..models import DraftStatus, DraftStrategy, PickSlot  # noqa: E402
from ..processing.auto_pick import AutoPickService  # noqa: E402
from ..processing.draft import DraftEngine  # noqa: E402
from ..processing.evaluation import player_ras  # noqa: E402
from ..processing.events import EventBroadcaster  # noqa: E402
from ..processing.strategy import resolve_strategy, set_strategy  # noqa: E402
from ..processing.trades import TradeEngine  # noqa: E402
from ..storage.db import close_pool, init_pool  # noqa: E402
from .models import (  # noqa: E402
    DraftCreate,
    DraftPickResponse,
    DraftResponse,
    MakePickRequest,
    PickSlotRequest,
    PlayerResponse,
    RasResponse,
    SessionCreate,
    SessionResponse,
    StrategyResponse,
    StrategyUpdate,
    TradeAction,
    TradeCreate,
    TradeProposalResponse,
    TradeResponse,
)

logger = logging.getLogger(__name__)

broadcaster = EventBroadcaster()
draft_engine = DraftEngine(auto_pick=AutoPickService(), broadcaster=broadcaster)
trade_engine = TradeEngine(broadcaster=broadcaster)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Initialize connection pool on startup, close on shutdown."""
    await init_pool()
    yield
    await close_pool()


app = FastAPI(
    title="draftroom API",
    description="Draft allocation and pick trade engine",
    version="0.1.0",
    lifespan=lifespan,
)

_STATUS_CODES = [
    (NotFoundError, 404),
    (PlayerAlreadyDraftedError, 409),
    (ValidationError, 400),
    (InternalError, 500),
]


@app.exception_handler(DraftRoomError)
async def draftroom_error_handler(_request: Request, exc: DraftRoomError) -> JSONResponse:
    status_code = next((code for kind, code in _STATUS_CODES if isinstance(exc, kind)), 500)
    if status_code == 500:
        logger.error("Request failed: %s", exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.get("/")
async def root():
    """API root - health check."""
    return {"status": "ok", "version": "0.1.0"}


# -- drafts -------------------------------------------------------------------


@app.post("/drafts", response_model=DraftResponse, status_code=201)
async def create_draft(body: DraftCreate):
    """Create a draft; without picks_per_round the draft is realistic."""
    if body.picks_per_round is None:
        draft = await draft_engine.create_realistic_draft(body.name, body.year, body.rounds)
    else:
        draft = await draft_engine.create_draft(
            body.name, body.year, body.rounds, body.picks_per_round
        )
    return DraftResponse.model_validate(draft)


@app.get("/drafts", response_model=list[DraftResponse])
async def list_drafts(
    year: int | None = Query(None, ge=2000, le=2100),
    status: DraftStatus | None = None,
):
    drafts = await draft_engine.list_drafts(year=year, status=status)
    return [DraftResponse.model_validate(d) for d in drafts]


@app.get("/drafts/{draft_id}", response_model=DraftResponse)
async def get_draft(draft_id: UUID):
    return DraftResponse.model_validate(await draft_engine.get_draft(draft_id))


@app.post("/drafts/{draft_id}/initialize", response_model=list[DraftPickResponse])
async def initialize_draft(draft_id: UUID):
    picks = await draft_engine.initialize_picks(draft_id)
    return [DraftPickResponse.model_validate(p) for p in picks]


@app.post("/drafts/{draft_id}/initialize/order", response_model=list[DraftPickResponse])
async def initialize_draft_from_order(draft_id: UUID, body: list[PickSlotRequest]):
    slots = [PickSlot(**slot.model_dump()) for slot in body]
    picks = await draft_engine.initialize_picks_from_order(draft_id, slots)
    return [DraftPickResponse.model_validate(p) for p in picks]


@app.post("/drafts/{draft_id}/start", response_model=DraftResponse)
async def start_draft(draft_id: UUID):
    return DraftResponse.model_validate(await draft_engine.start_draft(draft_id))


@app.post("/drafts/{draft_id}/pause", response_model=DraftResponse)
async def pause_draft(draft_id: UUID):
    return DraftResponse.model_validate(await draft_engine.pause_draft(draft_id))


@app.post("/drafts/{draft_id}/complete", response_model=DraftResponse)
async def complete_draft(draft_id: UUID):
    return DraftResponse.model_validate(await draft_engine.complete_draft(draft_id))


@app.get("/drafts/{draft_id}/picks", response_model=list[DraftPickResponse])
async def get_picks(draft_id: UUID):
    picks = await draft_engine.get_all_picks(draft_id)
    return [DraftPickResponse.model_validate(p) for p in picks]


@app.get("/drafts/{draft_id}/picks/next", response_model=DraftPickResponse)
async def get_next_pick(draft_id: UUID):
    pick = await draft_engine.get_next_pick(draft_id)
    if pick is None:
        raise NotFoundError(f"Draft {draft_id} has no remaining picks")
    return DraftPickResponse.model_validate(pick)


@app.get("/drafts/{draft_id}/picks/available", response_model=list[DraftPickResponse])
async def get_available_picks(draft_id: UUID):
    picks = await draft_engine.get_available_picks(draft_id)
    return [DraftPickResponse.model_validate(p) for p in picks]


@app.get("/drafts/{draft_id}/players/available", response_model=list[PlayerResponse])
async def get_available_players(draft_id: UUID):
    players = await draft_engine.get_available_players(draft_id)
    return [PlayerResponse.model_validate(p) for p in players]


# -- picks ----------------------------------------------------------------------


@app.post("/picks/{pick_id}/make", response_model=DraftPickResponse)
async def make_pick(pick_id: UUID, body: MakePickRequest):
    pick = await draft_engine.make_pick(pick_id, body.player_id)
    return DraftPickResponse.model_validate(pick)


@app.post("/picks/{pick_id}/auto", response_model=DraftPickResponse)
async def auto_pick(pick_id: UUID):
    pick = await draft_engine.execute_auto_pick(pick_id)
    return DraftPickResponse.model_validate(pick)


# -- strategies -----------------------------------------------------------------


@app.get("/drafts/{draft_id}/strategies/{team_id}", response_model=StrategyResponse)
async def get_strategy(draft_id: UUID, team_id: UUID):
    """Get a team's strategy, creating the default on first access."""
    return StrategyResponse.model_validate(await resolve_strategy(team_id, draft_id))


@app.put("/drafts/{draft_id}/strategies/{team_id}", response_model=StrategyResponse)
async def put_strategy(draft_id: UUID, team_id: UUID, body: StrategyUpdate):
    strategy = DraftStrategy(
        team_id=team_id,
        draft_id=draft_id,
        bpa_weight=body.bpa_weight,
        need_weight=body.need_weight,
        position_values=body.position_values,
        risk_tolerance=body.risk_tolerance,
    )
    return StrategyResponse.model_validate(await set_strategy(strategy))


# -- players --------------------------------------------------------------------


@app.get("/players/{player_id}/ras", response_model=RasResponse)
async def get_player_ras(player_id: UUID):
    return RasResponse.model_validate(await player_ras(player_id))


# -- sessions and trades --------------------------------------------------------


@app.post("/sessions", response_model=SessionResponse, status_code=201)
async def create_session(body: SessionCreate):
    session = await trade_engine.create_session(
        body.draft_id, body.chart_type, body.auto_pick_enabled
    )
    return SessionResponse.model_validate(session)


@app.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: UUID):
    return SessionResponse.model_validate(await trade_engine.get_session(session_id))


@app.post("/trades", response_model=TradeProposalResponse, status_code=201)
async def propose_trade(body: TradeCreate):
    proposal = await trade_engine.propose_trade(
        body.session_id,
        body.from_team_id,
        body.to_team_id,
        body.from_team_picks,
        body.to_team_picks,
    )
    return TradeProposalResponse.model_validate(proposal)


@app.get("/trades/{trade_id}", response_model=TradeProposalResponse)
async def get_trade(trade_id: UUID):
    return TradeProposalResponse.model_validate(await trade_engine.get_trade(trade_id))


@app.post("/trades/{trade_id}/accept", response_model=TradeResponse)
async def accept_trade(trade_id: UUID, body: TradeAction):
    return TradeResponse.model_validate(await trade_engine.accept_trade(trade_id, body.team_id))


@app.post("/trades/{trade_id}/reject", response_model=TradeResponse)
async def reject_trade(trade_id: UUID, body: TradeAction):
    return TradeResponse.model_validate(await trade_engine.reject_trade(trade_id, body.team_id))


@app.get("/teams/{team_id}/trades/pending", response_model=list[TradeProposalResponse])
async def get_pending_trades(team_id: UUID):
    proposals = await trade_engine.get_pending_trades(team_id)
    return [TradeProposalResponse.model_validate(p) for p in proposals]


# -- live events ----------------------------------------------------------------


@app.websocket("/ws/drafts/{draft_id}")
async def draft_events(websocket: WebSocket, draft_id: UUID):
    """Stream pick and trade events for one draft."""
    await websocket.accept()
    queue = broadcaster.subscribe(draft_id)
    try:
        while True:
            event = await queue.get()
            await websocket.send_json(event.to_dict())
    except WebSocketDisconnect:
        logger.debug("Subscriber left draft %s", draft_id)
    finally:
        broadcaster.unsubscribe(draft_id, queue)
