# draftroom/api/models.py
"""Pydantic models for API requests and responses."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models import DraftStatus, Position, TradeStatus


class DraftCreate(BaseModel):
    """Request to create a draft.

    Leave picks_per_round empty for a realistic draft sized by the team count.
    """

    name: str = Field(..., min_length=1, max_length=200)
    year: int
    rounds: int
    picks_per_round: int | None = None


class DraftResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    year: int
    rounds: int
    picks_per_round: int | None
    status: DraftStatus
    is_realistic: bool


class DraftPickResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    draft_id: UUID
    round: int
    pick_number: int
    overall_pick: int
    team_id: UUID
    player_id: UUID | None
    picked_at: datetime | None
    original_team_id: UUID | None
    is_compensatory: bool
    is_traded: bool
    notes: str | None = None


class PickSlotRequest(BaseModel):
    """One pick of a supplied draft order."""

    round: int = Field(..., ge=1)
    pick_number: int = Field(..., ge=1)
    overall_pick: int = Field(..., ge=1)
    team_id: UUID
    original_team_id: UUID | None = None
    is_compensatory: bool = False
    notes: str | None = Field(None, max_length=500)


class MakePickRequest(BaseModel):
    player_id: UUID


class PlayerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    first_name: str
    last_name: str
    position: Position
    draft_year: int
    college: str | None
    height_inches: int | None
    weight_pounds: int | None


class StrategyUpdate(BaseModel):
    """Weights must sum to 100."""

    bpa_weight: int = Field(60, ge=0, le=100)
    need_weight: int = Field(40, ge=0, le=100)
    position_values: dict[Position, float] | None = None
    risk_tolerance: int = Field(5, ge=0, le=10)


class StrategyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID | None
    team_id: UUID
    draft_id: UUID
    bpa_weight: int
    need_weight: int
    position_values: dict[Position, float] | None
    risk_tolerance: int


class SessionCreate(BaseModel):
    draft_id: UUID
    chart_type: str | None = None
    auto_pick_enabled: bool = False


class SessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    draft_id: UUID
    chart_type: str
    auto_pick_enabled: bool


class TradeCreate(BaseModel):
    session_id: UUID
    from_team_id: UUID
    to_team_id: UUID
    from_team_picks: list[UUID] = []
    to_team_picks: list[UUID] = []


class TradeAction(BaseModel):
    """The team accepting or rejecting a trade."""

    team_id: UUID


class TradeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    session_id: UUID
    from_team_id: UUID
    to_team_id: UUID
    from_team_value: int
    to_team_value: int
    value_difference: int
    status: TradeStatus
    proposed_at: datetime | None
    responded_at: datetime | None


class TradeProposalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    trade: TradeResponse
    from_team_picks: list[UUID]
    to_team_picks: list[UUID]


class MeasurementScoreResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    measurement: str
    raw_value: float
    percentile: float
    score: float


class RasResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    player_id: UUID
    overall_score: float | None
    category_scores: dict[str, float | None]
    measurements_used: int
    measurements_total: int
    individual_scores: list[MeasurementScoreResponse]
    explanation: str | None
