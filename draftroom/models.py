"""Domain records shared by the draft engine."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID

from .errors import InvalidStateError


class Position(Enum):
    """On-field position of a prospect."""

    QB = "QB"
    RB = "RB"
    WR = "WR"
    TE = "TE"
    OT = "OT"
    OG = "OG"
    C = "C"
    DE = "DE"
    DT = "DT"
    LB = "LB"
    CB = "CB"
    S = "S"
    K = "K"
    P = "P"


class FitGrade(Enum):
    """Scheme fit grade from a team's scouting report."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


class DraftStatus(Enum):
    """Lifecycle status of a draft."""

    NOT_STARTED = "NotStarted"
    IN_PROGRESS = "InProgress"
    PAUSED = "Paused"
    COMPLETED = "Completed"


class TradeStatus(Enum):
    """Status of a pick trade proposal."""

    PROPOSED = "Proposed"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


class TradeDirection(Enum):
    """Which side of a trade gives up a pick."""

    FROM_TEAM = "FromTeam"
    TO_TEAM = "ToTeam"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Team:
    id: UUID
    name: str
    abbreviation: str
    city: str | None = None


@dataclass
class Player:
    id: UUID
    first_name: str
    last_name: str
    position: Position
    draft_year: int
    draft_eligible: bool = True
    college: str | None = None
    height_inches: int | None = None
    weight_pounds: int | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass
class Draft:
    """A draft for one year.

    picks_per_round is None for realistic drafts whose round sizes come from data.
    """

    id: UUID
    name: str
    year: int
    rounds: int
    picks_per_round: int | None
    status: DraftStatus = DraftStatus.NOT_STARTED

    @property
    def is_realistic(self) -> bool:
        return self.picks_per_round is None

    def start(self) -> None:
        if self.status in (DraftStatus.NOT_STARTED, DraftStatus.PAUSED):
            self.status = DraftStatus.IN_PROGRESS
        elif self.status == DraftStatus.IN_PROGRESS:
            raise InvalidStateError("Draft is already in progress")
        else:
            raise InvalidStateError("Draft is already completed")

    def pause(self) -> None:
        if self.status == DraftStatus.IN_PROGRESS:
            self.status = DraftStatus.PAUSED
        elif self.status == DraftStatus.NOT_STARTED:
            raise InvalidStateError("Cannot pause a draft that hasn't started")
        elif self.status == DraftStatus.PAUSED:
            raise InvalidStateError("Draft is already paused")
        else:
            raise InvalidStateError("Cannot pause a completed draft")

    def complete(self) -> None:
        if self.status in (DraftStatus.IN_PROGRESS, DraftStatus.PAUSED):
            self.status = DraftStatus.COMPLETED
        elif self.status == DraftStatus.NOT_STARTED:
            raise InvalidStateError("Cannot complete a draft that hasn't started")
        else:
            raise InvalidStateError("Draft is already completed")


@dataclass
class DraftPick:
    id: UUID
    draft_id: UUID
    round: int
    pick_number: int
    overall_pick: int
    team_id: UUID
    player_id: UUID | None = None
    picked_at: datetime | None = None
    original_team_id: UUID | None = None
    is_compensatory: bool = False
    notes: str | None = None

    @property
    def is_picked(self) -> bool:
        return self.player_id is not None

    @property
    def is_traded(self) -> bool:
        return self.original_team_id is not None and self.original_team_id != self.team_id

    def make_pick(self, player_id: UUID) -> None:
        # a made pick never reverts
        if self.player_id is not None:
            raise InvalidStateError(f"Pick {self.overall_pick} has already been made")
        self.player_id = player_id
        self.picked_at = utcnow()


@dataclass
class PickSlot:
    """One entry of an externally supplied draft order."""

    round: int
    pick_number: int
    overall_pick: int
    team_id: UUID
    original_team_id: UUID | None = None
    is_compensatory: bool = False
    notes: str | None = None


@dataclass
class ScoutingReport:
    team_id: UUID
    player_id: UUID
    grade: float
    fit_grade: FitGrade | None = None
    injury_concern: bool = False
    character_concern: bool = False
    notes: str | None = None


@dataclass
class CombineResult:
    """Raw athletic measurements for one player, year and source."""

    player_id: UUID
    year: int
    source: str = "combine"
    forty_yard_dash: float | None = None
    bench_press: int | None = None
    vertical_jump: float | None = None
    broad_jump: int | None = None
    three_cone_drill: float | None = None
    twenty_yard_shuttle: float | None = None
    ten_yard_split: float | None = None
    twenty_yard_split: float | None = None

    def measurements(self) -> dict[str, float]:
        """Return the measurements that were actually recorded."""
        values = {
            "forty_yard_dash": self.forty_yard_dash,
            "bench_press": self.bench_press,
            "vertical_jump": self.vertical_jump,
            "broad_jump": self.broad_jump,
            "three_cone_drill": self.three_cone_drill,
            "twenty_yard_shuttle": self.twenty_yard_shuttle,
            "ten_yard_split": self.ten_yard_split,
            "twenty_yard_split": self.twenty_yard_split,
        }
        return {name: float(v) for name, v in values.items() if v is not None}


@dataclass
class CombinePercentile:
    """Percentile breakpoints for one position group and measurement."""

    position: str
    measurement: str
    breakpoints: list[float]  # min, p10 .. p90, max
    sample_size: int = 0


@dataclass
class TeamNeed:
    team_id: UUID
    position: Position
    priority: int


@dataclass
class TeamSeason:
    team_id: UUID
    season_year: int
    wins: int = 0
    losses: int = 0
    ties: int = 0
    draft_position: int | None = None


@dataclass
class DraftStrategy:
    team_id: UUID
    draft_id: UUID
    bpa_weight: int = 60
    need_weight: int = 40
    position_values: dict[Position, float] | None = None
    risk_tolerance: int = 5
    id: UUID | None = None


@dataclass
class DraftSession:
    id: UUID
    draft_id: UUID
    chart_type: str = "JimmyJohnson"
    auto_pick_enabled: bool = False


@dataclass
class PickTrade:
    id: UUID | None
    session_id: UUID
    from_team_id: UUID
    to_team_id: UUID
    from_team_value: int
    to_team_value: int
    status: TradeStatus = TradeStatus.PROPOSED
    proposed_at: datetime | None = None
    responded_at: datetime | None = None

    @property
    def value_difference(self) -> int:
        return abs(self.from_team_value - self.to_team_value)

    def accept(self) -> None:
        if self.status != TradeStatus.PROPOSED:
            raise InvalidStateError(f"Cannot accept trade in status: {self.status.value}")
        self.status = TradeStatus.ACCEPTED
        self.responded_at = utcnow()

    def reject(self) -> None:
        if self.status != TradeStatus.PROPOSED:
            raise InvalidStateError(f"Cannot reject trade in status: {self.status.value}")
        self.status = TradeStatus.REJECTED
        self.responded_at = utcnow()


@dataclass
class PickTradeDetail:
    pick_id: UUID
    direction: TradeDirection
    pick_value: int


@dataclass
class TradeProposal:
    """A trade together with the picks offered by each side."""

    trade: PickTrade
    from_team_picks: list[UUID] = field(default_factory=list)
    to_team_picks: list[UUID] = field(default_factory=list)
