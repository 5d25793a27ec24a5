"""Athletic measurement normalization.

Raw combine values are converted to 0-100 sub-scores, either by looking them
up in a position group's percentile table or, when no table exists for a
measurement, by a fixed linear range. Sub-scores are then combined with a
per-position weight table into one combine score.

Also provides Relative Athletic Score (RAS), a 0-10 percentile-only score with
category breakdowns.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from uuid import UUID

import numpy as np

from ..models import CombinePercentile, CombineResult, Player, Position

NEUTRAL_SCORE = 50.0

LOWER_IS_BETTER = frozenset({
    "forty_yard_dash",
    "three_cone_drill",
    "twenty_yard_shuttle",
    "ten_yard_split",
    "twenty_yard_split",
})

PERCENTILE_STEPS = [0.0, 10.0, 20.0, 30.0, 40.0, 50.0, 60.0, 70.0, 80.0, 90.0, 100.0]


def _clamp(value: float) -> float:
    return float(np.clip(value, 0.0, 100.0))


# Fixed ranges: 4.3s forty = 100, 5.5s = 0; 30 reps = 100, 10 = 0; etc.
LINEAR_NORMALIZERS: dict[str, Callable[[float], float]] = {
    "forty_yard_dash": lambda t: _clamp((5.5 - t) / 1.2 * 100.0),
    "bench_press": lambda reps: _clamp((reps - 10.0) / 20.0 * 100.0),
    "vertical_jump": lambda inches: _clamp((inches - 24.0) / 18.0 * 100.0),
    "broad_jump": lambda inches: _clamp((inches - 90.0) / 40.0 * 100.0),
    "three_cone_drill": lambda t: _clamp((8.0 - t) / 1.5 * 100.0),
    "twenty_yard_shuttle": lambda t: _clamp((4.8 - t) / 0.8 * 100.0),
}

_QB = {"three_cone_drill": 0.35, "twenty_yard_shuttle": 0.35, "forty_yard_dash": 0.30}
_SKILL = {"forty_yard_dash": 0.40, "vertical_jump": 0.30, "three_cone_drill": 0.20,
          "twenty_yard_shuttle": 0.10}
_OL = {"bench_press": 0.40, "broad_jump": 0.30, "forty_yard_dash": 0.20, "three_cone_drill": 0.10}
_DL = {"forty_yard_dash": 0.30, "bench_press": 0.25, "vertical_jump": 0.25, "three_cone_drill": 0.20}
_LB = {"forty_yard_dash": 0.30, "bench_press": 0.20, "vertical_jump": 0.20,
       "three_cone_drill": 0.15, "twenty_yard_shuttle": 0.15}
_DB = {"forty_yard_dash": 0.40, "vertical_jump": 0.20, "three_cone_drill": 0.20,
       "twenty_yard_shuttle": 0.20}
_TE = {"forty_yard_dash": 0.30, "vertical_jump": 0.25, "bench_press": 0.25, "three_cone_drill": 0.20}

# Specialists have no weighted measurements and always score neutral.
POSITION_WEIGHTS: dict[Position, dict[str, float]] = {
    Position.QB: _QB,
    Position.RB: _SKILL,
    Position.WR: _SKILL,
    Position.OT: _OL,
    Position.OG: _OL,
    Position.C: _OL,
    Position.DE: _DL,
    Position.DT: _DL,
    Position.LB: _LB,
    Position.CB: _DB,
    Position.S: _DB,
    Position.TE: _TE,
    Position.K: {},
    Position.P: {},
}

POSITION_GROUPS: dict[Position, str] = {
    Position.OG: "IOL",
    Position.C: "IOL",
    Position.DE: "EDGE",
    Position.DT: "DL",
}


def position_group(position: Position) -> str:
    """Map a position to the group its percentile tables are keyed by."""
    return POSITION_GROUPS.get(position, position.value)


def percentile_rank(table: CombinePercentile, value: float) -> float:
    """Place a raw value within a percentile table, 0-100.

    Breakpoints are ascending (min, p10 .. p90, max). Values outside the range
    pin to 0 or 100; timed drills are inverted so faster is higher.
    """
    points = table.breakpoints
    if value <= points[0]:
        raw = 0.0
    elif value >= points[-1]:
        raw = 100.0
    else:
        raw = NEUTRAL_SCORE
        for i in range(len(points) - 1):
            low, high = points[i], points[i + 1]
            if low <= value <= high:
                if high - low < 1e-12:
                    raw = PERCENTILE_STEPS[i]
                else:
                    raw = PERCENTILE_STEPS[i] + (value - low) / (high - low) * 10.0
                break

    if table.measurement in LOWER_IS_BETTER:
        return 100.0 - raw
    return raw


def measurement_score(
    name: str,
    value: float,
    percentiles: dict[str, CombinePercentile] | None = None,
) -> float:
    """Score one measurement 0-100, preferring the percentile table when present."""
    if percentiles and name in percentiles:
        return _clamp(percentile_rank(percentiles[name], value))
    return LINEAR_NORMALIZERS[name](value)


def combine_score(
    combine: CombineResult | None,
    position: Position,
    percentiles: dict[str, CombinePercentile] | None = None,
) -> float:
    """Position-weighted combine score on a 0-100 scale.

    A measurement that was not recorded contributes a neutral 50 at its
    weight. With no combine data at all the score is neutral.
    """
    if combine is None:
        return NEUTRAL_SCORE
    recorded = combine.measurements()
    weights = POSITION_WEIGHTS[position]
    if not recorded or not weights:
        return NEUTRAL_SCORE

    total = 0.0
    for name, weight in weights.items():
        if name in recorded:
            total += measurement_score(name, recorded[name], percentiles) * weight
        else:
            total += NEUTRAL_SCORE * weight
    return total


# ---------------------------------------------------------------------------
# Relative Athletic Score
# ---------------------------------------------------------------------------

MIN_RAS_MEASUREMENTS = 6
TOTAL_RAS_MEASUREMENTS = 10

RAS_CATEGORIES = {
    "size": ("height", "weight"),
    "speed": ("forty_yard_dash", "ten_yard_split", "twenty_yard_split"),
    "strength": ("bench_press",),
    "explosion": ("vertical_jump", "broad_jump"),
    "agility": ("three_cone_drill", "twenty_yard_shuttle"),
}


@dataclass
class MeasurementScore:
    measurement: str
    raw_value: float
    percentile: float
    score: float


@dataclass
class RasScore:
    """RAS on a 0-10 scale with category sub-scores."""

    player_id: UUID
    overall_score: float | None
    category_scores: dict[str, float | None]
    measurements_used: int
    measurements_total: int = TOTAL_RAS_MEASUREMENTS
    individual_scores: list[MeasurementScore] = field(default_factory=list)
    explanation: str | None = None


def calculate_ras(
    player: Player,
    combine: CombineResult | None,
    percentiles: dict[str, CombinePercentile],
) -> RasScore:
    """Compute RAS for a player against their position group's percentile tables.

    Only measurements with a percentile table are scored. The overall score
    needs at least MIN_RAS_MEASUREMENTS of them.
    """
    raw: dict[str, float] = {}
    if player.height_inches is not None:
        raw["height"] = float(player.height_inches)
    if player.weight_pounds is not None:
        raw["weight"] = float(player.weight_pounds)
    if combine is not None:
        raw.update(combine.measurements())

    scores = []
    for name, value in raw.items():
        table = percentiles.get(name)
        if table is None:
            continue
        pct = percentile_rank(table, value)
        scores.append(MeasurementScore(measurement=name, raw_value=value, percentile=pct, score=pct / 10.0))

    category_scores = {}
    for category, names in RAS_CATEGORIES.items():
        matching = [s.score for s in scores if s.measurement in names]
        category_scores[category] = round(float(np.mean(matching)), 2) if matching else None

    used = len(scores)
    if used >= MIN_RAS_MEASUREMENTS:
        overall = round(float(np.mean([s.score for s in scores])), 2)
        explanation = None
    else:
        overall = None
        explanation = f"Insufficient measurements: {used} of {MIN_RAS_MEASUREMENTS} minimum required"

    return RasScore(
        player_id=player.id,
        overall_score=overall,
        category_scores=category_scores,
        measurements_used=used,
        individual_scores=scores,
        explanation=explanation,
    )
