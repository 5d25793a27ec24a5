"""Draft pick trade value charts."""

from enum import Enum

from ..errors import ValidationError

DECAY_FACTOR = 0.95

JIMMY_JOHNSON_VALUES = [
    # Round 1
    3000, 2600, 2200, 1800, 1700, 1600, 1500, 1400, 1350, 1300, 1250, 1200, 1150, 1100,
    1050, 1000, 950, 900, 875, 850, 800, 780, 760, 740, 720, 700, 680, 660, 640, 620,
    600, 590,
    # Round 2
    580, 560, 550, 540, 530, 520, 510, 500, 490, 480, 470, 460, 450, 440, 430, 420,
    410, 400, 390, 380, 370, 360, 350, 340, 330, 320, 310, 300, 292, 284, 276, 268,
    # Round 3
    260, 252, 244, 236, 228, 220, 212, 204, 197, 190, 183, 176, 170, 164, 158, 152, 146,
    140, 136, 132, 128, 124, 120, 116, 112, 108, 104, 100, 96, 92, 88, 84,
    # Round 4
    80, 78, 76, 74, 72, 70, 68, 66, 64, 62, 60, 58, 56, 54, 52, 50, 49, 48, 47, 46, 45,
    44, 43, 42, 41, 40, 39, 38, 37, 36, 35, 34,
    # Round 5
    33, 32, 31, 30, 29, 28, 27, 26, 25, 24, 23, 22, 21, 20, 19, 18, 17, 17, 16, 16, 15,
    15, 14, 14, 13, 13, 13, 13, 13, 12, 12, 12,
    # Round 6
    12, 12, 11, 11, 10, 10, 9, 9, 8, 8, 8, 8, 8, 7, 7, 7, 7, 7, 6, 6, 6, 6, 6, 5, 5, 5,
    5, 5, 4, 4, 4, 4,
    # Round 7
    4, 3, 3, 3, 3, 3, 3, 3, 3, 3, 3, 2, 2, 2, 2, 2, 2, 2, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1,
    1, 1, 1, 1,
]

RICH_HILL_VALUES = [
    # Round 1
    1000, 717, 514, 491, 468, 446, 426, 406, 387, 369, 358, 347, 336, 325, 315, 305,
    296, 287, 278, 269, 261, 253, 245, 237, 230, 223, 216, 209, 202, 196, 190, 184,
    # Round 2
    180, 175, 170, 166, 162, 157, 153, 149, 146, 142, 138, 135, 131, 128, 124, 121, 118,
    115, 112, 109, 106, 104, 101, 98, 96, 93, 91, 88, 86, 84, 82, 80,
    # Round 3
    78, 76, 75, 73, 71, 70, 68, 67, 65, 64, 63, 61, 60, 59, 57, 56, 55, 54, 52, 51, 50,
    49, 48, 47, 46, 45, 44, 43, 42, 41, 40, 39, 38, 37, 36, 35,
    # Round 4
    34, 34, 33, 33, 32, 32, 31, 31, 30, 30, 29, 29, 28, 28, 27, 26, 26, 25, 25, 24, 24,
    23, 23, 22, 21, 20, 20, 20, 19, 19, 18, 18, 18, 17, 17, 17,
    # Round 5
    16, 16, 15, 15, 15, 14, 14, 14, 13, 13, 13, 13, 12, 12, 12, 12, 11, 11, 11, 11, 10,
    10, 10, 10, 10, 10, 10, 9, 9, 9, 9, 9, 9, 9, 9, 9,
    # Round 6
    8, 8, 8, 8, 8, 8, 8, 8, 7, 7, 7, 7, 7, 7, 7, 7, 6, 6, 6, 6, 6, 6, 6, 6, 5, 5, 5, 5,
    5, 5, 5, 5,
    # Round 7
    5, 4, 4, 4, 4, 4, 4, 4, 4, 4, 4, 4, 4, 4, 4, 3, 3, 3, 3, 3,
]


class ChartType(Enum):
    """Named trade value charts."""

    JIMMY_JOHNSON = "JimmyJohnson"
    RICH_HILL = "RichHill"

    @property
    def display_name(self) -> str:
        return {"JimmyJohnson": "Jimmy Johnson", "RichHill": "Rich Hill"}[self.value]


class TradeValueChart:
    """Maps overall pick number to trade value.

    Picks past the end of the table decay 5% per pick from the last value,
    never dropping below 1.
    """

    def __init__(self, chart_type: ChartType, values: list[int]):
        self.chart_type = chart_type
        self.values = values

    @property
    def name(self) -> str:
        return self.chart_type.display_name

    def pick_value(self, overall_pick: int) -> int:
        if overall_pick < 1:
            raise ValidationError(f"Invalid pick number: {overall_pick}")
        index = overall_pick - 1
        if index < len(self.values):
            return self.values[index]
        extra = index - len(self.values)
        return max(int(self.values[-1] * DECAY_FACTOR**extra), 1)

    def total_value(self, overall_picks: list[int]) -> int:
        return sum(self.pick_value(p) for p in overall_picks)


def is_trade_fair(value1: int, value2: int, threshold_percent: int) -> bool:
    """True if the smaller side is within threshold_percent of the larger side."""
    if value1 == 0 or value2 == 0:
        return False
    larger = max(value1, value2)
    smaller = min(value1, value2)
    return (larger - smaller) * 100 <= threshold_percent * larger


_CHARTS = {
    ChartType.JIMMY_JOHNSON: JIMMY_JOHNSON_VALUES,
    ChartType.RICH_HILL: RICH_HILL_VALUES,
}


def get_chart(chart_type: ChartType | str) -> TradeValueChart:
    if isinstance(chart_type, str):
        try:
            chart_type = ChartType(chart_type)
        except ValueError as e:
            raise ValidationError(f"Unknown trade value chart: {chart_type}") from e
    return TradeValueChart(chart_type, _CHARTS[chart_type])
