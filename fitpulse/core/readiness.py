from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[int, float]

RATING_MIN = 1
RATING_MAX = 10
# Five factors at RATING_MAX each.
MAX_FACTOR_SUM = 50

HIGH_READINESS = 85
GOOD_READINESS = 70
MODERATE_READINESS = 55

READINESS_BANDS: list[tuple[int, str, str]] = [
    (
        HIGH_READINESS,
        "high readiness",
        "You're firing on all cylinders! Great day for intense training.",
    ),
    (
        GOOD_READINESS,
        "good readiness",
        "Feeling good! Normal training intensity recommended.",
    ),
    (
        MODERATE_READINESS,
        "moderate / light training",
        "A bit tired today. Consider lighter training or active recovery.",
    ),
]
LOW_READINESS_LABEL = "low readiness / recovery"
LOW_READINESS_MESSAGE = "Your body needs rest. Perfect day for recovery or light stretching."


def round_half_up(value: Number) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _clamp_score(value: Number) -> int:
    return max(0, min(100, round_half_up(value)))


def compute_readiness_score(
    sleep_quality: Number,
    energy_level: Number,
    soreness: Number,
    mood: Number,
    stress: Number,
) -> int:
    """Composite 0-100 readiness from five 1-10 ratings.

    Soreness and stress count against readiness, so they are inverted with
    ``11 - x`` before summing. Inputs are expected to be validated already.
    """
    total = (
        Decimal(str(sleep_quality))
        + Decimal(str(energy_level))
        + (11 - Decimal(str(soreness)))
        + Decimal(str(mood))
        + (11 - Decimal(str(stress)))
    )
    return _clamp_score(total / MAX_FACTOR_SUM * 100)


def _band(score: int) -> tuple[str, str]:
    for threshold, label, message in READINESS_BANDS:
        if score >= threshold:
            return label, message
    return LOW_READINESS_LABEL, LOW_READINESS_MESSAGE


def readiness_label(score: int) -> str:
    return _band(score)[0]


def readiness_message(score: int) -> str:
    return _band(score)[1]
