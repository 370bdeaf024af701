from decimal import Decimal, ROUND_HALF_UP
from typing import List, Tuple

MIN_SCORE = 0
MAX_SCORE = 100


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves away from zero.

    Python's round() uses banker's rounding, which would turn a 49.5
    partial-credit score into 49 instead of 50.
    """
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def clamp_score(value: float) -> int:
    """Round and clamp a score into [0, 100]."""
    return max(MIN_SCORE, min(MAX_SCORE, round_half_up(value)))


def band(score: float, bands: List[Tuple[int, str]], fallback: str) -> str:
    """
    Map a score onto the first band whose minimum it reaches.

    Bands are (minimum score, label) pairs ordered from highest to lowest.
    """
    for minimum, label in bands:
        if score >= minimum:
            return label
    return fallback
