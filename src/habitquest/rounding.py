"""Integer rounding shared by rewards and leaderboard scoring."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives.

    2.5 -> 3, 7.5 -> 8. Python's round() would give 2 and 8 (banker's rounding),
    which makes odd base rewards lose a coin.
    """
    if not math.isfinite(value):
        msg = f"Cannot round non-finite value: {value!r}"
        raise ValueError(msg)
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))
