from __future__ import annotations

import time
from decimal import Decimal
from typing import Optional, Tuple

# enough digits for any uint256 amount in a Decimal conversion
DECIMAL_PRECISION = 78


def _slippage_ratio(slippage_tolerance: float) -> Tuple[int, int]:
    """Slippage as an exact (numerator, denominator) pair, e.g. 0.05 -> (1, 20)."""
    s = Decimal(str(slippage_tolerance))
    if not Decimal(0) < s < Decimal(1):
        raise ValueError(f"slippage tolerance must be between 0 and 1: {slippage_tolerance}")
    return s.as_integer_ratio()


def compute_min_amount_out(quoted_amount_out: int, slippage_tolerance: float) -> int:
    """Lower bound for an exact-input swap: floor(quoted * (1 - slippage)).

    Integer arithmetic throughout, so the floor is exact for any uint256
    quote. Never returns 0: a zero minimum would accept any fill, so it is
    clamped to one smallest unit.
    """
    num, den = _slippage_ratio(slippage_tolerance)
    min_out = int(quoted_amount_out) * (den - num) // den
    return max(min_out, 1)


def compute_max_amount_in(quoted_amount_in: int, slippage_tolerance: float) -> int:
    """Upper bound for an exact-output swap: floor(quoted * (1 + slippage))."""
    num, den = _slippage_ratio(slippage_tolerance)
    return int(quoted_amount_in) * (den + num) // den


def compute_deadline(seconds: int = 600, now: Optional[float] = None) -> int:
    """Unix timestamp ``seconds`` from now (default 10 minutes)."""
    current = time.time() if now is None else now
    return int(current) + int(seconds)


def scale_amount(amount: int, percent: int) -> int:
    """Integer ``amount * percent / 100`` rounded down."""
    return int(amount) * int(percent) // 100
