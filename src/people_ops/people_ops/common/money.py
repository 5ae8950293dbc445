from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

_CENT = Decimal("0.01")


def round_money(value: float) -> float:
    """Round a monetary amount to 2 decimals, half away from zero.

    Works on the exact binary value of the float, so 1.005 (stored as
    1.00499999...) rounds down to 1.0 exactly like ``Number(x.toFixed(2))``
    does in the payroll front-end. Only the rounding step touches Decimal;
    the arithmetic feeding it stays in plain floats.
    """

    return float(Decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP))


def round_score(value: float) -> float:
    """Round to 2 decimals with ties toward +infinity (``Math.round(x * 100) / 100``)."""

    scaled = value * 100
    whole = math.floor(scaled)
    if scaled - whole >= 0.5:
        whole += 1
    return whole / 100


def plain_sum(values: Iterable[float]) -> float:
    """Left-to-right float addition.

    The builtin ``sum`` uses compensated summation for floats on Python 3.12+,
    which can differ in the last bit from the running totals stored payslips
    were computed with.
    """

    total = 0.0
    for v in values:
        total += v
    return total
