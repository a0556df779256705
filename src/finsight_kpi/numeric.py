# FinSight KPI Engine - Financial validation & KPI engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""Small numeric helpers shared by the validator, detector and KPI calculator."""

import math
import numbers
from collections.abc import Iterable
from typing import Any, Optional


def is_missing(value: Any) -> bool:
    """True for the missing sentinel (None) and for NaN."""
    if value is None:
        return True
    try:
        return math.isnan(value)
    except TypeError:
        return False


def is_number(value: Any) -> bool:
    """True for a real number (bool excluded) that is neither NaN nor infinite."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return math.isfinite(value)


def all_present(*values: Any) -> bool:
    """True if every value is a finite number."""
    return all(is_number(v) for v in values)


def safe_div(numerator: float, denominator: float) -> Optional[float]:
    """
    Divide and return None instead of raising or producing a non-finite value.

    A zero denominator, or any result that is NaN or infinite, yields None.
    """
    if denominator == 0:
        return None
    result = numerator / denominator
    if not math.isfinite(result):
        return None
    return result


def pct(numerator: float, denominator: float) -> Optional[float]:
    """Return numerator / denominator * 100, or None if undefined."""
    ratio = safe_div(numerator, denominator)
    if ratio is None:
        return None
    return ratio * 100.0


def within_tolerance(
    lhs: float,
    rhs: float,
    rel_tol: float,
    abs_tol: float,
) -> bool:
    """
    Compare two amounts using the engine-wide tolerance rule.

    The comparison is |lhs - rhs| <= max(abs_tol, rel_tol * max(|lhs|, |rhs|)),
    i.e. the rule of math.isclose. A delta exactly at the bound passes.
    """
    return math.isclose(lhs, rhs, rel_tol=rel_tol, abs_tol=abs_tol)


def mean(values: Iterable[float]) -> Optional[float]:
    items = list(values)
    if not items:
        return None
    try:
        result = math.fsum(items) / len(items)
    except OverflowError:
        return None
    return result if math.isfinite(result) else None


def fmt_amount(value: float) -> str:
    """
    Format an amount for calculation traces: thousands separators, cents only
    when the value is not a whole number.
    """
    if float(value).is_integer():
        return f"{value:,.0f}"
    return f"{value:,.2f}"
