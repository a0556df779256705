# FinSight KPI Engine - Financial validation & KPI engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for FinSight KPI.

This module contains display helpers only. The engine modules (kpis.py,
validation.py, anomalies.py) keep full-precision values and never format
them; the functions below prepare those values for a console table, a CSV
export or any presentation layer.

- format_currency    : compact amounts ($1.2M, $350K, $950),
- format_percentage  : one decimal and a percent sign,
- format_kpi_value   : unit-aware rendering of a KPIResult value,
- kpis_to_dataframe  : KPI results as a pandas DataFrame,
- validation_to_dataframe : one row per finding of a ValidationResult.
"""

from collections.abc import Mapping

import pandas as pd

from .kpis import KPI_NAMES, KPIResult
from .validation import ValidationResult

KPI_LABELS: dict[str, str] = {
    "cash": "Cash",
    "runway": "Runway",
    "free_cash_flow": "Free Cash Flow",
    "revenue_growth": "Revenue Growth (MoM)",
    "gross_margin": "Gross Margin",
    "operating_margin": "Operating Margin",
    "cash_conversion_cycle": "Cash Conversion Cycle",
    "interest_coverage": "Interest Coverage",
    "current_ratio": "Current Ratio",
}

KPI_UNITS: dict[str, str] = {
    "cash": "amount",
    "runway": "months",
    "free_cash_flow": "amount",
    "revenue_growth": "percent",
    "gross_margin": "percent",
    "operating_margin": "percent",
    "cash_conversion_cycle": "days",
    "interest_coverage": "times",
    "current_ratio": "ratio",
}


def format_currency(value: float) -> str:
    """Compact currency rendering: $1.2M above a million, $350K above a thousand."""
    sign = "-" if value < 0 else ""
    magnitude = abs(value)
    if magnitude >= 1_000_000:
        return f"{sign}${magnitude / 1_000_000:.1f}M"
    if magnitude >= 1_000:
        return f"{sign}${magnitude / 1_000:.0f}K"
    return f"{sign}${magnitude:,.0f}"


def format_percentage(value: float) -> str:
    return f"{value:.1f}%"


def format_kpi_value(kpi_name: str, result: KPIResult) -> str:
    """Render a KPI value according to its unit; sentinel strings pass through."""
    if isinstance(result.value, str):
        return result.value

    unit = KPI_UNITS.get(kpi_name, "ratio")
    value = float(result.value)
    if unit == "amount":
        return format_currency(value)
    if unit == "percent":
        return format_percentage(value)
    if unit == "months":
        return f"{value:.1f} months"
    if unit == "days":
        return f"{value:.1f} days"
    if unit == "times":
        return f"{value:.1f}x"
    return f"{value:.2f}"


def kpis_to_dataframe(
    kpis: Mapping[str, KPIResult], decimals: int = 1
) -> pd.DataFrame:
    """
    Convert KPI results into a pandas DataFrame.

    The resulting DataFrame has the following columns:
        - key:         KPI identifier (e.g. "gross_margin").
        - label:       Human-readable label.
        - value:       Numeric value rounded to ``decimals``, NaN for
                       sentinel values.
        - display:     Formatted value (see format_kpi_value).
        - unit:        Unit hint.
        - status:      good / warning / critical / unavailable.
        - calculation: Derivation trace.

    Rows follow the canonical KPI order, then any extra keys sorted.
    """
    columns = ["key", "label", "value", "display", "unit", "status", "calculation"]
    if not kpis:
        return pd.DataFrame(columns=columns)

    ordered = [k for k in KPI_NAMES if k in kpis]
    ordered += sorted(k for k in kpis if k not in KPI_NAMES)

    rows: list[dict[str, object]] = []
    for key in ordered:
        result = kpis[key]
        if isinstance(result.value, str):
            value = float("nan")
        else:
            value = round(float(result.value), decimals)

        rows.append(
            {
                "key": key,
                "label": KPI_LABELS.get(key, key),
                "value": value,
                "display": format_kpi_value(key, result),
                "unit": KPI_UNITS.get(key, "ratio"),
                "status": result.status,
                "calculation": result.calculation,
            }
        )

    return pd.DataFrame(rows, columns=columns)


def validation_to_dataframe(result: ValidationResult) -> pd.DataFrame:
    """One row per finding with its kind ('missing', 'invalid', 'warning')."""
    rows = (
        [{"kind": "missing", "detail": f} for f in result.missing_fields]
        + [{"kind": "invalid", "detail": f} for f in result.invalid_fields]
        + [{"kind": "warning", "detail": w} for w in result.warnings]
    )
    return pd.DataFrame(rows, columns=["kind", "detail"])
