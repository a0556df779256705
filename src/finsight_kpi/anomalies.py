# FinSight KPI Engine - Financial validation & KPI engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Completeness and anomaly detection for canonical records.

Three kinds of findings are reported:

- missing_fields : required fields (per document type, from the
                   configuration) that are absent from the record,
- invalid_fields : values the extraction produced but that could not be
                   parsed, and values that are not finite numbers
                   (strings, booleans, infinities) on records built
                   directly,
- warnings       : soft anomalies that do not block the record
                   (negative cash, implausible magnitudes, ...).

Only missing required fields and invalid values make ``is_valid`` False.
Warnings never do: the KPI calculator still uses the record and degrades
per KPI when a field it needs is missing.
"""

import logging
from typing import Optional

import pandas as pd

from .config import EngineConfig, default_engine_config
from .models import ALL_FIELDS, NON_NEGATIVE_FIELDS, FinancialData
from .numeric import fmt_amount, is_missing, is_number
from .validation import ValidationResult

logger = logging.getLogger(__name__)


def _invalid_names(record: FinancialData) -> set[str]:
    unparsed = {name for name, _ in record.unparsed_fields}
    return unparsed | {name for name, _ in record.invalid_values()}


def _missing_required(
    record: FinancialData, required: tuple[str, ...]
) -> list[str]:
    # Invalid values are reported as invalid, not missing.
    invalid = _invalid_names(record)
    return [
        name
        for name in required
        if name not in invalid and is_missing(record.get(name))
    ]


def _invalid_values(record: FinancialData) -> list[str]:
    entries = [
        f"{name}: could not parse {raw!r} as a number"
        for name, raw in record.unparsed_fields
    ]
    entries += [
        f"{name}: {value!r} is not a finite number"
        for name, value in record.invalid_values()
    ]
    return entries


def _magnitude_warnings(record: FinancialData, config: EngineConfig) -> list[str]:
    """
    Flag line items whose size is implausible.

    A value is flagged when its absolute value exceeds the configured
    ceiling, or when it is more than ``outlier_ratio`` times the median of
    the other non-zero line items of the same record.
    """
    present = {
        name: value
        for name, value in record.values().items()
        if is_number(value)
    }
    values = pd.Series(present, dtype="float64")
    magnitudes = values.abs()
    magnitudes = magnitudes[magnitudes > 0]

    warnings: list[str] = []
    ceiling = config.anomalies.magnitude_ceiling
    ratio = config.anomalies.outlier_ratio

    for name, magnitude in magnitudes.items():
        if magnitude > ceiling:
            warnings.append(
                f"{name} has an implausible magnitude ({fmt_amount(values[name])} "
                f"exceeds {fmt_amount(ceiling)})"
            )
            continue

        others = magnitudes.drop(labels=[name])
        if others.empty:
            continue
        median = float(others.median())
        if median > 0 and magnitude > ratio * median:
            warnings.append(
                f"{name} ({fmt_amount(values[name])}) is more than "
                f"{ratio:g}x the median line item ({fmt_amount(median)})"
            )

    return warnings


def _business_rule_warnings(record: FinancialData) -> list[str]:
    warnings: list[str] = []
    bs = record.balance_sheet
    inc = record.income_statement

    if is_number(bs.cash) and bs.cash < 0:
        warnings.append(f"Negative cash balance ({fmt_amount(bs.cash)})")

    for name in ALL_FIELDS:
        if name == "cash" or name not in NON_NEGATIVE_FIELDS:
            continue
        value = record.get(name)
        if is_number(value) and value < 0:
            warnings.append(
                f"{name} is negative ({fmt_amount(value)}), expected a "
                "non-negative balance"
            )

    revenue = inc.total_revenue
    cogs = inc.cost_of_goods_sold
    if is_number(revenue) and is_number(cogs):
        if revenue <= 0 and cogs != 0:
            warnings.append(
                f"Revenue is {fmt_amount(revenue)} while cost of goods sold is "
                f"{fmt_amount(cogs)}; margins cannot be computed"
            )

    interest = inc.interest_expense
    operating_income = inc.operating_income
    if is_number(interest) and interest != 0:
        if not is_number(operating_income) or operating_income == 0:
            warnings.append(
                f"Interest expense ({fmt_amount(interest)}) is reported without "
                "an operating income base; interest coverage is undefined"
            )

    return warnings


def detect_anomalies(
    record: FinancialData,
    document_type: str,
    config: Optional[EngineConfig] = None,
) -> ValidationResult:
    """
    Check presence, type validity and plausibility of a record's values.

    Args:
        record: Record to inspect.
        document_type: One of the configured document types
            ('balance_sheet', 'income_statement', 'cash_flow',
            'financial_reports'). Selects the required fields.
        config: Engine configuration. Defaults to built-in settings.

    Returns:
        A ValidationResult whose ``completeness`` is the percentage of
        required fields that are present and parsed.

    Raises:
        ValueError: if ``document_type`` has no required-fields entry.
    """
    cfg = config or default_engine_config()

    try:
        required = tuple(cfg.required_fields[document_type])
    except KeyError as exc:
        raise ValueError(
            f"Unknown document type {document_type!r}. "
            f"Expected one of: {sorted(cfg.required_fields)}"
        ) from exc

    missing = _missing_required(record, required)
    invalid = _invalid_values(record)
    warnings = _business_rule_warnings(record) + _magnitude_warnings(record, cfg)

    invalid_names = _invalid_names(record)
    if required:
        present = [
            n for n in required if n not in missing and n not in invalid_names
        ]
        completeness = len(present) / len(required) * 100.0
    else:
        completeness = 100.0

    if missing or invalid or warnings:
        logger.debug(
            "%s (%s) as %s: %d missing, %d invalid, %d warnings",
            record.company_name,
            record.period,
            document_type,
            len(missing),
            len(invalid),
            len(warnings),
        )

    return ValidationResult(
        is_valid=not missing and not invalid,
        missing_fields=tuple(missing),
        invalid_fields=tuple(invalid),
        warnings=tuple(warnings),
        completeness=completeness,
    )
