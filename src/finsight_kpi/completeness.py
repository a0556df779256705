# FinSight KPI Engine - Financial validation & KPI engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Data completeness of a company's record history, as shown on the dashboard.

A statement is considered *present* for a period when every required field
of its document type (see config.required_fields) is present on that
period's record.

- required documents:    the three statements of the latest period,
- recommended documents: the three statements for each of the last twelve
                         periods (36 statement-periods),
- score:                 60% weight on required, 40% on recommended.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

from .config import EngineConfig, default_engine_config
from .kpis import TTM_WINDOW
from .models import STATEMENT_FIELDS, FinancialData
from .numeric import is_missing

STATEMENT_TYPES: tuple[str, ...] = tuple(STATEMENT_FIELDS)

REQUIRED_WEIGHT = 0.6
RECOMMENDED_WEIGHT = 0.4


@dataclass(frozen=True)
class DataCompleteness:
    """Summary of which statements are available across the history."""

    score: int
    required_docs: int
    total_required_docs: int
    recommended_docs: int
    total_recommended_docs: int
    months_of_data: int
    has_balance_sheet: bool
    has_income_statement: bool
    has_cash_flow: bool
    is_valid_for_kpis: bool


def has_statement(
    record: FinancialData, statement: str, config: EngineConfig
) -> bool:
    """True if every required field of ``statement`` is present on ``record``."""
    required = config.required_fields.get(statement, ())
    return all(not is_missing(record.get(name)) for name in required)


def assess_data_completeness(
    records: Sequence[FinancialData],
    config: Optional[EngineConfig] = None,
) -> DataCompleteness:
    """
    Summarise the completeness of a chronologically ordered record history.

    An empty history is valid input and yields a zero score.
    """
    cfg = config or default_engine_config()
    total_required = len(STATEMENT_TYPES)
    total_recommended = len(STATEMENT_TYPES) * TTM_WINDOW

    if not records:
        return DataCompleteness(
            score=0,
            required_docs=0,
            total_required_docs=total_required,
            recommended_docs=0,
            total_recommended_docs=total_recommended,
            months_of_data=0,
            has_balance_sheet=False,
            has_income_statement=False,
            has_cash_flow=False,
            is_valid_for_kpis=False,
        )

    latest = records[-1]
    present = {s: has_statement(latest, s, cfg) for s in STATEMENT_TYPES}
    required_docs = sum(present.values())

    recommended_docs = sum(
        has_statement(record, statement, cfg)
        for record in records[-TTM_WINDOW:]
        for statement in STATEMENT_TYPES
    )

    score = round(
        100
        * (
            REQUIRED_WEIGHT * required_docs / total_required
            + RECOMMENDED_WEIGHT * recommended_docs / total_recommended
        )
    )

    return DataCompleteness(
        score=score,
        required_docs=required_docs,
        total_required_docs=total_required,
        recommended_docs=recommended_docs,
        total_recommended_docs=total_recommended,
        months_of_data=len(records),
        has_balance_sheet=present["balance_sheet"],
        has_income_statement=present["income_statement"],
        has_cash_flow=present["cash_flow"],
        is_valid_for_kpis=required_docs == total_required,
    )
