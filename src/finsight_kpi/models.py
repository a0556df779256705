# FinSight KPI Engine - Financial validation & KPI engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Canonical financial records for FinSight KPI.

A canonical record (``FinancialData``) is the normalized per-period
snapshot of a company's financial statements. It is produced once per
extracted document period and consumed, unchanged, by every other module:

- validation.py : accounting identity checks,
- anomalies.py  : required-field presence and data-quality warnings,
- kpis.py       : KPI derivation over an ordered history of records.

Missing values
--------------
Every numeric field is ``Optional[float]``. ``None`` is the explicit
"missing" sentinel and is never coerced to 0.0, because 0 is a perfectly
valid business value (no inventory, no interest expense, ...).

Field names
-----------
Field names are unique across the three statements, so a single
snake_case name (e.g. ``total_assets``) identifies a line item. These names
are used in configuration (required fields per document type) and in
validation reports.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Optional

from .numeric import is_missing, is_number

DOCUMENT_TYPES: tuple[str, ...] = (
    "balance_sheet",
    "income_statement",
    "cash_flow",
    "financial_reports",
)


@dataclass(frozen=True)
class BalanceSheet:
    """Balance sheet lines. All non-negative by convention except retained_earnings."""

    cash: Optional[float] = None
    accounts_receivable: Optional[float] = None
    inventory: Optional[float] = None
    current_assets: Optional[float] = None
    non_current_assets: Optional[float] = None
    total_assets: Optional[float] = None
    accounts_payable: Optional[float] = None
    short_term_debt: Optional[float] = None
    long_term_debt: Optional[float] = None
    current_liabilities: Optional[float] = None
    non_current_liabilities: Optional[float] = None
    total_liabilities: Optional[float] = None
    total_equity: Optional[float] = None
    retained_earnings: Optional[float] = None


@dataclass(frozen=True)
class IncomeStatement:
    """Income statement lines. operating_income and net_income may be negative."""

    total_revenue: Optional[float] = None
    cost_of_goods_sold: Optional[float] = None
    gross_profit: Optional[float] = None
    operating_expenses: Optional[float] = None
    operating_income: Optional[float] = None
    interest_expense: Optional[float] = None
    tax_expense: Optional[float] = None
    net_income: Optional[float] = None


@dataclass(frozen=True)
class CashFlow:
    """Cash flow lines. investing_cash_flow is usually negative (capex)."""

    operating_cash_flow: Optional[float] = None
    investing_cash_flow: Optional[float] = None
    financing_cash_flow: Optional[float] = None
    net_cash_flow: Optional[float] = None


BALANCE_SHEET_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(BalanceSheet))
INCOME_STATEMENT_FIELDS: tuple[str, ...] = tuple(
    f.name for f in fields(IncomeStatement)
)
CASH_FLOW_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(CashFlow))

# Statement section -> field names, in declaration order.
STATEMENT_FIELDS: dict[str, tuple[str, ...]] = {
    "balance_sheet": BALANCE_SHEET_FIELDS,
    "income_statement": INCOME_STATEMENT_FIELDS,
    "cash_flow": CASH_FLOW_FIELDS,
}

ALL_FIELDS: tuple[str, ...] = (
    BALANCE_SHEET_FIELDS + INCOME_STATEMENT_FIELDS + CASH_FLOW_FIELDS
)

# Balance sheet lines expected to be >= 0.
NON_NEGATIVE_FIELDS: frozenset[str] = frozenset(BALANCE_SHEET_FIELDS) - {
    "retained_earnings"
}


@dataclass(frozen=True)
class FinancialData:
    """
    Canonical record for one reporting period of one company.

    Attributes:
        company_name: Company identity.
        period: ISO date or free label of the reporting period (e.g. '2024-03').
        balance_sheet: Balance sheet lines.
        income_statement: Income statement lines.
        cash_flow: Cash flow statement lines.
        unparsed_fields: (field, raw value) pairs whose extracted value could
            not be parsed as a finite number. Those fields are stored as
            missing on the statements.
    """

    company_name: str
    period: str
    balance_sheet: BalanceSheet = field(default_factory=BalanceSheet)
    income_statement: IncomeStatement = field(default_factory=IncomeStatement)
    cash_flow: CashFlow = field(default_factory=CashFlow)
    unparsed_fields: tuple[tuple[str, str], ...] = ()

    def get(self, name: str) -> Optional[float]:
        """Return the value of a line item by its snake_case name."""
        for section, names in STATEMENT_FIELDS.items():
            if name in names:
                return getattr(getattr(self, section), name)
        raise KeyError(f"Unknown financial field: {name!r}")

    def values(self) -> dict[str, Optional[float]]:
        """Return all line items as a flat {field -> value} dictionary."""
        return {name: self.get(name) for name in ALL_FIELDS}

    def invalid_values(self) -> tuple[tuple[str, Any], ...]:
        """
        Return the (field, value) pairs that are present but not finite numbers.

        Records built outside io.parse_financial_record() may carry strings,
        booleans or infinite values; those are neither usable nor missing.
        """
        return tuple(
            (name, value)
            for name, value in self.values().items()
            if not is_missing(value) and not is_number(value)
        )
