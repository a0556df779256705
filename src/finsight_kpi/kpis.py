# FinSight KPI Engine - Financial validation & KPI engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
KPI calculator for the SMB dashboard.

Given the chronologically ordered records of one company (oldest first,
one record per month), ``calculate_all_kpis()`` derives the nine dashboard
KPIs in a single pass:

    cash                   latest cash balance
    runway                 months of cash left at the 3-period average burn
    free_cash_flow         operating cash flow minus |investing cash flow|
    revenue_growth         month-over-month revenue growth (%), YoY if possible
    gross_margin           (revenue - COGS) / revenue (%)
    operating_margin       operating income / revenue (%)
    cash_conversion_cycle  DSO + DIO - DPO (days), trailing twelve periods
    interest_coverage      operating income / interest expense (x)
    current_ratio          current assets / current liabilities (x)

Every KPI has its own lookback and required fields. When they are not met
the KPI degrades to an "Unavailable" result instead of raising, and
arithmetic degeneracies (zero revenue, zero interest expense, positive cash
flow for runway) resolve to documented sentinel values. Results never
carry NaN or infinite values.

Each KPIResult carries a ``calculation`` trace with the literal numbers
substituted into the formula, and the list of statement lines used.
Values are kept at full precision; rounding belongs to views.py.

The functions are pure: the same records and configuration always produce
equal results.
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional, Union

from .config import EngineConfig, default_engine_config
from .models import FinancialData
from .numeric import fmt_amount, is_missing, is_number, mean, pct, safe_div
from .status import (
    CRITICAL,
    GOOD,
    UNAVAILABLE,
    WARNING,
    KPIThreshold,
    Status,
    classify,
)

logger = logging.getLogger(__name__)

UNAVAILABLE_VALUE = "Unavailable"
NO_INTEREST_VALUE = "No Interest"
PROFITABLE_VALUE = "Profitable / ∞"

KPI_NAMES: tuple[str, ...] = (
    "cash",
    "runway",
    "free_cash_flow",
    "revenue_growth",
    "gross_margin",
    "operating_margin",
    "cash_conversion_cycle",
    "interest_coverage",
    "current_ratio",
)

RUNWAY_WINDOW = 3
TTM_WINDOW = 12
YOY_LAG = 12
DAYS_PER_YEAR = 365.0

# FCF below this share of a positive operating cash flow is a warning.
FCF_WARNING_SHARE = 0.5


@dataclass(frozen=True)
class KPIResult:
    """
    Computed KPI as returned by this module.

    Attributes:
        value: Numeric value, or a sentinel string ('Unavailable',
            'No Interest', 'Profitable / ∞').
        status: 'good', 'warning', 'critical' or 'unavailable'.
        calculation: Human-readable derivation with the numbers used.
        source: Statement lines the KPI was derived from.
        threshold: Boundaries used for classification, when applicable.
        details: Secondary figures (e.g. ('yoy_growth', 12.4)).
    """

    value: Union[float, str]
    status: Status
    calculation: str
    source: tuple[str, ...]
    threshold: Optional[KPIThreshold] = None
    details: tuple[tuple[str, float], ...] = ()

    @property
    def is_available(self) -> bool:
        return self.status != UNAVAILABLE

    def detail(self, name: str) -> Optional[float]:
        """Return a secondary figure by name, or None."""
        return dict(self.details).get(name)


def _unavailable(reason: str, source: Sequence[str]) -> KPIResult:
    return KPIResult(
        value=UNAVAILABLE_VALUE,
        status=UNAVAILABLE,
        calculation=reason,
        source=tuple(source),
    )


def _missing_reason(record: FinancialData, names: Sequence[str]) -> Optional[str]:
    """
    Describe the unusable fields of a record, or None if all are finite numbers.

    Missing fields are reported first; present values that are not finite
    numbers (strings, infinities) are reported as invalid.
    """
    values = {name: record.get(name) for name in names}
    missing = [name for name, value in values.items() if is_missing(value)]
    if missing:
        return f"Missing {', '.join(missing)} for period {record.period}"
    invalid = [name for name, value in values.items() if not is_number(value)]
    if invalid:
        return f"Invalid {', '.join(invalid)} for period {record.period}"
    return None


def _finite(result: KPIResult) -> KPIResult:
    """Degrade a result whose value or details are not finite to unavailable."""
    figures = [] if isinstance(result.value, str) else [result.value]
    figures += [value for _, value in result.details]
    if all(math.isfinite(value) for value in figures):
        return result
    return _unavailable("Result is not a finite number", result.source)


# ---------------------------------------------------------------------------
# Individual KPIs
# ---------------------------------------------------------------------------


def calculate_cash(latest: FinancialData) -> KPIResult:
    """Cash = cash[t]. Critical when cash <= 0."""
    source = ("Balance Sheet → Cash and Equivalents",)
    reason = _missing_reason(latest, ["cash"])
    if reason:
        return _unavailable(reason, source)

    cash = float(latest.balance_sheet.cash)
    return _finite(
        KPIResult(
            value=cash,
            status=GOOD if cash > 0 else CRITICAL,
            calculation=f"Cash = {fmt_amount(cash)}",
            source=source,
        )
    )


def calculate_runway(
    records: Sequence[FinancialData],
    thresholds: dict[str, KPIThreshold],
) -> KPIResult:
    """
    Runway (months) = cash[t] / |average net cash flow over the last 3 periods|.

    A non-negative average net cash flow means the company is not burning
    cash: the runway is reported as 'Profitable / ∞' with a good status.
    A negative cash balance counts as zero months of runway.
    """
    source = (
        "Balance Sheet → Cash",
        f"Cash Flow Statement → Net Change in Cash (last {RUNWAY_WINDOW} periods)",
    )
    threshold = thresholds.get("runway")

    if len(records) < RUNWAY_WINDOW:
        return _unavailable(
            f"Need {RUNWAY_WINDOW} periods of net cash flow, got {len(records)}",
            source,
        )

    latest = records[-1]
    window = records[-RUNWAY_WINDOW:]
    reason = _missing_reason(latest, ["cash"])
    for record in window:
        reason = reason or _missing_reason(record, ["net_cash_flow"])
    if reason:
        return _unavailable(reason, source)

    flows = [float(r.cash_flow.net_cash_flow) for r in window]
    avg_flow = mean(flows)
    if avg_flow is None:
        return _unavailable("Average net cash flow could not be computed", source)
    cash = float(latest.balance_sheet.cash)

    if avg_flow >= 0:
        return KPIResult(
            value=PROFITABLE_VALUE,
            status=GOOD,
            calculation=(
                f"Runway = Profitable (average net cash flow "
                f"{fmt_amount(avg_flow)} >= 0)"
            ),
            source=source,
            threshold=threshold,
            details=(("average_net_cash_flow", avg_flow),),
        )

    available_cash = max(cash, 0.0)
    months = safe_div(available_cash, abs(avg_flow))
    if months is None:
        return _unavailable("Runway could not be computed", source)

    return _finite(
        KPIResult(
            value=months,
            status=classify("runway", months, thresholds),
            calculation=(
                f"Runway = {fmt_amount(available_cash)} / |{fmt_amount(avg_flow)}| "
                f"= {months:.1f} months"
            ),
            source=source,
            threshold=threshold,
            details=(("average_net_cash_flow", avg_flow),),
        )
    )


def calculate_free_cash_flow(latest: FinancialData) -> KPIResult:
    """
    FCF = operating cash flow - |investing cash flow|.

    The investing cash flow is used as a capital expenditure proxy.
    Critical when FCF < 0, warning when FCF keeps less than half of a
    positive operating cash flow.
    """
    source = (
        "Cash Flow Statement → Cash from Operations",
        "Cash Flow Statement → Capital Expenditures",
    )
    reason = _missing_reason(latest, ["operating_cash_flow", "investing_cash_flow"])
    if reason:
        return _unavailable(reason, source)

    ocf = float(latest.cash_flow.operating_cash_flow)
    capex = abs(float(latest.cash_flow.investing_cash_flow))
    fcf = ocf - capex

    status: Status = GOOD
    if fcf < 0:
        status = CRITICAL
    elif ocf > 0 and fcf < ocf * FCF_WARNING_SHARE:
        status = WARNING

    return _finite(
        KPIResult(
            value=fcf,
            status=status,
            calculation=(
                f"FCF = {fmt_amount(ocf)} - {fmt_amount(capex)} = {fmt_amount(fcf)}"
            ),
            source=source,
        )
    )


def calculate_revenue_growth(
    records: Sequence[FinancialData],
    thresholds: dict[str, KPIThreshold],
) -> KPIResult:
    """
    Month-over-month revenue growth (%), classified on the MoM figure.

    Year-over-year growth is added to the trace and details when the record
    twelve periods back exists with a non-zero revenue; its absence never
    blocks the MoM figure.
    """
    source = (
        "Income Statement → Revenue (current)",
        "Income Statement → Revenue (previous period)",
    )

    if len(records) < 2:
        return _unavailable("Need previous period revenue", source)

    latest, previous = records[-1], records[-2]
    for record in (latest, previous):
        reason = _missing_reason(record, ["total_revenue"])
        if reason:
            return _unavailable(reason, source)

    current_revenue = float(latest.income_statement.total_revenue)
    previous_revenue = float(previous.income_statement.total_revenue)

    mom = pct(current_revenue - previous_revenue, previous_revenue)
    if mom is None:
        return _unavailable(
            f"Previous period revenue is 0 ({previous.period})", source
        )

    calculation = (
        f"MoM = ({fmt_amount(current_revenue)} - {fmt_amount(previous_revenue)}) "
        f"/ {fmt_amount(previous_revenue)} × 100 = {mom:.1f}%"
    )
    details: list[tuple[str, float]] = [("mom_growth", mom)]

    if len(records) > YOY_LAG:
        base = records[-1 - YOY_LAG]
        base_revenue = base.income_statement.total_revenue
        if is_number(base_revenue):
            yoy = pct(current_revenue - base_revenue, base_revenue)
            if yoy is not None:
                calculation += (
                    f"; YoY = ({fmt_amount(current_revenue)} - "
                    f"{fmt_amount(base_revenue)}) / {fmt_amount(base_revenue)} "
                    f"× 100 = {yoy:.1f}%"
                )
                details.append(("yoy_growth", yoy))
                source = source + ("Income Statement → Revenue (12 periods back)",)

    return _finite(
        KPIResult(
            value=mom,
            status=classify("revenue_growth", mom, thresholds),
            calculation=calculation,
            source=source,
            threshold=thresholds.get("revenue_growth"),
            details=tuple(details),
        )
    )


def calculate_gross_margin(
    latest: FinancialData,
    thresholds: dict[str, KPIThreshold],
) -> KPIResult:
    """Gross margin (%) = (revenue - COGS) / revenue × 100."""
    source = (
        "Income Statement → Revenue",
        "Income Statement → Cost of Goods Sold",
    )
    reason = _missing_reason(latest, ["total_revenue", "cost_of_goods_sold"])
    if reason:
        return _unavailable(reason, source)

    revenue = float(latest.income_statement.total_revenue)
    cogs = float(latest.income_statement.cost_of_goods_sold)

    margin = pct(revenue - cogs, revenue)
    if margin is None:
        return _unavailable("Revenue is 0", source)

    return _finite(
        KPIResult(
            value=margin,
            status=classify("gross_margin", margin, thresholds),
            calculation=(
                f"GM% = ({fmt_amount(revenue)} - {fmt_amount(cogs)}) / "
                f"{fmt_amount(revenue)} × 100 = {margin:.1f}%"
            ),
            source=source,
            threshold=thresholds.get("gross_margin"),
        )
    )


def calculate_operating_margin(
    latest: FinancialData,
    thresholds: dict[str, KPIThreshold],
) -> KPIResult:
    """Operating margin (%) = operating income / revenue × 100. May be negative."""
    source = (
        "Income Statement → Operating Income",
        "Income Statement → Revenue",
    )
    reason = _missing_reason(latest, ["operating_income", "total_revenue"])
    if reason:
        return _unavailable(reason, source)

    revenue = float(latest.income_statement.total_revenue)
    operating_income = float(latest.income_statement.operating_income)

    margin = pct(operating_income, revenue)
    if margin is None:
        return _unavailable("Revenue is 0", source)

    return _finite(
        KPIResult(
            value=margin,
            status=classify("operating_margin", margin, thresholds),
            calculation=(
                f"Op Margin = {fmt_amount(operating_income)} / {fmt_amount(revenue)} "
                f"× 100 = {margin:.1f}%"
            ),
            source=source,
            threshold=thresholds.get("operating_margin"),
        )
    )


def _average_balance(
    latest: FinancialData,
    previous: Optional[FinancialData],
    name: str,
) -> float:
    """Mean of the latest and prior balances; latest alone without a prior value."""
    current = float(latest.get(name))
    if previous is None or not is_number(previous.get(name)):
        return current
    return (current + float(previous.get(name))) / 2.0


def _trailing_sum(
    window: Sequence[FinancialData], name: str
) -> tuple[float, int]:
    """Sum of the present values of ``name`` and the number of periods used."""
    values = [float(r.get(name)) for r in window if is_number(r.get(name))]
    return sum(values), len(values)


def calculate_cash_conversion_cycle(
    records: Sequence[FinancialData],
    thresholds: dict[str, KPIThreshold],
) -> KPIResult:
    """
    Cash conversion cycle (days) = DSO + DIO - DPO.

        DSO = avg AR        / (TTM revenue / days)
        DIO = avg inventory / (TTM COGS / days)
        DPO = avg AP        / (TTM COGS / days)

    Balances are averaged over the latest and prior periods. TTM sums run
    over the last twelve periods and are always spread over 365 days, so a
    shorter history sums fewer periods and yields longer cycles.
    """
    source = (
        "Balance Sheet → AR, Inventory, AP (averages)",
        "Income Statement → Revenue, COGS (TTM)",
    )

    latest = records[-1]
    previous = records[-2] if len(records) >= 2 else None
    reason = _missing_reason(
        latest, ["accounts_receivable", "inventory", "accounts_payable"]
    )
    if reason:
        return _unavailable(reason, source)

    window = records[-TTM_WINDOW:]
    ttm_revenue, revenue_periods = _trailing_sum(window, "total_revenue")
    ttm_cogs, cogs_periods = _trailing_sum(window, "cost_of_goods_sold")

    if ttm_revenue == 0 or ttm_cogs == 0:
        return _unavailable("Need non-zero TTM revenue and COGS", source)

    daily_revenue = ttm_revenue / DAYS_PER_YEAR
    daily_cogs = ttm_cogs / DAYS_PER_YEAR

    avg_ar = _average_balance(latest, previous, "accounts_receivable")
    avg_inventory = _average_balance(latest, previous, "inventory")
    avg_ap = _average_balance(latest, previous, "accounts_payable")

    dso = safe_div(avg_ar, daily_revenue)
    dio = safe_div(avg_inventory, daily_cogs)
    dpo = safe_div(avg_ap, daily_cogs)
    if dso is None or dio is None or dpo is None:
        return _unavailable("Cash conversion cycle could not be computed", source)

    ccc = dso + dio - dpo

    return _finite(
        KPIResult(
            value=ccc,
            status=classify("cash_conversion_cycle", ccc, thresholds),
            calculation=(
                f"CCC = {dso:.1f} + {dio:.1f} - {dpo:.1f} = {ccc:.1f} days "
                f"(TTM revenue {fmt_amount(ttm_revenue)} over {revenue_periods} "
                f"periods, TTM COGS {fmt_amount(ttm_cogs)} over {cogs_periods} periods)"
            ),
            source=source,
            threshold=thresholds.get("cash_conversion_cycle"),
            details=(
                ("dso", dso),
                ("dio", dio),
                ("dpo", dpo),
                ("ttm_revenue", ttm_revenue),
                ("ttm_cogs", ttm_cogs),
            ),
        )
    )


def calculate_interest_coverage(
    latest: FinancialData,
    thresholds: dict[str, KPIThreshold],
) -> KPIResult:
    """
    Interest coverage (x) = operating income / interest expense.

    A zero interest expense is not a division error: the KPI reports
    'No Interest' with a good status.
    """
    reason = _missing_reason(latest, ["interest_expense"])
    if reason:
        return _unavailable(reason, ("Income Statement → Interest Expense",))

    interest = float(latest.income_statement.interest_expense)
    if interest == 0:
        return KPIResult(
            value=NO_INTEREST_VALUE,
            status=GOOD,
            calculation="No interest expense",
            source=("Income Statement → Interest Expense",),
        )

    source = (
        "Income Statement → Operating Income",
        "Income Statement → Interest Expense",
    )
    reason = _missing_reason(latest, ["operating_income"])
    if reason:
        return _unavailable(reason, source)

    operating_income = float(latest.income_statement.operating_income)
    coverage = safe_div(operating_income, interest)
    if coverage is None:
        return _unavailable("Interest coverage could not be computed", source)

    return _finite(
        KPIResult(
            value=coverage,
            status=classify("interest_coverage", coverage, thresholds),
            calculation=(
                f"Interest Coverage = {fmt_amount(operating_income)} / "
                f"{fmt_amount(interest)} = {coverage:.2f}x"
            ),
            source=source,
            threshold=thresholds.get("interest_coverage"),
        )
    )


def calculate_current_ratio(
    latest: FinancialData,
    thresholds: dict[str, KPIThreshold],
) -> KPIResult:
    """Current ratio (x) = current assets / current liabilities."""
    source = (
        "Balance Sheet → Current Assets",
        "Balance Sheet → Current Liabilities",
    )
    reason = _missing_reason(latest, ["current_assets", "current_liabilities"])
    if reason:
        return _unavailable(reason, source)

    current_assets = float(latest.balance_sheet.current_assets)
    current_liabilities = float(latest.balance_sheet.current_liabilities)

    ratio = safe_div(current_assets, current_liabilities)
    if ratio is None:
        return _unavailable("Current liabilities are 0", source)

    return _finite(
        KPIResult(
            value=ratio,
            status=classify("current_ratio", ratio, thresholds),
            calculation=(
                f"Current Ratio = {fmt_amount(current_assets)} / "
                f"{fmt_amount(current_liabilities)} = {ratio:.2f}"
            ),
            source=source,
            threshold=thresholds.get("current_ratio"),
        )
    )


# ---------------------------------------------------------------------------
# All KPIs
# ---------------------------------------------------------------------------


def calculate_all_kpis(
    records: Sequence[FinancialData],
    config: Optional[EngineConfig] = None,
) -> dict[str, KPIResult]:
    """
    Compute the nine dashboard KPIs for one company's record history.

    Args:
        records: Records ordered oldest to newest, one per period.
        config: Engine configuration (threshold table). Defaults to
            built-in settings.

    Returns:
        A dictionary {kpi_name -> KPIResult} with the keys of KPI_NAMES,
        in that order.

    Raises:
        ValueError: if ``records`` is empty.
    """
    history = list(records)
    if not history:
        raise ValueError(
            "calculate_all_kpis requires at least one FinancialData record."
        )

    companies = {r.company_name for r in history}
    if len(companies) > 1:
        logger.warning(
            "KPI history mixes %d company names: %s", len(companies), sorted(companies)
        )

    cfg = config or default_engine_config()
    thresholds = dict(cfg.thresholds)
    latest = history[-1]

    results = {
        "cash": calculate_cash(latest),
        "runway": calculate_runway(history, thresholds),
        "free_cash_flow": calculate_free_cash_flow(latest),
        "revenue_growth": calculate_revenue_growth(history, thresholds),
        "gross_margin": calculate_gross_margin(latest, thresholds),
        "operating_margin": calculate_operating_margin(latest, thresholds),
        "cash_conversion_cycle": calculate_cash_conversion_cycle(history, thresholds),
        "interest_coverage": calculate_interest_coverage(latest, thresholds),
        "current_ratio": calculate_current_ratio(latest, thresholds),
    }

    unavailable = [name for name, r in results.items() if not r.is_available]
    if unavailable:
        logger.debug(
            "%s (%s): unavailable KPIs: %s",
            latest.company_name,
            latest.period,
            ", ".join(unavailable),
        )

    return results
