import math
from dataclasses import replace

import pytest

from finsight_kpi.config import EngineConfig, ToleranceConfig
from finsight_kpi.models import BalanceSheet, CashFlow, FinancialData, IncomeStatement
from finsight_kpi.validation import ValidationResult, validate_math


def balanced_sheet(**overrides) -> FinancialData:
    """Balance sheet from the sample upload: 8,750,000 + 10,700,000 = 19,450,000."""
    values = {
        "total_assets": 19_450_000.0,
        "total_liabilities": 8_750_000.0,
        "total_equity": 10_700_000.0,
    }
    values.update(overrides)
    return FinancialData(
        company_name="Acme Manufacturing",
        period="2024-12-31",
        balance_sheet=BalanceSheet(**values),
    )


def test_balanced_sheet_is_valid() -> None:
    result = validate_math(balanced_sheet())

    assert result.is_valid
    assert result.invalid_fields == ()
    assert result.completeness == pytest.approx(100.0)


def test_unbalanced_sheet_reports_the_delta() -> None:
    """A 150,000 equity shortfall breaks the balance identity."""
    result = validate_math(balanced_sheet(total_equity=10_550_000.0))

    assert not result.is_valid
    assert len(result.invalid_fields) == 1
    message = result.invalid_fields[0]
    assert "150,000" in message
    assert "total_assets (19,450,000)" in message
    assert "total_liabilities + total_equity (19,300,000)" in message
    assert result.completeness == pytest.approx(0.0)


@pytest.mark.parametrize(
    "field_name", ["total_assets", "total_liabilities", "total_equity"]
)
def test_perturbing_one_side_adds_exactly_one_entry(field_name: str) -> None:
    record = balanced_sheet()
    perturbed_value = record.get(field_name) + 20_000.0
    perturbed = balanced_sheet(**{field_name: perturbed_value})

    assert validate_math(record).is_valid

    result = validate_math(perturbed)
    assert not result.is_valid
    assert len(result.invalid_fields) == 1
    assert "20,000" in result.invalid_fields[0]


def test_relative_tolerance_absorbs_rounding() -> None:
    """0.1% of 19.45M is 19,450: a 10,000 rounding gap still balances."""
    result = validate_math(balanced_sheet(total_equity=10_690_000.0))

    assert result.is_valid


def test_absolute_tolerance_boundary_is_inclusive() -> None:
    config = EngineConfig(tolerance=ToleranceConfig(absolute=1.0, relative=0.0))

    at_bound = balanced_sheet(total_equity=10_700_001.0)
    beyond = balanced_sheet(total_equity=10_700_001.5)

    assert validate_math(at_bound, config).is_valid
    assert not validate_math(beyond, config).is_valid


def test_missing_operands_skip_checks() -> None:
    """Checks without all operands are neither passed nor failed."""
    record = FinancialData(
        company_name="Acme",
        period="2024-01",
        balance_sheet=BalanceSheet(total_assets=100.0, total_liabilities=40.0),
    )

    result = validate_math(record)

    assert result.is_valid
    assert result.invalid_fields == ()
    assert result.completeness == pytest.approx(100.0)


def test_completeness_is_share_of_applicable_checks() -> None:
    """Balance identity passes, gross profit identity fails: 50%."""
    record = FinancialData(
        company_name="Acme",
        period="2024-01",
        balance_sheet=BalanceSheet(
            total_assets=100_000.0, total_liabilities=60_000.0, total_equity=40_000.0
        ),
        income_statement=IncomeStatement(
            total_revenue=50_000.0, cost_of_goods_sold=30_000.0, gross_profit=25_000.0
        ),
    )

    result = validate_math(record)

    assert not result.is_valid
    assert len(result.invalid_fields) == 1
    assert result.invalid_fields[0].startswith("Gross profit identity failed")
    assert "5,000" in result.invalid_fields[0]
    assert result.completeness == pytest.approx(50.0)


def test_subtotal_identities() -> None:
    record = balanced_sheet(
        current_assets=5_650_000.0,
        non_current_assets=13_800_000.0,
        current_liabilities=2_450_000.0,
        non_current_liabilities=6_000_000.0,
    )

    result = validate_math(record)

    # Assets subtotal balances, liabilities subtotal is 300,000 short.
    assert not result.is_valid
    assert len(result.invalid_fields) == 1
    assert "Total liabilities subtotal" in result.invalid_fields[0]
    assert result.completeness == pytest.approx(200.0 / 3.0)


def test_cash_flow_and_operating_income_identities() -> None:
    record = FinancialData(
        company_name="Acme",
        period="2024-01",
        income_statement=IncomeStatement(
            gross_profit=4_150_000.0,
            operating_expenses=4_350_000.0,
            operating_income=-200_000.0,
        ),
        cash_flow=CashFlow(
            operating_cash_flow=-155_000.0,
            investing_cash_flow=-50_000.0,
            financing_cash_flow=100_000.0,
            net_cash_flow=-105_000.0,
        ),
    )

    result = validate_math(record)

    assert result.is_valid
    assert result.completeness == pytest.approx(100.0)

    broken = replace(record, cash_flow=replace(record.cash_flow, net_cash_flow=0.0))
    broken_result = validate_math(broken)
    assert not broken_result.is_valid
    assert "Net cash flow identity" in broken_result.invalid_fields[0]


def test_merge_is_conjunctive_and_deduplicated() -> None:
    math_result = ValidationResult(
        is_valid=False, invalid_fields=("identity broken",), completeness=50.0
    )
    detection = ValidationResult(
        is_valid=True,
        missing_fields=("cash",),
        invalid_fields=("identity broken",),
        warnings=("negative cash",),
        completeness=75.0,
    )

    merged = math_result.merge(detection)

    assert not merged.is_valid
    assert merged.missing_fields == ("cash",)
    assert merged.invalid_fields == ("identity broken",)
    assert merged.warnings == ("negative cash",)
    assert merged.completeness == pytest.approx(50.0)


@pytest.mark.parametrize("bad_value", [math.inf, "19,450,000", None])
def test_identities_with_unusable_operands_are_skipped(bad_value) -> None:
    result = validate_math(balanced_sheet(total_assets=bad_value))

    assert result.is_valid
    assert result.invalid_fields == ()
    assert result.completeness == pytest.approx(100.0)
