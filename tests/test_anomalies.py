import math

import pytest

from finsight_kpi.anomalies import detect_anomalies
from finsight_kpi.config import AnomalyConfig, EngineConfig
from finsight_kpi.io import parse_financial_record
from finsight_kpi.models import BalanceSheet, FinancialData, IncomeStatement


def complete_balance_sheet(**overrides) -> FinancialData:
    values = {
        "cash": 2_500_000.0,
        "total_assets": 19_450_000.0,
        "total_liabilities": 8_750_000.0,
        "total_equity": 10_700_000.0,
    }
    values.update(overrides)
    return FinancialData(
        company_name="Acme", period="2024-12", balance_sheet=BalanceSheet(**values)
    )


def test_complete_balance_sheet_is_clean() -> None:
    result = detect_anomalies(complete_balance_sheet(), "balance_sheet")

    assert result.is_valid
    assert result.missing_fields == ()
    assert result.invalid_fields == ()
    assert result.warnings == ()
    assert result.completeness == pytest.approx(100.0)


def test_partial_balance_sheet_reports_missing_fields() -> None:
    record = FinancialData(
        company_name="Acme",
        period="2024-12",
        balance_sheet=BalanceSheet(
            cash=2_500_000.0,
            accounts_receivable=1_800_000.0,
            inventory=1_350_000.0,
            total_assets=19_450_000.0,
        ),
    )

    result = detect_anomalies(record, "balance_sheet")

    assert not result.is_valid
    assert result.missing_fields == ("total_liabilities", "total_equity")
    assert result.completeness == pytest.approx(50.0)


def test_zero_is_present_not_missing() -> None:
    result = detect_anomalies(complete_balance_sheet(cash=0.0), "balance_sheet")

    assert result.missing_fields == ()
    assert result.completeness == pytest.approx(100.0)


def test_unparsed_values_are_invalid_not_missing() -> None:
    record = parse_financial_record(
        {
            "period": "2024-01",
            "balanceSheet": {
                "cash": "not_a_number",
                "totalAssets": "not_a_number",
                "totalLiabilities": "not_a_number",
            },
        },
        company_name="Acme",
    )

    result = detect_anomalies(record, "balance_sheet")

    assert not result.is_valid
    assert len(result.invalid_fields) == 3
    assert result.invalid_fields[0] == (
        "cash: could not parse 'not_a_number' as a number"
    )
    assert result.missing_fields == ("total_equity",)
    assert result.completeness == pytest.approx(0.0)


def test_negative_cash_is_a_warning_only() -> None:
    result = detect_anomalies(complete_balance_sheet(cash=-50_000.0), "balance_sheet")

    assert result.is_valid
    assert result.warnings == ("Negative cash balance (-50,000)",)


def test_negative_balance_sheet_line() -> None:
    record = complete_balance_sheet(inventory=-10.0, retained_earnings=-500_000.0)

    result = detect_anomalies(record, "balance_sheet")

    assert result.is_valid
    assert len(result.warnings) == 1
    assert result.warnings[0].startswith("inventory is negative (-10)")


def test_business_rules_on_the_income_statement() -> None:
    record = FinancialData(
        company_name="Acme",
        period="2024-01",
        income_statement=IncomeStatement(
            total_revenue=0.0,
            cost_of_goods_sold=1_000.0,
            interest_expense=500.0,
        ),
    )

    result = detect_anomalies(record, "income_statement")

    assert any("margins cannot be computed" in w for w in result.warnings)
    assert any("interest coverage is undefined" in w for w in result.warnings)
    assert result.missing_fields == ("operating_income", "net_income")


def test_implausible_magnitude() -> None:
    record = complete_balance_sheet(total_assets=5e12)

    result = detect_anomalies(record, "balance_sheet")

    assert any("implausible magnitude" in w for w in result.warnings)


def test_outlier_against_the_median_line_item() -> None:
    config = EngineConfig(anomalies=AnomalyConfig(outlier_ratio=100.0))
    record = FinancialData(
        company_name="Acme",
        period="2024-01",
        balance_sheet=BalanceSheet(
            cash=1_000.0,
            accounts_receivable=2_000.0,
            inventory=3_000.0,
            total_assets=10_000_000.0,
        ),
    )

    result = detect_anomalies(record, "balance_sheet", config)

    assert len(result.warnings) == 1
    assert result.warnings[0].startswith("total_assets (10,000,000) is more than 100x")


def test_financial_reports_requires_all_statements() -> None:
    result = detect_anomalies(complete_balance_sheet(), "financial_reports")

    assert not result.is_valid
    assert result.completeness == pytest.approx(4 / 12 * 100)
    assert "net_income" in result.missing_fields
    assert "net_cash_flow" in result.missing_fields


def test_unknown_document_type_raises() -> None:
    with pytest.raises(ValueError, match="Unknown document type"):
        detect_anomalies(complete_balance_sheet(), "tax_return")


@pytest.mark.parametrize("bad_value", [math.inf, "2,500,000", True])
def test_non_finite_or_non_numeric_values_are_invalid(bad_value) -> None:
    record = complete_balance_sheet(cash=bad_value)

    result = detect_anomalies(record, "balance_sheet")

    assert not result.is_valid
    assert result.invalid_fields == (f"cash: {bad_value!r} is not a finite number",)
    assert result.missing_fields == ()
    assert result.warnings == ()
    assert result.completeness == pytest.approx(75.0)


def test_non_numeric_values_are_skipped_by_business_rules() -> None:
    record = FinancialData(
        company_name="Acme",
        period="2024-01",
        income_statement=IncomeStatement(
            total_revenue="n/a",
            cost_of_goods_sold=1_000.0,
            operating_income=math.inf,
            interest_expense=500.0,
        ),
    )

    result = detect_anomalies(record, "income_statement")

    assert len(result.invalid_fields) == 2
    assert result.missing_fields == ("net_income",)
    assert result.warnings == (
        "Interest expense (500) is reported without an operating income base; "
        "interest coverage is undefined",
    )
