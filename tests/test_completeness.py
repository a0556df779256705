from finsight_kpi.completeness import assess_data_completeness
from finsight_kpi.models import BalanceSheet, CashFlow, FinancialData, IncomeStatement


def full_record(period: str) -> FinancialData:
    return FinancialData(
        company_name="Acme",
        period=period,
        balance_sheet=BalanceSheet(
            cash=1.0, total_assets=3.0, total_liabilities=1.0, total_equity=2.0
        ),
        income_statement=IncomeStatement(
            total_revenue=10.0,
            cost_of_goods_sold=4.0,
            operating_income=2.0,
            net_income=1.0,
        ),
        cash_flow=CashFlow(
            operating_cash_flow=1.0,
            investing_cash_flow=-1.0,
            financing_cash_flow=0.0,
            net_cash_flow=0.0,
        ),
    )


def balance_sheet_only(period: str) -> FinancialData:
    return FinancialData(
        company_name="Acme",
        period=period,
        balance_sheet=BalanceSheet(
            cash=1.0, total_assets=3.0, total_liabilities=1.0, total_equity=2.0
        ),
    )


def test_empty_history() -> None:
    result = assess_data_completeness([])

    assert result.score == 0
    assert result.months_of_data == 0
    assert result.total_required_docs == 3
    assert result.total_recommended_docs == 36
    assert not result.is_valid_for_kpis


def test_twelve_complete_months() -> None:
    records = [full_record(f"2024-{m:02d}") for m in range(1, 13)]

    result = assess_data_completeness(records)

    assert result.score == 100
    assert result.required_docs == 3
    assert result.recommended_docs == 36
    assert result.months_of_data == 12
    assert result.is_valid_for_kpis


def test_single_balance_sheet() -> None:
    """60 * 1/3 + 40 * 1/36 = 21.1 -> 21."""
    result = assess_data_completeness([balance_sheet_only("2024-01")])

    assert result.score == 21
    assert result.has_balance_sheet
    assert not result.has_income_statement
    assert not result.has_cash_flow
    assert not result.is_valid_for_kpis


def test_only_last_twelve_periods_are_recommended() -> None:
    records = [balance_sheet_only(f"2023-{m:02d}") for m in range(1, 13)]
    records += [full_record(f"2024-{m:02d}") for m in range(1, 13)]

    result = assess_data_completeness(records)

    assert result.recommended_docs == 36
    assert result.months_of_data == 24
    assert result.score == 100
