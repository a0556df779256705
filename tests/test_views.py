import math

import pytest

from finsight_kpi.kpis import KPIResult, calculate_all_kpis
from finsight_kpi.models import BalanceSheet, FinancialData, IncomeStatement
from finsight_kpi.validation import ValidationResult
from finsight_kpi.views import (
    format_currency,
    format_kpi_value,
    format_percentage,
    kpis_to_dataframe,
    validation_to_dataframe,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (2_500_000.0, "$2.5M"),
        (350_000.0, "$350K"),
        (950.0, "$950"),
        (-205_000.0, "-$205K"),
    ],
)
def test_format_currency(value: float, expected: str) -> None:
    assert format_currency(value) == expected


def test_format_percentage() -> None:
    assert format_percentage(33.603) == "33.6%"


def test_format_kpi_value_units() -> None:
    def result(value):
        return KPIResult(value=value, status="good", calculation="", source=())

    assert format_kpi_value("runway", result(6.0)) == "6.0 months"
    assert format_kpi_value("interest_coverage", result(-1.111)) == "-1.1x"
    assert format_kpi_value("current_ratio", result(2.30612)) == "2.31"
    assert format_kpi_value("interest_coverage", result("No Interest")) == "No Interest"


def test_kpis_to_dataframe() -> None:
    record = FinancialData(
        company_name="Acme",
        period="2024-12",
        balance_sheet=BalanceSheet(
            cash=2_500_000.0,
            current_assets=5_650_000.0,
            current_liabilities=2_450_000.0,
        ),
        income_statement=IncomeStatement(
            total_revenue=12_350_000.0, cost_of_goods_sold=8_200_000.0
        ),
    )

    df = kpis_to_dataframe(calculate_all_kpis([record]))

    assert list(df.columns) == [
        "key",
        "label",
        "value",
        "display",
        "unit",
        "status",
        "calculation",
    ]
    assert df["key"].tolist()[:2] == ["cash", "runway"]
    assert len(df) == 9

    rows = df.set_index("key")
    assert rows.loc["gross_margin", "value"] == pytest.approx(33.6)
    assert rows.loc["gross_margin", "display"] == "33.6%"
    assert rows.loc["cash", "display"] == "$2.5M"
    assert math.isnan(rows.loc["runway", "value"])
    assert rows.loc["runway", "display"] == "Unavailable"
    assert rows.loc["runway", "status"] == "unavailable"


def test_empty_kpis_dataframe() -> None:
    df = kpis_to_dataframe({})

    assert df.empty
    assert "status" in df.columns


def test_validation_to_dataframe() -> None:
    result = ValidationResult(
        is_valid=False,
        missing_fields=("total_equity",),
        invalid_fields=("Balance sheet identity failed",),
        warnings=("Negative cash balance (-1)",),
    )

    df = validation_to_dataframe(result)

    assert df["kind"].tolist() == ["missing", "invalid", "warning"]
    assert df["detail"].tolist()[0] == "total_equity"
