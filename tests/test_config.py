from pathlib import Path

import pytest

from finsight_kpi.config import (
    DEFAULT_REQUIRED_FIELDS,
    DEFAULT_THRESHOLDS,
    default_engine_config,
    load_engine_config,
)
from finsight_kpi.status import KPIThreshold

EXAMPLE_CONFIG = Path(__file__).parent.parent / "config" / "finsight_kpi.toml"


def write_config(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "finsight_kpi.toml"
    path.write_text(content, encoding="utf-8")
    return path


def test_example_config_matches_defaults() -> None:
    cfg = load_engine_config(str(EXAMPLE_CONFIG))

    assert cfg.tolerance == default_engine_config().tolerance
    assert dict(cfg.thresholds) == DEFAULT_THRESHOLDS
    assert dict(cfg.required_fields) == DEFAULT_REQUIRED_FIELDS
    assert cfg.anomalies.magnitude_ceiling == pytest.approx(1e12)
    assert cfg.confidence.warning_penalty == pytest.approx(5.0)


def test_financial_reports_requires_every_statement() -> None:
    required = DEFAULT_REQUIRED_FIELDS["financial_reports"]

    for statement in ("balance_sheet", "income_statement", "cash_flow"):
        assert set(DEFAULT_REQUIRED_FIELDS[statement]) <= set(required)


def test_partial_threshold_override_keeps_defaults(tmp_path: Path) -> None:
    path = write_config(tmp_path, "[thresholds.gross_margin]\ngood = 60\n")

    cfg = load_engine_config(str(path))

    assert cfg.thresholds["gross_margin"] == KPIThreshold(
        good=60.0, warning=30.0, critical=20.0
    )
    assert cfg.thresholds["current_ratio"] == DEFAULT_THRESHOLDS["current_ratio"]


def test_new_kpi_threshold_requires_all_bounds(tmp_path: Path) -> None:
    path = write_config(tmp_path, "[thresholds.quick_ratio]\ngood = 1.0\n")

    with pytest.raises(ValueError, match="quick_ratio"):
        load_engine_config(str(path))


def test_new_kpi_threshold(tmp_path: Path) -> None:
    path = write_config(
        tmp_path,
        "[thresholds.debt_days]\n"
        "good = 10\nwarning = 20\ncritical = 30\nhigher_is_better = false\n",
    )

    cfg = load_engine_config(str(path))

    assert cfg.thresholds["debt_days"] == KPIThreshold(
        good=10.0, warning=20.0, critical=30.0, higher_is_better=False
    )


def test_required_fields_override(tmp_path: Path) -> None:
    path = write_config(
        tmp_path,
        '[required_fields]\nbalance_sheet = ["cash", "current_assets"]\n'
        'tax_return = ["cash"]\n',
    )

    cfg = load_engine_config(str(path))

    assert cfg.required_fields["balance_sheet"] == ("cash", "current_assets")
    assert "tax_return" not in cfg.required_fields
    assert (
        cfg.required_fields["income_statement"]
        == DEFAULT_REQUIRED_FIELDS["income_statement"]
    )


def test_unknown_required_field_raises(tmp_path: Path) -> None:
    path = write_config(tmp_path, '[required_fields]\ncash_flow = ["ebitda"]\n')

    with pytest.raises(ValueError, match="ebitda"):
        load_engine_config(str(path))


def test_tolerance_override(tmp_path: Path) -> None:
    path = write_config(tmp_path, "[tolerance]\nrelative = 0.0\n")

    cfg = load_engine_config(str(path))

    assert cfg.tolerance.relative == 0.0
    assert cfg.tolerance.absolute == pytest.approx(1.0)


@pytest.mark.parametrize(
    "content",
    [
        "[tolerance]\nabsolute = -1\n",
        '[anomalies]\noutlier_ratio = "large"\n',
        "[thresholds]\ngross_margin = 50\n",
        "not = [valid toml",
    ],
)
def test_invalid_configuration_raises(tmp_path: Path, content: str) -> None:
    path = write_config(tmp_path, content)

    with pytest.raises(ValueError):
        load_engine_config(str(path))


def test_missing_config_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_engine_config(str(tmp_path / "missing.toml"))


def test_invalid_toml_names_the_file(tmp_path: Path) -> None:
    path = write_config(tmp_path, "[tolerance\nabsolute = 1\n")

    with pytest.raises(ValueError, match="Invalid TOML in engine configuration"):
        load_engine_config(str(path))
