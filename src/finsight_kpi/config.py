# FinSight KPI Engine - Financial validation & KPI engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for FinSight KPI.

This module is responsible for:
- holding the default engine settings (tolerances, required fields,
  anomaly limits, confidence penalties, KPI thresholds),
- loading overrides from a TOML file,
- exposing typed dataclasses used by the rest of the engine.

Nothing in the validator, detector or KPI calculator hard-codes a threshold
or a list of required fields: they all receive an EngineConfig.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

from .models import ALL_FIELDS, DOCUMENT_TYPES
from .status import KPIThreshold

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "finsight_kpi.toml"

DEFAULT_THRESHOLDS: dict[str, KPIThreshold] = {
    "runway": KPIThreshold(good=12.0, warning=6.0, critical=6.0),
    "gross_margin": KPIThreshold(good=50.0, warning=30.0, critical=20.0),
    "operating_margin": KPIThreshold(good=20.0, warning=10.0, critical=5.0),
    "current_ratio": KPIThreshold(good=2.0, warning=1.5, critical=1.0),
    "interest_coverage": KPIThreshold(good=5.0, warning=3.0, critical=2.0),
    "cash_conversion_cycle": KPIThreshold(
        good=30.0, warning=45.0, critical=60.0, higher_is_better=False
    ),
    "revenue_growth": KPIThreshold(good=5.0, warning=0.0, critical=-5.0),
}

DEFAULT_REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    "balance_sheet": ("cash", "total_assets", "total_liabilities", "total_equity"),
    "income_statement": (
        "total_revenue",
        "cost_of_goods_sold",
        "operating_income",
        "net_income",
    ),
    "cash_flow": (
        "operating_cash_flow",
        "investing_cash_flow",
        "financing_cash_flow",
        "net_cash_flow",
    ),
}
DEFAULT_REQUIRED_FIELDS["financial_reports"] = (
    DEFAULT_REQUIRED_FIELDS["balance_sheet"]
    + DEFAULT_REQUIRED_FIELDS["income_statement"]
    + DEFAULT_REQUIRED_FIELDS["cash_flow"]
)


@dataclass(frozen=True)
class ToleranceConfig:
    """Tolerance used for accounting identities (see numeric.within_tolerance)."""

    absolute: float = 1.0
    relative: float = 0.001


@dataclass(frozen=True)
class AnomalyConfig:
    """
    Limits used by the anomaly detector.

    Attributes:
        magnitude_ceiling: Absolute value above which a line item is flagged.
        outlier_ratio: A line item larger than ``outlier_ratio`` times the
            median of the other non-zero line items is flagged.
    """

    magnitude_ceiling: float = 1e12
    outlier_ratio: float = 1e6


@dataclass(frozen=True)
class ConfidenceConfig:
    """Penalties (in points) applied by the confidence scorer."""

    invalid_field_penalty: float = 10.0
    warning_penalty: float = 5.0


@dataclass(frozen=True)
class EngineConfig:
    """
    Engine-wide configuration for FinSight KPI.

    This aggregates:
    - the tolerance used for accounting identity checks,
    - the list of required fields per document type,
    - the anomaly detector limits,
    - the confidence scorer penalties,
    - the KPI threshold table.
    """

    tolerance: ToleranceConfig = field(default_factory=ToleranceConfig)
    required_fields: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_REQUIRED_FIELDS)
    )
    anomalies: AnomalyConfig = field(default_factory=AnomalyConfig)
    confidence: ConfidenceConfig = field(default_factory=ConfidenceConfig)
    thresholds: Mapping[str, KPIThreshold] = field(
        default_factory=lambda: dict(DEFAULT_THRESHOLDS)
    )


def default_engine_config() -> EngineConfig:
    """Return the built-in configuration (no file involved)."""
    return EngineConfig()


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Read the engine configuration file.

    Raises:
        FileNotFoundError: if ``path`` is not an existing file.
        ValueError: if the file is not valid TOML.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Engine configuration file not found: {path}")

    with path.open("rb") as handle:
        try:
            return tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise ValueError(
                f"Invalid TOML in engine configuration {path}: {exc}"
            ) from exc


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def _float_option(section: Mapping[str, Any], key: str, default: float) -> float:
    raw = section.get(key)
    if raw is None:
        return default
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for {key!r} in the configuration. Expected a number."
        ) from exc


def _parse_thresholds(section: Mapping[str, Any]) -> dict[str, KPIThreshold]:
    """
    Merge [thresholds.<kpi>] tables over the default threshold table.

    A partial table only overrides the keys it defines, so that
    ``[thresholds.gross_margin] good = 60`` keeps the default warning and
    critical bounds.
    """
    thresholds = dict(DEFAULT_THRESHOLDS)

    for kpi_name, cfg in section.items():
        if not isinstance(cfg, Mapping):
            raise ValueError(
                f"Invalid [thresholds.{kpi_name}] section, expected a table."
            )

        base = thresholds.get(str(kpi_name))
        if base is None:
            missing = {"good", "warning", "critical"} - set(cfg)
            if missing:
                raise ValueError(
                    f"[thresholds.{kpi_name}] is missing {sorted(missing)} "
                    "(required for KPIs without a default threshold)."
                )
            base = KPIThreshold(good=0.0, warning=0.0, critical=0.0)

        thresholds[str(kpi_name)] = KPIThreshold(
            good=_float_option(cfg, "good", base.good),
            warning=_float_option(cfg, "warning", base.warning),
            critical=_float_option(cfg, "critical", base.critical),
            higher_is_better=bool(
                cfg.get("higher_is_better", base.higher_is_better)
            ),
        )

    return thresholds


def _parse_required_fields(section: Mapping[str, Any]) -> dict[str, tuple[str, ...]]:
    required = dict(DEFAULT_REQUIRED_FIELDS)

    for doc_type, names in section.items():
        if doc_type not in DOCUMENT_TYPES:
            logger.warning(
                "Ignoring required fields for unknown document type %r", doc_type
            )
            continue
        if not isinstance(names, list):
            raise ValueError(
                f"[required_fields].{doc_type} must be a list of field names."
            )
        unknown = [str(n) for n in names if str(n) not in ALL_FIELDS]
        if unknown:
            raise ValueError(
                f"Unknown field(s) in [required_fields].{doc_type}: {unknown}"
            )
        required[doc_type] = tuple(str(n) for n in names)

    return required


def load_engine_config(config_path: Optional[str] = None) -> EngineConfig:
    """
    Load the FinSight KPI engine configuration from a TOML file.

    Every section is optional; anything not defined in the file keeps its
    built-in default (see default_engine_config()).

    Expected sections in the TOML file
    ----------------------------------
    [tolerance]
        ``absolute`` and ``relative`` bounds for accounting identities.

    [required_fields]
        One list of field names per document type (balance_sheet,
        income_statement, cash_flow, financial_reports).

    [anomalies]
        ``magnitude_ceiling`` and ``outlier_ratio``.

    [confidence]
        ``invalid_field_penalty`` and ``warning_penalty``.

    [thresholds.<kpi>]
        ``good``, ``warning``, ``critical`` and optional ``higher_is_better``.

    Parameters
    ----------
    config_path : str, optional
        Path to the TOML file. Defaults to 'finsight_kpi.toml' in the
        current directory.

    Returns
    -------
    EngineConfig
        Parsed and validated configuration.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    logger.debug("Loaded engine configuration from %s", config_file)

    # 1) Tolerance
    tolerance_section = _section(raw, "tolerance")
    tolerance = ToleranceConfig(
        absolute=_float_option(
            tolerance_section, "absolute", ToleranceConfig.absolute
        ),
        relative=_float_option(
            tolerance_section, "relative", ToleranceConfig.relative
        ),
    )
    if tolerance.absolute < 0 or tolerance.relative < 0:
        raise ValueError("Tolerance bounds cannot be negative.")

    # 2) Required fields per document type
    required_fields = _parse_required_fields(_section(raw, "required_fields"))

    # 3) Anomaly limits
    anomalies_section = _section(raw, "anomalies")
    anomalies = AnomalyConfig(
        magnitude_ceiling=_float_option(
            anomalies_section, "magnitude_ceiling", AnomalyConfig.magnitude_ceiling
        ),
        outlier_ratio=_float_option(
            anomalies_section, "outlier_ratio", AnomalyConfig.outlier_ratio
        ),
    )

    # 4) Confidence penalties
    confidence_section = _section(raw, "confidence")
    confidence = ConfidenceConfig(
        invalid_field_penalty=_float_option(
            confidence_section,
            "invalid_field_penalty",
            ConfidenceConfig.invalid_field_penalty,
        ),
        warning_penalty=_float_option(
            confidence_section, "warning_penalty", ConfidenceConfig.warning_penalty
        ),
    )

    # 5) KPI thresholds
    thresholds = _parse_thresholds(_section(raw, "thresholds"))

    return EngineConfig(
        tolerance=tolerance,
        required_fields=required_fields,
        anomalies=anomalies,
        confidence=confidence,
        thresholds=thresholds,
    )
