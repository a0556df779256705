# FinSight KPI Engine - Financial validation & KPI engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Status classification for KPI values.

Each KPI is mapped to a severity band ("good", "warning", "critical") by
comparing its value against a KPIThreshold. Thresholds are data: the default
table lives in config.py and can be overridden from the TOML configuration,
since what counts as a healthy margin depends on the industry.

Boundary convention
-------------------
For every KPI the *good* boundary is inclusive and the *critical* boundary
is exclusive:

    higher is better:  value >= good      -> good
                       value <  critical  -> critical
                       otherwise          -> warning

    lower is better:   value <= good      -> good
                       value >  critical  -> critical
                       otherwise          -> warning

The ``warning`` boundary is carried for display (the "warning from" mark of
a gauge); classification only needs ``good`` and ``critical``. Values that
fall between ``warning`` and ``critical`` (e.g. a gross margin of 25% with
50/30/20 bounds) are therefore classified as warning.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal

Status = Literal["good", "warning", "critical", "unavailable"]

GOOD: Status = "good"
WARNING: Status = "warning"
CRITICAL: Status = "critical"
UNAVAILABLE: Status = "unavailable"


@dataclass(frozen=True)
class KPIThreshold:
    """
    Severity boundaries for one KPI.

    Attributes:
        good: Boundary of the good band (inclusive).
        warning: Start of the warning band, informational.
        critical: Boundary of the critical band (exclusive).
        higher_is_better: Direction of the comparison.
    """

    good: float
    warning: float
    critical: float
    higher_is_better: bool = True


def classify(
    kpi_name: str,
    value: float,
    thresholds: Mapping[str, KPIThreshold],
) -> Status:
    """
    Classify a numeric KPI value into good / warning / critical.

    Args:
        kpi_name: Key of the KPI in the thresholds table (e.g. 'current_ratio').
        value: Computed KPI value.
        thresholds: Mapping of KPI keys to KPIThreshold.

    Raises:
        KeyError: if no threshold is configured for ``kpi_name``.
    """
    try:
        threshold = thresholds[kpi_name]
    except KeyError as exc:
        raise KeyError(f"No threshold configured for KPI {kpi_name!r}") from exc

    if threshold.higher_is_better:
        if value >= threshold.good:
            return GOOD
        if value < threshold.critical:
            return CRITICAL
        return WARNING

    if value <= threshold.good:
        return GOOD
    if value > threshold.critical:
        return CRITICAL
    return WARNING
