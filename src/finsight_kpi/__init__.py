# FinSight KPI Engine - Financial validation & KPI engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
FinSight KPI
------------

The validation and KPI engine behind an SMB financial dashboard. It consumes
per-period financial records extracted from uploaded documents and provides:

- canonical per-period records with an explicit "missing" sentinel,
- accounting identity checks within a documented tolerance,
- completeness and data-quality anomaly detection per document type,
- a weakest-link confidence score for each extracted document,
- the nine dashboard KPIs (cash, runway, free cash flow, revenue growth,
  gross and operating margins, cash conversion cycle, interest coverage,
  current ratio) with calculation traces,
- configurable status thresholds (TOML).

The engine is pure and stateless: it performs no I/O beyond the optional
file readers of ``finsight_kpi.io`` and the command-line interface.

Version: 0.2.0

Usage:
    finsight-kpi --help
"""

__all__ = [
    "analysis",
    "anomalies",
    "completeness",
    "config",
    "confidence",
    "io",
    "kpis",
    "models",
    "status",
    "validation",
    "views",
]

__version__ = "0.2.0"
