# FinSight KPI Engine - Financial validation & KPI engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for FinSight KPI.

This module turns extracted financial values into canonical records
(``FinancialData``). It is the boundary between untrusted upstream output
(the document-extraction service, CSV exports) and the engine.

Accepted input shapes
---------------------

1) Extraction payload (mapping)
   -----------------------------
   Either nested by statement:

       {"companyName": "...", "period": "2024-03",
        "balanceSheet": {"cash": 2500000, "totalAssets": ...},
        "incomeStatement": {...},
        "cashFlow": {...}}

   or flat:

       {"company_name": "...", "period": "2024-03", "total_assets": ...}

   Keys are matched case-insensitively against both the snake_case field
   names of models.py and their camelCase spelling. Unknown keys are ignored.

2) CSV / JSON files
   -----------------
   ``read_financial_records()`` reads a CSV file (one row per period, one
   column per field) or a JSON file (one object or a list of objects in
   the shape above).

Value parsing
-------------
- None, empty strings and NaN are *missing* (never 0).
- Strings may carry thousands separators, a currency symbol, or
  accounting-style parentheses for negatives: "$(1,250.50)" -> -1250.5.
- Anything else that does not parse as a finite number is stored as
  missing and recorded in ``FinancialData.unparsed_fields`` so that the
  anomaly detector reports it as an invalid field.
"""

import json
import logging
import math
import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd

from .models import (
    ALL_FIELDS,
    STATEMENT_FIELDS,
    BalanceSheet,
    CashFlow,
    FinancialData,
    IncomeStatement,
)

logger = logging.getLogger(__name__)

_SECTION_CLASSES = {
    "balance_sheet": BalanceSheet,
    "income_statement": IncomeStatement,
    "cash_flow": CashFlow,
}

_CURRENCY_CHARS = re.compile(r"[$€£,\s]")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _build_aliases() -> dict[str, str]:
    aliases: dict[str, str] = {}
    for name in ALL_FIELDS:
        aliases[name] = name
        aliases[_camel(name).lower()] = name
    # Common spellings produced by extraction prompts and exports.
    aliases.update(
        {
            "revenue": "total_revenue",
            "cogs": "cost_of_goods_sold",
            "ebit": "operating_income",
            "cash_and_equivalents": "cash",
            "cashandequivalents": "cash",
        }
    )
    return aliases


FIELD_ALIASES: dict[str, str] = _build_aliases()

_SECTION_ALIASES: dict[str, str] = {}
for _section in STATEMENT_FIELDS:
    _SECTION_ALIASES[_section] = _section
    _SECTION_ALIASES[_camel(_section).lower()] = _section

_IDENTITY_ALIASES = {
    "company_name": "company_name",
    "companyname": "company_name",
    "company": "company_name",
    "period": "period",
    "date": "period",
}


def _normalize_key(key: Any) -> str:
    return str(key).strip().lower()


def parse_amount(raw: Any) -> tuple[Optional[float], bool]:
    """
    Parse one extracted value.

    Returns:
        (value, ok): ``value`` is the parsed float or None when missing or
        unparseable; ``ok`` is False only when a value was present but
        could not be parsed as a finite number.
    """
    if raw is None:
        return None, True

    if isinstance(raw, bool):
        return None, False

    if isinstance(raw, (int, float)):
        if math.isnan(raw):
            return None, True
        if math.isinf(raw):
            return None, False
        return float(raw), True

    text = str(raw).strip()
    if not text or text.lower() in {"nan", "n/a", "na", "-", "none", "null"}:
        return None, True

    text = _CURRENCY_CHARS.sub("", text)
    negative = text.startswith("(") and text.endswith(")")
    if negative:
        text = text[1:-1]

    value = pd.to_numeric(text, errors="coerce")
    if pd.isna(value) or not math.isfinite(float(value)):
        return None, False

    number = float(value)
    return (-number if negative else number), True


def parse_financial_record(
    raw: Mapping[str, Any],
    company_name: Optional[str] = None,
    period: Optional[str] = None,
) -> FinancialData:
    """
    Build a canonical record from an extraction payload.

    Args:
        raw: Nested or flat mapping of extracted values (see module docstring).
        company_name: Overrides the company name found in ``raw``.
        period: Overrides the period found in ``raw``.

    Returns:
        A FinancialData instance. Values that could not be parsed are
        missing on the statements and listed in ``unparsed_fields``.
    """
    identity: dict[str, str] = {}
    flat: dict[str, Any] = {}

    for key, value in raw.items():
        norm = _normalize_key(key)
        if norm in _IDENTITY_ALIASES:
            if value is not None and str(value).strip():
                identity[_IDENTITY_ALIASES[norm]] = str(value).strip()
        elif norm in _SECTION_ALIASES and isinstance(value, Mapping):
            for sub_key, sub_value in value.items():
                field_name = FIELD_ALIASES.get(_normalize_key(sub_key))
                if field_name is not None:
                    flat[field_name] = sub_value
        elif norm in FIELD_ALIASES:
            flat[FIELD_ALIASES[norm]] = value

    values: dict[str, Optional[float]] = {}
    unparsed: list[tuple[str, str]] = []
    for field_name in ALL_FIELDS:
        if field_name not in flat:
            values[field_name] = None
            continue
        parsed, ok = parse_amount(flat[field_name])
        values[field_name] = parsed
        if not ok:
            unparsed.append((field_name, str(flat[field_name])))

    sections = {
        section: cls(**{name: values[name] for name in STATEMENT_FIELDS[section]})
        for section, cls in _SECTION_CLASSES.items()
    }

    record = FinancialData(
        company_name=company_name or identity.get("company_name", ""),
        period=period or identity.get("period", ""),
        unparsed_fields=tuple(unparsed),
        **sections,
    )

    if unparsed:
        logger.info(
            "%d value(s) could not be parsed for %s (%s): %s",
            len(unparsed),
            record.company_name,
            record.period,
            ", ".join(name for name, _ in unparsed),
        )

    return record


def read_financial_records(
    path: Union[str, "os.PathLike[str]"],
    sort_by_period: bool = True,
) -> list[FinancialData]:
    """
    Read canonical records from a CSV or JSON file.

    Parameters
    ----------
    path:
        ``.json`` files hold one payload object or a list of them. Any other
        extension is read as CSV with one row per period; columns are
        matched case-insensitively against field names (snake_case or
        camelCase) plus ``company_name`` and ``period``.
    sort_by_period:
        Sort records by their period label (ISO dates sort chronologically).

    Returns
    -------
    list[FinancialData]
        One record per row/object.

    Raises
    ------
    ValueError
        If the file content has an unsupported structure or no
        ``period`` column/key.
    """
    file_path = Path(path)

    if file_path.suffix.lower() == ".json":
        payload = json.loads(file_path.read_text(encoding="utf-8"))
        if isinstance(payload, Mapping):
            payload = [payload]
        if not isinstance(payload, list) or not all(
            isinstance(item, Mapping) for item in payload
        ):
            raise ValueError(
                f"Invalid JSON structure in {file_path}: expected an object "
                "or a list of objects."
            )
        rows = payload
    else:
        # Read everything as text so that parse_amount sees the raw values.
        df = pd.read_csv(file_path, dtype=str, keep_default_na=False)
        df.columns = [_normalize_key(c) for c in df.columns]
        if not any(_IDENTITY_ALIASES.get(c) == "period" for c in df.columns):
            raise ValueError(
                f"Invalid financial records file {file_path}: a 'period' column "
                "is required."
            )
        rows = df.to_dict(orient="records")

    records = [parse_financial_record(row) for row in rows]

    if any(not r.period for r in records):
        raise ValueError(f"Every record in {file_path} must define a period.")

    if sort_by_period:
        records.sort(key=lambda r: r.period)

    logger.debug("Read %d financial record(s) from %s", len(records), file_path)
    return records
