# FinSight KPI Engine - Financial validation & KPI engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Validation results and the mathematical (accounting identity) validator.

ValidationResult
----------------
The common report shape produced at ingestion time. Two independent
producers fill it:

- validate_math()      (this module)  -> invalid_fields, completeness
- detect_anomalies()   (anomalies.py) -> missing_fields, invalid_fields,
                                         warnings, completeness

and ValidationResult.merge() combines them into the record's overall
validation.

Mathematical validator
----------------------
Each identity is checked only when every operand is a finite number on the
record.
Skipped checks count neither as passed nor as failed: ``completeness`` is
the share of *applicable* checks that passed. A failed check appends one
descriptive entry to ``invalid_fields`` naming both sides, their values and
the delta. The validator never raises on data.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Optional

from .config import EngineConfig, default_engine_config
from .models import FinancialData
from .numeric import all_present, fmt_amount, within_tolerance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of validating one canonical record.

    Attributes:
        is_valid: True if no blocking issue was found.
        missing_fields: Required fields absent from the record.
        invalid_fields: Failed identities or values that could not be parsed.
        warnings: Non-blocking anomalies.
        completeness: Score in [0, 100]; its basis depends on the producer.
    """

    is_valid: bool
    missing_fields: tuple[str, ...] = ()
    invalid_fields: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    completeness: float = 100.0

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        """
        Combine two partial results.

        Lists are concatenated without duplicates (first occurrence wins),
        validity is conjunctive and completeness is the lower of the two.
        """
        return ValidationResult(
            is_valid=self.is_valid and other.is_valid,
            missing_fields=_unique(self.missing_fields + other.missing_fields),
            invalid_fields=_unique(self.invalid_fields + other.invalid_fields),
            warnings=_unique(self.warnings + other.warnings),
            completeness=min(self.completeness, other.completeness),
        )


def _unique(items: Sequence[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(items))


@dataclass(frozen=True)
class IdentityCheck:
    """
    One accounting identity: ``lhs_field ≈ sum(sign * field for rhs)``.

    Attributes:
        name: Human-readable name used in reports.
        lhs: Field on the left-hand side.
        rhs: (sign, field) terms summed on the right-hand side.
    """

    name: str
    lhs: str
    rhs: tuple[tuple[int, str], ...]

    def describe_rhs(self) -> str:
        parts: list[str] = []
        for i, (sign, name) in enumerate(self.rhs):
            if i == 0:
                parts.append(name if sign > 0 else f"-{name}")
            else:
                parts.append(f"{'+' if sign > 0 else '-'} {name}")
        return " ".join(parts)


IDENTITY_CHECKS: tuple[IdentityCheck, ...] = (
    IdentityCheck(
        name="Balance sheet identity",
        lhs="total_assets",
        rhs=((1, "total_liabilities"), (1, "total_equity")),
    ),
    IdentityCheck(
        name="Gross profit identity",
        lhs="gross_profit",
        rhs=((1, "total_revenue"), (-1, "cost_of_goods_sold")),
    ),
    IdentityCheck(
        name="Total assets subtotal",
        lhs="total_assets",
        rhs=((1, "current_assets"), (1, "non_current_assets")),
    ),
    IdentityCheck(
        name="Total liabilities subtotal",
        lhs="total_liabilities",
        rhs=((1, "current_liabilities"), (1, "non_current_liabilities")),
    ),
    IdentityCheck(
        name="Operating income identity",
        lhs="operating_income",
        rhs=((1, "gross_profit"), (-1, "operating_expenses")),
    ),
    IdentityCheck(
        name="Net cash flow identity",
        lhs="net_cash_flow",
        rhs=(
            (1, "operating_cash_flow"),
            (1, "investing_cash_flow"),
            (1, "financing_cash_flow"),
        ),
    ),
)


def _run_check(
    record: FinancialData,
    check: IdentityCheck,
    is_close: Callable[[float, float], bool],
) -> tuple[bool, Optional[str]]:
    """
    Evaluate one identity.

    Returns:
        (applicable, failure): ``applicable`` is False when an operand is
        missing or not a finite number; ``failure`` is None if the check
        passed, a description of the failure otherwise.
    """
    lhs_value = record.get(check.lhs)
    rhs_values = [record.get(name) for _, name in check.rhs]
    if not all_present(lhs_value, *rhs_values):
        return False, None

    rhs_total = sum(sign * float(v) for (sign, _), v in zip(check.rhs, rhs_values))
    lhs_total = float(lhs_value)

    if is_close(lhs_total, rhs_total):
        return True, None

    delta = abs(lhs_total - rhs_total)
    return True, (
        f"{check.name} failed: {check.lhs} ({fmt_amount(lhs_total)}) != "
        f"{check.describe_rhs()} ({fmt_amount(rhs_total)}), "
        f"difference {fmt_amount(delta)}"
    )


def validate_math(
    record: FinancialData,
    config: Optional[EngineConfig] = None,
    checks: Sequence[IdentityCheck] = IDENTITY_CHECKS,
) -> ValidationResult:
    """
    Check the accounting identities of a canonical record.

    Args:
        record: Record to validate.
        config: Engine configuration (tolerance). Defaults to built-in settings.
        checks: Identities to evaluate. Defaults to IDENTITY_CHECKS.

    Returns:
        A ValidationResult where ``invalid_fields`` lists the failed
        identities and ``completeness`` is the percentage of applicable
        checks that passed (100 when no check is applicable).
    """
    cfg = config or default_engine_config()

    def is_close(a: float, b: float) -> bool:
        return within_tolerance(
            a, b, rel_tol=cfg.tolerance.relative, abs_tol=cfg.tolerance.absolute
        )

    failures: list[str] = []
    applicable = 0

    for check in checks:
        applies, failure = _run_check(record, check, is_close)
        if not applies:
            logger.debug(
                "Skipping %s for %s (%s): missing or non-numeric operand",
                check.name,
                record.company_name,
                record.period,
            )
            continue

        applicable += 1
        if failure is not None:
            failures.append(failure)

    if applicable == 0:
        completeness = 100.0
    else:
        completeness = (applicable - len(failures)) / applicable * 100.0

    if failures:
        logger.debug(
            "%d of %d identity checks failed for %s (%s)",
            len(failures),
            applicable,
            record.company_name,
            record.period,
        )

    return ValidationResult(
        is_valid=not failures,
        invalid_fields=tuple(failures),
        completeness=completeness,
    )
