# FinSight KPI Engine - Financial validation & KPI engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Ingestion-time analysis of one extracted document.

``analyze_document()`` is the single entry point used when a new record
arrives from the extraction service. For that record it:

1. runs the mathematical validator (validation.validate_math),
2. runs the completeness / anomaly detector (anomalies.detect_anomalies)
   for the declared document type,
3. merges both into the record's overall ValidationResult,
4. scores the extraction confidence (confidence.score_confidence),
5. derives plain-language recommendations from the findings.

The result is a DocumentAnalysis value; nothing is persisted here.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .anomalies import detect_anomalies
from .confidence import score_confidence
from .config import EngineConfig, default_engine_config
from .models import FinancialData
from .validation import ValidationResult, validate_math

logger = logging.getLogger(__name__)

# Below this score the document should be reviewed before being trusted.
LOW_CONFIDENCE = 70.0


@dataclass(frozen=True)
class DocumentAnalysis:
    """
    Result of analysing one extracted document.

    Attributes:
        document_type: Declared type ('balance_sheet', 'income_statement', ...).
        record: The canonical record that was analysed.
        validation: Merged result of the validator and the detector.
        math_validation: Accounting identity checks only.
        error_detection: Presence, type and anomaly checks only.
        confidence: Combined confidence score (0-100).
        recommendations: Suggested follow-ups for the user.
    """

    document_type: str
    record: FinancialData
    validation: ValidationResult
    math_validation: ValidationResult
    error_detection: ValidationResult
    confidence: float
    recommendations: tuple[str, ...]


def build_recommendations(
    math_result: ValidationResult,
    detection_result: ValidationResult,
    confidence: float,
) -> list[str]:
    """Translate validation findings into user-facing follow-ups."""
    recommendations: list[str] = []

    if detection_result.missing_fields:
        recommendations.append(
            "Provide the missing required values: "
            + ", ".join(detection_result.missing_fields)
        )
    if detection_result.invalid_fields:
        recommendations.append(
            "Check the values that could not be read as numbers and re-upload "
            "a clearer document if needed"
        )
    if math_result.invalid_fields:
        recommendations.append(
            "Review the statement totals: at least one accounting identity "
            "does not balance"
        )
    if detection_result.warnings:
        recommendations.append(
            f"Review {len(detection_result.warnings)} data-quality warning(s) "
            "before relying on the derived KPIs"
        )
    if confidence < LOW_CONFIDENCE:
        recommendations.append(
            f"Confidence is {confidence:.0f}%: verify the extracted figures "
            "against the original document"
        )

    return recommendations


def analyze_document(
    record: FinancialData,
    document_type: str,
    extraction_confidence: Optional[float] = None,
    config: Optional[EngineConfig] = None,
) -> DocumentAnalysis:
    """
    Validate, check and score one extracted record.

    Args:
        record: Canonical record produced from the uploaded document.
        document_type: Declared document type, selecting the required fields.
        extraction_confidence: Confidence reported by the extraction stage.
        config: Engine configuration. Defaults to built-in settings.

    Returns:
        A DocumentAnalysis.

    Raises:
        ValueError: if ``document_type`` is not configured.
    """
    cfg = config or default_engine_config()

    math_result = validate_math(record, cfg)
    detection_result = detect_anomalies(record, document_type, cfg)
    validation = math_result.merge(detection_result)
    confidence = score_confidence(
        extraction_confidence, math_result, detection_result, cfg
    )
    recommendations = build_recommendations(math_result, detection_result, confidence)

    logger.info(
        "Analysed %s for %s (%s): valid=%s, completeness=%.1f, confidence=%.1f",
        document_type,
        record.company_name,
        record.period,
        validation.is_valid,
        validation.completeness,
        confidence,
    )

    return DocumentAnalysis(
        document_type=document_type,
        record=record,
        validation=validation,
        math_validation=math_result,
        error_detection=detection_result,
        confidence=confidence,
        recommendations=tuple(recommendations),
    )
