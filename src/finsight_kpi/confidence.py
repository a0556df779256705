# FinSight KPI Engine - Financial validation & KPI engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Confidence scoring for an extracted record.

The score is the *minimum* of three components:

- the extraction confidence reported by the upstream extraction service,
- the validator score: identity completeness minus a penalty per failed
  identity,
- the detector score: presence completeness minus a penalty per invalid
  value and per warning.

Taking the weakest link means a single broken accounting identity cannot be
hidden by otherwise complete data.
"""

from typing import Optional

from .config import EngineConfig, default_engine_config
from .numeric import is_missing
from .validation import ValidationResult


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def validator_score(result: ValidationResult, config: EngineConfig) -> float:
    penalty = config.confidence.invalid_field_penalty * len(result.invalid_fields)
    return _clamp(result.completeness - penalty)


def detector_score(result: ValidationResult, config: EngineConfig) -> float:
    penalty = config.confidence.invalid_field_penalty * len(
        result.invalid_fields
    ) + config.confidence.warning_penalty * len(result.warnings)
    return _clamp(result.completeness - penalty)


def score_confidence(
    extraction_confidence: Optional[float],
    math_result: ValidationResult,
    detection_result: ValidationResult,
    config: Optional[EngineConfig] = None,
) -> float:
    """
    Combine extraction, validator and detector results into a 0-100 score.

    Args:
        extraction_confidence: Confidence reported by the extraction stage
            (0-100). None means "not reported" and does not constrain the
            result.
        math_result: Output of validation.validate_math().
        detection_result: Output of anomalies.detect_anomalies().
        config: Engine configuration (penalties). Defaults to built-in settings.

    Returns:
        The weakest of the three component scores, clamped to [0, 100].
    """
    cfg = config or default_engine_config()

    extraction = (
        100.0 if is_missing(extraction_confidence) else float(extraction_confidence)
    )

    return min(
        _clamp(extraction),
        validator_score(math_result, cfg),
        detector_score(detection_result, cfg),
    )
