import pytest

from finsight_kpi.config import ConfidenceConfig, EngineConfig
from finsight_kpi.confidence import score_confidence
from finsight_kpi.validation import ValidationResult

CLEAN = ValidationResult(is_valid=True)


def test_clean_results_keep_extraction_confidence() -> None:
    assert score_confidence(92.0, CLEAN, CLEAN) == pytest.approx(92.0)


def test_missing_extraction_confidence_does_not_constrain() -> None:
    assert score_confidence(None, CLEAN, CLEAN) == pytest.approx(100.0)


def test_failed_identity_is_the_weakest_link() -> None:
    math_result = ValidationResult(
        is_valid=False,
        invalid_fields=("Balance sheet identity failed",),
        completeness=50.0,
    )

    # 50 - 10 for the failed identity.
    assert score_confidence(95.0, math_result, CLEAN) == pytest.approx(40.0)


def test_detector_penalises_invalid_values_and_warnings() -> None:
    detection = ValidationResult(
        is_valid=False,
        missing_fields=("total_equity",),
        invalid_fields=("cash: could not parse 'x' as a number",),
        warnings=("Negative cash balance (-1)", "inventory is negative (-1)"),
        completeness=75.0,
    )

    # 75 - 10 - 2 * 5
    assert score_confidence(99.0, CLEAN, detection) == pytest.approx(55.0)


def test_score_is_clamped() -> None:
    detection = ValidationResult(
        is_valid=False,
        invalid_fields=tuple(f"field{i}" for i in range(20)),
        completeness=10.0,
    )

    assert score_confidence(150.0, CLEAN, CLEAN) == pytest.approx(100.0)
    assert score_confidence(80.0, CLEAN, detection) == pytest.approx(0.0)


def test_penalties_come_from_configuration() -> None:
    config = EngineConfig(
        confidence=ConfidenceConfig(invalid_field_penalty=0.0, warning_penalty=20.0)
    )
    detection = ValidationResult(
        is_valid=True, warnings=("Negative cash balance (-1)",), completeness=100.0
    )

    assert score_confidence(None, CLEAN, detection, config) == pytest.approx(80.0)
