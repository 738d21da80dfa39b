"""Convenience exports for the quiz module."""

from .question_normalizer import (
    QUESTION_TYPES,
    NormalizedQuestion,
    normalize_question_payload,
    normalize_question_type,
)
from .answer_validator import ValidationResult, validate_answer, validate_legacy_answer

__all__ = [
    "QUESTION_TYPES",
    "NormalizedQuestion",
    "normalize_question_payload",
    "normalize_question_type",
    "ValidationResult",
    "validate_answer",
    "validate_legacy_answer",
]
