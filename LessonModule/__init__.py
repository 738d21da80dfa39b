"""Convenience exports for the lesson module."""

from .fill_blank_template import (
    TemplatePart,
    extract_fill_blank_ids,
    extract_generic_blank_ids,
    parse_fill_blank_template,
    render_fill_blank_template,
    replace_generic_blank_placeholders,
)
from .step_normalizer import NormalizedLessonStep, normalize_lesson_step_payload
from .step_types import (
    STEP_TYPE_META,
    STEP_TYPES,
    check_step_answer,
    get_default_answer_data,
    get_default_step_content,
    is_interactive_step,
)
from .step_improver import ImprovedStep, LessonStepImprover

__all__ = [
    "TemplatePart",
    "extract_fill_blank_ids",
    "extract_generic_blank_ids",
    "parse_fill_blank_template",
    "render_fill_blank_template",
    "replace_generic_blank_placeholders",
    "NormalizedLessonStep",
    "normalize_lesson_step_payload",
    "STEP_TYPE_META",
    "STEP_TYPES",
    "check_step_answer",
    "get_default_answer_data",
    "get_default_step_content",
    "is_interactive_step",
    "ImprovedStep",
    "LessonStepImprover",
]
