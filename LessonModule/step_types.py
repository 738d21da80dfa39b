"""Lesson step catalog: step types, their metadata and answer checking."""
from __future__ import annotations

from typing import Any

from tools.payload_utils import as_record, to_string_array, to_text

STEP_TYPES = [
    "explanation",
    "concept",
    "multiple_choice",
    "true_false",
    "drag_sort",
    "drag_match",
    "drag_categorize",
    "fill_blanks",
    "type_answer",
    "select_many",
    "reveal",
]

CONTENT_STEP_TYPES = ["explanation", "concept", "reveal"]
INTERACTIVE_STEP_TYPES = [
    "multiple_choice",
    "true_false",
    "drag_sort",
    "drag_match",
    "drag_categorize",
    "fill_blanks",
    "type_answer",
    "select_many",
]


def is_interactive_step(step_type: str) -> bool:
    return step_type in INTERACTIVE_STEP_TYPES


class StepTypeMeta:
    """Display metadata for one step type."""

    def __init__(self, type: str, label: str, description: str, category: str, icon: str):
        self.type = type
        self.label = label
        self.description = description
        self.category = category
        self.icon = icon  # lucide icon name

    def to_dict(self):
        return {
            "type": self.type,
            "label": self.label,
            "description": self.description,
            "category": self.category,
            "icon": self.icon,
        }


STEP_TYPE_META = {
    meta.type: meta
    for meta in [
        StepTypeMeta("explanation", "Explanation", "Rich text with optional tap-to-reveal sections", "content", "FileText"),
        StepTypeMeta("concept", "Key Concept", "Highlighted concept card with title and description", "content", "Lightbulb"),
        StepTypeMeta("multiple_choice", "Multiple Choice", "Choose one correct answer from options", "interactive", "CircleDot"),
        StepTypeMeta("true_false", "True / False", "Decide if a statement is true or false", "interactive", "ToggleLeft"),
        StepTypeMeta("drag_sort", "Drag & Sort", "Put items in the correct order", "interactive", "ArrowUpDown"),
        StepTypeMeta("drag_match", "Drag & Match", "Match left items to right items", "interactive", "GitCompareArrows"),
        StepTypeMeta("drag_categorize", "Categorize", "Sort items into categories", "interactive", "LayoutGrid"),
        StepTypeMeta("fill_blanks", "Fill in the Blanks", "Complete a sentence with missing words", "interactive", "TextCursorInput"),
        StepTypeMeta("type_answer", "Type Answer", "Free text input with accepted answers", "interactive", "Keyboard"),
        StepTypeMeta("select_many", "Select All", "Select all correct items from a list", "interactive", "CheckSquare"),
        StepTypeMeta("reveal", "Progressive Reveal", "Tap to reveal content step by step", "content", "Eye"),
    ]
}


def get_default_step_content(step_type: str) -> dict:
    """Return empty editor content for a new step of ``step_type``."""
    defaults = {
        "explanation": {"type": "explanation", "markdown": ""},
        "concept": {"type": "concept", "title": "", "description": "", "highlightStyle": "info"},
        "multiple_choice": {
            "type": "multiple_choice",
            "question": "",
            "options": [{"id": option_id, "text": ""} for option_id in "abcd"],
        },
        "true_false": {"type": "true_false", "statement": ""},
        "drag_sort": {"type": "drag_sort", "instruction": "", "items": []},
        "drag_match": {"type": "drag_match", "instruction": "", "pairs": []},
        "drag_categorize": {"type": "drag_categorize", "instruction": "", "categories": [], "items": []},
        "fill_blanks": {"type": "fill_blanks", "template": "", "blanks": []},
        "type_answer": {"type": "type_answer", "question": ""},
        "select_many": {"type": "select_many", "question": "", "options": []},
        "reveal": {"type": "reveal", "steps": []},
    }
    if step_type not in defaults:
        raise ValueError(f"Unknown step type: {step_type}")
    return defaults[step_type]


def get_default_answer_data(step_type: str) -> dict | None:
    if step_type in CONTENT_STEP_TYPES:
        return None
    defaults = {
        "multiple_choice": {"correctOptionId": "a"},
        "true_false": {"correctValue": True},
        "drag_sort": {"correctOrder": []},
        "drag_match": {"correctPairs": {}},
        "drag_categorize": {"correctMapping": {}},
        "fill_blanks": {"correctBlanks": {}},
        "type_answer": {"acceptedAnswers": []},
        "select_many": {"correctOptionIds": []},
    }
    if step_type not in defaults:
        raise ValueError(f"Unknown step type: {step_type}")
    return defaults[step_type]


def _matches_accepted(text: str, accepted: list[str], case_sensitive: bool) -> bool:
    value = text.strip()
    if case_sensitive:
        return any(value == answer for answer in accepted)
    return any(value.lower() == answer.lower() for answer in accepted)


def check_step_answer(step_type: str, content: Any, answer_data: Any, user_answer: Any) -> bool:
    """Return whether ``user_answer`` is correct for a step.

    Content steps carry no answer data and always count as correct.  Answers
    missing the expected keys are treated as wrong.
    """
    if answer_data is None:
        return True

    answer_data = as_record(answer_data)
    content = as_record(content)
    user_answer = as_record(user_answer)

    if step_type == "multiple_choice":
        return user_answer.get("selectedOptionId") == answer_data.get("correctOptionId")
    if step_type == "true_false":
        return user_answer.get("selectedValue") == answer_data.get("correctValue")
    if step_type == "drag_sort":
        return user_answer.get("orderedIds") == answer_data.get("correctOrder")
    if step_type == "drag_match":
        pairs = as_record(user_answer.get("pairs"))
        return all(
            pairs.get(key) == value
            for key, value in as_record(answer_data.get("correctPairs")).items()
        )
    if step_type == "drag_categorize":
        mapping = as_record(user_answer.get("mapping"))
        return all(
            mapping.get(item_id) == category_id
            for item_id, category_id in as_record(answer_data.get("correctMapping")).items()
        )
    if step_type == "fill_blanks":
        blanks = as_record(user_answer.get("blanks"))
        return all(
            _matches_accepted(to_text(blanks.get(blank_id)), to_string_array(accepted), False)
            for blank_id, accepted in as_record(answer_data.get("correctBlanks")).items()
        )
    if step_type == "type_answer":
        return _matches_accepted(
            to_text(user_answer.get("text")),
            to_string_array(answer_data.get("acceptedAnswers")),
            content.get("caseSensitive") is True,
        )
    if step_type == "select_many":
        selected = set(to_string_array(user_answer.get("selectedOptionIds")))
        correct = set(to_string_array(answer_data.get("correctOptionIds")))
        return selected == correct
    return False
