"""Normalization of quiz question payloads.

Quiz questions are stored as a ``(question_type, question_config,
correct_answer_data)`` triple plus the legacy ``options``/``correct_answer``
columns used by plain multiple-choice quizzes.  Payloads written by the
question editor, imported from files or produced by the LLM use many aliases
for the same fields; ``normalize_question_payload`` folds them into one shape.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from LessonModule.fill_blank_template import (
    extract_fill_blank_ids,
    extract_generic_blank_ids,
    replace_generic_blank_placeholders,
)
from tools.payload_utils import (
    as_record,
    coalesce,
    detect_one_based_indexing,
    first_present,
    resolve_list_value,
    round_half_up,
    to_boolean,
    to_number,
    to_string_array,
    to_text,
    unique_strings,
)

logger = logging.getLogger(__name__)

QUESTION_TYPES = [
    "multiple_choice",
    "true_false",
    "text_input",
    "year_range",
    "numeric_range",
    "matching",
    "fill_blank",
    "multi_select",
]


QUESTION_TYPE_ALIASES = {
    "multiple choice": "multiple_choice",
    "multiple-choice": "multiple_choice",
    "multi_choice": "multiple_choice",
    "mcq": "multiple_choice",
    "truefalse": "true_false",
    "boolean": "true_false",
    "text": "text_input",
    "free_text": "text_input",
    "short_answer": "text_input",
    "shortanswer": "text_input",
    "year": "year_range",
    "number": "numeric_range",
    "numeric": "numeric_range",
    "number_range": "numeric_range",
    "match": "matching",
    "matching_pairs": "matching",
    "fill_blanks": "fill_blank",
    "fill_in_blank": "fill_blank",
    "fill-in-the-blank": "fill_blank",
    "multi-select": "multi_select",
    "multi select": "multi_select",
    "multiple_select": "multi_select",
}


class NormalizedQuestion:
    def __init__(
        self,
        question_type: str,
        question_config: dict,
        correct_answer_data: dict | None,
        options: list[str] | None = None,
        correct_answer: int | float | None = None,
    ):
        self.question_type = question_type
        self.question_config = question_config
        self.correct_answer_data = correct_answer_data
        self.options = options
        self.correct_answer = correct_answer

    def to_dict(self):
        return {
            "questionType": self.question_type,
            "questionConfig": self.question_config,
            "correctAnswerData": self.correct_answer_data,
            "options": self.options,
            "correctAnswer": self.correct_answer,
        }


def normalize_question_type(question_type: Any) -> str:
    """Map a loosely written question type onto a known slug."""
    raw = to_text(question_type if question_type is not None else "multiple_choice").strip().lower()
    return QUESTION_TYPE_ALIASES.get(raw, raw)


def _normalize_multiple_choice(config, answer_data, options, correct_answer):
    option_list = unique_strings(
        to_string_array(coalesce(config.get("options"), config.get("choices"), options))
    )

    correct_index = to_number(
        coalesce(
            answer_data.get("correctIndex"),
            answer_data.get("correctAnswer"),
            answer_data.get("answerIndex"),
            correct_answer,
        )
    )
    if correct_index is None and isinstance(answer_data.get("correctOption"), str):
        correct_option = answer_data["correctOption"]
        correct_index = option_list.index(correct_option) if correct_option in option_list else -1
    if correct_index is None:
        correct_index = 0
    if option_list:
        correct_index = max(0, min(len(option_list) - 1, round_half_up(correct_index)))
    else:
        correct_index = 0

    shuffle = to_boolean(config.get("shuffleOptions"))
    return NormalizedQuestion(
        "multiple_choice",
        {"options": option_list, "shuffleOptions": shuffle if shuffle is not None else False},
        {"correctIndex": correct_index},
        options=option_list,
        correct_answer=correct_index,
    )


def _normalize_true_false(config, answer_data, correct_answer):
    legacy_index = to_number(correct_answer)
    fallback = {1: True, 0: False}.get(legacy_index) if legacy_index is not None else None

    correct_value = to_boolean(
        first_present(answer_data, "correctValue", "isTrue", "answer")
    )
    if correct_value is None:
        correct_value = fallback if fallback is not None else True

    return NormalizedQuestion(
        "true_false",
        {
            "trueLabel": config["trueLabel"] if isinstance(config.get("trueLabel"), str) else "True",
            "falseLabel": config["falseLabel"] if isinstance(config.get("falseLabel"), str) else "False",
        },
        {"correctValue": correct_value},
    )


def _normalize_text_input(config, answer_data):
    exact_match = answer_data.get("exactMatch")
    accepted_answers = unique_strings(
        to_string_array(
            coalesce(
                answer_data.get("acceptedAnswers"),
                answer_data.get("answers"),
                answer_data.get("correctAnswers"),
                [exact_match] if isinstance(exact_match, str) else [],
            )
        )
    )
    keywords = unique_strings(
        to_string_array(coalesce(answer_data.get("keywords"), config.get("acceptedKeywords")))
    )

    case_sensitive = to_boolean(config.get("caseSensitive"))
    trim_whitespace = to_boolean(config.get("trimWhitespace"))
    normalized_config = {
        "caseSensitive": case_sensitive if case_sensitive is not None else False,
        "trimWhitespace": trim_whitespace if trim_whitespace is not None else True,
    }
    if isinstance(config.get("placeholder"), str):
        normalized_config["placeholder"] = config["placeholder"]
    max_length = to_number(config.get("maxLength"))
    if max_length is not None and max_length > 0:
        normalized_config["maxLength"] = round_half_up(max_length)

    normalized_answer_data = {"acceptedAnswers": accepted_answers}
    if keywords:
        normalized_answer_data["keywords"] = keywords
    return NormalizedQuestion("text_input", normalized_config, normalized_answer_data)


def _normalize_year_range(config, answer_data, correct_answer):
    min_year = to_number(first_present(config, "minYear", "min"))
    max_year = to_number(first_present(config, "maxYear", "max"))
    tolerance = to_number(first_present(config, "tolerance", "toleranceYears"))
    fallback_year = to_number(correct_answer)
    correct_year = to_number(first_present(answer_data, "correctYear", "exactYear", "year"))

    normalized_config = {}
    if min_year is not None:
        normalized_config["minYear"] = round_half_up(min_year)
    if max_year is not None:
        normalized_config["maxYear"] = round_half_up(max_year)
    if tolerance is not None:
        normalized_config["tolerance"] = max(0, round_half_up(tolerance))
    if isinstance(config.get("placeholder"), str):
        normalized_config["placeholder"] = config["placeholder"]

    year = coalesce(correct_year, fallback_year)
    if year is None:
        year = datetime.now(timezone.utc).year
        logger.info("year_range question without a correct year, defaulting to %s", year)

    return NormalizedQuestion("year_range", normalized_config, {"correctYear": round_half_up(year)})


def _normalize_numeric_range(config, answer_data, correct_answer):
    tolerance = to_number(config.get("tolerance"))
    tolerance_type = config.get("toleranceType")
    if tolerance_type not in ("absolute", "percentage"):
        tolerance_type = None

    tolerance_percent = to_number(
        coalesce(config.get("tolerancePercent"), answer_data.get("tolerancePercent"))
    )
    if tolerance is None and tolerance_percent is not None:
        tolerance = tolerance_percent
        tolerance_type = "percentage"

    minimum = to_number(first_present(config, "min", "minValue"))
    maximum = to_number(first_present(config, "max", "maxValue"))
    step = to_number(config.get("step"))
    fallback_value = to_number(correct_answer)
    correct_value = to_number(first_present(answer_data, "correctValue", "exactValue", "value"))

    normalized_config = {}
    if tolerance is not None:
        normalized_config["tolerance"] = max(0, tolerance)
        normalized_config["toleranceType"] = tolerance_type or "absolute"
    if minimum is not None:
        normalized_config["min"] = minimum
    if maximum is not None:
        normalized_config["max"] = maximum
    if step is not None and step > 0:
        normalized_config["step"] = step
    if isinstance(config.get("unit"), str):
        normalized_config["unit"] = config["unit"]
    if isinstance(config.get("placeholder"), str):
        normalized_config["placeholder"] = config["placeholder"]

    value = coalesce(correct_value, fallback_value, 0)
    return NormalizedQuestion("numeric_range", normalized_config, {"correctValue": value})


def _normalize_matching(config, answer_data):
    left_column = unique_strings(
        to_string_array(first_present(config, "leftColumn", "leftItems", "left"))
    )
    right_column = unique_strings(
        to_string_array(first_present(config, "rightColumn", "rightItems", "right"))
    )

    config_pairs = config.get("pairs") if isinstance(config.get("pairs"), list) else []
    for pair in config_pairs:
        raw_pair = as_record(pair)
        left = to_text(first_present(raw_pair, "left", "term")).strip()
        right = to_text(first_present(raw_pair, "right", "match", "definition")).strip()
        if left and left not in left_column:
            left_column.append(left)
        if right and right not in right_column:
            right_column.append(right)

    raw_correct_pairs = first_present(answer_data, "correctPairs", "pairs", "matches")
    raw_correct_list = raw_correct_pairs if isinstance(raw_correct_pairs, list) else []
    use_one_based_left = detect_one_based_indexing(raw_correct_list, 0, len(left_column))
    use_one_based_right = detect_one_based_indexing(raw_correct_list, 1, len(right_column))

    def resolve_left(value):
        text = to_text(value).strip()
        if text in left_column:
            return text
        return resolve_list_value(value, left_column, use_one_based_left)

    def resolve_right(value):
        text = to_text(value).strip()
        if text in right_column:
            return text
        return resolve_list_value(value, right_column, use_one_based_right)

    correct_pairs = {}
    if isinstance(raw_correct_pairs, list):
        for entry in raw_correct_pairs:
            if isinstance(entry, (list, tuple)) and len(entry) >= 2:
                left = resolve_list_value(entry[0], left_column, use_one_based_left)
                right = resolve_list_value(entry[1], right_column, use_one_based_right)
            else:
                pair = as_record(entry)
                left = resolve_left(first_present(pair, "left", "leftItem", "from"))
                right = resolve_right(first_present(pair, "right", "rightItem", "to"))
            if left and right:
                correct_pairs[left] = right
    elif isinstance(raw_correct_pairs, dict):
        for raw_left, raw_right in raw_correct_pairs.items():
            left = resolve_left(raw_left)
            right = resolve_right(raw_right)
            if left and right:
                correct_pairs[left] = right

    if not correct_pairs and len(left_column) == len(right_column):
        for left, right in zip(left_column, right_column):
            if right:
                correct_pairs[left] = right

    for left, right in correct_pairs.items():
        if left not in left_column:
            left_column.append(left)
        if right not in right_column:
            right_column.append(right)

    shuffle_right = to_boolean(config.get("shuffleRight"))
    normalized_config = {
        "leftColumn": left_column,
        "rightColumn": right_column,
        "shuffleRight": shuffle_right if shuffle_right is not None else True,
    }
    for label_key in ("leftColumnLabel", "rightColumnLabel"):
        if isinstance(config.get(label_key), str):
            normalized_config[label_key] = config[label_key]

    return NormalizedQuestion("matching", normalized_config, {"correctPairs": correct_pairs})


def _normalize_fill_blank(config, answer_data):
    raw_template = to_text(config.get("template")).strip()
    raw_blanks = config.get("blanks") if isinstance(config.get("blanks"), list) else []

    accepted_by_id = {}
    config_blanks = []
    for index, blank in enumerate(raw_blanks):
        raw_blank = as_record(blank)
        raw_id = raw_blank.get("id")
        blank_id = (to_text(raw_id) if raw_id is not None else f"blank_{index}").strip()
        accepted_answers = unique_strings(
            to_string_array(first_present(raw_blank, "acceptedAnswers", "answers", "answer"))
        )
        if blank_id:
            accepted_by_id[blank_id] = accepted_answers
        config_blanks.append({"id": blank_id, "acceptedAnswers": accepted_answers})

    answer_blanks = as_record(first_present(answer_data, "blanks", "correctBlanks"))
    for blank_id, answers in answer_blanks.items():
        accepted_by_id[blank_id] = unique_strings(to_string_array(answers))

    blank_ids = (
        extract_fill_blank_ids(raw_template, config_blanks)
        or [blank["id"] for blank in config_blanks]
        or list(accepted_by_id)
        or ["blank_0"]
    )

    if raw_template:
        template = replace_generic_blank_placeholders(
            raw_template, extract_generic_blank_ids(raw_template, config_blanks)
        )
    else:
        template = " ".join("{{" + blank_id + "}}" for blank_id in blank_ids)

    blanks = []
    for index, blank_id in enumerate(blank_ids):
        if blank_id in accepted_by_id:
            accepted = accepted_by_id[blank_id]
        else:
            by_id = next((blank for blank in config_blanks if blank["id"] == blank_id), None)
            if by_id:
                accepted = by_id["acceptedAnswers"]
            elif index < len(config_blanks):
                accepted = config_blanks[index]["acceptedAnswers"]
            else:
                accepted = []
        blanks.append({"id": blank_id, "acceptedAnswers": accepted})

    case_sensitive = to_boolean(config.get("caseSensitive"))
    return NormalizedQuestion(
        "fill_blank",
        {
            "template": template,
            "blanks": blanks,
            "caseSensitive": case_sensitive if case_sensitive is not None else False,
        },
        {"blanks": {blank["id"]: blank["acceptedAnswers"] for blank in blanks}},
    )


def _normalize_multi_select(config, answer_data):
    option_list = unique_strings(to_string_array(first_present(config, "options", "choices")))
    if isinstance(answer_data.get("correctIndices"), list):
        raw_indices = answer_data["correctIndices"]
    elif isinstance(answer_data.get("indices"), list):
        raw_indices = answer_data["indices"]
    else:
        raw_indices = []

    correct_indices = []
    for value in raw_indices:
        number = to_number(value)
        if number is None:
            continue
        index = round_half_up(number)
        if 0 <= index < len(option_list) and index not in correct_indices:
            correct_indices.append(index)

    if not correct_indices and isinstance(answer_data.get("correctAnswers"), list):
        for answer_option in to_string_array(answer_data["correctAnswers"]):
            if answer_option in option_list:
                option_index = option_list.index(answer_option)
                if option_index not in correct_indices:
                    correct_indices.append(option_index)

    normalized_config = {"options": option_list}
    shuffle = to_boolean(config.get("shuffleOptions"))
    min_selections = to_number(config.get("minSelections"))
    max_selections = to_number(config.get("maxSelections"))
    if shuffle is not None:
        normalized_config["shuffleOptions"] = shuffle
    if min_selections is not None:
        normalized_config["minSelections"] = max(0, round_half_up(min_selections))
    if max_selections is not None:
        normalized_config["maxSelections"] = max(1, round_half_up(max_selections))

    return NormalizedQuestion("multi_select", normalized_config, {"correctIndices": correct_indices})


def normalize_question_payload(
    question_type: Any = None,
    question_config: Any = None,
    correct_answer_data: Any = None,
    options: Any = None,
    correct_answer: Any = None,
) -> NormalizedQuestion:
    """Fold a loosely shaped quiz question into its canonical form.

    Unknown question types keep their config and answer data; the answer data
    becomes ``None`` when empty.
    """
    slug = normalize_question_type(question_type)
    config = as_record(question_config)
    answer_data = as_record(correct_answer_data)

    if slug not in QUESTION_TYPES:
        logger.info("Passing through question of unknown type %s", slug)
        return NormalizedQuestion(
            slug,
            config,
            answer_data or None,
            options=to_string_array(options) if isinstance(options, list) else None,
            correct_answer=to_number(correct_answer),
        )

    if slug == "multiple_choice":
        return _normalize_multiple_choice(config, answer_data, options, correct_answer)
    if slug == "true_false":
        return _normalize_true_false(config, answer_data, correct_answer)
    if slug == "text_input":
        return _normalize_text_input(config, answer_data)
    if slug == "year_range":
        return _normalize_year_range(config, answer_data, correct_answer)
    if slug == "numeric_range":
        return _normalize_numeric_range(config, answer_data, correct_answer)
    if slug == "matching":
        return _normalize_matching(config, answer_data)
    if slug == "fill_blank":
        return _normalize_fill_blank(config, answer_data)
    return _normalize_multi_select(config, answer_data)
