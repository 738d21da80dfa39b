"""Grading of quiz answers, with partial credit where the question type allows it."""
from __future__ import annotations

import math
from typing import Any

from tools.payload_utils import as_record, is_number, to_number, to_string_array, to_text


class ValidationResult:
    def __init__(self, is_correct: bool, credit_percent: float, feedback: str | None = None):
        self.is_correct = is_correct
        self.credit_percent = credit_percent  # 0-100
        self.feedback = feedback

    def to_dict(self):
        data = {"isCorrect": self.is_correct, "creditPercent": self.credit_percent}
        if self.feedback is not None:
            data["feedback"] = self.feedback
        return data

    def __repr__(self):
        return f"ValidationResult({self.is_correct!r}, {self.credit_percent!r}, {self.feedback!r})"


def _invalid_format() -> ValidationResult:
    return ValidationResult(False, 0, "Invalid answer format")


def _correct() -> ValidationResult:
    return ValidationResult(True, 100)


def _answer_field(user_answer: Any, key: str, scalar_types: tuple) -> Any:
    """Pull ``key`` out of a dict answer, or accept a bare legacy scalar."""
    if isinstance(user_answer, scalar_types) and not isinstance(user_answer, dict):
        return user_answer
    if isinstance(user_answer, dict) and key in user_answer:
        return user_answer[key]
    return None


def _plural_years(difference: float) -> str:
    return f"Off by {difference:g} year{'s' if difference > 1 else ''}"


def _validate_multiple_choice(user_answer, answer_data, config):
    if is_number(user_answer):
        selected_index = user_answer
    elif isinstance(user_answer, dict) and "selectedIndex" in user_answer:
        selected_index = user_answer["selectedIndex"]
    else:
        return _invalid_format()
    is_correct = selected_index == answer_data.get("correctIndex")
    return ValidationResult(is_correct, 100 if is_correct else 0)


def _validate_true_false(user_answer, answer_data, config):
    if isinstance(user_answer, bool):
        selected_value = user_answer
    elif isinstance(user_answer, dict) and "selectedValue" in user_answer:
        selected_value = user_answer["selectedValue"]
    else:
        return _invalid_format()

    if isinstance(answer_data.get("correctValue"), bool):
        expected = answer_data["correctValue"]
    elif isinstance(answer_data.get("isTrue"), bool):
        expected = answer_data["isTrue"]
    else:
        expected = False
    is_correct = selected_value == expected
    return ValidationResult(is_correct, 100 if is_correct else 0)


def _validate_text_input(user_answer, answer_data, config):
    user_text = _answer_field(user_answer, "text", (str,))
    if not isinstance(user_text, str):
        return _invalid_format()

    accepted_answers = answer_data.get("acceptedAnswers")
    accepted_answers = accepted_answers if isinstance(accepted_answers, list) else []
    keywords = answer_data.get("keywords")
    keywords = keywords if isinstance(keywords, list) else []

    if config.get("trimWhitespace") is not False:
        user_text = user_text.strip()

    def normalize(text):
        text = to_text(text)
        return text if config.get("caseSensitive") else text.lower()

    normalized_user_text = normalize(user_text)
    if any(normalize(accepted) == normalized_user_text for accepted in accepted_answers):
        return _correct()

    if keywords:
        matched = [keyword for keyword in keywords if normalize(keyword) in normalized_user_text]
        threshold = to_number(answer_data.get("keywordMatchThreshold")) or math.ceil(len(keywords) / 2)
        if len(matched) >= threshold:
            # Keyword matches never earn more than 75%.
            credit = min(len(matched) / len(keywords) * 100, 75)
            return ValidationResult(
                False,
                credit,
                f"Partial credit: matched {len(matched)} of {len(keywords)} key concepts",
            )

    return ValidationResult(False, 0)


def _ranges_by_tolerance(answer_data):
    ranges = answer_data.get("partialCreditRanges")
    if not isinstance(ranges, list):
        return []
    parsed = []
    for entry in ranges:
        entry = as_record(entry)
        tolerance = to_number(entry.get("tolerance"))
        if tolerance is None:
            continue
        parsed.append(
            {
                "tolerance": tolerance,
                "creditPercent": to_number(entry.get("creditPercent")) or 0,
                "toleranceType": entry.get("toleranceType"),
            }
        )
    return sorted(parsed, key=lambda entry: entry["tolerance"])


def _expected_number(answer_data, keys):
    for key in keys:
        if answer_data.get(key) is not None:
            return to_number(answer_data[key])
    return None


def _user_number(user_answer, key):
    value = _answer_field(user_answer, key, (int, float))
    return to_number(value) if is_number(value) else None


def _validate_year_range(user_answer, answer_data, config):
    user_year = _user_number(user_answer, "year")
    if user_year is None:
        return _invalid_format()

    min_year = to_number(config.get("minYear"))
    max_year = to_number(config.get("maxYear"))
    if min_year is not None and user_year < min_year:
        return ValidationResult(False, 0, f"Year must be at least {min_year}")
    if max_year is not None and user_year > max_year:
        return ValidationResult(False, 0, f"Year must be at most {max_year}")

    expected = _expected_number(answer_data, ("correctYear", "exactYear", "year"))
    if expected is None:
        return ValidationResult(False, 0, "No correct year configured")

    difference = abs(user_year - expected)
    if difference == 0:
        return _correct()

    for credit_range in _ranges_by_tolerance(answer_data):
        if difference <= credit_range["tolerance"]:
            return ValidationResult(False, credit_range["creditPercent"], _plural_years(difference))

    tolerance = to_number(config.get("tolerance")) or 0
    if tolerance > 0 and difference <= tolerance:
        credit = max(0, 100 - (difference / tolerance) * 50)
        return ValidationResult(False, credit, _plural_years(difference))

    return ValidationResult(False, 0, f"The correct year was {expected}")


def _validate_numeric_range(user_answer, answer_data, config):
    user_value = _user_number(user_answer, "value")
    if user_value is None:
        return _invalid_format()

    minimum = to_number(config.get("min"))
    maximum = to_number(config.get("max"))
    if minimum is not None and user_value < minimum:
        return ValidationResult(False, 0, f"Value must be at least {minimum}")
    if maximum is not None and user_value > maximum:
        return ValidationResult(False, 0, f"Value must be at most {maximum}")

    expected = _expected_number(answer_data, ("correctValue", "exactValue", "value"))
    if expected is None:
        return ValidationResult(False, 0, "No correct value configured")

    difference = abs(user_value - expected)
    if difference < 0.0001:
        return _correct()

    for credit_range in _ranges_by_tolerance(answer_data):
        tolerance_value = credit_range["tolerance"]
        if credit_range.get("toleranceType") == "percentage":
            tolerance_value = tolerance_value / 100 * abs(expected)
        if difference <= tolerance_value:
            return ValidationResult(
                False, credit_range["creditPercent"], f"Close! Off by {difference:.2f}"
            )

    tolerance = to_number(config.get("tolerance")) or 0
    if tolerance > 0:
        tolerance_value = tolerance
        if config.get("toleranceType") == "percentage":
            tolerance_value = tolerance / 100 * abs(expected)
        if tolerance_value > 0 and difference <= tolerance_value:
            credit = max(0, 100 - (difference / tolerance_value) * 50)
            return ValidationResult(False, credit, f"Close! Off by {difference:.2f}")

    unit = f" {config['unit']}" if config.get("unit") else ""
    return ValidationResult(False, 0, f"The correct answer was {expected}{unit}")


def _validate_matching(user_answer, answer_data, config):
    if not isinstance(user_answer, dict) or "pairs" not in user_answer:
        return _invalid_format()

    user_pairs = as_record(user_answer.get("pairs"))
    correct_pairs = as_record(answer_data.get("correctPairs"))
    left_column = config.get("leftColumn")
    if isinstance(left_column, list) and left_column:
        total_pairs = len(left_column)
    else:
        total_pairs = len(correct_pairs)

    if total_pairs == 0:
        return ValidationResult(False, 0, "No matching pairs configured")

    correct_count = sum(
        1 for left, right in user_pairs.items() if left in correct_pairs and correct_pairs[left] == right
    )
    if correct_count == total_pairs:
        return _correct()

    if answer_data.get("partialCreditPerPair") is not False and correct_count > 0:
        return ValidationResult(
            False,
            correct_count / total_pairs * 100,
            f"{correct_count} of {total_pairs} pairs correct",
        )
    return ValidationResult(False, 0)


def _validate_fill_blank(user_answer, answer_data, config):
    if not isinstance(user_answer, dict) or "blanks" not in user_answer or "acceptedAnswers" in user_answer:
        return _invalid_format()

    user_blanks = as_record(user_answer.get("blanks"))
    correct_blanks = as_record(answer_data.get("blanks"))
    total_blanks = len(correct_blanks)
    if total_blanks == 0:
        return ValidationResult(False, 0, "No blanks configured")

    def normalize(text):
        text = to_text(text).strip()
        return text if config.get("caseSensitive") else text.lower()

    correct_count = 0
    for blank_id, accepted_answers in correct_blanks.items():
        user_value = user_blanks.get(blank_id)
        if not user_value:
            continue
        normalized_user = normalize(user_value)
        if any(normalize(accepted) == normalized_user for accepted in to_string_array(accepted_answers)):
            correct_count += 1

    if correct_count == total_blanks:
        return _correct()
    if correct_count > 0:
        return ValidationResult(
            False,
            correct_count / total_blanks * 100,
            f"{correct_count} of {total_blanks} blanks correct",
        )
    return ValidationResult(False, 0)


def _index_set(values) -> set:
    if not isinstance(values, list):
        return set()
    return {number for number in map(to_number, values) if number is not None}


def _validate_multi_select(user_answer, answer_data, config):
    if not isinstance(user_answer, dict) or not isinstance(user_answer.get("selectedIndices"), list):
        return _invalid_format()

    selected = _index_set(user_answer["selectedIndices"])
    correct = _index_set(answer_data.get("correctIndices"))

    correct_selections = len(selected & correct)
    incorrect_selections = len(selected - correct)
    missed = len(correct) - correct_selections

    if correct_selections == len(correct) and incorrect_selections == 0:
        return _correct()

    if answer_data.get("partialCredit") is not False and correct:
        # Each wrong or missed option costs half a point.
        penalties = incorrect_selections + missed
        credit = max(0, (correct_selections - penalties * 0.5) / len(correct) * 100)
        return ValidationResult(
            False,
            credit,
            f"{correct_selections} correct, {incorrect_selections} incorrect, {missed} missed",
        )

    return ValidationResult(
        False, 0, f"Selected {correct_selections} of {len(correct)} correct options"
    )


_VALIDATORS = {
    "multiple_choice": _validate_multiple_choice,
    "true_false": _validate_true_false,
    "text_input": _validate_text_input,
    "year_range": _validate_year_range,
    "numeric_range": _validate_numeric_range,
    "matching": _validate_matching,
    "fill_blank": _validate_fill_blank,
    "multi_select": _validate_multi_select,
}


def validate_answer(
    question_type: str,
    user_answer: Any,
    correct_answer_data: Any,
    config: Any = None,
    partial_credit_enabled: bool = True,
) -> ValidationResult:
    """Grade ``user_answer`` against a question's answer data.

    Args:
        question_type: normalized question type slug.
        user_answer: the answer as submitted; legacy scalars are accepted for
            multiple choice, true/false, text, year and numeric questions.
        correct_answer_data: answer key produced by the question normalizer.
        config: question config produced by the question normalizer.
        partial_credit_enabled: when false, partial results score 0.

    Returns:
        A :class:`ValidationResult`.
    """
    if user_answer is None:
        return ValidationResult(False, 0, "No answer provided")
    if correct_answer_data is None:
        return ValidationResult(False, 0, "No correct answer configured")

    validator = _VALIDATORS.get(question_type)
    if validator is None:
        return ValidationResult(False, 0, "Unknown question type")

    result = validator(user_answer, as_record(correct_answer_data), as_record(config))
    if not partial_credit_enabled and not result.is_correct and result.credit_percent > 0:
        result.credit_percent = 0
    return result


def validate_legacy_answer(user_answer: Any, correct_answer: int) -> ValidationResult:
    """Grade an index-based answer to a legacy multiple-choice question."""
    if user_answer is None:
        return ValidationResult(False, 0, "No answer provided")
    is_correct = user_answer == correct_answer
    return ValidationResult(is_correct, 100 if is_correct else 0)
