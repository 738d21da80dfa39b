from datetime import datetime, timezone

from QuizModule.question_normalizer import (
    QUESTION_TYPES,
    normalize_question_payload,
    normalize_question_type,
)


def test_question_type_aliases():
    assert normalize_question_type("MCQ") == "multiple_choice"
    assert normalize_question_type(" Fill-in-the-blank ") == "fill_blank"
    assert normalize_question_type(None) == "multiple_choice"
    assert normalize_question_type("essay") == "essay"


def test_multiple_choice_by_option_text():
    question = normalize_question_payload(
        "multiple_choice", {"choices": ["a", "b", "c"]}, {"correctOption": "c"}
    )
    assert question.question_config == {"options": ["a", "b", "c"], "shuffleOptions": False}
    assert question.correct_answer_data == {"correctIndex": 2}
    assert question.options == ["a", "b", "c"]
    assert question.correct_answer == 2


def test_multiple_choice_legacy_columns_are_clamped():
    question = normalize_question_payload(None, None, None, options=["x", "y"], correct_answer=5)
    assert question.correct_answer_data == {"correctIndex": 1}


def test_true_false():
    assert normalize_question_payload("true_false", {}, {"isTrue": "false"}).correct_answer_data == {
        "correctValue": False
    }
    legacy = normalize_question_payload("true_false", {}, {}, correct_answer=0)
    assert legacy.correct_answer_data == {"correctValue": False}
    default = normalize_question_payload("boolean", None, None)
    assert default.correct_answer_data == {"correctValue": True}
    assert default.question_config == {"trueLabel": "True", "falseLabel": "False"}


def test_text_input():
    question = normalize_question_payload(
        "short_answer",
        {"acceptedKeywords": ["capital"], "maxLength": "20.4"},
        {"exactMatch": "Paris"},
    )
    assert question.question_type == "text_input"
    assert question.question_config == {"caseSensitive": False, "trimWhitespace": True, "maxLength": 20}
    assert question.correct_answer_data == {"acceptedAnswers": ["Paris"], "keywords": ["capital"]}


def test_year_range():
    question = normalize_question_payload("year", {"min": "1900", "toleranceYears": 2.6}, {"year": "1969"})
    assert question.question_config == {"minYear": 1900, "tolerance": 3}
    assert question.correct_answer_data == {"correctYear": 1969}


def test_year_range_defaults_to_current_year():
    question = normalize_question_payload("year_range", {}, {})
    assert question.correct_answer_data == {"correctYear": datetime.now(timezone.utc).year}


def test_numeric_range_percentage_tolerance():
    question = normalize_question_payload(
        "numeric", {"tolerancePercent": 5, "unit": "kg"}, {"value": "12.5"}
    )
    assert question.question_config == {"tolerance": 5, "toleranceType": "percentage", "unit": "kg"}
    assert question.correct_answer_data == {"correctValue": 12.5}


def test_matching_from_pairs():
    question = normalize_question_payload(
        "matching",
        {"pairs": [{"term": "H", "definition": "Hydrogen"}, {"left": "O", "right": "Oxygen"}]},
        {},
    )
    assert question.question_config == {
        "leftColumn": ["H", "O"],
        "rightColumn": ["Hydrogen", "Oxygen"],
        "shuffleRight": True,
    }
    assert question.correct_answer_data == {"correctPairs": {"H": "Hydrogen", "O": "Oxygen"}}


def test_matching_one_based_index_pairs():
    question = normalize_question_payload(
        "matching",
        {"leftColumn": ["A", "B"], "rightColumn": ["x", "y"]},
        {"correctPairs": [[1, 2], [2, 1]]},
    )
    assert question.correct_answer_data == {"correctPairs": {"A": "y", "B": "x"}}


def test_matching_is_idempotent():
    first = normalize_question_payload(
        "matching",
        {"leftColumn": ["1", "2"], "rightColumn": ["2", "1"]},
        {"correctPairs": {"1": "1", "2": "2"}},
    )
    second = normalize_question_payload(
        first.question_type, first.question_config, first.correct_answer_data
    )
    assert first.correct_answer_data == {"correctPairs": {"1": "1", "2": "2"}}
    assert second.to_dict() == first.to_dict()


def test_fill_blank():
    question = normalize_question_payload(
        "fill_blank",
        {"template": "{{blank}} + {{blank}}", "blanks": [{"id": "one", "answers": ["1"]}, {"answer": "2"}]},
        {},
    )
    assert question.question_config == {
        "template": "{{one}} + {{blank_1}}",
        "blanks": [
            {"id": "one", "acceptedAnswers": ["1"]},
            {"id": "blank_1", "acceptedAnswers": ["2"]},
        ],
        "caseSensitive": False,
    }
    assert question.correct_answer_data == {"blanks": {"one": ["1"], "blank_1": ["2"]}}


def test_fill_blank_empty_payload():
    question = normalize_question_payload("fill_blanks", None, None)
    assert question.question_config["template"] == "{{blank_0}}"
    assert question.correct_answer_data == {"blanks": {"blank_0": []}}


def test_multi_select():
    question = normalize_question_payload(
        "multi_select", {"options": ["a", "b", "c"]}, {"correctIndices": [2, "0", 2, 7]}
    )
    assert question.question_config == {"options": ["a", "b", "c"]}
    assert question.correct_answer_data == {"correctIndices": [2, 0]}

    by_text = normalize_question_payload("multi_select", {"options": ["a", "b"]}, {"correctAnswers": ["b"]})
    assert by_text.correct_answer_data == {"correctIndices": [1]}


def test_unknown_type_passes_through():
    question = normalize_question_payload("essay", {"prompt": "Discuss"}, {})
    assert question.to_dict() == {
        "questionType": "essay",
        "questionConfig": {"prompt": "Discuss"},
        "correctAnswerData": None,
        "options": None,
        "correctAnswer": None,
    }


def test_every_known_type_keeps_its_slug():
    for slug in QUESTION_TYPES:
        question = normalize_question_payload(slug, {}, {})
        assert question.question_type == slug
        assert question.correct_answer_data is not None


def test_fill_blank_mixed_template_is_idempotent():
    first = normalize_question_payload(
        "fill_blank",
        {"template": "{{blank}} and {{ x }} {{blank}}", "blanks": [{"id": "a"}]},
        {"blanks": {"x": ["ten"]}},
    )
    assert first.question_config["template"] == "{{a}} and {{ x }} {{blank_1}}"
    assert [blank["id"] for blank in first.question_config["blanks"]] == ["a", "x", "blank_1"]
    assert first.correct_answer_data == {"blanks": {"a": [], "x": ["ten"], "blank_1": []}}

    second = normalize_question_payload("fill_blank", first.question_config, first.correct_answer_data)
    assert second.to_dict() == first.to_dict()
