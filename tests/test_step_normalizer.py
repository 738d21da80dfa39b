from LessonModule.step_normalizer import (
    DEFAULT_MATCH_INSTRUCTION,
    normalize_lesson_step_payload,
)


def renormalize(step):
    return normalize_lesson_step_payload(step.step_type, step.content, step.answer_data)


def test_drag_match_from_aliases():
    step = normalize_lesson_step_payload(
        "drag_match",
        {"pairs": [{"term": "Cat", "definition": "Meow"}, {"left": "Dog", "right": "Woof"}]},
        None,
    )
    assert step.content == {
        "type": "drag_match",
        "instruction": DEFAULT_MATCH_INSTRUCTION,
        "pairs": [
            {"id": "1", "left": "Cat", "right": "Meow"},
            {"id": "2", "left": "Dog", "right": "Woof"},
        ],
    }
    assert step.answer_data == {"correctPairs": {"1": "Meow", "2": "Woof"}}


def test_drag_match_zero_based_index_pairs():
    step = normalize_lesson_step_payload(
        "drag_match",
        {"instruction": "Match", "pairs": [{"left": "A", "right": "x"}, {"left": "B", "right": "y"}]},
        {"correctPairs": [[0, 0], [1, 1]]},
    )
    assert step.answer_data == {"correctPairs": {"1": "x", "2": "y"}}
    assert step.content["instruction"] == "Match"


def test_drag_match_adds_pair_missing_from_content():
    step = normalize_lesson_step_payload(
        "drag_match",
        {"pairs": [{"left": "A", "right": "x"}]},
        {"correctPairs": {"C": "z"}},
    )
    assert step.content["pairs"] == [
        {"id": "1", "left": "A", "right": "x"},
        {"id": "C", "left": "C", "right": "z"},
    ]
    assert step.answer_data["correctPairs"] == {"1": "x", "C": "z"}


def test_drag_match_drops_incomplete_pairs():
    step = normalize_lesson_step_payload(
        "drag_match", {"pairs": [{"left": "A", "right": ""}, {"left": "B", "right": "y"}]}, {}
    )
    assert [pair["left"] for pair in step.content["pairs"]] == ["B"]


def test_drag_match_is_idempotent():
    step = normalize_lesson_step_payload(
        "drag_match",
        {"leftItems": ["A", "B"], "rightItems": ["x", "y"]},
        None,
    )
    again = renormalize(step)
    assert again.content == step.content
    assert again.answer_data == step.answer_data


def test_fill_blanks_materializes_generic_placeholders():
    step = normalize_lesson_step_payload(
        "fill_blanks",
        {
            "text": "{{blank}} is the capital of {{blank}}",
            "blanks": [{"answer": "Paris"}, {"answers": ["France", " FR ", "France"]}],
        },
        None,
    )
    assert step.content == {
        "type": "fill_blanks",
        "template": "{{b1}} is the capital of {{b2}}",
        "blanks": [
            {"id": "b1", "acceptedAnswers": ["Paris"]},
            {"id": "b2", "acceptedAnswers": ["France", "FR"]},
        ],
    }
    assert step.answer_data == {"correctBlanks": {"b1": ["Paris"], "b2": ["France", "FR"]}}


def test_fill_blanks_answer_key_overrides_definitions():
    step = normalize_lesson_step_payload(
        "fill_blanks",
        {"template": "{{city}}", "blanks": [{"id": "city", "acceptedAnswers": ["Rome"]}]},
        {"correctBlanks": {"city": ["Paris"]}},
    )
    assert step.answer_data == {"correctBlanks": {"city": ["Paris"]}}


def test_fill_blanks_synthesizes_template():
    step = normalize_lesson_step_payload("fill_blanks", {"blanks": []}, {"correctBlanks": {"x": ["1"]}})
    assert step.content["template"] == "{{x}}"
    assert step.content["blanks"] == [{"id": "x", "acceptedAnswers": ["1"]}]


def test_fill_blanks_empty_payload_gets_one_blank():
    step = normalize_lesson_step_payload("fill_blanks", None, None)
    assert step.content["template"] == "{{b1}}"
    assert step.answer_data == {"correctBlanks": {"b1": []}}


def test_fill_blanks_is_idempotent():
    step = normalize_lesson_step_payload(
        "fill_blanks",
        {"template": "{{blank}} and {{named}}", "blanks": [{"answer": "a"}, {"id": "named", "answer": "b"}]},
        None,
    )
    again = renormalize(step)
    assert again.content == step.content
    assert again.answer_data == step.answer_data


def test_type_answer():
    step = normalize_lesson_step_payload(
        "type_answer",
        {"question": "Formula of water?", "caseSensitive": "yes", "placeholder": "type here"},
        {"answers": ["H2O", "h2o", "H2O"]},
    )
    assert step.content == {
        "type": "type_answer",
        "question": "Formula of water?",
        "caseSensitive": False,
        "placeholder": "type here",
    }
    assert step.answer_data == {"acceptedAnswers": ["H2O", "h2o"]}


def test_other_step_types_pass_through():
    content = {"type": "explanation", "markdown": "# Hi"}
    step = normalize_lesson_step_payload("explanation", content, None)
    assert step.content is content
    assert step.answer_data is None
    assert step.to_dict() == {"stepType": "explanation", "content": content, "answerData": None}


def test_fill_blanks_mixed_template_is_idempotent():
    step = normalize_lesson_step_payload(
        "fill_blanks",
        {"template": "{{blank}} and {{ x }} {{blank}}", "blanks": [{"id": "a"}]},
        {"correctBlanks": {"x": ["ten"]}},
    )
    assert step.content["template"] == "{{a}} and {{ x }} {{blank_1}}"
    assert [blank["id"] for blank in step.content["blanks"]] == ["a", "x", "blank_1"]

    again = renormalize(step)
    assert again.content == step.content
    assert again.answer_data == step.answer_data
