"""Normalization of lesson step payloads.

Steps arrive from editors, shared links and LLM generation in many loose
shapes.  ``normalize_lesson_step_payload`` maps them onto the canonical
content/answer-data pair stored with a step.  Normalizing a payload that is
already canonical yields the same payload.
"""
from __future__ import annotations

import logging
from typing import Any

from LessonModule.fill_blank_template import (
    extract_fill_blank_ids,
    extract_generic_blank_ids,
    replace_generic_blank_placeholders,
)
from tools.payload_utils import (
    as_record,
    detect_one_based_indexing,
    first_present,
    resolve_list_index,
    to_string_array,
    to_text,
    unique_strings,
)

logger = logging.getLogger(__name__)

DEFAULT_MATCH_INSTRUCTION = "Match each item with its definition"


class NormalizedLessonStep:
    """Canonical ``(step_type, content, answer_data)`` triple for one step."""

    def __init__(self, step_type: str, content: Any, answer_data: Any):
        self.step_type = step_type
        self.content = content
        self.answer_data = answer_data

    def to_dict(self):
        return {
            "stepType": self.step_type,
            "content": self.content,
            "answerData": self.answer_data,
        }


def _normalize_drag_match(content: dict, answer_data: dict) -> tuple[dict, dict]:
    raw_pairs = content.get("pairs")
    if not isinstance(raw_pairs, list):
        raw_pairs = content.get("items") if isinstance(content.get("items"), list) else []

    pairs = []
    for index, pair in enumerate(raw_pairs):
        raw_pair = as_record(pair)
        raw_id = raw_pair.get("id")
        pairs.append(
            {
                "id": to_text(raw_id) if raw_id is not None else str(index + 1),
                "left": to_text(
                    first_present(raw_pair, "left", "term", "concept", "title")
                ).strip(),
                "right": to_text(
                    first_present(raw_pair, "right", "definition", "match", "value", "explanation")
                ).strip(),
            }
        )
    pairs = [pair for pair in pairs if pair["left"] or pair["right"]]

    if not pairs:
        left_items = to_string_array(content.get("leftItems"))
        right_items = to_string_array(content.get("rightItems"))
        pairs = [
            {
                "id": str(index + 1),
                "left": left,
                "right": right_items[index] if index < len(right_items) else "",
            }
            for index, left in enumerate(left_items)
        ]

    right_pool = [pair["right"] for pair in pairs if pair["right"]]
    right_pool += to_string_array(content.get("rightItems"))

    raw_correct_pairs = first_present(answer_data, "correctPairs", "pairs")
    raw_correct_list = raw_correct_pairs if isinstance(raw_correct_pairs, list) else []
    use_one_based_left = detect_one_based_indexing(raw_correct_list, 0, len(pairs))
    use_one_based_right = detect_one_based_indexing(raw_correct_list, 1, len(right_pool))

    correct_pairs = {}
    if isinstance(raw_correct_pairs, list):
        for entry in raw_correct_pairs:
            if isinstance(entry, (list, tuple)) and len(entry) >= 2:
                left_index = resolve_list_index(entry[0], len(pairs), use_one_based_left)
                right_index = resolve_list_index(entry[1], len(right_pool), use_one_based_right)

                if left_index is not None:
                    pair_id = pairs[left_index]["id"]
                else:
                    left_text = to_text(entry[0]).strip()
                    found = next(
                        (pair for pair in pairs if left_text in (pair["id"], pair["left"])),
                        None,
                    )
                    pair_id = (found["id"] if found and found["id"] else None) or left_text or None

                if right_index is not None:
                    right_text = right_pool[right_index]
                else:
                    right_text = to_text(entry[1]).strip()

                if pair_id and right_text:
                    correct_pairs[pair_id] = right_text
                continue

            raw_pair = as_record(entry)
            left_text = to_text(first_present(raw_pair, "left", "leftId", "from")).strip()
            right_text = to_text(first_present(raw_pair, "right", "rightText", "to")).strip()
            if left_text and right_text:
                correct_pairs[left_text] = right_text
    elif isinstance(raw_correct_pairs, dict):
        known_keys = {pair["id"] for pair in pairs} | {pair["left"] for pair in pairs}
        for raw_left, raw_right in raw_correct_pairs.items():
            left_text = to_text(raw_left).strip()
            right_text = to_text(raw_right).strip()
            # Keys naming an existing pair or right-hand text take precedence
            # over positional index reads.
            if left_text in known_keys:
                left_key = left_text
            else:
                left_index = resolve_list_index(raw_left, len(pairs), use_one_based_left)
                left_key = pairs[left_index]["id"] if left_index is not None else left_text
            if right_text in right_pool:
                right_value = right_text
            else:
                right_index = resolve_list_index(raw_right, len(right_pool), use_one_based_right)
                right_value = right_pool[right_index] if right_index is not None else right_text
            if left_key and right_value:
                correct_pairs[left_key] = right_value

    reconciled = {}
    for raw_key, right_text in correct_pairs.items():
        if not right_text:
            continue
        by_id = next((pair for pair in pairs if pair["id"] == raw_key), None)
        if by_id:
            reconciled[by_id["id"]] = right_text
            continue
        by_left = next((pair for pair in pairs if pair["left"] == raw_key), None)
        if by_left:
            reconciled[by_left["id"]] = right_text
            continue

        generated_id = raw_key or str(len(pairs) + 1)
        logger.info("Adding drag_match pair %s missing from content", generated_id)
        pairs.append({"id": generated_id, "left": raw_key or generated_id, "right": right_text})
        reconciled[generated_id] = right_text

    pairs = [
        dict(pair, right=pair["right"] or reconciled.get(pair["id"], ""))
        for pair in pairs
    ]
    pairs = [pair for pair in pairs if pair["left"].strip() and pair["right"].strip()]

    for pair in pairs:
        if not reconciled.get(pair["id"]):
            reconciled[pair["id"]] = pair["right"]

    normalized_content = {
        "type": "drag_match",
        "instruction": to_text(
            content["instruction"] if content.get("instruction") is not None else DEFAULT_MATCH_INSTRUCTION
        ),
        "pairs": pairs,
    }
    return normalized_content, {"correctPairs": reconciled}


def _normalize_fill_blanks(content: dict, answer_data: dict) -> tuple[dict, dict]:
    raw_template = to_text(first_present(content, "template", "text")).strip()
    raw_blanks = content.get("blanks") if isinstance(content.get("blanks"), list) else []

    accepted_by_id = {}
    blank_definitions = []
    for index, blank in enumerate(raw_blanks):
        raw_blank = as_record(blank)
        raw_id = raw_blank.get("id")
        blank_id = (to_text(raw_id) if raw_id is not None else f"b{index + 1}").strip()
        accepted_answers = unique_strings(
            to_string_array(first_present(raw_blank, "acceptedAnswers", "answers", "answer"))
        )
        if blank_id:
            accepted_by_id[blank_id] = accepted_answers
        blank_definitions.append({"id": blank_id, "acceptedAnswers": accepted_answers})

    raw_correct_blanks = as_record(first_present(answer_data, "correctBlanks", "blanks"))
    for blank_id, answers in raw_correct_blanks.items():
        accepted_by_id[blank_id] = unique_strings(to_string_array(answers))

    blank_ids = extract_fill_blank_ids(raw_template, blank_definitions)
    if not blank_ids:
        blank_ids = [blank["id"] for blank in blank_definitions]
    if not blank_ids:
        blank_ids = list(accepted_by_id)
    if not blank_ids:
        blank_ids = ["b1"]

    if raw_template:
        template = replace_generic_blank_placeholders(
            raw_template, extract_generic_blank_ids(raw_template, blank_definitions)
        )
    else:
        logger.info("fill_blanks step without template, synthesizing one for %d blanks", len(blank_ids))
        template = " ".join("{{" + blank_id + "}}" for blank_id in blank_ids)

    blanks = []
    for index, blank_id in enumerate(blank_ids):
        if blank_id in accepted_by_id:
            accepted = accepted_by_id[blank_id]
        else:
            by_id = next((blank for blank in blank_definitions if blank["id"] == blank_id), None)
            if by_id:
                accepted = by_id["acceptedAnswers"]
            elif index < len(blank_definitions):
                accepted = blank_definitions[index]["acceptedAnswers"]
            else:
                accepted = []
        blanks.append({"id": blank_id, "acceptedAnswers": accepted})

    correct_blanks = {blank["id"]: blank["acceptedAnswers"] for blank in blanks}
    return (
        {"type": "fill_blanks", "template": template, "blanks": blanks},
        {"correctBlanks": correct_blanks},
    )


def _normalize_type_answer(content: dict, answer_data: dict) -> tuple[dict, dict]:
    accepted_answers = unique_strings(
        to_string_array(first_present(answer_data, "acceptedAnswers", "answers", "correctAnswers"))
    )
    normalized_content = {
        "type": "type_answer",
        "question": to_text(content.get("question")),
        "caseSensitive": content.get("caseSensitive") if isinstance(content.get("caseSensitive"), bool) else False,
    }
    if isinstance(content.get("placeholder"), str):
        normalized_content["placeholder"] = content["placeholder"]
    return normalized_content, {"acceptedAnswers": accepted_answers}


_NORMALIZERS = {
    "drag_match": _normalize_drag_match,
    "fill_blanks": _normalize_fill_blanks,
    "type_answer": _normalize_type_answer,
}


def normalize_lesson_step_payload(step_type: str, content: Any, answer_data: Any) -> NormalizedLessonStep:
    """Return the canonical content and answer data for a lesson step.

    ``drag_match``, ``fill_blanks`` and ``type_answer`` steps are rebuilt from
    whatever aliases the payload uses; every other step type passes through.
    """
    normalizer = _NORMALIZERS.get(step_type)
    if normalizer is None:
        return NormalizedLessonStep(step_type, content, answer_data)

    normalized_content, normalized_answer_data = normalizer(as_record(content), as_record(answer_data))
    return NormalizedLessonStep(step_type, normalized_content, normalized_answer_data)
