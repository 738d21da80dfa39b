import pytest

from tools.payload_utils import (
    coalesce,
    detect_one_based_indexing,
    first_present,
    resolve_list_index,
    resolve_list_value,
    round_half_up,
    to_boolean,
    to_number,
    to_string_array,
    to_text,
    unique_strings,
)


def test_to_text_matches_json_rendering():
    assert to_text(None) == ""
    assert to_text(True) == "true"
    assert to_text(2.0) == "2"
    assert to_text(2.5) == "2.5"
    assert to_text("x") == "x"


def test_to_string_array():
    assert to_string_array([" a ", "", None, 3, "b"]) == ["a", "3", "b"]
    assert to_string_array("  solo ") == ["solo"]
    assert to_string_array(7) == ["7"]
    assert to_string_array({"a": 1}) == []
    assert to_string_array(None) == []


@pytest.mark.parametrize(
    "value, expected",
    [(3, 3), ("4", 4), (" 2.5 ", 2.5), ("abc", None), ("", None), (True, None), (float("inf"), None), ("nan", None)],
)
def test_to_number(value, expected):
    assert to_number(value) == expected


def test_to_boolean():
    assert to_boolean(" TRUE ") is True
    assert to_boolean("false") is False
    assert to_boolean(1) is True
    assert to_boolean(0) is False
    assert to_boolean(2) is None
    assert to_boolean("yes") is None


def test_round_half_up_rounds_halves_upwards():
    assert round_half_up(2.5) == 3
    assert round_half_up(-2.5) == -2
    assert round_half_up(1.4) == 1


def test_unique_strings_keeps_first_occurrence():
    assert unique_strings(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


def test_detect_one_based_indexing():
    assert detect_one_based_indexing([[1, 2], [2, 1]], 0, 2) is True
    assert detect_one_based_indexing([[0, 1], [1, 0]], 0, 2) is False
    assert detect_one_based_indexing([["a", "b"]], 0, 2) is False
    assert detect_one_based_indexing([[3, 1]], 0, 2) is False
    assert detect_one_based_indexing([[1, 1]], 0, 0) is False


def test_resolve_list_index():
    assert resolve_list_index(1, 3, True) == 0
    assert resolve_list_index(1, 3, False) == 1
    assert resolve_list_index(3, 3, False) == 2
    assert resolve_list_index(5, 3, False) is None
    assert resolve_list_index("x", 3, False) is None


def test_resolve_list_value_falls_back_to_text():
    values = ["red", "green"]
    assert resolve_list_value(0, values, False) == "red"
    assert resolve_list_value(" blue ", values, False) == "blue"
    assert resolve_list_value("", values, False) is None


def test_coalesce_and_first_present():
    assert coalesce(None, 0, 1) == 0
    assert coalesce(None, None) is None
    assert first_present({"b": "", "c": 1}, "a", "b", "c") == ""
