from __future__ import annotations

import math
from typing import Any, Sequence


def to_text(value: Any) -> str:
    """String form of a JSON scalar, with ``None`` as ``""``."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def as_record(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def to_string_array(value: Any) -> list[str]:
    """Coerce a list or scalar into a list of non-empty stripped strings."""
    if isinstance(value, (list, tuple)):
        items = [to_text(item).strip() for item in value]
        return [item for item in items if item]
    if isinstance(value, str) or is_number(value):
        normalized = to_text(value).strip()
        return [normalized] if normalized else []
    return []


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_number(value: Any) -> int | float | None:
    if is_number(value):
        return value if math.isfinite(value) else None
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            parsed = float(text)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def to_boolean(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized == "true":
            return True
        if normalized == "false":
            return False
    if is_number(value):
        if value == 1:
            return True
        if value == 0:
            return False
    return None


def round_half_up(value: float) -> int:
    """Round like JavaScript's ``Math.round``: halves go towards +infinity."""
    return math.floor(value + 0.5)


def unique_strings(values: Sequence[str]) -> list[str]:
    seen = set()
    result = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


def detect_one_based_indexing(raw_pairs: Sequence[Any], position: int, list_length: int) -> bool:
    """Guess whether ``[left, right]`` index pairs were written one-based.

    True only when every numeric entry at ``position`` lies within
    ``1..list_length`` and none of them is zero.
    """
    if list_length <= 0:
        return False
    numeric_values = []
    for entry in raw_pairs:
        if not isinstance(entry, (list, tuple)) or len(entry) <= position:
            continue
        number = to_number(entry[position])
        if number is not None:
            numeric_values.append(round_half_up(number))

    if not numeric_values:
        return False
    has_zero = any(value == 0 for value in numeric_values)
    all_within_one_based = all(1 <= value <= list_length for value in numeric_values)
    return all_within_one_based and not has_zero


def resolve_list_index(value: Any, list_length: int, prefer_one_based: bool) -> int | None:
    number = to_number(value)
    if number is None or list_length <= 0:
        return None

    rounded = round_half_up(number)
    if prefer_one_based and 1 <= rounded <= list_length:
        return rounded - 1
    if 0 <= rounded < list_length:
        return rounded
    if not prefer_one_based and 1 <= rounded <= list_length:
        return rounded - 1
    return None


def resolve_list_value(value: Any, values: Sequence[str], prefer_one_based: bool) -> str | None:
    index = resolve_list_index(value, len(values), prefer_one_based)
    if index is not None and index < len(values):
        return values[index]
    text = to_text(value).strip()
    return text or None


def coalesce(*values: Any) -> Any:
    """Return the first value that is not ``None``."""
    for value in values:
        if value is not None:
            return value
    return None


def first_present(record: dict, *keys: str) -> Any:
    """Return the first value stored under ``keys`` that is not ``None``."""
    return coalesce(*(record.get(key) for key in keys))
