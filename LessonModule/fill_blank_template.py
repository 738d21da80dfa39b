"""Fill-in-the-blank template parsing.

Templates mark answer slots with double-curly-brace placeholders, e.g.
``"Paris is the {{capital}} of France."``.  The helpers here turn such a
template into an ordered list of text and blank parts, derive the ordered
blank ids used for the answer key, and rewrite generic ``{{blank}}``
placeholders into explicit ids.

Every function is total: malformed or unexpected input degrades to literal
text or a best-effort identifier instead of raising.
"""
from __future__ import annotations

import re
from enum import Enum
from functools import reduce
from itertools import count
from typing import Any, Container, Iterable, Mapping

from tools.payload_utils import to_text

PLACEHOLDER_PATTERN = re.compile(r"\{\{([^}]+)\}\}")
BLANK_TOKEN_PATTERN = re.compile(r"^blank(?:[_-]?\d+)?$", re.IGNORECASE)
GENERIC_PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*blank\s*\}\}", re.IGNORECASE)


class TokenKind(Enum):
    """How a placeholder token resolves, in precedence order."""

    GENERIC = "generic"
    LIST_MATCH = "list_match"
    BLANK_SHAPED = "blank_shaped"
    OTHER = "other"
    EMPTY = "empty"


class TemplatePart:
    """A literal text run or a reference to one blank."""

    TEXT = "text"
    BLANK = "blank"

    def __init__(self, part_type: str, content: str = "", blank_id: str | None = None):
        self.type = part_type
        self.content = content
        self.blank_id = blank_id

    @classmethod
    def text(cls, content: str) -> "TemplatePart":
        return cls(cls.TEXT, content=content)

    @classmethod
    def blank(cls, blank_id: str) -> "TemplatePart":
        return cls(cls.BLANK, content="", blank_id=blank_id)

    @property
    def is_blank(self) -> bool:
        return self.type == self.BLANK

    def to_dict(self) -> dict:
        data = {"type": self.type, "content": self.content}
        if self.is_blank:
            data["blankId"] = self.blank_id
        return data

    def __eq__(self, other):
        if not isinstance(other, TemplatePart):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        if self.is_blank:
            return f"TemplatePart.blank({self.blank_id!r})"
        return f"TemplatePart.text({self.content!r})"


def _blank_id_of(blank: Any) -> str:
    """Read the ``id`` of a blank given as a mapping or an object."""
    if isinstance(blank, Mapping):
        value = blank.get("id")
    else:
        value = getattr(blank, "id", None)
    return "" if value is None else str(value)


def _coerce_template(template: Any) -> str:
    if isinstance(template, str):
        return template
    return to_text(template)


def is_blank_token(token: str) -> bool:
    """Return ``True`` for tokens shaped like ``blank``, ``blank_2`` or ``blank-10``."""
    return bool(BLANK_TOKEN_PATTERN.match(token.strip()))


def classify_token(token: str, known_ids: Container[str]) -> TokenKind:
    """Classify a placeholder token; the first matching rule wins."""
    token = token.strip()
    if token.lower() == "blank":
        return TokenKind.GENERIC
    if token and token in known_ids:
        return TokenKind.LIST_MATCH
    if is_blank_token(token):
        return TokenKind.BLANK_SHAPED
    if token:
        return TokenKind.OTHER
    return TokenKind.EMPTY


def _resolve_blank_id(
    token: str, kind: TokenKind, blank_ids: list[str], generic_index: int
) -> str | None:
    if kind is TokenKind.GENERIC:
        if generic_index < len(blank_ids) and blank_ids[generic_index]:
            return blank_ids[generic_index]
        return f"blank_{generic_index}"
    if kind is TokenKind.EMPTY:
        return None
    # LIST_MATCH, BLANK_SHAPED and OTHER all resolve to the token itself.
    return token


def parse_fill_blank_template(
    template: Any, blanks: Iterable[Any] | None = None
) -> list[TemplatePart]:
    """Split ``template`` into text and blank parts.

    Args:
        template: template text; non-strings are coerced, ``None`` is empty.
        blanks: ordered blank definitions (mappings or objects with ``id``).

    Returns:
        A non-empty list of :class:`TemplatePart` in scan order.
    """
    source = _coerce_template(template)
    blank_ids = [_blank_id_of(blank) for blank in (blanks or [])]
    known_ids = set(blank_ids)

    def step(state, match):
        parts, cursor, generic_index = state
        if match.start() > cursor:
            parts.append(TemplatePart.text(source[cursor : match.start()]))

        token = match.group(1).strip()
        kind = classify_token(token, known_ids)
        blank_id = _resolve_blank_id(token, kind, blank_ids, generic_index)
        if blank_id:
            parts.append(TemplatePart.blank(blank_id))
        else:
            parts.append(TemplatePart.text(match.group(0)))

        if kind is TokenKind.GENERIC:
            generic_index += 1
        return parts, match.end(), generic_index

    parts, cursor, _ = reduce(step, PLACEHOLDER_PATTERN.finditer(source), ([], 0, 0))

    if cursor < len(source):
        parts.append(TemplatePart.text(source[cursor:]))

    return parts or [TemplatePart.text(source)]


def extract_fill_blank_ids(template: Any, blanks: Iterable[Any] | None = None) -> list[str]:
    """Return the distinct blank ids of ``template`` in first-occurrence order."""
    seen = set()
    ordered_ids = []
    for part in parse_fill_blank_template(template, blanks):
        if not part.is_blank or not part.blank_id or part.blank_id in seen:
            continue
        seen.add(part.blank_id)
        ordered_ids.append(part.blank_id)
    return ordered_ids


def extract_generic_blank_ids(template: Any, blanks: Iterable[Any] | None = None) -> list[str]:
    """Return the ids the generic ``{{blank}}`` placeholders resolve to, in order.

    Feeding this list to :func:`replace_generic_blank_placeholders` rewrites
    each generic placeholder to the id the parser gives it.
    """
    blank_ids = [_blank_id_of(blank) for blank in (blanks or [])]
    generic_count = len(GENERIC_PLACEHOLDER_PATTERN.findall(_coerce_template(template)))
    return [
        _resolve_blank_id("blank", TokenKind.GENERIC, blank_ids, index)
        for index in range(generic_count)
    ]


def replace_generic_blank_placeholders(template: Any, blank_ids: Iterable[Any]) -> str:
    """Rewrite each ``{{blank}}`` to ``{{<id>}}`` using ``blank_ids`` positionally.

    Positions past the end of ``blank_ids`` (or holding an empty id) become
    ``blank_<index>``.
    """
    ids = [("" if value is None else str(value)) for value in (blank_ids or [])]
    counter = count()

    def replacer(_match):
        index = next(counter)
        blank_id = ids[index] if index < len(ids) and ids[index] else f"blank_{index}"
        return "{{" + blank_id + "}}"

    return GENERIC_PLACEHOLDER_PATTERN.sub(replacer, _coerce_template(template))


def render_fill_blank_template(parts: Iterable[TemplatePart]) -> str:
    """Rebuild template text from parts, writing blanks as ``{{<id>}}``."""
    return "".join(
        "{{" + part.blank_id + "}}" if part.is_blank else part.content for part in parts
    )
