# src/plantext/engine/bullets.py

"""
Bullet-text codec.

Bullet text is the canonical string form of a list: one item per line,
each line prefixed with "- ". Older documents stored these fields as
arrays of strings; the array form is only a legacy view of the string.

Round-trip guarantees:
- text_to_list(list_to_text(items)) == items for non-empty, newline-free items.
- list_to_text(text_to_list(text)) may differ from `text` when the text
  carries free-form paragraphs or blank lines.
"""

import re
from typing import Any, Final, Iterable


BULLET_PREFIX: Final[str] = "- "

_BULLET_RE = re.compile(r"^-\s*")


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------

def list_to_text(items: Iterable[str] | None) -> str:
    """
    Render items as newline-joined "- item" lines.

    Empty items are skipped; an empty input yields "".
    """
    if not items:
        return ""

    lines: list[str] = []
    for item in items:
        if item is None:
            continue
        s = str(item)
        if not s:
            continue
        lines.append(BULLET_PREFIX + s)

    return "\n".join(lines)


def text_to_list(text: str | None) -> list[str]:
    """
    Split bullet text into items.

    Each line loses an optional leading "-" marker and surrounding
    whitespace; blank lines are dropped.
    """
    if not text:
        return []

    items: list[str] = []
    for raw in text.splitlines():
        item = _BULLET_RE.sub("", raw.strip(), count=1).strip()
        if item:
            items.append(item)

    return items


def coerce_text(value: Any) -> str:
    """
    Accept either representation of a bullet field and return the string.

    Arrays (legacy schema) go through list_to_text; strings pass through
    unchanged; None becomes "".
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return list_to_text([str(v) for v in value if v is not None])
    return str(value)
