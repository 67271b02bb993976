# src/plantext/engine/grammar.py

"""
Section grammar shared by the text formats.

Every editable document is read by a single-pass line scanner that keeps
a current section, an optional subsection, and a buffer of captured
lines. When a recognised header closes a section, the buffer is
finalised (blank runs collapsed, edge blanks trimmed) and handed to the
field mapped to that section.

Two capture modes exist:
- indented: a fixed indent prefix is stripped; other indented lines lose
  their leading whitespace; unindented lines are kept verbatim.
- freeform: lines are kept verbatim; blank lines only once content began.

Header recognition is vocabulary based. This module provides the
primitives (markdown headings, legacy banners, fences, checkboxes,
labels, custom-key normalisation); each format owns its vocabulary.
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Final, Iterable, Optional, Sequence


# ---------------------------------------------------------------------
# Line helpers
# ---------------------------------------------------------------------

def split_lines(text: str | None) -> list[str]:
    """
    Split text on newlines, preserving empty lines.

    "a\\n\\nb" -> ["a", "", "b"]; CRLF is treated as LF.
    """
    if text is None:
        return [""]
    return text.replace("\r\n", "\n").replace("\r", "\n").split("\n")


def normalize_empty_lines(lines: Iterable[str]) -> list[str]:
    """Collapse runs of empty lines into a single empty line."""
    out: list[str] = []
    prev_empty = False

    for line in lines:
        is_empty = line == ""
        if not (is_empty and prev_empty):
            out.append(line)
        prev_empty = is_empty

    return out


def trim_empty_lines(lines: Sequence[str]) -> list[str]:
    """Drop leading and trailing empty lines."""
    start = 0
    end = len(lines)

    while start < end and lines[start] == "":
        start += 1
    while end > start and lines[end - 1] == "":
        end -= 1

    return list(lines[start:end])


def finalize_section(lines: Iterable[str]) -> str:
    """
    Turn a captured line buffer into field content.

    Trailing whitespace is stripped from every line, blank runs collapse
    to one blank line, edge blanks are trimmed.
    """
    cleaned = [line.rstrip() for line in lines]
    if not cleaned:
        return ""
    return "\n".join(trim_empty_lines(normalize_empty_lines(cleaned)))


def canonical_lines(text: str | None) -> list[str]:
    """
    Lines of `text` in their canonical rendered form.

    Applying finalize_section to the result yields the same text again.
    """
    if not text:
        return []
    content = finalize_section(split_lines(text))
    return split_lines(content) if content else []


def leading_spaces(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


# ---------------------------------------------------------------------
# Capture modes
# ---------------------------------------------------------------------

def capture_indented_line(line: str, lines: list[str], indent: int = 2) -> None:
    """
    Capture a line of an indented block into `lines`.

    The expected prefix (`indent` spaces) is stripped. Lines indented by
    other amounts lose their leading whitespace; unindented lines are kept
    as they are.
    """
    prefix = " " * indent

    if line.strip() == "":
        if lines:
            lines.append("")
    elif line.startswith(prefix):
        lines.append(line[indent:])
    elif line[:1].isspace():
        lines.append(line.lstrip())
    else:
        lines.append(line)


def capture_freeform_line(line: str, lines: list[str]) -> None:
    """Capture a line verbatim; blank lines only once content started."""
    if line.strip() != "":
        lines.append(line)
    elif lines:
        lines.append("")


def indent_block(
    text: str | None,
    indent: str = "  ",
    placeholder: str = "- ",
) -> list[str]:
    """
    Render content as an indented block.

    Blank lines stay empty (no indent). Empty content renders a single
    placeholder line.
    """
    body = canonical_lines(text)
    if not body:
        return [indent + placeholder]
    return [indent + line if line else "" for line in body]


def is_placeholder(text: str) -> bool:
    """True when a finalised bullet block only holds the empty "- " marker."""
    return text.strip() == "-"


# ---------------------------------------------------------------------
# Headers
# ---------------------------------------------------------------------

_HEADING_RE = re.compile(r"^(#{1,6})(?:[ \t]+(.*?))?[ \t]*$")
_FENCE_RE = re.compile(r"^\s*(```|~~~)")

BANNER_CHAR: Final[str] = "─"


def heading(line: str) -> Optional[tuple[int, str]]:
    """
    Parse a markdown ATX heading.

    Returns (level, title) or None. "## Notes " -> (2, "Notes").
    """
    m = _HEADING_RE.match(line)
    if not m:
        return None
    return len(m.group(1)), (m.group(2) or "").strip()


def heading_title(line: str, level: int) -> Optional[str]:
    """Return the title if `line` is a heading of exactly `level`."""
    h = heading(line)
    if h is None or h[0] != level:
        return None
    return h[1]


def banner_title(line: str) -> Optional[str]:
    """
    Parse a legacy banner header.

    "── Notes ─────────" -> "Notes"
    """
    if not line.startswith(BANNER_CHAR * 2):
        return None
    return line.strip(BANNER_CHAR + " \t").strip()


def format_heading(level: int, title: str) -> str:
    return f"{'#' * level} {title}"


def is_fence(line: str) -> bool:
    return bool(_FENCE_RE.match(line))


def label_of(line: str) -> str:
    """
    Normalise a label line for vocabulary lookup.

    "**In scope:**", "  In scope:" and "- In scope:" all give "in scope".
    """
    s = line.strip()
    if s.startswith("- "):
        s = s[2:].strip()
    s = s.strip("*").strip()
    s = s.rstrip(":").strip()
    return s.casefold()


# ---------------------------------------------------------------------
# Checkboxes
# ---------------------------------------------------------------------

def checkbox(is_checked: bool) -> str:
    return "[x]" if is_checked else "[ ]"


def checkbox_line(label: str, is_checked: bool) -> str:
    """GFM task-list item: "- [x] Label"."""
    return f"- {checkbox(is_checked)} {label}"


def checked_value(line: str, options: Sequence[tuple[str, str]]) -> Optional[str]:
    """
    Return the value of the option checked on this line.

    `options` is a sequence of (label, value). A line selects an option
    when it contains "[x]" or "[X]" followed by the label.
    """
    for label, value in options:
        if re.search(r"\[[xX]\]\s+" + re.escape(label), line):
            return value
    return None


def is_checkbox(line: str) -> bool:
    return bool(re.search(r"\[[ xX]\]", line))


# ---------------------------------------------------------------------
# Custom keys
# ---------------------------------------------------------------------

_KEY_DROP_RE = re.compile(r"[^a-z0-9\s_]+")
_KEY_SEP_RE = re.compile(r"[\s_]+")


def normalize_key(header: str) -> str:
    """
    Turn a free header into a custom-field key.

    Lowercase, non-alphanumerics dropped, whitespace runs to "_", edge
    underscores trimmed: "My Special Section (with parens)!" ->
    "my_special_section_with_parens".
    """
    s = _KEY_DROP_RE.sub("", header.lower())
    s = _KEY_SEP_RE.sub("_", s).strip("_")
    return s or "custom"


def key_to_header(key: str) -> str:
    """
    Approximate inverse of normalize_key.

    normalize_key(key_to_header(k)) == k for keys produced by
    normalize_key; punctuation and casing of the original header are not
    recoverable.
    """
    words = [w for w in key.split("_") if w]
    return " ".join(w[:1].upper() + w[1:] for w in words) or key


# ---------------------------------------------------------------------
# Block capture
# ---------------------------------------------------------------------

def capture_freeform(lines: Iterable[str]) -> str:
    buf: list[str] = []
    for line in lines:
        capture_freeform_line(line, buf)
    return finalize_section(buf)


def capture_indented(lines: Iterable[str], indent: int = 2) -> str:
    buf: list[str] = []
    for line in lines:
        capture_indented_line(line, buf, indent)
    return finalize_section(buf)


def capture_bullets(lines: Iterable[str], indent: int = 2) -> str:
    """Indented capture where a lone "- " placeholder means empty."""
    text = capture_indented(lines, indent)
    return "" if is_placeholder(text) else text


# ---------------------------------------------------------------------
# Cursor
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Section:
    """
    A closed section: the name and subsection it was opened with and the
    raw lines found under its header.
    """

    name: Optional[str]
    subsection: Optional[str]
    lines: tuple[str, ...]

    @property
    def text(self) -> str:
        return capture_freeform(self.lines)

    def bullets(self, indent: int = 2) -> str:
        return capture_bullets(self.lines, indent)


Classifier = Callable[[str], Optional[tuple[str, Optional[str]]]]


@dataclass(slots=True)
class SectionCursor:
    """
    Scanner state for one pass over a document.

    Callers check `in_code(line)` first (fenced lines are never headers),
    then recognise headers and call `enter`, which closes and returns the
    previous section.
    """

    section: Optional[str] = None
    subsection: Optional[str] = None
    lines: list[str] = field(default_factory=list)
    fenced: bool = False

    def enter(self, section: Optional[str], subsection: Optional[str] = None) -> Section:
        closed = Section(self.section, self.subsection, tuple(self.lines))
        self.section = section
        self.subsection = subsection
        self.lines = []
        self.fenced = False
        return closed

    def close(self) -> Section:
        return self.enter(None)

    def in_code(self, line: str) -> bool:
        """
        Track fenced code blocks.

        Returns True when the line is a fence marker or sits inside a
        fenced block.
        """
        if is_fence(line):
            self.fenced = not self.fenced
            return True
        return self.fenced

    def feed(self, line: str) -> None:
        self.lines.append(line)


def split_sections(lines: Iterable[str], classify: Classifier) -> list[Section]:
    """
    Split lines at the headers recognised by `classify`.

    `classify(line)` returns (name, subsection) for a header line and None
    for content. The first returned section (name None) holds the lines
    found before any header; it may be empty.
    """
    cursor = SectionCursor()
    out: list[Section] = []

    for line in lines:
        if cursor.in_code(line):
            cursor.feed(line)
            continue

        hit = classify(line)
        if hit is None:
            cursor.feed(line)
            continue

        out.append(cursor.enter(*hit))

    out.append(cursor.close())
    return out
