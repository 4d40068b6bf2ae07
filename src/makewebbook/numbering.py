"""Section, caption and equation numbering.

The functions here only read the counters. Each returns a ``Numbering``
tuple: the corrected text, whether it differs from the input, the label
used for cross references, and the edit (in input-text coordinates) that
turns the input into the corrected text.
"""

from __future__ import annotations

import re
from typing import NamedTuple, Optional, Sequence

from .model import KIND_APPENDIX, KIND_CHAPTER, LETTERS, Counters, NumberingError, TextEdit

_NUM = r"[1-9][0-9]*"
_ANY = r"(?:[1-9][0-9]*|[A-Z])"

_CHAPTER_PREFIX_RE = re.compile(r"Chapter " + _NUM + " ")
_APPENDIX_PREFIX_RE = re.compile(r"Appendix [A-Z] ")
_SUBSECTION_PREFIX_RE = {
    2: re.compile(_ANY + r"\." + _NUM + " "),
    3: re.compile(_ANY + r"\." + _NUM + r"\." + _NUM + " "),
    4: re.compile(_ANY + r"\." + _NUM + r"\." + _NUM + r"\." + _NUM + " "),
}
_TABLE_PREFIX_RE = re.compile(r"Table " + _ANY + "-" + _NUM + ": ")
_FIGURE_PREFIX_RE = re.compile(r"Figure " + _ANY + "-" + _NUM + ": ")

EQUATION_DELIMITER = "$$"
EQUATION_SEPARATOR = r" \;\;\;\;\; "
_EQUATION_DELIMITER_RE = re.compile(r"\s*\$\$")
_EQUATION_NUMBER_RE = re.compile(r"\s*(\(" + _ANY + r"\." + _NUM + r"\))")


class Numbering(NamedTuple):
    text: str
    modified: bool
    label: str
    edit: Optional[TextEdit] = None


def chapter_symbol(counters: Counters) -> str:
    if counters.kind == KIND_CHAPTER:
        return str(counters.chapter)
    if counters.kind == KIND_APPENDIX:
        if not 1 <= counters.appendix <= len(LETTERS):
            raise NumberingError(f"Appendix number {counters.appendix} cannot be expressed as a letter A-Z")
        return LETTERS[counters.appendix - 1]
    raise NumberingError("No numbered chapter or appendix is open")


def heading_prefix(counters: Counters, level: int, parents: Sequence[int] = ()) -> str:
    symbol = chapter_symbol(counters)
    if level == 1:
        word = "Chapter" if counters.kind == KIND_CHAPTER else "Appendix"
        return f"{word} {symbol} "
    if level not in _SUBSECTION_PREFIX_RE:
        raise NumberingError(f"Wrong heading level {level}; must be 1, 2, 3 or 4")
    if len(parents) < level - 1:
        raise NumberingError(f"Heading level {level} needs {level - 1} section indices, got {list(parents)}")
    return ".".join([symbol] + [str(index) for index in parents[: level - 1]]) + " "


def caption_prefix(counters: Counters, is_figure: bool, index: int) -> str:
    word = "Figure" if is_figure else "Table"
    return f"{word} {chapter_symbol(counters)}-{index}: "


def _apply_prefix(text: str, required: str, pattern: "re.Pattern[str]", label: str) -> Numbering:
    if text[: len(required)] == required:
        return Numbering(text, False, label)
    match = pattern.match(text)
    end = match.end() if match else 0
    return Numbering(required + text[end:], True, label, TextEdit(0, end, required))


def label_for_heading(text: str, level: int, counters: Counters, parents: Sequence[int] = ()) -> Numbering:
    if not counters.numbered:
        return Numbering(text, False, text)
    required = heading_prefix(counters, level, parents)
    if level == 1:
        pattern = _CHAPTER_PREFIX_RE if counters.kind == KIND_CHAPTER else _APPENDIX_PREFIX_RE
    else:
        pattern = _SUBSECTION_PREFIX_RE[level]
    return _apply_prefix(text, required, pattern, required[:-1])


def label_for_caption(text: str, is_figure: bool, counters: Counters, index: int) -> Numbering:
    if not counters.numbered:
        return Numbering(text, False, text)
    required = caption_prefix(counters, is_figure, index)
    pattern = _FIGURE_PREFIX_RE if is_figure else _TABLE_PREFIX_RE
    return _apply_prefix(text, required, pattern, required[:-2])


def label_for_equation(text: str, counters: Counters, index: Optional[int] = None) -> Numbering:
    if not counters.numbered:
        return Numbering(text, False, "")
    number = counters.equations if index is None else index
    required = f"({chapter_symbol(counters)}.{number})"

    delimiter = _EQUATION_DELIMITER_RE.search(text)
    if delimiter is None:
        raise NumberingError(
            f'<div class="equation"> present, but no "{EQUATION_DELIMITER}" to mark the equation start: {text!r}'
        )
    after = delimiter.end()
    existing = _EQUATION_NUMBER_RE.match(text, after)
    if existing is None:
        insert = " " + required + EQUATION_SEPARATOR
        return Numbering(text[:after] + insert + text[after:], True, required, TextEdit(after, after, insert))
    if existing.group(1) == required:
        return Numbering(text, False, required)
    start, end = existing.span(1)
    return Numbering(text[:start] + required + text[end:], True, required, TextEdit(start, end, required))
