"""Selective rewriting of section files.

A section file is regenerated from its original text plus a list of
non-overlapping edits. Everything outside the edited ranges is copied
verbatim.
"""

from __future__ import annotations

import html
import logging
import re
from typing import Iterable, List, Optional, Sequence, Tuple

from .model import Element, PatchError, SectionFile, Span, TextEdit

LOG = logging.getLogger("makewebbook")

BEGIN_NAV_BAR = "<nav>"
END_NAV_BAR = "</nav>"


def render_navigation_bar(toc_file: str, previous_file: str, next_file: str) -> str:
    lines = ["<nav><ul>", f'  <li><a href="{html.escape(toc_file)}">Table of Contents</a></li>']
    if previous_file:
        lines.append(f'  <li><a href="{html.escape(previous_file)}">Previous</a></li>')
    if next_file:
        lines.append(f'  <li><a href="{html.escape(next_file)}">Next</a></li>')
    lines.append("</ul></nav>")
    return "\n".join(lines)


def _attribute_re(name: str) -> "re.Pattern[str]":
    return re.compile(
        r"""(\s+)""" + re.escape(name) + r"""(?:\s*=\s*(?:"[^"]*"|'[^']*'|[^\s"'>]+))?(?=[\s/>])""",
        re.IGNORECASE,
    )


def set_attribute(open_tag: str, name: str, value: str) -> str:
    """Set, replace or (for an empty value) remove one attribute of an opening tag."""
    pattern = _attribute_re(name)
    rendered = f'{name}="{html.escape(value)}"'
    if pattern.search(open_tag):
        if not value:
            return pattern.sub("", open_tag, count=1)
        return pattern.sub(lambda match: match.group(1) + rendered, open_tag, count=1)
    if not value:
        return open_tag
    end = len(open_tag) - 2 if open_tag.endswith("/>") else len(open_tag) - 1
    while end > 0 and open_tag[end - 1].isspace():
        end -= 1
    return open_tag[:end] + " " + rendered + open_tag[end:]


def _check_start(source: str, element: Element, file_name: str) -> None:
    span = element.span
    head = source[span.start : span.start + len(element.tag) + 2].lower()
    if (
        not head.startswith("<" + element.tag)
        or len(head) < len(element.tag) + 2
        or not (head[-1].isspace() or head[-1] in "/>")
    ):
        raise PatchError(
            f"Element \"<{element.tag} ...>{element.text}\" not found in file {file_name} at offset {span.start}"
        )


_MARKUP_RE = re.compile(r"""<!--.*?-->|<[/!?]?[A-Za-z](?:"[^"]*"|'[^']*'|[^'">])*>""", re.DOTALL)
_CHARREF_RE = re.compile(r"&(?:#[0-9]+;?|#[xX][0-9a-fA-F]+;?|[A-Za-z][A-Za-z0-9]*;?)")


def _text_positions(inner: str) -> Tuple[List[Optional[int]], List[Optional[int]]]:
    """Map each offset of the flattened text to raw offsets in ``inner``.

    ``first[k]`` is the raw offset right after the k-th text character,
    ``last[k]`` the same offset moved past any markup that follows it.
    Offsets falling inside a decoded character reference are None.
    """
    first: List[Optional[int]] = [0]
    last: List[Optional[int]] = [0]
    pos = 0
    while pos < len(inner):
        markup = _MARKUP_RE.match(inner, pos)
        if markup is not None:
            pos = markup.end()
            last[-1] = pos
            continue
        ref = _CHARREF_RE.match(inner, pos) if inner[pos] == "&" else None
        if ref is not None:
            chunk, end = html.unescape(ref.group(0)), ref.end()
        else:
            chunk, end = inner[pos], pos + 1
        first.extend([None] * (len(chunk) - 1))
        last.extend([None] * (len(chunk) - 1))
        first.append(end)
        last.append(end)
        pos = end
    return first, last


def _raw_edit(inner: str, element: Element) -> Optional[Tuple[int, int]]:
    edit = element.edit
    if edit is None:
        return None
    first, last = _text_positions(inner)
    if len(first) != len(element.text) + 1:
        return None
    start = first[edit.start] if edit.start == edit.end else last[edit.start]
    end = first[edit.end]
    if start is None or end is None or start > end or _MARKUP_RE.search(inner, start, end):
        return None
    return start, end


def _inner_edit(source: str, element: Element, file_name: str) -> TextEdit:
    span = element.span
    if span.close_start is None:
        raise PatchError(f"Element \"<{element.tag} ...>{element.text}\" has no </{element.tag}> in file {file_name}")
    inner = source[span.open_end : span.close_start]
    raw = _raw_edit(inner, element)
    if raw is not None:
        replacement = html.escape(element.edit.replacement, quote=False)
        return TextEdit(span.open_end + raw[0], span.open_end + raw[1], replacement)
    return TextEdit(span.open_end, span.close_start, html.escape(element.new_text, quote=False))


def element_edits(source: str, element: Element, file_name: str) -> List[TextEdit]:
    if not (element.modified or element.new_id):
        return []
    _check_start(source, element, file_name)
    span = element.span
    open_tag = source[span.start : span.open_end]
    edits: List[TextEdit] = []

    if element.is_link:
        new_tag = set_attribute(open_tag, "href", f"{element.target_file}#{element.ident}")
        new_tag = set_attribute(new_tag, "title", element.tooltip)
    else:
        new_tag = set_attribute(open_tag, "id", element.ident) if element.new_id else open_tag
    if new_tag != open_tag:
        edits.append(TextEdit(span.start, span.open_end, new_tag))

    if element.modified and element.new_text != element.text:
        edits.append(_inner_edit(source, element, file_name))
    return edits


def navigation_edit(source: str, section_file: SectionFile, targets: Sequence[str]) -> Optional[TextEdit]:
    nav = render_navigation_bar(*targets)
    if section_file.new_nav:
        if section_file.body_open_end is None:
            raise PatchError(f'File "{section_file.file_name}" does not contain "<body>"')
        LOG.info("      Generating new navigation bar directly after <body> in file %s", section_file.file_name)
        return TextEdit(section_file.body_open_end, section_file.body_open_end, "\n" + nav)
    if section_file.update_nav:
        span: Optional[Span] = section_file.nav_span
        if span is None or span.close_end is None:
            raise PatchError(
                f'File "{section_file.file_name}" contains "{BEGIN_NAV_BAR}" but not "{END_NAV_BAR}"'
            )
        LOG.info("      Update navigation bar of file %s", section_file.file_name)
        return TextEdit(span.start, span.close_end, nav)
    return None


def apply_edits(source: str, edits: Iterable[TextEdit], file_name: str = "") -> str:
    parts: List[str] = []
    cursor = 0
    for edit in sorted(edits, key=lambda item: (item.start, item.end)):
        if edit.start < cursor:
            if edit.end <= cursor:
                LOG.warning(
                    "Change at offset %d of %s lies inside an already rewritten element; skipped",
                    edit.start,
                    file_name,
                )
                continue
            raise PatchError(f"Overlapping changes at offset {edit.start} in file {file_name}")
        parts.append(source[cursor : edit.start])
        parts.append(edit.replacement)
        cursor = edit.end
    parts.append(source[cursor:])
    return "".join(parts)


def patch_section_file(source: str, section_file: SectionFile, nav_targets: Sequence[str]) -> str:
    edits: List[TextEdit] = []
    nav_edit = navigation_edit(source, section_file, nav_targets)
    if nav_edit is not None:
        edits.append(nav_edit)
    for element in section_file.elements:
        edits.extend(element_edits(source, element, section_file.file_name))
    return apply_edits(source, edits, section_file.file_name)
