"""Table-of-contents rendering."""

from __future__ import annotations

import html
import logging
from typing import List, Optional

from .model import BookStructure, Caption, Section

LOG = logging.getLogger("makewebbook")

BEGIN_TABLE_OF_CONTENTS = "<!-- BeginTableOfContents -->"
END_TABLE_OF_CONTENTS = "<!-- EndTableOfContents -->"
MAX_DISPLAY_CHARACTERS = 60
ELLIPSIS = "..."

CONTENTS_HEAD = """<!DOCTYPE html>
<html lang="en">
<head>
<style type="text/css">
  ol {margin: 0px 0 15px -20px; list-style-type: none;}
  li {margin: 2px 0px 0px 0px;}
  a  {text-decoration: none; color: green;}
  a:hover {text-decoration: underline;}
</style>
</head>
<body>
"""
CONTENTS_TAIL = "</body>\n</html>\n"


def shorten_caption(text: str, limit: int = MAX_DISPLAY_CHARACTERS) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - len(ELLIPSIS)] + ELLIPSIS


def _href(file_name: str, ident: str) -> str:
    return html.escape(f"{file_name}#{ident}")


def _render_captions(lines: List[str], captions: List[Caption], indent: str) -> None:
    lines.append(f'{indent}<ul class="tree">')
    for caption in captions:
        text = html.escape(shorten_caption(caption.text), quote=False)
        lines.append(f'{indent}<li><a href="{_href(caption.file_name, caption.ident)}">{text}</a></li>')
    lines.append(f"{indent}</ul>")


def _render_section(lines: List[str], section: Section, depth: int) -> None:
    indent = "    " * depth
    text = html.escape(section.text, quote=False)
    if depth == 0:
        text = f"<strong>{text}</strong>"
        lines.append("")
    entry = f'{indent}<li><a href="{_href(section.file_name, section.ident)}">{text}</a>'
    if not section.sections and not section.captions:
        lines.append(entry + "</li>")
        return
    lines.append(entry)
    child_indent = "    " * (depth + 1)
    if section.captions:
        _render_captions(lines, section.captions, child_indent)
    if section.sections:
        open_list, close_list = ("<ol>", "</ol>") if depth == 0 else ('<ul class="tree">', "</ul>")
        lines.append(child_indent + open_list)
        for child in section.sections:
            _render_section(lines, child, depth + 1)
        lines.append(child_indent + close_list)
    lines.append(f"{indent}</li>")


def render_contents_structure(structure: BookStructure) -> str:
    lines = [BEGIN_TABLE_OF_CONTENTS, "<ol>"]
    lines.append(f'<li><a href="{html.escape(structure.cover_file)}"><strong>Book Cover</strong></a></li>')
    for section in structure.sections:
        _render_section(lines, section, 0)
    lines.append("</ol>")
    lines.append(END_TABLE_OF_CONTENTS)
    return "\n".join(lines) + "\n"


def render_contents_file(structure: BookStructure, old_text: Optional[str] = None, file_name: str = "") -> str:
    block = render_contents_structure(structure)
    if old_text is None:
        LOG.info("Generate new Table-of-Contents file %s", file_name)
        return CONTENTS_HEAD + block + CONTENTS_TAIL

    begin = old_text.find(BEGIN_TABLE_OF_CONTENTS)
    if begin < 0:
        LOG.warning(
            'Generating Table-of-Contents file newly since "%s" not found in file %s',
            BEGIN_TABLE_OF_CONTENTS,
            file_name,
        )
        return CONTENTS_HEAD + block + CONTENTS_TAIL

    LOG.info("Update Table-of-Contents file %s", file_name)
    end = old_text.find(END_TABLE_OF_CONTENTS, begin)
    if end < 0:
        LOG.warning(
            'Constructing default tail of file since "%s" not found in file %s',
            END_TABLE_OF_CONTENTS,
            file_name,
        )
        return old_text[:begin] + block + CONTENTS_TAIL
    tail = old_text[end + len(END_TABLE_OF_CONTENTS) :]
    if tail.startswith("\r\n"):
        tail = tail[2:]
    elif tail.startswith("\n"):
        tail = tail[1:]
    return old_text[:begin] + block + tail
