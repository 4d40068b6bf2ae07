"""HTML extraction for section files.

Every element the book tooling cares about is reported together with the
offsets of its markup in the source text, so later passes can patch the
original file without re-serializing it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

from .model import BookStructureError, Span

QUERY = "h1, h2, h3, h4, caption, figcaption, a, nav, div.equation, ul.references"

_START_TAG_RE = re.compile(r"""<[^\s/>]+(?:"[^"]*"|'[^']*'|[^'">])*>""")
_HEADING_TAGS = {"h1", "h2", "h3", "h4"}


@dataclass
class ReferenceItem:
    ident: str
    title: str
    strong_text: str


@dataclass
class HtmlNode:
    kind: str
    tag: str
    attrs: Dict[str, Any]
    text: str
    span: Span
    nav_hrefs: List[str] = field(default_factory=list)
    references: List[ReferenceItem] = field(default_factory=list)

    def attr(self, name: str) -> Optional[str]:
        value = self.attrs.get(name)
        if value is None:
            return None
        if isinstance(value, list):
            return " ".join(value)
        return str(value)

    @property
    def level(self) -> int:
        return int(self.tag[1]) if self.tag in _HEADING_TAGS else 0


@dataclass
class ParsedFile:
    file_name: str
    text: str
    nodes: List[HtmlNode]
    body_open_end: Optional[int]
    ids: Set[str]


def read_source_text(path: Path) -> str:
    return path.read_bytes().decode("utf-8", errors="surrogateescape")


def encode_source_text(text: str) -> bytes:
    return text.encode("utf-8", errors="surrogateescape")


def _line_offsets(text: str) -> List[int]:
    offsets = [0]
    offsets.extend(match.end() for match in re.finditer("\n", text))
    return offsets


def _find_close(text: str, tag: str, pos: int) -> Tuple[Optional[int], Optional[int]]:
    pattern = re.compile(r"<(/?)" + re.escape(tag) + r"(?=[\s/>])[^>]*>", re.IGNORECASE)
    depth = 0
    for match in pattern.finditer(text, pos):
        if match.group(1):
            if depth == 0:
                return match.start(), match.end()
            depth -= 1
        elif not match.group(0).endswith("/>"):
            depth += 1
    return None, None


def locate_span(text: str, offsets: List[int], tag: Any, file_name: str) -> Span:
    line = getattr(tag, "sourceline", None)
    column = getattr(tag, "sourcepos", None)
    if line is None or column is None:
        raise BookStructureError(f"No source position for <{tag.name}> in file {file_name}")
    start = offsets[line - 1] + column
    match = _START_TAG_RE.match(text, start)
    if match is None or not match.group(0)[1:].lower().startswith(tag.name.lower()):
        raise BookStructureError(f"Start tag <{tag.name}> not found at offset {start} in file {file_name}")
    open_end = match.end()
    if match.group(0).endswith("/>"):
        return Span(start, open_end)
    close_start, close_end = _find_close(text, tag.name, open_end)
    return Span(start, open_end, close_start, close_end)


def _classify(tag: Any) -> str:
    name = tag.name.lower()
    if name in _HEADING_TAGS:
        return "heading"
    if name in ("caption", "figcaption", "nav"):
        return name
    if name == "a":
        return "link"
    if name == "div":
        return "equation"
    return "references"


def _reference_items(tag: Any) -> List[ReferenceItem]:
    items: List[ReferenceItem] = []
    for li in tag.find_all("li"):
        ident = li.get("id")
        if not ident or ident == "#":
            continue
        strong_text = ""
        for strong in li.find_all("strong"):
            strong_text = strong.get_text()
        items.append(ReferenceItem(ident=ident, title=li.get("title") or "", strong_text=strong_text))
    return items


def parse_html_text(text: str, file_name: str) -> ParsedFile:
    try:
        from bs4 import BeautifulSoup  # type: ignore
    except Exception as exc:
        raise RuntimeError(f"beautifulsoup4 not available: {exc}") from exc

    soup = BeautifulSoup(text, "html.parser")
    offsets = _line_offsets(text)
    nodes: List[HtmlNode] = []

    for tag in soup.select(QUERY):
        kind = _classify(tag)
        if kind == "link" and tag.find_parent("nav") is not None:
            continue
        node = HtmlNode(
            kind=kind,
            tag=tag.name.lower(),
            attrs=dict(tag.attrs),
            text=tag.get_text(),
            span=locate_span(text, offsets, tag, file_name),
        )
        if kind == "nav":
            node.nav_hrefs = [link.get("href", "???") for link in tag.find_all("a")]
        elif kind == "references":
            node.references = _reference_items(tag)
        nodes.append(node)

    body_open_end = None
    if soup.body is not None:
        body_open_end = locate_span(text, offsets, soup.body, file_name).open_end

    ids = {str(item.get("id")) for item in soup.find_all(id=True)}
    return ParsedFile(file_name=file_name, text=text, nodes=nodes, body_open_end=body_open_end, ids=ids)


def parse_section_file(path: Path, file_name: Optional[str] = None) -> ParsedFile:
    return parse_html_text(read_source_text(path), file_name or path.name)
