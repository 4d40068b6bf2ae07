"""Outline building: one forward pass over all section files in book order."""

from __future__ import annotations

import logging
import random
import re
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from . import numbering
from .extract import HtmlNode, ParsedFile
from .model import (
    Bookmark,
    BookStructure,
    BookStructureError,
    Caption,
    Counters,
    Element,
    Equation,
    Section,
    SectionFile,
)

LOG = logging.getLogger("makewebbook")

MAX_NAV_LINKS = 3

_URL_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")


class BookmarkRegistry:
    """Identifier -> Bookmark map; the first writer of an identifier wins."""

    def __init__(self) -> None:
        self._bookmarks: Dict[str, Bookmark] = {}
        self.duplicates: List[str] = []

    def add(self, ident: str, file_name: str, label: str, tooltip: str) -> bool:
        existing = self._bookmarks.get(ident)
        if existing is not None:
            LOG.error(
                'Bookmark with id = "%s" present twice:\n'
                '       First  location: FileName = "%s", Label = "%s", Tooltip = "%s"\n'
                '       Second location: FileName = "%s", Label = "%s", Tooltip = "%s"',
                ident,
                existing.file_name,
                existing.label,
                existing.tooltip,
                file_name,
                label,
                tooltip,
            )
            self.duplicates.append(ident)
            return False
        self._bookmarks[ident] = Bookmark(file_name=file_name, label=label, tooltip=tooltip)
        return True

    def get(self, ident: str) -> Optional[Bookmark]:
        return self._bookmarks.get(ident)

    def __contains__(self, ident: object) -> bool:
        return ident in self._bookmarks

    def __len__(self) -> int:
        return len(self._bookmarks)

    def as_dict(self) -> Dict[str, Bookmark]:
        return dict(self._bookmarks)


class IdentifierFactory:
    def __init__(self, seed: Optional[int], reserved: Iterable[str] = ()) -> None:
        self._rng = random.Random(seed)
        self._reserved: Set[str] = set(reserved)

    def reserve(self, ident: str) -> None:
        self._reserved.add(ident)

    def new_id(self, registry: BookmarkRegistry) -> str:
        while True:
            candidate = str(self._rng.getrandbits(31))
            if candidate not in self._reserved and candidate not in registry:
                self._reserved.add(candidate)
                return candidate


def split_href(href: str, file_name: str) -> Optional[Tuple[str, str]]:
    """Return (target_file, target_id) for an in-book href, None for external links."""
    if "/" in href or _URL_SCHEME_RE.match(href):
        return None
    if "#" not in href:
        return href, ""
    target_file, target_id = href.split("#", 1)
    if not target_file:
        if not target_id:
            raise BookStructureError(f"Wrong link '<a href=\"#\">' in file {file_name}")
        return file_name, target_id
    return target_file, target_id


class OutlineBuilder:
    def __init__(
        self,
        cover_file: str,
        toc_file: str,
        file_names: Sequence[str],
        *,
        seed: Optional[int] = None,
        reserved_ids: Iterable[str] = (),
    ) -> None:
        self.file_names = list(file_names)
        self.structure = BookStructure(cover_file=cover_file, toc_file=toc_file)
        self.counters = Counters()
        self.registry = BookmarkRegistry()
        self.ids = IdentifierFactory(seed, reserved_ids)
        # open[0] is the current chapter/appendix, open[k] the current level k+1 heading
        self.open: List[Section] = []

    def build(self, parsed_files: Sequence[ParsedFile]) -> BookStructure:
        for parsed in parsed_files:
            self.add_file(parsed)
        self.structure.bookmarks = self.registry.as_dict()
        self.structure.duplicate_ids = list(self.registry.duplicates)
        return self.structure

    def add_file(self, parsed: ParsedFile) -> SectionFile:
        LOG.info("Determine structure of %s", parsed.file_name)
        index = len(self.structure.section_files)
        section_file = SectionFile(file_name=parsed.file_name, body_open_end=parsed.body_open_end)
        self.structure.section_files.append(section_file)

        content_seen = False
        for node in parsed.nodes:
            if node.kind == "nav":
                if content_seen or section_file.nav_span is not None:
                    raise BookStructureError(
                        f"<nav> present after a section/caption/figcaption element in file {parsed.file_name}"
                    )
                self._check_nav(node, section_file, index)
                continue
            content_seen = True
            if node.kind == "link":
                self._add_link(node, section_file)
            elif node.kind == "references":
                for item in node.references:
                    self.registry.add(item.ident, parsed.file_name, item.title, item.strong_text)
            else:
                self._add_numbered(node, section_file)
        return section_file

    def _check_nav(self, node: HtmlNode, section_file: SectionFile, index: int) -> None:
        if len(node.nav_hrefs) > MAX_NAV_LINKS:
            raise BookStructureError(
                f"Existing <nav> has more than {MAX_NAV_LINKS} <a> elements in file {section_file.file_name}"
            )
        section_file.new_nav = False
        section_file.nav_span = node.span
        found = list(node.nav_hrefs) + [""] * (MAX_NAV_LINKS - len(node.nav_hrefs))
        required = self.structure.navigation_targets(index, self.file_names)
        if found != required:
            LOG.debug("Navigation bar of %s links %s, expected %s", section_file.file_name, found, required)
            section_file.update_nav = True

    def _add_link(self, node: HtmlNode, section_file: SectionFile) -> None:
        href = node.attr("href")
        if href is None:
            LOG.warning("Link <a> without href attribute is ignored in file %s", section_file.file_name)
            return
        target = split_href(href, section_file.file_name)
        if target is None:
            return
        target_file, target_id = target
        section_file.elements.append(
            Element(
                tag="a",
                text=node.text,
                span=node.span,
                ident=target_id,
                new_text=node.text,
                href=href,
                target_file=target_file,
                tooltip=node.attr("title") or "",
            )
        )

    def _new_identifier(self, node: HtmlNode) -> Tuple[str, bool]:
        ident = node.attr("id")
        if not ident or ident == "#":
            return self.ids.new_id(self.registry), True
        self.ids.reserve(ident)
        return ident, False

    def _innermost(self, node: HtmlNode, file_name: str) -> Section:
        if not self.open:
            raise BookStructureError(f"<{node.tag}> in file \"{file_name}\" defined before first <h1> of the book")
        return self.open[-1]

    def _add_numbered(self, node: HtmlNode, section_file: SectionFile) -> None:
        file_name = section_file.file_name
        ident, new_id = self._new_identifier(node)
        text = node.text

        if node.kind == "heading":
            result = self._add_heading(node, file_name, ident)
        elif node.kind in ("caption", "figcaption"):
            figure = node.kind == "figcaption"
            owner = self._innermost(node, file_name)
            if figure:
                self.counters.figures += 1
                index = self.counters.figures
            else:
                self.counters.tables += 1
                index = self.counters.tables
            result = numbering.label_for_caption(text, figure, self.counters, index)
            owner.captions.append(Caption(file_name, ident, result.text, result.modified, figure))
        else:
            self.counters.equations += 1
            owner = self._innermost(node, file_name)
            result = numbering.label_for_equation(text, self.counters)
            owner.equations.append(Equation(file_name, ident, result.text, result.modified))

        if result.modified:
            LOG.info("      Number updated: %r -> %r", text, result.text)
        element = Element(
            tag=node.tag,
            text=text,
            span=node.span,
            ident=ident,
            new_text=result.text,
            new_id=new_id,
            modified=result.modified,
            edit=result.edit,
        )
        section_file.elements.append(element)
        if result.modified or new_id:
            section_file.modified = True
        if new_id:
            LOG.info("      Element id introduced: %s", element.describe())

        tooltip = "" if node.kind == "equation" else result.text
        self.registry.add(ident, file_name, result.label, tooltip)

    def _add_heading(self, node: HtmlNode, file_name: str, ident: str) -> numbering.Numbering:
        level = node.level
        if level == 1:
            self.counters.start_top_level(node.text)
            result = numbering.label_for_heading(node.text, 1, self.counters)
            section = Section(file_name, ident, result.text, result.modified, 1)
            self.structure.sections.append(section)
            self.open = [section]
            return result

        if len(self.open) < level - 1:
            raise BookStructureError(
                f"<h{level}> defined before <h{level - 1}> in file {file_name}: {node.text!r}"
            )
        parent = self.open[level - 2]
        parents = [len(self.open[k - 1].sections) for k in range(1, level - 1)]
        parents.append(len(parent.sections) + 1)
        result = numbering.label_for_heading(node.text, level, self.counters, parents)
        section = Section(file_name, ident, result.text, result.modified, level)
        parent.sections.append(section)
        self.open = self.open[: level - 1] + [section]
        return result


def build_outline(
    parsed_files: Sequence[ParsedFile],
    cover_file: str,
    toc_file: str,
    *,
    seed: Optional[int] = None,
) -> BookStructure:
    reserved: Set[str] = set()
    for parsed in parsed_files:
        reserved.update(parsed.ids)
    builder = OutlineBuilder(
        cover_file,
        toc_file,
        [parsed.file_name for parsed in parsed_files],
        seed=seed,
        reserved_ids=reserved,
    )
    return builder.build(parsed_files)
