"""Second pass: make every internal link agree with the bookmark registry."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Set

from .model import Bookmark, BookStructure, Element, SectionFile

LOG = logging.getLogger("makewebbook")


@dataclass
class LinkReport:
    modified: int = 0
    unresolved: int = 0
    unknown_files: int = 0


def known_files(structure: BookStructure) -> Set[str]:
    names = set(structure.file_names)
    names.update(name for name in (structure.cover_file, structure.toc_file) if name)
    return names


def resolve_link(element: Element, bookmark: Bookmark, section_file: SectionFile) -> bool:
    label_differs = bookmark.label != "" and bookmark.label != element.text
    if (
        bookmark.file_name == element.target_file
        and not label_differs
        and bookmark.tooltip == element.tooltip
    ):
        return False

    element.modified = True
    if bookmark.label != "":
        element.new_text = bookmark.label
    element.target_file = "" if bookmark.file_name == section_file.file_name else bookmark.file_name
    element.tooltip = bookmark.tooltip
    section_file.modified = True
    return True


def link_href(element: Element) -> str:
    return f"{element.target_file}#{element.ident}"


def resolve_links(structure: BookStructure) -> LinkReport:
    registry = structure.bookmarks
    files = known_files(structure)
    report = LinkReport()

    for section_file in structure.section_files:
        LOG.info("Check links of %s", section_file.file_name)
        for element in section_file.elements:
            if not element.is_link:
                continue
            if not element.ident:
                if element.target_file not in files:
                    LOG.warning(
                        '      Internal link is wrong: <a href="%s">%s</a> in file %s',
                        element.href,
                        element.text,
                        section_file.file_name,
                    )
                    report.unknown_files += 1
                continue

            bookmark = registry.get(element.ident)
            if bookmark is None:
                LOG.warning(
                    '      Internal link not resolved (wrong id?): <a href="%s">%s</a> in file %s',
                    element.href,
                    element.text,
                    section_file.file_name,
                )
                report.unresolved += 1
                continue

            if resolve_link(element, bookmark, section_file):
                report.modified += 1
                if element.tooltip:
                    LOG.info(
                        '      Link modified: <a href="%s" title="%s">%s</a>',
                        link_href(element),
                        element.tooltip,
                        element.new_text,
                    )
                else:
                    LOG.info('      Link modified: <a href="%s">%s</a>', link_href(element), element.new_text)
    return report
