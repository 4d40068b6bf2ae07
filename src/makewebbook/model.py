"""Book structure records shared by the outline, link and patch passes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Optional

KIND_CHAPTER = "chapter"
KIND_APPENDIX = "appendix"
KIND_NONE = "none"

LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"


class BookStructureError(RuntimeError):
    """Malformed book; the run must stop before anything is written."""


class NumberingError(BookStructureError):
    pass


class PatchError(BookStructureError):
    pass


class TextEdit(NamedTuple):
    start: int
    end: int
    replacement: str


@dataclass
class Span:
    start: int
    open_end: int
    close_start: Optional[int] = None
    close_end: Optional[int] = None


@dataclass
class Caption:
    file_name: str
    ident: str
    text: str
    modified: bool
    figure: bool


@dataclass
class Equation:
    file_name: str
    ident: str
    text: str
    modified: bool


@dataclass
class Section:
    file_name: str
    ident: str
    text: str
    modified: bool
    level: int
    sections: List["Section"] = field(default_factory=list)
    captions: List[Caption] = field(default_factory=list)
    equations: List[Equation] = field(default_factory=list)


@dataclass
class Element:
    # tag is the element name ("h2", "caption", "div", "a", ...)
    tag: str
    text: str
    span: Span
    ident: str = ""
    new_text: str = ""
    new_id: bool = False
    modified: bool = False
    # links only
    href: str = ""
    target_file: str = ""
    tooltip: str = ""
    # numbering change in flattened-text coordinates
    edit: Optional[TextEdit] = None

    @property
    def is_link(self) -> bool:
        return self.tag == "a"

    def describe(self) -> str:
        return f"<{self.tag} id=\"{self.ident}\">{self.new_text or self.text}</{self.tag}>"


@dataclass
class SectionFile:
    file_name: str
    new_nav: bool = True
    update_nav: bool = False
    modified: bool = False
    elements: List[Element] = field(default_factory=list)
    nav_span: Optional[Span] = None
    body_open_end: Optional[int] = None

    @property
    def needs_rewrite(self) -> bool:
        return self.modified or self.new_nav or self.update_nav


@dataclass(frozen=True)
class Bookmark:
    file_name: str
    label: str
    tooltip: str


@dataclass
class Counters:
    figures: int = 0
    tables: int = 0
    equations: int = 0
    chapter: int = 0
    appendix: int = 0
    kind: str = KIND_NONE

    def start_top_level(self, text: str) -> str:
        self.figures = 0
        self.tables = 0
        self.equations = 0
        if text.startswith("Chapter"):
            self.chapter += 1
            self.kind = KIND_CHAPTER
        elif text.startswith("Appendix"):
            self.appendix += 1
            self.kind = KIND_APPENDIX
        else:
            self.kind = KIND_NONE
        return self.kind

    @property
    def numbered(self) -> bool:
        return self.kind != KIND_NONE


@dataclass
class BookStructure:
    cover_file: str
    toc_file: str
    section_files: List[SectionFile] = field(default_factory=list)
    sections: List[Section] = field(default_factory=list)
    bookmarks: Dict[str, Bookmark] = field(default_factory=dict)
    duplicate_ids: List[str] = field(default_factory=list)

    @property
    def file_names(self) -> List[str]:
        return [item.file_name for item in self.section_files]

    def navigation_targets(self, index: int, file_names: Optional[List[str]] = None) -> List[str]:
        names = file_names if file_names is not None else self.file_names
        previous = names[index - 1] if index > 0 else self.cover_file
        following = names[index + 1] if index < len(names) - 1 else ""
        return [self.toc_file, previous, following]
