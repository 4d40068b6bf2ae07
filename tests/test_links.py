import logging

from makewebbook.extract import parse_html_text
from makewebbook.links import link_href, resolve_link, resolve_links
from makewebbook.model import Bookmark, Element, SectionFile, Span
from makewebbook.outline import build_outline


def _link(text: str, href: str, target_file: str, ident: str, tooltip: str = "") -> Element:
    return Element(
        tag="a",
        text=text,
        span=Span(0, 0),
        ident=ident,
        new_text=text,
        href=href,
        target_file=target_file,
        tooltip=tooltip,
    )


def _build(files):
    parsed = [parse_html_text(f"<html><body>\n{body}\n</body></html>\n", name) for name, body in files]
    return build_outline(parsed, "index.html", "toc.html", seed=11)


def test_link_to_moved_bookmark_is_rewritten():
    section_file = SectionFile("chapter_01.html")
    element = _link("Old Label", "old.html#sec1", "old.html", "sec1")
    bookmark = Bookmark(file_name="chapter_02.html", label="3.2", tooltip="3.2 Array Operators")

    assert resolve_link(element, bookmark, section_file)
    assert element.modified
    assert element.new_text == "3.2"
    assert element.target_file == "chapter_02.html"
    assert element.tooltip == "3.2 Array Operators"
    assert link_href(element) == "chapter_02.html#sec1"
    assert section_file.modified


def test_correct_link_is_left_alone():
    section_file = SectionFile("chapter_01.html")
    element = _link("3.2", "chapter_02.html#sec1", "chapter_02.html", "sec1", "3.2 Array Operators")
    bookmark = Bookmark(file_name="chapter_02.html", label="3.2", tooltip="3.2 Array Operators")

    assert not resolve_link(element, bookmark, section_file)
    assert not element.modified
    assert not section_file.modified


def test_same_file_link_drops_the_file_part():
    section_file = SectionFile("chapter_02.html")
    element = _link("see", "chapter_02.html#eq", "chapter_02.html", "eq")
    bookmark = Bookmark(file_name="chapter_02.html", label="(2.1)", tooltip="")

    assert resolve_link(element, bookmark, section_file)
    assert link_href(element) == "#eq"
    assert element.new_text == "(2.1)"


def test_empty_label_keeps_link_text():
    section_file = SectionFile("chapter_01.html")
    element = _link("Otter (2015)", "refs.html#Otter", "refs.html", "Otter")
    bookmark = Bookmark(file_name="references.html", label="", tooltip="Modelica book")

    assert resolve_link(element, bookmark, section_file)
    assert element.new_text == "Otter (2015)"
    assert element.target_file == "references.html"
    assert element.tooltip == "Modelica book"


def test_resolve_links_over_a_book(caplog):
    caplog.set_level(logging.INFO, logger="makewebbook")
    structure = _build(
        [
            (
                "chapter_01.html",
                "\n".join(
                    [
                        '<h1 id="c1">Chapter 1 One</h1>',
                        '<p><a href="chapter_02.html#ops" title="2.1 Operators">2.1</a></p>',
                        '<p><a href="chapter_01.html#c1">wrong</a></p>',
                        '<p><a href="#missing">lost</a> <a href="nowhere.html">gone</a> <a href="toc.html">toc</a></p>',
                    ]
                ),
            ),
            ("chapter_02.html", '<h1 id="c2">Chapter 2 Two</h1>\n<h2 id="ops">Operators</h2>'),
        ]
    )

    report = resolve_links(structure)

    assert report.modified == 1
    assert report.unresolved == 1
    assert report.unknown_files == 1
    first = structure.section_files[0]
    links = [element for element in first.elements if element.is_link]
    assert not links[0].modified
    assert links[1].modified
    assert links[1].new_text == "Chapter 1"
    assert links[1].target_file == ""
    assert links[1].tooltip == "Chapter 1 One"
    assert "Internal link not resolved" in caplog.text
    assert "Internal link is wrong" in caplog.text
    assert "Link modified" in caplog.text
    assert not structure.section_files[1].elements[0].modified
