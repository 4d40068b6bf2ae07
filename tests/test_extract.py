from makewebbook import extract

DOC = (
    "<!DOCTYPE html>\n"
    "<html>\n"
    '<body class="book">\n'
    '<nav><ul><li><a href="toc.html">Table of Contents</a></li><li><a>Previous</a></li></ul></nav>\n'
    '<h1 id="ch1">Chapter 1 <em>Intro</em></h1>\n'
    "<p>Text &amp; a <a href=\"#ch1\" title=\"tip\">link</a>.</p>\n"
    '<table><caption>Numbers</caption><tr><td>1</td></tr></table>\n'
    '<div class="equation"> $$ a &lt; b $$ <div>nested</div></div>\n'
    '<ul class="references">\n'
    '  <li id="ref1" title="[1]"><strong>Book</strong> by someone</li>\n'
    "  <li>no id</li>\n"
    '  <li id="ref2"><strong>First</strong> and <strong>Paper</strong></li>\n'
    "</ul>\n"
    "</body>\n"
    "</html>\n"
)


def _parse():
    return extract.parse_html_text(DOC, "chapter_01.html")


def test_nodes_are_classified_in_document_order():
    parsed = _parse()
    kinds = [node.kind for node in parsed.nodes]
    assert kinds == ["nav", "heading", "link", "caption", "equation", "references"]


def test_nav_reports_its_link_targets():
    nav = _parse().nodes[0]
    assert nav.nav_hrefs == ["toc.html", "???"]
    assert DOC[nav.span.start : nav.span.close_end].startswith("<nav>")
    assert DOC[nav.span.start : nav.span.close_end].endswith("</ul></nav>")


def test_spans_point_at_the_original_markup():
    parsed = _parse()
    heading = parsed.nodes[1]
    assert heading.text == "Chapter 1 Intro"
    assert heading.level == 1
    assert DOC[heading.span.start : heading.span.open_end] == '<h1 id="ch1">'
    assert DOC[heading.span.open_end : heading.span.close_start] == "Chapter 1 <em>Intro</em>"
    assert DOC[heading.span.close_start : heading.span.close_end] == "</h1>"

    link = parsed.nodes[2]
    assert link.attr("href") == "#ch1"
    assert link.attr("title") == "tip"
    assert DOC[link.span.start : link.span.open_end] == '<a href="#ch1" title="tip">'


def test_equation_end_tag_skips_nested_divs():
    equation = _parse().nodes[4]
    assert equation.text == " $$ a < b $$ nested"
    assert DOC[equation.span.close_start : equation.span.close_end] == "</div>"
    assert DOC[equation.span.open_end : equation.span.close_start] == " $$ a &lt; b $$ <div>nested</div>"


def test_reference_items_use_title_and_last_strong_run():
    references = _parse().nodes[5].references
    assert [(item.ident, item.title, item.strong_text) for item in references] == [
        ("ref1", "[1]", "Book"),
        ("ref2", "", "Paper"),
    ]


def test_body_and_ids_are_reported():
    parsed = _parse()
    assert DOC[: parsed.body_open_end].endswith('<body class="book">')
    assert {"ch1", "ref1", "ref2"} <= parsed.ids


def test_source_bytes_and_crlf_offsets_survive_parsing(tmp_path):
    raw = b"<html>\r\n<body>\r\n<h1>Chapter 1 Caf\xc3\xa9</h1>\r\n</body></html>\r\n"
    path = tmp_path / "chapter_01.html"
    path.write_bytes(raw)
    parsed = extract.parse_section_file(path)
    assert parsed.file_name == "chapter_01.html"
    assert extract.encode_source_text(parsed.text) == raw
    heading = parsed.nodes[0]
    assert heading.text == "Chapter 1 Caf\u00e9"
    assert parsed.text[heading.span.start : heading.span.close_end] == "<h1>Chapter 1 Caf\u00e9</h1>"
