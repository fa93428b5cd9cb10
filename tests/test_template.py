from datetime import datetime, timezone

from page_composer.extractor import ExtractedDocument, Link, parse_document
from page_composer.template import format_time, render_error_page, render_template, web_href


def test_reader_view_contains_every_section(sample_document):
    html = render_template(sample_document)

    assert "<title>Sample Page - Page Composer</title>" in html
    assert 'href="https://a.example/base"' in html
    assert "A page used in tests" in html
    assert "<strong>H1</strong> &mdash; Welcome" in html
    assert "<strong>H2</strong> &mdash; Details" in html
    assert "long enough to survive" in html
    assert '<a href="https://a.example/about" target="_blank" rel="noopener">About</a>' in html


def test_reader_view_placeholders_for_empty_document():
    html = render_template(ExtractedDocument(source_url="https://a.example/"))
    assert "Scraped Summary" in html
    assert "No major headings detected." in html
    assert "Not enough textual content found." in html
    assert "No links captured." in html


def test_reader_view_escapes_page_content():
    doc = ExtractedDocument(
        source_url="https://a.example/",
        title="<script>alert(1)</script>",
        links=(Link('x" onclick="y', "https://a.example/?a=1&b=2"),),
    )
    html = render_template(doc)
    assert "<script>alert(1)</script>" not in html
    assert "&lt;script&gt;" in html
    assert 'onclick="y' not in html
    assert "a=1&amp;b=2" in html


def test_render_is_deterministic(sample_document):
    assert render_template(sample_document) == render_template(sample_document)


def test_format_time():
    stamp = datetime(2024, 3, 5, 14, 7, tzinfo=timezone.utc)
    assert format_time(stamp) == "05 Mar 2024 14:07 UTC"
    assert format_time(None) == ""


def test_error_page_escapes_message():
    html = render_error_page("Something went wrong", "Scrape failed: <b>boom</b>")
    assert "Something went wrong" in html
    assert "&lt;b&gt;boom&lt;/b&gt;" in html


def test_reader_view_neutralizes_script_links():
    doc = ExtractedDocument(
        source_url="https://a.example/",
        links=(
            Link("click", "javascript:alert(document.cookie)"),
            Link("data", "data:text/html,<b>x</b>"),
            Link("ok", "https://a.example/ok"),
        ),
    )
    html = render_template(doc)
    assert "javascript:" not in html
    assert "data:text/html" not in html
    assert '<a href="#" target="_blank" rel="noopener">click</a>' in html
    assert '<a href="https://a.example/ok" target="_blank" rel="noopener">ok</a>' in html


def test_extracted_script_link_is_not_clickable():
    doc = parse_document(
        '<a href="javascript:alert(document.cookie)">click</a>', "https://a.example/"
    )
    assert 'href="javascript:' not in render_template(doc)


def test_web_href_filter():
    assert web_href("http://a.example/") == "http://a.example/"
    assert web_href("HTTPS://a.example/") == "HTTPS://a.example/"
    assert web_href(" JavaScript:void(0)") == "#"
    assert web_href("mailto:x@a.example") == "#"
    assert web_href("") == "#"
