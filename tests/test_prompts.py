from page_composer.extractor import ExtractedDocument
from page_composer.prompts import CLOSING_DIRECTIVE, SYSTEM_PROMPT, build_prompt


def test_prompt_embeds_sections_in_fixed_order(sample_document):
    prompt = build_prompt(sample_document)

    order = [
        "Source URL: https://a.example/base",
        "Title: Sample Page",
        "Description: A page used in tests",
        "Headings:",
        "- H1 Welcome",
        "- H2 Details",
        "Paragraphs:",
        "- This paragraph is long enough",
        "Links:",
        "- About -> https://a.example/about",
        CLOSING_DIRECTIVE,
    ]
    positions = [prompt.index(fragment) for fragment in order]
    assert positions == sorted(positions)
    assert prompt.endswith(CLOSING_DIRECTIVE)


def test_empty_sections_are_omitted():
    prompt = build_prompt(ExtractedDocument(source_url="https://a.example/"))
    assert "Source URL: https://a.example/" in prompt
    for header in ("Title:", "Description:", "Headings:", "Paragraphs:", "Links:"):
        assert header not in prompt


def test_prompt_is_deterministic(sample_document):
    assert build_prompt(sample_document) == build_prompt(sample_document)


def test_directive_forbids_fences_and_summarising():
    assert "code fences" in CLOSING_DIRECTIVE
    assert "raw HTML" in CLOSING_DIRECTIVE
    assert "summarise" in CLOSING_DIRECTIVE
    assert "code fences" in SYSTEM_PROMPT
