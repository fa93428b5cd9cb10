"""Prompt text for composing a page from an extracted document."""

from __future__ import annotations

from typing import List

from page_composer.extractor import ExtractedDocument

SYSTEM_PROMPT = (
    "You are a helpful assistant that turns structured website data into clean, "
    "self-contained HTML pages without using Markdown code fences. Infer the purpose "
    "or theme of the content, tailor the layout accordingly, and preserve every piece "
    "of information and link without summarising or omitting details."
)

INSTRUCTIONS = (
    "You are a helpful assistant that converts scraped website data into clean HTML.",
    "Study the information, infer the primary theme or purpose of the source page, "
    "and reflect it in the layout and copy.",
    "Reimagine the page with modern styling and structure while faithfully preserving "
    "all information, wording, lists, media references, and outbound links.",
    "Use semantic HTML5, include a descriptive title section and themed subsections "
    "that match the inferred theme.",
    "Reference the original source prominently.",
)

CLOSING_DIRECTIVE = (
    "Return only raw HTML inside <html> tags. Do not wrap the output in Markdown "
    "code fences. Keep every link clickable and preserve every list and fact; "
    "do not summarise or omit anything."
)


def build_prompt(document: ExtractedDocument) -> str:
    lines: List[str] = list(INSTRUCTIONS)
    lines.append("")

    lines.append(f"Source URL: {document.source_url}")
    if document.title:
        lines.append(f"Title: {document.title}")
    if document.description:
        lines.append(f"Description: {document.description}")

    if document.headings:
        lines.append("Headings:")
        lines.extend(f"- H{h.level} {h.text}" for h in document.headings)

    if document.paragraphs:
        lines.append("Paragraphs:")
        lines.extend(f"- {p}" for p in document.paragraphs)

    if document.links:
        lines.append("Links:")
        lines.extend(f"- {link.text} -> {link.href}" for link in document.links)

    lines.append("")
    lines.append(CLOSING_DIRECTIVE)
    return "\n".join(lines)
