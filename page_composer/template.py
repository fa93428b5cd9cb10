"""Deterministic reader view for extracted documents."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from urllib.parse import urlparse

from jinja2 import Environment, BaseLoader

from page_composer.extractor import ExtractedDocument
from page_composer.navigation import WEB_SCHEMES

TIME_FORMAT = "%d %b %Y %H:%M %Z"

_STYLE = """
body { font-family: "Inter", "Segoe UI", sans-serif; margin: 0 auto; max-width: 960px; padding: 2rem; background: #f5f7fb; color: #1d2433; }
header { border-bottom: 1px solid #d4d9e2; margin-bottom: 1.5rem; padding-bottom: 1rem; }
h1 { margin: 0 0 .5rem 0; font-size: 2.4rem; }
section { margin-bottom: 2rem; background: #fff; border-radius: 12px; padding: 1.5rem; box-shadow: 0 1px 3px rgba(0,0,0,.08); }
h2 { font-size: 1.5rem; margin-top: 0; }
ul { padding-left: 1.2rem; }
a { color: #2b5dcc; text-decoration: none; }
a:hover { text-decoration: underline; }
small { color: #5b6576; }
.error { border-left: 4px solid #d64545; }
"""

READER_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8" />
<title>{% if doc.title %}{{ doc.title }} - Page Composer{% else %}Page Composer Summary{% endif %}</title>
<style>{{ style | safe }}</style>
</head>
<body>
<header>
  <h1>{{ doc.title or "Scraped Summary" }}</h1>
  <small>Source: <a href="{{ doc.source_url | web_href }}">{{ doc.source_url }}</a>{% if fetched %} &bull; {{ fetched }}{% endif %}</small>
  {% if doc.description %}<p>{{ doc.description }}</p>{% endif %}
</header>
<section>
  <h2>Key Headings</h2>
  {% if doc.headings %}
  <ul>
    {% for h in doc.headings %}<li><strong>H{{ h.level }}</strong> &mdash; {{ h.text }}</li>
    {% endfor %}
  </ul>
  {% else %}<p>No major headings detected.</p>{% endif %}
</section>
<section>
  <h2>Highlights</h2>
  {% for p in doc.paragraphs %}<p>{{ p }}</p>
  {% else %}<p>Not enough textual content found.</p>{% endfor %}
</section>
<section>
  <h2>Links</h2>
  {% if doc.links %}
  <ul>
    {% for link in doc.links %}<li><a href="{{ link.href | web_href }}" target="_blank" rel="noopener">{{ link.text }}</a></li>
    {% endfor %}
  </ul>
  {% else %}<p>No links captured.</p>{% endif %}
</section>
</body>
</html>
"""

ERROR_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8" />
<title>{{ title }}</title>
<style>{{ style | safe }}</style>
</head>
<body>
<section class="error">
  <h2>{{ title }}</h2>
  <p>{{ message }}</p>
</section>
</body>
</html>
"""

UNSAFE_HREF = "#"


def web_href(href: str) -> str:
    """The href itself when it is http(s), otherwise an inert ``#``."""
    try:
        scheme = urlparse((href or "").strip()).scheme
    except ValueError:
        return UNSAFE_HREF
    if scheme.lower() not in WEB_SCHEMES:
        return UNSAFE_HREF
    return href


_env = Environment(
    loader=BaseLoader(),
    autoescape=True,
    trim_blocks=True,
    lstrip_blocks=True,
)
_env.filters["web_href"] = web_href
_reader = _env.from_string(READER_TEMPLATE)
_error = _env.from_string(ERROR_TEMPLATE)


def format_time(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.strftime(TIME_FORMAT).strip()


def render_template(document: ExtractedDocument) -> str:
    return _reader.render(
        doc=document, fetched=format_time(document.fetched_at), style=_STYLE
    )


def render_error_page(title: str, message: str) -> str:
    return _error.render(title=title, message=message, style=_STYLE)
