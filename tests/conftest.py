import json

import pytest

from page_composer.extractor import ExtractedDocument, Heading, Link


class FakeResponse:
    """Minimal stand-in for ``requests.Response``."""

    def __init__(self, status_code=200, body=b"", json_data=None):
        self.status_code = status_code
        if json_data is not None:
            body = json.dumps(json_data).encode("utf-8")
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.body = body
        self.closed = False

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self.body), chunk_size):
            yield self.body[start:start + chunk_size]

    def json(self):
        return json.loads(self.body.decode("utf-8"))

    def close(self):
        self.closed = True


class FakeSession:
    """Records requests and replays queued responses or exceptions."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self.closed = False

    def _next(self, method, url, kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def get(self, url, **kwargs):
        return self._next("GET", url, kwargs)

    def post(self, url, **kwargs):
        return self._next("POST", url, kwargs)

    def close(self):
        self.closed = True


@pytest.fixture
def sample_document():
    return ExtractedDocument(
        source_url="https://a.example/base",
        title="Sample Page",
        description="A page used in tests",
        headings=(Heading(1, "Welcome"), Heading(2, "Details")),
        paragraphs=("This paragraph is long enough to survive the extraction filter.",),
        links=(Link("About", "https://a.example/about"),),
    )
