# tests/proofer/conftest.py
import pytest

from proofer.dom.builder import DocumentBuilder


class FakeHttpService:
    """
    Stands in for HttpRequestService: answers from a url -> status map and
    records every request. A list of statuses is consumed one per request.
    """

    def __init__(self, statuses=None, default=200):
        self.statuses = dict(statuses or {})
        self.default = default
        self.calls = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def perform_request(self, url, method="HEAD"):
        self.calls.append((method, url))
        status = self.statuses.get(url, self.default)
        if isinstance(status, list):
            status = status.pop(0) if len(status) > 1 else status[0]
        if status == -1:
            return {"status": -1, "error": "Connection refused"}
        return {"status": status, "error": None}

    def urls(self, method=None):
        return [url for m, url in self.calls if method is None or m == method]


@pytest.fixture
def fake_http():
    return FakeHttpService()


@pytest.fixture
def write_html(tmp_path):
    """Writes an HTML file below tmp_path from a list of lines and returns its path."""
    def _write(name, lines):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("\n".join(lines), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def make_doc(write_html):
    """Writes and loads a Document in one step."""
    def _make(name, lines):
        return DocumentBuilder().load(write_html(name, lines))
    return _make


@pytest.fixture
def make_http():
    """Builds a FakeHttpService answering from a url -> status map."""
    return FakeHttpService
