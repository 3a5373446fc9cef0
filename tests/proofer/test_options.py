# tests/proofer/test_options.py
import re
from datetime import timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError

from proofer.errors import ConfigurationError
from proofer.options import IgnoreRule, ProoferOptions, parse_timeframe


@pytest.mark.parametrize("value, expected", [
    ("30d", timedelta(days=30)),
    ("2w", timedelta(weeks=2)),
    ("6h", timedelta(hours=6)),
    ("15m", timedelta(minutes=15)),
    ("1M", timedelta(days=30)),
    ("1y", timedelta(days=365)),
])
def test_parse_timeframe(value, expected):
    assert parse_timeframe(value) == expected


@pytest.mark.parametrize("value", ["", "30", "d", "3 days", "-1d"])
def test_parse_timeframe_rejects_garbage(value):
    with pytest.raises(ConfigurationError):
        parse_timeframe(value)


def test_ignore_rules():
    exact = IgnoreRule.parse("./site/a.html")
    pattern = IgnoreRule.parse("/^https?://localhost/")
    compiled = IgnoreRule.parse(re.compile(r"\.pdf$"))

    assert (exact.kind, pattern.kind, compiled.kind) == ("exact", "pattern", "pattern")
    assert exact.matches("site/a.html")
    assert not exact.matches("site/b.html")
    assert pattern.matches("http://localhost:8000/x")
    assert compiled.matches("docs/guide.pdf")


def test_malformed_ignore_pattern():
    with pytest.raises(ConfigurationError):
        ProoferOptions.from_settings({"proofer": {"url_ignore": ["/([a-z/"]}})


@pytest.mark.parametrize("values", [
    {"url_ignore": ["/([a-z/"]},
    {"url_swap": {"([": "/"}},
    {"error_sort": "alphabetical"},
    {"document_workers": 0},
])
def test_direct_construction_raises_configuration_error(values):
    with pytest.raises(ConfigurationError):
        ProoferOptions(**values)


def test_defaults():
    options = ProoferOptions()
    assert options.error_sort == "path"
    assert options.directory_index_file == "index.html"
    assert options.cache_ttl is None
    assert options.http_status_ignore == frozenset()


def test_options_are_immutable():
    options = ProoferOptions()
    with pytest.raises(ValidationError):
        options.external_only = True


def test_from_settings_maps_sections():
    settings = {
        "proofer": {"error_sort": "status", "file_ignore": ["/vendor/"], "checks_to_ignore": ["ScriptCheck"]},
        "link_checker": {"concurrency": 8, "timeout": 5, "retries": 0, "follow_redirects": False},
        "cache": {"enabled": True, "timeframe": "2w", "path": "/tmp/cache.db"},
    }
    options = ProoferOptions.from_settings(settings, timeout=None, retries=3)

    assert options.error_sort == "status"
    assert options.file_ignore[0].kind == "pattern"
    assert options.checks_to_ignore == frozenset({"ScriptCheck"})
    assert options.external_concurrency == 8
    assert options.timeout == 5
    assert options.retries == 3
    assert options.follow_redirects is False
    assert options.cache_ttl == timedelta(weeks=2)
    assert options.cache_path == Path("/tmp/cache.db")


@pytest.mark.parametrize("settings", [
    {"proofer": {"error_sort": "alphabetical"}},
    {"proofer": {"no_such_option": True}},
    {"cache": {"timeframe": "soon"}},
    {"link_checker": {"concurrency": 0}},
])
def test_from_settings_rejects_invalid_configuration(settings):
    with pytest.raises(ConfigurationError):
        ProoferOptions.from_settings(settings)
