# tests/core/test_config_management.py
import json

import pytest

from proofer.options import ProoferOptions
from proofer_cli.core.managers.config_manager import ConfigManager
from proofer_cli.core.utils.path_utils import PathUtils

# A small, predictable configuration for the tests
MOCK_SETTINGS_CONTENT = {
    "debug": {
        "level": "WARNING"
    },
    "proofer": {
        "error_sort": "issue",
        "check_favicon": False
    },
    "link_checker": {
        "concurrency": 10,
        "timeout": 5
    },
    "cache": {
        "enabled": True,
        "timeframe": "7d"
    }
}


@pytest.fixture
def config_env(tmp_path, monkeypatch):
    """
    Isolated ConfigManager:
    - writes a fake settings.json into a temporary package root,
    - points PathUtils at it,
    - reloads the singleton from that file.
    """
    settings_file = tmp_path / "settings.json"
    settings_file.write_text(json.dumps(MOCK_SETTINGS_CONTENT))

    monkeypatch.setattr(PathUtils, "get_settings_file", lambda: settings_file)

    manager = ConfigManager()
    manager.reset()
    yield manager
    # Leave the singleton as the rest of the suite expects it
    monkeypatch.undo()
    manager.reset()


def test_config_manager_is_a_singleton(config_env):
    assert ConfigManager() is config_env


def test_config_manager_load(config_env):
    config = config_env.get_all()
    assert config["debug"]["level"] == "WARNING"
    assert config["link_checker"]["concurrency"] == 10


def test_config_manager_get_nested(config_env):
    assert config_env.get_nested("link_checker.timeout") == 5
    assert config_env.get_nested("non.existent.key", "default") == "default"
    assert config_env.get_nested("debug.level.deeper", "default") == "default"


def test_config_manager_set_nested(config_env):
    config_env.set_nested("debug.level", "INFO")
    assert config_env.get_nested("debug.level") == "INFO"

    # New keys are created on the fly
    config_env.set_nested("new_feature.enabled", "yes")
    assert config_env.get_nested("new_feature.enabled") == "yes"

    # Values are cast to the type of the value they replace
    config_env.set_nested("link_checker.concurrency", "20")
    assert config_env.get_nested("link_checker.concurrency") == 20

    config_env.set_nested("proofer.check_favicon", "true")
    assert config_env.get_nested("proofer.check_favicon") is True
    config_env.set_nested("proofer.check_favicon", "off")
    assert config_env.get_nested("proofer.check_favicon") is False


def test_config_manager_set_nested_through_a_value(config_env):
    assert config_env.set_nested("debug.level.sub", "x") is False


def test_config_manager_reset(config_env):
    config_env.set_nested("debug.level", "DEBUG")
    assert config_env.get_nested("debug.level") == "DEBUG"

    config_env.reset()

    assert config_env.get_nested("debug.level") == "WARNING"


def test_missing_settings_file(tmp_path, monkeypatch, config_env):
    monkeypatch.setattr(PathUtils, "get_settings_file", lambda: tmp_path / "missing.json")
    config_env.reset()
    assert config_env.get_all() == {}


def test_settings_feed_the_options(config_env):
    options = ProoferOptions.from_settings(config_env.get_all())

    assert options.error_sort == "issue"
    assert options.external_concurrency == 10
    assert options.timeout == 5
    assert options.cache_ttl.days == 7


def test_shipped_settings_are_valid():
    with open(PathUtils.get_settings_file(), encoding="utf-8") as f:
        settings = json.load(f)

    options = ProoferOptions.from_settings(settings)
    assert options.cache_enabled is True
    assert options.error_sort == "path"


def test_config_manager_set_nested_list(config_env):
    config_env.set_nested("proofer.url_ignore", [])
    config_env.set_nested("proofer.url_ignore", "/localhost/, https://example.com/")
    assert config_env.get_nested("proofer.url_ignore") == ["/localhost/", "https://example.com/"]
