# src/proofer_cli/core/managers/config_manager.py
import json
import logging
from typing import Any, Dict, Optional

from proofer_cli.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}


class ConfigManager:
    """
    A singleton holding the CLI configuration.
    Loads the defaults from settings.json and allows in-memory modifications.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        self._config: Dict[str, Any] = {}
        self.reset()
        logger.debug("ConfigManager initialized.")

    def get_all(self) -> Dict[str, Any]:
        """Returns the entire current configuration dictionary."""
        return self._config

    def get_nested(self, key_path: str, default: Optional[Any] = None) -> Any:
        """
        Safely retrieves a nested value, e.g. 'link_checker.concurrency'.
        """
        value = self._config
        for key in key_path.split('.'):
            if isinstance(value, dict):
                value = value.get(key)
            else:
                return default
        return value if value is not None else default

    @staticmethod
    def _cast_like(original: Any, value: Any, key_path: str) -> Any:
        """Casts a (string) value to the type of the value it replaces."""
        if original is None or isinstance(value, type(original)):
            return value
        if isinstance(original, bool):
            text = str(value).strip().lower()
            if text in _TRUE_STRINGS:
                return True
            if text in _FALSE_STRINGS:
                return False
            logger.warning("Could not cast '%s' for '%s' to bool. Storing as string.", value, key_path)
            return value
        if isinstance(original, list):
            return [item.strip() for item in str(value).split(",") if item.strip()]
        try:
            return type(original)(value)
        except (ValueError, TypeError):
            logger.warning(
                "Could not cast new value for '%s' to type %s. Storing as string.",
                key_path, type(original).__name__
            )
            return value

    def set_nested(self, key_path: str, value: Any) -> bool:
        """
        Sets a nested value in the in-memory configuration, e.g. ('debug.level', 'INFO').
        """
        keys = key_path.split('.')
        d = self._config
        for key in keys[:-1]:
            d = d.setdefault(key, {})
            if not isinstance(d, dict):
                logger.error("Cannot set value: '%s' is not a dictionary.", key)
                return False

        d[keys[-1]] = self._cast_like(d.get(keys[-1]), value, key_path)
        logger.debug("Configuration updated: %s = %s", key_path, d[keys[-1]])
        return True

    def reset(self):
        """Reloads the in-memory configuration from settings.json."""
        config_path = PathUtils.get_settings_file()
        if not config_path.exists():
            logger.warning("settings.json not found at %s. Using empty config.", config_path)
            self._config = {}
            return
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                self._config = json.load(f)
            logger.debug("Configuration has been (re)loaded from %s.", config_path)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to load settings.json: %s", e, exc_info=True)
            self._config = {}


# The global singleton instance used by the CLI.
config_manager = ConfigManager()
