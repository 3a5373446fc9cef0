# src/proofer_cli/core/utils/path_utils.py
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class PathUtils:
    """
    A central utility for retrieving the paths the CLI reads from and writes to.
    """

    # --- Package paths ---

    @staticmethod
    def get_cli_package_root() -> Path:
        """Returns the directory of the installed proofer_cli package (holds settings.json)."""
        return Path(__file__).resolve().parents[2]

    @staticmethod
    def get_settings_file() -> Path:
        return PathUtils.get_cli_package_root() / "settings.json"

    # --- Working directory paths ---

    @staticmethod
    def get_cache_root() -> Path:
        """
        Returns the cache directory of the current working directory
        (e.g., /path/to/site/.pydproofer_cache).
        """
        return Path.cwd() / ".pydproofer_cache"

    @staticmethod
    def get_cache_db_path() -> Path:
        """Returns the path of the external link cache database."""
        return PathUtils.get_cache_root() / "cache.db"
