# src/proofer/dom/registry.py
import importlib
import pkgutil
import logging
from typing import Dict, List, Type

from .core import CheckBase
from ..options import ProoferOptions

logger = logging.getLogger(__name__)


class CheckRegistry:
    """
    Central name -> class registry of checks.

    Discovers the modules of the 'proofer.dom.checks' package; every module
    exposing a `CHECK` attribute (a CheckBase subclass) is registered under
    the check's name.
    """

    _checks: Dict[str, Type[CheckBase]] = {}
    _loaded: bool = False

    @classmethod
    def discover(cls) -> None:
        """Discovers and registers all checks found in the 'proofer.dom.checks' package."""
        if cls._loaded:
            return

        try:
            import proofer.dom.checks as checks_pkg

            for _, name, _ in pkgutil.iter_modules(checks_pkg.__path__):
                full_name = f"proofer.dom.checks.{name}"
                try:
                    module = importlib.import_module(full_name)
                except ImportError as e:
                    logger.error(f"Error loading check module {name}: {e}")
                    continue

                check_cls = getattr(module, "CHECK", None)
                if isinstance(check_cls, type) and issubclass(check_cls, CheckBase):
                    cls.register(check_cls)

            cls._loaded = True
        except ImportError as e:
            logger.error(f"Could not find checks package: {e}")

    @classmethod
    def register(cls, check_cls: Type[CheckBase]) -> None:
        cls._checks[check_cls.name] = check_cls
        logger.debug(f"Check registered: {check_cls.name}")

    @classmethod
    def active_checks(cls, options: ProoferOptions) -> List[Type[CheckBase]]:
        """
        Returns the checks to run, in name order: opt-in checks must be enabled
        and names listed in checks_to_ignore are dropped. Unknown names in the
        ignore list are tolerated.
        """
        cls.discover()

        unknown = options.checks_to_ignore - set(cls._checks)
        if unknown:
            logger.debug("Ignoring unknown check names: %s", ", ".join(sorted(unknown)))

        return [
            cls._checks[name] for name in sorted(cls._checks)
            if name not in options.checks_to_ignore and cls._checks[name].is_enabled(options)
        ]
