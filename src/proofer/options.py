# src/proofer/options.py
import logging
import re
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, FrozenSet, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# URL-safe characters or percent escapes only; spaces and the like are "terrible".
DEFAULT_SAFE_FILENAME_PATTERN = r"^([!#$&-;=?-\[\]_a-z~]|%[0-9a-fA-F]{2})+$"

SORT_MODES = ("path", "issue", "desc", "status")

_TIMEFRAME_UNITS = {
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
    "M": timedelta(days=30),
    "y": timedelta(days=365),
}


def parse_timeframe(value: str) -> timedelta:
    """
    Parses a cache timeframe such as '30d', '2w', '6h' or '1y' into a timedelta.
    Units: s, m (minutes), h, d, w, M (30 days), y (365 days).
    """
    match = re.fullmatch(r"\s*(\d+)\s*([smhdwMy])\s*", value or "")
    if not match:
        raise ConfigurationError(f"Invalid cache timeframe '{value}' (expected e.g. '30d', '2w', '6h')")
    amount, unit = match.groups()
    return int(amount) * _TIMEFRAME_UNITS[unit]


class IgnoreRule(BaseModel):
    """
    One entry of an ignore list: either an exact string or a regular expression.
    In settings files and on the command line, '/regex/' denotes a pattern.
    """
    model_config = ConfigDict(frozen=True)

    kind: Literal["exact", "pattern"]
    value: str

    @classmethod
    def parse(cls, raw: Union[str, re.Pattern, "IgnoreRule"]) -> "IgnoreRule":
        if isinstance(raw, IgnoreRule):
            return raw
        if isinstance(raw, re.Pattern):
            rule = cls(kind="pattern", value=raw.pattern)
        elif isinstance(raw, str) and len(raw) > 2 and raw.startswith("/") and raw.endswith("/"):
            rule = cls(kind="pattern", value=raw[1:-1])
        elif isinstance(raw, str):
            rule = cls(kind="exact", value=raw)
        else:
            raise ConfigurationError(f"Ignore rule must be a string or pattern, got {type(raw).__name__}")

        if rule.kind == "pattern":
            try:
                re.compile(rule.value)
            except re.error as e:
                raise ConfigurationError(f"Malformed ignore pattern /{rule.value}/: {e}") from e
        return rule

    def matches(self, text: str) -> bool:
        if self.kind == "pattern":
            return re.search(self.value, text) is not None
        if text == self.value:
            return True
        # Exact path rules also match the same path spelled differently ('./a.html' vs 'a.html')
        try:
            return Path(text) == Path(self.value)
        except (TypeError, ValueError):
            return False


def _parse_rules(value: Any) -> Tuple[IgnoreRule, ...]:
    if value is None:
        return ()
    if isinstance(value, (str, re.Pattern, IgnoreRule)):
        value = [value]
    return tuple(IgnoreRule.parse(item) for item in value)


class ProoferOptions(BaseModel):
    """
    Immutable option set for one proofing run. Passed explicitly into the
    orchestrator, every check and both resolvers.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    # --- Selection ---
    checks_to_ignore: FrozenSet[str] = frozenset()
    file_ignore: Tuple[IgnoreRule, ...] = ()
    url_ignore: Tuple[IgnoreRule, ...] = ()
    alt_ignore: Tuple[IgnoreRule, ...] = ()
    url_swap: Dict[str, str] = Field(default_factory=dict)
    extension: str = ".html"

    # --- Reporting ---
    external_only: bool = False
    error_sort: Literal["path", "issue", "desc", "status"] = "path"

    # --- Check behaviour ---
    allow_hash_href: bool = False
    empty_alt_ignore: bool = False
    enforce_https: bool = False
    check_img_http: bool = False
    check_favicon: bool = False
    check_opengraph: bool = False
    assume_extension: Optional[str] = None
    directory_index_file: Optional[str] = "index.html"
    root_dir: Optional[Path] = None
    safe_filename_pattern: str = DEFAULT_SAFE_FILENAME_PATTERN

    # --- External verification ---
    disable_external: bool = False
    http_status_ignore: FrozenSet[int] = frozenset()
    external_concurrency: int = Field(default=50, ge=1)
    timeout: float = Field(default=15.0, gt=0)
    retries: int = Field(default=2, ge=0)
    backoff: float = Field(default=0.5, ge=0)
    max_redirects: int = Field(default=10, ge=0)
    follow_redirects: bool = True
    user_agent: Optional[str] = None
    show_progress: bool = False

    # --- Cache ---
    cache_enabled: bool = True
    cache_path: Optional[Path] = None
    cache_ttl: Optional[timedelta] = None

    # --- Workers ---
    document_workers: int = Field(default=4, ge=1)

    def __init__(self, **data: Any):
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @field_validator("file_ignore", "url_ignore", "alt_ignore", mode="before")
    @classmethod
    def _to_rules(cls, v: Any) -> Tuple[IgnoreRule, ...]:
        return _parse_rules(v)

    @field_validator("checks_to_ignore", mode="before")
    @classmethod
    def _to_names(cls, v: Any) -> FrozenSet[str]:
        if v is None:
            return frozenset()
        if isinstance(v, str):
            v = [v]
        return frozenset(str(name).strip() for name in v if str(name).strip())

    @field_validator("cache_ttl", mode="before")
    @classmethod
    def _to_ttl(cls, v: Any) -> Any:
        if isinstance(v, str):
            return parse_timeframe(v)
        return v

    @field_validator("url_swap", mode="before")
    @classmethod
    def _check_swaps(cls, v: Any) -> Any:
        for pattern in (v or {}):
            try:
                re.compile(pattern)
            except re.error as e:
                raise ConfigurationError(f"Malformed url_swap pattern /{pattern}/: {e}") from e
        return v or {}

    @field_validator("safe_filename_pattern")
    @classmethod
    def _check_filename_pattern(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as e:
            raise ConfigurationError(f"Malformed safe_filename_pattern: {e}") from e
        return v

    @classmethod
    def from_settings(cls, settings: Optional[Dict[str, Any]] = None, **overrides: Any) -> "ProoferOptions":
        """
        Builds options from a settings dictionary (the 'proofer', 'link_checker'
        and 'cache' sections of settings.json) plus explicit overrides.
        Overrides set to None are ignored so unset CLI flags keep the configured value.
        """
        settings = settings or {}
        values: Dict[str, Any] = dict(settings.get("proofer", {}))

        link_checker = settings.get("link_checker", {})
        for source, target in (
                ("concurrency", "external_concurrency"),
                ("timeout", "timeout"),
                ("retries", "retries"),
                ("backoff", "backoff"),
                ("max_redirects", "max_redirects"),
                ("follow_redirects", "follow_redirects"),
        ):
            if source in link_checker:
                values[target] = link_checker[source]

        cache = settings.get("cache", {})
        if "enabled" in cache:
            values["cache_enabled"] = cache["enabled"]
        if cache.get("timeframe"):
            values["cache_ttl"] = cache["timeframe"]
        if cache.get("path"):
            values["cache_path"] = cache["path"]

        values.update({k: v for k, v in overrides.items() if v is not None})

        options = cls(**values)
        logger.debug("Resolved options: %s", options)
        return options
