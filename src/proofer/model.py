from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, List, Tuple
from pydantic import BaseModel, ConfigDict, Field

# Status used for failures that did not come from an HTTP response
INTERNAL_STATUS = -1


class ReferenceKind(str, Enum):
    INTERNAL_PATH = "internal-path"
    INTERNAL_HASH = "internal-hash"
    EXTERNAL_URL = "external-url"


class Issue(BaseModel):
    """
    A single validation failure found in a document.

    Two issues are equal when path, description and line number match;
    status, check name and content do not take part in deduplication.
    """
    model_config = ConfigDict(frozen=True)

    path: str
    description: str
    line_number: Optional[int] = None
    status: int = INTERNAL_STATUS
    check_name: str = ""
    content: Optional[str] = None  # HTML snippet echoed in reports (malformed links)

    @property
    def key(self) -> Tuple[str, str, Optional[int]]:
        return self.path, self.description, self.line_number

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Issue):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def format(self) -> str:
        """Formats the issue as '<path>: <description> (line <n>)'."""
        return f"{self.path}: {self.description}{self.line_suffix}"

    @property
    def line_suffix(self) -> str:
        return f" (line {self.line_number})" if self.line_number is not None else ""


class Reference(BaseModel):
    """
    A resource mention extracted from a document by a check.
    `raw_value` is the attribute as written, `url` the value after url_swap rewrites.
    """
    model_config = ConfigDict(frozen=True)

    kind: ReferenceKind
    raw_value: str
    url: str
    source_path: str
    source_line: Optional[int] = None
    check_name: str = ""
    meta: Dict[str, Any] = Field(default_factory=dict)


class ExternalOutcome(BaseModel):
    """Result of verifying one external URL (shared by every reference to it)."""
    model_config = ConfigDict(frozen=True)

    ok: bool
    status: int
    message: str = ""


class CacheEntry(BaseModel):
    """
    Persisted verification outcome for one normalized external URL.
    Maps directly to the 'external_cache' table of the cache database.
    """
    key: str
    ok: bool
    status: int
    message: str = ""
    checked_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def outcome(self) -> ExternalOutcome:
        return ExternalOutcome(ok=self.ok, status=self.status, message=self.message)


class RunResult(BaseModel):
    """
    Finalized outcome of one run: the ordered failures plus summary counts.
    """
    failures: List[Issue] = Field(default_factory=list)
    error_sort: str = "path"

    documents_checked: int = 0
    external_checked: int = 0
    cache_hits: int = 0
    network_requests: int = 0
    duration: float = 0.0

    @property
    def failed_tests(self) -> List[str]:
        return [issue.format() for issue in self.failures]

    @property
    def exit_code(self) -> int:
        return 1 if self.failures else 0

    def report(self, sort: Optional[str] = None) -> str:
        """Renders the human-readable report, grouped by the given (or configured) sort mode."""
        from .controllers.report_controller import ReportController
        return ReportController(self.failures).render(sort or self.error_sort)
