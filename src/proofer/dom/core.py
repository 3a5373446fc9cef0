import abc
import logging
import re
from typing import Dict, Any, List, Optional, Union

from bs4 import Tag
from pydantic import BaseModel, Field

from .models import Document
from ..model import Issue, Reference, ReferenceKind, INTERNAL_STATUS
from ..options import ProoferOptions
from ..managers.ignore_manager import IgnoreManager
from ..services.internal_resolver_service import InternalResolverService, InternalOutcome
from fetcher.utils.url_utils import UrlUtils

logger = logging.getLogger(__name__)

# A check yields immediate issues and deferred external references, in tree order.
Finding = Union[Issue, Reference]


class ElementBase(BaseModel):
    """
    Base data model representing one HTML element as seen by a check.
    """
    tag: str
    attrs: Dict[str, Any] = Field(default_factory=dict)
    line: Optional[int] = None
    content: str = ""

    def attr(self, name: str) -> Optional[str]:
        """Returns an attribute as a string (multi-valued attributes are space-joined)."""
        value = self.attrs.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value


def parse_element(tag: Tag) -> ElementBase:
    """Generic parser: copies attributes and source line of a bs4 Tag."""
    return ElementBase(
        tag=tag.name,
        attrs=dict(tag.attrs),
        line=tag.sourceline,
        content=str(tag)[:200],
    )


class CheckBase(metaclass=abc.ABCMeta):
    """
    Abstract base class for all checks.

    A check is bound to one Document and scans it for a category of resource.
    `run()` returns the findings in tree order: Issues for problems detected
    immediately and References for external URLs, which are verified later
    in one batched pass over all documents.
    """
    name: str = ""
    # Name of a boolean option that must be set for an opt-in check to run
    enabled_by: Optional[str] = None

    def __init__(self, document: Document, options: ProoferOptions, resolver: InternalResolverService):
        self.document = document
        self.options = options
        self.resolver = resolver
        self.ignore_manager = IgnoreManager(options)
        self.findings: List[Finding] = []

    @abc.abstractmethod
    def run(self) -> List[Finding]:
        raise NotImplementedError("Every check must implement a 'run' method.")

    @classmethod
    def is_enabled(cls, options: ProoferOptions) -> bool:
        return cls.enabled_by is None or bool(getattr(options, cls.enabled_by, False))

    # --- Finding helpers ---

    def add_issue(
            self,
            description: str,
            line: Optional[int] = None,
            status: int = INTERNAL_STATUS,
            content: Optional[str] = None
    ) -> None:
        self.findings.append(Issue(
            path=self.document.source_path,
            description=description,
            line_number=line,
            status=status,
            check_name=self.name,
            content=content,
        ))

    def add_reference(self, element: ElementBase, raw: str, url: str, **meta: Any) -> None:
        self.findings.append(Reference(
            kind=ReferenceKind.EXTERNAL_URL,
            raw_value=raw,
            url=url,
            source_path=self.document.source_path,
            source_line=element.line,
            check_name=self.name,
            meta={"element": element.tag, **meta},
        ))

    # --- URL handling shared by all checks ---

    def swap_url(self, url: str) -> str:
        for pattern, replacement in self.options.url_swap.items():
            url = re.sub(pattern, replacement, url)
        return url

    def check_url(
            self,
            element: ElementBase,
            raw: str,
            missing_description: str,
            hash_description: Optional[str] = None
    ) -> None:
        """
        Classifies a URL and validates it: internal targets are resolved now,
        external URLs are deferred as References, other schemes are skipped.
        """
        url = self.swap_url(raw.strip())

        if self.ignore_manager.is_url_ignored(url):
            logger.debug("Ignoring url %s in %s", url, self.document.source_path)
            return

        if not UrlUtils.is_valid(url):
            self.add_issue(f"{raw} is an invalid URL", element.line)
            return

        if UrlUtils.is_external(url):
            self.add_reference(element, raw, UrlUtils.ensure_scheme(url, default="https"))
            return

        # mailto:, javascript:, data:, ftp: ... are not resolvable here
        if UrlUtils.get_scheme(url):
            return

        reference = Reference(
            kind=ReferenceKind.INTERNAL_HASH if "#" in url else ReferenceKind.INTERNAL_PATH,
            raw_value=raw,
            url=url,
            source_path=self.document.source_path,
            source_line=element.line,
            check_name=self.name,
        )
        outcome = self.resolver.resolve(reference)
        if outcome is InternalOutcome.MISSING_FILE:
            self.add_issue(missing_description, element.line)
        elif outcome is InternalOutcome.MISSING_HASH:
            self.add_issue(hash_description or missing_description, element.line)
