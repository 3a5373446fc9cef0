# src/proofer/managers/ignore_manager.py
import logging
from typing import Iterable, List, Sequence, TYPE_CHECKING

from ..options import IgnoreRule, ProoferOptions

if TYPE_CHECKING:
    from ..dom.models import Document

logger = logging.getLogger(__name__)


class IgnoreManager:
    """
    Applies the ignore lists of a run: documents (file_ignore), URLs
    (url_ignore) and images whose alt text is not checked (alt_ignore).
    """

    def __init__(self, options: ProoferOptions):
        self.file_rules = options.file_ignore
        self.url_rules = options.url_ignore
        self.alt_rules = options.alt_ignore

    @staticmethod
    def _matches_any(rules: Sequence[IgnoreRule], text: str) -> bool:
        return any(rule.matches(text) for rule in rules)

    def is_file_ignored(self, path: str) -> bool:
        return self._matches_any(self.file_rules, path)

    def is_url_ignored(self, url: str) -> bool:
        return self._matches_any(self.url_rules, url)

    def is_alt_ignored(self, src: str) -> bool:
        return self._matches_any(self.alt_rules, src)

    def filter_documents(self, documents: Iterable["Document"]) -> List["Document"]:
        """Drops documents whose source path matches a file_ignore rule."""
        kept = []
        for doc in documents:
            if self.is_file_ignored(doc.source_path):
                logger.debug("Skipping ignored file %s", doc.source_path)
                continue
            kept.append(doc)
        return kept
