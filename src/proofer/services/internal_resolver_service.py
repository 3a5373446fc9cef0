# src/proofer/services/internal_resolver_service.py
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Union
from urllib.parse import unquote

from ..dom.builder import DocumentBuilder
from ..dom.models import Document
from ..errors import FatalIOError
from ..model import Reference, ReferenceKind
from ..options import ProoferOptions

logger = logging.getLogger(__name__)

HTML_SUFFIXES = {".html", ".htm"}


class InternalOutcome(Enum):
    OK = "ok"
    MISSING_FILE = "missing_file"
    MISSING_HASH = "missing_hash"


class InternalResolverService:
    """
    Resolves internal references synchronously against the filesystem and
    the known document set. No network I/O and no caching: every call
    re-checks the filesystem.
    """

    def __init__(
            self,
            options: ProoferOptions,
            documents: Optional[Iterable[Document]] = None,
            loader: Optional[Callable[[Union[str, Path]], Document]] = None
    ):
        self.options = options
        self._documents: Dict[str, Document] = {
            self.path_key(doc.source_path): doc for doc in (documents or [])
        }
        self._loader = loader or DocumentBuilder().load

    @staticmethod
    def path_key(path: Union[str, Path]) -> str:
        return os.path.normcase(os.path.abspath(str(path)))

    def resolve(self, reference: Reference) -> InternalOutcome:
        """
        Checks that the referenced file exists and, for hash references,
        that the anchor exists in the target document.
        """
        path_part, _, fragment = reference.url.partition("#")
        path_part = path_part.split("?", 1)[0]

        if path_part:
            target = self.resolve_path(unquote(path_part), reference.source_path)
            if target is None:
                return InternalOutcome.MISSING_FILE
        else:
            target = Path(reference.source_path)

        if reference.kind is ReferenceKind.INTERNAL_HASH and fragment:
            if not self._has_anchor(target, unquote(fragment)):
                return InternalOutcome.MISSING_HASH

        return InternalOutcome.OK

    def resolve_path(self, url_path: str, source_path: str) -> Optional[Path]:
        """
        Maps a URL path onto the filesystem.

        Relative paths resolve against the referencing document's directory,
        root-relative paths ('/x') against root_dir. A directory resolves to
        its index file; with assume_extension an extensionless path is retried
        with the extension. Returns None when nothing exists or the path
        cannot be examined (name too long, permission denied).
        """
        if url_path.startswith("/"):
            base = self.options.root_dir if self.options.root_dir else Path(source_path).parent
            candidate = Path(base) / url_path.lstrip("/")
        else:
            candidate = Path(source_path).parent / url_path

        try:
            return self._lookup(candidate)
        except OSError as e:
            logger.debug("Cannot examine %s: %s", candidate, e)
            return None

    def _lookup(self, candidate: Path) -> Optional[Path]:
        if candidate.is_dir():
            index_file = self.options.directory_index_file
            if index_file and (candidate / index_file).is_file():
                return candidate / index_file
            logger.debug("Directory %s has no index file", candidate)
            return None

        if candidate.exists():
            return candidate

        extension = self.options.assume_extension
        if extension and not candidate.suffix:
            with_extension = candidate.with_name(candidate.name + extension)
            if with_extension.is_file():
                return with_extension

        return None

    def _has_anchor(self, target: Path, name: str) -> bool:
        if target.suffix.lower() not in HTML_SUFFIXES | {self.options.extension.lower()}:
            # Fragments into non-HTML files (e.g. PDF pages) are not verifiable
            return True

        doc = self._documents.get(self.path_key(target))
        if doc is None:
            try:
                doc = self._loader(target)
            except FatalIOError as e:
                logger.warning("Could not load %s for anchor lookup: %s", target, e)
                return False
        return doc.has_anchor(name)
