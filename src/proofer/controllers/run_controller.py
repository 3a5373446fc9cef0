import logging
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import nullcontext
from functools import partial
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, Type, Union

from ..dom.builder import DocumentBuilder
from ..dom.core import CheckBase, Finding
from ..dom.models import Document
from ..dom.registry import CheckRegistry
from ..errors import FatalIOError
from ..managers.cache_store_manager import CacheStoreManager
from ..managers.ignore_manager import IgnoreManager
from ..model import Issue, Reference, ReferenceKind, RunResult
from ..options import ProoferOptions
from ..services.external_resolver_service import ExternalResolverService
from ..services.file_discovery_service import FileDiscoveryService
from ..services.internal_resolver_service import InternalResolverService
from fetcher.utils.url_utils import UrlUtils

logger = logging.getLogger(__name__)


def _worker_check_document(
        document: Document,
        check_classes: Sequence[Type[CheckBase]],
        options: ProoferOptions,
        resolver: InternalResolverService
) -> List[Finding]:
    """
    Worker function running every active check on a single document.
    A crashing check becomes an Issue for that document; the others still run.
    """
    findings: List[Finding] = []
    for check_cls in check_classes:
        try:
            findings.extend(check_cls(document, options, resolver).run())
        except Exception as e:
            logger.error(f"{check_cls.name} failed on {document.source_path}: {e}", exc_info=True)
            findings.append(Issue(
                path=document.source_path,
                description=f"check {check_cls.name} failed: {e}",
                check_name=check_cls.name,
            ))
    return findings


class RunController:
    """
    Orchestrates one proofing run: document filtering, parallel checks,
    one batched external pass, merging, deduplication and the RunResult.
    """

    def __init__(
            self,
            options: ProoferOptions,
            cache_store: Optional[CacheStoreManager] = None,
            http_service_factory: Optional[Callable] = None,
            loader: Optional[Callable[[Union[str, Path]], Document]] = None
    ):
        self.options = options
        self.cache_store = cache_store
        self.http_service_factory = http_service_factory
        self.loader = loader or DocumentBuilder().load
        self.ignore_manager = IgnoreManager(options)

    # --- ENTRY POINTS ---

    def run_paths(self, paths: Iterable[Union[str, Path]]) -> RunResult:
        """Discovers, loads and checks the documents under the given files/directories."""
        files = FileDiscoveryService(self.options.extension).discover(paths)
        files = [f for f in files if not self.ignore_manager.is_file_ignored(f)]

        with ThreadPoolExecutor(max_workers=self.options.document_workers) as executor:
            documents = list(executor.map(self.loader, files))

        return self._check(documents)

    def run(self, documents: Sequence[Document]) -> RunResult:
        """Checks already loaded documents. An empty input set is fatal."""
        if not documents:
            raise FatalIOError("No documents to check")
        return self._check(documents)

    def _check(self, documents: Sequence[Document]) -> RunResult:
        start_time = time.perf_counter()

        documents = self.ignore_manager.filter_documents(documents)
        check_classes = CheckRegistry.active_checks(self.options)
        logger.info(
            "Running %d checks on %d documents: %s",
            len(check_classes), len(documents), ", ".join(c.name for c in check_classes)
        )

        resolver = InternalResolverService(self.options, documents, loader=self.loader)
        func = partial(
            _worker_check_document,
            check_classes=check_classes,
            options=self.options,
            resolver=resolver
        )

        # map() yields in submission order, which keeps discovery order
        with ThreadPoolExecutor(max_workers=self.options.document_workers) as executor:
            slots = [finding for findings in executor.map(func, documents) for finding in findings]

        references = [f for f in slots if isinstance(f, Reference)]
        external_resolver, resolved = self._resolve_external(references)

        failures = self._merge(slots, resolved)
        return self._finalize(failures, len(documents), external_resolver, start_time)

    def run_links(self, urls: Iterable[str]) -> RunResult:
        """
        Validates a list of external URLs directly; each failure's path is the URL.
        Scheme-less URLs are checked over http.
        """
        start_time = time.perf_counter()

        references = []
        for raw in urls:
            url = self._with_scheme(raw)
            if not url or self.ignore_manager.is_url_ignored(url):
                continue
            references.append(Reference(
                kind=ReferenceKind.EXTERNAL_URL,
                raw_value=raw,
                url=url,
                source_path=url,
                check_name="LinkCheck",
            ))

        external_resolver, resolved = self._resolve_external(references)
        failures = [issue for _, issue in resolved if issue is not None]
        return self._finalize(failures, 0, external_resolver, start_time)

    # --- HELPERS ---

    @staticmethod
    def _with_scheme(raw: str) -> str:
        url = raw.strip()
        if not url or UrlUtils.get_scheme(url):
            return url
        return f"http://{url.lstrip('/')}"

    def _open_cache_store(self):
        """
        An injected store is opened but left open for its owner; otherwise the
        run owns a store built from the options and closes it on exit.
        """
        if self.cache_store is not None:
            return nullcontext(self.cache_store.open())
        if not self.options.cache_enabled:
            return nullcontext(None)
        return CacheStoreManager(self.options.cache_path, self.options.cache_ttl)

    def _resolve_external(
            self, references: List[Reference]
    ) -> Tuple[Optional[ExternalResolverService], List[Tuple[Reference, Optional[Issue]]]]:
        if self.options.disable_external:
            logger.info("External checks disabled, skipping %d references", len(references))
            return None, []
        if not references:
            return None, []

        with self._open_cache_store() as cache_store:
            external_resolver = ExternalResolverService(
                self.options,
                cache_store=cache_store,
                http_service_factory=self.http_service_factory
            )
            resolved = external_resolver.resolve(references)
        return external_resolver, resolved

    def _merge(self, slots: List[Finding], resolved: List[Tuple[Reference, Optional[Issue]]]) -> List[Issue]:
        """
        Replaces every Reference by its external Issue (if any) at the same
        position. With external_only, only external Issues are kept.
        """
        outcomes = iter(resolved)
        failures: List[Issue] = []

        for finding in slots:
            if isinstance(finding, Reference):
                if self.options.disable_external:
                    continue
                _, issue = next(outcomes)
                if issue is not None:
                    failures.append(issue)
            elif not self.options.external_only:
                failures.append(finding)

        return failures

    def _finalize(
            self,
            failures: List[Issue],
            documents_checked: int,
            external_resolver: Optional[ExternalResolverService],
            start_time: float
    ) -> RunResult:
        unique_failures = list(dict.fromkeys(failures))
        duration = time.perf_counter() - start_time

        result = RunResult(
            failures=unique_failures,
            error_sort=self.options.error_sort,
            documents_checked=documents_checked,
            external_checked=external_resolver.checked if external_resolver else 0,
            cache_hits=external_resolver.cache_hits if external_resolver else 0,
            network_requests=external_resolver.network_requests if external_resolver else 0,
            duration=round(duration, 4),
        )
        logger.info(
            "Run finished in %.2fs: %d documents, %d external URLs, %d failures",
            result.duration, result.documents_checked, result.external_checked, len(result.failures)
        )
        return result
