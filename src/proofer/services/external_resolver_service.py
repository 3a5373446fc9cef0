# src/proofer/services/external_resolver_service.py
import asyncio
import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from tqdm.asyncio import tqdm

from ..errors import FatalIOError, ResolutionError
from ..managers.cache_store_manager import CacheStoreManager
from ..model import CacheEntry, ExternalOutcome, Issue, Reference
from ..options import ProoferOptions
from fetcher.services.generate_default_user_agent_service import generate_default_user_agent
from fetcher.services.http_request_service import HttpRequestService
from fetcher.utils.url_utils import UrlUtils

logger = logging.getLogger(__name__)

# HEAD is often refused by servers that answer GET fine
GET_FALLBACK_STATUSES = (403, 405, 501)
TRANSPORT_ERROR = -1


class ExternalResolverService:
    """
    Verifies external URLs over HTTP in one batched async pass.

    Features:
    - Deduplication via URL normalization: each key is verified once per run.
    - Outcomes are reused from and written to the cache store.
    - HEAD first, GET fallback; retries with exponential backoff on
      transport errors, 429 and 5xx.
    - Concurrency bounded by the semaphore of the HttpRequestService.
    """

    def __init__(
            self,
            options: ProoferOptions,
            cache_store: Optional[CacheStoreManager] = None,
            http_service_factory: Optional[Callable[[], HttpRequestService]] = None
    ):
        self.options = options
        self.cache_store = cache_store
        self.http_service_factory = http_service_factory or self._default_http_service
        self.http_service: Optional[HttpRequestService] = None

        self._lock: Optional[asyncio.Lock] = None
        self._inflight: Dict[str, asyncio.Task] = {}
        self._outcomes: Dict[str, ExternalOutcome] = {}

        # Counters for the run summary
        self.cache_hits = 0
        self.network_requests = 0

    def _default_http_service(self) -> HttpRequestService:
        service_config = {
            "session": {
                "concurrency": self.options.external_concurrency,
                "time_out": self.options.timeout,
                "max_redirects": self.options.max_redirects,
                "follow_redirects": self.options.follow_redirects,
            }
        }
        user_agent = self.options.user_agent or generate_default_user_agent()
        return HttpRequestService(service_config, UrlUtils(), user_agent)

    @property
    def checked(self) -> int:
        """Number of distinct URLs with a known outcome."""
        return len(self._outcomes)

    # --- ENTRY POINTS ---

    def resolve(self, references: Sequence[Reference]) -> List[Tuple[Reference, Optional[Issue]]]:
        """
        Verifies all references and returns (reference, issue-or-None) pairs
        in input order. Runs its own event loop.
        """
        if not references:
            return []
        return asyncio.run(self.resolve_async(references))

    async def resolve_async(self, references: Sequence[Reference]) -> List[Tuple[Reference, Optional[Issue]]]:
        self._lock = asyncio.Lock()

        keys = [UrlUtils.normalize_url(ref.url) for ref in references]
        unique_keys = list(dict.fromkeys(keys))
        logger.info(
            "Checking %d unique external URLs (mapped from %d references)", len(unique_keys), len(references)
        )

        async with self.http_service_factory() as http_service:
            self.http_service = http_service
            tasks = [self.verify_key(key) for key in unique_keys]
            for future in tqdm(
                    asyncio.as_completed(tasks),
                    total=len(tasks),
                    desc="Checking",
                    unit="link",
                    disable=not self.options.show_progress
            ):
                await future
        self.http_service = None

        return [(ref, self.to_issue(ref, self._outcomes[key])) for ref, key in zip(references, keys)]

    # --- VERIFICATION ---

    async def verify_key(self, key: str) -> ExternalOutcome:
        """
        Returns the outcome for a normalized URL. The check-then-insert on the
        in-flight map happens under the lock, so concurrent callers for the
        same key share one verification.
        """
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            if key in self._outcomes:
                return self._outcomes[key]
            task = self._inflight.get(key)
            if task is None:
                task = asyncio.ensure_future(self._verify(key))
                self._inflight[key] = task

        return await task

    async def _verify(self, key: str) -> ExternalOutcome:
        try:
            entry = self.cache_store.get(key) if self.cache_store is not None else None
            if entry is not None:
                self.cache_hits += 1
                logger.debug("Cache hit for %s", key)
                outcome = entry.outcome
            else:
                outcome = await self._check_with_retries(key)
                self._store(key, outcome)

            self._outcomes[key] = outcome
            return outcome
        finally:
            self._inflight.pop(key, None)

    def _store(self, key: str, outcome: ExternalOutcome) -> None:
        if self.cache_store is None:
            return
        try:
            self.cache_store.upsert(CacheEntry(key=key, ok=outcome.ok, status=outcome.status, message=outcome.message))
        except FatalIOError as e:
            logger.warning("Could not cache outcome for %s: %s", key, e)

    async def _check_with_retries(self, url: str) -> ExternalOutcome:
        last_error: Optional[ResolutionError] = None

        for attempt in range(self.options.retries + 1):
            try:
                return await self._check_once(url)
            except ResolutionError as e:
                last_error = e
                if attempt < self.options.retries:
                    delay = self.options.backoff * (2 ** attempt)
                    logger.debug("Retrying %s in %.2fs (%s)", url, delay, e)
                    if delay > 0:
                        await asyncio.sleep(delay)

        logger.debug("Giving up on %s: %s", url, last_error)
        return ExternalOutcome(ok=False, status=last_error.status, message=str(last_error))

    async def _check_once(self, url: str) -> ExternalOutcome:
        """
        One HEAD (plus GET fallback) round. Raises ResolutionError for
        transient failures so the caller can retry.
        """
        self.network_requests += 1
        result = await self.http_service.perform_request(url, method="HEAD")
        status = result.get("status", -99)

        if status in GET_FALLBACK_STATUSES or status == TRANSPORT_ERROR:
            logger.debug("HEAD %s -> %s, falling back to GET", url, status)
            self.network_requests += 1
            result = await self.http_service.perform_request(url, method="GET")
            status = result.get("status", -99)

        if status == TRANSPORT_ERROR:
            raise ResolutionError(result.get("error") or "Connection failed", status)
        if status == 429 or status >= 500:
            raise ResolutionError(f"HTTP {status}", status)
        if status < 0:
            return ExternalOutcome(ok=False, status=status, message=result.get("error") or "Request failed")

        ok = 200 <= status < 300
        return ExternalOutcome(ok=ok, status=status, message="" if ok else f"HTTP {status}")

    # --- FAN-OUT ---

    def to_issue(self, reference: Reference, outcome: ExternalOutcome) -> Optional[Issue]:
        """Turns a failed outcome into an Issue at the reference's own path and line."""
        if outcome.ok or outcome.status in self.options.http_status_ignore:
            return None

        detail = outcome.status if outcome.status > 0 else (outcome.message or outcome.status)
        return Issue(
            path=reference.source_path,
            description=f"External link {reference.url} failed: {detail}",
            line_number=reference.source_line,
            status=outcome.status,
            check_name=reference.check_name,
        )
