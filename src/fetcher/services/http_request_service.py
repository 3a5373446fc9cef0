# src/fetcher/services/http_request_service.py
import asyncio
import logging
import time
from typing import Dict, Optional

import aiohttp
from urllib.parse import urljoin

from fetcher.utils.url_utils import UrlUtils

logger = logging.getLogger(__name__)

REDIRECT_STATUSES = (301, 302, 303, 307, 308)


class HttpRequestService:
    """
    Central service for executing verification requests (HEAD/GET).
    Manages the aiohttp session, concurrency (semaphore), redirects and error handling.

    Status sentinels in the returned dict:
        -1  transport failure (connection error, timeout, invalid URL)
        -2  unexpected failure
        -99 service misuse (no session, unsupported method)
    """

    def __init__(self, config: Dict, url_utils: UrlUtils, user_agent: str):
        self.config = config
        self.url_utils = url_utils
        self.user_agent = user_agent

        session_config = config.get('session', {})
        self.max_concurrency = int(session_config.get('concurrency', 50))
        self.timeout = float(session_config.get('time_out', 15))
        self.max_redirects = int(session_config.get('max_redirects', 10))
        self.follow_redirects = bool(session_config.get('follow_redirects', True))

        self.semaphore = asyncio.Semaphore(self.max_concurrency)
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def initialize(self):
        if not self.session or self.session.closed:
            timeout_obj = aiohttp.ClientTimeout(total=self.timeout)
            default_headers = {
                'Accept-Encoding': 'gzip, deflate',
                'User-Agent': self.user_agent
            }
            self.session = aiohttp.ClientSession(
                timeout=timeout_obj, headers=default_headers
            )
            logger.debug("HttpRequestService: Session initialized.")

    async def close(self):
        if self.session and not self.session.closed:
            await self.session.close()
            logger.debug("HttpRequestService: Session closed.")

    async def perform_request(self, url: str, method: str = "HEAD") -> dict:
        """
        Main entry point. Sends a HEAD or GET request without downloading the body.
        Wraps execution in the global semaphore and error handling.
        """
        start_time = time.perf_counter()

        if not self.session or self.session.closed:
            await self.initialize()
            if not self.session:
                return {"status": -99, "error": "Session not initialized"}

        if method.upper() not in ("GET", "HEAD"):
            return {"status": -99, "error": f"Method {method} not supported"}

        response_data = None

        try:
            async with self.semaphore:
                response_data = await self._execute(url, method.upper())

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            response_data = {"status": -1, "error": str(e) or type(e).__name__}
        except Exception as e:
            logger.warning("Unexpected error requesting %s: %s", url, e)
            response_data = {"status": -2, "error": str(e) or type(e).__name__}
        finally:
            if response_data:
                response_data["elapsed_time"] = round((time.perf_counter() - start_time), 4)

        return response_data if response_data else {"status": -99, "error": "Unknown failure"}

    async def _execute(self, url: str, method: str) -> dict:
        """
        Sends one request with redirects disabled; redirects are followed
        manually (same method) when enabled so the full chain is recorded.
        """
        async with self.session.request(method, url, allow_redirects=False) as response:
            status = response.status
            redirect_chain = []
            final_url = str(response.url)
            error = None

            if status in REDIRECT_STATUSES and self.follow_redirects:
                location = response.headers.get('location')
                if location:
                    redirect_chain = await self._follow_redirects(url, urljoin(url, location), status, method)
                    last = redirect_chain[-1]
                    if 'error' in last:
                        status, error = -1, last['error']
                    else:
                        status = last.get('status', status)
                        final_url = last.get('final_url', final_url)

            logger.debug("%s %s -> %s", method, url, status)
            return {
                "status": status,
                "headers": dict(response.headers),
                "redirect_chain": redirect_chain,
                "final_url": final_url,
                "error": error,
            }

    async def _follow_redirects(self, initial_url: str, next_url: str, first_status: int, method: str) -> list:
        """Follows a redirect chain hop by hop, detecting loops and capping its length."""
        redirect_chain = [{'source': initial_url, 'target': next_url, 'status': first_status}]
        visited = {initial_url, next_url}
        current_url = next_url

        for _ in range(self.max_redirects):
            try:
                async with self.session.request(method, current_url, allow_redirects=False) as response:
                    location = response.headers.get('location')
                    if response.status in REDIRECT_STATUSES and location:
                        target = urljoin(current_url, location)
                        redirect_chain.append(
                            {'source': current_url, 'target': target, 'status': response.status}
                        )
                        if target in visited:
                            redirect_chain.append({'error': 'Redirect loop', 'url': target})
                            return redirect_chain
                        visited.add(target)
                        current_url = target
                    else:
                        redirect_chain.append({'final_url': current_url, 'status': response.status})
                        return redirect_chain
            except (asyncio.TimeoutError, aiohttp.ClientError) as e:
                redirect_chain.append({'error': str(e) or type(e).__name__, 'url': current_url})
                return redirect_chain

        redirect_chain.append({'error': f'Too many redirects (>{self.max_redirects})', 'url': current_url})
        return redirect_chain
