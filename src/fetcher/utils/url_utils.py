# src/fetcher/utils/url_utils.py
import logging
import re
from typing import Optional
from urllib.parse import urlparse, urlunparse

logger = logging.getLogger(__name__)

WEB_SCHEMES = ('http', 'https')

# Bare host references such as "www.example.com/page"
_SCHEMELESS_HOST = re.compile(r'^[a-z0-9-]+(\.[a-z0-9-]+)+(:\d+)?(/|$)', re.IGNORECASE)


class UrlUtils:
    """A collection of static methods for URL parsing and manipulation."""

    @staticmethod
    def get_scheme(url: str) -> str:
        """Returns the lower-cased scheme of a URL, or '' for relative references."""
        try:
            return urlparse(url.strip()).scheme.lower()
        except ValueError:
            return ''

    @staticmethod
    def is_external(url: str) -> bool:
        """
        Checks if a URL points to a remote web resource
        (http/https, or protocol-relative '//host/...').
        """
        stripped = url.strip()
        if stripped.startswith('//'):
            return True
        return UrlUtils.get_scheme(stripped) in WEB_SCHEMES

    @staticmethod
    def is_relative_url(url: str) -> bool:
        """
        Checks if a URL is relative.
        """
        try:
            parsed = urlparse(url)
            return not parsed.scheme and not parsed.netloc
        except ValueError:
            return False

    @staticmethod
    def is_valid(url: str) -> bool:
        """Returns False when the URL cannot be parsed at all (e.g. broken IPv6 hosts)."""
        try:
            parsed = urlparse(url)
            # Accessing the port validates it
            _ = parsed.port
            return True
        except ValueError:
            return False

    @staticmethod
    def ensure_scheme(url: str, default: str = 'http') -> str:
        """
        Prepends a scheme to protocol-relative and bare host URLs
        ('//example.com', 'www.example.com/page').
        """
        stripped = url.strip()
        if stripped.startswith('//'):
            return f"{default}:{stripped}"
        if not UrlUtils.get_scheme(stripped) and _SCHEMELESS_HOST.match(stripped):
            return f"{default}://{stripped}"
        return stripped

    @staticmethod
    def normalize_url(url: str) -> str:
        """
        Creates the deduplication key of an external URL:
        fragment removed, scheme and host lower-cased, empty path replaced by '/'.
        """
        absolute_url = UrlUtils.ensure_scheme(url, default='https')
        try:
            parsed_url = urlparse(absolute_url)
        except ValueError:
            logger.debug("Could not parse URL for normalization: %s", url)
            return absolute_url

        path = parsed_url.path or '/'
        return urlunparse((
            parsed_url.scheme.lower(),
            parsed_url.netloc.lower(),
            path,
            parsed_url.params,
            parsed_url.query,
            ''
        ))

    @staticmethod
    def get_fragment(url: str) -> Optional[str]:
        """Returns the fragment part of a URL (without '#'), or None if there is none."""
        if '#' not in url:
            return None
        return url.split('#', 1)[1]
