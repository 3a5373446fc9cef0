# src/proofer/dom/builder.py
import logging
from pathlib import Path
from typing import Union

from bs4 import BeautifulSoup

from .models import Document
from ..errors import FatalIOError

logger = logging.getLogger(__name__)


class DocumentBuilder:
    """
    Builder responsible for turning HTML files into Document models.
    It owns reading and parsing; the validation engine never re-reads files.
    """

    def load(self, path: Union[str, Path]) -> Document:
        """
        Reads and parses an HTML file.

        Raises:
            FatalIOError: If the file cannot be read.
        """
        try:
            raw = Path(path).read_bytes()
        except OSError as e:
            raise FatalIOError(f"Could not read {path}: {e}") from e

        html = raw.decode("utf-8", errors="replace")
        return self.parse(str(path), html)

    def parse(self, path: str, html: str) -> Document:
        """
        Parses raw HTML into a Document.

        Only the BOM is removed; leading whitespace is kept so that
        source line numbers stay accurate.
        """
        clean_html = (html or "").replace('\ufeff', '')
        soup = BeautifulSoup(clean_html, 'html.parser')
        logger.debug("Parsed %s (%d chars)", path, len(clean_html))
        return Document(source_path=path, root=soup)
