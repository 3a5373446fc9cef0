# src/proofer/services/file_discovery_service.py
import logging
from pathlib import Path
from typing import Iterable, List, Union

from ..errors import FatalIOError

logger = logging.getLogger(__name__)


class FileDiscoveryService:
    """
    Expands the input paths of a run into the ordered list of files to check.
    Files are taken as given; directories are walked for the extension.
    """

    def __init__(self, extension: str = ".html"):
        self.extension = extension if extension.startswith(".") else f".{extension}"

    def discover(self, paths: Iterable[Union[str, Path]]) -> List[str]:
        found: List[str] = []

        for raw in paths:
            path = Path(raw)
            if not path.exists():
                raise FatalIOError(f"{raw} does not exist")

            # A directory named 'x.html' is still a directory
            if path.is_dir():
                matches = sorted(
                    str(p) for p in path.rglob(f"*{self.extension}") if p.is_file()
                )
                logger.debug("Found %d files in %s", len(matches), path)
                found.extend(matches)
            else:
                found.append(str(path))

        files = sorted(dict.fromkeys(found))
        if not files:
            raise FatalIOError(f"No {self.extension} files found in: {', '.join(map(str, paths))}")

        logger.info("Discovered %d documents", len(files))
        return files
