# src/proofer/dom/models.py
from pathlib import Path
from typing import Iterable, List

from bs4 import BeautifulSoup, Tag
from pydantic import BaseModel, ConfigDict

IGNORE_ATTRIBUTE = "data-proofer-ignore"


class Document(BaseModel):
    """
    One parsed HTML document under validation.

    Immutable once loaded: checks only read from the tree. Elements marked
    with `data-proofer-ignore` (or nested in such an element) are hidden
    from `elements()`.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    source_path: str
    root: BeautifulSoup

    @property
    def base_dir(self) -> Path:
        return Path(self.source_path).parent

    def elements(self, names: Iterable[str]) -> List[Tag]:
        """Returns all non-ignored tags with the given names in document order."""
        return [tag for tag in self.root.find_all(list(names)) if not self.is_ignored(tag)]

    @staticmethod
    def is_ignored(tag: Tag) -> bool:
        if tag.has_attr(IGNORE_ATTRIBUTE):
            return True
        return tag.find_parent(attrs={IGNORE_ATTRIBUTE: True}) is not None

    def has_anchor(self, name: str) -> bool:
        """True when an element with id=name or an <a name=name> exists."""
        if not name:
            return False
        if self.root.find(attrs={"id": name}) is not None:
            return True
        return self.root.find("a", attrs={"name": name}) is not None
