from typing import List, Optional
from bs4 import Tag

from ..core import CheckBase, ElementBase, Finding, parse_element

FAVICON_RELS = ("icon", "shortcut icon")


class FaviconElement(ElementBase):
    tag: str = "link"

    @property
    def href(self) -> Optional[str]:
        return self.attrs.get('href')


def parse_favicon(tag: Tag) -> FaviconElement:
    return FaviconElement(**parse_element(tag).model_dump())


def _is_favicon(tag: Tag) -> bool:
    rel = tag.get('rel')
    if isinstance(rel, list):
        rel = " ".join(rel)
    return bool(rel) and rel.strip().lower() in FAVICON_RELS


class FaviconCheck(CheckBase):
    """Opt-in: every document must declare a favicon that resolves."""
    name = "FaviconCheck"
    enabled_by = "check_favicon"

    def run(self) -> List[Finding]:
        icons = [tag for tag in self.document.elements(["link"]) if _is_favicon(tag)]

        if not icons:
            self.add_issue("no favicon specified")
            return self.findings

        favicon = parse_favicon(icons[0])
        if favicon.href is None or not favicon.href.strip():
            self.add_issue("no favicon specified", favicon.line)
            return self.findings

        href = favicon.href.strip()
        self.check_url(favicon, href, missing_description=f"internally linking to {href}, which does not exist")
        return self.findings


CHECK = FaviconCheck
