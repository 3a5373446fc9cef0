from typing import List, Optional
from bs4 import Tag

from ..core import CheckBase, ElementBase, Finding, parse_element

OPENGRAPH_PROPERTIES = ("og:url", "og:image")


class OpenGraphElement(ElementBase):
    tag: str = "meta"

    @property
    def url(self) -> Optional[str]:
        return self.attrs.get('content')


def parse_opengraph(tag: Tag) -> OpenGraphElement:
    return OpenGraphElement(**parse_element(tag).model_dump())


class OpenGraphCheck(CheckBase):
    """Opt-in: validates the og:url and og:image meta properties."""
    name = "OpenGraphCheck"
    enabled_by = "check_opengraph"

    def run(self) -> List[Finding]:
        for tag in self.document.elements(["meta"]):
            if tag.get('property') not in OPENGRAPH_PROPERTIES:
                continue

            meta = parse_opengraph(tag)
            if meta.url is None or not meta.url.strip():
                self.add_issue("open graph content attribute is empty", meta.line)
                continue

            url = meta.url.strip()
            self.check_url(meta, url, missing_description=f"internal open graph {url} does not exist")

        return self.findings


CHECK = OpenGraphCheck
