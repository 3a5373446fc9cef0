from typing import List, Optional
from urllib.parse import unquote
from bs4 import Tag

from ..core import CheckBase, ElementBase, Finding, parse_element
from fetcher.utils.url_utils import UrlUtils

# <link rel="..."> values that point at hosts, not documents
NON_DOCUMENT_RELS = {"dns-prefetch", "preconnect"}


class LinkElement(ElementBase):
    """
    Data model for anchor (<a>) and <link> tags.
    """

    @property
    def href(self) -> Optional[str]:
        return self.attrs.get('href')

    @property
    def is_placeholder(self) -> bool:
        """An <a> without href that only serves as a target (id/name)."""
        return self.href is None and ('id' in self.attrs or 'name' in self.attrs)


def parse_link(tag: Tag) -> LinkElement:
    """Parses an <a> or <link> tag into the LinkElement model."""
    return LinkElement(**parse_element(tag).model_dump())


class LinkCheck(CheckBase):
    """Validates <a href> and <link href> targets."""
    name = "LinkCheck"

    def run(self) -> List[Finding]:
        for tag in self.document.elements(["a", "link"]):
            link = parse_link(tag)

            if link.tag == "link":
                rels = set(link.attr('rel').split()) if link.attr('rel') else set()
                if link.href is None or rels & NON_DOCUMENT_RELS:
                    continue

            if link.is_placeholder:
                continue

            if link.href is None or not link.href.strip():
                self.add_issue("anchor has no href attribute", link.line)
                continue

            self._check_href(link, link.href.strip())

        return self.findings

    def _check_href(self, link: LinkElement, href: str) -> None:
        scheme = UrlUtils.get_scheme(href)

        if scheme == "mailto":
            if not href[len("mailto:"):].split("?", 1)[0].strip():
                self.add_issue("mailto: contains no email address", link.line, content=link.content)
            return

        if scheme == "tel":
            if not unquote(href[len("tel:"):]).strip():
                self.add_issue("tel: contains no phone number", link.line, content=link.content)
            return

        if href == "#":
            if not self.options.allow_hash_href:
                self.add_issue("linking to internal hash # that does not exist", link.line)
            return

        if self.options.enforce_https and scheme == "http":
            self.add_issue(f"{href} is not an HTTPS link", link.line)

        fragment = UrlUtils.get_fragment(href)
        self.check_url(
            link,
            href,
            missing_description=f"internally linking to {href}, which does not exist",
            hash_description=f"linking to internal hash #{fragment} that does not exist",
        )


CHECK = LinkCheck
