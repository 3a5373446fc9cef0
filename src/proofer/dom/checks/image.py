import re
from typing import List, Optional
from bs4 import Tag

from ..core import CheckBase, ElementBase, Finding, parse_element
from fetcher.utils.url_utils import UrlUtils


class ImageElement(ElementBase):
    tag: str = "img"

    @property
    def src(self) -> Optional[str]:
        src = self.attrs.get('src')
        if src and src.strip():
            return src.strip()
        # Fall back to the first srcset candidate
        srcset = self.attr('srcset')
        if srcset and srcset.strip():
            return srcset.split(",")[0].strip().split(" ")[0]
        return None

    @property
    def alt(self) -> Optional[str]:
        return self.attrs.get('alt')


def parse_image(tag: Tag) -> ImageElement:
    return ImageElement(**parse_element(tag).model_dump())


class ImageCheck(CheckBase):
    """
    Validates <img> tags: source present, file name sane, alt text present
    and the referenced file resolvable.
    """
    name = "ImageCheck"

    def run(self) -> List[Finding]:
        safe_filename = re.compile(self.options.safe_filename_pattern)

        for tag in self.document.elements(["img"]):
            image = parse_image(tag)
            src = image.src

            if src is None:
                self.add_issue("image has no src or srcset attribute", image.line)
                continue

            if src.startswith("data:"):
                self._check_alt(image, src)
                continue

            if UrlUtils.is_relative_url(src) and not self._is_safe_filename(safe_filename, src):
                self.add_issue(f"image has a terrible filename ({src})", image.line)
                continue

            self._check_alt(image, src)

            if self.options.check_img_http and UrlUtils.get_scheme(src) == "http":
                self.add_issue(f"image {src} uses the http scheme", image.line)

            self.check_url(image, src, missing_description=f"internal image {src} does not exist")

        return self.findings

    @staticmethod
    def _is_safe_filename(pattern: "re.Pattern", src: str) -> bool:
        path = src.split("#", 1)[0].split("?", 1)[0]
        filename = path.rsplit("/", 1)[-1]
        if not filename:
            return True
        return pattern.match(filename) is not None

    def _check_alt(self, image: ImageElement, src: str) -> None:
        if self.ignore_manager.is_alt_ignored(src):
            return
        # alt=None means the attribute is missing, blank alt only counts unless empty_alt_ignore
        if image.alt is None or (not image.alt.strip() and not self.options.empty_alt_ignore):
            self.add_issue(f"image {src} does not have an alt attribute", image.line)


CHECK = ImageCheck
