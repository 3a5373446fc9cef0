from typing import List, Optional
from bs4 import Tag

from ..core import CheckBase, ElementBase, Finding, parse_element


class ScriptElement(ElementBase):
    tag: str = "script"
    body: str = ""

    @property
    def src(self) -> Optional[str]:
        return self.attrs.get('src')


def parse_script(tag: Tag) -> ScriptElement:
    # The body only matters for emptiness
    element = parse_element(tag)
    return ScriptElement(**element.model_dump(), body=tag.string or "")


class ScriptCheck(CheckBase):
    """Validates <script> tags: either a resolvable src or an inline body."""
    name = "ScriptCheck"

    def run(self) -> List[Finding]:
        for tag in self.document.elements(["script"]):
            script = parse_script(tag)

            if script.src is None or not script.src.strip():
                if not script.body.strip():
                    self.add_issue("script is empty and has no src attribute", script.line)
                continue

            src = script.src.strip()
            self.check_url(script, src, missing_description=f"internal script {src} does not exist")

        return self.findings


CHECK = ScriptCheck
