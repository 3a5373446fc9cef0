import logging
from collections import defaultdict
from typing import Callable, Dict, List, Sequence, Tuple

from ..errors import ConfigurationError
from ..model import Issue
from ..options import SORT_MODES

logger = logging.getLogger(__name__)

Group = Tuple[str, List[Issue]]


class ReportController:
    """
    Groups a run's failures and renders them as the plain-text report.
    Pure: rendering the same failures twice yields identical text.
    """

    def __init__(self, failures: Sequence[Issue]):
        self.failures = list(failures)

    # --- GROUPING ---

    @staticmethod
    def _group_by(issues: Sequence[Issue], key: Callable[[Issue], object]) -> Dict[object, List[Issue]]:
        # dicts keep first-appearance order; members keep discovery order
        groups: Dict[object, List[Issue]] = defaultdict(list)
        for issue in issues:
            groups[key(issue)].append(issue)
        return groups

    def group(self, sort: str = "path") -> List[Group]:
        """Returns (header, members) pairs in report order for the given sort mode."""
        if sort not in SORT_MODES:
            raise ConfigurationError(f"Unknown error_sort '{sort}' (expected one of: {', '.join(SORT_MODES)})")

        if sort == "path":
            groups = self._group_by(self.failures, lambda i: i.path)
            return [(path, members) for path, members in groups.items()]

        if sort == "status":
            groups = self._group_by(self.failures, lambda i: i.status)
            return [(str(status), groups[status]) for status in sorted(groups)]

        groups = self._group_by(self.failures, lambda i: i.description)
        if sort == "issue":
            ordered = sorted(groups)
        else:
            ordered = sorted(groups, key=lambda desc: (-len(groups[desc]), desc))
        return [(desc, groups[desc]) for desc in ordered]

    # --- RENDERING ---

    @staticmethod
    def _member(issue: Issue, sort: str) -> str:
        if sort == "path":
            text = issue.description
        elif sort == "status":
            text = f"{issue.path}: {issue.description}"
        else:
            text = issue.path
        return f"{text}{issue.line_suffix}"

    def render(self, sort: str = "path") -> str:
        if not self.failures:
            return "PydProofer finished successfully."

        lines: List[str] = []
        for header, members in self.group(sort):
            lines.append(f"- {header}")
            for issue in members:
                lines.append(f"  *  {self._member(issue, sort)}")
                if issue.content:
                    lines.append(f"     {issue.content}")

        count = len(self.failures)
        lines.append("")
        lines.append(f"PydProofer found {count} failure{'s' if count != 1 else ''}!")
        return "\n".join(lines)
