# tests/proofer/test_report_controller.py
import pytest

from proofer.controllers.report_controller import ReportController
from proofer.errors import ConfigurationError
from proofer.model import Issue, RunResult

BROKEN = "internally linking to ./notreal.html, which does not exist"
NO_ALT = "image ./gpl.png does not have an alt attribute"


@pytest.fixture
def failures():
    return [
        Issue(path="site/b.html", description=NO_ALT, line_number=4),
        Issue(path="site/a.html", description=BROKEN, line_number=5),
        Issue(path="site/b.html", description=BROKEN, line_number=9),
        Issue(path="site/a.html", description="tel: contains no phone number", line_number=7,
              content='<a href="tel:">Call</a>'),
    ]


def test_sort_by_path_keeps_discovery_order(failures):
    assert ReportController(failures).render("path") == "\n".join([
        "- site/b.html",
        f"  *  {NO_ALT} (line 4)",
        f"  *  {BROKEN} (line 9)",
        "- site/a.html",
        f"  *  {BROKEN} (line 5)",
        "  *  tel: contains no phone number (line 7)",
        '     <a href="tel:">Call</a>',
        "",
        "PydProofer found 4 failures!",
    ])


def test_sort_by_issue_orders_descriptions_alphabetically(failures):
    groups = ReportController(failures).group("issue")
    assert [header for header, _ in groups] == [NO_ALT, BROKEN, "tel: contains no phone number"]
    assert [i.path for i in groups[1][1]] == ["site/a.html", "site/b.html"]


def test_sort_by_desc_puts_largest_groups_first(failures):
    groups = ReportController(failures).group("desc")
    assert [header for header, _ in groups] == [BROKEN, NO_ALT, "tel: contains no phone number"]

    report = ReportController(failures).render("desc")
    assert report.splitlines()[:3] == [f"- {BROKEN}", "  *  site/a.html (line 5)", "  *  site/b.html (line 9)"]


def test_sort_by_status():
    failures = [
        Issue(path="a.html", description="External link https://x.example/ failed: 301", line_number=1, status=301),
        Issue(path="a.html", description=BROKEN, line_number=2),
        Issue(path="b.html", description="External link https://y.example/ failed: 301", line_number=3, status=301),
    ]
    controller = ReportController(failures)

    assert [header for header, _ in controller.group("status")] == ["-1", "301"]
    assert controller.render("status").splitlines()[:4] == [
        "- -1",
        f"  *  a.html: {BROKEN} (line 2)",
        "- 301",
        "  *  a.html: External link https://x.example/ failed: 301 (line 1)",
    ]


def test_members_without_line_omit_the_suffix():
    report = ReportController([Issue(path="a.html", description="no favicon specified")]).render()
    assert report.splitlines() == ["- a.html", "  *  no favicon specified", "", "PydProofer found 1 failure!"]


def test_rendering_is_idempotent(failures):
    controller = ReportController(failures)
    for mode in ("path", "issue", "desc", "status"):
        assert controller.render(mode) == controller.render(mode)


def test_unknown_sort_mode(failures):
    with pytest.raises(ConfigurationError):
        ReportController(failures).render("alphabetical")


def test_run_result_report_uses_configured_sort(failures):
    result = RunResult(failures=failures, error_sort="desc")
    assert result.report() == ReportController(failures).render("desc")
    assert result.report("path") == ReportController(failures).render("path")
    assert result.failed_tests[0] == f"site/b.html: {NO_ALT} (line 4)"
