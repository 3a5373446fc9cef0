# tests/proofer/test_export_service.py
import json

import pandas as pd
import pytest

from proofer.errors import ProoferError
from proofer.model import Issue
from proofer.services.export_service import ExportService


@pytest.fixture
def failures():
    return [
        Issue(path="a.html", description="no favicon specified", check_name="FaviconCheck"),
        Issue(path="b.html", description="External link https://x.example/ failed: 404", line_number=3,
              status=404, check_name="LinkCheck"),
    ]


def test_export_csv(tmp_path, failures):
    output = ExportService().export(failures, tmp_path / "out" / "failures.csv")

    df = pd.read_csv(output)
    assert list(df.columns) == ["path", "line_number", "description", "status", "check_name"]
    assert df["status"].tolist() == [-1, 404]
    assert pd.isna(df.loc[0, "line_number"])


def test_export_json(tmp_path, failures):
    output = ExportService().export(failures, tmp_path / "failures.json")

    records = json.loads(output.read_text())
    assert records[1]["line_number"] == 3
    assert records[0]["line_number"] is None
    assert records[0]["check_name"] == "FaviconCheck"


def test_export_without_failures(tmp_path):
    output = ExportService().export([], tmp_path / "empty.csv")
    assert pd.read_csv(output).empty


def test_unsupported_format(tmp_path, failures):
    with pytest.raises(ProoferError):
        ExportService().export(failures, tmp_path / "failures.xlsx")
