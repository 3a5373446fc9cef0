# tests/proofer/test_file_discovery.py
import pytest

from proofer.errors import FatalIOError
from proofer.services.file_discovery_service import FileDiscoveryService


def test_directories_are_walked(tmp_path):
    (tmp_path / "b.html").write_text("b")
    (tmp_path / "nested").mkdir()
    (tmp_path / "nested" / "a.html").write_text("a")
    (tmp_path / "style.css").write_text("css")

    files = FileDiscoveryService().discover([tmp_path])
    assert files == sorted([str(tmp_path / "b.html"), str(tmp_path / "nested" / "a.html")])


def test_directory_named_like_a_file(tmp_path):
    folder = tmp_path / "folder.html"
    folder.mkdir()
    (folder / "index.html").write_text("x")

    assert FileDiscoveryService().discover([folder]) == [str(folder / "index.html")]


def test_files_are_taken_as_given_and_deduplicated(tmp_path):
    page = tmp_path / "page.htm"
    page.write_text("x")

    assert FileDiscoveryService().discover([page, page]) == [str(page)]


def test_custom_extension(tmp_path):
    (tmp_path / "a.htm").write_text("x")
    (tmp_path / "b.html").write_text("x")

    assert FileDiscoveryService("htm").discover([tmp_path]) == [str(tmp_path / "a.htm")]


def test_missing_input(tmp_path):
    with pytest.raises(FatalIOError):
        FileDiscoveryService().discover([tmp_path / "nope"])


def test_no_documents(tmp_path):
    with pytest.raises(FatalIOError):
        FileDiscoveryService().discover([tmp_path])
