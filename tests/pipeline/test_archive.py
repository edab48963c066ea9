"""Tests for pipeline/pages/archive.py"""

import pytest

from pipeline.errors import ArchiveError
from pipeline.pages import extract_archive, load_page_documents, parse_label
from tests.fakes import make_archive, make_page_html


class TestParseLabel:

    def test_chapter_slug(self):
        assert parse_label("page-012-the-long-road.html") == "the-long-road"

    def test_falls_back_to_stem(self):
        assert parse_label("cover.html") == "cover"


class TestExtractArchive:

    def test_documents_in_name_order(self, tmp_path):
        zip_path = make_archive(tmp_path / "book.zip", {
            "page-002-intro.html": make_page_html("B"),
            "page-001-intro.html": make_page_html("A"),
            "page-010-ch1.html": make_page_html("C"),
        })

        docs = extract_archive(zip_path, tmp_path / "work")

        assert [d.name for d in docs] == [
            "page-001-intro.html",
            "page-002-intro.html",
            "page-010-ch1.html",
        ]
        assert [d.ordinal for d in docs] == [1, 2, 3]
        assert docs[2].label == "ch1"
        assert (tmp_path / "work" / "pages" / "page-001-intro.html").exists()

    def test_nested_members_are_flattened(self, tmp_path):
        zip_path = make_archive(tmp_path / "book.zip", {
            "export/page-001-a.html": make_page_html("A"),
            "export/notes.txt": b"ignored",
        })

        docs = extract_archive(zip_path, tmp_path / "work")

        assert [d.name for d in docs] == ["page-001-a.html"]

    def test_corrupt_archive(self, tmp_path):
        zip_path = tmp_path / "broken.zip"
        zip_path.write_bytes(b"this is not a zip file")

        with pytest.raises(ArchiveError):
            extract_archive(zip_path, tmp_path / "work")

    def test_archive_without_html(self, tmp_path):
        zip_path = make_archive(tmp_path / "empty.zip", {"readme.txt": b"nothing"})

        with pytest.raises(ArchiveError):
            extract_archive(zip_path, tmp_path / "work")


class TestLoadPageDocuments:

    def test_prefers_page_files(self, tmp_path):
        (tmp_path / "index.html").write_bytes(b"<html></html>")
        (tmp_path / "page-001-a.html").write_bytes(make_page_html("A"))
        (tmp_path / "page-002-a.html").write_bytes(make_page_html("B"))

        docs = load_page_documents(tmp_path)

        assert [d.name for d in docs] == ["page-001-a.html", "page-002-a.html"]
        assert all(d.source_dir == tmp_path for d in docs)

    def test_any_html_without_page_files(self, tmp_path):
        (tmp_path / "b.html").write_bytes(b"<html>b</html>")
        (tmp_path / "a.html").write_bytes(b"<html>a</html>")

        docs = load_page_documents(tmp_path)

        assert [d.name for d in docs] == ["a.html", "b.html"]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ArchiveError):
            load_page_documents(tmp_path / "missing")
