"""Tests for the directory listing source."""

import pytest

from repo_forge.ingest.exceptions import SourceError
from repo_forge.ingest.sources.directory import DirectorySource
from repo_forge.ingest.sources.records import XmlRecordItem

from conftest import mods_record


@pytest.fixture
def record_dir(tmp_path):
    (tmp_path / "b.xml").write_text(mods_record("Second"))
    (tmp_path / "a.xml").write_text(mods_record("First"))
    (tmp_path / "C.XML").write_text(mods_record("Third"))
    (tmp_path / "notes.txt").write_text("not a record")
    (tmp_path / "nested").mkdir()
    (tmp_path / "nested" / "d.xml").write_text(mods_record("Nested"))
    return tmp_path


class TestDirectorySource:
    """Tests for DirectorySource."""

    def test_count(self, record_dir):
        source = DirectorySource(record_dir, namespace="ir")
        assert source.count() == 3

    def test_missing_directory(self, tmp_path):
        with pytest.raises(SourceError, match="does not exist"):
            DirectorySource(tmp_path / "nope", namespace="ir")

    def test_not_a_directory(self, tmp_path):
        path = tmp_path / "file.xml"
        path.write_text(mods_record("x"))
        with pytest.raises(SourceError, match="not a directory"):
            DirectorySource(path, namespace="ir")

    def test_extracts_in_sorted_order(self, record_dir, stub_generator):
        source = DirectorySource(record_dir, namespace="ir", content_models=["cm:book"])

        items = [source.extract_one(stub_generator) for _ in range(source.count())]

        assert [item.name for item in items] == ["C.XML", "a.xml", "b.xml"]
        assert all(isinstance(item, XmlRecordItem) for item in items)
        assert items[1].title() == "First"
        assert items[1].pid_namespace == "ir"
        assert items[1].content_models == ["cm:book"]

    def test_each_record_yielded_once(self, record_dir):
        source = DirectorySource(record_dir, namespace="ir")
        names = [source.pop_entry().name for _ in range(3)]

        assert len(names) == len(set(names)) == 3
        assert source.pop_entry() is None

    def test_malformed_record_skipped(self, tmp_path, stub_generator):
        (tmp_path / "a.xml").write_text("<mods><unclosed>")
        (tmp_path / "b.xml").write_text(mods_record("Good"))
        source = DirectorySource(tmp_path, namespace="ir")

        assert source.extract_one(stub_generator) is None
        assert source.extract_one(stub_generator).title() == "Good"

    def test_skip(self, record_dir, stub_generator):
        source = DirectorySource(record_dir, namespace="ir")

        assert source.skip(2) == 2
        assert source.extract_one(stub_generator).name == "b.xml"
        assert source.skip(5) == 0

    def test_context_manager(self, record_dir):
        with DirectorySource(record_dir, namespace="ir") as source:
            assert source.count() == 3
