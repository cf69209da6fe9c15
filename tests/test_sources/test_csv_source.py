"""Tests for the CSV list source."""

import pytest
from lxml import etree

from repo_forge.ingest.exceptions import SourceError
from repo_forge.ingest.sources.delimited import CsvRowItem, CsvSource
from repo_forge.ingest.transform import MODS_NS

NS = {"m": MODS_NS}


def write_csv(path, text):
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def csv_file(tmp_path):
    return write_csv(
        tmp_path / "list.csv",
        "Title,Subtitle,Creator,Date,Subject,Content_Model\n"
        "Harbour Report,1923,Harbour Commission; City Clerk,1923,Harbors;Shipping,\n"
        ",,,,,\n"
        "Tide Tables,,,1924,,cm:book;cm:citation\n",
    )


class TestCsvSource:
    """Tests for CsvSource."""

    def test_count_includes_blank_rows(self, csv_file):
        assert CsvSource(csv_file, namespace="ir").count() == 3

    def test_blank_row_extracts_none(self, csv_file, stub_generator):
        source = CsvSource(csv_file, namespace="ir")

        first = source.extract_one(stub_generator)
        blank = source.extract_one(stub_generator)
        third = source.extract_one(stub_generator)

        assert isinstance(first, CsvRowItem)
        assert first.name == "row 2"
        assert blank is None
        assert third.title() == "Tide Tables"
        assert source.extract_one(stub_generator) is None

    def test_content_model_column_overrides_source(self, csv_file, stub_generator):
        source = CsvSource(csv_file, namespace="ir", content_models=["cm:default"])

        first = source.extract_one(stub_generator)
        source.skip(1)
        third = source.extract_one(stub_generator)

        assert first.content_models == ["cm:default"]
        assert third.content_models == ["cm:book", "cm:citation"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceError, match="does not exist"):
            CsvSource(tmp_path / "missing.csv", namespace="ir")

    def test_empty_file_has_no_header(self, tmp_path):
        path = write_csv(tmp_path / "empty.csv", "")
        with pytest.raises(SourceError, match="no header"):
            CsvSource(path, namespace="ir")

    def test_byte_order_mark_stripped(self, tmp_path, stub_generator):
        path = tmp_path / "bom.csv"
        path.write_bytes("title\nBOM Title\n".encode("utf-8-sig"))

        item = CsvSource(path, namespace="ir").extract_one(stub_generator)

        assert item.title() == "BOM Title"


class TestCsvRowMods:
    """MODS generated from a row."""

    def test_generated_document(self, csv_file, stub_generator):
        item = CsvSource(csv_file, namespace="ir").extract_one(stub_generator)
        root = etree.fromstring(item.primary_document().encode())

        assert root.tag == f"{{{MODS_NS}}}mods"
        assert root.xpath("m:titleInfo/m:title/text()", namespaces=NS) == ["Harbour Report"]
        assert root.xpath("m:titleInfo/m:subTitle/text()", namespaces=NS) == ["1923"]
        assert root.xpath("m:name/m:namePart/text()", namespaces=NS) == ["Harbour Commission", "City Clerk"]
        assert root.xpath("m:originInfo/m:dateIssued/text()", namespaces=NS) == ["1923"]
        assert root.xpath("m:subject/m:topic/text()", namespaces=NS) == ["Harbors", "Shipping"]

    def test_row_without_title(self, tmp_path, stub_generator):
        path = write_csv(tmp_path / "untitled.csv", "creator,identifier\nSomeone,X-1\n")
        item = CsvSource(path, namespace="ir").extract_one(stub_generator)
        root = etree.fromstring(item.primary_document().encode())

        assert item.title() == ""
        assert root.xpath("m:identifier[@type='local']/text()", namespaces=NS) == ["X-1"]

    def test_control_character_yields_no_document(self, tmp_path, stub_generator):
        path = write_csv(tmp_path / "control.csv", "title\nBad \x01 title\n")
        item = CsvSource(path, namespace="ir").extract_one(stub_generator)

        assert item.primary_document() is None
        assert item.title() == ""
        assert item.derived_document() is None
