"""
Delimited list source: one record per CSV row.

Rows carry simple descriptive columns; the item builds a MODS document
from them. Recognised columns (case-insensitive, all optional):

    title, subtitle, creator, contributor, date, publisher, subject,
    description, identifier, type, genre, language, rights, content_model

``subject`` and ``content_model`` accept several values separated by ``;``.
"""

import csv
import logging
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from lxml import etree

from repo_forge.ingest.exceptions import SourceError
from repo_forge.ingest.items import ImportItem
from repo_forge.ingest.sources.base import ImportSource
from repo_forge.ingest.sources.registry import register_source_format
from repo_forge.ingest.transform import MODS_NS, DerivedDocumentGenerator

logger = logging.getLogger(__name__)


MULTI_VALUE_SEPARATOR = ";"


@dataclass
class CsvRow:
    """A CSV row with its 1-based line number."""

    line: int
    values: Dict[str, str]


def _split(value: str) -> List[str]:
    return [part.strip() for part in value.split(MULTI_VALUE_SEPARATOR) if part.strip()]


def _mods(tag: str) -> str:
    return f"{{{MODS_NS}}}{tag}"


class CsvRowItem(ImportItem):
    """Item whose MODS record is generated from a CSV row."""

    @classmethod
    def from_entry(cls, entry: CsvRow, source,
                   generator: Optional[DerivedDocumentGenerator] = None) -> Optional["CsvRowItem"]:
        values = {
            (key or "").strip().lower(): (value or "").strip()
            for key, value in entry.values.items()
            if key is not None
        }
        if not any(values.values()):
            logger.warning(f"Row {entry.line} is blank, nothing to ingest")
            return None

        content_models = _split(values.get("content_model", "")) or source.content_models

        return cls(
            source_fragment=values,
            pid_namespace=source.namespace,
            content_models=content_models,
            generator=generator,
            name=f"row {entry.line}",
        )

    def generate_primary_document(self) -> Optional[str]:
        try:
            return self._build_mods(self.source_fragment)
        except ValueError as e:
            # lxml refuses control characters and other non-XML text
            logger.warning(f"Cannot build a MODS record from {self.name}: {e}")
            return None

    @staticmethod
    def _build_mods(row: Dict[str, str]) -> str:
        root = etree.Element(_mods("mods"), nsmap={None: MODS_NS})
        root.set("version", "3.7")

        if row.get("title"):
            title_info = etree.SubElement(root, _mods("titleInfo"))
            etree.SubElement(title_info, _mods("title")).text = row["title"]
            if row.get("subtitle"):
                etree.SubElement(title_info, _mods("subTitle")).text = row["subtitle"]

        for column, role in (("creator", "creator"), ("contributor", "contributor")):
            for person in _split(row.get(column, "")):
                name = etree.SubElement(root, _mods("name"))
                etree.SubElement(name, _mods("namePart")).text = person
                role_el = etree.SubElement(name, _mods("role"))
                role_term = etree.SubElement(role_el, _mods("roleTerm"), type="text")
                role_term.text = role

        for column, tag in (("type", "typeOfResource"), ("genre", "genre")):
            if row.get(column):
                etree.SubElement(root, _mods(tag)).text = row[column]

        if row.get("date") or row.get("publisher"):
            origin = etree.SubElement(root, _mods("originInfo"))
            if row.get("publisher"):
                etree.SubElement(origin, _mods("publisher")).text = row["publisher"]
            if row.get("date"):
                etree.SubElement(origin, _mods("dateIssued")).text = row["date"]

        if row.get("language"):
            language = etree.SubElement(root, _mods("language"))
            term = etree.SubElement(language, _mods("languageTerm"), type="code", authority="iso639-2b")
            term.text = row["language"]

        if row.get("description"):
            etree.SubElement(root, _mods("abstract")).text = row["description"]

        for topic in _split(row.get("subject", "")):
            subject = etree.SubElement(root, _mods("subject"))
            etree.SubElement(subject, _mods("topic")).text = topic

        if row.get("identifier"):
            etree.SubElement(root, _mods("identifier"), type="local").text = row["identifier"]

        if row.get("rights"):
            etree.SubElement(root, _mods("accessCondition"), type="use and reproduction").text = row["rights"]

        return etree.tostring(root, encoding="unicode", pretty_print=True)


@register_source_format("csv")
class CsvSource(ImportSource):
    """Reads every data row of a CSV file (header row required)."""

    item_class = CsvRowItem

    def __init__(self, path: Path, namespace: str, content_models: Optional[List[str]] = None):
        """
        Raises:
            SourceError: If the file is missing, unreadable or has no header
        """
        super().__init__(namespace, content_models)

        if not path.is_file():
            raise SourceError(f"CSV file does not exist: {path}")

        try:
            with open(path, "r", encoding="utf-8-sig", newline="") as f:
                reader = csv.DictReader(f)
                if not reader.fieldnames:
                    raise SourceError(f"CSV file has no header row: {path}")
                rows = [CsvRow(line=reader.line_num, values=row) for row in reader]
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise SourceError(f"Cannot read CSV file {path}: {e}")

        self.path = path.resolve()
        self._pending = deque(rows)
        self._total = len(rows)
        logger.info(f"Found {self._total} rows in {self.path.name}")

    def count(self) -> int:
        return self._total

    def pop_entry(self) -> Optional[CsvRow]:
        if not self._pending:
            return None
        return self._pending.popleft()
