"""
Item variant for sources whose entries are complete MODS documents.
"""

import logging
import zipfile
from typing import Optional

from lxml import etree

from repo_forge.ingest.exceptions import SourceError
from repo_forge.ingest.items import ImportItem
from repo_forge.ingest.sources.base import SourceEntry
from repo_forge.ingest.transform import DerivedDocumentGenerator, parse_xml

logger = logging.getLogger(__name__)


class XmlRecordItem(ImportItem):
    """A record whose primary document is the entry's XML, as found."""

    @classmethod
    def from_entry(cls, entry: SourceEntry, source,
                   generator: Optional[DerivedDocumentGenerator] = None) -> "XmlRecordItem":
        try:
            raw = entry.read()
        except (OSError, zipfile.BadZipFile) as e:
            raise SourceError(f"Cannot read {entry.name}: {e}")

        try:
            root = parse_xml(raw)
        except etree.XMLSyntaxError as e:
            raise SourceError(f"{entry.name} is not well-formed XML: {e}")

        return cls(
            source_fragment=etree.tostring(root, encoding="unicode"),
            pid_namespace=source.namespace,
            content_models=source.content_models,
            generator=generator,
            name=entry.name,
        )

    def generate_primary_document(self) -> Optional[str]:
        return self.source_fragment or None
