"""
Import sources and the format registry.

Importing this package registers the bundled formats:
``directory``, ``zip`` and ``csv``.
"""

from repo_forge.ingest.sources.base import ImportSource, SourceEntry
from repo_forge.ingest.sources.registry import (
    register_source_format,
    get_source_class,
    create_source,
    available_formats,
)
from repo_forge.ingest.sources.records import XmlRecordItem
from repo_forge.ingest.sources.directory import DirectorySource
from repo_forge.ingest.sources.archive import ZipSource
from repo_forge.ingest.sources.delimited import CsvSource, CsvRowItem

__all__ = [
    'ImportSource',
    'SourceEntry',
    'register_source_format',
    'get_source_class',
    'create_source',
    'available_formats',
    'XmlRecordItem',
    'DirectorySource',
    'ZipSource',
    'CsvSource',
    'CsvRowItem',
]
