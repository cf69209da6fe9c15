"""
Directory listing source: one MODS record per ``*.xml`` file.
"""

import logging
from collections import deque
from pathlib import Path
from typing import List, Optional

from repo_forge.ingest.exceptions import SourceError
from repo_forge.ingest.sources.base import ImportSource, SourceEntry
from repo_forge.ingest.sources.records import XmlRecordItem
from repo_forge.ingest.sources.registry import register_source_format

logger = logging.getLogger(__name__)


@register_source_format("directory")
class DirectorySource(ImportSource):
    """Scans a directory (non-recursively) for XML records, in sorted order."""

    item_class = XmlRecordItem

    def __init__(self, path: Path, namespace: str, content_models: Optional[List[str]] = None):
        """
        Raises:
            SourceError: If path doesn't exist or isn't a directory
        """
        super().__init__(namespace, content_models)

        if not path.exists():
            raise SourceError(f"Source path does not exist: {path}")
        if not path.is_dir():
            raise SourceError(f"Source path is not a directory: {path}")

        self.path = path.resolve()
        files = sorted(
            p for p in self.path.iterdir()
            if p.is_file() and p.suffix.lower() == ".xml"
        )
        self._pending = deque(files)
        self._total = len(files)
        logger.info(f"Found {self._total} XML records in {self.path}")

    def count(self) -> int:
        return self._total

    def pop_entry(self) -> Optional[SourceEntry]:
        if not self._pending:
            return None
        file_path = self._pending.popleft()
        return SourceEntry(name=file_path.name, read=file_path.read_bytes)
