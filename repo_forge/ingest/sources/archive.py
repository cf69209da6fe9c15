"""
Zip archive source: one MODS record per ``*.xml`` member.
"""

import logging
import zipfile
from collections import deque
from pathlib import Path
from typing import List, Optional

from repo_forge.ingest.exceptions import SourceError
from repo_forge.ingest.sources.base import ImportSource, SourceEntry
from repo_forge.ingest.sources.records import XmlRecordItem
from repo_forge.ingest.sources.registry import register_source_format

logger = logging.getLogger(__name__)


def _is_record(info: zipfile.ZipInfo) -> bool:
    name = info.filename
    if info.is_dir() or name.startswith("__MACOSX/"):
        return False
    return name.lower().endswith(".xml") and not Path(name).name.startswith("._")


@register_source_format("zip")
class ZipSource(ImportSource):
    """Reads XML records out of a zip archive, in sorted member order."""

    item_class = XmlRecordItem

    def __init__(self, path: Path, namespace: str, content_models: Optional[List[str]] = None):
        """
        Raises:
            SourceError: If the archive is missing or corrupt
        """
        super().__init__(namespace, content_models)

        if not path.is_file():
            raise SourceError(f"Archive does not exist: {path}")

        try:
            self._archive = zipfile.ZipFile(path)
        except zipfile.BadZipFile as e:
            raise SourceError(f"Not a zip archive: {path} ({e})")

        self.path = path.resolve()
        members = sorted(
            (info.filename for info in self._archive.infolist() if _is_record(info))
        )
        self._pending = deque(members)
        self._total = len(members)
        logger.info(f"Found {self._total} XML records in {self.path.name}")

    def count(self) -> int:
        return self._total

    def pop_entry(self) -> Optional[SourceEntry]:
        if not self._pending:
            return None
        member = self._pending.popleft()
        return SourceEntry(name=member, read=lambda: self._archive.read(member))

    def close(self) -> None:
        if self._archive is not None:
            self._archive.close()
            self._archive = None
