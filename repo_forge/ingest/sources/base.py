"""
Import source contract.

A source is a mutable queue of raw entries. ``count()`` reports the total
number of entries once, before the extraction loop; each extraction pops one
entry, so a record is never yielded twice.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, List, Optional, Type

from repo_forge.ingest.items import ImportItem
from repo_forge.ingest.transform import DerivedDocumentGenerator

logger = logging.getLogger(__name__)


@dataclass
class SourceEntry:
    """A named entry whose bytes are read on demand."""

    name: str
    read: Callable[[], bytes]


class ImportSource(ABC):
    """
    Base class for import sources.

    Subclasses bind ``item_class`` (the item variant built from their
    entries) and ``format_name`` (the registry tag).
    """

    item_class: ClassVar[Type[ImportItem]]
    format_name: ClassVar[str] = ""

    def __init__(self, namespace: str, content_models: Optional[List[str]] = None):
        """
        Args:
            namespace: Default PID namespace for extracted items
            content_models: Content-model tags applied to extracted items
        """
        self.namespace = namespace
        self.content_models = list(content_models or [])

    @abstractmethod
    def count(self) -> int:
        """Total number of entries this source was opened with."""
        pass

    @abstractmethod
    def pop_entry(self) -> Optional[Any]:
        """Remove and return the next raw entry, or None when exhausted."""
        pass

    def extract_one(self, generator: Optional[DerivedDocumentGenerator] = None) -> Optional[ImportItem]:
        return self.item_class.extract_one(self, generator)

    def skip(self, count: int) -> int:
        """
        Discard up to ``count`` entries (resuming a partially processed batch).

        Returns:
            Number of entries actually discarded
        """
        skipped = 0
        while skipped < count and self.pop_entry() is not None:
            skipped += 1
        if skipped:
            logger.info(f"Skipped {skipped} already processed {self.format_name} entries")
        return skipped

    def close(self) -> None:
        """Release any handle held by the source."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
