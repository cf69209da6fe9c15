"""
Import items: one extracted record each.

An item knows how to produce its primary document; the base class layers
memoized ``title()`` / ``primary_document()`` / ``derived_document()``
accessors on top, so variants only implement what differs between source
formats.
"""

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, List, Optional

from repo_forge.ingest.exceptions import SourceError
from repo_forge.ingest.transform import DerivedDocumentGenerator, get_default_generator

if TYPE_CHECKING:
    from repo_forge.ingest.draft import RepositoryObjectDraft
    from repo_forge.ingest.sources.base import ImportSource

logger = logging.getLogger(__name__)


_UNSET = object()


class ImportItem(ABC):
    """
    One record pulled from an import source.

    Attributes:
        source_fragment: Opaque backing data (file contents, CSV row, ...)
        name: Human-readable origin of the record, used in log messages
        pid_namespace: Default namespace for identifier allocation
        content_models: Content-model tags the object will carry
    """

    def __init__(self, source_fragment: Any, pid_namespace: str,
                 content_models: Optional[List[str]] = None,
                 generator: Optional[DerivedDocumentGenerator] = None,
                 name: str = ""):
        self.source_fragment = source_fragment
        self.pid_namespace = pid_namespace
        self.content_models = list(content_models or [])
        self.name = name
        self._generator = generator
        self._title = _UNSET
        self._primary = _UNSET
        self._derived = _UNSET

    @classmethod
    def extract_one(cls, source: "ImportSource",
                    generator: Optional[DerivedDocumentGenerator] = None) -> Optional["ImportItem"]:
        """
        Take the next record off ``source``.

        The entry is consumed even when it cannot be turned into an item, so
        the same record is never returned twice.

        Returns:
            The item, or None when the source is exhausted or the entry is
            unusable
        """
        entry = source.pop_entry()
        if entry is None:
            return None

        try:
            return cls.from_entry(entry, source, generator)
        except SourceError as e:
            logger.warning(f"Skipping unusable {source.format_name} entry: {e}")
            return None

    @classmethod
    @abstractmethod
    def from_entry(cls, entry: Any, source: "ImportSource",
                   generator: Optional[DerivedDocumentGenerator] = None) -> Optional["ImportItem"]:
        """
        Build an item from a raw source entry.

        Raises:
            SourceError: If the entry cannot be read
        """
        pass

    @abstractmethod
    def generate_primary_document(self) -> Optional[str]:
        """Produce the primary (MODS) document as UTF-8 XML text, or None."""
        pass

    @property
    def generator(self) -> DerivedDocumentGenerator:
        if self._generator is None:
            self._generator = get_default_generator()
        return self._generator

    def primary_document(self) -> Optional[str]:
        if self._primary is _UNSET:
            self._primary = self.generate_primary_document()
        return self._primary

    def title(self) -> str:
        if self._title is _UNSET:
            self._title = self.generator.title(self.primary_document())
        return self._title

    def derived_document(self) -> Optional[str]:
        """Derived document, transformed at most once per item."""
        if self._derived is _UNSET:
            self._derived = self.generator.derive(self.primary_document())
        return self._derived

    def modify_relationships(self, draft: "RepositoryObjectDraft") -> None:
        """Add item-specific relationships to ``draft``. No-op by default."""
        pass

    def resources(self) -> List[str]:
        """External resources the object depends on before it can be committed."""
        return []

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, namespace={self.pid_namespace!r})"
