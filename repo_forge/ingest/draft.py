"""
Repository object drafts: the object being built for one import item.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from repo_forge.ingest.exceptions import DraftStateError
from repo_forge.ingest.items import ImportItem
from repo_forge.models.batch import DraftState, IngestErrorRecord
from repo_forge.models.repository import IS_MEMBER_OF, DatastreamDescriptor, Relationship

logger = logging.getLogger(__name__)


_ALLOWED_TRANSITIONS = {
    DraftState.PENDING: {DraftState.PREPROCESSED, DraftState.ERROR},
    DraftState.PREPROCESSED: {DraftState.COMMITTED, DraftState.ERROR},
    DraftState.COMMITTED: set(),
    DraftState.ERROR: set(),
}


@dataclass
class RepositoryObjectDraft:
    """
    Mutable description of a repository object prior to commit.

    Preprocessing fills the namespace, parent and relationships; commit fills
    the label, identifier (unless preallocated) and datastreams. Once the
    draft reaches COMMITTED or ERROR it no longer accepts changes.
    """

    item: ImportItem
    parent_id: Optional[str] = None
    namespace: Optional[str] = None
    identifier: Optional[str] = None
    label: str = ""
    content_models: List[str] = field(default_factory=list)
    relationships: List[Relationship] = field(default_factory=list)
    datastreams: List[DatastreamDescriptor] = field(default_factory=list)
    state: DraftState = DraftState.PENDING
    temp_artifacts: List[Path] = field(default_factory=list)
    errors: List[IngestErrorRecord] = field(default_factory=list)
    position: Optional[int] = None

    @classmethod
    def for_item(cls, item: ImportItem, parent_id: Optional[str] = None) -> "RepositoryObjectDraft":
        return cls(
            item=item,
            parent_id=parent_id,
            namespace=item.pid_namespace,
            content_models=list(item.content_models),
        )

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def _check_mutable(self, action: str) -> None:
        if self.is_terminal:
            raise DraftStateError(self.identifier, self.state, action)

    def add_relationship(self, predicate: str, object_id: str) -> Relationship:
        """Append a relationship; duplicates are kept once."""
        self._check_mutable(f"add relationship {predicate}")
        relationship = Relationship(predicate=predicate, object_id=object_id)
        if relationship not in self.relationships:
            self.relationships.append(relationship)
        return relationship

    def add_datastream(self, descriptor: DatastreamDescriptor) -> None:
        self._check_mutable(f"add datastream {descriptor.dsid}")
        self.datastreams.append(descriptor)

    def record_error(self, error: IngestErrorRecord) -> None:
        self.errors.append(error)

    def transition(self, new_state: DraftState) -> None:
        """
        Move the draft to ``new_state``.

        Raises:
            DraftStateError: If the transition is not allowed from the current state
        """
        if new_state not in _ALLOWED_TRANSITIONS[self.state]:
            raise DraftStateError(self.identifier, self.state, new_state)
        logger.debug(f"Draft {self.identifier or self.item.name}: {self.state.value} -> {new_state.value}")
        self.state = new_state

    def members_of(self) -> List[str]:
        return [rel.object_id for rel in self.relationships if rel.predicate == IS_MEMBER_OF]

    def resources(self) -> List[str]:
        return self.item.resources()

    def __repr__(self) -> str:
        return (f"RepositoryObjectDraft(identifier={self.identifier!r}, namespace={self.namespace!r}, "
                f"state={self.state.value}, relationships={len(self.relationships)})")
