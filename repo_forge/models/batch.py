"""Batch bookkeeping models for the two-phase ingest pipeline."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from repo_forge.ingest.draft import RepositoryObjectDraft
    from repo_forge.ingest.metrics import BatchMetrics


class DraftState(str, Enum):
    """Lifecycle of a repository object draft."""

    PENDING = "pending"
    PREPROCESSED = "preprocessed"
    COMMITTED = "committed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (DraftState.COMMITTED, DraftState.ERROR)


class PipelinePhase(str, Enum):
    """Where a batch run currently stands."""

    PREPROCESS = "preprocess"
    AWAITING_COMMIT = "awaiting_commit"
    DONE = "done"


class ErrorKind(str, Enum):
    """Recoverable error categories recorded during a run."""

    MISSING_DOCUMENT = "missing document"
    IDENTIFIER_ALLOCATION = "identifier allocation"
    STORE_REJECTION = "store rejection"
    ITEM_FAILURE = "item failure"


class BatchContext(BaseModel):
    """
    Progress counters persisted by the batch driver between invocations.

    ``max`` stays ``None`` until the first step asks the source for its count.
    ``checkpoint`` is the position up to which every entry is settled in the
    store; it trails ``progress`` while preprocessed drafts await a deferred
    commit. ``None`` means it coincides with ``progress``.
    """

    progress: int = Field(default=0, ge=0)
    max: Optional[int] = Field(default=None, ge=0)
    checkpoint: Optional[int] = Field(default=None, ge=0)

    @property
    def started(self) -> bool:
        return self.max is not None

    @property
    def finished(self) -> bool:
        return self.max is not None and self.progress >= self.max

    @property
    def remaining(self) -> int:
        if self.max is None:
            return 0
        return max(self.max - self.progress, 0)

    def refill_size(self) -> int:
        """Identifier batch size for the remaining work: ceil(remaining / 2) + 1."""
        return math.ceil(self.remaining / 2) + 1

    @property
    def unsettled(self) -> int:
        """Entries counted as progress whose drafts never reached the store."""
        if self.checkpoint is None:
            return 0
        return max(self.progress - self.checkpoint, 0)

    def advance(self) -> None:
        self.progress += 1


@dataclass
class IngestErrorRecord:
    """Structured error tied to the affected identifier and datastream."""

    kind: ErrorKind
    message: str
    dsid: Optional[str] = None
    identifier: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'kind': self.kind.value,
            'message': self.message,
            'dsid': self.dsid,
            'identifier': self.identifier,
        }

    def __str__(self) -> str:
        target = self.identifier or "<unassigned>"
        if self.dsid:
            return f"{self.kind.value}: {self.dsid} on {target} ({self.message})"
        return f"{self.kind.value}: {target} ({self.message})"


@dataclass
class BatchResult:
    """Outcome of a batch run."""

    committed: List["RepositoryObjectDraft"] = field(default_factory=list)
    failed: List["RepositoryObjectDraft"] = field(default_factory=list)
    pending: List["RepositoryObjectDraft"] = field(default_factory=list)
    errors: List[IngestErrorRecord] = field(default_factory=list)
    metrics: Optional["BatchMetrics"] = None

    @property
    def committed_count(self) -> int:
        return len(self.committed)

    @property
    def error_count(self) -> int:
        return len(self.failed)

    @property
    def pending_count(self) -> int:
        return len(self.pending)

    def errors_of(self, kind: ErrorKind) -> List[IngestErrorRecord]:
        return [error for error in self.errors if error.kind is kind]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'committed': [draft.identifier for draft in self.committed],
            'failed': [draft.identifier for draft in self.failed],
            'pending': [draft.identifier for draft in self.pending],
            'errors': [error.to_dict() for error in self.errors],
            'metrics': self.metrics.to_dict() if self.metrics else None,
        }
