"""Data models shared by the store and ingest packages."""

from repo_forge.models.repository import (
    DatastreamDescriptor,
    Relationship,
    RepositoryObject,
    StoredDatastream,
)
from repo_forge.models.batch import (
    BatchContext,
    BatchResult,
    DraftState,
    ErrorKind,
    IngestErrorRecord,
    PipelinePhase,
)

__all__ = [
    "DatastreamDescriptor",
    "Relationship",
    "RepositoryObject",
    "StoredDatastream",
    "BatchContext",
    "BatchResult",
    "DraftState",
    "ErrorKind",
    "IngestErrorRecord",
    "PipelinePhase",
]
