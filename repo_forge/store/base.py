"""Abstract base classes for repository store operations.

This module defines backend-agnostic interfaces that can be implemented
by different repository backends (Neo4j, in-memory, etc.).

NO database-specific imports should be in this file.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from repo_forge.models.repository import (
    DatastreamDescriptor,
    Relationship,
    RepositoryObject,
    StoredDatastream,
)


class RepositoryClient(ABC):
    """Abstract base class for repository store clients.

    Provides connection management, identifier allocation and the
    object/datastream operations the ingest pipeline relies on.
    """

    @abstractmethod
    def connect(self) -> bool:
        """Connect to the repository store.

        Returns:
            bool: True if connection successful

        Raises:
            StoreConnectionError: If the store is unreachable
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the store connection.

        Should be idempotent - safe to call multiple times.
        """
        pass

    @abstractmethod
    def verify_connectivity(self) -> bool:
        """Verify that the store is accessible.

        Returns:
            bool: True if store responds, False otherwise
        """
        pass

    @abstractmethod
    def allocate_identifiers(self, namespace: str, count: int) -> List[str]:
        """Reserve ``count`` new persistent identifiers in ``namespace``.

        Args:
            namespace: PID namespace prefix
            count: Number of identifiers to reserve

        Returns:
            list: Identifiers in allocation order

        Raises:
            IdentifierAllocationError: If the store cannot allocate
        """
        pass

    @abstractmethod
    def load_object(self, pid: str) -> Optional[RepositoryObject]:
        """Load an object and its datastreams.

        Args:
            pid: Persistent identifier

        Returns:
            RepositoryObject, or None if not found
        """
        pass

    @abstractmethod
    def create_object(
        self,
        pid: str,
        label: str = "",
        content_models: Optional[List[str]] = None,
        relationships: Optional[List[Relationship]] = None
    ) -> RepositoryObject:
        """Create an object with its label, content models and relationships.

        Args:
            pid: Persistent identifier
            label: Object label
            content_models: Content-model tags
            relationships: Relationships to other objects

        Returns:
            RepositoryObject: Handle on the created object

        Raises:
            StoreRejectedError: If the store refuses the object
        """
        pass

    @abstractmethod
    def attach_datastream(
        self,
        obj: RepositoryObject,
        descriptor: DatastreamDescriptor
    ) -> StoredDatastream:
        """Attach a datastream to an object, reading its content source.

        Args:
            obj: Object handle returned by create_object/load_object
            descriptor: Datastream to attach

        Returns:
            StoredDatastream: The persisted datastream

        Raises:
            StoreRejectedError: If the store refuses the datastream
        """
        pass

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


class SchemaManager(ABC):
    """Abstract base class for store schema management."""

    @abstractmethod
    def create_schema(self) -> None:
        """Create complete schema (constraints and indexes).

        Should be idempotent - safe to call multiple times.
        """
        pass

    @abstractmethod
    def get_statistics(self, namespace: Optional[str] = None) -> Dict[str, Any]:
        """Get store statistics.

        Args:
            namespace: Optional namespace to filter by

        Returns:
            dict: Object and datastream counts
        """
        pass
