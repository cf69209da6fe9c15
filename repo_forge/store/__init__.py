"""Repository store abstraction layer for repo-forge.

This package provides a backend-agnostic client interface for the
digital object repository, with a Neo4j-backed implementation and an
in-memory one for dry runs.

Usage:
    from repo_forge.store.factory import get_repository_client

    client = get_repository_client(settings)
    with client:
        pids = client.allocate_identifiers("ir", 5)
"""

from repo_forge.store.base import RepositoryClient, SchemaManager
from repo_forge.store.exceptions import (
    RepositoryError,
    StoreConnectionError,
    StoreRejectedError,
    IdentifierAllocationError,
    SchemaError,
)

__all__ = [
    "RepositoryClient",
    "SchemaManager",
    "RepositoryError",
    "StoreConnectionError",
    "StoreRejectedError",
    "IdentifierAllocationError",
    "SchemaError",
]
