"""Factory for creating repository store clients.

Consumers (CLI, pipeline) depend only on the abstract interfaces in
``repo_forge.store.base``; this module picks the concrete backend.
"""

from typing import TYPE_CHECKING
from repo_forge.store.base import RepositoryClient, SchemaManager
from repo_forge.store.exceptions import RepositoryError

if TYPE_CHECKING:
    from repo_forge.config.settings import Settings


def get_repository_client(config: "Settings") -> RepositoryClient:
    """Get repository client based on configuration.

    Args:
        config: Application settings

    Returns:
        RepositoryClient: Configured client instance

    Raises:
        RepositoryError: If backend type is not supported
    """
    backend_type = config.repository.backend

    if backend_type == "neo4j":
        from repo_forge.store.neo4j.client import Neo4jRepositoryClient
        return Neo4jRepositoryClient(
            uri=config.neo4j.uri,
            username=config.neo4j.username,
            password=config.neo4j.password,
            database=config.neo4j.database
        )
    elif backend_type == "memory":
        from repo_forge.store.memory import InMemoryRepositoryClient
        return InMemoryRepositoryClient()
    else:
        raise RepositoryError(f"Unsupported repository backend: {backend_type}")


def get_schema_manager(client: RepositoryClient) -> SchemaManager:
    """Get schema manager for the given client.

    Raises:
        RepositoryError: If the client has no schema to manage
    """
    from repo_forge.store.neo4j.client import Neo4jRepositoryClient
    from repo_forge.store.neo4j.schema import Neo4jSchemaManager

    if isinstance(client, Neo4jRepositoryClient):
        return Neo4jSchemaManager(client)
    else:
        raise RepositoryError(f"No schema manager available for client type: {type(client).__name__}")
