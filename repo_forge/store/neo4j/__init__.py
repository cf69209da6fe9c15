"""Neo4j implementation of the repository store."""

from repo_forge.store.neo4j.client import Neo4jRepositoryClient
from repo_forge.store.neo4j.schema import Neo4jSchemaManager

__all__ = ["Neo4jRepositoryClient", "Neo4jSchemaManager"]
