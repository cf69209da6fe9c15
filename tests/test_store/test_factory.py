"""Tests for the store factory."""

import pytest

from repo_forge.config.settings import Settings
from repo_forge.store.exceptions import RepositoryError
from repo_forge.store.factory import get_repository_client, get_schema_manager
from repo_forge.store.memory import InMemoryRepositoryClient
from repo_forge.store.neo4j.client import Neo4jRepositoryClient
from repo_forge.store.neo4j.schema import Neo4jSchemaManager


class TestFactory:
    """Backend selection."""

    def test_neo4j_client(self):
        settings = Settings(neo4j={"uri": "bolt://db:7687", "database": "repo"})

        client = get_repository_client(settings)

        assert isinstance(client, Neo4jRepositoryClient)
        assert client.uri == "bolt://db:7687"
        assert client.database == "repo"

    def test_memory_client(self):
        client = get_repository_client(Settings(repository={"backend": "memory"}))
        assert isinstance(client, InMemoryRepositoryClient)

    def test_unsupported_backend(self):
        settings = Settings()
        settings.repository.backend = "fedora"

        with pytest.raises(RepositoryError, match="Unsupported"):
            get_repository_client(settings)

    def test_schema_manager_for_neo4j(self):
        client = get_repository_client(Settings())
        assert isinstance(get_schema_manager(client), Neo4jSchemaManager)

    def test_no_schema_manager_for_memory(self):
        with pytest.raises(RepositoryError, match="No schema manager"):
            get_schema_manager(InMemoryRepositoryClient())
