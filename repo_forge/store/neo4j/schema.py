"""Neo4j schema management implementation."""

import logging
from typing import Dict, Any, Optional

from repo_forge.store.base import SchemaManager
from repo_forge.store.neo4j.client import Neo4jRepositoryClient
from repo_forge.store.exceptions import SchemaError

logger = logging.getLogger(__name__)


class Neo4jSchemaManager(SchemaManager):
    """Neo4j implementation of SchemaManager.

    Manages uniqueness constraints and indexes for repository nodes.
    """

    def __init__(self, client: Neo4jRepositoryClient):
        self.client = client

    def create_schema(self) -> None:
        """Create complete schema (constraints and indexes).

        Idempotent - safe to call multiple times.

        Raises:
            SchemaError: If schema creation fails
        """
        try:
            logger.info("Creating store schema...")
            self.create_constraints()
            self.create_indexes()
            logger.info("Store schema created successfully")
        except SchemaError:
            raise
        except Exception as e:
            raise SchemaError(f"Failed to create schema: {e}")

    def create_constraints(self) -> None:
        """Create uniqueness constraints.

        Creates:
        - RepositoryObject nodes: unique on pid
        - IdentifierCounter nodes: unique on namespace
        - Datastream nodes: unique on (pid, dsid)
        """
        constraints = [
            """
            CREATE CONSTRAINT repository_object_pid IF NOT EXISTS
            FOR (o:RepositoryObject)
            REQUIRE o.pid IS UNIQUE
            """,
            """
            CREATE CONSTRAINT identifier_counter_namespace IF NOT EXISTS
            FOR (c:IdentifierCounter)
            REQUIRE c.namespace IS UNIQUE
            """,
            """
            CREATE CONSTRAINT datastream_unique IF NOT EXISTS
            FOR (d:Datastream)
            REQUIRE (d.pid, d.dsid) IS UNIQUE
            """,
        ]

        try:
            for constraint in constraints:
                self.client.execute_write(constraint)
            logger.info(f"Created {len(constraints)} constraints")
        except Exception as e:
            raise SchemaError(f"Failed to create constraints: {e}")

    def create_indexes(self) -> None:
        indexes = [
            "CREATE INDEX repository_object_namespace IF NOT EXISTS FOR (o:RepositoryObject) ON (o.namespace)",
            "CREATE INDEX datastream_dsid IF NOT EXISTS FOR (d:Datastream) ON (d.dsid)",
        ]

        try:
            for index_query in indexes:
                self.client.execute_write(index_query)
                logger.debug(f"Created index: {index_query[:50]}...")
            logger.info(f"Created {len(indexes)} indexes")
        except Exception as e:
            raise SchemaError(f"Failed to create indexes: {e}")

    def get_statistics(self, namespace: Optional[str] = None) -> Dict[str, Any]:
        """Get object and datastream counts, optionally for one namespace."""
        query = """
        MATCH (o:RepositoryObject)
        WHERE o.created_at IS NOT NULL
          AND ($namespace IS NULL OR o.namespace = $namespace)
        OPTIONAL MATCH (o)-[:HAS_DATASTREAM]->(d:Datastream)
        RETURN count(DISTINCT o) AS objects, count(d) AS datastreams
        """

        try:
            result = self.client.execute_query(query, {"namespace": namespace})
        except Exception as e:
            raise SchemaError(f"Failed to get statistics: {e}")

        row = result[0] if result else {}
        return {
            "namespace": namespace,
            "objects": row.get("objects", 0),
            "datastreams": row.get("datastreams", 0),
        }
