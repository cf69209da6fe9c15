"""Neo4j-backed repository store.

Objects are ``RepositoryObject`` nodes keyed by ``pid``; datastreams hang
off them as ``Datastream`` nodes, relationships are ``RELATES_TO`` edges
carrying the predicate, and identifier sequences live on one
``IdentifierCounter`` node per namespace.
"""

import logging
from typing import List, Dict, Any, Optional
from neo4j import GraphDatabase, Driver
from neo4j.exceptions import ServiceUnavailable, AuthError

from repo_forge.models.repository import (
    DatastreamDescriptor,
    Relationship,
    RepositoryObject,
    StoredDatastream,
)
from repo_forge.store.base import RepositoryClient
from repo_forge.store.exceptions import (
    IdentifierAllocationError,
    RepositoryError,
    StoreConnectionError,
    StoreRejectedError,
)

logger = logging.getLogger(__name__)


class Neo4jRepositoryClient(RepositoryClient):
    """Neo4j implementation of RepositoryClient."""

    def __init__(
        self,
        uri: str,
        username: str,
        password: str,
        database: str = "neo4j"
    ):
        """Initialize Neo4j client.

        Args:
            uri: Neo4j connection URI (e.g., bolt://localhost:7687)
            username: Database username
            password: Database password
            database: Database name (default: neo4j)
        """
        self.uri = uri
        self.username = username
        self.password = password
        self.database = database
        self._driver: Optional[Driver] = None

    def connect(self) -> bool:
        """Connect to Neo4j database.

        Returns:
            bool: True if connection successful

        Raises:
            StoreConnectionError: If connection fails
        """
        try:
            self._driver = GraphDatabase.driver(
                self.uri,
                auth=(self.username, self.password)
            )
            self._driver.verify_connectivity()
            logger.info(f"Connected to Neo4j at {self.uri}")
            return True
        except AuthError as e:
            raise StoreConnectionError(f"Authentication failed: {e}")
        except ServiceUnavailable as e:
            raise StoreConnectionError(f"Neo4j service unavailable: {e}")
        except Exception as e:
            raise StoreConnectionError(f"Failed to connect to Neo4j: {e}")

    def close(self) -> None:
        """Close the database connection.

        Idempotent - safe to call multiple times.
        """
        if self._driver:
            self._driver.close()
            self._driver = None
            logger.info("Closed Neo4j connection")

    def verify_connectivity(self) -> bool:
        if not self._driver:
            return False

        try:
            self._driver.verify_connectivity()
            return True
        except Exception as e:
            logger.error(f"Connectivity verification failed: {e}")
            return False

    def execute_query(
        self,
        query: str,
        parameters: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Execute a read query and return results.

        Args:
            query: Cypher query string
            parameters: Query parameters

        Returns:
            list: List of result records as dictionaries

        Raises:
            StoreConnectionError: If not connected or query fails
        """
        if not self._driver:
            raise StoreConnectionError("Not connected to database")

        parameters = parameters or {}

        try:
            with self._driver.session(database=self.database) as session:
                result = session.run(query, parameters)
                return [dict(record) for record in result]
        except Exception as e:
            logger.error(f"Query execution failed: {e}")
            logger.debug(f"Query: {query}")
            raise StoreConnectionError(f"Query execution failed: {e}")

    def execute_write(
        self,
        query: str,
        parameters: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Execute a write query and return a counters summary."""
        if not self._driver:
            raise StoreConnectionError("Not connected to database")

        parameters = parameters or {}

        try:
            with self._driver.session(database=self.database) as session:
                result = session.run(query, parameters)
                summary = result.consume()
                return {
                    "nodes_created": summary.counters.nodes_created,
                    "nodes_deleted": summary.counters.nodes_deleted,
                    "relationships_created": summary.counters.relationships_created,
                    "properties_set": summary.counters.properties_set,
                }
        except Exception as e:
            logger.error(f"Write query execution failed: {e}")
            logger.debug(f"Query: {query}")
            raise StoreConnectionError(f"Write query execution failed: {e}")

    def execute_write_tx(
        self,
        query: str,
        parameters: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Execute a write transaction and return its records.

        Useful for write queries that also return data (e.g., MERGE ... RETURN).
        """
        if not self._driver:
            raise StoreConnectionError("Not connected to database")

        parameters = parameters or {}

        def _tx_function(tx):
            result = tx.run(query, parameters)
            return [dict(record) for record in result]

        try:
            with self._driver.session(database=self.database) as session:
                return session.execute_write(_tx_function)
        except Exception as e:
            logger.error(f"Write transaction failed: {e}")
            logger.debug(f"Query: {query}")
            raise StoreConnectionError(f"Write transaction failed: {e}")

    def allocate_identifiers(self, namespace: str, count: int) -> List[str]:
        """Reserve ``count`` identifiers by advancing the namespace counter.

        The read-and-advance runs in one write transaction, so concurrent
        allocators never receive overlapping ranges.
        """
        if count < 1:
            raise IdentifierAllocationError(namespace, f"invalid batch size {count}")

        query = """
        MERGE (c:IdentifierCounter {namespace: $namespace})
        ON CREATE SET c.next = 1
        WITH c, c.next AS start
        SET c.next = start + $count
        RETURN start
        """

        try:
            result = self.execute_write_tx(query, {"namespace": namespace, "count": count})
        except RepositoryError as e:
            raise IdentifierAllocationError(namespace, str(e))

        if not result or result[0].get("start") is None:
            raise IdentifierAllocationError(namespace, "counter update returned no rows")

        start = int(result[0]["start"])
        logger.debug(f"Allocated {count} identifiers in '{namespace}' starting at {start}")
        return [f"{namespace}:{n}" for n in range(start, start + count)]

    def load_object(self, pid: str) -> Optional[RepositoryObject]:
        object_query = """
        MATCH (o:RepositoryObject {pid: $pid})
        WHERE o.created_at IS NOT NULL
        OPTIONAL MATCH (o)-[:HAS_DATASTREAM]->(d:Datastream)
        RETURN o, collect(d) AS datastreams
        """

        relationship_query = """
        MATCH (o:RepositoryObject {pid: $pid})-[r:RELATES_TO]->(t:RepositoryObject)
        RETURN r.predicate AS predicate, t.pid AS object_id
        ORDER BY r.position
        """

        result = self.execute_query(object_query, {"pid": pid})
        if not result or not result[0].get("o"):
            return None

        node = dict(result[0]["o"])
        datastreams = {}
        for ds_node in result[0].get("datastreams") or []:
            ds = dict(ds_node)
            datastreams[ds["dsid"]] = StoredDatastream(
                dsid=ds["dsid"],
                label=ds.get("label", ""),
                mimetype=ds.get("mimetype", "application/xml"),
                control_group=ds.get("control_group", "M"),
                content=ds.get("content"),
            )

        relationships = [
            Relationship(predicate=row["predicate"], object_id=row["object_id"])
            for row in self.execute_query(relationship_query, {"pid": pid})
        ]

        return RepositoryObject(
            pid=node["pid"],
            label=node.get("label") or "",
            content_models=list(node.get("content_models") or []),
            relationships=relationships,
            datastreams=datastreams,
        )

    def create_object(
        self,
        pid: str,
        label: str = "",
        content_models: Optional[List[str]] = None,
        relationships: Optional[List[Relationship]] = None
    ) -> RepositoryObject:
        exists_query = """
        MATCH (o:RepositoryObject {pid: $pid})
        WHERE o.created_at IS NOT NULL
        RETURN count(o) AS count
        """

        # Related objects may not exist yet; MERGE leaves a bare placeholder node
        create_query = """
        MERGE (o:RepositoryObject {pid: $pid})
        SET o.label = $label,
            o.namespace = $namespace,
            o.content_models = $content_models,
            o.created_at = timestamp()
        FOREACH (rel IN $relationships |
            MERGE (t:RepositoryObject {pid: rel.object_id})
            MERGE (o)-[r:RELATES_TO {predicate: rel.predicate}]->(t)
            SET r.position = rel.position
        )
        RETURN o
        """

        content_models = list(content_models or [])
        relationships = list(relationships or [])

        existing = self.execute_query(exists_query, {"pid": pid})
        if existing and existing[0].get("count", 0) > 0:
            raise StoreRejectedError(pid, "object already exists")

        params = {
            "pid": pid,
            "label": label,
            "namespace": pid.split(":", 1)[0],
            "content_models": content_models,
            "relationships": [
                {"predicate": rel.predicate, "object_id": rel.object_id, "position": position}
                for position, rel in enumerate(relationships)
            ],
        }

        try:
            result = self.execute_write_tx(create_query, params)
        except RepositoryError as e:
            raise StoreRejectedError(pid, str(e))

        if not result:
            raise StoreRejectedError(pid, "create returned no rows")

        logger.info(f"Created object {pid} with {len(relationships)} relationships")
        return RepositoryObject(
            pid=pid,
            label=label,
            content_models=content_models,
            relationships=relationships,
        )

    def attach_datastream(
        self,
        obj: RepositoryObject,
        descriptor: DatastreamDescriptor
    ) -> StoredDatastream:
        query = """
        MATCH (o:RepositoryObject {pid: $pid})
        MERGE (o)-[:HAS_DATASTREAM]->(d:Datastream {pid: $pid, dsid: $dsid})
        SET d.label = $label,
            d.mimetype = $mimetype,
            d.control_group = $control_group,
            d.content = $content,
            d.created_at = timestamp()
        RETURN d
        """

        try:
            content = descriptor.read_content()
        except (OSError, ValueError) as e:
            raise StoreRejectedError(obj.pid, f"unreadable content source: {e}", descriptor.dsid)

        params = {
            "pid": obj.pid,
            "dsid": descriptor.dsid,
            "label": descriptor.label,
            "mimetype": descriptor.mimetype,
            "control_group": descriptor.control_group,
            "content": content,
        }

        try:
            result = self.execute_write_tx(query, params)
        except RepositoryError as e:
            raise StoreRejectedError(obj.pid, str(e), descriptor.dsid)

        if not result:
            raise StoreRejectedError(obj.pid, "object does not exist", descriptor.dsid)

        logger.debug(f"Attached {descriptor.dsid} to {obj.pid}")
        return StoredDatastream(
            dsid=descriptor.dsid,
            label=descriptor.label,
            mimetype=descriptor.mimetype,
            control_group=descriptor.control_group,
            content=content,
        )
