"""Tests for the Neo4j repository store, against a mocked driver."""

import pytest
from unittest.mock import MagicMock, Mock, patch
from neo4j.exceptions import AuthError, ServiceUnavailable

from repo_forge.models.repository import DatastreamDescriptor, Relationship, RepositoryObject
from repo_forge.store.exceptions import (
    IdentifierAllocationError,
    SchemaError,
    StoreConnectionError,
    StoreRejectedError,
)
from repo_forge.store.neo4j.client import Neo4jRepositoryClient
from repo_forge.store.neo4j.schema import Neo4jSchemaManager


@pytest.fixture
def client():
    return Neo4jRepositoryClient("bolt://localhost:7687", "neo4j", "secret")


@pytest.fixture
def connected(client):
    """Client with a mocked driver; query helpers are mocked per test."""
    client._driver = MagicMock()
    client.execute_query = Mock(return_value=[])
    client.execute_write = Mock(return_value={})
    client.execute_write_tx = Mock(return_value=[])
    return client


class TestConnection:
    """Tests for connect/close."""

    @patch('repo_forge.store.neo4j.client.GraphDatabase')
    def test_connect(self, mock_graph_db, client):
        driver = MagicMock()
        mock_graph_db.driver.return_value = driver

        assert client.connect() is True
        mock_graph_db.driver.assert_called_once_with("bolt://localhost:7687", auth=("neo4j", "secret"))
        driver.verify_connectivity.assert_called_once()

    @pytest.mark.parametrize("error", [AuthError("denied"), ServiceUnavailable("down"), RuntimeError("boom")])
    @patch('repo_forge.store.neo4j.client.GraphDatabase')
    def test_connect_failures(self, mock_graph_db, client, error):
        mock_graph_db.driver.return_value.verify_connectivity.side_effect = error

        with pytest.raises(StoreConnectionError):
            client.connect()

    def test_close_idempotent(self, client):
        driver = MagicMock()
        client._driver = driver

        client.close()
        client.close()

        driver.close.assert_called_once()

    def test_verify_without_driver(self, client):
        assert client.verify_connectivity() is False

    def test_queries_require_connection(self, client):
        with pytest.raises(StoreConnectionError, match="Not connected"):
            client.execute_query("RETURN 1")
        with pytest.raises(StoreConnectionError, match="Not connected"):
            client.execute_write_tx("RETURN 1")


class TestAllocation:
    """Identifier counter updates."""

    def test_allocates_from_counter(self, connected):
        connected.execute_write_tx.return_value = [{"start": 7}]

        assert connected.allocate_identifiers("ir", 3) == ["ir:7", "ir:8", "ir:9"]
        _, params = connected.execute_write_tx.call_args[0]
        assert params == {"namespace": "ir", "count": 3}

    def test_store_failure(self, connected):
        connected.execute_write_tx.side_effect = StoreConnectionError("down")

        with pytest.raises(IdentifierAllocationError, match="'ir'"):
            connected.allocate_identifiers("ir", 2)

    def test_no_rows(self, connected):
        with pytest.raises(IdentifierAllocationError):
            connected.allocate_identifiers("ir", 2)

    def test_invalid_batch_size(self, connected):
        with pytest.raises(IdentifierAllocationError):
            connected.allocate_identifiers("ir", 0)
        connected.execute_write_tx.assert_not_called()


class TestObjects:
    """Object creation, loading and datastreams."""

    def test_create_object(self, connected):
        connected.execute_query.return_value = [{"count": 0}]
        connected.execute_write_tx.return_value = [{"o": {"pid": "ir:1"}}]
        relationships = [
            Relationship(predicate="isMemberOf", object_id="ir:root"),
            Relationship(predicate="isGovernedBy", object_id="ir:policy"),
        ]

        obj = connected.create_object("ir:1", label="Report", content_models=["cm:book"],
                                      relationships=relationships)

        assert obj.pid == "ir:1"
        assert obj.relationships == relationships
        _, params = connected.execute_write_tx.call_args[0]
        assert params["namespace"] == "ir"
        assert [r["position"] for r in params["relationships"]] == [0, 1]

    def test_create_existing_rejected(self, connected):
        connected.execute_query.return_value = [{"count": 1}]

        with pytest.raises(StoreRejectedError, match="already exists"):
            connected.create_object("ir:1")
        connected.execute_write_tx.assert_not_called()

    def test_create_write_failure(self, connected):
        connected.execute_query.return_value = [{"count": 0}]
        connected.execute_write_tx.side_effect = StoreConnectionError("constraint violated")

        with pytest.raises(StoreRejectedError):
            connected.create_object("ir:1")

    def test_load_object(self, connected):
        connected.execute_query.side_effect = [
            [{
                "o": {"pid": "ir:1", "label": "Report", "content_models": ["cm:book"]},
                "datastreams": [{"dsid": "PRIMARY", "label": "MODS Record", "content": "<mods/>"}],
            }],
            [{"predicate": "isMemberOf", "object_id": "ir:root"}],
        ]

        obj = connected.load_object("ir:1")

        assert obj.label == "Report"
        assert obj.get_datastream("PRIMARY").content == "<mods/>"
        assert obj.get_datastream("PRIMARY").control_group == "M"
        assert obj.related("isMemberOf") == ["ir:root"]

    def test_load_missing(self, connected):
        assert connected.load_object("ir:404") is None

    def test_attach_datastream(self, connected, tmp_path):
        path = tmp_path / "dc.xml"
        path.write_text("<dc/>", encoding="utf-8")
        connected.execute_write_tx.return_value = [{"d": {}}]

        stored = connected.attach_datastream(
            RepositoryObject(pid="ir:1"),
            DatastreamDescriptor(dsid="DERIVED", label="DC Record", content_source=path.as_uri()),
        )

        assert stored.content == "<dc/>"
        _, params = connected.execute_write_tx.call_args[0]
        assert params["dsid"] == "DERIVED"
        assert params["content"] == "<dc/>"

    def test_attach_to_missing_object(self, connected, tmp_path):
        path = tmp_path / "dc.xml"
        path.write_text("<dc/>", encoding="utf-8")

        with pytest.raises(StoreRejectedError) as exc_info:
            connected.attach_datastream(
                RepositoryObject(pid="ir:1"),
                DatastreamDescriptor(dsid="DERIVED", content_source=path.as_uri()),
            )
        assert exc_info.value.dsid == "DERIVED"


class TestSchemaManager:
    """Tests for Neo4jSchemaManager."""

    def test_create_schema(self, connected):
        Neo4jSchemaManager(connected).create_schema()
        assert connected.execute_write.call_count == 5

    def test_create_schema_failure(self, connected):
        connected.execute_write.side_effect = StoreConnectionError("down")

        with pytest.raises(SchemaError):
            Neo4jSchemaManager(connected).create_schema()

    def test_statistics(self, connected):
        connected.execute_query.return_value = [{"objects": 4, "datastreams": 7}]

        stats = Neo4jSchemaManager(connected).get_statistics("ir")

        assert stats == {"namespace": "ir", "objects": 4, "datastreams": 7}
