"""Tests for the in-memory repository store."""

import pytest

from repo_forge.models.repository import DatastreamDescriptor, Relationship, RepositoryObject
from repo_forge.store.exceptions import IdentifierAllocationError, StoreRejectedError
from repo_forge.store.memory import InMemoryRepositoryClient


@pytest.fixture
def client():
    with InMemoryRepositoryClient() as client:
        yield client


class TestAllocation:
    """Per-namespace identifier sequences."""

    def test_sequential_batches(self, client):
        assert client.allocate_identifiers("ir", 3) == ["ir:1", "ir:2", "ir:3"]
        assert client.allocate_identifiers("ir", 2) == ["ir:4", "ir:5"]

    def test_namespaces_independent(self, client):
        client.allocate_identifiers("ir", 3)
        assert client.allocate_identifiers("books", 1) == ["books:1"]

    def test_invalid_batch_size(self, client):
        with pytest.raises(IdentifierAllocationError):
            client.allocate_identifiers("ir", 0)


class TestObjects:
    """Object creation and datastream attachment."""

    def test_create_and_load(self, client):
        client.create_object(
            "ir:1",
            label="Report",
            content_models=["cm:book"],
            relationships=[Relationship(predicate="isMemberOf", object_id="ir:root")],
        )

        obj = client.load_object("ir:1")
        assert obj.label == "Report"
        assert obj.namespace == "ir"
        assert obj.content_models == ["cm:book"]
        assert obj.related("isMemberOf") == ["ir:root"]

    def test_load_missing(self, client):
        assert client.load_object("ir:404") is None

    def test_duplicate_rejected(self, client):
        client.create_object("ir:1")
        with pytest.raises(StoreRejectedError, match="already exists"):
            client.create_object("ir:1")

    def test_loaded_copy_is_detached(self, client):
        client.create_object("ir:1", label="Original")
        client.load_object("ir:1").label = "Changed"
        assert client.load_object("ir:1").label == "Original"

    def test_attach_datastream(self, client, tmp_path):
        path = tmp_path / "mods.xml"
        path.write_text("<mods/>", encoding="utf-8")
        obj = client.create_object("ir:1")

        stored = client.attach_datastream(obj, DatastreamDescriptor(
            dsid="PRIMARY", label="MODS Record", content_source=path.as_uri()
        ))

        assert stored.content == "<mods/>"
        assert client.load_object("ir:1").get_datastream("PRIMARY").label == "MODS Record"

    def test_attach_unreadable_source(self, client, tmp_path):
        obj = client.create_object("ir:1")
        descriptor = DatastreamDescriptor(dsid="PRIMARY", content_source=(tmp_path / "gone.xml").as_uri())

        with pytest.raises(StoreRejectedError) as exc_info:
            client.attach_datastream(obj, descriptor)
        assert exc_info.value.dsid == "PRIMARY"

    def test_attach_to_missing_object(self, client, tmp_path):
        path = tmp_path / "mods.xml"
        path.write_text("<mods/>", encoding="utf-8")

        with pytest.raises(StoreRejectedError, match="does not exist"):
            client.attach_datastream(
                RepositoryObject(pid="ir:9"),
                DatastreamDescriptor(dsid="PRIMARY", content_source=path.as_uri()),
            )

    def test_list_objects_by_namespace(self, client):
        client.create_object("ir:1")
        client.create_object("books:1")
        client.add_object(RepositoryObject(pid="ir:root"))

        assert [o.pid for o in client.list_objects("ir")] == ["ir:1", "ir:root"]
        assert len(client.list_objects()) == 3
