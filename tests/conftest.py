"""Shared pytest fixtures."""

from collections import deque

import pytest

from repo_forge.config.settings import IngestConfig, Settings
from repo_forge.ingest.exceptions import SourceError
from repo_forge.ingest.hooks import HookRegistry
from repo_forge.ingest.items import ImportItem
from repo_forge.ingest.sources.base import ImportSource
from repo_forge.ingest.transform import DerivedDocumentGenerator
from repo_forge.models.repository import RepositoryObject, StoredDatastream
from repo_forge.store.memory import InMemoryRepositoryClient


SAMPLE_MODS = """<?xml version="1.0" encoding="UTF-8"?>
<mods xmlns="http://www.loc.gov/mods/v3" version="3.7">
  <titleInfo>
    <title>  Annual Report
      of the Harbour Commission </title>
    <subTitle>1923</subTitle>
  </titleInfo>
  <titleInfo type="alternative">
    <title>Harbour Report</title>
  </titleInfo>
  <name>
    <namePart>Harbour Commission</namePart>
    <role><roleTerm type="text">creator</roleTerm></role>
  </name>
  <originInfo>
    <publisher>City Press</publisher>
    <dateIssued>1923</dateIssued>
  </originInfo>
  <subject><topic>Harbors</topic></subject>
  <abstract>Yearly activity of the commission.</abstract>
  <identifier type="local">HC-1923</identifier>
</mods>
"""

SAMPLE_POLICY = """<?xml version="1.0" encoding="UTF-8"?>
<collection_policy xmlns="http://www.islandora.ca" name="Reports">
  <content_models>
    <content_model name="Book" dsid="MODS" namespace="books:collection" pid="cm:book"/>
    <content_model name="Citation" dsid="MODS" namespace="cites:collection" pid="cm:citation"/>
    <content_model name="Book again" dsid="MODS" namespace="other:collection" pid="cm:book"/>
  </content_models>
  <relationship>isMemberOfCollection</relationship>
</collection_policy>
"""


def mods_record(title: str) -> str:
    """Minimal MODS document with the given title."""
    return (
        '<mods xmlns="http://www.loc.gov/mods/v3" version="3.7">'
        f'<titleInfo><title>{title}</title></titleInfo>'
        '</mods>'
    )


UNREADABLE = object()


class StubItem(ImportItem):
    """Item with a fixed (possibly absent) primary document."""

    @classmethod
    def from_entry(cls, entry, source, generator=None):
        if entry is UNREADABLE:
            raise SourceError("unreadable entry")
        return cls(entry, source.namespace, source.content_models, generator)

    def generate_primary_document(self):
        return self.source_fragment


class ListSource(ImportSource):
    """Source over an in-memory list of primary documents.

    ``UNREADABLE`` entries are consumed but extract as None.
    """

    item_class = StubItem
    format_name = "list"

    def __init__(self, entries, namespace="ir", content_models=None):
        super().__init__(namespace, content_models)
        self._pending = deque(entries)
        self._total = len(entries)
        self.count_calls = 0

    def count(self):
        self.count_calls += 1
        return self._total

    def pop_entry(self):
        if not self._pending:
            return None
        return self._pending.popleft()


class StubTransformer:
    """Transformer returning a canned derived document and counting calls."""

    def __init__(self, output="<dc>derived</dc>"):
        self.output = output
        self.calls = 0

    def transform(self, definition_ref, document):
        self.calls += 1
        return self.output


@pytest.fixture
def sample_mods():
    return SAMPLE_MODS


@pytest.fixture
def sample_policy():
    return SAMPLE_POLICY


@pytest.fixture
def stub_transformer():
    return StubTransformer()


@pytest.fixture
def stub_generator(stub_transformer):
    return DerivedDocumentGenerator(transformer=stub_transformer)


@pytest.fixture
def make_item(stub_generator):
    """Factory for stub items sharing the stub generator."""
    def factory(primary=None, namespace="ir", content_models=None, name="item"):
        return StubItem(primary, namespace, content_models, stub_generator, name=name)
    return factory


@pytest.fixture
def memory_client():
    """Connected in-memory store."""
    client = InMemoryRepositoryClient()
    client.connect()
    yield client
    client.close()


@pytest.fixture
def collection_client(memory_client, sample_policy):
    """In-memory store seeded with collection ``ir:reports`` carrying a policy."""
    memory_client.add_object(RepositoryObject(
        pid="ir:reports",
        label="Reports",
        content_models=["cm:collection"],
        datastreams={
            "COLLECTION_POLICY": StoredDatastream(dsid="COLLECTION_POLICY", content=sample_policy),
        },
    ))
    return memory_client


@pytest.fixture
def hook_registry():
    """Empty registry, isolated from the global one."""
    return HookRegistry()


@pytest.fixture
def ingest_settings(tmp_path):
    """Settings that never touch the environment or config files."""
    return Settings(ingest=IngestConfig(temp_dir=str(tmp_path)))
