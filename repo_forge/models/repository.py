"""Repository object and datastream models."""

from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urlparse
from urllib.request import url2pathname

from pydantic import BaseModel, ConfigDict, Field


XML_MIMETYPE = "application/xml"

# Datastream identifiers produced by the ingest pipeline
PRIMARY_DSID = "PRIMARY"
DERIVED_DSID = "DERIVED"

# Relationship every ingested object carries to its parent container
IS_MEMBER_OF = "isMemberOf"


class Relationship(BaseModel):
    """A (predicate, object) pair attached to a repository object."""

    model_config = ConfigDict(frozen=True)

    predicate: str = Field(..., description="Relationship predicate, e.g. isMemberOf")
    object_id: str = Field(..., description="Identifier of the related object")


class DatastreamDescriptor(BaseModel):
    """Describes a datastream to attach to a repository object."""

    model_config = ConfigDict(frozen=True)

    dsid: str = Field(..., description="Datastream identifier")
    label: str = Field(default="", description="Human-readable label")
    mimetype: str = Field(default=XML_MIMETYPE, description="Content MIME type")
    control_group: str = Field(default="M", description="Storage mode (X, M, E, R)")
    content_source: str = Field(..., description="URI the content is read from")

    def read_content(self) -> str:
        """
        Read datastream content from a ``file://`` content source.

        Returns:
            Content decoded as UTF-8

        Raises:
            ValueError: If the content source is not a local file URI
            OSError: If the file cannot be read
        """
        parsed = urlparse(self.content_source)
        if parsed.scheme not in ("file", ""):
            raise ValueError(f"Unsupported content source: {self.content_source}")
        path = Path(url2pathname(parsed.path)) if parsed.scheme else Path(self.content_source)
        return path.read_text(encoding="utf-8")


class StoredDatastream(BaseModel):
    """A datastream as persisted in the repository store."""

    dsid: str
    label: str = ""
    mimetype: str = XML_MIMETYPE
    control_group: str = "M"
    content: Optional[str] = None


class RepositoryObject(BaseModel):
    """Handle on an object held by the repository store."""

    pid: str = Field(..., description="Persistent identifier (namespace:local)")
    label: str = Field(default="")
    content_models: List[str] = Field(default_factory=list)
    relationships: List[Relationship] = Field(default_factory=list)
    datastreams: Dict[str, StoredDatastream] = Field(default_factory=dict)

    @property
    def namespace(self) -> str:
        """Namespace prefix of the PID."""
        return self.pid.split(":", 1)[0]

    def get_datastream(self, dsid: str) -> Optional[StoredDatastream]:
        return self.datastreams.get(dsid)

    def related(self, predicate: str) -> List[str]:
        """Object ids related through ``predicate``, in insertion order."""
        return [rel.object_id for rel in self.relationships if rel.predicate == predicate]
