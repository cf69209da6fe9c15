"""
Datastream assembly: generated documents to datastream descriptors.
"""

import logging
import re
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, List, NamedTuple, Optional

from repo_forge.models.batch import ErrorKind, IngestErrorRecord
from repo_forge.models.repository import (
    DERIVED_DSID,
    PRIMARY_DSID,
    XML_MIMETYPE,
    DatastreamDescriptor,
)

if TYPE_CHECKING:
    from repo_forge.config.settings import IngestConfig
    from repo_forge.ingest.items import ImportItem

logger = logging.getLogger(__name__)


class AssemblyResult(NamedTuple):
    """Descriptors ready to attach, missing-document errors, and temp files to clean up."""

    descriptors: List[DatastreamDescriptor]
    errors: List[IngestErrorRecord]
    temp_artifacts: List[Path]


class DatastreamAssembler:
    """
    Writes an item's PRIMARY and DERIVED documents to temp files and
    describes them as datastreams.

    Each document is handled independently: a missing one is recorded as an
    error and the other is still assembled. The temp files belong to the
    caller, who deletes them once the datastreams are committed.
    """

    def __init__(self, control_group: str = "M",
                 primary_label: str = "MODS Record",
                 derived_label: str = "DC Record",
                 temp_dir: Optional[str] = None):
        self.control_group = control_group
        self.primary_label = primary_label
        self.derived_label = derived_label
        self.temp_dir = temp_dir

    @classmethod
    def from_config(cls, config: "IngestConfig") -> "DatastreamAssembler":
        return cls(
            control_group=config.control_group,
            primary_label=config.primary_label,
            derived_label=config.derived_label,
            temp_dir=config.temp_dir,
        )

    def assemble(self, item: "ImportItem", identifier: Optional[str] = None) -> AssemblyResult:
        """
        Build datastream descriptors for ``item``.

        Args:
            item: Item providing primary/derived documents
            identifier: Target object identifier, recorded on errors

        Returns:
            AssemblyResult(descriptors, errors, temp_artifacts)
        """
        descriptors: List[DatastreamDescriptor] = []
        errors: List[IngestErrorRecord] = []
        artifacts: List[Path] = []

        documents = (
            (PRIMARY_DSID, self.primary_label, item.primary_document),
            (DERIVED_DSID, self.derived_label, item.derived_document),
        )

        try:
            for dsid, label, generate in documents:
                document = generate()
                if not document:
                    error = IngestErrorRecord(
                        kind=ErrorKind.MISSING_DOCUMENT,
                        message=f"No {dsid} document could be generated for {item.name or 'item'}",
                        dsid=dsid,
                        identifier=identifier,
                    )
                    logger.warning(str(error))
                    errors.append(error)
                    continue

                artifact = self._write_artifact(document, dsid, identifier)
                artifacts.append(artifact)
                descriptors.append(DatastreamDescriptor(
                    dsid=dsid,
                    label=label,
                    mimetype=XML_MIMETYPE,
                    control_group=self.control_group,
                    content_source=artifact.as_uri(),
                ))
        except Exception:
            # the caller never sees these paths
            self.cleanup(artifacts)
            raise

        return AssemblyResult(descriptors, errors, artifacts)

    def _write_artifact(self, document: str, dsid: str, identifier: Optional[str]) -> Path:
        stem = re.sub(r"[^A-Za-z0-9.-]+", "_", identifier or "draft")
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            prefix=f"{stem}_{dsid}_",
            suffix=".xml",
            dir=self.temp_dir,
            delete=False,
        ) as f:
            f.write(document)
        return Path(f.name).resolve()

    @staticmethod
    def cleanup(artifacts: Iterable[Path]) -> int:
        """Delete temp artifacts; returns how many were removed."""
        removed = 0
        for artifact in artifacts:
            try:
                Path(artifact).unlink()
                removed += 1
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Could not delete temporary file {artifact}: {e}")
        return removed
