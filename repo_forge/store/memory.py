"""In-memory repository store for dry runs and tests."""

import logging
import threading
from typing import Dict, List, Optional

from repo_forge.models.repository import (
    DatastreamDescriptor,
    Relationship,
    RepositoryObject,
    StoredDatastream,
)
from repo_forge.store.base import RepositoryClient
from repo_forge.store.exceptions import (
    IdentifierAllocationError,
    StoreRejectedError,
)

logger = logging.getLogger(__name__)


class InMemoryRepositoryClient(RepositoryClient):
    """Repository client keeping objects in a process-local dict.

    Identifiers are allocated from a per-namespace counter, mirroring the
    ``namespace:N`` sequence a real repository hands out.
    """

    def __init__(self):
        self._objects: Dict[str, RepositoryObject] = {}
        self._counters: Dict[str, int] = {}
        self._lock = threading.Lock()
        self._connected = False

    def connect(self) -> bool:
        self._connected = True
        return True

    def close(self) -> None:
        self._connected = False

    def verify_connectivity(self) -> bool:
        return True

    def allocate_identifiers(self, namespace: str, count: int) -> List[str]:
        if count < 1:
            raise IdentifierAllocationError(namespace, f"invalid batch size {count}")
        with self._lock:
            start = self._counters.get(namespace, 0) + 1
            self._counters[namespace] = start + count - 1
        pids = [f"{namespace}:{n}" for n in range(start, start + count)]
        logger.debug(f"Allocated {count} identifiers in '{namespace}' starting at {pids[0]}")
        return pids

    def load_object(self, pid: str) -> Optional[RepositoryObject]:
        with self._lock:
            obj = self._objects.get(pid)
            return obj.model_copy(deep=True) if obj else None

    def create_object(
        self,
        pid: str,
        label: str = "",
        content_models: Optional[List[str]] = None,
        relationships: Optional[List[Relationship]] = None
    ) -> RepositoryObject:
        with self._lock:
            if pid in self._objects:
                raise StoreRejectedError(pid, "object already exists")
            obj = RepositoryObject(
                pid=pid,
                label=label,
                content_models=list(content_models or []),
                relationships=list(relationships or []),
            )
            self._objects[pid] = obj
        logger.debug(f"Created object {pid}")
        return obj.model_copy(deep=True)

    def attach_datastream(
        self,
        obj: RepositoryObject,
        descriptor: DatastreamDescriptor
    ) -> StoredDatastream:
        try:
            content = descriptor.read_content()
        except (OSError, ValueError) as e:
            raise StoreRejectedError(obj.pid, f"unreadable content source: {e}", descriptor.dsid)

        datastream = StoredDatastream(
            dsid=descriptor.dsid,
            label=descriptor.label,
            mimetype=descriptor.mimetype,
            control_group=descriptor.control_group,
            content=content,
        )
        with self._lock:
            stored = self._objects.get(obj.pid)
            if stored is None:
                raise StoreRejectedError(obj.pid, "object does not exist", descriptor.dsid)
            stored.datastreams[descriptor.dsid] = datastream
        logger.debug(f"Attached {descriptor.dsid} to {obj.pid}")
        return datastream

    def add_object(self, obj: RepositoryObject) -> None:
        """Seed an existing object (parent collections, fixtures)."""
        with self._lock:
            self._objects[obj.pid] = obj.model_copy(deep=True)

    def list_objects(self, namespace: Optional[str] = None) -> List[RepositoryObject]:
        with self._lock:
            return [
                obj.model_copy(deep=True)
                for pid, obj in sorted(self._objects.items())
                if namespace is None or obj.namespace == namespace
            ]
