"""
Persistent identifier allocation.

Identifiers are reserved from the store in batches sized against the work
left in the run, then handed out FIFO per namespace.
"""

import logging
import threading
from collections import deque
from typing import TYPE_CHECKING, Deque, Dict, List, Optional, Set, Tuple

from repo_forge.models.batch import BatchContext
from repo_forge.store.base import RepositoryClient
from repo_forge.store.exceptions import IdentifierAllocationError, RepositoryError

if TYPE_CHECKING:
    from repo_forge.ingest.metrics import BatchMetrics

logger = logging.getLogger(__name__)


class IdentifierAllocator:
    """
    Hands out unique identifiers from a lazily refilled pool per namespace.

    When a namespace's pool is empty, ``ceil((max - progress) / 2) + 1``
    identifiers are requested, where max/progress come from the batch
    context. A failed refill raises for the current item only and leaves
    the pool as it was.
    """

    def __init__(self, client: RepositoryClient):
        self.client = client
        self._pools: Dict[str, Deque[str]] = {}
        self._issued: Set[str] = set()
        self._lock = threading.Lock()
        self.refills: List[Tuple[str, int]] = []

    def allocate(self, namespace: str, context: Optional[BatchContext] = None,
                 metrics: Optional["BatchMetrics"] = None) -> str:
        """
        Next identifier in ``namespace``.

        Args:
            namespace: PID namespace
            context: Current batch progress; without one a single identifier
                is requested on refill
            metrics: Run metrics that refills are counted in

        Raises:
            IdentifierAllocationError: If the pool is empty and cannot be refilled
        """
        with self._lock:
            pool = self._pools.setdefault(namespace, deque())
            if not pool:
                size = self._refill(namespace, pool, context or BatchContext())
                if metrics is not None:
                    metrics.record_refill(size)
            pid = pool.popleft()
            self._issued.add(pid)
            return pid

    def _refill(self, namespace: str, pool: Deque[str], context: BatchContext) -> int:
        size = context.refill_size()

        try:
            pids = self.client.allocate_identifiers(namespace, size)
        except IdentifierAllocationError:
            raise
        except RepositoryError as e:
            raise IdentifierAllocationError(namespace, str(e))

        if len(pids) > size:
            logger.warning(f"Store returned {len(pids)} identifiers for a batch of {size}, dropping the surplus")

        fresh = []
        for pid in pids[:size]:
            if pid in self._issued or pid in fresh:
                logger.warning(f"Store returned already issued identifier {pid}, discarding it")
                continue
            fresh.append(pid)

        if not fresh:
            raise IdentifierAllocationError(namespace, "store returned no usable identifiers")

        pool.extend(fresh)
        self.refills.append((namespace, size))
        logger.debug(f"Refilled '{namespace}' pool with {len(fresh)} identifiers "
                     f"(progress {context.progress}/{context.max})")
        return size

    def pool_size(self, namespace: str) -> int:
        with self._lock:
            return len(self._pools.get(namespace, ()))

    @property
    def issued_count(self) -> int:
        return len(self._issued)
