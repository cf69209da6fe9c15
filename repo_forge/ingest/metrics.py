"""
Metrics collection and reporting for batch ingest runs.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class BatchMetrics:
    """
    Tracks statistics and performance metrics for a batch run.
    """

    # Extraction statistics
    items_expected: int = 0     # Source count() at the start of the run
    items_extracted: int = 0    # Attempts that produced an item
    items_missing: int = 0      # Attempts that produced nothing

    # Draft statistics
    drafts_preprocessed: int = 0
    drafts_committed: int = 0
    drafts_failed: int = 0

    # Identifier statistics
    identifier_refills: int = 0
    identifiers_requested: int = 0

    missing_documents: int = 0

    # Performance metrics
    processing_time: float = 0.0
    preprocess_time: float = 0.0
    commit_time: float = 0.0

    failure_details: List[str] = field(default_factory=list)

    _start_time: float = field(default_factory=time.time, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def record_extraction(self, produced: bool) -> None:
        """Record one extraction attempt."""
        if produced:
            self.items_extracted += 1
        else:
            self.items_missing += 1

    def record_preprocessed(self) -> None:
        self.drafts_preprocessed += 1

    def record_committed(self) -> None:
        with self._lock:
            self.drafts_committed += 1

    def record_failed(self, error: str) -> None:
        """Record a draft that ended in ERROR."""
        with self._lock:
            self.drafts_failed += 1
            self.failure_details.append(error)

    def record_missing_document(self, count: int = 1) -> None:
        with self._lock:
            self.missing_documents += count

    def record_refill(self, size: int) -> None:
        with self._lock:
            self.identifier_refills += 1
            self.identifiers_requested += size

    def add_preprocess_time(self, duration: float) -> None:
        self.preprocess_time += duration

    def add_commit_time(self, duration: float) -> None:
        with self._lock:
            self.commit_time += duration

    def finalize(self) -> None:
        """Finalize metrics by calculating total processing time."""
        self.processing_time = time.time() - self._start_time

    @property
    def total_attempted(self) -> int:
        return self.items_extracted + self.items_missing

    @property
    def success_rate(self) -> float:
        """Committed drafts as a percentage of drafts that reached a terminal state."""
        finished = self.drafts_committed + self.drafts_failed
        if finished == 0:
            return 0.0
        return (self.drafts_committed / finished) * 100

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary for serialization."""
        return {
            'items_expected': self.items_expected,
            'items_extracted': self.items_extracted,
            'items_missing': self.items_missing,
            'drafts_preprocessed': self.drafts_preprocessed,
            'drafts_committed': self.drafts_committed,
            'drafts_failed': self.drafts_failed,
            'identifier_refills': self.identifier_refills,
            'identifiers_requested': self.identifiers_requested,
            'missing_documents': self.missing_documents,
            'processing_time': round(self.processing_time, 2),
            'preprocess_time': round(self.preprocess_time, 2),
            'commit_time': round(self.commit_time, 2),
            'success_rate': round(self.success_rate, 1),
        }

    def __str__(self) -> str:
        """String representation for logging."""
        return (
            f"BatchMetrics("
            f"expected={self.items_expected}, "
            f"extracted={self.items_extracted}, "
            f"missing={self.items_missing}, "
            f"committed={self.drafts_committed}, "
            f"failed={self.drafts_failed}, "
            f"refills={self.identifier_refills}, "
            f"time={self.processing_time:.1f}s"
            f")"
        )
