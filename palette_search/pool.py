"""
Capacity-bounded collection of processed records.

The pool keeps records in insertion order (which, during indexing, is
decode-completion order). Overflow raises PoolFull instead of dropping
the record. Completion is measured against the achievable count: the
expected corpus size minus images that permanently failed to decode.
"""

import logging
from typing import Iterator, Optional, Tuple

from .errors import PoolEmpty, PoolFull
from .models import ProcessedRecord

logger = logging.getLogger(__name__)


class ProcessedPool:
    """Insertion-ordered, capacity-limited store of ProcessedRecords."""

    def __init__(self, capacity: int, expected_count: Optional[int] = None):
        """
        Args:
            capacity: Maximum number of records the pool accepts.
            expected_count: Corpus size the pool must reach to be
                complete. Defaults to ``capacity``.
        """
        if capacity <= 0:
            raise ValueError(f"Pool capacity must be positive, got {capacity}")
        self.capacity = capacity
        self.expected_count = capacity if expected_count is None else expected_count
        self.failed_count = 0
        self._records = []

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ProcessedRecord]:
        return iter(self._records)

    @property
    def records(self) -> Tuple[ProcessedRecord, ...]:
        return tuple(self._records)

    @property
    def achievable_count(self) -> int:
        return max(0, self.expected_count - self.failed_count)

    def insert(self, record: ProcessedRecord) -> None:
        """
        Append a record.

        Raises:
            PoolFull: If the pool already holds ``capacity`` records.
        """
        if len(self._records) >= self.capacity:
            logger.error(f"Pool full at {self.capacity}, rejecting {record.path}")
            raise PoolFull(self.capacity)
        self._records.append(record)

    def remove(self) -> ProcessedRecord:
        """Remove and return the most recently inserted record."""
        if not self._records:
            raise PoolEmpty("There are no records in the pool to remove")
        return self._records.pop()

    def mark_failed(self, count: int = 1) -> None:
        """Record images that will never arrive, lowering the achievable count."""
        self.failed_count += count

    def is_complete(self) -> bool:
        return len(self._records) == self.achievable_count

    def clear(self) -> None:
        self._records.clear()
        self.failed_count = 0
