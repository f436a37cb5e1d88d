"""
Pending-task queue ordered by priority, then arrival.
"""

import heapq

from dynqueue.types.task import TaskRecord


class PriorityQueue:
    """
    Binary heap of unstarted TaskRecords.

    Pop order is priority descending, then sequence ascending, so records of
    equal priority come out in submission order. Sequences are unique per
    scheduler, which keeps heap comparisons from ever reaching the record.
    """

    def __init__(self) -> None:
        self._heap: list[tuple[int, int, TaskRecord]] = []

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)

    def push(self, record: TaskRecord) -> None:
        """Insert a record in O(log n)."""
        heapq.heappush(self._heap, (*record.sort_key, record))

    def pop(self) -> TaskRecord | None:
        """Remove and return the most urgent record, or None if empty."""
        if not self._heap:
            return None
        return heapq.heappop(self._heap)[-1]

    def peek(self) -> TaskRecord | None:
        """Return the most urgent record without removing it."""
        if not self._heap:
            return None
        return self._heap[0][-1]

    def drain(self) -> list[TaskRecord]:
        """Remove every record and return them in pop order."""
        records = [entry[-1] for entry in sorted(self._heap)]
        self._heap.clear()
        return records
