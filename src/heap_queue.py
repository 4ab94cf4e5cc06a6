# heap_queue.py
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class QueueEntry:
    priority: float
    counter: int
    task: Any

    def orders_before(self, other):
        if self.priority != other.priority:
            return self.priority < other.priority
        return self.counter < other.counter


class HeapQueue:
    """Min-priority queue on an array-backed binary heap.

    Entries are ordered by (priority, counter); the counter is assigned at
    push time, so equal priorities come out first-in-first-out.
    """

    def __init__(self):
        self._queue = []
        self._counter = 0

    def _bubble(self, index):
        queue = self._queue
        entry = queue[index]
        while index > 0:
            parent = (index - 1) >> 1
            above = queue[parent]
            if not entry.orders_before(above):
                break
            queue[parent] = entry
            queue[index] = above
            index = parent

    def _sink(self, index):
        queue = self._queue
        size = len(queue)
        entry = queue[index]
        start = index
        while True:
            child = (index << 1) + 1
            if child >= size:
                break
            right = child + 1
            if right < size and queue[right].orders_before(queue[child]):
                child = right
            below = queue[child]
            if not below.orders_before(entry):
                break
            queue[child] = entry
            queue[index] = below
            index = child
        # Nothing sank: the moved entry may still belong above its slot.
        if index == start:
            self._bubble(index)

    def heappush(self, priority, task):
        entry = QueueEntry(priority, self._counter, task)
        self._counter += 1
        self._queue.append(entry)
        self._bubble(len(self._queue) - 1)

    def heappop(self):
        """Remove and return the task with the smallest (priority, counter), or None."""
        if not self._queue:
            return None
        top = self._queue[0]
        last = self._queue.pop()
        if self._queue:
            self._queue[0] = last
            self._sink(0)
        return top.task

    def length(self):
        return len(self._queue)

    def __len__(self):
        return len(self._queue)

    def clear(self):
        # The counter keeps running so ties never invert across reuse.
        self._queue = []
