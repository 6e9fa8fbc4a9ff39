"""
Fixed-capacity FIFO delay line used by synapses.
"""

from collections import deque

from librc.validation import ValidationError

class SignalQueue:
    r"""
    Bounded FIFO of per-cycle items. A synapse with delay $d$ uses capacity $d + 1$,
    so the item enqueued at cycle $t$ is dequeued at cycle $t + d$.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValidationError("Queue capacity must be a positive integer", field="capacity", value=capacity)
        self.capacity = capacity
        self._items = deque()

    def __len__(self) -> int:
        return len(self._items)

    @property
    def count(self) -> int:
        return len(self._items)

    @property
    def full(self) -> bool:
        return len(self._items) >= self.capacity

    def enqueue(self, item) -> None:
        if self.full:
            raise OverflowError("Signal queue is full")
        self._items.append(item)

    def dequeue(self):
        if len(self._items) == 0:
            raise IndexError("Signal queue is empty")
        return self._items.popleft()

    def peek(self):
        return self._items[0] if len(self._items) > 0 else None

    def reset(self) -> None:
        self._items.clear()

    def resize(self, capacity: int) -> None:
        """Change capacity; the queue is emptied."""
        if capacity < 1:
            raise ValidationError("Queue capacity must be a positive integer", field="capacity", value=capacity)
        self.capacity = capacity
        self._items.clear()
